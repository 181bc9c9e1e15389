from os import getenv

import eliot.twisted
from hypothesis import HealthCheck, settings


eliot.twisted.redirectLogsForTrial()
del eliot

# RSA key generation and certificate signing are slow under hypothesis.
settings.register_profile(
    "coverage",
    settings(max_examples=20, deadline=None,
             suppress_health_check=[HealthCheck.too_slow]))
settings.register_profile("quick", settings(max_examples=5, deadline=None))
settings.load_profile(getenv(u'HYPOTHESIS_PROFILE', 'default'))
del HealthCheck, getenv, settings
