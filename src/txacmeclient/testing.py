"""
Utilities for testing with txacmeclient.
"""
from collections import OrderedDict

from twisted.internet.defer import fail, succeed
from zope.interface import implementer

from txacmeclient.interfaces import IResourceStore
from txacmeclient.resources import Authorization, Certificate, Registration


@implementer(IResourceStore)
class MemoryStore(object):
    """
    A resource store that keeps the ``to_json`` records in memory only.
    """
    def __init__(self):
        self._registrations = {}
        self._authorizations = OrderedDict()
        self._certificates = {}

    def save_registration(self, account, registration):
        self._registrations[account] = registration.to_json()
        return succeed(None)

    def load_registration(self, account):
        try:
            return succeed(
                Registration.from_json(self._registrations[account]))
        except KeyError:
            return fail()

    def save_authorization(self, authorization):
        location = authorization.location
        self._authorizations.pop(location, None)
        self._authorizations[location] = authorization.to_json()
        return succeed(None)

    def load_authorization(self, location_or_domain):
        jobj = self._authorizations.get(location_or_domain)
        if jobj is None:
            for candidate in reversed(list(self._authorizations.values())):
                if candidate[u'identifier'][u'value'] == location_or_domain:
                    jobj = candidate
                    break
            else:
                return fail(KeyError(location_or_domain))
        return succeed(Authorization.from_json(jobj))

    def list_authorizations(self, status=None):
        return succeed([
            Authorization.from_json(jobj)
            for jobj in self._authorizations.values()
            if status is None or jobj[u'status'] == status])

    def save_certificate(self, certificate):
        self._certificates[certificate.location] = certificate.to_json()
        return succeed(None)

    def load_certificate(self, location):
        try:
            return succeed(
                Certificate.from_json(self._certificates[location]))
        except KeyError:
            return fail()


__all__ = ['MemoryStore']
