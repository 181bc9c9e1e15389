"""
Exception types for txacmeclient.
"""
import attr


@attr.s(auto_exc=True)
class TransportError(Exception):
    """
    The HTTP request could not be completed because of a network or I/O
    failure.
    """
    url = attr.ib()
    reason = attr.ib()

    def __str__(self):
        return repr(self)


@attr.s(auto_exc=True)
class ProtocolError(Exception):
    """
    The server replied, but not in the way the protocol requires: a non-2xx
    status, a missing Location header or Link relation, a wrong
    Content-Type, or a body that could not be decoded.
    """
    message = attr.ib()
    url = attr.ib(default=None)
    code = attr.ib(default=None)
    body = attr.ib(default=None, repr=False)

    def __str__(self):
        return repr(self)


@attr.s(auto_exc=True)
class ValidationError(ValueError):
    """
    A field received from the server violates the length or encoding rules
    of its challenge type.
    """
    message = attr.ib()

    def __str__(self):
        return repr(self)


@attr.s(auto_exc=True)
class IntegrityError(Exception):
    """
    The account key echoed by the server is not the key the request was
    signed with.
    """
    expected = attr.ib()
    received = attr.ib()

    def __str__(self):
        return repr(self)


@attr.s(auto_exc=True)
class IncompleteResponse(Exception):
    """
    A challenge response payload was requested before the client-entered
    fields it needs were set.
    """
    challenge_type = attr.ib()
    missing = attr.ib()

    def __str__(self):
        return repr(self)


@attr.s(auto_exc=True)
class UnsupportedChallenge(Exception):
    """
    The challenge type has no response capability.
    """
    challenge_type = attr.ib()

    def __str__(self):
        return repr(self)


@attr.s(auto_exc=True)
class UnsupportedKeyType(Exception):
    """
    The private key is neither an RSA nor an elliptic curve key.
    """
    key_type = attr.ib()

    def __str__(self):
        return repr(self)


@attr.s(auto_exc=True)
class UnsupportedCurve(Exception):
    """
    The elliptic curve has no JWS signature algorithm.
    """
    curve = attr.ib()

    def __str__(self):
        return repr(self)


@attr.s(auto_exc=True)
class ProvisioningCheckFailed(Exception):
    """
    A local check found that a challenge response is not being served as
    expected.
    """
    url = attr.ib()
    message = attr.ib()

    def __str__(self):
        return repr(self)


__all__ = [
    'TransportError', 'ProtocolError', 'ValidationError', 'IntegrityError',
    'IncompleteResponse', 'UnsupportedChallenge', 'UnsupportedKeyType',
    'UnsupportedCurve', 'ProvisioningCheckFailed']
