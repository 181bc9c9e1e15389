"""
Implementations of ACME challenge types.

A `Challenge` carries the fields common to every challenge and delegates the
rest to its data: `DVSNI`, `SimpleHTTPS` or, for anything else,
`OpaqueChallenge`.  Only the first two can be responded to; that capability
is advertised through `~txacmeclient.interfaces.IRespondingChallenge`.
"""
import os
import re

import attr
import pem
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, serialization
from eliot.twisted import DeferredContext
from josepy.errors import DeserializationError
from josepy.json_util import decode_b64jose, encode_b64jose
from twisted.internet import defer
from twisted.web import http
from zope.interface import implementer

from txacmeclient.errors import (
    IncompleteResponse, ProtocolError, ProvisioningCheckFailed,
    ValidationError)
from txacmeclient.interfaces import IChallengeData, IRespondingChallenge
from txacmeclient.logging import LOG_ACME_VERIFY_CHALLENGE
from txacmeclient.messages import DVSNIResponse, SimpleHTTPSResponse
from txacmeclient.util import generate_dvsni_cert, wrap_transport_failure


#: Fields shared by all challenges; never part of the type-specific data.
RESERVED_FIELDS = frozenset([u'type', u'status', u'validated', u'uri'])

DVSNI_SUFFIX = u'.acme.invalid'

WELL_KNOWN_URL = u'https://{domain}/.well-known/acme-challenge/{path}'

_NONCE = re.compile(u'\\A[0-9a-f]{32}\\Z')

_CHALLENGE_TYPES = {}


def _register(cls):
    _CHALLENGE_TYPES[cls.typ] = cls
    return cls


def _decode_b64(name, value):
    if not isinstance(value, str):
        raise ValidationError(
            'DVSNI {} is not a string: {!r}'.format(name, value))
    try:
        return decode_b64jose(value)
    except DeserializationError as error:
        raise ValidationError(
            'DVSNI {} is not valid base64url: {}'.format(name, error))


@_register
@implementer(IRespondingChallenge)
@attr.s(frozen=True)
class DVSNI(object):
    """
    ``dvsni`` challenge: present a self-signed certificate with names derived
    from the challenge.

    :ivar bytes r: Server-issued random value, 32 bytes.
    :ivar bytes s: Client-chosen random value, empty or 32 bytes.
    :ivar str nonce: Server-issued nonce, 32 lowercase hex characters.
    """
    typ = u'dvsni'

    r = attr.ib(default=b'')
    s = attr.ib(default=b'', repr=False)
    nonce = attr.ib(default=u'')

    def merge(self, jobj):
        r = _decode_b64(u'R', jobj.get(u'r', u''))
        s = _decode_b64(u'S', jobj.get(u's', u''))
        nonce = jobj.get(u'nonce', u'')
        if len(r) != 32:
            raise ValidationError(
                'Invalid length of DVSNI R, expected 32, got {}'.format(
                    len(r)))
        if len(s) not in (0, 32):
            raise ValidationError(
                'Invalid length of DVSNI S, expected 0 or 32, got {}'.format(
                    len(s)))
        if not isinstance(nonce, str) or _NONCE.match(nonce) is None:
            raise ValidationError(
                'Invalid DVSNI nonce, expected 32 lowercase hex characters, '
                'got {!r}'.format(nonce))
        return attr.evolve(self, r=r, s=s or self.s, nonce=nonce)

    def to_partial_json(self):
        jobj = {u'r': encode_b64jose(self.r), u'nonce': self.nonce}
        if self.s:
            jobj[u's'] = encode_b64jose(self.s)
        return jobj

    def dns_names(self, domain):
        """
        The subjectAltNames the provisioning certificate must carry.

        :param str domain: The domain being authorized.

        :rtype: ``List[str]``
        """
        digest = hashes.Hash(hashes.SHA256(), default_backend())
        digest.update(self.r)
        digest.update(self.s)
        return [
            domain,
            self.nonce + DVSNI_SUFFIX,
            digest.finalize().hex() + DVSNI_SUFFIX,
            ]

    def reset_response(self):
        return attr.evolve(self, s=b'')

    def initialize_response(self, authorization):
        if len(self.s) == 32:
            return self
        return attr.evolve(self, s=os.urandom(32))

    def describe_provisioning_action(self, authorization):
        names = self.dns_names(authorization.domain)
        return (
            u'Serve a self-signed certificate with the subjectAltNames\n'
            u'{}\n'
            u'on port 443 of {} to TLS clients requesting the SNI name {}'
            .format(u'\n'.join(names), authorization.domain, names[1]))

    def verify(self, authorization, http_client=None):
        return defer.succeed(None)

    def response_payload(self):
        if len(self.s) != 32:
            raise IncompleteResponse(self.typ, u's')
        return DVSNIResponse(s=self.s)

    def provisioning_certificate(self, authorization, key=None):
        """
        Generate the certificate the TLS listener has to present.

        :param ~txacmeclient.resources.Authorization authorization: The
            authorization the challenge belongs to.
        :param key: The Cryptography private key for the certificate, or
            ``None`` to generate one.

        :raises txacmeclient.errors.IncompleteResponse: If ``s`` is not set.

        :return: A tuple of the certificate and its private key.
        """
        if len(self.s) != 32:
            raise IncompleteResponse(self.typ, u's')
        return generate_dvsni_cert(self.dns_names(authorization.domain), key)

    def provisioning_pem(self, authorization, key=None):
        """
        Like `provisioning_certificate`, as :ref:`pem-objects`.
        """
        cert, key = self.provisioning_certificate(authorization, key)
        return [
            pem.Certificate(cert.public_bytes(serialization.Encoding.PEM)),
            pem.Key(
                key.private_bytes(
                    encoding=serialization.Encoding.PEM,
                    format=serialization.PrivateFormat.PKCS8,
                    encryption_algorithm=serialization.NoEncryption())),
            ]


@_register
@implementer(IRespondingChallenge)
@attr.s(frozen=True)
class SimpleHTTPS(object):
    """
    ``simpleHttps`` challenge: serve the token at a well-known URL.

    :ivar str token: Server-issued token.
    :ivar str path: Client-chosen path below ``/.well-known/acme-challenge/``.
    """
    typ = u'simpleHttps'

    token = attr.ib(default=u'')
    path = attr.ib(default=u'')

    def merge(self, jobj):
        token = jobj.get(u'token', u'')
        path = jobj.get(u'path', u'')
        if not isinstance(token, str) or not isinstance(path, str):
            raise ValidationError(
                'Invalid simpleHttps token or path: {!r}, {!r}'.format(
                    token, path))
        return attr.evolve(self, token=token, path=path or self.path)

    def to_partial_json(self):
        jobj = {}
        if self.token:
            jobj[u'token'] = self.token
        if self.path:
            jobj[u'path'] = self.path
        return jobj

    def well_known_url(self, authorization):
        """
        The URL the token has to be served at.
        """
        return WELL_KNOWN_URL.format(
            domain=authorization.domain, path=self.path)

    def provisioning_document(self):
        """
        The exact document to serve.

        :rtype: bytes
        """
        return self.token.encode('utf-8')

    def reset_response(self):
        return attr.evolve(self, path=u'')

    def initialize_response(self, authorization, path=None):
        """
        Choose the path to serve the token at.

        :param str path: A path picked by the user; when ``None`` an already
            chosen path is kept, or ``<domain>.txt`` is used.
        """
        if path:
            return attr.evolve(self, path=path)
        if self.path:
            return self
        return attr.evolve(self, path=authorization.domain + u'.txt')

    def describe_provisioning_action(self, authorization):
        return (
            u'Make the quoted token on the next line available (without '
            u'quotes) as {}\n{!r}'.format(
                self.well_known_url(authorization), self.token))

    def verify(self, authorization, http_client=None):
        if http_client is None:
            return defer.succeed(None)
        url = self.well_known_url(authorization)
        action = LOG_ACME_VERIFY_CHALLENGE(url=url)
        with action.context():
            return (
                DeferredContext(http_client.get(url))
                .addErrback(wrap_transport_failure, url)
                .addCallback(self._check_document, url)
                .addActionFinish())

    @defer.inlineCallbacks
    def _check_document(self, response, url):
        body = yield response.content()
        if response.code != http.OK:
            raise ProvisioningCheckFailed(
                url, 'GET failed with status {}'.format(response.code))
        if body != self.provisioning_document():
            raise ProvisioningCheckFailed(
                url, 'Expected the token {!r}, got {!r}'.format(
                    self.token, body))
        content_type = response.headers.getRawHeaders(
            b'content-type', [b''])[0]
        content_type = content_type.split(b';')[0].strip()
        if content_type and content_type != b'text/plain':
            raise ProvisioningCheckFailed(
                url, 'Wrong Content-Type {!r}, expected none or '
                'text/plain'.format(content_type))

    def response_payload(self):
        if not self.path:
            raise IncompleteResponse(self.typ, u'path')
        return SimpleHTTPSResponse(path=self.path)


@implementer(IChallengeData)
@attr.s(frozen=True)
class OpaqueChallenge(object):
    """
    Data of a challenge type that is not understood, or of a challenge
    without a URI.  All fields are kept verbatim.
    """
    typ = None

    fields = attr.ib(default=attr.Factory(dict), converter=dict)

    def merge(self, jobj):
        return OpaqueChallenge({
            key: value for key, value in jobj.items()
            if key not in RESERVED_FIELDS})

    def to_partial_json(self):
        return dict(self.fields)


@attr.s(frozen=True)
class Challenge(object):
    """
    A challenge of an authorization.

    :ivar str typ: The challenge type; never changes.
    :ivar str uri: The challenge URI, identifying the challenge across
        refreshes.
    :ivar data: The `~txacmeclient.interfaces.IChallengeData` provider
        holding the type-specific fields.
    :ivar str status: The challenge status, as sent by the server.
    :ivar str validated: When the challenge was validated, if it was.
    """
    typ = attr.ib()
    uri = attr.ib()
    data = attr.ib()
    status = attr.ib(default=u'')
    validated = attr.ib(default=u'')

    @classmethod
    def from_json(cls, jobj):
        """
        Decode a challenge seen for the first time.

        Challenges without a URI cannot be responded to and are kept
        verbatim, whatever their type.
        """
        if not isinstance(jobj, dict):
            raise ProtocolError(
                'Challenge is not a JSON object: {!r}'.format(jobj))
        typ = jobj.get(u'type', u'')
        uri = jobj.get(u'uri', u'')
        data_type = OpaqueChallenge
        if uri:
            data_type = _CHALLENGE_TYPES.get(typ, OpaqueChallenge)
        return cls(
            typ=typ,
            uri=uri,
            data=data_type().merge(jobj),
            status=jobj.get(u'status', u''),
            validated=jobj.get(u'validated', u''))

    def merge(self, jobj):
        """
        Merge a newer server view of this challenge.

        :raises txacmeclient.errors.ProtocolError: If the type or URI differ.
        :raises txacmeclient.errors.ValidationError: If the type-specific
            fields are invalid.

        :return: The merged challenge.
        """
        if not isinstance(jobj, dict):
            raise ProtocolError(
                'Challenge is not a JSON object: {!r}'.format(jobj))
        typ = jobj.get(u'type', u'')
        if typ != self.typ:
            raise ProtocolError(
                'Updated challenge has type {!r}, expected {!r}'.format(
                    typ, self.typ), url=self.uri)
        uri = jobj.get(u'uri', u'')
        if uri and uri != self.uri:
            raise ProtocolError(
                'Updated challenge has URI {!r}, expected {!r}'.format(
                    uri, self.uri), url=self.uri)
        return attr.evolve(
            self,
            data=self.data.merge(jobj),
            status=jobj.get(u'status', u''),
            validated=jobj.get(u'validated', u''))

    def to_json(self):
        jobj = self.data.to_partial_json()
        for key, value in [(u'type', self.typ),
                           (u'status', self.status),
                           (u'validated', self.validated),
                           (u'uri', self.uri)]:
            if value:
                jobj[key] = value
        return jobj

    @property
    def can_respond(self):
        """
        Whether the client knows how to respond to this challenge.
        """
        return IRespondingChallenge.providedBy(self.data)

    def with_data(self, data):
        """
        Replace the type-specific data, e.g. after initializing a response.
        """
        return attr.evolve(self, data=data)


__all__ = [
    'RESERVED_FIELDS', 'DVSNI', 'SimpleHTTPS', 'OpaqueChallenge', 'Challenge']
