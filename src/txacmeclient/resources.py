"""
Client-side view of the ACME resources: registrations, authorizations and
certificates.

All resources are immutable.  Operations that update a resource, such as
refreshing an authorization, return a new instance.
"""
import re
from datetime import datetime

import attr
import pem
from cryptography import x509
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization
from josepy.errors import DeserializationError
from josepy.json_util import decode_b64jose, encode_b64jose
from josepy.jwk import JWK

from txacmeclient.challenges import Challenge
from txacmeclient.errors import ProtocolError, UnsupportedChallenge
from txacmeclient.messages import AuthorizationBody, IDENTIFIER_DNS


STATUS_PENDING = u'pending'
STATUS_PROCESSING = u'processing'
STATUS_VALID = u'valid'
STATUS_INVALID = u'invalid'
STATUS_REVOKED = u'revoked'
STATUS_UNKNOWN = u'unknown'

_STATUSES = frozenset([
    STATUS_PENDING, STATUS_PROCESSING, STATUS_VALID, STATUS_INVALID,
    STATUS_REVOKED])

_RFC3339 = re.compile(
    u'\\A(?P<base>\\d{4}-\\d{2}-\\d{2}[Tt ]\\d{2}:\\d{2}:\\d{2})'
    u'(?:\\.(?P<fraction>\\d+))?'
    u'(?P<offset>[Zz]|[+-]\\d{2}:\\d{2})\\Z')


def normalize_status(value):
    """
    Map an authorization status from the wire to one of the known statuses.

    A missing status means ``pending``; anything unrecognized is
    ``unknown``.
    """
    if not value:
        return STATUS_PENDING
    if value in _STATUSES:
        return value
    return STATUS_UNKNOWN


def parse_timestamp(value):
    """
    Parse an RFC 3339 timestamp into an aware `~datetime.datetime`.

    Fractions of a second beyond microseconds are dropped.

    :raises ValueError: If ``value`` is not an RFC 3339 timestamp.
    """
    match = _RFC3339.match(value)
    if match is None:
        raise ValueError('Not an RFC 3339 timestamp: {!r}'.format(value))
    text = match.group('base').replace(u' ', u'T')
    if match.group('fraction'):
        text += u'.' + match.group('fraction')[:6].ljust(6, u'0')
    offset = match.group('offset')
    if offset in (u'Z', u'z'):
        offset = u'+00:00'
    return datetime.fromisoformat(text + offset)


def _combinations(value):
    try:
        return tuple(
            tuple(index for index in combination)
            for combination in value)
    except TypeError:
        raise ProtocolError(
            'Invalid authorization combinations: {!r}'.format(value))


@attr.s(frozen=True)
class Registration(object):
    """
    An account registration.

    :ivar str location: The URL of the registration resource.
    :ivar str authorizations_link: Where to request new authorizations (the
        ``next`` link).
    :ivar str terms_of_service: The ``terms-of-service`` link, if any.
    :ivar key: The account public key echoed by the server, a
        `~josepy.jwk.JWK`.
    :ivar contact: The contact URIs.
    :ivar str agreement: The terms of service agreed to, if any.
    :ivar str recovery_token: Only kept in memory; never part of `to_json`.
    """
    location = attr.ib()
    authorizations_link = attr.ib()
    terms_of_service = attr.ib(default=None)
    key = attr.ib(default=None)
    contact = attr.ib(default=(), converter=tuple)
    agreement = attr.ib(default=None)
    recovery_token = attr.ib(default=None, repr=False)

    def inherit_links(self, previous):
        """
        Fill in the links this registration lacks from a previous view of
        it.  Links are never cleared.
        """
        return attr.evolve(
            self,
            location=self.location or previous.location,
            authorizations_link=(
                self.authorizations_link or previous.authorizations_link),
            terms_of_service=(
                self.terms_of_service or previous.terms_of_service))

    def to_json(self):
        jobj = {}
        for name, value in [(u'meta-location', self.location),
                            (u'link-auth', self.authorizations_link),
                            (u'link-tos', self.terms_of_service),
                            (u'agreement', self.agreement)]:
            if value:
                jobj[name] = value
        if self.key is not None:
            jobj[u'key'] = self.key.to_json()
        if self.contact:
            jobj[u'contact'] = list(self.contact)
        return jobj

    @classmethod
    def from_json(cls, jobj):
        key = jobj.get(u'key')
        return cls(
            location=jobj.get(u'meta-location'),
            authorizations_link=jobj.get(u'link-auth'),
            terms_of_service=jobj.get(u'link-tos'),
            key=None if key is None else JWK.from_json(key),
            contact=jobj.get(u'contact', ()),
            agreement=jobj.get(u'agreement'))


@attr.s(frozen=True)
class Authorization(object):
    """
    An authorization for a DNS name.

    :ivar str location: The URL of the authorization resource.
    :ivar str certificate_link: Where to request certificates (the ``next``
        link).
    :ivar str domain: The authorized DNS name.
    :ivar str status: One of the ``STATUS_*`` constants.
    :ivar challenges: The `~txacmeclient.challenges.Challenge`\\s, in server
        order.
    :ivar combinations: Index tuples into ``challenges``; completing all
        challenges of one combination satisfies the authorization.
    :ivar expires: The expiry `~datetime.datetime`, only meaningful when the
        status is ``valid``.
    """
    location = attr.ib()
    certificate_link = attr.ib()
    domain = attr.ib()
    status = attr.ib(default=STATUS_PENDING)
    challenges = attr.ib(default=(), converter=tuple)
    combinations = attr.ib(default=(), converter=_combinations)
    expires = attr.ib(default=None)

    @classmethod
    def from_body(cls, body, location, certificate_link, previous=None):
        """
        Build an authorization from a decoded server response.

        When ``previous`` is given, each challenge whose URI it already knows
        is merged into the known challenge, so client-entered fields
        survive.  Other challenges start out fresh.

        :param ~txacmeclient.messages.AuthorizationBody body: The response.
        :param str location: The authorization URL.
        :param str certificate_link: The ``next`` link.
        :param Authorization previous: The authorization as known before.

        :raises txacmeclient.errors.ProtocolError: If the identifier is not a
            DNS name or the body is malformed.
        :raises txacmeclient.errors.ValidationError: If a challenge has
            invalid fields.
        """
        if body.identifier.typ != IDENTIFIER_DNS:
            raise ProtocolError(
                'Unknown identifier type {!r}, expected {!r}'.format(
                    body.identifier.typ, IDENTIFIER_DNS), url=location)
        known = {}
        if previous is not None:
            known = {
                challenge.uri: challenge
                for challenge in previous.challenges
                if challenge.uri}
        challenges = []
        for jobj in body.challenges:
            uri = jobj.get(u'uri') if isinstance(jobj, dict) else None
            if isinstance(uri, str) and uri in known:
                challenges.append(known[uri].merge(jobj))
            else:
                challenges.append(Challenge.from_json(jobj))
        expires = None
        if body.expires:
            try:
                expires = parse_timestamp(body.expires)
            except (TypeError, ValueError):
                raise ProtocolError(
                    'Invalid authorization expiry: {!r}'.format(body.expires),
                    url=location)
        return cls(
            location=location,
            certificate_link=certificate_link,
            domain=body.identifier.value,
            status=normalize_status(body.status),
            challenges=challenges,
            combinations=body.combinations,
            expires=expires)

    def refreshed(self, body, certificate_link):
        """
        The authorization after a refresh returned ``body``.

        ..  seealso:: `from_body`
        """
        return self.from_body(
            body, self.location, certificate_link, previous=self)

    def respond_to(self, index):
        """
        Get the challenge at ``index`` for responding to it.

        :raises IndexError: If there is no such challenge.
        :raises txacmeclient.errors.UnsupportedChallenge: If the challenge
            type cannot be responded to.

        :rtype: `~txacmeclient.challenges.Challenge`
        """
        challenge = self.challenges[index]
        if not challenge.can_respond:
            raise UnsupportedChallenge(challenge.typ)
        return challenge

    def replace_challenge(self, challenge):
        """
        Install an updated challenge in place of the one with the same URI.

        :raises KeyError: If no challenge has that URI.
        """
        challenges = list(self.challenges)
        for index, existing in enumerate(challenges):
            if existing.uri and existing.uri == challenge.uri:
                challenges[index] = challenge
                return attr.evolve(self, challenges=challenges)
        raise KeyError(challenge.uri)

    def to_json(self):
        jobj = {
            u'identifier': {u'type': IDENTIFIER_DNS, u'value': self.domain},
            u'status': self.status,
            u'challenges': [c.to_json() for c in self.challenges],
            }
        if self.combinations:
            jobj[u'combinations'] = [list(c) for c in self.combinations]
        if self.expires is not None:
            jobj[u'expires'] = self.expires.isoformat()
        if self.location:
            jobj[u'meta-location'] = self.location
        if self.certificate_link:
            jobj[u'meta-cert-location'] = self.certificate_link
        return jobj

    @classmethod
    def from_json(cls, jobj):
        try:
            body = AuthorizationBody.from_json(jobj)
        except DeserializationError as error:
            raise ProtocolError(
                'Invalid authorization: {}'.format(error),
                url=jobj.get(u'meta-location'))
        return cls.from_body(
            body,
            jobj.get(u'meta-location'),
            jobj.get(u'meta-cert-location'))


@attr.s(frozen=True)
class Certificate(object):
    """
    An issued certificate.

    :ivar bytes der: The DER-encoded certificate.
    :ivar str location: The URL of the certificate resource.
    :ivar str issuer_link: The ``up`` link to the issuer certificate, if any.
    """
    der = attr.ib(repr=False)
    location = attr.ib()
    issuer_link = attr.ib(default=None)

    def certificate(self):
        """
        Decode the certificate.

        :rtype: `cryptography.x509.Certificate`
        """
        return x509.load_der_x509_certificate(self.der, default_backend())

    def as_pem(self):
        """
        The certificate as a PEM object.

        :rtype: `pem.Certificate`
        """
        return pem.Certificate(
            self.certificate().public_bytes(serialization.Encoding.PEM))

    def to_json(self):
        jobj = {
            u'certificate': encode_b64jose(self.der),
            u'meta-location': self.location,
            }
        if self.issuer_link:
            jobj[u'link-issuer'] = self.issuer_link
        return jobj

    @classmethod
    def from_json(cls, jobj):
        return cls(
            der=decode_b64jose(jobj[u'certificate']),
            location=jobj[u'meta-location'],
            issuer_link=jobj.get(u'link-issuer'))


__all__ = [
    'STATUS_PENDING', 'STATUS_PROCESSING', 'STATUS_VALID', 'STATUS_INVALID',
    'STATUS_REVOKED', 'STATUS_UNKNOWN', 'normalize_status', 'parse_timestamp',
    'Registration', 'Authorization', 'Certificate']
