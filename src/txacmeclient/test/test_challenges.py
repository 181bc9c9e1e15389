"""
Tests for `txacmeclient.challenges`.
"""
import hashlib

import pem
from hypothesis import given
from hypothesis import strategies as s
from josepy.json_util import decode_b64jose, encode_b64jose
from testtools import TestCase
from testtools.matchers import (
    Equals, HasLength, IsInstance, MatchesAll, MatchesListwise,
    MatchesStructure, Not, StartsWith)
from testtools.twistedsupport import failed, succeeded
from treq.testing import StubTreq
from twisted.internet.error import DNSLookupError
from twisted.web.resource import Resource
from twisted.web.static import Data
from zope.interface.verify import verifyObject

from txacmeclient.challenges import (
    Challenge, DVSNI, OpaqueChallenge, SimpleHTTPS)
from txacmeclient.errors import (
    IncompleteResponse, ProtocolError, ProvisioningCheckFailed,
    TransportError, ValidationError)
from txacmeclient.interfaces import IChallengeData, IRespondingChallenge
from txacmeclient.resources import Authorization
from txacmeclient.test.doubles import FailingHTTPClient
from txacmeclient.test.matchers import HasSubjectAltNames
from txacmeclient.test.strategies import (
    dns_names, dvsni_json, opaque_json, simple_https_json)


R = b'\x01' * 32
S = b'\x02' * 32
NONCE = u'0123456789abcdef0123456789abcdef'


def failed_with(matcher):
    return failed(MatchesStructure(value=matcher))


def authorization(domain=u'example.com'):
    return Authorization(
        location=u'http://acme.example/authz/1',
        certificate_link=u'http://acme.example/new-cert',
        domain=domain)


def dvsni_jobj(r=R, s=b'', nonce=NONCE):
    jobj = {
        u'type': u'dvsni',
        u'uri': u'http://acme.example/authz/1/0',
        u'r': encode_b64jose(r),
        u'nonce': nonce,
        }
    if s:
        jobj[u's'] = encode_b64jose(s)
    return jobj


class InterfaceTests(TestCase):
    """
    The challenge data types provide the interfaces they declare.
    """
    def test_responding(self):
        for data in [DVSNI(), SimpleHTTPS()]:
            self.assertTrue(verifyObject(IRespondingChallenge, data))

    def test_opaque(self):
        self.assertTrue(verifyObject(IChallengeData, OpaqueChallenge()))
        self.assertFalse(IRespondingChallenge.providedBy(OpaqueChallenge()))


class DVSNIMergeTests(TestCase):
    """
    `~txacmeclient.challenges.DVSNI.merge` validates the server fields.
    """
    def test_merge(self):
        """
        Valid fields are decoded.
        """
        data = DVSNI().merge(dvsni_jobj(s=S))
        self.assertThat(
            data,
            MatchesStructure.byEquality(r=R, s=S, nonce=NONCE))

    def test_empty_s_accepted(self):
        """
        ``s`` may be absent or empty, i.e. 0 bytes.
        """
        self.assertThat(DVSNI().merge(dvsni_jobj()).s, Equals(b''))
        jobj = dvsni_jobj()
        jobj[u's'] = u''
        self.assertThat(DVSNI().merge(jobj).s, Equals(b''))

    def test_keeps_client_s(self):
        """
        A server view without ``s`` does not clear the client's ``s``.
        """
        data = DVSNI(r=R, s=S, nonce=NONCE)
        self.assertThat(data.merge(dvsni_jobj()).s, Equals(S))

    def test_wrong_lengths(self):
        """
        ``r`` must be exactly 32 bytes and ``s`` 0 or 32 bytes.
        """
        for r, s_ in [(b'\x01' * 31, b''), (b'\x01' * 33, b''),
                      (b'', b''), (R, b'\x02' * 31), (R, b'\x02' * 33)]:
            self.assertRaises(
                ValidationError, DVSNI().merge, dvsni_jobj(r=r, s=s_))

    def test_bad_nonce(self):
        """
        The nonce must be exactly 32 lowercase hex characters.
        """
        for nonce in [NONCE[:-1], NONCE + u'0', NONCE.upper(),
                      u'g' * 32, u'', 42]:
            self.assertRaises(
                ValidationError, DVSNI().merge, dvsni_jobj(nonce=nonce))

    def test_bad_base64(self):
        jobj = dvsni_jobj()
        jobj[u'r'] = u'!!not base64!!'
        self.assertRaises(ValidationError, DVSNI().merge, jobj)

    def test_rejected_wholesale(self):
        """
        A failed merge leaves nothing half-applied.
        """
        data = DVSNI(r=R, s=S, nonce=NONCE)
        jobj = dvsni_jobj(r=b'\x03' * 32, nonce=u'x')
        self.assertRaises(ValidationError, data.merge, jobj)
        self.assertThat(data, Equals(DVSNI(r=R, s=S, nonce=NONCE)))


class DVSNIResponseTests(TestCase):
    """
    Responding to ``dvsni`` challenges.
    """
    def test_initialize(self):
        """
        ``initialize_response`` generates a 32 byte ``s`` once.
        """
        data = DVSNI().merge(dvsni_jobj())
        initialized = data.initialize_response(authorization())
        self.assertThat(initialized.s, HasLength(32))
        again = initialized.initialize_response(authorization())
        self.assertThat(again.s, Equals(initialized.s))
        self.assertThat(
            initialized.reset_response().s, Equals(b''))

    def test_payload_incomplete(self):
        """
        The payload needs ``s``.
        """
        e = self.assertRaises(
            IncompleteResponse, DVSNI().merge(dvsni_jobj()).response_payload)
        self.assertThat(e.missing, Equals(u's'))

    def test_payload(self):
        """
        The payload is the type and ``s``.
        """
        payload = DVSNI(r=R, s=S, nonce=NONCE).response_payload()
        self.assertThat(
            payload.to_json(),
            Equals({u'type': u'dvsni', u's': encode_b64jose(S)}))

    def test_dns_names(self):
        """
        The three subjectAltNames are the domain, the nonce and the SHA-256 of
        ``r`` and ``s``.
        """
        data = DVSNI(r=R, s=S, nonce=NONCE)
        digest = hashlib.sha256(R + S).hexdigest()
        self.assertThat(
            data.dns_names(u'example.com'),
            Equals([
                u'example.com',
                NONCE + u'.acme.invalid',
                digest + u'.acme.invalid',
                ]))

    @given(s.binary(min_size=32, max_size=32),
           s.binary(min_size=32, max_size=32),
           s.integers(min_value=0, max_value=63),
           s.integers(min_value=1, max_value=255))
    def test_dns_names_depend_on_every_byte(self, r, s_, position, flip):
        """
        Changing any single byte of ``r`` or ``s`` changes the third name and
        nothing else.
        """
        data = DVSNI(r=r, s=s_, nonce=NONCE)
        raw = bytearray(r + s_)
        raw[position] ^= flip
        changed = DVSNI(r=bytes(raw[:32]), s=bytes(raw[32:]), nonce=NONCE)
        before = data.dns_names(u'example.com')
        after = changed.dns_names(u'example.com')
        self.assertThat(after[:2], Equals(before[:2]))
        self.assertThat(after[2], Not(Equals(before[2])))
        self.assertThat(data.dns_names(u'example.com'), Equals(before))

    def test_provisioning_certificate(self):
        """
        The provisioning certificate carries exactly the three names.
        """
        data = DVSNI(r=R, s=S, nonce=NONCE)
        authz = authorization()
        cert, key = data.provisioning_certificate(authz)
        self.assertThat(
            cert, HasSubjectAltNames(data.dns_names(u'example.com')))
        self.assertThat(
            cert.public_key().public_numbers(),
            Equals(key.public_key().public_numbers()))

    def test_provisioning_incomplete(self):
        self.assertRaises(
            IncompleteResponse,
            DVSNI(r=R, nonce=NONCE).provisioning_certificate, authorization())

    def test_provisioning_pem(self):
        """
        The PEM objects are the certificate and its key.
        """
        objects = DVSNI(r=R, s=S, nonce=NONCE).provisioning_pem(
            authorization())
        self.assertThat(
            objects,
            MatchesListwise([IsInstance(pem.Certificate), IsInstance(pem.Key)]))

    def test_describe(self):
        description = DVSNI(r=R, s=S, nonce=NONCE).describe_provisioning_action(
            authorization())
        self.assertIn(NONCE + u'.acme.invalid', description)

    def test_verify(self):
        """
        There is no local check for ``dvsni``; verification always succeeds.
        """
        self.assertThat(
            DVSNI(r=R, s=S, nonce=NONCE).verify(authorization()),
            succeeded(Equals(None)))


class SimpleHTTPSTests(TestCase):
    """
    ``simpleHttps`` challenges.
    """
    def test_merge(self):
        """
        The token is always adopted, the path only when not empty.
        """
        data = SimpleHTTPS(token=u'old', path=u'mine.txt')
        merged = data.merge({u'type': u'simpleHttps', u'token': u'new'})
        self.assertThat(
            merged, MatchesStructure.byEquality(token=u'new', path=u'mine.txt'))
        merged = data.merge({u'token': u'new', u'path': u'theirs.txt'})
        self.assertThat(merged.path, Equals(u'theirs.txt'))

    def test_merge_invalid(self):
        self.assertRaises(
            ValidationError, SimpleHTTPS().merge, {u'token': 42})

    def test_payload_incomplete(self):
        """
        Building the payload before the path is set fails.
        """
        data = SimpleHTTPS().merge({u'token': u'tok'})
        e = self.assertRaises(IncompleteResponse, data.response_payload)
        self.assertThat(
            e, MatchesStructure.byEquality(
                challenge_type=u'simpleHttps', missing=u'path'))

    def test_initialize(self):
        """
        The default path is derived from the domain; a chosen path wins and is
        kept afterwards.
        """
        data = SimpleHTTPS(token=u'tok')
        self.assertThat(
            data.initialize_response(authorization()).path,
            Equals(u'example.com.txt'))
        chosen = data.initialize_response(authorization(), path=u'x')
        self.assertThat(chosen.path, Equals(u'x'))
        self.assertThat(
            chosen.initialize_response(authorization()).path, Equals(u'x'))
        self.assertThat(
            chosen.response_payload().to_json(),
            Equals({u'type': u'simpleHttps', u'path': u'x'}))
        self.assertThat(chosen.reset_response().path, Equals(u''))

    def test_provisioning(self):
        data = SimpleHTTPS(token=u'tok', path=u'p')
        self.assertThat(data.provisioning_document(), Equals(b'tok'))
        self.assertThat(
            data.well_known_url(authorization()),
            Equals(u'https://example.com/.well-known/acme-challenge/p'))
        self.assertThat(
            data.describe_provisioning_action(authorization()),
            StartsWith(u'Make the quoted token'))


def well_known_site(document, content_type=b'text/plain'):
    challenges = Resource()
    challenges.putChild(b'p', Data(document, content_type.decode('ascii')))
    well_known = Resource()
    well_known.putChild(b'acme-challenge', challenges)
    root = Resource()
    root.putChild(b'.well-known', well_known)
    return root


class SimpleHTTPSVerifyTests(TestCase):
    """
    `~txacmeclient.challenges.SimpleHTTPS.verify` optionally checks that the
    token is being served.
    """
    data = SimpleHTTPS(token=u'tok', path=u'p')

    def test_no_client(self):
        """
        Without an HTTP client, nothing is checked.
        """
        self.assertThat(
            self.data.verify(authorization()), succeeded(Equals(None)))

    def test_served(self):
        client = StubTreq(well_known_site(b'tok'))
        self.assertThat(
            self.data.verify(authorization(), client),
            succeeded(Equals(None)))

    def test_wrong_document(self):
        client = StubTreq(well_known_site(b'other'))
        self.assertThat(
            self.data.verify(authorization(), client),
            failed_with(IsInstance(ProvisioningCheckFailed)))

    def test_wrong_content_type(self):
        client = StubTreq(well_known_site(b'tok', b'text/html'))
        self.assertThat(
            self.data.verify(authorization(), client),
            failed_with(IsInstance(ProvisioningCheckFailed)))

    def test_not_found(self):
        client = StubTreq(Resource())
        self.assertThat(
            self.data.verify(authorization(), client),
            failed_with(MatchesAll(
                IsInstance(ProvisioningCheckFailed),
                MatchesStructure.byEquality(
                    url=u'https://example.com/.well-known/acme-challenge/p'))))

    def test_transport_error(self):
        self.assertThat(
            self.data.verify(authorization(), FailingHTTPClient()),
            failed_with(IsInstance(TransportError)))

    def test_unresolvable_domain(self):
        client = FailingHTTPClient(lambda: DNSLookupError(u'example.com'))
        self.assertThat(
            self.data.verify(authorization(), client),
            failed_with(IsInstance(TransportError)))


class ChallengeTests(TestCase):
    """
    `~txacmeclient.challenges.Challenge` dispatches on the challenge type.
    """
    def test_dispatch(self):
        """
        Known types with a URI get their own data; anything else is opaque.
        """
        uri = u'http://acme.example/c/1'
        for jobj, data_type in [
                ({u'type': u'dvsni', u'uri': uri, u'r': encode_b64jose(R),
                  u'nonce': NONCE}, DVSNI),
                ({u'type': u'simpleHttps', u'uri': uri, u'token': u't'},
                 SimpleHTTPS),
                ({u'type': u'dns', u'uri': uri, u'token': u't'},
                 OpaqueChallenge),
                ({u'type': u'simpleHttps', u'token': u't'},
                 OpaqueChallenge)]:
            challenge = Challenge.from_json(jobj)
            self.expectThat(challenge.data, IsInstance(data_type))
            self.expectThat(
                challenge.can_respond, Equals(data_type is not OpaqueChallenge))

    def test_opaque_keeps_unknown_fields(self):
        """
        Fields of unknown challenge types are kept and re-emitted verbatim.
        """
        jobj = {
            u'type': u'recoveryContact',
            u'uri': u'http://acme.example/c/2',
            u'status': u'pending',
            u'activationURL': u'https://example.com/activate',
            u'contact': [u'mailto:a@example.com'],
            }
        challenge = Challenge.from_json(jobj)
        self.assertThat(
            challenge.data.fields,
            Equals({
                u'activationURL': u'https://example.com/activate',
                u'contact': [u'mailto:a@example.com']}))
        self.assertThat(challenge.to_json(), Equals(jobj))

    @given(s.one_of(dvsni_json(), simple_https_json(), opaque_json()))
    def test_round_trip(self, jobj):
        """
        Decoding and re-encoding a challenge reproduces it, for every type.
        """
        self.assertThat(Challenge.from_json(jobj).to_json(), Equals(jobj))

    def test_merge_type_change(self):
        """
        A challenge never changes its type.
        """
        challenge = Challenge.from_json(dvsni_jobj())
        jobj = {u'type': u'simpleHttps', u'uri': challenge.uri,
                u'token': u't'}
        self.assertRaises(ProtocolError, challenge.merge, jobj)

    def test_merge_uri_change(self):
        challenge = Challenge.from_json(dvsni_jobj())
        jobj = dvsni_jobj()
        jobj[u'uri'] = u'http://acme.example/elsewhere'
        self.assertRaises(ProtocolError, challenge.merge, jobj)

    def test_merge_status(self):
        """
        Merging takes the status from the server and keeps ``s``.
        """
        challenge = Challenge.from_json(dvsni_jobj())
        challenge = challenge.with_data(
            challenge.data.initialize_response(authorization()))
        jobj = dvsni_jobj()
        jobj[u'status'] = u'valid'
        jobj[u'validated'] = u'2015-06-01T00:00:00Z'
        merged = challenge.merge(jobj)
        self.assertThat(
            merged,
            MatchesStructure.byEquality(
                status=u'valid', validated=u'2015-06-01T00:00:00Z'))
        self.assertThat(merged.data.s, Equals(challenge.data.s))

    def test_not_an_object(self):
        self.assertRaises(ProtocolError, Challenge.from_json, [u'dvsni'])

    @given(dns_names())
    def test_dvsni_payload_decodes(self, domain):
        """
        The ``s`` sent to the server is the ``s`` the names derive from.
        """
        challenge = Challenge.from_json(dvsni_jobj())
        data = challenge.data.initialize_response(authorization(domain))
        payload = data.response_payload().to_json()
        self.assertThat(decode_b64jose(payload[u's']), Equals(data.s))
        self.assertThat(
            data.dns_names(domain)[0], Equals(domain))


__all__ = [
    'InterfaceTests', 'DVSNIMergeTests', 'DVSNIResponseTests',
    'SimpleHTTPSTests', 'SimpleHTTPSVerifyTests', 'ChallengeTests']
