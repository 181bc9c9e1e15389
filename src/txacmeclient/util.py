"""
Utility functions that may prove useful when writing an ACME client.
"""
import uuid
from datetime import datetime, timedelta, timezone
from functools import wraps

from josepy.errors import DeserializationError
from josepy.json_util import encode_b64jose, decode_b64jose

from cryptography import x509
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID
from treq.client import HTTPClient
from twisted.internet.defer import maybeDeferred
from twisted.internet.error import (
    ConnectError, ConnectingCancelledError, ConnectionLost, DNSLookupError,
    TimeoutError)
from twisted.internet.ssl import CertificateOptions
from twisted.python.url import URL
from twisted.web.client import Agent, ResponseFailed
from twisted.web.iweb import IPolicyForHTTPS
from zope.interface import implementer

from txacmeclient.errors import (
    TransportError, UnsupportedCurve, UnsupportedKeyType)


TRANSPORT_ERRORS = (
    ConnectError, ConnectingCancelledError, ConnectionLost, DNSLookupError,
    TimeoutError, ResponseFailed)


#: JOSE curve names and the Cryptography curves they stand for.
CURVES = {
    u'P-256': ec.SECP256R1,
    u'P-384': ec.SECP384R1,
    u'P-521': ec.SECP521R1,
    }


def generate_private_key(key_type, curve=u'P-256', rsa_bits=2048):
    """
    Generate a random private key using sensible parameters.

    :param str key_type: The type of key to generate. One of: ``rsa``,
        ``ec``.
    :param str curve: The curve for ``ec`` keys; one of the `CURVES`.
    :param int rsa_bits: The modulus size for ``rsa`` keys.

    :raises txacmeclient.errors.UnsupportedKeyType: for any other key type.
    :raises txacmeclient.errors.UnsupportedCurve: for an unknown curve.
    """
    if key_type == u'rsa':
        return rsa.generate_private_key(
            public_exponent=65537, key_size=rsa_bits,
            backend=default_backend())
    if key_type == u'ec':
        try:
            curve_type = CURVES[curve]
        except KeyError:
            raise UnsupportedCurve(curve)
        return ec.generate_private_key(curve_type(), default_backend())
    raise UnsupportedKeyType(key_type)


def tap(f):
    """
    "Tap" a Deferred callback chain with a function whose return value is
    ignored.
    """
    @wraps(f)
    def _cb(res, *a, **kw):
        d = maybeDeferred(f, res, *a, **kw)
        d.addCallback(lambda ignored: res)
        return d
    return _cb


def wrap_transport_failure(failure, url):
    """
    Errback turning network failures into `~txacmeclient.errors.TransportError`.

    Any other failure is passed through unchanged.
    """
    failure.trap(*TRANSPORT_ERRORS)
    raise TransportError(url, failure.value)


def encode_csr(csr):
    """
    Encode CSR as JOSE Base-64 DER.

    :param cryptography.x509.CertificateSigningRequest csr: The CSR.

    :rtype: str
    """
    return encode_b64jose(csr.public_bytes(serialization.Encoding.DER))


def decode_csr(b64der):
    """
    Decode JOSE Base-64 DER-encoded CSR.

    :param str b64der: The encoded CSR.

    :rtype: `cryptography.x509.CertificateSigningRequest`
    :return: The decoded CSR.
    """
    try:
        return x509.load_der_x509_csr(
            decode_b64jose(b64der), default_backend())
    except ValueError as error:
        raise DeserializationError(error)


def _common_name(names):
    if len(names[0]) > 64:
        return u'san.too.long.invalid'
    return names[0]


def csr_for_names(names, key):
    """
    Generate a certificate signing request for the given names and private key.

    ..  seealso:: `txacmeclient.client.Client.request_certificate`

    ..  seealso:: `generate_private_key`

    :param ``List[str]``: One or more names (subjectAltName) for which to
        request a certificate.
    :param key: A Cryptography private key object.

    :rtype: `cryptography.x509.CertificateSigningRequest`
    :return: The certificate request message.
    """
    if len(names) == 0:
        raise ValueError('Must have at least one name')
    return (
        x509.CertificateSigningRequestBuilder()
        .subject_name(x509.Name([
            x509.NameAttribute(NameOID.COMMON_NAME, _common_name(names))]))
        .add_extension(
            x509.SubjectAlternativeName(list(map(x509.DNSName, names))),
            critical=False)
        .sign(key, hashes.SHA256(), default_backend()))


def generate_dvsni_cert(names, key=None):
    """
    Generate a self-signed certificate for responding to a ``dvsni``
    challenge.

    :param ``List[str]`` names: The subjectAltNames; the first one is also
        used as the common name.
    :param key: The Cryptography private key to sign with, or ``None`` to
        generate a new 2048-bit RSA key.

    :rtype: ``Tuple[`~cryptography.x509.Certificate`, PrivateKey]``
    :return: A tuple of the certificate and its private key.
    """
    if key is None:
        key = generate_private_key(u'rsa')
    name = x509.Name([
        x509.NameAttribute(NameOID.COMMON_NAME, _common_name(names))])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .not_valid_before(now - timedelta(seconds=3600))
        .not_valid_after(now + timedelta(days=7))
        .serial_number(int(uuid.uuid4()))
        .public_key(key.public_key())
        .add_extension(
            x509.SubjectAlternativeName(list(map(x509.DNSName, names))),
            critical=False)
        .sign(
            private_key=key,
            algorithm=hashes.SHA256(),
            backend=default_backend())
        )
    return cert, key


def check_directory_url_type(url):
    """
    Check that ``url`` is a ``twisted.python.url.URL`` instance, raising
    `TypeError` if it isn't.
    """
    if not isinstance(url, URL):
        raise TypeError(
            'ACME directory URL should be a twisted.python.url.URL, '
            'got {!r} instead'.format(url))


@implementer(IPolicyForHTTPS)
class InsecureTLSPolicy(object):
    """
    A TLS policy that does not verify server certificates at all.

    Only meant for locally checking a challenge response before the server
    is asked to validate it; the response is often served with a
    certificate that does not (yet) verify.
    """
    def creatorForNetloc(self, hostname, port):  # noqa
        return CertificateOptions(verify=False)


def insecure_http_client(reactor):
    """
    Construct an HTTP client that skips TLS verification.

    ..  seealso:: `txacmeclient.challenges.SimpleHTTPS.verify`

    :param reactor: The Twisted reactor to use.

    :rtype: ``treq.client.HTTPClient``
    """
    return HTTPClient(
        agent=Agent(reactor, contextFactory=InsecureTLSPolicy()))


__all__ = [
    'CURVES', 'generate_private_key', 'generate_dvsni_cert', 'encode_csr',
    'decode_csr', 'csr_for_names', 'check_directory_url_type', 'tap',
    'wrap_transport_failure', 'InsecureTLSPolicy', 'insecure_http_client']
