"""
Account signing keys.
"""
import attr
from josepy import jwa
from josepy.jwk import JWKEC, JWKRSA
from OpenSSL import crypto

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from txacmeclient.errors import UnsupportedCurve, UnsupportedKeyType
from txacmeclient.jws import JWS
from txacmeclient.util import generate_private_key


_EC_ALGORITHMS = {
    u'secp256r1': jwa.ES256,
    u'secp384r1': jwa.ES384,
    u'secp521r1': jwa.ES512,
    }

_RSA_ALGORITHM = jwa.PS512


def signature_algorithm(key):
    """
    Pick the JWS signature algorithm for a private key.

    :param key: A Cryptography private key.

    :raises txacmeclient.errors.UnsupportedKeyType: If ``key`` is neither an
        RSA nor an elliptic curve private key.
    :raises txacmeclient.errors.UnsupportedCurve: If the curve of an elliptic
        curve key has no algorithm.

    :rtype: `~josepy.jwa.JWASignature`
    """
    if isinstance(key, rsa.RSAPrivateKey):
        return _RSA_ALGORITHM
    if isinstance(key, ec.EllipticCurvePrivateKey):
        try:
            return _EC_ALGORITHMS[key.curve.name]
        except KeyError:
            raise UnsupportedCurve(key.curve.name)
    raise UnsupportedKeyType(type(key).__name__)


@attr.s(frozen=True, eq=False)
class SigningKey(object):
    """
    The private key of an account.

    :ivar key: The wrapped Cryptography private key.
    """
    key = attr.ib()

    def __attrs_post_init__(self):
        signature_algorithm(self.key)

    @classmethod
    def generate(cls, key_type=u'rsa', curve=u'P-256', rsa_bits=2048):
        """
        Generate a new signing key.

        ..  seealso:: `txacmeclient.util.generate_private_key`
        """
        return cls(generate_private_key(key_type, curve, rsa_bits))

    @classmethod
    def load_pem(cls, data, password=None):
        """
        Load a signing key from a PEM-encoded private key.

        :param bytes data: The PEM data.
        :param bytes password: The password if the key is encrypted.
        """
        return cls(serialization.load_pem_private_key(
            data, password=password, backend=default_backend()))

    @property
    def alg(self):
        """
        The JWS signature algorithm for this key.
        """
        return signature_algorithm(self.key)

    @property
    def jwk(self):
        """
        The private key as a JWK.
        """
        if isinstance(self.key, rsa.RSAPrivateKey):
            return JWKRSA(key=self.key)
        return JWKEC(key=self.key)

    def public_key(self):
        """
        The public key, as sent to and echoed by the server.

        :rtype: `~josepy.jwk.JWK`
        """
        return self.jwk.public_key()

    def sign(self, payload, nonce):
        """
        Sign a payload, binding a replay nonce into the signature.

        :param bytes payload: The payload.
        :param str nonce: The single-use nonce.

        :rtype: `~txacmeclient.jws.JWS`
        """
        return JWS.sign(payload, key=self.jwk, alg=self.alg, nonce=nonce)

    def encrypted_export(self, password, cipher=u'aes256'):
        """
        Export the private key as encrypted PEM.

        :param bytes password: The passphrase.
        :param str cipher: An OpenSSL cipher name.

        :rtype: bytes
        """
        return crypto.dump_privatekey(
            crypto.FILETYPE_PEM,
            crypto.PKey.from_cryptography_key(self.key),
            cipher,
            password)


__all__ = ['SigningKey', 'signature_algorithm']
