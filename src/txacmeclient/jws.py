"""
JWS with the replay nonce in the protected header.

The JWS implementation in josepy only implements the base JOSE standard; this
module layers the ``nonce`` header parameter used by ACME on top of it.
"""
import josepy as jose


class Header(jose.Header):
    """
    JOSE Header with a ``nonce`` field.
    """
    nonce = jose.Field('nonce', omitempty=True)


class Signature(jose.Signature):
    """
    Signature using the nonce-aware `Header`.
    """
    __slots__ = jose.Signature._orig_slots

    header_cls = Header
    header = jose.Field(
        'header', omitempty=True, default=header_cls(),
        decoder=header_cls.from_json)


class JWS(jose.JWS):
    """
    JWS whose protected header always carries the algorithm, the nonce and
    the signer's public key.
    """
    signature_cls = Signature
    __slots__ = jose.JWS._orig_slots

    @classmethod
    def sign(cls, payload, key, alg, nonce):
        """
        Sign ``payload``, binding ``nonce`` into the signed header.

        :param bytes payload: The payload to sign.
        :param ~josepy.jwk.JWK key: The private key to sign with.
        :param ~josepy.jwa.JWASignature alg: The signature algorithm.
        :param str nonce: The single-use replay nonce.

        :rtype: `JWS`
        """
        return super(JWS, cls).sign(
            payload, key=key, alg=alg, nonce=nonce, include_jwk=True,
            protect=frozenset(['alg', 'nonce', 'jwk']))

    @property
    def nonce(self):
        """
        The nonce from the protected header of the first signature.
        """
        return self.signature.combined.nonce


__all__ = ['Header', 'Signature', 'JWS']
