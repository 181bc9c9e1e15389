"""
ACME protocol messages.

Only the wire format lives here; the client-side view of the resources is in
`txacmeclient.resources`.
"""
from josepy import Field, JSONObjectWithFields
from josepy.json_util import decode_b64jose, encode_b64jose
from josepy.jwk import JWK

from txacmeclient.util import decode_csr, encode_csr


IDENTIFIER_DNS = u'dns'


class Directory(JSONObjectWithFields):
    """
    ACME directory listing the resource endpoints of a server.
    """
    new_reg = Field('new-reg', omitempty=True)
    new_authz = Field('new-authz', omitempty=True)
    new_cert = Field('new-cert', omitempty=True)
    revoke_cert = Field('revoke-cert', omitempty=True)


class NewRegistration(JSONObjectWithFields):
    """
    ACME new-reg request.
    """
    contact = Field('contact', omitempty=True, default=())


class UpdateRegistration(JSONObjectWithFields):
    """
    ACME registration update request; an empty update only fetches the
    registration.
    """
    contact = Field('contact', omitempty=True, default=())
    agreement = Field('agreement', omitempty=True)


class RegistrationBody(JSONObjectWithFields):
    """
    Registration resource as returned by the server.
    """
    key = Field('key', omitempty=True, decoder=JWK.from_json)
    contact = Field('contact', omitempty=True, default=())
    agreement = Field('agreement', omitempty=True)
    recovery_token = Field('recoveryToken', omitempty=True)


class Identifier(JSONObjectWithFields):
    """
    ACME identifier.
    """
    typ = Field('type')
    value = Field('value')


class NewAuthorization(JSONObjectWithFields):
    """
    ACME new-authz request.
    """
    identifier = Field('identifier', decoder=Identifier.from_json)


class AuthorizationBody(JSONObjectWithFields):
    """
    Authorization resource as returned by the server.

    Challenges are kept as raw JSON objects; their decoding depends on what
    the client already knows about them.
    """
    identifier = Field('identifier', decoder=Identifier.from_json)
    status = Field('status', omitempty=True, default=u'')
    challenges = Field('challenges', omitempty=True, default=(), decoder=list)
    combinations = Field(
        'combinations', omitempty=True, default=(), decoder=list)
    expires = Field('expires', omitempty=True)


class CertificateRequest(JSONObjectWithFields):
    """
    ACME new-cert request.

    Wraps a Cryptography CSR object.

    ..  seealso:: `cryptography.x509.CertificateSigningRequest`
    """
    csr = Field('csr', decoder=decode_csr, encoder=encode_csr)
    authorizations = Field('authorizations', omitempty=True, default=())


class DVSNIResponse(JSONObjectWithFields):
    """
    Response to a ``dvsni`` challenge.
    """
    typ = Field('type', default=u'dvsni')
    s = Field('s', decoder=decode_b64jose, encoder=encode_b64jose)


class SimpleHTTPSResponse(JSONObjectWithFields):
    """
    Response to a ``simpleHttps`` challenge.
    """
    typ = Field('type', default=u'simpleHttps')
    path = Field('path')


__all__ = [
    'IDENTIFIER_DNS', 'Directory', 'NewRegistration', 'UpdateRegistration',
    'RegistrationBody', 'Identifier', 'NewAuthorization', 'AuthorizationBody',
    'CertificateRequest', 'DVSNIResponse', 'SimpleHTTPSResponse']
