"""
Eliot message and action definitions.
"""
from operator import methodcaller

from eliot import ActionType, Field, fields

NONCE = Field.for_types(u'nonce', [str, None], u'A nonce value')

LOG_JWS_SIGN = ActionType(
    u'txacmeclient:jws:sign',
    fields(NONCE, key_type=str, alg=str),
    fields(),
    u'Signing a message with JWS')

LOG_JWS_HEAD = ActionType(
    u'txacmeclient:jws:http:head',
    fields(),
    fields(),
    u'A JWSClient HEAD request')

LOG_JWS_GET = ActionType(
    u'txacmeclient:jws:http:get',
    fields(),
    fields(),
    u'A JWSClient GET request')

LOG_JWS_POST = ActionType(
    u'txacmeclient:jws:http:post',
    fields(),
    fields(),
    u'A JWSClient POST request')

LOG_JWS_REQUEST = ActionType(
    u'txacmeclient:jws:http:request',
    fields(method=str, url=str),
    fields(Field.for_types(u'content_type',
                           [str, None],
                           u'Content-Type header field'),
           code=int),
    u'A JWSClient request')

LOG_JWS_CHECK_RESPONSE = ActionType(
    u'txacmeclient:jws:http:check-response',
    fields(Field.for_types(u'response_content_type',
                           [str, None],
                           u'Content-Type header field'),
           code=int),
    fields(),
    u'Checking a JWSClient response')

LOG_JWS_GET_NONCE = ActionType(
    u'txacmeclient:jws:nonce:get',
    fields(),
    fields(NONCE),
    u'Consuming a nonce')

LOG_JWS_ADD_NONCE = ActionType(
    u'txacmeclient:jws:nonce:add',
    fields(Field.for_types(u'raw_nonce',
                           [bytes, None],
                           u'Nonce header field')),
    fields(),
    u'Adding a nonce')

LOG_HTTP_PARSE_LINKS = ActionType(
    u'txacmeclient:http:parse-links',
    fields(raw_link=str),
    fields(parsed_links=dict),
    u'Parsing HTTP Links')

DIRECTORY = Field(u'directory', methodcaller('to_json'), u'An ACME directory')

URL = Field(u'url', methodcaller('asText'), u'A URL object')

REGISTRATION = Field(
    u'registration', methodcaller('to_json'), u'An ACME registration')

AUTHORIZATION = Field(
    u'authorization', methodcaller('to_json'), u'An ACME authorization')

LOG_ACME_CONSUME_DIRECTORY = ActionType(
    u'txacmeclient:acme:client:from-url',
    fields(URL, key_type=str, alg=str),
    fields(DIRECTORY),
    u'Creating an ACME client from a remote directory')

LOG_ACME_REGISTER = ActionType(
    u'txacmeclient:acme:client:registration:create',
    fields(Field(u'contact', list, u'The contact URIs'), url=str),
    fields(REGISTRATION),
    u'Registering with an ACME server')

LOG_ACME_UPDATE_REGISTRATION = ActionType(
    u'txacmeclient:acme:client:registration:update',
    fields(Field(u'update',
                 methodcaller('to_json'),
                 u'The registration update'),
           uri=str),
    fields(REGISTRATION),
    u'Updating a registration')

LOG_ACME_CREATE_AUTHORIZATION = ActionType(
    u'txacmeclient:acme:client:authorization:create',
    fields(Field(u'identifier',
                 methodcaller('to_json'),
                 u'An identifier'),
           url=str),
    fields(AUTHORIZATION),
    u'Creating an authorization')

LOG_ACME_REFRESH_AUTHORIZATION = ActionType(
    u'txacmeclient:acme:client:authorization:refresh',
    fields(AUTHORIZATION),
    fields(AUTHORIZATION),
    u'Refreshing an authorization')

LOG_ACME_ANSWER_CHALLENGE = ActionType(
    u'txacmeclient:acme:client:challenge:answer',
    fields(Field(u'challenge',
                 methodcaller('to_json'),
                 u'The challenge'),
           Field(u'response',
                 methodcaller('to_json'),
                 u'The challenge response')),
    fields(Field(u'challenge',
                 methodcaller('to_json'),
                 u'The updated challenge')),
    u'Answering an authorization challenge')

LOG_ACME_VERIFY_CHALLENGE = ActionType(
    u'txacmeclient:acme:challenge:verify',
    fields(url=str),
    fields(),
    u'Locally checking a provisioned challenge response')

LOG_ACME_REQUEST_CERTIFICATE = ActionType(
    u'txacmeclient:acme:client:certificate:request',
    fields(Field(u'authorizations', list, u'Authorization locations'),
           url=str),
    fields(Field(u'certificate',
                 methodcaller('to_json'),
                 u'The issued certificate')),
    u'Requesting a certificate')
