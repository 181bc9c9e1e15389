"""
ACME client API implementation for Twisted.

                      directory
                          |
        +-----------------+-----------------+
        |                 |                 |
        V                 V                 V
     new-reg          new-authz          new-cert
        |                 ^                 ^
        |  Link: "next"   |  Link: "next"   |
        V                 |                 |
   registration ----------+                 |
                                            |
                    authorization ----------+
                          |
                          V
                      challenge

Every state-changing request is a JWS-signed POST; the signature binds a
single-use nonce taken from the ``Replay-Nonce`` header of an earlier
response.  Created resources are found through the ``Location`` header, the
next resource type through ``Link: rel="next"``.

1. client = Client.from_url(reactor, DIRECTORY_URL, key)
2. registration = client.register(client.directory.new_reg, [contact])
3. registration = client.agree_to_tos(registration)
4. authorization = client.request_authorization(
       registration.authorizations_link, domain)
5. pick a challenge, initialize and provision its response
6. authorization = client.answer_challenge(authorization, index)
7. authorization = client.refresh_authorization(authorization) until valid
8. certificate = client.request_certificate(
       authorization.certificate_link, csr, [authorization])
"""
import json
import re
from collections import deque

import attr
from cryptography import x509
from cryptography.hazmat.backends import default_backend
from eliot.twisted import DeferredContext
from josepy.errors import DeserializationError
from treq.client import HTTPClient
from twisted.internet import defer
from twisted.web.client import Agent, BrowserLikePolicyForHTTPS
from twisted.web.http_headers import Headers

from txacmeclient import __version__
from txacmeclient.errors import (
    IncompleteResponse, IntegrityError, ProtocolError, UnsupportedChallenge)
from txacmeclient.logging import (
    LOG_ACME_ANSWER_CHALLENGE,
    LOG_ACME_CONSUME_DIRECTORY,
    LOG_ACME_CREATE_AUTHORIZATION,
    LOG_ACME_REFRESH_AUTHORIZATION,
    LOG_ACME_REGISTER,
    LOG_ACME_REQUEST_CERTIFICATE,
    LOG_ACME_UPDATE_REGISTRATION,
    LOG_HTTP_PARSE_LINKS,
    LOG_JWS_ADD_NONCE,
    LOG_JWS_CHECK_RESPONSE,
    LOG_JWS_GET,
    LOG_JWS_GET_NONCE,
    LOG_JWS_HEAD,
    LOG_JWS_POST,
    LOG_JWS_REQUEST,
    LOG_JWS_SIGN,
    )
from txacmeclient.messages import (
    AuthorizationBody, CertificateRequest, Directory, IDENTIFIER_DNS,
    Identifier, NewAuthorization, NewRegistration, RegistrationBody,
    UpdateRegistration)
from txacmeclient.resources import Authorization, Certificate, Registration
from txacmeclient.util import (
    check_directory_url_type, tap, wrap_transport_failure)

_DEFAULT_TIMEOUT = 40

JSON_CONTENT_TYPE = b'application/json'
JSON_ERROR_CONTENT_TYPE = b'application/problem+json'
DER_CONTENT_TYPE = b'application/pkix-cert'
REPLAY_NONCE_HEADER = b'Replay-Nonce'


# Borrowed from requests, with modifications.
def _parse_header_links(response):
    """
    Parse the links from a Link: header field.

    ..  todo:: Links with the same relation collide at the moment.

    :param response: The HTTP response.

    :rtype: `dict`
    :return: A dictionary of parsed links, keyed by ``rel`` or ``url``.
    """
    values = response.headers.getRawHeaders(b'link', [])
    value = b','.join(values).decode('ascii')
    with LOG_HTTP_PARSE_LINKS(raw_link=value) as action:
        links = {}
        replace_chars = u' \'"'
        for val in re.split(u', *<', value):
            if not val.strip():
                continue
            try:
                url, params = val.split(u';', 1)
            except ValueError:
                url, params = val, u''

            link = {}
            link[u'url'] = url.strip(u'<> \'"')
            for param in params.split(u';'):
                try:
                    key, value = param.split(u'=')
                except ValueError:
                    break
                link[key.strip(replace_chars)] = value.strip(replace_chars)
            links[link.get(u'rel') or link.get(u'url')] = link
        action.add_success_fields(parsed_links=links)
        return links


def _header(response, name):
    value = response.headers.getRawHeaders(name, [None])[0]
    if value is not None:
        return value.decode('ascii')
    return None


@attr.s(frozen=True)
class ACMEResponse(object):
    """
    The parts of an HTTP response the protocol depends on.

    :ivar str url: The requested URL.
    :ivar int code: The HTTP status code.
    :ivar str content_type: The Content-Type header, if any.
    :ivar str location: The Location header, if any.
    :ivar dict links: The parsed Link header fields, keyed by relation.
    :ivar bytes body: The raw response body.
    """
    url = attr.ib()
    code = attr.ib()
    content_type = attr.ib()
    location = attr.ib()
    links = attr.ib()
    body = attr.ib(repr=False)

    @classmethod
    def from_treq(cls, response, url, body):
        """
        Collect the parts of a treq response.

        :raises txacmeclient.errors.ProtocolError: If a header field the
            protocol reads is not ASCII.
        """
        try:
            return cls(
                url=url,
                code=response.code,
                content_type=_header(response, b'content-type'),
                location=_header(response, b'location'),
                links=_parse_header_links(response),
                body=body)
        except UnicodeDecodeError as error:
            raise ProtocolError(
                'Malformed response header: {}'.format(error),
                url=url, code=response.code, body=body)

    def link(self, rel):
        """
        The URL of the link with relation ``rel``, or ``None``.
        """
        return self.links.get(rel, {}).get(u'url')

    def json(self):
        """
        Decode the body as JSON.

        :raises txacmeclient.errors.ProtocolError: If it is not JSON.
        """
        try:
            return json.loads(self.body.decode('utf-8'))
        except ValueError:
            raise ProtocolError(
                'Response is not JSON.', url=self.url, code=self.code,
                body=self.body)

    def decode(self, message_type):
        """
        Decode the body as a message.

        :param message_type: A `~josepy.json_util.JSONObjectWithFields`
            subclass.

        :raises txacmeclient.errors.ProtocolError: If the body does not hold
            such a message.
        """
        jobj = self.json()
        if not isinstance(jobj, dict):
            raise ProtocolError(
                'Expected a JSON object, got {!r}'.format(jobj),
                url=self.url, code=self.code, body=self.body)
        try:
            return message_type.from_json(jobj)
        except DeserializationError as error:
            raise ProtocolError(
                'Invalid {} in response: {}'.format(
                    message_type.__name__, error),
                url=self.url, code=self.code, body=self.body)


def _require_location(response, resource):
    if not response.location:
        raise ProtocolError(
            'Missing Location header in {} response'.format(resource),
            url=response.url, code=response.code, body=response.body)
    return response.location


def _require_link(response, rel, resource):
    url = response.link(rel)
    if not url:
        raise ProtocolError(
            'Missing Link rel="{}" header in {} response'.format(
                rel, resource),
            url=response.url, code=response.code, body=response.body)
    return url


def _default_client(jws_client, reactor, key, tls_policy):
    """
    Make a client if we didn't get one.
    """
    if jws_client is None:
        if tls_policy is None:
            tls_policy = BrowserLikePolicyForHTTPS()
        agent = Agent(reactor, contextFactory=tls_policy)
        jws_client = JWSClient(HTTPClient(agent=agent), key)
    return jws_client


def dns_identifier(domain):
    """
    Construct an identifier from a DNS name.

    Trivial implementation, just saves on typing.

    :param str domain: The domain name.

    :return: The identifier.
    :rtype: `~txacmeclient.messages.Identifier`
    """
    return Identifier(typ=IDENTIFIER_DNS, value=domain)


class Client(object):
    """
    ACME client interface.

    The current implementation does not support multiple parallel requests.
    This is due to the nonce handling.

    :ivar ~txacmeclient.keys.SigningKey key: The account key.
    :ivar ~txacmeclient.messages.Directory directory: The server directory,
        when the client was made with `from_url`.
    """
    def __init__(self, key, jws_client, directory=None):
        self._client = jws_client
        self.key = key
        self.directory = directory

    @classmethod
    def from_url(cls, reactor, url, key, jws_client=None,
                 timeout=_DEFAULT_TIMEOUT, tls_policy=None):
        """
        Construct a client from an ACME directory at a given URL.

        :param reactor: The Twisted reactor to use.
        :param url: The ``twisted.python.url.URL`` to fetch the directory
            from.  See `txacmeclient.urls` for constants for various
            well-known public directories.
        :param ~txacmeclient.keys.SigningKey key: The account key.
        :param JWSClient jws_client: The underlying client to use, or
            ``None`` to construct one.
        :param int timeout: Number of seconds to wait for an HTTP response
            during ACME server interaction.
        :param tls_policy: The ``IPolicyForHTTPS`` used to verify the server,
            when constructing the underlying client; the default verifies
            like a browser.

        :return: The constructed client.
        :rtype: Deferred[`Client`]
        """
        action = LOG_ACME_CONSUME_DIRECTORY(
            url=url, key_type=key.jwk.typ, alg=key.alg.name)
        with action.context():
            check_directory_url_type(url)
            jws_client = _default_client(jws_client, reactor, key, tls_policy)
            jws_client.timeout = timeout
            return (
                DeferredContext(jws_client.get(url.asText()))
                .addCallback(lambda response: response.decode(Directory))
                .addCallback(
                    tap(lambda d: action.add_success_fields(directory=d)))
                .addCallback(lambda directory: cls(key, jws_client, directory))
                .addActionFinish())

    def stop(self):
        """
        Cancel the request in progress, if any.

        :rtype: Deferred[None]
        """
        return self._client.stop()

    def register(self, url, contact=()):
        """
        Create a new registration with the ACME server.

        :param str url: The new-reg endpoint.
        :param contact: The contact URIs, e.g. ``mailto:`` URIs.

        :raises txacmeclient.errors.ProtocolError: If the response lacks the
            Location header or the ``next`` link.
        :raises txacmeclient.errors.IntegrityError: If the server echoes a
            different key.

        :rtype: Deferred[`~txacmeclient.resources.Registration`]
        """
        contact = list(contact)
        message = NewRegistration(contact=tuple(contact))
        action = LOG_ACME_REGISTER(url=url, contact=contact)
        with action.context():
            return (
                DeferredContext(self._client.post(url, message))
                .addCallback(self._parse_registration)
                .addCallback(
                    tap(lambda r: action.add_success_fields(registration=r)))
                .addActionFinish())

    def update_registration(self, registration, contact=None, agreement=None):
        """
        Update the contact URIs and/or the agreement of a registration.

        Fields that are passed as ``None`` keep their current value.

        :param ~txacmeclient.resources.Registration registration: The
            registration to update.

        :rtype: Deferred[`~txacmeclient.resources.Registration`]
        """
        if contact is None:
            contact = registration.contact
        if agreement is None:
            agreement = registration.agreement
        return self._update_registration(
            registration,
            UpdateRegistration(contact=tuple(contact), agreement=agreement))

    def agree_to_tos(self, registration):
        """
        Agree to the terms of service linked from the registration.

        :rtype: Deferred[`~txacmeclient.resources.Registration`]
        """
        return self.update_registration(
            registration, agreement=registration.terms_of_service)

    def fetch_registration(self, registration):
        """
        Fetch the current state of a registration.

        :rtype: Deferred[`~txacmeclient.resources.Registration`]
        """
        return self._update_registration(registration, UpdateRegistration())

    def _update_registration(self, registration, message):
        action = LOG_ACME_UPDATE_REGISTRATION(
            update=message, uri=registration.location)
        with action.context():
            return (
                DeferredContext(
                    self._client.post(registration.location, message))
                .addCallback(self._parse_registration, registration)
                .addCallback(
                    tap(lambda r: action.add_success_fields(registration=r)))
                .addActionFinish())

    def _parse_registration(self, response, previous=None):
        """
        Parse a new or updated registration from the server.
        """
        body = response.decode(RegistrationBody)
        expected = self.key.public_key()
        if body.key != expected:
            # This is a response for another key.
            raise IntegrityError(expected=expected, received=body.key)
        registration = Registration(
            location=response.location,
            authorizations_link=response.link(u'next'),
            terms_of_service=response.link(u'terms-of-service'),
            key=body.key,
            contact=body.contact,
            agreement=body.agreement,
            recovery_token=body.recovery_token)
        if previous is not None:
            return registration.inherit_links(previous)
        _require_location(response, 'registration')
        _require_link(response, u'next', 'registration')
        return registration

    def request_authorization(self, url, domain):
        """
        Create a new authorization for a DNS name.

        :param str url: The new-authz endpoint, usually the
            ``authorizations_link`` of the registration.
        :param str domain: The domain name.

        :rtype: Deferred[`~txacmeclient.resources.Authorization`]
        """
        identifier = dns_identifier(domain)
        message = NewAuthorization(identifier=identifier)
        action = LOG_ACME_CREATE_AUTHORIZATION(identifier=identifier, url=url)
        with action.context():
            return (
                DeferredContext(self._client.post(url, message))
                .addCallback(self._parse_new_authorization, domain)
                .addCallback(
                    tap(lambda a: action.add_success_fields(authorization=a)))
                .addActionFinish())

    @classmethod
    def _parse_new_authorization(cls, response, domain):
        location = _require_location(response, 'authorization')
        certificate_link = _require_link(response, u'next', 'authorization')
        authorization = Authorization.from_body(
            response.decode(AuthorizationBody), location, certificate_link)
        if authorization.domain != domain:
            raise ProtocolError(
                'Authorization is for {!r}, expected {!r}'.format(
                    authorization.domain, domain),
                url=response.url, code=response.code, body=response.body)
        return authorization

    def refresh_authorization(self, authorization):
        """
        Fetch the current state of an authorization.

        Client-entered challenge fields of challenges whose URI did not
        change are kept.

        :rtype: Deferred[`~txacmeclient.resources.Authorization`]
        """
        def refreshed(response):
            return authorization.refreshed(
                response.decode(AuthorizationBody),
                _require_link(response, u'next', 'authorization'))

        action = LOG_ACME_REFRESH_AUTHORIZATION(authorization=authorization)
        with action.context():
            return (
                DeferredContext(self._client.get(authorization.location))
                .addCallback(refreshed)
                .addCallback(
                    tap(lambda a: action.add_success_fields(authorization=a)))
                .addActionFinish())

    def answer_challenge(self, authorization, index):
        """
        Respond to a challenge of an authorization.

        The response must already be initialized, and usually provisioned.

        :param ~txacmeclient.resources.Authorization authorization: The
            authorization.
        :param int index: The index of the challenge.

        :raises txacmeclient.errors.UnsupportedChallenge: If the challenge
            cannot be responded to.
        :raises txacmeclient.errors.IncompleteResponse: If the response is not
            initialized.

        :return: The authorization with the updated challenge.
        :rtype: Deferred[`~txacmeclient.resources.Authorization`]
        """
        try:
            challenge = authorization.respond_to(index)
            response = challenge.data.response_payload()
        except (IndexError, UnsupportedChallenge, IncompleteResponse):
            return defer.fail()

        action = LOG_ACME_ANSWER_CHALLENGE(
            challenge=challenge, response=response)
        with action.context():
            return (
                DeferredContext(self._client.post(challenge.uri, response))
                .addCallback(lambda r: challenge.merge(r.json()))
                .addCallback(
                    tap(lambda c: action.add_success_fields(challenge=c)))
                .addCallback(authorization.replace_challenge)
                .addActionFinish())

    def request_certificate(self, url, csr, authorizations):
        """
        Request a certificate.

        :param str url: The new-cert endpoint, usually the
            ``certificate_link`` of the authorizations.
        :param csr: The CSR, as a
            `cryptography.x509.CertificateSigningRequest` or DER bytes.
        :param authorizations: The valid authorizations for the names in the
            CSR, as `~txacmeclient.resources.Authorization`\\s or locations.

        :raises txacmeclient.errors.ProtocolError: If the response is not a
            DER certificate or lacks the Location header.

        :rtype: Deferred[`~txacmeclient.resources.Certificate`]
        """
        if isinstance(csr, bytes):
            try:
                csr = x509.load_der_x509_csr(csr, default_backend())
            except ValueError:
                return defer.fail()
        locations = [
            getattr(authorization, 'location', authorization)
            for authorization in authorizations]
        message = CertificateRequest(
            csr=csr, authorizations=tuple(locations))
        action = LOG_ACME_REQUEST_CERTIFICATE(
            url=url, authorizations=locations)
        with action.context():
            return (
                DeferredContext(
                    self._client.post(url, message, accept=DER_CONTENT_TYPE))
                .addCallback(self._parse_certificate)
                .addCallback(
                    tap(lambda c: action.add_success_fields(certificate=c)))
                .addActionFinish())

    @classmethod
    def _parse_certificate(cls, response):
        """
        Parse a response containing a certificate resource.
        """
        expected = DER_CONTENT_TYPE.decode('ascii')
        if response.content_type != expected:
            raise ProtocolError(
                'Unexpected response Content-Type: {!r}, expected {!r}'.format(
                    response.content_type, expected),
                url=response.url, code=response.code, body=response.body)
        certificate = Certificate(
            der=response.body,
            location=_require_location(response, 'certificate'),
            issuer_link=response.link(u'up'))
        try:
            certificate.certificate()
        except ValueError:
            raise ProtocolError(
                'Response is not a DER certificate.',
                url=response.url, code=response.code, body=response.body)
        return certificate


class JWSClient(object):
    """
    HTTP client using JWS-signed messages for ACME.

    Each signed request consumes exactly one nonce.  Nonces come from the
    ``Replay-Nonce`` header of earlier responses, from an explicit argument,
    or, when none is on hand, from a HEAD request to the target URL.  Only
    one request may be in flight at a time, so no nonce is ever used twice.

    At most `nonce_limit` unused nonces are kept, and the same number of
    spent ones are remembered to refuse their reuse; the oldest go first.
    """
    timeout = _DEFAULT_TIMEOUT
    nonce_limit = 1024

    def __init__(self, treq_client, key,
                 user_agent=u'txacmeclient/{}'.format(
                     __version__).encode('ascii')):
        self._treq = treq_client
        self._current_request = None
        self._key = key
        self._user_agent = user_agent

        self._nonces = deque(maxlen=self.nonce_limit)
        self._used_nonces = set()
        self._used_order = deque()

    def _wrap_in_jws(self, nonce, obj):
        """
        Wrap ``JSONDeSerializable`` object in JWS.

        :param ~josepy.interfaces.JSONDeSerializable obj:
        :param str nonce:

        :rtype: `bytes`
        :return: JSON-encoded data
        """
        with LOG_JWS_SIGN(key_type=self._key.jwk.typ, alg=self._key.alg.name,
                          nonce=nonce):
            jobj = obj.json_dumps().encode('utf-8')
            return self._key.sign(jobj, nonce).json_dumps().encode('utf-8')

    @classmethod
    def _check_response(cls, response):
        """
        Check the response status.

        :raises txacmeclient.errors.ProtocolError: If the status is not 2xx;
            the message is taken from an HTTP Problem body if there is one.
        """
        with LOG_JWS_CHECK_RESPONSE(
                code=response.code,
                response_content_type=response.content_type):
            if 200 <= response.code < 300:
                return response
            message = 'Unexpected response status {}'.format(response.code)
            problem_type = JSON_ERROR_CONTENT_TYPE.decode('ascii')
            content_type = (response.content_type or u'').lower()
            if content_type.startswith(problem_type):
                problem = response.json()
                if isinstance(problem, dict):
                    message = u'{}: {}'.format(
                        problem.get(u'type', u'error'),
                        problem.get(u'detail', u''))
            raise ProtocolError(
                message, url=response.url, code=response.code,
                body=response.body)

    def _send_request(self, method, url, **kwargs):
        """
        Send HTTP request.

        :param str method: The HTTP method to use.
        :param str url: The URL to make the request to.

        :raises txacmeclient.errors.TransportError: If the request fails on
            the network level.

        :return: Deferred firing with the `ACMEResponse`.
        """
        if self._current_request is not None:
            return defer.fail(RuntimeError('Overlapped HTTP request'))

        def cb_request_done(result):
            """
            Called when we got a response from the request.
            """
            self._current_request = None
            return result

        action = LOG_JWS_REQUEST(method=method, url=url)
        with action.context():
            headers = kwargs.setdefault('headers', Headers())
            headers.setRawHeaders(b'user-agent', [self._user_agent])
            kwargs.setdefault('timeout', self.timeout)
            self._current_request = self._treq.request(method, url, **kwargs)
            return (
                DeferredContext(self._current_request)
                .addCallback(self._read_response, url)
                .addBoth(cb_request_done)
                .addErrback(wrap_transport_failure, url)
                .addCallback(
                    tap(lambda r: action.add_success_fields(
                        code=r.code, content_type=r.content_type)))
                .addActionFinish())

    def _read_response(self, response, url):
        """
        Read the whole response and keep its nonce.
        """
        try:
            self._add_nonce(response)
        except UnicodeDecodeError as error:
            raise ProtocolError(
                'Malformed Replay-Nonce header: {}'.format(error),
                url=url, code=response.code)
        return (
            response.content()
            .addCallback(
                lambda body: ACMEResponse.from_treq(response, url, body)))

    def stop(self):
        """
        Stops the operation.

        This cancels the pending request, if any.

        :return: A deferred which fires when the client is stopped.
        """
        if self._current_request is not None:
            self._current_request.addErrback(lambda _: None)
            self._current_request.cancel()
            self._current_request = None
        return defer.succeed(None)

    def head(self, url, **kwargs):
        """
        Send HEAD request without checking the response.

        :param str url: The URL to make the request to.
        """
        with LOG_JWS_HEAD().context():
            return DeferredContext(
                self._send_request(u'HEAD', url, **kwargs)
                ).addActionFinish()

    def get(self, url, accept=JSON_CONTENT_TYPE, **kwargs):
        """
        Send unsigned GET request and check response.

        :param str url: The URL to make the request to.
        :param bytes accept: The media type asked for.

        :raises txacmeclient.errors.ProtocolError: If the status is not 2xx.
        :raises txacmeclient.errors.TransportError: On network failures.

        :return: Deferred firing with the checked `ACMEResponse`.
        """
        with LOG_JWS_GET().context():
            headers = kwargs.setdefault('headers', Headers())
            headers.setRawHeaders(b'accept', [accept])
            return (
                DeferredContext(self._send_request(u'GET', url, **kwargs))
                .addCallback(self._check_response)
                .addActionFinish())

    def _add_nonce(self, response):
        """
        Store a nonce from a response we received.

        :param twisted.web.iweb.IResponse response: The HTTP response.
        """
        nonce = response.headers.getRawHeaders(
            REPLAY_NONCE_HEADER, [None])[0]
        if nonce is not None:
            with LOG_JWS_ADD_NONCE(raw_nonce=nonce):
                nonce = nonce.decode('ascii')
                if nonce not in self._used_nonces:
                    self._nonces.append(nonce)

    def _take_nonce(self, url):
        if not self._nonces:
            raise ProtocolError(
                'No Replay-Nonce header in response', url=url)
        return self._nonces.pop()

    def _get_nonce(self, url):
        """
        Get a nonce to use in a request, removing it from the nonces on hand.
        """
        action = LOG_JWS_GET_NONCE()
        if len(self._nonces) > 0:
            with action:
                nonce = self._nonces.pop()
                action.add_success_fields(nonce=nonce)
                return defer.succeed(nonce)
        else:
            with action.context():
                return (
                    DeferredContext(self.head(url))
                    .addCallback(lambda _: self._take_nonce(url))
                    .addCallback(tap(
                        lambda nonce: action.add_success_fields(nonce=nonce)))
                    .addActionFinish())

    def _spend_nonce(self, nonce):
        """
        Mark a nonce as used; a nonce can only be spent once.
        """
        if nonce in self._used_nonces:
            raise ValueError('Nonce {!r} was already used'.format(nonce))
        self._used_nonces.add(nonce)
        self._used_order.append(nonce)
        while len(self._used_order) > self.nonce_limit:
            self._used_nonces.discard(self._used_order.popleft())
        if nonce in self._nonces:
            self._nonces.remove(nonce)
        return nonce

    def post(self, url, obj, nonce=None, accept=JSON_CONTENT_TYPE, **kwargs):
        """
        POST a JWS-signed object and check the response.

        Failed requests are not retried.

        :param str url: The URL to request.
        :param ~josepy.interfaces.JSONDeSerializable obj: The serializable
            payload of the request.
        :param str nonce: The nonce to sign with, or ``None`` to use one on
            hand.
        :param bytes accept: The media type asked for.

        :raises txacmeclient.errors.ProtocolError: If the status is not 2xx.
        :raises txacmeclient.errors.TransportError: On network failures.

        :return: Deferred firing with the checked `ACMEResponse`.
        """
        with LOG_JWS_POST().context():
            headers = kwargs.setdefault('headers', Headers())
            headers.setRawHeaders(b'content-type', [JSON_CONTENT_TYPE])
            headers.setRawHeaders(b'accept', [accept])
            if nonce is None:
                d = self._get_nonce(url)
            else:
                d = defer.succeed(nonce)
            return (
                DeferredContext(d)
                .addCallback(self._spend_nonce)
                .addCallback(self._wrap_in_jws, obj)
                .addCallback(
                    lambda data: self._send_request(
                        u'POST', url, data=data, **kwargs))
                .addCallback(self._check_response)
                .addActionFinish())


__all__ = [
    'Client', 'JWSClient', 'ACMEResponse', 'JSON_CONTENT_TYPE',
    'JSON_ERROR_CONTENT_TYPE', 'DER_CONTENT_TYPE', 'REPLAY_NONCE_HEADER',
    'dns_identifier']
