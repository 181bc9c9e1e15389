"""
Obtain a certificate through a ``simpleHttps`` challenge.

The token has to be served by hand; the script prints where and waits until
the document can be fetched before asking the server to validate it.

Usage: client_example.py DIRECTORY_URL DOMAIN CONTACT
"""
import sys

from cryptography.hazmat.primitives import serialization
from eliot import to_file
from twisted.internet import task
from twisted.internet.defer import inlineCallbacks, returnValue
from twisted.python.url import URL

from txacmeclient.client import Client
from txacmeclient.errors import ProvisioningCheckFailed, TransportError
from txacmeclient.keys import SigningKey
from txacmeclient.resources import STATUS_PENDING, STATUS_PROCESSING
from txacmeclient.testing import MemoryStore
from txacmeclient.util import (
    csr_for_names, generate_private_key, insecure_http_client)


def _pick_simple_https(authorization):
    for index, challenge in enumerate(authorization.challenges):
        if challenge.typ == u'simpleHttps' and challenge.can_respond:
            return index
    raise RuntimeError('No simpleHttps challenge offered')


@inlineCallbacks
def _wait_until_served(reactor, challenge, authorization):
    http_client = insecure_http_client(reactor)
    while True:
        try:
            yield challenge.data.verify(authorization, http_client)
        except (ProvisioningCheckFailed, TransportError) as e:
            print('Not served yet: {}'.format(e))
            yield task.deferLater(reactor, 10, lambda: None)
        else:
            return


@inlineCallbacks
def _poll(reactor, client, authorization):
    while authorization.status in (STATUS_PENDING, STATUS_PROCESSING):
        yield task.deferLater(reactor, 3, lambda: None)
        authorization = yield client.refresh_authorization(authorization)
    returnValue(authorization)


@inlineCallbacks
def main(reactor, directory, domain, contact):
    store = MemoryStore()
    client = yield Client.from_url(
        reactor, URL.fromText(directory), SigningKey.generate())

    registration = yield client.register(client.directory.new_reg, [contact])
    if registration.terms_of_service:
        print('Agreeing to {}'.format(registration.terms_of_service))
        registration = yield client.agree_to_tos(registration)
    yield store.save_registration(contact, registration)

    authorization = yield client.request_authorization(
        registration.authorizations_link, domain)
    index = _pick_simple_https(authorization)
    challenge = authorization.challenges[index]
    challenge = challenge.with_data(
        challenge.data.initialize_response(authorization))
    authorization = authorization.replace_challenge(challenge)
    yield store.save_authorization(authorization)

    print(challenge.data.describe_provisioning_action(authorization))
    yield _wait_until_served(reactor, challenge, authorization)

    authorization = yield client.answer_challenge(authorization, index)
    authorization = yield _poll(reactor, client, authorization)
    yield store.save_authorization(authorization)
    print('Authorization is {}'.format(authorization.status))
    if authorization.status != u'valid':
        return

    key = generate_private_key(u'rsa')
    certificate = yield client.request_certificate(
        authorization.certificate_link,
        csr_for_names([domain], key),
        [authorization])
    yield store.save_certificate(certificate)
    sys.stdout.write(key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption()).decode('ascii'))
    sys.stdout.write(certificate.as_pem().as_text())


if __name__ == '__main__':
    if len(sys.argv) != 4:
        print(__doc__)
        sys.exit(1)
    to_file(open('eliot-log.json', 'w'))
    task.react(main, sys.argv[1:])
