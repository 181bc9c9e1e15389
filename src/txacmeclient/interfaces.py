# -*- coding: utf-8 -*-
"""
Interface definitions for txacmeclient.
"""
from zope.interface import Attribute, Interface


class IChallengeData(Interface):
    """
    The type-specific part of a challenge.

    Implementations are immutable; every operation that changes the data
    returns a new instance.
    """
    typ = Attribute(
        """
        The challenge type this data belongs to, for example ``u'dvsni'``, or
        ``None`` for data of a type that is not understood.
        """)

    def merge(jobj):
        """
        Merge a challenge object received from the server.

        Server-issued fields are taken from ``jobj``; client-entered fields
        the server did not send are kept.

        :param dict jobj: The complete challenge JSON object.

        :raises txacmeclient.errors.ValidationError: If ``jobj`` violates the
            field rules of the challenge type.  Nothing is merged in that
            case.

        :return: The merged challenge data.
        """

    def to_partial_json():
        """
        Serialize the type-specific fields.

        :rtype: dict
        """


class IRespondingChallenge(IChallengeData):
    """
    Challenge data that the client knows how to respond to.
    """
    def reset_response():
        """
        Clear the client-entered fields.

        :return: The challenge data without a response.
        """

    def initialize_response(authorization):
        """
        Fill in the client-entered fields that are still unset.

        Fields that are already set are never overwritten.

        :param ~txacmeclient.resources.Authorization authorization: The
            authorization the challenge belongs to.

        :return: The challenge data ready to respond.
        """

    def describe_provisioning_action(authorization):
        """
        Describe what has to be provisioned before the response is sent.

        :param ~txacmeclient.resources.Authorization authorization: The
            authorization the challenge belongs to.

        :rtype: str
        :return: Human-readable instructions.
        """

    def verify(authorization, http_client=None):
        """
        Best-effort local check that the response has been provisioned.

        :param ~txacmeclient.resources.Authorization authorization: The
            authorization the challenge belongs to.
        :param http_client: A ``treq.client.HTTPClient`` to check with, or
            ``None`` to skip any network check.

        :rtype: ``Deferred``
        """

    def response_payload():
        """
        Build the payload that triggers validation of the challenge.

        :raises txacmeclient.errors.IncompleteResponse: If a required client
            field is not set.

        :rtype: `~josepy.json_util.JSONObjectWithFields`
        """


class IResourceStore(Interface):
    """
    Persistence for registrations, authorizations and certificates.

    The stored records are the ``to_json`` forms of the resources; how they
    are encoded or encrypted is up to the implementation.
    """
    def save_registration(account, registration):
        """
        Store the registration for an account.

        :param str account: The account identity.
        :param ~txacmeclient.resources.Registration registration: The
            registration.

        :rtype: ``Deferred``
        """

    def load_registration(account):
        """
        Retrieve the registration for an account.

        :raises KeyError: if no registration is stored for ``account``.

        :rtype: ``Deferred[~txacmeclient.resources.Registration]``
        """

    def save_authorization(authorization):
        """
        Store an authorization, replacing a previous one with the same
        location.

        :rtype: ``Deferred``
        """

    def load_authorization(location_or_domain):
        """
        Retrieve an authorization by its location or, failing that, the most
        recently stored authorization for a domain name.

        :raises KeyError: if nothing matches.

        :rtype: ``Deferred[~txacmeclient.resources.Authorization]``
        """

    def list_authorizations(status=None):
        """
        List stored authorizations, optionally only those with a status.

        :rtype: ``Deferred[List[~txacmeclient.resources.Authorization]]``
        """

    def save_certificate(certificate):
        """
        Store a certificate by its location.

        :rtype: ``Deferred``
        """

    def load_certificate(location):
        """
        Retrieve a certificate by its location.

        :raises KeyError: if no certificate is stored at ``location``.

        :rtype: ``Deferred[~txacmeclient.resources.Certificate]``
        """


__all__ = ['IChallengeData', 'IRespondingChallenge', 'IResourceStore']
