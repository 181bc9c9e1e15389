from cryptography import x509
from cryptography.x509.oid import ExtensionOID
from testtools.matchers import Mismatch


def subject_alt_names(value):
    """
    The DNS subjectAltNames of a certificate or CSR.
    """
    return (
        value.extensions
        .get_extension_for_oid(ExtensionOID.SUBJECT_ALTERNATIVE_NAME)
        .value
        .get_values_for_type(x509.DNSName))


class HasSubjectAltNames(object):
    """
    Matches when the matchee object (must be a `~cryptography.x509.Certificate`
    or `~cryptography.x509.CertificateSigningRequest`) carries exactly the
    given DNS subjectAltNames, in any order.
    """
    def __init__(self, names):
        self.names = sorted(names)

    def __str__(self):
        return 'HasSubjectAltNames({0.names!r})'.format(self)

    def match(self, value):
        actual = sorted(subject_alt_names(value))
        if actual != self.names:
            return Mismatch(
                'subjectAltNames {!r} != {!r}'.format(actual, self.names))


class ValidForName(object):
    """
    Matches when the matchee object is valid for the given DNS name, without
    wildcard matching.
    """
    def __init__(self, name):
        self.name = name

    def __str__(self):
        return 'ValidForName({0.name!r})'.format(self)

    def match(self, value):
        if self.name not in subject_alt_names(value):
            return Mismatch(
                '{!r} is not valid for {!r}'.format(value, self.name))


__all__ = ['HasSubjectAltNames', 'ValidForName', 'subject_alt_names']
