from testtools import TestCase
from testtools.tests.matchers.helpers import TestMatchersInterface

from txacmeclient.util import csr_for_names
from txacmeclient.test.doubles import EC_KEY
from txacmeclient.test.matchers import HasSubjectAltNames, ValidForName


class ValidForNameTests(TestMatchersInterface, TestCase):
    """
    `~txacmeclient.test.matchers.ValidForName` matches if a CSR/cert is valid
    for the given name.
    """
    matches_matcher = ValidForName(u'example.com')
    matches_matches = [
        csr_for_names([u'example.com'], EC_KEY.key),
        csr_for_names([u'example.invalid', u'example.com'], EC_KEY.key),
        csr_for_names([u'example.com', u'example.invalid'], EC_KEY.key),
        ]
    matches_mismatches = [
        csr_for_names([u'example.org'], EC_KEY.key),
        csr_for_names([u'example.net', u'example.info'], EC_KEY.key),
        csr_for_names([u'www.example.com'], EC_KEY.key),
        ]

    str_examples = [
        ('ValidForName({!r})'.format(u'example.com'),
         ValidForName(u'example.com')),
        ]
    describe_examples = []


class HasSubjectAltNamesTests(TestMatchersInterface, TestCase):
    """
    `~txacmeclient.test.matchers.HasSubjectAltNames` matches if a CSR/cert has
    exactly the given names.
    """
    matches_matcher = HasSubjectAltNames([u'a.example', u'b.example'])
    matches_matches = [
        csr_for_names([u'a.example', u'b.example'], EC_KEY.key),
        csr_for_names([u'b.example', u'a.example'], EC_KEY.key),
        ]
    matches_mismatches = [
        csr_for_names([u'a.example'], EC_KEY.key),
        csr_for_names([u'a.example', u'b.example', u'c.example'], EC_KEY.key),
        ]

    str_examples = [
        ("HasSubjectAltNames(['a.example', 'b.example'])",
         HasSubjectAltNames([u'b.example', u'a.example'])),
        ]
    describe_examples = [
        ("subjectAltNames ['a.example'] != ['a.example', 'b.example']",
         csr_for_names([u'a.example'], EC_KEY.key),
         HasSubjectAltNames([u'a.example', u'b.example'])),
        ]
