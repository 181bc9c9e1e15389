import os
import codecs
from setuptools import setup, find_packages

HERE = os.path.abspath(os.path.dirname(__file__))


def read(*parts):
    with codecs.open(os.path.join(HERE, *parts), 'rb', 'utf-8') as f:
        return f.read()


setup(
    version='0.1.0',
    name='txacmeclient',
    description='Client for the original ACME protocol draft, for Twisted',
    license='Expat',
    long_description=read('README.rst'),
    packages=find_packages(where='src'),
    package_dir={'': 'src'},
    zip_safe=True,
    python_requires='>=3.7',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Natural Language :: English',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: Implementation :: CPython',
        'Programming Language :: Python :: Implementation :: PyPy',
        'Topic :: Software Development :: Libraries :: Python Modules',
        ],
    install_requires=[
        'attrs>=19.1.0',
        'cryptography>=2.5',
        'eliot>=1.7.0',
        'josepy>=1.11.0',
        'pem>=16.1.0',
        'pyopenssl>=17.1.0',
        'treq>=18.6.0',
        'twisted[tls]>=18.7.0',
        'zope.interface',
        ],
    extras_require={
        'test': [
            'fixtures>=1.4.0',
            'hypothesis>=4.0.0',
            'testtools>=2.3.0',
            ],
        },
    )
