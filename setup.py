#!/usr/bin/env python

from setuptools import setup, find_packages

PROJECT = 'dstack-backend'

# Change dstack_backend/__init__.py too!
VERSION = '1.0.0'

try:
    long_description = open('README.rst', 'rt').read()
except IOError:
    long_description = ''

setup(
    name=PROJECT,
    version=VERSION,
    description='Registered health monitor for dstack GPU worker nodes',
    long_description=long_description,

    license='open source (see LICENSE)',
    classifiers=['Programming Language :: Python',
                 'Environment :: Console',
                 ],
    platforms=['Any'],
    scripts=[],
    provides=[],
    python_requires='>=3.9',
    install_requires=['click',
                      'psutil',
                      'aiohttp',
                      'tabulate',
                      'yarl',
                      'cryptography'],
    extras_require={
        'test': ['nose2',
                 'pytest'],
    },
    test_suite='tests',
    namespace_packages=[],
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,

    entry_points={
        'console_scripts': [
            'dstack-node = dstack_backend.cli:main',
            'dstack-backend = dstack_backend.daemon:main',
            'whitelist-service = dstack_backend.whitelist_service:main',
        ]
    },
    zip_safe=False,
)
