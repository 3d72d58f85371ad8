#!/usr/bin/env python
""" A small object-document mapper with a string filter/sort DSL """

from setuptools import setup, find_packages

setup(
    name='docmodel',
    version='1.0.0',
    author='Mark Vartanyan',
    author_email='kolypto@gmail.com',

    license='BSD',
    description=__doc__,
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    keywords=['arangodb', 'sqlalchemy', 'odm'],

    packages=find_packages(exclude=('tests',)),
    scripts=[],
    entry_points={},

    python_requires='>= 3.8',
    install_requires=[
        'sqlalchemy[asyncio] >= 2.0',
        'aiosqlite',
        'pydantic >= 2.0',
    ],
    extras_require={
        'arango': ['python-arango >= 7.0'],
        'test': ['pytest', 'pytest-cov', 'nox'],
    },
    include_package_data=True,

    platforms='any',
    classifiers=[
        # https://pypi.python.org/pypi?%3Aaction=list_classifiers
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Natural Language :: English',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Topic :: Database',
        'Topic :: Software Development :: Libraries :: Python Modules',
    ],
)
