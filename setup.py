#!/usr/bin/env python

'''
setup.py file for pyfido
'''

from setuptools import setup
import re
import os


# from https://packaging.python.org/guides/single-sourcing-package-version/

def read(rel_path):
    here = os.path.abspath(os.path.dirname(__file__))
    with open(os.path.join(here, rel_path), 'r') as fp:
        return fp.read()


def get_version(rel_path):
    for line in read(rel_path).splitlines():
        if line.startswith('__version__'):
            delim = '"' if '"' in line else "'"
            return line.split(delim)[1]
    else:
        raise RuntimeError("Unable to find version string.")


long_description = re.sub(r':py:\w+:`([^`]+)`',
        lambda m: '**{}**'.format(m.group(1)),
        read('README.rst'))


extras_require = {'graphics': ['matplotlib'],
                  'DF': ['pandas>=0.17']}
extras_require['all'] = sum(extras_require.values(), [])
extras_require['test'] = extras_require['all'] + ['pytest']


setup(
    name               = 'pyfido',
    version            = get_version('pyfido/version.py'),
    description        = 'Protein inference from scored peptides with automatic parameter selection.',
    long_description   = long_description,
    author             = 'Anton Goloborodko & Lev Levitsky',
    packages           = ['pyfido', 'pyfido.auxiliary'],
    install_requires   = ['numpy', 'lxml'],
    extras_require     = extras_require,
    python_requires    = '>=3.8',
    classifiers        = ['Intended Audience :: Science/Research',
                          'Programming Language :: Python :: 3',
                          'Topic :: Scientific/Engineering :: Bio-Informatics',
                          'Topic :: Software Development :: Libraries'],
    license            = 'License :: OSI Approved :: Apache Software License',
    zip_safe           = False,
    )
