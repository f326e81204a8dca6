"""
version - pyfido version information
====================================

Constants
---------

  :py:const:`version` - a string with the current version.

  :py:const:`version_info` - a comparable tuple of the version components.

"""

__version__ = '0.3.0'

from collections import namedtuple
import re


class VersionInfo(namedtuple('VersionInfo', ('major', 'minor', 'micro', 'releaselevel'))):
    """Version tuple that compares with other tuples and version strings."""
    __slots__ = ()

    def __new__(cls, version_str):
        major, minor, micro, level = re.match(
            r'(\d+)\.(\d+)(?:\.(\d+))?([a-zA-Z]+\d*)?', version_str).groups()
        return super(VersionInfo, cls).__new__(cls, int(major), int(minor), int(micro or 0), level or '')

    def __str__(self):
        return 'Version {}.{}.{}{}'.format(*self)

    def _key(self, other):
        if not isinstance(other, VersionInfo):
            other = VersionInfo(other)
        return tuple(self[:3]), tuple(other[:3])

    def __lt__(self, other):
        a, b = self._key(other)
        return a < b

    def __gt__(self, other):
        a, b = self._key(other)
        return a > b

    def __le__(self, other):
        return not self > other

    def __ge__(self, other):
        return not self < other


version_info = VersionInfo(__version__)
version = __version__
