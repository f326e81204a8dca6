"""pyfido - protein identification probabilities from peptide evidence."""

from .version import __version__
