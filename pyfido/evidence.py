"""
evidence - peptide evidence and the protein-peptide association index
=====================================================================

Summary
-------

Peptide-level identifications come from an upstream scorer as a list of
:py:class:`PeptideEvidence` records. Each record carries a target/decoy label,
a score and the set of proteins the peptide maps to. Because a peptide may map
to several proteins, the relation is many-to-many; :py:class:`AssociationIndex`
inverts it, so that all evidence for a protein can be looked up by name.

Data access
-----------

  :py:class:`PeptideEvidence` - an immutable peptide evidence record.

  :py:class:`AssociationIndex` - a mapping of protein identifiers to the
  evidence records referencing them.

  :py:meth:`AssociationIndex.build` - build the index from a list of records.

  :py:meth:`AssociationIndex.max_peptide_fanout` - the largest number of distinct
  peptides supporting any protein in a set.

  :py:meth:`AssociationIndex.target_decoy_sets` - split proteins into true and false
  positives by the labels of their peptides.

Constants
---------

  :py:const:`TARGET_LABEL` - the label of target peptides.

-------------------------------------------------------------------------------
"""

#   Copyright 2012 Anton Goloborodko, Lev Levitsky
#
#   Licensed under the Apache License, Version 2.0 (the "License");
#   you may not use this file except in compliance with the License.
#   You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
#   Unless required by applicable law or agreed to in writing, software
#   distributed under the License is distributed on an "AS IS" BASIS,
#   WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#   See the License for the specific language governing permissions and
#   limitations under the License.

import re
from collections import namedtuple, Counter

TARGET_LABEL = 1

_flanked = re.compile(r'^[^.]\.(.+)\.[^.]$')


class PeptideEvidence(namedtuple('PeptideEvidence', ('peptide', 'label', 'score', 'proteins', 'psm'))):
    """A scored peptide with its candidate proteins.

    Attributes
    ----------
    peptide : str
        Peptide sequence, optionally with flanking residues (``'K.PEPTIDE.R'``).
    label : int
        1 for targets, anything else for decoys.
    score : float
        Posterior probability that the peptide is correctly identified.
    proteins : frozenset of str
        Identifiers of the proteins the peptide maps to.
    psm : object
        The peptide-spectrum match the peptide comes from, if any.
    """
    __slots__ = ()

    def __new__(cls, peptide, label, score, proteins, psm=None):
        if isinstance(proteins, str):
            proteins = (proteins,)
        return super(PeptideEvidence, cls).__new__(
            cls, peptide, int(label), float(score), frozenset(proteins), psm)

    @property
    def is_target(self):
        return self.label == TARGET_LABEL

    @property
    def sequence(self):
        """Peptide sequence without flanking residues."""
        m = _flanked.match(self.peptide)
        return m.group(1) if m else self.peptide


class AssociationIndex(object):
    """Mapping of protein identifiers to lists of :py:class:`PeptideEvidence`.

    Proteins are kept in the order they are first seen, scanning the records in
    input order and the proteins of each record in lexicographic order. The
    records themselves are referenced, not copied.
    """

    def __init__(self):
        self._proteins = {}
        self.peptide_counts = Counter()
        self.protein_counts = Counter()

    @classmethod
    def build(cls, evidence):
        """Create an index from an iterable of :py:class:`PeptideEvidence`."""
        index = cls()
        for record in evidence:
            index.register(record)
        return index

    def register(self, record):
        """Add one evidence record under each of its proteins."""
        self.peptide_counts[record.peptide] += 1
        for protein in sorted(record.proteins):
            self.protein_counts[protein] += 1
            self._proteins.setdefault(protein, []).append(record)

    def __getitem__(self, protein):
        return self._proteins[protein]

    def get(self, protein, default=None):
        return self._proteins.get(protein, default)

    def __contains__(self, protein):
        return protein in self._proteins

    def __iter__(self):
        return iter(self._proteins)

    def __len__(self):
        return len(self._proteins)

    def items(self):
        return self._proteins.items()

    def peptides(self, protein):
        """Distinct peptide sequences (without flanking residues) associated with `protein`."""
        return {record.sequence for record in self._proteins.get(protein, ())}

    def max_peptide_fanout(self, proteins):
        """Return the maximum number of distinct peptides associated with any
        of `proteins`. Unknown proteins count as having none.

        Parameters
        ----------
        proteins : iterable of str
            E.g. members of a protein group.

        Returns
        -------
        out : int
        """
        return max((len(self.peptides(p)) for p in proteins), default=0)

    def target_decoy_sets(self):
        """Split the indexed proteins by the labels of their peptides.

        A protein is a true positive if any of its peptides is a target, and a
        false positive if any of its peptides is a decoy. A protein supported
        by both kinds of peptides is in both lists.

        Returns
        -------
        out : tuple of lists
            ``(true_positives, false_positives)``, in index order.
        """
        true_positives, false_positives = [], []
        for protein, records in self._proteins.items():
            if any(r.is_target for r in records):
                true_positives.append(protein)
            if any(not r.is_target for r in records):
                false_positives.append(protein)
        return true_positives, false_positives

    def __repr__(self):
        return '{}({} proteins)'.format(type(self).__name__, len(self))
