"""
bigraph - protein probabilities from a peptide-protein bipartite graph
======================================================================

Summary
-------

This module provides the reference inference engine used by
:py:class:`pyfido.estimator.ProteinProbEstimator`. The engine reads
:py:class:`~pyfido.evidence.PeptideEvidence` records, merges proteins that are
indistinguishable by their peptides into groups, splits the graph into
connected components and computes the marginal probability of each group
by exact summation over all configurations of present proteins.

The model has three parameters:

  - `gamma` - the prior probability that a protein is present;
  - `alpha` - the probability that a present protein emits a given peptide;
  - `beta` - the probability that a peptide is emitted by noise.

A peptide whose parents include `N` present proteins is emitted with probability
``1 - (1 - beta) * (1 - alpha) ** N``, and its score `s` enters the likelihood as
``s * e + (1 - s) * (1 - e)``, where `e` is the emission probability. The reported
probability of a group is the expected fraction of its members that are present.

If `alpha` or `beta` are given as ranges with several values, the marginals are
averaged over the grid, weighted by the evidence for each pair of values.

Classes
-------

  :py:class:`GroupPowerBigraph` - the engine. Call :py:meth:`~GroupPowerBigraph.read`,
  then :py:meth:`~GroupPowerBigraph.get_protein_probs`, then use
  :py:attr:`~GroupPowerBigraph.probabilities` and
  :py:attr:`~GroupPowerBigraph.group_names`.

Constants
---------

  :py:const:`LOG_MAX_ALLOWED_CONFIGURATIONS` - base-2 logarithm of the largest number of
  configurations enumerated for one component. Larger components are pruned.

  :py:const:`CHUNK_SIZE` - number of configurations evaluated at once against
  the peptides shared between groups.

Dependencies
------------

This module requires :py:mod:`numpy`.

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

import itertools
import logging
import math
from collections import Counter

import numpy as np

from .auxiliary import FidoError, RealRange, DEFAULT_GAMMA

logger = logging.getLogger(__name__)

LOG_MAX_ALLOWED_CONFIGURATIONS = 18
CHUNK_SIZE = 4096


def _as_range(value):
    if isinstance(value, RealRange):
        return value
    return RealRange(value, 1, value)


def _log2_configurations(names):
    return sum(math.log2(len(group) + 1) for group in names)


def _log_likelihood(scores, emitted):
    return np.log(scores * emitted + (1. - scores) * (1. - emitted))


class _Subgraph(object):
    """A connected component: protein groups and the peptides linking them.

    Peptides with a single parent group only depend on the state of that group,
    so they are reduced to a per-group table. Peptides shared by several groups
    are evaluated over all configurations, :py:const:`CHUNK_SIZE` rows at a time.
    """

    def __init__(self, names, scores, adjacency):
        self.names = names
        self.sizes = np.array([len(group) for group in names], dtype=np.int64)
        self.scores = np.asarray(scores, dtype=np.float64)
        # groups x peptides
        self.adjacency = np.asarray(adjacency, dtype=np.float64).reshape(len(names), self.scores.size)
        self.shared = self.adjacency.sum(axis=0) > 1
        self.owners = self.adjacency[:, ~self.shared].argmax(axis=0)

    @property
    def log2_configurations(self):
        return _log2_configurations(self.names)

    def states(self):
        return np.array(list(itertools.product(*[range(k + 1) for k in self.sizes])),
                dtype=np.float64).reshape(-1, self.sizes.size)

    def _private_table(self, alpha, beta):
        """Log-likelihood of the private peptides of each group (rows) for each
        number of present members (columns)."""
        emitted = 1. - (1. - beta) * (1. - alpha) ** np.arange(self.sizes.max() + 1)
        scores = self.scores[~self.shared][:, np.newaxis]
        table = np.zeros((self.sizes.size, emitted.size))
        np.add.at(table, self.owners, _log_likelihood(scores, emitted))
        return table

    def marginals(self, alpha, beta, gamma):
        """Return the per-group marginals and the log-evidence of the component."""
        states = self.states()
        sizes = self.sizes.astype(np.float64)
        log_factorial = np.array([math.lgamma(i + 1) for i in range(self.sizes.max() + 1)])
        m = states.astype(np.int64)
        log_binom = log_factorial[self.sizes] - log_factorial[m] - log_factorial[self.sizes - m]
        with np.errstate(divide='ignore'):
            log_prior = (log_binom + states * np.log(gamma)
                    + (sizes - states) * np.log(1. - gamma)).sum(axis=1)
            table = self._private_table(alpha, beta)
            log_joint = log_prior + table[np.arange(self.sizes.size), m].sum(axis=1)
            if self.shared.any():
                adjacency = self.adjacency[:, self.shared]
                scores = self.scores[self.shared]
                for start in range(0, states.shape[0], CHUNK_SIZE):
                    counts = states[start:start + CHUNK_SIZE].dot(adjacency)
                    emitted = 1. - (1. - beta) * (1. - alpha) ** counts
                    log_joint[start:start + CHUNK_SIZE] += _log_likelihood(scores, emitted).sum(axis=1)
        if not np.isfinite(log_joint.max()):
            logger.debug('No configuration explains component %s, falling back to the prior', self.names)
            log_joint = log_prior
        top = log_joint.max()
        weights = np.exp(log_joint - top)
        total = weights.sum()
        marginals = weights.dot(states / sizes) / total
        return marginals, top + np.log(total)


class GroupPowerBigraph(object):
    """Reference inference engine.

    Parameters
    ----------
    alpha, beta : float or RealRange
        Emission and noise parameters.
    gamma : float, optional
        Prior probability of a protein. Default is 0.5.
    log_max_configurations : float, keyword only, optional
        Components with more than ``2 ** log_max_configurations`` configurations
        are split by dropping the weakest of the peptides shared between groups.
        Default is :py:const:`LOG_MAX_ALLOWED_CONFIGURATIONS`.
    peptide_threshold : float, keyword only, optional
        Peptides scoring below this value are ignored. Default is 0.
    """

    def __init__(self, alpha, beta, gamma=DEFAULT_GAMMA, **kwargs):
        self.alpha = _as_range(alpha)
        self.beta = _as_range(beta)
        if not 0 < gamma < 1:
            raise FidoError('`gamma` must be between 0 and 1', gamma)
        self.gamma = gamma
        self.log_max_configurations = kwargs.pop('log_max_configurations', LOG_MAX_ALLOWED_CONFIGURATIONS)
        self.peptide_threshold = kwargs.pop('peptide_threshold', 0.)
        if kwargs:
            raise FidoError('Unknown engine options', sorted(kwargs))
        self.subgraphs = []
        self.probabilities = None
        self.group_names = None

    def read(self, evidence):
        """Build the graph from an iterable of :py:class:`~pyfido.evidence.PeptideEvidence`."""
        scores = []
        prot2pep = {}
        for record in evidence:
            if record.score < self.peptide_threshold:
                continue
            for protein in sorted(record.proteins):
                prot2pep.setdefault(protein, set()).add(len(scores))
            scores.append(min(max(record.score, 0.), 1.))

        groups = {}
        for protein, peptides in prot2pep.items():
            groups.setdefault(frozenset(peptides), []).append(protein)
        names = [tuple(sorted(proteins)) for proteins in groups.values()]
        peptide_sets = list(groups)
        self.subgraphs = []
        for component in self._components(peptide_sets):
            self._add_component([names[i] for i in component],
                    [peptide_sets[i] for i in component], scores)
        logger.debug('Read %d peptides, %d proteins in %d groups and %d subgraphs',
                len(scores), len(prot2pep), len(names), len(self.subgraphs))
        self.probabilities = None
        self.group_names = None

    @staticmethod
    def _components(peptide_sets):
        """Return lists of indices of groups connected through shared peptides."""
        parent = list(range(len(peptide_sets)))

        def find(i):
            while parent[i] != i:
                parent[i] = parent[parent[i]]
                i = parent[i]
            return i

        owner = {}
        for i, peptides in enumerate(peptide_sets):
            for pep in peptides:
                if pep in owner:
                    a, b = find(i), find(owner[pep])
                    if a != b:
                        parent[max(a, b)] = min(a, b)
                else:
                    owner[pep] = i
        components = {}
        for i in range(len(peptide_sets)):
            components.setdefault(find(i), []).append(i)
        return list(components.values())

    @staticmethod
    def _subgraph(names, peptide_sets, scores):
        peptides = sorted(set().union(*peptide_sets))
        column = {pep: j for j, pep in enumerate(peptides)}
        adjacency = np.zeros((len(names), len(peptides)))
        for i, group in enumerate(peptide_sets):
            for pep in group:
                adjacency[i, column[pep]] = 1.
        return _Subgraph(names, [scores[p] for p in peptides], adjacency)

    def _add_component(self, names, peptide_sets, scores):
        pending = [(names, peptide_sets)]
        while pending:
            names, peptide_sets = pending.pop()
            parents = Counter(pep for group in peptide_sets for pep in group)
            shared = [pep for pep, n in parents.items() if n > 1]
            if _log2_configurations(names) <= self.log_max_configurations or not shared:
                self.subgraphs.append(self._subgraph(names, peptide_sets, scores))
                continue
            # drop the weakest shared peptide and split whatever falls apart
            weakest = min(shared, key=lambda p: (scores[p], -p))
            logger.debug('Pruning peptide with score %g from a component of %d groups',
                    scores[weakest], len(names))
            pruned = [group - {weakest} for group in peptide_sets]
            for component in self._components(pruned):
                pending.append(([names[i] for i in component], [pruned[i] for i in component]))

    def get_protein_probs(self):
        """Compute the marginal probability of every protein group."""
        alphas = self.alpha.values()
        betas = self.beta.values()
        runs = []
        for a, b in itertools.product(alphas, betas):
            marginals, log_evidence = [], 0.
            for subgraph in self.subgraphs:
                m, e = subgraph.marginals(a, b, self.gamma)
                marginals.append(m)
                log_evidence += e
            runs.append((np.concatenate(marginals) if marginals else np.array([]), log_evidence))

        log_evidence = np.array([e for _, e in runs])
        weights = np.exp(log_evidence - log_evidence.max())
        weights /= weights.sum()
        probabilities = sum(w * m for w, (m, _) in zip(weights, runs))
        self.probabilities = np.clip(probabilities, 0., 1.)
        self.group_names = [list(name) for subgraph in self.subgraphs for name in subgraph.names]
        return self.probabilities
