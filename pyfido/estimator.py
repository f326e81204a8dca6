"""
estimator - protein probabilities with automatic parameter selection
====================================================================

Summary
-------

:py:class:`ProteinProbEstimator` computes protein-level probabilities from
peptide evidence. It owns the :py:class:`~pyfido.evidence.AssociationIndex`
and the model parameters, runs the inference engine and exports the results.

The smoothing parameters `alpha` and `beta` of the model can be fixed by the
caller or selected by a grid search. For every cell of the grid, the engine is
run and the ranked output is scored against the target/decoy labels of the
peptides:

.. math::

    (1 - \\lambda) MSE_{FDR} - \\lambda ROC_{50},\\quad \\lambda = 0.15

where :math:`MSE_{FDR}` compares the estimated and empirical FDR up to 10%
estimated FDR and :math:`ROC_{50}` is the normalized area under the ROC curve up
to 50 false positives. The cell with the largest value wins; on ties, the
earlier cell is kept. `alpha` is searched over [0.01, 0.76] and `beta` over
[0, 0.8], both with a step of 0.05.

Classes
-------

  :py:class:`ProteinProbEstimator` - the estimator.

  :py:class:`DirectoryTracer` - write the intermediate arrays of every
  objective evaluation to text files.

Constants
---------

  :py:const:`ALPHA_RANGE`, :py:const:`BETA_RANGE`, :py:const:`GRID_STEP` - the search grid.

  :py:const:`DEFAULT_ALPHA`, :py:const:`DEFAULT_BETA` - parameters set by
  :py:meth:`ProteinProbEstimator.set_default_parameters`.

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

import os
import logging

import numpy as np

from . import auxiliary as aux, bigraph, output as _output
from .evidence import AssociationIndex

logger = logging.getLogger(__name__)

ALPHA_RANGE = (0.01, 0.76)
BETA_RANGE = (0.0, 0.80)
GRID_STEP = 0.05
DEFAULT_ALPHA = 0.1
DEFAULT_BETA = 0.01

UNINITIALIZED = 'uninitialized'
INITIALIZED = 'initialized'
SCORED = 'scored'


class DirectoryTracer(object):
    """Write the arrays used to compute the objective function into `path`.

    Files are overwritten on every evaluation, so after a grid search they
    describe the last evaluated cell:

      - ``out.txt`` - the ranked output;
      - ``TPFPlists.txt`` - false positives, then true positives;
      - ``FDRlists.txt`` - estimated, then empirical FDR;
      - ``ROC50lists.txt`` - false positive, then true positive counts.
    """
    _files = {'output': 'out.txt', 'positives': 'TPFPlists.txt',
              'fdr': 'FDRlists.txt', 'roc': 'ROC50lists.txt'}

    def __init__(self, path):
        self.path = path
        os.makedirs(path, exist_ok=True)

    def __call__(self, name, *rows):
        fname = os.path.join(self.path, self._files[name])
        if name == 'output':
            _output.write(rows[0], fname)
            return
        with open(fname, 'w') as f:
            for row in rows:
                f.write(' '.join(str(x) for x in row) + '\n')


class ProteinProbEstimator(object):
    """Protein probability estimator.

    Parameters
    ----------
    alpha, beta : float, optional
        Model parameters. Leave them :py:const:`~pyfido.auxiliary.UNASSIGNED`
        (default) to have them selected by grid search.
    gamma : float, optional
        Prior probability of a protein. Default is 0.5.
    engine : callable, keyword only, optional
        Called as ``engine(alpha_range, beta_range, gamma, **engine_kwargs)`` to
        create a new inference engine for every run. Default is
        :py:class:`~pyfido.bigraph.GroupPowerBigraph`.
    lambda_ : float, keyword only, optional
        Weight of ROC50 in the objective function. Default is 0.15.
    threshold : float, keyword only, optional
        Estimated FDR threshold for MSE_FDR. Default is 0.1.
    roc_n : int, keyword only, optional
        False positive limit for the ROC score. Default is 50.
    alpha_range, beta_range : tuple of float, keyword only, optional
        Bounds of the search grid (inclusive).
    step : float, keyword only, optional
        Grid resolution. Default is 0.05.
    policy : callable, keyword only, optional
        Ordering policy for grid points,
        see :py:func:`~pyfido.auxiliary.is_better`.
    tracer : callable, keyword only, optional
        Called as ``tracer(name, *arrays)`` with the intermediate results of every
        objective evaluation. See :py:class:`DirectoryTracer`.
    logger : logging.Logger, keyword only, optional
        Where to log progress. Default is the module logger.
    **kwargs
        Passed to `engine`.
    """

    def __init__(self, alpha=aux.UNASSIGNED, beta=aux.UNASSIGNED, gamma=aux.DEFAULT_GAMMA, **kwargs):
        self.alpha = alpha
        self.beta = beta
        self.gamma = gamma
        self.engine_factory = kwargs.pop('engine', bigraph.GroupPowerBigraph)
        self.lambda_ = kwargs.pop('lambda_', aux.LAMBDA)
        self.threshold = kwargs.pop('threshold', aux.FDR_THRESHOLD)
        self.roc_n = kwargs.pop('roc_n', aux.ROC_N)
        self.alpha_range = kwargs.pop('alpha_range', ALPHA_RANGE)
        self.beta_range = kwargs.pop('beta_range', BETA_RANGE)
        self.step = kwargs.pop('step', GRID_STEP)
        self.policy = kwargs.pop('policy', aux.strictly_greater)
        self.tracer = kwargs.pop('tracer', None)
        self.logger = kwargs.pop('logger', logger)
        self.engine_kwargs = kwargs
        self.evidence = None
        self.index = None
        self.engine = None
        self.output = None
        self.best_point = None
        self.search_history = []
        self.state = UNINITIALIZED

    @property
    def parameters(self):
        return aux.ModelParameters(self.alpha, self.beta, self.gamma)

    def set_default_parameters(self):
        """Set `alpha` and `beta` to defaults, so that no grid search is needed."""
        self.alpha = DEFAULT_ALPHA
        self.beta = DEFAULT_BETA

    def initialize(self, evidence):
        """Bind peptide evidence and build the association index.

        Parameters
        ----------
        evidence : list of PeptideEvidence
            Scored peptides. The list is referenced, not copied.

        Returns
        -------
        out : bool
            :py:const:`True` if a grid search is needed, i.e. `alpha` or `beta`
            is unassigned.
        """
        self.evidence = evidence
        self.index = AssociationIndex.build(evidence)
        self.output = None
        self.state = INITIALIZED
        self.logger.debug('Association index built for %d proteins', len(self.index))
        return not self.parameters.assigned

    def _check_initialized(self):
        if self.state == UNINITIALIZED:
            raise aux.FidoError('Estimator must be initialized with peptide evidence first')

    def run_inference(self):
        """Run the inference engine once with the current parameters.

        A new engine replaces the previous one.

        Returns
        -------
        out : InferenceOutput
        """
        self._check_initialized()
        if not self.parameters.assigned:
            raise aux.FidoError('alpha and beta must be assigned before inference', self.alpha, self.beta)
        self.engine = self.engine_factory(aux.RealRange(self.alpha, 1, self.alpha),
                aux.RealRange(self.beta, 1, self.beta), self.gamma, **self.engine_kwargs)
        self.engine.read(self.evidence)
        self.engine.get_protein_probs()
        return _output.build_output(self.engine.probabilities, self.engine.group_names)

    def calculate_protein_probabilities(self, grid_search=True):
        """Calculate protein probabilities.

        Parameters
        ----------
        grid_search : bool, optional
            If :py:const:`True` (default), select `alpha` and `beta` by
            :py:meth:`grid_search` first. Otherwise, use the current values.

        Returns
        -------
        out : InferenceOutput
        """
        self._check_initialized()
        if grid_search:
            self.logger.info('Estimating parameters for the model by grid search')
            self.grid_search()
            self.logger.info('Chosen parameters: alpha = %g, beta = %g', self.alpha, self.beta)
        self.output = self.run_inference()
        self.state = SCORED
        return self.output

    def _grid(self, fixed, bounds):
        if fixed != aux.UNASSIGNED:
            return np.array([fixed])
        return aux.RealRange(bounds[0], self.step, bounds[1]).values()

    def evaluate(self, output, true_positives, false_positives):
        """Calculate the objective function for `output`."""
        estimated, empirical = aux.fdr_curves(output, false_positives)
        mse = aux.mse_fdr(estimated, empirical, self.threshold)
        fps, tps = aux.roc(output, true_positives, false_positives)
        roc50 = aux.roc_n(fps, tps, self.roc_n)
        if self.tracer is not None:
            self.tracer('output', output)
            self.tracer('positives', false_positives, true_positives)
            self.tracer('fdr', estimated, empirical)
            self.tracer('roc', fps, tps)
        return aux.objective(mse, roc50, self.lambda_)

    def grid_search(self):
        """Select `alpha` and `beta` maximizing the objective function.

        Parameters fixed before the search are not varied. On return, `alpha` and
        `beta` are set to the best point found. If the search is interrupted by an
        exception, they are restored to their values before the search.

        Returns
        -------
        out : ModelParameters
        """
        self._check_initialized()
        alphas = self._grid(self.alpha, self.alpha_range)
        betas = self._grid(self.beta, self.beta_range)
        true_positives, false_positives = self.index.target_decoy_sets()
        best = aux.GridPoint(aux.UNASSIGNED, aux.UNASSIGNED, -np.finfo(np.float64).max)
        self.search_history = []
        initial = self.alpha, self.beta
        completed = False
        try:
            for a in alphas:
                for b in betas:
                    current = aux.GridPoint(float(a), float(b))
                    self.logger.debug('Testing performance with parameters: alpha = %g, beta = %g',
                            current.alpha, current.beta)
                    self.alpha, self.beta = current.alpha, current.beta
                    result = self.run_inference()
                    current = current.evaluated(self.evaluate(result, true_positives, false_positives),
                            true_positives, false_positives)
                    self.search_history.append((current.alpha, current.beta, current.objective))
                    self.logger.debug('Objective function value is: %g', current.objective)
                    if aux.is_better(current, best, self.policy):
                        self.logger.debug('Best choice of parameters so far')
                        best = current
            completed = True
        finally:
            if not completed:
                self.alpha, self.beta = initial
        self.best_point = best
        self.alpha, self.beta = best.alpha, best.beta
        return self.parameters

    def _check_scored(self):
        if self.output is None:
            raise aux.FidoError('Protein probabilities have not been calculated')

    def write_output(self, output=None, **kwargs):
        """Write the latest output as text. See :py:func:`pyfido.output.write`."""
        self._check_scored()
        return _output.write(self.output, output, **kwargs)

    def write_xml(self, output=None, **kwargs):
        """Append the latest output to an XML file. See :py:func:`pyfido.output.write_xml`."""
        self._check_scored()
        return _output.write_xml(self.output, output, self.index, **kwargs)

    def log_output(self, level=logging.INFO):
        """Log the latest output, one line per protein group."""
        self._check_scored()
        for pep, protein_ids, _ in self.output:
            self.logger.log(level, '%s', _output.format_line(pep, protein_ids))
