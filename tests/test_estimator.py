import io
import os
import shutil
import logging
import tempfile
import unittest
import numpy as np

from pyfido import estimator, auxiliary as aux
from pyfido.estimator import ProteinProbEstimator, DirectoryTracer
from data import simple_evidence, simple_probabilities, simple_groups, synthetic_evidence


class StubEngine(object):
    """Returns fixed probabilities regardless of the parameters."""
    instances = []

    def __init__(self, alpha, beta, gamma, probabilities=simple_probabilities, groups=simple_groups):
        self.alpha = alpha
        self.beta = beta
        self.gamma = gamma
        self._probabilities = probabilities
        self._groups = groups
        self.evidence = None
        StubEngine.instances.append(self)

    def read(self, evidence):
        self.evidence = evidence

    def get_protein_probs(self):
        self.probabilities = list(self._probabilities)
        self.group_names = [list(g) for g in self._groups]


class EstimatorTest(unittest.TestCase):
    def setUp(self):
        StubEngine.instances = []

    def test_simple(self):
        est = ProteinProbEstimator(0.1, 0.01, engine=StubEngine)
        self.assertEqual(est.state, estimator.UNINITIALIZED)
        self.assertFalse(est.initialize(simple_evidence))
        self.assertEqual(est.state, estimator.INITIALIZED)
        self.assertIs(est.index['P1'][0], simple_evidence[0])
        self.assertIs(est.index['P2'][0], simple_evidence[1])
        out = est.calculate_protein_probabilities(False)
        self.assertEqual(est.state, estimator.SCORED)
        self.assertIs(est.output, out)
        self.assertTrue(np.allclose(out.peps, [0.9, 0.2]))
        self.assertTrue(np.allclose(out.qvalues, [0.9, 0.55]))
        self.assertEqual(out.protein_ids, [('P1',), ('P2',)])
        tp, fp = est.index.target_decoy_sets()
        self.assertEqual(tp, ['P1'])
        self.assertEqual(fp, ['P2'])

    def test_engine_arguments(self):
        est = ProteinProbEstimator(0.1, 0.01, gamma=0.3, engine=StubEngine)
        est.initialize(simple_evidence)
        est.calculate_protein_probabilities(False)
        engine = StubEngine.instances[-1]
        self.assertIs(est.engine, engine)
        self.assertEqual(engine.alpha, aux.RealRange(0.1, 1, 0.1))
        self.assertEqual(engine.beta, aux.RealRange(0.01, 1, 0.01))
        self.assertEqual(engine.gamma, 0.3)
        self.assertIs(engine.evidence, simple_evidence)

    def test_engine_replaced(self):
        est = ProteinProbEstimator(0.1, 0.01, engine=StubEngine)
        est.initialize(simple_evidence)
        est.run_inference()
        first = est.engine
        est.run_inference()
        self.assertIsNot(est.engine, first)
        self.assertEqual(len(StubEngine.instances), 2)

    def test_engine_kwargs(self):
        est = ProteinProbEstimator(0.1, 0.01, engine=StubEngine,
                probabilities=[0.1, 0.3], groups=[['X'], ['Y']])
        est.initialize(simple_evidence)
        out = est.calculate_protein_probabilities(False)
        self.assertEqual(out.protein_ids, [('Y',), ('X',)])

    def test_needs_grid_search(self):
        self.assertTrue(ProteinProbEstimator().initialize(simple_evidence))
        self.assertTrue(ProteinProbEstimator(alpha=0.1).initialize(simple_evidence))
        self.assertTrue(ProteinProbEstimator(beta=0.1).initialize(simple_evidence))
        est = ProteinProbEstimator()
        est.set_default_parameters()
        self.assertFalse(est.initialize(simple_evidence))
        self.assertEqual(est.parameters, (0.1, 0.01, 0.5))

    def test_uninitialized(self):
        est = ProteinProbEstimator(0.1, 0.01, engine=StubEngine)
        self.assertRaises(aux.FidoError, est.calculate_protein_probabilities)
        self.assertRaises(aux.FidoError, est.calculate_protein_probabilities, False)
        self.assertRaises(aux.FidoError, est.run_inference)
        self.assertRaises(aux.FidoError, est.grid_search)

    def test_unassigned(self):
        est = ProteinProbEstimator(alpha=0.1, engine=StubEngine)
        est.initialize(simple_evidence)
        self.assertRaises(aux.FidoError, est.run_inference)
        self.assertRaises(aux.FidoError, est.calculate_protein_probabilities, False)
        self.assertEqual(StubEngine.instances, [])

    def test_not_scored(self):
        est = ProteinProbEstimator(0.1, 0.01, engine=StubEngine)
        est.initialize(simple_evidence)
        self.assertRaises(aux.FidoError, est.write_output, io.StringIO())
        self.assertRaises(aux.FidoError, est.write_xml, io.StringIO())
        self.assertRaises(aux.FidoError, est.log_output)


class GridSearchTest(unittest.TestCase):
    def setUp(self):
        StubEngine.instances = []

    def test_fixed(self):
        est = ProteinProbEstimator(0.26, 0.35, engine=StubEngine)
        est.initialize(simple_evidence)
        params = est.grid_search()
        self.assertEqual(len(est.search_history), 1)
        self.assertEqual(len(StubEngine.instances), 1)
        self.assertEqual((params.alpha, params.beta), (0.26, 0.35))
        self.assertEqual((est.alpha, est.beta), (0.26, 0.35))

    def test_full_sweep(self):
        est = ProteinProbEstimator(engine=StubEngine)
        est.initialize(simple_evidence)
        est.grid_search()
        alphas = sorted({a for a, b, v in est.search_history})
        betas = sorted({b for a, b, v in est.search_history})
        self.assertEqual(len(est.search_history), 272)
        self.assertEqual(len(alphas), 16)
        self.assertEqual(len(betas), 17)
        self.assertAlmostEqual(alphas[0], 0.01)
        self.assertAlmostEqual(alphas[-1], 0.76)
        self.assertAlmostEqual(betas[0], 0.0)
        self.assertAlmostEqual(betas[-1], 0.80)

    def test_order(self):
        est = ProteinProbEstimator(alpha_range=(0.01, 0.11), beta_range=(0, 0.05), engine=StubEngine)
        est.initialize(simple_evidence)
        est.grid_search()
        cells = [(round(a, 2), round(b, 2)) for a, b, v in est.search_history]
        self.assertEqual(cells, [(0.01, 0.0), (0.01, 0.05), (0.06, 0.0), (0.06, 0.05),
            (0.11, 0.0), (0.11, 0.05)])

    def test_ties(self):
        est = ProteinProbEstimator(engine=StubEngine)
        est.initialize(simple_evidence)
        params = est.grid_search()
        self.assertEqual(len({v for a, b, v in est.search_history}), 1)
        self.assertAlmostEqual(params.alpha, 0.01)
        self.assertEqual(params.beta, 0.0)
        self.assertAlmostEqual(est.best_point.objective, -0.15)

    def test_policy(self):
        est = ProteinProbEstimator(engine=StubEngine, policy=lambda x, y: x >= y)
        est.initialize(simple_evidence)
        params = est.grid_search()
        self.assertAlmostEqual(params.alpha, 0.76)
        self.assertAlmostEqual(params.beta, 0.80)

    def test_fixed_alpha(self):
        est = ProteinProbEstimator(alpha=0.3, engine=StubEngine)
        est.initialize(simple_evidence)
        est.grid_search()
        self.assertEqual(len(est.search_history), 17)
        self.assertEqual({a for a, b, v in est.search_history}, {0.3})

    def test_fixed_beta(self):
        est = ProteinProbEstimator(beta=0.3, engine=StubEngine)
        est.initialize(simple_evidence)
        est.grid_search()
        self.assertEqual(len(est.search_history), 16)
        self.assertEqual({b for a, b, v in est.search_history}, {0.3})
        self.assertEqual(est.beta, 0.3)

    def test_best(self):
        class AlphaEngine(StubEngine):
            # the decoy is ranked first only at alpha = 0.31
            def get_protein_probs(self):
                special = abs(self.alpha.low - 0.31) < 1e-6
                self.probabilities = [0.2, 0.9] if special else [0.9, 0.2]
                self.group_names = [['P1'], ['P2']]

        est = ProteinProbEstimator(beta=0.0, engine=AlphaEngine)
        est.initialize(simple_evidence)
        params = est.grid_search()
        self.assertAlmostEqual(params.alpha, 0.31)
        self.assertEqual(est.best_point.objective, max(v for a, b, v in est.search_history))
        self.assertEqual(est.best_point.true_positives, ('P1',))
        self.assertEqual(est.best_point.false_positives, ('P2',))

    def test_failed_search_restores_parameters(self):
        class FailingEngine(StubEngine):
            def get_protein_probs(self):
                if len(StubEngine.instances) == 3:
                    raise RuntimeError('engine failure')
                super(FailingEngine, self).get_protein_probs()

        est = ProteinProbEstimator(beta=0.2, engine=FailingEngine)
        est.initialize(simple_evidence)
        self.assertRaises(RuntimeError, est.grid_search)
        self.assertEqual(est.alpha, aux.UNASSIGNED)
        self.assertEqual(est.beta, 0.2)
        self.assertTrue(est.initialize(simple_evidence))

    def test_calculate_with_search(self):
        est = ProteinProbEstimator(engine=StubEngine, alpha_range=(0.01, 0.11), beta_range=(0, 0.05))
        self.assertTrue(est.initialize(simple_evidence))
        out = est.calculate_protein_probabilities()
        self.assertEqual(len(StubEngine.instances), 7)
        self.assertEqual(est.state, estimator.SCORED)
        self.assertTrue(est.parameters.assigned)
        self.assertTrue(np.allclose(out.qvalues, [0.9, 0.55]))

    def test_real_engine(self):
        est = ProteinProbEstimator(alpha_range=(0.01, 0.11), beta_range=(0, 0.05))
        est.initialize(synthetic_evidence)
        out = est.calculate_protein_probabilities()
        self.assertIn(round(est.alpha, 2), {0.01, 0.06, 0.11})
        self.assertIn(round(est.beta, 2), {0.0, 0.05})
        self.assertEqual(len(out), 40)
        self.assertTrue(all(ids[0].startswith('TARGET') for ids in out.protein_ids[:30]))
        self.assertTrue(all(ids[0].startswith('DECOY') for ids in out.protein_ids[30:]))
        self.assertTrue(aux.is_monotonic(out.qvalues))


class OutputTest(unittest.TestCase):
    def setUp(self):
        self.est = ProteinProbEstimator(0.1, 0.01, engine=StubEngine)
        self.est.initialize(simple_evidence)
        self.est.calculate_protein_probabilities(False)
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_write_output(self):
        stream = io.StringIO()
        self.est.write_output(stream)
        self.assertEqual(stream.getvalue(), '0.9 P1\n0.2 P2\n')

    def test_write_xml(self):
        fname = os.path.join(self.tmpdir, 'out.xml')
        self.est.write_xml(fname)
        with open(fname) as f:
            text = f.read()
        self.assertIn('<peptide_seq seq="PEPTIDER"/>', text)
        self.assertIn('<q_value>0.55</q_value>', text)

    def test_log_output(self):
        with self.assertLogs('pyfido.estimator', level='INFO') as cm:
            self.est.log_output()
        self.assertEqual([r.getMessage() for r in cm.records], ['0.9 P1', '0.2 P2'])

    def test_custom_logger(self):
        log = logging.getLogger('custom.fido')
        est = ProteinProbEstimator(0.1, 0.01, engine=StubEngine, logger=log)
        est.initialize(simple_evidence)
        with self.assertLogs('custom.fido', level='DEBUG') as cm:
            est.calculate_protein_probabilities(True)
        messages = [r.getMessage() for r in cm.records]
        self.assertIn('Testing performance with parameters: alpha = 0.1, beta = 0.01', messages)
        self.assertIn('Chosen parameters: alpha = 0.1, beta = 0.01', messages)

    def test_tracer(self):
        path = os.path.join(self.tmpdir, 'trace')
        est = ProteinProbEstimator(0.1, 0.01, engine=StubEngine, tracer=DirectoryTracer(path))
        est.initialize(simple_evidence)
        est.calculate_protein_probabilities()
        self.assertEqual(sorted(os.listdir(path)),
                ['FDRlists.txt', 'ROC50lists.txt', 'TPFPlists.txt', 'out.txt'])
        with open(os.path.join(path, 'TPFPlists.txt')) as f:
            self.assertEqual(f.read(), 'P2\nP1\n')
        with open(os.path.join(path, 'ROC50lists.txt')) as f:
            self.assertEqual(f.read(), '0 0 1\n0 1 1\n')
        with open(os.path.join(path, 'out.txt')) as f:
            self.assertEqual(f.read(), '0.9 P1\n0.2 P2\n')

    def test_callable_tracer(self):
        calls = []
        est = ProteinProbEstimator(0.1, 0.01, engine=StubEngine,
                tracer=lambda name, *rows: calls.append(name))
        est.initialize(simple_evidence)
        est.calculate_protein_probabilities(False)
        self.assertEqual(calls, [])
        est.calculate_protein_probabilities(True)
        self.assertEqual(calls, ['output', 'positives', 'fdr', 'roc'])


if __name__ == '__main__':
    unittest.main()
