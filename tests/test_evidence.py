import unittest

from pyfido.evidence import PeptideEvidence, AssociationIndex
from data import simple_evidence, shared_evidence


class PeptideEvidenceTest(unittest.TestCase):
    def test_sequence(self):
        self.assertEqual(simple_evidence[0].sequence, 'PEPTIDER')
        self.assertEqual(PeptideEvidence('PEPTIDE', 1, 0.5, {'X'}).sequence, 'PEPTIDE')

    def test_labels(self):
        self.assertTrue(simple_evidence[0].is_target)
        self.assertFalse(simple_evidence[1].is_target)
        self.assertFalse(PeptideEvidence('PEP', 0, 0.5, {'X'}).is_target)

    def test_proteins_unique(self):
        e = PeptideEvidence('PEP', 1, 0.5, ['X', 'Y', 'X'])
        self.assertEqual(e.proteins, frozenset({'X', 'Y'}))
        self.assertEqual(PeptideEvidence('PEP', 1, 0.5, 'X').proteins, frozenset({'X'}))

    def test_immutable(self):
        with self.assertRaises(AttributeError):
            simple_evidence[0].score = 0.1


class AssociationIndexTest(unittest.TestCase):
    def setUp(self):
        self.index = AssociationIndex.build(shared_evidence)

    def test_simple(self):
        index = AssociationIndex.build(simple_evidence)
        self.assertEqual(list(index), ['P1', 'P2'])
        self.assertEqual(len(index['P1']), 1)
        self.assertIs(index['P1'][0], simple_evidence[0])
        self.assertIs(index['P2'][0], simple_evidence[1])

    def test_every_protein_is_a_key(self):
        proteins = set().union(*(e.proteins for e in shared_evidence))
        self.assertEqual(set(self.index), proteins)
        self.assertEqual(len(self.index), len(proteins))

    def test_fanout(self):
        self.assertEqual(self.index['A'], shared_evidence[:3])
        self.assertEqual(self.index['B'], shared_evidence[:1])
        self.assertEqual(self.index['C'], self.index['D'])

    def test_order(self):
        self.assertEqual(list(self.index), ['A', 'B', 'C', 'D', 'MIX'])

    def test_max_peptide_fanout(self):
        self.assertEqual(self.index.max_peptide_fanout({'A'}), 3)
        self.assertEqual(self.index.max_peptide_fanout({'A', 'B'}), 3)
        self.assertEqual(self.index.max_peptide_fanout(['B']), 1)
        self.assertEqual(self.index.max_peptide_fanout({'C', 'D'}), 2)
        self.assertEqual(self.index.max_peptide_fanout({'unknown'}), 0)
        self.assertEqual(self.index.max_peptide_fanout(set()), 0)

    def test_fanout_counts_distinct_peptides(self):
        evidence = [PeptideEvidence('PEP', 1, 0.5, {'X'}), PeptideEvidence('PEP', 1, 0.7, {'X'})]
        index = AssociationIndex.build(evidence)
        self.assertEqual(len(index['X']), 2)
        self.assertEqual(index.max_peptide_fanout({'X'}), 1)
        self.assertEqual(index.peptide_counts['PEP'], 2)

    def test_fanout_ignores_flanks(self):
        evidence = [PeptideEvidence('K.PEP.R', 1, 0.5, {'X'}), PeptideEvidence('R.PEP.K', 1, 0.7, {'X'}),
                    PeptideEvidence('K.OTHER.R', 1, 0.7, {'X'})]
        index = AssociationIndex.build(evidence)
        self.assertEqual(index.peptides('X'), {'PEP', 'OTHER'})
        self.assertEqual(index.max_peptide_fanout({'X'}), 2)

    def test_target_decoy_sets(self):
        tp, fp = self.index.target_decoy_sets()
        self.assertEqual(tp, ['A', 'B', 'C', 'D', 'MIX'])
        self.assertEqual(fp, ['MIX'])

    def test_target_decoy_sets_simple(self):
        tp, fp = AssociationIndex.build(simple_evidence).target_decoy_sets()
        self.assertEqual(tp, ['P1'])
        self.assertEqual(fp, ['P2'])

    def test_register(self):
        index = AssociationIndex()
        for e in shared_evidence:
            index.register(e)
        self.assertEqual(dict(index.items()), dict(self.index.items()))
        self.assertEqual(index.protein_counts['A'], 3)
        self.assertEqual(index.protein_counts['C'], 2)

    def test_get(self):
        self.assertIsNone(self.index.get('unknown'))
        self.assertIn('MIX', self.index)
        self.assertNotIn('unknown', self.index)


if __name__ == '__main__':
    unittest.main()
