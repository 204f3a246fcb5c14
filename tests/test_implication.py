"""
Tests for gate interval construction and implication.
"""

from affectdiag.core.gates import parse_gate
from affectdiag.overlap.implication import GateImplicationEvaluator, Interval, build_intervals


def intervals(*gates):
    return build_intervals([parse_gate(g) for g in gates])


class TestIntervals:

    def test_fold_bounds(self):
        result = intervals('valence >= 0.2', 'valence > 0.3', 'valence <= 0.8')['valence']
        assert (result.lower, result.lower_open) == (0.3, True)
        assert (result.upper, result.upper_open) == (0.8, False)
        assert not result.unsatisfiable

    def test_unsatisfiable(self):
        assert intervals('valence >= 0.5', 'valence < 0.5')['valence'].unsatisfiable
        assert intervals('valence >= 0.6', 'valence <= 0.4')['valence'].unsatisfiable

    def test_open_bound_subset(self):
        """(0.5, inf) is inside [0.5, inf) but not the reverse."""
        open_i = Interval(lower=0.5, lower_open=True)
        closed_i = Interval(lower=0.5)
        assert open_i.is_subset_of(closed_i)
        assert not closed_i.is_subset_of(open_i)


class TestGateImplicationEvaluator:

    def test_narrower(self):
        result = GateImplicationEvaluator().evaluate(
            intervals('valence >= 0.5', 'threat <= 0.2'),
            intervals('valence >= 0.2'),
        )
        assert result.a_implies_b and not result.b_implies_a
        assert result.relation == 'narrower'
        assert result.counter_example_axes == []
        assert not result.is_vacuous

    def test_wider(self):
        result = GateImplicationEvaluator().evaluate(intervals('valence >= 0.2'), intervals('valence >= 0.5'))
        assert result.relation == 'wider'
        assert result.counter_example_axes == ['valence']

    def test_equal(self):
        result = GateImplicationEvaluator().evaluate(intervals('valence >= 0.2'), intervals('valence >= 0.2'))
        assert result.relation == 'equal'

    def test_disjoint_and_touching(self):
        evaluator = GateImplicationEvaluator()
        assert evaluator.evaluate(intervals('valence >= 0.6'), intervals('valence <= 0.4')).relation == 'disjoint'
        assert evaluator.evaluate(intervals('valence >= 0.5'), intervals('valence <= 0.5')).relation == 'overlapping'

    def test_vacuous(self):
        """An unsatisfiable side implies everything and is flagged."""
        result = GateImplicationEvaluator().evaluate(
            intervals('valence >= 0.6', 'valence <= 0.4'),
            intervals('threat >= 0.9'),
        )
        assert result.a_implies_b
        assert result.is_vacuous

    def test_evidence_covers_union(self):
        result = GateImplicationEvaluator().evaluate(intervals('valence >= 0.2'), intervals('threat <= 0.3'))
        assert [e['axis'] for e in result.evidence] == ['threat', 'valence']
        assert result.relation == 'overlapping'
