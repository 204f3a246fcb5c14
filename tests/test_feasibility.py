"""
Tests for clause extraction and three-tier feasibility classification.
"""

import math

import pytest
from hypothesis import given, settings, strategies as st

from affectdiag.core.random_context import RandomContextGenerator
from affectdiag.diagnostics.clauses import NonAxisClauseExtractor, clause_domain
from affectdiag.diagnostics.feasibility import FeasibilityAnalyzer, is_structurally_impossible
from affectdiag.models import FeasibilityClass, SignalKind


POOL = [
    {'emotions': {'joy': v, 'fear': 0.1}, 'previousEmotions': {'joy': p}, 'moodAxes': {'valence': 10}}
    for v, p in [(0.1, 0.0), (0.3, 0.2), (0.5, 0.1), (0.7, 0.6)]
]


def _prereq(logic):
    return [{'logic': logic}]


class TestClauseExtraction:

    def test_raw_and_delta(self):
        clauses = NonAxisClauseExtractor().extract([
            {'logic': {'>=': [{'var': 'emotions.joy'}, 0.4]}},
            {'logic': {'>=': [{'-': [{'var': 'emotions.joy'}, {'var': 'previousEmotions.joy'}]}, 0.2]}},
        ])
        assert [c.signal for c in clauses] == [SignalKind.RAW, SignalKind.DELTA]
        assert clauses[1].variable_path == 'emotions.joy'
        assert clauses[1].previous_path == 'previousEmotions.joy'
        assert clauses[1].clause_index == 1

    def test_axis_clauses_skipped_by_default(self):
        prereqs = _prereq({'and': [
            {'>=': [{'var': 'moodAxes.valence'}, 20]},
            {'<=': [{'var': 'emotions.fear'}, 0.3]},
        ]})
        assert [c.variable_path for c in NonAxisClauseExtractor().extract(prereqs)] == ['emotions.fear']
        assert len(NonAxisClauseExtractor(include_axis_clauses=True).extract(prereqs)) == 2

    def test_malformed_prerequisite_skipped(self):
        assert NonAxisClauseExtractor().extract(_prereq({'nope': []})) == []

    def test_delta_domain_widens(self):
        clause = NonAxisClauseExtractor().extract(
            _prereq({'>=': [{'-': [{'var': 'emotions.joy'}, {'var': 'previousEmotions.joy'}]}, 0.2]})
        )[0]
        assert clause_domain(clause) == (-1.0, 1.0)


class TestFeasibility:

    def test_ok_clause(self):
        result = FeasibilityAnalyzer().analyze(_prereq({'>=': [{'var': 'emotions.joy'}, 0.4]}), POOL, 'e')[0]
        assert result.classification == FeasibilityClass.OK
        assert result.pass_rate == 0.5
        assert result.max_value == pytest.approx(0.7)
        assert result.min_value == pytest.approx(0.1)
        assert result.expression_id == 'e'

    def test_theoretically_impossible(self):
        """Threshold above the emotion domain can never pass."""
        result = FeasibilityAnalyzer().analyze(_prereq({'>': [{'var': 'emotions.joy'}, 1.0]}), POOL)[0]
        assert result.classification == FeasibilityClass.THEORETICALLY_IMPOSSIBLE
        assert result.pass_rate == 0.0

    def test_empirically_unreachable(self):
        """Reachable in principle, never observed in this pool."""
        result = FeasibilityAnalyzer().analyze(_prereq({'>=': [{'var': 'emotions.joy'}, 0.9]}), POOL)[0]
        assert result.classification == FeasibilityClass.EMPIRICALLY_UNREACHABLE

    def test_delta_clause(self):
        logic = {'>=': [{'-': [{'var': 'emotions.joy'}, {'var': 'previousEmotions.joy'}]}, 0.3]}
        result = FeasibilityAnalyzer().analyze(_prereq(logic), POOL)[0]
        assert result.signal == SignalKind.DELTA
        assert result.pass_rate == 0.25
        assert result.max_value == pytest.approx(0.4)

    @pytest.mark.parametrize('op,threshold', [
        ('>=', 0.7), ('>', 0.6), ('>', 0.7), ('<=', 0.1), ('<', 0.1), ('>=', 0.05), ('<', 0.9),
    ])
    def test_pass_rate_consistent_with_extremes(self, op, threshold):
        """Pass rate and observed extremes never contradict each other."""
        result = FeasibilityAnalyzer().analyze(_prereq({op: [{'var': 'emotions.joy'}, threshold]}), POOL)[0]
        if op in ('>=', '>'):
            reaches = result.max_value >= threshold if op == '>=' else result.max_value > threshold
        else:
            reaches = result.min_value <= threshold if op == '<=' else result.min_value < threshold
        assert (result.pass_rate > 0) == reaches
        if result.pass_rate > 0:
            assert result.classification == FeasibilityClass.OK

    def test_missing_values(self):
        result = FeasibilityAnalyzer().analyze(_prereq({'>=': [{'var': 'emotions.grief'}, 0.1]}), POOL)[0]
        assert result.pass_rate == 0.0
        assert math.isnan(result.max_value)

    def test_structural_bounds(self):
        assert is_structurally_impossible('>=', 1.2, 0.0, 1.0)
        assert is_structurally_impossible('>', 1.0, 0.0, 1.0)
        assert not is_structurally_impossible('>=', 1.0, 0.0, 1.0)
        assert is_structurally_impossible('<', 0.0, 0.0, 1.0)


class TestGeneratedPool:

    def test_emotions_derived_for_affect_contexts(self, registry):
        """Generated AffectContexts are scored into emotions before clauses are read."""
        pool = RandomContextGenerator(seed=42).generate_pool(200)
        result = FeasibilityAnalyzer(registry).analyze(_prereq({'>=': [{'var': 'emotions.joy'}, 0.0]}), pool)[0]
        assert result.classification == FeasibilityClass.OK
        assert result.pass_rate == 1.0
        assert math.isfinite(result.max_value) and result.max_value > 0
        assert result.sample_count == 200

    def test_impossible_on_generated_pool(self, registry):
        pool = RandomContextGenerator(seed=7).generate_pool(100)
        result = FeasibilityAnalyzer(registry).analyze(_prereq({'>': [{'var': 'emotions.joy'}, 1.0]}), pool)[0]
        assert result.classification == FeasibilityClass.THEORETICALLY_IMPOSSIBLE
        assert result.max_value <= 1.0

    def test_delta_on_dynamic_pool(self, registry):
        pool = RandomContextGenerator(sampling_mode='dynamic', seed=3).generate_pool(100)
        logic = {'>=': [{'-': [{'var': 'emotions.joy'}, {'var': 'previousEmotions.joy'}]}, -1.0]}
        result = FeasibilityAnalyzer(registry).analyze(_prereq(logic), pool)[0]
        assert result.pass_rate == 1.0

    def test_injected_calculator(self):
        class FixedCalculator:
            def calculate_emotions(self, mood, sexual=None, traits=None):
                return {'joy': 0.25}

            def calculate_sexual_arousal(self, sexual):
                return 0.0

            def calculate_sexual_states(self, mood, sexual, sexual_arousal=None):
                return {}

        pool = RandomContextGenerator(seed=1).generate_pool(10)
        analyzer = FeasibilityAnalyzer(emotion_calculator=FixedCalculator())
        result = analyzer.analyze(_prereq({'<=': [{'var': 'emotions.joy'}, 0.25]}), pool)[0]
        assert result.pass_rate == 1.0
        assert result.max_value == pytest.approx(0.25)


# ============ Hypothesis strategies ============
operators = st.sampled_from(['>=', '>', '<=', '<'])
unit_values = st.floats(min_value=0.0, max_value=1.0)
thresholds = st.floats(min_value=-0.5, max_value=1.5)


class TestFeasibilityProperties:

    @given(op=operators, threshold=thresholds, values=st.lists(unit_values, min_size=1, max_size=40))
    @settings(max_examples=300, deadline=None)
    def test_pass_rate_agrees_with_extremes(self, op, threshold, values):
        """A clause passes somewhere exactly when the observed extreme reaches the threshold."""
        pool = [{'emotions': {'joy': v}} for v in values]
        result = FeasibilityAnalyzer().analyze(_prereq({op: [{'var': 'emotions.joy'}, threshold]}), pool)[0]

        if op == '>=':
            reaches = result.max_value >= threshold
        elif op == '>':
            reaches = result.max_value > threshold
        elif op == '<=':
            reaches = result.min_value <= threshold
        else:
            reaches = result.min_value < threshold

        assert (result.pass_rate > 0) == reaches, f"{op} {threshold} over {values}"
        if result.pass_rate > 0:
            assert result.classification == FeasibilityClass.OK
        else:
            assert result.classification != FeasibilityClass.OK

    @given(op=operators, threshold=thresholds, values=st.lists(unit_values, min_size=1, max_size=40))
    @settings(max_examples=200, deadline=None)
    def test_impossible_never_passes(self, op, threshold, values):
        pool = [{'emotions': {'joy': v}} for v in values]
        result = FeasibilityAnalyzer().analyze(_prereq({op: [{'var': 'emotions.joy'}, threshold]}), pool)[0]
        if result.classification == FeasibilityClass.THEORETICALLY_IMPOSSIBLE:
            assert result.pass_rate == 0.0
