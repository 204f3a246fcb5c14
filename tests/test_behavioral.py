"""
Tests for pairwise behavioral overlap metrics.
"""

import math

import numpy as np
import pytest

from affectdiag.models import GateParseInfo, ParseStatus, Prototype, PrototypeVector
from affectdiag.overlap.behavioral import BehavioralOverlapEvaluator, pearson


def vector(pid, gates, intensities, parse_status=ParseStatus.COMPLETE):
    gates = np.array(gates, dtype=bool)
    intensities = np.array(intensities, dtype=float)
    passing = intensities[gates]
    return PrototypeVector(
        prototype_id=pid,
        gate_results=gates,
        intensities=intensities,
        activation_rate=float(gates.mean()),
        mean_intensity=float(passing.mean()) if passing.size else 0.0,
        std_intensity=float(passing.std()) if passing.size else 0.0,
        gate_parse_info=GateParseInfo(parse_status=parse_status),
    )


PROTO_A = Prototype('a', {'valence': 1.0}, ['valence >= 0.5'])
PROTO_B = Prototype('b', {'valence': 1.0}, ['valence >= 0.2'])
VEC_A = vector('a', [1, 1, 1, 0], [0.5, 0.6, 0.7, 0.0])
VEC_B = vector('b', [1, 1, 0, 1], [0.5, 0.8, 0.0, 0.3])


@pytest.fixture
def metrics():
    return BehavioralOverlapEvaluator({'min_pass_samples_for_conditional': 1}).evaluate(
        PROTO_A, PROTO_B, VEC_A, VEC_B,
    )


class TestPearson:

    def test_degenerate_is_nan(self):
        assert math.isnan(pearson([0.5], [0.5]))
        assert math.isnan(pearson([0.5, 0.5], [0.1, 0.9]))

    def test_perfect(self):
        assert pearson([0.1, 0.2, 0.3], [0.2, 0.4, 0.6]) == pytest.approx(1.0)


class TestBehavioralOverlapEvaluator:

    def test_gate_overlap(self, metrics):
        overlap = metrics['gate_overlap']
        assert overlap['on_either_rate'] == 1.0
        assert overlap['on_both_rate'] == 0.5
        assert overlap['p_only_rate'] == 0.25
        assert overlap['q_only_rate'] == 0.25

    def test_co_pass_intensity(self, metrics):
        intensity = metrics['intensity']
        assert intensity['pearson_correlation'] == pytest.approx(1.0)
        assert intensity['mean_abs_diff'] == pytest.approx(0.1)
        assert intensity['rmse'] == pytest.approx(math.sqrt(0.02))
        assert intensity['pct_within_eps'] == 0.5
        assert intensity['dominance_p'] == 0.0
        assert intensity['dominance_q'] == 0.5

    def test_global_metrics(self, metrics):
        assert metrics['intensity']['global_mean_abs_diff'] == pytest.approx(0.3)

    def test_pass_rates(self, metrics):
        rates = metrics['pass_rates']
        assert rates['co_pass_count'] == 2
        assert rates['p_a_given_b'] == pytest.approx(2 / 3)
        assert rates['p_b_given_a'] == pytest.approx(2 / 3)

    def test_conditionals_need_enough_samples(self):
        """Default minimum of 200 passes turns small-sample conditionals into NaN."""
        result = BehavioralOverlapEvaluator().evaluate(PROTO_A, PROTO_B, VEC_A, VEC_B)
        assert math.isnan(result['pass_rates']['p_a_given_b'])

    def test_high_coactivation(self, metrics):
        row = next(r for r in metrics['high_coactivation'] if r['t'] == 0.6)
        assert row['p_high_both'] == 0.25
        assert row['high_jaccard'] == 0.5

    def test_divergence_examples(self, metrics):
        examples = metrics['divergence_examples']
        assert [e['index'] for e in examples] == [1, 0]
        assert examples[0]['abs_diff'] == pytest.approx(0.2)

    def test_gate_implication_when_complete(self, metrics):
        assert metrics['gate_implication'].relation == 'narrower'

    def test_no_implication_on_partial_parse(self):
        partial = vector('a', [1, 1, 1, 0], [0.5, 0.6, 0.7, 0.0], ParseStatus.PARTIAL)
        result = BehavioralOverlapEvaluator().evaluate(PROTO_A, PROTO_B, partial, VEC_B)
        assert result['gate_implication'] is None
        assert result['gate_parse_info']['a']['parse_status'] == ParseStatus.PARTIAL

    def test_no_co_pass(self):
        a = vector('a', [1, 0], [0.5, 0.0])
        b = vector('b', [0, 1], [0.0, 0.4])
        result = BehavioralOverlapEvaluator().evaluate(PROTO_A, PROTO_B, a, b)
        assert math.isnan(result['intensity']['pearson_correlation'])
        assert math.isnan(result['intensity']['mean_abs_diff'])
        assert result['divergence_examples'] == []

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="length mismatch"):
            BehavioralOverlapEvaluator().evaluate(PROTO_A, PROTO_B, VEC_A, vector('b', [1], [0.2]))
