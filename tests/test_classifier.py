"""
Tests for overlap classification.
"""

import math

import pytest

from affectdiag.models import OverlapType
from affectdiag.overlap.classifier import OverlapClassifier
from affectdiag.overlap.implication import ImplicationResult


NAN = float('nan')


def behavior(
    on_either=0.5, on_both=0.25, p_only=0.1, q_only=0.15,
    pearson=0.5, mad=0.2, dom_p=0.2, dom_q=0.2,
    p_a_given_b=0.5, p_b_given_a=0.5,
    implication=None, parse='complete',
):
    return {
        'gate_overlap': {
            'on_either_rate': on_either,
            'on_both_rate': on_both,
            'p_only_rate': p_only,
            'q_only_rate': q_only,
        },
        'intensity': {
            'pearson_correlation': pearson,
            'mean_abs_diff': mad,
            'dominance_p': dom_p,
            'dominance_q': dom_q,
        },
        'pass_rates': {'p_a_given_b': p_a_given_b, 'p_b_given_a': p_b_given_a},
        'gate_implication': implication,
        'gate_parse_info': {'a': {'parse_status': parse}, 'b': {'parse_status': 'complete'}},
    }


class TestOverlapClassifier:

    def test_merge(self):
        result = OverlapClassifier().classify({}, behavior(
            on_both=0.48, p_only=0.01, q_only=0.01, pearson=0.99, mad=0.01, dom_p=0.1, dom_q=0.1,
            p_a_given_b=0.96, p_b_given_a=0.96,
        ))
        assert result.types == [OverlapType.MERGE_RECOMMENDED]
        assert result.primary.is_primary
        assert result.primary.confidence == pytest.approx((0.96 + 0.99 + 0.99) / 3)

    def test_subsumed(self):
        result = OverlapClassifier().classify({}, behavior(
            on_both=0.3, p_only=0.005, q_only=0.2, pearson=0.97, mad=0.2, dom_q=0.96, dom_p=0.0,
        ))
        assert result.type == OverlapType.SUBSUMED_RECOMMENDED
        assert result.primary.evidence['subsumed_prototype'] == 'a'

    def test_convert_with_nested(self):
        """Deterministic nesting with a strong conditional lists both categories."""
        implication = ImplicationResult(a_implies_b=True, b_implies_a=False)
        result = OverlapClassifier().classify({}, behavior(p_b_given_a=0.99, p_a_given_b=0.4, implication=implication))
        assert result.types == [OverlapType.CONVERT_TO_EXPRESSION, OverlapType.NESTED_SIBLINGS]
        assert result.primary.evidence['narrower_prototype'] == 'a'
        assert not result.classifications[1].is_primary

    def test_vacuous_implication_guard(self):
        """A vacuous implication never produces convert or deterministic nesting."""
        implication = ImplicationResult(a_implies_b=True, b_implies_a=False, is_vacuous=True)
        result = OverlapClassifier().classify({}, behavior(
            p_b_given_a=NAN, p_a_given_b=NAN, implication=implication,
        ))
        assert OverlapType.CONVERT_TO_EXPRESSION not in result.types
        assert OverlapType.NESTED_SIBLINGS not in result.types
        assert result.type == OverlapType.KEEP_DISTINCT

    def test_behavioral_nesting_with_partial_parse(self):
        result = OverlapClassifier().classify({}, behavior(
            parse='partial', p_b_given_a=0.99, p_a_given_b=0.5,
        ))
        assert result.type == OverlapType.NESTED_SIBLINGS
        assert result.primary.evidence['basis'] == 'behavioral'
        assert result.primary.confidence == pytest.approx(0.99)

    def test_partial_parse_blocks_deterministic(self):
        implication = ImplicationResult(a_implies_b=True, b_implies_a=False)
        result = OverlapClassifier().classify({}, behavior(parse='partial', implication=implication))
        assert OverlapType.CONVERT_TO_EXPRESSION not in result.types
        assert OverlapType.NESTED_SIBLINGS not in result.types

    def test_needs_separation(self):
        result = OverlapClassifier().classify({}, behavior(
            on_both=0.4, pearson=0.85, mad=0.1, p_a_given_b=0.9, p_b_given_a=0.9,
        ))
        assert result.types == [OverlapType.NEEDS_SEPARATION]
        assert result.primary.confidence == pytest.approx(0.85 * 0.8)

    def test_mutual_nesting_blocks_separation(self):
        """Either conditional at the nesting threshold rules out needs_separation."""
        result = OverlapClassifier().classify({}, behavior(
            on_both=0.45, pearson=0.85, mad=0.1, p_a_given_b=0.98, p_b_given_a=0.99,
        ))
        assert OverlapType.NEEDS_SEPARATION not in result.types
        assert result.types == [OverlapType.KEEP_DISTINCT]

    def test_one_sided_conditional_blocks_separation(self):
        result = OverlapClassifier().classify({}, behavior(
            on_both=0.45, pearson=0.85, mad=0.1, p_a_given_b=0.9, p_b_given_a=0.98,
        ))
        assert OverlapType.NEEDS_SEPARATION not in result.types
        assert OverlapType.NESTED_SIBLINGS in result.types

    def test_keep_distinct_is_fallback_only(self):
        result = OverlapClassifier().classify({'cosine_similarity': 0.9}, behavior())
        assert result.types == [OverlapType.KEEP_DISTINCT]
        assert result.primary.confidence == pytest.approx(0.5)
        assert result.primary.evidence['cosine_similarity'] == 0.9

    def test_nan_metrics_give_zero_confidence(self):
        """NaN never leaks into confidence."""
        result = OverlapClassifier().classify({}, behavior(on_either=NAN, pearson=NAN, mad=NAN))
        assert result.type == OverlapType.KEEP_DISTINCT
        assert result.primary.confidence == 0.0

    def test_zero_on_either(self):
        result = OverlapClassifier().classify({}, behavior(on_either=0.0, on_both=0.0))
        assert result.primary.evidence['gate_overlap_ratio'] == 0.0


class TestNearMiss:

    def test_near_miss(self):
        info = OverlapClassifier().check_near_miss(behavior(on_both=0.4, pearson=0.92, mad=0.1))
        assert info is not None
        assert info['gate_overlap_ratio'] == pytest.approx(0.8)

    def test_merge_is_not_near_miss(self):
        merged = behavior(on_both=0.48, pearson=0.99, mad=0.01, dom_p=0.1, dom_q=0.1)
        assert OverlapClassifier().check_near_miss(merged) is None

    def test_far_pair(self):
        assert OverlapClassifier().check_near_miss(behavior()) is None

    def test_correlation_band_alone(self):
        """High correlation with modest gate overlap is still worth a look."""
        info = OverlapClassifier().check_near_miss(behavior(on_both=0.3, pearson=0.95))
        assert info is not None
        assert len(info['reasons']) == 1
        assert info['reasons'][0].startswith('correlation 0.950')
        assert info['threshold_proximity']['gate_overlap_ratio']['met'] is False

    def test_gate_band_alone(self):
        info = OverlapClassifier().check_near_miss(behavior(on_both=0.4, pearson=0.5))
        assert info is not None
        assert info['reasons'][0].startswith('gate overlap 0.800')

    def test_blocked_by_mean_abs_diff(self):
        """Both bands cleared, merge blocked only by intensity difference."""
        info = OverlapClassifier().check_near_miss(behavior(on_both=0.475, pearson=0.99, mad=0.1))
        assert info is not None
        assert info['reasons'] == ['mean abs diff 0.100 (threshold: 0.03)']
        assert info['threshold_proximity']['correlation']['met'] is True

    def test_dead_pair_ignored(self):
        assert OverlapClassifier().check_near_miss(behavior(on_either=0.01, on_both=0.008, pearson=0.95)) is None
