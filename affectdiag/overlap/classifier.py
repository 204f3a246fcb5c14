"""
Overlap Classification
======================

Turns candidate + behavior metrics for one pair into relationship
categories, highest priority first:

    merge_recommended       near-identical behavior
    subsumed_recommended    one prototype rarely fires alone and is dominated
    convert_to_expression   deterministic gate nesting backed by behavior
    nested_siblings         one prototype's region sits inside the other's
    needs_separation        heavy overlap, correlated, but not mergeable
    keep_distinct           nothing else matched

Every matching category is returned with its own confidence in [0, 1];
the first is primary. NaN metrics fail every criterion that reads them.
"""

import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Tuple

from affectdiag.config.thresholds import OVERLAP_CLASSIFICATION
from affectdiag.models import ClassificationResult, OverlapClassification, OverlapType

logger = logging.getLogger(__name__)


def _finite(value: Any) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


def _at_least(value: Any, threshold: float) -> bool:
    return _finite(value) and value >= threshold


def _at_most(value: Any, threshold: float) -> bool:
    return _finite(value) and value <= threshold


def _confidence(value: Any) -> float:
    if not _finite(value):
        return 0.0
    return min(1.0, max(0.0, float(value)))


def _mean(*values: Any) -> float:
    if not all(_finite(v) for v in values):
        return math.nan
    return sum(values) / len(values)


def gate_overlap_ratio(behavior_metrics: Mapping[str, Any]) -> float:
    """on_both / on_either, 0 when neither gate ever passes."""
    overlap = behavior_metrics.get('gate_overlap', {})
    on_either = overlap.get('on_either_rate', 0.0)
    if not on_either:
        return 0.0
    return overlap.get('on_both_rate', 0.0) / on_either


class OverlapClassifier:
    """
    Classifies prototype pairs.

    Args:
        config: Overrides for OVERLAP_CLASSIFICATION defaults
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = {**OVERLAP_CLASSIFICATION, **(config or {})}

    # =========================================================================
    # Shared facts
    # =========================================================================

    @staticmethod
    def _parse_complete(behavior_metrics: Mapping[str, Any]) -> bool:
        info = behavior_metrics.get('gate_parse_info') or {}
        return all(
            (info.get(side) or {}).get('parse_status') == 'complete'
            for side in ('a', 'b')
        )

    def _deterministic_narrower(self, behavior_metrics: Mapping[str, Any]) -> Optional[str]:
        """'a' or 'b' when the gate regions nest non-vacuously in one direction."""
        implication = behavior_metrics.get('gate_implication')
        if implication is None or implication.is_vacuous:
            return None
        if not self._parse_complete(behavior_metrics):
            return None
        if implication.a_implies_b == implication.b_implies_a:
            return None
        return 'a' if implication.a_implies_b else 'b'

    def _behavioral_narrower(self, behavior_metrics: Mapping[str, Any]) -> Optional[str]:
        t = self.config['nested_conditional_threshold']
        rates = behavior_metrics.get('pass_rates', {})
        p_a_given_b = rates.get('p_a_given_b', math.nan)
        p_b_given_a = rates.get('p_b_given_a', math.nan)
        if not (_finite(p_a_given_b) and _finite(p_b_given_a)):
            return None
        if p_b_given_a >= t and p_a_given_b < t:
            return 'a'
        if p_a_given_b >= t and p_b_given_a < t:
            return 'b'
        return None

    @staticmethod
    def _conditional_for(narrower: str, behavior_metrics: Mapping[str, Any]) -> float:
        rates = behavior_metrics.get('pass_rates', {})
        key = 'p_b_given_a' if narrower == 'a' else 'p_a_given_b'
        return rates.get(key, math.nan)

    # =========================================================================
    # Criteria
    # =========================================================================

    def _check_merge(self, m: Dict[str, Any]) -> Optional[Tuple[float, Dict[str, Any]]]:
        cfg = self.config
        matches = (
            _at_least(m['on_either_rate'], cfg['min_on_either_rate_for_merge'])
            and _at_least(m['gate_overlap_ratio'], cfg['min_gate_overlap_ratio'])
            and _at_least(m['pearson_correlation'], cfg['min_correlation_for_merge'])
            and _at_most(m['mean_abs_diff'], cfg['max_mean_abs_diff_for_merge'])
            and _finite(m['dominance_p']) and m['dominance_p'] < cfg['min_dominance_for_subsumption']
            and _finite(m['dominance_q']) and m['dominance_q'] < cfg['min_dominance_for_subsumption']
        )
        if not matches:
            return None
        confidence = _mean(m['gate_overlap_ratio'], m['pearson_correlation'], 1.0 - m['mean_abs_diff'])
        return confidence, {}

    def _check_subsumed(self, m: Dict[str, Any]) -> Optional[Tuple[float, Dict[str, Any]]]:
        cfg = self.config
        if not _at_least(m['pearson_correlation'], cfg['min_correlation_for_subsumption']):
            return None

        max_exclusive = cfg['max_exclusive_rate_for_subsumption']
        min_dominance = cfg['min_dominance_for_subsumption']
        if _at_most(m['p_only_rate'], max_exclusive) and _at_least(m['dominance_q'], min_dominance):
            subsumed, exclusive, dominance = 'a', m['p_only_rate'], m['dominance_q']
        elif _at_most(m['q_only_rate'], max_exclusive) and _at_least(m['dominance_p'], min_dominance):
            subsumed, exclusive, dominance = 'b', m['q_only_rate'], m['dominance_p']
        else:
            return None

        confidence = _mean(m['pearson_correlation'], dominance, 1.0 - exclusive)
        return confidence, {'subsumed_prototype': subsumed}

    def _check_convert(self, behavior_metrics, m) -> Optional[Tuple[float, Dict[str, Any]]]:
        narrower = self._deterministic_narrower(behavior_metrics)
        if narrower is None:
            return None
        conditional = self._conditional_for(narrower, behavior_metrics)
        if not _at_least(conditional, self.config['nested_conditional_threshold']):
            return None
        return conditional, {'narrower_prototype': narrower}

    def _check_nested(self, behavior_metrics, m) -> Optional[Tuple[float, Dict[str, Any]]]:
        narrower = self._deterministic_narrower(behavior_metrics)
        if narrower is not None:
            return 1.0, {'narrower_prototype': narrower, 'basis': 'deterministic'}

        narrower = self._behavioral_narrower(behavior_metrics)
        if narrower is not None:
            conditional = self._conditional_for(narrower, behavior_metrics)
            return conditional, {'narrower_prototype': narrower, 'basis': 'behavioral'}
        return None

    def _check_needs_separation(self, m: Dict[str, Any], nested: bool) -> Optional[Tuple[float, Dict[str, Any]]]:
        cfg = self.config
        if nested:
            return None
        if not _at_least(m['gate_overlap_ratio'], cfg['separation_min_gate_overlap_ratio']):
            return None

        # Either conditional at the nesting threshold rules separation out
        t = cfg['nested_conditional_threshold']
        p_a_given_b, p_b_given_a = m['p_a_given_b'], m['p_b_given_a']
        if _finite(p_a_given_b) and _finite(p_b_given_a) and (p_a_given_b >= t or p_b_given_a >= t):
            return None

        matches = (
            _at_least(m['pearson_correlation'], cfg['separation_min_correlation'])
            and _finite(m['mean_abs_diff'])
            and m['mean_abs_diff'] > cfg['max_mean_abs_diff_for_merge']
        )
        if not matches:
            return None
        return m['pearson_correlation'] * m['gate_overlap_ratio'], {}

    # =========================================================================
    # Classify
    # =========================================================================

    @staticmethod
    def extract_metrics(behavior_metrics: Mapping[str, Any]) -> Dict[str, Any]:
        """Flatten the fields the criteria read."""
        overlap = behavior_metrics.get('gate_overlap', {})
        intensity = behavior_metrics.get('intensity', {})
        rates = behavior_metrics.get('pass_rates', {})
        return {
            'on_either_rate': overlap.get('on_either_rate', 0.0),
            'on_both_rate': overlap.get('on_both_rate', 0.0),
            'p_only_rate': overlap.get('p_only_rate', 0.0),
            'q_only_rate': overlap.get('q_only_rate', 0.0),
            'gate_overlap_ratio': gate_overlap_ratio(behavior_metrics),
            'pearson_correlation': intensity.get('pearson_correlation', math.nan),
            'mean_abs_diff': intensity.get('mean_abs_diff', math.nan),
            'dominance_p': intensity.get('dominance_p', math.nan),
            'dominance_q': intensity.get('dominance_q', math.nan),
            'p_a_given_b': rates.get('p_a_given_b', math.nan),
            'p_b_given_a': rates.get('p_b_given_a', math.nan),
        }

    def classify(
        self,
        candidate_metrics: Optional[Mapping[str, Any]],
        behavior_metrics: Mapping[str, Any],
    ) -> ClassificationResult:
        """
        Args:
            candidate_metrics: Weight-vector metrics from the candidate filter
            behavior_metrics: Output of BehavioralOverlapEvaluator.evaluate

        Returns:
            ClassificationResult, primary first
        """
        m = self.extract_metrics(behavior_metrics)
        evidence_base = {**m, **dict(candidate_metrics or {})}

        nested = self._check_nested(behavior_metrics, m)
        checks = [
            (OverlapType.MERGE_RECOMMENDED, self._check_merge(m)),
            (OverlapType.SUBSUMED_RECOMMENDED, self._check_subsumed(m)),
            (OverlapType.CONVERT_TO_EXPRESSION, self._check_convert(behavior_metrics, m)),
            (OverlapType.NESTED_SIBLINGS, nested),
            (OverlapType.NEEDS_SEPARATION, self._check_needs_separation(m, nested is not None)),
        ]

        matches: List[OverlapClassification] = []
        for overlap_type, outcome in checks:
            if outcome is None:
                continue
            confidence, extra = outcome
            matches.append(OverlapClassification(
                type=overlap_type,
                confidence=_confidence(confidence),
                evidence={**evidence_base, **extra},
            ))

        if not matches:
            matches.append(OverlapClassification(
                type=OverlapType.KEEP_DISTINCT,
                confidence=_confidence(1.0 - m['gate_overlap_ratio']),
                evidence=evidence_base,
            ))

        matches[0].is_primary = True
        logger.debug(f"Classified pair as {[c.type.value for c in matches]}")
        return ClassificationResult(matches)

    def check_near_miss(self, behavior_metrics: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Near-miss record for a pair that came close to, but short of, merging.

        A live pair (on_either_rate at the merge activity floor) is a near
        miss when its correlation sits in [near_miss, merge) or its gate
        overlap ratio sits in [near_miss, merge). A pair clearing both
        near-miss bounds without landing in either band is still reported
        when its mean abs diff blocked the merge.

        Returns:
            dict with reasons and threshold proximity, or None
        """
        cfg = self.config
        m = self.extract_metrics(behavior_metrics)
        if not _at_least(m['on_either_rate'], cfg['min_on_either_rate_for_merge']):
            return None

        corr, ratio, mad = m['pearson_correlation'], m['gate_overlap_ratio'], m['mean_abs_diff']
        near_corr, merge_corr = cfg['near_miss_correlation_threshold'], cfg['min_correlation_for_merge']
        near_ratio, merge_ratio = cfg['near_miss_gate_overlap_ratio'], cfg['min_gate_overlap_ratio']
        max_mad = cfg['max_mean_abs_diff_for_merge']

        high_corr = _at_least(corr, near_corr) and corr < merge_corr
        high_ratio = _at_least(ratio, near_ratio) and ratio < merge_ratio

        reasons = []
        if high_corr:
            reasons.append(f"correlation {corr:.3f} (threshold: {merge_corr})")
        if high_ratio:
            reasons.append(f"gate overlap {ratio:.3f} (threshold: {merge_ratio})")
        if not reasons and _at_least(corr, near_corr) and _at_least(ratio, near_ratio):
            if not _finite(mad) or mad > max_mad:
                reasons.append(f"mean abs diff {mad:.3f} (threshold: {max_mad})")

        if not reasons:
            return None

        return {
            'reasons': reasons,
            'pearson_correlation': corr,
            'gate_overlap_ratio': ratio,
            'mean_abs_diff': mad,
            'threshold_proximity': {
                'correlation': {
                    'value': corr,
                    'near_miss_threshold': near_corr,
                    'merge_threshold': merge_corr,
                    'met': _at_least(corr, merge_corr),
                },
                'gate_overlap_ratio': {
                    'value': ratio,
                    'near_miss_threshold': near_ratio,
                    'merge_threshold': merge_ratio,
                    'met': _at_least(ratio, merge_ratio),
                },
            },
        }
