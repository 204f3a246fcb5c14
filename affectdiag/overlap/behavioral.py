"""
Behavioral Overlap
==================

Compares two prototypes through their pre-computed vectors over the same
context pool.

Metric groups:
- gate_overlap:       how often either / both / only one gate passes
- intensity:          agreement where both pass (co-pass), plus global
                      output agreement over all positions
- pass_rates:         marginal and conditional pass rates
- high_coactivation:  joint high-intensity rates at fixed thresholds
- divergence_examples: largest co-pass disagreements
- gate_implication:   deterministic gate-region comparison (complete
                      parses only)

Co-pass metrics are NaN below min_co_pass_samples; conditional pass rates
are NaN below min_pass_samples_for_conditional.
"""

import heapq
import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from affectdiag.config.thresholds import BEHAVIORAL_OVERLAP
from affectdiag.core.gates import parse_gate
from affectdiag.models import Prototype, PrototypeVector
from affectdiag.overlap.implication import GateImplicationEvaluator, build_intervals

logger = logging.getLogger(__name__)


def pearson(x: np.ndarray, y: np.ndarray) -> float:
    """Pearson correlation clamped to [-1, 1]; NaN for n < 2 or zero variance."""
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if len(x) < 2:
        return np.nan
    dx = x - x.mean()
    dy = y - y.mean()
    denom = np.sqrt(np.sum(dx * dx) * np.sum(dy * dy))
    if denom == 0 or not np.isfinite(denom):
        return np.nan
    return float(np.clip(np.sum(dx * dy) / denom, -1.0, 1.0))


def _rate(count: int, total: int) -> float:
    return count / total if total else 0.0


class BehavioralOverlapEvaluator:
    """
    Computes BehaviorMetrics dicts for candidate pairs.

    Args:
        config: Overrides for BEHAVIORAL_OVERLAP defaults
        implication_evaluator: Gate implication collaborator
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        implication_evaluator: Optional[GateImplicationEvaluator] = None,
    ):
        self.config = {**BEHAVIORAL_OVERLAP, **(config or {})}
        self.implication = implication_evaluator or GateImplicationEvaluator()

    # =========================================================================
    # Metric groups
    # =========================================================================

    def _intensity_metrics(self, a: np.ndarray, b: np.ndarray, both: np.ndarray) -> Dict[str, float]:
        cfg = self.config
        co_a, co_b = a[both], b[both]
        n_co = int(both.sum())

        metrics = {
            'pearson_correlation': np.nan,
            'mean_abs_diff': np.nan,
            'rmse': np.nan,
            'pct_within_eps': np.nan,
            'dominance_p': np.nan,
            'dominance_q': np.nan,
        }
        if n_co >= cfg['min_co_pass_samples'] and n_co > 0:
            diff = co_a - co_b
            delta = cfg['dominance_delta']
            metrics.update({
                'pearson_correlation': pearson(co_a, co_b),
                'mean_abs_diff': float(np.mean(np.abs(diff))),
                'rmse': float(np.sqrt(np.mean(diff ** 2))),
                'pct_within_eps': float(np.mean(np.abs(diff) <= cfg['intensity_eps'])),
                'dominance_p': float(np.mean(co_a > co_b + delta)),
                'dominance_q': float(np.mean(co_b > co_a + delta)),
            })

        n = len(a)
        global_diff = a - b
        metrics.update({
            'global_mean_abs_diff': float(np.mean(np.abs(global_diff))) if n else np.nan,
            'global_l2_distance': float(np.sqrt(np.mean(global_diff ** 2))) if n else np.nan,
            'global_output_correlation': pearson(a, b),
        })
        return metrics

    def _high_coactivation(self, a: np.ndarray, b: np.ndarray, either: np.ndarray) -> List[Dict[str, float]]:
        a_e, b_e = a[either], b[either]
        n_either = len(a_e)
        rows = []
        for t in self.config['high_thresholds']:
            high_a = a_e >= t
            high_b = b_e >= t
            both_high = int(np.sum(high_a & high_b))
            either_high = int(np.sum(high_a | high_b))
            rows.append({
                't': t,
                'p_high_a': _rate(int(high_a.sum()), n_either),
                'p_high_b': _rate(int(high_b.sum()), n_either),
                'p_high_both': _rate(both_high, n_either),
                'high_jaccard': _rate(both_high, either_high),
                'high_agreement': _rate(int(np.sum(high_a == high_b)), n_either),
            })
        return rows

    def _divergence_examples(
        self,
        a: np.ndarray,
        b: np.ndarray,
        both: np.ndarray,
        context_pool: Optional[Sequence[Any]],
    ) -> List[Dict[str, Any]]:
        k = int(self.config['divergence_examples_k'])
        positions = np.flatnonzero(both)
        top = heapq.nlargest(k, positions, key=lambda i: abs(a[i] - b[i]))
        examples = []
        for i in top:
            example = {
                'index': int(i),
                'intensity_a': float(a[i]),
                'intensity_b': float(b[i]),
                'abs_diff': float(abs(a[i] - b[i])),
            }
            if context_pool is not None:
                example['context'] = context_pool[i]
            examples.append(example)
        return examples

    def _gate_implication(self, prototype_a: Prototype, prototype_b: Prototype, vector_a, vector_b):
        if not (vector_a.gate_parse_info.is_complete and vector_b.gate_parse_info.is_complete):
            return None
        gates_a = [g for g in map(parse_gate, prototype_a.gates or []) if g is not None]
        gates_b = [g for g in map(parse_gate, prototype_b.gates or []) if g is not None]
        return self.implication.evaluate(build_intervals(gates_a), build_intervals(gates_b))

    # =========================================================================
    # Evaluate
    # =========================================================================

    def evaluate(
        self,
        prototype_a: Prototype,
        prototype_b: Prototype,
        vector_a: PrototypeVector,
        vector_b: PrototypeVector,
        context_pool: Optional[Sequence[Any]] = None,
    ) -> Dict[str, Any]:
        """
        Compute behavior metrics for one pair.

        Args:
            prototype_a, prototype_b: The prototypes (gates used for implication)
            vector_a, vector_b: Their vectors over the same pool
            context_pool: Optional pool, attached to divergence examples

        Returns:
            BehaviorMetrics dict

        Raises:
            ValueError: If the vectors have different lengths
        """
        if len(vector_a.gate_results) != len(vector_b.gate_results):
            raise ValueError(
                f"Vector length mismatch: '{vector_a.prototype_id}' has {len(vector_a.gate_results)}, "
                f"'{vector_b.prototype_id}' has {len(vector_b.gate_results)}"
            )

        cfg = self.config
        pass_a = np.asarray(vector_a.gate_results, dtype=bool)
        pass_b = np.asarray(vector_b.gate_results, dtype=bool)
        a = np.where(pass_a, np.asarray(vector_a.intensities, dtype=float), 0.0)
        b = np.where(pass_b, np.asarray(vector_b.intensities, dtype=float), 0.0)

        n = len(pass_a)
        either = pass_a | pass_b
        both = pass_a & pass_b
        on_both = int(both.sum())
        pass_a_count = int(pass_a.sum())
        pass_b_count = int(pass_b.sum())
        min_conditional = cfg['min_pass_samples_for_conditional']

        implication = self._gate_implication(prototype_a, prototype_b, vector_a, vector_b)

        metrics = {
            'gate_overlap': {
                'on_either_rate': _rate(int(either.sum()), n),
                'on_both_rate': _rate(on_both, n),
                'p_only_rate': _rate(int(np.sum(pass_a & ~pass_b)), n),
                'q_only_rate': _rate(int(np.sum(pass_b & ~pass_a)), n),
            },
            'intensity': self._intensity_metrics(a, b, both),
            'pass_rates': {
                'pass_a_rate': _rate(pass_a_count, n),
                'pass_b_rate': _rate(pass_b_count, n),
                'p_a_given_b': on_both / pass_b_count if pass_b_count >= min_conditional else np.nan,
                'p_b_given_a': on_both / pass_a_count if pass_a_count >= min_conditional else np.nan,
                'co_pass_count': on_both,
                'pass_a_count': pass_a_count,
                'pass_b_count': pass_b_count,
            },
            'high_coactivation': self._high_coactivation(a, b, either),
            'divergence_examples': self._divergence_examples(a, b, both, context_pool),
            'gate_implication': implication,
            'gate_parse_info': {
                'a': asdict(vector_a.gate_parse_info),
                'b': asdict(vector_b.gate_parse_info),
            },
        }

        logger.debug(
            f"Behavior '{prototype_a.id}' vs '{prototype_b.id}': "
            f"on_both={metrics['gate_overlap']['on_both_rate']:.3f} "
            f"pearson={metrics['intensity']['pearson_correlation']:.3f} "
            f"implication={implication.relation if implication else 'none'}"
        )
        return metrics
