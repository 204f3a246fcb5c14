"""
Intensity Calculator
====================

L1-normalized weighted score of a prototype over a context:

    intensity = sum(w[a] * norm[a]) / sum(|w[a]|)      (0 when no weights)

Intensity is invariant to uniform rescaling of the weight vector:
intensity(k * W, ctx) == intensity(W, ctx) for every k > 0.
"""

import math
from typing import Any, Dict, Mapping, Optional, Sequence

import numpy as np

from affectdiag.config.thresholds import INTENSITY_COMPOSITE_WEIGHTS
from affectdiag.core.axes import AxisNormalizer, clamp01
from affectdiag.core.gates import GateChecker
from affectdiag.models import Prototype


class IntensityCalculator:
    """Prototype intensity, intensity distributions and composite scores."""

    def __init__(
        self,
        normalizer: Optional[AxisNormalizer] = None,
        gate_checker: Optional[GateChecker] = None,
        composite_weights: Optional[Dict[str, float]] = None,
    ):
        self.normalizer = normalizer or AxisNormalizer()
        self.gate_checker = gate_checker or GateChecker(self.normalizer)
        self.composite_weights = {**INTENSITY_COMPOSITE_WEIGHTS, **(composite_weights or {})}

    def compute_intensity(
        self,
        weights: Mapping[str, float],
        context: Any = None,
        normalized_axes: Optional[Mapping[str, float]] = None,
    ) -> float:
        """
        Weighted, L1-normalized intensity.

        Args:
            weights: Axis -> weight
            context: Raw context (normalized here when normalized_axes is None)
            normalized_axes: Pre-normalized axes for batch reuse

        Returns:
            Intensity in [-1, 1]; 0 when the weight map is empty or all zero
        """
        if normalized_axes is None:
            normalized_axes = self.normalizer.normalize(context)

        raw_sum = 0.0
        sum_abs = 0.0
        for axis, weight in weights.items():
            weight = float(weight)
            sum_abs += abs(weight)
            raw_sum += weight * float(normalized_axes.get(axis, 0.0))

        if sum_abs <= 0:
            return 0.0
        return raw_sum / sum_abs

    def compute_distribution(
        self,
        prototype: Prototype,
        contexts: Sequence[Any],
        threshold: float,
    ) -> Dict[str, float]:
        """
        Gated intensity distribution over a context list.

        Contexts where the prototype's gates fail contribute 0.

        Returns:
            dict with min, max, p50, p90, p95, p_above_threshold, count
        """
        if len(contexts) == 0:
            return {
                'min': np.nan,
                'max': np.nan,
                'p50': np.nan,
                'p90': np.nan,
                'p95': np.nan,
                'p_above_threshold': 0.0,
                'count': 0,
            }

        parsed = self.gate_checker.parse_gates(prototype.gates, prototype.id)
        values = np.empty(len(contexts), dtype=np.float64)
        for i, context in enumerate(contexts):
            normalized = self.normalizer.normalize(context)
            if self.gate_checker.check_parsed(parsed, normalized):
                values[i] = self.compute_intensity(prototype.weights, normalized_axes=normalized)
            else:
                values[i] = 0.0

        p50, p90, p95 = np.percentile(values, [50, 90, 95])
        return {
            'min': float(np.min(values)),
            'max': float(np.max(values)),
            'p50': float(p50),
            'p90': float(p90),
            'p95': float(p95),
            'p_above_threshold': float(np.mean(values > threshold)),
            'count': int(len(values)),
        }

    def compute_composite_score(self, inputs: Mapping[str, float]) -> float:
        """
        Weighted desirability from four normalized sub-scores.

        Args:
            inputs: gate_pass_rate, p_intensity_above, conflict_score,
                    exclusion_compatibility (each clamped to [0, 1]; NaN -> 0)

        Returns:
            Score in [0, 1]
        """
        def _unit(key: str) -> float:
            value = inputs.get(key, 0.0)
            if value is None or not math.isfinite(value):
                return 0.0
            return clamp01(value)

        w = self.composite_weights
        return (
            w['gate_pass_rate'] * _unit('gate_pass_rate')
            + w['p_intensity_above'] * _unit('p_intensity_above')
            + w['conflict'] * (1.0 - _unit('conflict_score'))
            + w['exclusion_compatibility'] * _unit('exclusion_compatibility')
        )
