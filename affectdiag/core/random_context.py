"""
Random Context Generation

Produces randomized AffectContexts (current + previous) within domain bounds.

Distributions:
- uniform:  every integer in range equally likely
- gaussian: centered at range midpoint, sigma = range / 6, clamped

Sampling modes:
- static:   previous and current drawn independently
- dynamic:  current = previous + gaussian drift (mood 15, sexual 12, libido 8)

Traits are drawn once per sample and shared by previous and current.
"""

from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from affectdiag.config.thresholds import RANDOM_CONTEXT
from affectdiag.models import (
    AffectContext,
    MOOD_AXES,
    MOOD_RANGE,
    SEXUAL_RANGES,
    TRAIT_AXES,
    TRAIT_RANGE,
)


DISTRIBUTIONS = ('uniform', 'gaussian')
SAMPLING_MODES = ('static', 'dynamic')


class RandomContextGenerator:
    """Seedable sampler of AffectContexts."""

    def __init__(
        self,
        distribution: str = 'uniform',
        sampling_mode: str = 'static',
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        if distribution not in DISTRIBUTIONS:
            raise ValueError(f"Unknown distribution: '{distribution}'. Valid: {list(DISTRIBUTIONS)}")
        if sampling_mode not in SAMPLING_MODES:
            raise ValueError(f"Unknown sampling mode: '{sampling_mode}'. Valid: {list(SAMPLING_MODES)}")

        self.distribution = distribution
        self.sampling_mode = sampling_mode
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.config = {**RANDOM_CONTEXT, **(config or {})}

    def _sample_value(self, bounds: Tuple[int, int]) -> int:
        lo, hi = bounds
        if self.distribution == 'gaussian':
            mid = (lo + hi) / 2.0
            sigma = (hi - lo) / self.config['gaussian_range_divisor']
            value = self.rng.normal(mid, sigma)
        else:
            value = self.rng.uniform(lo, hi)
        return int(np.clip(round(value), lo, hi))

    def _drift(self, value: float, sigma: float, bounds: Tuple[int, int]) -> int:
        lo, hi = bounds
        return int(np.clip(round(value + self.rng.normal(0.0, sigma)), lo, hi))

    def sample_mood(self) -> Dict[str, int]:
        return {axis: self._sample_value(MOOD_RANGE) for axis in MOOD_AXES}

    def sample_sexual(self) -> Dict[str, int]:
        return {axis: self._sample_value(bounds) for axis, bounds in SEXUAL_RANGES.items()}

    def sample_traits(self) -> Dict[str, int]:
        return {axis: self._sample_value(TRAIT_RANGE) for axis in TRAIT_AXES}

    def generate(self) -> AffectContext:
        """One random context with a previous state attached."""
        traits = self.sample_traits()
        prev_mood = self.sample_mood()
        prev_sexual = self.sample_sexual()

        if self.sampling_mode == 'dynamic':
            mood = {
                axis: self._drift(v, self.config['dynamic_mood_sigma'], MOOD_RANGE)
                for axis, v in prev_mood.items()
            }
            sexual = {}
            for axis, v in prev_sexual.items():
                sigma = (
                    self.config['dynamic_libido_sigma']
                    if axis == 'baseline_libido'
                    else self.config['dynamic_sexual_sigma']
                )
                sexual[axis] = self._drift(v, sigma, SEXUAL_RANGES[axis])
        else:
            mood = self.sample_mood()
            sexual = self.sample_sexual()

        previous = AffectContext(mood_axes=prev_mood, sexual_axes=prev_sexual, trait_axes=traits)
        return AffectContext(
            mood_axes=mood,
            sexual_axes=sexual,
            trait_axes=traits,
            previous=previous,
        )

    def generate_pool(self, count: int) -> List[AffectContext]:
        """`count` independent contexts."""
        return [self.generate() for _ in range(count)]
