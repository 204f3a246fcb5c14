"""
Axis Normalization
==================

Maps raw affect axes into the bounded ranges every scoring stage uses.

Scales:
- mood:    value / 100            -> [-1, 1]
- sexual:  value / 100, clamped   -> [0, 1]
- traits:  value / 100, clamped   -> [0, 1]
- derived: sexual_arousal = clamp01((excitation - inhibition + libido) / 100)

When the same axis name appears in more than one family, traits win over
sexual, and sexual wins over mood.
"""

from typing import Any, Dict, Mapping, Optional

from affectdiag.config.thresholds import NORMALIZATION
from affectdiag.models import (
    AffectContext,
    MOOD_AXES,
    SEXUAL_AXES,
    TRAIT_AXES,
)


SEXUAL_AROUSAL_AXIS = 'sexual_arousal'
SEXUAL_AROUSAL_ALIAS = 'SA'


def clamp01(value: float) -> float:
    """Clamp to [0, 1]."""
    return float(min(1.0, max(0.0, value)))


def _first_mapping(source: Any, *keys: str) -> Dict[str, float]:
    for key in keys:
        if isinstance(source, Mapping):
            value = source.get(key)
        else:
            value = getattr(source, key, None)
        if isinstance(value, Mapping):
            return dict(value)
    return {}


def split_axes(context: Any):
    """
    Extract (mood, sexual, traits) raw dicts from any supported context shape.

    Accepts an AffectContext, or a mapping keyed moodAxes/mood,
    sexualAxes/sexual, traitAxes/affectTraits.
    """
    if isinstance(context, AffectContext):
        return dict(context.mood_axes), dict(context.sexual_axes), dict(context.trait_axes)

    mood = _first_mapping(context, 'moodAxes', 'mood', 'mood_axes')
    sexual = _first_mapping(context, 'sexualAxes', 'sexual', 'sexual_axes')
    traits = _first_mapping(context, 'traitAxes', 'affectTraits', 'trait_axes', 'affect_traits')
    return mood, sexual, traits


class AxisNormalizer:
    """Stateless normalizer from raw axis values to scoring scale."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        cfg = {**NORMALIZATION, **(config or {})}
        self.mood_scale = float(cfg['mood_scale'])
        self.sexual_scale = float(cfg['sexual_scale'])
        self.trait_scale = float(cfg['trait_scale'])
        self.default_trait_value = cfg['default_trait_value']

    def normalize_mood(self, mood: Mapping[str, float]) -> Dict[str, float]:
        return {
            axis: float(mood.get(axis, 0.0)) / self.mood_scale
            for axis in set(MOOD_AXES) | set(mood)
        }

    def normalize_sexual(self, sexual: Mapping[str, float]) -> Dict[str, float]:
        return {
            axis: clamp01(float(sexual.get(axis, 0.0)) / self.sexual_scale)
            for axis in set(SEXUAL_AXES) | set(sexual)
        }

    def normalize_traits(self, traits: Mapping[str, float]) -> Dict[str, float]:
        return {
            axis: clamp01(float(traits.get(axis, self.default_trait_value)) / self.trait_scale)
            for axis in set(TRAIT_AXES) | set(traits)
        }

    def sexual_arousal(self, sexual: Mapping[str, float]) -> float:
        """Derived arousal from raw sexual axes."""
        excitation = float(sexual.get('sex_excitation', 0.0))
        inhibition = float(sexual.get('sex_inhibition', 0.0))
        libido = float(sexual.get('baseline_libido', 0.0))
        return clamp01((excitation - inhibition + libido) / self.sexual_scale)

    def normalize(self, context: Any) -> Dict[str, float]:
        """
        Normalize every axis of a context into one flat lookup.

        Args:
            context: AffectContext or mapping of raw axis dicts

        Returns:
            Dict axis -> normalized value, including sexual_arousal and SA
        """
        mood, sexual, traits = split_axes(context)

        normalized: Dict[str, float] = {}
        normalized.update(self.normalize_mood(mood))
        normalized.update(self.normalize_sexual(sexual))
        normalized.update(self.normalize_traits(traits))

        arousal = None
        if isinstance(context, Mapping) and context.get('sexualArousal') is not None:
            arousal = clamp01(float(context['sexualArousal']))
        if arousal is None:
            arousal = self.sexual_arousal(sexual)

        normalized[SEXUAL_AROUSAL_AXIS] = arousal
        normalized[SEXUAL_AROUSAL_ALIAS] = arousal
        return normalized
