"""
Evaluation Contexts

Turns a raw AffectContext into the nested mapping prerequisite logic reads:

    moodAxes / mood        raw mood axes
    sexualAxes             raw sexual axes
    affectTraits           raw traits
    emotions               emotion intensities in [0, 1]
    sexualStates           sexual-state intensities in [0, 1]
    sexualArousal          derived arousal in [0, 1]
    previous*              the same values for the previous state
                           (mirrors current when there is none)

Emotion values come from an injected calculator exposing
calculate_emotions / calculate_sexual_arousal / calculate_sexual_states.
PrototypeEmotionCalculator is a reference calculator that scores registry
prototypes with the gate checker and intensity calculator.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple

from affectdiag.core.axes import AxisNormalizer, clamp01
from affectdiag.core.gates import GateChecker, ParsedGates
from affectdiag.core.intensity import IntensityCalculator
from affectdiag.models import AffectContext, Prototype, PrototypeType, WitnessState
from affectdiag.registry import PrototypeRegistry


class PrototypeEmotionCalculator:
    """
    Scores every emotion / sexual prototype in a registry.

    A prototype whose gates fail scores 0; otherwise its intensity is
    clamped to [0, 1].
    """

    def __init__(
        self,
        registry: Optional[PrototypeRegistry] = None,
        normalizer: Optional[AxisNormalizer] = None,
    ):
        self.registry = registry
        self.normalizer = normalizer or AxisNormalizer()
        self.gate_checker = GateChecker(self.normalizer)
        self.intensity = IntensityCalculator(self.normalizer, self.gate_checker)
        self._parsed: Dict[str, List[Tuple[Prototype, ParsedGates]]] = {}

    def _prototypes(self, prototype_type: str) -> List[Tuple[Prototype, ParsedGates]]:
        if prototype_type not in self._parsed:
            prototypes = []
            if self.registry is not None:
                prototypes = self.registry.get_prototypes_by_type(prototype_type) or []
            self._parsed[prototype_type] = [
                (p, self.gate_checker.parse_gates(p.gates, p.id)) for p in prototypes
            ]
        return self._parsed[prototype_type]

    def _score_all(self, prototype_type: str, normalized: Mapping[str, float]) -> Dict[str, float]:
        scores = {}
        for prototype, parsed in self._prototypes(prototype_type):
            if self.gate_checker.check_parsed(parsed, normalized):
                value = self.intensity.compute_intensity(prototype.weights, normalized_axes=normalized)
                scores[prototype.id] = clamp01(value)
            else:
                scores[prototype.id] = 0.0
        return scores

    def calculate_emotions(
        self,
        mood: Mapping[str, float],
        sexual: Optional[Mapping[str, float]] = None,
        traits: Optional[Mapping[str, float]] = None,
    ) -> Dict[str, float]:
        normalized = self.normalizer.normalize({
            'moodAxes': mood,
            'sexualAxes': sexual or {},
            'affectTraits': traits or {},
        })
        return self._score_all(PrototypeType.EMOTION.value, normalized)

    def calculate_sexual_arousal(self, sexual: Mapping[str, float]) -> float:
        return self.normalizer.sexual_arousal(sexual)

    def calculate_sexual_states(
        self,
        mood: Mapping[str, float],
        sexual: Mapping[str, float],
        sexual_arousal: Optional[float] = None,
    ) -> Dict[str, float]:
        normalized = self.normalizer.normalize({
            'moodAxes': mood,
            'sexualAxes': sexual,
            'sexualArousal': sexual_arousal,
        })
        return self._score_all(PrototypeType.SEXUAL.value, normalized)


def _derived(state: AffectContext, calculator: Any) -> Dict[str, Any]:
    arousal = calculator.calculate_sexual_arousal(state.sexual_axes)
    return {
        'emotions': calculator.calculate_emotions(state.mood_axes, state.sexual_axes, state.trait_axes),
        'sexualStates': calculator.calculate_sexual_states(state.mood_axes, state.sexual_axes, arousal),
        'sexualArousal': arousal,
    }


def build_evaluation_context(state: Any, calculator: Any) -> Dict[str, Any]:
    """
    Build the logic-evaluation mapping for one state.

    Args:
        state: AffectContext or WitnessState
        calculator: Emotion calculation collaborator

    Returns:
        Nested dict readable by affectdiag.core.logic.evaluate
    """
    if isinstance(state, WitnessState):
        state = state.to_affect_context()

    current = _derived(state, calculator)
    previous_state = state.previous or state
    previous = current if state.previous is None else _derived(previous_state, calculator)

    return {
        'moodAxes': dict(state.mood_axes),
        'mood': dict(state.mood_axes),
        'sexualAxes': dict(state.sexual_axes),
        'affectTraits': dict(state.trait_axes),
        'emotions': current['emotions'],
        'sexualStates': current['sexualStates'],
        'sexualArousal': current['sexualArousal'],
        'previousMoodAxes': dict(previous_state.mood_axes),
        'previousSexualAxes': dict(previous_state.sexual_axes),
        'previousEmotions': dict(previous['emotions']),
        'previousSexualStates': dict(previous['sexualStates']),
        'previousSexualArousal': previous['sexualArousal'],
    }
