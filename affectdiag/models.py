"""
Diagnostics Data Model

Value types shared by the witness search, feasibility analysis and the
prototype-overlap pipeline.

Axis vocabulary:
    Mood axes       integers in [-100, 100]
    Sexual axes     sex_excitation / sex_inhibition in [0, 100],
                    baseline_libido in [-50, 50]
    Trait axes      integers in [0, 100], default 50
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np

from affectdiag.validation.errors import InvalidPrototypeError


# =============================================================================
# AXIS VOCABULARY
# =============================================================================

MOOD_AXES = (
    'valence',
    'arousal',
    'agency_control',
    'threat',
    'engagement',
    'future_expectancy',
    'self_evaluation',
    'affiliation',
)

SEXUAL_AXES = ('sex_excitation', 'sex_inhibition', 'baseline_libido')

TRAIT_AXES = ('affective_empathy', 'cognitive_empathy', 'harm_aversion')

MOOD_RANGE = (-100, 100)

SEXUAL_RANGES: Dict[str, Tuple[int, int]] = {
    'sex_excitation': (0, 100),
    'sex_inhibition': (0, 100),
    'baseline_libido': (-50, 50),
}

TRAIT_RANGE = (0, 100)

DEFAULT_TRAIT_VALUE = 50


class PrototypeType(str, Enum):
    """Prototype families held by the registry."""
    EMOTION = "emotion"
    SEXUAL = "sexual"


class ParseStatus(str, Enum):
    """Whether every gate of a prototype could be parsed."""
    COMPLETE = "complete"
    PARTIAL = "partial"


class SignalKind(str, Enum):
    """Raw value clause vs. (current - previous) clause."""
    RAW = "raw"
    DELTA = "delta"


class FeasibilityClass(str, Enum):
    """Three-tier clause feasibility."""
    OK = "OK"
    THEORETICALLY_IMPOSSIBLE = "THEORETICALLY_IMPOSSIBLE"
    EMPIRICALLY_UNREACHABLE = "EMPIRICALLY_UNREACHABLE"


class OverlapType(str, Enum):
    """Pairwise prototype relationships, highest priority first."""
    MERGE_RECOMMENDED = "merge_recommended"
    SUBSUMED_RECOMMENDED = "subsumed_recommended"
    CONVERT_TO_EXPRESSION = "convert_to_expression"
    NESTED_SIBLINGS = "nested_siblings"
    NEEDS_SEPARATION = "needs_separation"
    KEEP_DISTINCT = "keep_distinct"


OVERLAP_PRIORITY: List[OverlapType] = list(OverlapType)


# =============================================================================
# STATES AND DEFINITIONS
# =============================================================================

@dataclass(frozen=True)
class AffectContext:
    """
    One sampled or candidate world state.

    Attributes:
        mood_axes: Raw mood values keyed by axis name
        sexual_axes: Raw sexual values keyed by axis name
        trait_axes: Raw trait values keyed by axis name
        previous: Prior state for delta clauses (optional)
    """
    mood_axes: Dict[str, float] = field(default_factory=dict)
    sexual_axes: Dict[str, float] = field(default_factory=dict)
    trait_axes: Dict[str, float] = field(default_factory=dict)
    previous: Optional['AffectContext'] = None

    def __post_init__(self):
        # Copy so callers holding the source dicts cannot mutate this state
        object.__setattr__(self, 'mood_axes', dict(self.mood_axes))
        object.__setattr__(self, 'sexual_axes', dict(self.sexual_axes))
        object.__setattr__(self, 'trait_axes', dict(self.trait_axes))

    def to_logic_context(self) -> Dict[str, Any]:
        """Raw-axis view for logic evaluation (no derived emotions)."""
        previous = self.previous or self
        return {
            'moodAxes': dict(self.mood_axes),
            'mood': dict(self.mood_axes),
            'sexualAxes': dict(self.sexual_axes),
            'affectTraits': dict(self.trait_axes),
            'previousMoodAxes': dict(previous.mood_axes),
            'previousSexualAxes': dict(previous.sexual_axes),
        }


@dataclass
class Prototype:
    """
    A named linear scoring rule restricted by gate conditions.

    Attributes:
        id: Unique prototype identifier
        weights: Axis name -> weight
        gates: Gate strings such as 'valence >= 0.2'
        type: Prototype family ('emotion' or 'sexual')
    """
    id: str
    weights: Dict[str, float] = field(default_factory=dict)
    gates: List[str] = field(default_factory=list)
    type: str = PrototypeType.EMOTION.value

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], index: Optional[int] = None) -> 'Prototype':
        """
        Build a prototype from a registry mapping.

        Raises:
            InvalidPrototypeError: If the mapping has no id
        """
        if not isinstance(data, Mapping):
            raise InvalidPrototypeError(index, f"expected a mapping, got {type(data).__name__}")

        proto_id = data.get('id')
        if not proto_id:
            raise InvalidPrototypeError(index, "missing required 'id'")

        return cls(
            id=str(proto_id),
            weights=dict(data.get('weights') or {}),
            gates=list(data.get('gates') or []),
            type=str(data.get('type', PrototypeType.EMOTION.value)),
        )


@dataclass
class Expression:
    """A named prerequisite set; clauses combine with implicit AND."""
    id: str
    prerequisites: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Expression':
        return cls(
            id=str(data.get('id', '')),
            prerequisites=list(data.get('prerequisites') or []),
        )


@dataclass
class GateParseInfo:
    """
    Per-prototype gate parse record.

    Deterministic (proof-based) implication is only allowed when
    parse_status is COMPLETE.
    """
    parse_status: ParseStatus = ParseStatus.COMPLETE
    parsed_gate_count: int = 0
    total_gate_count: int = 0
    unparsed_gates: List[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return self.parse_status == ParseStatus.COMPLETE


# =============================================================================
# WITNESS SEARCH
# =============================================================================

@dataclass(frozen=True)
class WitnessState:
    """
    Integer-valued candidate state produced by the witness search.

    Attributes:
        mood: Mood axes in [-100, 100]
        sexual: Sexual axes within SEXUAL_RANGES
        affect_traits: Trait axes in [0, 100]
        fitness: Fitness in [0, 1] at which this state was recorded
        is_exact: True when the state satisfies every prerequisite
        expression_id: Expression this state was searched for
    """
    mood: Dict[str, int]
    sexual: Dict[str, int]
    affect_traits: Dict[str, int] = field(default_factory=dict)
    fitness: float = 1.0
    is_exact: bool = True
    expression_id: Optional[str] = None

    def __post_init__(self):
        if self.mood is None or self.sexual is None:
            raise ValueError("WitnessState requires mood and sexual values")

        for axis, value in self.mood.items():
            _check_axis_value('mood', axis, value, MOOD_RANGE)
        for axis, value in self.sexual.items():
            _check_axis_value('sexual', axis, value, SEXUAL_RANGES.get(axis, (-100, 100)))
        for axis, value in self.affect_traits.items():
            _check_axis_value('trait', axis, value, TRAIT_RANGE)

        object.__setattr__(self, 'mood', dict(self.mood))
        object.__setattr__(self, 'sexual', dict(self.sexual))
        traits = {a: DEFAULT_TRAIT_VALUE for a in TRAIT_AXES}
        traits.update(self.affect_traits)
        object.__setattr__(self, 'affect_traits', traits)

    @property
    def is_witness(self) -> bool:
        return self.is_exact and self.fitness == 1

    def with_changes(self, **changes) -> 'WitnessState':
        """Copy with selected fields (or individual axes) replaced."""
        mood = {**self.mood, **changes.pop('mood', {})}
        sexual = {**self.sexual, **changes.pop('sexual', {})}
        traits = {**self.affect_traits, **changes.pop('affect_traits', {})}
        return WitnessState(
            mood=mood,
            sexual=sexual,
            affect_traits=traits,
            fitness=changes.get('fitness', self.fitness),
            is_exact=changes.get('is_exact', self.is_exact),
            expression_id=changes.get('expression_id', self.expression_id),
        )

    def to_affect_context(self) -> AffectContext:
        return AffectContext(
            mood_axes=self.mood,
            sexual_axes=self.sexual,
            trait_axes=self.affect_traits,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'mood': dict(self.mood),
            'sexual': dict(self.sexual),
            'affect_traits': dict(self.affect_traits),
            'fitness': self.fitness,
            'is_exact': self.is_exact,
            'expression_id': self.expression_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'WitnessState':
        return cls(
            mood=dict(data['mood']),
            sexual=dict(data['sexual']),
            affect_traits=dict(data.get('affect_traits') or {}),
            fitness=data.get('fitness', 1.0),
            is_exact=data.get('is_exact', True),
            expression_id=data.get('expression_id'),
        )

    @classmethod
    def neutral(cls) -> 'WitnessState':
        """All mood axes at 0, sexual axes at mid-range."""
        return cls(
            mood={a: 0 for a in MOOD_AXES},
            sexual={a: (lo + hi) // 2 for a, (lo, hi) in SEXUAL_RANGES.items()},
            fitness=0.0,
            is_exact=False,
        )


def _check_axis_value(kind: str, axis: str, value: Any, bounds: Tuple[int, int]) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
        raise ValueError(f"{kind} axis '{axis}' must be a number, got {value!r}")
    if np.isnan(value):
        raise ValueError(f"{kind} axis '{axis}' is NaN")
    lo, hi = bounds
    if value < lo or value > hi:
        raise ValueError(f"{kind} axis '{axis}'={value} outside [{lo}, {hi}]")


@dataclass
class SearchResult:
    """Outcome of one witness search."""
    found: bool
    witness: Optional[WitnessState]
    nearest_miss: Optional[WitnessState]
    best_fitness: float
    iterations_used: int
    violated_clauses: List[str] = field(default_factory=list)


# =============================================================================
# FEASIBILITY
# =============================================================================

@dataclass
class ClauseSpec:
    """One normalized threshold clause extracted from a prerequisite."""
    signal: SignalKind
    variable_path: str
    operator: str
    threshold: float
    clause_index: int = 0
    description: str = ""
    previous_path: Optional[str] = None


@dataclass
class FeasibilityResult:
    """Per-clause feasibility verdict over a context pool."""
    signal: SignalKind
    variable_path: str
    operator: str
    threshold: float
    pass_rate: float
    max_value: float
    min_value: float
    classification: FeasibilityClass
    expression_id: Optional[str] = None
    clause_index: int = 0
    domain_min: float = float('-inf')
    domain_max: float = float('inf')
    sample_count: int = 0


# =============================================================================
# PROTOTYPE OVERLAP
# =============================================================================

@dataclass
class PrototypeVector:
    """
    Sparse per-context evaluation of one prototype over a shared pool.

    gate_results and intensities are parallel arrays indexed by context
    position; intensities are 0 wherever the gate failed. Mean and std are
    taken over gate-passing positions only.
    """
    prototype_id: str
    gate_results: np.ndarray
    intensities: np.ndarray
    activation_rate: float
    mean_intensity: float
    std_intensity: float
    gate_parse_info: GateParseInfo = field(default_factory=GateParseInfo)


@dataclass
class CandidatePair:
    """A prototype pair that survived weight-vector filtering."""
    prototype_a: Prototype
    prototype_b: Prototype
    candidate_metrics: Dict[str, float]


@dataclass
class OverlapClassification:
    """One matching relationship category with its own confidence."""
    type: OverlapType
    confidence: float
    evidence: Dict[str, Any] = field(default_factory=dict)
    is_primary: bool = False


@dataclass
class ClassificationResult:
    """Every matching category in priority order; the first is primary."""
    classifications: List[OverlapClassification]

    @property
    def primary(self) -> OverlapClassification:
        return self.classifications[0]

    @property
    def type(self) -> OverlapType:
        return self.primary.type

    @property
    def types(self) -> List[OverlapType]:
        return [c.type for c in self.classifications]
