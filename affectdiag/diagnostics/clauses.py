"""
Clause Extraction
=================

Breaks an expression's prerequisites into individual threshold clauses:

    {'>=': [{'var': 'emotions.joy'}, 0.6]}
        -> raw   emotions.joy >= 0.6

    {'>=': [{'-': [{'var': 'emotions.joy'}, {'var': 'previousEmotions.joy'}]}, 0.1]}
        -> delta emotions.joy >= 0.1

Raw axis clauses (moodAxes, mood, affectTraits, sexualAxes) are constraints
on the sampled state itself and are skipped unless requested; everything
else (emotions, sexual states, arousal, deltas) is a derived signal.
"""

import logging
import math
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from affectdiag.config.thresholds import FEASIBILITY_DOMAINS
from affectdiag.core.logic import (
    Arith,
    Node,
    Var,
    describe,
    iter_comparisons,
    normalize_comparison,
    parse_logic,
)
from affectdiag.models import ClauseSpec, SignalKind
from affectdiag.validation.errors import LogicParseError

logger = logging.getLogger(__name__)


AXIS_PREFIXES = ('moodAxes', 'mood', 'affectTraits', 'sexualAxes')

UNBOUNDED = (-math.inf, math.inf)


def path_domain(path: str) -> Tuple[float, float]:
    """Static (min, max) for a variable path, unbounded when unknown."""
    prefix = path.split('.', 1)[0]
    return FEASIBILITY_DOMAINS.get(prefix, UNBOUNDED)


def clause_domain(spec: ClauseSpec) -> Tuple[float, float]:
    """Domain of the clause's left-hand signal (delta widens to hi - lo)."""
    lo, hi = path_domain(spec.variable_path)
    if spec.signal == SignalKind.DELTA:
        return lo - hi, hi - lo
    return lo, hi


def is_previous_path(path: str) -> bool:
    return path.startswith('previous')


def classify_signal(expr: Node) -> Optional[Tuple[SignalKind, str, Optional[str]]]:
    """
    Identify the signal a comparison tests.

    Returns:
        (kind, current_path, previous_path) or None for unsupported shapes
    """
    if isinstance(expr, Var):
        return SignalKind.RAW, expr.path, None

    if (
        isinstance(expr, Arith)
        and expr.op == '-'
        and len(expr.operands) == 2
        and all(isinstance(o, Var) for o in expr.operands)
    ):
        current, previous = expr.operands
        if is_previous_path(current.path) and not is_previous_path(previous.path):
            current, previous = previous, current
        return SignalKind.DELTA, current.path, previous.path

    return None


def _logic_of(prerequisite: Any) -> Any:
    if isinstance(prerequisite, Mapping):
        return prerequisite.get('logic')
    return None


class NonAxisClauseExtractor:
    """Extracts normalized threshold clauses from prerequisite lists."""

    def __init__(self, include_axis_clauses: bool = False):
        self.include_axis_clauses = include_axis_clauses

    def extract(self, prerequisites: Optional[Iterable[Any]]) -> List[ClauseSpec]:
        """
        Args:
            prerequisites: List of {'logic': ...} entries

        Returns:
            ClauseSpec per supported comparison, in document order
        """
        clauses: List[ClauseSpec] = []

        for index, prerequisite in enumerate(prerequisites or []):
            logic = _logic_of(prerequisite)
            if logic is None:
                continue
            try:
                node = parse_logic(logic)
            except LogicParseError as e:
                logger.warning(f"Skipping prerequisite {index + 1}: {e}")
                continue

            for comparison in iter_comparisons(node):
                normalized = normalize_comparison(comparison)
                if normalized is None:
                    continue
                expr, operator, threshold = normalized

                signal = classify_signal(expr)
                if signal is None:
                    continue
                kind, path, previous_path = signal

                if (
                    kind == SignalKind.RAW
                    and not self.include_axis_clauses
                    and path.split('.', 1)[0] in AXIS_PREFIXES
                ):
                    continue

                clauses.append(ClauseSpec(
                    signal=kind,
                    variable_path=path,
                    operator=operator,
                    threshold=threshold,
                    clause_index=index,
                    description=describe(comparison),
                    previous_path=previous_path,
                ))

        return clauses
