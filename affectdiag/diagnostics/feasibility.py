"""
Clause Feasibility
==================

Classifies each threshold clause of an expression against a sampled
context pool:

    OK                        pass_rate > 0
    THEORETICALLY_IMPOSSIBLE  pass_rate == 0 and the static domain bound of
                              the signal cannot reach the threshold
    EMPIRICALLY_UNREACHABLE   pass_rate == 0 otherwise (ceiling / floor
                              effect of this particular pool)

The classification is derived from pass_rate first, so a clause can never
be reported as both passing and impossible.

AffectContext pools are expanded into full evaluation contexts (emotions,
sexual states, previous values) through the injected emotion calculator.

Usage:
    analyzer = FeasibilityAnalyzer(registry)
    pool = RandomContextGenerator(seed=42).generate_pool(2000)
    results = analyzer.analyze(expression.prerequisites, pool, expression.id)
"""

import logging
import math
from typing import Any, Iterable, List, Mapping, Optional, Sequence

import numpy as np

from affectdiag.core.context import PrototypeEmotionCalculator, build_evaluation_context
from affectdiag.core.logic import compare_values, resolve_path
from affectdiag.diagnostics.clauses import NonAxisClauseExtractor, clause_domain
from affectdiag.models import (
    AffectContext,
    ClauseSpec,
    FeasibilityClass,
    FeasibilityResult,
    SignalKind,
    WitnessState,
)
from affectdiag.registry import PrototypeRegistry

logger = logging.getLogger(__name__)


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def signal_value(spec: ClauseSpec, context: Mapping[str, Any]) -> Optional[float]:
    """Value of the clause's signal in one context; None when unavailable."""
    current = _number(resolve_path(context, spec.variable_path))
    if spec.signal == SignalKind.RAW or current is None:
        return current
    previous = _number(resolve_path(context, spec.previous_path))
    if previous is None:
        return None
    return current - previous


def is_structurally_impossible(operator: str, threshold: float, lo: float, hi: float) -> bool:
    """True when no value in [lo, hi] can satisfy `value <operator> threshold`."""
    if operator == '>=':
        return hi < threshold
    if operator == '>':
        return hi <= threshold
    if operator == '<=':
        return lo > threshold
    if operator == '<':
        return lo >= threshold
    if operator == '==':
        return threshold < lo or threshold > hi
    return False


class FeasibilityAnalyzer:
    """
    Per-clause pass rates and three-tier feasibility classification.

    Args:
        registry: Prototype source for the reference emotion calculator
        emotion_calculator: Collaborator used to derive emotions and sexual
                            states for AffectContext / WitnessState pools
        extractor: Clause extractor
    """

    def __init__(
        self,
        registry: Optional[PrototypeRegistry] = None,
        emotion_calculator: Any = None,
        extractor: Optional[NonAxisClauseExtractor] = None,
    ):
        self.calculator = emotion_calculator or PrototypeEmotionCalculator(registry)
        self.extractor = extractor or NonAxisClauseExtractor()

    def _as_mapping(self, context: Any) -> Mapping[str, Any]:
        if isinstance(context, (AffectContext, WitnessState)):
            return build_evaluation_context(context, self.calculator)
        return context

    def prepare_pool(self, context_pool: Sequence[Any]) -> List[Mapping[str, Any]]:
        """Evaluation-context mappings for a pool; mappings pass through."""
        return [self._as_mapping(c) for c in context_pool]

    def analyze_clause(
        self,
        spec: ClauseSpec,
        context_pool: Sequence[Any],
        expression_id: Optional[str] = None,
    ) -> FeasibilityResult:
        """
        Scan the pool once for one clause.

        Returns:
            FeasibilityResult; max/min are NaN when no value was observed
        """
        values = []
        passes = 0
        for context in context_pool:
            value = signal_value(spec, self._as_mapping(context))
            if value is None:
                continue
            values.append(value)
            if compare_values(spec.operator, value, spec.threshold):
                passes += 1

        sample_count = len(context_pool)
        pass_rate = passes / sample_count if sample_count else 0.0
        max_value = float(np.max(values)) if values else np.nan
        min_value = float(np.min(values)) if values else np.nan

        lo, hi = clause_domain(spec)
        if pass_rate > 0:
            classification = FeasibilityClass.OK
        elif is_structurally_impossible(spec.operator, spec.threshold, lo, hi):
            classification = FeasibilityClass.THEORETICALLY_IMPOSSIBLE
        else:
            classification = FeasibilityClass.EMPIRICALLY_UNREACHABLE

        return FeasibilityResult(
            signal=spec.signal,
            variable_path=spec.variable_path,
            operator=spec.operator,
            threshold=spec.threshold,
            pass_rate=pass_rate,
            max_value=max_value,
            min_value=min_value,
            classification=classification,
            expression_id=expression_id,
            clause_index=spec.clause_index,
            domain_min=lo,
            domain_max=hi,
            sample_count=sample_count,
        )

    def analyze(
        self,
        prerequisites: Optional[Iterable[Any]],
        context_pool: Sequence[Any],
        expression_id: Optional[str] = None,
    ) -> List[FeasibilityResult]:
        """
        Classify every extracted clause of a prerequisite list.

        Args:
            prerequisites: List of {'logic': ...} entries
            context_pool: Evaluation-context mappings, AffectContexts or
                          WitnessStates (emotions derived per state)
            expression_id: Recorded on each result

        Returns:
            One FeasibilityResult per clause, in document order
        """
        clauses = self.extractor.extract(prerequisites)
        pool = self.prepare_pool(context_pool) if clauses else []
        results = [self.analyze_clause(c, pool, expression_id) for c in clauses]

        blocked = [r for r in results if r.classification != FeasibilityClass.OK]
        if blocked:
            logger.info(
                f"Expression '{expression_id}': {len(blocked)}/{len(results)} clauses never pass "
                f"({sum(r.classification == FeasibilityClass.THEORETICALLY_IMPOSSIBLE for r in blocked)} impossible)"
            )
        return results
