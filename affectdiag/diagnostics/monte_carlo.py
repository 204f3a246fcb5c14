"""
Monte Carlo Simulation
======================

Estimates how often an expression triggers under randomly sampled affect
states.

For each sample:
1. Draw an AffectContext (uniform / gaussian, static / dynamic)
2. Run the emotion-calculation collaborator to build the logic context
3. Evaluate every prerequisite

Reports the trigger rate with a Wilson confidence interval, per-clause
failure statistics, the nearest miss (fewest failing comparisons), a few
witness contexts, and optionally the raw contexts for threshold
sensitivity sweeps.
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from scipy.stats import norm

from affectdiag.config.thresholds import MONTE_CARLO
from affectdiag.core.context import PrototypeEmotionCalculator, build_evaluation_context
from affectdiag.core.logic import (
    Node,
    compare_values,
    describe,
    evaluate,
    iter_comparisons,
    normalize_comparison,
    parse_logic,
    replace_threshold,
    resolve_path,
    truthy,
)
from affectdiag.core.random_context import RandomContextGenerator
from affectdiag.core.scheduling import cooperative_yield
from affectdiag.models import Expression
from affectdiag.registry import PrototypeRegistry
from affectdiag.validation.errors import LogicParseError

logger = logging.getLogger(__name__)


ProgressCallback = Callable[[int, int], None]


def wilson_interval(
    successes: int,
    n: int,
    confidence_level: float = 0.95,
) -> Tuple[float, float]:
    """
    Wilson score interval for a binomial proportion.

    Returns:
        (low, high) within [0, 1]; (0, 1) when n == 0
    """
    if n <= 0:
        return 0.0, 1.0

    z = float(norm.ppf(1.0 - (1.0 - confidence_level) / 2.0))
    p = successes / n
    z2 = z * z
    denom = 1.0 + z2 / n
    centre = (p + z2 / (2.0 * n)) / denom
    margin = z * math.sqrt(p * (1.0 - p) / n + z2 / (4.0 * n * n)) / denom
    return max(0.0, centre - margin), min(1.0, centre + margin)


@dataclass
class ClauseFailureStats:
    """Failure statistics for one prerequisite."""
    clause_index: int
    description: str
    failure_count: int = 0
    failure_rate: float = 0.0
    average_violation: float = 0.0
    total_violation: float = 0.0


@dataclass
class SimulationResult:
    """Outcome of one Monte Carlo run."""
    expression_id: Optional[str]
    sample_count: int
    trigger_count: int
    trigger_rate: float
    confidence_interval: Tuple[float, float]
    confidence_level: float
    distribution: str
    sampling_mode: str
    clause_failures: List[ClauseFailureStats] = field(default_factory=list)
    nearest_miss: Optional[Dict[str, Any]] = None
    nearest_miss_failed_leaves: Optional[int] = None
    witnesses: List[Dict[str, Any]] = field(default_factory=list)
    stored_contexts: List[Dict[str, Any]] = field(default_factory=list)


def _comparison_violation(node: Node, context: Mapping[str, Any]) -> Tuple[int, float]:
    """(number of failing comparison leaves, summed distance to threshold)."""
    failed = 0
    violation = 0.0
    for comparison in iter_comparisons(node):
        if truthy(evaluate(comparison, context)):
            continue
        failed += 1
        normalized = normalize_comparison(comparison)
        if normalized is None:
            continue
        expr, _, threshold = normalized
        value = evaluate(expr, context)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            violation += abs(float(value) - threshold)
    return failed, violation


class MonteCarloSimulator:
    """
    Samples random contexts and evaluates an expression over them.

    Args:
        registry: Prototype source for the reference emotion calculator
        emotion_calculator: Collaborator with calculate_emotions,
                            calculate_sexual_arousal, calculate_sexual_states
        config: Overrides for MONTE_CARLO defaults
    """

    def __init__(
        self,
        registry: Optional[PrototypeRegistry] = None,
        emotion_calculator: Any = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        self.calculator = emotion_calculator or PrototypeEmotionCalculator(registry)
        self.config = {**MONTE_CARLO, **(config or {})}

    @staticmethod
    def _compile(expression: Expression) -> List[Tuple[int, Optional[Node], str]]:
        compiled = []
        for index, prerequisite in enumerate(expression.prerequisites or []):
            logic = prerequisite.get('logic') if isinstance(prerequisite, Mapping) else None
            if logic is None:
                continue
            try:
                node = parse_logic(logic)
                compiled.append((index, node, describe(node)))
            except LogicParseError as e:
                logger.warning(f"Prerequisite {index + 1} of '{expression.id}' never passes: {e}")
                compiled.append((index, None, f"unparseable logic {logic!r}"))
        return compiled

    async def simulate(
        self,
        expression: Any,
        sample_count: Optional[int] = None,
        distribution: str = 'uniform',
        sampling_mode: str = 'static',
        track_clauses: bool = True,
        confidence_level: Optional[float] = None,
        store_samples_for_sensitivity: bool = False,
        sensitivity_sample_limit: Optional[int] = None,
        max_witnesses: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
        seed: Optional[int] = None,
    ) -> SimulationResult:
        """
        Run the simulation in chunks, yielding between them.

        on_progress(done, total) fires after every chunk, including a
        final (total, total).

        Raises:
            SearchCancelledError: If cancel_event is set during a yield
        """
        cfg = self.config
        total = int(cfg['sample_count'] if sample_count is None else sample_count)
        chunk_size = int(cfg['chunk_size'])
        confidence_level = cfg['confidence_level'] if confidence_level is None else confidence_level
        store_limit = int(cfg['sensitivity_sample_limit'] if sensitivity_sample_limit is None else sensitivity_sample_limit)
        max_witnesses = int(cfg['max_witnesses'] if max_witnesses is None else max_witnesses)

        if not isinstance(expression, Expression):
            expression = Expression.from_dict(expression or {})
        clauses = self._compile(expression)

        generator = RandomContextGenerator(distribution, sampling_mode, seed=seed)
        stats = [ClauseFailureStats(index, text) for index, _, text in clauses]

        trigger_count = 0
        witnesses: List[Dict[str, Any]] = []
        stored: List[Dict[str, Any]] = []
        nearest_miss: Optional[Dict[str, Any]] = None
        nearest_failed: Optional[int] = None

        done = 0
        while done < total:
            chunk_end = min(done + chunk_size, total)
            for _ in range(done, chunk_end):
                context = build_evaluation_context(generator.generate(), self.calculator)

                if store_samples_for_sensitivity and len(stored) < store_limit:
                    stored.append(context)

                triggered = True
                failed_leaves = 0
                for (_, node, _), stat in zip(clauses, stats):
                    passed = node is not None and truthy(evaluate(node, context))
                    if passed:
                        continue
                    triggered = False
                    if node is None:
                        failed_leaves += 1
                        if track_clauses:
                            stat.failure_count += 1
                        continue
                    leaves, violation = _comparison_violation(node, context)
                    failed_leaves += max(leaves, 1)
                    if track_clauses:
                        stat.failure_count += 1
                        stat.total_violation += violation

                if triggered:
                    trigger_count += 1
                    if len(witnesses) < max_witnesses:
                        witnesses.append(context)
                elif nearest_failed is None or failed_leaves < nearest_failed:
                    nearest_miss, nearest_failed = context, failed_leaves

            done = chunk_end
            if on_progress is not None:
                on_progress(done, total)
            if done < total:
                await cooperative_yield(
                    cancel_event=cancel_event,
                    operation='monte carlo simulation',
                    completed=done,
                )

        for stat in stats:
            stat.failure_rate = stat.failure_count / total if total else 0.0
            stat.average_violation = (
                stat.total_violation / stat.failure_count if stat.failure_count else 0.0
            )

        trigger_rate = trigger_count / total if total else 0.0
        result = SimulationResult(
            expression_id=expression.id,
            sample_count=total,
            trigger_count=trigger_count,
            trigger_rate=trigger_rate,
            confidence_interval=wilson_interval(trigger_count, total, confidence_level),
            confidence_level=confidence_level,
            distribution=distribution,
            sampling_mode=sampling_mode,
            clause_failures=stats if track_clauses else [],
            nearest_miss=nearest_miss,
            nearest_miss_failed_leaves=nearest_failed,
            witnesses=witnesses,
            stored_contexts=stored,
        )

        logger.info(
            f"Monte Carlo '{expression.id}': {trigger_count}/{total} triggered "
            f"({trigger_rate:.2%}, CI {result.confidence_interval[0]:.3f}-{result.confidence_interval[1]:.3f})"
        )
        return result

    def _threshold_grid(self, threshold: float, steps: Optional[int], step_size: Optional[float]) -> List[float]:
        steps = int(self.config['sensitivity_steps'] if steps is None else steps)
        step_size = float(self.config['sensitivity_step_size'] if step_size is None else step_size)
        half = steps // 2
        return [threshold + (i - half) * step_size for i in range(steps)]

    def compute_threshold_sensitivity(
        self,
        stored_contexts: Sequence[Mapping[str, Any]],
        variable_path: str,
        operator: str,
        threshold: float,
        steps: Optional[int] = None,
        step_size: Optional[float] = None,
    ) -> List[Dict[str, float]]:
        """
        Pass rate of one clause across a grid of thresholds.

        Returns:
            List of {threshold, pass_rate, pass_count, sample_count},
            centred on the original threshold
        """
        values = [resolve_path(c, variable_path) for c in stored_contexts]
        n = len(values)
        grid = []
        for t in self._threshold_grid(threshold, steps, step_size):
            count = sum(1 for v in values if compare_values(operator, v, t))
            grid.append({
                'threshold': t,
                'pass_rate': count / n if n else 0.0,
                'pass_count': count,
                'sample_count': n,
            })
        return grid

    def compute_expression_sensitivity(
        self,
        expression: Any,
        stored_contexts: Sequence[Mapping[str, Any]],
        variable_path: str,
        operator: str,
        threshold: float,
        steps: Optional[int] = None,
        step_size: Optional[float] = None,
    ) -> List[Dict[str, float]]:
        """
        Full-expression trigger rate with one clause threshold swept.

        The expression's logic is copied per grid point; the input is
        not modified.
        """
        if not isinstance(expression, Expression):
            expression = Expression.from_dict(expression)
        clauses = [node for _, node, _ in self._compile(expression)]
        n = len(stored_contexts)

        grid = []
        for t in self._threshold_grid(threshold, steps, step_size):
            swept = [
                None if node is None else replace_threshold(node, variable_path, t, operator)
                for node in clauses
            ]
            count = sum(
                1 for context in stored_contexts
                if all(node is not None and truthy(evaluate(node, context)) for node in swept)
            )
            grid.append({
                'threshold': t,
                'trigger_rate': count / n if n else 0.0,
                'trigger_count': count,
                'sample_count': n,
            })
        return grid
