"""
Witness State Search
====================

Randomized search for a state that satisfies every prerequisite of an
expression, using simulated annealing with random restarts over integer
mood / sexual / trait axes.

Fitness in [0, 1]:
- boolean leaves score 0 or 1
- a numeric comparison scores 1 when satisfied, otherwise
  1 - min(1, distance / domain_range)
- 'and' averages its children, 'or' takes the best child
- overall fitness is the mean over prerequisites

The search runs in chunks (100 iterations by default). After each full
chunk, except one that ends the budget, on_progress(completed, total) is
called and control is yielded to the event loop.
"""

import asyncio
import logging
import math
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import numpy as np

from affectdiag.config.thresholds import WITNESS_SEARCH
from affectdiag.core.context import PrototypeEmotionCalculator, build_evaluation_context
from affectdiag.core.logic import (
    And,
    Compare,
    Node,
    Not,
    Or,
    describe,
    evaluate,
    normalize_comparison,
    parse_logic,
    truthy,
)
from affectdiag.core.scheduling import cooperative_yield
from affectdiag.diagnostics.clauses import classify_signal, path_domain
from affectdiag.models import (
    AffectContext,
    Expression,
    MOOD_AXES,
    MOOD_RANGE,
    SEXUAL_RANGES,
    SearchResult,
    SignalKind,
    TRAIT_AXES,
    TRAIT_RANGE,
    WitnessState,
)
from affectdiag.registry import PrototypeRegistry
from affectdiag.validation.errors import LogicParseError

logger = logging.getLogger(__name__)


ProgressCallback = Callable[[int, int], None]

# Distance floor so a strict comparison failing exactly at its threshold
# still scores below 1.
MIN_DISTANCE = 1e-9


def _signal_range(expr: Node) -> float:
    signal = classify_signal(expr)
    if signal is None:
        return 1.0
    kind, path, _ = signal
    lo, hi = path_domain(path)
    width = hi - lo
    if not math.isfinite(width) or width <= 0:
        return 1.0
    return 2 * width if kind == SignalKind.DELTA else width


def clause_fitness(node: Node, context: Mapping[str, Any]) -> float:
    """Graded satisfaction of one logic node; 1.0 iff it evaluates true."""
    if isinstance(node, And):
        if not node.children:
            return 1.0
        return float(np.mean([clause_fitness(c, context) for c in node.children]))

    if isinstance(node, Or):
        if not node.children:
            return 0.0
        return max(clause_fitness(c, context) for c in node.children)

    if isinstance(node, Compare):
        if truthy(evaluate(node, context)):
            return 1.0
        normalized = normalize_comparison(node)
        if normalized is None or node.op in ('==', '!='):
            return 0.0
        expr, _, threshold = normalized
        value = evaluate(expr, context)
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            return 0.0
        distance = max(abs(float(value) - threshold), MIN_DISTANCE)
        return 1.0 - min(1.0, distance / _signal_range(expr))

    # Var / Const / Arith / Not are boolean leaves
    return 1.0 if truthy(evaluate(node, context)) else 0.0


class WitnessStateFinder:
    """
    Searches for witness states of expressions.

    Args:
        registry: Source of emotion / sexual prototypes for the reference
                  emotion calculator (ignored when emotion_calculator given)
        emotion_calculator: Collaborator computing emotions from raw axes
        config: Overrides for WITNESS_SEARCH defaults
    """

    def __init__(
        self,
        registry: Optional[PrototypeRegistry] = None,
        emotion_calculator: Any = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        self.calculator = emotion_calculator or PrototypeEmotionCalculator(registry)
        self.config = {**WITNESS_SEARCH, **(config or {})}

    # -------------------------------------------------------------------------
    # State sampling
    # -------------------------------------------------------------------------

    @staticmethod
    def _random_state(rng: np.random.Generator) -> Tuple[Dict[str, int], Dict[str, int], Dict[str, int]]:
        mood = {a: int(rng.integers(MOOD_RANGE[0], MOOD_RANGE[1] + 1)) for a in MOOD_AXES}
        sexual = {a: int(rng.integers(lo, hi + 1)) for a, (lo, hi) in SEXUAL_RANGES.items()}
        traits = {a: int(rng.integers(TRAIT_RANGE[0], TRAIT_RANGE[1] + 1)) for a in TRAIT_AXES}
        return mood, sexual, traits

    def _neighbor(self, state, temperature: float, rng: np.random.Generator):
        mood, sexual, traits = state
        scale = max(temperature, self.config['min_temperature'])

        def _step(value: int, sigma: float, bounds: Tuple[int, int]) -> int:
            lo, hi = bounds
            return int(np.clip(round(value + rng.normal(0.0, sigma * scale)), lo, hi))

        return (
            {a: _step(v, self.config['mood_step'], MOOD_RANGE) for a, v in mood.items()},
            {a: _step(v, self.config['sexual_step'], SEXUAL_RANGES[a]) for a, v in sexual.items()},
            {a: _step(v, self.config['trait_step'], TRAIT_RANGE) for a, v in traits.items()},
        )

    # -------------------------------------------------------------------------
    # Fitness
    # -------------------------------------------------------------------------

    @staticmethod
    def _compile(expression: Optional[Expression]) -> List[Tuple[int, Optional[Node], str]]:
        """(prerequisite index, node or None when malformed, description)."""
        clauses = []
        prerequisites = expression.prerequisites if expression is not None else []
        for index, prerequisite in enumerate(prerequisites or []):
            logic = prerequisite.get('logic') if isinstance(prerequisite, Mapping) else None
            if logic is None:
                continue
            try:
                node = parse_logic(logic)
                clauses.append((index, node, describe(node)))
            except LogicParseError as e:
                logger.warning(f"Malformed prerequisite {index + 1} on '{expression.id}': {e}")
                clauses.append((index, None, f"unparseable logic {logic!r}"))
        return clauses

    def _score(self, clauses, state) -> Tuple[float, List[float]]:
        if not clauses:
            return 1.0, []
        mood, sexual, traits = state
        context = build_evaluation_context(
            AffectContext(mood_axes=mood, sexual_axes=sexual, trait_axes=traits),
            self.calculator,
        )
        scores = [0.0 if node is None else clause_fitness(node, context) for _, node, _ in clauses]
        return float(np.mean(scores)), scores

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    async def find_witness(
        self,
        expression: Any,
        max_iterations: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
        **options,
    ) -> SearchResult:
        """
        Search for a state satisfying every prerequisite.

        Args:
            expression: Expression, mapping with 'prerequisites', or None
            max_iterations: Iteration budget (default from config)
            on_progress: Called as (completed, total) after each full chunk
            cancel_event: Setting it aborts the search at the next yield
            **options: initial_temperature, cooling_rate, restart_threshold,
                       chunk_size, seed

        Returns:
            SearchResult; iterations_used never exceeds max_iterations

        Raises:
            SearchCancelledError: If cancel_event is set during a yield
        """
        cfg = {**self.config, **options}
        total = int(cfg['max_iterations'] if max_iterations is None else max_iterations)
        chunk_size = int(cfg['chunk_size'])
        rng = np.random.default_rng(cfg.get('seed'))

        if expression is not None and not isinstance(expression, Expression):
            expression = Expression.from_dict(expression)
        expression_id = expression.id if expression is not None else None
        clauses = self._compile(expression)

        current = self._random_state(rng)
        current_fit, current_scores = self._score(clauses, current)
        best, best_fit, best_scores = current, current_fit, current_scores

        completed = 0
        if best_fit < 1.0:
            temperature = float(cfg['initial_temperature'])
            stale = 0

            while completed < total and best_fit < 1.0:
                chunk_end = min(completed + chunk_size, total)

                while completed < chunk_end:
                    completed += 1
                    candidate = self._neighbor(current, temperature, rng)
                    fit, scores = self._score(clauses, candidate)

                    delta = fit - current_fit
                    if delta >= 0 or rng.random() < math.exp(delta / max(temperature, cfg['min_temperature'])):
                        current, current_fit = candidate, fit

                    if fit > best_fit:
                        best, best_fit, best_scores = candidate, fit, scores
                        stale = 0
                    else:
                        stale += 1

                    if best_fit >= 1.0:
                        break

                    if stale >= cfg['restart_threshold']:
                        current = self._random_state(rng)
                        current_fit, scores = self._score(clauses, current)
                        if current_fit > best_fit:
                            best, best_fit, best_scores = current, current_fit, scores
                        temperature = float(cfg['initial_temperature'])
                        stale = 0
                        if best_fit >= 1.0:
                            break
                    else:
                        temperature = max(cfg['min_temperature'], temperature * cfg['cooling_rate'])

                if best_fit < 1.0 and completed < total:
                    if on_progress is not None:
                        on_progress(completed, total)
                    await cooperative_yield(
                        cancel_event=cancel_event,
                        operation='witness search',
                        completed=completed,
                    )

        found = best_fit >= 1.0
        mood, sexual, traits = best

        if found:
            witness = WitnessState(
                mood=mood, sexual=sexual, affect_traits=traits,
                fitness=1.0, is_exact=True, expression_id=expression_id,
            )
            result = SearchResult(
                found=True,
                witness=witness,
                nearest_miss=None,
                best_fitness=1.0,
                iterations_used=completed,
                violated_clauses=[],
            )
        else:
            nearest = WitnessState(
                mood=mood, sexual=sexual, affect_traits=traits,
                fitness=best_fit, is_exact=False, expression_id=expression_id,
            )
            violated = [
                f"Clause {index + 1}: {text}"
                for (index, _, text), score in zip(clauses, best_scores)
                if score < 1.0
            ]
            result = SearchResult(
                found=False,
                witness=None,
                nearest_miss=nearest,
                best_fitness=best_fit,
                iterations_used=completed,
                violated_clauses=violated,
            )

        logger.debug(
            f"Witness search '{expression_id}': found={found} "
            f"best_fitness={best_fit:.3f} iterations={completed}/{total}"
        )
        return result
