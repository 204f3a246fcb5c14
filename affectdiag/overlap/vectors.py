"""
Prototype Vector Evaluation
===========================

Evaluates every prototype over one shared context pool, producing parallel
gate / intensity arrays per prototype.

Each context is normalized once per pool and each prototype's gates are
parsed once, then reused for every context.

Usage:
    evaluator = PrototypeVectorEvaluator()
    vectors = await evaluator.evaluate_all(prototypes, pool)
    vectors['joy'].activation_rate
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import numpy as np

from affectdiag.config.thresholds import VECTOR_EVALUATION
from affectdiag.core.axes import AxisNormalizer
from affectdiag.core.gates import GateChecker
from affectdiag.core.intensity import IntensityCalculator
from affectdiag.core.scheduling import cooperative_yield
from affectdiag.models import Prototype, PrototypeVector
from affectdiag.validation.errors import InvalidPrototypeError

logger = logging.getLogger(__name__)


ProgressCallback = Callable[[int, int], None]

CONTEXT_ERRORS = (TypeError, ValueError, KeyError, ArithmeticError)


def _coerce_prototypes(prototypes: Sequence[Any]) -> List[Prototype]:
    result = []
    for index, prototype in enumerate(prototypes):
        if isinstance(prototype, Prototype):
            if not prototype.id:
                raise InvalidPrototypeError(index, "missing required 'id'")
            result.append(prototype)
        else:
            result.append(Prototype.from_dict(prototype, index))
    return result


class PrototypeVectorEvaluator:
    """
    Sparse prototype evaluation over a context pool.

    Args:
        gate_checker: Gate evaluation (default GateChecker)
        intensity_calculator: Intensity evaluation (default IntensityCalculator)
        config: Overrides for VECTOR_EVALUATION defaults
    """

    def __init__(
        self,
        gate_checker: Optional[GateChecker] = None,
        intensity_calculator: Optional[IntensityCalculator] = None,
        config: Optional[Dict[str, Any]] = None,
    ):
        self.gate_checker = gate_checker or GateChecker()
        self.normalizer: AxisNormalizer = self.gate_checker.normalizer
        self.intensity = intensity_calculator or IntensityCalculator(self.normalizer, self.gate_checker)
        self.config = {**VECTOR_EVALUATION, **(config or {})}

    def _normalize_pool(self, context_pool: Sequence[Any]) -> List[Optional[Mapping[str, float]]]:
        normalized = []
        for index, context in enumerate(context_pool):
            try:
                normalized.append(self.normalizer.normalize(context))
            except CONTEXT_ERRORS as e:
                logger.warning(f"Context {index} could not be normalized: {e}")
                normalized.append(None)
        return normalized

    async def evaluate_all(
        self,
        prototypes: Sequence[Any],
        context_pool: Sequence[Any],
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Dict[str, PrototypeVector]:
        """
        Evaluate every prototype over the pool.

        Args:
            prototypes: Prototype objects or registry mappings
            context_pool: AffectContexts or axis mappings
            on_progress: Called as (i, total) once per prototype
            cancel_event: Setting it aborts at the next yield

        Returns:
            prototype_id -> PrototypeVector, arrays of len(context_pool)

        Raises:
            InvalidPrototypeError: If any prototype lacks an id
        """
        prototypes = _coerce_prototypes(prototypes)
        normalized = self._normalize_pool(context_pool)
        n = len(normalized)
        total = len(prototypes)

        large_pool = n > self.config['large_pool_threshold']
        yield_interval = int(self.config['yield_interval'])

        vectors: Dict[str, PrototypeVector] = {}
        for i, prototype in enumerate(prototypes, start=1):
            parsed = self.gate_checker.parse_gates(prototype.gates, prototype.id)
            gate_results = np.zeros(n, dtype=bool)
            intensities = np.zeros(n, dtype=float)

            for j, axes in enumerate(normalized):
                if axes is not None:
                    try:
                        if self.gate_checker.check_parsed(parsed, axes):
                            intensities[j] = self.intensity.compute_intensity(
                                prototype.weights, normalized_axes=axes,
                            )
                            gate_results[j] = True
                    except CONTEXT_ERRORS as e:
                        logger.warning(f"Prototype '{prototype.id}' failed on context {j}: {e}")
                        gate_results[j] = False
                        intensities[j] = 0.0

                if large_pool and (j + 1) % yield_interval == 0:
                    await cooperative_yield(
                        cancel_event=cancel_event,
                        operation='prototype vector evaluation',
                        completed=j + 1,
                    )

            passing = intensities[gate_results]
            vectors[prototype.id] = PrototypeVector(
                prototype_id=prototype.id,
                gate_results=gate_results,
                intensities=intensities,
                activation_rate=float(gate_results.mean()) if n else 0.0,
                mean_intensity=float(passing.mean()) if passing.size else 0.0,
                std_intensity=float(passing.std()) if passing.size else 0.0,
                gate_parse_info=parsed.parse_info,
            )

            if on_progress is not None:
                on_progress(i, total)

        logger.info(f"Evaluated {total} prototypes over {n} contexts")
        return vectors
