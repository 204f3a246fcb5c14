"""
Prototype Overlap Analysis
==========================

Orchestrates the full overlap pipeline for one prototype family:

    1. Fetch prototypes from the registry (fewer than 2: insufficient_data)
    2. Build (or accept) a shared context pool
    3. Evaluate prototype vectors over the pool
    4. Filter candidate pairs on weight vectors
    5. Compute behavior metrics per candidate pair
    6. Classify each pair, rank by composite score

Composite score (higher = closer):

    gate_overlap_ratio * w_gate
      + (pearson + 1) / 2 * w_corr
      + (1 - clamp01(global_mean_abs_diff)) * w_diff

When global_mean_abs_diff is unavailable the gate + correlation terms are
used with renormalized weights; with no finite correlation the score is
NaN and the pair is never chosen as closest.

Usage:
    analyzer = OverlapAnalyzer(registry)
    report = await analyzer.analyze('emotion', sample_count=4000)
    report['metadata']['summary_insight']['status']
"""

import asyncio
import logging
import math
from typing import Any, Callable, Dict, List, Optional, Sequence

from affectdiag.config.loader import validate_overlap_config
from affectdiag.config.thresholds import get_overlap_config
from affectdiag.core.axes import clamp01
from affectdiag.core.random_context import RandomContextGenerator
from affectdiag.core.scheduling import cooperative_yield
from affectdiag.models import OverlapType
from affectdiag.overlap.behavioral import BehavioralOverlapEvaluator
from affectdiag.overlap.candidates import CandidatePairFilter
from affectdiag.overlap.classifier import OverlapClassifier, gate_overlap_ratio
from affectdiag.overlap.vectors import PrototypeVectorEvaluator
from affectdiag.registry import PrototypeRegistry

logger = logging.getLogger(__name__)


StageCallback = Callable[[str, Dict[str, Any]], None]

STAGES = ('sampling', 'evaluating_vectors', 'filtering', 'evaluating', 'classifying')


def compute_composite_score(
    gate_ratio: float,
    correlation: float,
    global_mean_abs_diff: float,
    weights: Dict[str, float],
) -> float:
    """
    Closeness of a pair in [0, 1]; NaN when gate ratio or correlation is missing.

    Args:
        weights: composite_score_gate_overlap_weight,
                 composite_score_correlation_weight,
                 composite_score_global_diff_weight
    """
    w_gate = weights['composite_score_gate_overlap_weight']
    w_corr = weights['composite_score_correlation_weight']
    w_diff = weights['composite_score_global_diff_weight']

    def finite(x):
        return isinstance(x, (int, float)) and math.isfinite(x)

    if not (finite(gate_ratio) and finite(correlation)):
        return math.nan

    normalized_corr = (correlation + 1.0) / 2.0
    if not finite(global_mean_abs_diff):
        total = w_gate + w_corr
        if total <= 0:
            return math.nan
        return gate_ratio * (w_gate / total) + normalized_corr * (w_corr / total)

    return (
        gate_ratio * w_gate
        + normalized_corr * w_corr
        + (1.0 - clamp01(global_mean_abs_diff)) * w_diff
    )


def _empty_breakdown() -> Dict[str, int]:
    return {t.value: 0 for t in OverlapType}


class OverlapAnalyzer:
    """
    Prototype overlap pipeline.

    Args:
        registry: Prototype source
        config: Overrides merged over the overlap defaults (validated)
        vector_evaluator, candidate_filter, behavioral_evaluator, classifier:
            Optional collaborators; defaults are built from config
    """

    def __init__(
        self,
        registry: PrototypeRegistry,
        config: Optional[Dict[str, Any]] = None,
        vector_evaluator: Optional[PrototypeVectorEvaluator] = None,
        candidate_filter: Optional[CandidatePairFilter] = None,
        behavioral_evaluator: Optional[BehavioralOverlapEvaluator] = None,
        classifier: Optional[OverlapClassifier] = None,
    ):
        self.registry = registry
        self.config = get_overlap_config(config)
        validate_overlap_config(self.config)

        self.vector_evaluator = vector_evaluator or PrototypeVectorEvaluator(config=self.config)
        self.candidate_filter = candidate_filter or CandidatePairFilter(self.config)
        self.behavioral_evaluator = behavioral_evaluator or BehavioralOverlapEvaluator(self.config)
        self.classifier = classifier or OverlapClassifier(self.config)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _fetch_prototypes(self, prototype_family: Optional[str]):
        if prototype_family in (None, 'all', 'both'):
            return list(self.registry.get_all_prototypes())
        return list(self.registry.get_prototypes_by_type(prototype_family) or [])

    def _build_pool(self, sample_count: int, seed: Optional[int]) -> List[Any]:
        generator = RandomContextGenerator(
            distribution=self.config['distribution'],
            sampling_mode=self.config['sampling_mode'],
            seed=seed,
        )
        return generator.generate_pool(sample_count)

    def _empty_report(self, prototype_family, total_prototypes, sample_count, status, message) -> Dict[str, Any]:
        return {
            'recommendations': [],
            'evaluated_pairs': [],
            'near_misses': [],
            'metadata': {
                'prototype_family': prototype_family,
                'total_prototypes': total_prototypes,
                'candidate_pairs_found': 0,
                'candidate_pairs_evaluated': 0,
                'sample_count': sample_count,
                'filtering_stats': {},
                'classification_breakdown': _empty_breakdown(),
                'closest_pair': None,
                'summary_insight': {'status': status, 'message': message, 'closest_pair': None},
            },
        }

    @staticmethod
    def summary_insight(
        pairs_evaluated: int,
        recommendation_count: int,
        near_miss_count: int,
        closest_pair: Optional[Dict[str, Any]],
        breakdown: Dict[str, int],
    ) -> Dict[str, Any]:
        """One-line verdict over the whole analysis."""
        if pairs_evaluated == 0:
            return {
                'status': 'no_candidates',
                'message': 'No structurally similar pairs found.',
                'closest_pair': None,
            }
        if recommendation_count > 0:
            merge = breakdown.get(OverlapType.MERGE_RECOMMENDED.value, 0)
            subsumed = breakdown.get(OverlapType.SUBSUMED_RECOMMENDED.value, 0)
            return {
                'status': 'redundant_found',
                'message': (
                    f"Found {recommendation_count} pair(s) needing action "
                    f"({merge} merge, {subsumed} subsumed)."
                ),
                'closest_pair': closest_pair,
            }
        if near_miss_count > 0:
            return {
                'status': 'near_misses',
                'message': (
                    f"All {pairs_evaluated} candidate pairs are distinct, "
                    f"but {near_miss_count} came close to merge thresholds."
                ),
                'closest_pair': closest_pair,
            }
        return {
            'status': 'well_differentiated',
            'message': f"All {pairs_evaluated} candidate pairs are behaviorally distinct.",
            'closest_pair': closest_pair,
        }

    # =========================================================================
    # Pipeline
    # =========================================================================

    async def analyze(
        self,
        prototype_family: Optional[str] = 'emotion',
        sample_count: Optional[int] = None,
        context_pool: Optional[Sequence[Any]] = None,
        on_progress: Optional[StageCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
        seed: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Run the pipeline.

        Args:
            prototype_family: 'emotion', 'sexual', or None / 'all'
            sample_count: Pool size when context_pool is not given
            context_pool: Pre-built pool (AffectContexts or axis mappings)
            on_progress: Called as (stage, info) at each stage
            cancel_event: Setting it aborts at the next yield
            seed: Seed for the generated pool

        Returns:
            Report dict with recommendations, evaluated_pairs,
            near_misses and metadata

        Raises:
            SearchCancelledError: If cancel_event is set during a yield
        """
        cfg = self.config
        sample_count = int(cfg['sample_count_per_pair'] if sample_count is None else sample_count)

        def progress(stage: str, **info):
            if on_progress is not None:
                on_progress(stage, {
                    'stage_number': STAGES.index(stage) + 1,
                    'total_stages': len(STAGES),
                    **info,
                })

        prototypes = self._fetch_prototypes(prototype_family)
        if len(prototypes) < 2:
            logger.info(f"Overlap analysis '{prototype_family}': {len(prototypes)} prototype(s), nothing to compare")
            return self._empty_report(
                prototype_family, len(prototypes), sample_count,
                'insufficient_data', 'Fewer than 2 prototypes available for analysis.',
            )

        # Stage 1: pool
        progress('sampling', sample_count=sample_count)
        if context_pool is None:
            context_pool = self._build_pool(sample_count, seed)
        sample_count = len(context_pool)

        # Stage 2: vectors
        def vector_progress(i, total):
            progress('evaluating_vectors', prototype_index=i, prototype_total=total)

        vectors = await self.vector_evaluator.evaluate_all(
            prototypes, context_pool, on_progress=vector_progress, cancel_event=cancel_event,
        )

        # Stage 3: candidates
        progress('filtering')
        candidates, filtering_stats = self.candidate_filter.filter_candidates(prototypes)
        logger.info(f"Overlap analysis '{prototype_family}': {len(candidates)} candidate pairs")

        # Stages 4-5: behavior + classification
        breakdown = _empty_breakdown()
        evaluated: List[Dict[str, Any]] = []
        recommendations: List[Dict[str, Any]] = []
        near_misses: List[Dict[str, Any]] = []
        closest_pair = None
        best_score = -math.inf
        yield_interval = int(cfg['pair_yield_interval'])

        for i, pair in enumerate(candidates):
            a, b = pair.prototype_a, pair.prototype_b
            progress('evaluating', pair_index=i, pair_total=len(candidates))
            behavior = self.behavioral_evaluator.evaluate(a, b, vectors[a.id], vectors[b.id], context_pool)

            classification = self.classifier.classify(pair.candidate_metrics, behavior)
            breakdown[classification.type.value] += 1

            intensity = behavior['intensity']
            ratio = gate_overlap_ratio(behavior)
            score = compute_composite_score(
                ratio,
                intensity['pearson_correlation'],
                intensity['global_mean_abs_diff'],
                cfg,
            )

            record = {
                'prototype_a': a.id,
                'prototype_b': b.id,
                'type': classification.type.value,
                'confidence': classification.primary.confidence,
                'all_types': [c.type.value for c in classification.classifications],
                'classification': classification,
                'candidate_metrics': pair.candidate_metrics,
                'behavior_metrics': behavior,
                'composite_score': score,
            }
            evaluated.append(record)

            if classification.type != OverlapType.KEEP_DISTINCT:
                recommendations.append(record)
            else:
                near_miss = self.classifier.check_near_miss(behavior)
                if near_miss is not None:
                    near_misses.append({**record, 'near_miss': near_miss})

            if math.isfinite(score) and score > best_score:
                best_score = score
                closest_pair = {
                    'prototype_a': a.id,
                    'prototype_b': b.id,
                    'composite_score': score,
                    'gate_overlap_ratio': ratio,
                    'correlation': intensity['pearson_correlation'],
                    'global_mean_abs_diff': intensity['global_mean_abs_diff'],
                    'global_l2_distance': intensity['global_l2_distance'],
                    'global_output_correlation': intensity['global_output_correlation'],
                }

            if (i + 1) % yield_interval == 0:
                progress('classifying', pair_index=i + 1, pair_total=len(candidates))
                await cooperative_yield(
                    cancel_event=cancel_event,
                    operation='overlap analysis',
                    completed=i + 1,
                )

        progress('classifying', pair_index=len(candidates), pair_total=len(candidates))

        def rank(record):
            score = record['composite_score']
            return score if math.isfinite(score) else -math.inf

        def near_miss_rank(record):
            corr = record['near_miss']['pearson_correlation']
            return corr if math.isfinite(corr) else -math.inf

        recommendations.sort(key=rank, reverse=True)
        near_misses.sort(key=near_miss_rank, reverse=True)
        near_misses = near_misses[:int(cfg['max_near_misses'])]

        insight = self.summary_insight(
            len(evaluated), len(recommendations), len(near_misses), closest_pair, breakdown,
        )
        logger.info(
            f"Overlap analysis '{prototype_family}' complete: {len(recommendations)} recommendations "
            f"from {len(evaluated)} pairs ({insight['status']})"
        )

        return {
            'recommendations': recommendations,
            'evaluated_pairs': evaluated,
            'near_misses': near_misses,
            'metadata': {
                'prototype_family': prototype_family,
                'total_prototypes': len(prototypes),
                'candidate_pairs_found': len(candidates),
                'candidate_pairs_evaluated': len(evaluated),
                'sample_count': sample_count,
                'filtering_stats': filtering_stats,
                'classification_breakdown': breakdown,
                'closest_pair': closest_pair,
                'summary_insight': insight,
            },
        }
