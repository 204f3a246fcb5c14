"""
Candidate Pair Filtering
========================

Cheap weight-vector screen that selects prototype pairs worth a full
behavioral comparison.

Metrics per unordered pair:
- active_axis_overlap: Jaccard of axes with |w| >= active_axis_epsilon
- sign_agreement: share of common active axes whose soft signs match
  (|w| < soft_sign_threshold counts as neutral)
- cosine_similarity: over the union of axes, missing axes are 0

A pair passes when all three clear their thresholds.
"""

import itertools
import logging
import math
from numbers import Real
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from affectdiag.config.thresholds import CANDIDATE_FILTER
from affectdiag.models import CandidatePair, Prototype

logger = logging.getLogger(__name__)


def valid_weights(weights: Any) -> Optional[Dict[str, float]]:
    """Weights as floats, or None when missing, empty or non-numeric."""
    if not isinstance(weights, Mapping) or not weights:
        return None
    result = {}
    for axis, weight in weights.items():
        if isinstance(weight, bool) or not isinstance(weight, Real) or not math.isfinite(weight):
            return None
        result[axis] = float(weight)
    return result


def active_axes(weights: Mapping[str, float], epsilon: float) -> set:
    return {axis for axis, w in weights.items() if abs(w) >= epsilon}


def soft_sign(weight: float, threshold: float) -> int:
    if abs(weight) < threshold:
        return 0
    return 1 if weight > 0 else -1


def cosine_similarity(a: Mapping[str, float], b: Mapping[str, float]) -> float:
    axes = sorted(set(a) | set(b))
    va = np.array([a.get(x, 0.0) for x in axes])
    vb = np.array([b.get(x, 0.0) for x in axes])
    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0:
        return 0.0
    return float(np.dot(va, vb) / norm)


class CandidatePairFilter:
    """Selects candidate prototype pairs from weight vectors."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = {**CANDIDATE_FILTER, **(config or {})}

    def compute_metrics(self, a: Mapping[str, float], b: Mapping[str, float]) -> Dict[str, float]:
        cfg = self.config
        active_a = active_axes(a, cfg['active_axis_epsilon'])
        active_b = active_axes(b, cfg['active_axis_epsilon'])

        union = active_a | active_b
        shared = active_a & active_b
        if not union:
            jaccard = float(cfg['jaccard_empty_set_value'])
        else:
            jaccard = len(shared) / len(union)

        if shared:
            t = cfg['soft_sign_threshold']
            agree = sum(1 for x in shared if soft_sign(a[x], t) == soft_sign(b[x], t))
            sign_agreement = agree / len(shared)
        else:
            sign_agreement = 0.0

        return {
            'active_axis_overlap': jaccard,
            'sign_agreement': sign_agreement,
            'cosine_similarity': cosine_similarity(a, b),
            'shared_active_axes': len(shared),
        }

    def filter_candidates(
        self,
        prototypes: Sequence[Prototype],
    ) -> Tuple[List[CandidatePair], Dict[str, int]]:
        """
        Screen every unordered pair.

        Returns:
            (candidate pairs in input order, filtering stats)
        """
        cfg = self.config
        usable = []
        for prototype in prototypes:
            weights = valid_weights(getattr(prototype, 'weights', None))
            if weights is None:
                logger.warning(f"Skipping prototype '{getattr(prototype, 'id', None)}': invalid weights")
                continue
            usable.append((prototype, weights))

        stats = {
            'total_possible_pairs': len(usable) * (len(usable) - 1) // 2,
            'passed_filtering': 0,
            'rejected_by_active_axis_overlap': 0,
            'rejected_by_sign_agreement': 0,
            'rejected_by_cosine_similarity': 0,
            'prototypes_with_valid_weights': len(usable),
        }

        candidates: List[CandidatePair] = []
        capped = False
        for (proto_a, wa), (proto_b, wb) in itertools.combinations(usable, 2):
            if proto_a.id == proto_b.id:
                continue
            metrics = self.compute_metrics(wa, wb)

            if metrics['active_axis_overlap'] < cfg['candidate_min_active_axis_overlap']:
                stats['rejected_by_active_axis_overlap'] += 1
                continue
            if metrics['sign_agreement'] < cfg['candidate_min_sign_agreement']:
                stats['rejected_by_sign_agreement'] += 1
                continue
            if metrics['cosine_similarity'] < cfg['candidate_min_cosine_similarity']:
                stats['rejected_by_cosine_similarity'] += 1
                continue

            stats['passed_filtering'] += 1
            if len(candidates) < cfg['max_candidate_pairs']:
                candidates.append(CandidatePair(proto_a, proto_b, metrics))
            else:
                capped = True

        if capped:
            logger.warning(
                f"Candidate pairs capped at {cfg['max_candidate_pairs']} "
                f"({stats['passed_filtering']} passed filtering)"
            )

        logger.info(
            f"Candidate filter: {stats['passed_filtering']}/{stats['total_possible_pairs']} pairs passed"
        )
        return candidates, stats
