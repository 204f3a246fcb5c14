"""
affectdiag Prototype Overlap
============================

Pairwise redundancy pipeline:

    vectors.py      - PrototypeVectorEvaluator (per-prototype arrays over a pool)
    candidates.py   - CandidatePairFilter (weight-vector screen)
    implication.py  - gate intervals + GateImplicationEvaluator
    behavioral.py   - BehavioralOverlapEvaluator (pair metrics)
    classifier.py   - OverlapClassifier (merge / subsume / nest / ...)
    analyzer.py     - OverlapAnalyzer (the full pipeline)
"""

from .vectors import PrototypeVectorEvaluator
from .candidates import CandidatePairFilter
from .implication import GateImplicationEvaluator, ImplicationResult, Interval, build_intervals
from .behavioral import BehavioralOverlapEvaluator
from .classifier import OverlapClassifier
from .analyzer import OverlapAnalyzer, compute_composite_score

__all__ = [
    'PrototypeVectorEvaluator',
    'CandidatePairFilter',
    'GateImplicationEvaluator',
    'ImplicationResult',
    'Interval',
    'build_intervals',
    'BehavioralOverlapEvaluator',
    'OverlapClassifier',
    'OverlapAnalyzer',
    'compute_composite_score',
]
