"""
affectdiag Configuration

Default thresholds live as module-level dicts in thresholds.py; YAML
overrides and validation live in loader.py.
"""

from .thresholds import (
    NORMALIZATION,
    GATE_CHECK,
    INTENSITY_COMPOSITE_WEIGHTS,
    RANDOM_CONTEXT,
    WITNESS_SEARCH,
    MONTE_CARLO,
    FEASIBILITY_DOMAINS,
    VECTOR_EVALUATION,
    CANDIDATE_FILTER,
    BEHAVIORAL_OVERLAP,
    OVERLAP_CLASSIFICATION,
    OVERLAP_ANALYSIS,
    get_overlap_config,
)
from .loader import load_overlap_config, validate_overlap_config

__all__ = [
    'NORMALIZATION',
    'GATE_CHECK',
    'INTENSITY_COMPOSITE_WEIGHTS',
    'RANDOM_CONTEXT',
    'WITNESS_SEARCH',
    'MONTE_CARLO',
    'FEASIBILITY_DOMAINS',
    'VECTOR_EVALUATION',
    'CANDIDATE_FILTER',
    'BEHAVIORAL_OVERLAP',
    'OVERLAP_CLASSIFICATION',
    'OVERLAP_ANALYSIS',
    'get_overlap_config',
    'load_overlap_config',
    'validate_overlap_config',
]
