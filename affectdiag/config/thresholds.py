"""
affectdiag Diagnostic Thresholds
================================

Centralized configuration for every tunable used by the diagnostics engine.

Principle: thresholds decide classifications, not computations. Adjusting
them changes what gets reported without changing how metrics are measured.

Usage:
    from affectdiag.config.thresholds import (
        CANDIDATE_FILTER,
        OVERLAP_CLASSIFICATION,
        get_overlap_config,
    )

Overrides:
    config = get_overlap_config({'min_correlation_for_merge': 0.95})
    # Returns merged defaults + overrides as one flat dict
"""

from typing import Dict, Any, Optional
from copy import deepcopy


# =============================================================================
# AXIS NORMALIZATION
# =============================================================================
# Used in: affectdiag/core/axes.py
# Purpose: Map raw axis values into bounded scoring ranges

NORMALIZATION = {
    'mood_scale': 100.0,         # mood / 100 -> [-1, 1]
    'sexual_scale': 100.0,       # sexual / 100 clamped to [0, 1]
    'trait_scale': 100.0,        # trait / 100 clamped to [0, 1]
    'default_trait_value': 50,   # Traits absent from a context
}


# =============================================================================
# GATES
# =============================================================================
# Used in: affectdiag/core/gates.py

GATE_CHECK = {
    'equality_tolerance': 1e-4,  # '==' gates compare within this distance
}


# =============================================================================
# INTENSITY COMPOSITE SCORE
# =============================================================================
# Used in: affectdiag/core/intensity.py
# Purpose: Combine four normalized sub-scores into one desirability value

INTENSITY_COMPOSITE_WEIGHTS = {
    'gate_pass_rate': 0.30,
    'p_intensity_above': 0.35,
    'conflict': 0.20,               # Applied to (1 - conflict_score)
    'exclusion_compatibility': 0.15,
}


# =============================================================================
# RANDOM CONTEXT GENERATION
# =============================================================================
# Used in: affectdiag/core/random_context.py

RANDOM_CONTEXT = {
    'dynamic_mood_sigma': 15.0,     # Per-step mood drift in dynamic mode
    'dynamic_sexual_sigma': 12.0,   # Per-step excitation/inhibition drift
    'dynamic_libido_sigma': 8.0,    # Per-step baseline libido drift
    'gaussian_range_divisor': 6.0,  # sigma = range / 6 for gaussian sampling
}


# =============================================================================
# WITNESS SEARCH
# =============================================================================
# Used in: affectdiag/diagnostics/witness.py

WITNESS_SEARCH = {
    'max_iterations': 10000,
    'chunk_size': 100,              # Iterations between progress/yield points
    'initial_temperature': 1.0,
    'cooling_rate': 0.995,
    'restart_threshold': 100,       # Iterations without improvement before restart
    'min_temperature': 0.01,
    'mood_step': 20.0,              # Gaussian perturbation sigma at temperature 1
    'sexual_step': 15.0,
    'trait_step': 15.0,
}


# =============================================================================
# MONTE CARLO SIMULATION
# =============================================================================
# Used in: affectdiag/diagnostics/monte_carlo.py

MONTE_CARLO = {
    'sample_count': 10000,
    'chunk_size': 1000,
    'confidence_level': 0.95,
    'sensitivity_sample_limit': 10000,
    'max_witnesses': 5,
    'sensitivity_steps': 9,
    'sensitivity_step_size': 0.05,
}


# =============================================================================
# FEASIBILITY DOMAINS
# =============================================================================
# Used in: affectdiag/diagnostics/feasibility.py
# Purpose: Static [min, max] bounds per variable-path prefix

FEASIBILITY_DOMAINS = {
    'emotions': (0.0, 1.0),
    'previousEmotions': (0.0, 1.0),
    'sexualStates': (0.0, 1.0),
    'previousSexualStates': (0.0, 1.0),
    'sexualArousal': (0.0, 1.0),
    'previousSexualArousal': (0.0, 1.0),
    'moodAxes': (-100.0, 100.0),
    'mood': (-100.0, 100.0),
    'previousMoodAxes': (-100.0, 100.0),
    'affectTraits': (0.0, 100.0),
    'sexualAxes': (-50.0, 100.0),   # Covers baseline_libido and excitation/inhibition
}


# =============================================================================
# PROTOTYPE VECTOR EVALUATION
# =============================================================================
# Used in: affectdiag/overlap/vectors.py

VECTOR_EVALUATION = {
    'large_pool_threshold': 1000,   # Pools above this yield inside the context loop
    'yield_interval': 500,          # Contexts between yields for large pools
}


# =============================================================================
# CANDIDATE PAIR FILTER (Stage A)
# =============================================================================
# Used in: affectdiag/overlap/candidates.py
# Purpose: Cheap weight-vector pruning before any context evaluation

CANDIDATE_FILTER = {
    'active_axis_epsilon': 0.08,               # |w| >= eps counts as active
    'candidate_min_active_axis_overlap': 0.6,  # Jaccard of active axis sets
    'candidate_min_sign_agreement': 0.8,
    'candidate_min_cosine_similarity': 0.85,
    'soft_sign_threshold': 0.15,               # |w| below this has neutral sign
    'jaccard_empty_set_value': 1.0,            # Both active sets empty
    'max_candidate_pairs': 5000,
}


# =============================================================================
# BEHAVIORAL OVERLAP (Stage B)
# =============================================================================
# Used in: affectdiag/overlap/behavioral.py

BEHAVIORAL_OVERLAP = {
    'min_co_pass_samples': 1,                  # Co-pass metrics NaN below this
    'min_pass_samples_for_conditional': 200,   # Conditional rates NaN below this
    'intensity_eps': 0.05,                     # |a - b| <= eps counts as "within"
    'dominance_delta': 0.05,                   # a > b + delta counts as dominance
    'high_thresholds': [0.4, 0.6, 0.75],
    'divergence_examples_k': 5,
}


# =============================================================================
# OVERLAP CLASSIFICATION (Stage C)
# =============================================================================
# Used in: affectdiag/overlap/classifier.py

OVERLAP_CLASSIFICATION = {
    # Merge
    'min_on_either_rate_for_merge': 0.05,      # Noise floor for activity
    'min_gate_overlap_ratio': 0.90,
    'min_correlation_for_merge': 0.98,
    'max_mean_abs_diff_for_merge': 0.03,

    # Subsumption
    'max_exclusive_rate_for_subsumption': 0.01,
    'min_correlation_for_subsumption': 0.95,
    'min_dominance_for_subsumption': 0.95,

    # Nesting / conversion
    'nested_conditional_threshold': 0.97,

    # Needs separation
    'separation_min_gate_overlap_ratio': 0.70,
    'separation_min_correlation': 0.80,

    # Near miss
    'near_miss_correlation_threshold': 0.90,
    'near_miss_gate_overlap_ratio': 0.75,
}


# =============================================================================
# OVERLAP ANALYSIS
# =============================================================================
# Used in: affectdiag/overlap/analyzer.py
# Composite closeness: gate co-occurrence dominant, output similarity second,
# correlation last. Weights must sum to 1.

OVERLAP_ANALYSIS = {
    'sample_count_per_pair': 8000,
    'composite_score_gate_overlap_weight': 0.5,
    'composite_score_global_diff_weight': 0.3,
    'composite_score_correlation_weight': 0.2,
    'max_near_misses': 10,
    'pair_yield_interval': 10,
    'distribution': 'uniform',
    'sampling_mode': 'static',
}


def get_overlap_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Flat overlap-pipeline config: defaults merged with overrides.

    Args:
        overrides: Keys to replace (unknown keys are kept as-is)

    Returns:
        New dict; module-level defaults are never mutated
    """
    merged: Dict[str, Any] = {}
    for section in (
        CANDIDATE_FILTER,
        BEHAVIORAL_OVERLAP,
        OVERLAP_CLASSIFICATION,
        OVERLAP_ANALYSIS,
        VECTOR_EVALUATION,
    ):
        merged.update(deepcopy(section))

    if overrides:
        merged.update(deepcopy(overrides))

    return merged
