"""
affectdiag Overlap Configuration Loader
=======================================

Load overlap-pipeline overrides from a YAML file and validate the result.

Usage:
    from affectdiag.config.loader import load_overlap_config

    config = load_overlap_config('overlap.yaml')   # defaults + file overrides
    config = load_overlap_config()                  # defaults only
"""

import logging
import math
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

import yaml

from affectdiag.config.thresholds import get_overlap_config
from affectdiag.validation.errors import ConfigValidationError

logger = logging.getLogger(__name__)


PROBABILITY_KEYS = [
    'candidate_min_active_axis_overlap',
    'candidate_min_sign_agreement',
    'candidate_min_cosine_similarity',
    'jaccard_empty_set_value',
    'min_on_either_rate_for_merge',
    'min_gate_overlap_ratio',
    'max_exclusive_rate_for_subsumption',
    'min_dominance_for_subsumption',
    'nested_conditional_threshold',
    'separation_min_gate_overlap_ratio',
    'near_miss_gate_overlap_ratio',
    'composite_score_gate_overlap_weight',
    'composite_score_global_diff_weight',
    'composite_score_correlation_weight',
]

CORRELATION_KEYS = [
    'min_correlation_for_merge',
    'min_correlation_for_subsumption',
    'separation_min_correlation',
    'near_miss_correlation_threshold',
]

POSITIVE_INT_KEYS = [
    'sample_count_per_pair',
    'max_candidate_pairs',
    'max_near_misses',
    'pair_yield_interval',
    'divergence_examples_k',
    'min_pass_samples_for_conditional',
    'large_pool_threshold',
    'yield_interval',
]

POSITIVE_NUMBER_KEYS = [
    'active_axis_epsilon',
    'soft_sign_threshold',
    'intensity_eps',
    'max_mean_abs_diff_for_merge',
]

COMPOSITE_WEIGHT_KEYS = [
    'composite_score_gate_overlap_weight',
    'composite_score_global_diff_weight',
    'composite_score_correlation_weight',
]

WEIGHT_SUM_TOLERANCE = 0.001


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def validate_overlap_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate an overlap config, collecting every violation.

    Args:
        config: Flat config dict (as returned by get_overlap_config)

    Returns:
        The same config, unchanged, when valid

    Raises:
        ConfigValidationError: Listing all problems found
    """
    errors: List[str] = []

    for key in PROBABILITY_KEYS:
        if key not in config:
            continue
        value = config[key]
        if not _is_number(value) or not 0.0 <= value <= 1.0:
            errors.append(f"{key} must be in range [0, 1], got {value}")

    for key in CORRELATION_KEYS:
        if key not in config:
            continue
        value = config[key]
        if not _is_number(value) or not -1.0 <= value <= 1.0:
            errors.append(f"{key} must be in range [-1, 1], got {value}")

    for key in POSITIVE_INT_KEYS:
        if key not in config:
            continue
        value = config[key]
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            errors.append(f"{key} must be a positive integer, got {value}")

    for key in POSITIVE_NUMBER_KEYS:
        if key not in config:
            continue
        value = config[key]
        if not _is_number(value) or value <= 0:
            errors.append(f"{key} must be a positive number, got {value}")

    if all(k in config for k in COMPOSITE_WEIGHT_KEYS):
        weights = [config[k] for k in COMPOSITE_WEIGHT_KEYS]
        if all(_is_number(w) for w in weights):
            total = sum(weights)
            if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
                errors.append(
                    f"composite score weights must sum to 1.0, got {total:.4f}"
                )

    near_miss = config.get('near_miss_correlation_threshold')
    merge = config.get('min_correlation_for_merge')
    if _is_number(near_miss) and _is_number(merge) and near_miss > merge:
        errors.append(
            "near_miss_correlation_threshold must not exceed "
            f"min_correlation_for_merge ({near_miss} > {merge})"
        )

    if errors:
        raise ConfigValidationError(errors)

    return config


def load_overlap_config(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Load overlap config from YAML, merge over defaults, and validate.

    The YAML file may hold the keys at top level or under an
    'overlap' section.

    Args:
        path: YAML file path (None or missing file -> defaults only)
        overrides: Applied after the file contents

    Returns:
        Validated flat config dict
    """
    file_overrides: Dict[str, Any] = {}

    if path is not None:
        config_file = Path(path)
        if config_file.exists():
            with open(config_file) as f:
                raw = yaml.safe_load(f) or {}
            file_overrides = raw.get('overlap', raw)
            logger.debug(
                f"Loaded {len(file_overrides)} overlap overrides from {config_file}"
            )
        else:
            logger.warning(f"No overlap config at {config_file}, using defaults")

    merged = get_overlap_config({**file_overrides, **(overrides or {})})
    return validate_overlap_config(merged)
