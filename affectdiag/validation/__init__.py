"""
affectdiag Validation Module

Exception types shared by every diagnostic stage.

Exports:
    - DiagnosticsError: Base class for all diagnostics errors
    - InvalidPrototypeError: Raised for prototypes that cannot be evaluated
    - SearchCancelledError: Raised when a search is aborted at a yield point
    - LogicParseError: Raised for malformed logic trees
    - ConfigValidationError: Raised when overlap configuration is invalid
"""

from .errors import (
    DiagnosticsError,
    InvalidPrototypeError,
    SearchCancelledError,
    LogicParseError,
    ConfigValidationError,
)

__all__ = [
    'DiagnosticsError',
    'InvalidPrototypeError',
    'SearchCancelledError',
    'LogicParseError',
    'ConfigValidationError',
]
