"""
Diagnostics Errors

Exception types raised by the diagnostics engine.

PRINCIPLE: "Fail loudly on bad definitions, degrade gracefully on bad samples"

Usage:
    from affectdiag.validation import InvalidPrototypeError, SearchCancelledError

    try:
        vectors = await evaluator.evaluate_all(prototypes, pool)
    except InvalidPrototypeError as e:
        print(f"Bad prototype: {e}")
"""

from typing import Any, List, Optional


class DiagnosticsError(Exception):
    """Base class for every error raised by affectdiag."""


class InvalidPrototypeError(DiagnosticsError):
    """Raised when a prototype definition cannot be evaluated."""

    def __init__(
        self,
        prototype_index: Optional[int],
        reason: str,
        message: Optional[str] = None,
    ):
        self.prototype_index = prototype_index
        self.reason = reason

        if message is None:
            where = (
                f"at index {prototype_index}"
                if prototype_index is not None
                else "in input"
            )
            message = f"Invalid prototype {where}: {reason}"

        super().__init__(message)


class SearchCancelledError(DiagnosticsError):
    """
    Raised when a long-running diagnostic is aborted at a yield point.

    Distinct from a search that simply exhausts its iteration budget,
    which returns normally with found=False.
    """

    def __init__(self, operation: str, completed: int = 0):
        self.operation = operation
        self.completed = completed
        super().__init__(
            f"{operation} cancelled after {completed} completed steps"
        )


class LogicParseError(DiagnosticsError):
    """Raised when a logic tree contains an unknown or malformed node."""

    def __init__(self, fragment: Any, reason: str):
        self.fragment = fragment
        self.reason = reason
        super().__init__(f"Cannot parse logic {fragment!r}: {reason}")


class ConfigValidationError(DiagnosticsError):
    """Raised when an overlap configuration fails validation."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        message = "Configuration validation failed:\n" + "\n".join(
            f"  ERROR: {e}" for e in errors
        )
        super().__init__(message)
