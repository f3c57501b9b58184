"""
Error Handling Module

Provides the exception hierarchy for the clustering pipeline:
- Structured base exception with error codes and details
- Input validation errors that abort model selection
- Non-fatal convergence warnings attached to scored candidates
"""

import time
from typing import Any, Optional


# =============================================================================
# Custom Exception Hierarchy
# =============================================================================


class ClusteringError(Exception):
    """Base exception for all clustering pipeline errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.timestamp = time.time()

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/reports."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }


class InvalidInputError(ClusteringError):
    """Malformed or undersized input (matrix shape, K, candidate list, metric)."""
    pass


class ConfigurationError(ClusteringError):
    """Error in pipeline configuration."""
    pass


# =============================================================================
# Warnings
# =============================================================================


class ConvergenceWarning(UserWarning):
    """
    Lloyd's algorithm reached its iteration cap without stabilizing.

    Never raised by the pipeline: it is logged and attached to the affected
    candidate, whose best-so-far partition is still scored.
    """

    def __init__(self, k: int, max_iter: int, restarts: int = 1):
        message = (
            f"K-Means with k={k} did not converge within {max_iter} iterations "
            f"({restarts} non-converged restart(s))"
        )
        super().__init__(message)
        self.message = message
        self.k = k
        self.max_iter = max_iter
        self.restarts = restarts

    def to_dict(self) -> dict[str, Any]:
        return {
            "warning_type": self.__class__.__name__,
            "message": self.message,
            "k": self.k,
            "max_iter": self.max_iter,
            "restarts": self.restarts,
        }
