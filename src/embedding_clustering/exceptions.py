"""
Exception types for clustering operations.

Three families matter to callers:

- ``InvalidArgumentError`` (and ``DimensionMismatchError``): bad input such as
  an empty id list or vectors of different lengths. Raised immediately and
  never wrapped or retried.
- ``ClusteringError``: normalized wrapper around any failure inside an engine
  or the facade. The original exception is kept on ``cause``.
- ``RemoteServiceError``: a failure reported by (or while talking to) the
  remote analytics service or the embedding store.
"""

from typing import Any, Optional


class ClusteringBaseError(Exception):
    """Base exception for all clustering errors."""

    code = "CLUSTERING_BASE_ERROR"

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidArgumentError(ClusteringBaseError, ValueError):
    """
    Input violates a precondition (empty input, unknown algorithm, etc.).

    Subclasses ``ValueError`` so generic callers can still catch it.
    """

    code = "INVALID_ARGUMENT"


class DimensionMismatchError(InvalidArgumentError):
    """Two vectors that must share a dimension do not."""

    code = "DIMENSION_MISMATCH"

    def __init__(self, expected: int, actual: int, details: Any = None):
        super().__init__(
            f"Vectors must have the same length (expected {expected}, got {actual})",
            details,
        )
        self.expected = expected
        self.actual = actual


class RemoteServiceError(ClusteringBaseError):
    """
    Remote analytics service or embedding store call failed.

    ``status_code`` is set when the failure came from an HTTP response.
    """

    code = "REMOTE_SERVICE_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code


class ClusteringError(ClusteringBaseError):
    """Normalized failure of a clustering operation."""

    code = "CLUSTERING_ERROR"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message, details=cause)
        self.cause = cause
