"""
HTTP-facing Error Taxonomy

DESIGN DECISION: Flows raise these errors directly for problems they own
(missing input, unknown user, unusable analysis). Storage errors are NOT
converted here; they propagate to the API boundary, which maps them.

Generation errors never reach this layer: the agents absorb them into
degraded results.
"""

from typing import Any, Optional


class TrackmojiError(Exception):
    """Base exception carrying the HTTP status it maps to."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class BadRequestError(TrackmojiError):
    """Missing or invalid input."""
    status_code = 400


class NotFoundError(TrackmojiError):
    """User or resource absent."""
    status_code = 404


class UnprocessableAnalysisError(TrackmojiError):
    """
    The model's analysis failed minimal validation.

    The analysis is echoed back so the caller can see what was understood.
    """
    status_code = 422

    def __init__(
        self,
        message: str,
        partial_analysis: dict[str, Any],
        details: Optional[dict[str, Any]] = None,
    ):
        self.partial_analysis = partial_analysis
        super().__init__(message, details)


class ConflictError(TrackmojiError):
    """Duplicate unique key."""
    status_code = 409


class InternalError(TrackmojiError):
    status_code = 500
