"""Error taxonomy shared by the core services and the API layer."""

from __future__ import annotations


class QuizError(Exception):
    """Base class for expected failures raised by the quiz core."""


class ValidationError(QuizError, ValueError):
    """Raised when input is malformed or violates a field rule."""


class ConflictError(QuizError, RuntimeError):
    """Raised when an operation is not allowed in the current session state."""


class NotFoundError(QuizError, LookupError):
    """Raised when a referenced user or question does not exist."""


class UnauthenticatedError(QuizError):
    """Raised when the caller has no valid session identity."""
