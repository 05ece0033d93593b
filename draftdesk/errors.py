"""
Error types for the AI generation queue.

Request-level errors (ValidationError, NotFoundError, PersistenceError)
are mapped to HTTP responses. Pipeline errors never reach the HTTP
layer; the worker records them on the item as its error message.
"""

from typing import Optional


class QueueError(Exception):
    """Base class for all queue errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(QueueError):
    """Enqueue input was rejected."""

    status_code = 400


class NotFoundError(QueueError):
    """No queue item with the requested id."""

    status_code = 404


class PersistenceError(QueueError):
    """The queue store is unavailable or a write failed."""

    status_code = 500


class ClaimConflictError(QueueError):
    """Another tick claimed the item first."""


class PipelineError(QueueError):
    """A generation stage failed; the item becomes failed."""

    stage = "pipeline"


class UnsupportedInputError(PipelineError):
    stage = "parse"


class ProviderError(PipelineError):
    """The provider call failed (network, timeout, non-2xx)."""

    stage = "draft"

    def __init__(self, message: str, code: str = "UNKNOWN", retry_after: Optional[int] = None):
        super().__init__(message)
        self.code = code
        self.retry_after = retry_after


class EmptyOutputError(PipelineError):
    """The provider answered but produced no usable article."""

    stage = "draft"
