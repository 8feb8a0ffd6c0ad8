"""Exception hierarchy for the review pipeline."""

from typing import Any, Dict, Optional


class CursedReviewerError(Exception):
    """Base exception class for all cursed-reviewer errors.

    Attributes:
        message (str): A human-readable error message.
        context (Dict[str, Any]): Structured error context for debugging.
    """
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (Context: {ctx_str})"
        return self.message


class InvocationError(CursedReviewerError):
    """A call to the generative endpoint did not produce usable text."""
    pass


class DeadlineExceededError(InvocationError):
    """The overall deadline expired before the endpoint answered."""
    pass


class EmptyResponseError(InvocationError):
    """The endpoint answered with no content."""
    pass


class PatchValidationError(CursedReviewerError):
    """A patch asserted as correct by its caller failed validation."""

    def __init__(self, reason: str, context: Optional[Dict[str, Any]] = None):
        self.reason = reason
        super().__init__(f"Patch failed validation: {reason}", context)


class DiffSourceError(CursedReviewerError):
    """Fetching a pull request diff from the source host failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message, {"status_code": status_code} if status_code else None)


class ScanRequestError(CursedReviewerError):
    """A scan submission is missing content or resolves to no code."""

    def __init__(self, message: str, code: str = "INVALID_REQUEST"):
        self.code = code
        super().__init__(message, {"code": code})
