"""Error taxonomy for report building and serialization."""

from __future__ import annotations


class ReportError(Exception):
    """Base error for all report failures surfaced to callers."""


class InvalidStateError(ReportError, RuntimeError):
    """Raised when a builder operation is invoked outside its valid state."""

    def __init__(self, operation: str, state: str):
        super().__init__(f"Cannot call {operation}() while the report builder is {state}.")
        self.operation = operation
        self.state = state


class SerializationError(ReportError):
    """Raised when the rendered report cannot be written to its sink."""


class ResourceError(ReportError):
    """Raised when the output sink cannot be acquired or released."""

    def __init__(self, message: str, *, path: str | None = None):
        super().__init__(message)
        self.path = path


class InputParseWarning(UserWarning):
    """Category for malformed input that was recovered with a fallback."""


__all__ = [
    "InputParseWarning",
    "InvalidStateError",
    "ReportError",
    "ResourceError",
    "SerializationError",
]
