"""Library-specific exceptions."""

from __future__ import annotations


class NicError(Exception):
    """Base exception for all nic failures."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        if self.cause is None:
            return str(self.args[0])
        return f"{self.args[0]}: {self.cause}"


class NicValidationError(NicError):
    """Raised when request options are invalid. Nothing has been sent."""


class InvalidMethodError(NicValidationError):
    """Raised when the HTTP method is not one of the supported verbs."""


class ParamConflictError(NicValidationError):
    """Raised when more than one body variant is populated."""


class FileInfoError(NicValidationError):
    """Raised for multipart fields without a filename, content, or a known shape."""


class TypeMismatchError(NicValidationError, TypeError):
    """Raised when a mapping that must hold strings holds something else."""


class InvalidURLError(NicValidationError):
    """Raised when a request or proxy URL cannot be parsed."""


class UnrecognizedEncodingError(NicError, LookupError):
    """Raised when a response is re-decoded with an unknown charset."""


class HookCapacityError(NicError):
    """Raised when a hook list is already full."""


class HookIndexError(NicError, IndexError):
    """Raised when unregistering a hook at an invalid position."""


class NicNetworkError(NicError):
    """Raised for transport-level failures like DNS, TCP, TLS and protocol errors."""


class TooManyRedirectsError(NicNetworkError):
    """Raised when a redirect chain exceeds the session limit."""


class NicTimeoutError(NicError):
    """Raised when an exchange exceeds its deadline."""

    def __init__(self, message: str, *, timeout: float | None = None, cause: Exception | None = None) -> None:
        super().__init__(message, cause=cause)
        self.timeout = timeout


class ResponseDecodeError(NicError, ValueError):
    """Raised when a buffered body cannot be deserialized."""
