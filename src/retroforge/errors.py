"""RetroForge error hierarchy.

All custom exceptions inherit from RetroForgeError, enabling callers
to catch the base class for blanket error handling or specific
subclasses for targeted recovery.  Every error also carries a
machine-readable :class:`ErrorKind` so a UI can branch on the failure
without inspecting the class.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Machine-distinguishable failure categories."""

    AUTH = "auth"
    SERVICE = "service"
    TIMEOUT = "timeout"
    NETWORK = "network"
    API = "api"
    RESPONSE_FORMAT = "response_format"
    IMAGE_READ = "image_read"
    IO = "io"
    CONFIG = "config"
    CREDITS = "credits"


class RetroForgeError(Exception):
    """Base exception for all RetroForge errors."""

    kind: ErrorKind = ErrorKind.API

    @property
    def message(self) -> str:
        """Human-readable message (same as ``str(err)``)."""
        return str(self)


class ConfigError(RetroForgeError):
    """Raised when settings loading or preflight validation fails."""

    kind = ErrorKind.CONFIG


class AuthError(RetroForgeError):
    """Raised when the API key is missing, malformed, or rejected (401)."""

    kind = ErrorKind.AUTH

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ServiceError(RetroForgeError):
    """Raised when the service reports an internal error (5xx)."""

    kind = ErrorKind.SERVICE

    def __init__(self, message: str, status_code: int = 500, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RequestTimeoutError(RetroForgeError):
    """Raised when a request exceeds the configured timeout."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, message: str, timeout: float) -> None:
        super().__init__(message)
        self.timeout = timeout


class NetworkError(RetroForgeError):
    """Raised on DNS, connection, or other transport failures."""

    kind = ErrorKind.NETWORK


class ApiError(RetroForgeError):
    """Raised for any other non-2xx response; carries status and body."""

    kind = ErrorKind.API

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"API Error ({status_code}): {body}")
        self.status_code = status_code
        self.body = body


class ResponseFormatError(RetroForgeError):
    """Raised when a successful response body cannot be parsed."""

    kind = ErrorKind.RESPONSE_FORMAT

    def __init__(self, message: str, body: str = "") -> None:
        super().__init__(message)
        self.body = body


class ImageReadError(RetroForgeError):
    """Raised when a local reference image is missing or unreadable."""

    kind = ErrorKind.IMAGE_READ

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message)
        self.path = path


class AssetWriteError(RetroForgeError):
    """Raised when generated images cannot be written to disk."""

    kind = ErrorKind.IO

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message)
        self.path = path


class InsufficientCreditsError(RetroForgeError):
    """Raised when the account has no credits left for a generation."""

    kind = ErrorKind.CREDITS

    def __init__(self, message: str, credits: int) -> None:
        super().__init__(message)
        self.credits = credits
