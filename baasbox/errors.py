"""
BaasBox SDK Error Classes

Errors are carried as values in the result channel (``Result.error``);
only ``ConfigurationError`` is raised, since it signals a misconfigured
integration rather than a runtime condition.
"""

from typing import Any, Dict, Optional


class BaasError(Exception):
    """Base error class for BaasBox SDK."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 0,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "name": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class NetworkError(BaasError):
    """Transport-level failure (connection issues, timeouts)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("NETWORK_ERROR", message, 0, details)


class ProtocolError(BaasError):
    """Malformed or unexpected body shape."""

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__("PROTOCOL_ERROR", message, status_code, details)


class HttpError(BaasError):
    """HTTP status >= 400 returned by the server."""

    def __init__(
        self,
        status_code: int,
        message: str,
        code: str = "HTTP_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, status_code, details)


class UnauthenticatedError(HttpError):
    """HTTP 401: missing or expired session."""

    def __init__(self, message: str = "Not authenticated", details: Optional[Dict[str, Any]] = None):
        super().__init__(401, message, "UNAUTHENTICATED", details)


class ConfigurationError(BaasError):
    """Configuration error (missing base URL, appcode, double setup)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, 0, details)


def is_baas_error(error: Any) -> bool:
    """Check if error is a BaasError."""
    return isinstance(error, BaasError)


def is_unauthenticated(error: Any) -> bool:
    """Check if error is an expired/missing session error."""
    return isinstance(error, UnauthenticatedError)
