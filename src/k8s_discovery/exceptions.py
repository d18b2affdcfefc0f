"""
Exceptions for the Kubernetes discovery adapter.

Every error raised by this package derives from DiscoveryError so callers can
catch the whole family at once.
"""

from typing import Any


class DiscoveryError(Exception):
    """Base exception for all discovery-related errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary representation."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class ConfigurationError(DiscoveryError):
    """Raised when discovery configuration is invalid or missing."""


class KubernetesFetchError(DiscoveryError):
    """Raised when a read against the Kubernetes API fails."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(
            message,
            error_code="KUBERNETES_FETCH_FAILED",
            details={"status": status, "reason": reason},
        )
        self.status = status
        self.reason = reason
