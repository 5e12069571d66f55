"""Centralized exception hierarchy for the translation storage engine.

All custom exceptions inherit from TranslationError, which provides:
- Machine-readable error codes
- Human-readable messages
- Optional details dict for additional context

Missing translations are never reported through exceptions; readers get
empty results instead. Storage failures surface as StorageError from the
disk and blob layers and are turned into False results by the drivers.
"""

from typing import Any


class TranslationError(Exception):
    """Base exception for all translation storage errors.

    - message: Human-readable error description
    - error_code: Machine-readable code (e.g., "STORAGE_ERROR")
    - details: Optional dict with additional context
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dict for JSON serialization."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class StorageError(TranslationError):
    """Underlying disk or object store operation failed."""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(
            message,
            "STORAGE_ERROR",
            {"key": key} if key else {},
        )


class ConfigurationError(TranslationError):
    """Driver configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        error_code: str = "CONFIGURATION_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, error_code, details)


class NoDefaultDriverError(ConfigurationError):
    """No driver was named and no default driver is configured."""

    def __init__(
        self, message: str = "A default translation driver has not been specified."
    ):
        super().__init__(message, "NO_DEFAULT_DRIVER")


class UnknownDriverError(ConfigurationError):
    """Requested driver name has no registered creator."""

    def __init__(self, driver: str):
        super().__init__(
            f"Translation driver [{driver}] is not supported.",
            "UNKNOWN_DRIVER",
            {"driver": driver},
        )


class InvalidTranslationDriverError(TranslationError):
    """Resolved driver does not satisfy the TranslationDriver contract."""

    def __init__(self, driver: str, missing: list[str] | None = None):
        msg = "All translation drivers must implement the TranslationDriver interface."
        if missing:
            msg = f"Translation driver [{driver}] is missing: {', '.join(missing)}"
        super().__init__(
            msg,
            "INVALID_DRIVER",
            {"driver": driver, "missing": missing or []},
        )
