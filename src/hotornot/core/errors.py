"""Custom exceptions for configuration, data access and matchmaking errors."""

from __future__ import annotations


class ConfigurationError(Exception):
    """Base exception for configuration errors with optional suggestions."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"[Configuration Error] {self.message}"
        if self.suggestion:
            msg += f"\n[Suggestion] {self.suggestion}"
        return msg


class APIKeyError(ConfigurationError):
    """Error when the Stash server requires an API key and none is set."""

    def __init__(self) -> None:
        super().__init__(
            "Stash rejected the request as unauthenticated",
            "Set STASH_API_KEY or add stash.api_key to config.yaml.",
        )


class ValidationError(ConfigurationError):
    """Error when configuration validation fails."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(
            f"Invalid value for '{field}'",
            f"{reason}",
        )


class HotOrNotError(Exception):
    """Base exception for failures while running a comparison session."""


class PoolTooSmallError(HotOrNotError):
    """Fewer than two entities match the active filter."""

    def __init__(self, kind: str, available: int) -> None:
        self.kind = kind
        self.available = available
        super().__init__(
            f"Not enough {kind} for comparison: {available} match the current "
            f"filters, at least 2 are needed."
        )


class RepositoryError(HotOrNotError):
    """Reading from the entity repository failed."""

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation} failed: {reason}")
