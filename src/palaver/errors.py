"""Application-level exception types for palaver."""

from __future__ import annotations


class PalaverError(Exception):
    """Base exception for palaver."""


class SessionError(PalaverError):
    """Base exception for rejected session operations."""


class InvalidInputError(SessionError):
    """Raised when a submission is blank after trimming."""


class BusyError(SessionError):
    """Raised when a turn is submitted while another one is in flight."""


class TurnAlreadyOpenError(SessionError):
    """Raised when an assistant turn is opened while one is still open."""


class NoOpenTurnError(SessionError):
    """Raised when a chunk arrives and no assistant turn is open."""


class ConnectorError(PalaverError):
    """Raised by generation connectors when a stream fails."""

    def __init__(self, message: str, *, kind: str = "connector_error") -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class RenderError(PalaverError):
    """Raised when assistant text cannot be turned into a display tree."""


class ConfigurationError(PalaverError):
    """Base exception for configuration and startup validation errors."""


class ModelNotConfiguredError(ConfigurationError):
    """Raised when model configuration is missing."""


class InvalidModelFormatError(ConfigurationError):
    """Raised when model format is not provider:model."""


class ApiKeyNotConfiguredError(ConfigurationError):
    """Raised when an API key is required but missing."""
