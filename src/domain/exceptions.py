"""
domain.exceptions - Custom exception hierarchy for the chat agent service.

All domain-level errors inherit from DomainError so callers can catch
broad or specific exceptions as needed.
"""


class DomainError(Exception):
    """Base exception for all domain-level errors."""


class ValidationError(DomainError):
    """Raised for a malformed request body or an invalid tool descriptor."""


class ModelConfigurationError(ValidationError):
    """Raised when a model identifier cannot be turned into a chat model."""


class ModelError(DomainError):
    """Raised when the language-model provider fails during a call."""


class ToolExecutionError(DomainError):
    """Raised by tool handlers. Always converted to a tool-error result."""


class PersistenceError(DomainError):
    """Raised when a database operation fails."""


class TurnLimitError(DomainError):
    """Raised when a turn exceeds the configured number of model calls."""


class SessionNotFoundError(DomainError):
    """Raised when a session id does not match any stored session."""
