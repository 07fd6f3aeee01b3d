"""
Exception classes for the title ranker.

Centralized location for all custom exceptions to avoid circular imports.
"""


class ValidationError(Exception):
    """Base exception for validation-related errors."""
    pass


class ConfigurationError(Exception):
    """Base exception for configuration-related errors."""
    pass


class StorageError(Exception):
    """Raised when a partition store cannot complete a write."""
    pass


class ArtworkLookupError(Exception):
    """Raised when the artwork service cannot be reached or returns garbage."""
    pass


class DeciderError(Exception):
    """Base exception for all decider-related errors."""
    pass


class SessionError(Exception):
    """Base exception for ranking session misuse."""
    pass


class NoActivePartitionError(SessionError):
    """Raised when a session operation needs a partition and none is active."""
    pass
