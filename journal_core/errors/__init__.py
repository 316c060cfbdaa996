# =============================================================================
# journal_core/errors/__init__.py
# Centralized Error Handling for the Weather Journal sync core
# =============================================================================

from .exceptions import (
    JournalError,
    ConnectivityUnavailable,
    RequestFailed,
    StorageUnavailable,
    EntryValidationError,
    ConfigurationError,
)

from .handlers import (
    handle_error,
    safe_execute,
    ErrorContext,
)

__all__ = [
    # Exceptions
    "JournalError",
    "ConnectivityUnavailable",
    "RequestFailed",
    "StorageUnavailable",
    "EntryValidationError",
    "ConfigurationError",
    # Handlers
    "handle_error",
    "safe_execute",
    "ErrorContext",
]
