# =============================================================================
# journal_core/errors/exceptions.py
# Custom Exception Hierarchy for the Weather Journal sync core
# =============================================================================

from typing import Optional, Dict, Any


class JournalError(Exception):
    """
    Base exception for all journal sync errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "NET_002")
        details: Additional context as a dictionary
        recoverable: Whether the error can be recovered from
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "JRN_000"
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# NETWORK EXCEPTIONS
# =============================================================================

class ConnectivityUnavailable(JournalError):
    """Raised when the remote entry store is not reachable at all"""

    def __init__(
        self,
        message: str = "Remote entry store is unreachable",
        host: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if host:
            details["host"] = host

        super().__init__(
            message=message,
            code="NET_001",
            details=details,
            **kwargs,
        )


class RequestFailed(JournalError):
    """Raised when a gateway request errors, times out or is rejected"""

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if method:
            details["method"] = method
        if endpoint:
            details["endpoint"] = endpoint
        if status_code is not None:
            details["status_code"] = status_code

        super().__init__(
            message=message,
            code="NET_002",
            details=details,
            **kwargs,
        )

    @property
    def status_code(self) -> Optional[int]:
        return self.details.get("status_code")

    @property
    def is_auth_rejection(self) -> bool:
        """True for 401/403 responses."""
        return self.status_code in (401, 403)


# =============================================================================
# STORAGE EXCEPTIONS
# =============================================================================

class StorageUnavailable(JournalError):
    """Raised when the local cache cannot be read or written"""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if key:
            details["key"] = key
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            code="STORE_001",
            details=details,
            **kwargs,
        )


# =============================================================================
# DATA EXCEPTIONS
# =============================================================================

class EntryValidationError(JournalError):
    """Raised when entry fields fail validation"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        actual: Optional[Any] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if actual is not None:
            details["actual"] = repr(actual)

        super().__init__(
            message=message,
            code="DATA_001",
            details=details,
            **kwargs,
        )


# =============================================================================
# CONFIGURATION EXCEPTIONS
# =============================================================================

class ConfigurationError(JournalError):
    """Raised when configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected_type:
            details["expected_type"] = expected_type

        super().__init__(
            message=message,
            code="CONFIG_001",
            details=details,
            recoverable=False,
            **kwargs,
        )
