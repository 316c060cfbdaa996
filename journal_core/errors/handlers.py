# =============================================================================
# journal_core/errors/handlers.py
# Error Reporting Helpers for the Weather Journal sync core
# =============================================================================

from __future__ import annotations
import logging
import traceback
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar
import streamlit as st

from journal_core.logging import get_logger
from .exceptions import JournalError

logger = get_logger(__name__)

T = TypeVar("T")


def _describe(error: Exception, user_message: Optional[str]) -> Tuple[str, str, Dict[str, Any], bool]:
    """(message, code, details, recoverable) for any exception."""
    if isinstance(error, JournalError):
        return user_message or error.message, error.code, error.details, error.recoverable
    return user_message or str(error), "UNKNOWN", {"traceback": traceback.format_exc()}, True


def handle_error(
    error: Exception,
    show_user_message: bool = False,
    log_error: bool = True,
    user_message: Optional[str] = None,
    level: int = logging.ERROR,
) -> None:
    """
    Log an error and, when a page asks for it, show it with st.error.

    The sync core calls this with ``show_user_message=False``: it degrades
    to cached or queued state instead of talking to the user.

    Args:
        error: The exception to report
        show_user_message: Render st.error (plus details in debug mode)
        log_error: Write a log record
        user_message: Replaces the exception's own message
        level: Log level; unexpected (non-JournalError) errors get a traceback
    """
    message, code, details, recoverable = _describe(error, user_message)

    if log_error:
        logger.log(
            level,
            f"[{code}] {message}",
            extra={"details": details},
            exc_info=not isinstance(error, JournalError),
        )

    if not show_user_message:
        return

    if recoverable:
        st.error(f"Error: {message}")
    else:
        st.error(f"Critical Error: {message}. Please check the app configuration.")

    if details and st.session_state.get("debug_mode", False):
        with st.expander("Error Details", expanded=False):
            st.json(details)


def safe_execute(
    func: Callable[..., T],
    *args,
    default: Optional[T] = None,
    error_message: Optional[str] = None,
    reraise: bool = False,
    **kwargs,
) -> Optional[T]:
    """
    Call ``func`` and report (rather than raise) whatever it throws.

    Usage:
        safe_execute(observer, snapshot, error_message="Journal observer failed")
    """
    try:
        return func(*args, **kwargs)
    except Exception as e:
        handle_error(e, user_message=error_message)
        if reraise:
            raise
        return default


class ErrorContext:
    """
    Reports errors raised inside a ``with`` block.

    Recoverable contexts swallow the exception after reporting it and
    expose it as ``.error``; unrecoverable ones let it propagate.

    Usage:
        with ErrorContext("Saving journal entry") as ctx:
            engine.create_entry(form_data)
        if ctx.failed:
            ...
    """

    def __init__(
        self,
        operation: str,
        recoverable: bool = True,
        show_user_message: bool = True,
    ):
        self.operation = operation
        self.recoverable = recoverable
        self.show_user_message = show_user_message
        self.error: Optional[BaseException] = None

    def __enter__(self) -> ErrorContext:
        logger.debug(f"{self.operation}: begin")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is None:
            logger.debug(f"{self.operation}: done")
            return False
        if not isinstance(exc_val, Exception):
            return False

        self.error = exc_val
        # JournalErrors carry a message meant for users; anything else gets a generic one
        user_message = None if isinstance(exc_val, JournalError) else f"Error during: {self.operation}"
        handle_error(exc_val, show_user_message=self.show_user_message, user_message=user_message)
        return self.recoverable

    @property
    def failed(self) -> bool:
        return self.error is not None
