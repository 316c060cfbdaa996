from .session import (
    SESSION_DEFAULTS,
    init_state,
    get_journal_sync,
    save_entry,
    show_sync_outcome,
)

__all__ = [
    "SESSION_DEFAULTS",
    "init_state",
    "get_journal_sync",
    "save_entry",
    "show_sync_outcome",
]
