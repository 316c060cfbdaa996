import streamlit as st

from journal_core.errors.handlers import ErrorContext
from journal_core.models import SyncOutcome

# Central registry for session-state keys used by the journal views.
SESSION_DEFAULTS = {
    "journal_sync": None,
    "last_sync_outcome": None,
    "debug_mode": False,
}

OUTCOME_MESSAGES = {
    SyncOutcome.ONLINE: ("Entry saved", "✅"),
    SyncOutcome.QUEUED: ("Saved offline, it will sync when you're back online", "📡"),
}


def init_state():
    """Initialize session state with defaults."""
    for k, v in SESSION_DEFAULTS.items():
        if k not in st.session_state:
            st.session_state[k] = v


def get_journal_sync(factory=None):
    """
    Return this session's SyncEngine, creating and initializing it once.

    Args:
        factory: Zero-argument callable building the engine
                 (defaults to the process-wide get_sync_engine)
    """
    init_state()
    engine = st.session_state.get("journal_sync")
    if engine is None:
        if factory is None:
            from journal_core.offline.sync_engine import get_sync_engine
            factory = get_sync_engine
        engine = factory()
        engine.initialize()
        st.session_state["journal_sync"] = engine
    return engine


def show_sync_outcome(outcome):
    """Transient 'saved' vs 'queued offline' notification."""
    message, icon = OUTCOME_MESSAGES[outcome]
    st.toast(message, icon=icon)


def save_entry(data, entry_id=None, engine=None):
    """
    Create or update an entry from a form submission and notify the user.

    Invalid input is reported with st.error instead of raising.

    Returns:
        SyncOutcome, or None when the input was rejected
    """
    engine = engine or get_journal_sync()
    outcome = None
    with ErrorContext("Saving journal entry"):
        if entry_id:
            outcome = engine.update_entry(entry_id, data)
        else:
            outcome = engine.create_entry(data)

    if outcome is not None:
        st.session_state["last_sync_outcome"] = outcome
        show_sync_outcome(outcome)
    return outcome
