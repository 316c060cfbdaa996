"""
Remote entry store access
HTTP gateway, push channel and configuration
"""

from .base_connector import BaseAPIConnector, APIConfig, CredentialProvider
from .config_manager import JournalConfig, load_config
from .push_channel import PushChannel, PushSubscription, ENTRY_ADDED_EVENT, ENTRY_UPDATED_EVENT
from .entry_gateway import EntryGateway

__all__ = [
    # Base classes
    "BaseAPIConnector",
    "APIConfig",
    "CredentialProvider",

    # Configuration
    "JournalConfig",
    "load_config",

    # Remote entry store
    "EntryGateway",
    "PushChannel",
    "PushSubscription",
    "ENTRY_ADDED_EVENT",
    "ENTRY_UPDATED_EVENT",
]
