"""
Journal Configuration Manager
Centralized loading of the sync core's settings
"""
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

import streamlit as st
from dotenv import load_dotenv

from journal_core.errors.exceptions import ConfigurationError


DEFAULT_CACHE_PATH = Path("local_data") / "journal.db"

# Environment variable for each config field
ENV_KEYS = {
    "api_url": "JOURNAL_API_URL",
    "page_size": "JOURNAL_PAGE_SIZE",
    "request_timeout": "JOURNAL_REQUEST_TIMEOUT",
    "cache_path": "JOURNAL_CACHE_PATH",
    "token": "JOURNAL_API_TOKEN",
    "check_interval_online": "JOURNAL_CHECK_INTERVAL_ONLINE",
    "check_interval_offline": "JOURNAL_CHECK_INTERVAL_OFFLINE",
    "connection_timeout": "JOURNAL_CONNECTION_TIMEOUT",
}


@dataclass
class JournalConfig:
    """Settings for the gateway, cache and connectivity monitor"""
    api_url: str = "http://localhost:3001"
    page_size: int = 50
    request_timeout: float = 10.0
    cache_path: Path = DEFAULT_CACHE_PATH
    token: Optional[str] = None
    check_interval_online: float = 30.0
    check_interval_offline: float = 10.0
    connection_timeout: float = 5.0

    def __post_init__(self):
        self.api_url = str(self.api_url).rstrip("/")
        parsed = urlparse(self.api_url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ConfigurationError(
                f"api_url must be an http(s) URL, got {self.api_url!r}",
                config_key="api_url",
                expected_type="url",
            )

        self.page_size = _coerce(self.page_size, int, "page_size")
        if self.page_size < 1:
            raise ConfigurationError("page_size must be positive", config_key="page_size")

        for name in ("request_timeout", "check_interval_online", "check_interval_offline", "connection_timeout"):
            value = _coerce(getattr(self, name), float, name)
            if value <= 0:
                raise ConfigurationError(f"{name} must be positive", config_key=name)
            setattr(self, name, value)

        self.cache_path = Path(self.cache_path)
        self.token = self.token or None

    @property
    def api_host(self) -> str:
        return urlparse(self.api_url).hostname

    @property
    def api_port(self) -> int:
        parsed = urlparse(self.api_url)
        return parsed.port or (443 if parsed.scheme == "https" else 80)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "JournalConfig":
        """Build from a dict, ignoring unknown keys"""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in values.items() if k in known and v is not None})


def _coerce(value: Any, kind: type, key: str):
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"{key} must be {kind.__name__}, got {value!r}",
            config_key=key,
            expected_type=kind.__name__,
        )


def _load_from_secrets() -> Optional[Dict[str, Any]]:
    """
    Read the [journal] table from Streamlit secrets

    Expected secrets.toml format:
    [journal]
    api_url = "https://journal.example.com"
    page_size = 50
    token = "..."
    """
    try:
        if hasattr(st, "secrets") and "journal" in st.secrets:
            return dict(st.secrets["journal"])
    except Exception:
        # No secrets.toml outside a Streamlit run
        return None
    return None


def _load_from_env() -> Dict[str, Any]:
    load_dotenv()
    return {
        key: os.environ[env_key]
        for key, env_key in ENV_KEYS.items()
        if os.environ.get(env_key)
    }


def load_config(overrides: Optional[Mapping[str, Any]] = None) -> JournalConfig:
    """
    Resolve configuration: Streamlit secrets, else environment/.env, then overrides

    Args:
        overrides: Explicit values that win over every other source

    Returns:
        Validated JournalConfig
    """
    values = _load_from_secrets()
    if values is None:
        values = _load_from_env()
    if overrides:
        values.update(overrides)
    return JournalConfig.from_mapping(values)
