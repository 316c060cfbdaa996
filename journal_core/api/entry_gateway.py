"""
Remote Entry Gateway
HTTP client for the journal's /entries resource plus its live push channel
"""
from typing import Any, Callable, Dict, Optional
import logging

import requests

from journal_core.errors.exceptions import EntryValidationError, RequestFailed
from journal_core.models import Entry, EntryData, EntryPage

from .base_connector import APIConfig, BaseAPIConnector, CredentialProvider
from .config_manager import JournalConfig
from .push_channel import PushChannel, PushSubscription

logger = logging.getLogger(__name__)

ENTRIES_ENDPOINT = "entries"


class EntryGateway(BaseAPIConnector):
    """
    Client for the remote entry store.

    Usage:
        gateway = EntryGateway.from_config(config, credential_provider=auth.token)
        page = gateway.fetch_page(1, 50)
        entry = gateway.create(EntryData(...))
    """

    def __init__(
        self,
        config: APIConfig,
        session: Optional[requests.Session] = None,
        push_channel: Optional[PushChannel] = None,
    ):
        super().__init__(config, session=session)
        self.push_channel = push_channel or PushChannel(
            config.base_url,
            credential_provider=config.credential_provider,
        )

    @classmethod
    def from_config(
        cls,
        config: JournalConfig,
        credential_provider: Optional[CredentialProvider] = None,
    ) -> "EntryGateway":
        """Build a gateway from JournalConfig (static token when no provider is given)"""
        if credential_provider is None and config.token:
            token = config.token
            credential_provider = lambda: token
        api_config = APIConfig(
            api_name="journal",
            base_url=config.api_url,
            credential_provider=credential_provider,
            timeout=config.request_timeout,
        )
        push_channel = PushChannel(
            config.api_url,
            credential_provider=credential_provider,
            timeout=config.connection_timeout,
        )
        return cls(api_config, push_channel=push_channel)

    def validate_response(self, response: requests.Response) -> bool:
        try:
            return isinstance(response.json(), dict)
        except ValueError:
            return False

    def _parse_entry(self, body: Dict[str, Any], method: str, endpoint: str) -> Entry:
        try:
            return Entry.from_dict(body)
        except EntryValidationError as e:
            raise RequestFailed(
                f"Server returned an invalid entry: {e.message}",
                method=method,
                endpoint=endpoint,
                details={"validation": e.details},
            ) from e

    def fetch_page(self, page: int, page_size: int) -> EntryPage:
        """
        GET /entries?page=&limit=

        Raises:
            RequestFailed: network, server or payload error
        """
        response = self._make_request(
            ENTRIES_ENDPOINT,
            method="GET",
            params={"page": page, "limit": page_size},
        )
        body = self._json(response, "GET", ENTRIES_ENDPOINT)
        try:
            result = EntryPage.from_dict(body, page=page)
        except (EntryValidationError, TypeError, ValueError) as e:
            raise RequestFailed(
                f"Server returned an invalid page: {e}",
                method="GET",
                endpoint=ENTRIES_ENDPOINT,
            ) from e
        logger.debug(f"Fetched page {result.page}: {len(result.entries)} entries, has_more={result.has_more}")
        return result

    def create(self, data: EntryData) -> Entry:
        """POST /entries; the server assigns the id"""
        response = self._make_request(ENTRIES_ENDPOINT, method="POST", data=data.to_dict())
        body = self._json(response, "POST", ENTRIES_ENDPOINT)
        return self._parse_entry(body, "POST", ENTRIES_ENDPOINT)

    def update(self, entry_id: str, data: EntryData) -> Entry:
        """PUT /entries/<id>; unknown ids come back as 404 -> RequestFailed"""
        endpoint = f"{ENTRIES_ENDPOINT}/{entry_id}"
        response = self._make_request(endpoint, method="PUT", data=data.to_dict())
        body = self._json(response, "PUT", endpoint)
        return self._parse_entry(body, "PUT", endpoint)

    def subscribe(
        self,
        on_added: Callable[[Dict[str, Any]], None],
        on_updated: Callable[[Dict[str, Any]], None],
    ) -> PushSubscription:
        """Open the live channel for entry_added / entry_updated events"""
        return self.push_channel.subscribe(on_added, on_updated)
