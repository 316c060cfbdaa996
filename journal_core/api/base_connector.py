"""
Base API Connector Class for the remote entry store
Provides the shared HTTP session, auth header and error mapping
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional
from dataclasses import dataclass
import logging

import requests

from journal_core.errors.exceptions import RequestFailed

logger = logging.getLogger(__name__)

# Returns the current bearer token, or None when signed out
CredentialProvider = Callable[[], Optional[str]]


@dataclass
class APIConfig:
    """Configuration for API connection"""
    api_name: str
    base_url: str
    credential_provider: Optional[CredentialProvider] = None
    headers: Optional[Dict[str, str]] = None
    timeout: float = 10.0


class BaseAPIConnector(ABC):
    """Abstract base class for HTTP connectors"""

    def __init__(self, config: APIConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

        if config.headers:
            self.session.headers.update(config.headers)

    @abstractmethod
    def validate_response(self, response: requests.Response) -> bool:
        """Validate API response body"""
        pass

    def _auth_headers(self) -> Dict[str, str]:
        """Bearer header from the credential provider, read fresh per request"""
        if self.config.credential_provider is None:
            return {}
        token = self.config.credential_provider()
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    def _make_request(
        self,
        endpoint: str,
        method: str = "GET",
        params: Optional[Dict] = None,
        data: Optional[Dict] = None
    ) -> requests.Response:
        """
        Make HTTP request with error handling

        Args:
            endpoint: API endpoint (appended to base_url)
            method: HTTP method (GET, POST, PUT)
            params: Query parameters
            data: JSON request body

        Returns:
            Response object

        Raises:
            RequestFailed: transport error, timeout or non-2xx status
        """
        url = f"{self.config.base_url}/{endpoint.lstrip('/')}"

        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=data,
                headers=self._auth_headers(),
                timeout=self.config.timeout
            )
            response.raise_for_status()
            return response

        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise RequestFailed(
                f"{self.config.api_name} rejected {method} {endpoint}: {e}",
                method=method,
                endpoint=endpoint,
                status_code=status,
            ) from e
        except requests.exceptions.RequestException as e:
            raise RequestFailed(
                f"API request failed for {self.config.api_name}: {e}",
                method=method,
                endpoint=endpoint,
            ) from e

    def _json(self, response: requests.Response, method: str, endpoint: str) -> Any:
        """Decode a JSON body or raise RequestFailed"""
        try:
            body = response.json()
        except ValueError as e:
            raise RequestFailed(
                f"{self.config.api_name} returned a non-JSON body",
                method=method,
                endpoint=endpoint,
                status_code=response.status_code,
            ) from e
        if not self.validate_response(response):
            raise RequestFailed(
                f"{self.config.api_name} returned an unexpected body",
                method=method,
                endpoint=endpoint,
                status_code=response.status_code,
            )
        return body

