"""
App Store Connect API client for making authenticated requests.
Every request is signed with a bearer token from the TokenCache.
"""

import json
import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from application.services.xcode_cloud.auth.token_cache import TokenCache
from application.services.xcode_cloud.exceptions import RemoteApiError, TransportFailure
from application.services.xcode_cloud.models.types import ApiErrorResponse
from common.config.config import XCODE_CLOUD_API_BASE_URL, XCODE_CLOUD_HTTP_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


def parse_error_message(status_code: int, reason_phrase: str, body: Optional[bytes]) -> str:
    """Build a human-readable message from an App Store Connect error response.

    Uses "{title}: {detail}" of the first error in the JSON:API error envelope.
    Falls back to the status line when the envelope is missing, empty or unparsable.

    Args:
        status_code: HTTP status code
        reason_phrase: HTTP reason phrase
        body: Raw response body

    Returns:
        Error message
    """
    fallback = f"API request failed: {status_code} {reason_phrase}".rstrip()
    if not body:
        logger.error(f"API error: {status_code} {reason_phrase}")
        return fallback

    try:
        envelope = ApiErrorResponse.model_validate(json.loads(body))
    except (ValueError, ValidationError):
        logger.error(f"API error: {status_code} {reason_phrase}")
        return fallback

    if not envelope.errors:
        logger.error(f"API error: {status_code} {reason_phrase}")
        return fallback

    logger.error(
        f"API error: {json.dumps([error.model_dump(exclude_none=True) for error in envelope.errors])}"
    )
    first_error = envelope.errors[0]
    message = ": ".join(part for part in (first_error.title, first_error.detail) if part)
    return message or fallback


class AppStoreConnectAPIClient:
    """Base client for App Store Connect API interactions."""

    def __init__(
        self,
        token_cache: TokenCache,
        base_url: str = XCODE_CLOUD_API_BASE_URL,
        timeout: float = XCODE_CLOUD_HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize App Store Connect API client.

        Args:
            token_cache: Source of bearer tokens
            base_url: API base URL including the version segment
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests and proxies)
        """
        self.token_cache = token_cache
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _ensure_client_initialized(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout, connect=10.0),
                trust_env=False,
                transport=self._transport,
            )
            logger.info(f"Initialized App Store Connect client with base URL: {self.base_url}")
        return self._client

    async def request(
        self,
        method: str,
        path: str,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Make an App Store Connect API request.

        Args:
            method: HTTP method (GET, POST, DELETE, ...)
            path: API path relative to the base URL, starting with '/'
            data: JSON request body
            params: Query parameters

        Returns:
            Decoded JSON body, or None for empty responses and deletions

        Raises:
            NotAuthenticated: If no credentials are stored
            RemoteApiError: If the API answers with a non-2xx status
            TransportFailure: If the request could not be completed
        """
        method_upper = method.upper()
        token = await self.token_cache.get_token()
        client = self._ensure_client_initialized()

        query = f"?{httpx.QueryParams(params)}" if params else ""
        logger.info(f"{method_upper} {path}{query}")

        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        if data is not None:
            headers["Content-Type"] = "application/json"

        try:
            response = await client.request(
                method_upper, path, headers=headers, params=params, json=data
            )
        except httpx.RequestError as e:
            error_msg = f"App Store Connect request error: {e}"
            logger.error(error_msg)
            raise TransportFailure(error_msg) from e

        return self._process_response(response, method_upper)

    def _process_response(
        self, response: httpx.Response, method: str
    ) -> Optional[Dict[str, Any]]:
        """Process HTTP response and extract data.

        Args:
            response: HTTP response object
            method: HTTP method used

        Returns:
            Response data or None

        Raises:
            RemoteApiError: If response status indicates failure
        """
        if not response.is_success:
            if response.status_code == 401:
                self.token_cache.invalidate()
            message = parse_error_message(
                response.status_code, response.reason_phrase, response.content
            )
            raise RemoteApiError(message, status_code=response.status_code)

        if method == "DELETE" or response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise RemoteApiError(
                f"Invalid JSON in API response: {e}", status_code=response.status_code
            ) from e

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, data: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        return await self.request("POST", path, data=data)

    async def delete(self, path: str) -> None:
        await self.request("DELETE", path)

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("App Store Connect client closed")

    async def __aenter__(self):
        self._ensure_client_initialized()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
