"""
HTTP API client used to send writes and replay the offline queue.
"""

from types import TracebackType
from typing import Any

import httpx

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class HttpApiClient:
    """
    Thin async wrapper over httpx.AsyncClient.

    request() raises httpx.HTTPStatusError for error statuses and
    httpx.TransportError when the backend cannot be reached.
    """

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.base_url = base_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, headers=headers)

    async def request(self, *, url: str, method: str, data: Any = None) -> Any:
        """
        Send one request with a JSON body.

        Returns:
            The decoded JSON response, the raw text for non-JSON bodies, or None when empty
        """
        response = await self._client.request(method.upper(), url, json=data)
        response.raise_for_status()
        logger.debug("API request completed", method=method.upper(), url=url, status_code=response.status_code)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpApiClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
