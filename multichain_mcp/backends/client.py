"""
Thin HTTP client for a single blockchain node or explorer API.

All methods are read-only GETs and map transport and API failures to
``BackendUnavailable`` / ``BackendApiError`` so adapters can turn them into
error envelopes.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from multichain_mcp.errors import BackendApiError, BackendUnavailable

logger = logging.getLogger(__name__)


class BackendHttpClient:
    """Async client bound to one backend base URL."""

    def __init__(
        self,
        base_url: str,
        timeout: float,
        *,
        network: Optional[str] = None,
        async_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.network = network
        self._client: Optional[httpx.AsyncClient] = async_client
        self._owns_client = async_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _map_error(self, status_code: int, data: Any) -> BackendApiError:
        detail: Optional[str] = None
        if isinstance(data, dict):
            for key in ("message", "error", "detail", "detailMessage", "reason"):
                value = data.get(key)
                if isinstance(value, str) and value.strip():
                    detail = value.strip()
                    break
        if status_code == 404:
            message = "Resource not found."
        elif status_code in {401, 403}:
            message = "Unauthorized by node."
        elif status_code == 429:
            message = "Node rate limit exceeded."
        elif status_code >= 500:
            message = "Node internal error."
        else:
            message = "Node rejected the request."
        if detail:
            message = f"{message} {detail}"
        return BackendApiError(message, network=self.network, status_code=status_code)

    def _process_response(self, response: httpx.Response) -> Any:
        try:
            data: Any = response.json()
        except ValueError:
            data = None

        if response.status_code >= 400:
            raise self._map_error(response.status_code, data)

        if data is None:
            raise BackendApiError(
                "Unexpected response from node.",
                network=self.network,
                status_code=response.status_code,
            )
        return data

    async def get_json(self, path: str, *, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET ``path`` and return the decoded JSON body."""
        client = await self._get_client()
        try:
            response = await client.get(path, params=params)
        except httpx.TimeoutException as exc:
            logger.warning("Backend timed out for path %s", path, extra={"network": self.network})
            raise BackendUnavailable("Node request timed out", network=self.network) from exc
        except httpx.RequestError as exc:
            logger.warning("Backend unreachable for path %s", path, extra={"network": self.network})
            raise BackendUnavailable("Node unreachable", network=self.network) from exc
        return self._process_response(response)
