"""
Hosted KV Store

Durable store backed by a hosted key-value service with a REST interface:

    GET  {base_url}/get/{key}    -> {"result": "<value>" | null}
    POST {base_url}/set/{key}    body = value, -> {"result": "OK"}

Authentication is a bearer token. The service is eventually consistent
across regions; SET of an existing key with the same value is a no-op.
"""

from __future__ import annotations
from typing import Optional
import asyncio
import logging

import httpx

from . import DurableStore
from ..contracts import StoreUnavailableError


logger = logging.getLogger(__name__)


class HostedKVDurableStore(DurableStore):
    """
    REST key-value client.

    The underlying httpx.AsyncClient is built on first use and shared by all
    requests afterwards. Construction is serialized so concurrent first
    requests never build two clients.
    """

    name = "hosted"

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        if not base_url:
            raise ValueError("hosted KV store requires a base URL")
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        async with self._client_lock:
            if self._client is None:
                headers = {}
                if self._token:
                    headers["Authorization"] = f"Bearer {self._token}"
                self._client = httpx.AsyncClient(
                    base_url=self._base_url,
                    headers=headers,
                    timeout=self._timeout,
                    transport=self._transport
                )
                logger.debug("Created hosted KV client for %s", self._base_url)
        return self._client

    async def _request(self, method: str, path: str, content: Optional[bytes] = None) -> dict:
        client = await self._get_client()
        try:
            response = await client.request(method, path, content=content)
        except httpx.HTTPError as e:
            raise StoreUnavailableError(f"{method} {path} failed: {e}") from e

        if response.status_code != 200:
            raise StoreUnavailableError(f"{method} {path} returned HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as e:
            raise StoreUnavailableError(f"{method} {path} returned a non-JSON body") from e
        if not isinstance(payload, dict):
            raise StoreUnavailableError(f"{method} {path} returned a non-object body")
        return payload

    async def put(self, key: str, body: bytes) -> None:
        payload = await self._request("POST", f"/set/{key}", content=body)
        if "error" in payload:
            raise StoreUnavailableError(f"SET {key} rejected: {payload['error']}")

    async def get(self, key: str) -> Optional[bytes]:
        payload = await self._request("GET", f"/get/{key}")
        if "error" in payload:
            raise StoreUnavailableError(f"GET {key} rejected: {payload['error']}")
        result = payload.get("result")
        if result is None:
            return None
        if not isinstance(result, str):
            raise StoreUnavailableError(f"GET {key} returned a non-string value")
        return result.encode("utf-8")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def connected(self) -> bool:
        return self._client is not None
