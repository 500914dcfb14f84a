"""
Cloud REST storage backends.

Both store the JSON-encoded payload as a string value under the key.
Transport errors are retried with backoff; HTTP error statuses are not.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import quote
import json

import httpx

from ..core.errors import StorageError
from ..core.logging import logger
from ..utils.retry import retry_async


class _RestStore:
    name = "rest"

    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @retry_async(max_attempts=3, retry_exceptions=(httpx.TransportError,))
    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        return await self._client.request(method, url, **kwargs)

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise StorageError(f"{self.name} unreachable: {e}", self.name) from e
        return response

    async def close(self) -> None:
        await self._client.aclose()


class KVRestStore(_RestStore):
    """Redis-over-REST store (``/set/<key>`` and ``/get/<key>``)."""

    name = "kv"

    def __init__(self, base_url: str, token: str, **kwargs):
        super().__init__(base_url, **kwargs)
        self._headers = {"Authorization": f"Bearer {token}"}

    async def save(self, key: str, data: Any) -> None:
        response = await self._send(
            "POST",
            f"{self.base_url}/set/{quote(key, safe='')}",
            headers={**self._headers, "Content-Type": "application/json"},
            content=json.dumps(json.dumps(data)),
        )
        if response.is_error:
            raise StorageError(f"KV save failed: HTTP {response.status_code}", self.name)
        logger.info(f"Saved {key} to KV store")

    async def load(self, key: str) -> Optional[Any]:
        response = await self._send(
            "GET",
            f"{self.base_url}/get/{quote(key, safe='')}",
            headers=self._headers,
        )
        if response.is_error:
            logger.warning(f"KV load of {key} failed: HTTP {response.status_code}")
            return None

        raw = response.json().get("result")
        if raw is None:
            return None
        return json.loads(raw) if isinstance(raw, str) else raw


class SupabaseStore(_RestStore):
    """Supabase REST store backed by a ``storage_data(key, data, updated_at)`` table."""

    name = "supabase"
    table = "storage_data"

    def __init__(self, base_url: str, anon_key: str, **kwargs):
        super().__init__(base_url, **kwargs)
        self._headers: Dict[str, str] = {
            "apikey": anon_key,
            "Authorization": f"Bearer {anon_key}",
        }

    async def save(self, key: str, data: Any) -> None:
        response = await self._send(
            "POST",
            f"{self.base_url}/rest/v1/{self.table}",
            headers={
                **self._headers,
                "Content-Type": "application/json",
                "Prefer": "resolution=merge-duplicates,return=minimal",
            },
            json={
                "key": key,
                "data": json.dumps(data),
                "updated_at": datetime.now(timezone.utc).isoformat(),
            },
        )
        if response.is_error:
            raise StorageError(f"Supabase save failed: HTTP {response.status_code}", self.name)
        logger.info(f"Saved {key} to Supabase")

    async def load(self, key: str) -> Optional[Any]:
        response = await self._send(
            "GET",
            f"{self.base_url}/rest/v1/{self.table}",
            headers=self._headers,
            params={"key": f"eq.{key}", "select": "data"},
        )
        if response.is_error:
            logger.warning(f"Supabase load of {key} failed: HTTP {response.status_code}")
            return None

        rows = response.json()
        if not rows:
            return None
        raw = rows[0].get("data")
        return json.loads(raw) if isinstance(raw, str) else raw
