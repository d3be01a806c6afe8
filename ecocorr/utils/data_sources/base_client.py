# -----------------------------------------------------------------------------
# File: ecocorr/utils/data_sources/base_client.py
"""
BaseClient: shared infrastructure for market-data vendor clients
- One aiohttp.ClientSession per client (connection pooling)
- Optional response memoization through an injected TTLCache
- Retry with exponential backoff, Retry-After on 429
- API key validation & masking helpers

Failures surface as ProviderError; the analyzers decide whether to degrade.
"""
from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Dict, Optional

import aiohttp

from ecocorr.exceptions import ProviderError
from ecocorr.utils.ttl_cache import TTLCache

_LOG = logging.getLogger(__name__)


class BaseClient:
    """Base client providing session management, memoization and retries.

    Subclasses call ``await self._request(...)``.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        cache: Optional[TTLCache] = None,
        timeout: int = 15,
        retry: int = 3,
        backoff: float = 0.5,
    ):
        if api_key is not None and not self._validate_api_key(api_key):
            raise ValueError("Invalid API key format")
        self.api_key = api_key
        self.cache = cache
        self.timeout = timeout
        self.retry = retry
        self.backoff = backoff
        self._session: Optional[aiohttp.ClientSession] = None
        self._session_lock = asyncio.Lock()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        async with self._session_lock:
            if self._session is None or self._session.closed:
                self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout * 2))
            return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    @staticmethod
    def _validate_api_key(key: str) -> bool:
        # alnum, underscore, hyphen, length >= 20
        return bool(re.match(r"^[A-Za-z0-9_\-]{20,}$", key))

    @staticmethod
    def mask_key(key: Optional[str]) -> str:
        if not key:
            return ""
        return "****" + key[-4:]

    def _auth_headers(self) -> Dict[str, str]:
        if self.api_key:
            return {"Authorization": f"Bearer {self.api_key}"}
        return {}

    async def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        cache_key: Optional[str] = None,
        entity: Optional[str] = None,
    ) -> Any:
        """HTTP request returning parsed JSON.

        Server errors, rate limits and transport errors are retried; client
        errors are not. Raises ProviderError once the request cannot succeed.
        """
        key = cache_key or f"http:{method}:{url}:{sorted((params or {}).items())}"
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        session = await self._ensure_session()
        last_error: Optional[str] = None
        last_status: Optional[int] = None

        for attempt in range(1, self.retry + 1):
            try:
                async with session.request(
                    method, url, params=params, headers=self._auth_headers(),
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as resp:
                    last_status = resp.status
                    if resp.status == 429:
                        retry_after = resp.headers.get("Retry-After")
                        wait = int(retry_after) if retry_after and retry_after.isdigit() else self.backoff * (2 ** attempt)
                        _LOG.warning("Rate limited on %s; sleeping %s", url, wait)
                        last_error = "rate limited"
                        await asyncio.sleep(wait)
                        continue
                    if resp.status >= 500:
                        _LOG.warning("Server error %s %s", resp.status, url)
                        last_error = "server error"
                        await asyncio.sleep(self.backoff * (2 ** attempt))
                        continue
                    if resp.status >= 400:
                        text = await resp.text()
                        raise ProviderError(text[:200] or "client error", status=resp.status, entity=entity)

                    try:
                        data = await resp.json(content_type=None)
                    except ValueError as e:
                        raise ProviderError(f"invalid JSON: {e}", status=resp.status, entity=entity) from e

                    if self.cache is not None:
                        self.cache.set(key, data)
                    return data
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                _LOG.warning("Request error %s %s: %s", method, url, e)
                last_error = str(e) or e.__class__.__name__
                await asyncio.sleep(self.backoff * (2 ** attempt))

        _LOG.error("Failed after %s attempts: %s %s", self.retry, method, url)
        raise ProviderError(f"failed after {self.retry} attempts: {last_error}", status=last_status, entity=entity)
