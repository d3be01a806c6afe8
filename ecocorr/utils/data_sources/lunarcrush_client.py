"""
LunarCrushClient - market data provider backed by the LunarCrush public API
https://lunarcrush.com/developers/api

Implements MarketDataProvider:
    points = await client.get_time_series("ETH", "1d", 30)
    coins = await client.get_ecosystem_constituents("defi", 10)
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

from ecocorr.exceptions import ProviderError
from ecocorr.utils.timeframes import period_to_days
from ecocorr.utils.ttl_cache import TTLCache

from .base_client import BaseClient
from .types import Constituent, TimeSeriesPoint

_LOG = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class LunarCrushClient(BaseClient):
    BASE = "https://lunarcrush.com/api4/public"
    TIME_SERIES_PATH = "/coins/{symbol}/time-series/v2"
    COIN_LIST_PATH = "/coins/list/v2"
    COIN_PATH = "/coins/{symbol}/v1"

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 cache: Optional[TTLCache] = None, **kwargs):
        super().__init__(api_key=api_key, cache=cache, **kwargs)
        self.base_url = (base_url or self.BASE).rstrip("/")
        self._api_key_masked = self.mask_key(self.api_key)

    @staticmethod
    def _bucket(interval: str) -> str:
        return "hour" if period_to_days(interval) < 1 else "day"

    @staticmethod
    def _rows(payload: Any, entity: str) -> Any:
        if not isinstance(payload, dict) or "data" not in payload:
            raise ProviderError("unexpected payload shape", entity=entity)
        return payload["data"]

    async def get_time_series(self, entity: str, interval: str, days_back: float) -> List[TimeSeriesPoint]:
        """Samples for ``entity`` over the last ``days_back`` days, oldest first."""
        symbol = (entity or "").upper().strip()
        if not symbol:
            raise ValueError("entity is required")

        end = int(time.time())
        start = end - int(days_back * SECONDS_PER_DAY)
        params = {"bucket": self._bucket(interval), "start": start, "end": end}
        url = self.base_url + self.TIME_SERIES_PATH.format(symbol=symbol)

        _LOG.debug("Fetching LunarCrush time series %s %s (api_key=%s)", symbol, params, self._api_key_masked)
        payload = await self._request(
            "GET", url, params=params,
            cache_key=f"lunarcrush:ts:{symbol}:{interval}:{days_back}", entity=symbol,
        )
        rows = self._rows(payload, symbol) or []
        rows = sorted(rows, key=lambda r: r.get("time", 0))
        return [
            TimeSeriesPoint(
                price=row.get("close"),
                volume=row.get("volume_24h"),
                sentiment_score=row.get("galaxy_score"),
            )
            for row in rows
        ]

    async def get_ecosystem_constituents(self, ecosystem: str, limit: int) -> List[Constituent]:
        """Top ``limit`` coins tagged with ``ecosystem``, largest market cap first."""
        category = (ecosystem or "").lower().strip()
        if not category:
            raise ValueError("ecosystem is required")

        url = self.base_url + self.COIN_LIST_PATH
        payload = await self._request(
            "GET", url, params={"sort": "market_cap", "desc": 1, "limit": 1000},
            cache_key="lunarcrush:coins", entity=ecosystem,
        )
        coins = []
        for row in self._rows(payload, ecosystem) or []:
            categories = [c.strip().lower() for c in str(row.get("categories") or "").split(",")]
            if category in categories or str(row.get("symbol", "")).lower() == category:
                coins.append(Constituent(symbol=row["symbol"], market_cap=row.get("market_cap")))
            if len(coins) >= limit:
                break
        return coins

    async def get_coin(self, entity: str) -> Dict[str, Any]:
        symbol = (entity or "").upper().strip()
        url = self.base_url + self.COIN_PATH.format(symbol=symbol)
        payload = await self._request("GET", url, cache_key=f"lunarcrush:coin:{symbol}", entity=symbol)
        data = self._rows(payload, symbol)
        if not isinstance(data, dict):
            raise ProviderError("unexpected coin payload", entity=symbol)
        return data
