# analysis/price_metrics.py
"""
Price normalizer.

Normalized price series are sequential ratios over a newest-first series:
the first element is 1.0 and each following element is p[i] / p[i-1]
(1.0 when the previous value is zero). Time-series variants return the raw
fused prices oldest first.
"""

from typing import Sequence

import numpy as np

from .metrics_base import DAILY, BaseMetrics, freeze


def to_sequential_ratios(prices: Sequence[float]) -> np.ndarray:
    values = np.asarray(prices, dtype=float)
    if values.size == 0:
        return freeze([])

    ratios = np.ones(values.size, dtype=float)
    previous = values[:-1]
    current = values[1:]
    nonzero = previous != 0
    ratios[1:][nonzero] = current[nonzero] / previous[nonzero]
    return freeze(ratios)


class PriceMetrics(BaseMetrics):
    metric = "price"
    field = "price"

    async def get_ecosystem_price_data(self, ecosystem: str, timeframe: str) -> np.ndarray:
        """Normalized, market-cap-weighted price ratios of an ecosystem (newest first)."""
        async def build():
            fused = await self.fuse_ecosystem(ecosystem, timeframe, DAILY, self.constituent_limit)
            return to_sequential_ratios(fused)

        return await self._memoized(self._cache_key("ecosystem", ecosystem, timeframe), build)

    async def get_asset_price_data(self, asset: str, timeframe: str) -> np.ndarray:
        async def build():
            return to_sequential_ratios(await self.asset_series(asset, timeframe))

        return await self._memoized(self._cache_key("asset", asset, timeframe), build)

    async def get_ecosystem_price_time_series(
        self, ecosystem: str, timeframe: str, interval: str = DAILY
    ) -> np.ndarray:
        """Raw fused prices of an ecosystem at ``interval``, oldest first."""
        async def build():
            return await self.fuse_ecosystem(
                ecosystem, timeframe, interval, self.time_series_constituent_limit, newest_first=False
            )

        return await self._memoized(self._cache_key("ecosystem", "ts", ecosystem, timeframe, interval), build)

    async def get_asset_price_time_series(self, asset: str, timeframe: str, interval: str = DAILY) -> np.ndarray:
        async def build():
            return await self.asset_series(asset, timeframe, interval, newest_first=False)

        return await self._memoized(self._cache_key("asset", "ts", asset, timeframe, interval), build)
