# analysis/volume_metrics.py
"""
Volume normalizer.

Fused volume is scaled by its own maximum so the series lies in [0, 1]
(anchored at zero, not at the series minimum). An all-zero series is
returned unchanged.
"""

import logging
from typing import Sequence

import numpy as np

from .capital_flow import VolumeChange
from .metrics_base import DAILY, BaseMetrics, freeze

logger = logging.getLogger(__name__)


def scale_by_max(volumes: Sequence[float]) -> np.ndarray:
    values = np.asarray(volumes, dtype=float)
    if values.size == 0:
        return freeze([])
    peak = values.max()
    if peak == 0:
        return freeze(values)
    return freeze(values / peak)


class VolumeMetrics(BaseMetrics):
    metric = "volume"
    field = "volume"

    async def get_ecosystem_volume_data(self, ecosystem: str, timeframe: str) -> np.ndarray:
        async def build():
            fused = await self.fuse_ecosystem(ecosystem, timeframe, DAILY, self.constituent_limit)
            return scale_by_max(fused)

        return await self._memoized(self._cache_key("ecosystem", ecosystem, timeframe), build)

    async def get_asset_volume_data(self, asset: str, timeframe: str) -> np.ndarray:
        async def build():
            return scale_by_max(await self.asset_series(asset, timeframe))

        return await self._memoized(self._cache_key("asset", asset, timeframe), build)

    async def get_ecosystem_volume_time_series(
        self, ecosystem: str, timeframe: str, interval: str = DAILY
    ) -> np.ndarray:
        async def build():
            return await self.fuse_ecosystem(
                ecosystem, timeframe, interval, self.time_series_constituent_limit, newest_first=False
            )

        return await self._memoized(self._cache_key("ecosystem", "ts", ecosystem, timeframe, interval), build)

    async def get_asset_volume_time_series(self, asset: str, timeframe: str, interval: str = DAILY) -> np.ndarray:
        async def build():
            return await self.asset_series(asset, timeframe, interval, newest_first=False)

        return await self._memoized(self._cache_key("asset", "ts", asset, timeframe, interval), build)

    async def get_ecosystem_volume_change(self, ecosystem: str, timeframe: str) -> VolumeChange:
        """Oldest-to-newest change of the normalized ecosystem volume series."""
        key = self._cache_key("ecosystem", "change", ecosystem, timeframe)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        series = await self.get_ecosystem_volume_data(ecosystem, timeframe)
        change = VolumeChange.from_series(ecosystem, series, timeframe)
        logger.debug("Volume change %s %s: %.4f (%.2f%%)", ecosystem, timeframe, change.change, change.percent_change)
        return self.cache.set(key, change)
