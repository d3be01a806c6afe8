# analysis/metrics_base.py
"""
Shared machinery of the metric normalizers
==========================================
Fetches per-asset series from a market data provider and fuses the
constituents of an ecosystem into one market-cap-weighted series:

    fused[i] = sum(value_k[i] * cap_k) / sum(cap_k)   over assets k with a sample at i

The fused series is as long as the first constituent's series, and
constituents are combined in the order the provider returned them.

Series returned by the normalizers are read-only numpy arrays; every
normalizer memoizes through the TTLCache it is given.
"""

import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ecocorr.exceptions import CorrelationError, NoDataError, ProviderError
from ecocorr.utils.data_sources.types import (
    Constituent,
    MarketDataProvider,
    TimeSeriesPoint,
    to_constituents,
    to_points,
)
from ecocorr.utils.timeframes import period_to_days
from ecocorr.utils.ttl_cache import TTLCache

logger = logging.getLogger(__name__)

DAILY = "1d"
DEFAULT_MARKET_CAP = 1e9
DEFAULT_CONSTITUENT_LIMIT = 10
DEFAULT_TIME_SERIES_CONSTITUENT_LIMIT = 5

WeightedSeries = Tuple[float, Sequence[float]]


def freeze(values: Any) -> np.ndarray:
    """Float copy of ``values`` that callers cannot modify in place."""
    arr = np.array(values, dtype=float)
    arr.flags.writeable = False
    return arr


def flat_series(value: float, length: int) -> np.ndarray:
    return freeze(np.full(length, value, dtype=float))


def weighted_fusion(series: Sequence[WeightedSeries]) -> np.ndarray:
    """Market-cap-weighted average across series, index by index.

    Args:
        series: (market_cap, values) per asset, in provider order

    Returns:
        fused series with the length of the first asset's series
    """
    if not series:
        return freeze([])

    length = len(series[0][1])
    frame = pd.DataFrame({k: pd.Series(values, dtype=float) for k, (_, values) in enumerate(series)})
    frame = frame.iloc[:length]
    weights = pd.Series([float(cap) for cap, _ in series], index=frame.columns)

    numerator = frame.fillna(0.0).mul(weights, axis="columns").sum(axis="columns")
    denominator = frame.notna().mul(weights, axis="columns").sum(axis="columns")
    present = denominator > 0
    return freeze((numerator[present] / denominator[present]).to_numpy())


class BaseMetrics:
    """Provider access, ecosystem fusion and memoization for one metric family."""

    metric: str = ""
    field: str = ""

    def __init__(
        self,
        provider: MarketDataProvider,
        cache: TTLCache,
        constituent_limit: int = DEFAULT_CONSTITUENT_LIMIT,
        time_series_constituent_limit: int = DEFAULT_TIME_SERIES_CONSTITUENT_LIMIT,
        default_market_cap: float = DEFAULT_MARKET_CAP,
    ):
        self.provider = provider
        self.cache = cache
        self.constituent_limit = constituent_limit
        self.time_series_constituent_limit = time_series_constituent_limit
        self.default_market_cap = default_market_cap

    def _cache_key(self, scope: str, *parts: Any) -> str:
        return "_".join([scope, self.metric] + [str(p) for p in parts])

    async def _call_provider(self, entity: str, awaitable: Awaitable[Any]) -> Any:
        """Await a provider call, reporting foreign failures as ProviderError."""
        try:
            return await awaitable
        except CorrelationError:
            raise
        except Exception as e:
            raise ProviderError(str(e) or e.__class__.__name__, entity=entity) from e

    async def get_constituents(self, ecosystem: str, limit: int) -> List[Constituent]:
        raw = await self._call_provider(ecosystem, self.provider.get_ecosystem_constituents(ecosystem, limit))
        constituents = to_constituents(raw)
        if not constituents:
            raise NoDataError(ecosystem, "no constituents found")
        return constituents

    async def fetch_points(self, entity: str, interval: str, timeframe: str) -> List[TimeSeriesPoint]:
        raw = await self._call_provider(
            entity, self.provider.get_time_series(entity, interval, period_to_days(timeframe))
        )
        return to_points(raw)

    def extract(self, points: Sequence[TimeSeriesPoint], newest_first: bool) -> List[float]:
        values = [float(getattr(p, self.field)) for p in points]
        if newest_first:
            values.reverse()
        return values

    async def fuse_ecosystem(
        self,
        ecosystem: str,
        timeframe: str,
        interval: str = DAILY,
        limit: Optional[int] = None,
        newest_first: bool = True,
    ) -> np.ndarray:
        """Fetch each constituent sequentially and fuse them (raw values, no normalization)."""
        constituents = await self.get_constituents(ecosystem, limit or self.constituent_limit)

        weighted: List[WeightedSeries] = []
        for constituent in constituents:
            points = await self.fetch_points(constituent.symbol, interval, timeframe)
            if points:
                market_cap = constituent.market_cap or self.default_market_cap
                weighted.append((market_cap, self.extract(points, newest_first)))

        if not weighted:
            raise NoDataError(ecosystem, f"no {self.metric} data available")

        logger.debug("Fused %s %s from %s/%s constituents", ecosystem, self.metric, len(weighted), len(constituents))
        return weighted_fusion(weighted)

    async def asset_series(
        self, asset: str, timeframe: str, interval: str = DAILY, newest_first: bool = True
    ) -> np.ndarray:
        points = await self.fetch_points(asset, interval, timeframe)
        if not points:
            raise NoDataError(asset, "no time series data available")
        return freeze(self.extract(points, newest_first))

    async def _memoized(self, key: str, factory: Callable[[], Awaitable[np.ndarray]]) -> np.ndarray:
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        return self.cache.set(key, await factory())
