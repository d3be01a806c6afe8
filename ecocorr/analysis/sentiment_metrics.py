# analysis/sentiment_metrics.py
"""
Sentiment normalizer.

Scores arrive on a 0-100 scale and are divided by 100. Sentiment never
raises: without a granular series the aggregate score is repeated for the
requested number of days, and on any failure a neutral 0.5 series is
returned. Fallback series are not cached.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from ecocorr.exceptions import NoDataError
from ecocorr.utils.data_sources.types import (
    MarketDataProvider,
    SentimentProvider,
    to_ecosystem_sentiment,
    to_sentiment_report,
)
from ecocorr.utils.timeframes import days_to_samples, period_to_days, resample_series
from ecocorr.utils.ttl_cache import TTLCache

from .metrics_base import DAILY, BaseMetrics, WeightedSeries, flat_series, freeze, weighted_fusion

logger = logging.getLogger(__name__)

NEUTRAL_SENTIMENT = 0.5
SCORE_SCALE = 100.0


class SentimentMetrics(BaseMetrics):
    metric = "sentiment"
    field = "sentiment_score"

    def __init__(
        self,
        sentiment_provider: SentimentProvider,
        market_provider: MarketDataProvider,
        cache: TTLCache,
        **kwargs,
    ):
        super().__init__(market_provider, cache, **kwargs)
        self.sentiment_provider = sentiment_provider

    @staticmethod
    def _flat(value: float, timeframe: str) -> np.ndarray:
        return flat_series(value, days_to_samples(period_to_days(timeframe)))

    async def _score_series(self, entity: str, timeframe: str) -> List[float]:
        """Daily 0-100 scores, newest first; empty when the provider has none or fails."""
        try:
            points = await self.fetch_points(entity, DAILY, timeframe)
        except Exception as e:
            logger.debug("No sentiment series for %s: %s", entity, e)
            return []
        return self.extract(points, newest_first=True)

    async def get_ecosystem_sentiment_data(self, ecosystem: str, timeframe: str) -> np.ndarray:
        key = self._cache_key("ecosystem", ecosystem, timeframe)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            options: Dict[str, Any] = {"timeframe": timeframe, "limit": self.constituent_limit}
            raw = await self._call_provider(
                ecosystem, self.sentiment_provider.analyze_ecosystem_sentiment(ecosystem, options)
            )
            if raw is None:
                raise NoDataError(ecosystem, "no ecosystem sentiment")
            report = to_ecosystem_sentiment(raw)

            weighted: List[WeightedSeries] = []
            for asset in report.top_assets:
                scores = await self._score_series(asset.symbol, timeframe)
                if scores:
                    weighted.append((asset.market_cap or self.default_market_cap, scores))

            if not weighted:
                logger.info("No granular sentiment for %s, using aggregate score", ecosystem)
                return self._flat(report.aggregate_score / SCORE_SCALE, timeframe)

            return self.cache.set(key, freeze(weighted_fusion(weighted) / SCORE_SCALE))
        except Exception as e:
            logger.warning("Ecosystem sentiment unavailable for %s, using neutral series: %s", ecosystem, e)
            return self._flat(NEUTRAL_SENTIMENT, timeframe)

    async def get_asset_sentiment_data(self, asset: str, timeframe: str) -> np.ndarray:
        key = self._cache_key("asset", asset, timeframe)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            options = {"timeframe": timeframe, "sources": ["social", "news"]}
            raw = await self._call_provider(asset, self.sentiment_provider.analyze_sentiment(asset, options))
            if raw is None:
                raise NoDataError(asset, "no sentiment report")
            report = to_sentiment_report(raw)

            scores = await self._score_series(asset, timeframe)
            if not scores:
                logger.info("No granular sentiment for %s, using report score", asset)
                return self._flat(report.normalized_score, timeframe)

            return self.cache.set(key, freeze(np.asarray(scores, dtype=float) / SCORE_SCALE))
        except Exception as e:
            logger.warning("Asset sentiment unavailable for %s, using neutral series: %s", asset, e)
            return self._flat(NEUTRAL_SENTIMENT, timeframe)

    @staticmethod
    def _chronological(series: np.ndarray, interval: Optional[str]) -> np.ndarray:
        values = list(series[::-1])
        if interval and interval != DAILY:
            values = resample_series(values, interval)
        return freeze(values)

    async def get_ecosystem_sentiment_time_series(
        self, ecosystem: str, timeframe: str, interval: str = DAILY
    ) -> np.ndarray:
        """Sentiment of an ecosystem oldest first, resampled to ``interval``."""
        return self._chronological(await self.get_ecosystem_sentiment_data(ecosystem, timeframe), interval)

    async def get_asset_sentiment_time_series(self, asset: str, timeframe: str, interval: str = DAILY) -> np.ndarray:
        return self._chronological(await self.get_asset_sentiment_data(asset, timeframe), interval)
