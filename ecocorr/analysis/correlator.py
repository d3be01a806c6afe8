# analysis/correlator.py
"""
Ecosystem Correlator
====================
Facade over the metric normalizers and the correlation, lead-lag and
capital-flow algorithms.

Every operation follows the same template:
    1. cache key from the operation name and all parameters (entity order kept)
    2. cache lookup
    3. sequential per-entity fetch through the normalizers
    4. algorithm, result object, cache store

Usage:
    correlator = create_correlator()
    result = await correlator.analyze_ecosystem_correlations(["ethereum", "solana"], timeframe="30d")
    print(result.strongest_pair)
"""

import functools
import inspect
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np

from ecocorr.config import CorrelationSettings, get_settings
from ecocorr.exceptions import MissingCapabilityError, UnsupportedMetricError
from ecocorr.utils.context_logger import operation_context
from ecocorr.utils.data_sources.lunarcrush_client import LunarCrushClient
from ecocorr.utils.data_sources.sentiment_client import LunarCrushSentimentClient
from ecocorr.utils.data_sources.types import MarketDataProvider, SentimentProvider
from ecocorr.utils.performance_monitor import monitor_performance
from ecocorr.utils.ttl_cache import TTLCache

from .capital_flow import CapitalFlowEstimator, CapitalFlowResult, CorrelationMap, VolumeChange
from .combined import combine_asset_metrics, combine_ecosystem_metrics
from .correlation_matrix import (
    CorrelationAnalysis,
    CorrelationMatrix,
    NetworkGraph,
    generate_correlation_matrix,
    generate_network_graph,
)
from .leadlag import LeadLagAnalysis, calculate_lag_matrix, classify_leaders
from .price_metrics import PriceMetrics
from .sentiment_metrics import SentimentMetrics
from .volume_metrics import VolumeMetrics

logger = logging.getLogger(__name__)

METRICS = ("price", "volume", "sentiment", "combined")
LEAD_LAG_METRICS = ("price", "volume", "sentiment")
TOP_PAIRS = 5


class EcosystemCorrelator:
    """Correlation, lead-lag and capital-flow analysis across ecosystems and assets."""

    def __init__(
        self,
        market_provider: MarketDataProvider,
        sentiment_provider: Optional[SentimentProvider] = None,
        cache: Optional[TTLCache] = None,
        settings: Optional[CorrelationSettings] = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else TTLCache(
            ttl_ms=self.settings.CACHE_TTL_MS,
            max_size=self.settings.CACHE_MAX_SIZE,
            check_interval_ms=self.settings.CACHE_CHECK_INTERVAL_MS,
        )
        self.market_provider = market_provider
        self.sentiment_provider = sentiment_provider

        limits = {
            "constituent_limit": self.settings.CONSTITUENT_LIMIT,
            "time_series_constituent_limit": self.settings.TIME_SERIES_CONSTITUENT_LIMIT,
            "default_market_cap": self.settings.DEFAULT_MARKET_CAP,
        }
        self.price_metrics = PriceMetrics(market_provider, self.cache, **limits)
        self.volume_metrics = VolumeMetrics(market_provider, self.cache, **limits)
        self.sentiment_metrics: Optional[SentimentMetrics] = None
        if sentiment_provider is not None:
            self.sentiment_metrics = SentimentMetrics(sentiment_provider, market_provider, self.cache, **limits)

        logger.info("EcosystemCorrelator initialized (sentiment=%s)", self.sentiment_metrics is not None)

    async def close(self) -> None:
        """Close provider sessions that support it."""
        for provider in (self.market_provider, self.sentiment_provider):
            close = getattr(provider, "close", None)
            if close is None:
                continue
            result = close()
            if inspect.isawaitable(result):
                await result

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _cache_key(operation: str, entities: Sequence[str], *params: Any) -> str:
        return "_".join([operation, "-".join(entities)] + [str(p) for p in params])

    def _validate_metric(self, metric: str, allowed: Sequence[str] = METRICS) -> None:
        if metric not in allowed:
            raise UnsupportedMetricError(metric)
        if metric == "sentiment" and self.sentiment_metrics is None:
            raise MissingCapabilityError("sentiment analyzer", "Sentiment analyzer required for sentiment metric")

    def _require_sentiment(self) -> SentimentMetrics:
        if self.sentiment_metrics is None:
            raise MissingCapabilityError("sentiment analyzer", "Sentiment analyzer required for sentiment metric")
        return self.sentiment_metrics

    async def _ecosystem_series(self, ecosystem: str, timeframe: str, metric: str) -> np.ndarray:
        if metric == "price":
            return await self.price_metrics.get_ecosystem_price_data(ecosystem, timeframe)
        if metric == "volume":
            return await self.volume_metrics.get_ecosystem_volume_data(ecosystem, timeframe)
        if metric == "sentiment":
            return await self._require_sentiment().get_ecosystem_sentiment_data(ecosystem, timeframe)
        if metric == "combined":
            price = await self.price_metrics.get_ecosystem_price_data(ecosystem, timeframe)
            volume = await self.volume_metrics.get_ecosystem_volume_data(ecosystem, timeframe)
            sentiment = None
            if self.sentiment_metrics is not None:
                sentiment = await self.sentiment_metrics.get_ecosystem_sentiment_data(ecosystem, timeframe)
            return combine_ecosystem_metrics(price, volume, sentiment)
        raise UnsupportedMetricError(metric)

    async def _asset_series(self, asset: str, timeframe: str, metric: str) -> np.ndarray:
        if metric == "price":
            return await self.price_metrics.get_asset_price_data(asset, timeframe)
        if metric == "volume":
            return await self.volume_metrics.get_asset_volume_data(asset, timeframe)
        if metric == "sentiment":
            return await self._require_sentiment().get_asset_sentiment_data(asset, timeframe)
        if metric == "combined":
            price = await self.price_metrics.get_asset_price_data(asset, timeframe)
            volume = await self.volume_metrics.get_asset_volume_data(asset, timeframe)
            sentiment = None
            if self.sentiment_metrics is not None:
                sentiment = await self.sentiment_metrics.get_asset_sentiment_data(asset, timeframe)
            return combine_asset_metrics(price, volume, sentiment)
        raise UnsupportedMetricError(metric)

    async def _ecosystem_time_series(self, ecosystem: str, timeframe: str, interval: str, metric: str) -> np.ndarray:
        if metric == "price":
            return await self.price_metrics.get_ecosystem_price_time_series(ecosystem, timeframe, interval)
        if metric == "volume":
            return await self.volume_metrics.get_ecosystem_volume_time_series(ecosystem, timeframe, interval)
        if metric == "sentiment":
            return await self._require_sentiment().get_ecosystem_sentiment_time_series(ecosystem, timeframe, interval)
        raise UnsupportedMetricError(metric)

    def _correlation_result(
        self, data: Mapping[str, np.ndarray], metric: str, timeframe: str, min_correlation: float
    ) -> CorrelationAnalysis:
        built = generate_correlation_matrix(data, min_correlation)
        network = generate_network_graph(built.matrix, built.labels, min_correlation)
        return CorrelationAnalysis(
            matrix=built.matrix,
            labels=built.labels,
            pairs=built.pairs,
            strongest_pair=built.pairs[0] if built.pairs else None,
            top_pairs=built.pairs[:TOP_PAIRS],
            network=network,
            metric=metric,
            timeframe=timeframe,
        )

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------

    @monitor_performance("analyze_ecosystem_correlations")
    async def analyze_ecosystem_correlations(
        self,
        ecosystems: Sequence[str],
        timeframe: str = "30d",
        metric: str = "combined",
        min_correlation: float = 0.5,
    ) -> CorrelationAnalysis:
        """Correlation matrix between ecosystems for one metric."""
        ecosystems = list(ecosystems)
        cache_key = self._cache_key("ecosystem_correlations", ecosystems, timeframe, metric, min_correlation)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        with operation_context("analyze_ecosystem_correlations", ecosystems):
            try:
                self._validate_metric(metric)
                data: Dict[str, np.ndarray] = {}
                for ecosystem in ecosystems:
                    data[ecosystem] = await self._ecosystem_series(ecosystem, timeframe, metric)

                result = self._correlation_result(data, metric, timeframe, min_correlation)
                logger.info("Ecosystem correlations computed: %s pairs >= %s", len(result.pairs), min_correlation)
                return self.cache.set(cache_key, result)
            except Exception as e:
                logger.error("Error analyzing ecosystem correlations for %s: %s", ",".join(ecosystems), e)
                raise

    @monitor_performance("analyze_asset_correlations")
    async def analyze_asset_correlations(
        self,
        assets: Sequence[str],
        timeframe: str = "30d",
        metric: str = "price",
        min_correlation: float = 0.5,
    ) -> CorrelationAnalysis:
        """Correlation matrix between individual assets for one metric."""
        assets = list(assets)
        cache_key = self._cache_key("asset_correlations", assets, timeframe, metric, min_correlation)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        with operation_context("analyze_asset_correlations", assets):
            try:
                self._validate_metric(metric)
                data: Dict[str, np.ndarray] = {}
                for asset in assets:
                    data[asset] = await self._asset_series(asset, timeframe, metric)

                result = self._correlation_result(data, metric, timeframe, min_correlation)
                logger.info("Asset correlations computed: %s pairs >= %s", len(result.pairs), min_correlation)
                return self.cache.set(cache_key, result)
            except Exception as e:
                logger.error("Error analyzing asset correlations for %s: %s", ",".join(assets), e)
                raise

    @monitor_performance("analyze_lead_lag_relationships")
    async def analyze_lead_lag_relationships(
        self,
        ecosystems: Sequence[str],
        timeframe: str = "90d",
        interval: str = "1d",
        metric: str = "price",
        lag_max: int = 14,
    ) -> LeadLagAnalysis:
        """Which ecosystems move first, from chronological time series at ``interval``."""
        ecosystems = list(ecosystems)
        cache_key = self._cache_key("lead_lag", ecosystems, timeframe, interval, metric, lag_max)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        with operation_context("analyze_lead_lag_relationships", ecosystems):
            try:
                self._validate_metric(metric, LEAD_LAG_METRICS)
                data: Dict[str, np.ndarray] = {}
                for ecosystem in ecosystems:
                    data[ecosystem] = await self._ecosystem_time_series(ecosystem, timeframe, interval, metric)

                labels = list(data.keys())
                lag_matrix = calculate_lag_matrix(data, lag_max)
                leaders, laggers, relationships = classify_leaders(labels, lag_matrix)
                lag_matrix.flags.writeable = False

                result = LeadLagAnalysis(
                    lag_matrix=lag_matrix,
                    labels=labels,
                    leaders=leaders,
                    laggers=laggers,
                    relationships=relationships,
                    metric=metric,
                    timeframe=timeframe,
                    interval=interval,
                )
                logger.info("Lead-lag computed: %s leaders, %s laggers", len(leaders), len(laggers))
                return self.cache.set(cache_key, result)
            except Exception as e:
                logger.error("Error analyzing lead/lag relationships for %s: %s", ",".join(ecosystems), e)
                raise

    async def _flow_correlations(self, group: List[str], timeframe: str) -> CorrelationMap:
        analysis = await self.analyze_ecosystem_correlations(group, timeframe, "combined", 0.0)
        return analysis.to_mapping()

    @monitor_performance("analyze_capital_flows")
    async def analyze_capital_flows(
        self,
        ecosystems: Sequence[str],
        timeframe: str = "14d",
        min_flow_percentage: float = 5.0,
    ) -> CapitalFlowResult:
        """Estimated volume transfers from ecosystems losing volume to ecosystems gaining it."""
        ecosystems = list(ecosystems)
        cache_key = self._cache_key("capital_flows", ecosystems, timeframe, min_flow_percentage)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        with operation_context("analyze_capital_flows", ecosystems):
            try:
                changes: Dict[str, VolumeChange] = {}
                for ecosystem in ecosystems:
                    changes[ecosystem] = await self.volume_metrics.get_ecosystem_volume_change(ecosystem, timeframe)

                estimator = CapitalFlowEstimator(functools.partial(self._flow_correlations, timeframe=timeframe))
                result = await estimator.estimate(ecosystems, changes, timeframe, min_flow_percentage)
                logger.info("Capital flows computed: %s significant flows", len(result.significant_flows))
                return self.cache.set(cache_key, result)
            except Exception as e:
                logger.error("Error analyzing capital flows for %s: %s", ",".join(ecosystems), e)
                raise

    # ------------------------------------------------------------------
    # standalone builders
    # ------------------------------------------------------------------

    @staticmethod
    def generate_correlation_matrix(
        data: Mapping[str, Sequence[float]], min_correlation: float = 0.5
    ) -> CorrelationMatrix:
        return generate_correlation_matrix(data, min_correlation)

    @staticmethod
    def generate_network_graph(matrix: Any, labels: Sequence[str], min_weight: float = 0.5) -> NetworkGraph:
        return generate_network_graph(matrix, labels, min_weight)


def create_correlator(
    settings: Optional[CorrelationSettings] = None,
    cache: Optional[TTLCache] = None,
) -> EcosystemCorrelator:
    """Correlator backed by the LunarCrush market and sentiment clients.

    One cache is shared by the correlator and the HTTP clients.
    """
    settings = settings or get_settings()
    cache = cache if cache is not None else TTLCache(
        ttl_ms=settings.CACHE_TTL_MS,
        max_size=settings.CACHE_MAX_SIZE,
        check_interval_ms=settings.CACHE_CHECK_INTERVAL_MS,
    )
    market = LunarCrushClient(
        api_key=settings.LUNARCRUSH_API_KEY,
        base_url=settings.LUNARCRUSH_BASE_URL,
        cache=cache,
        timeout=settings.HTTP_TIMEOUT,
        retry=settings.HTTP_RETRIES,
        backoff=settings.HTTP_BACKOFF,
    )
    sentiment = LunarCrushSentimentClient(market, default_market_cap=settings.DEFAULT_MARKET_CAP)
    return EcosystemCorrelator(market, sentiment, cache=cache, settings=settings)
