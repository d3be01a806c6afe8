"""Shared test fixtures: fake providers, a controllable clock and a cache."""

from typing import Any, Dict, List, Optional

import pytest

from ecocorr.analysis.correlator import EcosystemCorrelator
from ecocorr.config import CorrelationSettings
from ecocorr.exceptions import ProviderError
from ecocorr.utils.ttl_cache import TTLCache


def points(prices: List[float], volumes: Optional[List[float]] = None, scores: Optional[List[float]] = None):
    """Provider payload (oldest first) built from parallel value lists."""
    volumes = volumes or [1.0] * len(prices)
    scores = scores or [50.0] * len(prices)
    return [{"price": p, "volume": v, "sentiment_score": s} for p, v, s in zip(prices, volumes, scores)]


class FakeClock:
    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeMarketProvider:
    """In-memory MarketDataProvider that counts calls."""

    def __init__(self, series: Dict[str, List[Dict[str, Any]]], constituents: Dict[str, List[Any]]):
        self.series = series
        self.constituents = constituents
        self.failing: set = set()
        self.time_series_calls: List[tuple] = []
        self.constituent_calls: List[tuple] = []

    async def get_time_series(self, entity: str, interval: str, days_back: float):
        self.time_series_calls.append((entity, interval, days_back))
        if entity in self.failing:
            raise ProviderError("upstream unavailable", status=503, entity=entity)
        return list(self.series.get(entity, []))

    async def get_ecosystem_constituents(self, ecosystem: str, limit: int):
        self.constituent_calls.append((ecosystem, limit))
        if ecosystem in self.failing:
            raise ProviderError("upstream unavailable", status=503, entity=ecosystem)
        return list(self.constituents.get(ecosystem, []))[:limit]


class FakeSentimentProvider:
    def __init__(self, asset_scores: Dict[str, float], ecosystem_reports: Dict[str, Dict[str, Any]]):
        self.asset_scores = asset_scores
        self.ecosystem_reports = ecosystem_reports
        self.fail = False
        self.calls: List[tuple] = []

    async def analyze_sentiment(self, entity: str, options: Dict[str, Any]):
        self.calls.append(("asset", entity))
        if self.fail:
            raise RuntimeError("sentiment backend down")
        return {"normalizedScore": self.asset_scores.get(entity, 0.5)}

    async def analyze_ecosystem_sentiment(self, ecosystem: str, options: Dict[str, Any]):
        self.calls.append(("ecosystem", ecosystem))
        if self.fail:
            raise RuntimeError("sentiment backend down")
        return self.ecosystem_reports.get(ecosystem)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> TTLCache:
    return TTLCache(ttl_ms=1_000, clock=clock)


@pytest.fixture
def settings() -> CorrelationSettings:
    return CorrelationSettings(CACHE_TTL_MS=1_000, CONSTITUENT_LIMIT=10, TIME_SERIES_CONSTITUENT_LIMIT=5)


@pytest.fixture
def market() -> FakeMarketProvider:
    series = {
        # alpha and beta move together, gamma moves against them
        "A1": points([10, 11, 12, 13, 14, 15], [10, 10, 10, 10, 10, 5], [40, 50, 60, 70, 80, 90]),
        "B1": points([20, 22, 24, 26, 28, 30], [5, 5, 5, 5, 5, 10], [90, 80, 70, 60, 50, 40]),
        "G1": points([15, 14, 13, 12, 11, 10], [1, 2, 3, 4, 5, 6]),
        "ETH": points([100, 110, 120, 130]),
        "OP": points([50, 55, 60, 65]),
    }
    constituents = {
        "alpha": [{"symbol": "A1", "marketCap": 100.0}],
        "beta": [{"symbol": "B1", "market_cap": 100.0}],
        "gamma": [{"s": "G1", "mc": 50.0}],
        "empty": [],
    }
    return FakeMarketProvider(series, constituents)


@pytest.fixture
def sentiment() -> FakeSentimentProvider:
    return FakeSentimentProvider(
        asset_scores={"ETH": 0.7},
        ecosystem_reports={
            "alpha": {"aggregateScore": 65.0, "topAssets": [{"symbol": "A1", "marketCap": 100.0}]},
            "beta": {"aggregateScore": 55.0, "topAssets": [{"symbol": "B1", "marketCap": 100.0}]},
        },
    )


@pytest.fixture
def correlator(market, cache, settings) -> EcosystemCorrelator:
    return EcosystemCorrelator(market, cache=cache, settings=settings)


@pytest.fixture
def sentiment_correlator(market, sentiment, cache, settings) -> EcosystemCorrelator:
    return EcosystemCorrelator(market, sentiment, cache=cache, settings=settings)
