"""Tests for provider payload models and coercion."""

import pytest
from pydantic import ValidationError

from ecocorr.utils.data_sources.types import (
    Constituent,
    EcosystemSentiment,
    MarketDataProvider,
    SentimentProvider,
    TimeSeriesPoint,
    to_constituents,
    to_ecosystem_sentiment,
    to_points,
    to_sentiment_report,
)


def test_point_defaults_for_absent_fields():
    point = TimeSeriesPoint.model_validate({})
    assert (point.price, point.volume, point.sentiment_score) == (0.0, 0.0, 50.0)


def test_point_none_counts_as_absent():
    point = TimeSeriesPoint.model_validate({"price": None, "volume": None, "sentimentScore": None})
    assert (point.price, point.volume, point.sentiment_score) == (0.0, 0.0, 50.0)


def test_point_vendor_aliases():
    point = TimeSeriesPoint.model_validate({"p": 1.5, "v": 200, "gs": 72})
    assert (point.price, point.volume, point.sentiment_score) == (1.5, 200.0, 72.0)


def test_point_is_immutable():
    point = TimeSeriesPoint(price=1.0)
    with pytest.raises(ValidationError):
        point.price = 2.0


def test_constituent_aliases_and_strings():
    constituents = to_constituents([{"s": "ETH", "mc": 5e11}, {"symbol": "OP", "marketCap": None}, "ARB"])
    assert [c.symbol for c in constituents] == ["ETH", "OP", "ARB"]
    assert constituents[0].market_cap == 5e11
    assert constituents[1].market_cap is None
    assert constituents[2].market_cap is None


def test_constituent_requires_symbol():
    with pytest.raises(ValidationError):
        Constituent.model_validate({"marketCap": 1.0})


def test_coercers_pass_models_through():
    points = [TimeSeriesPoint(price=1.0)]
    assert to_points(points)[0] is points[0]
    assert to_points(None) == []
    assert to_constituents([]) == []
    assert to_sentiment_report(None) is None


def test_sentiment_payloads():
    report = to_sentiment_report({"normalizedScore": 0.42})
    assert report.normalized_score == 0.42

    eco = to_ecosystem_sentiment({"aggregateScore": 61, "topAssets": [{"asset": "SOL", "marketCap": 1e10}]})
    assert isinstance(eco, EcosystemSentiment)
    assert eco.aggregate_score == 61.0
    assert eco.top_assets[0].symbol == "SOL"


def test_fakes_satisfy_protocols(market, sentiment):
    assert isinstance(market, MarketDataProvider)
    assert isinstance(sentiment, SentimentProvider)
