"""Tests for the EcosystemCorrelator facade."""

import json

import numpy as np
import pytest

from ecocorr.analysis.combined import combine_ecosystem_metrics
from ecocorr.analysis.correlation_matrix import pearson_correlation
from ecocorr.analysis.correlator import EcosystemCorrelator
from ecocorr.exceptions import MissingCapabilityError, NoDataError, ProviderError, UnsupportedMetricError
from ecocorr.utils.performance_monitor import PerformanceMonitor


@pytest.mark.asyncio
async def test_ecosystem_correlations_by_price(correlator):
    result = await correlator.analyze_ecosystem_correlations(["alpha", "beta", "gamma"], "6d", "price", 0.5)

    assert result.labels == ["alpha", "beta", "gamma"]
    assert result.correlation("alpha", "beta") == pytest.approx(1.0)
    np.testing.assert_array_equal(result.matrix, result.matrix.T)
    assert result.strongest_pair.entity_a == "alpha"
    assert result.strongest_pair.entity_b == "beta"
    assert result.top_pairs == result.pairs[:5]
    assert {"source": "alpha", "target": "beta", "weight": pytest.approx(1.0)} in result.network.edges
    assert result.metric == "price"
    assert result.timeframe == "6d"


@pytest.mark.asyncio
async def test_cache_hit_skips_provider(correlator, market):
    first = await correlator.analyze_ecosystem_correlations(["alpha", "beta"], "6d", "price")
    calls = len(market.time_series_calls)

    second = await correlator.analyze_ecosystem_correlations(["alpha", "beta"], "6d", "price")

    assert second is first
    assert len(market.time_series_calls) == calls


@pytest.mark.asyncio
async def test_cache_expiry_triggers_refetch(correlator, market, clock):
    await correlator.analyze_ecosystem_correlations(["alpha", "beta"], "6d", "price")
    calls = len(market.time_series_calls)

    clock.advance(1.5)
    await correlator.analyze_ecosystem_correlations(["alpha", "beta"], "6d", "price")

    assert len(market.time_series_calls) == 2 * calls


@pytest.mark.asyncio
async def test_cache_keys_are_order_sensitive(correlator, market):
    await correlator.analyze_ecosystem_correlations(["alpha", "beta"], "6d", "price")
    assert "ecosystem_correlations_alpha-beta_6d_price_0.5" in correlator.cache
    assert "ecosystem_correlations_beta-alpha_6d_price_0.5" not in correlator.cache


@pytest.mark.asyncio
async def test_combined_without_sentiment(correlator):
    result = await correlator.analyze_ecosystem_correlations(["alpha", "gamma"], "6d")
    assert result.metric == "combined"

    blended = {}
    for name in ("alpha", "gamma"):
        price = await correlator.price_metrics.get_ecosystem_price_data(name, "6d")
        volume = await correlator.volume_metrics.get_ecosystem_volume_data(name, "6d")
        blended[name] = combine_ecosystem_metrics(price, volume)
        np.testing.assert_allclose(blended[name], 0.6 * price + 0.4 * volume)

    assert result.correlation("alpha", "gamma") == pytest.approx(
        pearson_correlation(blended["alpha"], blended["gamma"])
    )


@pytest.mark.asyncio
async def test_combined_with_sentiment_uses_sentiment_series(sentiment_correlator, sentiment):
    await sentiment_correlator.analyze_ecosystem_correlations(["alpha", "beta"], "6d", "combined", 0.0)
    assert ("ecosystem", "alpha") in sentiment.calls
    assert ("ecosystem", "beta") in sentiment.calls


@pytest.mark.asyncio
async def test_asset_correlations(correlator):
    result = await correlator.analyze_asset_correlations(["ETH", "OP"], "4d")
    assert result.metric == "price"
    assert result.labels == ["ETH", "OP"]
    # identical relative steps give identical ratio series
    assert result.correlation("ETH", "OP") == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_unknown_metric_raises(correlator):
    with pytest.raises(UnsupportedMetricError):
        await correlator.analyze_ecosystem_correlations(["alpha"], "6d", "hype")


@pytest.mark.asyncio
async def test_sentiment_without_provider_raises(correlator):
    with pytest.raises(MissingCapabilityError):
        await correlator.analyze_asset_correlations(["ETH"], "4d", "sentiment")


@pytest.mark.asyncio
async def test_no_data_propagates(correlator):
    with pytest.raises(NoDataError) as excinfo:
        await correlator.analyze_ecosystem_correlations(["alpha", "empty"], "6d", "price")
    assert excinfo.value.entity == "empty"


@pytest.mark.asyncio
async def test_provider_error_propagates_and_is_logged(correlator, market, caplog):
    market.failing.add("A1")
    with pytest.raises(ProviderError):
        await correlator.analyze_ecosystem_correlations(["alpha"], "6d", "volume")
    assert any("alpha" in r.getMessage() and r.levelname == "ERROR" for r in caplog.records)


@pytest.mark.asyncio
async def test_fetches_are_sequential_in_input_order(correlator, market):
    await correlator.analyze_ecosystem_correlations(["gamma", "alpha", "beta"], "6d", "price")
    assert [call[0] for call in market.constituent_calls] == ["gamma", "alpha", "beta"]


@pytest.mark.asyncio
async def test_lead_lag_relationships(correlator, market):
    market.series["L1"] = [{"price": p} for p in (1, 2, 3, 4, 5, 6)]
    market.series["F1"] = [{"price": p} for p in (100, 100, 1, 2, 3, 4)]
    market.constituents["leader"] = [{"symbol": "L1"}]
    market.constituents["follower"] = [{"symbol": "F1"}]

    result = await correlator.analyze_lead_lag_relationships(["leader", "follower"], "6d", "1d", "price", 3)

    assert result.lag("leader", "follower") == 2
    assert result.leaders == [{"ecosystem": "leader", "lead_count": 1}]
    assert result.laggers == [{"ecosystem": "follower", "lag_count": 1}]
    assert [(r.leader, r.lagger, r.lag) for r in result.relationships] == [("leader", "follower", 2)]
    assert result.interval == "1d"
    assert "lead_lag_leader-follower_6d_1d_price_3" in correlator.cache


@pytest.mark.asyncio
async def test_lead_lag_rejects_combined(correlator):
    with pytest.raises(UnsupportedMetricError):
        await correlator.analyze_lead_lag_relationships(["alpha", "beta"], metric="combined")


@pytest.mark.asyncio
async def test_capital_flows(correlator):
    result = await correlator.analyze_capital_flows(["alpha", "beta"], "6d", 5.0)

    # alpha volume halves, beta doubles: alpha's whole loss goes to the only sink
    assert result.volume_changes["alpha"] == pytest.approx(-0.5)
    assert result.volume_changes["beta"] == pytest.approx(0.5)
    assert result.flow("alpha", "beta") == pytest.approx(0.5)
    assert result.net_inflows["beta"] == pytest.approx(0.5)
    assert [(f.source, f.target) for f in result.significant_flows] == [("alpha", "beta")]
    assert "capital_flows_alpha-beta_6d_5.0" in correlator.cache


@pytest.mark.asyncio
async def test_capital_flows_survive_correlation_failure(correlator, market):
    async def broken(*args, **kwargs):
        raise ProviderError("down")

    correlator._flow_correlations = broken
    result = await correlator.analyze_capital_flows(["alpha", "beta"], "6d")
    assert result.flow("alpha", "beta") == pytest.approx(0.5)


@pytest.mark.asyncio
async def test_operations_are_monitored(correlator):
    PerformanceMonitor.get_instance().reset()
    await correlator.analyze_ecosystem_correlations(["alpha", "beta"], "6d", "price")
    metrics = PerformanceMonitor.get_instance().get_metrics("analyze_ecosystem_correlations")
    assert metrics["call_count"] == 1
    assert metrics["success_count"] == 1


def test_standalone_builders():
    built = EcosystemCorrelator.generate_correlation_matrix({"a": [1, 2, 3], "b": [2, 4, 6]}, 0.9)
    graph = EcosystemCorrelator.generate_network_graph(built.matrix, built.labels, 0.9)
    assert len(built.pairs) == 1
    assert len(graph.edges) == 1


@pytest.mark.asyncio
async def test_results_serialize_to_json(correlator):
    correlations = await correlator.analyze_ecosystem_correlations(["alpha", "beta"], "6d", "price")
    lead_lag = await correlator.analyze_lead_lag_relationships(["alpha", "beta"], "6d", lag_max=2)
    flows = await correlator.analyze_capital_flows(["alpha", "beta"], "6d")

    for result in (correlations, lead_lag, flows):
        payload = json.loads(json.dumps(result.to_dict()))
        assert payload

    assert correlations.to_dict()["labels"] == ["alpha", "beta"]
    assert lead_lag.to_dict()["lag_matrix"][0][0] == 0
