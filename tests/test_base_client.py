"""Tests for BaseClient._request against a local aiohttp server."""

import pytest
from aiohttp import test_utils, web

from ecocorr.exceptions import ProviderError
from ecocorr.utils.data_sources.base_client import BaseClient
from ecocorr.utils.ttl_cache import TTLCache


def scripted_app(responses):
    """App answering /data with the queued (status, body, headers) tuples, repeating the last one."""
    hits = []

    async def handler(request):
        hits.append(dict(request.query))
        status, body, headers = responses[min(len(hits), len(responses)) - 1]
        return web.Response(status=status, text=body, headers=headers, content_type="application/json")

    app = web.Application()
    app.router.add_get("/data", handler)
    return app, hits


@pytest.mark.asyncio
async def test_server_error_is_retried():
    app, hits = scripted_app([(500, "oops", {}), (200, '{"ok": true}', {})])
    client = BaseClient(retry=3, backoff=0)
    async with test_utils.TestServer(app) as server:
        try:
            data = await client._request("GET", str(server.make_url("/data")))
        finally:
            await client.close()

    assert data == {"ok": True}
    assert len(hits) == 2


@pytest.mark.asyncio
async def test_rate_limit_honours_retry_after():
    app, hits = scripted_app([(429, "", {"Retry-After": "0"}), (200, "[1, 2]", {})])
    client = BaseClient(retry=3, backoff=0)
    async with test_utils.TestServer(app) as server:
        try:
            data = await client._request("GET", str(server.make_url("/data")))
        finally:
            await client.close()

    assert data == [1, 2]
    assert len(hits) == 2


@pytest.mark.asyncio
async def test_client_error_is_not_retried():
    app, hits = scripted_app([(404, "not found", {})])
    client = BaseClient(retry=3, backoff=0)
    async with test_utils.TestServer(app) as server:
        try:
            with pytest.raises(ProviderError) as exc_info:
                await client._request("GET", str(server.make_url("/data")), entity="ETH")
        finally:
            await client.close()

    assert exc_info.value.status == 404
    assert exc_info.value.entity == "ETH"
    assert len(hits) == 1


@pytest.mark.asyncio
async def test_persistent_server_error_gives_up_after_retries():
    app, hits = scripted_app([(503, "down", {})])
    client = BaseClient(retry=2, backoff=0)
    async with test_utils.TestServer(app) as server:
        try:
            with pytest.raises(ProviderError) as exc_info:
                await client._request("GET", str(server.make_url("/data")))
        finally:
            await client.close()

    assert exc_info.value.status == 503
    assert len(hits) == 2


@pytest.mark.asyncio
async def test_invalid_json_raises_provider_error():
    app, hits = scripted_app([(200, "not json", {})])
    client = BaseClient(retry=3, backoff=0)
    async with test_utils.TestServer(app) as server:
        try:
            with pytest.raises(ProviderError, match="invalid JSON"):
                await client._request("GET", str(server.make_url("/data")))
        finally:
            await client.close()

    assert len(hits) == 1


@pytest.mark.asyncio
async def test_transport_error_raises_after_retries():
    app, _ = scripted_app([(200, "{}", {})])
    server = test_utils.TestServer(app)
    await server.start_server()
    url = str(server.make_url("/data"))
    await server.close()

    client = BaseClient(retry=2, backoff=0)
    try:
        with pytest.raises(ProviderError, match="failed after 2 attempts"):
            await client._request("GET", url)
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_responses_are_memoized_in_cache():
    app, hits = scripted_app([(200, '{"n": 1}', {})])
    cache = TTLCache(ttl_ms=60_000)
    client = BaseClient(cache=cache, retry=1, backoff=0)
    async with test_utils.TestServer(app) as server:
        url = str(server.make_url("/data"))
        try:
            first = await client._request("GET", url, params={"symbol": "ETH"})
            second = await client._request("GET", url, params={"symbol": "ETH"})
            other = await client._request("GET", url, params={"symbol": "SOL"})
        finally:
            await client.close()

    assert first == second == other == {"n": 1}
    assert hits == [{"symbol": "ETH"}, {"symbol": "SOL"}]
    assert cache.stats()["hits"] == 1
