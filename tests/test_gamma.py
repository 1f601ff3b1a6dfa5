"""Gamma client: pagination, dedupe, bounds, direct lookup, upstream failures."""

import asyncio

import httpx
import pytest

from venuepredict.errors import UpstreamError
from venuepredict.ingestion.polymarket.gamma import GammaClient
from conftest import FakeGamma, raw_market


def test_fetch_markets_paginates_and_dedupes():
    rows = [raw_market(f"m{i}") for i in range(5)] + [raw_market("m0"), {"id": "bad"}]
    gamma = FakeGamma(open_markets=rows)
    markets = asyncio.run(gamma.client(page_size=2).fetch_markets())
    assert [m.id for m in markets] == ["m0", "m1", "m2", "m3", "m4"]
    # 7 rows in pages of 2: 2, 2, 2, 1 (short page stops)
    assert len(gamma.requests) == 4
    first = gamma.requests[0].url.params
    assert first["active"] == "true" and first["closed"] == "false" and first["offset"] == "0"


def test_fetch_markets_respects_max_pages_and_records():
    gamma = FakeGamma(open_markets=[raw_market(f"m{i}") for i in range(10)])
    assert len(asyncio.run(gamma.client(page_size=2, max_pages=2).fetch_markets())) == 4
    gamma = FakeGamma(open_markets=[raw_market(f"m{i}") for i in range(10)])
    assert len(asyncio.run(gamma.client(page_size=4, max_records=5).fetch_markets())) == 5


def test_fetch_market_direct():
    gamma = FakeGamma(open_markets=[raw_market("42")])
    market = asyncio.run(gamma.client().fetch_market("42"))
    assert market.id == "42"
    assert gamma.requests[0].url.params["id"] == "42"
    assert asyncio.run(gamma.client().fetch_market("  ")) is None


def test_find_market_falls_back_to_scan():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(dict(request.url.params))
        if "id" in request.url.params:
            return httpx.Response(200, json=[])
        return httpx.Response(200, json=[raw_market("7")])

    client = GammaClient(base_url="https://gamma.test", transport=httpx.MockTransport(handler))
    market = asyncio.run(client.find_market("7"))
    assert market.id == "7"
    assert "id" in calls[0] and "offset" in calls[1]


@pytest.mark.parametrize("status", [500, 503, 404])
def test_non_2xx_raises_with_status(status):
    gamma = FakeGamma(status_code=status)
    with pytest.raises(UpstreamError) as exc:
        asyncio.run(gamma.client().fetch_markets())
    assert exc.value.upstream_status == status
    assert str(status) in exc.value.message


def test_non_array_body_raises():
    client = GammaClient(
        base_url="https://gamma.test",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"markets": []})),
    )
    with pytest.raises(UpstreamError, match="not an array"):
        asyncio.run(client.fetch_markets())


def test_markets_url_and_auth_header():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    client = GammaClient(base_url="https://gamma.test/", api_key="k", transport=httpx.MockTransport(handler))
    asyncio.run(client.fetch_page({"limit": 1}))
    assert seen[0].url.path == "/markets"
    assert seen[0].headers["Authorization"] == "Bearer k"
