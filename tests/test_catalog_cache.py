"""Catalog cache: TTL, single-flight refresh, failures are not cached."""

import asyncio

import httpx
import pytest

from venuepredict.catalog import ListingParams, MarketCatalog
from venuepredict.errors import UpstreamError
from venuepredict.ingestion.polymarket.gamma import GammaClient
from conftest import FakeGamma, raw_market


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class SlowGamma(GammaClient):
    """Counts scans and holds each one until released."""

    def __init__(self, markets):
        super().__init__(base_url="https://gamma.test")
        self.markets = markets
        self.scans = 0
        self.release = asyncio.Event()

    async def fetch_markets(self, active=True, closed=False):
        self.scans += 1
        await self.release.wait()
        return self.markets


def test_ttl_cache(fake_gamma):
    clock = Clock()
    catalog = MarketCatalog(fake_gamma.client(), ttl_sec=30, clock=clock)

    async def run():
        await catalog.get_markets()
        await catalog.get_markets()
        clock.now += 29
        await catalog.get_markets()
        assert len(fake_gamma.requests) == 1
        clock.now += 2
        await catalog.get_markets()
        assert len(fake_gamma.requests) == 2
        catalog.invalidate()
        await catalog.get_markets()
        assert len(fake_gamma.requests) == 3

    asyncio.run(run())


def test_concurrent_misses_share_one_fetch():
    normalized = FakeGamma(open_markets=[raw_market("A")]).client()
    markets = asyncio.run(normalized.fetch_markets())
    client = SlowGamma(markets)
    catalog = MarketCatalog(client)

    async def run():
        waiters = [asyncio.create_task(catalog.get_markets()) for _ in range(5)]
        await asyncio.sleep(0)
        client.release.set()
        results = await asyncio.gather(*waiters)
        assert client.scans == 1
        assert all([m.id for m in r] == ["A"] for r in results)

    asyncio.run(run())


def test_cancelled_waiter_does_not_cancel_fetch():
    client = SlowGamma([])
    catalog = MarketCatalog(client)

    async def run():
        first = asyncio.create_task(catalog.get_markets())
        second = asyncio.create_task(catalog.get_markets())
        await asyncio.sleep(0)
        first.cancel()
        await asyncio.sleep(0)
        client.release.set()
        assert await second == []
        with pytest.raises(asyncio.CancelledError):
            await first
        assert client.scans == 1
        # the fetch landed in the cache
        await catalog.get_markets()
        assert client.scans == 1

    asyncio.run(run())


def test_failure_propagates_and_is_not_cached():
    gamma = FakeGamma(open_markets=[raw_market("A")], status_code=502)
    catalog = MarketCatalog(gamma.client())

    async def run():
        with pytest.raises(UpstreamError):
            await catalog.list_markets(ListingParams())
        gamma.status_code = 200
        listing = await catalog.list_markets(ListingParams())
        assert listing.total_items == 1

    asyncio.run(run())


def test_closed_markets_are_excluded():
    gamma = FakeGamma(open_markets=[raw_market("A"), raw_market("B", closed=True)])
    catalog = MarketCatalog(gamma.client())
    assert [m.id for m in asyncio.run(catalog.get_markets())] == ["A"]


def test_get_market_uses_direct_lookup(fake_gamma):
    catalog = MarketCatalog(fake_gamma.client())
    market = asyncio.run(catalog.get_market("M2"))
    assert market.outcomes[0].probability == 62.5
    assert fake_gamma.requests[0].url.params["id"] == "M2"
