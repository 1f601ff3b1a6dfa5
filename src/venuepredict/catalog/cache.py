"""In-process TTL cache of open markets with single-flight refresh."""

from __future__ import annotations

import asyncio
import time
from datetime import datetime
from typing import Callable

import structlog

from venuepredict.catalog.listing import ListingParams, MarketListing, build_listing
from venuepredict.ingestion.polymarket.gamma import GammaClient
from venuepredict.models import Prediction

log = structlog.get_logger(__name__)

DEFAULT_TTL_SEC = 30.0


class MarketCatalog:
    """Snapshot of active, open markets refreshed at most once per TTL.

    Concurrent callers that miss the cache await the same in-flight fetch. The
    fetch runs as its own task, so a waiter that gets cancelled leaves it running
    and the result still lands in the cache. Fetch errors are never cached and
    never hidden behind stale data.
    """

    def __init__(
        self,
        client: GammaClient,
        ttl_sec: float = DEFAULT_TTL_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.ttl_sec = ttl_sec
        self._clock = clock
        self._markets: list[Prediction] | None = None
        self._fetched_at: float = 0.0
        self._inflight: asyncio.Task[list[Prediction]] | None = None

    def _fresh(self) -> bool:
        return self._markets is not None and (self._clock() - self._fetched_at) < self.ttl_sec

    async def _refresh(self) -> list[Prediction]:
        started = self._clock()
        try:
            markets = await self.client.fetch_markets(active=True, closed=False)
        except Exception:
            log.warning("catalog_refresh_failed", exc_info=True)
            raise
        finally:
            self._inflight = None
        open_markets = [m for m in markets if not m.is_closed]
        self._markets = open_markets
        self._fetched_at = self._clock()
        log.info("catalog_refreshed", markets=len(open_markets), elapsed_sec=round(self._fetched_at - started, 3))
        return open_markets

    async def get_markets(self) -> list[Prediction]:
        if self._fresh():
            return list(self._markets or [])
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._refresh())
        markets = await asyncio.shield(self._inflight)
        return list(markets)

    async def list_markets(self, params: ListingParams | None = None, now: datetime | None = None) -> MarketListing:
        markets = await self.get_markets()
        return build_listing(markets, params or ListingParams(), now=now)

    async def get_market(self, market_id: str) -> Prediction | None:
        """Single-market lookup against the source, bypassing the listing snapshot."""
        return await self.client.find_market(market_id)

    def invalidate(self) -> None:
        self._markets = None
        self._fetched_at = 0.0
