"""Polymarket Gamma API client - paginated market scans and single-market lookup."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator

import httpx
import structlog

from venuepredict.errors import UpstreamError
from venuepredict.ingestion.polymarket.normalize import normalize_market
from venuepredict.models import Prediction

if TYPE_CHECKING:
    from venuepredict.config import Settings

log = structlog.get_logger(__name__)

GAMMA_API_BASE = "https://gamma-api.polymarket.com"


class GammaClient:
    """Async client for the Gamma /markets endpoint. Every call fails closed on upstream errors."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        page_size: int = 500,
        max_pages: int = 10,
        max_records: int = 5000,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        base = (base_url or GAMMA_API_BASE).rstrip("/")
        self.markets_url = base if base.endswith("/markets") else base + "/markets"
        self.api_key = api_key
        self.page_size = max(1, page_size)
        self.max_pages = max(1, max_pages)
        self.max_records = max(1, max_records)
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> GammaClient:
        return cls(
            base_url=settings.gamma_api_base,
            api_key=settings.polymarket_api_key,
            page_size=settings.gamma_page_size,
            max_pages=settings.gamma_max_pages,
            max_records=settings.gamma_max_records,
            timeout=settings.gamma_timeout_sec,
            transport=transport,
        )

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        async with httpx.AsyncClient(
            timeout=self.timeout, headers=headers, transport=self._transport
        ) as client:
            yield client

    async def _get(self, client: httpx.AsyncClient, params: dict[str, Any]) -> list[Any]:
        try:
            resp = await client.get(self.markets_url, params=params)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Polymarket request failed: {e}") from e
        if not resp.is_success:
            raise UpstreamError(
                f"Polymarket request failed with status {resp.status_code}.",
                upstream_status=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamError("Polymarket response was not valid JSON.", resp.status_code) from e
        if not isinstance(data, list):
            raise UpstreamError("Polymarket response was not an array.", resp.status_code)
        return data

    async def fetch_page(self, params: dict[str, Any]) -> list[Any]:
        """Single raw GET against /markets."""
        async with self._client() as client:
            return await self._get(client, params)

    async def fetch_markets(self, active: bool = True, closed: bool = False) -> list[Prediction]:
        """Paginated scan, de-duplicated by id. Stops on an empty or short page or at the bounds."""
        seen: set[str] = set()
        markets: list[Prediction] = []
        skipped = 0
        pages = 0
        async with self._client() as client:
            for page in range(self.max_pages):
                rows = await self._get(
                    client,
                    {
                        "active": str(active).lower(),
                        "closed": str(closed).lower(),
                        "limit": self.page_size,
                        "offset": page * self.page_size,
                    },
                )
                pages += 1
                for row in rows:
                    raw_id = str(row.get("id") or "").strip() if isinstance(row, dict) else ""
                    if not raw_id or raw_id in seen:
                        continue
                    seen.add(raw_id)
                    market = normalize_market(row)
                    if market is None:
                        skipped += 1
                    else:
                        markets.append(market)
                    if len(seen) >= self.max_records:
                        break
                if len(seen) >= self.max_records or len(rows) < self.page_size:
                    break
        log.debug(
            "gamma_scan_done",
            active=active,
            closed=closed,
            pages=pages,
            markets=len(markets),
            skipped=skipped,
        )
        return markets

    async def fetch_market(self, market_id: str) -> Prediction | None:
        """Direct lookup with ?id=. None when the source does not return a usable record."""
        market_id = (market_id or "").strip()
        if not market_id:
            return None
        rows = await self.fetch_page({"id": market_id})
        for row in rows:
            market = normalize_market(row) if isinstance(row, dict) else None
            if market is not None and market.id == market_id:
                return market
        return None

    async def find_market(self, market_id: str) -> Prediction | None:
        """Direct lookup, falling back to a full scan of active markets."""
        market = await self.fetch_market(market_id)
        if market is not None:
            return market
        market_id = market_id.strip()
        if not market_id:
            return None
        log.debug("gamma_direct_miss", market_id=market_id)
        for candidate in await self.fetch_markets(active=True, closed=False):
            if candidate.id == market_id:
                return candidate
        return None
