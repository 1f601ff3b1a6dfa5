"""Shared fixtures: temp DuckDB, raw Gamma market records, a mocked Gamma transport."""

import json
import tempfile
from pathlib import Path

import httpx
import pytest

from venuepredict.ingestion.polymarket.gamma import GammaClient
from venuepredict.storage.db import get_connection, init_schema


@pytest.fixture
def temp_db():
    tmp = tempfile.mkdtemp()
    path = Path(tmp) / "test.duckdb"
    conn = get_connection(path)
    init_schema(conn)
    yield conn
    conn.close()
    path.unlink(missing_ok=True)
    Path(tmp).rmdir()


def raw_market(market_id, question=None, outcomes=("Yes", "No"), prices=("0.7", "0.3"), **extra):
    """Gamma-style record: list fields JSON-encoded, as the live API sends them."""
    row = {
        "id": market_id,
        "question": question or f"Question {market_id}?",
        "endDate": "2030-01-01T00:00:00Z",
        "outcomes": json.dumps(list(outcomes)),
        "outcomePrices": json.dumps(list(prices)),
        "active": True,
        "closed": False,
    }
    row.update(extra)
    return row


class FakeGamma:
    """In-memory Gamma /markets endpoint served through httpx.MockTransport."""

    def __init__(self, open_markets=(), closed_markets=(), status_code=200):
        self.open_markets = list(open_markets)
        self.closed_markets = list(closed_markets)
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "boom"})
        params = request.url.params
        everything = self.open_markets + self.closed_markets
        if "id" in params:
            return httpx.Response(200, json=[m for m in everything if str(m["id"]) == params["id"]])
        rows = self.closed_markets if params.get("closed") == "true" else self.open_markets
        offset = int(params.get("offset", 0))
        limit = int(params.get("limit", 500))
        return httpx.Response(200, json=rows[offset : offset + limit])

    def client(self, page_size=500, max_pages=10, max_records=5000) -> GammaClient:
        return GammaClient(
            base_url="https://gamma.test",
            page_size=page_size,
            max_pages=max_pages,
            max_records=max_records,
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def fake_gamma():
    return FakeGamma(
        open_markets=[
            raw_market("M1", "Will the home team win tonight?", prices=("0.7", "0.3")),
            raw_market("M2", "Will it rain on Saturday?", prices=("0.625", "0.375")),
        ]
    )
