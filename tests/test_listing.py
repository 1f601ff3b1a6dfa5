"""Listing: filters, sorts, daily shuffle, pagination, category aggregates, broad categories."""

from datetime import datetime, timedelta, timezone

import pytest

from venuepredict.catalog.broad import classify, resolve_broad_category, trending_threshold
from venuepredict.catalog.listing import (
    ListingParams,
    build_listing,
    daily_shuffle,
    fnv1a_32,
    trending_categories,
)
from venuepredict.models import Prediction, PredictionOutcome

NOW = datetime(2030, 6, 15, 12, 0, tzinfo=timezone.utc)


def make_market(market_id, question="Generic question?", category="Uncategorized", tags=(), days=1, **kw):
    return Prediction(
        id=market_id,
        question=question,
        closes_at=NOW + timedelta(days=days),
        outcomes=[
            PredictionOutcome(id=f"{market_id}-0", title=kw.pop("yes", "Yes"), probability=60),
            PredictionOutcome(id=f"{market_id}-1", title="No", probability=40),
        ],
        category=category,
        tags=list(tags),
        **kw,
    )


def test_fnv1a_known_vectors():
    assert fnv1a_32("") == 0x811C9DC5
    assert fnv1a_32("a") == 0xE40C292C
    assert fnv1a_32("foobar") == 0xBF9CF968


def test_listing_params_tolerant():
    p = ListingParams(page="abc", page_size="500", sort="bogus", search="  x ")
    assert p.page == 1
    assert p.page_size == 100
    assert p.sort is None
    assert p.search == "x"
    assert ListingParams(page=-3, page_size=0).page_size == 100
    assert ListingParams(page_size=5).page_size == 5
    assert ListingParams(sort="VOLUME").sort == "volume"


def test_category_filter_matches_primary_or_tag():
    tagged = make_market("P1", category="Politics", tags=["Politics", "Elections"])
    other = make_market("S1", category="Sports", tags=["Sports"])
    markets = [tagged, other]
    for wanted in ("Politics", "elections"):
        listing = build_listing(markets, ListingParams(category=wanted), now=NOW)
        assert [m.id for m in listing.items] == ["P1"]


def test_search_matches_question_outcome_and_category():
    markets = [
        make_market("A", question="Will Bitcoin hit 100k?"),
        make_market("B", category="Weather"),
        make_market("C", yes="Lakers"),
        make_market("D"),
    ]
    assert [m.id for m in build_listing(markets, ListingParams(search="bitcoin"), now=NOW).items] == ["A"]
    assert [m.id for m in build_listing(markets, ListingParams(search="WEATHER"), now=NOW).items] == ["B"]
    assert [m.id for m in build_listing(markets, ListingParams(search="laker"), now=NOW).items] == ["C"]


def test_sort_orders():
    markets = [
        make_market("late", days=5, volume=10, liquidity=1, created_at=NOW - timedelta(days=1)),
        make_market("soon", days=1, volume=10, liquidity=50, created_at=NOW - timedelta(days=3)),
        make_market("mid", days=3, volume=99),
    ]
    by = lambda sort: [m.id for m in build_listing(markets, ListingParams(sort=sort), now=NOW).items]
    assert by("closing-soon") == ["soon", "mid", "late"]
    assert by("volume") == ["mid", "soon", "late"]
    assert by("liquidity") == ["soon", "late", "mid"]
    # mid has no created_at: falls back to its close time, which is in the future
    assert by("newest") == ["mid", "late", "soon"]


def test_default_order_is_daily_shuffle_and_stable():
    markets = [make_market(f"m{i}", days=i + 1) for i in range(20)]
    first = build_listing(markets, ListingParams(), now=NOW)
    again = build_listing(list(reversed(markets)), ListingParams(), now=NOW + timedelta(hours=3))
    assert [m.id for m in first.items] == [m.id for m in again.items]
    assert [m.id for m in first.items] == [m.id for m in daily_shuffle(markets, "2030-06-15")]
    next_day = build_listing(markets, ListingParams(), now=NOW + timedelta(days=1))
    assert [m.id for m in next_day.items] != [m.id for m in first.items]


def test_filters_disable_shuffle():
    markets = [make_market(f"m{i}", category="Sports", days=i + 1) for i in range(10)]
    listing = build_listing(markets, ListingParams(category="sports"), now=NOW)
    assert [m.id for m in listing.items] == [f"m{i}" for i in range(10)]


def test_pagination_clamps_page():
    markets = [make_market(f"m{i}", days=i + 1) for i in range(25)]
    listing = build_listing(markets, ListingParams(page=9, page_size=10, sort="closing-soon"), now=NOW)
    assert listing.total_items == 25
    assert listing.total_pages == 3
    assert listing.page == 3
    assert [m.id for m in listing.items] == [f"m{i}" for i in range(20, 25)]
    empty = build_listing([], ListingParams(page=4), now=NOW)
    assert empty.page == 1 and empty.total_pages == 1 and empty.items == []


def test_categories_and_trending_categories():
    markets = [
        make_market("a", category="sports", volume=10),
        make_market("b", category="Sports", volume=5),
        make_market("c", category="Crypto", volume=None, liquidity=1000),
        make_market("d", category="art"),
    ]
    listing = build_listing(markets, ListingParams(), now=NOW)
    assert listing.categories == ["art", "Crypto", "sports"]
    assert trending_categories(markets) == ["Crypto", "sports", "art"]
    assert "Climate & Science" in listing.broad_categories
    assert len(listing.broad_categories) == 16


def test_trending_threshold_is_80th_percentile():
    markets = [make_market(str(i), volume=float(v)) for i, v in enumerate([0, 10, 20, 30, 40, 50, 60, 70, 80, 90])]
    assert trending_threshold(markets) == 70.0
    listing = build_listing(markets, ListingParams(broad_category="trending", sort="volume"), now=NOW)
    assert [m.id for m in listing.items] == ["9", "8", "7"]


def test_trending_with_zero_threshold_includes_zero_volume_markets():
    markets = [make_market("a", volume=0.0), make_market("b"), make_market("c", volume=0.0)]
    assert trending_threshold(markets) == 0.0
    listing = build_listing(markets, ListingParams(broad_category="trending"), now=NOW)
    assert {m.id for m in listing.items} == {"a", "b", "c"}
    assert all("trending" in classify(m, 0.0, NOW) for m in markets)


def test_new_and_keyword_broad_categories():
    fresh = make_market("fresh", created_at=NOW - timedelta(hours=10))
    stale = make_market("stale", created_at=NOW - timedelta(hours=100))
    crypto = make_market("btc", question="Will Bitcoin close above 100k?")
    nba = make_market("nba", question="Game 7 winner?", tags=["NBA"])
    markets = [fresh, stale, crypto, nba]
    ids = lambda broad: {m.id for m in build_listing(markets, ListingParams(broad_category=broad), now=NOW).items}
    assert ids("new") == {"fresh"}
    assert ids("Crypto") == {"btc"}
    assert ids("sports") == {"nba"}
    assert "crypto" in classify(crypto, trending_threshold(markets), NOW)


@pytest.mark.parametrize("value,slug", [("climate & science", "climate-science"), ("Climate-Science", "climate-science"), ("POLITICS", "politics")])
def test_resolve_broad_category(value, slug):
    assert resolve_broad_category(value).slug == slug


def test_unknown_broad_category_is_ignored():
    markets = [make_market(f"m{i}", days=i + 1) for i in range(3)]
    listing = build_listing(markets, ListingParams(broad_category="nonsense"), now=NOW)
    assert listing.total_items == 3
