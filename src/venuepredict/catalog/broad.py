"""Broad-category tagger: a fixed taxonomy evaluated per market with keyword heuristics."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from venuepredict.models import Prediction

TRENDING_PERCENTILE = 0.8
NEW_WINDOW = timedelta(hours=72)

_NON_WORD = re.compile(r"[^a-z0-9&]+")


@dataclass(frozen=True)
class BroadCategory:
    slug: str
    label: str
    # Matched at a word start in the padded haystack; a trailing space pins a whole word.
    keywords: tuple[str, ...] = field(default_factory=tuple)


BROAD_CATEGORIES: tuple[BroadCategory, ...] = (
    BroadCategory("trending", "Trending"),
    BroadCategory(
        "breaking",
        "Breaking",
        ("breaking", "announce", "today", "tonight", "this week", "emergency", "resign", "arrest"),
    ),
    BroadCategory("new", "New"),
    BroadCategory(
        "politics",
        "Politics",
        (
            "politic", "president", "trump", "biden", "congress", "senate", "governor",
            "democrat", "republican", "parliament", "prime minister", "white house",
            "supreme court", "cabinet",
        ),
    ),
    BroadCategory(
        "sports",
        "Sports",
        (
            "sport", "nba ", "nfl ", "mlb ", "nhl ", "ufc ", "wwe ", "ncaa", "f1 ", "soccer",
            "football", "basketball", "baseball", "hockey", "tennis", "golf", "premier league",
            "champions league", "world cup", "super bowl", "olympic", "grand prix",
        ),
    ),
    BroadCategory(
        "crypto",
        "Crypto",
        (
            "crypto", "bitcoin", "btc ", "ethereum", "eth ", "solana", "xrp ", "dogecoin",
            "stablecoin", "memecoin", "airdrop", "binance", "coinbase",
        ),
    ),
    BroadCategory(
        "finance",
        "Finance",
        (
            "financ", "stock", "s&p", "nasdaq", "dow jones", "ipo ", "interest rate", "fed ",
            "federal reserve", "treasury", "bond ", "market cap", "hedge fund",
        ),
    ),
    BroadCategory(
        "geopolitics",
        "Geopolitics",
        (
            "geopolitic", "war ", "ukraine", "russia", "israel", "gaza", "iran", "taiwan",
            "nato ", "ceasefire", "sanction", "invasion", "military", "missile", "nuclear",
        ),
    ),
    BroadCategory(
        "earnings",
        "Earnings",
        ("earnings", "revenue", "eps ", "quarterly", "guidance", "beat estimates", "profit"),
    ),
    BroadCategory(
        "tech",
        "Tech",
        (
            "tech", "ai ", "artificial intelligence", "openai", "apple", "google", "microsoft",
            "nvidia", "tesla", "meta ", "spacex", "chatgpt", "iphone", "software", "chip",
        ),
    ),
    BroadCategory(
        "culture",
        "Culture",
        (
            "culture", "movie", "film", "oscar", "grammy", "emmy", "music", "album",
            "celebrity", "box office", "tv ", "netflix", "taylor swift", "billboard",
        ),
    ),
    BroadCategory(
        "world",
        "World",
        (
            "world", "global", "international", "europe", "eu ", "uk ", "india", "japan",
            "africa", "latin america", "canada", "mexico", "brazil", "china",
        ),
    ),
    BroadCategory(
        "economy",
        "Economy",
        (
            "econom", "inflation", "gdp ", "recession", "unemployment", "cpi ", "jobs report",
            "tariff", "interest rate",
        ),
    ),
    BroadCategory(
        "climate-science",
        "Climate & Science",
        (
            "climate", "science", "scientific", "weather", "temperature", "hurricane",
            "earthquake", "nasa ", "space", "vaccine", "pandemic", "global warming",
        ),
    ),
    BroadCategory(
        "mentions",
        "Mentions",
        ("mention", "say ", "says ", "tweet", "post on x", "speech", "press conference"),
    ),
    BroadCategory(
        "elections",
        "Elections",
        ("election", "elected", "primary", "primaries", "ballot", "vote", "poll", "nominee", "caucus", "referendum"),
    ),
)

_BY_KEY = {key: bc for bc in BROAD_CATEGORIES for key in (bc.slug, bc.label.casefold())}


def broad_category_labels() -> list[str]:
    return [bc.label for bc in BROAD_CATEGORIES]


def resolve_broad_category(value: str | None) -> BroadCategory | None:
    """Slug or label, case-insensitive. Unknown values resolve to None."""
    key = (value or "").strip().casefold()
    if not key:
        return None
    return _BY_KEY.get(key) or _BY_KEY.get(key.replace(" ", "-"))


def trending_threshold(markets: list[Prediction]) -> float | None:
    """Nearest-rank 80th percentile of volumes across all markets (missing volume counts as 0)."""
    if not markets:
        return None
    volumes = sorted(m.volume or 0.0 for m in markets)
    rank = max(1, math.ceil(TRENDING_PERCENTILE * len(volumes)))
    return volumes[rank - 1]


def _haystack(market: Prediction) -> str:
    text = " ".join([market.question, market.category, *market.tags]).lower()
    return " " + _NON_WORD.sub(" ", text).strip() + " "


def is_trending(market: Prediction, threshold: float | None) -> bool:
    return threshold is not None and (market.volume or 0.0) >= threshold


def is_new(market: Prediction, now: datetime) -> bool:
    return market.created_at is not None and market.created_at >= now - NEW_WINDOW


def matches(market: Prediction, category: BroadCategory, threshold: float | None, now: datetime) -> bool:
    if category.slug == "trending":
        return is_trending(market, threshold)
    if category.slug == "new":
        return is_new(market, now)
    haystack = _haystack(market)
    return any(" " + keyword in haystack for keyword in category.keywords)


def classify(market: Prediction, threshold: float | None, now: datetime) -> list[str]:
    """All broad-category slugs a market falls into, in taxonomy order."""
    return [bc.slug for bc in BROAD_CATEGORIES if matches(market, bc, threshold, now)]
