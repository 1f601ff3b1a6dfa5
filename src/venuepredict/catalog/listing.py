"""Filter, sort and paginate a market snapshot into one listing page."""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from venuepredict.catalog.broad import (
    broad_category_labels,
    matches as matches_broad,
    resolve_broad_category,
    trending_threshold,
)
from venuepredict.ingestion.polymarket.normalize import dedupe_labels
from venuepredict.models import Prediction

SortOrder = Literal["closing-soon", "newest", "volume", "liquidity"]
SORT_ORDERS: tuple[str, ...] = ("closing-soon", "newest", "volume", "liquidity")

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 100
TRENDING_CATEGORY_COUNT = 12

_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193


def _positive_int(value: Any, fallback: int) -> int:
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return fallback
    return number if number > 0 else fallback


class ListingParams(BaseModel):
    """Listing query. Coercion is tolerant: bad paging falls back to defaults, unknown sort to None."""

    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    search: str = ""
    category: str = ""
    broad_category: str = ""
    sort: SortOrder | None = None

    @field_validator("page", mode="before")
    @classmethod
    def _page(cls, value: Any) -> int:
        return _positive_int(value, 1)

    @field_validator("page_size", mode="before")
    @classmethod
    def _page_size(cls, value: Any) -> int:
        return max(1, min(MAX_PAGE_SIZE, _positive_int(value, DEFAULT_PAGE_SIZE)))

    @field_validator("search", "category", "broad_category", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator("sort", mode="before")
    @classmethod
    def _sort(cls, value: Any) -> str | None:
        text = str(value or "").strip().lower()
        return text if text in SORT_ORDERS else None

    @property
    def has_filters(self) -> bool:
        return bool(self.search or self.category or resolve_broad_category(self.broad_category))


class MarketListing(BaseModel):
    items: list[Prediction] = Field(default_factory=list)
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    total_items: int = 0
    total_pages: int = 1
    categories: list[str] = Field(default_factory=list)
    trending_categories: list[str] = Field(default_factory=list)
    broad_categories: list[str] = Field(default_factory=list)


def fnv1a_32(text: str) -> int:
    """32-bit FNV-1a over UTF-8 bytes."""
    h = _FNV_OFFSET
    for byte in text.encode("utf-8"):
        h ^= byte
        h = (h * _FNV_PRIME) & 0xFFFFFFFF
    return h


def daily_seed(now: datetime) -> str:
    return now.astimezone(timezone.utc).date().isoformat()


def daily_shuffle(markets: list[Prediction], seed: str) -> list[Prediction]:
    """Deterministic per-seed order: same date and same market set give the same order."""
    return sorted(markets, key=lambda m: (fnv1a_32(f"{seed}:{m.id}"), m.id))


def _timestamp(value: datetime) -> float:
    return value.timestamp()


def sort_markets(markets: list[Prediction], sort: str) -> list[Prediction]:
    if sort == "newest":
        return sorted(markets, key=lambda m: -_timestamp(m.created_at or m.closes_at))
    if sort == "volume":
        return sorted(markets, key=lambda m: (-(m.volume or 0.0), _timestamp(m.closes_at)))
    if sort == "liquidity":
        return sorted(markets, key=lambda m: (-(m.liquidity or 0.0), _timestamp(m.closes_at)))
    return sorted(markets, key=lambda m: _timestamp(m.closes_at))


def _matches_search(market: Prediction, needle: str) -> bool:
    if needle in market.question.casefold() or needle in market.category.casefold():
        return True
    return any(needle in outcome.title.casefold() for outcome in market.outcomes)


def _matches_category(market: Prediction, wanted: str) -> bool:
    if market.category.casefold() == wanted:
        return True
    return any(tag.casefold() == wanted for tag in market.tags)


def distinct_categories(markets: list[Prediction]) -> list[str]:
    return sorted(dedupe_labels([m.category for m in markets]), key=str.casefold)


def trending_categories(markets: list[Prediction], limit: int = TRENDING_CATEGORY_COUNT) -> list[str]:
    """Categories ranked by summed weight, weight = max(1, volume or liquidity)."""
    weights: dict[str, float] = defaultdict(float)
    labels: dict[str, str] = {}
    for market in markets:
        key = market.category.casefold()
        labels.setdefault(key, market.category)
        weights[key] += max(1.0, market.volume or market.liquidity or 0.0)
    ranked = sorted(weights, key=lambda key: (-weights[key], key))
    return [labels[key] for key in ranked[:limit]]


def build_listing(markets: list[Prediction], params: ListingParams, now: datetime | None = None) -> MarketListing:
    """Apply search, category and broad-category filters, sort, and clamp pagination."""
    now = now or datetime.now(timezone.utc)
    filtered = markets
    if params.search:
        needle = params.search.casefold()
        filtered = [m for m in filtered if _matches_search(m, needle)]
    if params.category:
        wanted = params.category.casefold()
        filtered = [m for m in filtered if _matches_category(m, wanted)]
    broad = resolve_broad_category(params.broad_category)
    if broad is not None:
        threshold = trending_threshold(markets)
        filtered = [m for m in filtered if matches_broad(m, broad, threshold, now)]

    if params.sort is None and not params.has_filters:
        ordered = daily_shuffle(filtered, daily_seed(now))
    else:
        ordered = sort_markets(filtered, params.sort or "closing-soon")

    total_items = len(ordered)
    total_pages = max(1, math.ceil(total_items / params.page_size))
    page = min(params.page, total_pages)
    start = (page - 1) * params.page_size
    return MarketListing(
        items=ordered[start : start + params.page_size],
        page=page,
        page_size=params.page_size,
        total_items=total_items,
        total_pages=total_pages,
        categories=distinct_categories(markets),
        trending_categories=trending_categories(markets),
        broad_categories=broad_category_labels(),
    )
