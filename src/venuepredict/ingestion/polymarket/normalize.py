"""Gamma market record -> canonical Prediction. Malformed records normalize to None."""

from __future__ import annotations

import json
import math
import re
from datetime import datetime, timezone
from typing import Any

from venuepredict.models import Prediction, PredictionOutcome

UNCATEGORIZED = "Uncategorized"

STOP_WORDS = frozenset({"and", "or", "of", "the", "in", "on", "to", "for", "vs", "v"})
ACRONYMS = {
    word.lower(): word
    for word in ("NBA", "NFL", "MLB", "NHL", "UFC", "WWE", "NCAA", "F1", "USA", "US", "UK", "EU")
}

_SEPARATORS = re.compile(r"[_\-]+")


def _float(value: Any) -> float | None:
    """Finite float from a number or numeric string; None otherwise. Booleans are not numbers."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def coerce_percent(value: Any) -> float | None:
    """Price to percent. [0, 1] is a fraction, (1, 100] is already a percent. One decimal."""
    number = _float(value)
    if number is None:
        return None
    if 0 <= number <= 1:
        return round(number * 100, 1)
    if 0 <= number <= 100:
        return round(number, 1)
    return None


def parse_array_field(value: Any) -> list[Any]:
    """List field that may arrive as a real list or a JSON-encoded string."""
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return []
        return parsed if isinstance(parsed, list) else []
    return []


def parse_datetime(value: Any) -> datetime | None:
    """ISO-8601 timestamp (with or without Z) -> aware UTC datetime. Naive means UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value or "").strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def normalize_label(value: Any) -> str:
    """'nba_finals' -> 'NBA Finals'; 'war-in-the-middle-east' -> 'War in the Middle East'."""
    words = _SEPARATORS.sub(" ", str(value or "")).split()
    out = []
    for index, word in enumerate(words):
        lower = word.lower()
        if lower in ACRONYMS:
            out.append(ACRONYMS[lower])
        elif index > 0 and lower in STOP_WORDS:
            out.append(lower)
        else:
            out.append(lower[:1].upper() + lower[1:])
    return " ".join(out)


def dedupe_labels(labels: list[str]) -> list[str]:
    """Case-insensitive dedupe keeping the first-seen casing and order."""
    seen: set[str] = set()
    out = []
    for label in labels:
        key = label.casefold()
        if not label or key in seen:
            continue
        seen.add(key)
        out.append(label)
    return out


def _label_from(entry: Any) -> str:
    if isinstance(entry, dict):
        entry = entry.get("label") or entry.get("slug") or entry.get("name")
    if entry is None or isinstance(entry, (dict, list)):
        return ""
    return normalize_label(entry)


def parse_tags(value: Any) -> list[str]:
    """Tags as strings or {label|slug|name} objects -> normalized, deduplicated labels."""
    return dedupe_labels([_label_from(entry) for entry in parse_array_field(value)])


def _parse_outcomes(market_id: str, outcomes_raw: Any, prices_raw: Any) -> list[PredictionOutcome]:
    """Align outcome names with prices. Pairs without a title or a valid price are dropped."""
    names = parse_array_field(outcomes_raw)
    prices = parse_array_field(prices_raw)
    outcomes = []
    for index in range(min(len(names), len(prices))):
        title = str(names[index] if names[index] is not None else "").strip()
        probability = coerce_percent(prices[index])
        if not title or probability is None:
            continue
        outcomes.append(
            PredictionOutcome(id=f"{market_id}-{index}", title=title, probability=probability)
        )
    return outcomes


def normalize_market(raw: dict[str, Any], source: str = "polymarket") -> Prediction | None:
    """Convert a Gamma API market object to a canonical Prediction, or None when unusable."""
    if not isinstance(raw, dict):
        return None
    market_id = str(raw.get("id") if raw.get("id") is not None else "").strip()
    question = str(raw.get("question") or raw.get("title") or "").strip()
    closes_at = parse_datetime(raw.get("endDate") or raw.get("end_date_iso"))
    if not market_id or not question or closes_at is None:
        return None

    outcomes = _parse_outcomes(market_id, raw.get("outcomes"), raw.get("outcomePrices"))
    if len(outcomes) < 2:
        return None

    tags = parse_tags(raw.get("tags"))
    category = _label_from(raw.get("category"))
    volume = _float(raw.get("volumeNum"))
    if volume is None:
        volume = _float(raw.get("volume"))
    liquidity = _float(raw.get("liquidityNum"))
    if liquidity is None:
        liquidity = _float(raw.get("liquidity"))

    return Prediction(
        id=market_id,
        question=question,
        source=source,
        closes_at=closes_at,
        outcomes=outcomes,
        category=category or (tags[0] if tags else UNCATEGORIZED),
        tags=tags,
        volume=volume,
        liquidity=liquidity,
        created_at=parse_datetime(raw.get("createdAt") or raw.get("created_at")),
        is_closed=bool(raw.get("closed")),
    )
