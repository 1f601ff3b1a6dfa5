"""Pick submission: validation, quota, uniqueness, market lookup, points."""

from __future__ import annotations

import asyncio
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

import structlog

from venuepredict.catalog.cache import MarketCatalog
from venuepredict.errors import DuplicatePickError, InvalidInputError, NotFoundError, RateLimitError
from venuepredict.models import PREDICTION_STATUSES, UserPrediction
from venuepredict.quota.tracker import DEFAULT_LIMIT, DEFAULT_WINDOW_SEC, get_quota
from venuepredict.storage import picks as pick_store

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

MAX_HISTORY_PAGE = 100


def calculate_points(probability: float) -> int:
    """Points awarded on a win: long shots pay more. 62.5 -> 38, 99.9 -> 0."""
    raw = Decimal(str(100 - probability)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return max(0, int(raw))


def retry_minutes(window_seconds_remaining: int) -> int:
    return max(1, math.ceil(window_seconds_remaining / 60))


def _ensure_can_pick(
    conn: DuckDBPyConnection, user_id: str, prediction_id: str, limit: int, window_sec: int
) -> None:
    quota = get_quota(conn, user_id, "predictions", limit=limit, window_sec=window_sec)
    if not quota.is_admin_bypass and quota.remaining <= 0:
        minutes = retry_minutes(quota.window_seconds_remaining)
        raise RateLimitError(
            f"Hourly pick limit reached ({quota.limit}). "
            f"Try again in about {minutes} minute(s).",
            retry_after_seconds=quota.window_seconds_remaining,
        )
    if pick_store.has_pending_pick(conn, user_id, prediction_id):
        raise DuplicatePickError("You already have a pending pick for this market.")


async def submit_pick(
    conn: DuckDBPyConnection,
    catalog: MarketCatalog,
    user_id: str,
    prediction_id: str,
    outcome_id: str,
    *,
    limit: int = DEFAULT_LIMIT,
    window_sec: int = DEFAULT_WINDOW_SEC,
) -> UserPrediction:
    user_id = (user_id or "").strip()
    prediction_id = (prediction_id or "").strip()
    outcome_id = (outcome_id or "").strip()
    if not user_id or not prediction_id or not outcome_id:
        raise InvalidInputError("userId, predictionId and outcomeId are required.")

    # DuckDB calls are blocking, keep them off the event loop
    await asyncio.to_thread(_ensure_can_pick, conn, user_id, prediction_id, limit, window_sec)

    market = await catalog.get_market(prediction_id)
    outcome = market.find_outcome(outcome_id) if market else None
    if market is None or outcome is None:
        raise NotFoundError("Prediction market or outcome not found.")

    pick = await asyncio.to_thread(
        pick_store.insert_pending_pick,
        conn,
        user_id=user_id,
        prediction_id=prediction_id,
        outcome_id=outcome.id,
        outcome_title=outcome.title,
        points=calculate_points(outcome.probability),
    )
    log.info(
        "pick_submitted",
        user_id=user_id,
        prediction_id=prediction_id,
        outcome_id=outcome.id,
        probability=outcome.probability,
        points=pick.points,
    )
    return pick


def list_user_picks(
    conn: DuckDBPyConnection,
    user_id: str,
    status: str = "all",
    limit: int = 25,
    offset: int = 0,
) -> tuple[list[UserPrediction], int]:
    """A user's pick history, newest first. Unknown status filters are rejected."""
    user_id = (user_id or "").strip()
    if not user_id:
        return [], 0
    status = (status or "all").strip().lower()
    if status != "all" and status not in PREDICTION_STATUSES:
        raise InvalidInputError(f"Unknown status filter: {status}")
    return pick_store.list_user_picks(
        conn,
        user_id,
        status=None if status == "all" else status,
        limit=max(1, min(MAX_HISTORY_PAGE, limit)),
        offset=max(0, offset),
    )
