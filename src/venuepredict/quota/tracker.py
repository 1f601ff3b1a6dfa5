"""Sliding-window quota per user for trivia answers and prediction picks.

Nothing is counted ahead of time: every read recomputes usage from the event
log (user_predictions.created_at, trivia_answers.answered_at), so inserting an
event is all it takes to advance the window.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from venuepredict.models import Quota, QuotaKind
from venuepredict.storage.db import now_ms as _now_ms
from venuepredict.storage.picks import recent_pick_times
from venuepredict.storage.trivia import recent_answer_times
from venuepredict.storage.users import get_user

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

DEFAULT_LIMIT = 10
DEFAULT_WINDOW_SEC = 60 * 60

_EVENT_TIMES = {
    "predictions": recent_pick_times,
    "trivia": recent_answer_times,
}


def empty_quota(kind: QuotaKind, limit: int = DEFAULT_LIMIT) -> Quota:
    return Quota(kind=kind, limit=limit, used=0, remaining=limit, window_seconds_remaining=0, is_admin_bypass=False)


def get_quota(
    conn: DuckDBPyConnection,
    user_id: str,
    kind: QuotaKind,
    *,
    limit: int = DEFAULT_LIMIT,
    window_sec: int = DEFAULT_WINDOW_SEC,
    now_ms: int | None = None,
) -> Quota:
    """Current quota. Unknown users get the full default quota; admins always bypass."""
    if kind not in _EVENT_TIMES:
        raise ValueError(f"Unknown quota kind: {kind}")
    user_id = (user_id or "").strip()
    if not user_id:
        return empty_quota(kind, limit)
    user = get_user(conn, user_id)
    if user is None:
        return empty_quota(kind, limit)
    if user.is_admin:
        return empty_quota(kind, limit).model_copy(update={"is_admin_bypass": True})

    now = now_ms if now_ms is not None else _now_ms()
    window_ms = window_sec * 1000
    times = _EVENT_TIMES[kind](conn, user_id, now - window_ms, limit + 1)
    used = len(times)
    remaining = max(0, limit - used)
    window_seconds_remaining = 0
    if remaining == 0 and times:
        reset_at = times[0] + window_ms
        window_seconds_remaining = max(0, math.ceil((reset_at - now) / 1000))
    return Quota(
        kind=kind,
        limit=limit,
        used=used,
        remaining=remaining,
        window_seconds_remaining=window_seconds_remaining,
        is_admin_bypass=False,
    )
