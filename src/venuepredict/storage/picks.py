"""user_predictions persistence and the pending-pick uniqueness guard."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import duckdb

from venuepredict.errors import DuplicatePickError
from venuepredict.models import UserPrediction
from venuepredict.storage.db import new_id, now_ms

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

PICK_COLUMNS = "id, user_id, prediction_id, outcome_id, outcome_title, points, status, created_at, resolved_at"


def row_to_pick(row: tuple) -> UserPrediction:
    return UserPrediction(
        id=row[0],
        user_id=row[1],
        prediction_id=row[2],
        outcome_id=row[3],
        outcome_title=row[4],
        points=row[5],
        status=row[6],
        created_at=row[7],
        resolved_at=row[8],
    )


def insert_pending_pick(
    conn: DuckDBPyConnection,
    user_id: str,
    prediction_id: str,
    outcome_id: str,
    outcome_title: str,
    points: int,
    created_at: int | None = None,
) -> UserPrediction:
    """Insert the pick and its guard row in one transaction.

    The guard's primary key (user_id, prediction_id) rejects a second pending pick
    even when two submissions both passed the pre-insert check.
    """
    pick_id = new_id()
    created_at = created_at if created_at is not None else now_ms()
    conn.begin()
    try:
        conn.execute(
            "INSERT INTO pending_picks (user_id, prediction_id, pick_id) VALUES (?, ?, ?)",
            [user_id, prediction_id, pick_id],
        )
        conn.execute(
            f"""
            INSERT INTO user_predictions ({PICK_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, 'pending', ?, NULL)
            """,
            [pick_id, user_id, prediction_id, outcome_id, outcome_title, points, created_at],
        )
        conn.commit()
    except (duckdb.ConstraintException, duckdb.TransactionException) as e:
        # a concurrent insert of the same guard key surfaces as a commit conflict
        with contextlib.suppress(duckdb.TransactionException):
            conn.rollback()
        raise DuplicatePickError("You already have a pending pick for this market.") from e
    except Exception:
        with contextlib.suppress(duckdb.TransactionException):
            conn.rollback()
        raise
    return UserPrediction(
        id=pick_id,
        user_id=user_id,
        prediction_id=prediction_id,
        outcome_id=outcome_id,
        outcome_title=outcome_title,
        points=points,
        status="pending",
        created_at=created_at,
    )


def has_pending_pick(conn: DuckDBPyConnection, user_id: str, prediction_id: str) -> bool:
    row = conn.execute(
        """
        SELECT 1 FROM user_predictions
        WHERE user_id = ? AND prediction_id = ? AND status = 'pending'
        LIMIT 1
        """,
        [user_id, prediction_id],
    ).fetchone()
    return row is not None


def get_pick(conn: DuckDBPyConnection, pick_id: str) -> UserPrediction | None:
    row = conn.execute(f"SELECT {PICK_COLUMNS} FROM user_predictions WHERE id = ?", [pick_id]).fetchone()
    return row_to_pick(row) if row else None


def list_pending_for_market(conn: DuckDBPyConnection, prediction_id: str) -> list[UserPrediction]:
    rows = conn.execute(
        f"""
        SELECT {PICK_COLUMNS} FROM user_predictions
        WHERE prediction_id = ? AND status = 'pending'
        ORDER BY created_at, id
        """,
        [prediction_id],
    ).fetchall()
    return [row_to_pick(r) for r in rows]


def list_pending_picks(conn: DuckDBPyConnection, limit: int = 5000) -> list[UserPrediction]:
    rows = conn.execute(
        f"""
        SELECT {PICK_COLUMNS} FROM user_predictions
        WHERE status = 'pending'
        ORDER BY created_at DESC
        LIMIT ?
        """,
        [limit],
    ).fetchall()
    return [row_to_pick(r) for r in rows]


def list_pending_prediction_ids(conn: DuckDBPyConnection) -> list[str]:
    rows = conn.execute(
        "SELECT DISTINCT prediction_id FROM user_predictions WHERE status = 'pending' ORDER BY prediction_id"
    ).fetchall()
    return [r[0] for r in rows]


def resolve_pick(conn: DuckDBPyConnection, pick_id: str, status: str, resolved_at: int) -> None:
    """Move one pending pick to a final status and release its guard row."""
    conn.execute(
        "UPDATE user_predictions SET status = ?, resolved_at = ? WHERE id = ? AND status = 'pending'",
        [status, resolved_at, pick_id],
    )
    conn.execute("DELETE FROM pending_picks WHERE pick_id = ?", [pick_id])


def recent_pick_times(conn: DuckDBPyConnection, user_id: str, since_ms: int, limit: int) -> list[int]:
    """created_at of the user's picks at or after since_ms, oldest first, at most `limit` rows."""
    rows = conn.execute(
        """
        SELECT created_at FROM user_predictions
        WHERE user_id = ? AND created_at >= ?
        ORDER BY created_at ASC
        LIMIT ?
        """,
        [user_id, since_ms, limit],
    ).fetchall()
    return [r[0] for r in rows]


def list_user_picks(
    conn: DuckDBPyConnection,
    user_id: str,
    status: str | None = None,
    limit: int = 25,
    offset: int = 0,
) -> tuple[list[UserPrediction], int]:
    """Newest-first page of a user's picks plus the total matching count."""
    where = "user_id = ?"
    params: list = [user_id]
    if status:
        where += " AND status = ?"
        params.append(status)
    total = conn.execute(f"SELECT COUNT(*) FROM user_predictions WHERE {where}", params).fetchone()[0]
    rows = conn.execute(
        f"""
        SELECT {PICK_COLUMNS} FROM user_predictions
        WHERE {where}
        ORDER BY created_at DESC, id
        LIMIT ? OFFSET ?
        """,
        params + [limit, offset],
    ).fetchall()
    return [row_to_pick(r) for r in rows], total
