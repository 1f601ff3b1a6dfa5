"""User profiles, point balances and the per-venue leaderboard."""

from __future__ import annotations

from typing import TYPE_CHECKING

from venuepredict.models import LeaderboardEntry, User
from venuepredict.storage.db import new_id, now_ms

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

_USER_COLUMNS = "id, username, venue_id, points, is_admin, created_at"


def _row_to_user(row: tuple) -> User:
    return User(
        id=row[0],
        username=row[1],
        venue_id=row[2],
        points=row[3],
        is_admin=bool(row[4]),
        created_at=row[5],
    )


def create_user(
    conn: DuckDBPyConnection,
    username: str,
    venue_id: str,
    *,
    is_admin: bool = False,
    auth_token: str | None = None,
    points: int = 0,
    user_id: str | None = None,
) -> User:
    user_id = user_id or new_id()
    conn.execute(
        """
        INSERT INTO users (id, username, venue_id, points, is_admin, auth_token, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        [user_id, username, venue_id, points, is_admin, auth_token, now_ms()],
    )
    return get_user(conn, user_id)  # type: ignore[return-value]


def get_user(conn: DuckDBPyConnection, user_id: str) -> User | None:
    row = conn.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", [user_id]).fetchone()
    return _row_to_user(row) if row else None


def get_user_by_token(conn: DuckDBPyConnection, token: str) -> User | None:
    if not token:
        return None
    row = conn.execute(
        f"SELECT {_USER_COLUMNS} FROM users WHERE auth_token = ? LIMIT 1", [token]
    ).fetchone()
    return _row_to_user(row) if row else None


def get_points(conn: DuckDBPyConnection, user_id: str) -> int | None:
    row = conn.execute("SELECT points FROM users WHERE id = ?", [user_id]).fetchone()
    return row[0] if row else None


def set_points(conn: DuckDBPyConnection, user_id: str, points: int) -> None:
    conn.execute("UPDATE users SET points = ? WHERE id = ?", [points, user_id])


def increment_points(conn: DuckDBPyConnection, user_id: str, delta: int) -> None:
    """Single-statement increment; safe against concurrent writers."""
    conn.execute("UPDATE users SET points = points + ? WHERE id = ?", [delta, user_id])


def leaderboard_for_venue(conn: DuckDBPyConnection, venue_id: str, limit: int = 50) -> list[LeaderboardEntry]:
    """Top users of one venue by points, username as tie-break. Ranks start at 1."""
    venue_id = (venue_id or "").strip()
    if not venue_id:
        return []
    rows = conn.execute(
        """
        SELECT id, username, venue_id, points FROM users
        WHERE venue_id = ?
        ORDER BY points DESC, username ASC
        LIMIT ?
        """,
        [venue_id, max(1, min(limit, 500))],
    ).fetchall()
    return [
        LeaderboardEntry(user_id=r[0], username=r[1], venue_id=r[2], points=r[3], rank=index + 1)
        for index, r in enumerate(rows)
    ]
