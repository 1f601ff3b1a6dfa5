"""Notification feed rows (written by settlement, read by players)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from venuepredict.models import Notification
from venuepredict.storage.db import new_id, now_ms

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

_COLUMNS = 'id, user_id, message, type, "read", created_at'


def _row_to_notification(row: tuple) -> Notification:
    return Notification(
        id=row[0], user_id=row[1], message=row[2], type=row[3], read=bool(row[4]), created_at=row[5]
    )


def insert_notifications(conn: DuckDBPyConnection, rows: list[tuple[str, str, str]]) -> int:
    """Bulk insert. Each row: (user_id, message, type)."""
    if not rows:
        return 0
    created_at = now_ms()
    conn.executemany(
        f"INSERT INTO notifications ({_COLUMNS}) VALUES (?, ?, ?, ?, FALSE, ?)",
        [[new_id(), user_id, message, kind, created_at] for user_id, message, kind in rows],
    )
    return len(rows)


def list_notifications(
    conn: DuckDBPyConnection,
    user_id: str,
    limit: int = 50,
    offset: int = 0,
    unread_only: bool = False,
) -> tuple[list[Notification], int, int]:
    """Return (page newest first, total matching, unread count)."""
    if not user_id:
        return [], 0, 0
    limit = max(1, min(100, limit))
    offset = max(0, offset)
    where = "user_id = ?" + (' AND NOT "read"' if unread_only else "")
    total = conn.execute(f"SELECT COUNT(*) FROM notifications WHERE {where}", [user_id]).fetchone()[0]
    rows = conn.execute(
        f"""
        SELECT {_COLUMNS} FROM notifications
        WHERE {where}
        ORDER BY created_at DESC, id
        LIMIT ? OFFSET ?
        """,
        [user_id, limit, offset],
    ).fetchall()
    unread = conn.execute(
        'SELECT COUNT(*) FROM notifications WHERE user_id = ? AND NOT "read"', [user_id]
    ).fetchone()[0]
    return [_row_to_notification(r) for r in rows], total, unread


def mark_read(conn: DuckDBPyConnection, user_id: str, notification_id: str | None = None) -> None:
    if not user_id:
        return
    if notification_id:
        conn.execute(
            'UPDATE notifications SET "read" = TRUE WHERE user_id = ? AND id = ?',
            [user_id, notification_id],
        )
        return
    conn.execute('UPDATE notifications SET "read" = TRUE WHERE user_id = ? AND NOT "read"', [user_id])
