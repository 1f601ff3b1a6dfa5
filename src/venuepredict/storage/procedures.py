"""Stored procedures: named, transactional multi-row operations callable by name.

A procedure is callable only once it has been installed into the database
(`installed_procedures`). Calling one that is not installed raises
ProcedureNotFoundError, which callers use as a capability probe.
"""

from __future__ import annotations

import contextlib
from collections import defaultdict
from typing import TYPE_CHECKING, Any, Callable

import duckdb
import structlog

from venuepredict.errors import ProcedureNotFoundError
from venuepredict.settlement.rules import notification_for, resolved_status
from venuepredict.storage.db import now_ms
from venuepredict.storage.notifications import insert_notifications
from venuepredict.storage.picks import list_pending_for_market

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

SETTLE_PREDICTION_MARKET = "settle_prediction_market"


def settle_prediction_market(
    conn: DuckDBPyConnection,
    p_prediction_id: str,
    p_winning_outcome_id: str | None,
    p_settle_as_canceled: bool,
) -> dict[str, int]:
    """Resolve every pending pick of one market and credit winners in one transaction.

    Notifications are written after the commit. A failure there is logged and
    does not undo the settlement.
    """
    resolved_at = now_ms()
    conn.begin()
    try:
        pending = list_pending_for_market(conn, p_prediction_id)
        counts = {"affected_picks": len(pending), "winners": 0, "losers": 0, "canceled": 0}
        deltas: dict[str, int] = defaultdict(int)
        notifications = []
        for pick in pending:
            status = resolved_status(pick, p_winning_outcome_id, p_settle_as_canceled)
            if status == "won":
                counts["winners"] += 1
                deltas[pick.user_id] += pick.points
            elif status == "canceled":
                counts["canceled"] += 1
            else:
                counts["losers"] += 1
            conn.execute(
                """
                UPDATE user_predictions SET status = ?, resolved_at = ?
                WHERE id = ? AND status = 'pending'
                """,
                [status, resolved_at, pick.id],
            )
            notifications.append(notification_for(pick, status))
        if pending:
            conn.execute("DELETE FROM pending_picks WHERE prediction_id = ?", [p_prediction_id])
        for user_id, delta in deltas.items():
            conn.execute("UPDATE users SET points = points + ? WHERE id = ?", [delta, user_id])
        conn.commit()
    except Exception:
        with contextlib.suppress(duckdb.TransactionException):
            conn.rollback()
        raise
    try:
        insert_notifications(conn, notifications)
    except Exception as e:
        log.warning(
            "settlement_notifications_failed",
            prediction_id=p_prediction_id,
            count=len(notifications),
            error=str(e),
        )
    return counts


PROCEDURES: dict[str, Callable[..., Any]] = {
    SETTLE_PREDICTION_MARKET: settle_prediction_market,
}


def install_procedures(conn: DuckDBPyConnection, names: list[str] | None = None) -> None:
    """Deploy procedures into this database (idempotent)."""
    for name in names or list(PROCEDURES):
        if name not in PROCEDURES:
            raise ValueError(f"Unknown procedure: {name}")
        conn.execute(
            "INSERT INTO installed_procedures (name, installed_at) VALUES (?, ?) ON CONFLICT (name) DO NOTHING",
            [name, now_ms()],
        )


def uninstall_procedure(conn: DuckDBPyConnection, name: str) -> None:
    conn.execute("DELETE FROM installed_procedures WHERE name = ?", [name])


def is_installed(conn: DuckDBPyConnection, name: str) -> bool:
    try:
        row = conn.execute("SELECT 1 FROM installed_procedures WHERE name = ?", [name]).fetchone()
    except duckdb.CatalogException:
        return False
    return row is not None


def call_procedure(conn: DuckDBPyConnection, name: str, **params: Any) -> Any:
    """Run an installed procedure by name."""
    if name not in PROCEDURES:
        raise ProcedureNotFoundError(name, signature="42883")
    if not is_installed(conn, name):
        raise ProcedureNotFoundError(name, signature="PGRST202")
    log.debug("procedure_call", procedure=name)
    return PROCEDURES[name](conn, **params)
