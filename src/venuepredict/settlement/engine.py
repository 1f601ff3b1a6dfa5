"""Settlement engine: resolve every pending pick of one market.

Two strategies share the same per-pick rules (settlement.rules):
AtomicSettlement runs the stored procedure in a single transaction;
LegacySettlement replays the same steps as separate statements. The engine
probes the atomic path once and caches the outcome.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import defaultdict
from typing import TYPE_CHECKING

import structlog

from venuepredict.errors import InvalidInputError, ProcedureNotFoundError
from venuepredict.models import PendingMarketSummary, PendingOutcomeSummary, SettlementResult
from venuepredict.settlement.rules import notification_for, resolved_status
from venuepredict.storage.db import now_ms
from venuepredict.storage.notifications import insert_notifications
from venuepredict.storage.picks import list_pending_for_market, list_pending_picks, resolve_pick
from venuepredict.storage.procedures import SETTLE_PREDICTION_MARKET, call_procedure
from venuepredict.storage.users import get_points, set_points

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)


class SettlementStrategy(ABC):
    """One way of closing out a market's pending picks."""

    name: str = ""

    @abstractmethod
    def settle(
        self,
        conn: DuckDBPyConnection,
        prediction_id: str,
        winning_outcome_id: str | None,
        settle_as_canceled: bool,
    ) -> SettlementResult:
        ...


class AtomicSettlement(SettlementStrategy):
    """Calls the settle_prediction_market procedure: picks and balances in one transaction."""

    name = "atomic"

    def settle(self, conn, prediction_id, winning_outcome_id, settle_as_canceled):
        counts = call_procedure(
            conn,
            SETTLE_PREDICTION_MARKET,
            p_prediction_id=prediction_id,
            p_winning_outcome_id=winning_outcome_id,
            p_settle_as_canceled=settle_as_canceled,
        )
        return SettlementResult(**counts)


class LegacySettlement(SettlementStrategy):
    """Statement-by-statement fallback for databases without the procedure.

    Balances are updated read-modify-write, so a concurrent writer to the same
    balance (e.g. trivia scoring) can be lost. Use for low-concurrency admin runs.
    """

    name = "legacy"

    def settle(self, conn, prediction_id, winning_outcome_id, settle_as_canceled):
        pending = list_pending_for_market(conn, prediction_id)
        result = SettlementResult(affected_picks=len(pending))
        if not pending:
            return result

        resolved_at = now_ms()
        deltas: dict[str, int] = defaultdict(int)
        notifications = []
        for pick in pending:
            status = resolved_status(pick, winning_outcome_id, settle_as_canceled)
            resolve_pick(conn, pick.id, status, resolved_at)
            if status == "won":
                result.winners += 1
                deltas[pick.user_id] += pick.points
            elif status == "canceled":
                result.canceled += 1
            else:
                result.losers += 1
            notifications.append(notification_for(pick, status))

        for user_id, delta in deltas.items():
            current = get_points(conn, user_id)
            if current is None:
                log.warning("settlement_user_missing", user_id=user_id, prediction_id=prediction_id)
                continue
            set_points(conn, user_id, current + delta)

        try:
            insert_notifications(conn, notifications)
        except Exception as e:
            log.warning(
                "settlement_notifications_failed",
                prediction_id=prediction_id,
                count=len(notifications),
                error=str(e),
            )
        return result


class SettlementEngine:
    """Validates settle requests and picks a strategy by probing the atomic path once."""

    def __init__(
        self,
        atomic: SettlementStrategy | None = None,
        legacy: SettlementStrategy | None = None,
    ) -> None:
        self.atomic = atomic or AtomicSettlement()
        self.legacy = legacy or LegacySettlement()
        self._strategy: SettlementStrategy | None = None

    @property
    def strategy_name(self) -> str | None:
        """Strategy chosen by the probe, or None before the first settlement."""
        return self._strategy.name if self._strategy else None

    def reset(self) -> None:
        self._strategy = None

    def settle(
        self,
        conn: DuckDBPyConnection,
        prediction_id: str,
        winning_outcome_id: str | None = None,
        settle_as_canceled: bool = False,
    ) -> SettlementResult:
        prediction_id = (prediction_id or "").strip()
        winning_outcome_id = (winning_outcome_id or "").strip() or None
        if not prediction_id:
            raise InvalidInputError("predictionId is required.")
        if settle_as_canceled and winning_outcome_id:
            raise InvalidInputError("Provide either winningOutcomeId or settleAsCanceled, not both.")
        if not settle_as_canceled and not winning_outcome_id:
            raise InvalidInputError("winningOutcomeId is required unless settling as canceled.")

        if self._strategy is None:
            try:
                result = self.atomic.settle(conn, prediction_id, winning_outcome_id, settle_as_canceled)
            except ProcedureNotFoundError as e:
                log.warning("settlement_procedure_missing", procedure=e.name, code=e.signature)
                self._strategy = self.legacy
            else:
                self._strategy = self.atomic
                self._log_result(prediction_id, result)
                return result

        result = self._strategy.settle(conn, prediction_id, winning_outcome_id, settle_as_canceled)
        self._log_result(prediction_id, result)
        return result

    def _log_result(self, prediction_id: str, result: SettlementResult) -> None:
        log.info(
            "market_settled",
            prediction_id=prediction_id,
            strategy=self.strategy_name,
            affected_picks=result.affected_picks,
            winners=result.winners,
            losers=result.losers,
            canceled=result.canceled,
        )


def list_pending_summaries(conn: DuckDBPyConnection, limit: int = 5000) -> list[PendingMarketSummary]:
    """Pending picks grouped per market and outcome, most recent activity first."""
    markets: dict[str, dict] = {}
    for pick in list_pending_picks(conn, limit=limit):
        entry = markets.setdefault(
            pick.prediction_id,
            {"total": 0, "latest": 0, "outcomes": {}},
        )
        entry["total"] += 1
        entry["latest"] = max(entry["latest"], pick.created_at)
        outcome = entry["outcomes"].setdefault(pick.outcome_id, [pick.outcome_title, 0])
        outcome[1] += 1

    summaries = [
        PendingMarketSummary(
            prediction_id=prediction_id,
            total_picks=entry["total"],
            latest_pick_at=entry["latest"],
            outcomes=sorted(
                (
                    PendingOutcomeSummary(outcome_id=oid, outcome_title=title, pick_count=count)
                    for oid, (title, count) in entry["outcomes"].items()
                ),
                key=lambda o: (-o.pick_count, o.outcome_title),
            ),
        )
        for prediction_id, entry in markets.items()
    ]
    summaries.sort(key=lambda s: (-s.latest_pick_at, s.prediction_id))
    return summaries
