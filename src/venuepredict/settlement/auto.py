"""Scheduled auto-settlement of closed markets that still have pending picks."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from venuepredict.ingestion.polymarket.gamma import GammaClient
from venuepredict.models import AutoSettleResult, Prediction, SettledMarket
from venuepredict.settlement.engine import SettlementEngine
from venuepredict.storage.picks import list_pending_prediction_ids

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

DEFAULT_WIN_THRESHOLD = 99.5


def infer_winner(market: Prediction, threshold: float = DEFAULT_WIN_THRESHOLD) -> str | None:
    """Outcome id whose probability reached the threshold; None means settle as canceled.

    Heuristic: a market that closed without a dominant outcome is canceled even if
    the source later resolves it.
    """
    best = max(market.outcomes, key=lambda o: o.probability, default=None)
    if best is not None and best.probability >= threshold:
        return best.id
    return None


async def _closed_markets(client: GammaClient, pending_ids: set[str]) -> dict[str, Prediction]:
    found: dict[str, Prediction] = {}
    for market in await client.fetch_markets(active=False, closed=True):
        if market.id in pending_ids and market.is_closed:
            found[market.id] = market
    for prediction_id in sorted(pending_ids - set(found)):
        market = await client.fetch_market(prediction_id)
        if market is not None and market.is_closed:
            found[prediction_id] = market
    return found


async def auto_settle(
    conn: DuckDBPyConnection,
    client: GammaClient,
    engine: SettlementEngine,
    threshold: float = DEFAULT_WIN_THRESHOLD,
) -> AutoSettleResult:
    """Settle every closed market that has pending picks. Open markets are left alone."""
    pending_ids = set(await asyncio.to_thread(list_pending_prediction_ids, conn))
    result = AutoSettleResult()
    if not pending_ids:
        log.info("auto_settle_idle")
        return result

    closed = await _closed_markets(client, pending_ids)
    for prediction_id in sorted(closed):
        market = closed[prediction_id]
        winner = infer_winner(market, threshold)
        settled = await asyncio.to_thread(
            engine.settle,
            conn,
            prediction_id,
            winning_outcome_id=winner,
            settle_as_canceled=winner is None,
        )
        result.markets.append(
            SettledMarket(
                prediction_id=prediction_id,
                winning_outcome_id=winner,
                settle_as_canceled=winner is None,
                result=settled,
            )
        )
        result.settled_markets += 1
        result.affected_picks += settled.affected_picks

    log.info(
        "auto_settle_done",
        pending_markets=len(pending_ids),
        closed_markets=len(closed),
        settled_markets=result.settled_markets,
        affected_picks=result.affected_picks,
    )
    return result
