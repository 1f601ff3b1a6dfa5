"""Settle subcommand: manual, automatic and pending overview."""

from __future__ import annotations

import asyncio

import typer

from venuepredict.errors import GameError
from venuepredict.ingestion.polymarket.gamma import GammaClient
from venuepredict.settlement.auto import auto_settle
from venuepredict.settlement.engine import SettlementEngine, list_pending_summaries
from venuepredict.storage.db import get_connection, init_schema

app = typer.Typer(help="Settle prediction markets")


def _open(settings):
    conn = get_connection(settings.db_path)
    init_schema(conn, install_procedures=settings.install_procedures)
    return conn


@app.command("market")
def settle_market(
    ctx: typer.Context,
    prediction_id: str = typer.Argument(..., help="Market id"),
    winner: str | None = typer.Option(None, "--winner", "-w", help="Winning outcome id"),
    cancel: bool = typer.Option(False, "--cancel", help="Settle every pending pick as canceled"),
) -> None:
    """Resolve all pending picks for one market."""
    settings = ctx.obj["settings"]
    conn = _open(settings)
    engine = SettlementEngine()
    try:
        result = engine.settle(conn, prediction_id, winning_outcome_id=winner, settle_as_canceled=cancel)
    except GameError as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(1)
    finally:
        conn.close()
    typer.echo(
        f"Settled {prediction_id} ({engine.strategy_name}): {result.affected_picks} picks, "
        f"{result.winners} won, {result.losers} lost, {result.canceled} canceled"
    )


@app.command("auto")
def settle_auto(
    ctx: typer.Context,
    threshold: float | None = typer.Option(None, "--threshold", help="Winner probability (default from config)"),
) -> None:
    """Settle closed markets that still have pending picks."""
    settings = ctx.obj["settings"]
    conn = _open(settings)
    try:
        result = asyncio.run(
            auto_settle(
                conn,
                GammaClient.from_settings(settings),
                SettlementEngine(),
                threshold=threshold if threshold is not None else settings.auto_win_threshold,
            )
        )
    except GameError as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(1)
    finally:
        conn.close()
    for m in result.markets:
        outcome = "canceled" if m.settle_as_canceled else f"winner {m.winning_outcome_id}"
        typer.echo(f"  {m.prediction_id}: {outcome}, {m.result.affected_picks} picks")
    typer.echo(f"Settled {result.settled_markets} markets, {result.affected_picks} picks")


@app.command("pending")
def settle_pending(ctx: typer.Context) -> None:
    """Show markets with pending picks, grouped by outcome."""
    settings = ctx.obj["settings"]
    conn = _open(settings)
    try:
        summaries = list_pending_summaries(conn)
    finally:
        conn.close()
    for s in summaries:
        typer.echo(f"{s.prediction_id}  {s.total_picks} pending")
        for o in s.outcomes:
            typer.echo(f"    {o.outcome_id:<16} {o.pick_count:>4}  {o.outcome_title}")
    typer.echo(f"Total: {len(summaries)} markets")
