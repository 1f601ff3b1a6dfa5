"""Markets subcommand: list, show."""

from __future__ import annotations

import asyncio

import typer

from venuepredict.catalog import ListingParams, MarketCatalog
from venuepredict.errors import GameError
from venuepredict.ingestion.polymarket.gamma import GammaClient

app = typer.Typer(help="Browse open markets from Polymarket")


@app.command("list")
def list_markets(
    ctx: typer.Context,
    search: str = typer.Option("", "--search", "-s", help="Match question, outcome or category"),
    category: str = typer.Option("", "--category", "-c", help="Category or tag"),
    broad: str = typer.Option("", "--broad", "-b", help="Broad category slug or label (e.g. politics)"),
    sort: str = typer.Option("", "--sort", help="closing-soon, newest, volume or liquidity"),
    page: int = typer.Option(1, "--page"),
    page_size: int = typer.Option(20, "--page-size", "-n"),
) -> None:
    """Fetch open markets and print one listing page."""
    settings = ctx.obj["settings"]
    catalog = MarketCatalog(GammaClient.from_settings(settings), ttl_sec=settings.catalog_ttl_sec)
    params = ListingParams(
        page=page, page_size=page_size, search=search, category=category, broad_category=broad, sort=sort
    )
    try:
        listing = asyncio.run(catalog.list_markets(params))
    except GameError as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(1)
    for m in listing.items:
        top = max(m.outcomes, key=lambda o: o.probability)
        typer.echo(f"  {m.id:>10}  {m.closes_at:%Y-%m-%d}  {top.probability:5.1f}% {top.title[:16]:<16}  {m.question[:60]}")
    typer.echo(f"Page {listing.page}/{listing.total_pages} - {listing.total_items} markets")


@app.command("show")
def show_market(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Polymarket market id"),
) -> None:
    """Look up one market by id and print its outcomes with pick points."""
    from venuepredict.picks import calculate_points

    settings = ctx.obj["settings"]
    client = GammaClient.from_settings(settings)
    try:
        market = asyncio.run(client.find_market(market_id))
    except GameError as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(1)
    if market is None:
        typer.echo(f"Market not found: {market_id}", err=True)
        raise typer.Exit(1)
    typer.echo(f"{market.question}")
    typer.echo(f"  category: {market.category}  tags: {', '.join(market.tags) or '-'}")
    typer.echo(f"  closes: {market.closes_at.isoformat()}  closed: {market.is_closed}")
    for o in market.outcomes:
        typer.echo(f"  {o.id:<16} {o.probability:5.1f}%  {calculate_points(o.probability):>3} pts  {o.title}")
