"""Database subcommand: schema and stored procedures."""

from __future__ import annotations

import typer

from venuepredict.storage.db import get_connection, init_schema
from venuepredict.storage.procedures import PROCEDURES, is_installed

app = typer.Typer(help="Database schema and procedures")


@app.command("init")
def init(
    ctx: typer.Context,
    procedures: bool | None = typer.Option(
        None, "--procedures/--no-procedures", help="Deploy stored procedures (default from config)"
    ),
) -> None:
    """Create tables and deploy the settlement procedure."""
    settings = ctx.obj["settings"]
    install = settings.install_procedures if procedures is None else procedures
    conn = get_connection(settings.db_path)
    try:
        init_schema(conn, install_procedures=install)
        typer.echo(f"Schema ready at {settings.db_path}")
        for name in PROCEDURES:
            state = "installed" if is_installed(conn, name) else "not installed"
            typer.echo(f"  procedure {name}: {state}")
    finally:
        conn.close()
