"""CLI (typer)."""
