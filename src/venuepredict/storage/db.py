"""DuckDB connection and schema init."""

from __future__ import annotations

import time
import uuid
from pathlib import Path
from typing import TYPE_CHECKING

import duckdb

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

SCHEMA_SQL = """
-- Player profiles, points only ever grow through trivia and settlement
CREATE TABLE IF NOT EXISTS users (
    id              VARCHAR PRIMARY KEY,
    username        VARCHAR NOT NULL,
    venue_id        VARCHAR NOT NULL,
    points          INTEGER NOT NULL DEFAULT 0,
    is_admin        BOOLEAN NOT NULL DEFAULT FALSE,
    auth_token      VARCHAR,
    created_at      BIGINT NOT NULL
);

CREATE TABLE IF NOT EXISTS trivia_questions (
    id              VARCHAR PRIMARY KEY,
    question        VARCHAR NOT NULL,
    options         JSON NOT NULL,
    correct_answer  INTEGER NOT NULL,
    category        VARCHAR,
    difficulty      VARCHAR,
    created_at      BIGINT NOT NULL
);

-- Answer log, the trivia quota is derived from it
CREATE TABLE IF NOT EXISTS trivia_answers (
    id              VARCHAR PRIMARY KEY,
    user_id         VARCHAR NOT NULL,
    question_id     VARCHAR NOT NULL,
    answer          INTEGER NOT NULL,
    is_correct      BOOLEAN NOT NULL,
    time_elapsed    INTEGER NOT NULL DEFAULT 0,
    answered_at     BIGINT NOT NULL
);

-- Picks on external markets, the prediction quota is derived from created_at
CREATE TABLE IF NOT EXISTS user_predictions (
    id              VARCHAR PRIMARY KEY,
    user_id         VARCHAR NOT NULL,
    prediction_id   VARCHAR NOT NULL,
    outcome_id      VARCHAR NOT NULL,
    outcome_title   VARCHAR NOT NULL,
    points          INTEGER NOT NULL,
    status          VARCHAR NOT NULL DEFAULT 'pending',
    created_at      BIGINT NOT NULL,
    resolved_at     BIGINT
);

-- One row per pending pick, the key enforces at most one pending pick per user and market
CREATE TABLE IF NOT EXISTS pending_picks (
    user_id         VARCHAR NOT NULL,
    prediction_id   VARCHAR NOT NULL,
    pick_id         VARCHAR NOT NULL,
    PRIMARY KEY (user_id, prediction_id)
);

CREATE TABLE IF NOT EXISTS notifications (
    id              VARCHAR PRIMARY KEY,
    user_id         VARCHAR NOT NULL,
    message         VARCHAR NOT NULL,
    type            VARCHAR NOT NULL DEFAULT 'info',
    "read"          BOOLEAN NOT NULL DEFAULT FALSE,
    created_at      BIGINT NOT NULL
);

-- Stored procedures deployed to this database (see storage.procedures)
CREATE TABLE IF NOT EXISTS installed_procedures (
    name            VARCHAR PRIMARY KEY,
    installed_at    BIGINT NOT NULL
);
"""


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id() -> str:
    return str(uuid.uuid4())


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager."""
    path = Path(db_path)
    if not read_only and str(db_path) != ":memory:":
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(db_path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection, install_procedures: bool = True) -> None:
    """Create tables if they do not exist and, by default, deploy the stored procedures."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise
    if install_procedures:
        from venuepredict.storage.procedures import install_procedures as install

        install(conn)
