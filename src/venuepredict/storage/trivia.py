"""Trivia questions and the answer log."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from venuepredict.models import TriviaQuestion
from venuepredict.storage.db import new_id, now_ms

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

_QUESTION_COLUMNS = "id, question, options, correct_answer, category, difficulty"


def _row_to_question(row: tuple) -> TriviaQuestion:
    options = json.loads(row[2]) if isinstance(row[2], str) else list(row[2] or [])
    return TriviaQuestion(
        id=row[0],
        question=row[1],
        options=options,
        correct_answer=row[3],
        category=row[4],
        difficulty=row[5],
    )


def insert_question(
    conn: DuckDBPyConnection,
    question: str,
    options: list[str],
    correct_answer: int,
    category: str | None = None,
    difficulty: str | None = None,
    question_id: str | None = None,
) -> TriviaQuestion:
    question_id = question_id or new_id()
    conn.execute(
        f"INSERT INTO trivia_questions ({_QUESTION_COLUMNS}, created_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
        [question_id, question, json.dumps(options), correct_answer, category, difficulty, now_ms()],
    )
    return TriviaQuestion(
        id=question_id,
        question=question,
        options=options,
        correct_answer=correct_answer,
        category=category,
        difficulty=difficulty,
    )


def list_questions(conn: DuckDBPyConnection, limit: int = 10) -> list[TriviaQuestion]:
    rows = conn.execute(
        f"SELECT {_QUESTION_COLUMNS} FROM trivia_questions ORDER BY created_at DESC, id LIMIT ?",
        [max(1, limit)],
    ).fetchall()
    return [_row_to_question(r) for r in rows]


def get_question(conn: DuckDBPyConnection, question_id: str) -> TriviaQuestion | None:
    row = conn.execute(
        f"SELECT {_QUESTION_COLUMNS} FROM trivia_questions WHERE id = ?", [question_id]
    ).fetchone()
    return _row_to_question(row) if row else None


def insert_answer(
    conn: DuckDBPyConnection,
    user_id: str,
    question_id: str,
    answer: int,
    is_correct: bool,
    time_elapsed: int,
    answered_at: int | None = None,
) -> str:
    answer_id = new_id()
    conn.execute(
        """
        INSERT INTO trivia_answers (id, user_id, question_id, answer, is_correct, time_elapsed, answered_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        [
            answer_id,
            user_id,
            question_id,
            answer,
            is_correct,
            time_elapsed,
            answered_at if answered_at is not None else now_ms(),
        ],
    )
    return answer_id


def recent_answer_times(conn: DuckDBPyConnection, user_id: str, since_ms: int, limit: int) -> list[int]:
    """answered_at of the user's answers at or after since_ms, oldest first, at most `limit` rows."""
    rows = conn.execute(
        """
        SELECT answered_at FROM trivia_answers
        WHERE user_id = ? AND answered_at >= ?
        ORDER BY answered_at ASC
        LIMIT ?
        """,
        [user_id, since_ms, limit],
    ).fetchall()
    return [r[0] for r in rows]
