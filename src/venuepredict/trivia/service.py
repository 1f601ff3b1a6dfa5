"""Trivia questions and answer scoring."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel

from venuepredict.errors import InvalidInputError, NotFoundError, RateLimitError
from venuepredict.models import TriviaQuestion
from venuepredict.quota.tracker import DEFAULT_LIMIT, DEFAULT_WINDOW_SEC, get_quota
from venuepredict.storage import trivia as trivia_store
from venuepredict.storage.users import get_user, increment_points

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

CORRECT_ANSWER_POINTS = 10

FALLBACK_QUESTIONS: list[TriviaQuestion] = [
    TriviaQuestion(
        id="fallback-1",
        question="Which planet in our solar system is known as the Red Planet?",
        options=["Mars", "Jupiter", "Venus", "Mercury"],
        correct_answer=0,
        category="Science",
        difficulty="easy",
    ),
    TriviaQuestion(
        id="fallback-2",
        question="What year did the first iPhone launch?",
        options=["2005", "2007", "2009", "2011"],
        correct_answer=1,
        category="Technology",
        difficulty="medium",
    ),
    TriviaQuestion(
        id="fallback-3",
        question="Which city hosts the Eiffel Tower?",
        options=["Rome", "Berlin", "Madrid", "Paris"],
        correct_answer=3,
        category="Geography",
        difficulty="easy",
    ),
]


class AnswerResult(BaseModel):
    is_correct: bool
    correct_answer: int
    saved: bool
    points_awarded: int = 0


def get_questions(conn: DuckDBPyConnection, limit: int = 10) -> list[TriviaQuestion]:
    """Newest stored questions; the built-in set when none are stored."""
    limit = max(1, limit)
    questions = trivia_store.list_questions(conn, limit=limit)
    return questions or FALLBACK_QUESTIONS[:limit]


def get_question(conn: DuckDBPyConnection, question_id: str) -> TriviaQuestion | None:
    question = trivia_store.get_question(conn, question_id)
    if question is not None:
        return question
    return next((q for q in FALLBACK_QUESTIONS if q.id == question_id), None)


def submit_answer(
    conn: DuckDBPyConnection,
    user_id: str | None,
    question_id: str,
    answer: int,
    time_elapsed: float = 0,
    *,
    limit: int = DEFAULT_LIMIT,
    window_sec: int = DEFAULT_WINDOW_SEC,
) -> AnswerResult:
    """Grade an answer. Known users are rate limited, recorded and credited."""
    question_id = (question_id or "").strip()
    if not question_id:
        raise InvalidInputError("questionId and numeric answer are required.")
    question = get_question(conn, question_id)
    if question is None:
        raise NotFoundError("Question not found.")

    is_correct = answer == question.correct_answer
    try:
        seconds = float(time_elapsed)
    except (TypeError, ValueError):
        seconds = 0.0
    elapsed = max(0, round(seconds)) if math.isfinite(seconds) else 0

    user_id = (user_id or "").strip()
    if not user_id or get_user(conn, user_id) is None:
        return AnswerResult(is_correct=is_correct, correct_answer=question.correct_answer, saved=False)

    quota = get_quota(conn, user_id, "trivia", limit=limit, window_sec=window_sec)
    if not quota.is_admin_bypass and quota.remaining <= 0:
        minutes = max(1, math.ceil(quota.window_seconds_remaining / 60))
        raise RateLimitError(
            f"Hourly trivia limit reached ({quota.limit}). Try again in about {minutes} minute(s).",
            retry_after_seconds=quota.window_seconds_remaining,
        )

    trivia_store.insert_answer(conn, user_id, question_id, answer, is_correct, elapsed)
    awarded = 0
    if is_correct:
        increment_points(conn, user_id, CORRECT_ANSWER_POINTS)
        awarded = CORRECT_ANSWER_POINTS
    log.info("trivia_answered", user_id=user_id, question_id=question_id, correct=is_correct)
    return AnswerResult(
        is_correct=is_correct,
        correct_answer=question.correct_answer,
        saved=True,
        points_awarded=awarded,
    )
