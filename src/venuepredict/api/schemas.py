"""Pydantic schemas for API request/response consistency and OpenAPI docs.

Request bodies accept camelCase keys (as sent by the web client) or snake_case.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from venuepredict.models import (
    LeaderboardEntry,
    Notification,
    PendingMarketSummary,
    Quota,
    SettlementResult,
    TriviaQuestion,
    UserPrediction,
)
from venuepredict.trivia import AnswerResult


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. rate_limited, not_found")


# --- Picks ---
class PickRequest(_Body):
    user_id: str = Field("", alias="userId")
    prediction_id: str = Field("", alias="predictionId")
    outcome_id: str = Field("", alias="outcomeId")


class PickResponse(BaseModel):
    pick: UserPrediction
    quota: Quota


class QuotaResponse(BaseModel):
    quota: Quota | None = None


class PicksResponse(BaseModel):
    items: list[UserPrediction]
    total: int
    page: int
    page_size: int


# --- Trivia ---
class TriviaQuestionsResponse(BaseModel):
    questions: list[TriviaQuestion]


class TriviaAnswerRequest(_Body):
    user_id: str | None = Field(None, alias="userId")
    question_id: str = Field("", alias="questionId")
    answer: int
    time_elapsed: float = Field(0, alias="timeElapsed")


class TriviaAnswerResponse(BaseModel):
    result: AnswerResult
    quota: Quota | None = None


# --- Notifications ---
class NotificationsResponse(BaseModel):
    items: list[Notification]
    total: int
    unread_count: int


class MarkReadRequest(_Body):
    user_id: str = Field("", alias="userId")
    notification_id: str | None = Field(None, alias="notificationId")


# --- Leaderboard ---
class LeaderboardResponse(BaseModel):
    venue_id: str
    entries: list[LeaderboardEntry]


# --- Admin settlement ---
class SettleRequest(_Body):
    prediction_id: str = Field("", alias="predictionId")
    winning_outcome_id: str | None = Field(None, alias="winningOutcomeId")
    settle_as_canceled: bool = Field(False, alias="settleAsCanceled")


class SettleResponse(BaseModel):
    prediction_id: str
    result: SettlementResult
    strategy: str | None = Field(None, description="atomic or legacy")


class PendingResponse(BaseModel):
    markets: list[PendingMarketSummary]
