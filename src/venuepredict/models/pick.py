"""UserPrediction (pick), quota and settlement result shapes."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

PredictionStatus = Literal["pending", "won", "lost", "push", "canceled"]
PREDICTION_STATUSES: tuple[str, ...] = ("pending", "won", "lost", "push", "canceled")

QuotaKind = Literal["trivia", "predictions"]


class UserPrediction(BaseModel):
    """A user's pick on one outcome of an external market. Times are epoch ms."""

    id: str
    user_id: str
    prediction_id: str
    outcome_id: str
    outcome_title: str
    points: int = Field(..., ge=0, description="Awarded on win")
    status: PredictionStatus = "pending"
    created_at: int
    resolved_at: int | None = None


class Quota(BaseModel):
    """Sliding-window usage for one user and one kind of event."""

    kind: QuotaKind
    limit: int
    used: int = 0
    remaining: int
    window_seconds_remaining: int = 0
    is_admin_bypass: bool = False


class SettlementResult(BaseModel):
    affected_picks: int = 0
    winners: int = 0
    losers: int = 0
    canceled: int = 0


class SettledMarket(BaseModel):
    prediction_id: str
    winning_outcome_id: str | None = None
    settle_as_canceled: bool = False
    result: SettlementResult


class AutoSettleResult(BaseModel):
    settled_markets: int = 0
    affected_picks: int = 0
    markets: list[SettledMarket] = Field(default_factory=list)


class PendingOutcomeSummary(BaseModel):
    outcome_id: str
    outcome_title: str
    pick_count: int


class PendingMarketSummary(BaseModel):
    """Pending picks for one market, grouped per outcome (admin settlement view)."""

    prediction_id: str
    total_picks: int
    latest_pick_at: int
    outcomes: list[PendingOutcomeSummary] = Field(default_factory=list)
