"""Prediction, PredictionOutcome - canonical external market entities."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class PredictionOutcome(BaseModel):
    """Single outcome of a market. Probability is a percent, one decimal."""

    id: str
    title: str
    probability: float = Field(..., ge=0, le=100, description="Probability in [0, 100]")


class Prediction(BaseModel):
    """Canonical market. Never persisted; authoritative only for the catalog TTL."""

    id: str
    question: str
    source: str = "polymarket"
    closes_at: datetime
    outcomes: list[PredictionOutcome] = Field(default_factory=list)
    category: str = "Uncategorized"
    tags: list[str] = Field(default_factory=list)
    volume: float | None = None
    liquidity: float | None = None
    created_at: datetime | None = None
    is_closed: bool = False

    def find_outcome(self, outcome_id: str) -> PredictionOutcome | None:
        for outcome in self.outcomes:
            if outcome.id == outcome_id:
                return outcome
        return None
