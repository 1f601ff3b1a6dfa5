"""Canonical schema (Pydantic) - Prediction, UserPrediction, Quota, User."""

from venuepredict.models.market import Prediction, PredictionOutcome
from venuepredict.models.pick import (
    PREDICTION_STATUSES,
    AutoSettleResult,
    PendingMarketSummary,
    PendingOutcomeSummary,
    PredictionStatus,
    Quota,
    QuotaKind,
    SettledMarket,
    SettlementResult,
    UserPrediction,
)
from venuepredict.models.user import LeaderboardEntry, Notification, TriviaQuestion, User

__all__ = [
    "Prediction",
    "PredictionOutcome",
    "PREDICTION_STATUSES",
    "PredictionStatus",
    "UserPrediction",
    "Quota",
    "QuotaKind",
    "SettlementResult",
    "SettledMarket",
    "AutoSettleResult",
    "PendingMarketSummary",
    "PendingOutcomeSummary",
    "User",
    "Notification",
    "TriviaQuestion",
    "LeaderboardEntry",
]
