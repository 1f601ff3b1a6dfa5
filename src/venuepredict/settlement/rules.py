"""Per-pick settlement rules shared by the atomic procedure and the legacy path."""

from __future__ import annotations

from venuepredict.models import UserPrediction

NOTIFICATION_TYPES = {"won": "success", "canceled": "info", "lost": "warning"}


def resolved_status(pick: UserPrediction, winning_outcome_id: str | None, settle_as_canceled: bool) -> str:
    if settle_as_canceled:
        return "canceled"
    if pick.outcome_id == winning_outcome_id:
        return "won"
    return "lost"


def notification_for(pick: UserPrediction, status: str) -> tuple[str, str, str]:
    """(user_id, message, type) for a pick that just resolved."""
    if status == "won":
        message = f"Prediction resolved: {pick.outcome_title} won. You earned {pick.points} points."
    elif status == "canceled":
        message = f"Prediction canceled: {pick.outcome_title} market was canceled."
    else:
        message = f"Prediction resolved: {pick.outcome_title} did not win."
    return pick.user_id, message, NOTIFICATION_TYPES.get(status, "info")
