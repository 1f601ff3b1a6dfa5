"""User, Notification, TriviaQuestion, LeaderboardEntry."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

NotificationType = Literal["info", "success", "warning", "error"]


class User(BaseModel):
    id: str
    username: str
    venue_id: str
    points: int = 0
    is_admin: bool = False
    created_at: int | None = None


class Notification(BaseModel):
    id: str
    user_id: str
    message: str
    type: NotificationType = "info"
    read: bool = False
    created_at: int


class TriviaQuestion(BaseModel):
    id: str
    question: str
    options: list[str] = Field(default_factory=list)
    correct_answer: int
    category: str | None = None
    difficulty: str | None = None


class LeaderboardEntry(BaseModel):
    user_id: str
    username: str
    venue_id: str
    points: int
    rank: int
