"""Pydantic models for poll cycle reports."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

PollStatus = Literal["ok", "empty", "busy", "timeout", "failed"]


class PollResult(BaseModel):
    status: PollStatus = "ok"
    message: str
    matched: int = 0
    events_checked: int = 0
    errors: list[str] = Field(default_factory=list)
    started_utc: datetime | None = None
    finished_utc: datetime | None = None
    duration_seconds: float | None = None


class PollResponse(BaseModel):
    message: str
    matched: int
