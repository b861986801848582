"""Pydantic models for persisted watchlist/market matches."""

from datetime import datetime
from pydantic import BaseModel

from models.watchlist import RecordId


class MatchUpsert(BaseModel):
    """Write shape for one (watchlist item, market) pairing."""
    watchlist_id: RecordId
    market_ticker: str
    event_ticker: str
    title: str
    subtitle: str | None = None
    category: str | None = None
    yes_bid: int | None = None  # cents
    yes_ask: int | None = None
    no_bid: int | None = None
    no_ask: int | None = None
    volume: int | None = None


class Match(MatchUpsert):
    id: RecordId
    matched_at: datetime
    seen: bool = False
    query: str | None = None  # owning watchlist query, filled in listings


class MarkSeenRequest(BaseModel):
    ids: list[RecordId] | None = None
