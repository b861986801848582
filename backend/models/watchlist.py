"""Pydantic models for watchlist items and their request bodies."""

from datetime import datetime
from pydantic import BaseModel

# Integer rowid on SQLite, string doc id on Elasticsearch
RecordId = int | str


class WatchlistItem(BaseModel):
    id: RecordId
    query: str
    created_at: datetime
    active: bool = True


class WatchlistCreate(BaseModel):
    query: str | None = None


class WatchlistUpdate(BaseModel):
    id: RecordId | None = None
    query: str | None = None
    active: bool | None = None


class WatchlistDelete(BaseModel):
    id: RecordId | None = None
