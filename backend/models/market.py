"""Pydantic models for Kalshi events/markets and matcher inputs."""

from pydantic import BaseModel, Field, field_validator


class KalshiEvent(BaseModel):
    event_ticker: str
    title: str = ""
    sub_title: str | None = None
    category: str | None = None
    series_ticker: str | None = None
    mutually_exclusive: bool = False


class KalshiMarket(BaseModel):
    ticker: str
    event_ticker: str
    title: str = ""
    subtitle: str | None = None
    status: str = ""
    yes_bid: int | None = None
    yes_ask: int | None = None
    no_bid: int | None = None
    no_ask: int | None = None
    volume: int | None = None
    volume_24h: int | None = None
    open_interest: int | None = None
    last_price: int | None = None
    close_time: str | None = None


class _Page(BaseModel):
    cursor: str | None = None

    @field_validator("cursor")
    @classmethod
    def _blank_cursor_is_none(cls, v: str | None) -> str | None:
        return v or None


class EventPage(_Page):
    events: list[KalshiEvent] = Field(default_factory=list)


class MarketPage(_Page):
    markets: list[KalshiMarket] = Field(default_factory=list)


class MarketSummary(BaseModel):
    """Compact market/event description handed to the semantic matcher."""
    ticker: str
    event_ticker: str
    title: str
    subtitle: str | None = None
    category: str | None = None


class MatchResult(BaseModel):
    watchlist_id: int | str
    market: MarketSummary
