"""Market status filtering, event summarisation and batching helpers."""

from collections.abc import Iterator, Sequence
from typing import TypeVar

from models.market import KalshiEvent, KalshiMarket, MarketSummary

T = TypeVar("T")

ACTIVE_STATUS = "active"


def is_active_market(market: KalshiMarket) -> bool:
    """Only markets the exchange reports as 'active' are worth surfacing."""
    return (market.status or "").strip().lower() == ACTIVE_STATUS


def event_to_summary(event: KalshiEvent) -> MarketSummary:
    """Reduce an event to the summary the matcher sees (ticker = event ticker)."""
    return MarketSummary(
        ticker=event.event_ticker,
        event_ticker=event.event_ticker,
        title=event.title,
        subtitle=event.sub_title or None,
        category=event.category or None,
    )


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive slices of at most ``size`` items."""
    if size < 1:
        raise ValueError("size must be >= 1")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])
