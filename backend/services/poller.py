"""Poller service — runs one fetch → match → upsert scan cycle."""

import asyncio
import logging
from datetime import datetime, timezone

import httpx

from core.errors import RemoteServiceError
from core.kalshi_client import KalshiClient
from core.repository import ScreenerRepository
from models.market import KalshiEvent, KalshiMarket, MatchResult
from models.match import MatchUpsert
from models.poll import PollResult
from services.matcher import SemanticMatcher
from utils.filters import chunked, event_to_summary, is_active_market

logger = logging.getLogger(__name__)


class PollerService:
    def __init__(
        self,
        repo: ScreenerRepository,
        exchange: KalshiClient,
        matcher: SemanticMatcher,
        max_pages: int = 10,
        page_size: int = 200,
        batch_size: int = 200,
        page_delay: float = 0.0,
        budget_seconds: float = 110.0,
    ):
        self.repo = repo
        self.exchange = exchange
        self.matcher = matcher
        self.max_pages = max_pages
        self.page_size = page_size
        self.batch_size = batch_size
        self.page_delay = page_delay
        self.budget_seconds = budget_seconds
        self.last_run_stats: dict | None = None
        self.last_run_utc: datetime | None = None
        self.is_running: bool = False

    async def run(self) -> PollResult:
        """Execute a full poll cycle. Never raises; failures come back as a report."""
        if self.is_running:
            return PollResult(status="busy", message="Poll already in progress")

        self.is_running = True
        run_start = datetime.now(timezone.utc)
        # Mutated in place so a timed-out run still reports its progress
        stats = {"events_checked": 0, "matched": 0, "errors": []}

        try:
            result = await asyncio.wait_for(self._poll(stats), timeout=self.budget_seconds)
        except asyncio.TimeoutError:
            logger.error("Poll exceeded its %.0fs budget", self.budget_seconds)
            result = PollResult(
                status="timeout",
                message=(
                    f"Poll timed out after {self.budget_seconds:.0f}s. "
                    f"Checked {stats['events_checked']} events."
                ),
                matched=stats["matched"],
            )
        except Exception as e:
            logger.exception("Poll cycle failed")
            stats["errors"].append(str(e))
            result = PollResult(status="failed", message=f"Poll failed: {e}", matched=0)
        finally:
            self.is_running = False

        run_end = datetime.now(timezone.utc)
        result.events_checked = stats["events_checked"]
        result.errors = stats["errors"]
        result.started_utc = run_start
        result.finished_utc = run_end
        result.duration_seconds = (run_end - run_start).total_seconds()
        self.last_run_stats = result.model_dump(mode="json")
        self.last_run_utc = run_end
        logger.info("Poll run completed: %s (matched=%d)", result.message, result.matched)
        return result

    async def _poll(self, stats: dict) -> PollResult:
        watchlist = await self.repo.get_active_watchlist_items()
        if not watchlist:
            return PollResult(status="empty", message="No active watchlist items", matched=0)

        events = await self._collect_events(stats)
        if not events:
            return PollResult(status="empty", message="No events found", matched=0)

        summaries = [event_to_summary(e) for e in events]
        market_cache: dict[str, list[KalshiMarket]] = {}

        for batch in chunked(summaries, self.batch_size):
            results = await self.matcher.match(watchlist, batch)
            for result in results:
                await self._upsert_event_matches(result, market_cache, stats)

        return PollResult(
            message=f"Poll complete. Checked {len(events)} events.",
            matched=stats["matched"],
        )

    async def _collect_events(self, stats: dict) -> list[KalshiEvent]:
        """Page through open events; a failed page ends paging but keeps what we have."""
        events: list[KalshiEvent] = []
        cursor = None
        for page_num in range(self.max_pages):
            if page_num and self.page_delay:
                await asyncio.sleep(self.page_delay)
            try:
                page = await self.exchange.get_events(cursor=cursor, limit=self.page_size)
            except (RemoteServiceError, httpx.HTTPError) as e:
                logger.error("Event page %d fetch failed, continuing with %d events: %s",
                             page_num + 1, len(events), e)
                stats["errors"].append(f"Event page {page_num + 1}: {e}")
                break
            events.extend(page.events)
            stats["events_checked"] = len(events)
            if not page.cursor or not page.events:
                break
            cursor = page.cursor

        logger.info("Collected %d open events", len(events))
        return events

    async def _upsert_event_matches(
        self,
        result: MatchResult,
        market_cache: dict[str, list[KalshiMarket]],
        stats: dict,
    ) -> None:
        """Fetch the matched event's markets and upsert the active ones.

        Exchange failures are recorded and skipped; storage failures propagate
        and fail the run.
        """
        event = result.market
        markets = market_cache.get(event.event_ticker)
        if markets is None:
            try:
                markets = await self.exchange.get_markets_by_event(event.event_ticker)
            except (RemoteServiceError, httpx.HTTPError) as e:
                logger.error("Failed to fetch markets for %s (watchlist %s): %s",
                             event.event_ticker, result.watchlist_id, e)
                stats["errors"].append(f"Event {event.event_ticker}: {e}")
                return
            market_cache[event.event_ticker] = markets

        for m in markets:
            if not is_active_market(m):
                continue
            await self.repo.upsert_match(MatchUpsert(
                watchlist_id=result.watchlist_id,
                market_ticker=m.ticker,
                event_ticker=m.event_ticker,
                title=m.title or event.title,
                subtitle=m.subtitle or None,
                category=event.category,
                yes_bid=m.yes_bid,
                yes_ask=m.yes_ask,
                no_bid=m.no_bid,
                no_ask=m.no_ask,
                volume=m.volume,
            ))
            stats["matched"] += 1
