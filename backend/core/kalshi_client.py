"""Kalshi trade API client with bounded pagination and rate-limit handling."""

import asyncio
import logging

import httpx
from pydantic import ValidationError

from core.errors import RemoteServiceError
from models.market import EventPage, KalshiEvent, KalshiMarket, MarketPage
from utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

BASE_URL = "https://api.elections.kalshi.com/trade-api/v2"
DEFAULT_PAGE_SIZE = 200


class KalshiClient:
    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 8.0,
        rate_limit_delay: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.rate_limit_delay = rate_limit_delay
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def close(self):
        await self._client.aclose()

    @retry_with_backoff(max_attempts=2, base_delay=0.5, retry_on=(httpx.TransportError,))
    async def _send(self, path: str, params: dict) -> httpx.Response:
        return await self._client.get(path, params=params)

    async def _get(self, path: str, params: dict) -> dict | None:
        """GET a JSON object. Returns None when rate limited (after backing off)."""
        try:
            resp = await self._send(path, params)
        except httpx.TransportError as e:
            raise RemoteServiceError(f"Kalshi {path} request failed: {e}", original=e) from e

        if resp.status_code == 429:
            logger.warning(
                "Kalshi %s rate limited, backing off %.1fs", path, self.rate_limit_delay
            )
            await asyncio.sleep(self.rate_limit_delay)
            return None
        if not resp.is_success:
            raise RemoteServiceError(
                f"Kalshi {path} API error: {resp.status_code}", status_code=resp.status_code
            )
        if not resp.content.strip():
            raise RemoteServiceError(f"Kalshi {path} returned an empty body", resp.status_code)
        try:
            data = resp.json()
        except ValueError as e:
            raise RemoteServiceError(
                f"Kalshi {path} returned invalid JSON", resp.status_code, original=e
            ) from e
        if not isinstance(data, dict):
            raise RemoteServiceError(f"Kalshi {path} returned a non-object body", resp.status_code)
        return data

    async def get_events(self, cursor: str | None = None, limit: int = DEFAULT_PAGE_SIZE) -> EventPage:
        """Fetch a single page of open events."""
        params: dict = {"limit": limit, "status": "open"}
        if cursor:
            params["cursor"] = cursor
        data = await self._get("/events", params)
        if data is None:
            return EventPage()
        try:
            return EventPage(events=data.get("events") or [], cursor=data.get("cursor"))
        except ValidationError as e:
            raise RemoteServiceError("Kalshi /events page failed validation", original=e) from e

    async def get_all_events(self, max_pages: int = 20) -> list[KalshiEvent]:
        """Page through open events until the cursor runs out, up to max_pages."""
        all_events: list[KalshiEvent] = []
        cursor = None
        for _ in range(max_pages):
            page = await self.get_events(cursor=cursor)
            all_events.extend(page.events)
            if not page.cursor or not page.events:
                break
            cursor = page.cursor
        logger.info("Fetched %d open events", len(all_events))
        return all_events

    async def get_markets(
        self,
        event_ticker: str | None = None,
        cursor: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        status: str | None = None,
    ) -> MarketPage:
        """Fetch a single page of markets, optionally scoped to one event."""
        params: dict = {"limit": limit}
        if event_ticker:
            params["event_ticker"] = event_ticker
        if status:
            params["status"] = status
        if cursor:
            params["cursor"] = cursor
        data = await self._get("/markets", params)
        if data is None:
            return MarketPage()
        try:
            return MarketPage(markets=data.get("markets") or [], cursor=data.get("cursor"))
        except ValidationError as e:
            raise RemoteServiceError("Kalshi /markets page failed validation", original=e) from e

    async def _page_markets(
        self, max_pages: int, event_ticker: str | None = None, status: str | None = None
    ) -> list[KalshiMarket]:
        markets: list[KalshiMarket] = []
        cursor = None
        for _ in range(max_pages):
            page = await self.get_markets(event_ticker=event_ticker, cursor=cursor, status=status)
            markets.extend(page.markets)
            if not page.cursor or not page.markets:
                break
            cursor = page.cursor
        return markets

    async def get_markets_by_event(self, event_ticker: str, max_pages: int = 10) -> list[KalshiMarket]:
        """All markets belonging to one event. A 429 yields an empty list."""
        return await self._page_markets(max_pages, event_ticker=event_ticker)

    async def get_all_markets(self, max_pages: int = 10) -> list[KalshiMarket]:
        """Page through all open markets, up to max_pages."""
        markets = await self._page_markets(max_pages, status="open")
        logger.info("Fetched %d open markets", len(markets))
        return markets
