"""Shared fakes: in-memory repository, scripted exchange/model and an in-memory ES wrapper."""

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from models.market import EventPage, KalshiEvent, KalshiMarket
from models.match import Match, MatchUpsert
from models.watchlist import WatchlistItem
from utils.dedup import generate_match_doc_id


class FakeRepository:
    """In-memory implementation of the ScreenerRepository contract."""

    def __init__(self):
        self.watchlist: dict[int, WatchlistItem] = {}
        self.matches: dict[int, Match] = {}
        self._ids = itertools.count(1)
        self._match_ids = itertools.count(1)
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)
        self.upsert_calls = 0
        self.fail_with: Exception | None = None

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def _check(self):
        if self.fail_with:
            raise self.fail_with

    async def init(self):
        pass

    async def close(self):
        pass

    async def get_watchlist_items(self):
        self._check()
        return sorted(self.watchlist.values(), key=lambda w: (w.created_at, w.id), reverse=True)

    async def get_active_watchlist_items(self):
        return [w for w in await self.get_watchlist_items() if w.active]

    async def get_watchlist_item(self, item_id):
        self._check()
        return self.watchlist.get(int(item_id))

    async def create_watchlist_item(self, query):
        self._check()
        item = WatchlistItem(id=next(self._ids), query=query.strip(), created_at=self._tick())
        self.watchlist[item.id] = item
        return item

    async def update_watchlist_item(self, item_id, query=None, active=None):
        item = await self.get_watchlist_item(item_id)
        if item is None:
            return None
        if query is not None:
            item.query = query.strip()
        if active is not None:
            item.active = active
        return item

    async def delete_watchlist_item(self, item_id):
        self._check()
        item_id = int(item_id)
        self.matches = {k: m for k, m in self.matches.items() if m.watchlist_id != item_id}
        return self.watchlist.pop(item_id, None) is not None

    async def get_matches(self, limit=200):
        self._check()
        rows = []
        for m in sorted(self.matches.values(), key=lambda m: (m.matched_at, m.id), reverse=True):
            owner = self.watchlist.get(m.watchlist_id)
            if owner:
                rows.append(m.model_copy(update={"query": owner.query}))
        return rows[:limit]

    async def upsert_match(self, match: MatchUpsert):
        self._check()
        self.upsert_calls += 1
        for existing_id, existing in self.matches.items():
            if (existing.watchlist_id, existing.market_ticker) == (match.watchlist_id, match.market_ticker):
                self.matches[existing_id] = existing.model_copy(
                    update={**match.model_dump(), "matched_at": self._tick()}
                )
                return
        new_id = next(self._match_ids)
        self.matches[new_id] = Match(id=new_id, matched_at=self._tick(), **match.model_dump())

    async def mark_matches_seen(self, ids):
        self._check()
        count = 0
        for i in ids:
            m = self.matches.get(int(i))
            if m:
                m.seen = True
                count += 1
        return count


class FakeExchange:
    """Scripted Kalshi client: event pages in order, markets by event ticker."""

    def __init__(self, pages=None, markets=None, page_errors=None, market_errors=None):
        self.pages: list[EventPage] = pages or []
        self.markets: dict[str, list[KalshiMarket]] = markets or {}
        self.page_errors: dict[int, Exception] = page_errors or {}
        self.market_errors: dict[str, Exception] = market_errors or {}
        self.event_calls: list[dict] = []
        self.market_calls: list[str] = []

    async def get_events(self, cursor=None, limit=200):
        index = len(self.event_calls)
        self.event_calls.append({"cursor": cursor, "limit": limit})
        if index in self.page_errors:
            raise self.page_errors[index]
        if index >= len(self.pages):
            return EventPage()
        return self.pages[index]

    async def get_markets_by_event(self, event_ticker, max_pages=10):
        self.market_calls.append(event_ticker)
        if event_ticker in self.market_errors:
            raise self.market_errors[event_ticker]
        return self.markets.get(event_ticker, [])


class FakeLLM:
    """Returns scripted replies in order; an Exception entry is raised instead."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts: list[str] = []

    async def complete(self, prompt):
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if self.replies else '{"matches": []}'
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeESClient:
    """In-memory stand-in for core.es_client.ESClient (the subset the repository uses)."""

    def __init__(self):
        self.indices: dict[str, dict[str, dict]] = {}
        self.closed = False
        # Raised, in order, by the next health() calls
        self.health_errors: list[Exception] = []
        self.health_calls = 0

    def _index(self, name):
        return self.indices.setdefault(name, {})

    @staticmethod
    def _matches(doc_id, doc, query):
        if not query or "match_all" in query:
            return True
        if "term" in query:
            (field, value), = query["term"].items()
            return doc.get(field) == value
        if "ids" in query:
            return doc_id in query["ids"]["values"]
        raise NotImplementedError(query)

    async def close(self):
        self.closed = True

    async def health(self):
        self.health_calls += 1
        if self.health_errors:
            raise self.health_errors.pop(0)
        return {"status": "green"}

    async def ensure_index(self, name, body):
        created = name not in self.indices
        self._index(name)
        return created

    async def index_doc(self, index, doc_id, body, refresh=False):
        self._index(index)[doc_id] = dict(body)
        return {"result": "created"}

    async def get(self, index, doc_id):
        doc = self._index(index).get(doc_id)
        return dict(doc) if doc is not None else None

    async def mget(self, index, ids):
        docs = self._index(index)
        return {i: dict(docs[i]) for i in ids if i in docs}

    async def update(self, index, doc_id, body, upsert=None, refresh=False):
        docs = self._index(index)
        if doc_id not in docs:
            if upsert is None:
                return None
            docs[doc_id] = dict(upsert)
            return {"result": "created"}
        docs[doc_id].update(body)
        return {"result": "updated"}

    async def delete(self, index, doc_id, refresh=False):
        return self._index(index).pop(doc_id, None) is not None

    async def delete_by_query(self, index, query):
        docs = self._index(index)
        doomed = [k for k, d in docs.items() if self._matches(k, d, query)]
        for k in doomed:
            del docs[k]
        return len(doomed)

    async def update_by_query(self, index, query, script):
        assert script["source"] == "ctx._source.seen = true"
        count = 0
        for k, d in self._index(index).items():
            if self._matches(k, d, query):
                d["seen"] = True
                count += 1
        return count

    async def search(self, index, query=None, sort=None, size=100):
        hits = [
            {**d, "_id": k} for k, d in self._index(index).items() if self._matches(k, d, query)
        ]
        for clause in reversed(sort or []):
            (field, opts), = clause.items()
            hits.sort(key=lambda h: h.get(field) or "", reverse=opts.get("order") == "desc")
        return hits[:size]


def make_event(ticker: str, title: str, category: str | None = None, sub_title: str | None = None) -> KalshiEvent:
    return KalshiEvent(event_ticker=ticker, title=title, category=category, sub_title=sub_title)


def make_market(ticker: str, event_ticker: str, status: str = "active", **prices) -> KalshiMarket:
    return KalshiMarket(
        ticker=ticker,
        event_ticker=event_ticker,
        title=f"Market {ticker}",
        status=status,
        **prices,
    )


@pytest.fixture
def fake_repo():
    return FakeRepository()


@pytest.fixture
def fake_es():
    return FakeESClient()


@pytest.fixture
def exchange_factory():
    return FakeExchange


@pytest.fixture
def llm_factory():
    return FakeLLM


@pytest.fixture
def event_factory():
    return make_event


@pytest.fixture
def market_factory():
    return make_market


@pytest.fixture
def match_doc_id():
    return generate_match_doc_id
