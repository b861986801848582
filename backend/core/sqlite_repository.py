"""Embedded storage backend: SQLite through aiosqlite."""

import asyncio
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from core.errors import StorageError
from core.repository import DEFAULT_MATCH_LIMIT
from models.match import Match, MatchUpsert
from models.watchlist import RecordId, WatchlistItem

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS watchlist (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    query TEXT NOT NULL,
    created_at TEXT NOT NULL,
    active INTEGER NOT NULL DEFAULT 1
);
CREATE TABLE IF NOT EXISTS matches (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    watchlist_id INTEGER NOT NULL,
    market_ticker TEXT NOT NULL,
    event_ticker TEXT NOT NULL,
    title TEXT NOT NULL,
    subtitle TEXT,
    category TEXT,
    yes_bid INTEGER,
    yes_ask INTEGER,
    no_bid INTEGER,
    no_ask INTEGER,
    volume INTEGER,
    matched_at TEXT NOT NULL,
    seen INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (watchlist_id) REFERENCES watchlist(id) ON DELETE CASCADE,
    UNIQUE (watchlist_id, market_ticker)
);
CREATE INDEX IF NOT EXISTS idx_matches_matched_at ON matches (matched_at);
"""

UPSERT_MATCH_SQL = """
INSERT INTO matches (
    watchlist_id, market_ticker, event_ticker, title, subtitle, category,
    yes_bid, yes_ask, no_bid, no_ask, volume, matched_at
) VALUES (
    :watchlist_id, :market_ticker, :event_ticker, :title, :subtitle, :category,
    :yes_bid, :yes_ask, :no_bid, :no_ask, :volume, :matched_at
)
ON CONFLICT (watchlist_id, market_ticker) DO UPDATE SET
    event_ticker = excluded.event_ticker,
    title = excluded.title,
    subtitle = excluded.subtitle,
    category = excluded.category,
    yes_bid = excluded.yes_bid,
    yes_ask = excluded.yes_ask,
    no_bid = excluded.no_bid,
    no_ask = excluded.no_ask,
    volume = excluded.volume,
    matched_at = excluded.matched_at
"""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@contextmanager
def _storage_errors(operation: str):
    try:
        yield
    except sqlite3.Error as e:
        logger.error("SQLite %s failed: %s", operation, e)
        raise StorageError(f"SQLite {operation} failed: {e}", original=e) from e


class SqliteRepository:
    def __init__(self, path: str = "screener.db"):
        self.path = path
        self._conn: aiosqlite.Connection | None = None
        # Serialises multi-statement transactions on the shared connection
        self._lock = asyncio.Lock()

    async def init(self) -> None:
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        with _storage_errors("init"):
            self._conn = await aiosqlite.connect(self.path)
            self._conn.row_factory = aiosqlite.Row
            await self._conn.execute("PRAGMA journal_mode = WAL")
            await self._conn.execute("PRAGMA foreign_keys = ON")
            await self._conn.executescript(SCHEMA)
            await self._conn.commit()
        logger.info("SQLite repository ready at %s", self.path)

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StorageError("SQLite repository used before init()")
        return self._conn

    async def _fetchall(self, sql: str, params: tuple | dict = ()) -> list[aiosqlite.Row]:
        async with self.conn.execute(sql, params) as cursor:
            return list(await cursor.fetchall())

    async def _fetchone(self, sql: str, params: tuple | dict = ()) -> aiosqlite.Row | None:
        async with self.conn.execute(sql, params) as cursor:
            return await cursor.fetchone()

    # --- Watchlist ---

    async def get_watchlist_items(self) -> list[WatchlistItem]:
        with _storage_errors("get_watchlist_items"):
            rows = await self._fetchall(
                "SELECT * FROM watchlist ORDER BY created_at DESC, id DESC"
            )
        return [WatchlistItem(**dict(r)) for r in rows]

    async def get_active_watchlist_items(self) -> list[WatchlistItem]:
        with _storage_errors("get_active_watchlist_items"):
            rows = await self._fetchall(
                "SELECT * FROM watchlist WHERE active = 1 ORDER BY created_at DESC, id DESC"
            )
        return [WatchlistItem(**dict(r)) for r in rows]

    async def get_watchlist_item(self, item_id: RecordId) -> WatchlistItem | None:
        with _storage_errors("get_watchlist_item"):
            row = await self._fetchone("SELECT * FROM watchlist WHERE id = ?", (item_id,))
        return WatchlistItem(**dict(row)) if row else None

    async def create_watchlist_item(self, query: str) -> WatchlistItem:
        async with self._lock:
            with _storage_errors("create_watchlist_item"):
                cursor = await self.conn.execute(
                    "INSERT INTO watchlist (query, created_at, active) VALUES (?, ?, 1)",
                    (query.strip(), _now_iso()),
                )
                item_id = cursor.lastrowid
                await self.conn.commit()
        item = await self.get_watchlist_item(item_id)
        logger.info("Created watchlist item %s: %r", item_id, item.query)
        return item

    async def update_watchlist_item(
        self,
        item_id: RecordId,
        query: str | None = None,
        active: bool | None = None,
    ) -> WatchlistItem | None:
        updates: dict = {}
        if query is not None:
            updates["query"] = query.strip()
        if active is not None:
            updates["active"] = 1 if active else 0
        if updates:
            assignments = ", ".join(f"{col} = :{col}" for col in updates)
            async with self._lock:
                with _storage_errors("update_watchlist_item"):
                    await self.conn.execute(
                        f"UPDATE watchlist SET {assignments} WHERE id = :id",
                        {**updates, "id": item_id},
                    )
                    await self.conn.commit()
        return await self.get_watchlist_item(item_id)

    async def delete_watchlist_item(self, item_id: RecordId) -> bool:
        async with self._lock:
            with _storage_errors("delete_watchlist_item"):
                try:
                    await self.conn.execute("DELETE FROM matches WHERE watchlist_id = ?", (item_id,))
                    cursor = await self.conn.execute("DELETE FROM watchlist WHERE id = ?", (item_id,))
                    deleted = cursor.rowcount > 0
                    await self.conn.commit()
                except sqlite3.Error:
                    await self.conn.rollback()
                    raise
        if deleted:
            logger.info("Deleted watchlist item %s and its matches", item_id)
        return deleted

    # --- Matches ---

    async def get_matches(self, limit: int = DEFAULT_MATCH_LIMIT) -> list[Match]:
        with _storage_errors("get_matches"):
            rows = await self._fetchall(
                """
                SELECT m.*, w.query
                FROM matches m
                JOIN watchlist w ON m.watchlist_id = w.id
                ORDER BY m.matched_at DESC, m.id DESC
                LIMIT ?
                """,
                (limit,),
            )
        return [Match(**dict(r)) for r in rows]

    async def upsert_match(self, match: MatchUpsert) -> None:
        params = match.model_dump()
        params["matched_at"] = _now_iso()
        async with self._lock:
            with _storage_errors("upsert_match"):
                await self.conn.execute(UPSERT_MATCH_SQL, params)
                await self.conn.commit()

    async def mark_matches_seen(self, ids: list[RecordId]) -> int:
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        async with self._lock:
            with _storage_errors("mark_matches_seen"):
                cursor = await self.conn.execute(
                    f"UPDATE matches SET seen = 1 WHERE id IN ({placeholders})", tuple(ids)
                )
                await self.conn.commit()
        return cursor.rowcount
