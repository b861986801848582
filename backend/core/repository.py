"""Storage contract for watchlist items and matches.

Both backends (embedded SQLite and hosted Elasticsearch) satisfy the same
``ScreenerRepository`` protocol; which one runs is decided at startup by
``create_repository``.
"""

from typing import Protocol

from models.match import Match, MatchUpsert
from models.watchlist import RecordId, WatchlistItem

DEFAULT_MATCH_LIMIT = 200


class ScreenerRepository(Protocol):
    async def init(self) -> None: ...

    async def close(self) -> None: ...

    # Watchlist
    async def get_watchlist_items(self) -> list[WatchlistItem]: ...

    async def get_active_watchlist_items(self) -> list[WatchlistItem]: ...

    async def get_watchlist_item(self, item_id: RecordId) -> WatchlistItem | None: ...

    async def create_watchlist_item(self, query: str) -> WatchlistItem: ...

    async def update_watchlist_item(
        self,
        item_id: RecordId,
        query: str | None = None,
        active: bool | None = None,
    ) -> WatchlistItem | None: ...

    async def delete_watchlist_item(self, item_id: RecordId) -> bool: ...

    # Matches
    async def get_matches(self, limit: int = DEFAULT_MATCH_LIMIT) -> list[Match]: ...

    async def upsert_match(self, match: MatchUpsert) -> None: ...

    async def mark_matches_seen(self, ids: list[RecordId]) -> int: ...


def create_repository(
    backend: str,
    sqlite_path: str = "screener.db",
    es_host: str = "http://localhost:9200",
) -> ScreenerRepository:
    """Build the configured backend. Call ``init()`` on the result before use."""
    backend = backend.lower()
    if backend == "sqlite":
        from core.sqlite_repository import SqliteRepository
        return SqliteRepository(sqlite_path)
    if backend in ("elasticsearch", "es"):
        from core.es_client import ESClient
        from core.es_repository import ElasticsearchRepository
        return ElasticsearchRepository(ESClient(hosts=[es_host]))
    raise ValueError(f"Unsupported storage backend: {backend}")
