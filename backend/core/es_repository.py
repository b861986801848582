"""Hosted storage backend: Elasticsearch indices for watchlist and matches."""

import asyncio
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone

from elasticsearch import ApiError, TransportError

from core.errors import StorageError
from core.es_client import ESClient
from core.es_indices import ALL_INDICES, MATCHES_INDEX, WATCHLIST_INDEX
from core.repository import DEFAULT_MATCH_LIMIT
from models.match import Match, MatchUpsert
from models.watchlist import RecordId, WatchlistItem
from utils.dedup import generate_match_doc_id

logger = logging.getLogger(__name__)

MAX_WATCHLIST_SIZE = 10000


@contextmanager
def _storage_errors(operation: str):
    try:
        yield
    except (ApiError, TransportError) as e:
        logger.error("Elasticsearch %s failed: %s", operation, e)
        raise StorageError(f"Elasticsearch {operation} failed: {e}", original=e) from e


class ElasticsearchRepository:
    def __init__(self, es: ESClient, connect_attempts: int = 30, connect_delay: float = 2.0):
        self.es = es
        self.connect_attempts = connect_attempts
        self.connect_delay = connect_delay

    async def _wait_for_cluster(self) -> None:
        """Poll cluster health until Elasticsearch answers."""
        for attempt in range(1, self.connect_attempts + 1):
            try:
                health = await self.es.health()
                logger.info("ES cluster status: %s", health.get("status"))
                return
            except (ApiError, TransportError) as e:
                if attempt == self.connect_attempts:
                    logger.error("Elasticsearch unreachable after %d attempts: %s", attempt, e)
                    raise StorageError(f"Elasticsearch unreachable: {e}", original=e) from e
                logger.warning("Waiting for Elasticsearch (attempt %d/%d): %s",
                               attempt, self.connect_attempts, e)
                await asyncio.sleep(self.connect_delay)

    async def init(self) -> None:
        await self._wait_for_cluster()
        with _storage_errors("init"):
            for name, mapping in ALL_INDICES.items():
                await self.es.ensure_index(name, mapping)
        logger.info("Elasticsearch repository indices ensured")

    async def close(self) -> None:
        await self.es.close()

    # --- Watchlist ---

    async def _search_watchlist(self, query: dict) -> list[WatchlistItem]:
        hits = await self.es.search(
            WATCHLIST_INDEX,
            query=query,
            sort=[{"created_at": {"order": "desc"}}],
            size=MAX_WATCHLIST_SIZE,
        )
        return [WatchlistItem(**hit) for hit in hits]

    async def get_watchlist_items(self) -> list[WatchlistItem]:
        with _storage_errors("get_watchlist_items"):
            return await self._search_watchlist({"match_all": {}})

    async def get_active_watchlist_items(self) -> list[WatchlistItem]:
        with _storage_errors("get_active_watchlist_items"):
            return await self._search_watchlist({"term": {"active": True}})

    async def get_watchlist_item(self, item_id: RecordId) -> WatchlistItem | None:
        with _storage_errors("get_watchlist_item"):
            doc = await self.es.get(WATCHLIST_INDEX, str(item_id))
        return WatchlistItem(**doc) if doc else None

    async def create_watchlist_item(self, query: str) -> WatchlistItem:
        item = WatchlistItem(
            id=uuid.uuid4().hex,
            query=query.strip(),
            created_at=datetime.now(timezone.utc),
            active=True,
        )
        with _storage_errors("create_watchlist_item"):
            await self.es.index_doc(
                WATCHLIST_INDEX, item.id, item.model_dump(mode="json"), refresh="wait_for"
            )
        logger.info("Created watchlist item %s: %r", item.id, item.query)
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
            updates["active"] = active
        if updates:
            with _storage_errors("update_watchlist_item"):
                result = await self.es.update(
                    WATCHLIST_INDEX, str(item_id), updates, refresh="wait_for"
                )
            if result is None:
                return None
        return await self.get_watchlist_item(item_id)

    async def delete_watchlist_item(self, item_id: RecordId) -> bool:
        with _storage_errors("delete_watchlist_item"):
            removed = await self.es.delete_by_query(
                MATCHES_INDEX, {"term": {"watchlist_id": str(item_id)}}
            )
            deleted = await self.es.delete(WATCHLIST_INDEX, str(item_id), refresh="wait_for")
        if deleted:
            logger.info("Deleted watchlist item %s and %d matches", item_id, removed)
        return deleted

    # --- Matches ---

    async def get_matches(self, limit: int = DEFAULT_MATCH_LIMIT) -> list[Match]:
        with _storage_errors("get_matches"):
            while True:
                hits = await self.es.search(
                    MATCHES_INDEX,
                    query={"match_all": {}},
                    sort=[{"matched_at": {"order": "desc"}}],
                    size=limit,
                )
                owner_ids = sorted({str(h["watchlist_id"]) for h in hits})
                owners = await self.es.mget(WATCHLIST_INDEX, owner_ids)
                orphans = [h["_id"] for h in hits if str(h["watchlist_id"]) not in owners]
                if not orphans:
                    break
                # Matches whose owner was deleted mid-poll; purge and re-read the page
                removed = await self.es.delete_by_query(MATCHES_INDEX, {"ids": {"values": orphans}})
                logger.warning("Removed %d orphaned matches", removed)
                if not removed:
                    break

        return [
            Match(**{**hit, "query": owners[str(hit["watchlist_id"])].get("query")})
            for hit in hits
            if str(hit["watchlist_id"]) in owners
        ]

    async def upsert_match(self, match: MatchUpsert) -> None:
        doc_id = generate_match_doc_id(match.watchlist_id, match.market_ticker)
        fields = match.model_dump(mode="json")
        fields["watchlist_id"] = str(match.watchlist_id)
        fields["matched_at"] = datetime.now(timezone.utc).isoformat()
        with _storage_errors("upsert_match"):
            owner = await self.es.get(WATCHLIST_INDEX, fields["watchlist_id"])
        if owner is None:
            raise StorageError(f"Watchlist item {match.watchlist_id} not found for match {doc_id}")
        with _storage_errors("upsert_match"):
            await self.es.update(
                MATCHES_INDEX,
                doc_id,
                fields,
                upsert={**fields, "id": doc_id, "seen": False},
                refresh="wait_for",
            )

    async def mark_matches_seen(self, ids: list[RecordId]) -> int:
        if not ids:
            return 0
        with _storage_errors("mark_matches_seen"):
            return await self.es.update_by_query(
                MATCHES_INDEX,
                {"ids": {"values": [str(i) for i in ids]}},
                {"source": "ctx._source.seen = true", "lang": "painless"},
            )
