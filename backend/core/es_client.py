"""Elasticsearch client wrapper with document CRUD and by-query operations."""

import logging
from typing import Any

from elasticsearch import AsyncElasticsearch, NotFoundError

logger = logging.getLogger(__name__)


class ESClient:
    def __init__(self, hosts: list[str], timeout: int = 30):
        self.client = AsyncElasticsearch(hosts=hosts, request_timeout=timeout)

    async def close(self):
        await self.client.close()

    async def health(self) -> dict:
        return await self.client.cluster.health()

    async def ensure_index(self, name: str, body: dict) -> bool:
        """Create index if it doesn't exist. If it exists, add any new mapped fields."""
        if await self.client.indices.exists(index=name):
            properties = body.get("mappings", {}).get("properties")
            if properties:
                try:
                    await self.client.indices.put_mapping(index=name, properties=properties)
                except Exception as e:
                    logger.warning("Could not update mappings for %s: %s", name, e)
            return False
        await self.client.indices.create(index=name, mappings=body.get("mappings"))
        logger.info("Created index: %s", name)
        return True

    async def index_doc(self, index: str, doc_id: str, body: dict, refresh: str | bool = False) -> dict:
        return await self.client.index(index=index, id=doc_id, document=body, refresh=refresh)

    async def get(self, index: str, doc_id: str) -> dict | None:
        try:
            result = await self.client.get(index=index, id=doc_id)
            return result["_source"]
        except NotFoundError:
            return None

    async def mget(self, index: str, ids: list[str]) -> dict[str, dict]:
        """Fetch multiple documents by ID. Returns {doc_id: source} for found docs."""
        if not ids:
            return {}
        result = await self.client.mget(index=index, ids=ids)
        return {
            doc["_id"]: doc["_source"]
            for doc in result["docs"]
            if doc.get("found")
        }

    async def update(
        self,
        index: str,
        doc_id: str,
        body: dict,
        upsert: dict | None = None,
        refresh: str | bool = False,
    ) -> dict | None:
        """Partial update. With ``upsert`` the document is created when missing;
        without it a missing document returns None."""
        try:
            return await self.client.update(
                index=index,
                id=doc_id,
                doc=body,
                upsert=upsert,
                refresh=refresh,
                retry_on_conflict=3,
            )
        except NotFoundError:
            if upsert is not None:
                raise
            return None

    async def delete(self, index: str, doc_id: str, refresh: str | bool = False) -> bool:
        try:
            await self.client.delete(index=index, id=doc_id, refresh=refresh)
            return True
        except NotFoundError:
            return False

    async def delete_by_query(self, index: str, query: dict) -> int:
        result = await self.client.delete_by_query(
            index=index, query=query, refresh=True, conflicts="proceed"
        )
        return result.get("deleted", 0)

    async def update_by_query(self, index: str, query: dict, script: dict) -> int:
        result = await self.client.update_by_query(
            index=index, query=query, script=script, refresh=True, conflicts="proceed"
        )
        return result.get("updated", 0)

    async def search(
        self,
        index: str,
        query: dict | None = None,
        sort: list | None = None,
        size: int = 100,
    ) -> list[dict]:
        """Search and return the hit sources, with the doc id under ``_id``."""
        kwargs: dict[str, Any] = {"size": size}
        if query:
            kwargs["query"] = query
        if sort:
            kwargs["sort"] = sort
        result = await self.client.search(index=index, **kwargs)
        return [{**hit["_source"], "_id": hit["_id"]} for hit in result["hits"]["hits"]]
