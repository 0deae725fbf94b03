"""
Process-local document store

Used by tests and when running without PostgreSQL (USE_IN_MEMORY_STORE=true).
Nothing is persisted across restarts.
"""

import copy
import logging
from typing import Dict, List, Optional, Tuple

from trainsmart.db.document_store import DocumentStore, Snapshot, SnapshotListener, Subscription
from trainsmart.exceptions import RecordNotFoundError

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """In-memory document store with synchronous change delivery"""

    def __init__(self):
        self._collections: Dict[str, Dict[str, dict]] = {}
        self._listeners: Dict[Tuple[str, str], List[SnapshotListener]] = {}

    async def get(self, collection: str, key: str) -> Snapshot:
        document = self._collections.get(collection, {}).get(key)
        return copy.deepcopy(document)

    async def set(self, collection: str, key: str, data: dict) -> None:
        self._collections.setdefault(collection, {})[key] = copy.deepcopy(data)
        logger.debug(f"Set {collection}/{key}")
        await self._publish(collection, key)

    async def update(self, collection: str, key: str, fields: dict) -> None:
        document = self._collections.get(collection, {}).get(key)
        if document is None:
            raise RecordNotFoundError(
                f"Cannot update missing document {collection}/{key}",
                record_type=collection,
                record_id=key,
            )
        document.update(copy.deepcopy(fields))
        logger.debug(f"Updated {collection}/{key}: {sorted(fields)}")
        await self._publish(collection, key)

    async def delete(self, collection: str, key: str) -> None:
        if self._collections.get(collection, {}).pop(key, None) is not None:
            logger.debug(f"Deleted {collection}/{key}")
            await self._publish(collection, key)

    async def subscribe(self, collection: str, key: str, listener: SnapshotListener) -> Subscription:
        listeners = self._listeners.setdefault((collection, key), [])
        listeners.append(listener)

        def _remove() -> None:
            if listener in listeners:
                listeners.remove(listener)

        subscription = Subscription(collection, key, _remove)
        await listener(await self.get(collection, key))
        return subscription

    async def query_top(self, collection: str, field: str, limit: Optional[int] = None) -> List[dict]:
        documents = list(self._collections.get(collection, {}).values())
        # sorted() is stable with reverse=True, so ties keep insertion order
        ranked = sorted(documents, key=lambda doc: doc.get(field) or 0, reverse=True)
        if limit is not None:
            ranked = ranked[:limit]
        return copy.deepcopy(ranked)

    async def _publish(self, collection: str, key: str) -> None:
        snapshot = await self.get(collection, key)
        for listener in list(self._listeners.get((collection, key), [])):
            try:
                await listener(copy.deepcopy(snapshot))
            except Exception as e:
                logger.error(f"Snapshot listener failed for {collection}/{key}: {e}", exc_info=True)
