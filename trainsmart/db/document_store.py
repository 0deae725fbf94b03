"""
Remote document store contract

Per-user state lives in documents addressed by (collection, key). The store
offers one-shot reads, live subscriptions, full and partial writes, deletes,
and a descending scan over a numeric field for ranking.
"""
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
PROFILES_COLLECTION = "profiles"

Snapshot = Optional[dict]
SnapshotListener = Callable[[Snapshot], Awaitable[None]]


class Subscription:
    """Handle for a live document subscription"""

    def __init__(self, collection: str, key: str, on_close: Callable[[], None]):
        self.collection = collection
        self.key = key
        self._on_close = on_close
        self.closed = False

    def close(self) -> None:
        """Stop receiving snapshots (idempotent)"""
        if self.closed:
            return
        self.closed = True
        self._on_close()
        logger.debug(f"Subscription closed: {self.collection}/{self.key}")


class DocumentStore(ABC):
    """Async document store used as the remote source of truth"""

    @abstractmethod
    async def get(self, collection: str, key: str) -> Snapshot:
        """Read a document once (None if missing)"""

    @abstractmethod
    async def set(self, collection: str, key: str, data: dict) -> None:
        """Create or fully overwrite a document"""

    @abstractmethod
    async def update(self, collection: str, key: str, fields: dict) -> None:
        """
        Overwrite top-level fields of an existing document

        Raises:
            RecordNotFoundError: If the document does not exist
        """

    @abstractmethod
    async def delete(self, collection: str, key: str) -> None:
        """Delete a document (no-op if missing)"""

    @abstractmethod
    async def subscribe(self, collection: str, key: str, listener: SnapshotListener) -> Subscription:
        """
        Observe a document

        The listener receives the current snapshot right away and again after
        every change; None means the document is missing or was deleted.
        """

    @abstractmethod
    async def query_top(self, collection: str, field: str, limit: Optional[int] = None) -> List[dict]:
        """
        Documents ordered by a numeric field, highest first

        Ties keep insertion order. limit=None scans the whole collection.
        """

    async def close(self) -> None:
        """Release resources held by the store"""
