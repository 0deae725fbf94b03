"""
PostgreSQL document store

Documents are JSONB rows keyed by (collection, key). A trigger publishes
every change on the `document_changes` channel; one LISTEN connection per
store fans the notifications out to subscribers, which re-read the row.
If that connection drops, the listener reconnects and re-sends every
subscribed document.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

import psycopg
from psycopg.types.json import Jsonb

from trainsmart.db.connection import Database
from trainsmart.db.document_store import DocumentStore, Snapshot, SnapshotListener, Subscription
from trainsmart.exceptions import DatabaseError, RecordNotFoundError, wrap_external_exception

logger = logging.getLogger(__name__)

NOTIFY_CHANNEL = "document_changes"
RECONNECT_DELAY_SECONDS = 1.0

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS documents (
    seq BIGSERIAL,
    collection TEXT NOT NULL,
    key TEXT NOT NULL,
    data JSONB NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (collection, key)
);

CREATE OR REPLACE FUNCTION notify_document_change() RETURNS trigger AS $$
BEGIN
    IF TG_OP = 'DELETE' THEN
        PERFORM pg_notify('document_changes', OLD.collection || '/' || OLD.key);
        RETURN OLD;
    END IF;
    PERFORM pg_notify('document_changes', NEW.collection || '/' || NEW.key);
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS documents_notify ON documents;
CREATE TRIGGER documents_notify
    AFTER INSERT OR UPDATE OR DELETE ON documents
    FOR EACH ROW EXECUTE FUNCTION notify_document_change();
"""


class PostgresDocumentStore(DocumentStore):
    """Document store backed by a psycopg connection pool"""

    def __init__(self, database: Database):
        self.db = database
        self._listeners: Dict[Tuple[str, str], List[SnapshotListener]] = {}
        self._listen_task: Optional[asyncio.Task] = None
        self._listen_conn: Optional[psycopg.AsyncConnection] = None
        self._restart_task: Optional[asyncio.Task] = None
        self._closed = False

    async def ensure_schema(self) -> None:
        """Create the documents table and change trigger"""
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(SCHEMA_SQL)
                await conn.commit()
            logger.info("Document schema ready")
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="ensure_schema")

    async def get(self, collection: str, key: str) -> Snapshot:
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        "SELECT data FROM documents WHERE collection = %s AND key = %s",
                        (collection, key)
                    )
                    row = await cur.fetchone()
            return row["data"] if row else None
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="get_document", context={"collection": collection, "key": key})

    async def set(self, collection: str, key: str, data: dict) -> None:
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        """
                        INSERT INTO documents (collection, key, data)
                        VALUES (%s, %s, %s)
                        ON CONFLICT (collection, key)
                        DO UPDATE SET data = EXCLUDED.data, updated_at = CURRENT_TIMESTAMP
                        """,
                        (collection, key, Jsonb(data))
                    )
                await conn.commit()
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="set_document", context={"collection": collection, "key": key})

    async def update(self, collection: str, key: str, fields: dict) -> None:
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        """
                        UPDATE documents
                        SET data = data || %s, updated_at = CURRENT_TIMESTAMP
                        WHERE collection = %s AND key = %s
                        """,
                        (Jsonb(fields), collection, key)
                    )
                    updated = cur.rowcount
                await conn.commit()
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="update_document", context={"collection": collection, "key": key})

        if updated == 0:
            raise RecordNotFoundError(
                f"Cannot update missing document {collection}/{key}",
                record_type=collection,
                record_id=key,
            )

    async def delete(self, collection: str, key: str) -> None:
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        "DELETE FROM documents WHERE collection = %s AND key = %s",
                        (collection, key)
                    )
                await conn.commit()
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="delete_document", context={"collection": collection, "key": key})

    async def query_top(self, collection: str, field: str, limit: Optional[int] = None) -> List[dict]:
        query = """
            SELECT data FROM documents
            WHERE collection = %s
            ORDER BY COALESCE((data->>%s)::numeric, 0) DESC, seq ASC
        """
        params: tuple = (collection, field)
        if limit is not None:
            query += " LIMIT %s"
            params = (collection, field, limit)

        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(query, params)
                    rows = await cur.fetchall()
            return [row["data"] for row in rows]
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="query_top", context={"collection": collection, "field": field})

    async def subscribe(self, collection: str, key: str, listener: SnapshotListener) -> Subscription:
        await self._ensure_listening()

        listeners = self._listeners.setdefault((collection, key), [])
        listeners.append(listener)

        def _remove() -> None:
            if listener in listeners:
                listeners.remove(listener)

        subscription = Subscription(collection, key, _remove)
        await listener(await self.get(collection, key))
        return subscription

    async def close(self) -> None:
        self._closed = True
        for task in (self._restart_task, self._listen_task):
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._restart_task = None
        self._listen_task = None
        await self._close_listen_conn()
        self._listeners.clear()

    async def _close_listen_conn(self) -> None:
        conn = self._listen_conn
        self._listen_conn = None
        if conn is None:
            return
        try:
            await conn.close()
        except psycopg.Error as e:
            logger.warning(f"Error closing listen connection: {e}")

    async def _ensure_listening(self) -> None:
        if self._listen_task is not None:
            return
        await self._close_listen_conn()
        try:
            self._listen_conn = await self.db.listen_connection()
            await self._listen_conn.execute(f"LISTEN {NOTIFY_CHANNEL}")
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="listen")
        self._listen_task = asyncio.create_task(self._listen_loop())
        self._listen_task.add_done_callback(self._on_listen_done)
        logger.info(f"Listening for document changes on '{NOTIFY_CHANNEL}'")

    def _on_listen_done(self, task: asyncio.Task) -> None:
        if self._listen_task is task:
            self._listen_task = None
        if task.cancelled():
            return

        error = task.exception()
        if self._closed:
            return
        if error is not None:
            logger.error(f"Document change listener stopped: {error}", exc_info=error)
        else:
            logger.warning("Document change listener ended unexpectedly")

        if self._listeners:
            self._restart_task = asyncio.get_running_loop().create_task(self._restart_listening())

    async def _restart_listening(self) -> None:
        """Reconnect, then push a fresh snapshot to every listener to cover missed changes"""
        await asyncio.sleep(RECONNECT_DELAY_SECONDS)
        if self._closed:
            return
        try:
            await self._ensure_listening()
        except DatabaseError as e:
            logger.error(f"Could not restart document change listener: {e}", exc_info=True)
            return

        for (collection, key), listeners in list(self._listeners.items()):
            await self._publish(collection, key, list(listeners))

    async def _publish(self, collection: str, key: str, listeners: List[SnapshotListener]) -> None:
        try:
            snapshot = await self.get(collection, key)
        except Exception as e:
            logger.error(f"Could not read {collection}/{key} after change: {e}", exc_info=True)
            return

        for listener in listeners:
            try:
                await listener(snapshot)
            except Exception as e:
                logger.error(f"Snapshot listener failed for {collection}/{key}: {e}", exc_info=True)

    async def _listen_loop(self) -> None:
        async for notify in self._listen_conn.notifies():
            collection, _, key = notify.payload.partition("/")
            listeners = list(self._listeners.get((collection, key), []))
            if listeners:
                await self._publish(collection, key, listeners)
