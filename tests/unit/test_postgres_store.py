"""Unit tests for the PostgreSQL document store (trainsmart/db/postgres_store.py)"""
import asyncio
import pytest
import psycopg
from unittest.mock import AsyncMock, MagicMock, patch

from trainsmart.db.postgres_store import PostgresDocumentStore
from trainsmart.exceptions import ConnectionError, RecordNotFoundError


def _mock_database(fetchone=None, fetchall=None, rowcount=1, error=None):
    """Database whose pooled connection yields a scripted cursor"""
    cursor = MagicMock()
    cursor.execute = AsyncMock(side_effect=error)
    cursor.fetchone = AsyncMock(return_value=fetchone)
    cursor.fetchall = AsyncMock(return_value=fetchall or [])
    cursor.rowcount = rowcount

    conn = MagicMock()
    conn.cursor.return_value.__aenter__ = AsyncMock(return_value=cursor)
    conn.cursor.return_value.__aexit__ = AsyncMock(return_value=False)
    conn.commit = AsyncMock()

    database = MagicMock()
    database.connection.return_value.__aenter__ = AsyncMock(return_value=conn)
    database.connection.return_value.__aexit__ = AsyncMock(return_value=False)
    return database, conn, cursor


@pytest.mark.asyncio
async def test_get_returns_document():
    database, _, cursor = _mock_database(fetchone={"data": {"xp": 10}})
    store = PostgresDocumentStore(database)

    assert await store.get("users", "u1") == {"xp": 10}
    assert cursor.execute.call_args[0][1] == ("users", "u1")


@pytest.mark.asyncio
async def test_get_missing_document():
    database, _, _ = _mock_database(fetchone=None)

    assert await PostgresDocumentStore(database).get("users", "u1") is None


@pytest.mark.asyncio
async def test_set_upserts_and_commits():
    database, conn, cursor = _mock_database()

    await PostgresDocumentStore(database).set("users", "u1", {"xp": 0})

    assert "ON CONFLICT" in cursor.execute.call_args[0][0]
    conn.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_update_merges_fields():
    database, _, cursor = _mock_database(rowcount=1)

    await PostgresDocumentStore(database).update("users", "u1", {"xp": 5})

    assert "data || %s" in cursor.execute.call_args[0][0]


@pytest.mark.asyncio
async def test_update_missing_document_raises():
    database, _, _ = _mock_database(rowcount=0)

    with pytest.raises(RecordNotFoundError):
        await PostgresDocumentStore(database).update("users", "ghost", {"xp": 5})


@pytest.mark.asyncio
async def test_query_top_unbounded():
    rows = [{"data": {"uid": "a", "xp": 30}}, {"data": {"uid": "b", "xp": 10}}]
    database, _, cursor = _mock_database(fetchall=rows)

    result = await PostgresDocumentStore(database).query_top("profiles", "xp")

    assert [doc["uid"] for doc in result] == ["a", "b"]
    assert "LIMIT" not in cursor.execute.call_args[0][0]


@pytest.mark.asyncio
async def test_query_top_with_limit():
    database, _, cursor = _mock_database()

    await PostgresDocumentStore(database).query_top("profiles", "xp", limit=5)

    query, params = cursor.execute.call_args[0]
    assert "LIMIT" in query
    assert params == ("profiles", "xp", 5)


@pytest.mark.asyncio
async def test_driver_errors_are_wrapped():
    database, _, _ = _mock_database(error=psycopg.OperationalError("connection refused"))

    with pytest.raises(ConnectionError) as exc_info:
        await PostgresDocumentStore(database).get("users", "u1")

    assert exc_info.value.operation == "get_document"


# ============================================================================
# Change Listener Tests
# ============================================================================

async def _dropped_notifies():
    raise psycopg.OperationalError("server closed the connection unexpectedly")
    yield


async def _idle_notifies():
    await asyncio.Event().wait()
    yield


def _listen_conn(notifies):
    conn = MagicMock()
    conn.execute = AsyncMock()
    conn.close = AsyncMock()
    conn.notifies = notifies
    return conn


async def _wait_for(condition, attempts=50):
    for _ in range(attempts):
        if condition():
            return
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_listener_reconnects_after_connection_drop(caplog):
    database, _, _ = _mock_database(fetchone={"data": {"xp": 40}})
    dropped = _listen_conn(_dropped_notifies)
    healthy = _listen_conn(_idle_notifies)
    database.listen_connection = AsyncMock(side_effect=[dropped, healthy])
    store = PostgresDocumentStore(database)
    listener = AsyncMock()

    with patch("trainsmart.db.postgres_store.RECONNECT_DELAY_SECONDS", 0):
        await store.subscribe("users", "u1", listener)
        await _wait_for(lambda: listener.await_count >= 2)

    assert database.listen_connection.await_count == 2
    dropped.close.assert_awaited_once()
    assert listener.await_args_list[-1].args[0] == {"xp": 40}
    assert "Document change listener stopped" in caplog.text

    await store.close()
    healthy.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_no_reconnect_after_close():
    database, _, _ = _mock_database(fetchone=None)
    healthy = _listen_conn(_idle_notifies)
    database.listen_connection = AsyncMock(return_value=healthy)
    store = PostgresDocumentStore(database)

    await store.subscribe("users", "u1", AsyncMock())
    await store.close()
    await asyncio.sleep(0)

    assert database.listen_connection.await_count == 1
    assert store._listen_task is None
