"""Unit tests for the in-memory document store"""
import pytest

from trainsmart.db.memory_store import InMemoryDocumentStore
from trainsmart.exceptions import RecordNotFoundError


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.mark.asyncio
async def test_get_missing_returns_none(store):
    assert await store.get("users", "nobody") is None


@pytest.mark.asyncio
async def test_set_and_get_are_copies(store):
    data = {"xp": 10, "tags": ["a"]}
    await store.set("users", "u1", data)

    data["tags"].append("b")
    fetched = await store.get("users", "u1")
    fetched["xp"] = 999

    assert await store.get("users", "u1") == {"xp": 10, "tags": ["a"]}


@pytest.mark.asyncio
async def test_update_merges_top_level_fields(store):
    await store.set("users", "u1", {"xp": 10, "diamonds": 3})

    await store.update("users", "u1", {"xp": 20})

    assert await store.get("users", "u1") == {"xp": 20, "diamonds": 3}


@pytest.mark.asyncio
async def test_update_missing_document_raises(store):
    with pytest.raises(RecordNotFoundError):
        await store.update("users", "ghost", {"xp": 1})


@pytest.mark.asyncio
async def test_delete_is_idempotent(store):
    await store.set("users", "u1", {"xp": 1})

    await store.delete("users", "u1")
    await store.delete("users", "u1")

    assert await store.get("users", "u1") is None


@pytest.mark.asyncio
async def test_subscribe_delivers_initial_and_changes(store):
    received = []

    async def listener(snapshot):
        received.append(snapshot)

    await store.set("users", "u1", {"xp": 1})
    subscription = await store.subscribe("users", "u1", listener)
    await store.update("users", "u1", {"xp": 2})
    await store.delete("users", "u1")

    assert received == [{"xp": 1}, {"xp": 2}, None]
    subscription.close()


@pytest.mark.asyncio
async def test_closed_subscription_stops_delivery(store):
    received = []

    async def listener(snapshot):
        received.append(snapshot)

    subscription = await store.subscribe("users", "u1", listener)
    subscription.close()
    subscription.close()
    await store.set("users", "u1", {"xp": 5})

    assert received == [None]
    assert subscription.closed is True


@pytest.mark.asyncio
async def test_subscription_scoped_to_key(store):
    received = []

    async def listener(snapshot):
        received.append(snapshot)

    await store.subscribe("users", "u1", listener)
    await store.set("users", "u2", {"xp": 5})
    await store.set("profiles", "u1", {"xp": 5})

    assert received == [None]


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_writes(store):
    async def broken(snapshot):
        if snapshot is not None:
            raise RuntimeError("listener bug")

    await store.subscribe("users", "u1", broken)
    await store.set("users", "u1", {"xp": 5})

    assert await store.get("users", "u1") == {"xp": 5}


@pytest.mark.asyncio
async def test_query_top_orders_descending_with_stable_ties(store):
    await store.set("profiles", "a", {"uid": "a", "xp": 100})
    await store.set("profiles", "b", {"uid": "b", "xp": 300})
    await store.set("profiles", "c", {"uid": "c", "xp": 100})
    await store.set("profiles", "d", {"uid": "d"})

    ranked = await store.query_top("profiles", "xp")

    assert [doc["uid"] for doc in ranked] == ["b", "a", "c", "d"]


@pytest.mark.asyncio
async def test_query_top_limit(store):
    for i in range(5):
        await store.set("profiles", f"u{i}", {"uid": f"u{i}", "xp": i})

    ranked = await store.query_top("profiles", "xp", limit=2)

    assert [doc["uid"] for doc in ranked] == ["u4", "u3"]
