"""Unit tests for the per-user session registry (trainsmart/api/sessions.py)"""
import pytest

from trainsmart.api.sessions import SessionRegistry
from trainsmart.db.document_store import USERS_COLLECTION
from trainsmart.services.user_data_service import SessionState


@pytest.fixture
async def registry(document_store):
    sessions = SessionRegistry(document_store)
    yield sessions
    await sessions.close_all()


@pytest.mark.asyncio
async def test_first_request_signs_in(registry, document_store):
    store = await registry.get("u1", display_name="Ana")

    assert store.state == SessionState.READY
    assert store.identity.uid == "u1"
    assert await document_store.get(USERS_COLLECTION, "u1") is not None
    assert await registry.get("u1") is store


@pytest.mark.asyncio
async def test_sign_out_reaches_anonymous(registry):
    store = await registry.get("u1")
    await store.add_xp(50)

    signed_out = await registry.sign_out("u1")

    assert signed_out is store
    assert store.state == SessionState.ANONYMOUS
    assert store.identity is None
    assert store.xp == 0


@pytest.mark.asyncio
async def test_next_request_signs_back_in(registry):
    store = await registry.get("u1")
    await store.add_xp(50)
    await registry.sign_out("u1")

    again = await registry.get("u1")

    assert again is store
    assert again.state == SessionState.READY
    assert again.xp == 50


@pytest.mark.asyncio
async def test_sign_out_unknown_user(registry):
    assert await registry.sign_out("ghost") is None


@pytest.mark.asyncio
async def test_closed_session_ignores_remote_changes(registry, document_store):
    store = await registry.get("u1")
    await registry.close("u1")

    await document_store.update(USERS_COLLECTION, "u1", {"xp": 999})

    assert store.xp == 0
