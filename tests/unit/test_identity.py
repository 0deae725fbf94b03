"""Unit tests for the identity provider adapter"""
import pytest
from unittest.mock import AsyncMock

from trainsmart.models.user import Identity
from trainsmart.services.identity import IdentityProvider
from trainsmart.services.user_data_service import SessionState


@pytest.mark.asyncio
async def test_set_identity_notifies_listeners():
    provider = IdentityProvider()
    listener = AsyncMock()
    provider.subscribe(listener)

    identity = Identity(uid="u1", display_name="Ana")
    await provider.set_identity(identity)
    await provider.set_identity(None)

    assert provider.current is None
    assert [call.args[0] for call in listener.await_args_list] == [identity, None]


@pytest.mark.asyncio
async def test_unsubscribe_stops_notifications():
    provider = IdentityProvider()
    listener = AsyncMock()
    unsubscribe = provider.subscribe(listener)

    unsubscribe()
    unsubscribe()
    await provider.set_identity(Identity(uid="u1"))

    listener.assert_not_awaited()


@pytest.mark.asyncio
async def test_user_store_follows_provider(make_user_store):
    provider = IdentityProvider()
    store = make_user_store()
    provider.subscribe(store.handle_identity)

    await provider.set_identity(Identity(uid="u1", display_name="Ana"))
    assert store.state == SessionState.READY
    assert store.identity.uid == "u1"

    await provider.set_identity(None)
    assert store.state == SessionState.ANONYMOUS
