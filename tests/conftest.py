"""Global test fixtures and utilities for trainsmart tests"""
import pytest
import httpx
from datetime import datetime, timezone

from trainsmart import config
from trainsmart.api.middleware import limiter
from trainsmart.api.server import create_api_application
from trainsmart.db.memory_store import InMemoryDocumentStore
from trainsmart.models.user import Identity
from trainsmart.services.user_data_service import UserDataStore


# ============================================================================
# Time Fixtures
# ============================================================================

@pytest.fixture
def fixed_now():
    """Wednesday 2024-01-10 12:00 UTC (week starts Monday 2024-01-08)"""
    return datetime(2024, 1, 10, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "user-123"


@pytest.fixture
def document_store():
    """Fresh in-memory document store"""
    return InMemoryDocumentStore()


@pytest.fixture
def notifications():
    """Collects notifications emitted by a session"""
    return []


@pytest.fixture
def make_user_store(document_store, notifications, fixed_now):
    """Factory for an unsigned-in session on the shared store"""
    def _make(clock_time=None, clock=None, timezone="UTC"):
        return UserDataStore(
            document_store,
            notify=notifications.append,
            clock=clock or (lambda: clock_time or fixed_now),
            timezone=timezone,
        )
    return _make


@pytest.fixture
def clock(fixed_now):
    """Adjustable session clock; set clock.now to move time"""
    class _Clock:
        now = fixed_now

        def __call__(self):
            return self.now

    return _Clock()


@pytest.fixture
async def user_store(make_user_store, test_user_id):
    """Signed-in session in READY state with a freshly seeded record"""
    store = make_user_store()
    await store.handle_identity(Identity(uid=test_user_id, display_name="Test User"))
    yield store
    await store.close()


@pytest.fixture
async def onboarded_store(user_store):
    """READY session that finished onboarding (weekly missions active)"""
    await user_store.set_onboarding_complete(True)
    return user_store


# ============================================================================
# API Fixtures
# ============================================================================

@pytest.fixture
def test_api_key():
    """Standard test API key"""
    return "test_key_123"


@pytest.fixture
def auth_headers(test_api_key):
    return {"Authorization": f"Bearer {test_api_key}"}


@pytest.fixture
def api_app(document_store, test_api_key, monkeypatch):
    """FastAPI app on the in-memory store with rate limiting off"""
    monkeypatch.setattr(config, "API_KEYS", [test_api_key])
    monkeypatch.setattr(limiter, "enabled", False)
    return create_api_application(document_store=document_store)


@pytest.fixture
async def api_client(api_app):
    """httpx client calling the app in-process"""
    transport = httpx.ASGITransport(app=api_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await api_app.state.sessions.close_all()
