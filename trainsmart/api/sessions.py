"""One UserDataStore per user id, shared across API requests"""
import asyncio
import logging
from typing import Callable, Dict, List, Optional

from trainsmart.db.document_store import DocumentStore
from trainsmart.models.user import Identity, Notification
from trainsmart.observability.metrics import active_sessions
from trainsmart.services.identity import IdentityProvider
from trainsmart.services.user_data_service import UserDataStore

logger = logging.getLogger(__name__)


class _Session:
    """A user's store, driven by its own identity provider"""

    def __init__(self, documents: DocumentStore):
        self.notifications: List[Notification] = []
        self.store = UserDataStore(documents, notify=self.notifications.append)
        self.identity = IdentityProvider()
        self.unsubscribe: Callable[[], None] = self.identity.subscribe(self.store.handle_identity)


class SessionRegistry:
    """
    Keeps a live, subscribed UserDataStore per user

    Sign-in and sign-out go through each session's IdentityProvider, which
    drives UserDataStore.handle_identity. Notifications emitted by a session
    are buffered until the next API response drains them.
    """

    def __init__(self, documents: DocumentStore):
        self.documents = documents
        self._sessions: Dict[str, _Session] = {}
        self._lock = asyncio.Lock()

    async def get(self, user_id: str, display_name: Optional[str] = None) -> UserDataStore:
        """Return the user's session, signing it in on first use or after a sign-out"""
        async with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                session = _Session(self.documents)
                self._sessions[user_id] = session
                active_sessions.set(len(self._sessions))

            if session.identity.current is None:
                await session.identity.set_identity(
                    Identity(uid=user_id, display_name=display_name or "Anonymous")
                )
                logger.info(f"Session signed in for {user_id} ({session.store.state.value})")
            return session.store

    async def sign_out(self, user_id: str) -> Optional[UserDataStore]:
        """Drop the identity; the store falls back to local defaults"""
        async with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                return None
            await session.identity.set_identity(None)
            return session.store

    def drain_notifications(self, user_id: str) -> List[Notification]:
        session = self._sessions.get(user_id)
        if session is None:
            return []
        drained = list(session.notifications)
        session.notifications.clear()
        return drained

    async def close(self, user_id: str) -> None:
        async with self._lock:
            session = self._sessions.pop(user_id, None)
            active_sessions.set(len(self._sessions))
        if session is not None:
            session.unsubscribe()
            await session.store.close()

    async def close_all(self) -> None:
        for user_id in list(self._sessions):
            await self.close(user_id)
        logger.info("All sessions closed")
