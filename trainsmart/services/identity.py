"""
Identity provider adapter

Authentication itself happens elsewhere; this only tracks "current identity
or none" and tells listeners when it changes.
"""
import logging
from typing import Awaitable, Callable, List, Optional

from trainsmart.models.user import Identity

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Optional[Identity]], Awaitable[None]]


class IdentityProvider:
    """Holds the signed-in identity and notifies listeners on change"""

    def __init__(self, identity: Optional[Identity] = None):
        self._identity = identity
        self._listeners: List[IdentityListener] = []

    @property
    def current(self) -> Optional[Identity]:
        return self._identity

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it"""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def set_identity(self, identity: Optional[Identity]) -> None:
        """Record a sign-in (identity) or sign-out (None)"""
        self._identity = identity
        logger.info(f"Identity changed: {identity.uid if identity else 'signed out'}")
        for listener in list(self._listeners):
            await listener(identity)
