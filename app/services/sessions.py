import asyncio
import logging
import time
from typing import Callable, Dict, Optional

from app.services.debt_manager import DebtCollectionManager, DebtStore
from app.services.notifications import NotificationBuffer

logger = logging.getLogger(__name__)


class DebtSession:
    """A signed-in user's debt mirror and their pending notifications."""

    def __init__(self, manager: DebtCollectionManager, notifications: NotificationBuffer, now: float = 0.0):
        self.manager = manager
        self.notifications = notifications
        self.loaded = False
        self.last_used = now
        self.load_lock = asyncio.Lock()


class DebtSessionRegistry:
    """
    One DebtSession per user id, loaded from the store on first use.

    - Concurrent first requests share one initial load; ``loaded`` turns
      True only once that load succeeded
    - Sessions unused for ``idle_ttl`` seconds are evicted on the next
      ``get``; ``None`` keeps them until ``drop``
    """

    def __init__(
        self,
        store_factory: Callable[[], DebtStore],
        buffer_size: int = 50,
        idle_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.store_factory = store_factory
        self.buffer_size = buffer_size
        self.idle_ttl = idle_ttl
        self.clock = clock
        self._sessions: Dict[str, DebtSession] = {}

    async def get(self, user_id: str) -> DebtSession:
        now = self.clock()
        self.evict_idle(now)

        session = self._sessions.get(user_id)
        if session is None:
            notifications = NotificationBuffer(maxlen=self.buffer_size)
            manager = DebtCollectionManager(self.store_factory(), notifications)
            session = DebtSession(manager, notifications, now=now)
            self._sessions[user_id] = session
            logger.info("Opened debt session for user %s", user_id)
        session.last_used = now

        if not session.loaded:
            async with session.load_lock:
                # Another request may have finished the load while we waited
                if not session.loaded:
                    await session.manager.refresh()
                    session.loaded = session.manager.last_error is None

        return session

    def evict_idle(self, now: Optional[float] = None) -> int:
        """Forget sessions idle longer than ``idle_ttl``. Returns how many went."""
        if self.idle_ttl is None:
            return 0
        if now is None:
            now = self.clock()

        expired = [
            user_id for user_id, session in self._sessions.items()
            if now - session.last_used > self.idle_ttl
        ]
        for user_id in expired:
            del self._sessions[user_id]
            logger.info("Evicted idle debt session for user %s", user_id)
        return len(expired)

    def drop(self, user_id: str) -> bool:
        """Forget a user's session (sign-out)."""
        session = self._sessions.pop(user_id, None)
        if session is not None:
            logger.info("Closed debt session for user %s", user_id)
        return session is not None

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
