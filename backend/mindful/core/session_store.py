"""
Mindful Companion - Chat Session Store

In-memory registry of live chat sessions with automatic cleanup.
Bounded to prevent memory exhaustion; nothing is persisted.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional, TYPE_CHECKING

from .exceptions import SessionLimitError, SessionNotFoundError
from .session import ChatSession

if TYPE_CHECKING:
    from mindful.services.assistant import AssistantTransport

logger = logging.getLogger(__name__)


class ChatSessionStore:
    """
    In-memory store for active chat sessions.

    Privacy:
        - Sessions are ephemeral (memory-only)
        - Ending or evicting a session discards its message log

    Usage:
        store = ChatSessionStore(transport, max_sessions=100)
        await store.start()

        session = await store.create_session()

        await store.stop()
    """

    def __init__(
        self,
        transport: "AssistantTransport",
        max_sessions: int = 100,
        session_ttl_minutes: int = 120,
        cleanup_interval_seconds: int = 60,
        log_message_text: bool = False,
    ):
        """
        Initialize the chat session store.

        Args:
            transport: Assistant transport shared by all sessions
            max_sessions: Maximum concurrent sessions
            session_ttl_minutes: Idle time after which a session is evicted
            cleanup_interval_seconds: Background cleanup interval
            log_message_text: Passed to sessions (privacy flag)
        """
        self.transport = transport
        self._sessions: dict[str, ChatSession] = {}
        self._lock = asyncio.Lock()
        self._max_sessions = max_sessions
        self._session_ttl = timedelta(minutes=session_ttl_minutes)
        self._cleanup_interval = cleanup_interval_seconds
        self._log_message_text = log_message_text
        self._cleanup_task: Optional[asyncio.Task] = None
        self._started = False

    async def start(self) -> None:
        """Start background cleanup task."""
        if self._started:
            return

        self._cleanup_task = asyncio.create_task(self._cleanup_loop())
        self._started = True

        logger.info(
            "ChatSessionStore started: max=%d, ttl=%s, cleanup_interval=%ds",
            self._max_sessions,
            self._session_ttl,
            self._cleanup_interval,
        )

    async def stop(self) -> None:
        """Stop background tasks and clear sessions."""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

        async with self._lock:
            count = len(self._sessions)
            self._sessions.clear()

        self._started = False
        logger.info("ChatSessionStore stopped: cleared %d sessions", count)

    async def create_session(self) -> ChatSession:
        """
        Create a new chat session with a seeded message log.

        Raises:
            SessionLimitError: If at capacity
        """
        async with self._lock:
            if len(self._sessions) >= self._max_sessions:
                raise SessionLimitError(
                    f"Maximum concurrent sessions ({self._max_sessions}) reached"
                )

            session = ChatSession(
                transport=self.transport,
                log_message_text=self._log_message_text,
            )
            self._sessions[session.session_id] = session

        logger.info("Session created: %s", session.session_id[:8] + "...")
        return session

    async def get_session(self, session_id: str) -> Optional[ChatSession]:
        async with self._lock:
            return self._sessions.get(session_id)

    async def get_session_or_raise(self, session_id: str) -> ChatSession:
        """Get a session by ID or raise if not found."""
        session = await self.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session {session_id[:8]} not found")
        return session

    async def end_session(self, session_id: str) -> None:
        """
        Discard a session and its log.

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        async with self._lock:
            if self._sessions.pop(session_id, None) is None:
                raise SessionNotFoundError(f"Session {session_id[:8]} not found")

        logger.info("Session ended: %s", session_id[:8] + "...")

    async def count(self) -> int:
        async with self._lock:
            return len(self._sessions)

    async def evict_stale(self, now: Optional[datetime] = None) -> int:
        """
        Remove sessions idle for longer than the TTL.

        Sessions with a round trip in flight are never evicted.

        Returns:
            Number of sessions removed
        """
        now = now or datetime.now().astimezone()

        async with self._lock:
            stale_ids = [
                sid for sid, session in self._sessions.items()
                if not session.pending and now - session.last_activity > self._session_ttl
            ]
            for sid in stale_ids:
                del self._sessions[sid]

        if stale_ids:
            logger.info("Cleaned up %d stale chat sessions", len(stale_ids))
        return len(stale_ids)

    async def _cleanup_loop(self) -> None:
        """Background task to evict stale sessions."""
        while True:
            try:
                await asyncio.sleep(self._cleanup_interval)
                await self.evict_stale()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Error in cleanup loop: %s", str(e))
