"""In-memory cache of live Gemini chat sessions.

Sessions are keyed by conversation id and bounded by an LRU policy. The
database stays authoritative: an evicted session is rebuilt from stored
history on the next message. Turns of one conversation are serialized by an
asyncio.Lock that exists only while some caller holds or waits on it, so
lock bookkeeping is independent of session eviction.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

logger = logging.getLogger(__name__)


class ChatSessionCache:
    """Bounded LRU map of conversation id -> chat session."""

    def __init__(self, max_entries: int = 256) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._sessions: OrderedDict[str, Any] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    def get(self, conversation_id: str) -> Any | None:
        """Return the cached session, marking it most recently used."""
        if conversation_id in self._sessions:
            self._sessions.move_to_end(conversation_id)
            return self._sessions[conversation_id]
        return None

    def put(self, conversation_id: str, session: Any) -> None:
        if conversation_id in self._sessions:
            self._sessions.move_to_end(conversation_id)
            self._sessions[conversation_id] = session
            return
        self._sessions[conversation_id] = session
        if len(self._sessions) > self._max_entries:
            evicted, _ = self._sessions.popitem(last=False)
            logger.debug("Evicted chat session %s", evicted)

    def evict(self, conversation_id: str) -> None:
        self._sessions.pop(conversation_id, None)

    @asynccontextmanager
    async def lock(self, conversation_id: str) -> AsyncIterator[None]:
        """Hold the conversation's lock for one turn.

        The lock entry is dropped when its last holder or waiter leaves.
        """
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = self._locks[conversation_id] = asyncio.Lock()
            self._lock_users[conversation_id] = 0
        self._lock_users[conversation_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[conversation_id] -= 1
            if self._lock_users[conversation_id] == 0:
                del self._lock_users[conversation_id]
                del self._locks[conversation_id]

    @property
    def active_locks(self) -> int:
        return len(self._locks)

    def clear(self) -> None:
        """Drop every cached session. Locks in use are left to their holders."""
        self._sessions.clear()

    def __contains__(self, conversation_id: str) -> bool:
        return conversation_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


def _build_default_cache() -> ChatSessionCache:
    from estateflow.app.config import get_settings
    return ChatSessionCache(max_entries=get_settings().chat_session_cache_size)


chat_sessions = _build_default_cache()
