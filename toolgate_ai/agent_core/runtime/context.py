from __future__ import annotations

"""Bounded conversation context owned by the ``Agent``.

The full context of a conversation is an append-only log in the context
store. What the model sees is a window over its most recent entries, cached
per conversation and hydrated from the store the first time a conversation is
touched in this process.

Each window is only ever touched from its conversation's queue worker, so no
locking is needed.
"""

import logging
from collections import deque
from typing import Deque, Dict, List

from ..repos.interfaces import KeyedStore
from ..schemas.base import new_id
from ..schemas.messages import ContextMessage

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_WINDOW = 100


class ConversationContext:
    """Most recent ``window`` context messages per conversation."""

    def __init__(self, *, store: KeyedStore[ContextMessage], window: int = DEFAULT_CONTEXT_WINDOW) -> None:
        if window < 1:
            raise ValueError("context window must be at least 1")
        self._store = store
        self._window = window
        self._cache: Dict[str, Deque[ContextMessage]] = {}

    @property
    def window(self) -> int:
        return self._window

    async def _load(self, conversation: str) -> Deque[ContextMessage]:
        cached = self._cache.get(conversation)
        if cached is None:
            records = await self._store.read(conversation)
            cached = deque((r.payload for r in records), maxlen=self._window)
            self._cache[conversation] = cached
            logger.debug(f"Hydrated context of {conversation} with {len(cached)} of {len(records)} messages")
        return cached

    async def append(self, conversation: str, message: ContextMessage) -> None:
        """Persist ``message`` to the context log and add it to the window."""
        window = await self._load(conversation)
        await self._store.create(new_id(), conversation, message)
        window.append(message)

    async def messages(self, conversation: str) -> List[ContextMessage]:
        """Return the window of ``conversation``, oldest first."""
        return list(await self._load(conversation))

    def evict(self, conversation: str) -> None:
        """Drop the cached window; the next access re-reads the store."""
        self._cache.pop(conversation, None)
