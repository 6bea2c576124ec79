from __future__ import annotations

import asyncio
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from enum import Enum


class GlucoseTag(Enum):
    BEFORE_MEAL = "before_meal"
    AFTER_MEAL = "after_meal"


class WeightEntry(Enum):
    WEIGHT = "weight"


# What the next free-text reply in a chat means. A glucose continuation
# carries its tag; weight has no parameters.
Pending = GlucoseTag | WeightEntry


class PendingStore:
    """
    In-memory "next reply means X" slot, one per chat.

    Lives for the process lifetime only; nothing is persisted.
    """

    def __init__(self) -> None:
        self._by_chat: dict[int, Pending] = {}
        self._lock = threading.Lock()

    def set(self, chat_id: int, pending: Pending) -> None:
        with self._lock:
            self._by_chat[chat_id] = pending

    def get(self, chat_id: int) -> Pending | None:
        with self._lock:
            return self._by_chat.get(chat_id)

    def clear(self, chat_id: int) -> None:
        with self._lock:
            self._by_chat.pop(chat_id, None)


class ChatLocks:
    """
    One asyncio lock per chat.

    Messages from the same chat are handled one at a time; different chats
    never wait on each other.
    """

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}

    def _lock_for(self, chat_id: int) -> asyncio.Lock:
        lock = self._locks.get(chat_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[chat_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, chat_id: int) -> AsyncIterator[None]:
        async with self._lock_for(chat_id):
            yield
