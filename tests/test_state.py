from __future__ import annotations

import asyncio

import pytest

from pddbot.core.state import ChatLocks, GlucoseTag, PendingStore, WeightEntry


def test_pending_set_get_clear() -> None:
    store = PendingStore()
    assert store.get(1) is None
    store.set(1, WeightEntry.WEIGHT)
    store.set(1, WeightEntry.WEIGHT)
    assert store.get(1) is WeightEntry.WEIGHT
    store.set(2, GlucoseTag.AFTER_MEAL)
    store.clear(1)
    store.clear(1)
    assert store.get(1) is None
    assert store.get(2) is GlucoseTag.AFTER_MEAL


@pytest.mark.asyncio
async def test_chat_lock_serializes_same_chat() -> None:
    locks = ChatLocks()
    events: list[str] = []

    async def work(name: str) -> None:
        async with locks.hold(1):
            events.append(f"{name}:start")
            await asyncio.sleep(0.01)
            events.append(f"{name}:end")

    await asyncio.gather(work("a"), work("b"))
    assert events == ["a:start", "a:end", "b:start", "b:end"]


@pytest.mark.asyncio
async def test_chat_lock_does_not_block_other_chats() -> None:
    locks = ChatLocks()
    entered = asyncio.Event()

    async def holder() -> None:
        async with locks.hold(1):
            await asyncio.wait_for(entered.wait(), timeout=1)

    async def other() -> None:
        async with locks.hold(2):
            entered.set()

    await asyncio.gather(holder(), other())
    assert entered.is_set()
