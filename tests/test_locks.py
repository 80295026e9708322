import asyncio

import pytest

from daily.core.locks import KeyedLocks

pytestmark = pytest.mark.asyncio


async def test_same_key_is_serialized():
    locks = KeyedLocks()
    events = []

    async def work(name: str):
        async with locks.hold("key"):
            events.append(f"{name} start")
            await asyncio.sleep(0.01)
            events.append(f"{name} end")

    await asyncio.gather(work("a"), work("b"))
    assert events == ["a start", "a end", "b start", "b end"]
    assert len(locks) == 0


async def test_different_keys_run_concurrently():
    locks = KeyedLocks()
    inside = asyncio.Event()

    async def first():
        async with locks.hold("one"):
            await asyncio.wait_for(inside.wait(), timeout=1)

    async def second():
        async with locks.hold("two"):
            inside.set()

    await asyncio.gather(first(), second())
    assert len(locks) == 0


async def test_lock_released_on_error():
    locks = KeyedLocks()
    with pytest.raises(RuntimeError):
        async with locks.hold("key"):
            raise RuntimeError()
    async with locks.hold("key"):
        pass
    assert len(locks) == 0
