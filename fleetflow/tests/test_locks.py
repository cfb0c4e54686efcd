import asyncio

import pytest

from fleetflow.core.locks import KeyedLock


@pytest.mark.asyncio
async def test_same_key_is_serialized():
    locks = KeyedLock()
    events = []

    async def worker(name):
        async with locks.hold([("vehicle", 1)]):
            events.append(f"{name}-in")
            await asyncio.sleep(0.01)
            events.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert events in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])


@pytest.mark.asyncio
async def test_disjoint_keys_run_concurrently():
    locks = KeyedLock()
    inside = asyncio.Event()

    async def first():
        async with locks.hold([("vehicle", 1)]):
            await asyncio.wait_for(inside.wait(), timeout=1)

    async def second():
        async with locks.hold([("vehicle", 2)]):
            inside.set()

    await asyncio.gather(first(), second())


@pytest.mark.asyncio
async def test_overlapping_keys_in_any_order_do_not_deadlock():
    locks = KeyedLock()

    async def worker(keys):
        for _ in range(20):
            async with locks.hold(keys):
                await asyncio.sleep(0)

    await asyncio.wait_for(
        asyncio.gather(
            worker([("vehicle", 1), ("driver", 2)]),
            worker([("driver", 2), ("vehicle", 1)]),
        ),
        timeout=2,
    )


@pytest.mark.asyncio
async def test_released_entries_are_dropped():
    locks = KeyedLock()

    async with locks.hold([("driver", 1), ("driver", 1), ("vehicle", 3)]):
        assert len(locks) == 2

    assert len(locks) == 0


@pytest.mark.asyncio
async def test_lock_is_released_when_the_body_raises():
    locks = KeyedLock()

    with pytest.raises(RuntimeError):
        async with locks.hold([("vehicle", 1)]):
            raise RuntimeError("boom")

    async with locks.hold([("vehicle", 1)]):
        pass
    assert len(locks) == 0
