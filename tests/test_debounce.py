import asyncio

import pytest

from reflex_json_table.debounce import Debouncer


def test_burst_delivers_last_value_once():
    delivered: list[str] = []

    async def scenario() -> None:
        debouncer = Debouncer(delivered.append, 0.05)
        debouncer.submit("a")
        await asyncio.sleep(0.01)
        debouncer.submit("ab")
        await asyncio.sleep(0.01)
        last = debouncer.submit("abc")
        assert debouncer.pending
        await last
        assert not debouncer.pending

    asyncio.run(scenario())
    assert delivered == ["abc"]


def test_superseded_task_ends_cancelled():
    async def scenario() -> tuple[asyncio.Task, asyncio.Task]:
        debouncer = Debouncer(lambda _: None, 0.05)
        first = debouncer.submit("a")
        second = debouncer.submit("b")
        await asyncio.wait({first, second})
        return first, second

    first, second = asyncio.run(scenario())
    assert first.cancelled()
    assert not second.cancelled()


def test_cancel_prevents_delivery():
    delivered: list[str] = []

    async def scenario() -> asyncio.Task:
        debouncer = Debouncer(delivered.append, 0.02)
        task = debouncer.submit("x")
        debouncer.cancel()
        assert not debouncer.pending
        await asyncio.sleep(0.05)
        return task

    task = asyncio.run(scenario())
    assert task.cancelled()
    assert delivered == []


def test_spaced_submissions_each_deliver():
    delivered: list[str] = []

    async def scenario() -> None:
        debouncer = Debouncer(delivered.append, 0.01)
        await debouncer.submit("a")
        await debouncer.submit("b")

    asyncio.run(scenario())
    assert delivered == ["a", "b"]


def test_negative_wait_rejected():
    with pytest.raises(ValueError):
        Debouncer(lambda _: None, -1)
