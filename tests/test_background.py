"""
Tests for detached background operations.
"""

import asyncio
import logging

from mealwise.background import BackgroundTasks


def test_detached_failure_is_logged_not_raised(caplog):
    tasks = BackgroundTasks()
    finished = []

    async def ok():
        await asyncio.sleep(0)
        finished.append("ok")

    async def boom():
        raise RuntimeError("store offline")

    async def scenario():
        tasks.detach(ok(), "ok")
        tasks.detach(boom(), "increment_usage:r1")
        assert tasks.pending == 2
        await tasks.drain()

    with caplog.at_level(logging.WARNING, logger="mealwise.background"):
        asyncio.run(scenario())

    assert finished == ["ok"]
    assert tasks.pending == 0
    assert "increment_usage:r1" in caplog.text
    assert "store offline" in caplog.text


def test_drain_waits_for_tasks_scheduled_while_draining():
    tasks = BackgroundTasks()
    order = []

    async def second():
        order.append("second")

    async def first():
        order.append("first")
        tasks.detach(second(), "second")

    async def scenario():
        tasks.detach(first(), "first")
        await tasks.drain()

    asyncio.run(scenario())
    assert order == ["first", "second"]


def test_drain_with_nothing_pending():
    asyncio.run(BackgroundTasks().drain())
