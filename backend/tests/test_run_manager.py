import asyncio

import pytest

from doctailor.runners.run_manager import RunAlreadyActive, RunManager


def test_launch_returns_before_run_finishes():
    async def scenario():
        runs = RunManager()
        gate = asyncio.Event()
        finished = []

        async def run():
            await gate.wait()
            finished.append(True)

        runs.launch(1, run())
        launched_active = runs.is_running(1)
        gate.set()
        await runs.wait_all()
        return launched_active, finished, runs.active()

    launched_active, finished, active = asyncio.run(scenario())
    assert launched_active is True
    assert finished == [True]
    assert active == []


def test_second_run_for_same_processing_is_refused():
    async def scenario():
        runs = RunManager()
        gate = asyncio.Event()
        calls = []

        async def run(tag):
            calls.append(tag)
            await gate.wait()

        runs.launch(7, run("first"))
        with pytest.raises(RunAlreadyActive):
            runs.launch(7, run("second"))
        # A different processing id is independent
        runs.launch(8, run("other"))
        await asyncio.sleep(0)
        gate.set()
        await runs.wait_all()
        return calls

    assert sorted(asyncio.run(scenario())) == ["first", "other"]


def test_crashed_run_is_logged_and_forgotten(caplog):
    async def scenario():
        runs = RunManager()

        async def run():
            raise RuntimeError("kaboom")

        runs.launch(3, run())
        await runs.wait_all()
        await asyncio.sleep(0)
        return runs

    runs = asyncio.run(scenario())
    assert not runs.is_running(3)
    assert "kaboom" in caplog.text


def test_launch_after_finish_is_allowed():
    async def scenario():
        runs = RunManager()
        seen = []

        async def run(n):
            seen.append(n)

        runs.launch(5, run(1))
        await runs.wait_all()
        runs.launch(5, run(2))
        await runs.wait_all()
        return seen

    assert asyncio.run(scenario()) == [1, 2]
