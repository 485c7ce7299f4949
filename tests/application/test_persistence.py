import asyncio
import threading
from unittest.mock import MagicMock

import pytest

from hsk_trainer.application.persistence import BackgroundWriter


async def ok(results, value):
    results.append(value)


async def gated(release, results, value):
    release.wait(timeout=5)
    results.append(value)


async def boom():
    raise OSError("disk full")


def test_without_loop_does_not_block():
    release = threading.Event()
    results = []
    writer = BackgroundWriter()
    writer.submit("value", gated(release, results, 1))
    assert results == []
    assert writer.pending == 1

    release.set()
    assert writer.wait(timeout=5) is True
    assert results == [1]
    assert writer.pending == 0


def test_without_loop_keeps_submission_order():
    results = []
    writer = BackgroundWriter()
    for value in range(5):
        writer.submit("value", ok(results, value))
    writer.wait(timeout=5)
    assert results == [0, 1, 2, 3, 4]


def test_wait_times_out_on_hung_write():
    release = threading.Event()
    writer = BackgroundWriter()
    writer.submit("value", gated(release, [], 1))
    assert writer.wait(timeout=0.05) is False
    assert writer.pending == 1
    release.set()
    assert writer.wait(timeout=5) is True


def test_wait_without_writes():
    assert BackgroundWriter().wait() is True


def test_without_loop_failure_reported():
    on_failure = MagicMock()
    writer = BackgroundWriter(on_failure=on_failure)
    writer.submit("stats", boom())
    writer.wait(timeout=5)
    on_failure.assert_called_once()
    label, exc = on_failure.call_args.args
    assert label == "stats"
    assert isinstance(exc, OSError)


@pytest.mark.asyncio
async def test_inside_loop_does_not_block():
    results = []
    writer = BackgroundWriter()
    writer.submit("value", ok(results, 1))
    assert results == []
    assert writer.pending == 1

    await writer.flush()
    assert results == [1]
    assert writer.pending == 0


@pytest.mark.asyncio
async def test_inside_loop_failure_reported():
    on_failure = MagicMock()
    writer = BackgroundWriter(on_failure=on_failure)
    writer.submit("history", boom())
    await writer.flush()
    await asyncio.sleep(0)
    on_failure.assert_called_once()
    assert on_failure.call_args.args[0] == "history"


@pytest.mark.asyncio
async def test_flush_waits_for_worker_writes():
    results = []
    writer = BackgroundWriter()
    # Submitted from a plain thread, so it lands on the worker.
    thread = threading.Thread(target=writer.submit, args=("value", ok(results, 1)))
    thread.start()
    thread.join()

    await writer.flush()
    assert results == [1]
    assert writer.pending == 0
