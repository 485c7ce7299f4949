"""Fire-and-forget execution of store writes."""

import asyncio
import logging
import threading
from collections.abc import Callable, Coroutine
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from typing import Any

logger = logging.getLogger(__name__)

FailureHandler = Callable[[str, BaseException], None]


class BackgroundWriter:
    """
    Runs store coroutines without making the caller wait on them.

    Inside a running event loop each write becomes a task whose reference
    is held until it finishes. Without a loop the write goes to a single
    worker thread that runs writes one at a time, in submission order.
    Failures go to ``on_failure``; they never propagate.
    """

    def __init__(self, on_failure: FailureHandler | None = None):
        self._tasks: set[asyncio.Task] = set()
        self._futures: set[Future] = set()
        self._lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None
        self._on_failure = on_failure

    def submit(self, label: str, coro: Coroutine[Any, Any, Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None:
            self._submit_to_worker(label, coro)
            return

        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._done(label, t))

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._tasks) + len(self._futures)

    async def flush(self) -> None:
        """Wait for every outstanding write."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        futures = self._snapshot_futures()
        if futures:
            await asyncio.gather(
                *(asyncio.wrap_future(f) for f in futures), return_exceptions=True
            )
            self._forget(futures)

    def wait(self, timeout: float | None = None) -> bool:
        """
        Block until writes handed to the worker thread finish.

        For callers without an event loop. Returns False if ``timeout``
        expired first.
        """
        futures = self._snapshot_futures()
        if not futures:
            return True
        done, not_done = wait_futures(futures, timeout=timeout)
        self._forget(done)
        return not not_done

    def _submit_to_worker(self, label: str, coro: Coroutine[Any, Any, Any]) -> None:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="hsk-writer"
                )
            future = self._executor.submit(self._run, label, coro)
            self._futures.add(future)
        future.add_done_callback(lambda f: self._forget([f]))

    def _run(self, label: str, coro: Coroutine[Any, Any, Any]) -> None:
        try:
            asyncio.run(coro)
        except Exception as e:
            self._fail(label, e)

    def _snapshot_futures(self) -> list[Future]:
        with self._lock:
            return list(self._futures)

    def _forget(self, futures) -> None:
        with self._lock:
            self._futures.difference_update(futures)

    def _done(self, label: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug(f"Write cancelled: {label}")
            return
        exc = task.exception()
        if exc is not None:
            self._fail(label, exc)

    def _fail(self, label: str, exc: BaseException) -> None:
        logger.warning(f"Failed to persist {label}: {exc}")
        if self._on_failure is not None:
            self._on_failure(label, exc)
