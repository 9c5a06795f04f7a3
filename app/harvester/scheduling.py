"""Schedulers that drive the ingestion loop one iteration at a time.

Both schedulers run callbacks strictly one after another, so at most one page
fetch is ever in flight.
"""
from __future__ import annotations

import threading
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

from .logging_utils import _harvest_event

Task = tuple[float, Callable[..., Any], tuple[Any, ...]]


class InlineScheduler:
    """Runs callbacks on the calling thread, sleeping for each delay first.

    The first ``call_later`` drains the queue; callbacks scheduled while it is
    draining are appended and run in turn instead of recursing.
    """

    def __init__(self, sleep: Callable[[float], Any] = time.sleep) -> None:
        self._sleep = sleep
        self._tasks: deque[Task] = deque()
        self._draining = False

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> None:
        self._tasks.append((delay, callback, args))
        if self._draining:
            return

        self._draining = True
        try:
            while self._tasks:
                task_delay, task, task_args = self._tasks.popleft()
                if task_delay > 0:
                    self._sleep(task_delay)
                task(*task_args)
        except BaseException:
            self._tasks.clear()
            raise
        finally:
            self._draining = False


class ThreadScheduler:
    """Runs callbacks on a single-worker thread pool.

    ``max_workers`` is fixed at 1 so callbacks never overlap; the pending
    count lets ``join()`` wait for callbacks that schedule further ones.
    """

    def __init__(self, sleep: Callable[[float], Any] = time.sleep, name: str = "harvest-loop") -> None:
        self._sleep = sleep
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._idle = threading.Condition()
        self._pending = 0

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> None:
        with self._idle:
            self._pending += 1
        try:
            self._executor.submit(self._run, delay, callback, args)
        except RuntimeError:
            # The executor is shut down; nothing will run this callback.
            self._done()
            raise

    def _run(self, delay: float, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        try:
            if delay > 0:
                self._sleep(delay)
            callback(*args)
        except Exception as exc:  # noqa: BLE001
            _harvest_event("error", phase="scheduler", callback=getattr(callback, "__name__", "?"), error=repr(exc))
        finally:
            self._done()

    def _done(self) -> None:
        with self._idle:
            self._pending -= 1
            self._idle.notify_all()

    def join(self) -> None:
        """Block until every queued callback has run."""

        with self._idle:
            self._idle.wait_for(lambda: self._pending == 0)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)


__all__ = ["InlineScheduler", "ThreadScheduler"]
