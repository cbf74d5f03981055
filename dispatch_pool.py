"""Fire-and-forget execution of callback handlers with a hard bound.

A webhook route must answer the anchor quickly, so handlers run on worker
threads. At most ``max_workers + max_queue`` invocations may be queued or
running at once; beyond that the overflow policy decides:

- ``reject``: drop the invocation immediately (``submit`` returns False).
- ``block``: wait up to ``block_timeout`` seconds for a slot, then drop.
"""
from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

from log_utils import log, start_timer


OVERFLOW_REJECT = "reject"
OVERFLOW_BLOCK = "block"
OVERFLOW_POLICIES = (OVERFLOW_REJECT, OVERFLOW_BLOCK)


class BoundedDispatchPool:
    def __init__(
        self,
        max_workers: int = 4,
        max_queue: int = 64,
        overflow: str = OVERFLOW_REJECT,
        block_timeout: float = 5.0,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if max_queue < 0:
            raise ValueError("max_queue must be >= 0")
        if overflow not in OVERFLOW_POLICIES:
            raise ValueError(f"overflow must be one of {OVERFLOW_POLICIES}, got {overflow!r}")

        self.max_workers = max_workers
        self.max_queue = max_queue
        self.overflow = overflow
        self.block_timeout = block_timeout
        self._slots = threading.BoundedSemaphore(max_workers + max_queue)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="sep6-callback"
        )
        self._lock = threading.Lock()
        self._in_flight = 0
        self._failed = 0

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    @property
    def failed(self) -> int:
        with self._lock:
            return self._failed

    def _acquire(self) -> bool:
        if self.overflow == OVERFLOW_BLOCK:
            return self._slots.acquire(timeout=self.block_timeout)
        return self._slots.acquire(blocking=False)

    def submit(self, fn: Callable[..., Any], *args: Any) -> bool:
        """Schedule ``fn(*args)``; False when the pool is full."""
        if not self._acquire():
            return False
        with self._lock:
            self._in_flight += 1
        try:
            future = self._executor.submit(self._run, fn, *args)
        except RuntimeError:
            # Executor already shut down.
            self._release()
            return False
        future.add_done_callback(self._done)
        return True

    def _run(self, fn: Callable[..., Any], *args: Any) -> None:
        t0 = start_timer()
        try:
            fn(*args)
        except Exception as e:
            with self._lock:
                self._failed += 1
            name = getattr(fn, "__name__", repr(fn))
            log(f"callback handler {name} failed: {e!r}", since=t0, level="error")

    def _release(self) -> None:
        with self._lock:
            self._in_flight -= 1
        self._slots.release()

    def _done(self, _future: Future) -> None:
        self._release()

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "BoundedDispatchPool":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.shutdown(wait=True)
