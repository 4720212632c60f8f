"""Controlling execution context.

All engine-owned mutable state (selection flags, source path filters, task
count, pending labels) is touched only from one dedicated thread. Work
computed elsewhere is marshalled back here with ``submit``; callables run
strictly in submission order, so two results are never applied
interleaved.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar

from targetconfig.errors import WrongThreadError

logger = logging.getLogger("targetconfig.runtime.context")

T = TypeVar("T")


class ControllingContext:
    """Single-threaded serial executor owning engine state."""

    def __init__(self, name: str = "targetconfig-control") -> None:
        self.name = name
        self._thread_id: Optional[int] = None
        # One thread: submission order is execution order.
        self._executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix=name,
            initializer=self._record_thread,
        )

    def _record_thread(self) -> None:
        self._thread_id = threading.get_ident()
        logger.debug("Controlling context %s running on thread %d", self.name, self._thread_id)

    def is_current(self) -> bool:
        """Whether the caller is running on the controlling thread."""
        return self._thread_id is not None and threading.get_ident() == self._thread_id

    def assert_current(self) -> None:
        if not self.is_current():
            raise WrongThreadError(f"Must be called on the {self.name} context")

    def submit(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> "Future[T]":
        """Queue ``fn`` to run on the controlling thread."""
        return self._executor.submit(fn, *args, **kwargs)

    def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run ``fn`` on the controlling thread and wait for its result.

        Runs inline when already on the controlling thread.
        """
        if self.is_current():
            return fn(*args, **kwargs)
        return self._executor.submit(fn, *args, **kwargs).result()

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
        logger.debug("Controlling context %s shut down", self.name)


__all__ = ["ControllingContext"]
