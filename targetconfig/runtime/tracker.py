"""Processing-state tracking.

The busy signal is ``outstanding_tasks > 0 or not rules_loaded``. The
tracker is mutated only on the controlling context; the lock makes reads
from other threads (a UI polling ``busy``) consistent.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from targetconfig.errors import TaskAccountingError

logger = logging.getLogger("targetconfig.runtime.tracker")


class ProcessingStateTracker:
    """Counts in-flight background operations and tracks rule-set loading."""

    def __init__(self, on_busy_changed: Optional[Callable[[bool], None]] = None) -> None:
        """Initialize the tracker.

        Args:
            on_busy_changed: Called with the new value whenever ``busy`` flips.
        """
        self._lock = threading.Lock()
        self._outstanding = 0
        self._rules_loaded = False
        self._busy = True
        self._on_busy_changed = on_busy_changed

    @property
    def outstanding_tasks(self) -> int:
        with self._lock:
            return self._outstanding

    @property
    def rules_loaded(self) -> bool:
        with self._lock:
            return self._rules_loaded

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._busy

    def task_started(self) -> None:
        with self._lock:
            self._outstanding += 1
            logger.debug("Task started (outstanding=%d)", self._outstanding)
        self._update()

    def task_finished(self) -> None:
        """Record completion of one task.

        Raises:
            TaskAccountingError: If no task is outstanding.
        """
        with self._lock:
            if self._outstanding <= 0:
                raise TaskAccountingError("Processing task count may never be negative")
            self._outstanding -= 1
            logger.debug("Task finished (outstanding=%d)", self._outstanding)
        self._update()

    def mark_rules_loaded(self) -> bool:
        """Record that a non-empty rule set arrived.

        Returns:
            bool: True on the first call only; the flag never resets.
        """
        with self._lock:
            if self._rules_loaded:
                return False
            self._rules_loaded = True
        logger.debug("Rule set loaded")
        self._update()
        return True

    def _update(self) -> None:
        with self._lock:
            busy = self._outstanding > 0 or not self._rules_loaded
            changed = busy != self._busy
            self._busy = busy
        if changed and self._on_busy_changed is not None:
            self._on_busy_changed(busy)


__all__ = ["ProcessingStateTracker"]
