"""Background task executor.

Long-running engine work (label resolution, the dependency walk, writing
configuration files) runs here so the controlling context never blocks.
A task never raises out of the pool: failures come back as a
``TaskResult`` with ``success=False`` and the exception attached.
"""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger("targetconfig.worker")


@dataclass
class Task:
    """Unit of background work.

    Attributes:
        task_id: Identifier used in logs.
        func: Callable to execute.
        metadata: Optional task metadata.
    """

    task_id: str
    func: Callable[[], Any]
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TaskResult:
    """Task execution result.

    Attributes:
        task_id: Task identifier.
        success: Whether execution succeeded.
        result: Return value from task function.
        error: Exception if task failed.
        execution_time: Time taken in seconds.
    """

    task_id: str
    success: bool
    result: Any = None
    error: Optional[Exception] = None
    execution_time: float = 0.0


class BackgroundWorker:
    """Thread pool running engine tasks off the controlling context."""

    def __init__(self, max_workers: int = 4) -> None:
        """Initialize worker with thread pool.

        Args:
            max_workers: Maximum concurrent threads.
        """
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="targetconfig-worker"
        )
        logger.debug("Background worker initialized with %d max workers", max_workers)

    def submit(self, task: Task) -> "Future[TaskResult]":
        """Schedule ``task``; the future always resolves to a ``TaskResult``."""
        logger.debug("Submitting task %s", task.task_id)
        return self._executor.submit(self._execute_task, task)

    def _execute_task(self, task: Task) -> TaskResult:
        start_time = time.time()
        try:
            result = task.func()
        except Exception as e:  # pylint: disable=broad-exception-caught
            execution_time = time.time() - start_time
            logger.error(
                "Task %s failed after %.2fs: %s",
                task.task_id,
                execution_time,
                e,
                exc_info=True,
            )
            return TaskResult(
                task_id=task.task_id,
                success=False,
                error=e,
                execution_time=execution_time,
            )

        execution_time = time.time() - start_time
        logger.info("Task %s completed in %.2fs", task.task_id, execution_time)
        return TaskResult(
            task_id=task.task_id,
            success=True,
            result=result,
            execution_time=execution_time,
        )

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
        logger.debug("Background worker shut down")


__all__ = ["Task", "TaskResult", "BackgroundWorker"]
