"""Background task management for SalesTrack.

Runs storage work off the caller's thread without giving up the
single-writer model: a TaskManager with one worker executes submitted
callables strictly in submission order.

Usage:
    from salestrack.core.tasks import TaskManager

    manager = TaskManager(max_workers=1)
    future = manager.submit("record_call", session.record_call, user_id, number, outcome)
    record = future.result()
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from salestrack.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class TaskResult:
    """Outcome of a finished task, handed to completion callbacks.

    Attributes:
        task_name: Name of the task
        success: Whether task completed successfully
        result: Return value if successful
        error: Exception if failed
        started_at: When task started
        completed_at: When task finished
    """

    task_name: str
    success: bool
    result: Any = None
    error: Optional[BaseException] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        """Calculate task duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


class TaskManager:
    """Manages background task execution.

    Futures resolve to the callable's return value; failures are logged
    and re-raised through the future, never swallowed.

    Attributes:
        max_workers: Maximum concurrent tasks (1 = strictly serial)
    """

    def __init__(self, max_workers: int = 1):
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._tasks: dict[str, Future] = {}
        self._lock = threading.Lock()

    def _get_executor(self) -> ThreadPoolExecutor:
        """Get or create thread pool executor."""
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix="salestrack"
                )
            return self._executor

    def submit(
        self,
        task_name: str,
        func: Callable[..., Any],
        *args: Any,
        callback: Optional[Callable[[TaskResult], None]] = None,
        **kwargs: Any,
    ) -> Future:
        """Submit a task for execution.

        Args:
            task_name: Name for tracking
            func: Function to execute
            *args: Positional arguments
            callback: Called with a TaskResult when the task finishes
            **kwargs: Keyword arguments

        Returns:
            Future resolving to func's return value
        """

        def wrapper() -> Any:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"Task {task_name} failed: {e}",
                    extra={"context": {"task": task_name, "error": type(e).__name__}},
                )
                raise

        started_at = datetime.now()
        future = self._get_executor().submit(wrapper)

        with self._lock:
            self._tasks[task_name] = future

        if callback:

            def _done(f: Future) -> None:
                error = f.exception()
                callback(
                    TaskResult(
                        task_name=task_name,
                        success=error is None,
                        result=None if error else f.result(),
                        error=error,
                        started_at=started_at,
                        completed_at=datetime.now(),
                    )
                )

            future.add_done_callback(_done)

        return future

    def is_running(self, task_name: str) -> bool:
        """Check if the most recent task with this name is still pending."""
        with self._lock:
            future = self._tasks.get(task_name)
            return future is not None and not future.done()

    def shutdown(self, wait: bool = True) -> None:
        """Shutdown the task manager.

        Args:
            wait: Wait for pending tasks to complete
        """
        with self._lock:
            executor = self._executor
            self._executor = None
            self._tasks.clear()
        if executor:
            executor.shutdown(wait=wait)
