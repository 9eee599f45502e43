#!/usr/bin/env python3
"""
Deferred task scheduling.

Runs callbacks after a delay on daemon timer threads. Pending tasks are
tracked so shutdown can cancel them or run them immediately.
"""

import logging
import threading
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Handle to a single deferred callback."""

    def __init__(self, task_id: int, name: str, delay: float,
                 callback: Callable[..., Any], args: tuple):
        self.task_id = task_id
        self.name = name
        self.delay = delay
        self._callback = callback
        self._args = args
        self._timer: threading.Timer = None
        self._done = threading.Event()

    def run(self) -> None:
        """Execute the callback once; later calls are ignored."""
        if self._done.is_set():
            return
        self._done.set()
        try:
            self._callback(*self._args)
        except Exception as e:
            logger.error(f"Deferred task '{self.name}' failed: {e}")

    def cancel(self) -> bool:
        """Cancel the task if it has not run yet."""
        if self._done.is_set():
            return False
        self._done.set()
        if self._timer:
            self._timer.cancel()
        return True

    @property
    def done(self) -> bool:
        return self._done.is_set()


class DeferredTaskScheduler:
    """Schedules delayed callbacks and owns their lifecycle."""

    def __init__(self):
        self._tasks: Dict[int, ScheduledTask] = {}
        self._lock = threading.Lock()
        self._next_id = 0

    def schedule(self, delay: float, callback: Callable[..., Any], *args, name: str = "") -> ScheduledTask:
        """
        Run ``callback(*args)`` after ``delay`` seconds.

        Args:
            delay: Delay in seconds
            callback: Function to call
            name: Label used in logs

        Returns:
            Handle that can cancel the task
        """
        with self._lock:
            self._next_id += 1
            task = ScheduledTask(self._next_id, name or callback.__name__, delay, callback, args)
            self._tasks[task.task_id] = task

        def _fire():
            task.run()
            self._forget(task)

        timer = threading.Timer(delay, _fire)
        timer.daemon = True
        task._timer = timer
        timer.start()

        logger.debug(f"Scheduled task '{task.name}' in {delay}s")
        return task

    def _forget(self, task: ScheduledTask) -> None:
        with self._lock:
            self._tasks.pop(task.task_id, None)

    def pending(self) -> List[ScheduledTask]:
        """Tasks that have not yet run or been cancelled."""
        with self._lock:
            return [task for task in self._tasks.values() if not task.done]

    def shutdown(self, run_pending: bool = True) -> int:
        """
        Stop all pending timers.

        Args:
            run_pending: Run pending callbacks now instead of dropping them

        Returns:
            Number of pending tasks handled
        """
        with self._lock:
            tasks = list(self._tasks.values())
            self._tasks.clear()

        handled = 0
        for task in tasks:
            if task.done:
                continue
            if task._timer:
                task._timer.cancel()
            if run_pending:
                task.run()
            else:
                task.cancel()
            handled += 1

        if handled:
            logger.info(f"Scheduler shutdown handled {handled} pending task(s)")
        return handled
