#!/usr/bin/env python3
"""
Clock abstraction for time reads and cancellable sleeps.

Every intentional suspension in the engine (inter-item delays, retry
backoff) goes through a Clock so tests can substitute a fake and process
shutdown can interrupt a wait.
"""

import logging
import threading
import time
from datetime import datetime, timezone

from .exceptions import OperationCancelled

logger = logging.getLogger(__name__)


class Clock:
    """Wall-clock time with shutdown-aware sleeping."""

    def __init__(self):
        self._shutdown = threading.Event()

    def time(self) -> float:
        """Current time as epoch seconds."""
        return time.time()

    def now(self) -> datetime:
        """Current time as an aware UTC datetime."""
        return datetime.now(timezone.utc)

    def sleep(self, seconds: float) -> None:
        """
        Sleep for ``seconds`` unless shutdown is requested first.

        Raises:
            OperationCancelled: If shutdown was requested before or during the wait
        """
        if seconds <= 0:
            if self._shutdown.is_set():
                raise OperationCancelled()
            return

        if self._shutdown.wait(timeout=seconds):
            logger.debug(f"Sleep of {seconds:.2f}s interrupted by shutdown")
            raise OperationCancelled()

    def request_shutdown(self) -> None:
        """Wake all sleepers and make further sleeps fail fast."""
        self._shutdown.set()

    @property
    def shutting_down(self) -> bool:
        return self._shutdown.is_set()
