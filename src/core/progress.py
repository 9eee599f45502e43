#!/usr/bin/env python3
"""
Analysis progress tracking.

Process-wide registry of in-flight batch-analysis runs keyed by run id.
Entries are cleared explicitly (normally by a deferred task shortly after a
run finishes) and swept once they have been idle longer than a maximum age.
"""

import logging
import threading
from dataclasses import replace
from typing import Dict, List, Optional

from .clock import Clock
from .exceptions import ValidationError
from .models.run import RunProgress

logger = logging.getLogger(__name__)


class ProgressTracker:
    """Thread-safe store of RunProgress entries."""

    def __init__(self,
                 retention_seconds: float = 30,
                 max_age_seconds: float = 3600,
                 clock: Optional[Clock] = None):
        """
        Initialize progress tracker.

        Args:
            retention_seconds: Grace period a finished run stays visible
            max_age_seconds: Idle time after which an entry is swept
            clock: Time source
        """
        self.retention_seconds = retention_seconds
        self.max_age_seconds = max_age_seconds
        self.clock = clock or Clock()

        self._runs: Dict[str, RunProgress] = {}
        self._lock = threading.RLock()

    def start(self, run_id: str, total: int) -> RunProgress:
        """
        Register a new run.

        Raises:
            ValidationError: If run_id is empty or total is not a non-negative int
        """
        if not run_id or not isinstance(run_id, str):
            raise ValidationError('run_id', run_id, 'non-empty string')
        if isinstance(total, bool) or not isinstance(total, int) or total < 0:
            raise ValidationError('total', total, 'integer >= 0')

        self.sweep()

        with self._lock:
            now = self.clock.time()
            progress = RunProgress(run_id=run_id, total=total, processed=0,
                                   started_at=self.clock.now(), updated_at=now)
            self._runs[run_id] = progress

        logger.debug(f"Started progress for run {run_id} (total={total})")
        return replace(progress)

    def advance(self, run_id: str) -> Optional[RunProgress]:
        """Increment processed by one, saturating at total."""
        with self._lock:
            progress = self._runs.get(run_id)
            if progress is None:
                return None
            progress.processed = min(progress.total, progress.processed + 1)
            progress.updated_at = self.clock.time()
            return replace(progress)

    def set_processed(self, run_id: str, processed: int) -> Optional[RunProgress]:
        """Move processed forward to ``processed`` (capped at total, never backwards)."""
        with self._lock:
            progress = self._runs.get(run_id)
            if progress is None:
                return None
            progress.processed = max(progress.processed, min(progress.total, processed))
            progress.updated_at = self.clock.time()
            return replace(progress)

    def get(self, run_id: str) -> Optional[RunProgress]:
        """Snapshot of a run, or None when unknown or already cleared."""
        with self._lock:
            progress = self._runs.get(run_id)
            return replace(progress) if progress else None

    def clear(self, run_id: str) -> bool:
        with self._lock:
            removed = self._runs.pop(run_id, None) is not None
        if removed:
            logger.debug(f"Cleared progress for run {run_id}")
        return removed

    def sweep(self) -> int:
        """
        Remove entries not updated for max_age_seconds.

        A run that keeps advancing is never swept, however long it takes.

        Returns:
            Number of entries removed
        """
        with self._lock:
            cutoff = self.clock.time() - self.max_age_seconds
            stale = [run_id for run_id, progress in self._runs.items() if progress.updated_at <= cutoff]
            for run_id in stale:
                self._runs.pop(run_id, None)

        if stale:
            logger.info(f"Swept {len(stale)} stale progress entries")
        return len(stale)

    def active_runs(self) -> List[str]:
        with self._lock:
            return list(self._runs.keys())
