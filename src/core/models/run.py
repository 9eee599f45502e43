#!/usr/bin/env python3
"""
Run tracking data models.

Contains progress snapshots for in-flight analysis runs and the summary a
finished run returns.
"""

from datetime import datetime
from enum import Enum
from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field


class RunState(Enum):
    """Lifecycle of one batch-analysis run."""
    SELECTING = 'selecting'
    RUNNING = 'running'
    FINALIZING = 'finalizing'
    DONE = 'done'


@dataclass
class RunProgress:
    """Progress of one run; processed only ever moves toward total."""
    run_id: str
    total: int
    processed: int = 0
    started_at: Optional[datetime] = None
    updated_at: float = 0.0

    @property
    def is_complete(self) -> bool:
        return self.processed >= self.total

    def to_dict(self) -> Dict[str, Any]:
        return {'total': self.total, 'processed': self.processed}


@dataclass
class AnalysisRunResult:
    """Outcome of one orchestrator invocation."""
    run_id: Optional[str]
    analyzed: int = 0
    failed: int = 0
    messages: List[str] = field(default_factory=list)
    state: RunState = RunState.DONE

    @property
    def status(self) -> str:
        return 'success' if self.failed == 0 else 'partial_success'

    @property
    def summary(self) -> str:
        if self.run_id is None:
            return 'No unanalyzed posts found.'
        return f"Analyzed {self.analyzed} posts successfully. {self.failed} failed."

    def to_dict(self) -> Dict[str, Any]:
        return {
            'run_id': self.run_id,
            'analyzed': self.analyzed,
            'failed': self.failed,
            'message': self.summary,
            'errors': self.messages or None,
        }
