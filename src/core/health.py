#!/usr/bin/env python3
"""
System health evaluation.

HealthEvaluator maps aggregate stats plus recent health events to a
tri-state status. HealthMonitor gathers those inputs from a record store and
builds the full health report.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from .models.health import ERROR, HEALTHY, WARNING, HealthEvent, SystemStats

logger = logging.getLogger(__name__)

# Metric names treated as failures regardless of substring matching
KNOWN_ERROR_METRICS = frozenset({'scrape_error', 'analysis_error'})

FAILURE_WINDOW = timedelta(hours=1)
STALE_ANALYSIS_AGE = timedelta(hours=24)
ERROR_THRESHOLD = 5
WARNING_THRESHOLD = 2


def is_failure_metric(metric_name: str) -> bool:
    return ('failed' in metric_name or 'error' in metric_name
            or metric_name in KNOWN_ERROR_METRICS)


class HealthEvaluator:
    """Pure health-status rules."""

    @staticmethod
    def recent_failures(events: Sequence[HealthEvent], now: datetime) -> List[HealthEvent]:
        """Failure events recorded within the last hour."""
        cutoff = now - FAILURE_WINDOW
        return [
            event for event in events
            if is_failure_metric(event.metric_name) and event.recorded_at > cutoff
        ]

    @classmethod
    def evaluate(cls,
                 stats: Optional[SystemStats],
                 events: Sequence[HealthEvent],
                 now: Optional[datetime] = None) -> str:
        """
        Determine system status.

        Args:
            stats: Aggregate stats, or None when they could not be read
            events: Recent health events
            now: Evaluation time (defaults to current UTC time)

        Returns:
            'healthy', 'warning' or 'error'
        """
        if stats is None:
            return ERROR

        now = now or datetime.now(timezone.utc)
        failures = len(cls.recent_failures(events, now))

        if failures > ERROR_THRESHOLD:
            return ERROR

        if stats.has_data:
            if failures > WARNING_THRESHOLD:
                return WARNING

            # Unknown last analysis time never counts as stale
            last_analysis = stats.last_analysis_time
            if (stats.has_unanalyzed_posts and last_analysis is not None
                    and last_analysis < now - STALE_ANALYSIS_AGE):
                return WARNING

            return HEALTHY

        return HEALTHY


class HealthMonitor:
    """Builds health reports from a record store."""

    def __init__(self, store, event_limit: int = 10, evaluator: Optional[HealthEvaluator] = None):
        """
        Args:
            store: RecordStore implementation
            event_limit: Number of recent events to evaluate
            evaluator: Status rules (defaults to HealthEvaluator)
        """
        self.store = store
        self.event_limit = event_limit
        self.evaluator = evaluator or HealthEvaluator()

    def get_report(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Collect stats, events and distribution and evaluate status."""
        now = now or datetime.now(timezone.utc)

        stats: Optional[SystemStats] = None
        database_connected = True
        try:
            stats = self.store.get_aggregate_stats()
        except Exception as e:
            logger.error(f"Failed to get system stats: {e}")
            database_connected = False

        events: List[HealthEvent] = []
        try:
            events = self.store.list_recent_health_events(self.event_limit)
        except Exception as e:
            logger.warning(f"Failed to get health events: {e}")

        distribution: List[Dict[str, Any]] = []
        if database_connected:
            try:
                distribution = self.store.get_sentiment_distribution() or []
            except Exception as e:
                logger.warning(f"Failed to get sentiment distribution: {e}")

        status = self.evaluator.evaluate(stats, events, now)
        if status != HEALTHY:
            logger.warning(f"System health is {status}")

        return {
            'status': status,
            'statistics': stats.to_dict() if stats else None,
            'sentiment_distribution': distribution,
            'recent_events': [event.to_row() for event in events[:5]],
            'database_connected': database_connected and stats is not None,
            'timestamp': now.isoformat(),
        }
