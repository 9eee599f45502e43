#!/usr/bin/env python3
"""
Health Database Service

Handles health events (system_health table) and aggregate statistics.
"""

import logging
from typing import List, Optional

from psycopg.types.json import Jsonb

from ..exceptions import RecordStoreOperationError
from ..models.health import HealthEvent, SystemStats

logger = logging.getLogger(__name__)

HEALTH_TABLE = 'system_health'


class HealthService:
    """Service for health-related database operations."""

    def __init__(self, connection_manager):
        """
        Initialize health service.

        Args:
            connection_manager: Database connection manager instance
        """
        self.connection_manager = connection_manager

    def append_health_event(self, event: HealthEvent) -> None:
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute("""
                    INSERT INTO system_health (metric_name, metric_value, recorded_at)
                    VALUES (%s, %s, %s)
                """, (event.metric_name, Jsonb(event.metric_value), event.recorded_at))
                logger.debug(f"Recorded health event {event.metric_name}")

        except Exception as e:
            logger.error(f"Failed to record health event {event.metric_name}: {e}")
            raise RecordStoreOperationError('insert', HEALTH_TABLE, e)

    def get_aggregate_stats(self) -> Optional[SystemStats]:
        """Aggregate counts over posts and analyses (zeros when the tables are empty)."""
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute("""
                    SELECT
                        (SELECT COUNT(*) FROM political_posts) AS total_posts,
                        (SELECT COUNT(*) FROM sentiment_analysis) AS total_analyzed,
                        (SELECT COUNT(*) FROM political_posts
                            WHERE created_at >= date_trunc('day', now())) AS posts_today,
                        (SELECT AVG(sentiment_score) FROM sentiment_analysis) AS avg_sentiment_score,
                        (SELECT MAX(created_at) FROM political_posts) AS last_post_time,
                        (SELECT MAX(analyzed_at) FROM sentiment_analysis) AS last_analysis_time
                """)
                row = cursor.fetchone()
                return SystemStats.from_row(row) if row else SystemStats()

        except Exception as e:
            logger.error(f"Failed to get system stats: {e}")
            raise RecordStoreOperationError('select', 'get_system_stats', e)

    def list_recent_health_events(self, limit: int = 10) -> List[HealthEvent]:
        """Newest events first."""
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute("""
                    SELECT metric_name, metric_value, recorded_at
                    FROM system_health
                    ORDER BY recorded_at DESC
                    LIMIT %s
                """, (limit,))
                return [HealthEvent.from_row(row) for row in cursor.fetchall()]

        except Exception as e:
            logger.error(f"Failed to get health events: {e}")
            raise RecordStoreOperationError('select', HEALTH_TABLE, e)
