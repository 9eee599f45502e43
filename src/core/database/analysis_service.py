#!/usr/bin/env python3
"""
Analysis Database Service

Handles all database operations on the sentiment_analysis table.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Set

from ..exceptions import RecordStoreOperationError
from ..models.analysis import AnalysisResult

logger = logging.getLogger(__name__)

ANALYSIS_TABLE = 'sentiment_analysis'

INSERT_ANALYSIS_SQL = """
    INSERT INTO sentiment_analysis (
        post_id, sentiment, sentiment_score, key_topics, summary, analyzed_at
    ) VALUES (%s, %s, %s, %s, %s, %s)
"""


def _analysis_params(result: AnalysisResult):
    return (
        result.post_id,
        result.sentiment,
        result.sentiment_score,
        list(result.key_topics),
        result.summary,
        result.analyzed_at,
    )


class AnalysisService:
    """Service for analysis-related database operations."""

    def __init__(self, connection_manager):
        """
        Initialize analysis service.

        Args:
            connection_manager: Database connection manager instance
        """
        self.connection_manager = connection_manager

    def list_analyzed_ids(self) -> Set[str]:
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute("SELECT post_id FROM sentiment_analysis")
                return {str(row['post_id']) for row in cursor.fetchall()}

        except Exception as e:
            logger.error(f"Failed to fetch analyzed post ids: {e}")
            raise RecordStoreOperationError('select', ANALYSIS_TABLE, e)

    def insert_analysis_results(self, results: List[AnalysisResult]) -> int:
        """
        Insert all results in one transaction; nothing is stored if any row fails.

        Returns:
            Number of rows inserted
        """
        if not results:
            return 0
        try:
            inserted = 0
            with self.connection_manager.transaction() as cursor:
                for result in results:
                    cursor.execute(INSERT_ANALYSIS_SQL, _analysis_params(result))
                    inserted += cursor.rowcount

            logger.info(f"Inserted {inserted} analysis results")
            return inserted

        except Exception as e:
            logger.error(f"Batch insert of analysis results failed: {e}")
            raise RecordStoreOperationError('insert', ANALYSIS_TABLE, e)

    def insert_analysis_result(self, result: AnalysisResult) -> None:
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(INSERT_ANALYSIS_SQL, _analysis_params(result))

        except Exception as e:
            logger.error(f"Failed to insert analysis for post {result.post_id}: {e}")
            raise RecordStoreOperationError('insert', ANALYSIS_TABLE, e)

    def delete_analysis_results_by_post_ids(self, post_ids: List[str]) -> int:
        if not post_ids:
            return 0
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(
                    "DELETE FROM sentiment_analysis WHERE post_id::text = ANY(%s)",
                    (list(post_ids),)
                )
                return cursor.rowcount

        except Exception as e:
            logger.error(f"Failed to delete analysis results: {e}")
            raise RecordStoreOperationError('delete', ANALYSIS_TABLE, e)

    def get_sentiment_distribution(self) -> List[Dict[str, Any]]:
        """
        Share of each sentiment label.

        Returns:
            Rows of {sentiment, count, percentage}
        """
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute("""
                    SELECT
                        sentiment,
                        COUNT(*) AS count,
                        ROUND(COUNT(*) * 100.0 / SUM(COUNT(*)) OVER (), 2) AS percentage
                    FROM sentiment_analysis
                    GROUP BY sentiment
                    ORDER BY count DESC
                """)
                return [
                    {
                        'sentiment': row['sentiment'],
                        'count': int(row['count']),
                        'percentage': float(row['percentage']),
                    }
                    for row in cursor.fetchall()
                ]

        except Exception as e:
            logger.error(f"Failed to get sentiment distribution: {e}")
            raise RecordStoreOperationError('select', ANALYSIS_TABLE, e)

    def list_analyzed_topics(self, limit: int = 500) -> List[Dict[str, Any]]:
        """Post topic and extracted key topics for up to ``limit`` analyzed posts."""
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute("""
                    SELECT p.topic, s.key_topics
                    FROM sentiment_analysis s
                    JOIN political_posts p ON p.id = s.post_id
                    LIMIT %s
                """, (limit,))
                return [
                    {'topic': row['topic'], 'key_topics': list(row['key_topics'] or [])}
                    for row in cursor.fetchall()
                ]

        except Exception as e:
            logger.error(f"Failed to list analyzed topics: {e}")
            raise RecordStoreOperationError('select', ANALYSIS_TABLE, e)

    def list_sentiment_timeline(self, since: datetime) -> List[Dict[str, Any]]:
        """Sentiment of analyzed posts created at or after ``since``, oldest first."""
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute("""
                    SELECT p.created_at, s.sentiment, s.sentiment_score
                    FROM sentiment_analysis s
                    JOIN political_posts p ON p.id = s.post_id
                    WHERE p.created_at >= %s
                    ORDER BY p.created_at ASC
                """, (since,))
                return [dict(row) for row in cursor.fetchall()]

        except Exception as e:
            logger.error(f"Failed to list sentiment timeline: {e}")
            raise RecordStoreOperationError('select', ANALYSIS_TABLE, e)
