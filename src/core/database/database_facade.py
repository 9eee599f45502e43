#!/usr/bin/env python3
"""
Database Facade

Record store backed by a direct PostgreSQL connection, composed from the
per-table services.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from ..models.analysis import AnalysisResult
from ..models.health import HealthEvent, SystemStats
from ..models.post import CandidatePost, Post, PostFilters, PostWithAnalysis
from ..record_store import RecordStore
from .analysis_service import AnalysisService
from .connection_manager import ConnectionManager
from .health_service import HealthService
from .post_service import PostService

logger = logging.getLogger(__name__)


class PostgresRecordStore(RecordStore):
    """RecordStore implementation using psycopg."""

    def __init__(self, config, connection_manager: Optional[ConnectionManager] = None):
        """
        Initialize store with configuration.

        Args:
            config: Application Config (uses config.database)
            connection_manager: Pre-built connection manager (tests)
        """
        self.config = config
        self.connection_manager = connection_manager or ConnectionManager(config.database)

        # Initialize services
        self.posts = PostService(self.connection_manager)
        self.analyses = AnalysisService(self.connection_manager)
        self.health = HealthService(self.connection_manager)

    # Posts

    def list_unanalyzed_candidates(self, limit: int) -> List[Post]:
        return self.posts.list_unanalyzed_candidates(limit)

    def find_existing_contents(self, contents: Iterable[str]) -> Set[str]:
        return self.posts.find_existing_contents(contents)

    def insert_posts(self, posts: List[CandidatePost]) -> int:
        return self.posts.insert_posts(posts)

    def list_posts_for_cleanup(self) -> List[Post]:
        return self.posts.list_posts_for_cleanup()

    def delete_posts_by_ids(self, ids: List[str]) -> int:
        return self.posts.delete_posts_by_ids(ids)

    def list_posts(self, filters: PostFilters, limit: int, offset: int) -> Tuple[List[PostWithAnalysis], int]:
        return self.posts.list_posts(filters, limit, offset)

    def get_post(self, post_id: str) -> Optional[PostWithAnalysis]:
        return self.posts.get_post(post_id)

    # Analyses

    def list_analyzed_ids(self) -> Set[str]:
        return self.analyses.list_analyzed_ids()

    def insert_analysis_results(self, results: List[AnalysisResult]) -> int:
        return self.analyses.insert_analysis_results(results)

    def insert_analysis_result(self, result: AnalysisResult) -> None:
        self.analyses.insert_analysis_result(result)

    def delete_analysis_results_by_post_ids(self, post_ids: List[str]) -> int:
        return self.analyses.delete_analysis_results_by_post_ids(post_ids)

    def get_sentiment_distribution(self) -> List[Dict[str, Any]]:
        return self.analyses.get_sentiment_distribution()

    def list_analyzed_topics(self, limit: int = 500) -> List[Dict[str, Any]]:
        return self.analyses.list_analyzed_topics(limit)

    def list_sentiment_timeline(self, since: datetime) -> List[Dict[str, Any]]:
        return self.analyses.list_sentiment_timeline(since)

    # Health

    def append_health_event(self, event: HealthEvent) -> None:
        self.health.append_health_event(event)

    def get_aggregate_stats(self) -> Optional[SystemStats]:
        return self.health.get_aggregate_stats()

    def list_recent_health_events(self, limit: int = 10) -> List[HealthEvent]:
        return self.health.list_recent_health_events(limit)

    # Lifecycle

    def close(self) -> None:
        self.connection_manager.close()

    def health_check(self) -> Dict[str, Any]:
        return self.connection_manager.health_check()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
