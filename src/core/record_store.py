#!/usr/bin/env python3
"""
Record store interface.

Abstract persistence boundary for posts, sentiment analyses and health
events. Concrete stores live in core.database (direct PostgreSQL) and
core.supabase_adapter (Supabase REST).
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .models.analysis import AnalysisResult
from .models.health import HealthEvent, SystemStats
from .models.post import CandidatePost, Post, PostFilters, PostWithAnalysis


class RecordStore(ABC):
    """Operations the ingestion and analysis engine needs from storage."""

    # Posts

    @abstractmethod
    def list_unanalyzed_candidates(self, limit: int) -> List[Post]:
        """Most recent posts first, at most ``limit``; callers filter analyzed ids."""
        pass

    @abstractmethod
    def find_existing_contents(self, contents: Iterable[str]) -> Set[str]:
        """Subset of ``contents`` already stored."""
        pass

    @abstractmethod
    def insert_posts(self, posts: List[CandidatePost]) -> int:
        """Insert posts; returns number inserted."""
        pass

    @abstractmethod
    def list_posts_for_cleanup(self) -> List[Post]:
        """All posts ordered by created_at ascending."""
        pass

    @abstractmethod
    def delete_posts_by_ids(self, ids: List[str]) -> int:
        """Delete posts; returns number deleted."""
        pass

    @abstractmethod
    def list_posts(self, filters: PostFilters, limit: int, offset: int) -> Tuple[List[PostWithAnalysis], int]:
        """Newest-first page of posts matching ``filters`` plus the total match count."""
        pass

    @abstractmethod
    def get_post(self, post_id: str) -> Optional[PostWithAnalysis]:
        pass

    # Analyses

    @abstractmethod
    def list_analyzed_ids(self) -> Set[str]:
        pass

    @abstractmethod
    def insert_analysis_results(self, results: List[AnalysisResult]) -> int:
        """Insert all results in one operation; raises on any failure."""
        pass

    @abstractmethod
    def insert_analysis_result(self, result: AnalysisResult) -> None:
        pass

    @abstractmethod
    def delete_analysis_results_by_post_ids(self, post_ids: List[str]) -> int:
        pass

    @abstractmethod
    def get_sentiment_distribution(self) -> List[Dict[str, Any]]:
        """Rows of {sentiment, count, percentage}."""
        pass

    @abstractmethod
    def list_analyzed_topics(self, limit: int = 500) -> List[Dict[str, Any]]:
        """Rows of {topic, key_topics} for analyzed posts."""
        pass

    @abstractmethod
    def list_sentiment_timeline(self, since: datetime) -> List[Dict[str, Any]]:
        """Rows of {created_at, sentiment, sentiment_score} for analyzed posts created since ``since``, oldest first."""
        pass

    # Health

    @abstractmethod
    def append_health_event(self, event: HealthEvent) -> None:
        pass

    @abstractmethod
    def get_aggregate_stats(self) -> Optional[SystemStats]:
        pass

    @abstractmethod
    def list_recent_health_events(self, limit: int = 10) -> List[HealthEvent]:
        """Newest first."""
        pass

    def close(self) -> None:
        """Release connections held by the store."""
        pass

    def health_check(self) -> Dict[str, Any]:
        """Connectivity information for diagnostics."""
        return {'connected': True}
