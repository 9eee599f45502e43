#!/usr/bin/env python3
"""
Supabase REST API Record Store.

Alternative to direct PostgreSQL connection for networks that block port 5432/6543.
Uses Supabase REST API over HTTPS.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from supabase import create_client, Client

from .exceptions import RecordStoreConnectionError, RecordStoreOperationError
from .models.analysis import AnalysisResult
from .models.health import HealthEvent, SystemStats
from .models.post import CandidatePost, Post, PostFilters, PostWithAnalysis
from .record_store import RecordStore

logger = logging.getLogger(__name__)

POSTS_TABLE = 'political_posts'
ANALYSIS_TABLE = 'sentiment_analysis'
HEALTH_TABLE = 'system_health'
POSTS_VIEW = 'posts_with_analysis'
POST_COLUMNS = 'id, content, created_at, source, source_url, author, post_date, topic'

# Keeps `in.(...)` filters well under URL length limits
IN_FILTER_CHUNK = 100

# PostgREST caps each response at its max-rows setting (1000 on Supabase)
PAGE_SIZE = 1000


def _chunks(items: List[str], size: int = IN_FILTER_CHUNK):
    for i in range(0, len(items), size):
        yield items[i:i + size]


class SupabaseRecordStore(RecordStore):
    """
    Record store using the Supabase REST API.

    Alternative to direct PostgreSQL connection for restricted networks.
    """

    def __init__(self, config=None, client: Optional[Client] = None, page_size: int = PAGE_SIZE):
        """
        Initialize Supabase API client.

        Args:
            config: Application Config (uses config.database)
            client: Pre-built Supabase client (tests)
            page_size: Rows requested per page for unbounded reads
        """
        self.config = config
        self.client = client or self._create_client()
        self.page_size = page_size
        logger.info("Supabase record store initialized")

    def _create_client(self) -> Client:
        """Create and configure Supabase client."""
        db = self.config.database
        # Service role key first (full permissions), anon key as fallback
        supabase_key = db.supabase_api_key
        if not supabase_key:
            raise RecordStoreConnectionError(
                'supabase', ValueError("Neither SUPABASE_SERVICE_ROLE_KEY nor SUPABASE_ANON_KEY found")
            )

        try:
            return create_client(db.supabase_url, supabase_key)
        except Exception as e:
            raise RecordStoreConnectionError('supabase', e)

    def _select_all(self, build_query: Callable[[], Any]) -> List[Dict[str, Any]]:
        """
        Fetch every row of a query one page at a time.

        Args:
            build_query: Returns a fresh, consistently ordered query builder

        Returns:
            All rows, in query order
        """
        rows: List[Dict[str, Any]] = []
        offset = 0
        while True:
            result = build_query().range(offset, offset + self.page_size - 1).execute()
            page = result.data or []
            rows.extend(page)
            if len(page) < self.page_size:
                return rows
            offset += self.page_size

    # Posts

    def list_unanalyzed_candidates(self, limit: int) -> List[Post]:
        """Most recent posts first; the caller filters out analyzed ids."""
        try:
            result = (self.client.table(POSTS_TABLE)
                      .select(POST_COLUMNS)
                      .order('created_at', desc=True)
                      .limit(limit)
                      .execute())
            return [Post.from_row(row) for row in result.data or []]

        except Exception as e:
            logger.error(f"Failed to fetch posts via API: {e}")
            raise RecordStoreOperationError('select', POSTS_TABLE, e)

    def find_existing_contents(self, contents: Iterable[str]) -> Set[str]:
        contents = list(contents)
        existing: Set[str] = set()
        try:
            for chunk in _chunks(contents):
                result = (self.client.table(POSTS_TABLE)
                          .select('content')
                          .in_('content', chunk)
                          .execute())
                existing.update(row['content'] for row in result.data or [])
            return existing

        except Exception as e:
            logger.error(f"Failed to look up existing posts via API: {e}")
            raise RecordStoreOperationError('select', POSTS_TABLE, e)

    def insert_posts(self, posts: List[CandidatePost]) -> int:
        if not posts:
            return 0
        try:
            result = (self.client.table(POSTS_TABLE)
                      .insert([post.to_row() for post in posts])
                      .execute())
            inserted = len(result.data or [])
            logger.info(f"Inserted {inserted} posts via API")
            return inserted

        except Exception as e:
            logger.error(f"Batch insert of posts via API failed: {e}")
            raise RecordStoreOperationError('insert', POSTS_TABLE, e)

    def list_posts_for_cleanup(self) -> List[Post]:
        try:
            rows = self._select_all(lambda: (self.client.table(POSTS_TABLE)
                                             .select('id, content, created_at')
                                             .order('created_at', desc=False)
                                             .order('id', desc=False)))
            return [Post.from_row(row) for row in rows]

        except Exception as e:
            logger.error(f"Failed to fetch posts for cleanup via API: {e}")
            raise RecordStoreOperationError('select', POSTS_TABLE, e)

    def delete_posts_by_ids(self, ids: List[str]) -> int:
        if not ids:
            return 0
        try:
            result = (self.client.table(POSTS_TABLE)
                      .delete()
                      .in_('id', list(ids))
                      .execute())
            return len(result.data or [])

        except Exception as e:
            logger.error(f"Failed to delete posts via API: {e}")
            raise RecordStoreOperationError('delete', POSTS_TABLE, e)

    def list_posts(self, filters: PostFilters, limit: int, offset: int) -> Tuple[List[PostWithAnalysis], int]:
        """Filtered page from the posts_with_analysis view with an exact match count."""
        try:
            query = (self.client.table(POSTS_VIEW)
                     .select('*', count='exact')
                     .order('created_at', desc=True)
                     .range(offset, offset + limit - 1))
            if filters.sentiment:
                query = query.eq('sentiment', filters.sentiment)
            if filters.source:
                query = query.eq('source', filters.source)
            if filters.topic:
                query = query.eq('topic', filters.topic)
            if filters.search:
                query = query.ilike('content', f"%{filters.search}%")

            result = query.execute()
            posts = [PostWithAnalysis.from_row(row) for row in result.data or []]
            return posts, int(result.count or 0)

        except Exception as e:
            logger.error(f"Failed to list posts via API: {e}")
            raise RecordStoreOperationError('select', POSTS_VIEW, e)

    def get_post(self, post_id: str) -> Optional[PostWithAnalysis]:
        try:
            result = (self.client.table(POSTS_VIEW)
                      .select('*')
                      .eq('id', post_id)
                      .limit(1)
                      .execute())
            rows = result.data or []
            return PostWithAnalysis.from_row(rows[0]) if rows else None

        except Exception as e:
            logger.error(f"Failed to get post {post_id} via API: {e}")
            raise RecordStoreOperationError('select', POSTS_VIEW, e)

    # Analyses

    def list_analyzed_ids(self) -> Set[str]:
        try:
            rows = self._select_all(lambda: (self.client.table(ANALYSIS_TABLE)
                                             .select('post_id')
                                             .order('post_id', desc=False)))
            return {str(row['post_id']) for row in rows}

        except Exception as e:
            logger.error(f"Failed to fetch analyzed post ids via API: {e}")
            raise RecordStoreOperationError('select', ANALYSIS_TABLE, e)

    def insert_analysis_results(self, results: List[AnalysisResult]) -> int:
        if not results:
            return 0
        try:
            result = (self.client.table(ANALYSIS_TABLE)
                      .insert([analysis.to_row() for analysis in results])
                      .execute())
            inserted = len(result.data or [])
            logger.info(f"Inserted {inserted} analysis results via API")
            return inserted

        except Exception as e:
            logger.error(f"Batch insert of analysis results via API failed: {e}")
            raise RecordStoreOperationError('insert', ANALYSIS_TABLE, e)

    def insert_analysis_result(self, result: AnalysisResult) -> None:
        try:
            (self.client.table(ANALYSIS_TABLE)
             .insert(result.to_row())
             .execute())

        except Exception as e:
            logger.error(f"Failed to insert analysis for post {result.post_id} via API: {e}")
            raise RecordStoreOperationError('insert', ANALYSIS_TABLE, e)

    def delete_analysis_results_by_post_ids(self, post_ids: List[str]) -> int:
        if not post_ids:
            return 0
        try:
            result = (self.client.table(ANALYSIS_TABLE)
                      .delete()
                      .in_('post_id', list(post_ids))
                      .execute())
            return len(result.data or [])

        except Exception as e:
            logger.error(f"Failed to delete analysis results via API: {e}")
            raise RecordStoreOperationError('delete', ANALYSIS_TABLE, e)

    def get_sentiment_distribution(self) -> List[Dict[str, Any]]:
        try:
            result = self.client.rpc('get_sentiment_distribution').execute()
            return result.data or []

        except Exception as e:
            logger.error(f"Failed to get sentiment distribution via API: {e}")
            raise RecordStoreOperationError('rpc', 'get_sentiment_distribution', e)

    def list_analyzed_topics(self, limit: int = 500) -> List[Dict[str, Any]]:
        try:
            result = (self.client.table(POSTS_VIEW)
                      .select('topic, key_topics')
                      .not_.is_('sentiment', 'null')
                      .limit(limit)
                      .execute())
            return [
                {'topic': row.get('topic'), 'key_topics': list(row.get('key_topics') or [])}
                for row in result.data or []
            ]

        except Exception as e:
            logger.error(f"Failed to list analyzed topics via API: {e}")
            raise RecordStoreOperationError('select', POSTS_VIEW, e)

    def list_sentiment_timeline(self, since: datetime) -> List[Dict[str, Any]]:
        try:
            return self._select_all(lambda: (self.client.table(POSTS_VIEW)
                                             .select('created_at, sentiment, sentiment_score')
                                             .gte('created_at', since.isoformat())
                                             .not_.is_('sentiment', 'null')
                                             .order('created_at', desc=False)
                                             .order('id', desc=False)))

        except Exception as e:
            logger.error(f"Failed to list sentiment timeline via API: {e}")
            raise RecordStoreOperationError('select', POSTS_VIEW, e)

    # Health

    def append_health_event(self, event: HealthEvent) -> None:
        try:
            (self.client.table(HEALTH_TABLE)
             .insert(event.to_row())
             .execute())
            logger.debug(f"Recorded health event {event.metric_name} via API")

        except Exception as e:
            logger.error(f"Failed to record health event {event.metric_name} via API: {e}")
            raise RecordStoreOperationError('insert', HEALTH_TABLE, e)

    def get_aggregate_stats(self) -> Optional[SystemStats]:
        """Stats from the get_system_stats function; zeros when it returns no row."""
        try:
            result = self.client.rpc('get_system_stats').execute()

        except Exception as e:
            logger.error(f"Failed to get system stats via API: {e}")
            raise RecordStoreOperationError('rpc', 'get_system_stats', e)

        rows = result.data
        if isinstance(rows, dict):
            return SystemStats.from_row(rows)
        return SystemStats.from_row(rows[0]) if rows else SystemStats()

    def list_recent_health_events(self, limit: int = 10) -> List[HealthEvent]:
        try:
            result = (self.client.table(HEALTH_TABLE)
                      .select('metric_name, metric_value, recorded_at')
                      .order('recorded_at', desc=True)
                      .limit(limit)
                      .execute())
            return [HealthEvent.from_row(row) for row in result.data or []]

        except Exception as e:
            logger.error(f"Failed to get health events via API: {e}")
            raise RecordStoreOperationError('select', HEALTH_TABLE, e)

    # Health Check

    def health_check(self) -> Dict[str, Any]:
        """Check API connection health."""
        try:
            (self.client.table(POSTS_TABLE)
             .select('id')
             .limit(1)
             .execute())

            return {
                'connected': True,
                'backend': 'supabase',
                'method': 'REST API',
                'timestamp': datetime.now(timezone.utc).isoformat()
            }

        except Exception as e:
            logger.error(f"API health check failed: {e}")
            return {
                'connected': False,
                'backend': 'supabase',
                'method': 'REST API',
                'error': str(e),
                'timestamp': datetime.now(timezone.utc).isoformat()
            }
