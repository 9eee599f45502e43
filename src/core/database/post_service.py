#!/usr/bin/env python3
"""
Post Database Service

Handles all database operations on the political_posts table.
"""

import logging
from typing import Any, Iterable, List, Optional, Set, Tuple

from ..exceptions import RecordStoreOperationError
from ..models.post import CandidatePost, Post, PostFilters, PostWithAnalysis

logger = logging.getLogger(__name__)

POSTS_TABLE = 'political_posts'
POST_COLUMNS = "id, content, created_at, source, source_url, author, post_date, topic"

JOINED_POST_SQL = """
    SELECT p.id, p.content, p.created_at, p.source, p.source_url, p.author, p.post_date, p.topic,
           s.sentiment, s.sentiment_score, s.key_topics, s.summary, s.analyzed_at
    FROM political_posts p
    LEFT JOIN sentiment_analysis s ON s.post_id = p.id
"""


def _filter_clause(filters: PostFilters) -> Tuple[str, List[Any]]:
    """WHERE clause and parameters for the listing filters."""
    conditions = []
    params: List[Any] = []
    if filters.sentiment:
        conditions.append("s.sentiment = %s")
        params.append(filters.sentiment)
    if filters.source:
        conditions.append("p.source = %s")
        params.append(filters.source)
    if filters.topic:
        conditions.append("p.topic = %s")
        params.append(filters.topic)
    if filters.search:
        conditions.append("p.content ILIKE %s")
        params.append(f"%{filters.search}%")
    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    return where, params


class PostService:
    """Service for post-related database operations."""

    def __init__(self, connection_manager):
        """
        Initialize post service.

        Args:
            connection_manager: Database connection manager instance
        """
        self.connection_manager = connection_manager

    def list_unanalyzed_candidates(self, limit: int) -> List[Post]:
        """Most recent posts without an analysis, newest first."""
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(f"""
                    SELECT {POST_COLUMNS}
                    FROM political_posts p
                    WHERE NOT EXISTS (
                        SELECT 1 FROM sentiment_analysis s WHERE s.post_id = p.id
                    )
                    ORDER BY created_at DESC
                    LIMIT %s
                """, (limit,))
                return [Post.from_row(row) for row in cursor.fetchall()]

        except Exception as e:
            logger.error(f"Failed to fetch candidate posts: {e}")
            raise RecordStoreOperationError('select', POSTS_TABLE, e)

    def find_existing_contents(self, contents: Iterable[str]) -> Set[str]:
        contents = list(contents)
        if not contents:
            return set()
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(
                    "SELECT content FROM political_posts WHERE content = ANY(%s)",
                    (contents,)
                )
                return {row['content'] for row in cursor.fetchall()}

        except Exception as e:
            logger.error(f"Failed to look up existing posts: {e}")
            raise RecordStoreOperationError('select', POSTS_TABLE, e)

    def insert_posts(self, posts: List[CandidatePost]) -> int:
        """
        Insert posts in one transaction.

        Returns:
            Number of posts inserted
        """
        if not posts:
            return 0
        try:
            inserted = 0
            with self.connection_manager.transaction() as cursor:
                for post in posts:
                    row = post.to_row()
                    cursor.execute("""
                        INSERT INTO political_posts (
                            source, source_url, content, author, post_date, topic
                        ) VALUES (%s, %s, %s, %s, %s, %s)
                    """, (
                        row['source'], row['source_url'], row['content'],
                        row['author'], post.post_date, row['topic']
                    ))
                    inserted += cursor.rowcount

            logger.info(f"Inserted {inserted} posts")
            return inserted

        except Exception as e:
            logger.error(f"Failed to insert posts: {e}")
            raise RecordStoreOperationError('insert', POSTS_TABLE, e)

    def list_posts_for_cleanup(self) -> List[Post]:
        """All posts, oldest first."""
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(f"SELECT {POST_COLUMNS} FROM political_posts ORDER BY created_at ASC")
                return [Post.from_row(row) for row in cursor.fetchall()]

        except Exception as e:
            logger.error(f"Failed to fetch posts for cleanup: {e}")
            raise RecordStoreOperationError('select', POSTS_TABLE, e)

    def delete_posts_by_ids(self, ids: List[str]) -> int:
        if not ids:
            return 0
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute("DELETE FROM political_posts WHERE id::text = ANY(%s)", (list(ids),))
                deleted = cursor.rowcount
                logger.debug(f"Deleted {deleted} posts")
                return deleted

        except Exception as e:
            logger.error(f"Failed to delete posts: {e}")
            raise RecordStoreOperationError('delete', POSTS_TABLE, e)

    def list_posts(self, filters: PostFilters, limit: int, offset: int) -> Tuple[List[PostWithAnalysis], int]:
        """
        Filtered page of posts joined with their analyses, newest first.

        Returns:
            (posts on the page, total matching posts)
        """
        where, params = _filter_clause(filters)
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(f"""
                    SELECT COUNT(*) AS total
                    FROM political_posts p
                    LEFT JOIN sentiment_analysis s ON s.post_id = p.id
                    {where}
                """, tuple(params))
                row = cursor.fetchone()
                total = int(row['total']) if row else 0

                cursor.execute(f"""
                    {JOINED_POST_SQL}
                    {where}
                    ORDER BY p.created_at DESC
                    LIMIT %s OFFSET %s
                """, tuple(params) + (limit, offset))
                posts = [PostWithAnalysis.from_row(r) for r in cursor.fetchall()]

            return posts, total

        except Exception as e:
            logger.error(f"Failed to list posts: {e}")
            raise RecordStoreOperationError('select', POSTS_TABLE, e)

    def get_post(self, post_id: str) -> Optional[PostWithAnalysis]:
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(f"{JOINED_POST_SQL} WHERE p.id::text = %s", (post_id,))
                row = cursor.fetchone()
                return PostWithAnalysis.from_row(row) if row else None

        except Exception as e:
            logger.error(f"Failed to get post {post_id}: {e}")
            raise RecordStoreOperationError('select', POSTS_TABLE, e)
