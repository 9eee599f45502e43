#!/usr/bin/env python3
"""
Retrospective duplicate cleanup.

Finds stored posts that share exact content and removes all but the oldest
of each group, deleting their analyses first. Deletion is best-effort: a
failed batch is counted and the run continues.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from ..models.health import HealthEvent, METRIC_CLEANUP, METRIC_CLEANUP_ERROR
from ..models.post import Post

logger = logging.getLogger(__name__)


@dataclass
class CleanupPlan:
    """Which post ids survive and which are removed."""
    keep_ids: List[str] = field(default_factory=list)
    remove_ids: List[str] = field(default_factory=list)


@dataclass
class CleanupReport:
    """Outcome of a cleanup run."""
    duplicates_found: int = 0
    duplicates_removed: int = 0
    failed_batches: int = 0
    total_posts_before: int = 0
    messages: List[str] = field(default_factory=list)

    @property
    def total_posts_after(self) -> int:
        return self.total_posts_before - self.duplicates_removed

    @property
    def status(self) -> str:
        return 'success' if self.failed_batches == 0 else 'partial_success'

    def to_dict(self) -> Dict[str, object]:
        return {
            'duplicates_found': self.duplicates_found,
            'duplicates_removed': self.duplicates_removed,
            'failed_batches': self.failed_batches,
            'total_posts_before': self.total_posts_before,
            'total_posts_after': self.total_posts_after,
            'status': self.status,
        }


def plan_duplicate_removal(posts: Sequence[Post]) -> CleanupPlan:
    """
    Keep the oldest post per exact content.

    ``posts`` should be ordered by creation time ascending. A post that
    strictly postdates the current keeper of its content is removed;
    otherwise it becomes the keeper and the former keeper is removed. Posts
    with equal timestamps keep whichever was seen first.
    """
    keepers: Dict[str, Post] = {}
    remove_ids: List[str] = []

    for post in posts:
        keeper = keepers.get(post.content)
        if keeper is None:
            keepers[post.content] = post
        elif _is_older(post, keeper):
            remove_ids.append(keeper.id)
            keepers[post.content] = post
        else:
            remove_ids.append(post.id)

    return CleanupPlan(keep_ids=[post.id for post in keepers.values()], remove_ids=remove_ids)


def _is_older(post: Post, other: Post) -> bool:
    # Undated posts cannot be ordered; input order decides
    if post.created_at is None or other.created_at is None:
        return False
    return post.created_at < other.created_at


class DuplicateCleaner:
    """Executes a cleanup plan against a record store."""

    def __init__(self, store, batch_size: int = 100):
        """
        Args:
            store: RecordStore implementation
            batch_size: Maximum ids per delete call
        """
        self.store = store
        self.batch_size = batch_size

    def run(self) -> CleanupReport:
        """
        Remove duplicate posts.

        Raises:
            RecordStoreError: If the post listing cannot be read
        """
        try:
            posts = self.store.list_posts_for_cleanup()
        except Exception as e:
            logger.error(f"Cleanup failed to fetch posts: {e}")
            self._log_error_event(e)
            raise

        report = CleanupReport(total_posts_before=len(posts))
        if not posts:
            report.messages.append('No posts found in database.')
            return report

        plan = plan_duplicate_removal(posts)
        report.duplicates_found = len(plan.remove_ids)
        logger.info(f"Found {report.duplicates_found} duplicate posts to remove")

        if not plan.remove_ids:
            report.messages.append('No duplicates found.')
            return report

        for batch in self._batches(plan.remove_ids):
            try:
                self.store.delete_analysis_results_by_post_ids(batch)
            except Exception as e:
                logger.error(f"Failed to delete analyses for {len(batch)} posts: {e}")
                report.failed_batches += 1
                report.messages.append(f"Analysis delete failed: {e}")
                continue

            try:
                report.duplicates_removed += self.store.delete_posts_by_ids(batch)
            except Exception as e:
                logger.error(f"Batch delete of {len(batch)} posts failed: {e}")
                report.failed_batches += 1
                report.messages.append(f"Post delete failed: {e}")

        report.messages.append(f"Successfully removed {report.duplicates_removed} duplicate posts.")

        try:
            self.store.append_health_event(HealthEvent(METRIC_CLEANUP, report.to_dict()))
        except Exception as e:
            logger.error(f"Failed to log cleanup health event: {e}")

        return report

    def _batches(self, ids: List[str]):
        for i in range(0, len(ids), self.batch_size):
            yield ids[i:i + self.batch_size]

    def _log_error_event(self, error: Exception) -> None:
        try:
            self.store.append_health_event(HealthEvent(
                METRIC_CLEANUP_ERROR,
                {'error': str(error), 'status': 'failed'}
            ))
        except Exception as log_error:
            logger.error(f"Failed to log error: {log_error}")
