#!/usr/bin/env python3
"""
Batch sentiment-analysis orchestrator.

Drives one analysis run through SELECTING -> RUNNING -> FINALIZING -> DONE:
pick unanalyzed posts, classify them one at a time while publishing
progress, persist the results and record a health event.
"""

import logging
import uuid
from typing import Dict, List, Optional

from ..clock import Clock
from ..exceptions import AnalysisRunError, OperationCancelled
from ..models.analysis import AnalysisResult
from ..models.health import HealthEvent, METRIC_ANALYSIS, METRIC_ANALYSIS_ERROR
from ..models.post import Post
from ..models.run import AnalysisRunResult, RunState
from ..progress import ProgressTracker
from ..tasks import DeferredTaskScheduler
from .classifier_client import RetryingClassifierClient

logger = logging.getLogger(__name__)


class AnalysisOrchestrator:
    """Runs batch sentiment analysis over unanalyzed posts."""

    def __init__(self,
                 store,
                 classifier_client: RetryingClassifierClient,
                 progress: ProgressTracker,
                 scheduler: DeferredTaskScheduler,
                 clock: Optional[Clock] = None,
                 batch_size: int = 20,
                 candidate_multiplier: int = 2,
                 inter_item_delay: float = 0.5):
        """
        Initialize orchestrator.

        Args:
            store: RecordStore implementation
            classifier_client: Retrying classifier
            progress: Shared progress tracker (its retention_seconds sets the clear delay)
            scheduler: Scheduler for the deferred progress clear
            clock: Time source for the inter-item delay
            batch_size: Default number of posts per run
            candidate_multiplier: Over-fetch factor used before filtering analyzed ids
            inter_item_delay: Pause between consecutive posts in seconds
        """
        self.store = store
        self.classifier_client = classifier_client
        self.progress = progress
        self.scheduler = scheduler
        self.clock = clock or Clock()
        self.batch_size = batch_size
        self.candidate_multiplier = candidate_multiplier
        self.inter_item_delay = inter_item_delay

    def run(self, limit: Optional[int] = None) -> AnalysisRunResult:
        """
        Analyze up to ``limit`` (default batch_size) unanalyzed posts.

        Returns:
            Run result; run_id is None when there was nothing to analyze

        Raises:
            AnalysisRunError: If the work set cannot be read from the store
            OperationCancelled: If shutdown interrupts the run
        """
        batch_size = limit or self.batch_size

        # SELECTING
        try:
            posts = self._select_posts(batch_size)
        except Exception as e:
            logger.error(f"Failed to select posts for analysis: {e}")
            self._record_error_event(e)
            raise AnalysisRunError(RunState.SELECTING.value, e) from e

        if not posts:
            logger.info("No unanalyzed posts found")
            return AnalysisRunResult(run_id=None)

        # RUNNING
        run_id = str(uuid.uuid4())
        self.progress.start(run_id, len(posts))
        logger.info(f"Starting analysis run {run_id} for {len(posts)} posts")

        try:
            staged, messages = self._classify_posts(run_id, posts)
            failed = len(posts) - len(staged)

            # FINALIZING
            analyzed, persist_failures = self._persist(staged, messages)
            failed += persist_failures

            result = AnalysisRunResult(run_id=run_id, analyzed=analyzed, failed=failed, messages=messages)
            self._record_run_event(result, len(posts))
            logger.info(f"Analysis run {run_id} finished: {result.summary}")
            return result
        finally:
            self.scheduler.schedule(self.progress.retention_seconds, self.progress.clear, run_id,
                                    name=f"clear-progress-{run_id}")

    def _select_posts(self, batch_size: int) -> List[Post]:
        analyzed_ids = self.store.list_analyzed_ids()
        candidates = self.store.list_unanalyzed_candidates(batch_size * self.candidate_multiplier)
        unanalyzed = [post for post in candidates if post.id not in analyzed_ids]
        return unanalyzed[:batch_size]

    def _classify_posts(self, run_id: str, posts: List[Post]):
        staged: List[AnalysisResult] = []
        messages: List[str] = []

        for index, post in enumerate(posts):
            try:
                classification = self.classifier_client.classify(post.content)
                staged.append(AnalysisResult.from_classification(post.id, classification))
            except OperationCancelled:
                raise
            except Exception as e:
                logger.error(f"Failed to analyze post {post.id}: {e}")
                messages.append(f"Post {post.id}: {e}")

            self.progress.advance(run_id)

            if index < len(posts) - 1 and self.inter_item_delay > 0:
                self.clock.sleep(self.inter_item_delay)

        return staged, messages

    def _persist(self, staged: List[AnalysisResult], messages: List[str]):
        """Returns (persisted count, per-item persistence failures)."""
        if not staged:
            return 0, 0

        try:
            inserted = self.store.insert_analysis_results(staged)
            analyzed = min(len(staged), inserted)
            return analyzed, len(staged) - analyzed
        except Exception as e:
            logger.warning(f"Bulk insert of {len(staged)} analyses failed, falling back to per-item inserts: {e}")

        analyzed = 0
        failures = 0
        for result in staged:
            try:
                self.store.insert_analysis_result(result)
                analyzed += 1
            except Exception as e:
                logger.error(f"Failed to save analysis for post {result.post_id}: {e}")
                messages.append(f"Post {result.post_id}: {e}")
                failures += 1
        return analyzed, failures

    def _record_run_event(self, result: AnalysisRunResult, total: int) -> None:
        value: Dict[str, object] = {
            'run_id': result.run_id,
            'total_processed': total,
            'successful': result.analyzed,
            'failed': result.failed,
            'status': result.status,
        }
        try:
            self.store.append_health_event(HealthEvent(METRIC_ANALYSIS, value))
        except Exception as e:
            logger.error(f"Failed to log analysis health event: {e}")

    def _record_error_event(self, error: Exception) -> None:
        try:
            self.store.append_health_event(HealthEvent(
                METRIC_ANALYSIS_ERROR,
                {'error': str(error), 'status': 'failed'}
            ))
        except Exception as log_error:
            logger.error(f"Failed to log error: {log_error}")
