#!/usr/bin/env python3
"""
Service entry points.

Each public method plays the role of one external endpoint: it resolves the
caller identity, applies the endpoint's rate-limit policy, validates input,
runs the workflow and maps the outcome to a response dictionary with
``success``, ``data`` or ``error``, and an HTTP-style ``status``.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from .clock import Clock
from .exceptions import (
    AnalysisRunError, OperationCancelled, RateLimitExceededError, ValidationError
)
from .models.post import CandidatePost, PostFilters, PostPage
from .rate_limit import RateLimitResult, resolve_client_identity
from .validation import validate_analyze_payload, validate_post_id, validate_posts_query, validate_run_id

logger = logging.getLogger(__name__)

POLICY_ANALYZE = 'analyze'
POLICY_SCRAPE = 'scrape'
POLICY_HEALTH = 'health'
POLICY_POSTS = 'posts'


def _ok(data: Dict[str, Any], rate: Optional[RateLimitResult] = None) -> Dict[str, Any]:
    response = {'success': True, 'data': data, 'status': 200}
    if rate is not None:
        response['headers'] = rate.to_headers()
    return response


def _fail(status: int, error: str, message: Optional[str] = None, **extra) -> Dict[str, Any]:
    response = {'success': False, 'error': error, 'status': status}
    if message:
        response['message'] = message
    response.update(extra)
    return response


def _rate_limited(error: RateLimitExceededError, message: str) -> Dict[str, Any]:
    return _fail(
        429,
        'Rate limit exceeded',
        message,
        retry_after=error.retry_after_iso,
        headers={
            'X-RateLimit-Limit': str(error.limit),
            'X-RateLimit-Remaining': '0',
            'X-RateLimit-Reset': str(int(error.reset_at * 1000)),
        },
    )


class PulseWatchService:
    """Rate-limited, validated entry points over the ingestion and analysis engine."""

    def __init__(self,
                 rate_limiter,
                 progress,
                 orchestrator_factory: Callable[[], Any],
                 ingestion,
                 cleaner,
                 health_monitor,
                 store=None,
                 analytics=None,
                 clock: Optional[Clock] = None):
        """
        Args:
            rate_limiter: Shared RateLimiter
            progress: Shared ProgressTracker
            orchestrator_factory: Returns the AnalysisOrchestrator; resolved lazily so
                commands that never analyze do not need classifier credentials
            ingestion: IngestionService
            cleaner: DuplicateCleaner
            health_monitor: HealthMonitor
            store: RecordStore used by the post listing and lookup
            analytics: AnalyticsService
            clock: Time source
        """
        self.rate_limiter = rate_limiter
        self.progress = progress
        self.orchestrator_factory = orchestrator_factory
        self.ingestion = ingestion
        self.cleaner = cleaner
        self.health_monitor = health_monitor
        self.store = store
        self.analytics = analytics
        self.clock = clock or Clock()

    def _enforce(self, policy: str, headers: Optional[Mapping[str, str]]) -> RateLimitResult:
        identity = resolve_client_identity(headers)
        return self.rate_limiter.enforce(policy, identity)

    def start_analysis(self, headers: Optional[Mapping[str, str]] = None,
                       payload: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Run one batch-analysis pass."""
        try:
            rate = self._enforce(POLICY_ANALYZE, headers)
        except RateLimitExceededError as e:
            return _rate_limited(e, 'Too many analysis requests. Please try again later.')

        try:
            params = validate_analyze_payload(payload)
        except ValidationError as e:
            return _fail(400, e.message, 'Invalid analysis parameters provided.')

        try:
            orchestrator = self.orchestrator_factory()
            result = orchestrator.run(limit=params['limit'])
        except OperationCancelled as e:
            logger.warning(f"Analysis interrupted: {e}")
            return _fail(503, e.message, 'Service is shutting down.')
        except AnalysisRunError as e:
            return _fail(500, e.message, 'Analysis failed. Please check API credentials and try again.')
        except Exception as e:
            logger.error(f"Analysis error: {e}")
            return _fail(500, str(e), 'Analysis failed. Please check API credentials and try again.')

        return _ok(result.to_dict(), rate)

    def get_analysis_progress(self, run_id: Optional[str]) -> Dict[str, Any]:
        """Progress of an in-flight (or recently finished) run."""
        if not run_id:
            return _fail(400, 'Missing run_id')
        try:
            validate_run_id(run_id)
        except ValidationError as e:
            return _fail(400, e.message)

        progress = self.progress.get(run_id)
        if progress is None:
            return _fail(404, 'Run not found or completed')

        return _ok({'run_id': run_id, 'progress': progress.to_dict()})

    def ingest_posts(self, headers: Optional[Mapping[str, str]] = None,
                     candidates: Optional[List[Any]] = None) -> Dict[str, Any]:
        """Store new posts from scraped candidates."""
        try:
            rate = self._enforce(POLICY_SCRAPE, headers)
        except RateLimitExceededError as e:
            return _rate_limited(e, 'Too many scraping requests. Please try again later.')

        if candidates is None:
            candidates = []
        if not isinstance(candidates, list):
            return _fail(400, f"Validation failed for candidates: expected list, got {type(candidates).__name__}",
                         'Invalid scraping parameters provided.')

        try:
            posts = [item if isinstance(item, CandidatePost) else CandidatePost.from_dict(item)
                     for item in candidates]
        except (AttributeError, TypeError) as e:
            return _fail(400, f"Validation failed for candidates: {e}", 'Invalid scraping parameters provided.')

        try:
            result = self.ingestion.ingest(posts)
        except Exception as e:
            logger.error(f"Ingestion error: {e}")
            return _fail(500, str(e), 'Ingestion failed. Please check database credentials and try again.')

        return _ok(result.to_dict(), rate)

    def cleanup_duplicates(self, headers: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        """Remove stored posts with duplicate content."""
        try:
            rate = self._enforce(POLICY_SCRAPE, headers)
        except RateLimitExceededError as e:
            return _rate_limited(e, 'Too many cleanup requests. Please try again later.')

        try:
            report = self.cleaner.run()
        except Exception as e:
            logger.error(f"Cleanup error: {e}")
            return _fail(500, str(e), 'Failed to clean up duplicates.')

        data = report.to_dict()
        data['message'] = report.messages[-1] if report.messages else ''
        return _ok(data, rate)

    def get_health(self, headers: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        """Evaluated health report."""
        try:
            rate = self._enforce(POLICY_HEALTH, headers)
        except RateLimitExceededError as e:
            return _rate_limited(e, 'Too many health requests. Please try again later.')

        try:
            report = self.health_monitor.get_report()
        except Exception as e:
            logger.error(f"Health check error: {e}")
            return _fail(500, str(e), timestamp=self.clock.now().isoformat())

        return _ok(report, rate)

    def list_posts(self, headers: Optional[Mapping[str, str]] = None,
                   params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Filtered, paginated listing of posts with their analyses."""
        try:
            rate = self._enforce(POLICY_POSTS, headers)
        except RateLimitExceededError as e:
            return _rate_limited(e, 'Too many requests. Please try again later.')

        try:
            query = validate_posts_query(params)
        except ValidationError as e:
            return _fail(400, e.message, 'Invalid query parameters provided.')

        filters = PostFilters(sentiment=query['sentiment'], source=query['source'],
                              topic=query['topic'], search=query['search'])
        try:
            posts, total = self.store.list_posts(filters, query['limit'], query['offset'])
        except Exception as e:
            logger.error(f"Posts fetch error: {e}")
            empty = PostPage(posts=[], total=0, limit=0, offset=0)
            return _fail(500, str(e), data=empty.to_dict())

        page = PostPage(posts=posts, total=total, limit=query['limit'], offset=query['offset'])
        return _ok(page.to_dict(), rate)

    def get_post(self, headers: Optional[Mapping[str, str]] = None,
                 post_id: Optional[str] = None) -> Dict[str, Any]:
        """One post with its analysis."""
        try:
            rate = self._enforce(POLICY_POSTS, headers)
        except RateLimitExceededError as e:
            return _rate_limited(e, 'Too many requests. Please try again later.')

        try:
            validate_post_id(post_id)
        except ValidationError:
            return _fail(400, 'Invalid post ID format')

        try:
            post = self.store.get_post(post_id)
        except Exception as e:
            logger.error(f"Fetch post error: {e}")
            return _fail(500, str(e))

        if post is None:
            return _fail(404, 'Post not found')
        return _ok(post.to_dict(), rate)

    def get_analytics(self, headers: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        """Sentiment distribution, top topics and keywords, and the daily timeline."""
        try:
            rate = self._enforce(POLICY_HEALTH, headers)
        except RateLimitExceededError as e:
            return _rate_limited(e, 'Too many requests. Please try again later.')

        try:
            report = self.analytics.get_report()
        except Exception as e:
            logger.error(f"Analytics error: {e}")
            return _fail(500, str(e))

        return _ok(report, rate)
