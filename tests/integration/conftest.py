import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Tuple

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from core.config import reset_config  # noqa: E402
from core.exceptions import OperationCancelled  # noqa: E402
from core.models.analysis import AnalysisResult  # noqa: E402
from core.models.health import HealthEvent, SystemStats  # noqa: E402
from core.models.post import CandidatePost, Post, PostFilters, PostWithAnalysis  # noqa: E402
from core.record_store import RecordStore  # noqa: E402

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable time source; sleeps advance time instead of blocking."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self._now = start
        self.sleeps: List[float] = []
        self.shutting_down = False

    def time(self) -> float:
        return self._now.timestamp()

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now = self._now + timedelta(seconds=seconds)

    def sleep(self, seconds: float) -> None:
        if self.shutting_down:
            raise OperationCancelled()
        self.sleeps.append(seconds)
        self.advance(seconds)

    def request_shutdown(self) -> None:
        self.shutting_down = True


class FakeScheduler:
    """Records deferred tasks; run_all() fires them."""

    def __init__(self) -> None:
        self.scheduled: List[Dict[str, Any]] = []

    def schedule(self, delay: float, callback: Callable[..., Any], *args, name: str = ""):
        self.scheduled.append({"delay": delay, "callback": callback, "args": args, "name": name})

    def run_all(self) -> None:
        tasks, self.scheduled = self.scheduled, []
        for task in tasks:
            task["callback"](*task["args"])

    def shutdown(self, run_pending: bool = True) -> int:
        count = len(self.scheduled)
        if run_pending:
            self.run_all()
        self.scheduled = []
        return count


class FakeClassifier:
    """Classifier returning scripted responses keyed by text, or a default."""

    name = "fake"

    def __init__(self, responses: Optional[Dict[str, List[Any]]] = None,
                 default: Optional[Mapping[str, Any]] = None) -> None:
        self.responses = {text: list(items) for text, items in (responses or {}).items()}
        self.default = default or {
            "sentiment": "positive",
            "sentiment_score": 0.6,
            "key_topics": ["economy"],
            "summary": "Supportive post",
        }
        self.calls: List[str] = []

    def submit(self, text: str) -> Mapping[str, Any]:
        self.calls.append(text)
        queue = self.responses.get(text)
        outcome = queue.pop(0) if queue else self.default
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeRecordStore(RecordStore):
    """In-memory record store with switchable failures."""

    def __init__(self) -> None:
        self.posts: List[Post] = []
        self.analyses: Dict[str, AnalysisResult] = {}
        self.events: List[HealthEvent] = []
        self.stats: Optional[SystemStats] = SystemStats()
        self.distribution: List[Dict[str, Any]] = []
        self.fail: Dict[str, Exception] = {}
        self.fail_post_ids: Set[str] = set()
        self.bulk_insert_count: Optional[int] = None
        self.closed = False
        self._next_id = 0

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail:
            raise self.fail[operation]

    def add_post(self, content: str, created_at: Optional[datetime] = None, post_id: Optional[str] = None,
                 **fields: Any) -> Post:
        self._next_id += 1
        post = Post(id=post_id or f"post-{self._next_id}", content=content,
                    created_at=created_at or BASE_TIME + timedelta(minutes=self._next_id), **fields)
        self.posts.append(post)
        return post

    # Posts

    def list_unanalyzed_candidates(self, limit: int) -> List[Post]:
        self._maybe_fail("list_unanalyzed_candidates")
        newest_first = sorted(self.posts, key=lambda post: post.created_at, reverse=True)
        return newest_first[:limit]

    def find_existing_contents(self, contents):
        self._maybe_fail("find_existing_contents")
        stored = {post.content for post in self.posts}
        return {content for content in contents if content in stored}

    def insert_posts(self, posts: List[CandidatePost]) -> int:
        self._maybe_fail("insert_posts")
        for candidate in posts:
            self.add_post(candidate.content)
        return len(posts)

    def list_posts_for_cleanup(self) -> List[Post]:
        self._maybe_fail("list_posts_for_cleanup")
        return sorted(self.posts, key=lambda post: post.created_at)

    def delete_posts_by_ids(self, ids: List[str]) -> int:
        self._maybe_fail("delete_posts_by_ids")
        before = len(self.posts)
        self.posts = [post for post in self.posts if post.id not in set(ids)]
        return before - len(self.posts)

    def _joined(self, post: Post) -> PostWithAnalysis:
        analysis = self.analyses.get(post.id)
        if analysis is None:
            return PostWithAnalysis(post=post)
        return PostWithAnalysis(post=post, sentiment=analysis.sentiment,
                                sentiment_score=analysis.sentiment_score,
                                key_topics=list(analysis.key_topics), summary=analysis.summary,
                                analyzed_at=analysis.analyzed_at)

    def list_posts(self, filters: PostFilters, limit: int, offset: int) -> Tuple[List[PostWithAnalysis], int]:
        self._maybe_fail("list_posts")
        matches = []
        for post in sorted(self.posts, key=lambda post: post.created_at, reverse=True):
            joined = self._joined(post)
            if filters.sentiment and joined.sentiment != filters.sentiment:
                continue
            if filters.source and post.source != filters.source:
                continue
            if filters.topic and post.topic != filters.topic:
                continue
            if filters.search and filters.search.lower() not in post.content.lower():
                continue
            matches.append(joined)
        return matches[offset:offset + limit], len(matches)

    def get_post(self, post_id: str) -> Optional[PostWithAnalysis]:
        self._maybe_fail("get_post")
        for post in self.posts:
            if post.id == post_id:
                return self._joined(post)
        return None

    # Analyses

    def list_analyzed_ids(self) -> Set[str]:
        self._maybe_fail("list_analyzed_ids")
        return set(self.analyses)

    def insert_analysis_results(self, results: List[AnalysisResult]) -> int:
        self._maybe_fail("insert_analysis_results")
        for result in results:
            self.analyses[result.post_id] = result
        if self.bulk_insert_count is not None:
            return self.bulk_insert_count
        return len(results)

    def insert_analysis_result(self, result: AnalysisResult) -> None:
        if result.post_id in self.fail_post_ids:
            raise RuntimeError(f"insert rejected for {result.post_id}")
        self.analyses[result.post_id] = result

    def delete_analysis_results_by_post_ids(self, post_ids: List[str]) -> int:
        self._maybe_fail("delete_analysis_results_by_post_ids")
        removed = [post_id for post_id in post_ids if self.analyses.pop(post_id, None) is not None]
        return len(removed)

    def get_sentiment_distribution(self) -> List[Dict[str, Any]]:
        self._maybe_fail("get_sentiment_distribution")
        return self.distribution

    def list_analyzed_topics(self, limit: int = 500) -> List[Dict[str, Any]]:
        self._maybe_fail("list_analyzed_topics")
        rows = [{'topic': post.topic, 'key_topics': list(self.analyses[post.id].key_topics)}
                for post in self.posts if post.id in self.analyses]
        return rows[:limit]

    def list_sentiment_timeline(self, since: datetime) -> List[Dict[str, Any]]:
        self._maybe_fail("list_sentiment_timeline")
        analyzed = [post for post in self.posts if post.id in self.analyses and post.created_at >= since]
        return [
            {
                'created_at': post.created_at,
                'sentiment': self.analyses[post.id].sentiment,
                'sentiment_score': self.analyses[post.id].sentiment_score,
            }
            for post in sorted(analyzed, key=lambda post: post.created_at)
        ]

    # Health

    def append_health_event(self, event: HealthEvent) -> None:
        self._maybe_fail("append_health_event")
        self.events.append(event)

    def get_aggregate_stats(self) -> Optional[SystemStats]:
        self._maybe_fail("get_aggregate_stats")
        return self.stats

    def list_recent_health_events(self, limit: int = 10) -> List[HealthEvent]:
        self._maybe_fail("list_recent_health_events")
        newest_first = sorted(self.events, key=lambda event: event.recorded_at, reverse=True)
        return newest_first[:limit]

    def close(self) -> None:
        self.closed = True

    def events_named(self, metric_name: str) -> List[HealthEvent]:
        return [event for event in self.events if event.metric_name == metric_name]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def fake_classifier_factory():
    def _factory(responses: Optional[Dict[str, List[Any]]] = None,
                 default: Optional[Mapping[str, Any]] = None) -> FakeClassifier:
        return FakeClassifier(responses, default)

    return _factory


@pytest.fixture
def clean_env(monkeypatch):
    """Environment with only the variables a test sets itself."""
    reset_config()
    for key in [
        "SUPABASE_URL", "SUPABASE_DB_PASSWORD", "SUPABASE_ANON_KEY", "SUPABASE_SERVICE_ROLE_KEY",
        "DATABASE_BACKEND", "OPENAI_API_KEY", "OPENAI_MODEL", "LOG_LEVEL", "ANALYSIS_BATCH_SIZE",
        "RATE_LIMIT_ANALYZE_MAX", "RATE_LIMIT_ANALYZE_WINDOW", "VERBOSE_LOGGING",
    ]:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch
