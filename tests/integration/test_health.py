from datetime import timedelta

import pytest

from core.health import HealthEvaluator, HealthMonitor
from core.models.health import HealthEvent, SystemStats

from conftest import BASE_TIME

NOW = BASE_TIME


def _failures(count, age=timedelta(minutes=10), name='sentiment_analysis_error'):
    return [HealthEvent(name, {'error': 'x'}, recorded_at=NOW - age) for _ in range(count)]


def test_missing_stats_is_error():
    """Test unreadable stats always evaluate to error."""
    assert HealthEvaluator.evaluate(None, [], NOW) == 'error'


def test_empty_system_is_healthy():
    """Test a system with no data and no failures is healthy."""
    assert HealthEvaluator.evaluate(SystemStats(), [], NOW) == 'healthy'


def test_stale_analysis_with_backlog_is_warning():
    """Test unanalyzed posts and an analysis older than a day give a warning."""
    stats = SystemStats(total_posts=100, total_analyzed=90, last_analysis_time=NOW - timedelta(days=2))

    assert HealthEvaluator.evaluate(stats, [], NOW) == 'warning'


def test_unknown_last_analysis_time_is_not_stale():
    """Test a backlog without a recorded last analysis stays healthy."""
    stats = SystemStats(total_posts=100, total_analyzed=90, last_analysis_time=None)

    assert HealthEvaluator.evaluate(stats, [], NOW) == 'healthy'


def test_recent_analysis_with_backlog_is_healthy():
    stats = SystemStats(total_posts=100, total_analyzed=90, last_analysis_time=NOW - timedelta(hours=2))

    assert HealthEvaluator.evaluate(stats, [], NOW) == 'healthy'


@pytest.mark.parametrize("failure_count,expected", [(2, 'healthy'), (3, 'warning'), (5, 'warning'), (6, 'error')])
def test_recent_failure_thresholds(failure_count, expected):
    """Test more than two recent failures warn and more than five error."""
    stats = SystemStats(total_posts=10, total_analyzed=10)

    assert HealthEvaluator.evaluate(stats, _failures(failure_count), NOW) == expected


def test_failures_without_data_only_error_above_threshold():
    """Test a system without data ignores the warning threshold."""
    assert HealthEvaluator.evaluate(SystemStats(), _failures(4), NOW) == 'healthy'
    assert HealthEvaluator.evaluate(SystemStats(), _failures(6), NOW) == 'error'


def test_old_and_non_failure_events_are_ignored():
    """Test only failure metrics from the last hour count."""
    stats = SystemStats(total_posts=10, total_analyzed=10)
    events = _failures(6, age=timedelta(hours=2)) + [
        HealthEvent('sentiment_analysis', {'status': 'success'}, recorded_at=NOW) for _ in range(6)
    ]

    assert HealthEvaluator.evaluate(stats, events, NOW) == 'healthy'


@pytest.mark.parametrize("name", ['scrape_error', 'analysis_error', 'post_ingest_failed', 'database_cleanup_error'])
def test_failure_metric_names(name):
    stats = SystemStats(total_posts=10, total_analyzed=10)

    assert HealthEvaluator.evaluate(stats, _failures(3, name=name), NOW) == 'warning'


def test_monitor_report(store):
    """Test the report includes stats, distribution and the five newest events."""
    store.stats = SystemStats(total_posts=4, total_analyzed=4, posts_today=1, avg_sentiment_score=0.25)
    store.distribution = [{'sentiment': 'positive', 'count': 4, 'percentage': 100.0}]
    store.events = [
        HealthEvent('sentiment_analysis', {'status': 'success'}, recorded_at=NOW - timedelta(minutes=i))
        for i in range(8)
    ]

    report = HealthMonitor(store).get_report(now=NOW)

    assert report['status'] == 'healthy'
    assert report['database_connected'] is True
    assert report['statistics']['total_posts'] == 4
    assert report['sentiment_distribution'] == store.distribution
    assert len(report['recent_events']) == 5
    assert report['recent_events'][0]['recorded_at'] == NOW.isoformat()
    assert report['timestamp'] == NOW.isoformat()


def test_monitor_stats_failure_is_error(store):
    """Test a stats failure marks the database disconnected."""
    store.fail['get_aggregate_stats'] = RuntimeError('connection refused')

    report = HealthMonitor(store).get_report(now=NOW)

    assert report['status'] == 'error'
    assert report['database_connected'] is False
    assert report['statistics'] is None
    assert report['sentiment_distribution'] == []


def test_monitor_tolerates_event_and_distribution_failures(store):
    """Test secondary read failures degrade to empty lists."""
    store.stats = SystemStats(total_posts=1, total_analyzed=1)
    store.fail['list_recent_health_events'] = RuntimeError('timeout')
    store.fail['get_sentiment_distribution'] = RuntimeError('rpc missing')

    report = HealthMonitor(store).get_report(now=NOW)

    assert report['status'] == 'healthy'
    assert report['recent_events'] == []
    assert report['sentiment_distribution'] == []
    assert report['database_connected'] is True
