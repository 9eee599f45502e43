import uuid

import pytest

from core.analysis import AnalysisOrchestrator, RetryingClassifierClient
from core.exceptions import (
    AnalysisRunError, OperationCancelled, RecordStoreOperationError, TerminalClassifierError
)
from core.models.health import METRIC_ANALYSIS, METRIC_ANALYSIS_ERROR
from core.progress import ProgressTracker


def _orchestrator(store, classifier, clock, scheduler, max_retries=1, **kwargs):
    client = RetryingClassifierClient(classifier, max_retries=max_retries, clock=clock)
    progress = ProgressTracker(clock=clock)
    orchestrator = AnalysisOrchestrator(store, client, progress, scheduler, clock=clock, **kwargs)
    return orchestrator, progress


def test_run_with_one_failure_is_partial_success(store, clock, scheduler, fake_classifier_factory):
    """Test three posts where the second fails terminally."""
    store.add_post("Budget hearing went well for the province")
    failing = store.add_post("Senator accused of pork barrel misuse again")
    store.add_post("New school buildings opened in the district")
    classifier = fake_classifier_factory(responses={
        failing.content: [TerminalClassifierError("fake", "invalid_api_key")]
    })
    orchestrator, progress = _orchestrator(store, classifier, clock, scheduler, max_retries=3)

    result = orchestrator.run()

    assert classifier.calls.count(failing.content) == 1
    assert result.analyzed == 2
    assert result.failed == 1
    assert result.status == 'partial_success'
    assert result.messages == [f"Post {failing.id}: Classifier fake rejected request: invalid_api_key"]
    assert set(store.analyses) == {post.id for post in store.posts if post.id != failing.id}
    assert str(uuid.UUID(result.run_id)) == result.run_id

    # Delay only between items
    assert clock.sleeps == [0.5, 0.5]

    event = store.events_named(METRIC_ANALYSIS)[0]
    assert event.metric_value == {
        'run_id': result.run_id,
        'total_processed': 3,
        'successful': 2,
        'failed': 1,
        'status': 'partial_success',
    }

    # Progress stays visible until the deferred clear runs
    assert progress.get(result.run_id).to_dict() == {'total': 3, 'processed': 3}
    assert scheduler.scheduled[0]['delay'] == 30
    scheduler.run_all()
    assert progress.get(result.run_id) is None


def test_run_with_no_unanalyzed_posts(store, clock, scheduler, fake_classifier_factory):
    """Test an empty work set returns without a run id or side effects."""
    post = store.add_post("Already analyzed post about the election")
    classifier = fake_classifier_factory()
    orchestrator, progress = _orchestrator(store, classifier, clock, scheduler)
    orchestrator.run()
    assert post.id in store.analyses
    store.events.clear()
    scheduler.scheduled.clear()

    result = orchestrator.run()

    assert result.run_id is None
    assert result.analyzed == 0
    assert result.to_dict()['message'] == 'No unanalyzed posts found.'
    assert store.events == []
    assert scheduler.scheduled == []
    assert progress.active_runs() == []


def test_limit_and_newest_first_selection(store, clock, scheduler, fake_classifier_factory):
    """Test the limit picks the most recent unanalyzed posts."""
    posts = [store.add_post(f"Post number {i} about local government") for i in range(5)]
    classifier = fake_classifier_factory()
    orchestrator, _ = _orchestrator(store, classifier, clock, scheduler, inter_item_delay=0)

    result = orchestrator.run(limit=2)

    assert result.analyzed == 2
    assert set(store.analyses) == {posts[4].id, posts[3].id}
    assert clock.sleeps == []


def test_selection_failure_records_error_event(store, clock, scheduler, fake_classifier_factory):
    """Test a store failure while selecting aborts the run."""
    store.add_post("Some post about the national budget")
    store.fail['list_analyzed_ids'] = RecordStoreOperationError('select', 'sentiment_analysis', RuntimeError('down'))
    orchestrator, progress = _orchestrator(store, fake_classifier_factory(), clock, scheduler)

    with pytest.raises(AnalysisRunError) as exc_info:
        orchestrator.run()

    assert exc_info.value.phase == 'selecting'
    assert isinstance(exc_info.value.__cause__, RecordStoreOperationError)
    assert len(store.events_named(METRIC_ANALYSIS_ERROR)) == 1
    assert progress.active_runs() == []


def test_bulk_insert_failure_falls_back_to_per_item(store, clock, scheduler, fake_classifier_factory):
    """Test per-item inserts after a bulk failure; rejected items count as failed."""
    first = store.add_post("First post about road projects in the city")
    rejected = store.add_post("Second post about health insurance coverage")
    store.fail['insert_analysis_results'] = RuntimeError('bulk insert rejected')
    store.fail_post_ids.add(rejected.id)
    orchestrator, _ = _orchestrator(store, fake_classifier_factory(), clock, scheduler)

    result = orchestrator.run()

    assert result.analyzed == 1
    assert result.failed == 1
    assert set(store.analyses) == {first.id}
    assert result.messages == [f"Post {rejected.id}: insert rejected for {rejected.id}"]


def test_bulk_insert_shortfall_counts_as_failed(store, clock, scheduler, fake_classifier_factory):
    """Test a bulk insert reporting fewer rows moves the difference to failed."""
    for i in range(3):
        store.add_post(f"Post {i} discussing the senate hearing")
    store.bulk_insert_count = 2
    orchestrator, _ = _orchestrator(store, fake_classifier_factory(), clock, scheduler)

    result = orchestrator.run()

    assert result.analyzed == 2
    assert result.failed == 1


def test_health_event_failure_does_not_fail_run(store, clock, scheduler, fake_classifier_factory):
    """Test the run result survives a failed health-event write."""
    store.add_post("Post about the mayor's new transport plan")
    store.fail['append_health_event'] = RuntimeError('events table missing')
    orchestrator, _ = _orchestrator(store, fake_classifier_factory(), clock, scheduler)

    result = orchestrator.run()

    assert result.analyzed == 1
    assert result.status == 'success'


def test_cancelled_run_still_schedules_progress_clear(store, clock, scheduler, fake_classifier_factory):
    """Test shutdown during the inter-item delay aborts but cleans up progress."""
    store.add_post("Post one about the provincial election results")
    store.add_post("Post two about the provincial election results")
    orchestrator, progress = _orchestrator(store, fake_classifier_factory(), clock, scheduler)
    clock.request_shutdown()

    with pytest.raises(OperationCancelled):
        orchestrator.run()

    assert store.analyses == {}
    assert len(scheduler.scheduled) == 1
    scheduler.run_all()
    assert progress.active_runs() == []


def test_progress_clear_uses_tracker_retention(store, clock, scheduler, fake_classifier_factory):
    """Test the deferred clear waits for the tracker's retention period."""
    store.add_post("Transit levy vote scheduled for next week")
    client = RetryingClassifierClient(fake_classifier_factory(), max_retries=1, clock=clock)
    progress = ProgressTracker(retention_seconds=5, clock=clock)
    orchestrator = AnalysisOrchestrator(store, client, progress, scheduler, clock=clock)

    result = orchestrator.run()

    assert scheduler.scheduled[0]['delay'] == 5
    assert progress.get(result.run_id) is not None
    scheduler.run_all()
    assert progress.get(result.run_id) is None
