import threading

import pytest

from core.clock import Clock
from core.exceptions import OperationCancelled, ValidationError
from core.progress import ProgressTracker
from core.tasks import DeferredTaskScheduler


def test_progress_advances_and_saturates(clock):
    """Test processed never exceeds total."""
    tracker = ProgressTracker(clock=clock)
    tracker.start('run-1', 2)

    tracker.advance('run-1')
    tracker.advance('run-1')
    progress = tracker.advance('run-1')

    assert progress.processed == 2
    assert progress.is_complete
    assert tracker.get('run-1').to_dict() == {'total': 2, 'processed': 2}


def test_set_processed_never_moves_backwards(clock):
    """Test set_processed is monotonic and capped."""
    tracker = ProgressTracker(clock=clock)
    tracker.start('run-1', 5)

    tracker.set_processed('run-1', 3)
    tracker.set_processed('run-1', 1)
    assert tracker.get('run-1').processed == 3

    tracker.set_processed('run-1', 99)
    assert tracker.get('run-1').processed == 5


def test_get_returns_snapshot(clock):
    """Test callers cannot mutate tracked state through a snapshot."""
    tracker = ProgressTracker(clock=clock)
    tracker.start('run-1', 3)

    snapshot = tracker.get('run-1')
    snapshot.processed = 3

    assert tracker.get('run-1').processed == 0


def test_clear_and_unknown_runs(clock):
    """Test cleared and unknown runs report None."""
    tracker = ProgressTracker(clock=clock)
    tracker.start('run-1', 1)

    assert tracker.clear('run-1') is True
    assert tracker.clear('run-1') is False
    assert tracker.get('run-1') is None
    assert tracker.advance('run-1') is None


def test_sweep_removes_entries_past_max_age(clock):
    """Test stale runs are swept when a new run starts."""
    tracker = ProgressTracker(max_age_seconds=3600, clock=clock)
    tracker.start('old-run', 1)

    clock.advance(3601)
    tracker.start('new-run', 1)

    assert tracker.get('old-run') is None
    assert tracker.active_runs() == ['new-run']


def test_sweep_keeps_long_running_runs_that_still_advance(clock):
    """Test a run older than max age survives a sweep while it keeps advancing."""
    tracker = ProgressTracker(max_age_seconds=3600, clock=clock)
    tracker.start('long-run', 100)

    for _ in range(10):
        clock.advance(400)
        tracker.advance('long-run')
    tracker.start('other-run', 5)

    progress = tracker.get('long-run')
    assert progress is not None
    assert progress.processed == 10

    clock.advance(3601)
    tracker.sweep()
    assert tracker.get('long-run') is None


def test_concurrent_advances_are_not_lost(clock):
    """Test advancing one run from several threads counts every call."""
    tracker = ProgressTracker(clock=clock)
    tracker.start('shared-run', 2000)
    barrier = threading.Barrier(8)

    def _worker():
        barrier.wait()
        for _ in range(250):
            tracker.advance('shared-run')

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert tracker.get('shared-run').processed == 2000
    for _ in range(5):
        tracker.advance('shared-run')
    assert tracker.get('shared-run').processed == 2000


@pytest.mark.parametrize("run_id,total", [('', 1), ('run', -1), ('run', True), ('run', 1.5)])
def test_start_rejects_invalid_arguments(clock, run_id, total):
    """Test invalid run ids and totals are rejected."""
    tracker = ProgressTracker(clock=clock)

    with pytest.raises(ValidationError):
        tracker.start(run_id, total)


def test_clock_sleep_is_interrupted_by_shutdown():
    """Test a long sleep wakes up with OperationCancelled on shutdown."""
    clock = Clock()
    errors = []

    def _sleeper():
        try:
            clock.sleep(30)
        except OperationCancelled as e:
            errors.append(e)

    thread = threading.Thread(target=_sleeper)
    thread.start()
    clock.request_shutdown()
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert len(errors) == 1
    with pytest.raises(OperationCancelled):
        clock.sleep(0)


def test_scheduler_runs_task_after_delay():
    """Test scheduled callbacks fire with their arguments."""
    scheduler = DeferredTaskScheduler()
    fired = threading.Event()
    received = []

    def _callback(value):
        received.append(value)
        fired.set()

    scheduler.schedule(0.01, _callback, 'run-1', name='clear')

    assert fired.wait(timeout=5)
    assert received == ['run-1']


def test_scheduler_shutdown_runs_or_drops_pending():
    """Test shutdown either flushes or cancels tasks that have not fired."""
    received = []

    flushing = DeferredTaskScheduler()
    flushing.schedule(60, received.append, 'flushed')
    assert flushing.shutdown(run_pending=True) == 1

    dropping = DeferredTaskScheduler()
    task = dropping.schedule(60, received.append, 'dropped')
    assert dropping.shutdown(run_pending=False) == 1

    assert received == ['flushed']
    assert task.done
    assert flushing.pending() == []


def test_scheduled_task_failure_is_logged_not_raised(caplog):
    """Test a failing callback does not propagate."""
    scheduler = DeferredTaskScheduler()

    def _boom():
        raise RuntimeError('boom')

    task = scheduler.schedule(60, _boom, name='boom')
    scheduler.shutdown(run_pending=True)

    assert task.done
    assert "Deferred task 'boom' failed" in caplog.text
