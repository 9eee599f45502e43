from datetime import timedelta

from core.deduplication import ContentDeduplicator, DuplicateCleaner, plan_duplicate_removal
from core.models.health import METRIC_CLEANUP, METRIC_CLEANUP_ERROR
from core.models.post import CandidatePost, Post

import pytest

from conftest import BASE_TIME


def test_partition_new_drops_stored_and_repeated_content():
    """Test candidates matching stored content or earlier candidates are duplicates."""
    candidates = [
        CandidatePost("Stored already"),
        CandidatePost("Fresh post"),
        CandidatePost("Fresh post"),
        CandidatePost("fresh post"),
    ]

    result = ContentDeduplicator().partition_new(candidates, {"Stored already"})

    assert [post.content for post in result.new] == ["Fresh post", "fresh post"]
    assert result.existing_matches == 1
    assert result.in_batch_matches == 1
    assert result.duplicates_found == 2
    assert result.duplicate_rate == 50.0


def test_partition_new_accepts_plain_strings():
    result = ContentDeduplicator().partition_new(["a", "b", "a"])

    assert result.new == ["a", "b"]
    assert result.to_dict()['unique_count'] == 2


def _post(post_id, content, minutes):
    return Post(id=post_id, content=content, created_at=BASE_TIME + timedelta(minutes=minutes))


def test_plan_keeps_oldest_post_per_content():
    """Test the oldest post survives regardless of input order."""
    posts = [
        _post('b', 'same', 5),
        _post('a', 'same', 1),
        _post('c', 'same', 9),
        _post('d', 'unique', 3),
    ]

    plan = plan_duplicate_removal(posts)

    assert sorted(plan.keep_ids) == ['a', 'd']
    assert sorted(plan.remove_ids) == ['b', 'c']


def test_plan_removes_later_copy_only():
    plan = plan_duplicate_removal([_post('1', 'x', 1), _post('2', 'x', 2), _post('3', 'y', 3)])

    assert plan.keep_ids == ['1', '3']
    assert plan.remove_ids == ['2']


def test_plan_equal_timestamps_keep_first_seen():
    plan = plan_duplicate_removal([_post('x', 'same', 1), _post('y', 'same', 1)])

    assert plan.keep_ids == ['x']
    assert plan.remove_ids == ['y']


def test_cleaner_removes_duplicates_and_their_analyses(store):
    """Test duplicates and their analyses are deleted and an event recorded."""
    keeper = store.add_post("Repeated content about the senate")
    duplicate = store.add_post("Repeated content about the senate")
    store.add_post("Different content about the house")
    store.analyses[duplicate.id] = object()
    store.analyses[keeper.id] = object()

    report = DuplicateCleaner(store).run()

    assert report.duplicates_found == 1
    assert report.duplicates_removed == 1
    assert report.total_posts_before == 3
    assert report.total_posts_after == 2
    assert report.status == 'success'
    assert [post.id for post in store.posts if post.content.startswith('Repeated')] == [keeper.id]
    assert set(store.analyses) == {keeper.id}
    assert store.events_named(METRIC_CLEANUP)[0].metric_value['duplicates_removed'] == 1


def test_cleaner_with_no_duplicates(store):
    store.add_post("Only post")

    report = DuplicateCleaner(store).run()

    assert report.duplicates_found == 0
    assert report.messages == ['No duplicates found.']
    assert store.events == []


def test_cleaner_counts_failed_batches_and_continues(store):
    """Test a failed analysis delete skips that batch."""
    for _ in range(3):
        store.add_post("Same")
    store.fail['delete_analysis_results_by_post_ids'] = RuntimeError('fk violation')

    report = DuplicateCleaner(store, batch_size=1).run()

    assert report.duplicates_found == 2
    assert report.failed_batches == 2
    assert report.duplicates_removed == 0
    assert report.status == 'partial_success'
    assert len(store.posts) == 3


def test_cleaner_listing_failure_raises_and_records_event(store):
    store.fail['list_posts_for_cleanup'] = RuntimeError('timeout')

    with pytest.raises(RuntimeError):
        DuplicateCleaner(store).run()

    assert len(store.events_named(METRIC_CLEANUP_ERROR)) == 1
