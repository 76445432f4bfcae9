from datetime import timedelta

import pytest

from recall.srs.errors import Conflict, InvalidQuality, NotFound
from recall.srs.reviews import (
    complete_topic_stage,
    enroll_topic,
    introduce_items,
    start_topic,
    submit_accuracy,
    submit_review,
)
from recall.srs.scheduler import process_review


def test_first_review_creates_state(store, now):
    state = submit_review(store, "learner-1", "w-huis", 4, now)
    assert state.version == 1
    assert state.repetition_count == 1
    assert store.get("learner-1", "w-huis") == state
    assert len(store.review_events("learner-1")) == 1


def test_pass_pass_fail_persisted(store, now):
    state = submit_review(store, "learner-1", "w-huis", 5, now)
    assert (state.interval_days, state.repetition_count) == (1, 1)

    state = submit_review(store, "learner-1", "w-huis", 5, now + timedelta(days=1))
    assert (state.interval_days, state.repetition_count) == (3, 2)

    state = submit_review(store, "learner-1", "w-huis", 1, now + timedelta(days=4))
    assert state.interval_days == 1
    assert state.consecutive_correct == 0
    assert state.repetition_count == 2
    assert store.get("learner-1", "w-huis").version == 3


@pytest.mark.parametrize("quality", [-1, 6, "5"])
def test_invalid_quality_writes_nothing(store, now, quality):
    with pytest.raises(InvalidQuality):
        submit_review(store, "learner-1", "w-huis", quality, now)
    assert store.get("learner-1", "w-huis") is None
    assert store.review_events("learner-1") == []


def test_submit_accuracy(store, now):
    state = submit_accuracy(store, "learner-1", "w-huis", 0.9, now, latency_ms=2500)
    assert state.last_quality == 5
    assert store.review_events("learner-1")[0]["latency_ms"] == 2500


def race_once(store, monkeypatch, competing_quality=2):
    """Make the next save lose against a concurrent review of the same item."""
    original = store.save_review
    calls = {"count": 0}

    def save_review(state, event_data):
        calls["count"] += 1
        if calls["count"] == 1:
            current = store.get(state.learner_id, state.subject_id)
            competing, competing_event = process_review(current, competing_quality, event_data["timestamp"])
            original(competing, competing_event)
        return original(state, event_data)

    monkeypatch.setattr(store, "save_review", save_review)
    return calls


def test_conflict_without_retries(store, now, monkeypatch):
    submit_review(store, "learner-1", "w-huis", 4, now)
    race_once(store, monkeypatch)

    with pytest.raises(Conflict):
        submit_review(store, "learner-1", "w-huis", 5, now + timedelta(days=1))


def test_conflict_retried_against_fresh_state(store, now, monkeypatch):
    submit_review(store, "learner-1", "w-huis", 4, now)
    calls = race_once(store, monkeypatch, competing_quality=2)

    state = submit_review(store, "learner-1", "w-huis", 5, now + timedelta(days=1), retries=2)

    assert calls["count"] == 2
    assert state.version == 3
    assert state.repetition_count == 2
    # built on the competing failure, not on the stale read
    assert state.consecutive_correct == 1
    assert len(store.review_events("learner-1")) == 3


def test_topic_ladder_flow(store, now):
    state = start_topic(store, "learner-1", "grammar-de-het", now)
    assert state.next_due_at == now + timedelta(days=1)
    assert start_topic(store, "learner-1", "grammar-de-het", now + timedelta(days=5)) == state

    state = complete_topic_stage(store, "learner-1", "grammar-de-het", now + timedelta(days=1))
    assert state.repetition_count == 1
    assert state.next_due_at == now + timedelta(days=3)


def test_completing_mastered_topic_records_nothing(store, now):
    start_topic(store, "learner-1", "grammar-de-het", now)
    for day in range(7):
        mastered = complete_topic_stage(store, "learner-1", "grammar-de-het", now + timedelta(days=day))
    assert mastered.mastered
    events_before = len(store.review_events("learner-1"))

    again = complete_topic_stage(store, "learner-1", "grammar-de-het", now + timedelta(days=60))

    assert again == mastered
    assert again.version == mastered.version
    assert len(store.review_events("learner-1")) == events_before


def test_complete_unstarted_topic(store, now):
    with pytest.raises(NotFound):
        complete_topic_stage(store, "learner-1", "grammar-de-het", now)


def test_introduce_items_keeps_existing(store, now):
    reviewed = submit_review(store, "learner-1", "w-huis", 5, now)
    states = introduce_items(store, "learner-1", ["w-huis", "w-deur"], now)

    assert states[0] == reviewed
    assert states[1].is_new
    assert states[1].next_due_at == now


def test_enroll_sm2_topic(store, catalog, now):
    states = enroll_topic(store, "learner-1", "home", now)
    assert sorted(s.subject_id for s in states) == ["w-deur", "w-huis", "w-raam"]
    assert all(s.strategy == "sm2" for s in states)


def test_enroll_ladder_topic(store, catalog, now):
    states = enroll_topic(store, "learner-1", "grammar-de-het", now)
    assert len(states) == 1
    assert states[0].strategy == "ladder"
    assert states[0].subject_id == "grammar-de-het"


def test_enroll_unknown_topic(store, catalog, now):
    with pytest.raises(NotFound):
        enroll_topic(store, "learner-1", "astronomy", now)
