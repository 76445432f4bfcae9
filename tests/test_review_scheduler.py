import logging
import threading
import time
from datetime import timedelta

import pytest
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from recall.config import EngineSettings
from recall.reminders import (
    CollectingNotifier,
    ExactHourPolicy,
    LoggingNotifier,
    QuietHoursPolicy,
    ReminderEvent,
    ReviewScheduler,
    build_policy,
)
from recall.srs.errors import NotifierUnavailable, StoreUnavailable
from tests.fakes import BlockingNotifier, FakeNotifier


@pytest.fixture
def scheduler(store, notifier, now):
    return ReviewScheduler(store, notifier=notifier, workers=2, io_timeout=5, clock=lambda: now)


def add_due_items(make_state, learner_id, now, count=3):
    for i in range(count):
        make_state(learner_id, f"w-{i}", repetition_count=2, interval_days=3,
                   next_due_at=now - timedelta(days=1))


def test_reminder_capped_at_daily_maximum(store, scheduler, notifier, make_state, make_learner, now):
    make_learner("ann", delivery_hour=9, max_per_day=2)
    make_state("ann", "w-new", repetition_count=0, next_due_at=now)
    make_state("ann", "w-hard", repetition_count=3, easiness_factor=1.5, interval_days=4,
               next_due_at=now - timedelta(days=1))
    make_state("ann", "w-easy", repetition_count=2, easiness_factor=2.5, interval_days=3,
               next_due_at=now - timedelta(days=2))
    make_state("ann", "w-later", next_due_at=now + timedelta(days=1))

    report = scheduler.tick(now)

    assert report.notified == ["ann"]
    assert len(notifier.events) == 1
    event = notifier.events[0]
    assert event.due_count == 2
    assert event.subject_ids == ("w-new", "w-hard")
    assert store.get_learner("ann").last_notified_at == now


def test_only_matching_hour_notified(scheduler, notifier, make_state, make_learner, now):
    make_learner("ann", delivery_hour=9)
    make_learner("bob", delivery_hour=10)
    add_due_items(make_state, "ann", now)
    add_due_items(make_state, "bob", now)

    report = scheduler.tick(now)

    assert report.eligible == 1
    assert [e.learner_id for e in notifier.events] == ["ann"]


def test_nothing_due_means_no_reminder(scheduler, notifier, make_state, make_learner, now, store):
    make_learner("ann", delivery_hour=9)
    make_state("ann", "w-later", next_due_at=now + timedelta(days=2))

    report = scheduler.tick(now)

    assert report.nothing_due == ["ann"]
    assert notifier.events == []
    assert store.get_learner("ann").last_notified_at is None


def test_one_failure_does_not_abort_tick(store, make_state, make_learner, now):
    notifier = FakeNotifier(fail_for={"bob"})
    scheduler = ReviewScheduler(store, notifier=notifier, workers=2, io_timeout=5)
    for learner_id in ("ann", "bob", "cas"):
        make_learner(learner_id, delivery_hour=9)
        add_due_items(make_state, learner_id, now)

    report = scheduler.tick(now)

    assert sorted(report.notified) == ["ann", "cas"]
    assert list(report.failed) == ["bob"]
    assert store.get_learner("bob").last_notified_at is None
    assert store.get_learner("ann").last_notified_at == now


def test_store_failure_for_eligible_learners_is_logged(scheduler, monkeypatch, now, caplog):
    def broken(hour, not_notified_since=None):
        raise RuntimeError("connection refused")

    monkeypatch.setattr(scheduler.store, "due_learners", broken)
    report = scheduler.tick(now)

    assert report.eligible == 0
    assert "*" in report.failed
    assert "Could not load eligible learners" in caplog.text


def test_ticks_do_not_overlap(store, make_state, make_learner, now):
    notifier = BlockingNotifier()
    scheduler = ReviewScheduler(store, notifier=notifier, workers=1, io_timeout=10)
    make_learner("ann", delivery_hour=9)
    add_due_items(make_state, "ann", now)

    reports = []
    first = threading.Thread(target=lambda: reports.append(scheduler.tick(now)))
    first.start()
    assert notifier.entered.wait(5)

    overlapping = scheduler.tick(now)
    notifier.release.set()
    first.join(5)

    assert overlapping.ran is False
    assert reports[0].ran is True
    assert len(notifier.events) == 1


def test_slow_learner_times_out(store, make_state, make_learner, now):
    notifier = BlockingNotifier()
    scheduler = ReviewScheduler(store, notifier=notifier, workers=1, io_timeout=0.2)
    make_learner("ann", delivery_hour=9)
    add_due_items(make_state, "ann", now)

    report = scheduler.tick(now)
    notifier.release.set()

    assert report.failed == {"ann": "timeout"}


def test_hung_learner_does_not_hold_up_the_queue(store, make_state, make_learner, now):
    notifier = BlockingNotifier(block_for={"ann"})
    scheduler = ReviewScheduler(store, notifier=notifier, workers=1, io_timeout=0.3)
    for learner_id in ("ann", "bob", "cas"):
        make_learner(learner_id, delivery_hour=9)
        add_due_items(make_state, learner_id, now, count=1)

    try:
        report = scheduler.tick(now)
    finally:
        notifier.release.set()

    assert report.failed == {"ann": "timeout"}
    assert sorted(report.notified) == ["bob", "cas"]
    assert store.get_learner("bob").last_notified_at == now
    assert store.get_learner("cas").last_notified_at == now


def test_deadline_passed_before_delivery(store, notifier, make_state, make_learner, now):
    scheduler = ReviewScheduler(store, notifier=notifier, io_timeout=5)
    profile = make_learner("ann", delivery_hour=9)
    add_due_items(make_state, "ann", now)

    with pytest.raises(TimeoutError):
        scheduler._process_learner(profile, now, deadline=time.monotonic() - 1)
    assert notifier.events == []


def test_unrecorded_delivery_still_counts_as_notified(scheduler, notifier, make_state, make_learner,
                                                      now, monkeypatch, caplog):
    make_learner("ann", delivery_hour=9)
    add_due_items(make_state, "ann", now)

    def broken(learner_id, at):
        raise StoreUnavailable("database is locked")

    monkeypatch.setattr(scheduler.store, "mark_notified", broken)
    report = scheduler.tick(now)

    assert report.notified == ["ann"]
    assert report.failed == {}
    assert len(notifier.events) == 1
    assert "could not record the delivery time" in caplog.text


def test_exact_hour_reminds_once_per_hour(store, notifier, make_state, make_learner, now):
    scheduler = ReviewScheduler(store, notifier=notifier, interval_seconds=900)
    make_learner("ann", delivery_hour=9)
    add_due_items(make_state, "ann", now)

    assert scheduler.tick(now).notified == ["ann"]
    assert scheduler.tick(now + timedelta(minutes=15)).eligible == 0
    assert scheduler.tick(now + timedelta(minutes=45)).eligible == 0
    assert len(notifier.events) == 1


def test_stop_before_tick_skips_learners(scheduler, notifier, make_state, make_learner, now):
    make_learner("ann", delivery_hour=9)
    add_due_items(make_state, "ann", now)

    assert scheduler.stop() is True
    report = scheduler.tick(now)

    assert report.cancelled == ["ann"]
    assert notifier.events == []


def test_start_and_stop(store, notifier):
    scheduler = ReviewScheduler(store, notifier=notifier, interval_seconds=3600)
    scheduler.start()
    assert scheduler.running
    assert scheduler._job.max_instances == 1
    assert scheduler._job.coalesce is True
    with pytest.raises(RuntimeError):
        scheduler.start()

    assert scheduler.stop() is True
    assert not scheduler.running

    scheduler.start()
    assert scheduler.running
    scheduler.stop()


def test_hourly_trigger_fires_on_the_hour(scheduler, now):
    trigger = scheduler.build_trigger()

    assert isinstance(trigger, CronTrigger)
    assert trigger.get_next_fire_time(None, now + timedelta(minutes=45)) == now + timedelta(hours=1)


def test_interval_trigger_aligned_to_interval(store, now):
    scheduler = ReviewScheduler(store, interval_seconds=900)
    trigger = scheduler.build_trigger()

    assert isinstance(trigger, IntervalTrigger)
    assert trigger.get_next_fire_time(None, now + timedelta(minutes=5)) == now + timedelta(minutes=15)


def test_window_policy_once_per_day(store, notifier, make_state, make_learner, now):
    scheduler = ReviewScheduler(store, notifier=notifier, policy=QuietHoursPolicy(4, 18))
    make_learner("ann", delivery_hour=23)
    add_due_items(make_state, "ann", now)

    assert scheduler.tick(now).notified == ["ann"]
    assert scheduler.tick(now + timedelta(hours=1)).eligible == 0
    assert scheduler.tick(now + timedelta(hours=11)).eligible == 0  # 20:00, outside the window

    next_morning = now + timedelta(hours=20)  # 05:00 next day
    assert scheduler.tick(next_morning).notified == ["ann"]
    assert len(notifier.events) == 2


def test_manual_check_ignores_window(store, notifier, make_state, make_learner, now):
    scheduler = ReviewScheduler(store, notifier=notifier, policy=QuietHoursPolicy(4, 18))
    make_learner("ann", delivery_hour=3, max_per_day=2)
    add_due_items(make_state, "ann", now)

    late = now.replace(hour=23)
    event = scheduler.run_manual_check("ann", late)

    assert event == ReminderEvent("ann", 2, ("w-0", "w-1"), late)
    assert store.get_learner("ann").last_notified_at == late


def test_manual_check_without_profile(store, notifier, make_state, now):
    scheduler = ReviewScheduler(store, notifier=notifier, max_per_delivery=10)
    add_due_items(make_state, "ghost", now, count=12)

    event = scheduler.run_manual_check("ghost", now)

    assert event.due_count == 10
    assert store.get_learner("ghost") is None


def test_manual_check_nothing_due(scheduler, make_learner, now):
    make_learner("ann")
    assert scheduler.run_manual_check("ann", now) is None


def test_manual_check_notifier_failure(store, make_state, make_learner, now):
    scheduler = ReviewScheduler(store, notifier=FakeNotifier(fail_for={"ann"}))
    make_learner("ann")
    add_due_items(make_state, "ann", now)

    with pytest.raises(NotifierUnavailable):
        scheduler.run_manual_check("ann", now)
    assert store.get_learner("ann").last_notified_at is None


def test_policy_from_settings():
    assert isinstance(build_policy(EngineSettings()), ExactHourPolicy)
    policy = build_policy(EngineSettings(reminder_policy="window", window_start_hour=6, window_end_hour=20))
    assert isinstance(policy, QuietHoursPolicy)
    assert (policy.start_hour, policy.end_hour) == (6, 20)


def test_from_settings(store):
    settings = EngineSettings(scheduler_workers=3, tick_interval_seconds=60, max_items_per_delivery=7)
    scheduler = ReviewScheduler.from_settings(store, settings)
    assert scheduler.workers == 3
    assert scheduler.interval_seconds == 60
    assert scheduler.max_per_delivery == 7


def test_logging_notifier(caplog, now):
    caplog.set_level(logging.INFO, logger="recall.reminders.notifier")
    LoggingNotifier().deliver(ReminderEvent("ann", 2, ("w-0", "w-1"), now))
    assert "Reminder for ann: 2 subject(s) due (w-0, w-1)" in caplog.text


def test_collecting_notifier(store, make_state, make_learner, now):
    collector = CollectingNotifier()
    scheduler = ReviewScheduler(store, notifier=collector)
    make_learner("ann", delivery_hour=9)
    add_due_items(make_state, "ann", now, count=1)

    scheduler.tick(now)
    assert [e.subject_ids for e in collector.events] == [("w-0",)]
