from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from recall.srs.constants import STRATEGY_LADDER
from recall.srs.due_selection import count_due, select_due
from recall.srs.review_state import ReviewState

NOW = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def state(subject_id, days_ago=1, ef=2.5, reps=3, **fields):
    return ReviewState(
        learner_id="learner-1",
        subject_id=subject_id,
        easiness_factor=ef,
        repetition_count=reps,
        interval_days=1,
        next_due_at=NOW - timedelta(days=days_ago),
        **fields
    )


def test_future_states_excluded():
    states = [state("due"), state("future", days_ago=-1), state("exact", days_ago=0)]
    due = select_due(states, NOW)
    assert [s.subject_id for s in due] == ["due", "exact"]
    assert all(s.next_due_at <= NOW for s in due)


def test_priority_order():
    states = [
        state("overdue-easy", days_ago=10, ef=2.8),
        state("hard", days_ago=1, ef=1.4),
        state("new", days_ago=0, ef=2.5, reps=0),
        state("overdue-mid", days_ago=5, ef=2.5),
        state("recent-mid", days_ago=1, ef=2.5),
    ]
    due = select_due(states, NOW)
    assert [s.subject_id for s in due] == ["new", "hard", "overdue-mid", "recent-mid", "overdue-easy"]


def test_limit_applied_after_ordering():
    states = [state("easy", ef=2.9), state("hard", ef=1.3), state("mid", ef=2.0)]
    assert [s.subject_id for s in select_due(states, NOW, limit=2)] == ["hard", "mid"]
    assert select_due(states, NOW, limit=0) == []


def test_negative_limit_rejected():
    with pytest.raises(ValueError):
        select_due([state("a")], NOW, limit=-1)


def test_ladder_states():
    open_topic = state("topic-open", strategy=STRATEGY_LADDER)
    finished = state("topic-done", strategy=STRATEGY_LADDER, completed=True, mastered=True)
    unscheduled = replace(state("topic-none", strategy=STRATEGY_LADDER), next_due_at=None)

    due = select_due([open_topic, finished, unscheduled], NOW)
    assert [s.subject_id for s in due] == ["topic-open"]


def test_count_due():
    states = [state("a"), state("b", days_ago=-2), state("c", days_ago=3)]
    assert count_due(states, NOW) == 2


def test_naive_now_treated_as_utc():
    naive = NOW.replace(tzinfo=None)
    assert len(select_due([state("a", days_ago=0)], naive)) == 1
