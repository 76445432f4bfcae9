"""
Review State - scheduling parameters for one learner/subject pair

A subject is an item (word) for the adaptive strategy or a topic for the
ladder strategy. The state is the durable memory of learning history:
created on first exposure, updated after every review, never deleted.

Key quantities:
- Easiness factor (EF): how fast intervals grow (adaptive only)
- Interval: days between the last review and the next due date
- Repetition count: completed review cycles (ladder: completed stages)
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Optional

from recall.srs.constants import (
    DEFAULT_EASINESS,
    STRATEGY_SM2,
    STRATEGY_LADDER,
    MASTERY_MIN_REPETITIONS,
    MASTERY_MIN_QUALITY,
    MASTERY_MIN_INTERVAL,
)


@dataclass(frozen=True)
class ReviewState:
    """
    Scheduling state for a single (learner, subject, strategy) key.

    Instances are immutable; updaters return a new state via replace().
    `version` belongs to the store and is only used for compare-and-set.
    """
    learner_id: str
    subject_id: str
    strategy: str = STRATEGY_SM2

    easiness_factor: float = DEFAULT_EASINESS
    interval_days: int = 0
    repetition_count: int = 0
    consecutive_correct: int = 0
    last_quality: Optional[int] = None

    last_reviewed_at: Optional[datetime] = None
    next_due_at: Optional[datetime] = None

    completed: bool = False
    mastered: bool = False

    version: int = 0

    @property
    def is_new(self) -> bool:
        """Never completed a review cycle."""
        return self.repetition_count == 0

    @property
    def is_ladder(self) -> bool:
        return self.strategy == STRATEGY_LADDER

    @property
    def current_stage(self) -> int:
        """Ladder stage currently scheduled (1-based)."""
        return self.repetition_count + 1


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a timestamp to timezone-aware UTC.

    Naive datetimes are treated as UTC (SQLite drops tzinfo on read).
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def add_days(timestamp: datetime, days: int) -> datetime:
    return ensure_utc(timestamp) + timedelta(days=days)


def initialize_new_state(
    learner_id: str,
    subject_id: str,
    now: Optional[datetime] = None,
    strategy: str = STRATEGY_SM2,
) -> ReviewState:
    """
    Default state for a subject the learner has never seen.

    A new item is due immediately (`next_due_at = now`) so the selector
    picks it up first. A new ladder topic is scheduled by
    ladder_updates.start_topic instead.

    Args:
        learner_id: Learner identifier
        subject_id: Item id (sm2) or topic id (ladder)
        now: Creation time (defaults to now)
        strategy: Strategy name

    Returns:
        New ReviewState with ef=2.5, interval=0, repetition_count=0
    """
    now = ensure_utc(now) if now is not None else utc_now()
    return ReviewState(
        learner_id=learner_id,
        subject_id=subject_id,
        strategy=strategy,
        easiness_factor=DEFAULT_EASINESS,
        interval_days=0,
        repetition_count=0,
        consecutive_correct=0,
        last_quality=None,
        last_reviewed_at=None,
        next_due_at=now,
    )


def is_mastered(state: ReviewState) -> bool:
    """
    Adaptive mastery predicate.

    A subject is mastered when:
    1. It has been reviewed successfully at least 5 times
    2. The latest quality response was 4 or 5
    3. The interval is at least 30 days
    """
    if state.is_ladder:
        return state.mastered
    return (
        state.repetition_count >= MASTERY_MIN_REPETITIONS
        and state.last_quality is not None
        and state.last_quality >= MASTERY_MIN_QUALITY
        and state.interval_days >= MASTERY_MIN_INTERVAL
    )


def with_mastery(state: ReviewState) -> ReviewState:
    """Return the state with its cached `mastered` flag recomputed."""
    return replace(state, mastered=is_mastered(state))
