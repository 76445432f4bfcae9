"""
Ladder Updates - fixed repetition ladder for topics

Topics are repeated on a fixed schedule instead of an adaptive one:
stage 1 one day after starting, then 2, 3, 7, 15, 25 and 40 days after
each completed stage.

State machine:
    Scheduled -> Completed -> Scheduled(next stage) -> ... -> Mastered

There is no failure input and no regression: every completion advances.
Once the last stage is completed the topic is mastered and nothing further
is scheduled.
"""

from __future__ import annotations
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from recall.srs.constants import LADDER_OFFSETS, STRATEGY_LADDER
from recall.srs.review_state import ReviewState, add_days, ensure_utc, initialize_new_state


def offset_for_stage(completed_stages: int, ladder: Sequence[int] = LADDER_OFFSETS) -> int:
    """
    Days until the next stage after `completed_stages` stages are done.

    Indexes past the end of the ladder reuse the last offset.
    """
    index = min(completed_stages, len(ladder) - 1)
    return ladder[index]


def start_topic(
    learner_id: str,
    topic_id: str,
    now: datetime,
    ladder: Sequence[int] = LADDER_OFFSETS,
) -> ReviewState:
    """
    Schedule stage 1 of a topic.

    Args:
        learner_id: Learner identifier
        topic_id: Topic identifier
        now: Time the topic was started
        ladder: Offsets in days

    Returns:
        Ladder ReviewState due at now + ladder[0]
    """
    now = ensure_utc(now)
    state = initialize_new_state(learner_id, topic_id, now, strategy=STRATEGY_LADDER)
    first_offset = offset_for_stage(0, ladder)
    return replace(
        state,
        interval_days=first_offset,
        next_due_at=add_days(now, first_offset),
        completed=False,
        mastered=False,
    )


def is_exhausted(completed_stages: int, ladder: Sequence[int] = LADDER_OFFSETS) -> bool:
    """True once the next stage number would exceed the ladder length."""
    return completed_stages + 1 > len(ladder)


def advance(
    state: ReviewState,
    now: datetime,
    ladder: Sequence[int] = LADDER_OFFSETS,
    quality: Optional[int] = None,
) -> ReviewState:
    """
    Record completion of the current stage and schedule the next one.

    Mastered states are terminal: advancing them returns the state unchanged.

    Args:
        state: Current ladder state
        now: Completion time
        ladder: Offsets in days
        quality: Optional rating, stored for analytics only

    Returns:
        New ReviewState
    """
    if state.mastered:
        return state

    now = ensure_utc(now)
    completed_stages = state.repetition_count + 1
    last_quality = int(quality) if quality is not None else state.last_quality

    if is_exhausted(completed_stages, ladder):
        # Last stage done: nothing further is scheduled
        return replace(
            state,
            repetition_count=completed_stages,
            consecutive_correct=state.consecutive_correct + 1,
            last_quality=last_quality,
            last_reviewed_at=now,
            next_due_at=None,
            completed=True,
            mastered=True,
        )

    offset = offset_for_stage(completed_stages, ladder)
    return replace(
        state,
        interval_days=offset,
        repetition_count=completed_stages,
        consecutive_correct=state.consecutive_correct + 1,
        last_quality=last_quality,
        last_reviewed_at=now,
        next_due_at=add_days(now, offset),
        completed=False,
        mastered=False,
    )
