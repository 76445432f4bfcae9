"""
Adaptive (SM-2 style) Updates

Converts a quality response into the next review state for a single item.

Key principles:
- The easiness factor drifts with every answer and never drops below 1.3
- Early successes follow a fixed ladder of initial intervals
- Later successes multiply the interval by the easiness factor
- A failure brings the item back tomorrow without erasing its history

Everything here is pure: no clock reads, no I/O.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Sequence

from recall.srs.constants import (
    INITIAL_INTERVALS,
    MAX_INTERVAL,
    MIN_INTERVAL,
    MIN_EASINESS,
    PASS_THRESHOLD,
)
from recall.srs.quality import from_rating, is_passing, round_half_up
from recall.srs.review_state import ReviewState, add_days, ensure_utc, with_mastery


@dataclass(frozen=True)
class Sm2Parameters:
    """Tunable parameters for the adaptive strategy."""
    initial_intervals: Sequence[int] = INITIAL_INTERVALS
    max_interval: int = MAX_INTERVAL
    min_easiness: float = MIN_EASINESS
    pass_threshold: int = PASS_THRESHOLD


DEFAULT_PARAMETERS = Sm2Parameters()


def update_easiness(easiness: float, quality: int, min_easiness: float = MIN_EASINESS) -> float:
    """
    Update the easiness factor after an answer.

    Formula:
        EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
        EF' = max(EF', min_easiness)

    q=5 raises EF by 0.1, q=4 leaves it, q=3 lowers it by 0.14,
    q=0 lowers it by 0.8. Monotonically non-decreasing in q.
    """
    miss = 5 - int(quality)
    new_easiness = easiness + (0.1 - miss * (0.08 + miss * 0.02))
    return max(new_easiness, min_easiness)


def next_interval(
    repetition_count: int,
    interval_days: int,
    easiness: float,
    params: Sm2Parameters = DEFAULT_PARAMETERS,
) -> int:
    """
    Interval (days) after a successful review.

    - First ever pass: initial_intervals[0]
    - While repetition_count indexes the initial ladder: that entry
    - Afterwards: round(interval * EF), capped at max_interval

    Args:
        repetition_count: Completed cycles before this review
        interval_days: Current interval
        easiness: Easiness factor after this review's update
        params: Strategy parameters

    Returns:
        New interval, never below MIN_INTERVAL
    """
    ladder = params.initial_intervals
    if repetition_count == 0:
        interval = ladder[0]
    elif repetition_count < len(ladder):
        interval = ladder[repetition_count]
    else:
        interval = round_half_up(interval_days * easiness)

    interval = min(interval, params.max_interval)
    return max(MIN_INTERVAL, interval)


def apply_sm2_update(
    state: ReviewState,
    quality: int,
    now: datetime,
    params: Sm2Parameters = DEFAULT_PARAMETERS,
) -> ReviewState:
    """
    Produce the next state after a graded review.

    Passed (q >= threshold):
        consecutive_correct + 1, interval from next_interval(), repetitions + 1
    Failed:
        consecutive_correct = 0, interval = 1, repetitions unchanged
        (kept for analytics; the initial ladder is not restarted)

    Args:
        state: Current state (never modified)
        quality: Rating 0-5
        now: Review time
        params: Strategy parameters

    Returns:
        New ReviewState with mastery recomputed

    Raises:
        InvalidQuality: rating outside [0, 5]
    """
    quality = from_rating(quality)
    now = ensure_utc(now)

    new_easiness = update_easiness(state.easiness_factor, quality, params.min_easiness)

    if is_passing(quality, params.pass_threshold):
        interval = next_interval(
            state.repetition_count,
            state.interval_days,
            new_easiness,
            params,
        )
        consecutive = state.consecutive_correct + 1
        repetitions = state.repetition_count + 1
    else:
        interval = MIN_INTERVAL  # Review again tomorrow
        consecutive = 0
        repetitions = state.repetition_count

    updated = replace(
        state,
        easiness_factor=new_easiness,
        interval_days=interval,
        repetition_count=repetitions,
        consecutive_correct=consecutive,
        last_quality=int(quality),
        last_reviewed_at=now,
        next_due_at=add_days(now, interval),
    )
    return with_mastery(updated)
