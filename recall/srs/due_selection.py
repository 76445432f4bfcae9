"""
Due selection - which review states are ready now, in priority order.

Priority (highest first):
1. Subjects never reviewed (repetition_count == 0)
2. Lower easiness factor (harder subjects)
3. Earliest next_due_at (most overdue)

The ordering is applied before truncation so the hardest and most overdue
subjects are never starved by a small limit.
"""

from __future__ import annotations
from datetime import datetime
from typing import Iterable, Optional

from recall.srs.review_state import ReviewState, ensure_utc
from recall.srs.strategies import StrategyRegistry, get_strategy


def is_due(state: ReviewState, now: datetime, registry: Optional[StrategyRegistry] = None) -> bool:
    """Delegate the due predicate to the state's strategy."""
    return get_strategy(state.strategy, registry).is_due(state, now)


def priority_key(state: ReviewState) -> tuple:
    """
    Sort key implementing the due-set priority.

    subject_id is the final tie-breaker so the order is total and stable
    across runs.
    """
    due_at = ensure_utc(state.next_due_at)
    return (
        0 if state.is_new else 1,
        state.easiness_factor,
        due_at.timestamp() if due_at is not None else float("inf"),
        state.subject_id,
    )


def select_due(
    states: Iterable[ReviewState],
    now: datetime,
    limit: Optional[int] = None,
    registry: Optional[StrategyRegistry] = None,
) -> list[ReviewState]:
    """
    Get the due subset of a learner's review states.

    Args:
        states: Review states for one learner (any strategy)
        now: Reference time
        limit: Maximum number of states to return (None = all)
        registry: Strategy registry

    Returns:
        Due states sorted by priority, truncated to `limit`
    """
    now = ensure_utc(now)
    due = [s for s in states if is_due(s, now, registry)]
    due.sort(key=priority_key)

    if limit is not None:
        if limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")
        return due[:limit]
    return due


def count_due(
    states: Iterable[ReviewState],
    now: datetime,
    registry: Optional[StrategyRegistry] = None,
) -> int:
    """Number of due states, without ordering."""
    now = ensure_utc(now)
    return sum(1 for s in states if is_due(s, now, registry))
