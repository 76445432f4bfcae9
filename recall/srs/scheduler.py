"""
Scheduler - review processing logic

Pure scheduling and state updates (no database calls).

Main workflow:
1. Load review state (caller's responsibility)
2. Validate the quality response
3. Apply the strategy configured for the subject
4. Return updated state + event data dict

Database I/O is handled by the database module; the combined
load-process-save flow lives in the reviews module.
"""

from __future__ import annotations
from datetime import datetime
from typing import Optional, Tuple

from recall.srs.constants import PASS_THRESHOLD
from recall.srs.quality import from_rating, is_passing
from recall.srs.review_state import ReviewState, ensure_utc, utc_now
from recall.srs.strategies import StrategyRegistry, get_strategy


def process_review(
    state: ReviewState,
    quality: Optional[int],
    timestamp: Optional[datetime] = None,
    latency_ms: Optional[int] = None,
    registry: Optional[StrategyRegistry] = None,
) -> Tuple[ReviewState, dict]:
    """
    Process a review and return updated state + event data.

    The same (state, quality, timestamp) always produces the same result;
    there are no hidden counters.

    Args:
        state: ReviewState to update (new or existing)
        quality: Rating 0-5 (optional for ladder completions)
        timestamp: Review time (defaults to now)
        latency_ms: Response time, copied onto the event
        registry: Strategy registry (defaults to built-in parameters)

    Returns:
        Tuple of (updated_state, event_data_dict)
        event_data_dict is ready to pass to ReviewStore.log_review_event()

    Raises:
        InvalidQuality: rating outside [0, 5]
    """
    timestamp = ensure_utc(timestamp) if timestamp is not None else utc_now()
    if quality is not None:
        quality = from_rating(quality)

    strategy = get_strategy(state.strategy, registry)
    updated = strategy.update(state, quality, timestamp)

    passed = True if quality is None else is_passing(quality, _pass_threshold(strategy))

    event_data = {
        'learner_id': state.learner_id,
        'subject_id': state.subject_id,
        'strategy': state.strategy,
        'timestamp': timestamp,
        'quality': int(quality) if quality is not None else None,
        'passed': passed,
        'latency_ms': latency_ms,
        'easiness_before': state.easiness_factor,
        'interval_before': state.interval_days,
        'repetition_before': state.repetition_count,
        'easiness_after': updated.easiness_factor,
        'interval_after': updated.interval_days,
        'repetition_after': updated.repetition_count,
        'mastered_after': updated.mastered,
    }

    return updated, event_data


def _pass_threshold(strategy) -> int:
    params = getattr(strategy, "params", None)
    if params is None:
        return PASS_THRESHOLD
    return params.pass_threshold
