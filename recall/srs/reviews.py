"""
Reviews - main API for recording learner feedback

Ties the pure scheduler to the store.

Main workflow:
1. Front-end reports a review (rating, or accuracy)
2. Load the review state (or create the default one on first exposure)
3. Apply the subject's update strategy
4. Save state and log the event in one transaction

A concurrent write to the same (learner, subject) key surfaces as Conflict.
Callers may pass `retries` to re-read and re-apply automatically.
"""

from __future__ import annotations
import logging
from datetime import datetime
from typing import Iterable, Optional

from recall import item_repo
from recall.schemas import UpdateStrategyName
from recall.srs.constants import STRATEGY_LADDER, STRATEGY_SM2
from recall.srs.database import ReviewStore
from recall.srs.errors import Conflict, NotFound
from recall.srs.quality import from_accuracy, from_rating
from recall.srs.review_state import ReviewState, ensure_utc, utc_now
from recall.srs.scheduler import process_review
from recall.srs.strategies import StrategyRegistry, get_strategy

logger = logging.getLogger(__name__)


def get_or_create_state(
    store: ReviewStore,
    learner_id: str,
    subject_id: str,
    now: datetime,
    strategy: str = STRATEGY_SM2,
    registry: Optional[StrategyRegistry] = None,
) -> ReviewState:
    """
    Load a review state, falling back to the strategy's default state.

    The default is returned unsaved (version 0); the next save inserts it.
    """
    state = store.get(learner_id, subject_id, strategy)
    if state is None:
        state = get_strategy(strategy, registry).new_state(learner_id, subject_id, now)
    return state


def _save_with_retries(
    store: ReviewStore,
    learner_id: str,
    subject_id: str,
    strategy: str,
    quality: Optional[int],
    now: datetime,
    latency_ms: Optional[int],
    retries: int,
    registry: Optional[StrategyRegistry],
    require_existing: bool = False,
) -> ReviewState:
    attempts = max(0, retries) + 1
    for attempt in range(1, attempts + 1):
        if require_existing:
            state = store.get(learner_id, subject_id, strategy)
            if state is None:
                raise NotFound(f"No {strategy} state for {learner_id}/{subject_id}")
        else:
            state = get_or_create_state(store, learner_id, subject_id, now, strategy, registry)

        updated, event_data = process_review(state, quality, now, latency_ms, registry)
        try:
            return store.save_review(updated, event_data)
        except Conflict:
            if attempt == attempts:
                raise
            logger.info(
                "Concurrent update on %s/%s, retrying (%d/%d)",
                learner_id, subject_id, attempt, retries
            )

    raise AssertionError("unreachable")


def submit_review(
    store: ReviewStore,
    learner_id: str,
    item_id: str,
    quality: int,
    now: Optional[datetime] = None,
    latency_ms: Optional[int] = None,
    retries: int = 0,
    registry: Optional[StrategyRegistry] = None,
) -> ReviewState:
    """
    Record a graded review of an item and return the stored state.

    This is the single mutating entry point for item reviews.

    Args:
        store: Review store
        learner_id: Learner identifier
        item_id: Item identifier
        quality: Rating 0-5
        now: Review time (defaults to now)
        latency_ms: Response time in milliseconds (optional)
        retries: Extra attempts after a Conflict, each with a fresh read
        registry: Strategy registry

    Returns:
        The stored ReviewState

    Raises:
        InvalidQuality: rating outside [0, 5]; nothing is read or written
        Conflict: concurrent update and no retries left
    """
    quality = from_rating(quality)
    now = ensure_utc(now) if now is not None else utc_now()
    return _save_with_retries(
        store, learner_id, item_id, STRATEGY_SM2, quality, now, latency_ms, retries, registry
    )


def submit_accuracy(
    store: ReviewStore,
    learner_id: str,
    item_id: str,
    accuracy: float,
    now: Optional[datetime] = None,
    latency_ms: Optional[int] = None,
    retries: int = 0,
    registry: Optional[StrategyRegistry] = None,
) -> ReviewState:
    """Record a review scored by accuracy (0.0-1.0) instead of a rating."""
    quality = from_accuracy(accuracy, latency_ms)
    return submit_review(store, learner_id, item_id, quality, now, latency_ms, retries, registry)


# ---- Topics (ladder) ----

def start_topic(
    store: ReviewStore,
    learner_id: str,
    topic_id: str,
    now: Optional[datetime] = None,
    registry: Optional[StrategyRegistry] = None,
) -> ReviewState:
    """
    Schedule the first repetition of a ladder topic.

    Starting an already started topic returns the existing state.
    """
    now = ensure_utc(now) if now is not None else utc_now()
    existing = store.get(learner_id, topic_id, STRATEGY_LADDER)
    if existing is not None:
        return existing

    state = get_strategy(STRATEGY_LADDER, registry).new_state(learner_id, topic_id, now)
    try:
        return store.upsert(state)
    except Conflict:
        # Started concurrently; the other writer's state wins
        return store.get(learner_id, topic_id, STRATEGY_LADDER)


def complete_topic_stage(
    store: ReviewStore,
    learner_id: str,
    topic_id: str,
    now: Optional[datetime] = None,
    quality: Optional[int] = None,
    retries: int = 0,
    registry: Optional[StrategyRegistry] = None,
) -> ReviewState:
    """
    Mark the current repetition of a topic as done and schedule the next.

    A mastered topic is returned as stored; nothing is written or logged.

    Raises:
        NotFound: the learner never started this topic
    """
    if quality is not None:
        quality = from_rating(quality)
    now = ensure_utc(now) if now is not None else utc_now()

    current = store.get(learner_id, topic_id, STRATEGY_LADDER)
    if current is not None and current.mastered:
        logger.debug("Topic %s already mastered by %s; nothing to record", topic_id, learner_id)
        return current

    state = _save_with_retries(
        store, learner_id, topic_id, STRATEGY_LADDER, quality, now, None, retries, registry,
        require_existing=True,
    )
    if state.mastered:
        logger.info("Learner %s mastered topic %s", learner_id, topic_id)
    return state


# ---- First exposure ----

def introduce_items(
    store: ReviewStore,
    learner_id: str,
    item_ids: Iterable[str],
    now: Optional[datetime] = None,
    registry: Optional[StrategyRegistry] = None,
) -> list[ReviewState]:
    """
    Create default review states for items shown to a learner.

    Items that already have a state are left untouched.

    Returns:
        States for all given items, in input order
    """
    now = ensure_utc(now) if now is not None else utc_now()
    strategy = get_strategy(STRATEGY_SM2, registry)

    states = []
    for item_id in item_ids:
        state = store.get(learner_id, item_id, STRATEGY_SM2)
        if state is None:
            try:
                state = store.upsert(strategy.new_state(learner_id, item_id, now))
            except Conflict:
                state = store.get(learner_id, item_id, STRATEGY_SM2)
        states.append(state)
    return states


def enroll_topic(
    store: ReviewStore,
    learner_id: str,
    topic_id: str,
    now: Optional[datetime] = None,
    registry: Optional[StrategyRegistry] = None,
) -> list[ReviewState]:
    """
    Start studying a topic using the strategy configured for it.

    - ladder topics get a single topic-level state
    - sm2 topics get one default state per item

    Raises:
        NotFound: unknown topic
    """
    topic = item_repo.require_topic(topic_id)
    if topic.strategy == UpdateStrategyName.LADDER.value:
        return [start_topic(store, learner_id, topic_id, now, registry)]

    items = item_repo.get_items_for_topic(topic_id)
    logger.info("Enrolling learner %s in topic %s (%d items)", learner_id, topic_id, len(items))
    return introduce_items(store, learner_id, [item.item_id for item in items], now, registry)
