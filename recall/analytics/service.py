"""
Service layer assembling learner statistics.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import pandas as pd

from recall import item_repo
from recall.analytics.metrics import (
    build_day_index,
    compute_average_easiness,
    compute_completion_percentage,
    compute_daily_reviews,
    compute_due_within,
    compute_mastered,
)
from recall.analytics.queries import load_review_events_df, load_review_states_df
from recall.analytics.types import LearnerSummary, TopicCompletion
from recall.srs.constants import STRATEGY_LADDER, STRATEGY_SM2
from recall.srs.database import ReviewStore
from recall.srs.review_state import ensure_utc, utc_now


def learner_summary(store: ReviewStore, learner_id: str, now: Optional[datetime] = None) -> LearnerSummary:
    """
    Totals for a learner's items and ladder topics.
    """
    now = ensure_utc(now) if now is not None else utc_now()
    items_df = load_review_states_df(store, learner_id, strategy=STRATEGY_SM2)
    topics_df = load_review_states_df(store, learner_id, strategy=STRATEGY_LADDER)

    topics_mastered = compute_mastered(topics_df)
    return LearnerSummary(
        learner_id=learner_id,
        total_items=len(items_df),
        due_within_day=compute_due_within(items_df, now) + compute_due_within(topics_df, now),
        mastered_items=compute_mastered(items_df),
        average_easiness=compute_average_easiness(items_df),
        topics_in_progress=len(topics_df) - topics_mastered,
        topics_mastered=topics_mastered,
    )


def topic_completion(store: ReviewStore, learner_id: str, topic_id: str, catalog=item_repo) -> TopicCompletion:
    """
    How many of a topic's items the learner has started and mastered.

    Args:
        store: Review store
        learner_id: Learner identifier
        topic_id: Topic identifier
        catalog: Item catalog (module or object with require_topic and
            get_items_for_topic)

    Raises:
        NotFound: unknown topic
    """
    topic = catalog.require_topic(topic_id)
    item_ids = {item.item_id for item in catalog.get_items_for_topic(topic_id)}

    states_df = load_review_states_df(store, learner_id, strategy=STRATEGY_SM2)
    in_topic = states_df[states_df["subject_id"].isin(item_ids)] if not states_df.empty else states_df
    mastered = compute_mastered(in_topic)

    return TopicCompletion(
        topic_id=topic_id,
        topic_name=topic.name,
        total_items=len(item_ids),
        items_started=len(in_topic),
        items_mastered=mastered,
        completion_percentage=compute_completion_percentage(mastered, len(item_ids)),
    )


def daily_review_counts(store: ReviewStore, learner_id: str, since: Optional[datetime] = None) -> pd.DataFrame:
    """
    Per-day review counts and pass rate, indexed by UTC day.
    """
    events_df = load_review_events_df(store, learner_id, since=since)
    return compute_daily_reviews(events_df, build_day_index(events_df))
