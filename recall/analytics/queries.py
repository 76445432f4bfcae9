"""
Data-loading helpers for analytics.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import pandas as pd

from recall.srs.database import ReviewStore


EVENT_COLUMNS = ["subject_id", "strategy", "timestamp", "quality", "passed", "day_utc"]
STATE_COLUMNS = [
    "subject_id", "strategy", "easiness_factor", "interval_days",
    "repetition_count", "next_due_at", "completed", "mastered",
]


def load_review_events_df(
    store: ReviewStore,
    learner_id: str,
    since: Optional[datetime] = None,
) -> pd.DataFrame:
    """
    Load a learner's review events into a dataframe, oldest first.
    """
    rows = store.review_events(learner_id, since=since)
    if not rows:
        return pd.DataFrame(columns=EVENT_COLUMNS)

    df = pd.DataFrame(rows)
    df = df[["subject_id", "strategy", "timestamp", "quality", "passed"]].copy()
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True, errors="coerce")
    df = df.dropna(subset=["subject_id", "timestamp"])
    df["day_utc"] = df["timestamp"].dt.floor("D")
    df = df.sort_values("timestamp").reset_index(drop=True)
    return df


def load_review_states_df(
    store: ReviewStore,
    learner_id: str,
    strategy: Optional[str] = None,
) -> pd.DataFrame:
    """
    Load current review-state snapshots for a learner.
    """
    states = store.review_states(learner_id, strategy=strategy)
    if not states:
        return pd.DataFrame(columns=STATE_COLUMNS)

    df = pd.DataFrame([{column: getattr(s, column) for column in STATE_COLUMNS} for s in states])
    df["next_due_at"] = pd.to_datetime(df["next_due_at"], utc=True, errors="coerce")
    return df
