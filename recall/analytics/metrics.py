"""
Metric computations for learner statistics.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pandas as pd

from recall.srs.constants import DEFAULT_EASINESS


def build_day_index(events_df: pd.DataFrame) -> pd.DatetimeIndex:
    """
    Build a dense UTC day index spanning the event range.
    """
    if events_df.empty:
        return pd.DatetimeIndex([], tz="UTC")
    start = events_df["day_utc"].min()
    end = events_df["day_utc"].max()
    return pd.date_range(start=start, end=end, freq="D")


def compute_due_within(states_df: pd.DataFrame, now: datetime, days: int = 1) -> int:
    """
    Count states due before now + days (open ladder stages included).
    """
    if states_df.empty:
        return 0
    horizon = pd.Timestamp(now + timedelta(days=days))
    if horizon.tzinfo is None:
        horizon = horizon.tz_localize("UTC")
    scheduled = states_df[states_df["next_due_at"].notna() & ~states_df["completed"].astype(bool)]
    return int((scheduled["next_due_at"] <= horizon).sum())


def compute_mastered(states_df: pd.DataFrame) -> int:
    if states_df.empty:
        return 0
    return int(states_df["mastered"].astype(bool).sum())


def compute_average_easiness(states_df: pd.DataFrame) -> float:
    """
    Mean easiness factor; 2.5 when nothing has been studied yet.
    """
    if states_df.empty:
        return DEFAULT_EASINESS
    return float(states_df["easiness_factor"].mean())


def compute_daily_reviews(events_df: pd.DataFrame, day_index: pd.DatetimeIndex) -> pd.DataFrame:
    """
    Reviews and pass rate per UTC day.

    Days without reviews are included with zero reviews and a NaN pass rate.
    """
    if events_df.empty or len(day_index) == 0:
        return pd.DataFrame(columns=["reviews", "passed", "pass_rate"])

    grouped = events_df.groupby("day_utc").agg(
        reviews=("subject_id", "size"),
        passed=("passed", "sum"),
    )
    daily = grouped.reindex(day_index, fill_value=0).astype("int64")
    daily["pass_rate"] = daily["passed"] / daily["reviews"].where(daily["reviews"] > 0)
    daily.index.name = "day_utc"
    return daily


def compute_completion_percentage(mastered: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return mastered / total * 100.0
