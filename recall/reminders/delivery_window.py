"""
Delivery window policies.

Two ways to decide which learners a tick should remind:

- ExactHourPolicy: learners whose preferred delivery hour equals the
  current local hour and who were not reminded yet during that hour.
  With an hourly tick every learner is considered once a day.
- QuietHoursPolicy: every learner with reminders enabled, but only while
  the local hour is inside [start, end). A learner is reminded at most
  once per local day; `last_notified_at` tracks that.
"""

from __future__ import annotations
from datetime import datetime, time
from typing import Protocol
from zoneinfo import ZoneInfo

from recall.schemas import LearnerProfile
from recall.srs.constants import DEFAULT_WINDOW_END_HOUR, DEFAULT_WINDOW_START_HOUR
from recall.srs.database import ReviewStore
from recall.srs.review_state import ensure_utc


class DeliveryPolicy(Protocol):
    def eligible_learners(self, store: ReviewStore, now: datetime) -> list[LearnerProfile]:
        """Learners that may receive a reminder at `now`."""
        ...


def local_time(now: datetime, tz: str = "UTC") -> datetime:
    return ensure_utc(now).astimezone(ZoneInfo(tz))


class ExactHourPolicy:
    """Remind learners whose delivery hour matches the current local hour."""

    def __init__(self, timezone: str = "UTC"):
        self.timezone = timezone
        ZoneInfo(timezone)  # fail fast on unknown zones

    def start_of_local_hour(self, now: datetime) -> datetime:
        local = local_time(now, self.timezone)
        return ensure_utc(local.replace(minute=0, second=0, microsecond=0))

    def eligible_learners(self, store: ReviewStore, now: datetime) -> list[LearnerProfile]:
        hour = local_time(now, self.timezone).hour
        return store.due_learners(hour, not_notified_since=self.start_of_local_hour(now))

    def __repr__(self):
        return f"ExactHourPolicy(timezone={self.timezone!r})"


class QuietHoursPolicy:
    """Remind any enabled learner once a day, inside [start_hour, end_hour)."""

    def __init__(
        self,
        start_hour: int = DEFAULT_WINDOW_START_HOUR,
        end_hour: int = DEFAULT_WINDOW_END_HOUR,
        timezone: str = "UTC",
    ):
        if not (0 <= start_hour < end_hour <= 24):
            raise ValueError(f"Invalid delivery window [{start_hour}, {end_hour})")
        self.start_hour = start_hour
        self.end_hour = end_hour
        self.timezone = timezone
        ZoneInfo(timezone)

    def in_window(self, now: datetime) -> bool:
        hour = local_time(now, self.timezone).hour
        return self.start_hour <= hour < self.end_hour

    def start_of_local_day(self, now: datetime) -> datetime:
        """Midnight of the current local day, as aware UTC."""
        local = local_time(now, self.timezone)
        midnight = datetime.combine(local.date(), time(0), tzinfo=local.tzinfo)
        return ensure_utc(midnight)

    def eligible_learners(self, store: ReviewStore, now: datetime) -> list[LearnerProfile]:
        if not self.in_window(now):
            return []
        return store.enabled_learners(not_notified_since=self.start_of_local_day(now))

    def __repr__(self):
        return (
            f"QuietHoursPolicy({self.start_hour:02d}:00-{self.end_hour:02d}:00, "
            f"timezone={self.timezone!r})"
        )
