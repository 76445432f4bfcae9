"""
Learning sessions.

A learning session walks a learner through a list of new items in groups
(10 items by default). Presenting a group is the learner's first exposure
to those items, so their review states are created at that point.

Sessions are in-memory and owned by the transport layer; a SessionStore is
passed to whatever handles the learner's messages.
"""

from __future__ import annotations
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from recall.srs.database import ReviewStore
from recall.srs.errors import NotFound
from recall.srs.review_state import ensure_utc, utc_now
from recall.srs.reviews import introduce_items
from recall.srs.strategies import StrategyRegistry

logger = logging.getLogger(__name__)

DEFAULT_GROUP_SIZE = 10


@dataclass
class LearningSession:
    """Ordered item list plus a cursor into it."""
    learner_id: str
    item_ids: list[str]
    group_size: int = DEFAULT_GROUP_SIZE
    cursor: int = 0
    started_at: Optional[datetime] = None
    presented: list[str] = field(default_factory=list)

    @property
    def remaining(self) -> int:
        return max(0, len(self.item_ids) - self.cursor)

    @property
    def finished(self) -> bool:
        return self.cursor >= len(self.item_ids)

    def take_group(self) -> list[str]:
        """Advance the cursor past the next group and return it."""
        group = self.item_ids[self.cursor:self.cursor + self.group_size]
        self.cursor += len(group)
        self.presented.extend(group)
        return group


class SessionStore:
    """Thread-safe map of learner id -> LearningSession."""

    def __init__(
        self,
        store: ReviewStore,
        group_size: int = DEFAULT_GROUP_SIZE,
        registry: Optional[StrategyRegistry] = None,
    ):
        if group_size < 1:
            raise ValueError("group_size must be >= 1")
        self.store = store
        self.group_size = group_size
        self.registry = registry
        self._sessions: dict[str, LearningSession] = {}
        self._lock = threading.Lock()

    def start(self, learner_id: str, item_ids: list[str], now: Optional[datetime] = None) -> LearningSession:
        """
        Begin a new session, replacing any session the learner already had.

        Duplicate item ids are dropped, keeping the first occurrence.
        """
        now = ensure_utc(now) if now is not None else utc_now()
        session = LearningSession(
            learner_id=learner_id,
            item_ids=list(dict.fromkeys(item_ids)),
            group_size=self.group_size,
            started_at=now,
        )
        with self._lock:
            self._sessions[learner_id] = session
        logger.info("Session started for %s with %d item(s)", learner_id, len(session.item_ids))
        return session

    def get(self, learner_id: str) -> Optional[LearningSession]:
        with self._lock:
            return self._sessions.get(learner_id)

    def next_group(self, learner_id: str, now: Optional[datetime] = None) -> list[str]:
        """
        Present the next group of items and record first exposure.

        Returns:
            Item ids of the group (empty once the session is finished)

        Raises:
            NotFound: learner has no active session
        """
        with self._lock:
            session = self._sessions.get(learner_id)
            if session is None:
                raise NotFound(f"No learning session for {learner_id!r}")
            group = session.take_group()

        if group:
            introduce_items(self.store, learner_id, group, now, self.registry)
        return group

    def end(self, learner_id: str) -> Optional[LearningSession]:
        """Drop the learner's session and return it (None if there was none)."""
        with self._lock:
            return self._sessions.pop(learner_id, None)

    def __contains__(self, learner_id: str) -> bool:
        with self._lock:
            return learner_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
