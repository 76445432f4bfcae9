"""
Notifier boundary.

The engine decides who should be reminded and about what; delivering the
message (chat bot, push, e-mail) belongs to the front-end. A notifier
receives at most one ReminderEvent per learner per scheduler tick.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReminderEvent:
    """A learner has subjects waiting for review."""
    learner_id: str
    due_count: int
    subject_ids: tuple[str, ...] = field(default_factory=tuple)
    created_at: datetime | None = None


class Notifier(Protocol):
    """Anything that can deliver a reminder."""

    def deliver(self, event: ReminderEvent) -> None:
        """Deliver one reminder. Raise on failure."""
        ...


class LoggingNotifier:
    """Default notifier: writes reminders to the log."""

    def deliver(self, event: ReminderEvent) -> None:
        logger.info(
            "Reminder for %s: %d subject(s) due (%s)",
            event.learner_id,
            event.due_count,
            ", ".join(event.subject_ids),
        )


class CollectingNotifier:
    """Keeps delivered reminders in memory (dry runs and manual checks)."""

    def __init__(self):
        self.events: list[ReminderEvent] = []

    def deliver(self, event: ReminderEvent) -> None:
        self.events.append(event)
