"""
Reminders - periodic review notifications

Quick start:
    from recall.reminders import ReviewScheduler, QuietHoursPolicy

    scheduler = ReviewScheduler(store, policy=QuietHoursPolicy(4, 18))
    scheduler.start()
    ...
    scheduler.stop()
"""

from recall.reminders.notifier import (
    ReminderEvent,
    Notifier,
    LoggingNotifier,
    CollectingNotifier
)
from recall.reminders.delivery_window import (
    DeliveryPolicy,
    ExactHourPolicy,
    QuietHoursPolicy
)
from recall.reminders.review_scheduler import ReviewScheduler, TickReport, build_policy


__all__ = [
    "ReminderEvent",
    "Notifier",
    "LoggingNotifier",
    "CollectingNotifier",
    "DeliveryPolicy",
    "ExactHourPolicy",
    "QuietHoursPolicy",
    "ReviewScheduler",
    "TickReport",
    "build_policy",
]
