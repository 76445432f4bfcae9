"""
Error taxonomy for the review engine.

InvalidQuality is a caller mistake; StoreUnavailable and NotifierUnavailable
are transient I/O failures; Conflict means a concurrent write won the race
and the caller must re-read before retrying.
"""

from __future__ import annotations


class RecallError(Exception):
    """Base class for all engine errors."""


class InvalidQuality(RecallError, ValueError):
    """Quality rating or accuracy outside its allowed range."""

    def __init__(self, value, message: str | None = None):
        self.value = value
        super().__init__(message or f"Invalid quality {value!r}: expected an integer in [0, 5]")


class NotFound(RecallError, LookupError):
    """A learner, topic or review state does not exist."""


class StoreUnavailable(RecallError):
    """The persistent store could not be reached or failed mid-operation."""


class NotifierUnavailable(RecallError):
    """The notifier failed to deliver a reminder."""


class Conflict(RecallError):
    """Optimistic-concurrency check failed for a (learner, subject) key."""

    def __init__(self, learner_id: str, subject_id: str, expected_version: int):
        self.learner_id = learner_id
        self.subject_id = subject_id
        self.expected_version = expected_version
        super().__init__(
            f"Review state {learner_id}/{subject_id} changed since version "
            f"{expected_version}; re-read and retry"
        )
