"""
Types for learner statistics.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LearnerSummary:
    """
    Snapshot of a learner's progress across all item states.
    """
    learner_id: str
    total_items: int
    due_within_day: int
    mastered_items: int
    average_easiness: float
    topics_in_progress: int
    topics_mastered: int


@dataclass(frozen=True)
class TopicCompletion:
    """
    Progress through one topic's items.
    """
    topic_id: str
    topic_name: str
    total_items: int
    items_started: int
    items_mastered: int
    completion_percentage: float
