"""
Analytics package exports.
"""

from recall.analytics.service import daily_review_counts, learner_summary, topic_completion
from recall.analytics.types import LearnerSummary, TopicCompletion

__all__ = [
    "daily_review_counts",
    "learner_summary",
    "topic_completion",
    "LearnerSummary",
    "TopicCompletion",
]
