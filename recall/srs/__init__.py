"""
SRS - spaced repetition scheduling

Main API for the review engine.

This package implements:
- A 0-5 quality scale (direct rating or answer accuracy)
- Adaptive SM-2 style updates per item (easiness factor, growing intervals)
- A fixed repetition ladder per topic (1, 2, 3, 7, 15, 25, 40 days)
- Due selection in priority order (new, then hard, then overdue)

Quick start:
    from recall import srs

    store = srs.ReviewStore(url="sqlite:///recall.db")
    store.init_db()

    # Record a review (load, update, save + event log)
    state = srs.submit_review(store, "learner-1", "word-42", 4)

    # Process a review (algorithm only, no DB calls)
    state, event_data = srs.process_review(state, 5)

    # What is due right now
    due = srs.select_due(store.review_states("learner-1"), now, limit=10)
"""

# Core scheduler API (algorithm logic)
from recall.srs.scheduler import process_review
from recall.srs.due_selection import select_due, count_due, is_due, priority_key

# Feedback API (store-backed)
from recall.srs.reviews import (
    submit_review,
    submit_accuracy,
    start_topic,
    complete_topic_stage,
    introduce_items,
    enroll_topic
)

# Database API
from recall.srs.database import (
    ReviewStore,
    get_store,
    get_database_url,
    is_test_mode
)

# Constants and parameters
from recall.srs.constants import (
    QualityResponse,
    PASS_THRESHOLD,
    STRATEGY_SM2,
    STRATEGY_LADDER,
    DEFAULT_EASINESS,
    MIN_EASINESS,
    INITIAL_INTERVALS,
    MAX_INTERVAL,
    LADDER_OFFSETS
)

# Review state and strategies (for advanced usage)
from recall.srs.review_state import ReviewState, initialize_new_state, is_mastered
from recall.srs.quality import from_rating, from_accuracy, is_passing
from recall.srs.sm2_updates import Sm2Parameters
from recall.srs.strategies import (
    UpdateStrategy,
    AdaptiveStrategy,
    LadderStrategy,
    build_registry,
    get_strategy
)

# Errors
from recall.srs.errors import (
    RecallError,
    InvalidQuality,
    NotFound,
    StoreUnavailable,
    NotifierUnavailable,
    Conflict
)


__all__ = [
    # Core algorithm
    "process_review",
    "select_due",
    "count_due",
    "is_due",
    "priority_key",

    # Feedback
    "submit_review",
    "submit_accuracy",
    "start_topic",
    "complete_topic_stage",
    "introduce_items",
    "enroll_topic",

    # Database operations
    "ReviewStore",
    "get_store",
    "get_database_url",
    "is_test_mode",

    # Enums and parameters
    "QualityResponse",
    "PASS_THRESHOLD",
    "STRATEGY_SM2",
    "STRATEGY_LADDER",
    "DEFAULT_EASINESS",
    "MIN_EASINESS",
    "INITIAL_INTERVALS",
    "MAX_INTERVAL",
    "LADDER_OFFSETS",

    # Review state
    "ReviewState",
    "initialize_new_state",
    "is_mastered",
    "from_rating",
    "from_accuracy",
    "is_passing",

    # Strategies
    "Sm2Parameters",
    "UpdateStrategy",
    "AdaptiveStrategy",
    "LadderStrategy",
    "build_registry",
    "get_strategy",

    # Errors
    "RecallError",
    "InvalidQuality",
    "NotFound",
    "StoreUnavailable",
    "NotifierUnavailable",
    "Conflict",
]
