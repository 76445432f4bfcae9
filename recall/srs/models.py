"""
SQLAlchemy ORM Models for the review store

Defines ReviewState, ReviewEvent and Learner tables.
"""

from sqlalchemy import Boolean, Column, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class ReviewStateModel(Base):
    """
    Persistent scheduling state for one (learner, subject, strategy) key.

    `version` is bumped on every write; updates are conditional on it.
    """
    __tablename__ = 'review_state'

    # Primary key: composite of learner_id, subject_id and strategy
    learner_id = Column(String(255), primary_key=True, nullable=False)
    subject_id = Column(String(255), primary_key=True, nullable=False)
    strategy = Column(String(50), primary_key=True, nullable=False)

    # Adaptive parameters
    easiness_factor = Column(Float, nullable=False)
    interval_days = Column(Integer, nullable=False)
    repetition_count = Column(Integer, nullable=False)
    consecutive_correct = Column(Integer, nullable=False, default=0)
    last_quality = Column(Integer, nullable=True)

    # Timing
    last_reviewed_at = Column(DateTime(timezone=True), nullable=True)
    next_due_at = Column(DateTime(timezone=True), nullable=True)

    # Ladder / mastery flags
    completed = Column(Boolean, nullable=False, default=False)
    mastered = Column(Boolean, nullable=False, default=False)

    # Optimistic concurrency token
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        Index('idx_review_state_due', 'learner_id', 'next_due_at'),
    )

    def __repr__(self):
        return f"<ReviewState({self.learner_id}, {self.subject_id}, {self.strategy}, v{self.version})>"


class ReviewEventModel(Base):
    """
    Log entry for a single review.

    Captures state before/after so analytics never need to replay updates.
    """
    __tablename__ = 'review_events'

    id = Column(Integer, primary_key=True, autoincrement=True)

    learner_id = Column(String(255), nullable=False)
    subject_id = Column(String(255), nullable=False)
    strategy = Column(String(50), nullable=False)

    # Timing and feedback
    timestamp = Column(DateTime(timezone=True), nullable=False)
    quality = Column(Integer, nullable=True)  # 0-5, NULL for plain ladder completions
    passed = Column(Boolean, nullable=False)
    latency_ms = Column(Integer, nullable=True)

    # State before review
    easiness_before = Column(Float, nullable=True)
    interval_before = Column(Integer, nullable=True)
    repetition_before = Column(Integer, nullable=True)

    # State after review
    easiness_after = Column(Float, nullable=False)
    interval_after = Column(Integer, nullable=False)
    repetition_after = Column(Integer, nullable=False)
    mastered_after = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index('idx_review_events_learner_ts', 'learner_id', 'timestamp'),
    )

    def __repr__(self):
        return f"<ReviewEvent(id={self.id}, {self.learner_id}/{self.subject_id}, quality={self.quality})>"


class LearnerModel(Base):
    """Notification profile of a learner (owned by the user-profile side)."""
    __tablename__ = 'learners'

    learner_id = Column(String(255), primary_key=True, nullable=False)
    reminders_enabled = Column(Boolean, nullable=False, default=True)
    delivery_hour = Column(Integer, nullable=False, default=9)  # 0-23, local time
    max_per_day = Column(Integer, nullable=False, default=5)
    last_notified_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('idx_learners_delivery_hour', 'reminders_enabled', 'delivery_hour'),
    )

    def __repr__(self):
        return f"<Learner({self.learner_id}, hour={self.delivery_hour})>"
