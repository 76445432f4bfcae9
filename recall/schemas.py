"""
Pydantic models for the item catalog and learner profiles.

Items and topics are MongoDB documents written by the import pipeline;
learner profiles come from the user-profile side. The engine only reads
the fields defined here.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class UpdateStrategyName(str, Enum):
    """How the items of a topic are scheduled."""
    SM2 = "sm2"        # Per item, adaptive easiness factor
    LADDER = "ladder"  # Per topic, fixed repetition ladder


# ---- Catalog ----

class Item(BaseModel):
    """
    An atomic unit of study (word or phrase).

    One document per item; content may be corrected but the id never changes.
    """
    item_id: str = Field(..., description="Stable item identifier")
    content: str = Field(..., description="Display content (the word itself)")
    translation: Optional[str] = None
    description: Optional[str] = None
    difficulty: int = Field(default=3, ge=1, le=5, description="Difficulty hint (1-5)")
    topic_id: Optional[str] = Field(default=None, description="Owning topic")
    examples: list[str] = Field(default_factory=list)

    class Config:
        use_enum_values = True


class Topic(BaseModel):
    """A group of items with a shared scheduling strategy."""
    topic_id: str
    name: str
    description: Optional[str] = None
    strategy: UpdateStrategyName = Field(
        default=UpdateStrategyName.SM2,
        description="sm2 schedules each item; ladder schedules the topic as a whole",
    )

    class Config:
        use_enum_values = True


# ---- Learners ----

class LearnerProfile(BaseModel):
    """The two notification fields the engine reads, plus the delivery cap."""
    learner_id: str
    reminders_enabled: bool = True
    delivery_hour: int = Field(default=9, ge=0, le=23, description="Preferred local hour (0-23)")
    max_per_day: int = Field(default=5, ge=1, le=50)
    last_notified_at: Optional[datetime] = None
