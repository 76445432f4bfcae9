"""
Update strategies.

The adaptive SM-2 updater and the fixed topic ladder sit behind one
interface so that due selection and the reminder scheduler never branch on
which algorithm produced a state. The strategy for a group of items is
picked from the topic configuration (Topic.strategy).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Protocol, Sequence

from recall.srs import ladder_updates, sm2_updates
from recall.srs.constants import LADDER_OFFSETS, STRATEGY_LADDER, STRATEGY_SM2
from recall.srs.errors import InvalidQuality
from recall.srs.review_state import ReviewState, ensure_utc, initialize_new_state


class UpdateStrategy(Protocol):
    """Protocol for review update strategies."""

    name: str

    def new_state(self, learner_id: str, subject_id: str, now: datetime) -> ReviewState:
        """State for a subject on first exposure."""
        ...

    def update(self, state: ReviewState, quality: Optional[int], now: datetime) -> ReviewState:
        """Next state after a review event."""
        ...

    def is_due(self, state: ReviewState, now: datetime) -> bool:
        """Whether the state should be reviewed at `now`."""
        ...


def _due_by_date(state: ReviewState, now: datetime) -> bool:
    if state.next_due_at is None:
        return False
    return ensure_utc(state.next_due_at) <= ensure_utc(now)


@dataclass(frozen=True)
class AdaptiveStrategy:
    """SM-2 style strategy with an adaptive easiness factor."""
    params: sm2_updates.Sm2Parameters = field(default_factory=sm2_updates.Sm2Parameters)
    name: str = STRATEGY_SM2

    def new_state(self, learner_id: str, subject_id: str, now: datetime) -> ReviewState:
        return initialize_new_state(learner_id, subject_id, now, strategy=self.name)

    def update(self, state: ReviewState, quality: Optional[int], now: datetime) -> ReviewState:
        if quality is None:
            raise InvalidQuality(quality, "The adaptive strategy requires a quality rating")
        return sm2_updates.apply_sm2_update(state, quality, now, self.params)

    def is_due(self, state: ReviewState, now: datetime) -> bool:
        return _due_by_date(state, now)


@dataclass(frozen=True)
class LadderStrategy:
    """Fixed-ladder strategy for topic-level repetition."""
    ladder: Sequence[int] = LADDER_OFFSETS
    name: str = STRATEGY_LADDER

    def new_state(self, learner_id: str, subject_id: str, now: datetime) -> ReviewState:
        return ladder_updates.start_topic(learner_id, subject_id, now, self.ladder)

    def update(self, state: ReviewState, quality: Optional[int], now: datetime) -> ReviewState:
        # Every completion advances; the rating is only kept for analytics
        return ladder_updates.advance(state, now, self.ladder, quality=quality)

    def is_due(self, state: ReviewState, now: datetime) -> bool:
        if state.completed or state.mastered:
            return False
        return _due_by_date(state, now)


StrategyRegistry = dict[str, UpdateStrategy]


def build_registry(
    params: Optional[sm2_updates.Sm2Parameters] = None,
    ladder: Optional[Sequence[int]] = None,
) -> StrategyRegistry:
    """
    Build the name -> strategy mapping.

    Args:
        params: Adaptive parameters (defaults if None)
        ladder: Ladder offsets (defaults if None)
    """
    adaptive = AdaptiveStrategy(params=params or sm2_updates.DEFAULT_PARAMETERS)
    topic_ladder = LadderStrategy(ladder=tuple(ladder) if ladder else LADDER_OFFSETS)
    return {adaptive.name: adaptive, topic_ladder.name: topic_ladder}


DEFAULT_REGISTRY: StrategyRegistry = build_registry()


def get_strategy(name: str, registry: Optional[StrategyRegistry] = None) -> UpdateStrategy:
    """Look up a strategy by name, raising KeyError for unknown names."""
    registry = registry if registry is not None else DEFAULT_REGISTRY
    try:
        return registry[name]
    except KeyError:
        raise KeyError(f"Unknown update strategy: {name!r}") from None
