"""
Engine configuration.

Settings are read from environment variables (a local .env file is loaded
first). Every value has a default except the connection strings, which are
read lazily by the store and the catalog.
"""

from __future__ import annotations

import os
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

from recall.srs import constants
from recall.srs.sm2_updates import Sm2Parameters
from recall.srs.strategies import StrategyRegistry, build_registry


class EngineSettings(BaseModel):
    """Tunable engine parameters."""

    # Reminder scheduling
    reminder_policy: Literal["exact", "window"] = "exact"
    window_start_hour: int = Field(default=constants.DEFAULT_WINDOW_START_HOUR, ge=0, le=23)
    window_end_hour: int = Field(default=constants.DEFAULT_WINDOW_END_HOUR, ge=1, le=24)
    timezone: str = "UTC"
    tick_interval_seconds: float = Field(default=constants.DEFAULT_TICK_INTERVAL_SECONDS, gt=0)
    max_items_per_delivery: int = Field(default=constants.DEFAULT_MAX_PER_DELIVERY, ge=1)
    scheduler_workers: int = Field(default=4, ge=1, le=64)
    io_timeout_seconds: float = Field(default=30.0, gt=0)

    # Adaptive strategy
    initial_intervals: tuple[int, ...] = constants.INITIAL_INTERVALS
    max_interval_days: int = Field(default=constants.MAX_INTERVAL, ge=1)
    min_easiness: float = Field(default=constants.MIN_EASINESS, gt=0)
    pass_threshold: int = Field(default=constants.PASS_THRESHOLD, ge=1, le=5)

    # Topic ladder
    ladder_offsets: tuple[int, ...] = constants.LADDER_OFFSETS

    @field_validator("initial_intervals", "ladder_offsets")
    @classmethod
    def _positive_days(cls, value: tuple[int, ...]) -> tuple[int, ...]:
        if not value:
            raise ValueError("at least one interval is required")
        if any(day < 1 for day in value):
            raise ValueError("intervals must be whole days >= 1")
        return value

    @model_validator(mode="after")
    def _window_not_empty(self) -> "EngineSettings":
        if self.window_start_hour >= self.window_end_hour:
            raise ValueError(
                f"reminder window start ({self.window_start_hour}) must be before "
                f"end ({self.window_end_hour})"
            )
        return self

    def sm2_parameters(self) -> Sm2Parameters:
        return Sm2Parameters(
            initial_intervals=self.initial_intervals,
            max_interval=self.max_interval_days,
            min_easiness=self.min_easiness,
            pass_threshold=self.pass_threshold,
        )

    def registry(self) -> StrategyRegistry:
        """Strategy registry built from these settings."""
        return build_registry(self.sm2_parameters(), self.ladder_offsets)


# Environment variable -> settings field
ENV_VARS = {
    "REMINDER_POLICY": "reminder_policy",
    "REMINDER_WINDOW_START": "window_start_hour",
    "REMINDER_WINDOW_END": "window_end_hour",
    "REMINDER_TIMEZONE": "timezone",
    "TICK_INTERVAL_SECONDS": "tick_interval_seconds",
    "MAX_ITEMS_PER_DELIVERY": "max_items_per_delivery",
    "SCHEDULER_WORKERS": "scheduler_workers",
    "IO_TIMEOUT_SECONDS": "io_timeout_seconds",
    "INITIAL_INTERVALS": "initial_intervals",
    "MAX_INTERVAL_DAYS": "max_interval_days",
    "MIN_EASINESS": "min_easiness",
    "PASS_THRESHOLD": "pass_threshold",
    "LADDER_OFFSETS": "ladder_offsets",
}

LIST_FIELDS = {"initial_intervals", "ladder_offsets"}


def parse_int_list(raw: str) -> tuple[int, ...]:
    """Parse "1, 3, 7" into (1, 3, 7)."""
    parts = [part.strip() for part in raw.split(",")]
    try:
        return tuple(int(part) for part in parts if part)
    except ValueError:
        raise ValueError(f"Expected a comma-separated list of integers, got {raw!r}") from None


def load_settings(env: Optional[dict] = None) -> EngineSettings:
    """
    Build settings from environment variables.

    Args:
        env: Mapping to read instead of os.environ (the .env file is not
            loaded in that case)

    Returns:
        Validated EngineSettings

    Raises:
        pydantic.ValidationError: a value is out of range
        ValueError: a list variable is malformed
    """
    if env is None:
        load_dotenv()
        env = os.environ

    values = {}
    for var, field_name in ENV_VARS.items():
        raw = env.get(var)
        if raw is None or raw.strip() == "":
            continue
        if field_name in LIST_FIELDS:
            values[field_name] = parse_int_list(raw)
        else:
            values[field_name] = raw.strip()
    return EngineSettings(**values)
