"""
SRS Constants and Parameters

All default parameters for the review-scheduling algorithms in one place.
Runtime overrides come from recall.config (environment variables).
"""

from enum import IntEnum


# ---- Quality Responses ----

class QualityResponse(IntEnum):
    """Recall quality reported after a review (0-5)."""
    BLACKOUT = 0            # Complete blackout, unable to recall
    INCORRECT = 1           # Wrong, but remembered on seeing the answer
    INCORRECT_FAMILIAR = 2  # Wrong, but the answer felt familiar
    CORRECT_DIFFICULT = 3   # Correct with serious effort
    CORRECT_HESITATION = 4  # Correct after some hesitation
    PERFECT = 5             # Perfect response


MIN_QUALITY = int(QualityResponse.BLACKOUT)
MAX_QUALITY = int(QualityResponse.PERFECT)

# Ratings at or above this value count as a pass
PASS_THRESHOLD = 3


# ---- Strategy Names ----

STRATEGY_SM2 = "sm2"        # Adaptive easiness factor, per item
STRATEGY_LADDER = "ladder"  # Fixed offsets, per topic

STRATEGIES = (STRATEGY_SM2, STRATEGY_LADDER)


# ---- Adaptive (SM-2) Parameters ----

DEFAULT_EASINESS = 2.5
MIN_EASINESS = 1.3

# Intervals (days) for the first successful repetitions
INITIAL_INTERVALS = (1, 3, 7, 10, 15, 30)

MIN_INTERVAL = 1      # No update may leave an interval below one day
MAX_INTERVAL = 365    # One year

# Mastery: reviewed >= 5 times, last answer >= 4, interval >= 30 days
MASTERY_MIN_REPETITIONS = 5
MASTERY_MIN_QUALITY = int(QualityResponse.CORRECT_HESITATION)
MASTERY_MIN_INTERVAL = 30


# ---- Ladder Parameters ----

# Offsets (days) between topic repetitions: 7 stages
LADDER_OFFSETS = (1, 2, 3, 7, 15, 25, 40)


# ---- Reminder Defaults ----

DEFAULT_WINDOW_START_HOUR = 4
DEFAULT_WINDOW_END_HOUR = 18
DEFAULT_TICK_INTERVAL_SECONDS = 3600
DEFAULT_MAX_PER_DELIVERY = 10
DEFAULT_MAX_PER_DAY = 5
