"""
Quality Scale - normalizes recall feedback to a 0-5 rating.

Two inputs are accepted:
- A direct rating chosen by the learner (0-5)
- Accuracy of an answer (0.0-1.0), e.g. from a typed or multiple-choice test

Both end up as a QualityResponse. The pass/fail boundary is PASS_THRESHOLD.
"""

from __future__ import annotations
import math
from typing import Optional

from recall.srs.constants import (
    QualityResponse,
    MIN_QUALITY,
    MAX_QUALITY,
    PASS_THRESHOLD,
)
from recall.srs.errors import InvalidQuality


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def from_rating(rating) -> QualityResponse:
    """
    Validate a direct rating.

    Args:
        rating: Integer (or QualityResponse) in [0, 5]

    Returns:
        Matching QualityResponse

    Raises:
        InvalidQuality: rating is not an integer in range. The rating itself
            is never clamped.
    """
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidQuality(rating)
    if rating < MIN_QUALITY or rating > MAX_QUALITY:
        raise InvalidQuality(rating)
    return QualityResponse(rating)


def from_accuracy(accuracy: float, latency_ms: Optional[int] = None) -> QualityResponse:
    """
    Derive a rating from answer accuracy.

    Formula:
        rating = round(accuracy * 5), clamped to [0, 5]

    An accuracy of exactly 0 is always a blackout. Latency is accepted so
    callers can pass whatever the front-end measured; it is recorded on the
    review event but does not move the rating.

    Args:
        accuracy: Fraction of the answer that was correct (0.0-1.0)
        latency_ms: Time taken to answer (optional, informational)

    Returns:
        QualityResponse
    """
    if isinstance(accuracy, bool) or not isinstance(accuracy, (int, float)):
        raise InvalidQuality(accuracy, f"Invalid accuracy {accuracy!r}: expected a number in [0, 1]")
    if math.isnan(accuracy) or accuracy < 0.0 or accuracy > 1.0:
        raise InvalidQuality(accuracy, f"Invalid accuracy {accuracy!r}: expected a number in [0, 1]")

    if accuracy == 0:
        return QualityResponse.BLACKOUT

    rating = round_half_up(accuracy * MAX_QUALITY)
    rating = max(MIN_QUALITY, min(MAX_QUALITY, rating))
    return QualityResponse(rating)


def is_passing(quality: int, pass_threshold: int = PASS_THRESHOLD) -> bool:
    """True if the rating counts as a successful recall."""
    return int(quality) >= pass_threshold
