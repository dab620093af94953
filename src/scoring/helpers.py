"""
Scoring Helper Functions and Constants

Contains link types, intent classes, thresholds, and the small numeric
utilities shared by every signal calculation.
"""

import math
from typing import Any, Dict, Iterable, Optional
from enum import Enum


# ============================================================================
# ROUNDING & COERCION
# ============================================================================

def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves rounding toward +infinity.

    Python's round() uses banker's rounding (round(2.5) == 2); dashboard
    numbers were always produced with half-up rounding, so scores must match.

    Args:
        value: Number to round

    Returns:
        Rounded integer
    """
    return int(math.floor(value + 0.5))


def round_to(value: float, digits: int = 1) -> float:
    """Half-up rounding to a fixed number of decimals."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def to_number(value: Any) -> Optional[float]:
    """
    Coerce a stored numeric value to float.

    Storage returns numeric columns as strings ("42.50"). Missing, empty,
    unparsable or non-finite ("inf", "nan") values become None.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value) if isinstance(value, (int, float)) else float(str(value).strip())
    except (ValueError, OverflowError):
        return None
    return parsed if math.isfinite(parsed) else None


def to_int(value: Any) -> Optional[int]:
    """Coerce a stored value to int, None if absent or unparsable."""
    number = to_number(value)
    return None if number is None else int(number)


def to_position(value: Any) -> Optional[int]:
    """
    Coerce a ranking position.

    Only positive integers are rankings; 0, negatives and missing values
    all mean "not ranking".
    """
    position = to_int(value)
    if position is None or position <= 0:
        return None
    return position


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def safe_average(total: float, count: int) -> Optional[float]:
    """Average or None when nothing was counted."""
    if count <= 0:
        return None
    return total / count


def pick(row: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present (non-None) key of a row dict."""
    for key in keys:
        value = row.get(key)
        if value is not None:
            return value
    return default


# ============================================================================
# SEARCH INTENT
# ============================================================================

class SearchIntent(Enum):
    """Search intent classification."""
    TRANSACTIONAL = "transactional"
    COMMERCIAL = "commercial"
    INFORMATIONAL = "informational"
    NAVIGATIONAL = "navigational"


DEFAULT_INTENT = SearchIntent.INFORMATIONAL.value

# Intents that signal purchase readiness
COMMERCIAL_INTENTS = [
    SearchIntent.COMMERCIAL.value,
    SearchIntent.TRANSACTIONAL.value,
]


def normalize_intent(intent: Optional[str]) -> str:
    """Lower-case intent, defaulting to informational when missing."""
    if not intent:
        return DEFAULT_INTENT
    return str(intent).strip().lower() or DEFAULT_INTENT


# ============================================================================
# LINK TYPES
# ============================================================================

class LinkType(Enum):
    """Link attribute types."""
    DOFOLLOW = "dofollow"
    NOFOLLOW = "nofollow"
    UGC = "ugc"
    SPONSORED = "sponsored"


DEFAULT_LINK_TYPE = LinkType.DOFOLLOW.value


def normalize_link_type(link_type: Optional[str]) -> str:
    """Lower-case link type; storage defaults missing types to dofollow."""
    if not link_type:
        return DEFAULT_LINK_TYPE
    return str(link_type).strip().lower() or DEFAULT_LINK_TYPE


def dominant_value(counts: Dict[str, int]) -> Optional[str]:
    """
    Most frequent key of a count map.

    Ties resolve alphabetically so the result does not depend on the
    order rows were read in.
    """
    if not counts:
        return None
    return min(counts, key=lambda k: (-counts[k], k))


# ============================================================================
# SPAM RATING
# ============================================================================

class SpamRating(Enum):
    """Spam score buckets shown next to linking domains."""
    SAFE = "safe"       # <= 30
    REVIEW = "review"   # 31-60
    TOXIC = "toxic"     # > 60
    UNKNOWN = "unknown"


SAFE_SPAM_MAX = 30
TOXIC_SPAM_MIN = 60


def spam_rating(spam_score: Optional[float]) -> SpamRating:
    """
    Classify a spam score.

    Args:
        spam_score: 0-100 spam estimate, None if unknown

    Returns:
        SpamRating enum
    """
    if spam_score is None:
        return SpamRating.UNKNOWN
    if spam_score <= SAFE_SPAM_MAX:
        return SpamRating.SAFE
    if spam_score <= TOXIC_SPAM_MIN:
        return SpamRating.REVIEW
    return SpamRating.TOXIC


# ============================================================================
# COMPETITIVE THREAT
# ============================================================================

class TrafficThreat(Enum):
    """Threat label derived from a pressure index."""
    HIGH = "high"       # >= 60
    MEDIUM = "medium"   # 30-59
    LOW = "low"         # < 30


def traffic_threat(pressure_index: Optional[float]) -> TrafficThreat:
    """
    Label a pressure index.

    Args:
        pressure_index: 0-100 pressure index

    Returns:
        TrafficThreat enum
    """
    if pressure_index is None:
        return TrafficThreat.LOW
    if pressure_index >= 60:
        return TrafficThreat.HIGH
    if pressure_index >= 30:
        return TrafficThreat.MEDIUM
    return TrafficThreat.LOW


# ============================================================================
# AGGREGATION HELPERS
# ============================================================================

def mean(values: Iterable[float]) -> float:
    """Arithmetic mean, 0.0 for an empty input."""
    items = list(values)
    if not items:
        return 0.0
    return sum(items) / len(items)
