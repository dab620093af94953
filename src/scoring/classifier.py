"""
Quick Win / Falling Star Classifier

Filters the latest-per-keyword view into two actionable buckets:

1. **Quick Wins** - Keywords sitting just off the top spots (default 6-20)
   with enough demand, manageable difficulty and buying intent.
   Ordered by opportunity score, best first.

2. **Falling Stars** - Keywords that were on page one (default <= 10) and
   dropped at least N positions (default 5). Ordered by position delta,
   worst drop first.

Thresholds are per-project settings objects with documented defaults.
Values coming from user input are sanitized on construction rather than
rejected.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import InvalidSettingsError
from .helpers import COMMERCIAL_INTENTS, clamp, normalize_intent
from .models import KeywordView, coerce_rows
from .position import compute_position_delta

logger = logging.getLogger(__name__)


# =============================================================================
# SETTINGS
# =============================================================================

class QuickWinSettings(BaseModel):
    """Per-project quick win thresholds."""
    enabled: bool = True
    min_position: int = Field(default=6, description="Best position still counted (inclusive)")
    max_position: int = Field(default=20, description="Worst position still counted (inclusive)")
    min_volume: int = Field(default=50, description="Minimum monthly search volume")
    max_difficulty: float = Field(default=70, description="Maximum keyword difficulty (0-100)")
    valid_intents: List[str] = Field(default_factory=lambda: list(COMMERCIAL_INTENTS))

    @field_validator("min_position", "max_position")
    @classmethod
    def _floor_position(cls, value: int) -> int:
        return max(1, value)

    @field_validator("min_volume")
    @classmethod
    def _floor_volume(cls, value: int) -> int:
        return max(0, value)

    @field_validator("max_difficulty")
    @classmethod
    def _clamp_difficulty(cls, value: float) -> float:
        return clamp(value, 0, 100)

    @field_validator("valid_intents", mode="before")
    @classmethod
    def _clean_intents(cls, value: Any) -> List[str]:
        if value is None:
            return list(COMMERCIAL_INTENTS)
        if isinstance(value, str):
            value = [value]
        return [normalize_intent(i) for i in value if isinstance(i, str) and i.strip()]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "minPosition": self.min_position,
            "maxPosition": self.max_position,
            "minVolume": self.min_volume,
            "maxDifficulty": self.max_difficulty,
            "validIntents": list(self.valid_intents),
        }


class FallingStarSettings(BaseModel):
    """Per-project falling star thresholds."""
    enabled: bool = True
    window_days: int = Field(default=7, description="Max age of the latest snapshot, in days (1-30)")
    min_drop_positions: int = Field(default=5, description="Minimum positions lost")
    min_previous_position: int = Field(default=10, description="Keyword must have ranked at or above this")
    min_volume: int = Field(default=0, description="Minimum monthly search volume")

    @field_validator("window_days")
    @classmethod
    def _clamp_window(cls, value: int) -> int:
        return int(clamp(value, 1, 30))

    @field_validator("min_drop_positions", "min_previous_position")
    @classmethod
    def _floor_positions(cls, value: int) -> int:
        return max(1, value)

    @field_validator("min_volume")
    @classmethod
    def _floor_volume(cls, value: int) -> int:
        return max(0, value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "windowDays": self.window_days,
            "minDropPositions": self.min_drop_positions,
            "minPreviousPosition": self.min_previous_position,
            "minVolume": self.min_volume,
        }


_CAMEL_TO_SNAKE = {
    "minPosition": "min_position",
    "maxPosition": "max_position",
    "minVolume": "min_volume",
    "maxDifficulty": "max_difficulty",
    "validIntents": "valid_intents",
    "windowDays": "window_days",
    "minDropPositions": "min_drop_positions",
    "minPreviousPosition": "min_previous_position",
}


def _settings_kwargs(raw: Optional[Dict[str, Any]], model: type) -> Dict[str, Any]:
    """Map stored/camelCase settings onto model fields, dropping unknown or null keys."""
    if not raw:
        return {}
    fields = model.model_fields
    kwargs = {}
    for key, value in raw.items():
        name = _CAMEL_TO_SNAKE.get(key, key)
        if name in fields and value is not None:
            kwargs[name] = value
    return kwargs


def load_quick_win_settings(raw: Optional[Dict[str, Any]] = None) -> QuickWinSettings:
    """Build quick win settings from a stored row, defaults for anything unset."""
    try:
        return QuickWinSettings(**_settings_kwargs(raw, QuickWinSettings))
    except ValidationError as e:
        raise InvalidSettingsError(f"Invalid quick win settings: {e}") from e


def load_falling_star_settings(raw: Optional[Dict[str, Any]] = None) -> FallingStarSettings:
    """Build falling star settings from a stored row, defaults for anything unset."""
    try:
        return FallingStarSettings(**_settings_kwargs(raw, FallingStarSettings))
    except ValidationError as e:
        raise InvalidSettingsError(f"Invalid falling star settings: {e}") from e


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class QuickWin:
    """Keyword classified as a quick win."""
    view: KeywordView

    def to_dict(self) -> Dict[str, Any]:
        v = self.view
        return {
            "keywordId": v.keyword_id,
            "keyword": v.keyword,
            "cluster": v.cluster,
            "location": v.location,
            "currentPosition": v.current_position or 0,
            "searchVolume": v.search_volume or 0,
            "difficulty": v.difficulty or 0.0,
            "intent": v.intent,
            "opportunityScore": v.opportunity_score or 0.0,
            "targetUrl": v.target_url,
        }


@dataclass
class FallingStar:
    """Keyword classified as a falling star."""
    view: KeywordView
    position_delta: int
    previous_position: int

    def to_dict(self) -> Dict[str, Any]:
        v = self.view
        return {
            "keywordId": v.keyword_id,
            "keyword": v.keyword,
            "cluster": v.cluster,
            "location": v.location,
            "currentPosition": v.current_position or 0,
            "previousPosition": self.previous_position,
            "positionDelta": self.position_delta,
            "searchVolume": v.search_volume or 0,
            "difficulty": v.difficulty or 0.0,
            "intent": v.intent,
            "targetUrl": v.target_url,
            "isCoreKeyword": v.is_core_page,
        }


# =============================================================================
# QUICK WINS
# =============================================================================

def is_quick_win(view: KeywordView, settings: QuickWinSettings) -> bool:
    """
    Check a keyword against the quick win thresholds.

    Args:
        view: Latest keyword view
        settings: Quick win thresholds

    Returns:
        True if every condition holds
    """
    position = view.current_position
    if not view.is_active or position is None:
        return False
    if not settings.min_position <= position <= settings.max_position:
        return False
    if (view.search_volume or 0) < settings.min_volume:
        return False
    if (view.difficulty or 0) > settings.max_difficulty:
        return False
    return normalize_intent(view.intent) in settings.valid_intents


def get_quick_wins(
    views: Iterable[Any],
    settings: Optional[QuickWinSettings] = None,
    location: Optional[str] = None,
    cluster: Optional[str] = None,
    intent: Optional[str] = None,
) -> List[QuickWin]:
    """
    Extract quick win keywords.

    Args:
        views: Latest keyword views (records or dicts)
        settings: Thresholds (defaults when None)
        location: Only keep this location
        cluster: Only keep this cluster
        intent: Only keep this intent

    Returns:
        Quick wins sorted by opportunity score, descending
    """
    settings = settings or QuickWinSettings()
    if not settings.enabled:
        logger.debug("Quick wins disabled for project")
        return []

    records = coerce_rows(views, KeywordView)
    wins = [v for v in records if is_quick_win(v, settings)]

    if location:
        wins = [v for v in wins if v.location == location]
    if cluster:
        wins = [v for v in wins if v.cluster == cluster]
    if intent:
        wins = [v for v in wins if v.intent == normalize_intent(intent)]

    wins.sort(key=lambda v: v.opportunity_score or 0, reverse=True)

    logger.info(f"Classified {len(wins)} quick wins from {len(records)} keywords")
    return [QuickWin(view=v) for v in wins]


# =============================================================================
# FALLING STARS
# =============================================================================

def _resolve_movement(view: KeywordView):
    """Return (previous_position, delta) for a view, deriving whichever is missing."""
    current = view.current_position
    previous = view.previous_position
    delta = view.position_delta

    if previous is None and current is not None and delta is not None:
        previous = current + delta
        if previous <= 0:
            previous = None
    if delta is None:
        delta = compute_position_delta(current, previous)

    return previous, delta


def _within_window(view: KeywordView, window_days: int, as_of: date) -> bool:
    if view.date is None:
        return True
    return view.date >= as_of - timedelta(days=window_days)


def get_falling_stars(
    views: Iterable[Any],
    settings: Optional[FallingStarSettings] = None,
    location: Optional[str] = None,
    as_of: Optional[date] = None,
) -> List[FallingStar]:
    """
    Extract keywords that dropped out of their strong positions.

    A falling star was ranking at or above min_previous_position and has
    lost at least min_drop_positions (delta <= -min_drop_positions).

    Args:
        views: Latest keyword views (records or dicts)
        settings: Thresholds (defaults when None)
        location: Only keep this location
        as_of: Reference date for the window (today when None)

    Returns:
        Falling stars sorted by position delta, worst drop first
    """
    settings = settings or FallingStarSettings()
    if not settings.enabled:
        logger.debug("Falling stars disabled for project")
        return []

    as_of = as_of or date.today()
    records = coerce_rows(views, KeywordView)
    stars: List[FallingStar] = []

    for view in records:
        if not view.is_active or view.current_position is None:
            continue

        previous, delta = _resolve_movement(view)
        if previous is None or delta is None:
            continue
        if previous > settings.min_previous_position:
            continue
        if delta > -settings.min_drop_positions:
            continue
        if (view.search_volume or 0) < settings.min_volume:
            continue
        if not _within_window(view, settings.window_days, as_of):
            continue
        if location and view.location != location:
            continue

        stars.append(FallingStar(view=view, position_delta=delta, previous_position=previous))

    stars.sort(key=lambda s: s.position_delta)

    logger.info(f"Classified {len(stars)} falling stars from {len(records)} keywords")
    return stars
