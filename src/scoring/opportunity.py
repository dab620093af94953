"""
Opportunity Score Calculator

Calculates a composite "worth pursuing" score (0-100) for a tracked
keyword from three equally weighted components:

1. Volume - Demand potential, capped at 50 (5,000 searches)
2. Difficulty - Rankability, 50 minus keyword difficulty
3. Position - Distance to the top of page one

Formula:
    Volume_Score     = min(50, volume / 100)
    Difficulty_Score = max(0, 50 - difficulty)
    Position_Score   = (21 - position) × 2   if 0 < position <= 20
                       10                     otherwise (unranked or deep)

    Opportunity_Score = round((Volume + Difficulty + Position) / 3)

A keyword without volume or difficulty data scores 0: there is no
opportunity signal without the underlying metrics.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .helpers import round_half_up, round_to, to_number, to_position
from .models import KeywordView

logger = logging.getLogger(__name__)


VOLUME_SCORE_CAP = 50
DIFFICULTY_BASELINE = 50
POSITION_SCORE_MAX_RANK = 20
POSITION_SCORE_FLAT = 10


@dataclass
class OpportunityBreakdown:
    """Opportunity score with its components."""
    opportunity_score: int
    volume_score: float
    difficulty_score: float
    position_score: float
    has_data: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "opportunityScore": self.opportunity_score,
            "volumeScore": round_to(self.volume_score, 1),
            "difficultyScore": round_to(self.difficulty_score, 1),
            "positionScore": round_to(self.position_score, 1),
            "hasData": self.has_data,
        }


def _volume_score(volume: float) -> float:
    return min(VOLUME_SCORE_CAP, max(0.0, volume) / 100)


def _difficulty_score(difficulty: float) -> float:
    return max(0.0, DIFFICULTY_BASELINE - difficulty)


def _position_score(position: Optional[int]) -> float:
    """
    Score the current position.

    Rewards keywords already on pages one and two; unranked keywords get
    a flat low score.
    """
    if position is not None and 0 < position <= POSITION_SCORE_MAX_RANK:
        return float((POSITION_SCORE_MAX_RANK + 1 - position) * 2)
    return float(POSITION_SCORE_FLAT)


def calculate_opportunity_breakdown(
    search_volume: Any,
    difficulty: Any,
    position: Any = None,
) -> OpportunityBreakdown:
    """
    Calculate the opportunity score and its components.

    Args:
        search_volume: Monthly search volume (None if unknown)
        difficulty: Keyword difficulty 0-100 (None if unknown)
        position: Current position; None or 0 means not ranking

    Returns:
        OpportunityBreakdown
    """
    volume = to_number(search_volume)
    kd = to_number(difficulty)
    current_pos = to_position(position)

    if volume is None or kd is None:
        return OpportunityBreakdown(
            opportunity_score=0,
            volume_score=0.0,
            difficulty_score=0.0,
            position_score=0.0,
            has_data=False,
        )

    volume_score = _volume_score(volume)
    difficulty_score = _difficulty_score(kd)
    position_score = _position_score(current_pos)

    score = round_half_up((volume_score + difficulty_score + position_score) / 3)

    return OpportunityBreakdown(
        opportunity_score=score,
        volume_score=volume_score,
        difficulty_score=difficulty_score,
        position_score=position_score,
        has_data=True,
    )


def calculate_opportunity_score(
    search_volume: Any,
    difficulty: Any,
    position: Any = None,
) -> int:
    """
    Calculate the Opportunity Score for a keyword.

    Example:
        >>> calculate_opportunity_score(2400, 30, 12)
        21

    Returns:
        Integer score, 0 when volume or difficulty is missing
    """
    return calculate_opportunity_breakdown(search_volume, difficulty, position).opportunity_score


def score_keywords(views: List[KeywordView], overwrite: bool = False) -> List[KeywordView]:
    """
    Fill opportunity scores on a batch of keyword views.

    Views that already carry a stored score (0 included) keep it unless
    overwrite is set. Missing volume or difficulty scores 0.

    Args:
        views: Latest-per-keyword views
        overwrite: Recompute even when a score is present

    Returns:
        The same views, scored
    """
    scored = 0
    for view in views:
        if view.opportunity_score is not None and not overwrite:
            continue
        view.opportunity_score = float(calculate_opportunity_score(
            view.search_volume, view.difficulty, view.current_position
        ))
        scored += 1

    logger.debug(f"Scored {scored} of {len(views)} keywords")
    return views
