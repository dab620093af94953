"""
Position Delta Tracker

Turns daily ranking snapshots into the latest-per-keyword view used by
the keyword classifiers.

    position_delta = previous_position - current_position

A positive delta means the keyword climbed; a negative delta means it
lost positions. The delta is undefined (None) when either side is
unranked.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from .helpers import normalize_intent
from .models import KeywordInfo, KeywordSnapshot, KeywordView, coerce_rows
from .opportunity import calculate_opportunity_score

logger = logging.getLogger(__name__)


def compute_position_delta(
    current_position: Optional[int],
    previous_position: Optional[int],
) -> Optional[int]:
    """
    Day-over-day position change.

    Args:
        current_position: Today's position (None if not ranking)
        previous_position: Prior position (None if not ranking)

    Returns:
        previous - current, or None if either is unranked
    """
    if not current_position or not previous_position:
        return None
    if current_position <= 0 or previous_position <= 0:
        return None
    return previous_position - current_position


def _sort_key(snapshot: KeywordSnapshot):
    # Undated snapshots sort before any dated one
    return snapshot.date or date.min


def group_snapshots(snapshots: Iterable[KeywordSnapshot]) -> Dict[Any, List[KeywordSnapshot]]:
    """Group snapshots by keyword, oldest first."""
    grouped: Dict[Any, List[KeywordSnapshot]] = defaultdict(list)
    for snapshot in snapshots:
        grouped[snapshot.keyword_id].append(snapshot)
    for history in grouped.values():
        history.sort(key=_sort_key)
    return grouped


def latest_snapshots(snapshots: Iterable[Any]) -> Dict[Any, KeywordSnapshot]:
    """
    Pick the latest ranked snapshot per keyword.

    "Latest" is the most recent date with a non-null position. Keywords that
    never ranked are left out.

    Args:
        snapshots: KeywordSnapshot records or storage row dicts

    Returns:
        Dict mapping keyword_id -> KeywordSnapshot
    """
    records = coerce_rows(snapshots, KeywordSnapshot)
    latest: Dict[Any, KeywordSnapshot] = {}

    for keyword_id, history in group_snapshots(records).items():
        ranked = [s for s in history if s.position is not None]
        if ranked:
            latest[keyword_id] = ranked[-1]

    return latest


def _previous_ranked(history: List[KeywordSnapshot], current: KeywordSnapshot) -> Optional[int]:
    """Position of the nearest earlier ranked snapshot, if any."""
    earlier = [
        s for s in history
        if s is not current
        and s.position is not None
        and _sort_key(s) < _sort_key(current)
    ]
    return earlier[-1].position if earlier else None


def build_keyword_views(
    snapshots: Iterable[Any],
    keywords: Optional[Iterable[Any]] = None,
) -> List[KeywordView]:
    """
    Build the latest-per-keyword ranking view.

    Args:
        snapshots: Daily snapshots (records or dicts) for a project
        keywords: Optional keyword metadata (records or dicts) to join in

    Returns:
        One KeywordView per keyword with a ranked snapshot
    """
    records = coerce_rows(snapshots, KeywordSnapshot)
    info_by_id: Dict[Any, KeywordInfo] = {
        info.keyword_id: info for info in coerce_rows(keywords, KeywordInfo)
    }

    views: List[KeywordView] = []
    for keyword_id, history in group_snapshots(records).items():
        ranked = [s for s in history if s.position is not None]
        if not ranked:
            continue

        current = ranked[-1]
        previous = current.previous_position or _previous_ranked(history, current)

        opportunity = current.opportunity_score
        if opportunity is None:
            opportunity = calculate_opportunity_score(
                current.search_volume, current.difficulty, current.position
            )

        info = info_by_id.get(keyword_id) or KeywordInfo(keyword_id=keyword_id)

        views.append(KeywordView(
            keyword_id=keyword_id,
            keyword=info.keyword,
            cluster=info.cluster,
            location=info.location,
            target_url=info.target_url,
            current_position=current.position,
            previous_position=previous,
            position_delta=compute_position_delta(current.position, previous),
            search_volume=current.search_volume,
            difficulty=current.difficulty,
            intent=normalize_intent(current.intent),
            opportunity_score=float(opportunity),
            is_active=info.is_active,
            is_core_page=info.is_core_page,
            date=current.date,
        ))

    logger.debug(f"Built {len(views)} keyword views from {len(records)} snapshots")
    return views
