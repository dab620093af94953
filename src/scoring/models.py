"""
Input Records for Signal Calculations

Plain dataclasses for the rows the storage layer hands to the engine.
Each record can be built from a storage row dict with either camelCase
(API / ORM JSON) or snake_case keys; numeric strings are coerced and
anything missing or unparsable is treated as absent.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from .helpers import (
    normalize_intent,
    normalize_link_type,
    pick,
    to_int,
    to_number,
    to_position,
)
from src.utils.domain_filter import domain_from_url, normalize_domain

logger = logging.getLogger(__name__)


DateLike = Union[date, datetime, str, None]


def parse_date(value: DateLike) -> Optional[date]:
    """
    Parse a calendar date from a date, datetime or ISO string.

    Args:
        value: "2024-05-01", "2024-05-01T10:00:00Z", date or datetime

    Returns:
        date, or None when missing or unparsable
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except ValueError:
        try:
            return date.fromisoformat(str(value)[:10])
        except ValueError:
            logger.debug(f"Unparsable date: {value}")
            return None


def parse_datetime(value: DateLike) -> Optional[datetime]:
    """Parse a timestamp, None when missing or unparsable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparsable timestamp: {value}")
        return None


def _to_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "t")
    return bool(value)


# =============================================================================
# KEYWORDS
# =============================================================================

@dataclass
class KeywordSnapshot:
    """One day's ranking/metrics record for a keyword."""
    keyword_id: Any
    date: Optional[date] = None
    position: Optional[int] = None           # None = not ranking
    previous_position: Optional[int] = None
    search_volume: Optional[int] = None
    difficulty: Optional[float] = None       # 0-100
    intent: Optional[str] = None
    opportunity_score: Optional[float] = None

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "KeywordSnapshot":
        return cls(
            keyword_id=pick(row, "keywordId", "keyword_id"),
            date=parse_date(pick(row, "date")),
            position=to_position(pick(row, "position", "currentPosition", "current_position")),
            previous_position=to_position(pick(row, "previousPosition", "previous_position")),
            search_volume=to_int(pick(row, "searchVolume", "search_volume")),
            difficulty=to_number(pick(row, "difficulty")),
            intent=pick(row, "intent"),
            opportunity_score=to_number(pick(row, "opportunityScore", "opportunity_score")),
        )


@dataclass
class KeywordInfo:
    """Keyword metadata joined onto the latest-snapshot view."""
    keyword_id: Any
    keyword: str = ""
    cluster: Optional[str] = None
    location: str = "Global"
    target_url: str = ""
    is_active: bool = True
    is_core_page: bool = False

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "KeywordInfo":
        return cls(
            keyword_id=pick(row, "keywordId", "keyword_id", "id"),
            keyword=pick(row, "keyword", default=""),
            cluster=pick(row, "cluster"),
            location=pick(row, "location", default="Global"),
            target_url=pick(row, "targetUrl", "target_url", default=""),
            is_active=_to_bool(pick(row, "isActive", "is_active"), True),
            is_core_page=_to_bool(pick(row, "isCorePage", "is_core_page"), False),
        )


@dataclass
class KeywordView:
    """
    Latest-per-keyword ranking view.

    This is the shape both keyword classifiers work on. position_delta
    follows previous - current: negative means the keyword lost positions.
    """
    keyword_id: Any
    keyword: str = ""
    cluster: Optional[str] = None
    location: str = "Global"
    target_url: str = ""
    current_position: Optional[int] = None
    previous_position: Optional[int] = None
    position_delta: Optional[int] = None
    search_volume: Optional[int] = None      # None = no volume data
    difficulty: Optional[float] = None       # None = no difficulty data
    intent: str = "informational"
    opportunity_score: Optional[float] = None  # None = not scored yet
    is_active: bool = True
    is_core_page: bool = False
    date: Optional[date] = None

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "KeywordView":
        return cls(
            keyword_id=pick(row, "keywordId", "keyword_id"),
            keyword=pick(row, "keyword", default=""),
            cluster=pick(row, "cluster"),
            location=pick(row, "location", default="Global"),
            target_url=pick(row, "targetUrl", "target_url", default=""),
            current_position=to_position(pick(row, "currentPosition", "current_position", "position")),
            previous_position=to_position(pick(row, "previousPosition", "previous_position")),
            position_delta=to_int(pick(row, "positionDelta", "position_delta")),
            search_volume=to_int(pick(row, "searchVolume", "search_volume")),
            difficulty=to_number(pick(row, "difficulty")),
            intent=normalize_intent(pick(row, "intent")),
            opportunity_score=to_number(pick(row, "opportunityScore", "opportunity_score")),
            is_active=_to_bool(pick(row, "isActive", "is_active"), True),
            is_core_page=_to_bool(pick(row, "isCorePage", "is_core_page", "isCoreKeyword"), False),
            date=parse_date(pick(row, "date")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keywordId": self.keyword_id,
            "keyword": self.keyword,
            "cluster": self.cluster,
            "location": self.location,
            "targetUrl": self.target_url,
            "currentPosition": self.current_position or 0,
            "previousPosition": self.previous_position,
            "positionDelta": self.position_delta or 0,
            "searchVolume": self.search_volume or 0,
            "difficulty": self.difficulty or 0.0,
            "intent": self.intent,
            "opportunityScore": self.opportunity_score or 0.0,
            "isCorePage": self.is_core_page,
        }


# =============================================================================
# COMPETITORS
# =============================================================================

@dataclass
class CompetitorPosition:
    """A competitor's latest position on one of our tracked keywords."""
    keyword_id: Any
    competitor_domain: str
    latest_position: Optional[int] = None
    our_position: Optional[int] = None
    search_volume: int = 0
    keyword: str = ""

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "CompetitorPosition":
        return cls(
            keyword_id=pick(row, "keywordId", "keyword_id"),
            competitor_domain=normalize_domain(pick(row, "competitorDomain", "competitor_domain", default="")),
            latest_position=to_position(pick(row, "latestPosition", "latest_position", "competitorPosition")),
            our_position=to_position(pick(row, "ourPosition", "our_position")),
            search_volume=to_int(pick(row, "searchVolume", "search_volume")) or 0,
            keyword=pick(row, "keyword", default=""),
        )


@dataclass
class CompetitorMetricsSnapshot:
    """Stored per-competitor metrics row (presence switches pressure mode)."""
    competitor_domain: str
    date: Optional[date] = None
    shared_keywords: int = 0
    above_us_keywords: int = 0
    avg_position: Optional[float] = None
    pressure_index: Optional[float] = None

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "CompetitorMetricsSnapshot":
        return cls(
            competitor_domain=normalize_domain(pick(row, "competitorDomain", "competitor_domain", default="")),
            date=parse_date(pick(row, "date")),
            shared_keywords=to_int(pick(row, "sharedKeywords", "shared_keywords")) or 0,
            above_us_keywords=to_int(pick(row, "aboveUsKeywords", "above_us_keywords")) or 0,
            avg_position=to_number(pick(row, "avgPosition", "avg_position")),
            pressure_index=to_number(pick(row, "pressureIndex", "pressure_index")),
        )


# =============================================================================
# BACKLINKS
# =============================================================================

@dataclass
class Backlink:
    """One of our own backlinks."""
    source_domain: str
    source_url: str = ""
    target_url: str = ""
    link_type: str = "dofollow"
    is_live: bool = True
    domain_authority: Optional[float] = None   # 0-100
    spam_score: Optional[float] = None         # 0-100
    anchor_text: Optional[str] = None
    first_seen_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None
    lost_at: Optional[datetime] = None

    @staticmethod
    def _common_fields(row: Dict[str, Any]) -> Dict[str, Any]:
        source_url = pick(row, "sourceUrl", "source_url", default="")
        source_domain = normalize_domain(pick(row, "sourceDomain", "source_domain"))
        return {
            "source_domain": source_domain or domain_from_url(source_url),
            "source_url": source_url,
            "target_url": pick(row, "targetUrl", "target_url", default=""),
            "link_type": normalize_link_type(pick(row, "linkType", "link_type")),
            "is_live": _to_bool(pick(row, "isLive", "is_live"), True),
            "domain_authority": to_number(pick(row, "domainAuthority", "domain_authority")),
            "spam_score": to_number(pick(row, "spamScore", "spam_score")),
            "anchor_text": pick(row, "anchorText", "anchor_text"),
            "first_seen_at": parse_datetime(pick(row, "firstSeenAt", "first_seen_at")),
            "last_seen_at": parse_datetime(pick(row, "lastSeenAt", "last_seen_at")),
            "lost_at": parse_datetime(pick(row, "lostAt", "lost_at")),
        }

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "Backlink":
        return cls(**cls._common_fields(row))


@dataclass
class CompetitorBacklink(Backlink):
    """A backlink pointing at a tracked competitor."""
    competitor_domain: str = ""
    opportunity_score: Optional[float] = None   # as stored, if scored before

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "CompetitorBacklink":
        return cls(
            competitor_domain=normalize_domain(pick(row, "competitorDomain", "competitor_domain", default="")),
            opportunity_score=to_number(pick(row, "opportunityScore", "opportunity_score")),
            **cls._common_fields(row),
        )


def coerce_rows(rows, record_cls):
    """
    Build records from a mix of dicts and already-built records.

    Rows that are neither are skipped with a warning; a malformed row must
    never break a whole aggregation.
    """
    records = []
    for row in rows or []:
        if isinstance(row, record_cls):
            records.append(row)
        elif isinstance(row, dict):
            records.append(record_cls.from_dict(row))
        else:
            logger.warning(f"Skipping unsupported {record_cls.__name__} row: {type(row).__name__}")
    return records
