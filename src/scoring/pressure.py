"""
Competitor Pressure Aggregator

Aggregates per-keyword competitor positions into one row per competitor
domain, with a 0-100 pressure index describing how strongly that
competitor threatens our rankings.

Threat score (per keyword where the competitor ranks top 20):
    Position_Score = (21 - Competitor_Position) / 20
    Gap_Factor     = max(0, (Our_Position - Competitor_Position) / 20)   if we rank
                     1.0                                                 if we don't
    Threat        += Volume × Position_Score × Gap_Factor

Pressure_Index = clamp(0, 100, round(Threat / Total_Volume × 100))

A raw "keywords above us" count ignores demand and how close to the top
the competitor sits; the threat score weights both, and the gap factor
damps cases where we already rank right behind.

Until the first competitor metrics snapshot exists for a project, a
simpler index is used instead:
    Pressure_Index = Keywords_Above_Us / Shared_Keywords × 100
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from .helpers import (
    TrafficThreat,
    clamp,
    round_half_up,
    round_to,
    safe_average,
    traffic_threat,
)
from .models import CompetitorMetricsSnapshot, CompetitorPosition, coerce_rows
from src.utils.domain_filter import is_own_domain, normalize_domain

logger = logging.getLogger(__name__)


THREAT_POSITION_LIMIT = 20
POSITION_SPAN = 20


class PressureMode(Enum):
    """Which pressure calculation produced a row."""
    THREAT = "threat"       # Volume-weighted threat score
    FALLBACK = "fallback"   # Above-us ratio, before first metrics snapshot


@dataclass
class CompetitorAccumulator:
    """Running totals for one competitor domain."""
    competitor_domain: str
    shared_keywords: int = 0
    keywords_above_us: int = 0
    total_competitor_position: int = 0
    total_our_position: int = 0
    ranked_keywords: int = 0        # keywords where we have a position
    total_gap: int = 0
    total_volume: int = 0
    threat_score: float = 0.0

    def add(self, row: CompetitorPosition) -> None:
        """Fold one keyword row into the totals."""
        competitor_pos = row.latest_position
        our_pos = row.our_position
        volume = max(0, row.search_volume or 0)

        self.shared_keywords += 1
        self.total_competitor_position += competitor_pos
        self.total_volume += volume

        if our_pos is None or competitor_pos < our_pos:
            self.keywords_above_us += 1

        if our_pos is not None:
            self.total_our_position += our_pos
            self.total_gap += our_pos - competitor_pos
            self.ranked_keywords += 1

        if competitor_pos <= THREAT_POSITION_LIMIT:
            position_score = (THREAT_POSITION_LIMIT + 1 - competitor_pos) / POSITION_SPAN
            if our_pos is not None:
                gap_factor = max(0.0, (our_pos - competitor_pos) / POSITION_SPAN)
            else:
                gap_factor = 1.0
            self.threat_score += volume * position_score * gap_factor

    @property
    def threat_pressure_index(self) -> int:
        """Volume-weighted pressure index (0-100)."""
        if self.shared_keywords == 0:
            return 0
        ratio = self.threat_score / max(1, self.total_volume)
        return int(clamp(round_half_up(ratio * 100)))

    @property
    def fallback_pressure_index(self) -> int:
        """Above-us ratio index (0-100)."""
        if self.shared_keywords == 0:
            return 0
        return int(clamp(round_half_up(self.keywords_above_us / self.shared_keywords * 100)))


@dataclass
class CompetitorPressure:
    """Aggregated competitor row for the dashboard."""
    competitor_domain: str
    shared_keywords: int
    keywords_above_us: int
    avg_competitor_position: Optional[float]
    avg_our_position: Optional[float]
    avg_gap: Optional[float]
    total_volume: int
    pressure_index: int
    threat_score: float = 0.0
    mode: PressureMode = PressureMode.THREAT

    @property
    def traffic_threat(self) -> TrafficThreat:
        return traffic_threat(self.pressure_index)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "competitorDomain": self.competitor_domain,
            "sharedKeywords": self.shared_keywords,
            "keywordsAboveUs": self.keywords_above_us,
            "avgCompetitorPosition": self.avg_competitor_position,
            "avgOurPosition": self.avg_our_position,
            "avgGap": self.avg_gap,
            "totalVolume": self.total_volume,
            "pressureIndex": self.pressure_index,
            "trafficThreat": self.traffic_threat.value,
            "mode": self.mode.value,
        }


def _accumulate(rows: List[CompetitorPosition]) -> Dict[str, CompetitorAccumulator]:
    accumulators: Dict[str, CompetitorAccumulator] = {}
    skipped = 0

    for row in rows:
        domain = normalize_domain(row.competitor_domain)
        if not domain or row.latest_position is None:
            skipped += 1
            continue
        acc = accumulators.get(domain)
        if acc is None:
            acc = accumulators[domain] = CompetitorAccumulator(competitor_domain=domain)
        acc.add(row)

    if skipped:
        logger.debug(f"Skipped {skipped} competitor rows without domain or position")
    return accumulators


def _finalize(acc: CompetitorAccumulator, mode: PressureMode) -> CompetitorPressure:
    avg_competitor = safe_average(acc.total_competitor_position, acc.shared_keywords)
    avg_ours = safe_average(acc.total_our_position, acc.ranked_keywords)
    avg_gap = safe_average(acc.total_gap, acc.ranked_keywords)

    if mode == PressureMode.THREAT:
        pressure_index = acc.threat_pressure_index
    else:
        pressure_index = acc.fallback_pressure_index

    return CompetitorPressure(
        competitor_domain=acc.competitor_domain,
        shared_keywords=acc.shared_keywords,
        keywords_above_us=acc.keywords_above_us,
        avg_competitor_position=round_to(avg_competitor) if avg_competitor is not None else None,
        avg_our_position=round_to(avg_ours) if avg_ours is not None else None,
        avg_gap=round_to(avg_gap) if avg_gap is not None else None,
        total_volume=acc.total_volume,
        pressure_index=pressure_index,
        threat_score=round_to(acc.threat_score, 2),
        mode=mode,
    )


def _sorted(results: List[CompetitorPressure]) -> List[CompetitorPressure]:
    return sorted(results, key=lambda r: (-r.shared_keywords, r.competitor_domain))


def aggregate_competitor_pressure(
    rows: Iterable[Any],
    extra_domains: Optional[Iterable[str]] = None,
) -> List[CompetitorPressure]:
    """
    Aggregate competitor positions with the volume-weighted threat index.

    Args:
        rows: CompetitorPosition records or storage row dicts
        extra_domains: Competitors to report even without shared keywords
            (they come out with zero counts and a 0 pressure index)

    Returns:
        One CompetitorPressure per domain, most shared keywords first
    """
    records = coerce_rows(rows, CompetitorPosition)
    accumulators = _accumulate(records)

    for domain in extra_domains or []:
        normalized = normalize_domain(domain)
        if normalized and normalized not in accumulators:
            accumulators[normalized] = CompetitorAccumulator(competitor_domain=normalized)

    results = _sorted([_finalize(acc, PressureMode.THREAT) for acc in accumulators.values()])

    logger.info(
        f"Aggregated {len(records)} competitor positions into {len(results)} competitors"
    )
    return results


def derive_pressure_from_positions(rows: Iterable[Any]) -> List[CompetitorPressure]:
    """
    Degraded pressure aggregation from raw positions.

    Used before any competitor metrics snapshot has been computed for the
    project: pressure index is the share of shared keywords where the
    competitor is above us.

    Args:
        rows: CompetitorPosition records or storage row dicts

    Returns:
        One CompetitorPressure per domain, most shared keywords first
    """
    records = coerce_rows(rows, CompetitorPosition)
    accumulators = _accumulate(records)
    return _sorted([_finalize(acc, PressureMode.FALLBACK) for acc in accumulators.values()])


def exclude_own_domain(rows: Iterable[Any], own_domain: Optional[str]) -> List[CompetitorPosition]:
    """Drop rows where the "competitor" is the project itself."""
    records = coerce_rows(rows, CompetitorPosition)
    if not own_domain:
        return records

    kept = [r for r in records if not is_own_domain(r.competitor_domain, own_domain)]
    if len(kept) != len(records):
        logger.info(f"Excluded {len(records) - len(kept)} self-referencing competitor rows")
    return kept


def get_competitor_pressure(
    rows: Iterable[Any],
    metrics_snapshots: Optional[Iterable[Any]] = None,
    own_domain: Optional[str] = None,
) -> List[CompetitorPressure]:
    """
    Main entry point for competitor pressure.

    Picks the threat-weighted aggregation once the project has at least one
    competitor metrics snapshot, otherwise the above-us fallback.

    Args:
        rows: All competitor position rows for the project
        metrics_snapshots: Stored competitor metrics rows, if any
        own_domain: Project domain to exclude from competitors

    Returns:
        Aggregated competitor rows, most shared keywords first
    """
    positions = exclude_own_domain(rows, own_domain)
    snapshots = coerce_rows(metrics_snapshots, CompetitorMetricsSnapshot)

    if not snapshots:
        logger.info("No competitor metrics snapshot yet, using above-us fallback")
        return derive_pressure_from_positions(positions)

    snapshot_domains = [
        s.competitor_domain for s in snapshots
        if not is_own_domain(s.competitor_domain, own_domain)
    ]
    return aggregate_competitor_pressure(positions, extra_domains=snapshot_domains)


# =============================================================================
# PER-COMPETITOR KEYWORD DETAILS
# =============================================================================

@dataclass
class KeywordGap:
    """One shared keyword, seen from a single competitor."""
    keyword_id: Any
    keyword: str
    competitor_position: int
    our_position: Optional[int]
    gap: Optional[int]          # our - competitor; positive = they're ahead
    search_volume: int

    @property
    def is_above_us(self) -> bool:
        return self.gap is None or self.gap > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keywordId": self.keyword_id,
            "keyword": self.keyword,
            "competitorPosition": self.competitor_position,
            "ourPosition": self.our_position,
            "gap": self.gap,
            "searchVolume": self.search_volume,
        }


@dataclass
class CompetitorKeywordDetails:
    """Keyword gaps for one competitor plus summary counts."""
    competitor_domain: str
    keywords: List[KeywordGap] = field(default_factory=list)

    @property
    def summary(self) -> Dict[str, int]:
        return {
            "total": len(self.keywords),
            "aboveUs": sum(1 for k in self.keywords if k.is_above_us),
            "belowUs": sum(1 for k in self.keywords if k.gap is not None and k.gap < 0),
            "equalPosition": sum(1 for k in self.keywords if k.gap == 0),
            "totalVolume": sum(k.search_volume for k in self.keywords),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "competitorDomain": self.competitor_domain,
            "keywords": [k.to_dict() for k in self.keywords],
            "summary": self.summary,
        }


def get_competitor_keyword_details(
    rows: Iterable[Any],
    competitor_domain: str,
) -> CompetitorKeywordDetails:
    """
    List shared keywords with one competitor, biggest threats first.

    Args:
        rows: Competitor position rows for the project
        competitor_domain: Competitor to inspect

    Returns:
        CompetitorKeywordDetails sorted by search volume, descending
    """
    target = normalize_domain(competitor_domain)
    details = CompetitorKeywordDetails(competitor_domain=target)

    for row in coerce_rows(rows, CompetitorPosition):
        if normalize_domain(row.competitor_domain) != target or row.latest_position is None:
            continue
        gap = None
        if row.our_position is not None:
            gap = row.our_position - row.latest_position
        details.keywords.append(KeywordGap(
            keyword_id=row.keyword_id,
            keyword=row.keyword,
            competitor_position=row.latest_position,
            our_position=row.our_position,
            gap=gap,
            search_volume=row.search_volume,
        ))

    details.keywords.sort(key=lambda k: k.search_volume, reverse=True)
    return details
