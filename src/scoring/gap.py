"""
Backlink Gap Analyzer

Finds domains that link to one or more tracked competitors but not to us,
and ranks them as outreach targets.

1. our_domains = source domains of our live backlinks
2. Every live competitor backlink whose source domain is not in
   our_domains is folded into a per-domain gap record
3. Each gap gets average DA / spam, best opportunity score and the
   dominant link type
4. Gaps are ranked: high priority first, then by how many competitors
   the domain links to, then by average DA

High priority = avg DA >= 40 AND links to >= 2 competitors AND
(spam unknown OR avg spam <= 30).

Competitor overlap is the dominant signal: a domain linking to three
competitors says more about topical relevance than one isolated
high-authority link.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from .backlinks import build_our_domains, score_backlink_opportunity
from .errors import DuplicateRecommendationError
from .helpers import LinkType, SAFE_SPAM_MAX, dominant_value, mean, pick, round_half_up
from .models import CompetitorBacklink, coerce_rows
from src.utils.domain_filter import normalize_domain

logger = logging.getLogger(__name__)


HIGH_PRIORITY_MIN_DA = 40
HIGH_PRIORITY_MIN_COMPETITORS = 2
HIGH_PRIORITY_MAX_SPAM = SAFE_SPAM_MAX

OUTREACH_RECOMMENDATION_TYPE = "backlink_outreach"


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class GapAccumulator:
    """Running totals for one linking domain."""
    source_domain: str
    competitors: Dict[str, None] = field(default_factory=dict)  # insertion-ordered set
    da_sum: float = 0.0
    da_count: int = 0
    spam_sum: float = 0.0
    spam_count: int = 0
    best_opportunity_score: float = 0.0
    link_type_counts: Dict[str, int] = field(default_factory=dict)

    def add(self, backlink: CompetitorBacklink, opportunity_score: float) -> None:
        competitor = normalize_domain(backlink.competitor_domain)
        if competitor:
            self.competitors[competitor] = None
        if backlink.domain_authority is not None:
            self.da_sum += backlink.domain_authority
            self.da_count += 1
        if backlink.spam_score is not None:
            self.spam_sum += backlink.spam_score
            self.spam_count += 1
        self.best_opportunity_score = max(self.best_opportunity_score, opportunity_score)
        self.link_type_counts[backlink.link_type] = self.link_type_counts.get(backlink.link_type, 0) + 1


@dataclass
class BacklinkGap:
    """A domain linking to competitors but not to us."""
    source_domain: str
    competitors: List[str]
    avg_domain_authority: int
    avg_spam_score: Optional[int]
    best_opportunity_score: float
    dominant_link_type: str
    is_high_priority: bool

    @property
    def competitor_count(self) -> int:
        return len(self.competitors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceDomain": self.source_domain,
            "competitorCount": self.competitor_count,
            "competitors": list(self.competitors),
            "avgDomainAuthority": self.avg_domain_authority,
            "avgSpamScore": self.avg_spam_score,
            "bestOpportunityScore": self.best_opportunity_score,
            "linkType": self.dominant_link_type,
            "isHighPriority": self.is_high_priority,
        }


@dataclass
class GapSummary:
    """Headline numbers for a gap analysis."""
    total_gaps: int = 0
    high_priority_gaps: int = 0
    avg_gap_da: int = 0
    our_backlink_domains: int = 0
    competitor_backlink_domains: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "totalGaps": self.total_gaps,
            "highPriorityGaps": self.high_priority_gaps,
            "avgGapDA": self.avg_gap_da,
            "ourBacklinkDomains": self.our_backlink_domains,
            "competitorBacklinkDomains": self.competitor_backlink_domains,
        }


@dataclass
class GapAnalysis:
    """Ranked gaps plus summary."""
    gaps: List[BacklinkGap] = field(default_factory=list)
    summary: GapSummary = field(default_factory=GapSummary)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gaps": [g.to_dict() for g in self.gaps],
            "summary": self.summary.to_dict(),
        }


# =============================================================================
# ANALYSIS
# =============================================================================

def is_high_priority_gap(
    avg_domain_authority: float,
    competitor_count: int,
    avg_spam_score: Optional[float],
) -> bool:
    """
    Check the high-priority rule for a gap.

    Args:
        avg_domain_authority: Average DA of the linking domain
        competitor_count: Number of competitors it links to
        avg_spam_score: Average spam score, None if unknown

    Returns:
        True if the gap should be worked first
    """
    return (
        avg_domain_authority >= HIGH_PRIORITY_MIN_DA
        and competitor_count >= HIGH_PRIORITY_MIN_COMPETITORS
        and (avg_spam_score is None or avg_spam_score <= HIGH_PRIORITY_MAX_SPAM)
    )


def _finalize_gap(acc: GapAccumulator) -> BacklinkGap:
    avg_da = round_half_up(acc.da_sum / acc.da_count) if acc.da_count else 0
    avg_spam = round_half_up(acc.spam_sum / acc.spam_count) if acc.spam_count else None
    competitors = sorted(acc.competitors)

    return BacklinkGap(
        source_domain=acc.source_domain,
        competitors=competitors,
        avg_domain_authority=avg_da,
        avg_spam_score=avg_spam,
        best_opportunity_score=acc.best_opportunity_score,
        dominant_link_type=dominant_value(acc.link_type_counts) or LinkType.DOFOLLOW.value,
        is_high_priority=is_high_priority_gap(avg_da, len(competitors), avg_spam),
    )


def _gap_sort_key(gap: BacklinkGap):
    return (
        not gap.is_high_priority,
        -gap.competitor_count,
        -gap.avg_domain_authority,
        gap.source_domain,
    )


def analyze_backlink_gaps(
    our_backlinks: Iterable[Any],
    competitor_backlinks: Iterable[Any],
    competitor_domain: Optional[str] = None,
) -> GapAnalysis:
    """
    Run a backlink gap analysis.

    Main entry point for outreach targeting.

    Args:
        our_backlinks: Our backlink records or storage row dicts
        competitor_backlinks: Competitor backlink records or dicts
        competitor_domain: Restrict the analysis to one competitor

    Returns:
        GapAnalysis with ranked gaps and summary
    """
    our_domains: Set[str] = build_our_domains(our_backlinks)
    only_competitor = normalize_domain(competitor_domain) if competitor_domain else None

    live_links = [
        b for b in coerce_rows(competitor_backlinks, CompetitorBacklink)
        if b.is_live and (only_competitor is None or normalize_domain(b.competitor_domain) == only_competitor)
    ]

    competitor_source_domains: Set[str] = set()
    accumulators: Dict[str, GapAccumulator] = {}

    for backlink in live_links:
        domain = normalize_domain(backlink.source_domain)
        if not domain:
            continue
        competitor_source_domains.add(domain)
        if domain in our_domains:
            continue

        score = backlink.opportunity_score
        if score is None:
            score = score_backlink_opportunity(backlink, our_domains).opportunity_score

        acc = accumulators.get(domain)
        if acc is None:
            acc = accumulators[domain] = GapAccumulator(source_domain=domain)
        acc.add(backlink, score)

    gaps = sorted((_finalize_gap(acc) for acc in accumulators.values()), key=_gap_sort_key)

    gap_da_values = [g.avg_domain_authority for g in gaps if g.avg_domain_authority > 0]
    summary = GapSummary(
        total_gaps=len(gaps),
        high_priority_gaps=sum(1 for g in gaps if g.is_high_priority),
        avg_gap_da=round_half_up(mean(gap_da_values)) if gap_da_values else 0,
        our_backlink_domains=len(our_domains),
        competitor_backlink_domains=len(competitor_source_domains),
    )

    logger.info(
        f"Gap analysis: {summary.total_gaps} gaps "
        f"({summary.high_priority_gaps} high priority) from {len(live_links)} live competitor links"
    )

    return GapAnalysis(gaps=gaps, summary=summary)


# =============================================================================
# OUTREACH PROMOTION
# =============================================================================

@dataclass
class OutreachRecommendation:
    """Recommendation created when a gap is promoted to outreach."""
    project_id: str
    severity: str
    title: str
    description: str
    source_signals: Dict[str, Any]
    type: str = OUTREACH_RECOMMENDATION_TYPE
    status: str = "open"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projectId": self.project_id,
            "type": self.type,
            "severity": self.severity,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "sourceSignals": dict(self.source_signals),
        }


def outreach_severity(domain_authority: Optional[float], competitor_count: Optional[int]) -> str:
    """
    Severity for an outreach recommendation.

    high: DA >= 50 or links to 3+ competitors
    low: DA known and below 40
    medium: everything else
    """
    if (domain_authority and domain_authority >= 50) or (competitor_count and competitor_count >= 3):
        return "high"
    if domain_authority and domain_authority < 40:
        return "low"
    return "medium"


def _existing_outreach_domain(recommendation: Any) -> Optional[str]:
    if isinstance(recommendation, OutreachRecommendation):
        rec_type, status, signals = recommendation.type, recommendation.status, recommendation.source_signals
    elif isinstance(recommendation, dict):
        rec_type = recommendation.get("type")
        status = recommendation.get("status")
        signals = pick(recommendation, "sourceSignals", "source_signals", default={})
    else:
        return None

    if rec_type != OUTREACH_RECOMMENDATION_TYPE or status != "open" or not isinstance(signals, dict):
        return None
    return normalize_domain(pick(signals, "sourceDomain", "source_domain"))


def promote_gap(
    project_id: str,
    gap: BacklinkGap,
    existing_recommendations: Optional[Iterable[Any]] = None,
    promoted_at: Optional[datetime] = None,
    competitor_count: Optional[int] = None,
) -> OutreachRecommendation:
    """
    Turn a gap into an outreach recommendation.

    Args:
        project_id: Project the recommendation belongs to
        gap: Gap to promote
        existing_recommendations: Project recommendations, to prevent duplicates
        promoted_at: Timestamp to record (now when None)
        competitor_count: Competitor count as shown to the user, when it
            differs from the competitors listed on the gap

    Returns:
        OutreachRecommendation ready to persist

    Raises:
        DuplicateRecommendationError: An open outreach recommendation for the
            same domain already exists
    """
    domain = normalize_domain(gap.source_domain)
    for rec in existing_recommendations or []:
        if _existing_outreach_domain(rec) == domain:
            raise DuplicateRecommendationError(gap.source_domain)

    da = gap.avg_domain_authority
    count = competitor_count if competitor_count is not None else gap.competitor_count
    competitors = gap.competitors

    dofollow_note = "Dofollow link." if gap.dominant_link_type == LinkType.DOFOLLOW.value else ""
    competitor_list = ", ".join(competitors[:3]) or "Unknown"
    ellipsis = "..." if len(competitors) > 3 else ""

    description = (
        f"High-potential backlink opportunity. Domain Authority: {da or 'N/A'}. "
        f"{dofollow_note} Links to {count} competitor(s): {competitor_list}{ellipsis}."
    )

    promoted_at = promoted_at or datetime.now(timezone.utc)

    logger.info(f"Promoting gap {gap.source_domain} to outreach for project {project_id}")

    return OutreachRecommendation(
        project_id=project_id,
        severity=outreach_severity(da, count),
        title=f"Outreach: {gap.source_domain}",
        description=description,
        source_signals={
            "sourceDomain": gap.source_domain,
            "domainAuthority": da,
            "linkType": gap.dominant_link_type,
            "spamScore": gap.avg_spam_score,
            "competitors": list(competitors),
            "competitorCount": count,
            "promotedAt": promoted_at.isoformat(),
        },
    )
