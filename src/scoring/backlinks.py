"""
Backlink Opportunity Scorer

Scores how valuable a competitor's backlink would be for our own
link building.

A competitor backlink is an opportunity when:
    - its source domain does not already link to us
    - it is still live
    - the source domain has DA >= 30

Score (opportunities only, otherwise 0):
    Base by DA tier:  >=80 → 100,  >=60 → 80,  >=40 → 60,  >=30 → 40,  else 20
    +10 dofollow
    +10 spam score <= 30
    -20 spam score > 60

Adjustments stack and the result is NOT clamped: a DA 80+ dofollow link
with low spam scores 120. Callers needing a 0-100 value clamp it themselves.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Set

from .helpers import (
    LinkType,
    SAFE_SPAM_MAX,
    TOXIC_SPAM_MIN,
    mean,
    round_half_up,
    spam_rating,
)
from .models import Backlink, CompetitorBacklink, coerce_rows
from src.utils.domain_filter import build_domain_set, normalize_domain

logger = logging.getLogger(__name__)


MIN_OPPORTUNITY_DA = 30

# (minimum DA, base score), checked top-down
DA_TIERS = [
    (80, 100),
    (60, 80),
    (40, 60),
    (30, 40),
]
DA_TIER_FLOOR = 20

DOFOLLOW_BONUS = 10
LOW_SPAM_BONUS = 10
HIGH_SPAM_PENALTY = 20


@dataclass
class BacklinkOpportunity:
    """A competitor backlink with its opportunity flag and score."""
    backlink: CompetitorBacklink
    is_opportunity: bool
    opportunity_score: int
    already_linked: bool

    @property
    def source_domain(self) -> str:
        return self.backlink.source_domain

    def to_dict(self) -> Dict[str, Any]:
        b = self.backlink
        return {
            "competitorDomain": b.competitor_domain,
            "sourceDomain": b.source_domain,
            "sourceUrl": b.source_url,
            "targetUrl": b.target_url,
            "linkType": b.link_type,
            "isLive": b.is_live,
            "domainAuthority": b.domain_authority,
            "spamScore": b.spam_score,
            "spamRating": spam_rating(b.spam_score).value,
            "isOpportunity": self.is_opportunity,
            "opportunityScore": self.opportunity_score,
        }


def build_our_domains(our_backlinks: Iterable[Any]) -> Set[str]:
    """
    Set of source domains that already link to us.

    Only live backlinks count; a lost link's domain is a win-back target.

    Args:
        our_backlinks: Our Backlink records or storage row dicts

    Returns:
        Set of normalized source domains
    """
    return build_domain_set(
        link.source_domain for link in coerce_rows(our_backlinks, Backlink) if link.is_live
    )


def da_tier_score(domain_authority: Optional[float]) -> int:
    """Base score for a domain authority value."""
    da = domain_authority or 0
    for min_da, score in DA_TIERS:
        if da >= min_da:
            return score
    return DA_TIER_FLOOR


def is_backlink_opportunity(backlink: CompetitorBacklink, our_domains: Set[str]) -> bool:
    """Check whether a competitor backlink is worth pursuing."""
    if normalize_domain(backlink.source_domain) in our_domains:
        return False
    if not backlink.is_live:
        return False
    return (backlink.domain_authority or 0) >= MIN_OPPORTUNITY_DA


def calculate_backlink_opportunity_score(backlink: CompetitorBacklink) -> int:
    """
    Score a backlink already known to be an opportunity.

    Args:
        backlink: Competitor backlink

    Returns:
        Unclamped score (can exceed 100)
    """
    score = da_tier_score(backlink.domain_authority)

    if backlink.link_type == LinkType.DOFOLLOW.value:
        score += DOFOLLOW_BONUS

    spam = backlink.spam_score
    if spam is not None:
        if spam <= SAFE_SPAM_MAX:
            score += LOW_SPAM_BONUS
        if spam > TOXIC_SPAM_MIN:
            score -= HIGH_SPAM_PENALTY

    return score


def score_backlink_opportunity(
    backlink: Any,
    our_domains: Set[str],
) -> BacklinkOpportunity:
    """
    Flag and score a single competitor backlink.

    Args:
        backlink: CompetitorBacklink record or storage row dict
        our_domains: Normalized source domains of our live backlinks

    Returns:
        BacklinkOpportunity (score 0 when not an opportunity)
    """
    if isinstance(backlink, dict):
        backlink = CompetitorBacklink.from_dict(backlink)

    already_linked = normalize_domain(backlink.source_domain) in our_domains
    opportunity = is_backlink_opportunity(backlink, our_domains)
    score = calculate_backlink_opportunity_score(backlink) if opportunity else 0

    return BacklinkOpportunity(
        backlink=backlink,
        is_opportunity=opportunity,
        opportunity_score=score,
        already_linked=already_linked,
    )


def score_competitor_backlinks(
    competitor_backlinks: Iterable[Any],
    our_backlinks: Iterable[Any],
) -> List[BacklinkOpportunity]:
    """
    Score a batch of competitor backlinks against our backlink profile.

    Args:
        competitor_backlinks: Competitor backlink records or dicts
        our_backlinks: Our backlink records or dicts

    Returns:
        Scored backlinks, highest score first
    """
    our_domains = build_our_domains(our_backlinks)
    records = coerce_rows(competitor_backlinks, CompetitorBacklink)

    scored = [score_backlink_opportunity(b, our_domains) for b in records]
    scored.sort(key=lambda s: s.opportunity_score, reverse=True)

    logger.info(
        f"Scored {len(scored)} competitor backlinks: "
        f"{sum(1 for s in scored if s.is_opportunity)} opportunities"
    )
    return scored


# =============================================================================
# AGGREGATIONS
# =============================================================================

def get_competitor_backlink_aggregations(
    scored: List[BacklinkOpportunity],
    top_limit: int = 10,
) -> Dict[str, Any]:
    """
    Summarize a competitor's scored backlink profile.

    Args:
        scored: Output of score_competitor_backlinks
        top_limit: Number of top opportunities to list

    Returns:
        Summary dict for the backlinks drawer
    """
    live = [s for s in scored if s.backlink.is_live]
    referring = {s.source_domain for s in scored if s.source_domain}
    da_values = [s.backlink.domain_authority for s in scored if s.backlink.domain_authority is not None]

    type_counts: Dict[str, int] = {}
    for s in scored:
        type_counts[s.backlink.link_type] = type_counts.get(s.backlink.link_type, 0) + 1

    opportunities = sorted(
        (s for s in scored if s.is_opportunity),
        key=lambda s: s.opportunity_score,
        reverse=True,
    )

    return {
        "totalBacklinks": len(scored),
        "liveBacklinks": len(live),
        "referringDomains": len(referring),
        "dofollowCount": type_counts.get(LinkType.DOFOLLOW.value, 0),
        "avgDomainAuthority": round_half_up(mean(da_values)) if da_values else None,
        "opportunities": len(opportunities),
        "topOpportunities": [
            {
                "sourceDomain": s.source_domain,
                "domainAuthority": s.backlink.domain_authority or 0,
                "opportunityScore": s.opportunity_score,
            }
            for s in opportunities[:top_limit]
        ],
        "linkTypeBreakdown": [
            {"type": link_type, "count": count}
            for link_type, count in sorted(type_counts.items(), key=lambda kv: (-kv[1], kv[0]))
        ],
    }


@dataclass
class DomainGroup:
    """Competitor backlinks rolled up by linking domain."""
    domain: str
    backlinks: int
    live_links: int
    is_opportunity: bool
    avg_domain_authority: Optional[int]
    avg_spam_score: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "backlinks": self.backlinks,
            "liveLinks": self.live_links,
            "isOpportunity": self.is_opportunity,
            "avgDomainAuthority": self.avg_domain_authority,
            "avgSpamScore": self.avg_spam_score,
        }


def group_backlinks_by_domain(scored: List[BacklinkOpportunity]) -> List[DomainGroup]:
    """
    Roll scored competitor backlinks up by source domain.

    Args:
        scored: Output of score_competitor_backlinks

    Returns:
        DomainGroups, most backlinks first
    """
    buckets: Dict[str, List[BacklinkOpportunity]] = {}
    for s in scored:
        buckets.setdefault(s.source_domain, []).append(s)

    groups = []
    for domain, items in buckets.items():
        da_values = [i.backlink.domain_authority for i in items if i.backlink.domain_authority is not None]
        spam_values = [i.backlink.spam_score for i in items if i.backlink.spam_score is not None]
        groups.append(DomainGroup(
            domain=domain,
            backlinks=len(items),
            live_links=sum(1 for i in items if i.backlink.is_live),
            is_opportunity=any(i.is_opportunity for i in items),
            avg_domain_authority=round_half_up(mean(da_values)) if da_values else None,
            avg_spam_score=round_half_up(mean(spam_values)) if spam_values else None,
        ))

    groups.sort(key=lambda g: (-g.backlinks, g.domain))
    return groups
