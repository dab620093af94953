"""
API Endpoints for Competitive Signals

Stateless FastAPI router over the signal engine. Callers post the rows
they already fetched from storage and get computed signals back:

1. Quick wins / falling stars from the latest-keyword view
2. Competitor pressure and per-competitor keyword gaps
3. Competitor backlink scoring, aggregations and domain groups
4. Backlink gap analysis and promotion of a gap to outreach

Nothing is persisted here; every call recomputes from the posted rows.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from src.scoring import (
    BacklinkGap,
    DuplicateRecommendationError,
    FallingStarSettings,
    InvalidSettingsError,
    QuickWinSettings,
    analyze_backlink_gaps,
    build_keyword_views,
    get_competitor_backlink_aggregations,
    get_competitor_keyword_details,
    get_competitor_pressure,
    get_falling_stars,
    get_quick_wins,
    group_backlinks_by_domain,
    load_falling_star_settings,
    load_quick_win_settings,
    promote_gap,
    round_half_up,
    score_competitor_backlinks,
)
from src.utils.config import get_settings
from src.utils.domain_filter import normalize_domain

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/signals",
    tags=["signals"],
)


# =============================================================================
# REQUEST MODELS
# =============================================================================

Row = Dict[str, Any]


class KeywordSignalsRequest(BaseModel):
    """
    Keyword rows for the classifiers.

    Send either the latest-keyword view (`views`) or raw daily snapshots
    (`snapshots`, optionally with `keywords` metadata) to build it here.
    """
    views: List[Row] = Field(default_factory=list)
    snapshots: List[Row] = Field(default_factory=list)
    keywords: List[Row] = Field(default_factory=list)
    settings: Optional[Row] = None
    location: Optional[str] = None
    cluster: Optional[str] = None
    intent: Optional[str] = None


class CompetitorPressureRequest(BaseModel):
    """Competitor position rows plus stored metrics snapshots."""
    positions: List[Row] = Field(default_factory=list)
    metrics_snapshots: List[Row] = Field(default_factory=list, alias="metricsSnapshots")
    own_domain: Optional[str] = Field(default=None, alias="ownDomain")

    model_config = {"populate_by_name": True}


class CompetitorKeywordsRequest(BaseModel):
    """Competitor position rows for a single competitor drill-down."""
    positions: List[Row] = Field(default_factory=list)


class BacklinkRequest(BaseModel):
    """Our backlinks and competitor backlinks."""
    our_backlinks: List[Row] = Field(default_factory=list, alias="ourBacklinks")
    competitor_backlinks: List[Row] = Field(default_factory=list, alias="competitorBacklinks")
    competitor_domain: Optional[str] = Field(default=None, alias="competitorDomain")

    model_config = {"populate_by_name": True}


class PromoteGapRequest(BaseModel):
    """Gap selected for outreach, mirroring a gap analysis item."""
    project_id: str = Field(..., alias="projectId")
    source_domain: str = Field(..., alias="sourceDomain")
    domain_authority: Optional[float] = Field(default=None, alias="domainAuthority")
    link_type: Optional[str] = Field(default=None, alias="linkType")
    spam_score: Optional[float] = Field(default=None, alias="spamScore")
    competitors: List[str] = Field(default_factory=list)
    competitor_count: Optional[int] = Field(default=None, alias="competitorCount")
    existing_recommendations: List[Row] = Field(default_factory=list, alias="existingRecommendations")

    model_config = {"populate_by_name": True}


# =============================================================================
# HELPERS
# =============================================================================

def _keyword_views(request: KeywordSignalsRequest) -> List[Any]:
    if request.views:
        return request.views
    return build_keyword_views(request.snapshots, request.keywords)


# =============================================================================
# SETTINGS DEFAULTS
# =============================================================================

@router.get("/settings/quick-wins")
async def quick_win_defaults():
    """Default quick win thresholds."""
    return QuickWinSettings().to_dict()


@router.get("/settings/falling-stars")
async def falling_star_defaults():
    """Default falling star thresholds."""
    return FallingStarSettings().to_dict()


# =============================================================================
# KEYWORD SIGNALS
# =============================================================================

@router.post("/quick-wins")
async def quick_wins(request: KeywordSignalsRequest):
    """Rank quick win keywords."""
    try:
        settings = load_quick_win_settings(request.settings)
    except InvalidSettingsError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        wins = get_quick_wins(
            _keyword_views(request),
            settings,
            location=request.location,
            cluster=request.cluster,
            intent=request.intent,
        )
    except Exception as e:
        logger.error(f"Error computing quick wins: {e}")
        raise HTTPException(status_code=500, detail="Failed to compute quick wins")

    return [w.to_dict() for w in wins]


@router.post("/falling-stars")
async def falling_stars(request: KeywordSignalsRequest):
    """Rank keywords that dropped from strong positions."""
    try:
        settings = load_falling_star_settings(request.settings)
    except InvalidSettingsError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        stars = get_falling_stars(_keyword_views(request), settings, location=request.location)
    except Exception as e:
        logger.error(f"Error computing falling stars: {e}")
        raise HTTPException(status_code=500, detail="Failed to compute falling stars")

    return [s.to_dict() for s in stars]


# =============================================================================
# COMPETITORS
# =============================================================================

@router.post("/competitors/pressure")
async def competitor_pressure(request: CompetitorPressureRequest):
    """Aggregate competitor positions into pressure rows."""
    own_domain = request.own_domain or get_settings().OWN_DOMAIN
    try:
        rows = get_competitor_pressure(
            request.positions,
            request.metrics_snapshots,
            own_domain=own_domain,
        )
    except Exception as e:
        logger.error(f"Error aggregating competitor pressure: {e}")
        raise HTTPException(status_code=500, detail="Failed to aggregate competitor pressure")

    return {"items": [r.to_dict() for r in rows]}


@router.post("/competitors/{domain}/keywords")
async def competitor_keywords(domain: str, request: CompetitorKeywordsRequest):
    """Shared keywords with one competitor."""
    details = get_competitor_keyword_details(request.positions, domain)
    return details.to_dict()


# =============================================================================
# BACKLINKS
# =============================================================================

@router.post("/backlinks/opportunities")
async def backlink_opportunities(request: BacklinkRequest):
    """Score competitor backlinks against our profile."""
    scored = score_competitor_backlinks(request.competitor_backlinks, request.our_backlinks)
    if request.competitor_domain:
        scored = [s for s in scored if normalize_domain(s.backlink.competitor_domain) == normalize_domain(request.competitor_domain)]
    return [s.to_dict() for s in scored if s.is_opportunity]


@router.post("/backlinks/aggregations")
async def backlink_aggregations(request: BacklinkRequest):
    """Summary and per-domain groups of a competitor's backlinks."""
    scored = score_competitor_backlinks(request.competitor_backlinks, request.our_backlinks)
    if request.competitor_domain:
        scored = [s for s in scored if normalize_domain(s.backlink.competitor_domain) == normalize_domain(request.competitor_domain)]

    aggregations = get_competitor_backlink_aggregations(
        scored, top_limit=get_settings().TOP_OPPORTUNITIES_LIMIT
    )
    aggregations["domains"] = [g.to_dict() for g in group_backlinks_by_domain(scored)]
    return aggregations


@router.post("/backlinks/gap-analysis")
async def gap_analysis(request: BacklinkRequest):
    """Domains linking to competitors but not to us."""
    try:
        analysis = analyze_backlink_gaps(
            request.our_backlinks,
            request.competitor_backlinks,
            competitor_domain=request.competitor_domain,
        )
    except Exception as e:
        logger.error(f"Error getting backlink gap analysis: {e}")
        raise HTTPException(status_code=500, detail="Failed to get backlink gap analysis")

    return analysis.to_dict()


@router.post("/backlinks/promote-gap")
async def promote_gap_to_outreach(request: PromoteGapRequest):
    """Build an outreach recommendation from a gap."""
    gap = BacklinkGap(
        source_domain=request.source_domain,
        competitors=list(request.competitors),
        avg_domain_authority=round_half_up(request.domain_authority or 0),
        avg_spam_score=round_half_up(request.spam_score) if request.spam_score is not None else None,
        best_opportunity_score=0,
        dominant_link_type=(request.link_type or "").lower(),
        is_high_priority=False,
    )

    try:
        recommendation = promote_gap(
            request.project_id,
            gap,
            existing_recommendations=request.existing_recommendations,
            competitor_count=request.competitor_count,
        )
    except DuplicateRecommendationError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return {"success": True, "recommendation": recommendation.to_dict()}
