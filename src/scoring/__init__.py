"""
Scoring Module for the Rank Signal Engine

Turns ranking, competitor and backlink rows into decision-ready signals:

1. **Position Delta** - Latest-per-keyword view with day-over-day movement
2. **Opportunity Score** (0-100) - Volume, difficulty and position composite
3. **Quick Wins / Falling Stars** - Threshold-driven keyword buckets
4. **Competitor Pressure** (0-100) - Volume-weighted threat per competitor
5. **Backlink Opportunity** - Value of a competitor's backlink for us
6. **Backlink Gap** - Domains linking to competitors but not to us

All calculations are pure: they take already-fetched rows and return new
objects, never touching storage.

Example Usage:
    from src.scoring import (
        build_keyword_views,
        get_quick_wins,
        analyze_backlink_gaps,
        QuickWinSettings,
    )

    views = build_keyword_views(snapshots, keywords)
    quick_wins = get_quick_wins(views, QuickWinSettings(min_volume=100))

    analysis = analyze_backlink_gaps(our_backlinks, competitor_backlinks)
    print(f"High priority gaps: {analysis.summary.high_priority_gaps}")
"""

# Helper utilities and constants
from .helpers import (
    SearchIntent,
    LinkType,
    SpamRating,
    TrafficThreat,
    COMMERCIAL_INTENTS,
    round_half_up,
    spam_rating,
    traffic_threat,
    dominant_value,
)

from .errors import (
    SignalError,
    InvalidSettingsError,
    DuplicateRecommendationError,
)

# Input records
from .models import (
    KeywordSnapshot,
    KeywordInfo,
    KeywordView,
    CompetitorPosition,
    CompetitorMetricsSnapshot,
    Backlink,
    CompetitorBacklink,
)

# Position delta
from .position import (
    compute_position_delta,
    latest_snapshots,
    build_keyword_views,
)

# Opportunity Score
from .opportunity import (
    OpportunityBreakdown,
    calculate_opportunity_score,
    calculate_opportunity_breakdown,
    score_keywords,
)

# Quick Wins / Falling Stars
from .classifier import (
    QuickWinSettings,
    FallingStarSettings,
    QuickWin,
    FallingStar,
    load_quick_win_settings,
    load_falling_star_settings,
    is_quick_win,
    get_quick_wins,
    get_falling_stars,
)

# Competitor Pressure
from .pressure import (
    PressureMode,
    CompetitorPressure,
    CompetitorKeywordDetails,
    aggregate_competitor_pressure,
    derive_pressure_from_positions,
    exclude_own_domain,
    get_competitor_pressure,
    get_competitor_keyword_details,
)

# Backlink Opportunity
from .backlinks import (
    BacklinkOpportunity,
    DomainGroup,
    build_our_domains,
    score_backlink_opportunity,
    score_competitor_backlinks,
    get_competitor_backlink_aggregations,
    group_backlinks_by_domain,
)

# Backlink Gap
from .gap import (
    BacklinkGap,
    GapSummary,
    GapAnalysis,
    OutreachRecommendation,
    is_high_priority_gap,
    analyze_backlink_gaps,
    outreach_severity,
    promote_gap,
)

__all__ = [
    # Helpers
    "SearchIntent",
    "LinkType",
    "SpamRating",
    "TrafficThreat",
    "COMMERCIAL_INTENTS",
    "round_half_up",
    "spam_rating",
    "traffic_threat",
    "dominant_value",

    # Errors
    "SignalError",
    "InvalidSettingsError",
    "DuplicateRecommendationError",

    # Records
    "KeywordSnapshot",
    "KeywordInfo",
    "KeywordView",
    "CompetitorPosition",
    "CompetitorMetricsSnapshot",
    "Backlink",
    "CompetitorBacklink",

    # Position
    "compute_position_delta",
    "latest_snapshots",
    "build_keyword_views",

    # Opportunity
    "OpportunityBreakdown",
    "calculate_opportunity_score",
    "calculate_opportunity_breakdown",
    "score_keywords",

    # Classifier
    "QuickWinSettings",
    "FallingStarSettings",
    "QuickWin",
    "FallingStar",
    "load_quick_win_settings",
    "load_falling_star_settings",
    "is_quick_win",
    "get_quick_wins",
    "get_falling_stars",

    # Pressure
    "PressureMode",
    "CompetitorPressure",
    "CompetitorKeywordDetails",
    "aggregate_competitor_pressure",
    "derive_pressure_from_positions",
    "exclude_own_domain",
    "get_competitor_pressure",
    "get_competitor_keyword_details",

    # Backlinks
    "BacklinkOpportunity",
    "DomainGroup",
    "build_our_domains",
    "score_backlink_opportunity",
    "score_competitor_backlinks",
    "get_competitor_backlink_aggregations",
    "group_backlinks_by_domain",

    # Gap
    "BacklinkGap",
    "GapSummary",
    "GapAnalysis",
    "OutreachRecommendation",
    "is_high_priority_gap",
    "analyze_backlink_gaps",
    "outreach_severity",
    "promote_gap",
]

__version__ = "1.0.0"
