"""
Pytest Configuration and Shared Fixtures

Provides common fixtures and configuration for all test modules.
"""

import pytest
from datetime import date
from typing import Any, Dict, List

from src.scoring import KeywordView


# ============================================================================
# Keyword Fixtures
# ============================================================================

@pytest.fixture
def as_of() -> date:
    """Fixed reference date for window checks."""
    return date(2024, 5, 10)


@pytest.fixture
def make_view():
    """Factory for latest-keyword views with quick-win friendly defaults."""
    def _make(**overrides) -> KeywordView:
        fields = {
            "keyword_id": "kw-1",
            "keyword": "crm software",
            "cluster": "crm",
            "location": "Global",
            "current_position": 12,
            "previous_position": 12,
            "position_delta": 0,
            "search_volume": 2400,
            "difficulty": 30.0,
            "intent": "commercial",
            "opportunity_score": 21.0,
            "is_active": True,
            "date": date(2024, 5, 9),
        }
        fields.update(overrides)
        return KeywordView(**fields)
    return _make


@pytest.fixture
def snapshot_rows() -> List[Dict[str, Any]]:
    """Three days of snapshots for two keywords, as storage returns them."""
    return [
        {"keywordId": "kw-1", "date": "2024-05-07", "position": 8, "searchVolume": "2400", "difficulty": "30.00", "intent": "commercial"},
        {"keywordId": "kw-1", "date": "2024-05-08", "position": 9, "searchVolume": "2400", "difficulty": "30.00", "intent": "commercial"},
        {"keywordId": "kw-1", "date": "2024-05-09", "position": 12, "searchVolume": "2400", "difficulty": "30.00", "intent": "commercial"},
        {"keywordId": "kw-2", "date": "2024-05-08", "position": None, "searchVolume": 90, "difficulty": 10},
        {"keywordId": "kw-2", "date": "2024-05-09", "position": None, "searchVolume": 90, "difficulty": 10},
    ]


# ============================================================================
# Competitor Fixtures
# ============================================================================

@pytest.fixture
def competitor_rows() -> List[Dict[str, Any]]:
    """Competitor positions across three keywords."""
    return [
        {"keywordId": "kw-1", "competitorDomain": "rival.com", "latestPosition": 2, "ourPosition": 12, "searchVolume": 1000, "keyword": "crm software"},
        {"keywordId": "kw-2", "competitorDomain": "rival.com", "latestPosition": 15, "ourPosition": 5, "searchVolume": 500, "keyword": "crm pricing"},
        {"keywordId": "kw-3", "competitorDomain": "rival.com", "latestPosition": 4, "ourPosition": None, "searchVolume": 300, "keyword": "best crm"},
        {"keywordId": "kw-1", "competitorDomain": "other.io", "latestPosition": 30, "ourPosition": 12, "searchVolume": 1000, "keyword": "crm software"},
    ]


# ============================================================================
# Backlink Fixtures
# ============================================================================

@pytest.fixture
def our_backlinks() -> List[Dict[str, Any]]:
    """Our backlink profile: one live link, one lost link."""
    return [
        {"sourceDomain": "x.com", "sourceUrl": "https://x.com/a", "targetUrl": "https://us.com/", "isLive": True, "domainAuthority": 50},
        {"sourceDomain": "lost.org", "sourceUrl": "https://lost.org/p", "targetUrl": "https://us.com/", "isLive": False, "domainAuthority": 45},
    ]


@pytest.fixture
def competitor_backlinks() -> List[Dict[str, Any]]:
    """Competitor backlinks shared between a.com and b.com."""
    return [
        {"competitorDomain": "a.com", "sourceDomain": "x.com", "sourceUrl": "https://x.com/1", "linkType": "dofollow", "domainAuthority": 50, "spamScore": 5},
        {"competitorDomain": "a.com", "sourceDomain": "y.com", "sourceUrl": "https://y.com/1", "linkType": "dofollow", "domainAuthority": 45, "spamScore": 10},
        {"competitorDomain": "b.com", "sourceDomain": "y.com", "sourceUrl": "https://y.com/2", "linkType": "nofollow", "domainAuthority": 45, "spamScore": 10},
        {"competitorDomain": "b.com", "sourceDomain": "z.com", "sourceUrl": "https://z.com/1", "linkType": "dofollow", "domainAuthority": 70, "spamScore": 5},
    ]
