"""
Test Suite for Opportunity Scoring and Position Deltas

Tests:
- Opportunity Score formula and missing-data behavior
- Day-over-day position delta
- Latest-per-keyword view construction
"""

import pytest
from src.scoring import (
    KeywordView,
    OpportunityBreakdown,
    build_keyword_views,
    calculate_opportunity_breakdown,
    calculate_opportunity_score,
    compute_position_delta,
    latest_snapshots,
    round_half_up,
    score_keywords,
)
from src.scoring.helpers import to_int, to_number


class TestOpportunityScore:
    """Test Opportunity Score calculation."""

    def test_documented_example(self):
        """2400 volume, KD 30, position 12 scores 21."""
        # (24 + 20 + 18) / 3 = 20.67
        assert calculate_opportunity_score(2400, 30, 12) == 21

    def test_volume_capped_at_50(self):
        """Volume beyond 5,000 searches adds nothing."""
        breakdown = calculate_opportunity_breakdown(1_000_000, 50, None)
        assert breakdown.volume_score == 50

    def test_unranked_gets_flat_position_score(self):
        """Unranked and deep positions score a flat 10."""
        assert calculate_opportunity_breakdown(100, 50, None).position_score == 10
        assert calculate_opportunity_breakdown(100, 50, 0).position_score == 10
        assert calculate_opportunity_breakdown(100, 50, 35).position_score == 10

    def test_position_one_scores_highest(self):
        """Position 1 gets the maximum position component."""
        assert calculate_opportunity_breakdown(100, 50, 1).position_score == 40
        assert calculate_opportunity_breakdown(100, 50, 20).position_score == 2

    def test_missing_volume_scores_zero(self):
        """No volume data means no opportunity signal."""
        breakdown = calculate_opportunity_breakdown(None, 20, 8)
        assert isinstance(breakdown, OpportunityBreakdown)
        assert breakdown.opportunity_score == 0
        assert breakdown.has_data is False

    def test_missing_difficulty_scores_zero(self):
        """No difficulty data means no opportunity signal."""
        assert calculate_opportunity_score(5000, None, 8) == 0

    def test_zero_difficulty_is_data(self):
        """Difficulty 0 is a real value, not a missing one."""
        assert calculate_opportunity_score(1000, 0, 8) > 0

    def test_monotonic_in_volume(self):
        """More volume never lowers the score."""
        scores = [calculate_opportunity_score(v, 40, 10) for v in (0, 100, 1000, 3000, 5000, 9000)]
        assert scores == sorted(scores)

    def test_monotonic_in_difficulty(self):
        """Higher difficulty never raises the score."""
        scores = [calculate_opportunity_score(2000, d, 10) for d in (0, 10, 30, 50, 70, 100)]
        assert scores == sorted(scores, reverse=True)

    def test_score_within_bounds(self):
        """Score stays within 0-100 for in-range inputs."""
        assert calculate_opportunity_score(1_000_000, 0, 1) <= 100
        assert calculate_opportunity_score(0, 100, None) >= 0

    def test_half_rounds_up(self):
        """Halves round up, not to even."""
        # (5 + 40 + 10) / 3 = 18.33 → 18; check the helper directly for .5
        assert round_half_up(2.5) == 3
        assert round_half_up(20.5) == 21
        assert calculate_opportunity_score(500, 10, None) == 18

    def test_numeric_strings_accepted(self):
        """Storage numeric strings are coerced."""
        assert calculate_opportunity_score("2400", "30.00", 12) == 21

    def test_score_keywords_keeps_stored_scores(self):
        """Stored scores are kept unless overwrite is requested."""
        views = [
            KeywordView(keyword_id=1, search_volume=2400, difficulty=30, current_position=12, opportunity_score=55),
            KeywordView(keyword_id=2, search_volume=2400, difficulty=30, current_position=12),
        ]
        score_keywords(views)
        assert views[0].opportunity_score == 55
        assert views[1].opportunity_score == 21

        score_keywords(views, overwrite=True)
        assert views[0].opportunity_score == 21


class TestPositionDelta:
    """Test day-over-day position change."""

    def test_drop_is_negative(self):
        """Losing positions gives a negative delta."""
        assert compute_position_delta(12, 5) == -7

    def test_climb_is_positive(self):
        """Gaining positions gives a positive delta."""
        assert compute_position_delta(3, 9) == 6

    @pytest.mark.parametrize("current,previous", [(None, 5), (5, None), (0, 5), (5, 0), (None, None)])
    def test_unranked_side_gives_none(self, current, previous):
        """Delta is undefined when either side is unranked."""
        assert compute_position_delta(current, previous) is None


class TestKeywordViews:
    """Test the latest-per-keyword view."""

    def test_latest_ranked_snapshot_wins(self, snapshot_rows):
        """Latest is the most recent date with a position."""
        latest = latest_snapshots(snapshot_rows)
        assert latest["kw-1"].position == 12
        assert "kw-2" not in latest

    def test_previous_from_history(self, snapshot_rows):
        """Previous position falls back to the prior ranked snapshot."""
        views = build_keyword_views(snapshot_rows)
        assert len(views) == 1
        view = views[0]
        assert view.current_position == 12
        assert view.previous_position == 9
        assert view.position_delta == -3

    def test_stored_previous_position_preferred(self):
        """A stored previousPosition beats the history lookup."""
        rows = [
            {"keywordId": 1, "date": "2024-05-08", "position": 4},
            {"keywordId": 1, "date": "2024-05-09", "position": 11, "previousPosition": 3},
        ]
        view = build_keyword_views(rows)[0]
        assert view.previous_position == 3
        assert view.position_delta == -8

    def test_opportunity_computed_when_missing(self, snapshot_rows):
        """Views carry a computed opportunity score when none is stored."""
        view = build_keyword_views(snapshot_rows)[0]
        assert view.opportunity_score == 21

    def test_keyword_metadata_joined(self, snapshot_rows):
        """Keyword metadata is joined onto the view."""
        keywords = [{"id": "kw-1", "keyword": "crm software", "cluster": "crm", "location": "US", "isCorePage": True}]
        view = build_keyword_views(snapshot_rows, keywords)[0]
        assert view.keyword == "crm software"
        assert view.location == "US"
        assert view.is_core_page is True


class TestMissingKeywordMetrics:
    """Test scoring of views whose metrics were never collected."""

    def test_view_without_metrics_scores_zero(self):
        """Missing volume and difficulty stay missing and score 0."""
        view = KeywordView.from_dict({"keywordId": 1, "currentPosition": 12})
        assert view.search_volume is None
        assert view.difficulty is None

        score_keywords([view])
        assert view.opportunity_score == 0

    def test_stored_zero_score_kept(self):
        """A stored score of 0 is a score, not a gap to fill."""
        view = KeywordView(keyword_id=1, search_volume=2400, difficulty=30, current_position=12, opportunity_score=0)
        score_keywords([view])
        assert view.opportunity_score == 0

    def test_to_dict_reports_zero_for_missing(self):
        """Output rows show 0 for metrics that are missing."""
        data = KeywordView(keyword_id=1).to_dict()
        assert data["searchVolume"] == 0
        assert data["difficulty"] == 0
        assert data["opportunityScore"] == 0


class TestNumericCoercion:
    """Test coercion of stored numeric values."""

    @pytest.mark.parametrize("raw", ["inf", "-inf", "nan", float("inf"), float("nan"), "lots", "", None, True])
    def test_unusable_values_become_none(self, raw):
        """Non-finite and unparsable values are treated as missing."""
        assert to_number(raw) is None
        assert to_int(raw) is None

    def test_numeric_strings(self):
        """Padded numeric strings parse."""
        assert to_number(" 42.50 ") == 42.5
        assert to_int("2400") == 2400

    def test_infinite_volume_scores_zero(self):
        """An infinite volume row is scored as missing data."""
        view = KeywordView.from_dict({"keywordId": 1, "currentPosition": 5, "searchVolume": "inf", "difficulty": 20})
        assert view.search_volume is None
        assert calculate_opportunity_score("inf", 20, 5) == 0
