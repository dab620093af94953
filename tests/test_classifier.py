"""
Test Suite for the Quick Win / Falling Star Classifier

Tests:
- Each quick win condition in isolation
- Falling star drop and previous-position rules
- Settings defaults, sanitization and disabling
"""

import pytest
from datetime import date
from src.scoring import (
    FallingStarSettings,
    InvalidSettingsError,
    QuickWinSettings,
    get_falling_stars,
    get_quick_wins,
    is_quick_win,
    load_falling_star_settings,
    load_quick_win_settings,
)


class TestQuickWins:
    """Test quick win classification."""

    def test_default_quick_win(self, make_view):
        """Position 12, volume 2400, KD 30, commercial qualifies."""
        assert is_quick_win(make_view(), QuickWinSettings())

    @pytest.mark.parametrize("position,expected", [(5, False), (6, True), (20, True), (21, False), (None, False)])
    def test_position_bounds_inclusive(self, make_view, position, expected):
        """Position range is inclusive on both ends."""
        assert is_quick_win(make_view(current_position=position), QuickWinSettings()) is expected

    def test_low_volume_excluded(self, make_view):
        """Volume below minVolume is excluded."""
        assert not is_quick_win(make_view(search_volume=49), QuickWinSettings())
        assert is_quick_win(make_view(search_volume=50), QuickWinSettings())

    def test_hard_keyword_excluded(self, make_view):
        """Difficulty above maxDifficulty is excluded."""
        assert not is_quick_win(make_view(difficulty=70.5), QuickWinSettings())
        assert is_quick_win(make_view(difficulty=70), QuickWinSettings())

    def test_informational_intent_excluded(self, make_view):
        """Only buying intents count by default."""
        assert not is_quick_win(make_view(intent="informational"), QuickWinSettings())
        assert is_quick_win(make_view(intent="transactional"), QuickWinSettings())

    def test_inactive_keyword_excluded(self, make_view):
        """Paused keywords are never quick wins."""
        assert not is_quick_win(make_view(is_active=False), QuickWinSettings())

    def test_sorted_by_opportunity(self, make_view):
        """Best opportunity first."""
        views = [
            make_view(keyword_id=1, opportunity_score=10),
            make_view(keyword_id=2, opportunity_score=40),
            make_view(keyword_id=3, opportunity_score=25),
        ]
        wins = get_quick_wins(views)
        assert [w.view.keyword_id for w in wins] == [2, 3, 1]

    def test_filters_applied(self, make_view):
        """Location and cluster filters narrow the result."""
        views = [
            make_view(keyword_id=1, location="US", cluster="crm"),
            make_view(keyword_id=2, location="UK", cluster="crm"),
            make_view(keyword_id=3, location="US", cluster="erp"),
        ]
        wins = get_quick_wins(views, location="US", cluster="crm")
        assert [w.view.keyword_id for w in wins] == [1]

    def test_intent_filter(self, make_view):
        """The intent filter keeps only matching quick wins."""
        views = [
            make_view(keyword_id=1, intent="commercial"),
            make_view(keyword_id=2, intent="transactional"),
        ]
        wins = get_quick_wins(views, intent="Transactional")
        assert [w.view.keyword_id for w in wins] == [2]

    def test_missing_metrics_compare_as_zero(self, make_view):
        """Missing volume fails minVolume; missing difficulty passes maxDifficulty."""
        assert not is_quick_win(make_view(search_volume=None), QuickWinSettings())
        assert is_quick_win(make_view(difficulty=None), QuickWinSettings())

    def test_disabled_returns_empty(self, make_view):
        """Disabled settings return no quick wins."""
        assert get_quick_wins([make_view()], QuickWinSettings(enabled=False)) == []

    def test_accepts_row_dicts(self):
        """Storage rows with camelCase keys are accepted."""
        rows = [{
            "keywordId": 7, "keyword": "crm tool", "currentPosition": 9,
            "searchVolume": "300", "difficulty": "20.5", "intent": "Commercial",
            "opportunityScore": "33",
        }]
        wins = get_quick_wins(rows)
        assert len(wins) == 1
        data = wins[0].to_dict()
        assert data["keywordId"] == 7
        assert data["currentPosition"] == 9
        assert data["opportunityScore"] == 33


class TestFallingStars:
    """Test falling star classification."""

    def test_drop_from_page_one_included(self, make_view, as_of):
        """Previous 5, current 12 is a falling star."""
        view = make_view(current_position=12, previous_position=5, position_delta=-7)
        stars = get_falling_stars([view], as_of=as_of)
        assert len(stars) == 1
        assert stars[0].position_delta == -7
        assert stars[0].previous_position == 5

    def test_small_drop_excluded(self, make_view, as_of):
        """A drop of 4 stays below the default threshold."""
        view = make_view(current_position=9, previous_position=5, position_delta=-4)
        assert get_falling_stars([view], as_of=as_of) == []

    def test_exact_threshold_included(self, make_view, as_of):
        """A drop of exactly minDropPositions counts."""
        view = make_view(current_position=10, previous_position=5, position_delta=-5)
        assert len(get_falling_stars([view], as_of=as_of)) == 1

    def test_not_previously_on_page_one(self, make_view, as_of):
        """Keywords that were never top 10 are not falling stars."""
        view = make_view(current_position=25, previous_position=15, position_delta=-10)
        assert get_falling_stars([view], as_of=as_of) == []

    def test_previous_derived_from_delta(self, make_view, as_of):
        """Previous position is derived when only the delta is stored."""
        view = make_view(current_position=14, previous_position=None, position_delta=-8)
        stars = get_falling_stars([view], as_of=as_of)
        assert stars[0].previous_position == 6

    def test_worst_drop_first(self, make_view, as_of):
        """Ordered by delta ascending."""
        views = [
            make_view(keyword_id=1, current_position=11, previous_position=5, position_delta=-6),
            make_view(keyword_id=2, current_position=30, previous_position=3, position_delta=-27),
            make_view(keyword_id=3, current_position=16, previous_position=8, position_delta=-8),
        ]
        stars = get_falling_stars(views, as_of=as_of)
        assert [s.view.keyword_id for s in stars] == [2, 3, 1]

    def test_stale_snapshot_outside_window(self, make_view, as_of):
        """Snapshots older than windowDays are ignored."""
        view = make_view(
            current_position=12, previous_position=5, position_delta=-7,
            date=date(2024, 4, 1),
        )
        assert get_falling_stars([view], as_of=as_of) == []

    def test_min_volume_filter(self, make_view, as_of):
        """Falling stars below minVolume are dropped."""
        views = [
            make_view(keyword_id=1, current_position=12, previous_position=5, position_delta=-7, search_volume=40),
            make_view(keyword_id=2, current_position=12, previous_position=5, position_delta=-7, search_volume=500),
            make_view(keyword_id=3, current_position=12, previous_position=5, position_delta=-7, search_volume=None),
        ]
        settings = FallingStarSettings(min_volume=100)
        stars = get_falling_stars(views, settings, as_of=as_of)
        assert [s.view.keyword_id for s in stars] == [2]

    def test_location_filter(self, make_view, as_of):
        """The location filter keeps only matching falling stars."""
        views = [
            make_view(keyword_id=1, current_position=12, previous_position=5, position_delta=-7, location="US"),
            make_view(keyword_id=2, current_position=12, previous_position=5, position_delta=-7, location="UK"),
        ]
        stars = get_falling_stars(views, location="UK", as_of=as_of)
        assert [s.view.keyword_id for s in stars] == [2]

    def test_disabled_returns_empty(self, make_view, as_of):
        """Disabled settings return no falling stars."""
        view = make_view(current_position=12, previous_position=5, position_delta=-7)
        assert get_falling_stars([view], FallingStarSettings(enabled=False), as_of=as_of) == []

    def test_core_keyword_flag(self, make_view, as_of):
        """Core page keywords are flagged in the output."""
        view = make_view(current_position=12, previous_position=5, position_delta=-7, is_core_page=True)
        data = get_falling_stars([view], as_of=as_of)[0].to_dict()
        assert data["isCoreKeyword"] is True
        assert data["positionDelta"] == -7


class TestSettings:
    """Test settings defaults and sanitization."""

    def test_quick_win_defaults(self):
        """Documented quick win defaults."""
        s = QuickWinSettings()
        assert (s.min_position, s.max_position, s.min_volume, s.max_difficulty) == (6, 20, 50, 70)
        assert s.valid_intents == ["commercial", "transactional"]

    def test_falling_star_defaults(self):
        """Documented falling star defaults."""
        s = FallingStarSettings()
        assert (s.window_days, s.min_drop_positions, s.min_previous_position, s.min_volume) == (7, 5, 10, 0)

    def test_camel_case_row_loaded(self):
        """Stored camelCase settings map onto fields; nulls keep defaults."""
        s = load_quick_win_settings({"minPosition": 4, "maxDifficulty": None, "validIntents": ["Informational"]})
        assert s.min_position == 4
        assert s.max_difficulty == 70
        assert s.valid_intents == ["informational"]

    def test_values_sanitized(self):
        """Out-of-range values are clamped rather than rejected."""
        qw = load_quick_win_settings({"minPosition": 0, "minVolume": -10, "maxDifficulty": 150})
        assert qw.min_position == 1
        assert qw.min_volume == 0
        assert qw.max_difficulty == 100

        fs = load_falling_star_settings({"windowDays": 90, "minDropPositions": 0})
        assert fs.window_days == 30
        assert fs.min_drop_positions == 1

    def test_unparsable_value_rejected(self):
        """Garbage values raise InvalidSettingsError."""
        with pytest.raises(InvalidSettingsError):
            load_quick_win_settings({"minVolume": "lots"})

    def test_to_dict_round_trips_keys(self):
        """to_dict uses the stored camelCase keys."""
        data = FallingStarSettings().to_dict()
        assert set(data) == {"enabled", "windowDays", "minDropPositions", "minPreviousPosition", "minVolume"}
