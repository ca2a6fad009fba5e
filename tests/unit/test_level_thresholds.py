"""Level curve tests: table levels, the open-ended tail, names and progress."""

import pytest

from boreview.gamification.level_thresholds import (
    calculate_level,
    get_level_icon,
    get_level_info,
    get_level_min_xp,
    get_level_name,
    get_xp_for_next_level,
    level_progress,
)


class TestCalculateLevel:
    @pytest.mark.parametrize(
        ("xp", "level"),
        [(0, 1), (99, 1), (100, 2), (249, 2), (250, 3), (1000, 6), (21999, 19), (22000, 20)],
    )
    def test_table_levels(self, xp: int, level: int) -> None:
        assert calculate_level(xp) == level

    def test_beyond_table_costs_5000_per_level(self) -> None:
        assert calculate_level(26999) == 20
        assert calculate_level(27000) == 21
        assert calculate_level(32000) == 22

    def test_negative_xp_is_level_one(self) -> None:
        assert calculate_level(-50) == 1


class TestLevelBounds:
    def test_min_xp_matches_table(self) -> None:
        assert get_level_min_xp(1) == 0
        assert get_level_min_xp(2) == 100
        assert get_level_min_xp(20) == 22000
        assert get_level_min_xp(21) == 27000

    def test_next_level_threshold(self) -> None:
        assert get_xp_for_next_level(1) == 100
        assert get_xp_for_next_level(20) == 27000

    def test_level_and_min_xp_agree(self) -> None:
        for level in range(1, 30):
            assert calculate_level(get_level_min_xp(level)) == level


class TestPresentation:
    def test_names(self) -> None:
        assert get_level_name(1) == "Người Mới"
        assert get_level_name(4) == "Người Mới"
        assert get_level_name(5) == "Độc Giả"
        assert get_level_name(12) == "Fan Cuồng"
        assert get_level_name(99) == "Vua Review"

    def test_icons(self) -> None:
        assert get_level_icon(1) == "🌱"
        assert get_level_icon(10) == "🏆"
        assert get_level_icon(50) == "👑"

    def test_level_info(self) -> None:
        info = get_level_info(2)
        assert info == {"level": 2, "name": "Người Mới", "min_xp": 100, "max_xp": 250, "icon": "🌱"}


class TestLevelProgress:
    def test_halfway(self) -> None:
        assert level_progress(175, 2) == 50.0

    def test_clamped(self) -> None:
        assert level_progress(0, 2) == 0.0
        assert level_progress(10_000, 2) == 100.0
