"""Level curve and level presentation.

Levels 1-20 follow a fixed table; every level past 20 costs another 5000 XP.
"""

from __future__ import annotations

LEVEL_XP_REQUIREMENTS: list[int] = [
    0, 100, 250, 450, 700, 1000, 1400, 1900, 2500, 3200,
    4000, 5000, 6200, 7600, 9200, 11000, 13000, 15500, 18500, 22000,
]
XP_PER_LEVEL_BEYOND_TABLE = 5000

# minimum level -> name
LEVEL_NAMES: dict[int, str] = {
    1: "Người Mới",
    5: "Độc Giả",
    10: "Fan Cuồng",
    15: "Chuyên Gia",
    20: "Huyền Thoại",
    25: "Bậc Thầy",
    30: "Đại Cao Thủ",
    50: "Vua Review",
}

# checked highest first
LEVEL_ICONS: list[tuple[int, str]] = [
    (50, "👑"),
    (30, "💎"),
    (20, "🔥"),
    (15, "⭐"),
    (10, "🏆"),
    (5, "📖"),
]
DEFAULT_LEVEL_ICON = "🌱"

_TABLE_LEVELS = len(LEVEL_XP_REQUIREMENTS)
_TABLE_MAX_XP = LEVEL_XP_REQUIREMENTS[-1]


def calculate_level(total_xp: int) -> int:
    """Level reached with ``total_xp``. Never below 1."""
    if total_xp >= _TABLE_MAX_XP:
        return _TABLE_LEVELS + (total_xp - _TABLE_MAX_XP) // XP_PER_LEVEL_BEYOND_TABLE
    for index in range(_TABLE_LEVELS - 1, -1, -1):
        if total_xp >= LEVEL_XP_REQUIREMENTS[index]:
            return index + 1
    return 1


def get_level_min_xp(level: int) -> int:
    """Total XP at which ``level`` starts."""
    if level <= 1:
        return 0
    if level <= _TABLE_LEVELS:
        return LEVEL_XP_REQUIREMENTS[level - 1]
    return _TABLE_MAX_XP + (level - _TABLE_LEVELS) * XP_PER_LEVEL_BEYOND_TABLE


def get_xp_for_next_level(level: int) -> int:
    """Total XP at which the level after ``level`` starts."""
    return get_level_min_xp(level + 1)


def get_level_name(level: int) -> str:
    name = LEVEL_NAMES[1]
    for min_level in sorted(LEVEL_NAMES):
        if level >= min_level:
            name = LEVEL_NAMES[min_level]
    return name


def get_level_icon(level: int) -> str:
    for min_level, icon in LEVEL_ICONS:
        if level >= min_level:
            return icon
    return DEFAULT_LEVEL_ICON


def get_level_info(level: int) -> dict:
    return {
        "level": level,
        "name": get_level_name(level),
        "min_xp": get_level_min_xp(level),
        "max_xp": get_xp_for_next_level(level),
        "icon": get_level_icon(level),
    }


def level_progress(total_xp: int, level: int) -> float:
    """Percent of the way from ``level`` to the next one, clamped to 0..100."""
    floor = get_level_min_xp(level)
    span = get_xp_for_next_level(level) - floor
    if span <= 0:
        return 100.0
    percent = (total_xp - floor) / span * 100
    return round(min(100.0, max(0.0, percent)), 2)
