"""Level progression. Pure functions, no side effects."""

# Total XP needed to reach each level; index 0 is level 1
LEVEL_THRESHOLDS: list[int] = [
    0,
    100,
    250,
    500,
    850,
    1300,
    1900,
    2700,
    3800,
    5200,
    7000,
    9500,
    12500,
    16500,
    21500,
]

MAX_LEVEL = len(LEVEL_THRESHOLDS)


def level_from_xp(total_xp: int) -> int:
    """Given total XP, return current level (1 to MAX_LEVEL)."""
    for index in range(len(LEVEL_THRESHOLDS) - 1, -1, -1):
        if total_xp >= LEVEL_THRESHOLDS[index]:
            return index + 1
    return 1


def xp_for_next_level(level: int) -> int | None:
    """Total XP at which the level after `level` starts, or None at max level."""
    if level >= MAX_LEVEL:
        return None
    return LEVEL_THRESHOLDS[max(level, 1)]


def xp_progress_in_level(total_xp: int) -> tuple[int, int]:
    """Return (current_xp_in_level, xp_span_of_level).

    At max level, returns (xp_past_last_threshold, 0).
    """
    total_xp = max(0, total_xp)
    level = level_from_xp(total_xp)
    floor = LEVEL_THRESHOLDS[level - 1]
    ceiling = xp_for_next_level(level)
    if ceiling is None:
        return (total_xp - floor, 0)
    return (total_xp - floor, ceiling - floor)


def did_level_up(old_xp: int, new_xp: int) -> bool:
    return level_from_xp(new_xp) > level_from_xp(old_xp)
