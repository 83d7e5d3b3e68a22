"""XP awards for habbit.

Pure functions that convert completion events into XP points.
"""

from __future__ import annotations

# Base XP values
XP_COMPLETE_HABIT = 10
XP_UNLOCK_BADGE = 100

# Streak milestones (exact streak length -> bonus)
STREAK_MILESTONE_BONUSES: dict[int, int] = {
    7: 50,
    14: 100,
    30: 200,
    60: 350,
    100: 500,
    365: 1000,
}


def milestone_bonus(streak_length: int) -> int:
    """Bonus for landing exactly on a milestone. Skipping past one earns nothing."""
    return STREAK_MILESTONE_BONUSES.get(streak_length, 0)


def xp_for_completion(streak_length: int) -> int:
    """XP for one completion that leaves the habit at streak_length.

    E.g. streak_length=7 -> 10 + 50, streak_length=8 -> 10.
    """
    return XP_COMPLETE_HABIT + milestone_bonus(streak_length)


def next_milestone(streak_length: int) -> int | None:
    """The smallest milestone strictly above streak_length, or None past the last one."""
    for threshold in sorted(STREAK_MILESTONE_BONUSES):
        if threshold > streak_length:
            return threshold
    return None
