"""Badge definitions and unlock evaluation for habbit."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum


class BadgeCategory(str, Enum):
    STREAK = "streak"
    COMPLETIONS = "completions"
    HABITS = "habits"
    CONSISTENCY = "consistency"


@dataclass(frozen=True)
class BadgeDef:
    id: str
    name: str
    description: str
    category: BadgeCategory
    threshold: int
    icon: str = "star"


@dataclass
class AchievementContext:
    """Aggregate stats a badge predicate may look at."""

    longest_streak_ever: int = 0
    total_completions: int = 0
    habit_count: int = 0
    perfect_week_count: int = 0
    perfect_month_count: int = 0
    already_unlocked: set[str] = field(default_factory=set)


BADGES: list[BadgeDef] = [
    # Streak badges
    BadgeDef("streak_3", "Getting Started", "Maintain a 3-day streak", BadgeCategory.STREAK, 3, "fire"),
    BadgeDef("streak_7", "Week Warrior", "Maintain a 7-day streak", BadgeCategory.STREAK, 7, "fire"),
    BadgeDef("streak_14", "Two Week Titan", "Maintain a 14-day streak", BadgeCategory.STREAK, 14, "fire"),
    BadgeDef("streak_30", "Monthly Master", "Maintain a 30-day streak", BadgeCategory.STREAK, 30, "fire"),
    BadgeDef("streak_60", "Habit Hero", "Maintain a 60-day streak", BadgeCategory.STREAK, 60, "fire"),
    BadgeDef("streak_100", "Century Club", "Maintain a 100-day streak", BadgeCategory.STREAK, 100, "fire"),
    BadgeDef("streak_365", "Legendary", "Maintain a 365-day streak", BadgeCategory.STREAK, 365, "fire"),
    # Completion badges
    BadgeDef("completions_10", "First Steps", "Complete 10 habits total", BadgeCategory.COMPLETIONS, 10, "check-circle"),
    BadgeDef("completions_50", "Consistent", "Complete 50 habits total", BadgeCategory.COMPLETIONS, 50, "check-circle"),
    BadgeDef("completions_100", "Dedicated", "Complete 100 habits total", BadgeCategory.COMPLETIONS, 100, "check-circle"),
    BadgeDef("completions_500", "Powerhouse", "Complete 500 habits total", BadgeCategory.COMPLETIONS, 500, "check-circle"),
    BadgeDef("completions_1000", "Unstoppable", "Complete 1000 habits total", BadgeCategory.COMPLETIONS, 1000, "check-circle"),
    # Habit creation badges
    BadgeDef("habits_1", "The Beginning", "Create your first habit", BadgeCategory.HABITS, 1, "plus-circle"),
    BadgeDef("habits_3", "Building Routine", "Create 3 habits", BadgeCategory.HABITS, 3, "plus-circle"),
    BadgeDef("habits_5", "Habit Builder", "Create 5 habits", BadgeCategory.HABITS, 5, "plus-circle"),
    # Consistency badges
    BadgeDef("perfect_week", "Perfect Week", "Complete all habits for 7 days straight", BadgeCategory.CONSISTENCY, 1, "crown"),
    BadgeDef("perfect_month", "Perfect Month", "Complete all habits for a whole month", BadgeCategory.CONSISTENCY, 1, "crown"),
]

_BADGES_BY_ID: dict[str, BadgeDef] = {b.id: b for b in BADGES}

Metric = Callable[[AchievementContext], int]

# Metric each category is measured against
CATEGORY_METRICS: dict[BadgeCategory, Metric] = {
    BadgeCategory.STREAK: lambda ctx: ctx.longest_streak_ever,
    BadgeCategory.COMPLETIONS: lambda ctx: ctx.total_completions,
    BadgeCategory.HABITS: lambda ctx: ctx.habit_count,
}

# Badges whose metric depends on the id rather than the category
BADGE_METRIC_OVERRIDES: dict[str, Metric] = {
    "perfect_week": lambda ctx: ctx.perfect_week_count,
    "perfect_month": lambda ctx: ctx.perfect_month_count,
}


def get_badge(badge_id: str) -> BadgeDef | None:
    return _BADGES_BY_ID.get(badge_id)


def badge_metric(badge: BadgeDef, context: AchievementContext) -> int | None:
    """Current value of the stat a badge is measured against, or None if it has none."""
    metric = BADGE_METRIC_OVERRIDES.get(badge.id) or CATEGORY_METRICS.get(badge.category)
    if metric is None:
        return None
    return metric(context)


def is_earned(badge: BadgeDef, context: AchievementContext) -> bool:
    value = badge_metric(badge, context)
    return value is not None and value >= badge.threshold


def evaluate(context: AchievementContext) -> list[str]:
    """Return ids of badges that are earned but not yet in context.already_unlocked.

    Follows BADGES order. Calling again with the returned ids added to
    already_unlocked yields an empty list.
    """
    return [
        badge.id
        for badge in BADGES
        if badge.id not in context.already_unlocked and is_earned(badge, context)
    ]


def badge_progress(badge: BadgeDef, context: AchievementContext) -> float:
    """Progress toward a badge as min(current/threshold, 1.0)."""
    if badge.id in context.already_unlocked:
        return 1.0
    value = badge_metric(badge, context)
    if value is None or badge.threshold <= 0:
        return 0.0
    return min(value / badge.threshold, 1.0)


def get_closest_badges(context: AchievementContext, n: int = 3) -> list[tuple[BadgeDef, float]]:
    """Return the N locked badges closest to being unlocked, highest progress first."""
    in_progress = [
        (badge, badge_progress(badge, context))
        for badge in BADGES
        if badge.id not in context.already_unlocked
    ]
    in_progress = [(b, p) for b, p in in_progress if p < 1.0]
    in_progress.sort(key=lambda item: item[1], reverse=True)
    return in_progress[:n]
