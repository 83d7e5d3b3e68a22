"""MCP server for habbit.

Exposes profile, streaks and badges as read-only MCP tools.
Run via: python3 -m habbit.mcp_server
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from habbit.achievements import BADGES, AchievementContext, badge_progress
from habbit.config import get_settings
from habbit.engine import GamificationEngine
from habbit.errors import HabitNotFound
from habbit.levels import xp_progress_in_level
from habbit.xp import next_milestone

mcp = FastMCP(name="habbit")


def _get_db():
    from habbit.db import Database
    return Database(Path(get_settings().db_path))


@mcp.tool()
def get_profile() -> dict[str, Any]:
    """Get level, total XP, progress to next level and completion counters."""
    db = _get_db()
    try:
        profile = db.read_user_profile()
        xp_in_level, xp_for_next = xp_progress_in_level(profile["total_xp"])
        return {
            "level": profile["level"],
            "total_xp": profile["total_xp"],
            "xp_in_level": xp_in_level,
            "xp_for_next": xp_for_next,
            "total_completions": profile["total_completions"],
            "weekly_completions": profile["weekly_completions"],
            "longest_streak_ever": profile["longest_streak_ever"],
            "badges_unlocked": len(db.list_unlocked_badge_ids()),
            "badges_total": len(BADGES),
        }
    finally:
        db.close()


@mcp.tool()
def get_streak(habit_id: str) -> dict[str, Any]:
    """Get the current and longest streak for one habit."""
    db = _get_db()
    try:
        engine = GamificationEngine(db, get_settings())
        try:
            habit = db.require_habit(habit_id)
        except HabitNotFound as exc:
            return {"error": str(exc)}
        streak = engine.get_display_streak(habit.id)
        return {
            "habit_id": habit.id,
            "name": habit.name,
            "schedule": habit.frequency.describe(),
            "current": streak.current,
            "longest": streak.longest,
            "next_milestone": next_milestone(streak.current),
        }
    finally:
        db.close()


@mcp.tool()
def get_badges() -> dict[str, Any]:
    """Get all badges with unlock status and progress."""
    db = _get_db()
    try:
        profile = db.read_user_profile()
        unlocked_at = {b["id"]: b["unlocked_at"] for b in db.get_all_badges()}
        context = AchievementContext(
            longest_streak_ever=profile["longest_streak_ever"],
            total_completions=profile["total_completions"],
            habit_count=db.count_active_habits(),
            already_unlocked=set(unlocked_at),
        )
        badges = [
            {
                "id": badge.id,
                "name": badge.name,
                "description": badge.description,
                "category": badge.category.value,
                "unlocked": badge.id in unlocked_at,
                "unlocked_at": unlocked_at.get(badge.id),
                "progress_pct": int(badge_progress(badge, context) * 100),
            }
            for badge in BADGES
        ]
        return {
            "badges": badges,
            "total_count": len(BADGES),
            "unlocked_count": len(unlocked_at),
        }
    finally:
        db.close()


@mcp.tool()
def list_habits() -> dict[str, Any]:
    """List active habits with their schedules."""
    db = _get_db()
    try:
        habits = [
            {
                "id": h.id,
                "name": h.name,
                "type": h.type.value,
                "schedule": h.frequency.describe(),
                "daily_target": h.daily_target,
                "unit": h.unit,
            }
            for h in db.list_habits()
        ]
        return {"habits": habits, "count": len(habits)}
    finally:
        db.close()


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
