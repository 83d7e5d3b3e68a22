"""CLI commands for habbit."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from habbit import dates
from habbit.achievements import BADGES, AchievementContext, badge_progress, get_closest_badges
from habbit.config import get_settings, load_config, set_setting
from habbit.db import Database
from habbit.display import (
    print_badge_unlocked,
    print_badges,
    print_completion_result,
    print_config,
    print_error,
    print_habits,
    print_history,
    print_profile,
    print_streak,
    print_week,
)
from habbit.engine import CompletionResult, GamificationEngine
from habbit.errors import HabbitError, HabitNotFound
from habbit.habits import Frequency, FrequencyKind, Habit, HabitType
from habbit.levels import xp_progress_in_level
from habbit.xp import next_milestone

_WEEKDAYS = {"sun": 0, "mon": 1, "tue": 2, "wed": 3, "thu": 4, "fri": 5, "sat": 6}
_DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def _parse_weekdays(raw: str) -> list[int]:
    """Parse "mon,wed,fri" or "1,3,5" into Sunday-based weekday numbers."""
    days = []
    for part in raw.split(","):
        part = part.strip().lower()
        if not part:
            continue
        if part[:3] in _WEEKDAYS:
            days.append(_WEEKDAYS[part[:3]])
        else:
            days.append(int(part))
    return days


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(prog="habbit", description="Build habits, keep streaks, earn badges")
    parser.add_argument("--db", default=None, help="Path to the sqlite database")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log engine activity")
    subparsers = parser.add_subparsers(dest="command")

    add_p = subparsers.add_parser("add", help="Create a habit")
    add_p.add_argument("name")
    schedule = add_p.add_mutually_exclusive_group()
    schedule.add_argument("--days", default=None, help="Weekdays, e.g. mon,wed,fri")
    schedule.add_argument("--times", type=int, default=None, help="Times per week")
    add_p.add_argument("--target", type=int, default=None, help="Daily quantity target")
    add_p.add_argument("--unit", default=None, help="Unit for quantity habits")

    subparsers.add_parser("list", help="List active habits with streaks")
    subparsers.add_parser("profile", help="Show level, XP and progress")
    subparsers.add_parser("badges", help="List all badges")
    subparsers.add_parser("week", help="Review this week")

    history_p = subparsers.add_parser("history", help="Completions over recent weeks")
    history_p.add_argument("--weeks", type=int, default=16)

    for name, help_text in (
        ("done", "Mark a habit done"),
        ("undo", "Remove a completion"),
        ("unskip", "Remove a rest day"),
        ("streak", "Show a habit's streak"),
        ("archive", "Archive a habit"),
        ("delete", "Delete a habit and its history"),
    ):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("habit", help="Habit id or name")
        if name not in ("streak", "archive", "delete"):
            p.add_argument("--date", default=None, help="YYYY-MM-DD, defaults to today")

    qty_p = subparsers.add_parser("qty", help="Record a quantity for a habit")
    qty_p.add_argument("habit", help="Habit id or name")
    qty_p.add_argument("value", type=float)
    qty_p.add_argument("--date", default=None)

    skip_p = subparsers.add_parser("skip", help="Mark a rest day")
    skip_p.add_argument("habit", help="Habit id or name")
    skip_p.add_argument("--date", default=None)
    skip_p.add_argument("--reason", default=None)

    config_p = subparsers.add_parser("config", help="Show or change settings")
    config_p.add_argument("key", nargs="?")
    config_p.add_argument("value", nargs="?")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    command = args.command or "profile"
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    settings = get_settings()
    db = Database(Path(args.db) if args.db else Path(settings.db_path))
    engine = GamificationEngine(db, settings)

    try:
        if command == "add":
            do_add(
                db, args.name, days=args.days, times=args.times,
                target=args.target, unit=args.unit,
            )
        elif command == "list":
            do_list(engine)
        elif command == "profile":
            do_profile(db)
        elif command == "badges":
            do_badges(db)
        elif command == "done":
            do_done(engine, args.habit, date=args.date)
        elif command == "undo":
            do_undo(engine, args.habit, date=args.date)
        elif command == "qty":
            do_quantity(engine, args.habit, args.value, date=args.date)
        elif command == "skip":
            do_skip(engine, args.habit, date=args.date, reason=args.reason)
        elif command == "unskip":
            do_unskip(engine, args.habit, date=args.date)
        elif command == "streak":
            do_streak(engine, args.habit)
        elif command == "week":
            do_week(engine)
        elif command == "history":
            do_history(engine, weeks=args.weeks)
        elif command == "delete":
            do_delete(db, args.habit)
        elif command == "archive":
            do_archive(db, args.habit)
        elif command == "config":
            do_config(args.key, args.value)
    except (HabbitError, ValueError) as exc:
        print_error(str(exc))
        raise SystemExit(1) from None
    finally:
        db.close()


def resolve_habit(db: Database, ref: str) -> Habit:
    """Find an active habit by id, then by case-insensitive name."""
    habit = db.get_habit(ref)
    if habit is not None:
        return habit
    matches = [h for h in db.list_habits() if h.name.lower() == ref.lower()]
    if not matches:
        raise HabitNotFound(ref)
    return matches[0]


def _result_dict(habit: Habit, result: CompletionResult) -> dict:
    return {
        "ok": result.ok,
        "changed": result.changed,
        "habit": habit.name,
        "current": result.streak.current,
        "longest": result.streak.longest,
        "xp_delta": result.xp_delta,
        "total_xp": result.total_xp,
        "level": result.level,
        "leveled_up": result.leveled_up,
        "new_badges": list(result.new_badges),
        "error": str(result.error) if result.error else None,
    }


def _surface_unlocks(engine: GamificationEngine) -> list[str]:
    """Print every queued badge unlock, one panel each."""
    shown = []
    for event in engine.drain_unlocked():
        print_badge_unlocked({
            "id": event.badge.id,
            "name": event.badge.name,
            "description": event.badge.description,
            "category": event.badge.category.value,
        })
        shown.append(event.badge.id)
    return shown


def do_add(
    db: Database,
    name: str,
    days: str | None = None,
    times: int | None = None,
    target: int | None = None,
    unit: str | None = None,
) -> dict:
    """Create a habit."""
    if days:
        frequency = Frequency.specific_weekdays(_parse_weekdays(days))
    elif times is not None:
        frequency = Frequency.times_per_week(times)
    else:
        frequency = Frequency.daily()
    habit = Habit(
        id="",
        name=name,
        frequency=frequency,
        type=HabitType.QUANTITY if target else HabitType.BOOLEAN,
        daily_target=target or 1,
        unit=unit,
    )
    db.add_habit(habit)
    print_habits([{"name": habit.name, "schedule": frequency.describe()}])
    return {"ok": True, "id": habit.id, "name": habit.name, "schedule": frequency.describe()}


def do_list(engine: GamificationEngine) -> list[dict]:
    """Show active habits with today's state and streaks."""
    db = engine.store
    today = engine.today()
    rows = []
    for habit in db.list_habits():
        streak = engine.get_display_streak(habit.id)
        rows.append({
            "id": habit.id,
            "name": habit.name,
            "schedule": habit.frequency.describe(),
            "done_today": today in db.list_completion_dates(habit.id),
            "rest_today": today in db.list_rest_days(habit.id),
            "current": streak.current,
            "longest": streak.longest,
        })
    print_habits(rows)
    return rows


def do_done(engine: GamificationEngine, ref: str, date: str | None = None) -> dict:
    habit = resolve_habit(engine.store, ref)
    data = _result_dict(habit, engine.on_habit_completed(habit, date))
    print_completion_result(data)
    data["surfaced"] = _surface_unlocks(engine)
    return data


def do_undo(engine: GamificationEngine, ref: str, date: str | None = None) -> dict:
    habit = resolve_habit(engine.store, ref)
    data = _result_dict(habit, engine.on_habit_completion_undone(habit, date))
    print_completion_result(data)
    return data


def do_quantity(engine: GamificationEngine, ref: str, value: float, date: str | None = None) -> dict:
    habit = resolve_habit(engine.store, ref)
    data = _result_dict(habit, engine.on_quantity_changed(habit, value, date))
    print_completion_result(data)
    data["surfaced"] = _surface_unlocks(engine)
    return data


def do_skip(
    engine: GamificationEngine, ref: str, date: str | None = None, reason: str | None = None
) -> dict:
    habit = resolve_habit(engine.store, ref)
    data = _result_dict(habit, engine.mark_rest_day(habit, date, reason))
    print_completion_result(data)
    return data


def do_unskip(engine: GamificationEngine, ref: str, date: str | None = None) -> dict:
    habit = resolve_habit(engine.store, ref)
    data = _result_dict(habit, engine.clear_rest_day(habit, date))
    print_completion_result(data)
    return data


def do_streak(engine: GamificationEngine, ref: str) -> dict:
    habit = resolve_habit(engine.store, ref)
    streak = engine.get_display_streak(habit.id)
    data = {
        "name": habit.name,
        "schedule": habit.frequency.describe(),
        "current": streak.current,
        "longest": streak.longest,
        "next_milestone": next_milestone(streak.current),
    }
    print_streak(data)
    return data


def do_archive(db: Database, ref: str) -> dict:
    habit = resolve_habit(db, ref)
    db.archive_habit(habit.id)
    return {"ok": True, "id": habit.id}


def do_delete(db: Database, ref: str) -> dict:
    """Delete a habit with its completions, rest days and streak record."""
    habit = resolve_habit(db, ref)
    db.delete_habit(habit.id)
    return {"ok": True, "id": habit.id, "name": habit.name}


def _weekly_target(habit: Habit, week: list[str]) -> int:
    if habit.frequency.kind == FrequencyKind.TIMES_PER_WEEK:
        return habit.frequency.times
    return sum(1 for d in week if habit.frequency.is_due(d))


def do_week(engine: GamificationEngine) -> dict:
    """Review the current week: completions per day and per habit."""
    db = engine.store
    today = engine.today()
    week = dates.week_days(today, engine.settings.first_day_of_week)
    counts = db.get_completions_by_date(week[0], week[-1])

    habits = []
    for habit in db.list_habits():
        done = set(db.list_completion_dates(habit.id)).intersection(week)
        target = _weekly_target(habit, week)
        habits.append({
            "name": habit.name,
            "done": len(done),
            "target": target,
            "rate": min(len(done) / target, 1.0) if target else 0.0,
        })

    data = {
        "week_start": week[0],
        "week_end": week[-1],
        "days": [
            {"date": d, "weekday": _DAY_NAMES[dates.day_of_week(d)], "count": counts.get(d, 0),
             "is_today": d == today}
            for d in week
        ],
        "total_completions": sum(counts.values()),
        "active_days": sum(1 for c in counts.values() if c > 0),
        "habits": habits,
        "perfect_habits": [h["name"] for h in habits if h["target"] and h["done"] >= h["target"]],
    }
    print_week(data)
    return data


def do_history(engine: GamificationEngine, weeks: int = 16) -> dict:
    """Completion counts for the last `weeks` weeks, ending today."""
    if weeks < 1:
        raise ValueError(f"weeks must be at least 1, got {weeks}")
    db = engine.store
    days = dates.past_days(weeks * 7, engine.today())
    counts = db.get_completions_by_date(days[0], days[-1])
    data = {
        "start": days[0],
        "end": days[-1],
        "days": [{"date": d, "count": counts.get(d, 0)} for d in days],
        "total_completions": sum(counts.values()),
        "habit_count": db.count_active_habits(),
    }
    print_history(data)
    return data


def _achievement_context(db: Database) -> AchievementContext:
    profile = db.read_user_profile()
    return AchievementContext(
        longest_streak_ever=profile["longest_streak_ever"],
        total_completions=profile["total_completions"],
        habit_count=db.count_active_habits(),
        already_unlocked=db.list_unlocked_badge_ids(),
    )


def do_profile(db: Database) -> dict:
    """Show level, XP and the badges closest to unlocking."""
    profile = db.read_user_profile()
    xp_in_level, xp_for_next = xp_progress_in_level(profile["total_xp"])
    context = _achievement_context(db)
    data = {
        "level": profile["level"],
        "total_xp": profile["total_xp"],
        "xp_in_level": xp_in_level,
        "xp_for_next": xp_for_next,
        "total_completions": profile["total_completions"],
        "weekly_completions": profile["weekly_completions"],
        "longest_streak_ever": profile["longest_streak_ever"],
        "badges_unlocked": len(context.already_unlocked),
        "badges_total": len(BADGES),
        "closest_badges": [
            {"id": badge.id, "name": badge.name, "progress": progress}
            for badge, progress in get_closest_badges(context)
        ],
    }
    print_profile(data)
    return data


def do_badges(db: Database) -> list[dict]:
    """Show every badge with unlock state and progress."""
    context = _achievement_context(db)
    unlocked_at = {b["id"]: b["unlocked_at"] for b in db.get_all_badges()}
    rows = [
        {
            "id": badge.id,
            "name": badge.name,
            "description": badge.description,
            "category": badge.category.value,
            "threshold": badge.threshold,
            "progress": badge_progress(badge, context),
            "unlocked": badge.id in unlocked_at,
            "unlocked_at": unlocked_at.get(badge.id),
        }
        for badge in BADGES
    ]
    print_badges(rows)
    return rows


def do_config(key: str | None = None, value: str | None = None, config_path: Path | None = None) -> dict:
    """Show settings, or persist one when key and value are given."""
    if key is not None and value is not None:
        try:
            set_setting(key, value, config_path)
        except KeyError:
            raise ValueError(f"Unknown setting: {key}") from None
    settings = vars(get_settings(config_path))
    if key is not None and value is None:
        if key not in settings:
            raise ValueError(f"Unknown setting: {key}")
        settings = {key: settings[key]}
    print_config(settings)
    return {"settings": settings, "raw": load_config(config_path)}
