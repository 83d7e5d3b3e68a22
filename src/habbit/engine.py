"""Gamification orchestration: streak -> XP -> profile -> badges after each event.

The engine owns when state is recomputed and persisted. Each event runs as a
single store transaction, so the profile is either left untouched or fully
advanced. Events on the same habit are serialized; profile read-modify-write
is serialized across habits and guarded by the store's version check.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from habbit import dates
from habbit.achievements import AchievementContext, BadgeDef, evaluate, get_badge
from habbit.config import Settings
from habbit.consistency import HabitHistory, count_perfect_months, count_perfect_weeks
from habbit.db import Database
from habbit.errors import ProfileWriteConflict
from habbit.habits import Habit
from habbit.levels import did_level_up, level_from_xp
from habbit.streaks import EMPTY_STREAK, StreakResult, compute_streak
from habbit.xp import XP_UNLOCK_BADGE, xp_for_completion

logger = logging.getLogger(__name__)

# Store failures that roll an event back and are reported in its result
STORE_ERRORS: tuple[type[BaseException], ...] = (sqlite3.Error, OSError)

# sqlite reports another writer holding the database with these messages
_LOCK_CONTENTION = ("database is locked", "database is busy", "database table is locked")


def _is_retryable(exc: BaseException) -> bool:
    """Conflicts and lock contention are retried; every other store error is final."""
    if isinstance(exc, ProfileWriteConflict):
        return True
    if isinstance(exc, sqlite3.OperationalError):
        message = str(exc).lower()
        return any(text in message for text in _LOCK_CONTENTION)
    return False


@dataclass
class BadgeUnlocked:
    badge: BadgeDef
    unlocked_at: str


@dataclass
class CompletionResult:
    """Outcome of one completion, quantity or undo event."""

    ok: bool
    habit_id: str
    date: str
    changed: bool = False
    streak: StreakResult = EMPTY_STREAK
    xp_delta: int = 0
    total_xp: int = 0
    level: int = 1
    leveled_up: bool = False
    new_badges: list[str] = field(default_factory=list)
    attempts: int = 1
    error: BaseException | None = None


def _now() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


class GamificationEngine:
    def __init__(
        self,
        store: Database,
        settings: Settings | None = None,
        clock: Callable[[], str] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.settings = settings or Settings()
        self._clock = clock or dates.today
        self._sleep = sleep
        self._habit_locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._profile_lock = threading.Lock()
        self._unlocked: deque[BadgeUnlocked] = deque()

    # ── public API ────────────────────────────────────────────────────────

    def on_habit_completed(self, habit: Habit, date: str | None = None) -> CompletionResult:
        """Record a completion and award streak XP and any newly earned badges.

        Completing an already rewarded (habit, date) changes nothing.
        """
        return self._dispatch(habit, date, self._apply_value, 1)

    def on_quantity_changed(
        self, habit: Habit, value: float, date: str | None = None
    ) -> CompletionResult:
        """Store a quantity. Rewards fire the first time the daily target is reached.

        A value of zero or less removes the completion like an undo.
        """
        if value <= 0:
            return self.on_habit_completion_undone(habit, date)
        return self._dispatch(habit, date, self._apply_value, value)

    def on_habit_completion_undone(
        self, habit: Habit, date: str | None = None
    ) -> CompletionResult:
        """Remove a completion and take back the XP it earned. Badges stay unlocked."""
        return self._dispatch(habit, date, self._apply_undo)

    def mark_rest_day(
        self, habit: Habit, date: str | None = None, reason: str | None = None
    ) -> CompletionResult:
        return self._dispatch(habit, date, self._apply_rest, True, reason)

    def clear_rest_day(self, habit: Habit, date: str | None = None) -> CompletionResult:
        return self._dispatch(habit, date, self._apply_rest, False, None)

    def get_display_streak(self, habit_id: str) -> StreakResult:
        """Current and longest streak as of today. Reads only."""
        habit = self.store.require_habit(habit_id)
        streak = self._compute(habit)
        record = self.store.read_streak_record(habit_id) or {}
        longest = max(streak.longest, record.get("longest_streak", 0))
        return StreakResult(current=streak.current, longest=longest)

    def today(self) -> str:
        return self._clock()

    def drain_unlocked(self) -> list[BadgeUnlocked]:
        """Pop every queued badge unlock, oldest first. One event per badge."""
        events = []
        while self._unlocked:
            events.append(self._unlocked.popleft())
        return events

    # ── sequencing ────────────────────────────────────────────────────────

    def _habit_lock(self, habit_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._habit_locks.get(habit_id)
            if lock is None:
                lock = self._habit_locks[habit_id] = threading.Lock()
            return lock

    def _dispatch(self, habit: Habit, date: str | None, step: Callable, *args) -> CompletionResult:
        day = date or self._clock()
        dates.parse_date(day)
        with self._habit_lock(habit.id):
            return self._run(habit, day, step, *args)

    def _run(self, habit: Habit, day: str, step: Callable, *args) -> CompletionResult:
        attempts = 0
        while True:
            attempts += 1
            pending: list[BadgeUnlocked] = []
            try:
                with self._profile_lock, self.store.transaction():
                    self.store.require_habit(habit.id)
                    result = step(habit, day, pending, *args)
            except (ProfileWriteConflict, *STORE_ERRORS) as exc:
                if not _is_retryable(exc):
                    logger.exception("Rolled back %s for habit %s", step.__name__, habit.id)
                    return CompletionResult(
                        ok=False, habit_id=habit.id, date=day, attempts=attempts, error=exc
                    )
                if attempts > self.settings.max_retries:
                    logger.error(
                        "Giving up on %s for habit %s after %d attempts: %s",
                        step.__name__, habit.id, attempts, exc,
                    )
                    return CompletionResult(
                        ok=False, habit_id=habit.id, date=day, attempts=attempts, error=exc
                    )
                delay = self.settings.retry_backoff_seconds * (2 ** (attempts - 1))
                logger.warning(
                    "Write contention for habit %s (attempt %d: %s), retrying in %.2fs",
                    habit.id, attempts, exc, delay,
                )
                self._sleep(delay)
                continue

            # Unlock events only surface once their transaction committed
            for event in pending:
                logger.info("Badge unlocked: %s", event.badge.id)
                self._unlocked.append(event)
            if result.leveled_up:
                logger.info("Level up: now level %d", result.level)
            result.attempts = attempts
            return result

    # ── steps (run inside a transaction) ──────────────────────────────────

    def _apply_value(
        self, habit: Habit, day: str, pending: list[BadgeUnlocked], value: float
    ) -> CompletionResult:
        previous = self.store.get_completion(habit.id, day)
        rewarded = previous is not None and previous["xp_awarded"] > 0
        self.store.record_completion(habit.id, day, value)

        if habit.is_done(value) and not rewarded:
            return self._reward(habit, day, pending)
        if rewarded and not habit.is_done(value):
            return self._revoke(habit, day, previous["xp_awarded"])
        return self._snapshot(habit, day, changed=previous is None or previous["value"] != value)

    def _apply_undo(self, habit: Habit, day: str, pending: list[BadgeUnlocked]) -> CompletionResult:
        removed = self.store.remove_completion(habit.id, day)
        if removed is None:
            return self._snapshot(habit, day, changed=False)
        return self._revoke(habit, day, removed["xp_awarded"])

    def _apply_rest(
        self,
        habit: Habit,
        day: str,
        pending: list[BadgeUnlocked],
        resting: bool,
        reason: str | None,
    ) -> CompletionResult:
        if resting:
            self.store.skip_date(habit.id, day, reason)
        else:
            self.store.unskip_date(habit.id, day)
        streak = self._persist_streak(habit)
        # A bridged gap can raise the longest streak and earn badges
        profile = self.store.read_user_profile()
        new_xp, new_badges = self._settle_profile(
            profile,
            day,
            pending,
            longest_ever=max(profile["longest_streak_ever"], streak.longest),
        )
        return self._result(habit, day, profile, new_xp, streak, new_badges)

    def _reward(self, habit: Habit, day: str, pending: list[BadgeUnlocked]) -> CompletionResult:
        streak = self._persist_streak(habit, completed_on=day)
        # XP follows the run this date closes, which differs from today's run on backfills
        run = self._compute(habit, as_of=day)
        xp = xp_for_completion(max(run.current, 1))
        self.store.set_completion_xp(habit.id, day, xp)

        profile = self.store.read_user_profile()
        new_xp, new_badges = self._settle_profile(
            profile,
            day,
            pending,
            xp_delta=xp,
            completions_delta=1,
            longest_ever=max(profile["longest_streak_ever"], streak.longest),
        )
        return self._result(habit, day, profile, new_xp, streak, new_badges)

    def _revoke(self, habit: Habit, day: str, xp_awarded: int) -> CompletionResult:
        """Reverse a completion's profile effects. Badges and longest streaks stay."""
        if self.store.get_completion(habit.id, day) is not None:
            self.store.set_completion_xp(habit.id, day, 0)
        streak = self._persist_streak(habit)
        if xp_awarded <= 0:
            return self._snapshot(habit, day, changed=True, streak=streak)

        profile = self.store.read_user_profile()
        new_xp, _ = self._settle_profile(
            profile, day, xp_delta=-xp_awarded, completions_delta=-1
        )
        return self._result(habit, day, profile, new_xp, streak, [])

    def _settle_profile(
        self,
        profile: dict,
        day: str,
        pending: list[BadgeUnlocked] | None = None,
        xp_delta: int = 0,
        completions_delta: int = 0,
        longest_ever: int | None = None,
    ) -> tuple[int, list[str]]:
        """Write XP and counter changes in one versioned profile update.

        With a pending list, badges earned by the new totals are unlocked, paid
        and queued there. Returns the new total XP and the new badge ids.
        Counters and XP floor at 0; weekly_completions only moves for dates in
        the current week.
        """
        week = self._current_week()
        weekly = profile["weekly_completions"] if profile["week_of"] == week else 0
        if dates.week_start(day, self.settings.first_day_of_week) == week:
            weekly = max(0, weekly + completions_delta)
        total_completions = max(0, profile["total_completions"] + completions_delta)
        if longest_ever is None:
            longest_ever = profile["longest_streak_ever"]
        new_xp = max(0, profile["total_xp"] + xp_delta)

        new_badges: list[str] = []
        if pending is not None:
            context = AchievementContext(
                longest_streak_ever=longest_ever,
                total_completions=total_completions,
                habit_count=self.store.count_active_habits(),
                already_unlocked=self.store.list_unlocked_badge_ids(),
            )
            context.perfect_week_count, context.perfect_month_count = self._perfect_counts()
            unlocked_at = _now()
            for badge_id in evaluate(context):
                if not self.store.unlock_badge(badge_id, unlocked_at):
                    continue
                new_badges.append(badge_id)
                new_xp += XP_UNLOCK_BADGE
                pending.append(BadgeUnlocked(badge=get_badge(badge_id), unlocked_at=unlocked_at))

        self.store.write_user_profile(
            expected_version=profile["version"],
            total_xp=new_xp,
            total_completions=total_completions,
            weekly_completions=weekly,
            week_of=week,
            longest_streak_ever=longest_ever,
        )
        return new_xp, new_badges

    def _result(
        self,
        habit: Habit,
        day: str,
        profile: dict,
        new_xp: int,
        streak: StreakResult,
        new_badges: list[str],
    ) -> CompletionResult:
        return CompletionResult(
            ok=True,
            habit_id=habit.id,
            date=day,
            changed=True,
            streak=streak,
            xp_delta=new_xp - profile["total_xp"],
            total_xp=new_xp,
            level=level_from_xp(new_xp),
            leveled_up=did_level_up(profile["total_xp"], new_xp),
            new_badges=new_badges,
        )

    # ── helpers ───────────────────────────────────────────────────────────

    def _current_week(self) -> str:
        return dates.week_start(self._clock(), self.settings.first_day_of_week)

    def _compute(self, habit: Habit, as_of: str | None = None) -> StreakResult:
        return compute_streak(
            habit.frequency,
            self.store.list_completion_dates(habit.id),
            as_of or self._clock(),
            self.store.list_rest_days(habit.id),
            self.settings.first_day_of_week,
        )

    def _persist_streak(self, habit: Habit, completed_on: str | None = None) -> StreakResult:
        """Recompute and store the habit's streak. The stored longest never drops."""
        streak = self._compute(habit)
        record = self.store.read_streak_record(habit.id) or {}
        longest = max(streak.longest, record.get("longest_streak", 0))
        fields: dict = {"current_streak": streak.current, "longest_streak": longest}
        if completed_on and completed_on > (record.get("last_completed_date") or ""):
            fields["last_completed_date"] = completed_on
        self.store.write_streak_record(habit.id, **fields)
        return StreakResult(current=streak.current, longest=longest)

    def _perfect_counts(self) -> tuple[int, int]:
        histories = [
            HabitHistory(
                habit=h,
                done=set(self.store.list_completion_dates(h.id)),
                rest=set(self.store.list_rest_days(h.id)),
            )
            for h in self.store.list_habits()
        ]
        today = self._clock()
        fdow = self.settings.first_day_of_week
        return (
            count_perfect_weeks(histories, today, fdow),
            count_perfect_months(histories, today, fdow),
        )

    def _snapshot(
        self, habit: Habit, day: str, changed: bool, streak: StreakResult | None = None
    ) -> CompletionResult:
        if streak is None:
            record = self.store.read_streak_record(habit.id) or {}
            streak = StreakResult(
                current=record.get("current_streak", 0),
                longest=record.get("longest_streak", 0),
            )
        profile = self.store.read_user_profile()
        return CompletionResult(
            ok=True,
            habit_id=habit.id,
            date=day,
            changed=changed,
            streak=streak,
            total_xp=profile["total_xp"],
            level=profile["level"],
        )
