"""Tests for perfect week and perfect month counting."""

from habbit.consistency import (
    HabitHistory,
    count_perfect_months,
    count_perfect_weeks,
    is_perfect_period,
)
from habbit.dates import add_days, week_days
from habbit.habits import Frequency, Habit


def _daily(created="2025-12-01") -> Habit:
    return Habit(id="d", name="Read", created_at=created)


def _days(start: str, count: int) -> set[str]:
    return {add_days(start, i) for i in range(count)}


class TestIsPerfectPeriod:
    def test_all_done(self):
        history = HabitHistory(_daily(), done=_days("2026-01-05", 7))
        assert is_perfect_period([history], week_days("2026-01-05"))

    def test_missing_day(self):
        done = _days("2026-01-05", 7) - {"2026-01-08"}
        history = HabitHistory(_daily(), done=done)
        assert not is_perfect_period([history], week_days("2026-01-05"))

    def test_rest_day_excuses(self):
        done = _days("2026-01-05", 7) - {"2026-01-08"}
        history = HabitHistory(_daily(), done=done, rest={"2026-01-08"})
        assert is_perfect_period([history], week_days("2026-01-05"))

    def test_habit_created_mid_period_ignored(self):
        full = HabitHistory(_daily(), done=_days("2026-01-05", 7))
        late = HabitHistory(Habit(id="l", name="Run", created_at="2026-01-07T08:00:00+00:00"), done=set())
        assert is_perfect_period([full, late], week_days("2026-01-05"))

    def test_specific_days_only_checks_targets(self):
        habit = Habit(id="s", name="Gym", frequency=Frequency.specific_weekdays([1, 3, 5]),
                      created_at="2025-12-01")
        history = HabitHistory(habit, done={"2026-01-05", "2026-01-07", "2026-01-09"})
        assert is_perfect_period([history], week_days("2026-01-05"))

    def test_times_per_week_short(self):
        habit = Habit(id="t", name="Swim", frequency=Frequency.times_per_week(3), created_at="2025-12-01")
        history = HabitHistory(habit, done={"2026-01-05", "2026-01-06"})
        assert not is_perfect_period([history], week_days("2026-01-05"))

    def test_no_habits_is_not_perfect(self):
        assert not is_perfect_period([], week_days("2026-01-05"))


class TestCounting:
    def test_current_week_not_counted(self):
        history = HabitHistory(_daily(), done=_days("2026-01-05", 7))
        assert count_perfect_weeks([history], "2026-01-11") == 0
        assert count_perfect_weeks([history], "2026-01-12") == 1

    def test_no_completions(self):
        assert count_perfect_weeks([HabitHistory(_daily(), done=set())], "2026-02-01") == 0
        assert count_perfect_months([HabitHistory(_daily(), done=set())], "2026-02-01") == 0

    def test_perfect_month(self):
        history = HabitHistory(_daily(), done=_days("2026-01-01", 31))
        assert count_perfect_months([history], "2026-01-31") == 0
        assert count_perfect_months([history], "2026-02-03") == 1
        # Weeks of Jan 5, 12 and 19 lie fully inside January
        assert count_perfect_weeks([history], "2026-02-03") == 3
