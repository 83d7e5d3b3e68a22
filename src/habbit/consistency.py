"""Perfect week and perfect month counting.

A period is perfect when every habit that existed at its start was completed
on every day it was due (rest days excuse a day), and every times-per-week
habit met its weekly target for each week starting in the period. Only fully
elapsed periods are counted; the current week or month is never perfect yet.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from habbit.dates import (
    MONDAY,
    add_days,
    month_end,
    month_start,
    week_days,
    week_start,
)
from habbit.habits import FrequencyKind, Habit


@dataclass
class HabitHistory:
    habit: Habit
    done: set[str]
    rest: set[str] = field(default_factory=set)


def _existed_by(habit: Habit, day: str) -> bool:
    if not habit.created_at:
        return True
    return habit.created_at[:10] <= day


def _habit_meets_period(
    history: HabitHistory, days: list[str], first_day_of_week: int
) -> bool:
    frequency = history.habit.frequency
    if frequency.kind == FrequencyKind.TIMES_PER_WEEK:
        period = set(days)
        for start in sorted({week_start(d, first_day_of_week) for d in days}):
            week = week_days(start, first_day_of_week)
            # Only weeks lying entirely inside the period are judged
            if not period.issuperset(week):
                continue
            if sum(1 for d in week if d in history.done) < frequency.times:
                return False
        return True
    return all(
        d in history.done or d in history.rest
        for d in days
        if frequency.is_due(d)
    )


def is_perfect_period(
    histories: Iterable[HabitHistory], days: list[str], first_day_of_week: int = MONDAY
) -> bool:
    """Whether every habit existing at the start of `days` met its schedule."""
    if not days:
        return False
    tracked = [h for h in histories if _existed_by(h.habit, days[0])]
    if not tracked:
        return False
    return all(_habit_meets_period(h, days, first_day_of_week) for h in tracked)


def _days_in_range(start: str, end: str) -> list[str]:
    days = []
    d = start
    while d <= end:
        days.append(d)
        d = add_days(d, 1)
    return days


def _earliest_completion(histories: list[HabitHistory]) -> str | None:
    all_done = [d for h in histories for d in h.done]
    return min(all_done) if all_done else None


def count_perfect_weeks(
    histories: Iterable[HabitHistory], today: str, first_day_of_week: int = MONDAY
) -> int:
    histories = list(histories)
    earliest = _earliest_completion(histories)
    if earliest is None:
        return 0

    current_week = week_start(today, first_day_of_week)
    count = 0
    start = week_start(earliest, first_day_of_week)
    while start < current_week:
        if is_perfect_period(histories, week_days(start, first_day_of_week), first_day_of_week):
            count += 1
        start = add_days(start, 7)
    return count


def count_perfect_months(
    histories: Iterable[HabitHistory], today: str, first_day_of_week: int = MONDAY
) -> int:
    histories = list(histories)
    earliest = _earliest_completion(histories)
    if earliest is None:
        return 0

    current_month = month_start(today)
    count = 0
    start = month_start(earliest)
    while start < current_month:
        days = _days_in_range(start, month_end(start))
        if is_perfect_period(histories, days, first_day_of_week):
            count += 1
        start = add_days(month_end(start), 1)
    return count
