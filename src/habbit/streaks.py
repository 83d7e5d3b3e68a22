"""Streak calculation for habbit.

Pure functions. Given a habit's frequency, its completion dates, a reference
"today" and its rest days, compute the current and longest streak.

Rules per frequency:
- daily: consecutive completed days. A single rest day between two
  completions bridges the gap. The backward walk from today passes over rest
  days without counting them.
- specific weekdays: only target weekdays matter, other days are transparent.
- times per week: consecutive calendar weeks with at least n completions. The
  current week does not break the streak while it is still in progress.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta

from habbit.dates import MONDAY, parse_date, today as today_str, weekday_index
from habbit.errors import InconsistentFrequencyConfig
from habbit.habits import Frequency, FrequencyKind

logger = logging.getLogger(__name__)

# Bound for walks over specific weekdays
MAX_WALK_DAYS = 400

_ONE_DAY = timedelta(days=1)
_ONE_WEEK = timedelta(days=7)


@dataclass(frozen=True)
class StreakResult:
    current: int
    longest: int


EMPTY_STREAK = StreakResult(current=0, longest=0)


def _to_dates(values: Iterable[str]) -> set[date]:
    return {parse_date(v) for v in values}


def compute_streak(
    frequency: Frequency,
    completion_dates: Iterable[str],
    today: str | None = None,
    rest_days: Iterable[str] = (),
    first_day_of_week: int = MONDAY,
) -> StreakResult:
    """Compute current and longest streak for one habit.

    completion_dates and rest_days are YYYY-MM-DD strings; duplicates are
    ignored. A malformed date raises InvalidDateFormat. An unsatisfiable
    frequency (no weekdays, times < 1) is logged and yields a zero streak.
    """
    done = _to_dates(completion_dates)
    rest = _to_dates(rest_days) - done
    ref = parse_date(today) if today else parse_date(today_str())

    if not done:
        return EMPTY_STREAK

    try:
        frequency.validate()
    except InconsistentFrequencyConfig as exc:
        logger.warning("Ignoring streak for misconfigured frequency: %s", exc)
        return EMPTY_STREAK

    if frequency.kind == FrequencyKind.DAILY:
        return daily_streak(done, ref, rest)
    if frequency.kind == FrequencyKind.SPECIFIC_DAYS:
        return specific_days_streak(done, ref, frequency.days, rest)
    return weekly_streak(done, ref, frequency.times, first_day_of_week)


def daily_streak(done: set[date], today: date, rest: set[date]) -> StreakResult:
    """Streak for a habit due every day."""
    if not done:
        return EMPTY_STREAK

    # Longest: scan all completions in order
    longest = 0
    streak = 0
    prev: date | None = None
    for curr in sorted(done):
        if prev is None:
            streak = 1
        else:
            gap = (curr - prev).days
            if gap == 1:
                streak += 1
            elif gap == 2 and curr - _ONE_DAY in rest:
                streak += 1
            else:
                streak = 1
        longest = max(longest, streak)
        prev = curr

    # Current: walk backwards from today, or from yesterday if today is still open
    yesterday = today - _ONE_DAY
    if today in done:
        start: date | None = today
    elif yesterday in done:
        start = yesterday
    elif today in rest:
        start = today
    else:
        start = None

    current = 0
    check = start
    while check is not None and (check in done or check in rest):
        if check in done:
            current += 1
        check -= _ONE_DAY

    return StreakResult(current=current, longest=max(longest, current))


def specific_days_streak(
    done: set[date], today: date, target_days: Iterable[int], rest: set[date]
) -> StreakResult:
    """Streak for a habit due on a fixed set of weekdays (0 = Sunday)."""
    targets = frozenset(target_days)
    if not done or not targets:
        return EMPTY_STREAK

    current = 0
    check = today
    for i in range(MAX_WALK_DAYS):
        if weekday_index(check) in targets:
            if check in done:
                current += 1
            elif check in rest:
                pass
            elif i == 0:
                # Today not completed yet
                pass
            else:
                break
        check -= _ONE_DAY

    longest = max(current, _longest_specific_days_run(done, targets))
    return StreakResult(current=current, longest=longest)


def _longest_specific_days_run(done: set[date], targets: frozenset[int]) -> int:
    """For each completion, count forward over target weekdays while completed."""
    longest = 0
    for start in sorted(done):
        run = 1
        check = start + _ONE_DAY
        while (check - start).days <= MAX_WALK_DAYS:
            if weekday_index(check) in targets:
                if check not in done:
                    break
                run += 1
            check += _ONE_DAY
        longest = max(longest, run)
    return longest


def _week_start(d: date, first_day_of_week: int) -> date:
    return d - timedelta(days=(weekday_index(d) - first_day_of_week) % 7)


def weekly_streak(
    done: set[date], today: date, times_per_week: int, first_day_of_week: int = MONDAY
) -> StreakResult:
    """Streak for a habit that must be done n times per calendar week."""
    if not done:
        return EMPTY_STREAK

    counts = Counter(_week_start(d, first_day_of_week) for d in done)
    first_week = min(counts)
    last_week = max(counts)

    # Longest: every calendar week from the first completion to the last
    longest = 0
    run = 0
    week = first_week
    while week <= last_week:
        if counts.get(week, 0) >= times_per_week:
            run += 1
            longest = max(longest, run)
        else:
            run = 0
        week += _ONE_WEEK

    # Current: from the week containing today backwards
    current_week = _week_start(today, first_day_of_week)
    current = 0
    week = current_week
    while week >= first_week:
        if counts.get(week, 0) >= times_per_week:
            current += 1
        elif week == current_week:
            # Week still in progress
            pass
        else:
            break
        week -= _ONE_WEEK

    return StreakResult(current=current, longest=max(longest, current))
