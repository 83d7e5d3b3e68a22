"""Tests for the streak calculator."""

import logging

import pytest

from habbit.dates import SUNDAY, add_days, days_between
from habbit.errors import InvalidDateFormat
from habbit.habits import Frequency
from habbit.streaks import EMPTY_STREAK, StreakResult, compute_streak

DAILY = Frequency.daily()
MWF = Frequency.specific_weekdays([1, 3, 5])


def _run(start: str, count: int) -> list[str]:
    return [add_days(start, i) for i in range(count)]


class TestEmptyHistory:
    @pytest.mark.parametrize(
        "frequency", [DAILY, MWF, Frequency.times_per_week(3)], ids=["daily", "weekdays", "weekly"]
    )
    def test_no_completions(self, frequency):
        assert compute_streak(frequency, [], "2026-01-05") == EMPTY_STREAK

    def test_rest_days_alone_are_not_a_streak(self):
        assert compute_streak(DAILY, [], "2026-01-05", ["2026-01-04", "2026-01-05"]) == EMPTY_STREAK


class TestDaily:
    def test_full_range(self):
        dates = _run("2026-01-01", 10)
        result = compute_streak(DAILY, dates, "2026-01-10")
        assert result.longest == days_between("2026-01-01", "2026-01-10") + 1
        assert result.current == 10

    def test_today_open_counts_from_yesterday(self):
        result = compute_streak(DAILY, _run("2026-01-01", 3), "2026-01-04")
        assert result == StreakResult(current=3, longest=3)

    def test_two_days_later_is_broken(self):
        result = compute_streak(DAILY, _run("2026-01-01", 3), "2026-01-05")
        assert result == StreakResult(current=0, longest=3)

    def test_rest_day_bridges_gap(self):
        result = compute_streak(DAILY, ["2026-01-01", "2026-01-03"], "2026-01-03", ["2026-01-02"])
        assert result == StreakResult(current=2, longest=2)

    def test_gap_without_rest_resets(self):
        result = compute_streak(DAILY, ["2026-01-01", "2026-01-04"], "2026-01-04")
        assert result == StreakResult(current=1, longest=1)

    def test_rest_today_keeps_streak(self):
        result = compute_streak(DAILY, _run("2026-01-01", 3), "2026-01-04", ["2026-01-04"])
        assert result.current == 3

    def test_rest_on_completed_day_is_ignored(self):
        result = compute_streak(DAILY, _run("2026-01-01", 3), "2026-01-03", ["2026-01-02"])
        assert result == StreakResult(current=3, longest=3)

    def test_duplicates_ignored(self):
        dates = ["2026-01-01", "2026-01-01", "2026-01-02"]
        assert compute_streak(DAILY, dates, "2026-01-02") == StreakResult(current=2, longest=2)

    def test_longest_from_earlier_run(self):
        dates = _run("2026-01-01", 5) + _run("2026-01-10", 2)
        assert compute_streak(DAILY, dates, "2026-01-11") == StreakResult(current=2, longest=5)

    def test_longest_never_below_current(self):
        dates = _run("2026-01-01", 4)
        result = compute_streak(DAILY, dates, "2026-01-04", ["2026-01-05"])
        assert result.longest >= result.current

    def test_unordered_input(self):
        dates = ["2026-01-03", "2026-01-01", "2026-01-02"]
        assert compute_streak(DAILY, dates, "2026-01-03").current == 3


class TestSpecificWeekdays:
    def test_non_target_days_do_not_break(self):
        # Mon, Wed, Fri with Tue and Thu left empty
        result = compute_streak(MWF, ["2026-01-05", "2026-01-07", "2026-01-09"], "2026-01-09")
        assert result == StreakResult(current=3, longest=3)

    def test_weekend_after_run(self):
        result = compute_streak(MWF, ["2026-01-05", "2026-01-07", "2026-01-09"], "2026-01-11")
        assert result.current == 3

    def test_target_today_still_open(self):
        result = compute_streak(MWF, ["2026-01-05", "2026-01-07", "2026-01-09"], "2026-01-12")
        assert result.current == 3

    def test_missed_target_day_breaks(self):
        result = compute_streak(MWF, ["2026-01-05", "2026-01-07", "2026-01-09"], "2026-01-14")
        assert result == StreakResult(current=0, longest=3)

    def test_rest_on_target_day_bridges(self):
        result = compute_streak(
            MWF, ["2026-01-05", "2026-01-09"], "2026-01-09", rest_days=["2026-01-07"]
        )
        assert result.current == 2

    def test_longest_across_history(self):
        dates = ["2026-01-05", "2026-01-07", "2026-01-09", "2026-01-12", "2026-01-19"]
        result = compute_streak(MWF, dates, "2026-01-19")
        assert result.longest == 4
        assert result.current == 1


class TestTimesPerWeek:
    def test_week_two_short_in_progress(self):
        freq = Frequency.times_per_week(3)
        dates = ["2026-01-05", "2026-01-07", "2026-01-09", "2026-01-13", "2026-01-15"]
        result = compute_streak(freq, dates, "2026-01-15")
        assert result == StreakResult(current=1, longest=1)

    def test_week_two_short_and_over(self):
        freq = Frequency.times_per_week(3)
        dates = ["2026-01-05", "2026-01-07", "2026-01-09", "2026-01-13", "2026-01-15"]
        result = compute_streak(freq, dates, "2026-01-20")
        assert result == StreakResult(current=0, longest=1)

    def test_consecutive_weeks(self):
        freq = Frequency.times_per_week(2)
        dates = ["2026-01-05", "2026-01-06", "2026-01-12", "2026-01-14", "2026-01-19", "2026-01-20"]
        assert compute_streak(freq, dates, "2026-01-20") == StreakResult(current=3, longest=3)

    def test_empty_week_breaks(self):
        freq = Frequency.times_per_week(3)
        dates = _run("2026-01-05", 3) + _run("2026-01-19", 3)
        assert compute_streak(freq, dates, "2026-01-21") == StreakResult(current=1, longest=1)

    def test_first_day_of_week_matters(self):
        freq = Frequency.times_per_week(3)
        dates = ["2026-01-04", "2026-01-05", "2026-01-06"]
        assert compute_streak(freq, dates, "2026-01-06", first_day_of_week=SUNDAY).current == 1
        assert compute_streak(freq, dates, "2026-01-06").current == 0


class TestBadInput:
    def test_malformed_date_raises(self):
        with pytest.raises(InvalidDateFormat):
            compute_streak(DAILY, ["2026-13-01"], "2026-01-05")

    def test_malformed_today_raises(self):
        with pytest.raises(InvalidDateFormat):
            compute_streak(DAILY, ["2026-01-01"], "01/05/2026")

    def test_misconfigured_frequency_is_zero(self, caplog):
        with caplog.at_level(logging.WARNING, logger="habbit.streaks"):
            result = compute_streak(Frequency.specific_weekdays([]), ["2026-01-05"], "2026-01-05")
        assert result == EMPTY_STREAK
        assert "misconfigured" in caplog.text

    def test_zero_times_per_week_is_zero(self):
        assert compute_streak(Frequency.times_per_week(0), ["2026-01-05"], "2026-01-05") == EMPTY_STREAK
