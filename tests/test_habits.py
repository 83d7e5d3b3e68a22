"""Tests for frequency policies and the done rule."""

import pytest

from habbit.errors import InconsistentFrequencyConfig
from habbit.habits import Frequency, FrequencyKind, Habit, HabitType


class TestFrequency:
    def test_daily_is_due_every_day(self):
        freq = Frequency.daily()
        assert freq.kind == FrequencyKind.DAILY
        assert all(freq.is_due(f"2026-01-0{i}") for i in range(1, 8))

    def test_specific_weekdays(self):
        freq = Frequency.specific_weekdays([1, 3, 5])
        assert freq.is_due("2026-01-05")  # Monday
        assert not freq.is_due("2026-01-06")  # Tuesday
        assert freq.describe() == "Mon, Wed, Fri"

    def test_times_per_week_always_due(self):
        freq = Frequency.times_per_week(3)
        assert freq.is_due("2026-01-06")
        assert freq.describe() == "3x per week"

    def test_empty_weekdays_rejected(self):
        with pytest.raises(InconsistentFrequencyConfig):
            Frequency.specific_weekdays([]).validate()

    def test_out_of_range_weekday_rejected(self):
        with pytest.raises(InconsistentFrequencyConfig):
            Frequency.specific_weekdays([1, 7]).validate()

    def test_zero_times_rejected(self):
        with pytest.raises(InconsistentFrequencyConfig):
            Frequency.times_per_week(0).validate()

    def test_valid_frequencies_pass(self):
        Frequency.daily().validate()
        Frequency.specific_weekdays([0]).validate()
        Frequency.times_per_week(7).validate()


class TestIsDone:
    def test_boolean_any_record(self):
        habit = Habit(id="h", name="Read")
        assert habit.is_done(1)
        assert not habit.is_done(None)

    def test_quantity_needs_target(self):
        habit = Habit(id="h", name="Water", type=HabitType.QUANTITY, daily_target=8)
        assert not habit.is_done(7)
        assert habit.is_done(8)
        assert habit.is_done(10)

    def test_is_active(self):
        assert Habit(id="h", name="Read").is_active
        assert not Habit(id="h", name="Read", archived_at="2026-01-01").is_active
