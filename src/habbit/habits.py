"""Habit configuration: frequency policies, habit types and the "done" rule."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from habbit.dates import day_of_week
from habbit.errors import InconsistentFrequencyConfig


class FrequencyKind(str, Enum):
    DAILY = "daily"
    SPECIFIC_DAYS = "specific_days"
    TIMES_PER_WEEK = "times_per_week"


class HabitType(str, Enum):
    BOOLEAN = "boolean"
    QUANTITY = "quantity"


@dataclass(frozen=True)
class Frequency:
    """Which days or weeks count toward a habit's streak.

    Build one with Frequency.daily(), Frequency.specific_weekdays([1, 3, 5])
    or Frequency.times_per_week(3). Weekdays are 0 = Sunday .. 6 = Saturday.
    """

    kind: FrequencyKind
    days: frozenset[int] = frozenset()
    times: int = 1

    @classmethod
    def daily(cls) -> Frequency:
        return cls(FrequencyKind.DAILY)

    @classmethod
    def specific_weekdays(cls, days) -> Frequency:
        return cls(FrequencyKind.SPECIFIC_DAYS, days=frozenset(days))

    @classmethod
    def times_per_week(cls, n: int) -> Frequency:
        return cls(FrequencyKind.TIMES_PER_WEEK, times=n)

    def validate(self) -> None:
        """Raise InconsistentFrequencyConfig if no day or week could ever qualify."""
        if self.kind == FrequencyKind.SPECIFIC_DAYS:
            if not self.days:
                raise InconsistentFrequencyConfig("specific_days needs at least one weekday")
            bad = sorted(d for d in self.days if not 0 <= d <= 6)
            if bad:
                raise InconsistentFrequencyConfig(f"weekdays must be 0-6, got {bad}")
        elif self.kind == FrequencyKind.TIMES_PER_WEEK and self.times < 1:
            raise InconsistentFrequencyConfig(
                f"times_per_week must be at least 1, got {self.times}"
            )

    def is_due(self, d: str) -> bool:
        """Whether the habit is scheduled on date d.

        Times-per-week habits can be done on any day, so they are always due.
        """
        if self.kind == FrequencyKind.SPECIFIC_DAYS:
            return day_of_week(d) in self.days
        return True

    def describe(self) -> str:
        if self.kind == FrequencyKind.DAILY:
            return "daily"
        if self.kind == FrequencyKind.SPECIFIC_DAYS:
            names = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
            return ", ".join(names[d] for d in sorted(self.days) if 0 <= d <= 6)
        return f"{self.times}x per week"


@dataclass
class Habit:
    id: str
    name: str
    frequency: Frequency = field(default_factory=Frequency.daily)
    type: HabitType = HabitType.BOOLEAN
    daily_target: int = 1
    unit: str | None = None
    created_at: str | None = None
    archived_at: str | None = None

    @property
    def is_active(self) -> bool:
        return self.archived_at is None

    def is_done(self, value: float | None) -> bool:
        """Whether a recorded value counts as done for this habit.

        Boolean habits are done if any record exists. Quantity habits need
        value >= daily_target.
        """
        if value is None:
            return False
        if self.type == HabitType.BOOLEAN:
            return True
        return value >= self.daily_target
