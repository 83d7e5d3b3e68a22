"""Exception types for habbit."""

from __future__ import annotations


class HabbitError(Exception):
    """Base class for every error raised by habbit."""


class InvalidDateFormat(HabbitError, ValueError):
    """A date string is not a valid YYYY-MM-DD calendar day."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Invalid date {value!r}: expected YYYY-MM-DD")
        self.value = value


class InconsistentFrequencyConfig(HabbitError, ValueError):
    """A frequency policy that can never be satisfied (no weekdays, n < 1)."""


class ProfileWriteConflict(HabbitError):
    """The profile row changed between read and write."""

    def __init__(self, expected_version: int, actual_version: int | None) -> None:
        super().__init__(
            f"Profile version mismatch: expected {expected_version}, found {actual_version}"
        )
        self.expected_version = expected_version
        self.actual_version = actual_version


class HabitNotFound(HabbitError, KeyError):
    """No habit with the given id exists in the store."""

    def __str__(self) -> str:
        return f"Habit not found: {self.args[0]}"
