"""Tests for XP awards."""

import pytest

from habbit.xp import (
    STREAK_MILESTONE_BONUSES,
    XP_COMPLETE_HABIT,
    milestone_bonus,
    next_milestone,
    xp_for_completion,
)


class TestXpForCompletion:
    def test_plain_completion(self):
        assert xp_for_completion(1) == XP_COMPLETE_HABIT == 10

    def test_seven_includes_bonus(self):
        assert xp_for_completion(7) == 60

    def test_eight_has_no_bonus(self):
        assert xp_for_completion(8) == 10

    @pytest.mark.parametrize("length,bonus", sorted(STREAK_MILESTONE_BONUSES.items()))
    def test_every_milestone(self, length, bonus):
        assert xp_for_completion(length) == XP_COMPLETE_HABIT + bonus

    def test_zero_streak(self):
        assert xp_for_completion(0) == XP_COMPLETE_HABIT


class TestMilestones:
    def test_bonus_only_on_exact_length(self):
        assert milestone_bonus(30) == 200
        assert milestone_bonus(31) == 0

    def test_next_milestone(self):
        assert next_milestone(0) == 7
        assert next_milestone(7) == 14
        assert next_milestone(200) == 365

    def test_past_last_milestone(self):
        assert next_milestone(365) is None
