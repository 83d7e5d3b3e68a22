"""Tests for badge definitions and evaluation."""

from habbit.achievements import (
    BADGES,
    AchievementContext,
    BadgeCategory,
    badge_progress,
    evaluate,
    get_badge,
    get_closest_badges,
    is_earned,
)


class TestBadgeDefinitions:
    def test_seventeen_badges(self):
        assert len(BADGES) == 17

    def test_unique_ids(self):
        ids = [b.id for b in BADGES]
        assert len(ids) == len(set(ids))

    def test_positive_thresholds(self):
        assert all(b.threshold > 0 for b in BADGES)

    def test_every_category_present(self):
        assert {b.category for b in BADGES} == set(BadgeCategory)

    def test_get_badge(self):
        assert get_badge("streak_7").name == "Week Warrior"
        assert get_badge("nope") is None


class TestEvaluate:
    def test_empty_context_earns_nothing(self):
        assert evaluate(AchievementContext()) == []

    def test_first_habit(self):
        assert evaluate(AchievementContext(habit_count=1)) == ["habits_1"]

    def test_streak_badges_in_order(self):
        earned = evaluate(AchievementContext(longest_streak_ever=14))
        assert earned == ["streak_3", "streak_7", "streak_14"]

    def test_idempotent(self):
        context = AchievementContext(longest_streak_ever=7, total_completions=10, habit_count=3)
        first = evaluate(context)
        assert first
        context.already_unlocked |= set(first)
        assert evaluate(context) == []

    def test_already_unlocked_skipped(self):
        context = AchievementContext(habit_count=3, already_unlocked={"habits_1"})
        assert evaluate(context) == ["habits_3"]

    def test_perfect_week_uses_its_counter(self):
        assert "perfect_week" in evaluate(AchievementContext(perfect_week_count=1))
        assert "perfect_month" not in evaluate(AchievementContext(perfect_week_count=1))

    def test_is_earned_at_threshold(self):
        assert is_earned(get_badge("completions_50"), AchievementContext(total_completions=50))
        assert not is_earned(get_badge("completions_50"), AchievementContext(total_completions=49))


class TestProgress:
    def test_partial(self):
        badge = get_badge("completions_100")
        assert badge_progress(badge, AchievementContext(total_completions=25)) == 0.25

    def test_capped_at_one(self):
        badge = get_badge("streak_3")
        assert badge_progress(badge, AchievementContext(longest_streak_ever=50)) == 1.0

    def test_unlocked_is_full(self):
        badge = get_badge("streak_365")
        assert badge_progress(badge, AchievementContext(already_unlocked={"streak_365"})) == 1.0

    def test_closest_badges(self):
        context = AchievementContext(longest_streak_ever=2, total_completions=9, habit_count=1,
                                     already_unlocked={"habits_1"})
        closest = get_closest_badges(context, n=2)
        assert [b.id for b, _ in closest] == ["completions_10", "streak_3"]
        assert all(p < 1.0 for _, p in closest)
