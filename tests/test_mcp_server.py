"""Tests for the MCP server tool functions."""
import asyncio
from unittest.mock import MagicMock, patch

import pytest

from habbit.config import Settings
from habbit.db import Database
from habbit.engine import GamificationEngine
from habbit.habits import Frequency, Habit
from habbit.mcp_server import get_badges, get_profile, get_streak, list_habits


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "mcp.db"


@pytest.fixture
def seeded(db_path):
    """A store with one daily habit completed today. Returns the habit id."""
    db = Database(db_path)
    habit = db.add_habit(Habit(id="", name="Read", created_at="2025-12-01T08:00:00+00:00"))
    GamificationEngine(db, Settings()).on_habit_completed(habit)
    db.close()
    return habit.id


@pytest.fixture(autouse=True)
def store(db_path):
    with patch("habbit.mcp_server._get_db", side_effect=lambda: Database(db_path)), \
            patch("habbit.mcp_server.get_settings", return_value=Settings()):
        yield


class TestGetProfile:
    def test_empty(self):
        result = get_profile()
        assert result["level"] == 1
        assert result["total_xp"] == 0
        assert result["badges_total"] == 17

    def test_after_completion(self, seeded):
        result = get_profile()
        assert result["total_xp"] == 110
        assert result["level"] == 2
        assert result["total_completions"] == 1
        assert result["badges_unlocked"] == 1

    def test_closes_db(self):
        mock_db = MagicMock()
        mock_db.read_user_profile.return_value = {
            "level": 1, "total_xp": 0, "total_completions": 0,
            "weekly_completions": 0, "longest_streak_ever": 0,
        }
        mock_db.list_unlocked_badge_ids.return_value = set()
        with patch("habbit.mcp_server._get_db", return_value=mock_db):
            get_profile()
        mock_db.close.assert_called_once()


class TestGetStreak:
    def test_known_habit(self, seeded):
        result = get_streak(seeded)
        assert result["name"] == "Read"
        assert result["current"] == 1
        assert result["longest"] == 1
        assert result["next_milestone"] == 7

    def test_unknown_habit(self):
        result = get_streak("ghost")
        assert "error" in result


class TestGetBadges:
    def test_structure(self, seeded):
        result = get_badges()
        assert result["total_count"] == 17
        assert result["unlocked_count"] == 1
        first = next(b for b in result["badges"] if b["id"] == "habits_1")
        assert first["unlocked"] is True
        assert first["progress_pct"] == 100
        for badge in result["badges"]:
            assert {"id", "name", "description", "category", "unlocked", "progress_pct"} <= set(badge)


class TestListHabits:
    def test_lists_active(self, db_path):
        db = Database(db_path)
        db.add_habit(Habit(id="", name="Gym", frequency=Frequency.specific_weekdays([1, 3])))
        archived = db.add_habit(Habit(id="", name="Old"))
        db.archive_habit(archived.id)
        db.close()
        result = list_habits()
        assert result["count"] == 1
        assert result["habits"][0]["schedule"] == "Mon, Wed"


class TestServer:
    def test_registers_tools(self):
        from mcp.server.fastmcp import FastMCP

        from habbit.mcp_server import mcp

        assert isinstance(mcp, FastMCP)
        assert mcp.name == "habbit"
        tools = asyncio.run(mcp.list_tools())
        assert {t.name for t in tools} == {"get_profile", "get_streak", "get_badges", "list_habits"}
