"""SQLite store for habbit: habits, completions, rest days, streaks, badges, profile."""

from __future__ import annotations

import sqlite3
import threading
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from habbit.config import DEFAULT_DB_PATH
from habbit.errors import HabitNotFound, ProfileWriteConflict
from habbit.habits import Frequency, FrequencyKind, Habit, HabitType
from habbit.levels import level_from_xp

PROFILE_FIELDS = (
    "total_xp",
    "weekly_completions",
    "total_completions",
    "longest_streak_ever",
    "week_of",
)
STREAK_FIELDS = ("current_streak", "longest_streak", "last_completed_date")


def _now() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def _row_to_habit(row: sqlite3.Row) -> Habit:
    kind = FrequencyKind(row["frequency"])
    if kind == FrequencyKind.SPECIFIC_DAYS:
        raw = row["specific_days"] or ""
        frequency = Frequency.specific_weekdays(int(d) for d in raw.split(",") if d)
    elif kind == FrequencyKind.TIMES_PER_WEEK:
        frequency = Frequency.times_per_week(row["times_per_week"] or 0)
    else:
        frequency = Frequency.daily()
    return Habit(
        id=row["id"],
        name=row["name"],
        frequency=frequency,
        type=HabitType(row["type"]),
        daily_target=row["daily_target"],
        unit=row["unit"],
        created_at=row["created_at"],
        archived_at=row["archived_at"],
    )


class Database:
    """SQLite database manager with WAL mode.

    Statements autocommit. Wrap several writes in `with db.transaction():` to
    commit them together; any exception inside rolls all of them back.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(
            str(self.db_path), isolation_level=None, check_same_thread=False
        )
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self._lock = threading.RLock()
        self._tx_owner: int | None = None
        self.init_db()

    def init_db(self) -> None:
        """Create tables if they do not exist."""
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS habits (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                type TEXT NOT NULL DEFAULT 'boolean',
                frequency TEXT NOT NULL DEFAULT 'daily',
                specific_days TEXT,
                times_per_week INTEGER,
                daily_target INTEGER NOT NULL DEFAULT 1,
                unit TEXT,
                created_at TEXT NOT NULL,
                archived_at TEXT
            );

            CREATE TABLE IF NOT EXISTS completions (
                habit_id TEXT NOT NULL,
                date TEXT NOT NULL,
                value REAL NOT NULL DEFAULT 1,
                note TEXT,
                completed_at TEXT NOT NULL,
                xp_awarded INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY (habit_id, date),
                FOREIGN KEY (habit_id) REFERENCES habits(id) ON DELETE CASCADE
            );

            CREATE INDEX IF NOT EXISTS idx_completions_date ON completions(date);

            CREATE TABLE IF NOT EXISTS skipped_dates (
                habit_id TEXT NOT NULL,
                date TEXT NOT NULL,
                reason TEXT,
                PRIMARY KEY (habit_id, date),
                FOREIGN KEY (habit_id) REFERENCES habits(id) ON DELETE CASCADE
            );

            CREATE TABLE IF NOT EXISTS streak_records (
                habit_id TEXT PRIMARY KEY,
                current_streak INTEGER NOT NULL DEFAULT 0,
                longest_streak INTEGER NOT NULL DEFAULT 0,
                last_completed_date TEXT,
                FOREIGN KEY (habit_id) REFERENCES habits(id) ON DELETE CASCADE
            );

            CREATE TABLE IF NOT EXISTS badges (
                id TEXT PRIMARY KEY,
                unlocked_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS user_profile (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                total_xp INTEGER NOT NULL DEFAULT 0,
                weekly_completions INTEGER NOT NULL DEFAULT 0,
                total_completions INTEGER NOT NULL DEFAULT 0,
                longest_streak_ever INTEGER NOT NULL DEFAULT 0,
                week_of TEXT,
                version INTEGER NOT NULL DEFAULT 0
            );

            INSERT OR IGNORE INTO user_profile (id) VALUES (1);
        """)

    # ── transactions ──────────────────────────────────────────────────────

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run the enclosed writes as one unit. Nested calls join the outer one."""
        with self._lock:
            if self._tx_owner == threading.get_ident():
                yield
                return
            self.conn.execute("BEGIN IMMEDIATE")
            self._tx_owner = threading.get_ident()
            try:
                yield
            except BaseException:
                self.conn.execute("ROLLBACK")
                raise
            else:
                self.conn.execute("COMMIT")
            finally:
                self._tx_owner = None

    def _execute(self, sql: str, params: tuple | list = ()) -> sqlite3.Cursor:
        with self._lock:
            return self.conn.execute(sql, params)

    # ── habits ────────────────────────────────────────────────────────────

    def add_habit(self, habit: Habit) -> Habit:
        """Insert a habit. Raises InconsistentFrequencyConfig for unsatisfiable schedules."""
        habit.frequency.validate()
        if habit.daily_target < 1:
            raise ValueError(f"daily_target must be at least 1, got {habit.daily_target}")
        if not habit.id:
            habit.id = uuid.uuid4().hex
        if not habit.created_at:
            habit.created_at = _now()
        frequency = habit.frequency
        specific_days = (
            ",".join(str(d) for d in sorted(frequency.days))
            if frequency.kind == FrequencyKind.SPECIFIC_DAYS
            else None
        )
        times = frequency.times if frequency.kind == FrequencyKind.TIMES_PER_WEEK else None
        self._execute(
            "INSERT INTO habits (id, name, type, frequency, specific_days, times_per_week, "
            "daily_target, unit, created_at, archived_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                habit.id, habit.name, habit.type.value, frequency.kind.value, specific_days,
                times, habit.daily_target, habit.unit, habit.created_at, habit.archived_at,
            ),
        )
        return habit

    def get_habit(self, habit_id: str) -> Habit | None:
        row = self._execute("SELECT * FROM habits WHERE id = ?", (habit_id,)).fetchone()
        return _row_to_habit(row) if row else None

    def require_habit(self, habit_id: str) -> Habit:
        habit = self.get_habit(habit_id)
        if habit is None:
            raise HabitNotFound(habit_id)
        return habit

    def list_habits(self, include_archived: bool = False) -> list[Habit]:
        sql = "SELECT * FROM habits"
        if not include_archived:
            sql += " WHERE archived_at IS NULL"
        rows = self._execute(sql + " ORDER BY created_at, id").fetchall()
        return [_row_to_habit(row) for row in rows]

    def archive_habit(self, habit_id: str, timestamp: str | None = None) -> None:
        self.require_habit(habit_id)
        self._execute(
            "UPDATE habits SET archived_at = ? WHERE id = ?", (timestamp or _now(), habit_id)
        )

    def delete_habit(self, habit_id: str) -> None:
        self._execute("DELETE FROM habits WHERE id = ?", (habit_id,))

    def count_active_habits(self) -> int:
        row = self._execute(
            "SELECT COUNT(*) AS n FROM habits WHERE archived_at IS NULL"
        ).fetchone()
        return row["n"]

    # ── completions ───────────────────────────────────────────────────────

    def record_completion(
        self, habit_id: str, date: str, value: float = 1, note: str | None = None
    ) -> dict:
        """Insert or update the completion for (habit, date). Keeps xp_awarded."""
        self._execute(
            "INSERT INTO completions (habit_id, date, value, note, completed_at) "
            "VALUES (?, ?, ?, ?, ?) "
            "ON CONFLICT(habit_id, date) DO UPDATE SET value = excluded.value, "
            "note = COALESCE(excluded.note, completions.note), "
            "completed_at = excluded.completed_at",
            (habit_id, date, value, note, _now()),
        )
        return self.get_completion(habit_id, date)

    def get_completion(self, habit_id: str, date: str) -> dict | None:
        row = self._execute(
            "SELECT * FROM completions WHERE habit_id = ? AND date = ?", (habit_id, date)
        ).fetchone()
        return dict(row) if row else None

    def set_completion_xp(self, habit_id: str, date: str, xp: int) -> None:
        self._execute(
            "UPDATE completions SET xp_awarded = ? WHERE habit_id = ? AND date = ?",
            (xp, habit_id, date),
        )

    def remove_completion(self, habit_id: str, date: str) -> dict | None:
        """Delete the completion for (habit, date) and return the removed row."""
        existing = self.get_completion(habit_id, date)
        if existing is not None:
            self._execute(
                "DELETE FROM completions WHERE habit_id = ? AND date = ?", (habit_id, date)
            )
        return existing

    def list_completion_dates(self, habit_id: str) -> list[str]:
        """Dates on which the habit counts as done, ascending.

        Boolean habits are done on any recorded date; quantity habits only where
        the value reached the daily target.
        """
        rows = self._execute(
            "SELECT c.date FROM completions c JOIN habits h ON h.id = c.habit_id "
            "WHERE c.habit_id = ? AND (h.type = 'boolean' OR c.value >= h.daily_target) "
            "ORDER BY c.date",
            (habit_id,),
        ).fetchall()
        return [row["date"] for row in rows]

    def get_completions_by_date(self, start_date: str, end_date: str) -> dict[str, int]:
        """Number of done completions per date in a range (inclusive)."""
        rows = self._execute(
            "SELECT c.date, COUNT(*) AS n FROM completions c JOIN habits h ON h.id = c.habit_id "
            "WHERE c.date >= ? AND c.date <= ? "
            "AND (h.type = 'boolean' OR c.value >= h.daily_target) "
            "GROUP BY c.date ORDER BY c.date",
            (start_date, end_date),
        ).fetchall()
        return {row["date"]: row["n"] for row in rows}

    # ── rest days ─────────────────────────────────────────────────────────

    def skip_date(self, habit_id: str, date: str, reason: str | None = None) -> None:
        self._execute(
            "INSERT OR REPLACE INTO skipped_dates (habit_id, date, reason) VALUES (?, ?, ?)",
            (habit_id, date, reason),
        )

    def unskip_date(self, habit_id: str, date: str) -> None:
        self._execute(
            "DELETE FROM skipped_dates WHERE habit_id = ? AND date = ?", (habit_id, date)
        )

    def list_rest_days(self, habit_id: str) -> list[str]:
        rows = self._execute(
            "SELECT date FROM skipped_dates WHERE habit_id = ? ORDER BY date", (habit_id,)
        ).fetchall()
        return [row["date"] for row in rows]

    # ── streak records ────────────────────────────────────────────────────

    def read_streak_record(self, habit_id: str) -> dict | None:
        row = self._execute(
            "SELECT * FROM streak_records WHERE habit_id = ?", (habit_id,)
        ).fetchone()
        return dict(row) if row else None

    def write_streak_record(self, habit_id: str, **fields: int | str | None) -> None:
        """Insert or partially update a streak record."""
        unknown = set(fields) - set(STREAK_FIELDS)
        if unknown:
            raise ValueError(f"Unknown streak fields: {sorted(unknown)}")
        self._execute(
            "INSERT OR IGNORE INTO streak_records (habit_id) VALUES (?)", (habit_id,)
        )
        if fields:
            set_clause = ", ".join(f"{k} = ?" for k in fields)
            self._execute(
                f"UPDATE streak_records SET {set_clause} WHERE habit_id = ?",
                list(fields.values()) + [habit_id],
            )

    # ── profile ───────────────────────────────────────────────────────────

    def read_user_profile(self) -> dict:
        """Return the profile row. `level` is derived from total_xp, never stored."""
        row = self._execute("SELECT * FROM user_profile WHERE id = 1").fetchone()
        profile = dict(row)
        profile.pop("id", None)
        profile["level"] = level_from_xp(profile["total_xp"])
        return profile

    def write_user_profile(
        self, expected_version: int | None = None, **fields: int | str | None
    ) -> int:
        """Partially update the profile and return its new version.

        With expected_version, the write only applies if nobody else wrote
        since that version was read; otherwise ProfileWriteConflict is raised.
        """
        unknown = set(fields) - set(PROFILE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown profile fields: {sorted(unknown)}")
        assignments = [f"{k} = ?" for k in fields] + ["version = version + 1"]
        sql = f"UPDATE user_profile SET {', '.join(assignments)} WHERE id = 1"
        params: list = list(fields.values())
        if expected_version is not None:
            sql += " AND version = ?"
            params.append(expected_version)
        with self._lock:
            cursor = self.conn.execute(sql, params)
            if cursor.rowcount == 0:
                actual = self.conn.execute(
                    "SELECT version FROM user_profile WHERE id = 1"
                ).fetchone()
                raise ProfileWriteConflict(
                    expected_version if expected_version is not None else -1,
                    actual["version"] if actual else None,
                )
            row = self.conn.execute("SELECT version FROM user_profile WHERE id = 1").fetchone()
        return row["version"]

    # ── badges ────────────────────────────────────────────────────────────

    def list_unlocked_badge_ids(self) -> set[str]:
        rows = self._execute("SELECT id FROM badges").fetchall()
        return {row["id"] for row in rows}

    def unlock_badge(self, badge_id: str, timestamp: str | None = None) -> bool:
        """Record a badge unlock. Returns False if it was already unlocked."""
        cursor = self._execute(
            "INSERT INTO badges (id, unlocked_at) VALUES (?, ?) ON CONFLICT(id) DO NOTHING",
            (badge_id, timestamp or _now()),
        )
        return cursor.rowcount == 1

    def get_all_badges(self) -> list[dict]:
        """Return all unlocked badges with their timestamps."""
        rows = self._execute("SELECT * FROM badges ORDER BY unlocked_at, id").fetchall()
        return [dict(row) for row in rows]

    def close(self) -> None:
        """Close the database connection."""
        self.conn.close()
