"""
Work Summary Service — SQLite storage.

Users and their work calendars, planned task allocations, email
preferences, and the send-log that makes summary delivery at-most-once.
Only the send-log is owned by the summary engine; the other tables are
maintained by the planning and profile sides and are read here.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path

from worksummary.data.models import (
    DEFAULT_WORK_START,
    Allocation,
    SummaryKind,
    SummaryLogEntry,
    User,
)

logger = logging.getLogger(__name__)

# Column suffixes in weekday-index order (0 = Sunday).
_WEEKDAY_COLUMNS = (
    "sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday",
)

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _utc_timestamp(moment: datetime | None = None) -> str:
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(_TIMESTAMP_FORMAT)


class _SQLiteStore:
    """Shared connection handling; subclasses create their own tables."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from worksummary.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        raise NotImplementedError


class UserDB(_SQLiteStore):
    """Accounts with email, timezone and per-weekday work settings."""

    def _init_db(self) -> None:
        """Create the users table if it doesn't exist, and migrate schema."""
        weekday_cols = ",\n".join(
            f"work_hours_{day} REAL NOT NULL DEFAULT {0 if day in ('saturday', 'sunday') else 8},\n"
            f"work_start_{day} TEXT NOT NULL DEFAULT '{DEFAULT_WORK_START}'"
            for day in _WEEKDAY_COLUMNS
        )
        with self._connect() as conn:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS users (
                    id          INTEGER PRIMARY KEY AUTOINCREMENT,
                    email       TEXT,
                    username    TEXT    NOT NULL,
                    first_name  TEXT    NOT NULL DEFAULT '',
                    last_name   TEXT    NOT NULL DEFAULT '',
                    timezone    TEXT,
                    is_active   INTEGER NOT NULL DEFAULT 1,
                    {weekday_cols}
                )
            """)
            # Migrate existing DBs: add new columns if missing
            existing_cols = {
                row[1] for row in conn.execute("PRAGMA table_info(users)").fetchall()
            }
            if "timezone" not in existing_cols:
                conn.execute("ALTER TABLE users ADD COLUMN timezone TEXT")
        logger.debug("Users table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            email=row["email"] or "",
            username=row["username"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            timezone=row["timezone"],
            is_active=bool(row["is_active"]),
            work_hours=tuple(float(row[f"work_hours_{day}"] or 0) for day in _WEEKDAY_COLUMNS),
            work_start=tuple(
                row[f"work_start_{day}"] or DEFAULT_WORK_START for day in _WEEKDAY_COLUMNS
            ),
        )

    def add_user(
        self,
        email: str,
        username: str,
        first_name: str = "",
        last_name: str = "",
        tz_name: str | None = None,
        work_hours: tuple[float, ...] | None = None,
        work_start: tuple[str, ...] | None = None,
        is_active: bool = True,
    ) -> User:
        """Insert a user. Work settings default to Mon-Fri 8h from 09:00."""
        columns = ["email", "username", "first_name", "last_name", "timezone", "is_active"]
        values: list = [email, username, first_name, last_name, tz_name, int(is_active)]
        if work_hours is not None:
            if len(work_hours) != 7:
                raise ValueError("work_hours needs one entry per weekday")
            columns += [f"work_hours_{day}" for day in _WEEKDAY_COLUMNS]
            values += [float(h) for h in work_hours]
        if work_start is not None:
            if len(work_start) != 7:
                raise ValueError("work_start needs one entry per weekday")
            columns += [f"work_start_{day}" for day in _WEEKDAY_COLUMNS]
            values += list(work_start)

        placeholders = ", ".join("?" for _ in columns)
        with self._connect() as conn:
            cursor = conn.execute(
                f"INSERT INTO users ({', '.join(columns)}) VALUES ({placeholders})",
                values,
            )
            user_id = cursor.lastrowid

        logger.info("User added: #%d '%s'", user_id, username)
        return self.get_user(user_id)

    def get_user(self, user_id: int) -> User | None:
        """Fetch a single user by ID, active or not."""
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def list_active_users_with_email(self) -> list[User]:
        """Return every active user that has a non-empty email address."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM users "
                "WHERE is_active = 1 AND email IS NOT NULL AND email != '' "
                "ORDER BY id"
            ).fetchall()
        return [self._row_to_user(r) for r in rows]

    def set_timezone(self, user_id: int, tz_name: str | None) -> None:
        with self._connect() as conn:
            conn.execute("UPDATE users SET timezone = ? WHERE id = ?", (tz_name, user_id))
        logger.info("Timezone set for user %d: %s", user_id, tz_name)

    def set_work_day(
        self, user_id: int, weekday: int, hours: float, start: str = DEFAULT_WORK_START,
    ) -> None:
        """Update one weekday (0 = Sunday) of a user's work calendar."""
        if not 0 <= weekday <= 6:
            raise ValueError(f"weekday must be 0-6, got {weekday}")
        day = _WEEKDAY_COLUMNS[weekday]
        with self._connect() as conn:
            conn.execute(
                f"UPDATE users SET work_hours_{day} = ?, work_start_{day} = ? WHERE id = ?",
                (float(hours), start, user_id),
            )
        logger.info("User %d %s: %.1fh from %s", user_id, day, hours, start)

    def deactivate_user(self, user_id: int) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE users SET is_active = 0 WHERE id = ? AND is_active = 1", (user_id,),
            )
        return cursor.rowcount > 0


class AllocationDB(_SQLiteStore):
    """Projects, tasks and the hours allocated to them per user per day."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS projects (
                    id        INTEGER PRIMARY KEY AUTOINCREMENT,
                    name      TEXT    NOT NULL,
                    is_hobby  INTEGER NOT NULL DEFAULT 0
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id          INTEGER PRIMARY KEY AUTOINCREMENT,
                    project_id  INTEGER NOT NULL REFERENCES projects(id),
                    name        TEXT    NOT NULL,
                    due_date    TEXT
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS task_allocations (
                    id               INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_id          INTEGER NOT NULL REFERENCES tasks(id),
                    user_id          INTEGER NOT NULL,
                    allocated_hours  REAL    NOT NULL,
                    allocation_date  TEXT    NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_task_allocations_user_date "
                "ON task_allocations (user_id, allocation_date)"
            )
        logger.debug("Allocation tables initialized at %s", self._db_path)

    @staticmethod
    def _row_to_allocation(row: sqlite3.Row) -> Allocation:
        due = row["due_date"]
        return Allocation(
            task_id=row["task_id"],
            task_name=row["task_name"],
            project_name=row["project_name"],
            hours=float(row["hours"] or 0),
            allocation_date=row["allocation_date"],
            due_date=due[:10] if due else None,
            is_hobby=bool(row["is_hobby"]),
        )

    def add_project(self, name: str, is_hobby: bool = False) -> int:
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO projects (name, is_hobby) VALUES (?, ?)", (name, int(is_hobby)),
            )
        return cursor.lastrowid

    def add_task(self, project_id: int, name: str, due_date: str | None = None) -> int:
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO tasks (project_id, name, due_date) VALUES (?, ?, ?)",
                (project_id, name, due_date),
            )
        return cursor.lastrowid

    def add_allocation(
        self, task_id: int, user_id: int, hours: float, allocation_date: str,
    ) -> int:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO task_allocations (task_id, user_id, allocated_hours, allocation_date)
                VALUES (?, ?, ?, ?)
                """,
                (task_id, user_id, float(hours), allocation_date),
            )
        return cursor.lastrowid

    def allocations_for_day(self, user_id: int, date_key: str) -> list[Allocation]:
        """All allocations on one calendar date, work before hobby, biggest first."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT ta.task_id, t.name AS task_name, p.name AS project_name,
                       ta.allocated_hours AS hours,
                       date(ta.allocation_date) AS allocation_date,
                       t.due_date, p.is_hobby
                FROM task_allocations ta
                JOIN tasks t    ON ta.task_id = t.id
                JOIN projects p ON t.project_id = p.id
                WHERE ta.user_id = ? AND date(ta.allocation_date) = ?
                ORDER BY p.is_hobby ASC, ta.allocated_hours DESC, ta.task_id ASC
                """,
                (user_id, date_key),
            ).fetchall()
        return [self._row_to_allocation(r) for r in rows]

    def allocations_for_week(
        self, user_id: int, start_key: str, end_key: str,
    ) -> list[Allocation]:
        """One row per task with hours summed over the inclusive date range."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT ta.task_id, t.name AS task_name, p.name AS project_name,
                       SUM(ta.allocated_hours) AS hours,
                       MIN(date(ta.allocation_date)) AS allocation_date,
                       t.due_date, p.is_hobby
                FROM task_allocations ta
                JOIN tasks t    ON ta.task_id = t.id
                JOIN projects p ON t.project_id = p.id
                WHERE ta.user_id = ? AND date(ta.allocation_date) BETWEEN ? AND ?
                GROUP BY ta.task_id, t.name, p.name, t.due_date, p.is_hobby
                ORDER BY p.is_hobby ASC, SUM(ta.allocated_hours) DESC, ta.task_id ASC
                """,
                (user_id, start_key, end_key),
            ).fetchall()
        return [self._row_to_allocation(r) for r in rows]

    def daily_totals(
        self, user_id: int, start_key: str, end_key: str,
    ) -> dict[str, tuple[float, float]]:
        """Map of date -> (work hours, hobby hours); days without rows are absent."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT date(ta.allocation_date) AS day,
                       SUM(CASE WHEN p.is_hobby = 0 THEN ta.allocated_hours ELSE 0 END) AS work,
                       SUM(CASE WHEN p.is_hobby = 1 THEN ta.allocated_hours ELSE 0 END) AS hobby
                FROM task_allocations ta
                JOIN tasks t    ON ta.task_id = t.id
                JOIN projects p ON t.project_id = p.id
                WHERE ta.user_id = ? AND date(ta.allocation_date) BETWEEN ? AND ?
                GROUP BY date(ta.allocation_date)
                """,
                (user_id, start_key, end_key),
            ).fetchall()
        return {r["day"]: (float(r["work"] or 0), float(r["hobby"] or 0)) for r in rows}


class EmailPreferenceDB(_SQLiteStore):
    """Per-user opt-in flags keyed by notification type. No row means enabled."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS email_preferences (
                    user_id            INTEGER NOT NULL,
                    notification_type  TEXT    NOT NULL,
                    email_enabled      INTEGER NOT NULL DEFAULT 1,
                    PRIMARY KEY (user_id, notification_type)
                )
            """)
        logger.debug("Email preferences table initialized at %s", self._db_path)

    def set_preference(self, user_id: int, notification_type: str, enabled: bool) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO email_preferences (user_id, notification_type, email_enabled)
                VALUES (?, ?, ?)
                ON CONFLICT (user_id, notification_type)
                DO UPDATE SET email_enabled = excluded.email_enabled
                """,
                (user_id, notification_type, int(enabled)),
            )
        logger.info(
            "Email preference for user %d: %s=%s", user_id, notification_type, enabled,
        )

    def wants_email(self, user_id: int, notification_type: str) -> bool:
        """True unless the user explicitly disabled this type."""
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT email_enabled FROM email_preferences "
                    "WHERE user_id = ? AND notification_type = ?",
                    (user_id, notification_type),
                ).fetchone()
        except sqlite3.Error as exc:
            logger.error(
                "Error checking email preference for user %d (%s): %s",
                user_id, notification_type, exc,
            )
            return True
        if row is None:
            return True
        return bool(row["email_enabled"])


class SummaryLogDB(_SQLiteStore):
    """Send-log for work summary emails: one row per delivered period."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS work_summary_email_log (
                    id            INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id       INTEGER NOT NULL,
                    summary_type  TEXT    NOT NULL,
                    summary_date  TEXT    NOT NULL,
                    sent_at       TEXT    NOT NULL
                )
            """)
            conn.execute(
                "CREATE UNIQUE INDEX IF NOT EXISTS uq_work_summary_email_log "
                "ON work_summary_email_log (user_id, summary_type, summary_date)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_work_summary_email_log_sent_at "
                "ON work_summary_email_log (sent_at)"
            )
        logger.debug("Work summary email log initialized at %s", self._db_path)

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> SummaryLogEntry:
        return SummaryLogEntry(
            id=row["id"],
            user_id=row["user_id"],
            summary_type=row["summary_type"],
            summary_date=row["summary_date"],
            sent_at=row["sent_at"],
        )

    def has_been_sent(self, user_id: int, kind: SummaryKind | str, period_key: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM work_summary_email_log "
                "WHERE user_id = ? AND summary_type = ? AND summary_date = ?",
                (user_id, SummaryKind(kind).value, period_key),
            ).fetchone()
        return row is not None

    def record_sent(
        self,
        user_id: int,
        kind: SummaryKind | str,
        period_key: str,
        sent_at: datetime | None = None,
    ) -> bool:
        """Record a delivered summary.

        Returns False when the period is already recorded, which happens only
        when two senders raced past has_been_sent() for the same period.
        """
        summary_type = SummaryKind(kind).value
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO work_summary_email_log
                        (user_id, summary_type, summary_date, sent_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (user_id, summary_type, period_key, _utc_timestamp(sent_at)),
                )
        except sqlite3.IntegrityError:
            logger.warning(
                "%s summary for user %d (%s) was already recorded by another sender",
                summary_type, user_id, period_key,
            )
            return False
        return True

    def prune_older_than(self, days: int = 60, now: datetime | None = None) -> int:
        """Delete entries sent more than `days` ago. Never raises."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    "DELETE FROM work_summary_email_log WHERE sent_at < ?",
                    (_utc_timestamp(cutoff),),
                )
        except sqlite3.Error as exc:
            logger.error("Error cleaning up old work summary log entries: %s", exc)
            return 0
        if cursor.rowcount:
            logger.info("Pruned %d work summary log entries older than %d days",
                        cursor.rowcount, days)
        return cursor.rowcount

    def list_entries(self, user_id: int | None = None) -> list[SummaryLogEntry]:
        query = "SELECT * FROM work_summary_email_log"
        params: list = []
        if user_id is not None:
            query += " WHERE user_id = ?"
            params.append(user_id)
        query += " ORDER BY sent_at, id"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_entry(r) for r in rows]
