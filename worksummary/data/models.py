"""
Work Summary Service — Data Models.

Users, allocations and send-log entries as read from SQLite. Work settings
are held as 7-tuples indexed by weekday number (0 = Sunday .. 6 = Saturday).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

DAILY_WORK_SUMMARY = "daily_work_summary"
WEEKLY_WORK_SUMMARY = "weekly_work_summary"

DEFAULT_WORK_START = "09:00"


def _default_work_hours() -> tuple[float, ...]:
    return (0.0, 8.0, 8.0, 8.0, 8.0, 8.0, 0.0)


def _default_work_start() -> tuple[str, ...]:
    return (DEFAULT_WORK_START,) * 7


class SummaryKind(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"

    @property
    def notification_type(self) -> str:
        """Preference key the user opts in or out with."""
        if self is SummaryKind.DAILY:
            return DAILY_WORK_SUMMARY
        return WEEKLY_WORK_SUMMARY


@dataclass
class User:
    """An active account with its personal work calendar."""

    id: int
    email: str
    username: str
    first_name: str = ""
    last_name: str = ""
    timezone: str | None = None        # IANA name, None -> server time
    is_active: bool = True
    work_hours: tuple[float, ...] = field(default_factory=_default_work_hours)
    work_start: tuple[str, ...] = field(default_factory=_default_work_start)  # "HH:MM"

    @property
    def display_name(self) -> str:
        if self.first_name:
            return f"{self.first_name} {self.last_name or ''}".strip()
        return self.username


@dataclass
class Allocation:
    """Hours planned for a task, on one day or summed over a week."""

    task_id: int
    task_name: str
    project_name: str
    hours: float
    allocation_date: str              # YYYY-MM-DD (earliest day for weekly rows)
    due_date: str | None = None       # YYYY-MM-DD
    is_hobby: bool = False


@dataclass
class DayBreakdown:
    date: str                         # YYYY-MM-DD
    work_hours: float = 0.0
    hobby_hours: float = 0.0

    @property
    def total_hours(self) -> float:
        return self.work_hours + self.hobby_hours


@dataclass
class SummaryLogEntry:
    """One delivered summary email. At most one per (user, type, date)."""

    id: int
    user_id: int
    summary_type: str                 # "daily" | "weekly"
    summary_date: str                 # day, or Monday of the week
    sent_at: str                      # UTC "YYYY-MM-DD HH:MM:SS"
