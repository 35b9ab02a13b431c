"""Tests for worksummary.data.models."""

from worksummary.data.models import (
    DAILY_WORK_SUMMARY,
    WEEKLY_WORK_SUMMARY,
    DayBreakdown,
    SummaryKind,
    User,
)


def test_user_defaults_to_weekday_calendar():
    user = User(id=1, email="ana@example.com", username="ana")
    assert user.work_hours == (0.0, 8.0, 8.0, 8.0, 8.0, 8.0, 0.0)
    assert user.work_start == ("09:00",) * 7
    assert user.timezone is None
    assert user.is_active is True


def test_display_name_uses_first_and_last_name():
    user = User(id=1, email="a@b.c", username="ana", first_name="Ana", last_name="Silva")
    assert user.display_name == "Ana Silva"


def test_display_name_with_first_name_only():
    user = User(id=1, email="a@b.c", username="ana", first_name="Ana")
    assert user.display_name == "Ana"


def test_display_name_falls_back_to_username():
    user = User(id=1, email="a@b.c", username="ana", last_name="Silva")
    assert user.display_name == "ana"


def test_summary_kind_notification_types():
    assert SummaryKind.DAILY.notification_type == DAILY_WORK_SUMMARY
    assert SummaryKind.WEEKLY.notification_type == WEEKLY_WORK_SUMMARY


def test_summary_kind_from_string():
    assert SummaryKind("daily") is SummaryKind.DAILY
    assert SummaryKind("weekly") is SummaryKind.WEEKLY


def test_day_breakdown_total():
    entry = DayBreakdown(date="2025-03-03", work_hours=6.0, hobby_hours=1.5)
    assert entry.total_hours == 7.5
