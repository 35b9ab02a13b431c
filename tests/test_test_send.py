"""Tests for WorkSummaryService.send_test_summary — the on-demand path."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from worksummary.core.summary_service import WorkSummaryService
from worksummary.data.models import SummaryKind

# Wednesday 2025-01-15, 15:00 UTC: outside any start hour.
WEDNESDAY = datetime(2025, 1, 15, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def mailer():
    mock = MagicMock()
    mock.send_email = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def service(mailer, user_db, allocation_db, preference_db, summary_log):
    return WorkSummaryService(
        mailer, user_db, allocation_db, preference_db, summary_log,
        base_url="https://pm.example.com", retention_days=60,
    )


@pytest.fixture
def ana(user_db):
    return user_db.add_user(email="ana@example.com", username="ana", tz_name="Europe/Lisbon")


class TestSendTestSummary:
    @pytest.mark.asyncio
    async def test_daily_sends_today_with_test_prefix(self, service, mailer, summary_log, ana):
        result = await service.send_test_summary(ana.id, "daily", now=WEDNESDAY)

        assert result.success is True
        assert result.message == "Test daily summary email sent to ana@example.com"
        message = mailer.send_email.await_args.args[0]
        assert message.subject == "[TEST] 📋 Your Work Summary for Wednesday, Jan 15"
        assert summary_log.list_entries() == []

    @pytest.mark.asyncio
    async def test_weekly_sends_the_current_week(self, service, mailer, summary_log, ana):
        result = await service.send_test_summary(ana.id, SummaryKind.WEEKLY, now=WEDNESDAY)

        assert result.success is True
        message = mailer.send_email.await_args.args[0]
        assert message.subject == "[TEST] 📅 Your Weekly Work Summary (Jan 13 - Jan 19)"
        assert "Daily Breakdown" in message.html
        assert summary_log.list_entries() == []

    @pytest.mark.asyncio
    async def test_does_not_block_the_scheduled_send(self, service, mailer, summary_log, ana):
        await service.send_test_summary(ana.id, "daily", now=datetime(2025, 1, 13, 9, 5, tzinfo=timezone.utc))
        report = await service.run_once(now=datetime(2025, 1, 13, 9, 30, tzinfo=timezone.utc))
        assert report.daily_sent == 1
        assert report.weekly_sent == 1

    @pytest.mark.asyncio
    async def test_ignores_send_log_and_opt_out(self, service, mailer, summary_log, preference_db, ana):
        summary_log.record_sent(ana.id, SummaryKind.DAILY, "2025-01-15")
        preference_db.set_preference(ana.id, SummaryKind.DAILY.notification_type, False)

        result = await service.send_test_summary(ana.id, "daily", now=WEDNESDAY)

        assert result.success is True
        mailer.send_email.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_zone_directory_timezone_still_sends(self, service, mailer, user_db):
        user = user_db.add_user(email="etc@example.com", username="etc", tz_name="Etc")
        result = await service.send_test_summary(user.id, "weekly", now=WEDNESDAY)
        assert result.success is True
        assert result.message == "Test weekly summary email sent to etc@example.com"
        mailer.send_email.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_kind(self, service, mailer, ana):
        result = await service.send_test_summary(ana.id, "monthly")
        assert result.success is False
        assert result.message == "Unknown summary type: monthly"
        mailer.send_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_user_not_found(self, service, mailer):
        result = await service.send_test_summary(404, "daily")
        assert result.success is False
        assert result.message == "User not found"

    @pytest.mark.asyncio
    async def test_user_without_email(self, service, mailer, user_db):
        user = user_db.add_user(email="", username="noemail")
        result = await service.send_test_summary(user.id, "weekly")
        assert result.success is False
        assert result.message == "User does not have an email address configured"
        mailer.send_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transport_failure(self, service, mailer, ana):
        mailer.send_email.return_value = False
        result = await service.send_test_summary(ana.id, "daily", now=WEDNESDAY)
        assert result.success is False
        assert result.message == "Failed to send email. Check SMTP configuration."

    @pytest.mark.asyncio
    async def test_unexpected_error_is_reported(self, service, allocation_db, ana):
        with patch.object(allocation_db, "allocations_for_week", side_effect=RuntimeError("db gone")):
            result = await service.send_test_summary(ana.id, "weekly", now=WEDNESDAY)
        assert result.success is False
        assert result.message == "db gone"
