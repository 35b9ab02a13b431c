"""
Work Summary Service — daily and weekly "your scheduled work" emails.

Each tick walks every active user and, in the user's own timezone, checks
whether this is the hour their work day starts. If it is, the daily summary
goes out (once per day), and on the user's first work day of the week the
weekly summary goes out too (once per week). The send-log is checked before
sending and written only after the transport confirms delivery.

Test sends bypass both the trigger hour and the send-log.

This module is transport-agnostic: it depends on the MailPort protocol,
not on a specific mail implementation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from worksummary.core.renderer import RenderedEmail, render_daily, render_weekly
from worksummary.core.work_calendar import (
    first_work_day_of_week,
    format_date_key,
    local_now,
    start_hour,
    week_bounds,
    weekday_index,
    work_hours_for_weekday,
    work_start_for_weekday,
)
from worksummary.data.models import DayBreakdown, SummaryKind
from worksummary.ports.mail_port import OutgoingEmail

if TYPE_CHECKING:
    from worksummary.data.db import AllocationDB, EmailPreferenceDB, SummaryLogDB, UserDB
    from worksummary.data.models import User
    from worksummary.ports.mail_port import MailPort

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass
class TestSendResult:
    __test__ = False  # not a pytest test class

    success: bool
    message: str


@dataclass
class TickReport:
    users_checked: int = 0
    daily_sent: int = 0
    weekly_sent: int = 0
    failed_user_ids: list[int] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def build_daily_breakdown(
    allocation_db: AllocationDB, user_id: int, week_start: date,
) -> list[DayBreakdown]:
    """Seven entries, Monday..Sunday, with zeros for days without allocations."""
    days = [week_start + timedelta(days=i) for i in range(7)]
    totals = allocation_db.daily_totals(
        user_id, format_date_key(days[0]), format_date_key(days[-1]),
    )
    breakdown = []
    for day in days:
        key = format_date_key(day)
        work, hobby = totals.get(key, (0.0, 0.0))
        breakdown.append(DayBreakdown(date=key, work_hours=work, hobby_hours=hobby))
    return breakdown


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class WorkSummaryService:
    """Decides, renders, sends and records work summaries."""

    def __init__(
        self,
        mailer: MailPort,
        user_db: UserDB,
        allocation_db: AllocationDB,
        preference_db: EmailPreferenceDB,
        summary_log: SummaryLogDB,
        base_url: str | None = None,
        retention_days: int | None = None,
    ) -> None:
        if base_url is None or retention_days is None:
            from worksummary.config import settings
            base_url = settings.APP_BASE_URL if base_url is None else base_url
            if retention_days is None:
                retention_days = settings.SUMMARY_LOG_RETENTION_DAYS

        self._mailer = mailer
        self._users = user_db
        self._allocations = allocation_db
        self._preferences = preference_db
        self._summary_log = summary_log
        self._base_url = base_url
        self._retention_days = retention_days

    # -- scheduled path -----------------------------------------------------

    async def run_once(self, now: datetime | None = None) -> TickReport:
        """One scheduler tick over all active users. Never raises.

        A naive `now` is server-local time, for the trigger and the prune alike.
        """
        if now is not None and now.tzinfo is None:
            now = now.astimezone()
        report = TickReport()
        try:
            logger.info("Running work summary scheduler check...")
            users = self._users.list_active_users_with_email()
            self._prune_send_log(now)

            for user in users:
                report.users_checked += 1
                try:
                    sent = await self.process_user(user, now)
                except Exception as exc:
                    logger.error("Error processing work summary for user %d: %s", user.id, exc)
                    report.failed_user_ids.append(user.id)
                    continue
                if SummaryKind.DAILY in sent:
                    report.daily_sent += 1
                if SummaryKind.WEEKLY in sent:
                    report.weekly_sent += 1
        except Exception as exc:
            logger.error("Error in work summary scheduler: %s", exc)

        logger.info(
            "Work summary check completed: %d users, %d daily, %d weekly, %d failed",
            report.users_checked, report.daily_sent, report.weekly_sent,
            len(report.failed_user_ids),
        )
        return report

    def _prune_send_log(self, now: datetime | None) -> None:
        try:
            self._summary_log.prune_older_than(self._retention_days, now=now)
        except Exception as exc:
            logger.error("Error cleaning up old work summary log entries: %s", exc)

    async def process_user(
        self, user: User, now: datetime | None = None,
    ) -> list[SummaryKind]:
        """Send whatever summaries are due for this user right now.

        Returns the kinds that were delivered.
        """
        local = local_now(user.timezone, now)
        weekday = weekday_index(local)
        today = local.date()
        today_key = format_date_key(today)

        if work_hours_for_weekday(user, weekday) <= 0:
            return []
        if local.hour != start_hour(work_start_for_weekday(user, weekday)):
            return []

        sent: list[SummaryKind] = []

        if (
            self._preferences.wants_email(user.id, SummaryKind.DAILY.notification_type)
            and not self._summary_log.has_been_sent(user.id, SummaryKind.DAILY, today_key)
        ):
            if await self._send_daily(user, today_key):
                self._record(user, SummaryKind.DAILY, today_key)
                sent.append(SummaryKind.DAILY)

        if weekday == first_work_day_of_week(user):
            week_start, week_end = week_bounds(today)
            week_start_key = format_date_key(week_start)
            if (
                self._preferences.wants_email(user.id, SummaryKind.WEEKLY.notification_type)
                and not self._summary_log.has_been_sent(user.id, SummaryKind.WEEKLY, week_start_key)
            ):
                if await self._send_weekly(user, week_start, week_end):
                    self._record(user, SummaryKind.WEEKLY, week_start_key)
                    sent.append(SummaryKind.WEEKLY)

        return sent

    def _record(self, user: User, kind: SummaryKind, period_key: str) -> None:
        """Write the send-log entry; the email is already out either way."""
        try:
            self._summary_log.record_sent(user.id, kind, period_key)
        except Exception as exc:
            logger.error(
                "Sent %s work summary to user %d (%s) but failed to record it; "
                "it may be sent again next tick: %s",
                kind.value, user.id, period_key, exc,
            )
            return
        logger.info("Sent %s work summary to user %d (%s)", kind.value, user.id, user.email)

    # -- rendering + delivery -----------------------------------------------

    async def _deliver(self, user: User, rendered: RenderedEmail) -> bool:
        return await self._mailer.send_email(
            OutgoingEmail(
                to=user.email,
                subject=rendered.subject,
                html=rendered.body,
                user_id=user.id,
                username=user.username,
            )
        )

    async def _send_daily(self, user: User, date_key: str, test: bool = False) -> bool:
        allocations = self._allocations.allocations_for_day(user.id, date_key)
        rendered = render_daily(user, date_key, allocations, self._base_url, test=test)
        return await self._deliver(user, rendered)

    async def _send_weekly(
        self, user: User, week_start: date, week_end: date, test: bool = False,
    ) -> bool:
        start_key, end_key = format_date_key(week_start), format_date_key(week_end)
        allocations = self._allocations.allocations_for_week(user.id, start_key, end_key)
        breakdown = build_daily_breakdown(self._allocations, user.id, week_start)
        rendered = render_weekly(
            user, start_key, end_key, allocations, breakdown, self._base_url, test=test,
        )
        return await self._deliver(user, rendered)

    # -- on-demand test path ------------------------------------------------

    async def send_test_summary(
        self, user_id: int, kind: SummaryKind | str, now: datetime | None = None,
    ) -> TestSendResult:
        """Render and send a summary right away, outside the schedule.

        Ignores the trigger hour and the send-log; nothing is recorded.
        """
        try:
            try:
                kind = SummaryKind(kind)
            except ValueError:
                return TestSendResult(False, f"Unknown summary type: {kind}")

            user = self._users.get_user(user_id)
            if user is None:
                return TestSendResult(False, "User not found")
            if not user.email:
                return TestSendResult(False, "User does not have an email address configured")

            today = local_now(user.timezone, now).date()
            if kind is SummaryKind.DAILY:
                sent = await self._send_daily(user, format_date_key(today), test=True)
            else:
                week_start, week_end = week_bounds(today)
                sent = await self._send_weekly(user, week_start, week_end, test=True)
        except Exception as exc:
            logger.error("Error sending test summary email to user %s: %s", user_id, exc)
            return TestSendResult(False, str(exc) or "Failed to send test email")

        if not sent:
            return TestSendResult(False, "Failed to send email. Check SMTP configuration.")

        logger.info("Sent TEST %s work summary to user %d (%s)", kind.value, user.id, user.email)
        return TestSendResult(True, f"Test {kind.value} summary email sent to {user.email}")
