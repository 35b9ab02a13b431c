"""Work summary email renderer — pure business logic.

Builds the subject line and HTML body of the daily and weekly work summary
emails from a user, their allocations and the period bounds.

Output depends only on the arguments: no clock, no locale, no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from html import escape
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from worksummary.data.models import Allocation, DayBreakdown, User

TEST_PREFIX = "[TEST] "

_DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
_MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

_FONT_STACK = (
    "-apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif"
)
_CELL = "padding: 12px; border-bottom: 1px solid #e5e7eb;"


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    body: str


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _day_name(d: date, short: bool = False) -> str:
    name = _DAY_NAMES[d.weekday()]
    return name[:3] if short else name


def _month_name(d: date, short: bool = False) -> str:
    name = _MONTH_NAMES[d.month - 1]
    return name[:3] if short else name


def _long_date(d: date) -> str:
    """Monday, January 15, 2024"""
    return f"{_day_name(d)}, {_month_name(d)} {d.day}, {d.year}"


def _short_date(d: date) -> str:
    """Jan 15"""
    return f"{_month_name(d, short=True)} {d.day}"


def _due_date(d: date) -> str:
    """15/01/2024"""
    return f"{d.day:02d}/{d.month:02d}/{d.year}"


def _hours(value: float) -> str:
    return f"{value:.1f}h"


def _is_overdue(allocation: Allocation, reference: date) -> bool:
    if not allocation.due_date:
        return False
    return date.fromisoformat(allocation.due_date) < reference


def _split(allocations: list[Allocation]) -> tuple[list[Allocation], list[Allocation]]:
    work = [a for a in allocations if not a.is_hobby]
    hobby = [a for a in allocations if a.is_hobby]
    return work, hobby


def _sum_hours(allocations: list[Allocation]) -> float:
    return sum(a.hours for a in allocations)


def daily_subject(day: date, test: bool = False) -> str:
    subject = f"📋 Your Work Summary for {_day_name(day)}, {_short_date(day)}"
    return TEST_PREFIX + subject if test else subject


def weekly_subject(week_start: date, week_end: date, test: bool = False) -> str:
    subject = (
        f"📅 Your Weekly Work Summary ({_short_date(week_start)} - {_short_date(week_end)})"
    )
    return TEST_PREFIX + subject if test else subject


# ---------------------------------------------------------------------------
# Task table
# ---------------------------------------------------------------------------


def _task_rows(allocations: list[Allocation], reference: date) -> str:
    rows = []
    for alloc in allocations:
        overdue = _is_overdue(alloc, reference)
        badge = ""
        due = ""
        if overdue:
            badge = (
                '<span style="margin-left: 6px; font-size: 11px; background-color: #fee2e2; '
                'color: #dc2626; padding: 2px 6px; border-radius: 4px; font-weight: 600;">'
                "OVERDUE</span>"
            )
        if alloc.due_date:
            colour = "#dc2626" if overdue else "#6b7280"
            due = (
                f'<div style="font-size: 11px; color: {colour}; margin-top: 2px;">'
                f"Due: {_due_date(date.fromisoformat(alloc.due_date))}</div>"
            )
        row_style = "background-color: #fff5f5;" if overdue else ""
        rows.append(
            f'<tr style="{row_style}">'
            f'<td style="{_CELL}">{escape(alloc.task_name)}{badge}{due}</td>'
            f'<td style="{_CELL}">{escape(alloc.project_name)}</td>'
            f'<td style="{_CELL} text-align: right;">{_hours(alloc.hours)}</td>'
            "</tr>"
        )
    return "".join(rows)


def _table_head() -> str:
    th = "padding: 12px; border-bottom: 2px solid #e5e7eb;"
    return (
        '<table style="width: 100%; border-collapse: collapse; margin: 0 0 8px 0;">'
        '<thead><tr style="background-color: #f3f4f6;">'
        f'<th style="{th} text-align: left;">Task</th>'
        f'<th style="{th} text-align: left;">Project</th>'
        f'<th style="{th} text-align: right;">Hours</th>'
        "</tr></thead>"
    )


def _total_row(label: str, hours: float, colour: str, background: str, bold: bool) -> str:
    weight = " font-weight: bold;" if bold else ""
    return (
        f'<tr style="background-color: {background};{weight}">'
        f'<td style="padding: 12px; color: {colour};" colspan="2">{label}</td>'
        f'<td style="padding: 12px; text-align: right; color: {colour};">{_hours(hours)}</td>'
        "</tr>"
    )


def _group_heading(label: str, colour: str) -> str:
    return (
        '<div style="margin: 16px 0 4px 0;">'
        f'<span style="font-size: 12px; font-weight: 600; color: {colour}; '
        f'text-transform: uppercase; letter-spacing: 0.05em;">{label}</span></div>'
    )


def _task_table(allocations: list[Allocation], reference: date, no_tasks_label: str) -> str:
    """Task table; subtotals and a grand total only when work and hobby both exist."""
    if not allocations:
        return f'<p style="color: #6b7280; font-style: italic;">{no_tasks_label}</p>'

    work, hobby = _split(allocations)
    total = _sum_hours(allocations)
    grouped = bool(work) and bool(hobby)

    parts = []
    for group, heading, subtotal_label, colour, background in (
        (work, "💼 Work Tasks", "Work subtotal", "#374151", "#f3f4f6"),
        (hobby, "🎯 Hobby Tasks", "Hobby subtotal", "#7c3aed", "#f5f3ff"),
    ):
        if not group:
            continue
        if grouped:
            parts.append(_group_heading(heading, colour))
        parts.append(_table_head())
        parts.append("<tbody>")
        parts.append(_task_rows(group, reference))
        if grouped:
            parts.append(_total_row(subtotal_label, _sum_hours(group), colour, background, False))
        else:
            parts.append(_total_row("Total", total, "#111827", "#f3f4f6", True))
        parts.append("</tbody></table>")

    if grouped:
        parts.append(
            '<table width="100%" cellpadding="0" cellspacing="0" border="0" '
            'style="margin-top: 8px; background-color: #f9fafb; border: 1px solid #e5e7eb;">'
            '<tr><td style="padding: 10px 14px; font-weight: 700;">Grand Total</td>'
            f'<td style="padding: 10px 14px; text-align: right; font-weight: 700;">{_hours(total)}</td>'
            "</tr></table>"
        )
    return "".join(parts)


# ---------------------------------------------------------------------------
# Shared page pieces
# ---------------------------------------------------------------------------


def _overdue_banner(count: int, period: str) -> str:
    if count == 0:
        return ""
    plural = "s" if count > 1 else ""
    return (
        '<div style="background-color: #fef2f2; border: 1px solid #fecaca; border-radius: 8px; '
        'padding: 12px 15px; margin: 16px 0;">'
        f'<p style="margin: 0; color: #b91c1c; font-weight: 600;">⚠️ {count} overdue task{plural} '
        f"in {period} schedule</p></div>"
    )


def _totals_box(allocations: list[Allocation], label: str, colour: str, background: str) -> str:
    work, hobby = _split(allocations)
    work_hours, hobby_hours = _sum_hours(work), _sum_hours(hobby)
    split_line = ""
    if work_hours > 0 and hobby_hours > 0:
        split_line = (
            f'<p style="margin: 0; font-size: 13px; color: {colour};">'
            f"💼 Work: {_hours(work_hours)} &nbsp;|&nbsp; 🎯 Hobby: {_hours(hobby_hours)}</p>"
        )
    return (
        f'<div style="background-color: {background}; border-radius: 8px; padding: 15px; margin: 20px 0;">'
        f'<p style="margin: 0 0 4px 0; color: {colour};">'
        f"<strong>📊 {label}:</strong> {work_hours + hobby_hours:.1f} hours "
        f"across {len(allocations)} task(s)</p>"
        f"{split_line}</div>"
    )


def _page(title: str, subtitle: str, accent: str, greeting_name: str, content: str,
          link_url: str, link_label: str, reason: str) -> str:
    return (
        "<!DOCTYPE html>\n"
        '<html><head><meta charset="utf-8">'
        '<meta name="viewport" content="width=device-width, initial-scale=1.0"></head>'
        f'<body style="font-family: {_FONT_STACK}; line-height: 1.6; color: #333; max-width: 600px; '
        'margin: 0 auto; padding: 20px; background-color: #f5f5f5;">'
        '<div style="background-color: #ffffff; border-radius: 8px; padding: 30px;">'
        f'<div style="border-bottom: 3px solid {accent}; padding-bottom: 20px; margin-bottom: 20px;">'
        f'<h1 style="margin: 0; color: #1f2937; font-size: 24px;">{title}</h1>'
        f'<p style="margin: 10px 0 0; color: #6b7280;">{subtitle}</p></div>'
        f'<p style="margin-bottom: 20px;">Hello {escape(greeting_name)},</p>'
        f"{content}"
        f'<a href="{escape(link_url, quote=True)}" style="display: inline-block; background-color: {accent}; '
        'color: #ffffff; padding: 12px 30px; text-decoration: none; border-radius: 6px; '
        f'font-weight: 500; margin: 20px 0;">{link_label}</a>'
        '<div style="margin-top: 30px; padding-top: 20px; border-top: 1px solid #e5e7eb; '
        'font-size: 12px; color: #6b7280; text-align: center;">'
        f"<p>You received this email because you enabled {reason} notifications.</p>"
        "<p>To change this preference, visit your profile settings.</p>"
        "</div></div></body></html>\n"
    )


# ---------------------------------------------------------------------------
# Daily and weekly summaries
# ---------------------------------------------------------------------------


def render_daily(
    user: User,
    date_key: str,
    allocations: list[Allocation],
    base_url: str = "",
    test: bool = False,
) -> RenderedEmail:
    """Render the daily summary for `date_key` (YYYY-MM-DD)."""
    day = date.fromisoformat(date_key)
    overdue = sum(1 for a in allocations if _is_overdue(a, day))

    content = (
        "<p>Here's your work summary for today:</p>"
        + _overdue_banner(overdue, "today's")
        + _task_table(allocations, day, "No tasks allocated for today.")
        + _totals_box(allocations, "Today's scheduled work", "#1e40af", "#dbeafe")
    )
    body = _page(
        title="📋 Daily Work Summary",
        subtitle=_long_date(day),
        accent="#3b82f6",
        greeting_name=user.display_name,
        content=content,
        link_url=f"{base_url}/dashboard",
        link_label="View Dashboard",
        reason="daily work summary",
    )
    return RenderedEmail(subject=daily_subject(day, test=test), body=body)


def _daily_breakdown_html(breakdown: list[DayBreakdown]) -> str:
    cells = []
    for entry in breakdown:
        day = date.fromisoformat(entry.date)
        background = "#dbeafe" if entry.total_hours > 0 else "#f3f4f6"
        values = ""
        if entry.work_hours > 0:
            values += (
                '<div style="font-weight: 600; color: #1d4ed8; font-size: 13px;">'
                f"{_hours(entry.work_hours)}</div>"
            )
        if entry.hobby_hours > 0:
            values += (
                '<div style="font-weight: 600; color: #7c3aed; font-size: 13px;">'
                f"{_hours(entry.hobby_hours)} &#127919;</div>"
            )
        if entry.total_hours == 0:
            values = '<div style="color: #9ca3af; font-size: 13px;">&#8212;</div>'
        cells.append(
            f'<td style="background-color: {background}; border-radius: 6px; text-align: center; '
            'padding: 10px 6px; width: 14%;">'
            f'<div style="font-size: 11px; color: #6b7280; margin-bottom: 4px;">{_day_name(day, short=True)}</div>'
            f"{values}</td>"
        )

    legend = ""
    if any(entry.hobby_hours > 0 for entry in breakdown):
        legend = (
            '<div style="margin-top: 8px; font-size: 11px; color: #6b7280;">'
            '<span style="color: #1d4ed8;">&#9632;</span>&nbsp;Work &nbsp;&nbsp;'
            '<span style="color: #7c3aed;">&#9632;</span>&nbsp;Hobby</div>'
        )
    return (
        '<div style="margin: 20px 0;">'
        '<h3 style="margin-bottom: 10px; color: #374151;">Daily Breakdown</h3>'
        '<table width="100%" cellpadding="0" cellspacing="0" border="0" '
        'style="border-collapse: separate; border-spacing: 4px;">'
        f"<tr>{''.join(cells)}</tr></table>{legend}</div>"
    )


def render_weekly(
    user: User,
    week_start_key: str,
    week_end_key: str,
    allocations: list[Allocation],
    daily_breakdown: list[DayBreakdown],
    base_url: str = "",
    test: bool = False,
) -> RenderedEmail:
    """Render the weekly summary; overdue is judged against the week's end."""
    week_start = date.fromisoformat(week_start_key)
    week_end = date.fromisoformat(week_end_key)
    overdue = sum(1 for a in allocations if _is_overdue(a, week_end))

    content = (
        "<p>Here's your work summary for the upcoming week:</p>"
        + _overdue_banner(overdue, "this week's")
        + _totals_box(allocations, "This week", "#065f46", "#d1fae5")
        + _daily_breakdown_html(daily_breakdown)
        + _task_table(allocations, week_end, "No tasks allocated for this week.")
    )
    body = _page(
        title="📅 Weekly Work Summary",
        subtitle=f"{_short_date(week_start)} - {_short_date(week_end)}, {week_end.year}",
        accent="#10b981",
        greeting_name=user.display_name,
        content=content,
        link_url=f"{base_url}/planning",
        link_label="View Planning",
        reason="weekly work summary",
    )
    return RenderedEmail(subject=weekly_subject(week_start, week_end, test=test), body=body)
