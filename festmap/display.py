from __future__ import annotations

from datetime import datetime
from urllib.parse import urlencode

from festmap.constants import LABEL_CLOSED, LABEL_CLOSED_TODAY
from festmap.models import Merchant, TimeRange
from festmap.schedule import ScheduleIssueReporter, day_of_week, day_ranges, format_minutes

DAY_ABBREVIATIONS = ("Dg", "Dl", "Dt", "Dc", "Dj", "Dv", "Ds")

TAG_LABELS: dict[str, str] = {
    "sense-gluten": "Sense gluten",
    "vegetariana": "Vegetariana",
    "per-emportar": "Per emportar",
}


def _ranges_text(ranges: tuple[TimeRange, ...], suffix: str = "") -> str:
    return ", ".join(f"{format_minutes(item.open)} – {format_minutes(item.close)}{suffix}" for item in ranges)


def today_schedule(merchant: Merchant, now: datetime, *, reporter: ScheduleIssueReporter | None = None) -> str:
    ranges = day_ranges(merchant.hours, day_of_week(now), owner=f"merchant {merchant.id}", reporter=reporter)
    if not ranges:
        return LABEL_CLOSED_TODAY
    return _ranges_text(ranges, suffix="h")


def weekly_schedule(
    merchant: Merchant, today: int, *, reporter: ScheduleIssueReporter | None = None
) -> list[dict[str, object]]:
    """Rows for the detail view, Monday first."""
    rows: list[dict[str, object]] = []
    for offset in range(1, 8):
        day = offset % 7
        ranges = day_ranges(merchant.hours, day, owner=f"merchant {merchant.id}", reporter=reporter)
        rows.append(
            {
                "day": DAY_ABBREVIATIONS[day],
                "schedule": _ranges_text(ranges) if ranges else LABEL_CLOSED,
                "is_today": day == today,
                "is_closed": not ranges,
            }
        )
    return rows


def tag_label(tag: str) -> str:
    return TAG_LABELS.get(tag, tag)


def route_url(merchant: Merchant) -> str:
    if merchant.coordinates is None:
        return ""
    destination = f"{merchant.coordinates.lat},{merchant.coordinates.lng}"
    return f"https://www.google.com/maps/dir/?{urlencode({'api': '1', 'destination': destination})}"
