"""
Open/closed status engine.

Derives, from a merchant's weekly schedule and a timestamp, whether it is
open, closing soon, opening soon or closed, together with the label shown
in the list, the card and the detail view.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
import logging
import re

from festmap.constants import (
    CLOSED_SENTINEL,
    COUNTED_OPEN_STATUSES,
    DAY_KEYS,
    LABEL_CLOSED,
    LIVE_STATUSES,
    POPULAR_VISITS,
    POPULARITY_NORMAL,
    POPULARITY_POPULAR,
    POPULARITY_VERY_POPULAR,
    SOON_THRESHOLD_MINUTES,
    STATUS_CLOSED,
    STATUS_CLOSING_SOON,
    STATUS_OPEN,
    STATUS_OPENING_SOON,
    VERY_POPULAR_VISITS,
)
from festmap.exceptions import MalformedScheduleError
from festmap.models import Merchant, MarkerVisual, PopularityTier, StatusResult, TimeRange

logger = logging.getLogger(__name__)

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")

DayEntry = str | Sequence[object] | None


class ScheduleIssueReporter:
    """Logs malformed schedule days once instead of on every render."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self.log = log or logger
        self._seen: set[tuple[str, str, str]] = set()

    def report(self, owner: str, day_key: str, entry: object, error: Exception) -> bool:
        key = (owner, day_key, repr(entry))
        if key in self._seen:
            return False
        self._seen.add(key)
        subject = f"{owner} " if owner else ""
        self.log.warning(f"Schedule for {subject}{day_key} treated as closed: {error}")
        return True

    def reset(self) -> None:
        self._seen.clear()


DEFAULT_REPORTER = ScheduleIssueReporter()


def parse_time(text: str) -> int:
    match = _TIME_PATTERN.match(text.strip())
    if not match:
        raise MalformedScheduleError(f"Invalid time {text!r}", entry=text)
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise MalformedScheduleError(f"Time out of range {text!r}", entry=text)
    return hours * 60 + minutes


def parse_range(text: str) -> TimeRange:
    """Parse ``"HH:MM-HH:MM"`` into minute offsets."""
    parts = text.strip().split("-")
    if len(parts) != 2:
        raise MalformedScheduleError(f"Invalid range {text!r}", entry=text)
    return TimeRange(open=parse_time(parts[0]), close=parse_time(parts[1]))


def parse_day(entry: DayEntry) -> tuple[TimeRange, ...] | None:
    """Return the ranges of one day, or ``None`` when the day is closed.

    Accepts the textual form (``"09:00-13:00,17:00-20:00"``), the closed
    sentinel, or an already parsed sequence of ``{"open", "close"}`` minute
    offsets.
    """
    if entry is None:
        return None
    if isinstance(entry, str):
        cleaned = entry.strip()
        if not cleaned or cleaned.casefold() == CLOSED_SENTINEL:
            return None
        return tuple(parse_range(chunk) for chunk in cleaned.split(","))
    if isinstance(entry, Sequence):
        return tuple(_range_from_mapping(item) for item in entry)
    raise MalformedScheduleError(f"Unsupported day entry {entry!r}", entry=entry)


def _range_from_mapping(item: object) -> TimeRange:
    if isinstance(item, TimeRange):
        return item
    if not isinstance(item, Mapping) or "open" not in item or "close" not in item:
        raise MalformedScheduleError(f"Invalid range {item!r}", entry=item)
    opening, closing = item["open"], item["close"]
    for value in (opening, closing):
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 1439:
            raise MalformedScheduleError(f"Minute offset out of range in {item!r}", entry=item)
    return TimeRange(open=opening, close=closing)


def day_ranges(
    schedule: Mapping[str, object] | None,
    day_of_week: int,
    *,
    owner: str = "",
    reporter: ScheduleIssueReporter | None = None,
) -> tuple[TimeRange, ...] | None:
    day_key = DAY_KEYS[day_of_week % 7]
    entry = (schedule or {}).get(day_key)
    try:
        ranges = parse_day(entry)
    except MalformedScheduleError as error:
        (reporter or DEFAULT_REPORTER).report(owner, day_key, entry, error)
        return None
    if ranges:
        for item in ranges:
            if item.open > item.close:
                # Overnight ranges are not wrapped; they never match as open.
                (reporter or DEFAULT_REPORTER).report(
                    owner,
                    day_key,
                    entry,
                    MalformedScheduleError(f"Range crosses midnight {item}", entry=entry),
                )
    return ranges


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60}:{minutes % 60:02d}"


def classify(
    schedule: Mapping[str, object] | None,
    day_of_week: int,
    now_minutes: int,
    *,
    owner: str = "",
    reporter: ScheduleIssueReporter | None = None,
) -> StatusResult:
    ranges = day_ranges(schedule, day_of_week, owner=owner, reporter=reporter)
    if not ranges:
        return StatusResult(STATUS_CLOSED, LABEL_CLOSED)

    for item in ranges:
        if item.open <= now_minutes < item.close:
            remaining = item.close - now_minutes
            if remaining <= SOON_THRESHOLD_MINUTES:
                return StatusResult(STATUS_CLOSING_SOON, f"Tanca en {remaining} min")
            return StatusResult(STATUS_OPEN, f"Obert · Tanca a les {format_minutes(item.close)}h")

    for item in ranges:
        until_open = item.open - now_minutes
        if 0 < until_open <= SOON_THRESHOLD_MINUTES:
            return StatusResult(STATUS_OPENING_SOON, f"Obre en {until_open} min")

    return StatusResult(STATUS_CLOSED, LABEL_CLOSED)


def day_of_week(now: datetime) -> int:
    """Sunday-first index (Sunday = 0) of ``now``."""
    return (now.weekday() + 1) % 7


def minute_of_day(now: datetime) -> int:
    return now.hour * 60 + now.minute


def status_at(
    merchant: Merchant, now: datetime, *, reporter: ScheduleIssueReporter | None = None
) -> StatusResult:
    return classify(
        merchant.hours,
        day_of_week(now),
        minute_of_day(now),
        owner=f"merchant {merchant.id}",
        reporter=reporter,
    )


def popularity(visits: int) -> PopularityTier:
    if visits > VERY_POPULAR_VISITS:
        return PopularityTier(POPULARITY_VERY_POPULAR, "Molt popular")
    if visits > POPULAR_VISITS:
        return PopularityTier(POPULARITY_POPULAR, "Popular")
    return PopularityTier(POPULARITY_NORMAL)


def visual_state(
    merchant: Merchant, now: datetime, *, reporter: ScheduleIssueReporter | None = None
) -> MarkerVisual:
    status = status_at(merchant, now, reporter=reporter)
    tier = popularity(merchant.visits)
    pulse = ""
    if status.status in LIVE_STATUSES:
        if tier.level == POPULARITY_VERY_POPULAR:
            pulse = "pulse-intense glow"
        elif tier.level == POPULARITY_POPULAR:
            pulse = "pulse-fast"
        else:
            pulse = "pulse"
    return MarkerVisual(
        status=status,
        popularity=tier,
        status_class=f"marker-{status.status}",
        pulse_class=pulse,
    )


def count_open(
    merchants: Iterable[Merchant], now: datetime, *, reporter: ScheduleIssueReporter | None = None
) -> int:
    return sum(
        1 for merchant in merchants if status_at(merchant, now, reporter=reporter).status in COUNTED_OPEN_STATUSES
    )
