"""
Loader for the event/merchant data document.

Reads ``merchants.json`` from disk or over HTTP and turns it into
``Dataset``/``Event``/``Merchant`` objects. Schedules are checked once here
so malformed days are reported at load time rather than on every render.
"""

from __future__ import annotations

from collections.abc import Mapping
import json
import logging
from pathlib import Path
import re
import time

import requests

from festmap.constants import COLOR_PATTERN, DAY_KEYS, DEFAULT_EVENT_COLOR
from festmap.exceptions import DataLoadError, MalformedScheduleError
from festmap.models import Coordinates, Dataset, Dish, Event, Merchant
from festmap.schedule import DEFAULT_REPORTER, ScheduleIssueReporter, day_ranges

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_BACKOFF = 2  # seconds, doubles each retry
REQUEST_TIMEOUT = 15

_COLOR_RE = re.compile(COLOR_PATTERN)


def fetch_json(url, retries=MAX_RETRIES, sleeper=time.sleep):
    """Fetch a JSON document over HTTP, retrying with backoff."""
    for attempt in range(retries):
        try:
            response = requests.get(url, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            wait = RETRY_BACKOFF * (2**attempt)
            logger.warning(f"Attempt {attempt + 1}/{retries} failed for {url}: {e}")
            if attempt < retries - 1:
                logger.info(f"Retrying in {wait}s...")
                sleeper(wait)
    logger.error(f"All {retries} attempts failed for {url}")
    raise DataLoadError(f"Could not fetch {url}", source=url)


def read_payload(source: str | Path, sleeper=time.sleep) -> dict[str, object]:
    text = str(source)
    if text.startswith(("http://", "https://")):
        payload = fetch_json(text, sleeper=sleeper)
    else:
        path = Path(source)
        if not path.exists():
            raise DataLoadError(f"Data file not found: {path}", source=text)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as error:
            raise DataLoadError(f"Invalid JSON in {path}: {error}", source=text) from error
    if not isinstance(payload, dict):
        raise DataLoadError("Data document must be a JSON object", source=text)
    return payload


def load_dataset(
    source: str | Path,
    *,
    reporter: ScheduleIssueReporter | None = None,
    sleeper=time.sleep,
) -> Dataset:
    dataset = parse_dataset(read_payload(source, sleeper=sleeper), reporter=reporter)
    check_schedules(dataset, reporter=reporter)
    logger.info(f"Loaded {len(dataset.events)} events with {len(dataset.merchants)} merchants from {source}")
    return dataset


def parse_dataset(payload: dict[str, object], *, reporter: ScheduleIssueReporter | None = None) -> Dataset:
    meta = payload.get("meta") or {}
    events = [_parse_event(item, reporter) for item in payload.get("events") or []]
    total_visits = _as_int(meta.get("total_visits_today", 0) or 0, "total_visits_today")
    return Dataset(events=events, total_visits_today=total_visits)


def check_schedules(dataset: Dataset, *, reporter: ScheduleIssueReporter | None = None) -> None:
    for merchant in dataset.merchants:
        for day in range(len(DAY_KEYS)):
            day_ranges(merchant.hours, day, owner=f"merchant {merchant.id}", reporter=reporter)


def _as_int(value: object, field_name: str) -> int:
    if isinstance(value, bool):
        raise DataLoadError(f"{field_name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as error:
        raise DataLoadError(f"{field_name} must be an integer, got {value!r}") from error


def _event_color(value: object, event_id: str) -> str:
    color = str(value or "").strip()
    if _COLOR_RE.match(color):
        return color
    if color:
        logger.warning(f"Event {event_id!r} has invalid color {color!r}; using {DEFAULT_EVENT_COLOR}")
    return DEFAULT_EVENT_COLOR


def _weekly_hours(value: object, owner: str, reporter: ScheduleIssueReporter | None) -> dict[str, object]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        error = MalformedScheduleError(f"Weekly hours must be an object, got {value!r}", entry=value)
        (reporter or DEFAULT_REPORTER).report(owner, "hours", value, error)
        return {}
    return {str(key): day for key, day in value.items()}


def _parse_event(item: dict[str, object], reporter: ScheduleIssueReporter | None = None) -> Event:
    if not isinstance(item, Mapping):
        raise DataLoadError(f"Event entry must be an object, got {item!r}")
    event_id = str(item.get("id", ""))
    merchants = [_parse_merchant(raw, event_id, reporter) for raw in item.get("merchants") or []]
    return Event(
        id=event_id,
        name=str(item.get("name", "")),
        color=_event_color(item.get("color"), event_id),
        icon=str(item.get("icon", "")),
        merchants=merchants,
    )


def _parse_merchant(
    item: dict[str, object], event_id: str, reporter: ScheduleIssueReporter | None = None
) -> Merchant:
    if not isinstance(item, Mapping):
        raise DataLoadError(f"Merchant entry in event {event_id!r} must be an object, got {item!r}")
    if "id" not in item:
        raise DataLoadError(f"Merchant without id in event {event_id!r}")
    merchant_id = _as_int(item["id"], f"Merchant id in event {event_id!r}")
    coordinates = item.get("coordinates") or None
    dish = item.get("dish") or {}
    stats = item.get("stats") or {}
    return Merchant(
        id=merchant_id,
        name=str(item.get("name", "")),
        address=str(item.get("address", "")),
        coordinates=(
            Coordinates(lat=float(coordinates["lat"]), lng=float(coordinates["lng"]))
            if coordinates and "lat" in coordinates and "lng" in coordinates
            else None
        ),
        hours=_weekly_hours(item.get("hours"), f"merchant {merchant_id}", reporter),
        visits=_as_int(stats.get("visits", 0) or 0, f"Visits of merchant {merchant_id}"),
        dish=Dish(
            name=str(dish.get("name", "")),
            price=str(dish.get("price") or ""),
            description=str(dish.get("description", "")),
        ),
        tags=[str(tag) for tag in item.get("tags") or []],
        event_id=event_id,
    )
