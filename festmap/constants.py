from __future__ import annotations

from typing import Final

DAY_KEYS: Final[tuple[str, ...]] = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)
CLOSED_SENTINEL: Final[str] = "closed"

STATUS_OPEN: Final[str] = "open"
STATUS_CLOSING_SOON: Final[str] = "closing-soon"
STATUS_OPENING_SOON: Final[str] = "opening-soon"
STATUS_CLOSED: Final[str] = "closed"
LIVE_STATUSES: Final[frozenset[str]] = frozenset({STATUS_OPEN, STATUS_CLOSING_SOON, STATUS_OPENING_SOON})
COUNTED_OPEN_STATUSES: Final[frozenset[str]] = frozenset({STATUS_OPEN, STATUS_CLOSING_SOON})

SOON_THRESHOLD_MINUTES: Final[int] = 30

POPULARITY_NORMAL: Final[str] = "normal"
POPULARITY_POPULAR: Final[str] = "popular"
POPULARITY_VERY_POPULAR: Final[str] = "very-popular"
POPULAR_VISITS: Final[int] = 20
VERY_POPULAR_VISITS: Final[int] = 40
RIPPLE_MIN_VISITS: Final[int] = 10

LABEL_CLOSED: Final[str] = "Tancat"
LABEL_CLOSED_TODAY: Final[str] = "Tancat avui"

SHOW_DELAY_SECONDS: Final[float] = 0.2
HIDE_DELAY_SECONDS: Final[float] = 0.2

CARD_WIDTH_PX: Final[float] = 300.0
CARD_FALLBACK_HEIGHT_PX: Final[float] = 280.0
CARD_GAP_PX: Final[float] = 28.0
CARD_INSET_PX: Final[float] = 8.0

FOCUS_MIN_ZOOM: Final[int] = 16
ZONE_RADIUS_KM: Final[float] = 0.25

STATUS_REFRESH_SECONDS: Final[float] = 60.0
RIPPLE_TICK_SECONDS: Final[float] = 10.0
RIPPLE_DELAY_RANGE_SECONDS: Final[tuple[float, float]] = (7.0, 10.0)
EXPLORER_TICK_SECONDS: Final[float] = 4.0
EXPLORER_START: Final[int] = 8
EXPLORER_BOUNDS: Final[tuple[int, int]] = (3, 15)
BOUNCE_SECONDS: Final[float] = 0.6

COLOR_PATTERN: Final[str] = r"^#(?:[0-9A-Fa-f]{3}|[0-9A-Fa-f]{4}|[0-9A-Fa-f]{6}|[0-9A-Fa-f]{8})$"
DEFAULT_EVENT_COLOR: Final[str] = "#666666"
