from dataclasses import dataclass, field


@dataclass(slots=True)
class Coordinates:
    lat: float
    lng: float

    def is_placeholder(self) -> bool:
        return self.lat == 0 and self.lng == 0


@dataclass(slots=True)
class Dish:
    name: str = ""
    price: str = ""
    description: str = ""


@dataclass(slots=True)
class Merchant:
    id: int
    name: str
    address: str = ""
    coordinates: Coordinates | None = None
    hours: dict[str, object] = field(default_factory=dict)
    visits: int = 0
    dish: Dish = field(default_factory=Dish)
    tags: list[str] = field(default_factory=list)
    event_id: str = ""

    def has_location(self) -> bool:
        return self.coordinates is not None and not self.coordinates.is_placeholder()


@dataclass(slots=True)
class Event:
    id: str
    name: str
    color: str = ""
    icon: str = ""
    merchants: list[Merchant] = field(default_factory=list)


@dataclass(slots=True)
class Dataset:
    events: list[Event] = field(default_factory=list)
    total_visits_today: int = 0

    @property
    def merchants(self) -> list[Merchant]:
        return [merchant for event in self.events for merchant in event.merchants]

    def merchant(self, merchant_id: int) -> Merchant | None:
        for merchant in self.merchants:
            if merchant.id == merchant_id:
                return merchant
        return None

    def event_for(self, merchant_id: int) -> Event | None:
        for event in self.events:
            if any(merchant.id == merchant_id for merchant in event.merchants):
                return event
        return None


@dataclass(frozen=True, slots=True)
class TimeRange:
    open: int
    close: int


@dataclass(frozen=True, slots=True)
class StatusResult:
    status: str
    label: str


@dataclass(frozen=True, slots=True)
class PopularityTier:
    level: str
    label: str = ""


@dataclass(frozen=True, slots=True)
class MarkerVisual:
    status: StatusResult
    popularity: PopularityTier
    status_class: str
    pulse_class: str = ""

    def classes(self) -> list[str]:
        return [self.status_class, *self.pulse_class.split()]


@dataclass(frozen=True, slots=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class Size:
    width: float
    height: float
