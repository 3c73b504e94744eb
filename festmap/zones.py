"""
Influence zones: merged buffers around the merchants of one event.

Each point is buffered in a local azimuthal equidistant projection centred on
the group, so the radius is in real kilometres, then the buffers are unioned
and transformed back to WGS84.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import logging
from typing import Protocol

from pyproj import Transformer
from shapely.geometry import Point as ShapelyPoint
from shapely.geometry import mapping
from shapely.ops import transform, unary_union

from festmap.constants import ZONE_RADIUS_KM
from festmap.models import Event

logger = logging.getLogger(__name__)


class ZoneBuilder(Protocol):
    def buffer_and_union(
        self, points: Sequence[tuple[float, float]], radius_km: float
    ) -> dict[str, object] | None: ...


class ShapelyZoneBuilder:
    def __init__(self, quad_segs: int = 8) -> None:
        self.quad_segs = quad_segs

    def buffer_and_union(
        self, points: Sequence[tuple[float, float]], radius_km: float
    ) -> dict[str, object] | None:
        """Return a GeoJSON geometry covering ``radius_km`` around each (lat, lng)."""
        if not points:
            return None
        center_lat = sum(lat for lat, _ in points) / len(points)
        center_lng = sum(lng for _, lng in points) / len(points)
        local_crs = f"+proj=aeqd +lat_0={center_lat} +lon_0={center_lng} +datum=WGS84 +units=m"
        to_local = Transformer.from_crs("EPSG:4326", local_crs, always_xy=True)
        to_wgs84 = Transformer.from_crs(local_crs, "EPSG:4326", always_xy=True)

        buffers = []
        for lat, lng in points:
            x, y = to_local.transform(lng, lat)
            buffers.append(ShapelyPoint(x, y).buffer(radius_km * 1000.0, quad_segs=self.quad_segs))
        merged = unary_union(buffers)
        if merged.is_empty:
            return None
        return mapping(transform(to_wgs84.transform, merged))


def event_zones(
    events: Iterable[Event], builder: ZoneBuilder, radius_km: float = ZONE_RADIUS_KM
) -> dict[str, object]:
    """GeoJSON FeatureCollection with one influence zone per event."""
    features: list[dict[str, object]] = []
    for event in events:
        points = [
            (merchant.coordinates.lat, merchant.coordinates.lng)
            for merchant in event.merchants
            if merchant.has_location()
        ]
        geometry = builder.buffer_and_union(points, radius_km)
        if geometry is None:
            logger.debug(f"Event {event.id} has no located merchants; no zone drawn")
            continue
        features.append(
            {
                "type": "Feature",
                "properties": {"event_id": event.id, "name": event.name, "color": event.color},
                "geometry": geometry,
            }
        )
    return {"type": "FeatureCollection", "features": features}
