from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
import json

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.templating import Jinja2Templates

from festmap.config import BASE_DIR, Settings, event_clock, load_settings
from festmap.constants import (
    EXPLORER_BOUNDS,
    EXPLORER_START,
    EXPLORER_TICK_SECONDS,
    RIPPLE_DELAY_RANGE_SECONDS,
    RIPPLE_MIN_VISITS,
    RIPPLE_TICK_SECONDS,
)
from festmap.display import route_url, tag_label, today_schedule, weekly_schedule
from festmap.loader import load_dataset
from festmap.models import Dataset, Event, Merchant, Point
from festmap.placement import ContainerBounds, card_size, place
from festmap.schedule import count_open, day_of_week, visual_state
from festmap.zones import ShapelyZoneBuilder, ZoneBuilder, event_zones


TEMPLATES = Jinja2Templates(directory=str(BASE_DIR / "templates"))


def create_app(
    settings: Settings,
    *,
    clock: Callable[[], datetime] | None = None,
    zone_builder: ZoneBuilder | None = None,
) -> FastAPI:
    app = FastAPI(title="Festmap live merchant map")
    app.state.settings = settings
    app.state.clock = clock or event_clock(settings)
    app.state.zone_builder = zone_builder or ShapelyZoneBuilder()
    app.state.dataset = None
    app.state.zones = None

    def dataset() -> Dataset:
        if app.state.dataset is None:
            app.state.dataset = load_dataset(app.state.settings.data_source)
        return app.state.dataset

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/")
    def home(request: Request):
        data = dataset()
        now = app.state.clock()
        context = {
            "request": request,
            "events": [_event_section(event, now, expanded=index == 0) for index, event in enumerate(data.events)],
            "open_count": count_open(data.merchants, now),
            "merchant_count": len(data.merchants),
            "total_visits": _format_count(data.total_visits_today),
            "explorers": EXPLORER_START,
            "map_config_json": _json_script_literal(
                {
                    "center": list(settings.map_center),
                    "zoom": settings.zoom_initial,
                    "minZoom": settings.zoom_min,
                    "maxZoom": settings.zoom_max,
                    "tileUrl": settings.tile_url,
                    "explorersStart": EXPLORER_START,
                    "explorerBounds": list(EXPLORER_BOUNDS),
                    "explorerTickMs": int(EXPLORER_TICK_SECONDS * 1000),
                    "rippleTickMs": int(RIPPLE_TICK_SECONDS * 1000),
                    "rippleDelayMs": [int(bound * 1000) for bound in RIPPLE_DELAY_RANGE_SECONDS],
                    "rippleMinVisits": RIPPLE_MIN_VISITS,
                }
            ),
            "markers_json": _json_script_literal([_marker_payload(m, data, now) for m in data.merchants if m.has_location()]),
        }
        return TEMPLATES.TemplateResponse(request=request, name="index.html", context=context)

    @app.get("/api/merchants")
    def merchants():
        data = dataset()
        now = app.state.clock()
        return [_marker_payload(merchant, data, now) for merchant in data.merchants]

    @app.get("/api/merchants/{merchant_id}")
    def merchant_detail(merchant_id: int):
        data = dataset()
        merchant = data.merchant(merchant_id)
        if merchant is None:
            raise HTTPException(status_code=404, detail="Merchant not found")
        now = app.state.clock()
        payload = _marker_payload(merchant, data, now)
        payload.update(
            {
                "address": merchant.address,
                "dish": {
                    "name": merchant.dish.name,
                    "price": merchant.dish.price,
                    "description": merchant.dish.description,
                },
                "today": today_schedule(merchant, now),
                "weekly": weekly_schedule(merchant, day_of_week(now)),
                "tags": [tag_label(tag) for tag in merchant.tags],
                "route_url": route_url(merchant),
            }
        )
        return payload

    @app.get("/api/open-count")
    def open_count() -> dict[str, int]:
        data = dataset()
        return {"open": count_open(data.merchants, app.state.clock()), "total": len(data.merchants)}

    @app.get("/api/card-position")
    def card_position(
        x: float,
        y: float,
        width: float = Query(gt=0),
        height: float = Query(gt=0),
        card_height: float | None = Query(default=None, gt=0),
        left: float = 0.0,
        top: float = 0.0,
    ):
        container = ContainerBounds(width=width, height=height, left=left, top=top)
        position = place(Point(x=x, y=y), container, card_size(card_height))
        page = position.to_page(container)
        return {
            "left": position.left,
            "top": position.top,
            "below": position.below,
            "page_left": page.left,
            "page_top": page.top,
        }

    @app.get("/api/zones")
    def zones():
        if app.state.zones is None:
            app.state.zones = event_zones(dataset().events, app.state.zone_builder)
        return app.state.zones

    return app


def _event_section(event: Event, now: datetime, expanded: bool) -> dict[str, object]:
    return {
        "id": event.id,
        "name": event.name,
        "color": event.color,
        "icon": event.icon,
        "expanded": expanded,
        "open_count": count_open(event.merchants, now),
        "merchant_count": len(event.merchants),
        "merchants": [_list_item(merchant, now) for merchant in event.merchants],
    }


def _list_item(merchant: Merchant, now: datetime) -> dict[str, object]:
    visual = visual_state(merchant, now)
    return {
        "id": merchant.id,
        "name": merchant.name,
        "dish": merchant.dish.name,
        "price": merchant.dish.price,
        "address": merchant.address,
        "status": visual.status.status,
        "label": visual.status.label,
        "popularity_level": visual.popularity.level,
        "popularity_label": visual.popularity.label,
        "today": today_schedule(merchant, now),
    }


def _marker_payload(merchant: Merchant, data: Dataset, now: datetime) -> dict[str, object]:
    visual = visual_state(merchant, now)
    event = data.event_for(merchant.id)
    return {
        "id": merchant.id,
        "name": merchant.name,
        "event_id": event.id if event else "",
        "color": event.color if event else "",
        "lat": merchant.coordinates.lat if merchant.coordinates else None,
        "lng": merchant.coordinates.lng if merchant.coordinates else None,
        "status": visual.status.status,
        "label": visual.status.label,
        "visits": merchant.visits,
        "popularity": visual.popularity.level,
        "status_class": visual.status_class,
        "pulse_class": visual.pulse_class,
        "classes": visual.classes(),
    }


def _json_script_literal(value: object) -> str:
    return json.dumps(value, ensure_ascii=False).replace("</", "<\\/")


def _format_count(value: int) -> str:
    return f"{value:,}".replace(",", ".")


app = create_app(load_settings())
