from argparse import ArgumentParser
from datetime import datetime, timedelta
import json
import logging
from pathlib import Path
import random
from zoneinfo import ZoneInfo

import uvicorn

from festmap.config import Settings, event_clock, load_settings
from festmap.interaction import SOURCE_LIST, InteractionController, InteractionSnapshot
from festmap.loader import load_dataset
from festmap.map_view import HeadlessListPanel, HeadlessMapWidget, MapView
from festmap.models import Dataset, Merchant
from festmap.refresh import LiveRefresher
from festmap.schedule import count_open, status_at
from festmap.timers import ManualScheduler

logger = logging.getLogger(__name__)

SETTLE_SECONDS = 1.0


def _resolve_now(settings: Settings, at: str | None) -> datetime:
    if not at:
        return event_clock(settings)()
    moment = datetime.fromisoformat(at)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=ZoneInfo(settings.timezone))
    return moment


def print_status(dataset: Dataset, now: datetime) -> list[str]:
    lines = []
    for merchant in dataset.merchants:
        result = status_at(merchant, now)
        lines.append(f"{merchant.id:>3} {merchant.name}: {result.status} ({result.label})")
    lines.append(f"Open now: {count_open(dataset.merchants, now)}/{len(dataset.merchants)}")
    for line in lines:
        print(line)
    return lines


def replay(
    dataset: Dataset,
    steps: list[dict[str, object]],
    *,
    start: datetime,
    center: tuple[float, float],
    zoom: float = 15,
    width: float = 800,
    height: float = 600,
    card_height: float | None = None,
    seed: int | None = None,
) -> list[dict[str, object]]:
    """Replay pointer events through a headless map and collect every transition.

    Ripples and explorer counter updates from the live loops are recorded in
    the same timeline; pass ``seed`` to make them reproducible.
    """
    scheduler = ManualScheduler()
    controller = InteractionController(scheduler, clock=lambda: start + timedelta(seconds=scheduler.now))
    widget = HeadlessMapWidget(center=center, zoom=zoom, width=width, height=height, card_height=card_height)
    panel = HeadlessListPanel()
    view = MapView(widget, controller, panel)
    view.load(dataset)

    transitions: list[dict[str, object]] = []
    controller.on_transition(lambda snapshot: transitions.append(_transition_payload(snapshot, panel, scheduler.now)))
    refresher = LiveRefresher(scheduler, lambda: dataset.merchants, rng=random.Random(seed))
    refresher.on_status_tick(view.refresh_markers)

    def ripple(merchant: Merchant) -> None:
        if view.ripple(merchant):
            transitions.append({"t": round(scheduler.now, 3), "reason": "ripple", "merchant_id": merchant.id})

    refresher.on_ripple(ripple)
    refresher.on_explorers(
        lambda count: transitions.append({"t": round(scheduler.now, 3), "reason": "explorers", "count": count})
    )
    refresher.start()

    for step in sorted(steps, key=lambda item: float(item.get("at", 0))):
        scheduler.advance(max(0.0, float(step.get("at", 0)) - scheduler.now))
        _dispatch(view, widget, step)
    scheduler.advance(SETTLE_SECONDS)
    refresher.stop()
    return transitions


def _dispatch(view: MapView, widget: HeadlessMapWidget, step: dict[str, object]) -> None:
    kind = str(step.get("type", ""))
    entity_id = int(step["id"]) if step.get("id") is not None else None
    controller = view.controller
    if kind in ("hover-enter", "hover-leave", "click"):
        handle = view.handle_for(entity_id) if entity_id is not None else None
        if handle is None:
            logger.info(f"No marker for merchant {entity_id}; {kind} ignored")
            return
        widget.fire(handle, kind)
    elif kind == "list-hover-enter" and entity_id is not None:
        view.hover_enter(entity_id, SOURCE_LIST)
    elif kind == "list-hover-leave" and entity_id is not None:
        controller.hover_leave(entity_id)
    elif kind == "list-click" and entity_id is not None:
        view.select(entity_id)
    elif kind == "background-click":
        widget.click_background()
    elif kind == "card-enter":
        controller.card_enter()
    elif kind == "card-leave":
        controller.card_leave()
    elif kind == "refresh":
        view.refresh_markers()
    else:
        raise ValueError(f"Unknown replay event {step!r}")


def _transition_payload(snapshot: InteractionSnapshot, panel: HeadlessListPanel, elapsed: float) -> dict[str, object]:
    card = None
    if snapshot.card is not None:
        card = {
            "id": snapshot.card.entity_id,
            "status": snapshot.card.marker.status.status,
            "label": snapshot.card.marker.status.label,
        }
        if snapshot.card.position is not None:
            card.update(
                {
                    "left": round(snapshot.card.position.left, 1),
                    "top": round(snapshot.card.position.top, 1),
                    "below": snapshot.card.position.below,
                }
            )
    return {
        "t": round(elapsed, 3),
        "reason": snapshot.reason,
        "active_id": snapshot.active_id,
        "hovered_id": snapshot.hovered_id,
        "card": card,
        "list_highlight": next(
            (merchant_id for merchant_id, classes in panel.items.items() if "hover-from-map" in classes), None
        ),
    }


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    parser = ArgumentParser(description="Live merchant map utility CLI")
    sub = parser.add_subparsers(dest="command", required=True)
    serve = sub.add_parser("serve", help="Run the map web app")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    status = sub.add_parser("status", help="Print every merchant's open status")
    status.add_argument("--at", default=None, help="ISO timestamp (default: now in the event time zone)")
    replay_cmd = sub.add_parser("replay", help="Replay an interaction script and print transitions as JSON lines")
    replay_cmd.add_argument("events", type=Path, help="JSON list of {at, type, id} steps")
    replay_cmd.add_argument("--at", default=None, help="ISO timestamp the replay starts at")
    replay_cmd.add_argument("--width", type=float, default=800)
    replay_cmd.add_argument("--height", type=float, default=600)
    replay_cmd.add_argument("--zoom", type=float, default=15)
    replay_cmd.add_argument("--card-height", type=float, default=None, help="Measured card height in pixels")
    replay_cmd.add_argument("--seed", type=int, default=None, help="Seed for ripples and the explorer counter")
    args = parser.parse_args(argv)

    settings = load_settings()
    if args.command == "serve":
        uvicorn.run("festmap.web_app:app", host=args.host, port=args.port)
        return 0
    if args.command == "status":
        print_status(load_dataset(settings.data_source), _resolve_now(settings, args.at))
        return 0
    if args.command == "replay":
        steps = json.loads(args.events.read_text(encoding="utf-8"))
        transitions = replay(
            load_dataset(settings.data_source),
            steps,
            start=_resolve_now(settings, args.at),
            center=settings.map_center,
            zoom=args.zoom,
            width=args.width,
            height=args.height,
            card_height=args.card_height,
            seed=args.seed,
        )
        for item in transitions:
            print(json.dumps(item, ensure_ascii=False))
        return 0
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
