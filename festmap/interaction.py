"""
Hover/selection state machine shared by the map, the sidebar list and the
floating card.

One ``InteractionController`` owns one ``InteractionState``. Views never
mutate the state; they feed pointer events in and re-render from the
``InteractionSnapshot`` passed to ``on_transition`` listeners.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import datetime
import logging

from festmap.constants import BOUNCE_SECONDS, HIDE_DELAY_SECONDS, SHOW_DELAY_SECONDS
from festmap.models import MarkerVisual, Merchant, Point, Size
from festmap.placement import CardPosition, ContainerBounds, card_size, place
from festmap.schedule import ScheduleIssueReporter, visual_state
from festmap.timers import TIMER_BOUNCE, TIMER_HIDE, TIMER_SHOW, Scheduler, TimerRegistry

logger = logging.getLogger(__name__)

SOURCE_MAP = "map"
SOURCE_LIST = "list"


@dataclass(slots=True)
class InteractionState:
    active_id: int | None = None
    hovered_id: int | None = None
    hover_source: str | None = None
    peer_highlight_id: int | None = None
    card_id: int | None = None
    bounce_id: int | None = None


@dataclass(frozen=True, slots=True)
class CardView:
    entity_id: int
    name: str
    marker: MarkerVisual
    position: CardPosition | None = None


@dataclass(frozen=True, slots=True)
class EntityVisual:
    entity_id: int
    marker: MarkerVisual
    is_active: bool = False
    is_out_of_focus: bool = False
    is_hovered: bool = False
    is_list_highlighted: bool = False
    is_bouncing: bool = False

    def marker_classes(self) -> list[str]:
        classes = self.marker.classes()
        if self.is_active:
            classes.append("marker-active")
        if self.is_out_of_focus:
            classes.append("marker-out-of-focus")
        if self.is_hovered:
            classes.append("marker-hover")
        if self.is_bouncing:
            classes.append("bouncing")
        return classes

    def list_classes(self) -> list[str]:
        classes = ["merchant-item"]
        if self.is_active:
            classes.append("active")
        if self.is_out_of_focus:
            classes.append("out-of-focus")
        if self.is_list_highlighted:
            classes.append("hover-from-map")
        return classes


@dataclass(frozen=True, slots=True)
class InteractionSnapshot:
    reason: str
    active_id: int | None
    hovered_id: int | None
    peer_highlight_id: int | None
    card: CardView | None
    pending_show: tuple[object, ...] = ()
    pending_hide: tuple[object, ...] = ()


TransitionListener = Callable[[InteractionSnapshot], None]


class InteractionController:
    def __init__(
        self,
        scheduler: Scheduler,
        *,
        clock: Callable[[], datetime] = datetime.now,
        projector: Callable[[int], Point | None] | None = None,
        container: Callable[[], ContainerBounds | Size] | None = None,
        show_delay: float = SHOW_DELAY_SECONDS,
        hide_delay: float = HIDE_DELAY_SECONDS,
        bounce_duration: float = BOUNCE_SECONDS,
        reporter: ScheduleIssueReporter | None = None,
    ) -> None:
        self.timers = TimerRegistry(scheduler)
        self.clock = clock
        self.projector = projector
        self.container = container
        self.show_delay = show_delay
        self.hide_delay = hide_delay
        self.bounce_duration = bounce_duration
        self.reporter = reporter
        self._state = InteractionState()
        self._merchants: dict[int, Merchant] = {}
        self._listeners: list[TransitionListener] = []
        self._card: CardView | None = None
        self._card_height: float | None = None

    @property
    def state(self) -> InteractionState:
        return replace(self._state)

    @property
    def card(self) -> CardView | None:
        return self._card

    @property
    def entity_ids(self) -> list[int]:
        return list(self._merchants)

    def set_merchants(self, merchants: Iterable[Merchant]) -> None:
        """Swap the known entities, dropping references that no longer exist."""
        self._merchants = {merchant.id: merchant for merchant in merchants}
        state = self._state
        for attribute in ("active_id", "hovered_id", "peer_highlight_id", "card_id", "bounce_id"):
            entity_id = getattr(state, attribute)
            if entity_id is not None and entity_id not in self._merchants:
                self.timers.cancel(entity_id=entity_id)
                setattr(state, attribute, None)
        if state.hovered_id is None:
            state.hover_source = None
        if state.card_id is None:
            self._card = None
        elif self._card is not None:
            self._card = self._build_card(state.card_id)
        self._emit("reload")

    def measure_card(self, height: float | None) -> None:
        self._card_height = height

    def on_transition(self, callback: TransitionListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    # ---- events ----

    def hover_enter(self, entity_id: int, source: str = SOURCE_MAP) -> None:
        if entity_id not in self._merchants:
            return
        if self._state.active_id is not None:
            if self._state.peer_highlight_id != entity_id:
                self._state.peer_highlight_id = entity_id
                self._emit("peer-highlight")
            return
        self.timers.cancel(timer_class=TIMER_HIDE)
        self.timers.schedule(TIMER_SHOW, entity_id, self.show_delay, lambda: self._show(entity_id, source))
        if source == SOURCE_LIST:
            self._bounce(entity_id)

    def hover_leave(self, entity_id: int) -> None:
        self.timers.cancel(timer_class=TIMER_SHOW)
        state = self._state
        changed = False
        if state.peer_highlight_id == entity_id:
            state.peer_highlight_id = None
            changed = True
        if state.hovered_id == entity_id:
            state.hovered_id = None
            state.hover_source = None
            changed = True
        if state.active_id is None and state.card_id is not None:
            self._schedule_hide()
        if changed:
            self._emit("hover-leave")

    def card_enter(self) -> None:
        self.timers.cancel(timer_class=TIMER_HIDE)

    def card_leave(self) -> None:
        if self._state.active_id is None and self._state.card_id is not None:
            self._schedule_hide()

    def select(self, entity_id: int) -> None:
        if entity_id not in self._merchants:
            return
        self.timers.cancel_all()
        state = self._state
        state.active_id = entity_id
        state.hovered_id = None
        state.hover_source = None
        state.peer_highlight_id = None
        state.card_id = None
        state.bounce_id = None
        self._card = None
        self._emit("select")

    def deselect_all(self) -> None:
        self.timers.cancel_all()
        self._state = InteractionState()
        self._card = None
        self._emit("deselect")

    def refresh(self) -> None:
        """Re-evaluate the visible card against the current clock."""
        if self._state.card_id is None:
            return
        self._card = self._build_card(self._state.card_id)
        if self._card is None:
            self._state.card_id = None
        self._emit("refresh")

    # ---- views ----

    def visual(self, entity_id: int) -> EntityVisual | None:
        merchant = self._merchants.get(entity_id)
        if merchant is None:
            return None
        return self._visual_for(merchant, self.clock())

    def visuals(self) -> dict[int, EntityVisual]:
        now = self.clock()
        return {entity_id: self._visual_for(merchant, now) for entity_id, merchant in self._merchants.items()}

    def snapshot(self, reason: str = "snapshot") -> InteractionSnapshot:
        state = self._state
        return InteractionSnapshot(
            reason=reason,
            active_id=state.active_id,
            hovered_id=state.hovered_id,
            peer_highlight_id=state.peer_highlight_id,
            card=self._card,
            pending_show=tuple(self.timers.pending(TIMER_SHOW)),
            pending_hide=tuple(self.timers.pending(TIMER_HIDE)),
        )

    # ---- internals ----

    def _visual_for(self, merchant: Merchant, now: datetime) -> EntityVisual:
        state = self._state
        active_id = state.active_id
        return EntityVisual(
            entity_id=merchant.id,
            marker=visual_state(merchant, now, reporter=self.reporter),
            is_active=active_id == merchant.id,
            is_out_of_focus=active_id is not None and active_id != merchant.id,
            is_hovered=merchant.id in (state.hovered_id, state.peer_highlight_id),
            is_list_highlighted=state.hovered_id == merchant.id and state.hover_source == SOURCE_MAP,
            is_bouncing=state.bounce_id == merchant.id,
        )

    def _show(self, entity_id: int, source: str) -> None:
        if self._state.active_id is not None or entity_id not in self._merchants:
            return
        card = self._build_card(entity_id)
        state = self._state
        state.hovered_id = entity_id
        state.hover_source = source
        state.card_id = entity_id if card is not None else None
        self._card = card
        self._emit("show")

    def _hide(self) -> None:
        if self._state.card_id is None:
            return
        self._state.card_id = None
        self._card = None
        self._emit("hide")

    def _bounce(self, entity_id: int) -> None:
        """Start a one-shot bounce on the marker; re-hovering restarts it."""
        self._state.bounce_id = entity_id
        self.timers.schedule(TIMER_BOUNCE, entity_id, self.bounce_duration, self._end_bounce)
        self._emit("bounce")

    def _end_bounce(self) -> None:
        if self._state.bounce_id is None:
            return
        self._state.bounce_id = None
        self._emit("bounce-end")

    def _schedule_hide(self) -> None:
        self.timers.schedule(TIMER_HIDE, self._state.card_id, self.hide_delay, self._hide)

    def _build_card(self, entity_id: int) -> CardView | None:
        merchant = self._merchants.get(entity_id)
        if merchant is None:
            return None
        position = None
        if self.projector is not None:
            anchor = self.projector(entity_id)
            if anchor is None:
                logger.debug(f"No marker anchor for merchant {entity_id}; card not shown")
                return None
            container = self.container() if self.container is not None else None
            if container is not None:
                position = place(anchor, container, card_size(self._card_height))
        return CardView(
            entity_id=entity_id,
            name=merchant.name,
            marker=visual_state(merchant, self.clock(), reporter=self.reporter),
            position=position,
        )

    def _emit(self, reason: str) -> None:
        snapshot = self.snapshot(reason)
        for listener in list(self._listeners):
            listener(snapshot)
