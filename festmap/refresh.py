"""Periodic loops: status re-evaluation, ripples on busy merchants, explorer counter."""

from __future__ import annotations

from collections.abc import Callable, Iterable
import logging
import random

from festmap.constants import (
    EXPLORER_BOUNDS,
    EXPLORER_START,
    EXPLORER_TICK_SECONDS,
    RIPPLE_DELAY_RANGE_SECONDS,
    RIPPLE_MIN_VISITS,
    RIPPLE_TICK_SECONDS,
    STATUS_REFRESH_SECONDS,
)
from festmap.models import Merchant
from festmap.timers import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


def pick_ripple_target(merchants: Iterable[Merchant], rng: random.Random) -> Merchant | None:
    candidates = [merchant for merchant in merchants if merchant.visits > RIPPLE_MIN_VISITS]
    if not candidates:
        return None
    return rng.choice(candidates)


def step_explorers(current: int, rng: random.Random, bounds: tuple[int, int] = EXPLORER_BOUNDS) -> int:
    change = 1 if rng.random() > 0.5 else -1
    low, high = bounds
    return max(low, min(high, current + change))


class LiveRefresher:
    def __init__(
        self,
        scheduler: Scheduler,
        merchants: Callable[[], Iterable[Merchant]],
        *,
        rng: random.Random | None = None,
        status_period: float = STATUS_REFRESH_SECONDS,
        ripple_period: float = RIPPLE_TICK_SECONDS,
        explorer_period: float = EXPLORER_TICK_SECONDS,
    ) -> None:
        self.scheduler = scheduler
        self.merchants = merchants
        self.rng = rng or random.Random()
        self.status_period = status_period
        self.ripple_period = ripple_period
        self.explorer_period = explorer_period
        self.explorers = EXPLORER_START
        self._status_listeners: list[Callable[[], None]] = []
        self._ripple_listeners: list[Callable[[Merchant], None]] = []
        self._explorer_listeners: list[Callable[[int], None]] = []
        self._handles: dict[str, TimerHandle] = {}
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def on_status_tick(self, callback: Callable[[], None]) -> None:
        self._status_listeners.append(callback)

    def on_ripple(self, callback: Callable[[Merchant], None]) -> None:
        self._ripple_listeners.append(callback)

    def on_explorers(self, callback: Callable[[int], None]) -> None:
        self._explorer_listeners.append(callback)

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._every("status", self.status_period, self._status_tick)
        self._every("ripple", self.ripple_period, self._ripple_tick)
        self._every("explorers", self.explorer_period, self._explorer_tick)

    def stop(self) -> None:
        self._running = False
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

    def _every(self, name: str, period: float, action: Callable[[], None]) -> None:
        def tick() -> None:
            if not self._running:
                return
            action()
            self._every(name, period, action)

        self._handles[name] = self.scheduler.call_later(period, tick)

    def _status_tick(self) -> None:
        for callback in list(self._status_listeners):
            callback()

    def _ripple_tick(self) -> None:
        delay = self.rng.uniform(*RIPPLE_DELAY_RANGE_SECONDS)
        self._handles["ripple-delay"] = self.scheduler.call_later(delay, self._ripple)

    def _ripple(self) -> None:
        if not self._running:
            return
        target = pick_ripple_target(self.merchants(), self.rng)
        if target is None:
            return
        logger.debug(f"Ripple on merchant {target.id}")
        for callback in list(self._ripple_listeners):
            callback(target)

    def _explorer_tick(self) -> None:
        self.explorers = step_explorers(self.explorers, self.rng)
        for callback in list(self._explorer_listeners):
            callback(self.explorers)
