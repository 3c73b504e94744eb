"""Cancellable timers keyed by timer class and entity id."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
import heapq
import itertools
from typing import Protocol

TIMER_SHOW = "show"
TIMER_HIDE = "hide"
TIMER_BOUNCE = "bounce"


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


@dataclass(order=True, slots=True)
class _ScheduledCall:
    due: float
    sequence: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual clock scheduler; nothing runs until ``advance`` is called."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self._queue: list[_ScheduledCall] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ScheduledCall:
        call = _ScheduledCall(self.now + max(delay, 0.0), next(self._counter), callback)
        heapq.heappush(self._queue, call)
        return call

    @property
    def pending(self) -> int:
        return sum(1 for call in self._queue if not call.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running every callback that falls due."""
        target = self.now + seconds
        ran = 0
        while self._queue and self._queue[0].due <= target:
            call = heapq.heappop(self._queue)
            if call.cancelled:
                continue
            self.now = call.due
            call.callback()
            ran += 1
        self.now = target
        return ran


class TimerRegistry:
    def __init__(self, scheduler: Scheduler) -> None:
        self.scheduler = scheduler
        self._handles: dict[tuple[str, object], TimerHandle] = {}

    def schedule(
        self,
        timer_class: str,
        entity_id: object,
        delay: float,
        callback: Callable[[], None],
        *,
        exclusive: bool = True,
    ) -> None:
        """Schedule ``callback``; an exclusive timer replaces every pending one of its class."""
        if exclusive:
            self.cancel(timer_class=timer_class)
        else:
            self.cancel(timer_class=timer_class, entity_id=entity_id)
        key = (timer_class, entity_id)

        def fire() -> None:
            self._handles.pop(key, None)
            callback()

        self._handles[key] = self.scheduler.call_later(delay, fire)

    def cancel(self, *, timer_class: str | None = None, entity_id: object = None) -> int:
        keys = [
            key
            for key in self._handles
            if (timer_class is None or key[0] == timer_class) and (entity_id is None or key[1] == entity_id)
        ]
        for key in keys:
            handle = self._handles.pop(key, None)
            if handle is not None:
                handle.cancel()
        return len(keys)

    def cancel_all(self) -> int:
        return self.cancel()

    def pending(self, timer_class: str | None = None) -> list[object]:
        return [key[1] for key in self._handles if timer_class is None or key[0] == timer_class]

    def is_pending(self, timer_class: str, entity_id: object = None) -> bool:
        if entity_id is None:
            return any(key[0] == timer_class for key in self._handles)
        return (timer_class, entity_id) in self._handles
