"""Discrete event simulation engine."""

from __future__ import annotations

import heapq
from collections.abc import Callable
from itertools import count
from random import Random
from typing import Any

from flowtrace.core.events import Event


class Simulator:
    """Single-threaded, deterministic discrete event simulator.

    Uses a min-heap priority queue for event scheduling and processing.
    All randomness is derived from a seeded RNG for reproducibility.
    Every callback runs to completion before the next one is dispatched,
    so state shared between callbacks needs no locking.
    """

    def __init__(self, seed: int = 42) -> None:
        self._current_time: float = 0.0
        self._event_queue: list[Event] = []
        self._rng = Random(seed)
        self._events_processed: int = 0
        self._sequence = count()

    @property
    def current_time(self) -> float:
        return self._current_time

    def now(self) -> float:
        return self._current_time

    @property
    def rng(self) -> Random:
        return self._rng

    @property
    def events_processed(self) -> int:
        return self._events_processed

    def schedule(self, event: Event) -> Event:
        if event.timestamp < self._current_time:
            raise ValueError(
                f"Cannot schedule event in the past: {event.timestamp} < {self._current_time}"
            )
        event.sequence = next(self._sequence)
        heapq.heappush(self._event_queue, event)
        return event

    def schedule_at(
        self,
        timestamp: float,
        callback: Callable[..., None],
        *args: Any,
        priority: int = 0,
    ) -> Event:
        return self.schedule(
            Event(timestamp=timestamp, callback=callback, args=args, priority=priority)
        )

    def schedule_after(
        self,
        delay: float,
        callback: Callable[..., None],
        *args: Any,
        priority: int = 0,
    ) -> Event:
        """Schedule a callback `delay` seconds after the current time."""
        if delay < 0:
            raise ValueError(f"Cannot schedule with negative delay: {delay}")
        return self.schedule_at(self._current_time + delay, callback, *args, priority=priority)

    def run(self, until: float) -> None:
        while self._event_queue and self._current_time <= until:
            event = heapq.heappop(self._event_queue)

            # Don't process events beyond our target time
            if event.timestamp > until:
                # Put it back and stop
                heapq.heappush(self._event_queue, event)
                break

            self._current_time = event.timestamp
            self._dispatch_event(event)

    def run_until_empty(self) -> None:
        while self._event_queue:
            event = heapq.heappop(self._event_queue)
            self._current_time = event.timestamp
            self._dispatch_event(event)

    def _dispatch_event(self, event: Event) -> None:
        if event.cancelled:
            return
        event.fire()
        self._events_processed += 1

    def pending_event_count(self) -> int:
        return sum(1 for event in self._event_queue if not event.cancelled)
