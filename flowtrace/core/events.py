"""Scheduled simulation events."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any


@dataclass(order=True)
class Event:
    """A scheduled callback in the simulation.

    Events are ordered by (timestamp, priority, sequence) for the priority queue.
    Lower priority values are processed first when timestamps are equal, and the
    sequence number keeps same-time, same-priority events in scheduling order.
    """

    timestamp: float
    callback: Callable[..., None] = field(compare=False)
    args: tuple[Any, ...] = field(default=(), compare=False)
    priority: int = 0
    sequence: int = 0
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.callback(*self.args)
