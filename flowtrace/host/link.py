"""Bottleneck link with a drop-tail queue."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flowtrace.core.simulator import Simulator


@dataclass
class Segment:
    """A data packet of the monitored flow."""

    seq: int
    size_bytes: int
    sent_at: float
    delivered_at_send: int = 0  # sender's delivered-bytes count when this was sent
    retransmission: bool = False


class BottleneckLink:
    """Serialises packets at the bottleneck rate, then adds propagation delay.

    The queue is virtual: only the departure times of packets still waiting
    are kept. A packet arriving to a full queue is dropped.
    """

    def __init__(
        self,
        simulator: Simulator,
        rate_bps: float,
        delay: float,
        queue_packets: int,
    ) -> None:
        self._simulator = simulator
        self._rate_bps = rate_bps
        self._delay = delay
        self._queue_packets = queue_packets
        self._departures: deque[float] = deque()
        self._busy_until: float = 0.0

        self.forwarded: int = 0
        self.dropped: int = 0

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def queue_length(self) -> int:
        self._drain()
        return len(self._departures)

    def _drain(self) -> None:
        now = self._simulator.current_time
        while self._departures and self._departures[0] <= now:
            self._departures.popleft()

    def send(self, segment: Segment, on_arrival: Callable[[Segment], None]) -> bool:
        """Enqueue `segment`; False if it was dropped."""
        self._drain()
        if len(self._departures) >= self._queue_packets:
            self.dropped += 1
            return False

        now = self._simulator.current_time
        departure = max(now, self._busy_until) + segment.size_bytes * 8 / self._rate_bps
        self._busy_until = departure
        self._departures.append(departure)
        self.forwarded += 1

        self._simulator.schedule_at(departure + self._delay, on_arrival, segment)
        return True
