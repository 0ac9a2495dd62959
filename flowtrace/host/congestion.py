"""Stand-in congestion window laws for the two compared protocol variants.

These only have to move cwnd and react to loss plausibly so that the
instrumentation has something to observe; they are not faithful
implementations of either algorithm.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque

INITIAL_WINDOW_SEGMENTS = 10


class WindowLaw(ABC):
    """Congestion window in bytes, updated per ACK and per detected loss."""

    def __init__(self, segment_size: int) -> None:
        self.segment_size = segment_size
        self.cwnd: float = INITIAL_WINDOW_SEGMENTS * segment_size

    @abstractmethod
    def on_ack(self, now: float, acked_bytes: int, rtt: float, delivery_rate: float) -> None: ...

    @abstractmethod
    def on_loss(self, now: float) -> None: ...


class CubicWindow(WindowLaw):
    """Slow start, then CUBIC growth around the last loss point."""

    C = 0.4
    BETA = 0.7

    def __init__(self, segment_size: int) -> None:
        super().__init__(segment_size)
        self.ssthresh: float = float("inf")
        self._w_max: float = 0.0  # segments
        self._epoch_start: float | None = None

    def on_ack(self, now: float, acked_bytes: int, rtt: float, delivery_rate: float) -> None:
        if self.cwnd < self.ssthresh:
            self.cwnd += acked_bytes
            return

        if self._epoch_start is None:
            self._epoch_start = now
            self._w_max = max(self._w_max, self.cwnd / self.segment_size)

        w = self.cwnd / self.segment_size
        k = (self._w_max * (1 - self.BETA) / self.C) ** (1 / 3)
        target = self.C * (now - self._epoch_start - k) ** 3 + self._w_max

        if target > w:
            self.cwnd += self.segment_size * (target - w) / w
        else:
            self.cwnd += self.segment_size / (100 * w)

    def on_loss(self, now: float) -> None:
        self._w_max = self.cwnd / self.segment_size
        self.cwnd = max(self.cwnd * self.BETA, 2 * self.segment_size)
        self.ssthresh = self.cwnd
        self._epoch_start = now


class BbrWindow(WindowLaw):
    """cwnd = gain x (max delivery rate x min RTT), after an exponential startup."""

    STARTUP_GAIN = 2.885
    CWND_GAIN = 2.0
    BW_WINDOW_RTTS = 10
    MIN_SEGMENTS = 4

    def __init__(self, segment_size: int) -> None:
        super().__init__(segment_size)
        self.startup = True
        self._min_rtt: float = float("inf")
        self._rate_samples: deque[tuple[float, float]] = deque()

    @property
    def max_bandwidth(self) -> float:
        return max((rate for _, rate in self._rate_samples), default=0.0)

    @property
    def bdp(self) -> float:
        if self._min_rtt == float("inf"):
            return 0.0
        return self.max_bandwidth * self._min_rtt

    def on_ack(self, now: float, acked_bytes: int, rtt: float, delivery_rate: float) -> None:
        if rtt > 0:
            self._min_rtt = min(self._min_rtt, rtt)
        if delivery_rate > 0:
            self._rate_samples.append((now, delivery_rate))
        horizon = now - self.BW_WINDOW_RTTS * self._min_rtt
        while self._rate_samples and self._rate_samples[0][0] < horizon:
            self._rate_samples.popleft()

        floor = self.MIN_SEGMENTS * self.segment_size
        if self.startup:
            self.cwnd += acked_bytes
            if self.bdp > 0 and self.cwnd >= self.STARTUP_GAIN * self.bdp:
                self.startup = False
        else:
            self.cwnd = max(self.CWND_GAIN * self.bdp, floor)

    def on_loss(self, now: float) -> None:
        # Loss only ends startup; the window itself follows the model.
        self.startup = False
        if self.bdp > 0:
            self.cwnd = max(self.CWND_GAIN * self.bdp, self.MIN_SEGMENTS * self.segment_size)


WINDOW_LAWS: dict[str, type[WindowLaw]] = {
    "tcpcubic": CubicWindow,
    "quicbbr": BbrWindow,
}
