"""Self-rescheduling periodic samplers for one monitored flow."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from flowtrace.metrics.loss import estimator_for

if TYPE_CHECKING:
    from flowtrace.core.events import Event
    from flowtrace.metrics.loss import LossEstimator
    from flowtrace.metrics.stream import MetricStream
    from flowtrace.trace.state import TraceContext

logger = logging.getLogger(__name__)

BITS_PER_BYTE = 8
BITS_PER_MEGABIT = 1e6

# Tick times are rounded to whole nanoseconds
TICK_RESOLUTION_DIGITS = 9


@dataclass(frozen=True)
class MetricsSnapshot:
    """What a sampler tick sees of the flow at one instant."""

    timestamp: float
    total_received_bytes: int
    cwnd: float  # packets
    rtt: float  # seconds

    @classmethod
    def capture(cls, context: TraceContext) -> MetricsSnapshot:
        return cls(
            timestamp=context.now,
            total_received_bytes=context.counters.received_bytes,
            cwnd=context.state.cwnd,
            rtt=context.state.rtt,
        )


class _PeriodicTask(ABC):
    """Runs `_on_timer` every `period` seconds of simulation time once started.

    Tick n fires at `first + n * period`, rounded to the nanosecond.
    """

    def __init__(self, context: TraceContext, period: float) -> None:
        self._context = context
        self._period = period
        self._pending: Event | None = None
        self._first: float = 0.0
        self._index: int = 0

    @property
    def period(self) -> float:
        return self._period

    @property
    def running(self) -> bool:
        return self._pending is not None

    def start(self, at: float | None = None) -> None:
        if self._pending is not None:
            return
        first = self._context.config.sample_start if at is None else at
        self._first = max(first, self._context.now)
        self._index = 0
        self._pending = self._context.simulator.schedule_at(self._first, self._fire)

    def stop(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _next_tick(self) -> float:
        self._index += 1
        return round(self._first + self._index * self._period, TICK_RESOLUTION_DIGITS)

    def _fire(self) -> None:
        self._on_timer()
        self._pending = self._context.simulator.schedule_at(self._next_tick(), self._fire)

    @abstractmethod
    def _on_timer(self) -> None: ...


class MetricSampler(_PeriodicTask):
    """Emits throughput, RTT and cwnd samples at a fixed period.

    Throughput is the received-byte delta since the previous tick, converted
    to megabits per second over the elapsed interval. RTT (ms) and cwnd
    (packets) are whatever CongestionState last held; before the hooks are
    attached they are zero, meaning "not yet observed".
    """

    def __init__(
        self,
        context: TraceContext,
        cwnd: MetricStream,
        rtt: MetricStream,
        throughput: MetricStream,
        period: float | None = None,
    ) -> None:
        super().__init__(context, period if period is not None else context.config.sample_period)
        self._cwnd = cwnd
        self._rtt = rtt
        self._throughput = throughput
        self._last_total_rx = context.counters.received_bytes
        self._last_tick_time = context.now
        self.ticks = 0
        self.flagged = 0

    def tick(self, snapshot: MetricsSnapshot) -> None:
        timestamp = snapshot.timestamp
        throughput = self._throughput_mbps(snapshot)

        self._last_total_rx = snapshot.total_received_bytes
        self._last_tick_time = timestamp
        self.ticks += 1

        self._throughput.append(timestamp, throughput)
        self._rtt.append(timestamp, snapshot.rtt * 1000.0)
        self._cwnd.append(timestamp, snapshot.cwnd)

    def _throughput_mbps(self, snapshot: MetricsSnapshot) -> float:
        delta_bytes = snapshot.total_received_bytes - self._last_total_rx
        elapsed = snapshot.timestamp - self._last_tick_time
        if elapsed <= 0:
            return 0.0

        throughput = delta_bytes * BITS_PER_BYTE / BITS_PER_MEGABIT / elapsed
        if throughput < 0:
            self.flagged += 1
            logger.warning(
                "flow %s: received byte counter went backwards at t=%.3f "
                "(throughput %.6f Mbps), writing 0",
                self._context.flow_id,
                snapshot.timestamp,
                throughput,
            )
            return 0.0
        return throughput

    def _on_timer(self) -> None:
        self.tick(MetricsSnapshot.capture(self._context))


class PacketLossSampler(_PeriodicTask):
    """Emits the cumulative loss percentage at a fixed period."""

    def __init__(
        self,
        context: TraceContext,
        packetloss: MetricStream,
        estimator: LossEstimator | None = None,
        period: float | None = None,
    ) -> None:
        super().__init__(
            context, period if period is not None else context.config.loss_sample_period
        )
        self._packetloss = packetloss
        self._estimator = estimator or estimator_for(context.config)
        self.ticks = 0
        self.flagged = 0

    @property
    def estimator(self) -> LossEstimator:
        return self._estimator

    def tick(self) -> None:
        estimate = self._estimator.estimate(self._context.counters)
        if estimate.flagged:
            self.flagged += 1
            logger.warning(
                "flow %s: packet loss %.3f%% out of range at t=%.3f (%s accounting), "
                "writing %.1f%%",
                self._context.flow_id,
                estimate.raw_percent,
                self._context.now,
                self._estimator.strategy.value,
                estimate.percent,
            )

        self.ticks += 1
        self._packetloss.append(self._context.now, estimate.percent)

    def _on_timer(self) -> None:
        self.tick()
