"""Transport sockets of the reference host simulation."""

from __future__ import annotations

from collections.abc import Callable
from itertools import count
from typing import TYPE_CHECKING

from flowtrace.host.link import Segment
from flowtrace.host.traced import TracedValue

if TYPE_CHECKING:
    from flowtrace.core.simulator import Simulator
    from flowtrace.host.congestion import WindowLaw
    from flowtrace.host.link import BottleneckLink
    from flowtrace.trace.observer import CongestionObserver

type SegmentCallback = Callable[[Segment], None]
type DeliveryCallback = Callable[[Segment, object], None]

RTT_GAIN = 0.125


class StreamSocket:
    """Window-limited bulk sender over one bottleneck link.

    Exposes `congestion_window` (bytes) and `rtt` (smoothed, seconds) as
    traced values, and supports congestion trace subscription. Losses are
    detected one smoothed RTT after the drop and cause at most one window
    reduction per round trip.
    """

    def __init__(
        self,
        simulator: Simulator,
        link: BottleneckLink,
        window: WindowLaw,
        deliver: DeliveryCallback,
        on_tx: SegmentCallback,
        reverse_delay: float,
        address: object = None,
    ) -> None:
        self._simulator = simulator
        self._link = link
        self._window = window
        self._deliver = deliver
        self._on_tx = on_tx
        self._reverse_delay = reverse_delay
        self._address = address
        self._segment_size = window.segment_size

        self.congestion_window = TracedValue(window.cwnd)
        self.rtt = TracedValue(0.0)

        self._seq = count()
        self._open = False
        self._in_flight: int = 0
        self._delivered: int = 0
        self._pending_retransmissions: int = 0
        self._last_reduction: float = -1.0

        self.retransmissions: int = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def delivered(self) -> int:
        return self._delivered

    def subscribe_congestion(self, observer: CongestionObserver) -> None:
        self.congestion_window.connect(observer.on_cwnd_changed)
        self.rtt.connect(observer.on_rtt_changed)

    def start(self) -> None:
        self._open = True
        self._pump()

    def close(self) -> None:
        self._open = False

    def _pump(self) -> None:
        while (
            self._open
            and self._in_flight + self._segment_size <= self.congestion_window.value
        ):
            self._send_segment()

    def _send_segment(self) -> None:
        retransmission = self._pending_retransmissions > 0
        if retransmission:
            self._pending_retransmissions -= 1
            self.retransmissions += 1

        segment = Segment(
            seq=next(self._seq),
            size_bytes=self._segment_size,
            sent_at=self._simulator.current_time,
            delivered_at_send=self._delivered,
            retransmission=retransmission,
        )
        self._in_flight += segment.size_bytes
        self._on_tx(segment)

        if not self._link.send(segment, self._on_arrival):
            detection = self.rtt.value or 2 * (self._link.delay + self._reverse_delay)
            self._simulator.schedule_after(detection, self._on_loss, segment)

    def _on_arrival(self, segment: Segment) -> None:
        self._deliver(segment, self._address)
        self._simulator.schedule_after(self._reverse_delay, self._on_ack, segment)

    def _on_ack(self, segment: Segment) -> None:
        now = self._simulator.current_time
        self._in_flight -= segment.size_bytes
        self._delivered += segment.size_bytes

        sample = now - segment.sent_at
        srtt = self.rtt.value
        self.rtt.set(sample if srtt == 0 else srtt + RTT_GAIN * (sample - srtt))

        elapsed = now - segment.sent_at
        rate = (self._delivered - segment.delivered_at_send) / elapsed if elapsed > 0 else 0.0
        self._window.on_ack(now, segment.size_bytes, sample, rate)
        self.congestion_window.set(self._window.cwnd)
        self._pump()

    def _on_loss(self, segment: Segment) -> None:
        self._in_flight -= segment.size_bytes
        self._pending_retransmissions += 1

        if segment.sent_at > self._last_reduction:
            self._last_reduction = self._simulator.current_time
            self._window.on_loss(self._last_reduction)
            self.congestion_window.set(self._window.cwnd)
        self._pump()


class DatagramSocket:
    """Constant-rate sender with no congestion state to observe."""

    def __init__(
        self,
        simulator: Simulator,
        link: BottleneckLink,
        deliver: DeliveryCallback,
        on_tx: SegmentCallback,
        rate_bps: float,
        packet_size: int = 1500,
        address: object = None,
    ) -> None:
        self._simulator = simulator
        self._link = link
        self._deliver = deliver
        self._on_tx = on_tx
        self._interval = packet_size * 8 / rate_bps
        self._packet_size = packet_size
        self._address = address
        self._seq = count()
        self._open = False

    def start(self) -> None:
        self._open = True
        self._send()

    def close(self) -> None:
        self._open = False

    def _send(self) -> None:
        if not self._open:
            return
        segment = Segment(
            seq=next(self._seq),
            size_bytes=self._packet_size,
            sent_at=self._simulator.current_time,
        )
        self._on_tx(segment)
        self._link.send(segment, self._on_arrival)
        self._simulator.schedule_after(self._interval, self._send)

    def _on_arrival(self, segment: Segment) -> None:
        self._deliver(segment, self._address)
