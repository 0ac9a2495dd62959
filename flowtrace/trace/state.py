"""Per-run trace state: congestion snapshot, packet counters and their context."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from flowtrace.config import InstrumentationConfig
    from flowtrace.core.simulator import Simulator
    from flowtrace.core.types import FlowId, ProtocolName


class SizedPacket(Protocol):
    @property
    def size_bytes(self) -> int: ...


@dataclass
class CongestionState:
    """Latest congestion window and RTT observed for one flow.

    Written only by hook callbacks; everything else reads it. Both writes and
    reads happen inside the simulator's serialized event loop, so readers see
    whatever was last written without any staleness guarantee. Zero means
    "not yet observed".
    """

    cwnd: float = 0.0  # packets
    rtt: float = 0.0  # seconds
    cwnd_updates: int = 0
    rtt_updates: int = 0

    @property
    def observed(self) -> bool:
        return self.cwnd_updates > 0 or self.rtt_updates > 0


@dataclass
class Counters:
    """Cumulative send/receive counters, one increment per observed packet."""

    sent: int = 0
    received: int = 0
    sent_bytes: int = 0
    received_bytes: int = 0

    def on_send(self, packet: SizedPacket) -> None:
        self.sent += 1
        self.sent_bytes += packet.size_bytes

    def on_receive(self, packet: SizedPacket, address: object = None) -> None:
        self.received += 1
        self.received_bytes += packet.size_bytes


@dataclass
class TraceContext:
    """Everything one protocol run's hooks and samplers share.

    Replaces process-wide trace globals: each run builds its own context and
    hands it to the attacher, the samplers and the counter hooks.
    """

    simulator: Simulator
    config: InstrumentationConfig
    protocol: ProtocolName
    flow_id: FlowId
    state: CongestionState = field(default_factory=CongestionState)
    counters: Counters = field(default_factory=Counters)

    @property
    def now(self) -> float:
        return self.simulator.current_time
