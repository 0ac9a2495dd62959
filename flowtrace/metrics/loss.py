"""Packet loss estimation from cumulative send/receive counters."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, NamedTuple

from flowtrace.config import LossStrategy

if TYPE_CHECKING:
    from flowtrace.config import InstrumentationConfig
    from flowtrace.trace.state import Counters

logger = logging.getLogger(__name__)


class LossEstimate(NamedTuple):
    """A loss percentage and whether it had to be pulled back into [0, 100]."""

    percent: float
    raw_percent: float
    flagged: bool


class LossEstimator(ABC):
    """One accounting rule for `(sent - received) / sent * 100`."""

    strategy: LossStrategy

    @abstractmethod
    def sent_and_received(self, counters: Counters) -> tuple[float, float]: ...

    def raw_percent(self, counters: Counters) -> float:
        sent, received = self.sent_and_received(counters)
        if sent <= 0:
            return 0.0
        return (sent - received) * 100.0 / sent

    def estimate(self, counters: Counters) -> LossEstimate:
        return clamp_loss(self.raw_percent(counters))


class EventCountLossEstimator(LossEstimator):
    """Counts one send callback and one receive callback per packet."""

    strategy = LossStrategy.EVENT_COUNT

    def sent_and_received(self, counters: Counters) -> tuple[float, float]:
        return counters.sent, counters.received


class ByteAccountedLossEstimator(LossEstimator):
    """Compares cumulative payload bytes, independent of packet sizes."""

    strategy = LossStrategy.BYTE_ACCOUNTED

    def sent_and_received(self, counters: Counters) -> tuple[float, float]:
        return counters.sent_bytes, counters.received_bytes


class NominalPacketSizeLossEstimator(LossEstimator):
    """Legacy estimate: received packets = received bytes // nominal size.

    Miscounts whenever payload sizes vary or packets coalesce, and can report
    more packets received than sent. Kept to reproduce historical series;
    out-of-range results are clamped and flagged like any other estimate.
    """

    strategy = LossStrategy.NOMINAL_PACKET_SIZE

    def __init__(self, nominal_packet_size: int) -> None:
        self.nominal_packet_size = nominal_packet_size

    def sent_and_received(self, counters: Counters) -> tuple[float, float]:
        return counters.sent, counters.received_bytes // self.nominal_packet_size


def clamp_loss(raw_percent: float) -> LossEstimate:
    if 0.0 <= raw_percent <= 100.0:
        return LossEstimate(raw_percent, raw_percent, flagged=False)
    return LossEstimate(min(max(raw_percent, 0.0), 100.0), raw_percent, flagged=True)


def estimator_for(config: InstrumentationConfig) -> LossEstimator:
    match config.loss_strategy:
        case LossStrategy.EVENT_COUNT:
            return EventCountLossEstimator()
        case LossStrategy.BYTE_ACCOUNTED:
            return ByteAccountedLossEstimator()
        case LossStrategy.NOMINAL_PACKET_SIZE:
            logger.warning(
                "nominal packet size loss accounting can produce out-of-range values; "
                "prefer %s",
                LossStrategy.EVENT_COUNT.value,
            )
            return NominalPacketSizeLossEstimator(config.nominal_packet_size)
