"""Shared pytest fixtures for flowtrace tests."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from flowtrace.config import InstrumentationConfig
from flowtrace.core.simulator import Simulator
from flowtrace.core.types import FlowId, ProtocolName
from flowtrace.trace.observer import CongestionObserver
from flowtrace.trace.state import TraceContext


@dataclass
class Packet:
    size_bytes: int = 1500


class FakeCongestionSocket:
    """Socket exposing the congestion trace capability; records subscribers."""

    def __init__(self) -> None:
        self.observers: list[CongestionObserver] = []

    def subscribe_congestion(self, observer: CongestionObserver) -> None:
        self.observers.append(observer)

    def emit_cwnd(self, old: float, new: float) -> None:
        for observer in self.observers:
            observer.on_cwnd_changed(old, new)

    def emit_rtt(self, old: float, new: float) -> None:
        for observer in self.observers:
            observer.on_rtt_changed(old, new)


class PlainSocket:
    """Socket without any congestion trace capability."""


class FakeApplication:
    """Application whose socket is assigned by the test at a chosen time."""

    def __init__(self, socket: object | None = None) -> None:
        self.socket = socket


@pytest.fixture
def simulator() -> Simulator:
    """Create a fresh simulator with default seed."""
    return Simulator(seed=42)


@pytest.fixture
def instrumentation() -> InstrumentationConfig:
    return InstrumentationConfig()


@pytest.fixture
def context(simulator: Simulator, instrumentation: InstrumentationConfig) -> TraceContext:
    """Per-run trace context for a tcpcubic flow."""
    return TraceContext(
        simulator=simulator,
        config=instrumentation,
        protocol=ProtocolName("tcpcubic"),
        flow_id=FlowId("tcpcubic/test"),
    )


def make_context(simulator: Simulator, **overrides: object) -> TraceContext:
    """Trace context with instrumentation overrides."""
    return TraceContext(
        simulator=simulator,
        config=InstrumentationConfig(**overrides),  # type: ignore[arg-type]
        protocol=ProtocolName("tcpcubic"),
        flow_id=FlowId("tcpcubic/test"),
    )
