"""Congestion-control instrumentation for discrete-event network simulations."""

from flowtrace.config import (
    PROTOCOLS,
    InstrumentationConfig,
    LossStrategy,
    SimulationConfig,
    TopologyKind,
)
from flowtrace.core import Simulator
from flowtrace.errors import (
    AttachmentTimeoutError,
    CapabilityMismatchError,
    ConfigError,
    FlowTraceError,
    SinkOpenError,
    StreamClosedError,
    StreamOrderError,
)
from flowtrace.metrics import FlowResults, MetricSampler, MetricStream, PacketLossSampler
from flowtrace.trace import CongestionState, Counters, HookAttacher, TraceContext

__all__ = [
    "PROTOCOLS",
    "AttachmentTimeoutError",
    "CapabilityMismatchError",
    "ConfigError",
    "CongestionState",
    "Counters",
    "FlowResults",
    "FlowTraceError",
    "HookAttacher",
    "InstrumentationConfig",
    "LossStrategy",
    "MetricSampler",
    "MetricStream",
    "PacketLossSampler",
    "SimulationConfig",
    "Simulator",
    "SinkOpenError",
    "StreamClosedError",
    "StreamOrderError",
    "TopologyKind",
    "TraceContext",
]
