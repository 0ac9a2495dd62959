"""Core simulation infrastructure."""

from flowtrace.core.events import Event
from flowtrace.core.simulator import Simulator
from flowtrace.core.types import METRIC_NAMES, FlowId, MetricName, ProtocolName

__all__ = [
    "METRIC_NAMES",
    "Event",
    "FlowId",
    "MetricName",
    "ProtocolName",
    "Simulator",
]
