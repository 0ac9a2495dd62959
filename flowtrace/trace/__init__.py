"""Observation hooks: congestion state, packet counters and socket attachment."""

from .attacher import AttachmentState, HookAttacher, TraceAttachmentRequest
from .observer import (
    ApplicationHandle,
    CongestionObserver,
    CongestionStateObserver,
    CongestionTraceSource,
)
from .state import CongestionState, Counters, TraceContext

__all__ = [
    "ApplicationHandle",
    "AttachmentState",
    "CongestionObserver",
    "CongestionState",
    "CongestionStateObserver",
    "CongestionTraceSource",
    "Counters",
    "HookAttacher",
    "TraceAttachmentRequest",
    "TraceContext",
]
