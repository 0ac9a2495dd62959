"""Exceptions raised by the instrumentation pipeline."""

from __future__ import annotations


class FlowTraceError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(FlowTraceError, ValueError):
    """Invalid configuration value."""


class SinkOpenError(FlowTraceError):
    """An output sink could not be created. Fatal at setup time."""

    def __init__(self, path: object, reason: str) -> None:
        super().__init__(f"Cannot open output sink {path}: {reason}")
        self.path = path


class CapabilityMismatchError(FlowTraceError):
    """The socket behind an application cannot report cwnd/RTT changes."""

    def __init__(self, socket: object) -> None:
        super().__init__(
            f"Socket {type(socket).__name__} does not support congestion window / RTT "
            "change notification (protocol or socket type mismatch)"
        )
        self.socket = socket


class AttachmentTimeoutError(FlowTraceError):
    """A flow ended without its congestion hooks ever being attached."""


class StreamOrderError(FlowTraceError, ValueError):
    """A sample was appended with a timestamp earlier than the previous one."""


class StreamClosedError(FlowTraceError):
    """A sample was appended to a stream whose sink is already closed."""
