"""Observer and capability interfaces between sockets and trace state."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from flowtrace.trace.state import CongestionState


class CongestionObserver(Protocol):
    """Receives congestion window (bytes) and RTT (seconds) changes."""

    def on_cwnd_changed(self, old: float, new: float) -> None: ...

    def on_rtt_changed(self, old: float, new: float) -> None: ...


@runtime_checkable
class CongestionTraceSource(Protocol):
    """Capability of a socket that can report cwnd and RTT changes."""

    def subscribe_congestion(self, observer: CongestionObserver) -> None: ...


class ApplicationHandle(Protocol):
    """An application whose transport socket may not exist yet."""

    @property
    def socket(self) -> object | None: ...


class CongestionStateObserver:
    """Writes socket notifications into a CongestionState in stream units."""

    def __init__(self, state: CongestionState, segment_size: int) -> None:
        self._state = state
        self._segment_size = segment_size

    def on_cwnd_changed(self, old: float, new: float) -> None:
        self._state.cwnd = new / self._segment_size
        self._state.cwnd_updates += 1

    def on_rtt_changed(self, old: float, new: float) -> None:
        self._state.rtt = new
        self._state.rtt_updates += 1
