"""Traffic source and sink applications."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from flowtrace.core.simulator import Simulator
    from flowtrace.host.link import Segment

type TxCallback = Callable[[Segment], None]
type RxCallback = Callable[[Segment, object], None]


class Socket(Protocol):
    def start(self) -> None: ...

    def close(self) -> None: ...


type SocketFactory = Callable[[TxCallback], Socket]


class BulkSendApplication:
    """Sends as fast as its socket allows between `start` and `stop`.

    The socket only exists once the connection handshake completes, some
    time after the application starts; until then `socket` is None.
    """

    def __init__(
        self,
        simulator: Simulator,
        socket_factory: SocketFactory,
        connect_delay: float,
    ) -> None:
        self._simulator = simulator
        self._socket_factory = socket_factory
        self._connect_delay = connect_delay
        self._socket: Socket | None = None
        self._tx_callbacks: list[TxCallback] = []
        self._running = False

    @property
    def socket(self) -> Socket | None:
        return self._socket

    @property
    def running(self) -> bool:
        return self._running

    def connect_tx(self, callback: TxCallback) -> None:
        self._tx_callbacks.append(callback)

    def start(self, at: float) -> None:
        self._simulator.schedule_at(at, self._start)

    def stop(self, at: float) -> None:
        self._simulator.schedule_at(at, self._stop)

    def _start(self) -> None:
        self._running = True
        self._simulator.schedule_after(self._connect_delay, self._connected)

    def _connected(self) -> None:
        if not self._running:
            return
        self._socket = self._socket_factory(self._notify_tx)
        self._socket.start()

    def _stop(self) -> None:
        self._running = False
        if self._socket is not None:
            self._socket.close()

    def _notify_tx(self, segment: Segment) -> None:
        for callback in self._tx_callbacks:
            callback(segment)


class PacketSink:
    """Accepts packets and keeps the cumulative received byte count."""

    def __init__(self) -> None:
        self.total_rx: int = 0
        self._rx_callbacks: list[RxCallback] = []

    def connect_rx(self, callback: RxCallback) -> None:
        self._rx_callbacks.append(callback)

    def receive(self, segment: Segment, address: object) -> None:
        self.total_rx += segment.size_bytes
        for callback in self._rx_callbacks:
            callback(segment, address)
