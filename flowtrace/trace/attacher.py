"""Retry-based attachment of congestion hooks to lazily created sockets."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from flowtrace.errors import CapabilityMismatchError
from flowtrace.trace.observer import CongestionStateObserver, CongestionTraceSource

if TYPE_CHECKING:
    from flowtrace.trace.observer import ApplicationHandle, CongestionObserver
    from flowtrace.trace.state import TraceContext

logger = logging.getLogger(__name__)


class AttachmentState(Enum):
    PENDING = auto()  # Socket not seen yet, polling
    ATTACHED = auto()  # Subscribed exactly once
    TIMED_OUT = auto()  # Gave up: attempts, deadline or end of run


@dataclass
class TraceAttachmentRequest:
    """Attachment progress for one application."""

    target: ApplicationHandle
    attempts: int = 0
    retries: int = 0
    state: AttachmentState = AttachmentState.PENDING
    attached_at: float | None = None

    @property
    def pending(self) -> bool:
        return self.state is AttachmentState.PENDING


class HookAttacher:
    """Polls an application for its socket and subscribes to it once.

    Each attempt either finds no socket and reschedules itself after
    `retry_delay`, or finds one and subscribes the observer. The polling is
    bounded by `max_attempts` and an absolute `deadline`; exhausting either
    moves the request to TIMED_OUT instead of retrying forever.
    """

    def __init__(
        self,
        context: TraceContext,
        observer: CongestionObserver | None = None,
        retry_delay: float | None = None,
        max_attempts: int | None = None,
        deadline: float | None = None,
    ) -> None:
        config = context.config
        self._context = context
        self._simulator = context.simulator
        self._observer = observer or CongestionStateObserver(context.state, config.segment_size)
        self._retry_delay = retry_delay if retry_delay is not None else config.attach_retry_delay
        self._max_attempts = max_attempts if max_attempts is not None else config.attach_max_attempts
        self._deadline = deadline if deadline is not None else config.attach_deadline
        self._request: TraceAttachmentRequest | None = None

    @property
    def request(self) -> TraceAttachmentRequest | None:
        return self._request

    @property
    def state(self) -> AttachmentState | None:
        return self._request.state if self._request is not None else None

    def attach(self, app: ApplicationHandle) -> TraceAttachmentRequest:
        """Start (or join) the attachment of hooks to `app`'s socket.

        Calling again with the same application returns the existing request
        without scheduling a second polling chain or subscribing twice.
        """
        if self._request is not None:
            if self._request.target is app:
                return self._request
            raise ValueError(
                f"Attacher for flow {self._context.flow_id} is already bound to another application"
            )

        self._request = TraceAttachmentRequest(target=app)
        self._try_attach()
        return self._request

    def attach_later(self, app: ApplicationHandle, delay: float) -> None:
        self._simulator.schedule_after(delay, self.attach, app)

    def abandon(self) -> None:
        """Give up on a still-pending request, e.g. at simulation teardown."""
        request = self._request
        if request is None or not request.pending:
            return
        request.state = AttachmentState.TIMED_OUT
        logger.warning(
            "flow %s: socket never appeared after %d attempts, hooks not attached",
            self._context.flow_id,
            request.attempts,
        )

    def _try_attach(self) -> None:
        request = self._request
        if request is None or not request.pending:
            return

        request.attempts += 1
        socket = request.target.socket

        if socket is None:
            if self._exhausted(request):
                request.state = AttachmentState.TIMED_OUT
                logger.warning(
                    "flow %s: giving up on socket after %d attempts at t=%.3f",
                    self._context.flow_id,
                    request.attempts,
                    self._simulator.current_time,
                )
                return

            request.retries += 1
            logger.info(
                "flow %s: socket not available yet, retrying in %.3fs (attempt %d)",
                self._context.flow_id,
                self._retry_delay,
                request.attempts,
            )
            self._simulator.schedule_after(self._retry_delay, self._try_attach)
            return

        if not isinstance(socket, CongestionTraceSource):
            raise CapabilityMismatchError(socket)

        socket.subscribe_congestion(self._observer)
        request.state = AttachmentState.ATTACHED
        request.attached_at = self._simulator.current_time
        logger.info(
            "flow %s: attached cwnd and RTT traces at t=%.3f after %d retries",
            self._context.flow_id,
            request.attached_at,
            request.retries,
        )

    def _exhausted(self, request: TraceAttachmentRequest) -> bool:
        if self._max_attempts is not None and request.attempts >= self._max_attempts:
            return True
        next_attempt = self._simulator.current_time + self._retry_delay
        return self._deadline is not None and next_attempt > self._deadline
