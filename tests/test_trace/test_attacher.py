"""Tests for retry-based congestion hook attachment."""

import logging

import pytest
from conftest import FakeApplication, FakeCongestionSocket, PlainSocket, make_context

from flowtrace.core.simulator import Simulator
from flowtrace.errors import CapabilityMismatchError
from flowtrace.trace.attacher import AttachmentState, HookAttacher
from flowtrace.trace.state import TraceContext


def _socket_appears(simulator: Simulator, app: FakeApplication, at: float) -> FakeCongestionSocket:
    socket = FakeCongestionSocket()

    def assign() -> None:
        app.socket = socket

    simulator.schedule_at(at, assign)
    return socket


class TestHookAttacher:
    def test_attaches_immediately_when_socket_exists(self, context: TraceContext) -> None:
        socket = FakeCongestionSocket()
        attacher = HookAttacher(context)

        request = attacher.attach(FakeApplication(socket))

        assert request.state is AttachmentState.ATTACHED
        assert request.attempts == 1
        assert request.retries == 0
        assert request.attached_at == 0.0
        assert len(socket.observers) == 1

    def test_retries_until_socket_appears(
        self, simulator: Simulator, context: TraceContext, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Socket available at 0.25s with 0.1s retries: three misses, attach at the 0.3s poll."""
        app = FakeApplication()
        socket = _socket_appears(simulator, app, 0.25)
        attacher = HookAttacher(context, retry_delay=0.1)

        with caplog.at_level(logging.INFO, logger="flowtrace.trace.attacher"):
            request = attacher.attach(app)
            simulator.run(until=1.0)

        retry_lines = [r for r in caplog.records if "socket not available yet" in r.getMessage()]
        assert len(retry_lines) == 3
        assert request.retries == 3
        assert request.attempts == 4
        assert request.state is AttachmentState.ATTACHED
        assert request.attached_at == pytest.approx(0.3)
        assert len(socket.observers) == 1

    def test_notifications_update_congestion_state(self, context: TraceContext) -> None:
        socket = FakeCongestionSocket()
        HookAttacher(context).attach(FakeApplication(socket))

        socket.emit_cwnd(0, 15000)
        socket.emit_rtt(0.0, 0.042)

        assert context.state.cwnd == 10.0
        assert context.state.rtt == 0.042
        assert context.state.observed

    def test_attach_is_idempotent_for_same_app(
        self, simulator: Simulator, context: TraceContext
    ) -> None:
        app = FakeApplication()
        socket = _socket_appears(simulator, app, 0.15)
        attacher = HookAttacher(context, retry_delay=0.1)

        first = attacher.attach(app)
        second = attacher.attach(app)
        simulator.run(until=1.0)
        third = attacher.attach(app)

        assert first is second is third
        assert len(socket.observers) == 1
        # One polling chain only: attempts at 0.0, 0.1 and 0.2
        assert first.attempts == 3

    def test_attach_to_different_app_raises(self, context: TraceContext) -> None:
        attacher = HookAttacher(context)
        attacher.attach(FakeApplication(FakeCongestionSocket()))

        with pytest.raises(ValueError, match="another application"):
            attacher.attach(FakeApplication(FakeCongestionSocket()))

    def test_socket_without_capability_raises(self, context: TraceContext) -> None:
        attacher = HookAttacher(context)

        with pytest.raises(CapabilityMismatchError, match="PlainSocket"):
            attacher.attach(FakeApplication(PlainSocket()))

    def test_capability_mismatch_aborts_run(
        self, simulator: Simulator, context: TraceContext
    ) -> None:
        app = FakeApplication()
        attacher = HookAttacher(context)
        simulator.schedule_at(0.2, setattr, app, "socket", PlainSocket())
        attacher.attach(app)

        with pytest.raises(CapabilityMismatchError):
            simulator.run(until=1.0)

    def test_socket_never_appears_ends_cleanly(
        self, simulator: Simulator, context: TraceContext, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Stop time reached while still retrying: no crash, state stays zero."""
        attacher = HookAttacher(context, retry_delay=0.1)
        request = attacher.attach(FakeApplication())

        simulator.run(until=2.0)
        assert request.state is AttachmentState.PENDING

        with caplog.at_level(logging.WARNING, logger="flowtrace.trace.attacher"):
            attacher.abandon()

        assert request.state is AttachmentState.TIMED_OUT
        assert context.state.cwnd == 0.0
        assert context.state.rtt == 0.0
        assert not context.state.observed
        assert any("hooks not attached" in r.getMessage() for r in caplog.records)

    def test_abandoned_request_ignores_later_socket(
        self, simulator: Simulator, context: TraceContext
    ) -> None:
        app = FakeApplication()
        socket = _socket_appears(simulator, app, 0.5)
        attacher = HookAttacher(context, retry_delay=0.1)
        request = attacher.attach(app)

        simulator.run(until=0.25)
        attacher.abandon()
        attempts = request.attempts
        simulator.run(until=1.0)

        assert request.state is AttachmentState.TIMED_OUT
        assert request.attempts == attempts
        assert socket.observers == []

    def test_abandon_keeps_attached_state(self, context: TraceContext) -> None:
        attacher = HookAttacher(context)
        request = attacher.attach(FakeApplication(FakeCongestionSocket()))

        attacher.abandon()

        assert request.state is AttachmentState.ATTACHED

    def test_abandon_without_request_is_noop(self, context: TraceContext) -> None:
        attacher = HookAttacher(context)

        attacher.abandon()

        assert attacher.request is None
        assert attacher.state is None

    def test_max_attempts_bounds_polling(self, simulator: Simulator) -> None:
        context = make_context(simulator, attach_retry_delay=0.1, attach_max_attempts=5)
        attacher = HookAttacher(context)
        request = attacher.attach(FakeApplication())

        simulator.run(until=10.0)

        assert request.state is AttachmentState.TIMED_OUT
        assert request.attempts == 5
        assert request.retries == 4
        assert simulator.pending_event_count() == 0

    def test_deadline_bounds_polling(self, simulator: Simulator) -> None:
        attacher = HookAttacher(
            make_context(simulator, attach_max_attempts=None),
            retry_delay=0.1,
            deadline=0.35,
        )
        request = attacher.attach(FakeApplication())

        simulator.run(until=10.0)

        assert request.state is AttachmentState.TIMED_OUT
        # Polls at 0.0, 0.1, 0.2 and 0.3; a poll at 0.4 would pass the deadline
        assert request.attempts == 4

    def test_attach_later_starts_polling_at_delay(
        self, simulator: Simulator, context: TraceContext
    ) -> None:
        socket = FakeCongestionSocket()
        attacher = HookAttacher(context)

        attacher.attach_later(FakeApplication(socket), 0.1)
        assert attacher.request is None

        simulator.run(until=0.1)

        assert attacher.state is AttachmentState.ATTACHED
        assert attacher.request is not None
        assert attacher.request.attached_at == pytest.approx(0.1)

    def test_retry_delay_defaults_from_config(self, simulator: Simulator) -> None:
        context = make_context(simulator, attach_retry_delay=0.2)
        app = FakeApplication()
        _socket_appears(simulator, app, 0.3)
        request = HookAttacher(context).attach(app)

        simulator.run(until=1.0)

        assert request.attached_at == pytest.approx(0.4)
        assert request.retries == 2
