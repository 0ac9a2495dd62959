"""Tests for packet loss estimation strategies."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from flowtrace.config import InstrumentationConfig, LossStrategy
from flowtrace.metrics.loss import (
    ByteAccountedLossEstimator,
    EventCountLossEstimator,
    NominalPacketSizeLossEstimator,
    clamp_loss,
    estimator_for,
)
from flowtrace.trace.state import Counters


class TestEventCountLossEstimator:
    def test_five_percent(self) -> None:
        counters = Counters(sent=100, received=95)

        estimate = EventCountLossEstimator().estimate(counters)

        assert estimate.percent == 5.0
        assert not estimate.flagged

    def test_nothing_sent_is_zero(self) -> None:
        assert EventCountLossEstimator().estimate(Counters()).percent == 0.0

    def test_everything_lost(self) -> None:
        assert EventCountLossEstimator().estimate(Counters(sent=10)).percent == 100.0

    @given(
        sent=st.integers(min_value=0, max_value=10**9),
        data=st.data(),
    )
    @settings(max_examples=100)
    def test_in_range_when_received_le_sent(self, sent: int, data: st.DataObject) -> None:
        received = data.draw(st.integers(min_value=0, max_value=sent))

        estimate = EventCountLossEstimator().estimate(Counters(sent=sent, received=received))

        assert 0.0 <= estimate.percent <= 100.0
        assert not estimate.flagged


class TestByteAccountedLossEstimator:
    def test_uses_bytes(self) -> None:
        counters = Counters(sent=10, received=10, sent_bytes=10_000, received_bytes=7_500)

        assert ByteAccountedLossEstimator().estimate(counters).percent == 25.0


class TestNominalPacketSizeLossEstimator:
    def test_divides_received_bytes(self) -> None:
        counters = Counters(sent=100, received=100, received_bytes=90 * 1500 + 700)

        estimate = NominalPacketSizeLossEstimator(1500).estimate(counters)

        assert estimate.percent == 10.0

    def test_coalesced_bytes_clamped_and_flagged(self) -> None:
        """More nominal packets than sends would be negative loss."""
        counters = Counters(sent=10, received=10, received_bytes=12 * 1500)

        estimate = NominalPacketSizeLossEstimator(1500).estimate(counters)

        assert estimate.raw_percent == -20.0
        assert estimate.percent == 0.0
        assert estimate.flagged


class TestClampLoss:
    @pytest.mark.parametrize(
        ("raw", "expected", "flagged"),
        [
            (0.0, 0.0, False),
            (42.5, 42.5, False),
            (100.0, 100.0, False),
            (-3.0, 0.0, True),
            (130.0, 100.0, True),
        ],
    )
    def test_clamp(self, raw: float, expected: float, flagged: bool) -> None:
        estimate = clamp_loss(raw)

        assert estimate.percent == expected
        assert estimate.raw_percent == raw
        assert estimate.flagged is flagged

    @given(raw=st.floats(allow_nan=False))
    @settings(max_examples=100)
    def test_always_in_range(self, raw: float) -> None:
        assert 0.0 <= clamp_loss(raw).percent <= 100.0


class TestEstimatorFor:
    @pytest.mark.parametrize(
        ("strategy", "expected"),
        [
            (LossStrategy.EVENT_COUNT, EventCountLossEstimator),
            (LossStrategy.BYTE_ACCOUNTED, ByteAccountedLossEstimator),
            (LossStrategy.NOMINAL_PACKET_SIZE, NominalPacketSizeLossEstimator),
        ],
    )
    def test_selects_by_config(self, strategy: LossStrategy, expected: type) -> None:
        estimator = estimator_for(InstrumentationConfig(loss_strategy=strategy))

        assert isinstance(estimator, expected)
        assert estimator.strategy is strategy

    def test_default_is_event_count(self) -> None:
        assert isinstance(estimator_for(InstrumentationConfig()), EventCountLossEstimator)

    def test_nominal_size_from_config(self) -> None:
        config = InstrumentationConfig(
            loss_strategy=LossStrategy.NOMINAL_PACKET_SIZE, nominal_packet_size=1200
        )

        estimator = estimator_for(config)

        assert isinstance(estimator, NominalPacketSizeLossEstimator)
        assert estimator.nominal_packet_size == 1200
