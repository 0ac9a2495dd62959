"""Tests for run configuration and TOML loading."""

from pathlib import Path

import pytest

from flowtrace.config import (
    InstrumentationConfig,
    LossStrategy,
    SimulationConfig,
    TopologyKind,
)
from flowtrace.errors import ConfigError


class TestInstrumentationConfig:
    def test_defaults(self) -> None:
        config = InstrumentationConfig()

        assert config.segment_size == 1500
        assert config.sample_start == 1.0
        assert config.attach_retry_delay == 0.1
        assert config.attach_max_attempts == 200
        assert config.loss_strategy is LossStrategy.EVENT_COUNT
        assert not config.require_attachment

    def test_strategy_parsed_from_string(self) -> None:
        config = InstrumentationConfig(loss_strategy="nominal-packet-size")  # type: ignore[arg-type]

        assert config.loss_strategy is LossStrategy.NOMINAL_PACKET_SIZE

    def test_unknown_strategy(self) -> None:
        with pytest.raises(ConfigError, match="event-count"):
            InstrumentationConfig(loss_strategy="sequence")  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"segment_size": 0},
            {"sample_period": 0.0},
            {"loss_sample_period": -1.0},
            {"attach_retry_delay": 0.0},
            {"sample_start": -0.5},
            {"attach_max_attempts": 0},
            {"nominal_packet_size": 0},
        ],
    )
    def test_invalid_values(self, overrides: dict[str, object]) -> None:
        with pytest.raises(ConfigError):
            InstrumentationConfig(**overrides)  # type: ignore[arg-type]

    def test_unbounded_attempts_allowed(self) -> None:
        assert InstrumentationConfig(attach_max_attempts=None).attach_max_attempts is None

    def test_is_frozen(self) -> None:
        config = InstrumentationConfig()

        with pytest.raises(AttributeError):
            config.segment_size = 1000  # type: ignore[misc]


class TestSimulationConfig:
    def test_defaults(self) -> None:
        config = SimulationConfig()

        assert config.protocol == "tcpcubic"
        assert config.topology is TopologyKind.POINT_TO_POINT
        assert config.duration == 100.0
        assert config.seed == 42

    def test_topology_parsed_from_string(self) -> None:
        config = SimulationConfig(topology="ring")  # type: ignore[arg-type]

        assert config.topology is TopologyKind.RING

    def test_unknown_protocol(self) -> None:
        with pytest.raises(ConfigError, match="tcpcubic"):
            SimulationConfig(protocol="reno")

    def test_config_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            SimulationConfig(duration=0.0)

    def test_app_start_within_duration(self) -> None:
        with pytest.raises(ConfigError, match="app_start"):
            SimulationConfig(duration=5.0, app_start=5.0)

    def test_with_protocol_keeps_everything_else(self) -> None:
        config = SimulationConfig(topology=TopologyKind.MESH, seed=7, duration=20.0)

        other = config.with_protocol("quicbbr")

        assert other.protocol == "quicbbr"
        assert other.topology is TopologyKind.MESH
        assert other.seed == 7
        assert other.instrumentation is config.instrumentation

    def test_from_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "run.toml"
        path.write_text(
            """
[simulation]
protocol = "quicbbr"
topology = "bus"
duration = 30.0
seed = 3

[instrumentation]
sample_period = 1.0
loss_sample_period = 1.0
attach_retry_delay = 0.2
loss_strategy = "byte-accounted"
"""
        )

        config = SimulationConfig.from_toml(path)

        assert config.protocol == "quicbbr"
        assert config.topology is TopologyKind.BUS
        assert config.duration == 30.0
        assert config.seed == 3
        assert config.instrumentation.sample_period == 1.0
        assert config.instrumentation.attach_retry_delay == 0.2
        assert config.instrumentation.loss_strategy is LossStrategy.BYTE_ACCOUNTED

    def test_from_dict_without_tables(self) -> None:
        assert SimulationConfig.from_dict({}) == SimulationConfig()

    def test_unknown_keys_rejected(self) -> None:
        with pytest.raises(ConfigError, match="sample_rate"):
            SimulationConfig.from_dict({"instrumentation": {"sample_rate": 1.0}})
