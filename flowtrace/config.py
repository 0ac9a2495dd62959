"""Run configuration."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

from flowtrace.errors import ConfigError

if TYPE_CHECKING:
    from pathlib import Path


class LossStrategy(Enum):
    EVENT_COUNT = "event-count"  # Discrete send/receive callbacks
    BYTE_ACCOUNTED = "byte-accounted"  # Cumulative sent vs received bytes
    NOMINAL_PACKET_SIZE = "nominal-packet-size"  # Legacy: received bytes / fixed size


class TopologyKind(Enum):
    POINT_TO_POINT = "point-to-point"
    STAR = "star"
    BUS = "bus"
    RING = "ring"
    MESH = "mesh"


PROTOCOLS: tuple[str, ...] = ("tcpcubic", "quicbbr")


@dataclass(frozen=True)
class InstrumentationConfig:
    """Sampling and hook-attachment parameters for one monitored flow."""

    # Unit conversion
    segment_size: int = 1500  # bytes per packet for cwnd

    # Sampler cadence (seconds of simulation time)
    sample_period: float = 0.1
    loss_sample_period: float = 0.1
    sample_start: float = 1.0

    # Hook attachment
    attach_start: float = 0.1
    attach_retry_delay: float = 0.1
    attach_max_attempts: int | None = 200
    attach_deadline: float | None = None  # absolute simulation time
    require_attachment: bool = False

    # Packet loss accounting
    loss_strategy: LossStrategy = LossStrategy.EVENT_COUNT
    nominal_packet_size: int = 1500

    def __post_init__(self) -> None:
        if isinstance(self.loss_strategy, str):
            object.__setattr__(self, "loss_strategy", _parse_enum(LossStrategy, self.loss_strategy))

        if self.segment_size <= 0:
            raise ConfigError(f"segment_size must be positive, got {self.segment_size}")
        if self.nominal_packet_size <= 0:
            raise ConfigError(
                f"nominal_packet_size must be positive, got {self.nominal_packet_size}"
            )
        for name in ("sample_period", "loss_sample_period", "attach_retry_delay"):
            value = getattr(self, name)
            if value <= 0:
                raise ConfigError(f"{name} must be positive, got {value}")
        for name in ("sample_start", "attach_start"):
            value = getattr(self, name)
            if value < 0:
                raise ConfigError(f"{name} must not be negative, got {value}")
        if self.attach_max_attempts is not None and self.attach_max_attempts < 1:
            raise ConfigError(
                f"attach_max_attempts must be at least 1, got {self.attach_max_attempts}"
            )


@dataclass(frozen=True)
class SimulationConfig:
    """Configuration for one protocol run on one topology."""

    protocol: str = "tcpcubic"
    topology: TopologyKind = TopologyKind.POINT_TO_POINT

    # Simulation parameters
    seed: int = 42
    duration: float = 100.0
    app_start: float = 0.0

    # Bottleneck queue (drop-tail), in packets
    queue_packets: int = 100

    instrumentation: InstrumentationConfig = field(default_factory=InstrumentationConfig)

    def __post_init__(self) -> None:
        if isinstance(self.topology, str):
            object.__setattr__(self, "topology", _parse_enum(TopologyKind, self.topology))

        if self.protocol not in PROTOCOLS:
            raise ConfigError(
                f"Unknown protocol {self.protocol!r}, expected one of {', '.join(PROTOCOLS)}"
            )
        if self.duration <= 0:
            raise ConfigError(f"duration must be positive, got {self.duration}")
        if self.app_start < 0 or self.app_start >= self.duration:
            raise ConfigError(f"app_start must lie in [0, duration), got {self.app_start}")
        if self.queue_packets < 1:
            raise ConfigError(f"queue_packets must be at least 1, got {self.queue_packets}")

    def with_protocol(self, protocol: str) -> SimulationConfig:
        return replace(self, protocol=protocol)

    @classmethod
    def from_toml(cls, path: Path) -> SimulationConfig:
        import tomllib

        with path.open("rb") as f:
            data = tomllib.load(f)

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SimulationConfig:
        simulation = dict(data.get("simulation", {}))
        instrumentation = dict(data.get("instrumentation", {}))

        _reject_unknown(cls, simulation, "simulation", exclude={"instrumentation"})
        _reject_unknown(InstrumentationConfig, instrumentation, "instrumentation")

        return cls(**simulation, instrumentation=InstrumentationConfig(**instrumentation))


def _parse_enum[E: Enum](enum_type: type[E], value: str) -> E:
    try:
        return enum_type(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_type)
        raise ConfigError(
            f"Invalid {enum_type.__name__} {value!r}, expected one of {choices}"
        ) from None


def _reject_unknown(
    config_type: type,
    section: dict[str, Any],
    name: str,
    exclude: set[str] | None = None,
) -> None:
    known = {f.name for f in fields(config_type)} - (exclude or set())
    unknown = set(section) - known
    if unknown:
        raise ConfigError(f"Unknown keys in [{name}]: {', '.join(sorted(unknown))}")
