"""Per-run results derived after the simulation completes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


@dataclass
class FlowResults:
    """Summary of one protocol run."""

    protocol: str
    topology: str
    duration: float

    # Hook attachment
    attachment_state: str
    attach_attempts: int
    attached_at: float | None

    # Counters at teardown
    packets_sent: int
    packets_received: int
    bytes_received: int

    # Derived from the streams
    mean_throughput_mbps: float
    final_loss_percent: float
    mean_rtt_ms: float  # over observed (non-zero) samples only

    # Data quality
    flagged_throughput_samples: int = 0
    flagged_loss_samples: int = 0
    sample_counts: dict[str, int] = field(default_factory=dict)
    output_files: dict[str, Path] = field(default_factory=dict)

    @property
    def attached(self) -> bool:
        return self.attachment_state == "ATTACHED"

    def to_dict(self) -> dict[str, object]:
        return {
            "protocol": self.protocol,
            "topology": self.topology,
            "duration": self.duration,
            "attachment_state": self.attachment_state,
            "attach_attempts": self.attach_attempts,
            "attached_at": self.attached_at,
            "packets_sent": self.packets_sent,
            "packets_received": self.packets_received,
            "bytes_received": self.bytes_received,
            "mean_throughput_mbps": self.mean_throughput_mbps,
            "final_loss_percent": self.final_loss_percent,
            "mean_rtt_ms": self.mean_rtt_ms,
            "flagged_throughput_samples": self.flagged_throughput_samples,
            "flagged_loss_samples": self.flagged_loss_samples,
            "sample_counts": dict(self.sample_counts),
            "output_files": {name: str(path) for name, path in self.output_files.items()},
        }
