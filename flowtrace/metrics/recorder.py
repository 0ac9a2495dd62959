"""Ownership of the four metric streams of one protocol run."""

from __future__ import annotations

import logging
from statistics import fmean
from typing import TYPE_CHECKING

from flowtrace.core.types import METRIC_NAMES
from flowtrace.errors import SinkOpenError
from flowtrace.metrics.results import FlowResults
from flowtrace.metrics.stream import FileSink, MemorySink, MetricStream

if TYPE_CHECKING:
    from pathlib import Path
    from types import TracebackType

    from flowtrace.core.types import MetricName
    from flowtrace.metrics.sampler import MetricSampler, PacketLossSampler
    from flowtrace.metrics.stream import StreamSink
    from flowtrace.trace.attacher import TraceAttachmentRequest
    from flowtrace.trace.state import TraceContext

logger = logging.getLogger(__name__)


def series_path(output_dir: Path, protocol: str, metric: MetricName) -> Path:
    return output_dir / f"{protocol}.{metric}"


class FlowRecorder:
    """Opens `<protocol>.<metric>` sinks and closes them at teardown.

    All four sinks are opened up front so that a sink failure aborts the run
    before any simulation time passes. With no output directory the streams
    are kept in memory only.
    """

    def __init__(self, protocol: str, output_dir: Path | None = None) -> None:
        self._protocol = protocol
        self._output_dir = output_dir
        self._paths: dict[MetricName, Path] = {}
        self._streams: dict[MetricName, MetricStream] = {}

        try:
            for metric in METRIC_NAMES:
                self._streams[metric] = MetricStream(
                    f"{protocol}.{metric}", self._open_sink(metric)
                )
        except SinkOpenError:
            self.close()
            raise

    def _open_sink(self, metric: MetricName) -> StreamSink:
        if self._output_dir is None:
            return MemorySink()
        path = series_path(self._output_dir, self._protocol, metric)
        self._paths[metric] = path
        logger.debug("opening %s", path)
        return FileSink(path)

    @property
    def protocol(self) -> str:
        return self._protocol

    @property
    def paths(self) -> dict[MetricName, Path]:
        return dict(self._paths)

    @property
    def cwnd(self) -> MetricStream:
        return self._streams["cwnd"]

    @property
    def rtt(self) -> MetricStream:
        return self._streams["rtt"]

    @property
    def throughput(self) -> MetricStream:
        return self._streams["throughput"]

    @property
    def packetloss(self) -> MetricStream:
        return self._streams["packetloss"]

    def stream(self, metric: MetricName) -> MetricStream:
        return self._streams[metric]

    @property
    def closed(self) -> bool:
        return all(stream.closed for stream in self._streams.values())

    def close(self) -> None:
        for stream in self._streams.values():
            if not stream.closed:
                logger.debug("closing %s after %d samples", stream.name, len(stream))
            stream.close()

    def __enter__(self) -> FlowRecorder:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def finalize(
        self,
        context: TraceContext,
        topology: str,
        duration: float,
        request: TraceAttachmentRequest | None,
        metric_sampler: MetricSampler,
        loss_sampler: PacketLossSampler,
    ) -> FlowResults:
        """Close every stream and summarise the run."""
        self.close()

        throughput = [s.value for s in self.throughput.samples]
        rtt_observed = [s.value for s in self.rtt.samples if s.value > 0]
        last_loss = self.packetloss.last
        counters = context.counters

        return FlowResults(
            protocol=self._protocol,
            topology=topology,
            duration=duration,
            attachment_state=request.state.name if request is not None else "PENDING",
            attach_attempts=request.attempts if request is not None else 0,
            attached_at=request.attached_at if request is not None else None,
            packets_sent=counters.sent,
            packets_received=counters.received,
            bytes_received=counters.received_bytes,
            mean_throughput_mbps=fmean(throughput) if throughput else 0.0,
            final_loss_percent=last_loss.value if last_loss is not None else 0.0,
            mean_rtt_ms=fmean(rtt_observed) if rtt_observed else 0.0,
            flagged_throughput_samples=metric_sampler.flagged,
            flagged_loss_samples=loss_sampler.flagged,
            sample_counts={name: len(stream) for name, stream in self._streams.items()},
            output_files=dict(self._paths),
        )
