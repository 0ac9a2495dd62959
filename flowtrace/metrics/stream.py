"""Append-only metric streams and the sinks they write to."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, TextIO

from flowtrace.errors import SinkOpenError, StreamClosedError, StreamOrderError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Sample:
    """One (simulation time, value) point."""

    timestamp: float
    value: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", float(self.timestamp))
        object.__setattr__(self, "value", float(self.value))

    def to_line(self) -> str:
        # repr() is the shortest string that parses back to the same float
        return f"{self.timestamp!r} {self.value!r}\n"

    @classmethod
    def from_line(cls, line: str) -> Sample:
        time_text, value_text = line.split()
        return cls(float(time_text), float(value_text))


class StreamSink(Protocol):
    """Destination of one stream's samples."""

    def write(self, sample: Sample) -> None: ...

    def close(self) -> None: ...


class FileSink:
    """Plain-text, two-column, whitespace-separated time series file.

    The file is created as soon as the sink is constructed, so it exists
    (possibly empty) even if no sample is ever written.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        try:
            self._file: TextIO | None = path.open("w", encoding="utf-8")
        except OSError as e:
            raise SinkOpenError(path, e.strerror or str(e)) from e
        logger.debug("opened sink %s", path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def closed(self) -> bool:
        return self._file is None

    def write(self, sample: Sample) -> None:
        if self._file is None:
            raise StreamClosedError(f"Sink {self._path} is closed")
        self._file.write(sample.to_line())

    def close(self) -> None:
        if self._file is None:
            return
        self._file.flush()
        self._file.close()
        self._file = None
        logger.debug("closed sink %s", self._path)


class MemorySink:
    """In-memory sink, for tests and for runs that skip the filesystem."""

    def __init__(self) -> None:
        self.samples: list[Sample] = []
        self.closed = False

    def write(self, sample: Sample) -> None:
        if self.closed:
            raise StreamClosedError("Memory sink is closed")
        self.samples.append(sample)

    def close(self) -> None:
        self.closed = True


class MetricStream:
    """Ordered samples of one metric for one protocol run.

    Timestamps must be non-decreasing; a sample older than the previous one
    is rejected rather than written out of order. The stream owns its sink
    exclusively and closes it on `close()`.
    """

    def __init__(self, name: str, sink: StreamSink) -> None:
        self._name = name
        self._sink = sink
        self._samples: list[Sample] = []
        self._closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def samples(self) -> tuple[Sample, ...]:
        return tuple(self._samples)

    @property
    def last(self) -> Sample | None:
        return self._samples[-1] if self._samples else None

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._samples)

    def append(self, timestamp: float, value: float) -> Sample:
        if self._closed:
            raise StreamClosedError(f"Stream {self._name} is closed")

        last = self.last
        if last is not None and timestamp < last.timestamp:
            raise StreamOrderError(
                f"Stream {self._name}: sample at {timestamp} is older than {last.timestamp}"
            )

        sample = Sample(timestamp, value)
        self._sink.write(sample)
        self._samples.append(sample)
        return sample

    def extend(self, samples: Iterable[Sample]) -> None:
        for sample in samples:
            self.append(sample.timestamp, sample.value)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._sink.close()


def read_series(path: Path) -> list[Sample]:
    """Read a two-column series file written by FileSink.

    A missing or empty file yields an empty list.
    """
    if not path.exists():
        return []

    samples: list[Sample] = []
    with path.open(encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                samples.append(Sample.from_line(line))
            except ValueError as e:
                raise ValueError(f"{path}:{lineno}: malformed sample line {line!r}") from e
    return samples
