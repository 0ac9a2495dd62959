"""Line charts of recorded metric series."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import matplotlib

matplotlib.use("Agg")  # Non-interactive backend, files only
import matplotlib.pyplot as plt

from flowtrace.core.types import METRIC_NAMES
from flowtrace.metrics.recorder import series_path
from flowtrace.metrics.stream import read_series

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from matplotlib.axes import Axes

    from flowtrace.core.types import MetricName
    from flowtrace.metrics.stream import Sample

logger = logging.getLogger(__name__)

METRIC_LABELS: dict[MetricName, str] = {
    "throughput": "Throughput (Mbps)",
    "cwnd": "Congestion Window (packets)",
    "rtt": "RTT (ms)",
    "packetloss": "Packet Loss (%)",
}

PANEL_ORDER: tuple[MetricName, ...] = ("throughput", "cwnd", "rtt", "packetloss")

MIN_POINTS = 2


def _plottable(path: Path) -> list[Sample] | None:
    try:
        samples = read_series(path)
    except ValueError as e:
        logger.warning("skipping %s: %s", path, e)
        return None
    if len(samples) < MIN_POINTS:
        logger.info("skipping %s: %d data points", path, len(samples))
        return None
    return samples


def _draw(ax: Axes, samples: Sequence[Sample], label: str | None = None) -> None:
    ax.plot(
        [s.timestamp for s in samples],
        [s.value for s in samples],
        linewidth=1.0,
        label=label,
    )


def metric_of(path: Path) -> MetricName | None:
    suffix = path.suffix.lstrip(".")
    return suffix if suffix in METRIC_NAMES else None  # type: ignore[return-value]


def plot_metric(path: Path, output: Path | None = None) -> Path | None:
    """Plot one series file. Returns None if it has fewer than two points."""
    samples = _plottable(path)
    if samples is None:
        return None

    if output is None:
        output = path.with_name(path.name + ".png")
    metric = metric_of(path)

    fig, ax = plt.subplots(figsize=(8, 6))
    _draw(ax, samples)
    ax.set_xlabel("Time (s)")
    ax.set_ylabel(METRIC_LABELS[metric] if metric is not None else path.name)
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    fig.savefig(output, dpi=100)
    plt.close(fig)
    return output


def plot_run(output_dir: Path, protocol: str) -> list[Path]:
    """One chart per metric of a protocol run; unplottable series are skipped."""
    written = []
    for metric in METRIC_NAMES:
        image = plot_metric(series_path(output_dir, protocol, metric))
        if image is not None:
            written.append(image)
    return written


def plot_comparison(
    output_dir: Path,
    protocols: Sequence[str],
    output: Path,
    title: str | None = None,
) -> Path | None:
    """2x2 comparison of the protocols' series found in `output_dir`.

    A series that is missing, malformed or too short is left out of its panel; a panel
    with no series at all says so instead of failing the whole figure.
    Returns None only if nothing at all could be plotted.
    """
    fig, axes = plt.subplots(2, 2, figsize=(16, 12))
    plotted = 0

    for ax, metric in zip(axes.flat, PANEL_ORDER, strict=True):
        lines = 0
        for protocol in protocols:
            samples = _plottable(series_path(output_dir, protocol, metric))
            if samples is None:
                continue
            _draw(ax, samples, label=protocol)
            lines += 1

        ax.set_title(METRIC_LABELS[metric].split(" (")[0])
        ax.set_xlabel("Time (s)")
        ax.set_ylabel(METRIC_LABELS[metric])
        ax.grid(True, alpha=0.3)
        if lines:
            ax.legend()
        else:
            ax.text(0.5, 0.5, "no data", ha="center", va="center", transform=ax.transAxes)
        plotted += lines

    if not plotted:
        plt.close(fig)
        logger.warning("nothing to plot for %s in %s", ", ".join(protocols), output_dir)
        return None

    fig.suptitle(title or " vs ".join(protocols), fontsize=16)
    fig.tight_layout()
    fig.savefig(output, dpi=100)
    plt.close(fig)
    return output
