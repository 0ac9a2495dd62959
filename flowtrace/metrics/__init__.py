"""Metric streams, samplers and loss estimation."""

from .loss import (
    ByteAccountedLossEstimator,
    EventCountLossEstimator,
    LossEstimate,
    LossEstimator,
    NominalPacketSizeLossEstimator,
    clamp_loss,
    estimator_for,
)
from .recorder import FlowRecorder, series_path
from .results import FlowResults
from .sampler import MetricSampler, MetricsSnapshot, PacketLossSampler
from .stream import FileSink, MemorySink, MetricStream, Sample, StreamSink, read_series

__all__ = [
    "ByteAccountedLossEstimator",
    "EventCountLossEstimator",
    "FileSink",
    "FlowRecorder",
    "FlowResults",
    "LossEstimate",
    "LossEstimator",
    "MemorySink",
    "MetricSampler",
    "MetricStream",
    "MetricsSnapshot",
    "NominalPacketSizeLossEstimator",
    "PacketLossSampler",
    "Sample",
    "StreamSink",
    "clamp_loss",
    "estimator_for",
    "read_series",
    "series_path",
]
