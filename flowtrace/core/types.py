"""Core type aliases for the instrumentation pipeline."""

from typing import Literal, NewType

# Flow identification - one monitored transport flow per protocol run
FlowId = NewType("FlowId", str)

# Protocol variant under comparison, also the output file prefix
ProtocolName = NewType("ProtocolName", str)

# Output metric names; each becomes the suffix of a `<protocol>.<metric>` file
type MetricName = Literal["cwnd", "rtt", "throughput", "packetloss"]

METRIC_NAMES: tuple[MetricName, ...] = ("cwnd", "rtt", "throughput", "packetloss")
