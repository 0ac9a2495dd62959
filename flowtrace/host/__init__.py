"""Reference host simulation driving the instrumentation end to end."""

from .apps import BulkSendApplication, PacketSink
from .congestion import WINDOW_LAWS, BbrWindow, CubicWindow, WindowLaw
from .link import BottleneckLink, Segment
from .topology import PathProfile, Topology, build_topology, path_profile
from .traced import TracedValue
from .transport import DatagramSocket, StreamSocket

__all__ = [
    "WINDOW_LAWS",
    "BbrWindow",
    "BottleneckLink",
    "BulkSendApplication",
    "CubicWindow",
    "DatagramSocket",
    "PacketSink",
    "PathProfile",
    "Segment",
    "StreamSocket",
    "Topology",
    "TracedValue",
    "WindowLaw",
    "build_topology",
    "path_profile",
]
