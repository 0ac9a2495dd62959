"""Reference topologies and the client-to-server path through them."""

from __future__ import annotations

from typing import NamedTuple

import networkx as nx

from flowtrace.config import TopologyKind

MBPS = 1_000_000


class Topology(NamedTuple):
    """Node/link graph with the monitored flow's endpoints."""

    kind: TopologyKind
    graph: nx.Graph
    client: str
    server: str


class PathProfile(NamedTuple):
    """What the monitored flow sees of its path."""

    nodes: tuple[str, ...]
    bottleneck_bps: float
    one_way_delay: float  # seconds

    @property
    def hops(self) -> int:
        return len(self.nodes) - 1

    @property
    def base_rtt(self) -> float:
        return 2 * self.one_way_delay

    @property
    def bdp_bytes(self) -> float:
        return self.bottleneck_bps / 8 * self.base_rtt


def _uniform_links(graph: nx.Graph, rate_bps: float, delay: float) -> nx.Graph:
    nx.set_edge_attributes(graph, rate_bps, "rate_bps")
    nx.set_edge_attributes(graph, delay, "delay")
    return graph


def point_to_point() -> Topology:
    """Client - router - server over two 5 Mbps, 2 ms links."""
    graph = _uniform_links(nx.path_graph(["client", "router", "server"]), 5 * MBPS, 0.002)
    return Topology(TopologyKind.POINT_TO_POINT, graph, "client", "server")


def star(clients: int = 6) -> Topology:
    """Clients around a router, with the server hanging off the router."""
    graph = nx.star_graph(["router", *(f"client-{i}" for i in range(clients)), "server"])
    _uniform_links(graph, 15 * MBPS, 0.003)
    return Topology(TopologyKind.STAR, graph, "client-0", "server")


def bus(stations: int = 6) -> Topology:
    """Stations sharing one 85 Mbps segment with 3 ms end-to-end delay.

    The shared medium is modelled as a hub node so each station reaches any
    other through exactly two half-delay attachments.
    """
    names = [f"station-{i}" for i in range(stations)]
    graph = nx.star_graph(["segment", *names])
    _uniform_links(graph, 85 * MBPS, 0.0015)
    return Topology(TopologyKind.BUS, graph, names[0], names[-1])


def ring(nodes: int = 10) -> Topology:
    graph = nx.relabel_nodes(nx.cycle_graph(nodes), lambda i: f"node-{i}")
    _uniform_links(graph, 5 * MBPS, 0.015)
    return Topology(TopologyKind.RING, graph, "node-0", f"node-{nodes - 1}")


def mesh(nodes: int = 10) -> Topology:
    graph = nx.relabel_nodes(nx.complete_graph(nodes), lambda i: f"node-{i}")
    _uniform_links(graph, 6 * MBPS, 0.015)
    return Topology(TopologyKind.MESH, graph, "node-0", f"node-{nodes - 1}")


BUILDERS = {
    TopologyKind.POINT_TO_POINT: point_to_point,
    TopologyKind.STAR: star,
    TopologyKind.BUS: bus,
    TopologyKind.RING: ring,
    TopologyKind.MESH: mesh,
}


def build_topology(kind: TopologyKind) -> Topology:
    return BUILDERS[kind]()


def path_profile(topology: Topology) -> PathProfile:
    """Lowest-delay client-to-server path, its bottleneck rate and delay."""
    graph = topology.graph
    nodes = nx.shortest_path(graph, topology.client, topology.server, weight="delay")
    edges = list(zip(nodes, nodes[1:], strict=False))
    if not edges:
        raise ValueError(f"Topology {topology.kind.value} has no client-to-server path")

    return PathProfile(
        nodes=tuple(nodes),
        bottleneck_bps=min(graph.edges[u, v]["rate_bps"] for u, v in edges),
        one_way_delay=sum(graph.edges[u, v]["delay"] for u, v in edges),
    )
