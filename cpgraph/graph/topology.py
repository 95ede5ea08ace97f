"""Topology inference from interfaces and an external adjacency relation.

Every addressed interface becomes at least one directed ``GraphEdge``.
Point-to-point adjacencies produce an edge per direction, registered as
reverses of each other; interfaces with no adjacency, or on a segment
with too many members to pick a peer, produce a single dangling edge.

Usage::

    result = infer_topology(devices, adjacency)
    for edge in result.edges["r1"]:
        print(edge, result.other_end.get(edge))
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field

from ..core.datamodel import Device, GraphEdge, InterfaceRef

logger = logging.getLogger(__name__)

MAX_SEGMENT_ENDS = 2


@dataclass
class TopologyResult:
    """Output of topology inference.

    Attributes:
        edges: Mapping of device name to its outgoing edges, in interface order.
        other_end: Mapping of each concrete edge to its reverse edge.
        neighbors: Mapping of device name to directly adjacent device names.

    """

    edges: dict[str, list[GraphEdge]] = field(default_factory=dict)
    other_end: dict[GraphEdge, GraphEdge] = field(default_factory=dict)
    neighbors: dict[str, set[str]] = field(default_factory=dict)


def infer_topology(
    devices: Mapping[str, Device],
    adjacency: Mapping[InterfaceRef, Collection[InterfaceRef]],
) -> TopologyResult:
    """Build directed edges and the reverse-edge pairing.

    Args:
        devices: Ordered mapping of device name to configuration.
        adjacency: Mapping of each interface to the interfaces directly
            connected to it.  Entries naming unmodelled devices are ignored.

    Returns:
        A ``TopologyResult`` with edges for every addressed interface.

    """
    result = TopologyResult()

    for router, device in devices.items():
        graph_edges: list[GraphEdge] = []
        neighs: set[str] = set()

        for name, iface in device.interfaces.items():
            if iface.prefix is None:
                continue

            ends = sorted(
                (
                    ref
                    for ref in adjacency.get(InterfaceRef(router, name), ())
                    if ref.device in devices and ref.interface in devices[ref.device].interfaces
                ),
                key=lambda ref: (ref.device, ref.interface),
            )
            if not ends:
                graph_edges.append(GraphEdge(iface, None, router, None))
                continue

            if len(ends) > MAX_SEGMENT_ENDS:
                logger.debug(
                    "%s:%s is on a segment with %d other ends; leaving it dangling",
                    router,
                    name,
                    len(ends),
                )
                graph_edges.append(GraphEdge(iface, None, router, None))
                continue

            for ref in ends:
                if ref.device == router:
                    continue
                remote = devices[ref.device].interfaces[ref.interface]
                forward = GraphEdge(iface, remote, router, ref.device)
                backward = GraphEdge(remote, iface, ref.device, router)
                result.other_end[forward] = backward
                result.other_end[backward] = forward
                graph_edges.append(forward)
                neighs.add(ref.device)

        result.edges[router] = graph_edges
        result.neighbors[router] = neighs

    logger.info(
        "Topology inferred: %d devices, %d edges, %d reverse pairs",
        len(result.edges),
        sum(len(e) for e in result.edges.values()),
        len(result.other_end) // 2,
    )
    return result
