"""eBGP and iBGP session discovery, route-reflector hierarchy, peer typing.

eBGP sessions are attached to concrete edges whose local prefix contains
a configured neighbor address.  iBGP sessions are discovered by matching
same-AS neighbor statements against the local addresses other devices
use for their own internal sessions; each becomes an abstract edge backed
by a synthesized interface.

Originator ids are numbered from 1 in session discovery order.  Devices
that open a session come first; a device that only appears as the remote
end of one-sided sessions is numbered after them.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from ipaddress import ip_interface

from ..core.config import DEFAULT_OPTIONS, GraphOptions
from ..core.datamodel import (
    BgpNeighbor,
    Device,
    GraphEdge,
    Interface,
    InterfaceKind,
    IpAddress,
)
from ..core.exceptions import ConfigurationError
from ..core.protocol import BgpSendType

logger = logging.getLogger(__name__)


@dataclass
class IbgpResult:
    """Output of iBGP session discovery.

    Attributes:
        edges: Abstract edges per local device, in discovery order.
        sessions: Mapping of abstract edge to the local neighbor statement.
        other_end: Reverse pairing of abstract edges with symmetric sessions.
        parent: Mapping of route-reflector client to its reflector.
        clients: Mapping of reflector to its clients.
        originator_id: Originator id of every device on either end of a
            session.

    """

    edges: dict[str, list[GraphEdge]] = field(default_factory=dict)
    sessions: dict[GraphEdge, BgpNeighbor] = field(default_factory=dict)
    other_end: dict[GraphEdge, GraphEdge] = field(default_factory=dict)
    parent: dict[str, str] = field(default_factory=dict)
    clients: dict[str, set[str]] = field(default_factory=dict)
    originator_id: dict[str, int] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# eBGP
# ---------------------------------------------------------------------------


def resolve_ebgp_sessions(
    devices: Mapping[str, Device],
    edges: Mapping[str, Sequence[GraphEdge]],
) -> dict[GraphEdge, BgpNeighbor]:
    """Attach external neighbor statements to the edges that reach them.

    Args:
        devices: Mapping of device name to configuration.
        edges: Concrete edges per device.

    Returns:
        Mapping of edge to the neighbor statement peered across it.

    """
    sessions: dict[GraphEdge, BgpNeighbor] = {}

    for router, device in devices.items():
        if device.bgp is None:
            continue
        external = [
            n for n in device.bgp.neighbors.values() if not n.is_internal and n.address is not None
        ]
        for edge in edges.get(router, ()):
            prefix = edge.start.prefix
            if edge.abstract or prefix is None:
                continue
            for neighbor in external:
                if neighbor.address in prefix.network:
                    sessions[edge] = neighbor
                    logger.debug("eBGP session %s (%s)", edge, neighbor.address)
                    break

    logger.info("Resolved %d eBGP session edge(s)", len(sessions))
    return sessions


# ---------------------------------------------------------------------------
# iBGP
# ---------------------------------------------------------------------------


def create_ibgp_interface(
    neighbor: BgpNeighbor,
    peer: str,
    options: GraphOptions = DEFAULT_OPTIONS,
) -> Interface:
    """Synthesize the abstract interface that carries an iBGP session."""
    return Interface(
        name=f"{options.ibgp_interface_prefix}{peer}",
        prefix=ip_interface(str(neighbor.prefix)),
        active=True,
        kind=InterfaceKind.ABSTRACT,
    )


def _internal_local_ips(devices: Mapping[str, Device]) -> dict[str, IpAddress]:
    ips: dict[str, IpAddress] = {}
    for router, device in devices.items():
        if device.bgp is None:
            continue
        for neighbor in device.bgp.neighbors.values():
            if neighbor.is_internal and neighbor.local_ip is not None:
                ips.setdefault(router, neighbor.local_ip)
    return ips


def discover_ibgp_sessions(
    devices: Mapping[str, Device],
) -> dict[tuple[str, str], BgpNeighbor]:
    """Return ``(r1, r2) -> neighbor`` for every internal session r1 configures.

    A session exists when one of r1's internal neighbor prefixes contains
    the local address r2 uses for its own internal sessions.
    """
    ips = _internal_local_ips(devices)
    sessions: dict[tuple[str, str], BgpNeighbor] = {}

    for r1, device in devices.items():
        if device.bgp is None:
            continue
        for prefix, neighbor in device.bgp.neighbors.items():
            if not neighbor.is_internal:
                continue
            for r2, ip in ips.items():
                if r1 != r2 and ip.version == prefix.version and ip in prefix:
                    sessions.setdefault((r1, r2), neighbor)
    return sessions


def resolve_ibgp_sessions(
    devices: Mapping[str, Device],
    options: GraphOptions = DEFAULT_OPTIONS,
) -> IbgpResult:
    """Discover iBGP sessions and build the route-reflector hierarchy.

    Originator ids are assigned from 1 in the order local devices first
    appear among the discovered sessions.  A client claimed by more than
    one reflector keeps the first.

    Args:
        devices: Ordered mapping of device name to configuration.
        options: Graph settings supplying the abstract interface prefix.

    Returns:
        An ``IbgpResult``.

    """
    result = IbgpResult()
    sessions = discover_ibgp_sessions(devices)
    by_pair: dict[tuple[str, str], GraphEdge] = {}

    for (r1, r2), n1 in sessions.items():
        iface1 = create_ibgp_interface(n1, r2, options)
        n2 = sessions.get((r2, r1))
        if n2 is not None:
            iface2 = create_ibgp_interface(n2, r1, options)
            edge = GraphEdge(iface1, iface2, r1, r2, abstract=True)
        else:
            logger.warning("iBGP session %s -> %s is not configured on %s", r1, r2, r2)
            edge = GraphEdge(iface1, None, r1, None, abstract=True)

        result.sessions[edge] = n1
        result.edges.setdefault(r1, []).append(edge)
        by_pair[(r1, r2)] = edge

    for (r1, r2), edge in by_pair.items():
        other = by_pair.get((r2, r1))
        if other is not None:
            result.other_end[edge] = other

    next_id = 1
    for (r1, r2), neighbor in sessions.items():
        if r1 not in result.originator_id:
            result.originator_id[r1] = next_id
            next_id += 1
        clients = result.clients.setdefault(r1, set())
        if not neighbor.route_reflector_client:
            continue
        current = result.parent.get(r2)
        if current is not None and current != r1:
            logger.warning(
                "%s is a route-reflector client of both %s and %s; keeping %s",
                r2,
                current,
                r1,
                current,
            )
            continue
        clients.add(r2)
        result.parent[r2] = r1

    for _, r2 in sessions:
        if r2 not in result.originator_id:
            result.originator_id[r2] = next_id
            next_id += 1

    logger.info(
        "Resolved %d iBGP session(s), %d reflector client(s)",
        len(result.sessions),
        len(result.parent),
    )
    return result


def peer_type(
    edge: GraphEdge,
    ebgp_sessions: Mapping[GraphEdge, BgpNeighbor],
    ibgp_sessions: Mapping[GraphEdge, BgpNeighbor],
    clients: Mapping[str, set[str] | frozenset[str]],
) -> BgpSendType:
    """Classify the relationship across a BGP edge.

    Raises:
        ConfigurationError: If the edge carries no BGP session.

    """
    if edge in ebgp_sessions:
        return BgpSendType.EBGP
    if edge in ibgp_sessions:
        if edge.peer is not None and edge.router in clients.get(edge.peer, ()):
            return BgpSendType.TO_RR
        if edge.peer is not None and edge.peer in clients.get(edge.router, ()):
            return BgpSendType.TO_CLIENT
        return BgpSendType.TO_NONCLIENT
    raise ConfigurationError(
        f"Invalid BGP edge: {edge}",
        device=edge.router,
        details={"interface": edge.start.name},
    )
