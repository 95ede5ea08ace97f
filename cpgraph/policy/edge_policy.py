"""Per-protocol edge eligibility, policy lookup, and originated networks.

Stateless queries over a built ``NetworkGraph`` and a device's own
configuration.  Protocols are dispatched over the closed ``Protocol``
enumeration; any other value is rejected with ``ConfigurationError``.

Usage::

    for edge in graph.edges_of("r1"):
        if is_edge_used(graph, device, Protocol.BGP, edge):
            policy = find_export_routing_policy(graph, device, Protocol.BGP, edge)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..core.config import DEFAULT_OPTIONS, GraphOptions
from ..core.datamodel import (
    BooleanExpr,
    Conjunction,
    Device,
    ExplicitPrefixSet,
    GraphEdge,
    Interface,
    IpNetwork,
    MatchPrefixSet,
    MatchProtocol,
    Not,
    RoutingPolicy,
    RoutingProtocol,
)
from ..core.exceptions import ConfigurationError
from ..core.protocol import Protocol, as_protocol
from ..graph.static_routes import is_null_routed
from .policy_visitor import PolicyVisitor

if TYPE_CHECKING:
    from ..graph.network_graph import NetworkGraph

logger = logging.getLogger(__name__)


def _unhandled(protocol: Protocol, query: str) -> ConfigurationError:
    return ConfigurationError(f"{query}: unsupported protocol '{protocol}'")


# ---------------------------------------------------------------------------
# Edge eligibility
# ---------------------------------------------------------------------------


def is_interface_active(protocol: Protocol | str, iface: Interface) -> bool:
    """Return ``True`` if ``iface`` can carry ``protocol``.

    OSPF additionally requires the interface to be OSPF-enabled.
    """
    if as_protocol(protocol) is Protocol.OSPF:
        return iface.active and iface.ospf_enabled
    return iface.active


def is_edge_used(
    graph: NetworkGraph,
    device: Device,
    protocol: Protocol | str,
    edge: GraphEdge,
) -> bool:
    """Return ``True`` if ``protocol`` runs over ``edge`` on ``device``.

    Rules are evaluated in order; the first that applies decides.
    """
    proto = as_protocol(protocol)
    iface = edge.start

    if not is_interface_active(proto, iface):
        return False

    # Abstract iBGP edges only carry BGP.
    if edge.abstract or iface.is_abstract:
        return proto is Protocol.BGP

    if iface.loopback:
        return proto is Protocol.CONNECTED

    # No OSPF towards hosts or external networks.
    if edge.peer is None and proto is Protocol.OSPF:
        return False

    if proto is Protocol.STATIC:
        bound = graph.static_routes.get(device.name, {}).get(iface.name, ())
        return len(bound) > 0

    if proto is Protocol.BGP:
        return edge in graph.ebgp_sessions or edge in graph.ibgp_sessions

    return True


# ---------------------------------------------------------------------------
# Policy lookup
# ---------------------------------------------------------------------------


def find_common_routing_policy(
    device: Device,
    protocol: Protocol | str,
    options: GraphOptions = DEFAULT_OPTIONS,
) -> RoutingPolicy | None:
    """Return the device-wide routing policy for ``protocol``, if any.

    OSPF uses the process export policy.  BGP uses the first policy whose
    name contains the common export policy name.  Static and connected
    routes have no policy.
    """
    proto = as_protocol(protocol)
    if proto is Protocol.OSPF:
        if device.ospf is None or device.ospf.export_policy is None:
            return None
        return device.routing_policies.get(device.ospf.export_policy)
    if proto is Protocol.BGP:
        for name, policy in device.routing_policies.items():
            if options.bgp_common_policy_name in name:
                return policy
        return None
    if proto is Protocol.STATIC or proto is Protocol.CONNECTED:
        return None
    raise _unhandled(proto, "find_common_routing_policy")


def find_import_routing_policy(
    graph: NetworkGraph,
    device: Device,
    protocol: Protocol | str,
    edge: GraphEdge,
) -> RoutingPolicy | None:
    """Return the import policy applied to routes received over ``edge``."""
    proto = as_protocol(protocol)
    if proto in (Protocol.CONNECTED, Protocol.STATIC, Protocol.OSPF):
        return None
    if proto is Protocol.BGP:
        neighbor = graph.find_bgp_neighbor(edge)
        if neighbor is None or neighbor.import_policy is None:
            return None
        return device.routing_policies.get(neighbor.import_policy)
    raise _unhandled(proto, "find_import_routing_policy")


def find_export_routing_policy(
    graph: NetworkGraph,
    device: Device,
    protocol: Protocol | str,
    edge: GraphEdge,
) -> RoutingPolicy | None:
    """Return the export policy applied to routes sent over ``edge``."""
    proto = as_protocol(protocol)
    if proto in (Protocol.CONNECTED, Protocol.STATIC):
        return None
    if proto is Protocol.OSPF:
        return find_common_routing_policy(device, proto, graph.options)
    if proto is Protocol.BGP:
        # No session (e.g. a loopback) or no export policy on it.
        neighbor = graph.find_bgp_neighbor(edge)
        if neighbor is None or neighbor.export_policy is None:
            return None
        return device.routing_policies.get(neighbor.export_policy)
    raise _unhandled(proto, "find_export_routing_policy")


# ---------------------------------------------------------------------------
# Originated networks
# ---------------------------------------------------------------------------


def _redistributed_prefixes(expr: BooleanExpr) -> list[IpNetwork]:
    """Match ``prefix-set AND NOT protocol bgp`` and return its prefixes."""
    if not isinstance(expr, Conjunction) or len(expr.conjuncts) < 2:
        return []
    first, second = expr.conjuncts[0], expr.conjuncts[1]
    if not isinstance(first, MatchPrefixSet) or not isinstance(second, Not):
        return []
    negated = second.expr
    if not isinstance(negated, MatchProtocol) or negated.protocol is not RoutingProtocol.BGP:
        return []
    if not isinstance(first.prefix_set, ExplicitPrefixSet):
        return []
    return [r.prefix for r in first.prefix_set.ranges]


def get_originated_networks(
    device: Device,
    protocol: Protocol | str,
    options: GraphOptions = DEFAULT_OPTIONS,
) -> list[IpNetwork]:
    """Return the prefixes ``device`` injects natively into ``protocol``.

    Args:
        device: Device configuration.
        protocol: Protocol to query.
        options: Graph settings (discard interface, common BGP policy).

    Returns:
        Networks in configuration order, without duplicates.

    """
    proto = as_protocol(protocol)
    acc: list[IpNetwork] = []

    def add(network: IpNetwork | None) -> None:
        if network is not None and network not in acc:
            acc.append(network)

    if proto is Protocol.OSPF:
        if device.ospf is None:
            return acc
        for area in device.ospf.areas.values():
            for iface in area.interfaces:
                if iface.active and iface.ospf_enabled:
                    add(iface.network)
        return acc

    if proto is Protocol.BGP:
        default_policy = find_common_routing_policy(device, proto, options)
        if default_policy is None:
            return acc

        def on_expr(expr: BooleanExpr) -> None:
            for prefix in _redistributed_prefixes(expr):
                add(prefix)

        PolicyVisitor(device).visit(default_policy.statements, lambda stmt: None, on_expr)
        return acc

    if proto is Protocol.CONNECTED:
        for iface in device.interfaces.values():
            add(iface.network)
        return acc

    if proto is Protocol.STATIC:
        for route in device.static_routes:
            if not is_null_routed(route, options):
                add(route.network)
        return acc

    raise _unhandled(proto, "get_originated_networks")
