"""Binding of static routes to the local interfaces that realize them.

A route is bound to an edge's local interface when either its next-hop
interface names that interface, or its next-hop address is the address
of the interface at the far end of the edge.  Both cases record the
route under the *local* interface name.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from ..core.config import DEFAULT_OPTIONS, GraphOptions
from ..core.datamodel import Device, GraphEdge, StaticRoute
from ..core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def is_null_routed(route: StaticRoute, options: GraphOptions = DEFAULT_OPTIONS) -> bool:
    """Return ``True`` if the route discards traffic."""
    return route.next_hop_interface == options.null_interface_name


def _realizes(route: StaticRoute, edge: GraphEdge) -> bool:
    if route.next_hop_interface is not None and route.next_hop_interface == edge.start.name:
        return True
    there = edge.end
    return (
        route.next_hop_ip is not None
        and there is not None
        and there.prefix is not None
        and there.prefix.ip == route.next_hop_ip
    )


def bind_static_routes(
    devices: Mapping[str, Device],
    edges: Mapping[str, Sequence[GraphEdge]],
    options: GraphOptions = DEFAULT_OPTIONS,
) -> dict[str, dict[str, list[StaticRoute]]]:
    """Map every static route to the local interface(s) it uses.

    Args:
        devices: Mapping of device name to configuration.
        edges: Outgoing edges per device from topology inference.
        options: Graph settings supplying the discard interface name.

    Returns:
        Mapping of device name to interface name to bound routes.

    Raises:
        ConfigurationError: If a route that is not a discard route binds
            to no interface.

    """
    bindings: dict[str, dict[str, list[StaticRoute]]] = {}

    for router, device in devices.items():
        by_iface: dict[str, list[StaticRoute]] = {}
        bindings[router] = by_iface

        for route in device.static_routes:
            bound = False
            for edge in edges.get(router, ()):
                if not _realizes(route, edge):
                    continue
                routes = by_iface.setdefault(edge.start.name, [])
                if route not in routes:
                    routes.append(route)
                bound = True

            if bound:
                continue
            if is_null_routed(route, options):
                logger.debug("%s: discard route %s left unbound", router, route.network)
                continue
            raise ConfigurationError(
                "Static route has no resolvable next-hop interface",
                device=router,
                details={"network": route.network, "next_hop": route.next_hop},
            )

    logger.info(
        "Bound static routes on %d interface(s)",
        sum(len(m) for m in bindings.values()),
    )
    return bindings
