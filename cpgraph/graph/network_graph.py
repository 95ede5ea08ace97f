"""The control-plane graph of a network.

``NetworkGraph`` runs the construction pipeline once, in a fixed order,
and then exposes the result through read-only queries:

1. topology inference (edges and reverse pairing)
2. OSPF cost resolution (configured or defaulted, kept by the graph)
3. static route binding
4. eBGP session resolution
5. iBGP session resolution and route-reflector hierarchy
6. OSPF area-id collection
7. AS domain partitioning

Discovery order, and therefore originator ids and domain ids, follows
the insertion order of the ``devices`` mapping.  Construction either
completes or raises ``ConfigurationError``; no partial graph is kept.

Usage::

    graph = NetworkGraph(devices, adjacency)
    for edge in graph.edges_of("r1"):
        if edge in graph.ibgp_sessions:
            print(edge, graph.peer_type(edge))
    print(graph.dump())
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping
from types import MappingProxyType

from ..core.config import DEFAULT_OPTIONS, GraphOptions
from ..core.datamodel import BgpNeighbor, Device, GraphEdge, InterfaceRef, StaticRoute
from ..core.exceptions import ConfigurationError
from ..core.protocol import BgpSendType
from .bgp import peer_type, resolve_ebgp_sessions, resolve_ibgp_sessions
from .domains import partition_domains
from .ospf import collect_area_ids, resolve_ospf_costs
from .static_routes import bind_static_routes
from .topology import infer_topology

logger = logging.getLogger(__name__)

RULE = "=" * 55


class NetworkGraph:
    """Immutable structural model of a network's control plane.

    Args:
        devices: Ordered mapping of device name to configuration.
        adjacency: Mapping of each interface to its directly connected
            interfaces.
        routers: Optional subset of device names to model; all others
            are dropped before construction.
        options: Graph settings; defaults to ``DEFAULT_OPTIONS``.

    Raises:
        ConfigurationError: If the configuration cannot be modelled.

    """

    def __init__(
        self,
        devices: Mapping[str, Device],
        adjacency: Mapping[InterfaceRef, Collection[InterfaceRef]],
        routers: Collection[str] | None = None,
        options: GraphOptions | None = None,
    ) -> None:
        """Build the graph from device configurations and adjacency."""
        self._options = options or DEFAULT_OPTIONS
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        if isinstance(routers, str):
            raise ConfigurationError(
                "routers must be a collection of device names, not a string",
                details={"routers": routers},
            )
        wanted = set(routers) if routers is not None else None
        selected = {
            name: device
            for name, device in devices.items()
            if wanted is None or name in wanted
        }
        if wanted is not None:
            missing = sorted(wanted - set(devices))
            if missing:
                self._logger.warning("Requested routers not configured: %s", ", ".join(missing))

        topology = infer_topology(selected, adjacency)
        ospf_costs = resolve_ospf_costs(selected, self._options)
        static_routes = bind_static_routes(selected, topology.edges, self._options)
        ebgp = resolve_ebgp_sessions(selected, topology.edges)
        ibgp = resolve_ibgp_sessions(selected, self._options)
        area_ids = collect_area_ids(selected)

        edges: dict[str, tuple[GraphEdge, ...]] = {
            router: tuple(topology.edges.get(router, ())) + tuple(ibgp.edges.get(router, ()))
            for router in selected
        }
        other_end = {**topology.other_end, **ibgp.other_end}
        domain_of, domains = partition_domains(selected, edges, other_end, ebgp)

        self._devices = MappingProxyType(dict(selected))
        self._edges = MappingProxyType(edges)
        self._other_end = MappingProxyType(other_end)
        self._neighbors = MappingProxyType(
            {router: frozenset(n) for router, n in topology.neighbors.items()}
        )
        self._static_routes = MappingProxyType(
            {
                router: MappingProxyType({name: tuple(srs) for name, srs in by_iface.items()})
                for router, by_iface in static_routes.items()
            }
        )
        self._ebgp = MappingProxyType(ebgp)
        self._ibgp = MappingProxyType(ibgp.sessions)
        self._parent = MappingProxyType(dict(ibgp.parent))
        self._clients = MappingProxyType(
            {router: frozenset(c) for router, c in ibgp.clients.items()}
        )
        self._originator_id = MappingProxyType(dict(ibgp.originator_id))
        self._ospf_costs = MappingProxyType(
            {router: MappingProxyType(by_iface) for router, by_iface in ospf_costs.items()}
        )
        self._area_ids = MappingProxyType(area_ids)
        self._domain_of = MappingProxyType(domain_of)
        self._domains = MappingProxyType(domains)

        self._logger.info(
            "Graph built: %d devices, %d edges, %d eBGP, %d iBGP, %d domains",
            len(self._devices),
            sum(len(e) for e in self._edges.values()),
            len(self._ebgp),
            len(self._ibgp),
            len(self._domains),
        )

    # -- Properties ---------------------------------------------------------

    @property
    def options(self) -> GraphOptions:
        """Return the settings the graph was built with."""
        return self._options

    @property
    def devices(self) -> Mapping[str, Device]:
        """Return the modelled devices, in discovery order."""
        return self._devices

    @property
    def edges(self) -> Mapping[str, tuple[GraphEdge, ...]]:
        """Return outgoing edges per device (concrete, then abstract)."""
        return self._edges

    @property
    def other_end(self) -> Mapping[GraphEdge, GraphEdge]:
        """Return the reverse-edge relation."""
        return self._other_end

    @property
    def neighbors(self) -> Mapping[str, frozenset[str]]:
        """Return directly adjacent devices per device."""
        return self._neighbors

    @property
    def ebgp_sessions(self) -> Mapping[GraphEdge, BgpNeighbor]:
        """Return eBGP session edges and their neighbor statements."""
        return self._ebgp

    @property
    def ibgp_sessions(self) -> Mapping[GraphEdge, BgpNeighbor]:
        """Return abstract iBGP edges and their neighbor statements."""
        return self._ibgp

    @property
    def static_routes(self) -> Mapping[str, Mapping[str, tuple[StaticRoute, ...]]]:
        """Return bound static routes per device and local interface."""
        return self._static_routes

    @property
    def ospf_costs(self) -> Mapping[str, Mapping[str, int]]:
        """Return the effective OSPF cost per device and active interface."""
        return self._ospf_costs

    @property
    def area_ids(self) -> Mapping[str, frozenset[int]]:
        """Return the OSPF area ids configured on each device."""
        return self._area_ids

    @property
    def route_reflector_parent(self) -> Mapping[str, str]:
        """Return the reflector of each route-reflector client."""
        return self._parent

    @property
    def route_reflector_clients(self) -> Mapping[str, frozenset[str]]:
        """Return the clients of each device with iBGP sessions."""
        return self._clients

    @property
    def originator_ids(self) -> Mapping[str, int]:
        """Return the originator id of each device with iBGP sessions."""
        return self._originator_id

    @property
    def domains(self) -> Mapping[int, frozenset[str]]:
        """Return domain members keyed by domain id."""
        return self._domains

    # -- Queries ------------------------------------------------------------

    def edges_of(self, router: str) -> tuple[GraphEdge, ...]:
        """Return the outgoing edges of ``router`` (empty if unknown)."""
        return self._edges.get(router, ())

    def reverse(self, edge: GraphEdge) -> GraphEdge | None:
        """Return the opposite direction of ``edge``, if any."""
        return self._other_end.get(edge)

    def ospf_cost(self, router: str, interface: str) -> int | None:
        """Return the effective OSPF cost of an interface, if it has one."""
        return self._ospf_costs.get(router, {}).get(interface)

    def domain_of(self, router: str) -> int:
        """Return the domain id of ``router``.

        Raises:
            ConfigurationError: If the device is not modelled.

        """
        try:
            return self._domain_of[router]
        except KeyError:
            raise ConfigurationError("Unknown device", device=router) from None

    def get_domain(self, router: str) -> frozenset[str]:
        """Return every device in the same domain as ``router``."""
        return self._domains[self.domain_of(router)]

    def peer_type(self, edge: GraphEdge) -> BgpSendType:
        """Classify the BGP relationship across ``edge``.

        Raises:
            ConfigurationError: If the edge carries no BGP session.

        """
        return peer_type(edge, self._ebgp, self._ibgp, self._clients)

    def find_bgp_neighbor(self, edge: GraphEdge) -> BgpNeighbor | None:
        """Return the neighbor statement of the session across ``edge``."""
        if edge.abstract:
            return self._ibgp.get(edge)
        return self._ebgp.get(edge)

    def is_edge_host_connected(self, edge: GraphEdge) -> bool:
        """Return ``True`` if ``edge`` potentially leads to an end host."""
        if edge in self._ebgp:
            return False
        if edge.peer is None:
            return True
        peer = self._devices.get(edge.peer)
        return peer is not None and peer.vendor == self._options.host_vendor

    # -- Diagnostics --------------------------------------------------------

    def dump(self) -> str:
        """Return a deterministic, human-readable dump of the graph."""
        lines: list[str] = [RULE, "---------- Router to edges map ----------"]
        for router in sorted(self._edges):
            lines.append(f"Router: {router}")
            for edge in self._edges[router]:
                if edge.end is None:
                    lines.append(f"  edge from: {edge.start.name} to: null")
                else:
                    lines.append(f"  edge from: {edge.start.name} to: {edge.peer},{edge.end.name}")

        lines.append("---------------- eBGP Neighbors ----------------")
        for edge in sorted(self._ebgp, key=lambda e: str(e)):
            lines.append(f"Edge: {edge} ({self._ebgp[edge].address})")

        lines.append("---------------- iBGP Neighbors ----------------")
        for edge in sorted(self._ibgp, key=lambda e: str(e)):
            lines.append(f"Edge: {edge} ({self._ibgp[edge].prefix})")

        lines.append("---------- Static Routes by Interface ----------")
        for router in sorted(self._static_routes):
            by_iface = self._static_routes[router]
            for iface in sorted(by_iface):
                for route in by_iface[iface]:
                    lines.append(f"Router: {router}, Interface: {iface} --> {route.network}")

        lines.append(RULE)
        return "\n".join(lines) + "\n"

    def __str__(self) -> str:
        return self.dump()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(devices={len(self._devices)}, "
            f"edges={sum(len(e) for e in self._edges.values())})"
        )
