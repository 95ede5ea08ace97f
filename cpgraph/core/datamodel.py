"""Structured device configuration objects consumed by the graph builder.

These objects are produced by an external configuration loader (see
``cpgraph.inventory``) and are treated as read-only by the graph, with
one exception: the OSPF cost resolver fills in missing interface costs.

Usage::

    eth0 = Interface("eth0", prefix=ip_interface("10.0.0.1/24"), bandwidth=1e9)
    r1 = Device("r1", interfaces={"eth0": eth0})
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from ipaddress import (
    IPv4Address,
    IPv4Interface,
    IPv4Network,
    IPv6Address,
    IPv6Interface,
    IPv6Network,
)

logger = logging.getLogger(__name__)

IpAddress = IPv4Address | IPv6Address
IpInterface = IPv4Interface | IPv6Interface
IpNetwork = IPv4Network | IPv6Network

# ---------------------------------------------------------------------------
# Interfaces and processes
# ---------------------------------------------------------------------------


class InterfaceKind(StrEnum):
    """Whether an interface is provisioned on the device or synthesized."""

    CONCRETE = "concrete"
    ABSTRACT = "abstract"


@dataclass
class Interface:
    """A device interface.

    Attributes:
        name: Interface name, unique within its device.
        prefix: Interface address with its mask, if addressed.
        active: Administrative/operational activity flag.
        bandwidth: Bandwidth in bits per second, if known.
        ospf_cost: Configured OSPF cost; the graph derives the effective
            cost without writing it back here.
        ospf_enabled: Whether OSPF runs on the interface.
        loopback: Whether the interface is a loopback.
        kind: ``CONCRETE`` for configured interfaces, ``ABSTRACT`` for
            interfaces synthesized to carry iBGP sessions.

    """

    name: str
    prefix: IpInterface | None = None
    active: bool = True
    bandwidth: float | None = None
    ospf_cost: int | None = None
    ospf_enabled: bool = False
    loopback: bool = False
    kind: InterfaceKind = InterfaceKind.CONCRETE

    @property
    def address(self) -> IpAddress | None:
        """Return the interface IP address, or ``None`` if unaddressed."""
        return self.prefix.ip if self.prefix is not None else None

    @property
    def network(self) -> IpNetwork | None:
        """Return the connected network, or ``None`` if unaddressed."""
        return self.prefix.network if self.prefix is not None else None

    @property
    def is_abstract(self) -> bool:
        """Return ``True`` for synthesized iBGP interfaces."""
        return self.kind is InterfaceKind.ABSTRACT


@dataclass(frozen=True)
class StaticRoute:
    """A configured static route.

    Attributes:
        network: Destination network.
        next_hop_ip: Next-hop address, if configured.
        next_hop_interface: Next-hop interface name, if configured.
        admin_distance: Administrative distance.

    """

    network: IpNetwork
    next_hop_ip: IpAddress | None = None
    next_hop_interface: str | None = None
    admin_distance: int = 1

    @property
    def next_hop(self) -> str:
        """Return a printable next hop (interface name or address)."""
        if self.next_hop_interface:
            return self.next_hop_interface
        return str(self.next_hop_ip) if self.next_hop_ip is not None else "none"


@dataclass
class OspfArea:
    """An OSPF area and the interfaces placed in it."""

    area_id: int
    interfaces: list[Interface] = field(default_factory=list)


@dataclass
class OspfProcess:
    """OSPF process of a device.

    Attributes:
        reference_bandwidth: Reference bandwidth (bits/s) for cost defaults.
        areas: Mapping of area id to ``OspfArea``.
        export_policy: Name of the routing policy applied on export.

    """

    reference_bandwidth: float = 100e6
    areas: dict[int, OspfArea] = field(default_factory=dict)
    export_policy: str | None = None


@dataclass(frozen=True)
class BgpNeighbor:
    """A BGP neighbor statement.

    Attributes:
        prefix: Configured peer prefix; a host prefix for a single peer.
        local_as: Local AS number used for the session.
        remote_as: Remote AS number of the peer.
        local_ip: Local (usually loopback) address used for the session.
        route_reflector_client: Whether the peer is a route-reflector client.
        import_policy: Name of the import routing policy.
        export_policy: Name of the export routing policy.
        description: Free-form description.

    """

    prefix: IpNetwork
    local_as: int | None = None
    remote_as: int | None = None
    local_ip: IpAddress | None = None
    route_reflector_client: bool = False
    import_policy: str | None = None
    export_policy: str | None = None
    description: str = ""

    @property
    def address(self) -> IpAddress | None:
        """Return the peer address for host prefixes, ``None`` for ranges."""
        if self.prefix.prefixlen == self.prefix.max_prefixlen:
            return self.prefix.network_address
        return None

    @property
    def is_internal(self) -> bool:
        """Return ``True`` when local and remote AS are set and equal."""
        return self.local_as is not None and self.local_as == self.remote_as


@dataclass
class BgpProcess:
    """BGP process of a device, with neighbors keyed by configured prefix."""

    router_id: IpAddress | None = None
    neighbors: dict[IpNetwork, BgpNeighbor] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Routing policy AST
# ---------------------------------------------------------------------------


class RoutingProtocol(StrEnum):
    """Route sources that a policy can match on."""

    BGP = "bgp"
    IBGP = "ibgp"
    OSPF = "ospf"
    STATIC = "static"
    CONNECTED = "connected"
    AGGREGATE = "aggregate"


@dataclass(frozen=True)
class PrefixRange:
    """A prefix with an accepted range of mask lengths."""

    prefix: IpNetwork
    min_length: int
    max_length: int

    @classmethod
    def exact(cls, prefix: IpNetwork) -> PrefixRange:
        """Return the range matching exactly ``prefix``."""
        return cls(prefix, prefix.prefixlen, prefix.prefixlen)


@dataclass(frozen=True)
class ExplicitPrefixSet:
    """Prefix set given inline as a list of ranges."""

    ranges: tuple[PrefixRange, ...] = ()


@dataclass(frozen=True)
class NamedPrefixSet:
    """Reference to a prefix list defined elsewhere in the configuration."""

    name: str


PrefixSetExpr = ExplicitPrefixSet | NamedPrefixSet


@dataclass(frozen=True)
class MatchPrefixSet:
    """Matches routes whose destination falls in a prefix set."""

    prefix_set: PrefixSetExpr


@dataclass(frozen=True)
class MatchProtocol:
    """Matches routes learned from a given protocol."""

    protocol: RoutingProtocol


@dataclass(frozen=True)
class Not:
    """Negation of a boolean expression."""

    expr: BooleanExpr


@dataclass(frozen=True)
class Conjunction:
    """Logical AND over an ordered list of expressions."""

    conjuncts: tuple[BooleanExpr, ...] = ()


@dataclass(frozen=True)
class Disjunction:
    """Logical OR over an ordered list of expressions."""

    disjuncts: tuple[BooleanExpr, ...] = ()


@dataclass(frozen=True)
class CallExpr:
    """Evaluates another routing policy as a boolean."""

    policy: str


BooleanExpr = MatchPrefixSet | MatchProtocol | Not | Conjunction | Disjunction | CallExpr


class StaticStatement(StrEnum):
    """Terminal policy actions."""

    ACCEPT = "accept"
    REJECT = "reject"
    RETURN = "return"


@dataclass(frozen=True)
class CallStatement:
    """Runs another routing policy's statements."""

    policy: str


@dataclass(frozen=True)
class If:
    """Conditional statement."""

    guard: BooleanExpr
    true_statements: tuple[Statement, ...] = ()
    false_statements: tuple[Statement, ...] = ()


Statement = If | StaticStatement | CallStatement


@dataclass(frozen=True)
class RoutingPolicy:
    """A named routing policy made of ordered statements."""

    name: str
    statements: tuple[Statement, ...] = ()


# ---------------------------------------------------------------------------
# Devices
# ---------------------------------------------------------------------------


@dataclass
class Device:
    """Structured configuration of one network device.

    Attributes:
        name: Unique device name.
        interfaces: Ordered mapping of interface name to ``Interface``.
        ospf: OSPF process, if configured.
        bgp: BGP process, if configured.
        static_routes: Configured static routes.
        routing_policies: Mapping of policy name to ``RoutingPolicy``.
        vendor: Configuration format (``host`` for end hosts).

    """

    name: str
    interfaces: dict[str, Interface] = field(default_factory=dict)
    ospf: OspfProcess | None = None
    bgp: BgpProcess | None = None
    static_routes: list[StaticRoute] = field(default_factory=list)
    routing_policies: dict[str, RoutingPolicy] = field(default_factory=dict)
    vendor: str = ""


@dataclass(frozen=True)
class InterfaceRef:
    """Key of the external adjacency relation: a device/interface pair."""

    device: str
    interface: str

    def __str__(self) -> str:
        return f"{self.device}:{self.interface}"


# ---------------------------------------------------------------------------
# Graph edges
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class GraphEdge:
    """One direction of a link between two devices.

    An edge without a peer is *dangling* (host-facing, ambiguous segment or
    one-sided iBGP session).  Abstract edges carry synthesized interfaces
    and model iBGP sessions that may span several physical hops.

    Equality and hashing use device names, interface names and the
    abstract flag, so edges built independently for the same link compare
    equal.

    Attributes:
        start: Local interface.
        end: Remote interface, if resolved.
        router: Local device name.
        peer: Remote device name, if resolved.
        abstract: ``True`` for synthesized iBGP edges.

    """

    start: Interface
    end: Interface | None
    router: str
    peer: str | None
    abstract: bool = False

    @property
    def key(self) -> tuple[str, str, str | None, str | None, bool]:
        """Return the identity tuple used for equality and hashing."""
        end_name = self.end.name if self.end is not None else None
        return (self.router, self.start.name, self.peer, end_name, self.abstract)

    @property
    def is_dangling(self) -> bool:
        """Return ``True`` if the edge has no resolved remote device."""
        return self.peer is None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GraphEdge):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        if self.end is None:
            return f"{self.router},{self.start.name} --> _"
        return f"{self.router},{self.start.name} --> {self.peer},{self.end.name}"
