"""YAML network-snapshot loading.

A snapshot file describes device configurations, the links between
interfaces, and optional graph settings::

    settings:
      null_interface_name: Null0
    devices:
      r1:
        vendor: cisco
        interfaces:
          eth0: {prefix: 10.0.0.1/24, bandwidth: 1e9, ospf_enabled: true}
          lo0: {prefix: 1.1.1.1/32, loopback: true, ospf_cost: 1}
        ospf:
          reference_bandwidth: 1e8
          export_policy: OSPF_EXPORT
          areas: {0: [eth0]}
        bgp:
          router_id: 1.1.1.1
          neighbors:
            - {prefix: 2.2.2.2/32, local_as: 65000, remote_as: 65000, local_ip: 1.1.1.1}
        static_routes:
          - {network: 0.0.0.0/0, next_hop_ip: 10.0.0.2}
        routing_policies:
          BGP_COMMON_EXPORT_POLICY:
            - if:
                all:
                  - match_prefix_set: [10.1.0.0/16]
                  - not: {match_protocol: bgp}
              then: [accept]
              else: [reject]
    links:
      - ["r1:eth0", "r2:eth0"]

Usage::

    snapshot = SnapshotLoader("network.yml").load()
    graph = snapshot.build_graph()
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from dataclasses import dataclass, field
from ipaddress import ip_address, ip_interface, ip_network
from pathlib import Path
from typing import Any

from ..core.config import GraphOptions
from ..core.datamodel import (
    BgpNeighbor,
    BgpProcess,
    BooleanExpr,
    CallExpr,
    CallStatement,
    Conjunction,
    Device,
    Disjunction,
    ExplicitPrefixSet,
    If,
    Interface,
    InterfaceRef,
    MatchPrefixSet,
    MatchProtocol,
    NamedPrefixSet,
    Not,
    OspfArea,
    OspfProcess,
    PrefixRange,
    PrefixSetExpr,
    RoutingPolicy,
    RoutingProtocol,
    Statement,
    StaticRoute,
    StaticStatement,
)
from ..core.exceptions import ConfigurationError, SnapshotError
from ..graph.network_graph import NetworkGraph

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_FILE = Path("snapshot/network.yml")


@dataclass
class NetworkSnapshot:
    """Device configurations and adjacency loaded from a snapshot.

    Attributes:
        devices: Ordered mapping of device name to configuration.
        adjacency: Mapping of interface to directly connected interfaces.
        options: Graph settings from the ``settings`` section.

    """

    devices: dict[str, Device] = field(default_factory=dict)
    adjacency: dict[InterfaceRef, list[InterfaceRef]] = field(default_factory=dict)
    options: GraphOptions = field(default_factory=GraphOptions)

    def build_graph(self, routers: Collection[str] | None = None) -> NetworkGraph:
        """Build a ``NetworkGraph`` from this snapshot."""
        return NetworkGraph(self.devices, self.adjacency, routers=routers, options=self.options)


class SnapshotLoader:
    """Load a network snapshot from a YAML file.

    Args:
        path: Path to the snapshot YAML file.

    """

    def __init__(self, path: str | Path = DEFAULT_SNAPSHOT_FILE) -> None:
        """Initialize the loader with the snapshot file path."""
        self._path = Path(path)
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def path(self) -> Path:
        """Return the snapshot file path."""
        return self._path

    def load(self) -> NetworkSnapshot:
        """Read and parse the snapshot file.

        Returns:
            The parsed ``NetworkSnapshot``.

        Raises:
            SnapshotError: If the file is missing or malformed.

        """
        import yaml  # type: ignore[import-untyped]

        if not self._path.exists():
            raise SnapshotError(f"Snapshot file not found: {self._path}")
        try:
            with self._path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise SnapshotError(
                f"Malformed snapshot file: {self._path}",
                details={"error": str(exc)},
            ) from exc

        snapshot = self.parse(raw)
        self._logger.info(
            "Snapshot loaded from %s: %d devices, %d linked interfaces",
            self._path,
            len(snapshot.devices),
            len(snapshot.adjacency),
        )
        return snapshot

    def parse(self, raw: Any) -> NetworkSnapshot:
        """Build a ``NetworkSnapshot`` from already-decoded YAML data.

        Raises:
            SnapshotError: If the data does not describe a valid snapshot.

        """
        if not isinstance(raw, dict):
            raise SnapshotError("Snapshot must be a mapping", details={"path": self._path})

        try:
            options = GraphOptions.from_dict(raw.get("settings"))
        except (ConfigurationError, TypeError) as exc:
            raise SnapshotError("Invalid settings section", details={"error": str(exc)}) from exc

        devices: dict[str, Device] = {}
        for name, data in (raw.get("devices") or {}).items():
            devices[str(name)] = _parse_device(str(name), data or {})

        adjacency = _parse_links(raw.get("links") or [], devices)
        return NetworkSnapshot(devices=devices, adjacency=adjacency, options=options)


# ---------------------------------------------------------------------------
# Section parsers
# ---------------------------------------------------------------------------


def _parse_device(name: str, data: dict[str, Any]) -> Device:
    try:
        interfaces = {
            str(iface_name): _parse_interface(str(iface_name), iface or {})
            for iface_name, iface in (data.get("interfaces") or {}).items()
        }
        device = Device(
            name=name,
            interfaces=interfaces,
            ospf=_parse_ospf(data["ospf"], interfaces) if data.get("ospf") else None,
            bgp=_parse_bgp(data["bgp"]) if data.get("bgp") else None,
            static_routes=[_parse_static_route(r) for r in data.get("static_routes") or []],
            vendor=str(data.get("vendor", "")),
        )
        for policy_name, statements in (data.get("routing_policies") or {}).items():
            device.routing_policies[str(policy_name)] = RoutingPolicy(
                name=str(policy_name),
                statements=tuple(_parse_statement(s) for s in statements or []),
            )
    except SnapshotError as exc:
        raise SnapshotError(exc.message, device=name, details=exc.details) from exc
    except (ValueError, TypeError, KeyError, AttributeError) as exc:
        raise SnapshotError(
            "Invalid device configuration",
            device=name,
            details={"error": str(exc)},
        ) from exc
    return device


def _parse_interface(name: str, data: dict[str, Any]) -> Interface:
    bandwidth = data.get("bandwidth")
    cost = data.get("ospf_cost")
    return Interface(
        name=name,
        prefix=ip_interface(data["prefix"]) if data.get("prefix") else None,
        active=bool(data.get("active", True)),
        bandwidth=float(bandwidth) if bandwidth is not None else None,
        ospf_cost=int(cost) if cost is not None else None,
        ospf_enabled=bool(data.get("ospf_enabled", False)),
        loopback=bool(data.get("loopback", False)),
    )


def _parse_ospf(data: dict[str, Any], interfaces: dict[str, Interface]) -> OspfProcess:
    areas: dict[int, OspfArea] = {}
    for area_id, names in (data.get("areas") or {}).items():
        members: list[Interface] = []
        for iface_name in names or []:
            if iface_name not in interfaces:
                raise SnapshotError(
                    "OSPF area references unknown interface",
                    details={"area": area_id, "interface": iface_name},
                )
            members.append(interfaces[iface_name])
        areas[int(area_id)] = OspfArea(int(area_id), members)
    return OspfProcess(
        reference_bandwidth=float(data.get("reference_bandwidth", 100e6)),
        areas=areas,
        export_policy=data.get("export_policy"),
    )


def _parse_bgp(data: dict[str, Any]) -> BgpProcess:
    process = BgpProcess(
        router_id=ip_address(data["router_id"]) if data.get("router_id") else None,
    )
    for entry in data.get("neighbors") or []:
        neighbor = BgpNeighbor(
            prefix=ip_network(entry["prefix"], strict=False),
            local_as=_optional_int(entry.get("local_as")),
            remote_as=_optional_int(entry.get("remote_as")),
            local_ip=ip_address(entry["local_ip"]) if entry.get("local_ip") else None,
            route_reflector_client=bool(entry.get("route_reflector_client", False)),
            import_policy=entry.get("import_policy"),
            export_policy=entry.get("export_policy"),
            description=str(entry.get("description", "")),
        )
        process.neighbors[neighbor.prefix] = neighbor
    return process


def _parse_static_route(data: dict[str, Any]) -> StaticRoute:
    return StaticRoute(
        network=ip_network(data["network"], strict=False),
        next_hop_ip=ip_address(data["next_hop_ip"]) if data.get("next_hop_ip") else None,
        next_hop_interface=data.get("next_hop_interface"),
        admin_distance=int(data.get("admin_distance", 1)),
    )


def _optional_int(value: Any) -> int | None:
    return int(value) if value is not None else None


# ---------------------------------------------------------------------------
# Routing policy parsers
# ---------------------------------------------------------------------------


def _parse_statement(data: Any) -> Statement:
    if isinstance(data, str):
        return StaticStatement(data.lower())
    if "if" in data:
        return If(
            guard=_parse_expr(data["if"]),
            true_statements=tuple(_parse_statement(s) for s in data.get("then") or []),
            false_statements=tuple(_parse_statement(s) for s in data.get("else") or []),
        )
    if "call" in data:
        return CallStatement(str(data["call"]))
    raise SnapshotError("Unrecognized policy statement", details={"statement": data})


def _parse_expr(data: dict[str, Any]) -> BooleanExpr:
    if "all" in data:
        return Conjunction(tuple(_parse_expr(e) for e in data["all"]))
    if "any" in data:
        return Disjunction(tuple(_parse_expr(e) for e in data["any"]))
    if "not" in data:
        return Not(_parse_expr(data["not"]))
    if "match_protocol" in data:
        return MatchProtocol(RoutingProtocol(str(data["match_protocol"]).lower()))
    if "match_prefix_set" in data:
        return MatchPrefixSet(_parse_prefix_set(data["match_prefix_set"]))
    if "call" in data:
        return CallExpr(str(data["call"]))
    raise SnapshotError("Unrecognized policy expression", details={"expression": data})


def _parse_prefix_set(data: Any) -> PrefixSetExpr:
    if isinstance(data, str):
        return NamedPrefixSet(data)
    ranges: list[PrefixRange] = []
    for entry in data:
        if isinstance(entry, str):
            ranges.append(PrefixRange.exact(ip_network(entry, strict=False)))
            continue
        prefix = ip_network(entry["prefix"], strict=False)
        ranges.append(
            PrefixRange(
                prefix,
                int(entry.get("min_length", prefix.prefixlen)),
                int(entry.get("max_length", prefix.prefixlen)),
            )
        )
    return ExplicitPrefixSet(tuple(ranges))


# ---------------------------------------------------------------------------
# Links
# ---------------------------------------------------------------------------


def _parse_endpoint(value: Any) -> InterfaceRef:
    device, sep, interface = str(value).partition(":")
    if not sep or not device or not interface:
        raise SnapshotError(
            "Link endpoint must be 'device:interface'",
            details={"endpoint": value},
        )
    return InterfaceRef(device, interface)


def _parse_links(
    links: list[Any],
    devices: dict[str, Device],
) -> dict[InterfaceRef, list[InterfaceRef]]:
    adjacency: dict[InterfaceRef, list[InterfaceRef]] = {}
    for link in links:
        endpoints = [_parse_endpoint(e) for e in link]
        for ref in endpoints:
            device = devices.get(ref.device)
            if device is None or ref.interface not in device.interfaces:
                raise SnapshotError("Link references unknown interface", details={"endpoint": ref})
        for ref in endpoints:
            others = adjacency.setdefault(ref, [])
            others.extend(o for o in endpoints if o != ref and o not in others)
    return adjacency
