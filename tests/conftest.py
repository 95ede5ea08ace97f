"""Shared pytest fixtures for the control-plane graph test suite.

Provides reusable device configurations for the common scenarios
(point-to-point pair, eBGP boundary, route-reflector cluster) and a
factory fixture that builds a ``NetworkGraph`` from devices and links.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from ipaddress import ip_address, ip_interface, ip_network

import pytest

from cpgraph.core.datamodel import (
    BgpNeighbor,
    BgpProcess,
    Device,
    Interface,
    InterfaceRef,
)
from cpgraph.graph.network_graph import NetworkGraph

GraphFactory = Callable[..., NetworkGraph]

# ---------------------------------------------------------------------------
# Graph factory
# ---------------------------------------------------------------------------


def make_adjacency(links: Iterable[tuple[str, str]]) -> dict[InterfaceRef, list[InterfaceRef]]:
    """Turn ``("r1:eth0", "r2:eth0")`` pairs into a symmetric adjacency."""
    adjacency: dict[InterfaceRef, list[InterfaceRef]] = {}
    for a, b in links:
        ref_a = InterfaceRef(*a.split(":", 1))
        ref_b = InterfaceRef(*b.split(":", 1))
        adjacency.setdefault(ref_a, []).append(ref_b)
        adjacency.setdefault(ref_b, []).append(ref_a)
    return adjacency


@pytest.fixture
def build_graph() -> GraphFactory:
    """Factory building a graph from a device list and link pairs."""

    def _build(
        devices: Iterable[Device],
        links: Iterable[tuple[str, str]] = (),
        **kwargs: object,
    ) -> NetworkGraph:
        return NetworkGraph(
            {d.name: d for d in devices},
            make_adjacency(links),
            **kwargs,  # type: ignore[arg-type]
        )

    return _build


# ---------------------------------------------------------------------------
# Scenario: two directly connected routers
# ---------------------------------------------------------------------------


@pytest.fixture
def router_pair() -> list[Device]:
    """Routers ``a`` and ``b`` sharing 10.0.0.0/24, no routing protocols."""
    return [
        Device("a", interfaces={"eth0": Interface("eth0", prefix=ip_interface("10.0.0.1/24"))}),
        Device("b", interfaces={"eth0": Interface("eth0", prefix=ip_interface("10.0.0.2/24"))}),
    ]


@pytest.fixture
def pair_links() -> list[tuple[str, str]]:
    """The single link between ``a`` and ``b``."""
    return [("a:eth0", "b:eth0")]


# ---------------------------------------------------------------------------
# Scenario: eBGP boundary
# ---------------------------------------------------------------------------


@pytest.fixture
def ebgp_pair() -> list[Device]:
    """``a`` (AS 65001) peers externally with ``b`` over 10.0.12.0/30."""
    neighbor = BgpNeighbor(
        prefix=ip_network("10.0.12.2/32"),
        local_as=65001,
        remote_as=65002,
        import_policy="FROM_B",
        export_policy="TO_B",
    )
    a = Device(
        "a",
        interfaces={"eth0": Interface("eth0", prefix=ip_interface("10.0.12.1/30"))},
        bgp=BgpProcess(router_id=ip_address("10.0.12.1"), neighbors={neighbor.prefix: neighbor}),
    )
    b = Device(
        "b",
        interfaces={"eth0": Interface("eth0", prefix=ip_interface("10.0.12.2/30"))},
    )
    return [a, b]


# ---------------------------------------------------------------------------
# Scenario: route-reflector cluster
# ---------------------------------------------------------------------------


def _ibgp(peer: str, local: str, rr_client: bool = False) -> BgpNeighbor:
    return BgpNeighbor(
        prefix=ip_network(f"{peer}/32"),
        local_as=65000,
        remote_as=65000,
        local_ip=ip_address(local),
        route_reflector_client=rr_client,
    )


def _rr_device(name: str, loopback: str, links: dict[str, str], neighbors: list[BgpNeighbor]) -> Device:
    interfaces = {"lo0": Interface("lo0", prefix=ip_interface(f"{loopback}/32"), loopback=True)}
    for iface, prefix in links.items():
        interfaces[iface] = Interface(iface, prefix=ip_interface(prefix))
    return Device(
        name,
        interfaces=interfaces,
        bgp=BgpProcess(router_id=ip_address(loopback), neighbors={n.prefix: n for n in neighbors}),
    )


@pytest.fixture
def rr_cluster() -> list[Device]:
    """Reflector ``rr`` with clients ``c1`` and ``c2`` over loopback sessions."""
    rr = _rr_device(
        "rr",
        "1.1.1.1",
        {"eth1": "10.1.1.1/30", "eth2": "10.1.2.1/30"},
        [_ibgp("2.2.2.2", "1.1.1.1", rr_client=True), _ibgp("3.3.3.3", "1.1.1.1", rr_client=True)],
    )
    c1 = _rr_device("c1", "2.2.2.2", {"eth0": "10.1.1.2/30"}, [_ibgp("1.1.1.1", "2.2.2.2")])
    c2 = _rr_device("c2", "3.3.3.3", {"eth0": "10.1.2.2/30"}, [_ibgp("1.1.1.1", "3.3.3.3")])
    return [rr, c1, c2]


@pytest.fixture
def rr_links() -> list[tuple[str, str]]:
    """Physical links of the route-reflector cluster."""
    return [("rr:eth1", "c1:eth0"), ("rr:eth2", "c2:eth0")]

