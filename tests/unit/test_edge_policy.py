"""Unit tests for per-protocol edge eligibility and policy queries."""

from __future__ import annotations

import logging
from collections.abc import Callable
from ipaddress import ip_address, ip_interface, ip_network

import pytest

from cpgraph.core.config import GraphOptions
from cpgraph.core.datamodel import (
    CallExpr,
    CallStatement,
    Conjunction,
    Device,
    ExplicitPrefixSet,
    If,
    Interface,
    MatchPrefixSet,
    MatchProtocol,
    NamedPrefixSet,
    Not,
    OspfArea,
    OspfProcess,
    PrefixRange,
    RoutingPolicy,
    RoutingProtocol,
    StaticRoute,
    StaticStatement,
)
from cpgraph.core.exceptions import ConfigurationError
from cpgraph.core.protocol import Protocol
from cpgraph.graph.network_graph import NetworkGraph
from cpgraph.policy.edge_policy import (
    find_common_routing_policy,
    find_export_routing_policy,
    find_import_routing_policy,
    get_originated_networks,
    is_edge_used,
    is_interface_active,
)
from cpgraph.policy.policy_visitor import PolicyVisitor

GraphFactory = Callable[..., NetworkGraph]


def _redistribute(*prefixes: str) -> If:
    """``if prefix-set AND NOT protocol bgp then accept``."""
    ranges = tuple(PrefixRange.exact(ip_network(p)) for p in prefixes)
    guard = Conjunction(
        (
            MatchPrefixSet(ExplicitPrefixSet(ranges)),
            Not(MatchProtocol(RoutingProtocol.BGP)),
        )
    )
    return If(guard, (StaticStatement.ACCEPT,), (StaticStatement.REJECT,))


@pytest.fixture
def ospf_router() -> Device:
    """Router with one OSPF-enabled link and one passive LAN."""
    core = Interface("eth0", prefix=ip_interface("10.0.0.1/30"), bandwidth=1e9, ospf_enabled=True)
    lan = Interface("eth1", prefix=ip_interface("192.168.1.1/24"), bandwidth=1e9, ospf_enabled=True)
    down = Interface(
        "eth2", prefix=ip_interface("192.168.2.1/24"), bandwidth=1e9, ospf_enabled=True, active=False
    )
    return Device(
        "r1",
        interfaces={i.name: i for i in (core, lan, down)},
        ospf=OspfProcess(areas={0: OspfArea(0, [core, lan, down])}, export_policy="OSPF_OUT"),
        routing_policies={"OSPF_OUT": RoutingPolicy("OSPF_OUT", (StaticStatement.ACCEPT,))},
    )


class TestIsEdgeUsed:
    """Tests for the ordered edge-eligibility rules."""

    def test_ospf_needs_enabled_interface_and_peer(
        self, build_graph: GraphFactory, ospf_router: Device
    ) -> None:
        peer = Device(
            "r2",
            interfaces={"eth0": Interface("eth0", prefix=ip_interface("10.0.0.2/30"), bandwidth=1e9)},
        )
        graph = build_graph([ospf_router, peer], [("r1:eth0", "r2:eth0")])
        used = {e.start.name: is_edge_used(graph, ospf_router, Protocol.OSPF, e) for e in graph.edges_of("r1")}

        # eth1 is dangling, eth2 is down.
        assert used == {"eth0": True, "eth1": False, "eth2": False}
        (back,) = graph.edges_of("r2")
        assert not is_edge_used(graph, peer, Protocol.OSPF, back)

    def test_connected_runs_on_every_active_edge(
        self, build_graph: GraphFactory, ospf_router: Device
    ) -> None:
        graph = build_graph([ospf_router])
        used = [e.start.name for e in graph.edges_of("r1") if is_edge_used(graph, ospf_router, "connected", e)]
        assert used == ["eth0", "eth1"]

    def test_abstract_edge_only_carries_bgp(
        self, build_graph: GraphFactory, rr_cluster: list[Device]
    ) -> None:
        graph = build_graph(rr_cluster)
        rr = rr_cluster[0]
        abstract = [e for e in graph.edges_of("rr") if e.abstract]

        assert abstract
        for edge in abstract:
            assert is_edge_used(graph, rr, Protocol.BGP, edge)
            for proto in (Protocol.OSPF, Protocol.STATIC, Protocol.CONNECTED):
                assert not is_edge_used(graph, rr, proto, edge)

    def test_loopback_only_carries_connected(
        self, build_graph: GraphFactory, rr_cluster: list[Device]
    ) -> None:
        graph = build_graph(rr_cluster)
        rr = rr_cluster[0]
        (lo0,) = [e for e in graph.edges_of("rr") if e.start.name == "lo0"]

        assert is_edge_used(graph, rr, Protocol.CONNECTED, lo0)
        assert not is_edge_used(graph, rr, Protocol.BGP, lo0)
        assert not is_edge_used(graph, rr, Protocol.STATIC, lo0)

    def test_bgp_needs_a_session(
        self,
        build_graph: GraphFactory,
        ebgp_pair: list[Device],
    ) -> None:
        graph = build_graph(ebgp_pair, [("a:eth0", "b:eth0")])
        a, b = ebgp_pair
        (a_edge,) = graph.edges_of("a")
        (b_edge,) = graph.edges_of("b")

        assert is_edge_used(graph, a, Protocol.BGP, a_edge)
        assert not is_edge_used(graph, b, Protocol.BGP, b_edge)

    def test_unknown_protocol_raises(
        self,
        build_graph: GraphFactory,
        router_pair: list[Device],
        pair_links: list[tuple[str, str]],
    ) -> None:
        graph = build_graph(router_pair, pair_links)
        (edge,) = graph.edges_of("a")
        with pytest.raises(ConfigurationError, match="Unrecognized protocol 'isis'"):
            is_edge_used(graph, router_pair[0], "isis", edge)

    @pytest.mark.parametrize(
        "protocol,ospf_enabled,expected",
        [
            (Protocol.OSPF, False, False),
            (Protocol.OSPF, True, True),
            (Protocol.BGP, False, True),
            ("STATIC", False, True),
        ],
    )
    def test_is_interface_active(self, protocol: Protocol | str, ospf_enabled: bool, expected: bool) -> None:
        assert is_interface_active(protocol, Interface("eth0", ospf_enabled=ospf_enabled)) is expected


class TestPolicyLookup:
    """Tests for common, import and export policy lookup."""

    def test_bgp_session_policies(self, build_graph: GraphFactory, ebgp_pair: list[Device]) -> None:
        a = ebgp_pair[0]
        a.routing_policies = {
            "FROM_B": RoutingPolicy("FROM_B", (StaticStatement.ACCEPT,)),
            "TO_B": RoutingPolicy("TO_B", (StaticStatement.REJECT,)),
        }
        graph = build_graph(ebgp_pair, [("a:eth0", "b:eth0")])
        (edge,) = graph.edges_of("a")

        assert find_import_routing_policy(graph, a, Protocol.BGP, edge) is a.routing_policies["FROM_B"]
        assert find_export_routing_policy(graph, a, Protocol.BGP, edge) is a.routing_policies["TO_B"]

    def test_undefined_session_policy_is_none(
        self, build_graph: GraphFactory, ebgp_pair: list[Device]
    ) -> None:
        graph = build_graph(ebgp_pair, [("a:eth0", "b:eth0")])
        (edge,) = graph.edges_of("a")
        assert find_import_routing_policy(graph, ebgp_pair[0], Protocol.BGP, edge) is None

    def test_edge_without_session_has_no_bgp_policy(
        self,
        build_graph: GraphFactory,
        router_pair: list[Device],
        pair_links: list[tuple[str, str]],
    ) -> None:
        graph = build_graph(router_pair, pair_links)
        (edge,) = graph.edges_of("a")
        assert find_export_routing_policy(graph, router_pair[0], Protocol.BGP, edge) is None

    def test_ospf_uses_process_export_policy(
        self, build_graph: GraphFactory, ospf_router: Device
    ) -> None:
        graph = build_graph([ospf_router])
        edge = graph.edges_of("r1")[0]

        expected = ospf_router.routing_policies["OSPF_OUT"]
        assert find_common_routing_policy(ospf_router, Protocol.OSPF) is expected
        assert find_export_routing_policy(graph, ospf_router, Protocol.OSPF, edge) is expected
        assert find_import_routing_policy(graph, ospf_router, Protocol.OSPF, edge) is None

    @pytest.mark.parametrize("protocol", [Protocol.STATIC, Protocol.CONNECTED])
    def test_static_and_connected_have_no_policies(
        self, build_graph: GraphFactory, ospf_router: Device, protocol: Protocol
    ) -> None:
        graph = build_graph([ospf_router])
        edge = graph.edges_of("r1")[0]

        assert find_common_routing_policy(ospf_router, protocol) is None
        assert find_import_routing_policy(graph, ospf_router, protocol, edge) is None
        assert find_export_routing_policy(graph, ospf_router, protocol, edge) is None

    def test_common_bgp_policy_matches_name_fragment(self) -> None:
        policy = RoutingPolicy("~BGP_COMMON_EXPORT_POLICY:default~")
        device = Device("r1", routing_policies={"OTHER": RoutingPolicy("OTHER"), policy.name: policy})

        assert find_common_routing_policy(device, Protocol.BGP) is policy
        assert find_common_routing_policy(device, "bgp", GraphOptions(bgp_common_policy_name="EXPORT_ALL")) is None

    def test_no_ospf_process_means_no_policy(self) -> None:
        assert find_common_routing_policy(Device("r1"), Protocol.OSPF) is None


class TestOriginatedNetworks:
    """Tests for get_originated_networks."""

    def test_ospf_area_interfaces(self, ospf_router: Device) -> None:
        assert get_originated_networks(ospf_router, Protocol.OSPF) == [
            ip_network("10.0.0.0/30"),
            ip_network("192.168.1.0/24"),
        ]

    def test_connected_networks(self, ospf_router: Device) -> None:
        ospf_router.interfaces["mgmt"] = Interface("mgmt")
        assert get_originated_networks(ospf_router, "connected") == [
            ip_network("10.0.0.0/30"),
            ip_network("192.168.1.0/24"),
            ip_network("192.168.2.0/24"),
        ]

    def test_static_excludes_discard_routes(self) -> None:
        device = Device(
            "r1",
            static_routes=[
                StaticRoute(ip_network("0.0.0.0/0"), next_hop_ip=ip_address("10.0.0.2")),
                StaticRoute(ip_network("192.0.2.0/24"), next_hop_interface="null_interface"),
                StaticRoute(ip_network("0.0.0.0/0"), next_hop_interface="eth1"),
            ],
        )
        assert get_originated_networks(device, Protocol.STATIC) == [ip_network("0.0.0.0/0")]

    def test_bgp_redistribution_through_called_policies(self) -> None:
        common = RoutingPolicy(
            "BGP_COMMON_EXPORT_POLICY",
            (
                _redistribute("10.10.0.0/16"),
                CallStatement("EXTRA"),
                If(CallExpr("GUARD"), (StaticStatement.ACCEPT,)),
            ),
        )
        extra = RoutingPolicy("EXTRA", (_redistribute("10.20.0.0/16", "10.10.0.0/16"),))
        guard = RoutingPolicy("GUARD", (_redistribute("10.30.0.0/16"),))
        device = Device(
            "r1",
            routing_policies={p.name: p for p in (common, extra, guard)},
        )

        assert get_originated_networks(device, Protocol.BGP) == [
            ip_network("10.10.0.0/16"),
            ip_network("10.20.0.0/16"),
            ip_network("10.30.0.0/16"),
        ]

    def test_bgp_ignores_other_conditions(self) -> None:
        named = If(
            Conjunction(
                (
                    MatchPrefixSet(NamedPrefixSet("LOCAL")),
                    Not(MatchProtocol(RoutingProtocol.BGP)),
                )
            ),
            (StaticStatement.ACCEPT,),
        )
        ospf_only = If(MatchProtocol(RoutingProtocol.OSPF), (StaticStatement.ACCEPT,))
        device = Device(
            "r1",
            routing_policies={
                "BGP_COMMON_EXPORT_POLICY": RoutingPolicy("BGP_COMMON_EXPORT_POLICY", (named, ospf_only))
            },
        )
        assert get_originated_networks(device, Protocol.BGP) == []

    def test_bgp_without_common_policy(self, ebgp_pair: list[Device]) -> None:
        assert get_originated_networks(ebgp_pair[0], Protocol.BGP) == []

    def test_unknown_protocol_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="Unrecognized protocol"):
            get_originated_networks(Device("r1"), "rip")


class TestPolicyVisitor:
    """Tests for PolicyVisitor."""

    def test_visits_nested_statements_and_expressions(self) -> None:
        stmt = _redistribute("10.0.0.0/8")
        device = Device("r1")
        statements: list[object] = []
        exprs: list[object] = []

        PolicyVisitor(device).visit((stmt,), statements.append, exprs.append)

        assert statements == [stmt, StaticStatement.ACCEPT, StaticStatement.REJECT]
        assert [type(e).__name__ for e in exprs] == ["Conjunction", "MatchPrefixSet", "Not", "MatchProtocol"]

    def test_recursive_calls_are_followed_once(self, caplog: pytest.LogCaptureFixture) -> None:
        loop = RoutingPolicy("LOOP", (CallStatement("LOOP"), CallStatement("MISSING")))
        device = Device("r1", routing_policies={"LOOP": loop})
        statements: list[object] = []

        with caplog.at_level(logging.WARNING):
            PolicyVisitor(device).visit((CallStatement("LOOP"),), statements.append, lambda e: None)

        assert statements == [CallStatement("LOOP"), CallStatement("LOOP"), CallStatement("MISSING")]
        assert "MISSING" in caplog.text
