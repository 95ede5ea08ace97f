"""Control-plane graph construction pipeline.

Turns device configurations plus an adjacency relation into directed
edges, BGP sessions, static-route bindings, the route-reflector
hierarchy and an AS-domain partition.
"""

from .bgp import IbgpResult, peer_type, resolve_ebgp_sessions, resolve_ibgp_sessions
from .domains import partition_domains
from .network_graph import NetworkGraph
from .ospf import collect_area_ids, default_ospf_cost, resolve_ospf_costs
from .static_routes import bind_static_routes, is_null_routed
from .topology import TopologyResult, infer_topology

__all__ = [
    "IbgpResult",
    "NetworkGraph",
    "TopologyResult",
    "bind_static_routes",
    "collect_area_ids",
    "default_ospf_cost",
    "infer_topology",
    "is_null_routed",
    "partition_domains",
    "peer_type",
    "resolve_ebgp_sessions",
    "resolve_ibgp_sessions",
    "resolve_ospf_costs",
]
