"""Protocol-edge policy queries over a built control-plane graph.

Answers, per device, protocol and edge, whether the edge carries the
protocol, which routing policy applies, and which prefixes the device
originates into the protocol.
"""

from .edge_policy import (
    find_common_routing_policy,
    find_export_routing_policy,
    find_import_routing_policy,
    get_originated_networks,
    is_edge_used,
    is_interface_active,
)
from .policy_visitor import PolicyVisitor

__all__ = [
    "PolicyVisitor",
    "find_common_routing_policy",
    "find_export_routing_policy",
    "find_import_routing_policy",
    "get_originated_networks",
    "is_edge_used",
    "is_interface_active",
]
