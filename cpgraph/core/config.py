"""Tunable constants used while building the graph.

Vendor conventions (default VLAN OSPF cost, the discard interface name,
the common BGP export policy name) are collected into a single frozen
``GraphOptions`` value so a snapshot can override them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Any

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_VLAN_OSPF_COST = 1
DEFAULT_VLAN_INTERFACE_PREFIX = "vlan"
NULL_INTERFACE_NAME = "null_interface"
BGP_COMMON_FILTER_LIST_NAME = "BGP_COMMON_EXPORT_POLICY"
IBGP_INTERFACE_PREFIX = "iBGP-"
HOST_VENDOR = "host"


@dataclass(frozen=True)
class GraphOptions:
    """Immutable settings for graph construction and policy queries.

    Attributes:
        vlan_ospf_cost: OSPF cost assigned to VLAN interfaces lacking one.
        vlan_interface_prefix: Case-insensitive name prefix of VLAN interfaces.
        null_interface_name: Next-hop interface name of discard routes.
        bgp_common_policy_name: Name fragment of the default BGP export policy.
        ibgp_interface_prefix: Name prefix of synthesized iBGP interfaces.
        host_vendor: Configuration format that marks a device as an end host.

    """

    vlan_ospf_cost: int = DEFAULT_VLAN_OSPF_COST
    vlan_interface_prefix: str = DEFAULT_VLAN_INTERFACE_PREFIX
    null_interface_name: str = NULL_INTERFACE_NAME
    bgp_common_policy_name: str = BGP_COMMON_FILTER_LIST_NAME
    ibgp_interface_prefix: str = IBGP_INTERFACE_PREFIX
    host_vendor: str = HOST_VENDOR

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> GraphOptions:
        """Build options from a mapping, rejecting unknown keys.

        Args:
            data: Mapping of option name to value; ``None`` yields defaults.

        Raises:
            ConfigurationError: If the mapping contains unknown keys.

        """
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(
                "Unknown graph option(s)",
                details={"unknown": unknown, "supported": sorted(known)},
            )
        logger.debug("Graph options overridden: %s", sorted(data))
        return cls(**data)


DEFAULT_OPTIONS = GraphOptions()
