"""OSPF interface cost defaulting and area-id collection."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping

from ..core.config import DEFAULT_OPTIONS, GraphOptions
from ..core.datamodel import Device, Interface, OspfProcess
from ..core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def default_ospf_cost(
    device: str,
    iface: Interface,
    process: OspfProcess,
    options: GraphOptions = DEFAULT_OPTIONS,
) -> int:
    """Compute the cost an interface gets when none is configured.

    VLAN interfaces use the vendor default; everything else derives the
    cost from the reference bandwidth, never going below 1.

    Raises:
        ConfigurationError: If the interface bandwidth is unknown.

    """
    if iface.name.lower().startswith(options.vlan_interface_prefix.lower()):
        return options.vlan_ospf_cost
    if not iface.bandwidth:
        raise ConfigurationError(
            "Expected non-null interface bandwidth to derive OSPF cost",
            device=device,
            details={"interface": iface.name},
        )
    return max(1, math.floor(process.reference_bandwidth / iface.bandwidth))


def resolve_ospf_costs(
    devices: Mapping[str, Device],
    options: GraphOptions = DEFAULT_OPTIONS,
) -> dict[str, dict[str, int]]:
    """Return the effective OSPF cost of active interfaces on OSPF devices.

    Configured costs are kept; missing ones are defaulted.  The device
    configurations are not modified, so the same input can be rebuilt
    after a correction.

    Args:
        devices: Mapping of device name to configuration.
        options: Graph settings supplying the VLAN default.

    Returns:
        Mapping of device name to interface name to cost.  Devices
        without an OSPF process map to an empty mapping.

    Raises:
        ConfigurationError: If a cost is needed but bandwidth is unknown.

    """
    costs: dict[str, dict[str, int]] = {}
    defaulted = 0
    for router, device in devices.items():
        by_iface: dict[str, int] = {}
        costs[router] = by_iface
        if device.ospf is None:
            continue
        for iface in device.interfaces.values():
            if not iface.active:
                continue
            if iface.ospf_cost is not None:
                by_iface[iface.name] = iface.ospf_cost
                continue
            by_iface[iface.name] = default_ospf_cost(router, iface, device.ospf, options)
            defaulted += 1
            logger.debug("%s:%s OSPF cost defaulted to %d", router, iface.name, by_iface[iface.name])
    logger.info("Resolved %d default OSPF cost(s)", defaulted)
    return costs


def collect_area_ids(devices: Mapping[str, Device]) -> dict[str, frozenset[int]]:
    """Return the configured OSPF area ids of every device."""
    return {
        router: frozenset(device.ospf.areas) if device.ospf is not None else frozenset()
        for router, device in devices.items()
    }
