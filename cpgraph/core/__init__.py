"""Core module providing the data model, settings, and exception hierarchy.

Contains the structured device configuration objects the graph is built
from, the protocol enumerations used for dispatch, the ``GraphOptions``
settings value, and the custom exception hierarchy.
"""

from .config import DEFAULT_OPTIONS, GraphOptions
from .datamodel import (
    BgpNeighbor,
    BgpProcess,
    Device,
    GraphEdge,
    Interface,
    InterfaceKind,
    InterfaceRef,
    OspfArea,
    OspfProcess,
    RoutingPolicy,
    StaticRoute,
)
from .exceptions import (
    ConfigurationError,
    NetworkModelError,
    ReportError,
    SnapshotError,
)
from .protocol import BgpSendType, Protocol

__all__ = [
    "DEFAULT_OPTIONS",
    "BgpNeighbor",
    "BgpProcess",
    "BgpSendType",
    "ConfigurationError",
    "Device",
    "GraphEdge",
    "GraphOptions",
    "Interface",
    "InterfaceKind",
    "InterfaceRef",
    "NetworkModelError",
    "OspfArea",
    "OspfProcess",
    "Protocol",
    "ReportError",
    "RoutingPolicy",
    "SnapshotError",
    "StaticRoute",
]
