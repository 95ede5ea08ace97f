"""Closed enumerations for protocols modelled by the graph."""

from __future__ import annotations

from enum import StrEnum

from .exceptions import ConfigurationError


class Protocol(StrEnum):
    """Protocols whose use of an edge can be queried."""

    OSPF = "ospf"
    BGP = "bgp"
    STATIC = "static"
    CONNECTED = "connected"


class BgpSendType(StrEnum):
    """Relationship of the local device to the peer across a BGP edge."""

    EBGP = "ebgp"
    TO_RR = "to-rr"
    TO_CLIENT = "to-client"
    TO_NONCLIENT = "to-nonclient"


def as_protocol(value: Protocol | str) -> Protocol:
    """Coerce ``value`` to a ``Protocol`` member.

    Raises:
        ConfigurationError: If ``value`` names no known protocol.

    """
    if isinstance(value, Protocol):
        return value
    try:
        return Protocol(str(value).lower())
    except ValueError:
        supported = ", ".join(p.value for p in Protocol)
        raise ConfigurationError(
            f"Unrecognized protocol '{value}'. Supported: {supported}",
        ) from None
