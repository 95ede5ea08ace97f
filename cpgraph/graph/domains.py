"""Partitioning of devices into AS-like domains.

Two devices share a domain when they are connected without crossing an
eBGP session.  A link counts as an eBGP boundary if either direction of
it is a resolved eBGP session.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Mapping, Sequence

from ..core.datamodel import BgpNeighbor, GraphEdge

logger = logging.getLogger(__name__)


def _crosses_ebgp(
    edge: GraphEdge,
    other_end: Mapping[GraphEdge, GraphEdge],
    ebgp_sessions: Mapping[GraphEdge, BgpNeighbor],
) -> bool:
    if edge in ebgp_sessions:
        return True
    reverse = other_end.get(edge)
    return reverse is not None and reverse in ebgp_sessions


def partition_domains(
    routers: Iterable[str],
    edges: Mapping[str, Sequence[GraphEdge]],
    other_end: Mapping[GraphEdge, GraphEdge],
    ebgp_sessions: Mapping[GraphEdge, BgpNeighbor],
) -> tuple[dict[str, int], dict[int, frozenset[str]]]:
    """Group devices into connected components of eBGP-free edges.

    Components are discovered by BFS, starting from the first unassigned
    device in ``routers`` order; ids count up from 0.

    Args:
        routers: Device names in discovery order.
        edges: Outgoing edges per device (concrete and abstract).
        other_end: Reverse-edge pairing.
        ebgp_sessions: Resolved eBGP session edges.

    Returns:
        ``(domain_of, domains)``: device to domain id, and domain id to
        member devices.

    """
    ordered = list(routers)
    domain_of: dict[str, int] = {}
    domains: dict[int, frozenset[str]] = {}
    known = set(ordered)

    next_id = 0
    for start in ordered:
        if start in domain_of:
            continue

        members: list[str] = []
        queue: deque[str] = deque([start])
        domain_of[start] = next_id
        while queue:
            router = queue.popleft()
            members.append(router)
            for edge in edges.get(router, ()):
                peer = edge.peer
                if peer is None or peer not in known or peer in domain_of:
                    continue
                if _crosses_ebgp(edge, other_end, ebgp_sessions):
                    continue
                domain_of[peer] = next_id
                queue.append(peer)

        domains[next_id] = frozenset(members)
        logger.debug("Domain %d: %s", next_id, ", ".join(members))
        next_id += 1

    logger.info("Partitioned %d device(s) into %d domain(s)", len(ordered), len(domains))
    return domain_of, domains
