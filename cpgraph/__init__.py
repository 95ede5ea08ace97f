"""Control-plane graph construction.

Builds an in-memory model of a multi-device network's control plane
(topology, static routes, eBGP/iBGP sessions, route-reflector hierarchy
and AS domains) from structured device configurations, for consumption
by downstream formal-analysis tooling.
"""

__version__ = "1.0.0"
