"""Network snapshot loading for the control-plane graph.

Reads device configurations, interface links and graph settings from
YAML snapshot files.
"""

from .snapshot_loader import NetworkSnapshot, SnapshotLoader

__all__ = ["NetworkSnapshot", "SnapshotLoader"]
