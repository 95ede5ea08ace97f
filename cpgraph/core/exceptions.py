"""Custom exception hierarchy for the control-plane graph.

All errors inherit from ``NetworkModelError`` so that callers can use a
single top-level handler while still catching specific failures.

Exception tree::

    NetworkModelError
    ├── ConfigurationError
    ├── SnapshotError
    └── ReportError
"""

from __future__ import annotations


class NetworkModelError(Exception):
    """Base exception for all control-plane graph errors.

    Attributes:
        message: Human-readable error description.
        device: Optional device name that triggered the error.
        details: Optional mapping of additional contextual data.

    """

    def __init__(
        self,
        message: str,
        device: str | None = None,
        details: dict[str, object] | None = None,
    ) -> None:
        """Initialize with a message, optional device context, and details."""
        self.message = message
        self.device = device
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional device context."""
        parts: list[str] = []
        if self.device:
            parts.append(f"[{self.device}]")
        parts.append(self.message)
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"({detail_str})")
        return " ".join(parts)


class ConfigurationError(NetworkModelError):
    """Raised when device configuration cannot be turned into a valid graph.

    Fatal to the current construction attempt; the caller must fix the
    input and rebuild.

    Examples:
        - Interface bandwidth missing when an OSPF cost must be derived
        - Static route whose next hop matches no interface
        - Peer classification requested for an edge with no BGP session
        - Unrecognized protocol passed to a policy query

    """


class SnapshotError(NetworkModelError):
    """Raised when a network snapshot file cannot be loaded.

    Examples:
        - Missing snapshot file on disk
        - Malformed YAML or unexpected section layout
        - Invalid prefix, address or link endpoint

    """


class ReportError(NetworkModelError):
    """Raised when a diagnostics report cannot be rendered or written.

    Examples:
        - Template not found
        - Output path not writable

    """
