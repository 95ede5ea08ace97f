"""HTML diagnostics report of a control-plane graph using Jinja2 templates.

Summarizes edges, BGP sessions with their peer types, the route-reflector
hierarchy, AS domains and static-route bindings, and embeds the textual
graph dump plus a Mermaid topology diagram.

Usage::

    gen = GraphReportGenerator()
    gen.set_title("Lab topology")
    gen.generate(graph, "output/graph.html")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..core.exceptions import ReportError

if TYPE_CHECKING:
    from ..graph.network_graph import NetworkGraph

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
DEFAULT_TEMPLATE = "graph_report.html"
DEFAULT_TITLE = "Control-Plane Graph Report"


@dataclass
class ReportData:
    """Aggregated data model passed to the Jinja2 template.

    Attributes:
        title: Report title.
        timestamp: ISO-8601 generation timestamp.
        devices: Per-device summary rows.
        edges: Edge rows (local, remote, flags).
        sessions: BGP session rows with peer types.
        reflectors: Route-reflector rows (reflector, clients).
        domains: Domain rows (id, members).
        static_routes: Static binding rows.
        dump: Textual graph dump.
        topology_mermaid: Mermaid diagram source.

    """

    title: str = DEFAULT_TITLE
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    devices: list[dict[str, Any]] = field(default_factory=list)
    edges: list[dict[str, Any]] = field(default_factory=list)
    sessions: list[dict[str, Any]] = field(default_factory=list)
    reflectors: list[dict[str, Any]] = field(default_factory=list)
    domains: list[dict[str, Any]] = field(default_factory=list)
    static_routes: list[dict[str, Any]] = field(default_factory=list)
    dump: str = ""
    topology_mermaid: str = ""

    @property
    def edge_count(self) -> int:
        """Total number of directed edges."""
        return len(self.edges)

    @property
    def dangling_count(self) -> int:
        """Number of edges without a resolved peer."""
        return sum(1 for e in self.edges if not e["peer"])


def _node_id(name: str) -> str:
    return "".join(ch if ch.isalnum() else "_" for ch in name)


def to_mermaid(graph: NetworkGraph) -> str:
    """Return Mermaid ``graph LR`` source for the graph's links.

    Each concrete link is drawn once; eBGP links are labelled, iBGP
    sessions are drawn dotted.
    """
    lines = ["graph LR"]
    for router in graph.devices:
        lines.append(f"    {_node_id(router)}[{router}]")

    drawn: set[tuple[str, str, str]] = set()
    for router, edges in graph.edges.items():
        for edge in edges:
            if edge.peer is None or edge.end is None:
                continue
            a, b = sorted([(router, edge.start.name), (edge.peer, edge.end.name)])
            key = (a[0] + ":" + a[1], b[0] + ":" + b[1], "abstract" if edge.abstract else "")
            if key in drawn:
                continue
            drawn.add(key)
            left, right = _node_id(a[0]), _node_id(b[0])
            if edge.abstract:
                lines.append(f"    {left} -.-|iBGP| {right}")
            elif edge in graph.ebgp_sessions or graph.reverse(edge) in graph.ebgp_sessions:
                lines.append(f"    {left} ---|eBGP {a[1]}-{b[1]}| {right}")
            else:
                lines.append(f"    {left} ---|{a[1]}-{b[1]}| {right}")
    return "\n".join(lines)


class GraphReportGenerator:
    """Generate HTML graph reports from Jinja2 templates.

    Args:
        template_dir: Directory containing Jinja2 templates.
        template_name: Name of the main report template.

    """

    def __init__(
        self,
        template_dir: Path = TEMPLATE_DIR,
        template_name: str = DEFAULT_TEMPLATE,
    ) -> None:
        """Initialize the report generator with template settings."""
        self._template_dir = template_dir
        self._template_name = template_name
        self._title = DEFAULT_TITLE
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def set_title(self, title: str) -> None:
        """Set the report title."""
        self._title = title

    def collect(self, graph: NetworkGraph) -> ReportData:
        """Gather report rows from ``graph``."""
        data = ReportData(title=self._title)

        for router, device in graph.devices.items():
            data.devices.append({
                "name": router,
                "vendor": device.vendor or "-",
                "interfaces": len(device.interfaces),
                "edges": len(graph.edges_of(router)),
                "neighbors": ", ".join(sorted(graph.neighbors.get(router, ()))),
                "areas": ", ".join(str(a) for a in sorted(graph.area_ids.get(router, ()))),
                "domain": graph.domain_of(router),
                "originator_id": graph.originator_ids.get(router, ""),
            })
            for edge in graph.edges_of(router):
                data.edges.append({
                    "router": router,
                    "interface": edge.start.name,
                    "peer": edge.peer or "",
                    "peer_interface": edge.end.name if edge.end is not None else "",
                    "abstract": edge.abstract,
                    "host_connected": graph.is_edge_host_connected(edge),
                    "reverse": str(graph.reverse(edge) or ""),
                })

        for sessions, kind in ((graph.ebgp_sessions, "eBGP"), (graph.ibgp_sessions, "iBGP")):
            for edge, neighbor in sessions.items():
                data.sessions.append({
                    "kind": kind,
                    "edge": str(edge),
                    "neighbor": str(neighbor.prefix),
                    "peer_type": graph.peer_type(edge).value,
                    "import_policy": neighbor.import_policy or "",
                    "export_policy": neighbor.export_policy or "",
                })

        for reflector, clients in graph.route_reflector_clients.items():
            if clients:
                data.reflectors.append({
                    "reflector": reflector,
                    "clients": ", ".join(sorted(clients)),
                })

        for domain_id, members in graph.domains.items():
            data.domains.append({"id": domain_id, "members": ", ".join(sorted(members))})

        for router, by_iface in graph.static_routes.items():
            for iface, routes in by_iface.items():
                for route in routes:
                    data.static_routes.append({
                        "router": router,
                        "interface": iface,
                        "network": str(route.network),
                        "next_hop": route.next_hop,
                    })

        data.dump = graph.dump()
        data.topology_mermaid = to_mermaid(graph)
        return data

    def render(self, graph: NetworkGraph) -> str:
        """Render the HTML report for ``graph``.

        Raises:
            ReportError: If the template cannot be loaded or rendered.

        """
        from jinja2 import Environment, FileSystemLoader, TemplateError

        data = self.collect(graph)
        env = Environment(
            loader=FileSystemLoader(str(self._template_dir)),
            autoescape=True,
        )
        try:
            template = env.get_template(self._template_name)
            return template.render(data=data, title=data.title, timestamp=data.timestamp)
        except TemplateError as exc:
            raise ReportError(
                f"Cannot render template '{self._template_name}'",
                details={"template_dir": self._template_dir, "error": str(exc)},
            ) from exc

    def generate(self, graph: NetworkGraph, output_path: str | Path) -> Path:
        """Render the HTML report and write it to disk.

        Args:
            graph: Graph to report on.
            output_path: Destination file path.

        Returns:
            Path to the generated report file.

        Raises:
            ReportError: If rendering or writing fails.

        """
        output = Path(output_path)
        html = self.render(graph)
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(html, encoding="utf-8")
        except OSError as exc:
            raise ReportError(f"Cannot write report to {output}", details={"error": str(exc)}) from exc
        self._logger.info("Report generated: %s", output)
        return output
