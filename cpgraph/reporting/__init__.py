"""Diagnostics reports for control-plane graphs.

Uses Jinja2 templates to render HTML summaries of edges, BGP sessions,
route-reflector hierarchy, domains and static bindings, with a Mermaid
topology diagram.
"""

from .graph_report import GraphReportGenerator, ReportData, to_mermaid

__all__ = ["GraphReportGenerator", "ReportData", "to_mermaid"]
