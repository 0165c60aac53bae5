"""
JSON and knowledge-graph export for lineage data.
"""
from __future__ import annotations

import json
from collections import Counter
from typing import Any, Dict, List, Optional, Union

from .. import __version__
from ..core import LineageEdge, LineageNode, now_iso
from ..lineage import LineageGraph


class LineageExporter:
    def __init__(self, graph: LineageGraph):
        self.graph = graph

    def _select(self, node_id: Optional[str]) -> tuple[List[LineageNode], List[LineageEdge]]:
        if node_id is None:
            return self.graph.nodes(), self.graph.edges()

        root = self.graph.node(node_id)
        if root is None:
            return [], []
        nodes = [root] + self.graph.get_upstream_bundles(node_id)
        ids = {n.id for n in nodes}
        edges = [e for e in self.graph.edges() if e.source in ids and e.target in ids]
        return nodes, edges

    def to_dict(self, node_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Visualization export wrapped in a versioned envelope.

        Args:
            node_id: Restrict the export to this node and its upstream bundles

        Returns:
            Dict with version, generator, generated_at, nodes, edges and summary.
        """
        nodes, edges = self._select(node_id)
        return {
            "version": __version__,
            "generated_at": now_iso(),
            "generator": "semexplore",
            "nodes": [n.to_dict() for n in nodes],
            "edges": [e.to_dict() for e in edges],
            "summary": self._generate_summary(nodes, edges),
        }

    def _generate_summary(self, nodes: List[LineageNode], edges: List[LineageEdge]) -> Dict[str, Any]:
        return {
            "total_nodes": len(nodes),
            "total_edges": len(edges),
            "node_counts": dict(Counter(n.type.value for n in nodes)),
            "edge_counts": dict(Counter(e.type.value for e in edges)),
            "has_circular_dependencies": self.graph.has_circular_dependencies(),
        }

    def to_cognee(self) -> Dict[str, List[Dict[str, Any]]]:
        return self.graph.export_to_cognee_format()

    def to_json(self, node_id: Optional[str] = None, indent: int = 2) -> str:
        return json.dumps(self.to_dict(node_id), indent=indent, default=str)

    def save(self, filepath: str, node_id: Optional[str] = None, indent: int = 2) -> None:
        json_str = self.to_json(node_id, indent)
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(json_str)


def export_to_json(
    graph: LineageGraph,
    filepath: Optional[str] = None,
    node_id: Optional[str] = None,
    indent: int = 2,
) -> Union[str, None]:
    """Return the lineage export as a JSON string, or write it to ``filepath``."""
    exporter = LineageExporter(graph)

    if filepath:
        exporter.save(filepath, node_id, indent)
        return None
    else:
        return exporter.to_json(node_id, indent)


def export_to_cognee(graph: LineageGraph) -> Dict[str, List[Dict[str, Any]]]:
    return LineageExporter(graph).to_cognee()
