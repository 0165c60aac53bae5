# semexplore/transforms/network.py
"""
Network transform: edge-list rows -> deduplicated nodes + parallel edges.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core import ColumnMapping, DataSource, ExplorerConfig
from .base import cell_number, cell_text, has_roles, is_nan, resolve

logger = logging.getLogger(__name__)


@dataclass
class NetworkNode:
    id: str
    label: str
    group: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "group": self.group}


@dataclass
class NetworkEdge:
    source: str
    target: str
    weight: float = 1.0
    label: Optional[str] = None
    relationship_type: Optional[str] = None
    cardinality: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "weight": self.weight,
            "label": self.label,
            "relationshipType": self.relationship_type,
            "cardinality": self.cardinality,
        }


@dataclass
class NetworkData:
    nodes: List[NetworkNode] = field(default_factory=list)
    edges: List[NetworkEdge] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


def transform_to_network(
    source: DataSource,
    mappings: Sequence[ColumnMapping],
    config: Optional[ExplorerConfig] = None,
) -> NetworkData:
    """
    Build a node/edge graph from ``source_node`` / ``target_node`` roles.

    Nodes are deduplicated by id; the first row that mentions a node decides
    its label and group. Edges are never deduplicated: repeated pairs become
    parallel edges (see ``aggregate_parallel_edges``).
    """
    if not has_roles(mappings, "source_node", "target_node"):
        return NetworkData()

    source_map = resolve(mappings, "source_node")
    target_map = resolve(mappings, "target_node")
    weight_map = resolve(mappings, "edge_weight")
    label_map = resolve(mappings, "edge_label")
    group_map = resolve(mappings, "node_group")
    rel_map = resolve(mappings, "relationship_type")
    card_map = resolve(mappings, "cardinality")

    nodes: Dict[str, NetworkNode] = {}
    edges: List[NetworkEdge] = []
    skipped = 0

    for row in source.parsed_data:
        source_id = cell_text(row, source_map)
        target_id = cell_text(row, target_map)
        if not source_id or not target_id:
            skipped += 1
            continue

        group = cell_text(row, group_map) if group_map else None
        for node_id in (source_id, target_id):
            if node_id not in nodes:
                nodes[node_id] = NetworkNode(id=node_id, label=node_id, group=group)

        weight = cell_number(row, weight_map, default=1.0) if weight_map else 1.0
        if is_nan(weight) or weight == 0:
            weight = 1.0

        edges.append(
            NetworkEdge(
                source=source_id,
                target=target_id,
                weight=weight,
                label=cell_text(row, label_map) if label_map else None,
                relationship_type=cell_text(row, rel_map) if rel_map else None,
                cardinality=cell_text(row, card_map) if card_map else None,
            )
        )

    if skipped:
        logger.debug("Network: skipped %d rows missing an endpoint", skipped)

    return NetworkData(nodes=list(nodes.values()), edges=edges)


def aggregate_parallel_edges(network: NetworkData) -> NetworkData:
    """
    Collapse parallel edges into one edge per (source, target, relationship type),
    summing weights. Label and cardinality come from the first edge of each group.
    """
    merged: Dict[Tuple[str, str, Optional[str]], NetworkEdge] = {}
    for edge in network.edges:
        key = (edge.source, edge.target, edge.relationship_type)
        if key in merged:
            merged[key].weight += edge.weight
        else:
            merged[key] = NetworkEdge(
                source=edge.source,
                target=edge.target,
                weight=edge.weight,
                label=edge.label,
                relationship_type=edge.relationship_type,
                cardinality=edge.cardinality,
            )
    return NetworkData(nodes=list(network.nodes), edges=list(merged.values()))
