# semexplore/transforms/hierarchy.py
"""
Hierarchy transform: rows with node/parent ids -> forest of HierarchyNode.
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence

from ..core import ColumnMapping, DataSource, ExplorerConfig
from ..utils.value_capture import to_number
from .base import cell_text, has_roles, link_forest, resolve, resolve_all

logger = logging.getLogger(__name__)


@dataclass
class HierarchyNode:
    id: str
    label: str
    parent_id: Optional[str]
    metrics: Dict[str, float] = field(default_factory=dict)
    children: List[HierarchyNode] = field(default_factory=list)
    depth: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "parentId": self.parent_id,
            "metrics": dict(self.metrics),
            "depth": self.depth,
            "children": [c.to_dict() for c in self.children],
        }


def transform_to_hierarchy(
    source: DataSource,
    mappings: Sequence[ColumnMapping],
    config: Optional[ExplorerConfig] = None,
) -> List[HierarchyNode]:
    """
    Build a forest from ``node_id`` / ``parent_id`` / ``node_label`` / ``metric`` roles.

    Rows with an empty node id are skipped; a later row with the same id
    replaces the earlier one. Nodes whose parent is empty or absent are
    roots. Parent cycles are broken (see ``link_forest``).

    Returns:
        Root nodes in row order; empty when a required role is unmapped.
    """
    if not has_roles(mappings, "node_id", "parent_id"):
        return []

    id_map = resolve(mappings, "node_id")
    parent_map = resolve(mappings, "parent_id")
    label_map = resolve(mappings, "node_label")
    metric_maps = resolve_all(mappings, "metric")

    nodes: Dict[str, HierarchyNode] = {}
    parent_of: Dict[str, Optional[str]] = {}
    skipped = 0

    for row in source.parsed_data:
        node_id = cell_text(row, id_map)
        if not node_id:
            skipped += 1
            continue

        parent_id = cell_text(row, parent_map) or None
        metrics = {}
        for mm in metric_maps:
            value = row.get(mm.source_column)
            if value is not None:
                number = to_number(value)
                metrics[mm.display_name or mm.source_column] = number if number == number else 0.0

        # Duplicate ids: last row wins, first position kept
        nodes[node_id] = HierarchyNode(
            id=node_id,
            label=cell_text(row, label_map) or node_id,
            parent_id=parent_id,
            metrics=metrics,
        )
        parent_of[node_id] = parent_id

    if skipped:
        logger.debug("Hierarchy: skipped %d rows with empty node id", skipped)

    roots, _ = link_forest(nodes, parent_of, kind="Hierarchy")
    _assign_depths(roots)
    return roots


def _assign_depths(roots: List[HierarchyNode]) -> None:
    queue = deque((root, 0) for root in roots)
    while queue:
        node, depth = queue.popleft()
        node.depth = depth
        for child in node.children:
            queue.append((child, depth + 1))


def iter_hierarchy(nodes: List[HierarchyNode]) -> Iterator[HierarchyNode]:
    """Depth-first, pre-order walk over a forest."""
    stack = list(reversed(nodes))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def flatten_hierarchy(nodes: List[HierarchyNode]) -> List[HierarchyNode]:
    return list(iter_hierarchy(nodes))


def find_node_by_id(nodes: List[HierarchyNode], node_id: str) -> Optional[HierarchyNode]:
    for node in iter_hierarchy(nodes):
        if node.id == node_id:
            return node
    return None
