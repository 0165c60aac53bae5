# semexplore/transforms/treemap.py
"""
Treemap transform: category rows with values -> value tree with rollups.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core import ColumnMapping, DataSource, ExplorerConfig
from .base import cell_number, cell_text, has_roles, link_forest, resolve

logger = logging.getLogger(__name__)

# Parent cells holding these strings mean "no parent"
_NO_PARENT = ("", "null")


@dataclass
class TreeMapNode:
    id: str
    label: str
    parent: Optional[str]
    value: float
    color_metric: float
    children: List[TreeMapNode] = field(default_factory=list)
    total_value: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "parent": self.parent,
            "value": self.value,
            "colorMetric": self.color_metric,
            "totalValue": self.total_value,
            "children": [c.to_dict() for c in self.children],
        }


@dataclass
class TreeMapData:
    roots: List[TreeMapNode] = field(default_factory=list)
    color_range: Tuple[float, float] = (0.0, 1.0)

    @property
    def is_empty(self) -> bool:
        return not self.roots

    def to_dict(self) -> Dict[str, Any]:
        return {
            "roots": [r.to_dict() for r in self.roots],
            "colorRange": list(self.color_range),
        }


def transform_to_treemap(
    source: DataSource,
    mappings: Sequence[ColumnMapping],
    config: Optional[ExplorerConfig] = None,
) -> TreeMapData:
    """
    Build a treemap forest from ``category`` / ``value`` roles.

    ``parent_category`` is optional; without it every category is a root.
    ``color_metric`` defaults to the node's value. Each node's
    ``total_value`` is its own value plus its children's totals.

    Returns:
        TreeMapData; color range is ``(0, 1)`` when no color metric is finite.
    """
    if not has_roles(mappings, "category", "value"):
        return TreeMapData()

    id_map = resolve(mappings, "category")
    value_map = resolve(mappings, "value")
    parent_map = resolve(mappings, "parent_category")
    color_map = resolve(mappings, "color_metric")
    label_map = resolve(mappings, "label")

    nodes: Dict[str, TreeMapNode] = {}
    parent_of: Dict[str, Optional[str]] = {}
    skipped = 0

    for row in source.parsed_data:
        node_id = cell_text(row, id_map)
        if not node_id:
            skipped += 1
            continue

        parent = cell_text(row, parent_map) if parent_map else ""
        parent_id = None if parent in _NO_PARENT else parent
        value = cell_number(row, value_map)
        if math.isnan(value):
            value = 0.0
        color = cell_number(row, color_map, default=value) if color_map else value

        nodes[node_id] = TreeMapNode(
            id=node_id,
            label=cell_text(row, label_map, default=node_id) or node_id,
            parent=parent_id,
            value=value,
            color_metric=color,
        )
        parent_of[node_id] = parent_id

    if skipped:
        logger.debug("Treemap: skipped %d rows with empty category", skipped)

    roots, _ = link_forest(nodes, parent_of, kind="Treemap")
    for root in roots:
        _roll_up(root)

    colors = [n.color_metric for n in nodes.values() if math.isfinite(n.color_metric)]
    color_range = (min(colors), max(colors)) if colors else (0.0, 1.0)
    return TreeMapData(roots=roots, color_range=color_range)


def _roll_up(root: TreeMapNode) -> None:
    # Iterative post-order
    stack: List[Tuple[TreeMapNode, bool]] = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            node.total_value = node.value + sum(c.total_value for c in node.children)
            continue
        stack.append((node, True))
        stack.extend((child, False) for child in node.children)
