# semexplore/transforms/flow.py
"""
Flow transform: weighted source -> target rows for Sankey diagrams.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..core import ColumnMapping, DataSource, ExplorerConfig
from .base import cell_number, cell_text, has_roles, resolve

logger = logging.getLogger(__name__)


@dataclass
class FlowLink:
    source: str
    target: str
    value: float
    type: str = "flow"
    description: str = ""
    source_index: int = 0
    target_index: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "value": self.value,
            "type": self.type,
            "description": self.description,
            "sourceIndex": self.source_index,
            "targetIndex": self.target_index,
        }


@dataclass
class FlowData:
    nodes: List[str] = field(default_factory=list)
    links: List[FlowLink] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.links

    def total_by_type(self) -> Dict[str, float]:
        totals: Dict[str, float] = {}
        for link in self.links:
            totals[link.type] = totals.get(link.type, 0.0) + link.value
        return totals

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [{"name": n} for n in self.nodes],
            "links": [l.to_dict() for l in self.links],
        }


def transform_to_flow(
    source: DataSource,
    mappings: Sequence[ColumnMapping],
    config: Optional[ExplorerConfig] = None,
) -> FlowData:
    """
    Build Sankey links from ``source`` / ``target`` / ``flow_value`` roles.

    Only rows with both endpoints and a positive value are kept. Self loops
    are dropped since a Sankey layout cannot place them. Nodes are listed in
    first-seen order and each link carries the indices of its endpoints.
    """
    if not has_roles(mappings, "source", "target", "flow_value"):
        return FlowData()

    source_map = resolve(mappings, "source")
    target_map = resolve(mappings, "target")
    value_map = resolve(mappings, "flow_value")
    type_map = resolve(mappings, "flow_type")
    description_map = resolve(mappings, "description")

    node_index: Dict[str, int] = {}
    links: List[FlowLink] = []
    skipped = 0

    for row in source.parsed_data:
        src = cell_text(row, source_map)
        dst = cell_text(row, target_map)
        value = cell_number(row, value_map)
        # NaN fails the comparison as well
        if not src or not dst or not value > 0 or src == dst:
            skipped += 1
            continue

        for name in (src, dst):
            if name not in node_index:
                node_index[name] = len(node_index)

        links.append(
            FlowLink(
                source=src,
                target=dst,
                value=value,
                type=cell_text(row, type_map, default="flow") if type_map else "flow",
                description=cell_text(row, description_map),
                source_index=node_index[src],
                target_index=node_index[dst],
            )
        )

    if skipped:
        logger.debug("Flow: skipped %d rows (missing endpoint, non-positive value or self loop)", skipped)

    return FlowData(nodes=list(node_index), links=links)
