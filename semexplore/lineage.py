# semexplore/lineage.py
"""
Lineage graph over bundles, virtual bundles and schemas.

The graph is derived data: it is rebuilt from the entity collections on
every query and never edited incrementally. References to entities that no
longer exist are skipped, so a lineage view is always buildable.

Edges point in the direction data flows:
- bundle -> schema:        uses_schema
- left -> right bundle:    join
- source -> virtual bundle: derived_from
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional

import networkx as nx

from .core import (
    DataBundle,
    JoinDefinition,
    LineageEdge,
    LineageEdgeType,
    LineageNode,
    LineageNodeType,
    SemanticSchema,
    VirtualBundle,
)

logger = logging.getLogger(__name__)

SCHEMA_PREFIX = "schema:"

_BUNDLE_TYPES = (LineageNodeType.BUNDLE, LineageNodeType.VIRTUAL_BUNDLE)


def schema_node_id(schema_id: str) -> str:
    return f"{SCHEMA_PREFIX}{schema_id}"


@dataclass
class LineageStats:
    total_nodes: int
    total_edges: int
    bundles: int
    virtual_bundles: int
    schemas: int
    has_circular_deps: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalNodes": self.total_nodes,
            "totalEdges": self.total_edges,
            "bundles": self.bundles,
            "virtualBundles": self.virtual_bundles,
            "schemas": self.schemas,
            "hasCircularDeps": self.has_circular_deps,
        }


class LineageGraph:
    def __init__(self):
        self._graph = nx.MultiDiGraph()

    # === CONSTRUCTION ===

    @classmethod
    def build(
        cls,
        bundles: Iterable[DataBundle],
        joins: Iterable[JoinDefinition],
        virtual_bundles: Iterable[VirtualBundle],
        schemas: Iterable[SemanticSchema],
    ) -> LineageGraph:
        """
        Build the lineage graph from the full application state.

        Order matters, edges are only added between nodes that exist:
        bundles, then schemas and ``uses_schema`` edges, then ``join``
        edges, then virtual bundles and their ``derived_from`` edges.
        """
        lineage = cls()
        bundles = list(bundles)
        joins = list(joins)

        for bundle in bundles:
            lineage._add_bundle_node(bundle)

        for schema in schemas:
            lineage._add_schema_node(schema)
        for bundle in bundles:
            lineage._add_schema_edge(bundle)

        for join in joins:
            lineage._add_join_edge(join)

        joins_by_id = {j.id: j for j in joins}
        for vbundle in virtual_bundles:
            lineage._add_virtual_bundle_node(vbundle)
            lineage._add_derivations(vbundle, joins_by_id)

        return lineage

    def _add_node(self, node: LineageNode) -> bool:
        if node.id in self._graph:
            logger.debug("Lineage: duplicate node id %s ignored", node.id)
            return False
        self._graph.add_node(node.id, data=node)
        return True

    def _add_edge(self, key: str, edge: LineageEdge) -> None:
        if self._graph.has_edge(edge.source, edge.target, key=key):
            return
        self._graph.add_edge(edge.source, edge.target, key=key, data=edge)

    def _add_bundle_node(self, bundle: DataBundle) -> None:
        self._add_node(
            LineageNode(
                id=bundle.id,
                type=LineageNodeType.BUNDLE,
                label=bundle.name,
                bundle_id=bundle.id,
                schema_id=bundle.schema_id,
                metadata={
                    "description": bundle.description,
                    "rowCount": bundle.source.row_count,
                    "columnCount": len(bundle.source.columns),
                    "createdAt": bundle.created_at,
                    "updatedAt": bundle.updated_at,
                },
            )
        )

    def _add_schema_node(self, schema: SemanticSchema) -> None:
        self._add_node(
            LineageNode(
                id=schema_node_id(schema.id),
                type=LineageNodeType.SCHEMA,
                label=schema.name,
                schema_id=schema.id,
                metadata={
                    "dataType": schema.data_type.value,
                    "description": schema.description,
                    "roleCount": len(schema.roles),
                },
            )
        )

    def _add_virtual_bundle_node(self, vbundle: VirtualBundle) -> None:
        self._add_node(
            LineageNode(
                id=vbundle.id,
                type=LineageNodeType.VIRTUAL_BUNDLE,
                label=vbundle.name,
                bundle_id=vbundle.id,
                schema_id=vbundle.schema_id,
                metadata={
                    "description": vbundle.description,
                    "type": vbundle.type,
                    "sourceJoinIds": list(vbundle.source_join_ids),
                    "createdAt": vbundle.created_at,
                    "updatedAt": vbundle.updated_at,
                },
            )
        )

    def _add_schema_edge(self, bundle: DataBundle) -> None:
        target = schema_node_id(bundle.schema_id)
        if target not in self._graph:
            logger.debug("Lineage: bundle %s uses unknown schema %s", bundle.id, bundle.schema_id)
            return
        self._add_edge(
            f"{bundle.id}-uses-{target}",
            LineageEdge(
                source=bundle.id,
                target=target,
                type=LineageEdgeType.USES_SCHEMA,
                label="uses schema",
            ),
        )

    def _is_bundle(self, node_id: str) -> bool:
        return node_id in self._graph and self.node(node_id).type in _BUNDLE_TYPES

    def _add_join_edge(self, join: JoinDefinition) -> None:
        if not (self._is_bundle(join.left_bundle_id) and self._is_bundle(join.right_bundle_id)):
            logger.debug("Lineage: join %s references a missing bundle, skipped", join.id)
            return
        self._add_edge(
            f"join:{join.id}",
            LineageEdge(
                source=join.left_bundle_id,
                target=join.right_bundle_id,
                type=LineageEdgeType.JOIN,
                label=f"{join.join_type.value} join",
                join_id=join.id,
            ),
        )

    def _add_derivations(self, vbundle: VirtualBundle, joins_by_id: Dict[str, JoinDefinition]) -> None:
        if self.node(vbundle.id) is None or self.node(vbundle.id).type is not LineageNodeType.VIRTUAL_BUNDLE:
            return
        for join_id in vbundle.source_join_ids:
            join = joins_by_id.get(join_id)
            if join is None:
                logger.debug("Lineage: virtual bundle %s references missing join %s", vbundle.id, join_id)
                continue
            for side, source_id in (("left", join.left_bundle_id), ("right", join.right_bundle_id)):
                if not self._is_bundle(source_id):
                    logger.debug("Lineage: %s bundle %s of join %s is gone", side, source_id, join_id)
                    continue
                self._add_edge(
                    f"derived:{join_id}:{side}",
                    LineageEdge(
                        source=source_id,
                        target=vbundle.id,
                        type=LineageEdgeType.DERIVED_FROM,
                        label="source",
                        join_id=join_id,
                    ),
                )

    # === QUERIES ===

    def node(self, node_id: str) -> Optional[LineageNode]:
        if node_id not in self._graph:
            return None
        return self._graph.nodes[node_id]["data"]

    def nodes(self, node_type: Optional[LineageNodeType] = None) -> List[LineageNode]:
        nodes = [data for _, data in self._graph.nodes(data="data")]
        if node_type is not None:
            nodes = [n for n in nodes if n.type is node_type]
        return nodes

    def edges(self, edge_type: Optional[LineageEdgeType] = None) -> List[LineageEdge]:
        edges = [data for _, _, data in self._graph.edges(data="data")]
        if edge_type is not None:
            edges = [e for e in edges if e.type is edge_type]
        return edges

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._graph

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def _walk(self, start: str, upstream: bool) -> Iterator[str]:
        graph = self._graph.reverse(copy=False) if upstream else self._graph
        return (n for n in nx.dfs_preorder_nodes(graph, start) if n != start)

    def get_upstream_bundles(self, bundle_id: str) -> List[LineageNode]:
        """Every bundle or virtual bundle ``bundle_id`` derives from, directly or not."""
        if bundle_id not in self._graph:
            return []
        nodes = (self.node(n) for n in self._walk(bundle_id, upstream=True))
        return [n for n in nodes if n.type in _BUNDLE_TYPES]

    def get_downstream_bundles(self, bundle_id: str) -> List[LineageNode]:
        """Every bundle or virtual bundle that depends on ``bundle_id``."""
        if bundle_id not in self._graph:
            return []
        nodes = (self.node(n) for n in self._walk(bundle_id, upstream=False))
        return [n for n in nodes if n.type in _BUNDLE_TYPES]

    def find_path(self, source_id: str, target_id: str) -> Optional[List[str]]:
        """Shortest path by edge count, or None when either end is missing or unreachable."""
        if source_id not in self._graph or target_id not in self._graph:
            return None
        try:
            return nx.shortest_path(self._graph, source_id, target_id)
        except nx.NetworkXNoPath:
            return None

    def has_circular_dependencies(self) -> bool:
        """
        White/gray/black DFS over the whole graph.

        Returns True as soon as a back edge (an edge into a node on the
        current DFS path) is found.
        """
        white, gray, black = 0, 1, 2
        color = dict.fromkeys(self._graph.nodes, white)

        for root in self._graph.nodes:
            if color[root] != white:
                continue
            color[root] = gray
            stack = [(root, iter(self._graph.successors(root)))]
            while stack:
                node_id, children = stack[-1]
                for child in children:
                    if color[child] == gray:
                        return True
                    if color[child] == white:
                        color[child] = gray
                        stack.append((child, iter(self._graph.successors(child))))
                        break
                else:
                    color[node_id] = black
                    stack.pop()
        return False

    def get_stats(self) -> LineageStats:
        nodes = self.nodes()
        return LineageStats(
            total_nodes=len(nodes),
            total_edges=self._graph.number_of_edges(),
            bundles=sum(1 for n in nodes if n.type is LineageNodeType.BUNDLE),
            virtual_bundles=sum(1 for n in nodes if n.type is LineageNodeType.VIRTUAL_BUNDLE),
            schemas=sum(1 for n in nodes if n.type is LineageNodeType.SCHEMA),
            has_circular_deps=self.has_circular_dependencies(),
        )

    # === EXPORT ===

    def export_for_visualization(self) -> Dict[str, List[Dict[str, Any]]]:
        """Plain ``{nodes, edges}`` arrays for graph renderers."""
        return {
            "nodes": [n.to_dict() for n in self.nodes()],
            "edges": [e.to_dict() for e in self.edges()],
        }

    def export_to_cognee_format(self) -> Dict[str, List[Dict[str, Any]]]:
        """Entity/relationship projection for knowledge-graph ingestion."""
        return {
            "entities": [
                {
                    "id": n.id,
                    "type": n.type.value,
                    "properties": {"label": n.label, **n.metadata},
                }
                for n in self.nodes()
            ],
            "relationships": [
                {
                    "source": e.source,
                    "target": e.target,
                    "type": e.type.value,
                    "properties": {"label": e.label, "joinId": e.join_id},
                }
                for e in self.edges()
            ],
        }

    def to_networkx(self) -> nx.MultiDiGraph:
        """Copy of the underlying graph for custom algorithms."""
        return self._graph.copy()
