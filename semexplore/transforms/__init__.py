"""
Data transform library.

One pure function per view type, all with the signature
``(source, mappings, config=None) -> structure``. Unmapped required roles
yield an empty structure; bad rows are skipped, never raised on.
"""
from typing import Any, Callable, Dict, Optional, Sequence, Union

from ..core import ColumnMapping, DataBundle, DataSource, DataType, ExplorerConfig, SemanticSchema
from .flow import FlowData, FlowLink, transform_to_flow
from .geographic import GeoBounds, GeoData, GeoPoint, transform_to_geographic
from .heatmap import HeatMapCell, HeatMapData, transform_to_heatmap
from .hierarchy import (
    HierarchyNode,
    find_node_by_id,
    flatten_hierarchy,
    iter_hierarchy,
    transform_to_hierarchy,
)
from .network import (
    NetworkData,
    NetworkEdge,
    NetworkNode,
    aggregate_parallel_edges,
    transform_to_network,
)
from .profiling import QualityIssue, NumericStats, TabularProfile, profile_column, profile_tabular_data
from .timeline import TimelineData, TimelineEvent, transform_to_timeline
from .treemap import TreeMapData, TreeMapNode, transform_to_treemap

TransformFn = Callable[[DataSource, Sequence[ColumnMapping], Optional[ExplorerConfig]], Any]

TRANSFORMS: Dict[DataType, TransformFn] = {
    DataType.HIERARCHY: transform_to_hierarchy,
    DataType.TABULAR: profile_tabular_data,
    DataType.NETWORK: transform_to_network,
    DataType.TIMELINE: transform_to_timeline,
    DataType.TREEMAP: transform_to_treemap,
    DataType.HEATMAP: transform_to_heatmap,
    DataType.GEOGRAPHIC: transform_to_geographic,
    DataType.FLOW: transform_to_flow,
}


def transform_for(
    data_type: Union[DataType, str],
    source: DataSource,
    mappings: Sequence[ColumnMapping],
    config: Optional[ExplorerConfig] = None,
) -> Any:
    """Run the transform registered for ``data_type``."""
    return TRANSFORMS[DataType(data_type)](source, mappings, config)


def transform_bundle(
    bundle: DataBundle,
    schema: SemanticSchema,
    config: Optional[ExplorerConfig] = None,
) -> Any:
    """Run the transform matching the bundle's schema over its rows and mappings."""
    return transform_for(schema.data_type, bundle.source, bundle.mappings, config)


__all__ = [
    "TRANSFORMS",
    "transform_for",
    "transform_bundle",
    "transform_to_hierarchy",
    "transform_to_network",
    "profile_tabular_data",
    "profile_column",
    "transform_to_timeline",
    "transform_to_geographic",
    "transform_to_heatmap",
    "transform_to_treemap",
    "transform_to_flow",
    "aggregate_parallel_edges",
    "iter_hierarchy",
    "flatten_hierarchy",
    "find_node_by_id",
    "HierarchyNode",
    "NetworkData",
    "NetworkNode",
    "NetworkEdge",
    "TabularProfile",
    "NumericStats",
    "QualityIssue",
    "TimelineData",
    "TimelineEvent",
    "GeoData",
    "GeoPoint",
    "GeoBounds",
    "HeatMapData",
    "HeatMapCell",
    "TreeMapData",
    "TreeMapNode",
    "FlowData",
    "FlowLink",
]
