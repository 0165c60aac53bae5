"""
semexplore: semantic data exploration core.

Map raw columns onto schema roles, turn bundles into view structures, join
bundles into virtual bundles and track their lineage.

Usage:
    import semexplore as se

    source = se.load_source("org.csv", text)
    bundle = se.DataBundle(
        id="org",
        name="Org chart",
        schema_id="hierarchy-default",
        source=source,
        mappings=[
            se.ColumnMapping("id", "node_id"),
            se.ColumnMapping("manager", "parent_id"),
        ],
    )
    roots = se.transform_to_hierarchy(bundle.source, bundle.mappings)

    repo = se.InMemoryRepository()
    repo.add_bundle(bundle)
    graph = repo.build_lineage()
"""

__version__ = "0.1.0"

from .context import configure, get_config, get_context, reset_context
from .core import (
    ColumnMapping,
    DataBundle,
    DataSource,
    DataType,
    ExplorerConfig,
    JoinCondition,
    JoinDefinition,
    JoinOperator,
    JoinType,
    LineageEdge,
    LineageEdgeType,
    LineageNode,
    LineageNodeType,
    MappingTransform,
    RoleDataType,
    SemanticRole,
    SemanticSchema,
    SourceType,
    VirtualBundle,
)
from .errors import (
    BundleNotFoundError,
    JoinError,
    SchemaValidationError,
    SemexploreError,
    SemexploreWarning,
)
from .export import LineageExporter, export_to_cognee, export_to_json
from .joins import (
    JoinCache,
    JoinResult,
    JoinStats,
    JoinValidation,
    MergedRow,
    execute_join,
    materialize_virtual_bundle,
    preview_join,
    suggest_join_conditions,
    validate_join,
)
from .lineage import LineageGraph
from .schemas import (
    DEFAULT_SCHEMAS,
    get_schema_by_data_type,
    get_schema_by_id,
    missing_required_roles,
    validate_mappings,
    validate_schema,
)
from .sources import load_source, parse_csv, parse_file, parse_json
from .storage import InMemoryRepository
from .transforms import (
    TRANSFORMS,
    profile_tabular_data,
    transform_bundle,
    transform_for,
    transform_to_flow,
    transform_to_geographic,
    transform_to_heatmap,
    transform_to_hierarchy,
    transform_to_network,
    transform_to_timeline,
    transform_to_treemap,
)

__all__ = [
    # Configuration
    "configure",
    "get_config",
    "get_context",
    "reset_context",
    "ExplorerConfig",
    # Model
    "ColumnMapping",
    "DataBundle",
    "DataSource",
    "DataType",
    "JoinCondition",
    "JoinDefinition",
    "JoinOperator",
    "JoinType",
    "LineageEdge",
    "LineageEdgeType",
    "LineageNode",
    "LineageNodeType",
    "MappingTransform",
    "RoleDataType",
    "SemanticRole",
    "SemanticSchema",
    "SourceType",
    "VirtualBundle",
    # Errors
    "BundleNotFoundError",
    "JoinError",
    "SchemaValidationError",
    "SemexploreError",
    "SemexploreWarning",
    # Schemas and sources
    "DEFAULT_SCHEMAS",
    "get_schema_by_data_type",
    "get_schema_by_id",
    "missing_required_roles",
    "validate_mappings",
    "validate_schema",
    "load_source",
    "parse_csv",
    "parse_file",
    "parse_json",
    # Transforms
    "TRANSFORMS",
    "transform_for",
    "transform_bundle",
    "transform_to_hierarchy",
    "transform_to_network",
    "profile_tabular_data",
    "transform_to_timeline",
    "transform_to_geographic",
    "transform_to_heatmap",
    "transform_to_treemap",
    "transform_to_flow",
    # Joins
    "execute_join",
    "validate_join",
    "suggest_join_conditions",
    "preview_join",
    "materialize_virtual_bundle",
    "JoinCache",
    "JoinResult",
    "JoinStats",
    "JoinValidation",
    "MergedRow",
    # Lineage
    "LineageGraph",
    "LineageExporter",
    "export_to_json",
    "export_to_cognee",
    "InMemoryRepository",
]
