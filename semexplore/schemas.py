# semexplore/schemas.py
"""
Semantic schema registry.

Ships the default schema for every view type and the validation helpers the
mapping UI uses before a bundle is saved. Role ids are schema-scoped: the
same id (``category``, ``description``) may appear in several schemas with a
different meaning.
"""
from __future__ import annotations

from collections import Counter
from typing import Iterable, Optional, Sequence

from .core import ColumnMapping, DataType, RoleDataType, SemanticRole, SemanticSchema
from .errors import SchemaValidationError

S, N, D = RoleDataType.STRING, RoleDataType.NUMBER, RoleDataType.DATE


def _role(
    role_id: str,
    name: str,
    description: str,
    data_type: RoleDataType,
    required: bool = False,
    multiple: bool = False,
) -> SemanticRole:
    return SemanticRole(
        id=role_id,
        name=name,
        description=description,
        required=required,
        multiple=multiple,
        data_type=data_type,
    )


HIERARCHY_SCHEMA = SemanticSchema(
    id="hierarchy-default",
    data_type=DataType.HIERARCHY,
    name="Hierarchy",
    description="Tree-structured data with parent-child relationships (e.g., FLOC, org charts, folder structures)",
    roles=(
        _role("node_id", "Node ID", "Unique identifier for each node in the hierarchy", S, required=True),
        _role("node_label", "Node Label", "Display name or description for the node", S),
        _role("parent_id", "Parent ID", "Reference to the parent node (empty/null for root nodes)", S, required=True),
        _role("metric", "Metric", "Numeric value to visualize (e.g., count, cost, score)", N, multiple=True),
    ),
)

TABULAR_SCHEMA = SemanticSchema(
    id="tabular-default",
    data_type=DataType.TABULAR,
    name="Tabular",
    description="Flat dataset for profiling and exploration (e.g., transactions, records, logs)",
    roles=(
        _role("row_id", "Row Identifier", "Unique identifier for each row", S),
        _role("category", "Category Field", "Categorical field for grouping and filtering", S, multiple=True),
        _role("measure", "Measure Field", "Numeric field for aggregation and statistics", N, multiple=True),
        _role("timestamp", "Timestamp", "Date/time field for temporal analysis", D),
        _role("text", "Text Field", "Free-form text field for content analysis", S, multiple=True),
    ),
)

NETWORK_SCHEMA = SemanticSchema(
    id="network-default",
    data_type=DataType.NETWORK,
    name="Network",
    description="Graph data with nodes and edges (e.g., relationships, dependencies, flows)",
    roles=(
        _role("source_node", "Source Node", "Starting node of an edge/relationship", S, required=True),
        _role("target_node", "Target Node", "Ending node of an edge/relationship", S, required=True),
        _role("edge_weight", "Edge Weight", "Numeric weight or strength of the relationship", N),
        _role("edge_label", "Edge Label", "Label or type of the relationship", S),
        _role("node_group", "Node Group", "Category or group for node coloring", S),
        _role("relationship_type", "Relationship Type", "Type of relationship between nodes", S),
        _role("cardinality", "Cardinality", "Cardinality of the relationship (e.g., 1:1, 1:N, N:M)", S),
    ),
)

TIMELINE_SCHEMA = SemanticSchema(
    id="timeline-default",
    data_type=DataType.TIMELINE,
    name="Timeline / Events",
    description="Time-based events and milestones (e.g., project timelines, logs, audit trails)",
    roles=(
        _role("event_id", "Event ID", "Unique identifier for each event", S),
        _role("event_name", "Event Name", "Name or title of the event", S, required=True),
        _role("start_date", "Start Date/Time", "When the event starts or occurs", D, required=True),
        _role("end_date", "End Date/Time", "When the event ends (optional for point events)", D),
        _role("duration", "Duration", "Duration of the event", N),
        _role("category", "Category/Type", "Type or category of event for grouping and coloring", S),
        _role("status", "Status", "Current status of the event (e.g., planned, completed)", S),
        _role("description", "Description", "Detailed description or notes about the event", S),
    ),
)

TREEMAP_SCHEMA = SemanticSchema(
    id="treemap-default",
    data_type=DataType.TREEMAP,
    name="Tree Map",
    description="Hierarchical data with proportional sizing (e.g., budget breakdowns, disk usage)",
    roles=(
        _role("category", "Category", "Name of the category or item", S, required=True),
        _role("parent_category", "Parent Category", "Parent category for nested structures", S),
        _role("value", "Value/Size", "Numeric value that determines rectangle size", N, required=True),
        _role("color_metric", "Color Metric", "Secondary metric for color coding", N),
        _role("label", "Label", "Display label or formatted text", S),
    ),
)

HEATMAP_SCHEMA = SemanticSchema(
    id="heatmap-default",
    data_type=DataType.HEATMAP,
    name="Heat Map / Matrix",
    description="Matrix data with color-coded values (e.g., correlation or confusion matrices)",
    roles=(
        _role("row_label", "Row Label", "Label for the row dimension", S, required=True),
        _role("column_label", "Column Label", "Label for the column dimension", S, required=True),
        _role("cell_value", "Cell Value", "Numeric value to encode as color intensity", N, required=True),
        _role("cell_label", "Cell Label", "Display label or formatted value for the cell", S),
        _role("color_scale", "Color Scale Type", "Type of color scale (e.g., sequential, diverging)", S),
    ),
)

GEOGRAPHIC_SCHEMA = SemanticSchema(
    id="geographic-default",
    data_type=DataType.GEOGRAPHIC,
    name="Geographic / Map",
    description="Location-based data with coordinates (e.g., store locations, facility maps)",
    roles=(
        _role("location_id", "Location ID", "Unique identifier for the location", S),
        _role("location_name", "Location Name", "Name or label for the location", S, required=True),
        _role("latitude", "Latitude", "Latitude coordinate (decimal degrees)", N, required=True),
        _role("longitude", "Longitude", "Longitude coordinate (decimal degrees)", N, required=True),
        _role("address", "Address", "Full address or location description", S),
        _role("region", "Region/Zone", "Geographic region or zone for grouping", S),
        _role("metric_value", "Metric Value", "Numeric value for sizing markers", N),
        _role("category", "Category", "Type or category for marker styling", S),
    ),
)

FLOW_SCHEMA = SemanticSchema(
    id="flow-default",
    data_type=DataType.FLOW,
    name="Flow / Sankey",
    description="Flow data showing movement or transformation (e.g., budget flows, conversion funnels)",
    roles=(
        _role("source", "Source", "Starting point of the flow", S, required=True),
        _role("target", "Target", "Ending point of the flow", S, required=True),
        _role("flow_value", "Flow Value", "Magnitude or volume of the flow", N, required=True),
        _role("flow_type", "Flow Type/Category", "Type or category of flow for coloring", S),
        _role("description", "Description", "Additional details about the flow", S),
    ),
)

DEFAULT_SCHEMAS: tuple[SemanticSchema, ...] = (
    HIERARCHY_SCHEMA,
    TABULAR_SCHEMA,
    NETWORK_SCHEMA,
    TIMELINE_SCHEMA,
    TREEMAP_SCHEMA,
    HEATMAP_SCHEMA,
    GEOGRAPHIC_SCHEMA,
    FLOW_SCHEMA,
)


def get_schema_by_id(schemas: Iterable[SemanticSchema], schema_id: str) -> Optional[SemanticSchema]:
    for schema in schemas:
        if schema.id == schema_id:
            return schema
    return None


def get_schema_by_data_type(
    schemas: Iterable[SemanticSchema], data_type: DataType | str
) -> Optional[SemanticSchema]:
    data_type = DataType(data_type)
    for schema in schemas:
        if schema.data_type is data_type:
            return schema
    return None


def validate_schema(schema: SemanticSchema, strict: bool = False) -> list[str]:
    """
    Check a (possibly user-edited) schema for structural problems.

    Args:
        schema: Schema to check
        strict: Raise SchemaValidationError instead of returning problems

    Returns:
        List of problem descriptions; empty when the schema is valid.
    """
    problems = []
    if not schema.id.strip():
        problems.append("Schema id is empty")
    if not schema.name.strip():
        problems.append("Schema name is empty")
    if not schema.roles:
        problems.append("Schema defines no roles")

    for role in schema.roles:
        if not role.id.strip():
            problems.append(f"Role '{role.name}' has an empty id")

    counts = Counter(r.id for r in schema.roles)
    for role_id, count in counts.items():
        if count > 1:
            problems.append(f"Role id '{role_id}' is defined {count} times")

    if strict and problems:
        raise SchemaValidationError(schema.id, problems)
    return problems


def missing_required_roles(
    schema: SemanticSchema, mappings: Sequence[ColumnMapping]
) -> list[SemanticRole]:
    mapped = {m.role_id for m in mappings}
    return [r for r in schema.required_roles() if r.id not in mapped]


def validate_mappings(
    schema: SemanticSchema,
    mappings: Sequence[ColumnMapping],
    columns: Sequence[str],
) -> list[str]:
    """
    Check mappings against a schema and the bundle's current columns.

    Reports unknown roles, stale source columns, duplicate mappings for
    single-valued roles and required roles with no mapping.
    """
    problems = []
    available = set(columns)

    for m in mappings:
        if schema.role(m.role_id) is None:
            problems.append(f"Role '{m.role_id}' is not defined by schema '{schema.id}'")
        if m.source_column not in available:
            problems.append(f"Column '{m.source_column}' does not exist")

    counts = Counter(m.role_id for m in mappings)
    for role_id, count in counts.items():
        role = schema.role(role_id)
        if role is not None and not role.multiple and count > 1:
            problems.append(f"Role '{role_id}' accepts one column but is mapped {count} times")

    for role in missing_required_roles(schema, mappings):
        problems.append(f"Required role '{role.id}' is not mapped")

    return problems
