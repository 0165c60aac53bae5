"""
Core data model for semexplore.

Entities (schemas, bundles, joins, virtual bundles) are plain dataclasses.
They are treated as immutable values: updates go through
``dataclasses.replace`` and never mutate in place. ``to_dict()`` emits the
persisted JSON shape (camelCase keys) and ``from_dict()`` reads it back.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

import pandas as pd

Value = Union[None, bool, int, float, str]
Row = Dict[str, Value]


class DataType(Enum):
    HIERARCHY = "hierarchy"
    TABULAR = "tabular"
    NETWORK = "network"
    TIMELINE = "timeline"
    TREEMAP = "treemap"
    HEATMAP = "heatmap"
    GEOGRAPHIC = "geographic"
    FLOW = "flow"


class RoleDataType(Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ANY = "any"


class MappingTransform(Enum):
    NONE = "none"
    UPPERCASE = "uppercase"
    LOWERCASE = "lowercase"
    TRIM = "trim"


class SourceType(Enum):
    CSV = "csv"
    JSON = "json"


class JoinType(Enum):
    INNER = "inner"
    LEFT = "left"
    RIGHT = "right"
    FULL = "full"


class JoinOperator(Enum):
    EQ = "="
    NE = "!="
    GT = ">"
    LT = "<"
    GE = ">="
    LE = "<="


class LineageNodeType(Enum):
    BUNDLE = "bundle"
    VIRTUAL_BUNDLE = "virtual_bundle"
    SCHEMA = "schema"


class LineageEdgeType(Enum):
    JOIN = "join"
    DERIVED_FROM = "derived_from"
    USES_SCHEMA = "uses_schema"


def generate_id() -> str:
    return uuid.uuid4().hex[:12]


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class ExplorerConfig:
    """
    Tunable thresholds for profiling and transforms.

    The quality weights must add up to 100 so the score stays within 0-100.
    """

    type_dominance_threshold: float = 0.8
    top_values_limit: int = 1000
    outlier_std_threshold: float = 3.0
    outlier_rate_threshold: float = 0.05
    high_null_warning_rate: float = 0.2
    high_null_error_rate: float = 0.5
    mixed_case_min_values: int = 10
    completeness_weight: float = 40.0
    consistency_weight: float = 30.0
    validity_weight: float = 30.0
    identifier_roles: Tuple[str, ...] = ("node_id", "row_id", "event_id", "location_id")

    def __post_init__(self) -> None:
        total = self.completeness_weight + self.consistency_weight + self.validity_weight
        if abs(total - 100.0) > 1e-9:
            raise ValueError(f"Quality weights must sum to 100, got {total}")
        if not 0.0 < self.type_dominance_threshold <= 1.0:
            raise ValueError("type_dominance_threshold must be in (0, 1]")


# === SCHEMAS ===


@dataclass(frozen=True)
class SemanticRole:
    id: str
    name: str
    description: str = ""
    required: bool = False
    multiple: bool = False
    data_type: RoleDataType = RoleDataType.ANY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "required": self.required,
            "multiple": self.multiple,
            "dataType": self.data_type.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SemanticRole:
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            description=data.get("description", ""),
            required=bool(data.get("required", False)),
            multiple=bool(data.get("multiple", False)),
            data_type=RoleDataType(data.get("dataType") or "any"),
        )


@dataclass(frozen=True)
class SemanticSchema:
    id: str
    name: str
    data_type: DataType
    description: str = ""
    roles: Tuple[SemanticRole, ...] = ()

    def role(self, role_id: str) -> Optional[SemanticRole]:
        for role in self.roles:
            if role.id == role_id:
                return role
        return None

    def required_roles(self) -> List[SemanticRole]:
        return [r for r in self.roles if r.required]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "dataType": self.data_type.value,
            "roles": [r.to_dict() for r in self.roles],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SemanticSchema:
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            description=data.get("description", ""),
            data_type=DataType(data["dataType"]),
            roles=tuple(SemanticRole.from_dict(r) for r in data.get("roles", [])),
        )


# === BUNDLES ===


@dataclass(frozen=True)
class ColumnMapping:
    source_column: str
    role_id: str
    display_name: str = ""
    transform: MappingTransform = MappingTransform.NONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceColumn": self.source_column,
            "roleId": self.role_id,
            "displayName": self.display_name or self.source_column,
            "transform": self.transform.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ColumnMapping:
        return cls(
            source_column=data["sourceColumn"],
            role_id=data["roleId"],
            display_name=data.get("displayName") or data["sourceColumn"],
            transform=MappingTransform(data.get("transform") or "none"),
        )


@dataclass(frozen=True)
class DataSource:
    type: SourceType
    file_name: str
    raw_data: str = ""
    parsed_data: Tuple[Row, ...] = ()
    columns: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Callers may pass lists
        object.__setattr__(self, "parsed_data", tuple(self.parsed_data))
        object.__setattr__(self, "columns", tuple(self.columns))

    @property
    def row_count(self) -> int:
        return len(self.parsed_data)

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        file_name: str = "dataframe.csv",
        source_type: SourceType = SourceType.CSV,
        raw_data: str = "",
    ) -> DataSource:
        from .utils.value_capture import normalize_value

        columns = [str(c) for c in df.columns]
        rows = [
            {col: normalize_value(val) for col, val in zip(columns, record)}
            for record in df.itertuples(index=False, name=None)
        ]
        return cls(
            type=source_type,
            file_name=file_name,
            raw_data=raw_data,
            parsed_data=tuple(rows),
            columns=tuple(columns),
        )

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(list(self.parsed_data), columns=list(self.columns))

    def to_dict(self, include_data: bool = True) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "fileName": self.file_name,
            "rawData": self.raw_data if include_data else "",
            "parsedData": [dict(r) for r in self.parsed_data] if include_data else [],
            "columns": list(self.columns),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> DataSource:
        return cls(
            type=SourceType(data.get("type", "csv")),
            file_name=data.get("fileName", ""),
            raw_data=data.get("rawData") or "",
            parsed_data=tuple(data.get("parsedData") or ()),
            columns=tuple(data.get("columns") or ()),
        )


@dataclass(frozen=True)
class DataBundle:
    id: str
    name: str
    schema_id: str
    source: DataSource
    mappings: Tuple[ColumnMapping, ...] = ()
    description: Optional[str] = None
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def __post_init__(self) -> None:
        object.__setattr__(self, "mappings", tuple(self.mappings))

    def mapping_for(self, role_id: str) -> Optional[ColumnMapping]:
        for m in self.mappings:
            if m.role_id == role_id:
                return m
        return None

    def mappings_for(self, role_id: str) -> List[ColumnMapping]:
        return [m for m in self.mappings if m.role_id == role_id]

    def to_dict(self, include_data: bool = True) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "schemaId": self.schema_id,
            "source": self.source.to_dict(include_data=include_data),
            "mappings": [m.to_dict() for m in self.mappings],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> DataBundle:
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            description=data.get("description"),
            schema_id=data["schemaId"],
            source=DataSource.from_dict(data.get("source") or {}),
            mappings=tuple(ColumnMapping.from_dict(m) for m in data.get("mappings", [])),
            created_at=data.get("createdAt") or now_iso(),
            updated_at=data.get("updatedAt") or now_iso(),
        )


# === JOINS ===


@dataclass(frozen=True)
class JoinCondition:
    left_role_id: str
    right_role_id: str
    operator: JoinOperator = JoinOperator.EQ

    def to_dict(self) -> Dict[str, Any]:
        return {
            "leftRoleId": self.left_role_id,
            "rightRoleId": self.right_role_id,
            "operator": self.operator.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> JoinCondition:
        return cls(
            left_role_id=data["leftRoleId"],
            right_role_id=data["rightRoleId"],
            operator=JoinOperator(data.get("operator", "=")),
        )


@dataclass(frozen=True)
class JoinDefinition:
    id: str
    name: str
    left_bundle_id: str
    right_bundle_id: str
    join_type: JoinType = JoinType.INNER
    conditions: Tuple[JoinCondition, ...] = ()
    description: Optional[str] = None
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def __post_init__(self) -> None:
        object.__setattr__(self, "conditions", tuple(self.conditions))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "leftBundleId": self.left_bundle_id,
            "rightBundleId": self.right_bundle_id,
            "joinType": self.join_type.value,
            "conditions": [c.to_dict() for c in self.conditions],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> JoinDefinition:
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            description=data.get("description"),
            left_bundle_id=data["leftBundleId"],
            right_bundle_id=data["rightBundleId"],
            join_type=JoinType(data.get("joinType", "inner")),
            conditions=tuple(JoinCondition.from_dict(c) for c in data.get("conditions", [])),
            created_at=data.get("createdAt") or now_iso(),
            updated_at=data.get("updatedAt") or now_iso(),
        )


@dataclass(frozen=True)
class VirtualBundle:
    id: str
    name: str
    schema_id: str
    source_join_ids: Tuple[str, ...] = ()
    type: str = "join"
    description: Optional[str] = None
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def __post_init__(self) -> None:
        object.__setattr__(self, "source_join_ids", tuple(self.source_join_ids))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "sourceJoinIds": list(self.source_join_ids),
            "schemaId": self.schema_id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> VirtualBundle:
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            description=data.get("description"),
            type=data.get("type", "join"),
            source_join_ids=tuple(data.get("sourceJoinIds", [])),
            schema_id=data.get("schemaId", ""),
            created_at=data.get("createdAt") or now_iso(),
            updated_at=data.get("updatedAt") or now_iso(),
        )


# === LINEAGE VIEW ===


@dataclass
class LineageNode:
    id: str
    type: LineageNodeType
    label: str
    bundle_id: Optional[str] = None
    schema_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "label": self.label,
            "bundleId": self.bundle_id,
            "schemaId": self.schema_id,
            "metadata": dict(self.metadata),
        }


@dataclass
class LineageEdge:
    source: str
    target: str
    type: LineageEdgeType
    label: str
    join_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "type": self.type.value,
            "label": self.label,
            "joinId": self.join_id,
        }
