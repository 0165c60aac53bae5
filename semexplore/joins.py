# semexplore/joins.py
"""
In-memory join engine.

Joins are pairwise and nested-loop: every left row is tested against every
right row, and a pair matches when all of the join's conditions hold.
Conditions are written in terms of schema roles and resolved to source
columns through each bundle's mappings before any row is scanned; a join
whose roles do not resolve fails as a whole with a JoinError.

Predicates:
- ``=`` / ``!=``: type-strict equality on cell values (see ``strict_equals``)
- ``>`` ``<`` ``>=`` ``<=``: numeric comparison after coercion; a value that
  does not coerce (including null) makes the condition false
"""
from __future__ import annotations

import logging
import math
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from .core import (
    DataBundle,
    JoinCondition,
    JoinDefinition,
    JoinOperator,
    JoinType,
    Row,
    SemanticSchema,
    Value,
    VirtualBundle,
)
from .errors import JoinError
from .utils.value_capture import strict_equals, to_number, to_text, value_kind

logger = logging.getLogger(__name__)

LEFT_PREFIX = "left_"
RIGHT_PREFIX = "right_"


# === RESULT TYPES ===


@dataclass(frozen=True)
class MergedRow:
    """
    One output row of a join.

    ``left`` and ``right`` always hold every column of their side; a padded
    side (no matching row) has all values set to None.
    """

    left: Dict[str, Value]
    right: Dict[str, Value]
    left_padded: bool = False
    right_padded: bool = False

    @property
    def is_match(self) -> bool:
        return not (self.left_padded or self.right_padded)

    def to_flat(self) -> Dict[str, Value]:
        """Namespaced ``left_<col>`` / ``right_<col>`` view of the row."""
        flat = {f"{LEFT_PREFIX}{k}": v for k, v in self.left.items()}
        flat.update({f"{RIGHT_PREFIX}{k}": v for k, v in self.right.items()})
        return flat


@dataclass
class JoinStats:
    left_rows: int
    right_rows: int
    result_rows: int
    matched_left_rows: int
    matched_right_rows: int

    @property
    def left_match_rate(self) -> float:
        return self.matched_left_rows / self.left_rows if self.left_rows else 0.0

    @property
    def right_match_rate(self) -> float:
        return self.matched_right_rows / self.right_rows if self.right_rows else 0.0

    def to_dict(self) -> Dict[str, int]:
        return {
            "leftRows": self.left_rows,
            "rightRows": self.right_rows,
            "resultRows": self.result_rows,
            "matchedLeftRows": self.matched_left_rows,
            "matchedRightRows": self.matched_right_rows,
        }


@dataclass
class JoinResult:
    rows: List[MergedRow]
    left_columns: Tuple[str, ...]
    right_columns: Tuple[str, ...]
    stats: JoinStats
    join_id: Optional[str] = None

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def flat_columns(self) -> List[str]:
        return [f"{LEFT_PREFIX}{c}" for c in self.left_columns] + [
            f"{RIGHT_PREFIX}{c}" for c in self.right_columns
        ]

    def to_records(self) -> List[Dict[str, Value]]:
        return [row.to_flat() for row in self.rows]

    def to_dataframe(self) -> pd.DataFrame:
        """Flat, namespaced rows as a DataFrame."""
        return pd.DataFrame(self.to_records(), columns=self.flat_columns)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.to_records(),
            "leftColumns": list(self.left_columns),
            "rightColumns": list(self.right_columns),
            "stats": self.stats.to_dict(),
        }


@dataclass
class JoinValidation:
    """Outcome of a pre-flight join check."""

    valid: bool
    errors: List[str] = field(default_factory=list)

    def raise_if_failed(self) -> None:
        """Raise JoinError listing every problem if the join is invalid."""
        if not self.valid:
            raise JoinError("Invalid join configuration", self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors)}


@dataclass
class JoinPreview:
    row_count: int = 0
    match_rate: float = 0.0
    can_preview: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rowCount": self.row_count,
            "matchRate": self.match_rate,
            "canPreview": self.can_preview,
        }


@dataclass(frozen=True)
class _ResolvedCondition:
    left_column: str
    right_column: str
    operator: JoinOperator


# === VALIDATION ===


def _mapped_column(bundle: DataBundle, role_id: str) -> str:
    mapping = bundle.mapping_for(role_id)
    return mapping.source_column if mapping else ""


def _configuration_errors(
    left_bundle: Optional[DataBundle],
    right_bundle: Optional[DataBundle],
    join: JoinDefinition,
) -> List[str]:
    errors = []
    if left_bundle is None:
        errors.append("Left bundle not found")
    elif left_bundle.id != join.left_bundle_id:
        errors.append(f'Left bundle "{left_bundle.id}" is not the join\'s left bundle "{join.left_bundle_id}"')
    if right_bundle is None:
        errors.append("Right bundle not found")
    elif right_bundle.id != join.right_bundle_id:
        errors.append(f'Right bundle "{right_bundle.id}" is not the join\'s right bundle "{join.right_bundle_id}"')
    if errors:
        return errors

    if not join.conditions:
        errors.append("At least one join condition is required")

    for condition in join.conditions:
        left_column = _mapped_column(left_bundle, condition.left_role_id)
        right_column = _mapped_column(right_bundle, condition.right_role_id)

        if not left_column:
            errors.append(f'Left role "{condition.left_role_id}" is not mapped')
        if not right_column:
            errors.append(f'Right role "{condition.right_role_id}" is not mapped')

        if left_column and left_column not in left_bundle.source.columns:
            errors.append(f'Left column "{left_column}" does not exist')
        if right_column and right_column not in right_bundle.source.columns:
            errors.append(f'Right column "{right_column}" does not exist')

    return errors


def validate_join(
    left_bundle: Optional[DataBundle],
    right_bundle: Optional[DataBundle],
    join: JoinDefinition,
) -> JoinValidation:
    """
    Non-raising pre-flight check of a join against its two bundles.

    Reports missing bundles, an empty condition list, unmapped roles and
    mapped columns that no longer exist in the bundle's source.
    """
    errors = _configuration_errors(left_bundle, right_bundle, join)
    return JoinValidation(valid=not errors, errors=errors)


# === EXECUTION ===


def _condition_holds(operator: JoinOperator, left: Value, right: Value) -> bool:
    if operator is JoinOperator.EQ:
        return strict_equals(left, right)
    if operator is JoinOperator.NE:
        return not strict_equals(left, right)

    a = to_number(left, default=math.nan)
    b = to_number(right, default=math.nan)
    # Comparisons involving NaN are always False
    if operator is JoinOperator.GT:
        return a > b
    if operator is JoinOperator.LT:
        return a < b
    if operator is JoinOperator.GE:
        return a >= b
    if operator is JoinOperator.LE:
        return a <= b
    return False


def _rows_match(left: Row, right: Row, conditions: Sequence[_ResolvedCondition]) -> bool:
    return all(
        _condition_holds(c.operator, left.get(c.left_column), right.get(c.right_column))
        for c in conditions
    )


def _shape(row: Row, columns: Sequence[str]) -> Dict[str, Value]:
    return {col: row.get(col) for col in columns}


def _value_key(values: Iterable[Value]) -> Tuple[Tuple[str, str], ...]:
    return tuple((value_kind(v), to_text(v)) for v in values)


def _count_unique(rows: Iterable[Dict[str, Value]], columns: Sequence[str]) -> int:
    return len({_value_key(row[c] for c in columns) for row in rows})


def _nested_loop(
    left_rows: Sequence[Row],
    right_rows: Sequence[Row],
    left_columns: Sequence[str],
    right_columns: Sequence[str],
    conditions: Sequence[_ResolvedCondition],
    join_type: JoinType,
) -> List[MergedRow]:
    null_left = dict.fromkeys(left_columns)
    null_right = dict.fromkeys(right_columns)
    result: List[MergedRow] = []

    if join_type is JoinType.RIGHT:
        for right in right_rows:
            matched = False
            for left in left_rows:
                if _rows_match(left, right, conditions):
                    result.append(MergedRow(_shape(left, left_columns), _shape(right, right_columns)))
                    matched = True
            if not matched:
                result.append(
                    MergedRow(dict(null_left), _shape(right, right_columns), left_padded=True)
                )
        return result

    matched_right: set[int] = set()
    for left in left_rows:
        matched = False
        for index, right in enumerate(right_rows):
            if _rows_match(left, right, conditions):
                result.append(MergedRow(_shape(left, left_columns), _shape(right, right_columns)))
                matched_right.add(index)
                matched = True
        if not matched and join_type in (JoinType.LEFT, JoinType.FULL):
            result.append(MergedRow(_shape(left, left_columns), dict(null_right), right_padded=True))

    if join_type is JoinType.FULL:
        for index, right in enumerate(right_rows):
            if index not in matched_right:
                result.append(
                    MergedRow(dict(null_left), _shape(right, right_columns), left_padded=True)
                )

    return result


def execute_join(
    left_bundle: Optional[DataBundle],
    right_bundle: Optional[DataBundle],
    join: JoinDefinition,
) -> JoinResult:
    """
    Execute a join between two bundles.

    Args:
        left_bundle: Bundle referenced by ``join.left_bundle_id``
        right_bundle: Bundle referenced by ``join.right_bundle_id``
        join: Join type and conditions (ANDed)

    Returns:
        JoinResult with merged rows and match statistics.

    Raises:
        JoinError: If a bundle is missing, there are no conditions, or a
            condition's role does not resolve to an existing column. Raised
            before any row is scanned.
    """
    errors = _configuration_errors(left_bundle, right_bundle, join)
    if errors:
        raise JoinError(f"Cannot execute join '{join.name}'", errors)

    conditions = [
        _ResolvedCondition(
            left_column=_mapped_column(left_bundle, c.left_role_id),
            right_column=_mapped_column(right_bundle, c.right_role_id),
            operator=c.operator,
        )
        for c in join.conditions
    ]
    left_columns = tuple(left_bundle.source.columns)
    right_columns = tuple(right_bundle.source.columns)
    left_rows = left_bundle.source.parsed_data
    right_rows = right_bundle.source.parsed_data

    rows = _nested_loop(left_rows, right_rows, left_columns, right_columns, conditions, join.join_type)

    matched = [r for r in rows if r.is_match]
    stats = JoinStats(
        left_rows=len(left_rows),
        right_rows=len(right_rows),
        result_rows=len(rows),
        matched_left_rows=_count_unique((r.left for r in matched), left_columns),
        matched_right_rows=_count_unique((r.right for r in matched), right_columns),
    )
    logger.debug(
        "Join %s (%s): %d x %d rows -> %d",
        join.id,
        join.join_type.value,
        stats.left_rows,
        stats.right_rows,
        stats.result_rows,
    )
    return JoinResult(
        rows=rows,
        left_columns=left_columns,
        right_columns=right_columns,
        stats=stats,
        join_id=join.id,
    )


# === JOIN BUILDER HELPERS ===


def suggest_join_conditions(
    left_schema: Optional[SemanticSchema],
    right_schema: Optional[SemanticSchema],
) -> List[JoinCondition]:
    """One ``=`` condition per role id the two schemas share, in left-schema order."""
    if left_schema is None or right_schema is None:
        return []
    return [
        JoinCondition(left_role_id=role.id, right_role_id=role.id, operator=JoinOperator.EQ)
        for role in left_schema.roles
        if right_schema.role(role.id) is not None
    ]


def preview_join(
    left_bundle: Optional[DataBundle],
    right_bundle: Optional[DataBundle],
    conditions: Sequence[JoinCondition],
    join_type: JoinType = JoinType.INNER,
) -> JoinPreview:
    """
    Cheap estimate of a join's size from the first condition only.

    Compares the distinct values of the two condition columns. The match
    rate is ``|shared| / max(|left|, |right|)``; the row count estimate is the
    shared count for inner joins, the preserved side's distinct count for
    left/right joins and the sum of both for full joins.
    """
    if left_bundle is None or right_bundle is None or not conditions:
        return JoinPreview()

    first = conditions[0]
    left_column = _mapped_column(left_bundle, first.left_role_id)
    right_column = _mapped_column(right_bundle, first.right_role_id)
    if not left_column or not right_column:
        return JoinPreview()

    left_values = {_value_key([row.get(left_column)]) for row in left_bundle.source.parsed_data}
    right_values = {_value_key([row.get(right_column)]) for row in right_bundle.source.parsed_data}
    shared = left_values & right_values

    denominator = max(len(left_values), len(right_values))
    match_rate = len(shared) / denominator if denominator else 0.0

    if join_type is JoinType.INNER:
        estimate = len(shared)
    elif join_type is JoinType.LEFT:
        estimate = len(left_values)
    elif join_type is JoinType.RIGHT:
        estimate = len(right_values)
    else:
        estimate = len(left_values) + len(right_values)

    return JoinPreview(row_count=estimate, match_rate=match_rate, can_preview=True)


# === LAZY VIRTUAL BUNDLES ===

CacheKey = Tuple[str, str, str, str]


class JoinCache:
    """
    Memoises join results per (join, left bundle, right bundle) version.

    Keys include every ``updated_at`` involved, so editing a bundle or the
    join makes the old entry unreachable. Oldest entries are evicted first.
    """

    def __init__(self, max_entries: int = 32):
        self.max_entries = max_entries
        self._entries: OrderedDict[CacheKey, JoinResult] = OrderedDict()
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key_for(left_bundle: DataBundle, right_bundle: DataBundle, join: JoinDefinition) -> CacheKey:
        return (join.id, join.updated_at, left_bundle.updated_at, right_bundle.updated_at)

    def get_or_execute(
        self,
        left_bundle: DataBundle,
        right_bundle: DataBundle,
        join: JoinDefinition,
    ) -> JoinResult:
        if left_bundle is None or right_bundle is None:
            # No key to cache under; let execute_join raise
            return execute_join(left_bundle, right_bundle, join)

        key = self.key_for(left_bundle, right_bundle, join)
        with self._lock:
            if key in self._entries:
                self.hits += 1
                self._entries.move_to_end(key)
                return self._entries[key]

        result = execute_join(left_bundle, right_bundle, join)

        with self._lock:
            self.misses += 1
            self._entries[key] = result
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
        return result

    def invalidate(self, join_id: Optional[str] = None) -> None:
        """Drop entries for one join, or everything when ``join_id`` is None."""
        with self._lock:
            if join_id is None:
                self._entries.clear()
                return
            for key in [k for k in self._entries if k[0] == join_id]:
                del self._entries[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _by_id(items: Union[Mapping[str, Any], Iterable[Any]]) -> Dict[str, Any]:
    if isinstance(items, Mapping):
        return dict(items)
    return {item.id: item for item in items}


def materialize_virtual_bundle(
    virtual_bundle: VirtualBundle,
    bundles: Union[Mapping[str, DataBundle], Iterable[DataBundle]],
    joins: Union[Mapping[str, JoinDefinition], Iterable[JoinDefinition]],
    cache: Optional[JoinCache] = None,
) -> JoinResult:
    """
    Compute a virtual bundle's rows from the current state of its sources.

    The first source join is re-executed against the live bundles, so the
    result always reflects their latest rows and mappings.

    Raises:
        JoinError: If the join or one of its bundles no longer exists, or
            the join configuration is invalid.
    """
    if not virtual_bundle.source_join_ids:
        raise JoinError(f"Virtual bundle '{virtual_bundle.id}' has no source join")

    join_id = virtual_bundle.source_join_ids[0]
    join = _by_id(joins).get(join_id)
    if join is None:
        raise JoinError(f"Join not found: {join_id}")

    bundle_index = _by_id(bundles)
    left = bundle_index.get(join.left_bundle_id)
    right = bundle_index.get(join.right_bundle_id)

    if cache is not None:
        return cache.get_or_execute(left, right, join)
    return execute_join(left, right, join)
