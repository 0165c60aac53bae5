# semexplore/transforms/profiling.py
"""
Tabular profiling: per-column statistics and a 0-100 quality score.

Every raw column is profiled, mapped or not. Mappings only contribute the
display name and whether the column is an identifier (duplicates matter).

Conventions:
- ``None`` and ``''`` count as null.
- ``unique_count`` counts distinct string forms of non-null values; null is
  never one of the unique values.
- ``numeric_stats`` are computed over non-null numeric values only. The
  median is the upper middle value of the sorted numbers, not the mean of
  the two middle values.
- A column with more than one row and at most one distinct value scores no
  consistency, so blanking out a repeated value never raises the score.
"""
from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..context import resolve_config
from ..core import ColumnMapping, DataSource, ExplorerConfig, Value
from ..utils.value_capture import (
    is_blank,
    looks_like_iso_date,
    parses_as_number,
    to_number,
    to_text,
)

TYPE_NUMBER = "number"
TYPE_DATE = "date"
TYPE_BOOLEAN = "boolean"
TYPE_STRING = "string"
TYPE_MIXED = "mixed"


@dataclass
class QualityIssue:
    """A single finding that lowered a column's quality score."""

    type: str  # high_nulls | low_cardinality | outliers | format_inconsistency | duplicates
    severity: str  # error | warning | info
    message: str
    count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "type": self.type,
            "severity": self.severity,
            "message": self.message,
        }
        if self.count is not None:
            result["count"] = self.count
        return result


@dataclass
class NumericStats:
    min: float
    max: float
    mean: float
    median: float
    std_dev: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "min": self.min,
            "max": self.max,
            "mean": self.mean,
            "median": self.median,
            "stdDev": self.std_dev,
        }


@dataclass
class TabularProfile:
    column: str
    display_name: str
    data_type: str
    total_count: int
    null_count: int
    unique_count: int
    top_values: Optional[List[Dict[str, Any]]] = None
    numeric_stats: Optional[NumericStats] = None
    quality_score: int = 0
    quality_issues: List[QualityIssue] = field(default_factory=list)

    @property
    def null_rate(self) -> float:
        return self.null_count / self.total_count if self.total_count else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "column": self.column,
            "displayName": self.display_name,
            "dataType": self.data_type,
            "totalCount": self.total_count,
            "nullCount": self.null_count,
            "uniqueCount": self.unique_count,
            "topValues": self.top_values,
            "numericStats": self.numeric_stats.to_dict() if self.numeric_stats else None,
            "qualityScore": self.quality_score,
            "qualityIssues": [i.to_dict() for i in self.quality_issues],
        }


def classify_value(value: Value) -> str:
    """Kind of a single non-null cell for type inference."""
    if isinstance(value, bool):
        return TYPE_BOOLEAN
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return TYPE_BOOLEAN
    if parses_as_number(value):
        return TYPE_NUMBER
    if looks_like_iso_date(value):
        return TYPE_DATE
    return TYPE_STRING


def infer_column_type(values: Sequence[Value], threshold: float) -> str:
    """
    Majority vote over non-null values.

    Returns ``mixed`` when no kind reaches ``threshold`` of the votes, and
    ``string`` for a column with no values at all.
    """
    if not values:
        return TYPE_STRING
    votes = Counter(classify_value(v) for v in values)
    kind, count = votes.most_common(1)[0]
    if count / len(values) >= threshold:
        return kind
    return TYPE_MIXED


def compute_numeric_stats(values: Sequence[Value]) -> Optional[NumericStats]:
    nums = pd.Series([to_number(v, default=math.nan) for v in values], dtype="float64").dropna()
    if nums.empty:
        return None
    arr = nums.to_numpy()
    return NumericStats(
        min=float(arr.min()),
        max=float(arr.max()),
        mean=float(arr.mean()),
        median=float(np.sort(arr)[len(arr) // 2]),
        std_dev=float(arr.std(ddof=0)),
    )


def calculate_quality_score(
    non_null: Sequence[Value],
    data_type: str,
    unique_count: int,
    null_count: int,
    total_count: int,
    numeric_stats: Optional[NumericStats],
    is_identifier: bool,
    config: ExplorerConfig,
) -> tuple[int, List[QualityIssue]]:
    """
    Weighted heuristic: completeness + consistency + validity.

    The result is clamped to 0..100.
    """
    issues: List[QualityIssue] = []

    # 1. Completeness
    if total_count == 0:
        completeness_rate = 0.0
        issues.append(QualityIssue("high_nulls", "error", "Column has no rows", 0))
    else:
        completeness_rate = (total_count - null_count) / total_count
        null_rate = 1.0 - completeness_rate
        if null_rate > config.high_null_warning_rate:
            issues.append(
                QualityIssue(
                    type="high_nulls",
                    severity="error" if null_rate > config.high_null_error_rate else "warning",
                    message=f"High null rate: {null_rate * 100:.1f}% missing",
                    count=null_count,
                )
            )
    completeness = completeness_rate * config.completeness_weight

    # 2. Consistency
    consistency = config.consistency_weight
    if unique_count <= 1 and total_count > 1:
        consistency = 0.0
        if unique_count == 1:
            issues.append(QualityIssue("low_cardinality", "warning", "All values are identical", 1))
    else:
        if data_type == TYPE_NUMBER and numeric_stats and numeric_stats.std_dev > 0:
            nums = [n for n in (to_number(v, default=math.nan) for v in non_null) if not math.isnan(n)]
            spread = config.outlier_std_threshold * numeric_stats.std_dev
            outliers = [n for n in nums if abs(n - numeric_stats.mean) > spread]
            if nums and len(outliers) / len(nums) > config.outlier_rate_threshold:
                consistency -= config.consistency_weight / 2
                issues.append(
                    QualityIssue(
                        type="outliers",
                        severity="info",
                        message=f"{len(outliers)} outliers detected (>{config.outlier_std_threshold:g} std dev)",
                        count=len(outliers),
                    )
                )

        duplicates = len(non_null) - unique_count
        if is_identifier and duplicates > 0:
            consistency -= config.consistency_weight / 2
            issues.append(
                QualityIssue(
                    type="duplicates",
                    severity="warning",
                    message=f"{duplicates} duplicate identifier values",
                    count=duplicates,
                )
            )

    # 3. Validity
    validity = config.validity_weight
    if data_type == TYPE_STRING:
        strings = [to_text(v) for v in non_null]
        has_upper = any(s != s.lower() for s in strings)
        has_lower = any(s != s.upper() for s in strings)
        if has_upper and has_lower and len(strings) > config.mixed_case_min_values:
            upper_count = sum(1 for s in strings if s == s.upper())
            lower_count = sum(1 for s in strings if s == s.lower())
            if abs(upper_count - lower_count) / len(strings) > 0.3:
                validity -= config.validity_weight / 3
                issues.append(
                    QualityIssue("format_inconsistency", "info", "Mixed uppercase/lowercase detected")
                )
    elif data_type == TYPE_MIXED:
        validity -= config.validity_weight / 3
        issues.append(QualityIssue("format_inconsistency", "warning", "Values have mixed types"))

    total = completeness + max(consistency, 0.0) + max(validity, 0.0)
    score = int(math.floor(min(max(total, 0.0), 100.0) + 0.5))
    return min(score, 100), issues


def profile_column(
    source: DataSource,
    column: str,
    display_name: Optional[str] = None,
    is_identifier: bool = False,
    config: Optional[ExplorerConfig] = None,
) -> TabularProfile:
    config = resolve_config(config)
    values = [row.get(column) for row in source.parsed_data]
    non_null = [v for v in values if not is_blank(v)]
    null_count = len(values) - len(non_null)

    # Counter keeps first-seen order, so ties below stay stable
    value_counts = Counter(to_text(v) for v in non_null)
    unique_count = len(value_counts)
    data_type = infer_column_type(non_null, config.type_dominance_threshold)

    top_values = None
    if unique_count <= config.top_values_limit:
        ordered = sorted(value_counts.items(), key=lambda item: -item[1])
        top_values = [{"value": value, "count": count} for value, count in ordered]

    numeric_stats = compute_numeric_stats(non_null) if data_type == TYPE_NUMBER else None

    score, issues = calculate_quality_score(
        non_null=non_null,
        data_type=data_type,
        unique_count=unique_count,
        null_count=null_count,
        total_count=len(values),
        numeric_stats=numeric_stats,
        is_identifier=is_identifier,
        config=config,
    )

    return TabularProfile(
        column=column,
        display_name=display_name or column,
        data_type=data_type,
        total_count=len(values),
        null_count=null_count,
        unique_count=unique_count,
        top_values=top_values,
        numeric_stats=numeric_stats,
        quality_score=score,
        quality_issues=issues,
    )


def profile_tabular_data(
    source: DataSource,
    mappings: Sequence[ColumnMapping],
    config: Optional[ExplorerConfig] = None,
) -> List[TabularProfile]:
    """
    Profile every raw column of ``source`` in column order.

    Mappings pointing at columns that no longer exist are ignored.
    """
    config = resolve_config(config)
    profiles = []
    for column in source.columns:
        column_maps = [m for m in mappings if m.source_column == column]
        display_name = column_maps[0].display_name if column_maps else column
        is_identifier = any(m.role_id in config.identifier_roles for m in column_maps)
        profiles.append(
            profile_column(
                source,
                column,
                display_name=display_name,
                is_identifier=is_identifier,
                config=config,
            )
        )
    return profiles
