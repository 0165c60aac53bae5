# semexplore/transforms/heatmap.py
"""
Heatmap transform: (row label, column label, value) triples -> cell grid.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core import ColumnMapping, DataSource, ExplorerConfig
from ..utils.value_capture import to_text
from .base import cell_number, cell_text, has_roles, is_nan, resolve

logger = logging.getLogger(__name__)


@dataclass
class HeatMapCell:
    row: str
    col: str
    value: float
    label: str

    def to_dict(self) -> Dict[str, Any]:
        return {"row": self.row, "col": self.col, "value": self.value, "label": self.label}


@dataclass
class HeatMapData:
    cells: List[HeatMapCell] = field(default_factory=list)
    rows: List[str] = field(default_factory=list)
    cols: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.cells

    def matrix(self) -> List[List[Optional[float]]]:
        """
        ``len(rows) x len(cols)`` grid of values, ``None`` where no cell exists.

        When several cells share a position the last one wins.
        """
        row_index = {r: i for i, r in enumerate(self.rows)}
        col_index = {c: j for j, c in enumerate(self.cols)}
        grid: List[List[Optional[float]]] = [[None] * len(self.cols) for _ in self.rows]
        for cell in self.cells:
            grid[row_index[cell.row]][col_index[cell.col]] = cell.value
        return grid

    def value_range(self) -> Optional[Tuple[float, float]]:
        if not self.cells:
            return None
        values = [c.value for c in self.cells]
        return min(values), max(values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cells": [c.to_dict() for c in self.cells],
            "rows": list(self.rows),
            "cols": list(self.cols),
        }


def transform_to_heatmap(
    source: DataSource,
    mappings: Sequence[ColumnMapping],
    config: Optional[ExplorerConfig] = None,
) -> HeatMapData:
    """
    Build heatmap cells from ``row_label`` / ``column_label`` / ``cell_value``.

    A missing value counts as 0; a value that does not parse as a number
    drops the row, as does an empty row or column label. Row and column
    order is first-seen.
    """
    if not has_roles(mappings, "row_label", "column_label", "cell_value"):
        return HeatMapData()

    row_map = resolve(mappings, "row_label")
    col_map = resolve(mappings, "column_label")
    value_map = resolve(mappings, "cell_value")
    label_map = resolve(mappings, "cell_label")

    cells: List[HeatMapCell] = []
    rows: Dict[str, None] = {}
    cols: Dict[str, None] = {}
    skipped = 0

    for row in source.parsed_data:
        row_label = cell_text(row, row_map)
        col_label = cell_text(row, col_map)
        value = cell_number(row, value_map)
        if not row_label or not col_label or is_nan(value):
            skipped += 1
            continue

        cells.append(
            HeatMapCell(
                row=row_label,
                col=col_label,
                value=value,
                label=cell_text(row, label_map, default=to_text(value)),
            )
        )
        rows.setdefault(row_label, None)
        cols.setdefault(col_label, None)

    if skipped:
        logger.debug("Heatmap: skipped %d incomplete rows", skipped)

    return HeatMapData(cells=cells, rows=list(rows), cols=list(cols))
