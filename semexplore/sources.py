# semexplore/sources.py
"""
Building DataSource objects from uploaded CSV / JSON text.

CSV goes through ``pandas.read_csv`` as plain text and every cell is then
typed on its own (``type_csv_cell``), so a column holding ``1`` and ``x``
keeps the number 1. Literal ``NA`` or ``null`` cells stay text. JSON keeps
the types it was written with, normalised to the Value sum type.
"""
from __future__ import annotations

import io
import json
import logging
from typing import List, Tuple

import pandas as pd

from .core import DataSource, Row, SourceType
from .errors import SemexploreError
from .utils.value_capture import normalize_value, type_csv_cell

logger = logging.getLogger(__name__)

ParseResult = Tuple[List[Row], List[str]]


def parse_csv(text: str) -> ParseResult:
    """
    Parse CSV text with a header row.

    Blank lines are skipped and empty cells become None. Numbers and
    booleans are recognised per cell.

    Returns:
        (rows, columns)
    """
    if not text.strip():
        return [], []
    try:
        df = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False, skip_blank_lines=True)
    except pd.errors.EmptyDataError:
        return [], []
    except pd.errors.ParserError as e:
        raise SemexploreError(f"Could not parse CSV: {e}") from e

    columns = [str(c) for c in df.columns]
    rows = [
        {col: type_csv_cell(cell) for col, cell in zip(columns, record)}
        for record in df.itertuples(index=False, name=None)
    ]
    return rows, columns


def parse_json(text: str) -> ParseResult:
    """
    Parse a JSON array of objects (or a single object).

    Columns come from the keys of the first object.

    Raises:
        SemexploreError: If the text is not JSON or holds non-object records.
    """
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise SemexploreError(f"Could not parse JSON: {e}") from e

    records = parsed if isinstance(parsed, list) else [parsed]
    rows: List[Row] = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise SemexploreError(f"JSON record {index} is not an object")
        rows.append({str(k): normalize_value(v) for k, v in record.items()})

    columns = list(rows[0]) if rows else []
    return rows, columns


def source_type_for(file_name: str) -> SourceType:
    """JSON for ``.json`` files, CSV for everything else."""
    if file_name.lower().rsplit(".", 1)[-1] == "json":
        return SourceType.JSON
    return SourceType.CSV


def parse_file(file_name: str, text: str) -> ParseResult:
    if source_type_for(file_name) is SourceType.JSON:
        return parse_json(text)
    return parse_csv(text)


def load_source(file_name: str, text: str) -> DataSource:
    """Parse uploaded file content into a DataSource that keeps the raw text."""
    rows, columns = parse_file(file_name, text)
    logger.debug("Loaded %s: %d rows, %d columns", file_name, len(rows), len(columns))
    return DataSource(
        type=source_type_for(file_name),
        file_name=file_name,
        raw_data=text,
        parsed_data=rows,
        columns=columns,
    )
