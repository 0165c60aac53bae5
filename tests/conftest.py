# tests/conftest.py
"""
Shared pytest fixtures for semexplore tests.
"""

import sys

import networkx as nx
import numpy as np
import pandas as pd
import pytest

import semexplore
from semexplore import (
    ColumnMapping,
    DataBundle,
    DataSource,
    JoinCondition,
    JoinDefinition,
    JoinType,
    SourceType,
)


def pytest_configure(config):
    """Print library versions at test session start."""
    print("\n" + "=" * 70)
    print("semexplore Test Session")
    print("=" * 70)
    print(f"Python:     {sys.version.split()[0]}")
    print(f"Pandas:     {pd.__version__}")
    print(f"NumPy:      {np.__version__}")
    print(f"NetworkX:   {nx.__version__}")
    print(f"semexplore: {semexplore.__version__}")
    print("=" * 70)


# ============================================================================
# CORE FIXTURES
# ============================================================================


@pytest.fixture(autouse=True)
def reset_semexplore():
    """Reset the thread's configuration before and after each test."""
    semexplore.reset_context()
    yield
    semexplore.reset_context()


@pytest.fixture
def make_source():
    """Factory: rows (+ optional column order) -> DataSource."""

    def _make(rows, columns=None, file_name="data.csv"):
        if columns is None:
            columns = []
            for row in rows:
                for key in row:
                    if key not in columns:
                        columns.append(key)
        return DataSource(
            type=SourceType.CSV,
            file_name=file_name,
            parsed_data=[dict(r) for r in rows],
            columns=columns,
        )

    return _make


@pytest.fixture
def make_bundle(make_source):
    """Factory: rows + mappings -> DataBundle."""

    def _make(bundle_id, rows, mappings=(), schema_id="tabular-default", columns=None, name=None):
        return DataBundle(
            id=bundle_id,
            name=name or bundle_id.title(),
            schema_id=schema_id,
            source=make_source(rows, columns),
            mappings=[ColumnMapping(source_column=c, role_id=r) for c, r in mappings],
        )

    return _make


# ============================================================================
# JOIN FIXTURES
# ============================================================================


@pytest.fixture
def join_bundles(make_bundle):
    """Two small bundles sharing an ``id`` column mapped to ``row_id``."""
    left = make_bundle(
        "left",
        [{"id": 1, "cat": "A"}, {"id": 2, "cat": "B"}],
        mappings=[("id", "row_id"), ("cat", "category")],
    )
    right = make_bundle(
        "right",
        [{"id": 1, "val": 10}, {"id": 3, "val": 30}],
        mappings=[("id", "row_id"), ("val", "measure")],
    )
    return left, right


@pytest.fixture
def make_join():
    """Factory: join type -> JoinDefinition over the ``join_bundles`` pair."""

    def _make(join_type=JoinType.INNER, conditions=None, left_id="left", right_id="right"):
        if conditions is None:
            conditions = [JoinCondition("row_id", "row_id")]
        return JoinDefinition(
            id=f"j-{join_type.value}",
            name=f"{join_type.value} join",
            left_bundle_id=left_id,
            right_bundle_id=right_id,
            join_type=join_type,
            conditions=conditions,
        )

    return _make


# ============================================================================
# DATA FIXTURES
# ============================================================================


@pytest.fixture
def hierarchy_mappings():
    return [
        ColumnMapping("id", "node_id"),
        ColumnMapping("parent", "parent_id"),
    ]


@pytest.fixture
def sample_df():
    """Provide a sample DataFrame for source tests."""
    return pd.DataFrame(
        {
            "id": [1, 2, 3, 4, 5],
            "value": [10.0, 20.0, None, 40.0, 50.0],
            "category": ["A", "B", "A", "B", "A"],
        }
    )
