"""
Tests for semexplore export functionality.
"""
import json

import pytest

import semexplore
from semexplore import DEFAULT_SCHEMAS, LineageGraph, VirtualBundle
from semexplore.export import LineageExporter, export_to_cognee, export_to_json


@pytest.fixture
def lineage(join_bundles, make_join):
    vbundle = VirtualBundle(id="v", name="Left + Right", schema_id="tabular-default", source_join_ids=("j-inner",))
    return LineageGraph.build(list(join_bundles), [make_join()], [vbundle], DEFAULT_SCHEMAS)


class TestJSONExport:
    def test_export_to_json_string(self, lineage):
        data = json.loads(export_to_json(lineage))

        assert data["version"] == semexplore.__version__
        assert data["generator"] == "semexplore"
        assert "generated_at" in data
        assert len(data["nodes"]) == len(lineage)
        assert len(data["edges"]) == 5

    def test_export_to_json_file(self, lineage, tmp_path):
        filepath = tmp_path / "lineage.json"
        assert export_to_json(lineage, str(filepath)) is None

        assert filepath.exists()
        data = json.loads(filepath.read_text())
        assert "nodes" in data

    def test_summary(self, lineage):
        summary = LineageExporter(lineage).to_dict()["summary"]

        assert summary["total_edges"] == 5
        assert summary["node_counts"] == {"bundle": 2, "schema": len(DEFAULT_SCHEMAS), "virtual_bundle": 1}
        assert summary["edge_counts"] == {"uses_schema": 2, "join": 1, "derived_from": 2}
        assert summary["has_circular_dependencies"] is False

    def test_export_single_node(self, lineage):
        """Exporting one node includes it and its upstream bundles only."""
        data = LineageExporter(lineage).to_dict(node_id="v")

        assert {n["id"] for n in data["nodes"]} == {"v", "left", "right"}
        assert {(e["source"], e["target"]) for e in data["edges"]} == {
            ("left", "right"),
            ("left", "v"),
            ("right", "v"),
        }

    def test_export_unknown_node(self, lineage):
        data = LineageExporter(lineage).to_dict(node_id="nope")
        assert data["nodes"] == []
        assert data["summary"]["total_nodes"] == 0

    def test_indent(self, lineage):
        compact = export_to_json(lineage, indent=None)
        assert "\n" not in compact


class TestCogneeExport:
    def test_export_to_cognee(self, lineage):
        data = export_to_cognee(lineage)

        assert len(data["entities"]) == len(lineage)
        join = next(r for r in data["relationships"] if r["type"] == "join")
        assert join["properties"]["joinId"] == "j-inner"
