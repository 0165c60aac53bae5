# tests/test_lineage.py
"""
Tests for the lineage graph.
"""
import pytest

from semexplore import (
    DEFAULT_SCHEMAS,
    JoinDefinition,
    LineageEdgeType,
    LineageGraph,
    LineageNodeType,
    VirtualBundle,
)
from semexplore.lineage import schema_node_id


@pytest.fixture
def vbundle():
    return VirtualBundle(id="v", name="Left + Right", schema_id="tabular-default", source_join_ids=("j-inner",))


@pytest.fixture
def lineage(join_bundles, make_join, vbundle):
    return LineageGraph.build(list(join_bundles), [make_join()], [vbundle], DEFAULT_SCHEMAS)


class TestLineageBuild:
    def test_nodes_and_edges(self, lineage):
        """Two bundles, every schema, one virtual bundle; five edges."""
        assert len(lineage) == 2 + len(DEFAULT_SCHEMAS) + 1
        assert len(lineage.edges(LineageEdgeType.USES_SCHEMA)) == 2
        assert len(lineage.edges(LineageEdgeType.JOIN)) == 1
        assert len(lineage.edges(LineageEdgeType.DERIVED_FROM)) == 2

    def test_edge_directions(self, lineage):
        join_edge = lineage.edges(LineageEdgeType.JOIN)[0]
        assert (join_edge.source, join_edge.target) == ("left", "right")
        assert join_edge.label == "inner join"
        assert join_edge.join_id == "j-inner"

        derived = {(e.source, e.target) for e in lineage.edges(LineageEdgeType.DERIVED_FROM)}
        assert derived == {("left", "v"), ("right", "v")}

    def test_node_metadata(self, lineage):
        left = lineage.node("left")
        assert left.type is LineageNodeType.BUNDLE
        assert left.label == "Left"
        assert left.metadata["rowCount"] == 2
        assert left.metadata["columnCount"] == 2

        schema = lineage.node(schema_node_id("tabular-default"))
        assert schema.type is LineageNodeType.SCHEMA
        assert schema.metadata["dataType"] == "tabular"

        assert lineage.node("v").metadata["sourceJoinIds"] == ["j-inner"]

    def test_dangling_references_skipped(self, make_bundle):
        """Missing bundles, joins and schemas never break the build."""
        orphan = make_bundle("orphan", [{"a": 1}], schema_id="no-such-schema")
        ghost_join = JoinDefinition(id="jg", name="ghost", left_bundle_id="orphan", right_bundle_id="ghost")
        vb = VirtualBundle(id="v", name="V", schema_id="tabular-default", source_join_ids=("missing", "jg"))

        lineage = LineageGraph.build([orphan], [ghost_join], [vb], DEFAULT_SCHEMAS)

        assert "orphan" in lineage
        assert "v" in lineage
        assert lineage.edges(LineageEdgeType.USES_SCHEMA) == []
        assert lineage.edges(LineageEdgeType.JOIN) == []
        # jg's surviving left bundle still feeds the virtual bundle
        assert [(e.source, e.target) for e in lineage.edges(LineageEdgeType.DERIVED_FROM)] == [("orphan", "v")]

    def test_duplicate_node_id_ignored(self, make_bundle):
        """A virtual bundle reusing a bundle's id does not replace the bundle."""
        bundle = make_bundle("x", [{"a": 1}])
        clash = VirtualBundle(id="x", name="Clash", schema_id="tabular-default")
        lineage = LineageGraph.build([bundle], [], [clash], DEFAULT_SCHEMAS)
        assert lineage.node("x").type is LineageNodeType.BUNDLE

    def test_empty_state(self):
        lineage = LineageGraph.build([], [], [], [])
        assert len(lineage) == 0
        assert lineage.get_stats().total_edges == 0


class TestLineageQueries:
    def test_upstream(self, lineage):
        ids = {n.id for n in lineage.get_upstream_bundles("v")}
        assert ids == {"left", "right"}

    def test_downstream(self, lineage):
        """Schemas are never reported as downstream bundles."""
        ids = {n.id for n in lineage.get_downstream_bundles("left")}
        assert ids == {"right", "v"}
        assert lineage.get_downstream_bundles("v") == []

    def test_unknown_node(self, lineage):
        assert lineage.get_upstream_bundles("nope") == []
        assert lineage.node("nope") is None

    def test_find_path(self, lineage):
        assert lineage.find_path("left", "v") == ["left", "v"]
        assert lineage.find_path("v", "left") is None
        assert lineage.find_path("left", "nope") is None

    def test_nodes_by_type(self, lineage):
        assert len(lineage.nodes(LineageNodeType.SCHEMA)) == len(DEFAULT_SCHEMAS)
        assert [n.id for n in lineage.nodes(LineageNodeType.VIRTUAL_BUNDLE)] == ["v"]


class TestCircularDependencies:
    def test_acyclic(self, lineage):
        assert not lineage.has_circular_dependencies()

    def test_join_cycle_detected(self, join_bundles, make_join):
        """Joins in both directions between two bundles form a cycle."""
        forward = make_join()
        backward = JoinDefinition(id="back", name="back", left_bundle_id="right", right_bundle_id="left")
        lineage = LineageGraph.build(list(join_bundles), [forward, backward], [], DEFAULT_SCHEMAS)

        assert lineage.has_circular_dependencies()
        assert lineage.get_stats().has_circular_deps
        # Walks still terminate
        assert {n.id for n in lineage.get_upstream_bundles("left")} == {"right"}


class TestLineageExports:
    def test_stats(self, lineage):
        stats = lineage.get_stats().to_dict()
        assert stats == {
            "totalNodes": 2 + len(DEFAULT_SCHEMAS) + 1,
            "totalEdges": 5,
            "bundles": 2,
            "virtualBundles": 1,
            "schemas": len(DEFAULT_SCHEMAS),
            "hasCircularDeps": False,
        }

    def test_visualization_export(self, lineage):
        data = lineage.export_for_visualization()
        assert len(data["nodes"]) == len(lineage)
        assert len(data["edges"]) == 5
        assert data["edges"][0]["type"] in {"uses_schema", "join", "derived_from"}

    def test_cognee_export(self, lineage):
        data = lineage.export_to_cognee_format()
        left = next(e for e in data["entities"] if e["id"] == "left")
        assert left["type"] == "bundle"
        assert left["properties"]["label"] == "Left"
        assert left["properties"]["rowCount"] == 2
        assert len(data["relationships"]) == 5

    def test_to_networkx_is_a_copy(self, lineage):
        graph = lineage.to_networkx()
        graph.remove_node("left")
        assert "left" in lineage
