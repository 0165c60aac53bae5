# tests/test_joins.py
"""
Tests for the join engine, join preview helpers and lazy virtual bundles.
"""
from dataclasses import replace

import pytest

from semexplore import (
    JoinCache,
    JoinCondition,
    JoinError,
    JoinOperator,
    JoinType,
    VirtualBundle,
    execute_join,
    materialize_virtual_bundle,
    preview_join,
    suggest_join_conditions,
    validate_join,
)
from semexplore.joins import JoinValidation
from semexplore.schemas import HIERARCHY_SCHEMA, TABULAR_SCHEMA, TIMELINE_SCHEMA, TREEMAP_SCHEMA


class TestJoinTypes:
    def test_inner(self, join_bundles, make_join):
        """Only the id present on both sides survives an inner join."""
        left, right = join_bundles
        result = execute_join(left, right, make_join(JoinType.INNER))

        assert len(result) == 1
        row = result.rows[0]
        assert row.left == {"id": 1, "cat": "A"}
        assert row.right == {"id": 1, "val": 10}
        assert row.is_match

    def test_left_pads_right_side(self, join_bundles, make_join):
        """Unmatched left rows carry every right column as None."""
        left, right = join_bundles
        result = execute_join(left, right, make_join(JoinType.LEFT))

        assert len(result) == 2
        padded = result.rows[1]
        assert padded.left == {"id": 2, "cat": "B"}
        assert padded.right == {"id": None, "val": None}
        assert padded.right_padded
        assert not padded.is_match

    def test_right_pads_left_side(self, join_bundles, make_join):
        left, right = join_bundles
        result = execute_join(left, right, make_join(JoinType.RIGHT))

        assert [r.right["id"] for r in result.rows] == [1, 3]
        assert result.rows[1].left == {"id": None, "cat": None}
        assert result.rows[1].left_padded

    def test_full(self, join_bundles, make_join):
        """Full join = matches, then unmatched left, then unmatched right."""
        left, right = join_bundles
        result = execute_join(left, right, make_join(JoinType.FULL))

        assert len(result) == 3
        assert [(r.left["id"], r.right["id"]) for r in result.rows] == [(1, 1), (2, None), (None, 3)]

    def test_row_count_bounds(self, join_bundles, make_join):
        """Outer joins never lose a row from their preserved side."""
        left, right = join_bundles
        counts = {t: len(execute_join(left, right, make_join(t))) for t in JoinType}
        n_left, n_right = left.source.row_count, right.source.row_count

        assert counts[JoinType.INNER] <= n_left * n_right
        assert counts[JoinType.LEFT] >= n_left
        assert counts[JoinType.RIGHT] >= n_right
        assert counts[JoinType.FULL] >= max(n_left, n_right)
        assert counts[JoinType.FULL] == counts[JoinType.LEFT] + counts[JoinType.RIGHT] - counts[JoinType.INNER]

    def test_every_left_row_preserved(self, join_bundles, make_join):
        left, right = join_bundles
        for join_type in (JoinType.LEFT, JoinType.FULL):
            result = execute_join(left, right, make_join(join_type))
            seen = [r.left for r in result.rows if not r.left_padded]
            for row in left.source.parsed_data:
                assert row in seen


class TestJoinStats:
    def test_match_counts(self, join_bundles, make_join):
        left, right = join_bundles
        stats = execute_join(left, right, make_join(JoinType.FULL)).stats

        assert stats.left_rows == 2
        assert stats.right_rows == 2
        assert stats.result_rows == 3
        assert stats.matched_left_rows == 1
        assert stats.matched_right_rows == 1
        assert stats.left_match_rate == 0.5

    def test_matched_counts_are_distinct_rows(self, make_bundle, make_join):
        """Duplicate rows multiply output but count once as matched."""
        left = make_bundle("left", [{"id": 1}, {"id": 1}], mappings=[("id", "row_id")])
        right = make_bundle("right", [{"id": 1}, {"id": 1}], mappings=[("id", "row_id")])
        result = execute_join(left, right, make_join())

        assert len(result) == 4
        assert result.stats.matched_left_rows == 1
        assert result.stats.matched_left_rows <= result.stats.left_rows

    def test_to_dict(self, join_bundles, make_join):
        left, right = join_bundles
        data = execute_join(left, right, make_join()).to_dict()

        assert data["data"] == [{"left_id": 1, "left_cat": "A", "right_id": 1, "right_val": 10}]
        assert data["leftColumns"] == ["id", "cat"]
        assert data["stats"]["resultRows"] == 1


class TestPredicates:
    def test_equality_is_type_strict(self, make_bundle, make_join):
        """The string '1' does not match the number 1."""
        left = make_bundle("left", [{"id": "1"}], mappings=[("id", "row_id")])
        right = make_bundle("right", [{"id": 1}], mappings=[("id", "row_id")])
        assert len(execute_join(left, right, make_join())) == 0

    def test_int_matches_float(self, make_bundle, make_join):
        left = make_bundle("left", [{"id": 1}], mappings=[("id", "row_id")])
        right = make_bundle("right", [{"id": 1.0}], mappings=[("id", "row_id")])
        assert len(execute_join(left, right, make_join())) == 1

    def test_nulls_match_each_other(self, make_bundle, make_join):
        left = make_bundle("left", [{"id": None}], mappings=[("id", "row_id")])
        right = make_bundle("right", [{"id": None}], mappings=[("id", "row_id")])
        assert len(execute_join(left, right, make_join())) == 1

    def test_not_equals(self, join_bundles, make_join):
        left, right = join_bundles
        join = make_join(conditions=[JoinCondition("row_id", "row_id", JoinOperator.NE)])
        pairs = [(r.left["id"], r.right["id"]) for r in execute_join(left, right, join).rows]
        assert pairs == [(1, 3), (2, 1), (2, 3)]

    def test_ordering_operators_need_numbers(self, make_bundle, make_join):
        """Nulls and non-numeric text never satisfy > or <."""
        left = make_bundle("left", [{"n": 5}, {"n": None}, {"n": "7"}], mappings=[("n", "measure")])
        right = make_bundle("right", [{"m": 3}, {"m": "x"}], mappings=[("m", "measure")])
        join = make_join(conditions=[JoinCondition("measure", "measure", JoinOperator.GT)])

        pairs = [(r.left["n"], r.right["m"]) for r in execute_join(left, right, join).rows]
        assert pairs == [(5, 3), ("7", 3)]

    def test_conditions_are_anded(self, make_bundle, make_join):
        left = make_bundle("left", [{"id": 1, "c": "a"}, {"id": 1, "c": "b"}], mappings=[("id", "row_id"), ("c", "category")])
        right = make_bundle("right", [{"id": 1, "c": "a"}], mappings=[("id", "row_id"), ("c", "category")])
        join = make_join(conditions=[JoinCondition("row_id", "row_id"), JoinCondition("category", "category")])
        result = execute_join(left, right, join)
        assert [r.left["c"] for r in result.rows] == ["a"]


class TestJoinValidation:
    def test_unmapped_role_raises_before_scanning(self, join_bundles, make_join):
        """A condition on an unmapped role fails the whole join."""
        left, right = join_bundles
        join = make_join(conditions=[JoinCondition("timestamp", "row_id")])

        with pytest.raises(JoinError) as exc_info:
            execute_join(left, right, join)
        assert 'Left role "timestamp" is not mapped' in exc_info.value.errors

        validation = validate_join(left, right, join)
        assert not validation.valid
        assert validation.errors == ['Left role "timestamp" is not mapped']

    def test_missing_bundle(self, join_bundles, make_join):
        _, right = join_bundles
        validation = validate_join(None, right, make_join())
        assert validation.errors == ["Left bundle not found"]
        with pytest.raises(JoinError, match="Left bundle not found"):
            execute_join(None, right, make_join())

    def test_no_conditions(self, join_bundles, make_join):
        left, right = join_bundles
        with pytest.raises(JoinError, match="At least one join condition is required"):
            execute_join(left, right, make_join(conditions=[]))

    def test_stale_mapped_column(self, make_bundle, join_bundles, make_join):
        """A mapping that points to a column no longer in the source is reported."""
        _, right = join_bundles
        left = make_bundle("left", [{"id": 1}], mappings=[("gone", "row_id")])
        validation = validate_join(left, right, make_join())
        assert validation.errors == ['Left column "gone" does not exist']

    def test_swapped_bundles(self, join_bundles, make_join):
        left, right = join_bundles
        validation = validate_join(right, left, make_join())
        assert not validation.valid
        assert len(validation.errors) == 2

    def test_valid_join(self, join_bundles, make_join):
        left, right = join_bundles
        validation = validate_join(left, right, make_join())
        assert validation.valid
        validation.raise_if_failed()

    def test_raise_if_failed(self):
        with pytest.raises(JoinError, match="Invalid join configuration: boom"):
            JoinValidation(valid=False, errors=["boom"]).raise_if_failed()


class TestJoinHelpers:
    def test_suggest_shared_roles(self):
        conditions = suggest_join_conditions(TABULAR_SCHEMA, TABULAR_SCHEMA)
        assert [c.left_role_id for c in conditions] == ["row_id", "category", "measure", "timestamp", "text"]
        assert all(c.operator is JoinOperator.EQ for c in conditions)

    def test_suggest_across_schemas(self):
        assert [c.left_role_id for c in suggest_join_conditions(TIMELINE_SCHEMA, TREEMAP_SCHEMA)] == ["category"]
        assert suggest_join_conditions(HIERARCHY_SCHEMA, TABULAR_SCHEMA) == []
        assert suggest_join_conditions(None, TABULAR_SCHEMA) == []

    def test_preview_estimates(self, join_bundles):
        left, right = join_bundles
        conditions = [JoinCondition("row_id", "row_id")]

        inner = preview_join(left, right, conditions)
        assert inner.can_preview
        assert inner.row_count == 1
        assert inner.match_rate == 0.5
        assert preview_join(left, right, conditions, JoinType.LEFT).row_count == 2
        assert preview_join(left, right, conditions, JoinType.FULL).row_count == 4

    def test_preview_unmapped(self, join_bundles):
        left, right = join_bundles
        preview = preview_join(left, right, [JoinCondition("timestamp", "row_id")])
        assert not preview.can_preview
        assert preview.row_count == 0


class TestJoinResultFrames:
    def test_to_dataframe_columns(self, join_bundles, make_join):
        left, right = join_bundles
        df = execute_join(left, right, make_join(JoinType.LEFT)).to_dataframe()

        assert list(df.columns) == ["left_id", "left_cat", "right_id", "right_val"]
        assert len(df) == 2
        assert df["right_val"].isna().tolist() == [False, True]

    def test_empty_result_keeps_columns(self, make_bundle, make_join):
        left = make_bundle("left", [{"id": 1}], mappings=[("id", "row_id")])
        right = make_bundle("right", [{"id": 2}], mappings=[("id", "row_id")])
        df = execute_join(left, right, make_join()).to_dataframe()
        assert df.empty
        assert list(df.columns) == ["left_id", "right_id"]


class TestJoinCache:
    def test_hit_and_miss(self, join_bundles, make_join):
        left, right = join_bundles
        cache = JoinCache()
        join = make_join()

        first = cache.get_or_execute(left, right, join)
        second = cache.get_or_execute(left, right, join)
        assert first is second
        assert (cache.hits, cache.misses) == (1, 1)

    def test_bundle_update_misses(self, join_bundles, make_join):
        """A new updated_at on either bundle makes a new cache key."""
        left, right = join_bundles
        cache = JoinCache()
        join = make_join()
        cache.get_or_execute(left, right, join)
        cache.get_or_execute(replace(left, updated_at="2099-01-01T00:00:00Z"), right, join)
        assert cache.misses == 2
        assert len(cache) == 2

    def test_invalidate_and_evict(self, join_bundles, make_join):
        left, right = join_bundles
        cache = JoinCache(max_entries=1)
        cache.get_or_execute(left, right, make_join(JoinType.INNER))
        cache.get_or_execute(left, right, make_join(JoinType.LEFT))
        assert len(cache) == 1

        cache.invalidate("j-left")
        assert len(cache) == 0


class TestVirtualBundles:
    def _vbundle(self, join_ids=("j-inner",)):
        return VirtualBundle(id="v", name="Left + Right", schema_id="tabular-default", source_join_ids=join_ids)

    def test_materialize(self, join_bundles, make_join):
        left, right = join_bundles
        result = materialize_virtual_bundle(self._vbundle(), [left, right], [make_join()])
        assert len(result) == 1
        assert result.join_id == "j-inner"

    def test_reflects_current_bundle_rows(self, join_bundles, make_join, make_source):
        """Rows are recomputed from the bundles as they are now."""
        left, right = join_bundles
        grown = replace(left, source=make_source([{"id": 1, "cat": "A"}, {"id": 3, "cat": "C"}]))
        bundles = {"left": grown, "right": right}
        result = materialize_virtual_bundle(self._vbundle(), bundles, {"j-inner": make_join()})
        assert [r.left["id"] for r in result.rows] == [1, 3]

    def test_uses_cache(self, join_bundles, make_join):
        left, right = join_bundles
        cache = JoinCache()
        join = make_join()
        for _ in range(2):
            materialize_virtual_bundle(self._vbundle(), [left, right], [join], cache=cache)
        assert cache.hits == 1

    def test_missing_join(self, join_bundles):
        with pytest.raises(JoinError, match="Join not found: j-inner"):
            materialize_virtual_bundle(self._vbundle(), list(join_bundles), [])

    def test_no_source_join(self, join_bundles, make_join):
        with pytest.raises(JoinError, match="has no source join"):
            materialize_virtual_bundle(self._vbundle(()), list(join_bundles), [make_join()])

    def test_deleted_bundle(self, join_bundles, make_join):
        """A source bundle that no longer exists surfaces as a JoinError."""
        left, _ = join_bundles
        with pytest.raises(JoinError, match="Right bundle not found"):
            materialize_virtual_bundle(self._vbundle(), [left], [make_join()])
