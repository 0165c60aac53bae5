# semexplore/storage/memory.py
"""
In-memory repository for schemas, bundles, joins and virtual bundles.

Stored entities are frozen dataclasses. Updates build a new object with a
fresh ``updated_at`` and swap it in; callers holding the old object keep an
unchanged snapshot.

Deleting a bundle or join reports its dependents as a DeletionImpact.
Unless ``cascade`` is set they are kept and a SemexploreWarning names them;
lineage skips the dangling references that remain.
"""
from __future__ import annotations

import json
import logging
import threading
import warnings
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..core import (
    ColumnMapping,
    DataBundle,
    DataSource,
    JoinCondition,
    JoinDefinition,
    JoinType,
    SemanticSchema,
    VirtualBundle,
    generate_id,
    now_iso,
)
from ..errors import BundleNotFoundError, SemexploreError, SemexploreWarning
from ..joins import JoinCache, JoinResult, materialize_virtual_bundle, validate_join
from ..lineage import LineageGraph
from ..schemas import DEFAULT_SCHEMAS, missing_required_roles, validate_schema
from ..transforms import transform_bundle

logger = logging.getLogger(__name__)


@dataclass
class DeletionImpact:
    """Entities that depend on a deleted bundle or join."""

    joins: List[JoinDefinition] = field(default_factory=list)
    virtual_bundles: List[VirtualBundle] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.joins and not self.virtual_bundles

    def describe(self) -> str:
        parts = []
        if self.joins:
            parts.append(f"{len(self.joins)} join(s): {', '.join(j.name for j in self.joins)}")
        if self.virtual_bundles:
            names = ", ".join(v.name for v in self.virtual_bundles)
            parts.append(f"{len(self.virtual_bundles)} virtual bundle(s): {names}")
        return "; ".join(parts)


@dataclass
class ReloadResult:
    bundle: DataBundle
    dropped_mappings: List[ColumnMapping] = field(default_factory=list)
    unmapped_required_roles: List[str] = field(default_factory=list)

    @property
    def needs_attention(self) -> bool:
        return bool(self.dropped_mappings or self.unmapped_required_roles)


class InMemoryRepository:
    """
    Dict-backed repository. Implements: BundleRepository protocol.

    Default schemas are preloaded unless ``schemas`` is given. All public
    methods take the instance lock, so one repository can be shared between
    threads.
    """

    def __init__(self, schemas: Optional[Iterable[SemanticSchema]] = None):
        initial = DEFAULT_SCHEMAS if schemas is None else schemas
        self._schemas: Dict[str, SemanticSchema] = {s.id: s for s in initial}
        self._bundles: Dict[str, DataBundle] = {}
        self._joins: Dict[str, JoinDefinition] = {}
        self._virtual_bundles: Dict[str, VirtualBundle] = {}
        self._lock = threading.RLock()
        self.join_cache = JoinCache()

    # === SCHEMAS ===

    def add_schema(self, schema: SemanticSchema) -> SemanticSchema:
        validate_schema(schema, strict=True)
        with self._lock:
            self._schemas[schema.id] = schema
        return schema

    def get_schema(self, schema_id: str) -> SemanticSchema:
        with self._lock:
            try:
                return self._schemas[schema_id]
            except KeyError:
                raise BundleNotFoundError("Schema", schema_id) from None

    def list_schemas(self) -> List[SemanticSchema]:
        with self._lock:
            return list(self._schemas.values())

    # === BUNDLES ===

    def add_bundle(self, bundle: DataBundle) -> DataBundle:
        """Store a bundle; replacing an existing id drops cached joins over it."""
        with self._lock:
            replacing = bundle.id in self._bundles
            self._bundles[bundle.id] = bundle
            if replacing:
                for join in self._joins.values():
                    if bundle.id in (join.left_bundle_id, join.right_bundle_id):
                        self.join_cache.invalidate(join.id)
        return bundle

    def get_bundle(self, bundle_id: str) -> DataBundle:
        with self._lock:
            try:
                return self._bundles[bundle_id]
            except KeyError:
                raise BundleNotFoundError("Bundle", bundle_id) from None

    def list_bundles(self) -> List[DataBundle]:
        with self._lock:
            return list(self._bundles.values())

    def update_bundle(self, bundle_id: str, **changes: Any) -> DataBundle:
        with self._lock:
            updated = replace(self.get_bundle(bundle_id), updated_at=now_iso(), **changes)
            self._bundles[bundle_id] = updated
        return updated

    def dependents_of_bundle(self, bundle_id: str) -> DeletionImpact:
        with self._lock:
            joins = [
                j
                for j in self._joins.values()
                if bundle_id in (j.left_bundle_id, j.right_bundle_id)
            ]
            join_ids = {j.id for j in joins}
            vbundles = [
                v for v in self._virtual_bundles.values() if join_ids & set(v.source_join_ids)
            ]
        return DeletionImpact(joins=joins, virtual_bundles=vbundles)

    def delete_bundle(self, bundle_id: str, cascade: bool = False) -> DeletionImpact:
        """
        Remove a bundle.

        Args:
            bundle_id: Bundle to remove
            cascade: Also remove the joins using it and the virtual bundles
                derived from those joins

        Returns:
            The dependents found (removed when ``cascade`` is True).

        Raises:
            BundleNotFoundError: If the bundle does not exist.
        """
        with self._lock:
            bundle = self.get_bundle(bundle_id)
            impact = self.dependents_of_bundle(bundle_id)
            del self._bundles[bundle_id]

            if cascade:
                for join in impact.joins:
                    self._joins.pop(join.id, None)
                    self.join_cache.invalidate(join.id)
                for vbundle in impact.virtual_bundles:
                    self._virtual_bundles.pop(vbundle.id, None)
                if not impact.is_empty:
                    logger.info("Deleted bundle %s with %s", bundle_id, impact.describe())

        if not cascade and not impact.is_empty:
            warnings.warn(
                f"Bundle '{bundle.name}' was deleted but is still referenced by {impact.describe()}",
                SemexploreWarning,
                stacklevel=2,
            )
        return impact

    def reload_bundle(self, bundle_id: str, source: DataSource) -> ReloadResult:
        """
        Replace a bundle's source with freshly parsed data.

        Mappings whose column vanished are dropped; required roles of the
        bundle's schema left without a mapping are reported.
        """
        with self._lock:
            bundle = self.get_bundle(bundle_id)
            available = set(source.columns)
            kept = [m for m in bundle.mappings if m.source_column in available]
            dropped = [m for m in bundle.mappings if m.source_column not in available]

            schema = self._schemas.get(bundle.schema_id)
            unmapped = [r.id for r in missing_required_roles(schema, kept)] if schema else []

            updated = self.update_bundle(bundle_id, source=source, mappings=tuple(kept))

        if dropped:
            warnings.warn(
                f"Reloading '{bundle.name}' dropped mappings for missing columns: "
                f"{', '.join(m.source_column for m in dropped)}",
                SemexploreWarning,
                stacklevel=2,
            )
        return ReloadResult(bundle=updated, dropped_mappings=dropped, unmapped_required_roles=unmapped)

    def view(self, bundle_id: str, config=None) -> Any:
        """Run the transform for the bundle's schema type."""
        bundle = self.get_bundle(bundle_id)
        return transform_bundle(bundle, self.get_schema(bundle.schema_id), config)

    # === JOINS ===

    def add_join(self, join: JoinDefinition) -> JoinDefinition:
        with self._lock:
            self._joins[join.id] = join
        return join

    def get_join(self, join_id: str) -> JoinDefinition:
        with self._lock:
            try:
                return self._joins[join_id]
            except KeyError:
                raise BundleNotFoundError("Join", join_id) from None

    def list_joins(self) -> List[JoinDefinition]:
        with self._lock:
            return list(self._joins.values())

    def update_join(self, join_id: str, **changes: Any) -> JoinDefinition:
        with self._lock:
            updated = replace(self.get_join(join_id), updated_at=now_iso(), **changes)
            self._joins[join_id] = updated
            self.join_cache.invalidate(join_id)
        return updated

    def delete_join(self, join_id: str, cascade: bool = False) -> DeletionImpact:
        """Remove a join; dependent virtual bundles are reported, or removed with ``cascade``."""
        with self._lock:
            join = self.get_join(join_id)
            vbundles = [v for v in self._virtual_bundles.values() if join_id in v.source_join_ids]
            del self._joins[join_id]
            self.join_cache.invalidate(join_id)
            if cascade:
                for vbundle in vbundles:
                    del self._virtual_bundles[vbundle.id]

        impact = DeletionImpact(virtual_bundles=vbundles)
        if not cascade and not impact.is_empty:
            warnings.warn(
                f"Join '{join.name}' was deleted but is still referenced by {impact.describe()}",
                SemexploreWarning,
                stacklevel=2,
            )
        return impact

    def create_join(
        self,
        name: str,
        left_bundle_id: str,
        right_bundle_id: str,
        conditions: Sequence[JoinCondition],
        join_type: JoinType = JoinType.INNER,
        description: Optional[str] = None,
    ) -> tuple[JoinDefinition, VirtualBundle]:
        """
        Save a join together with the virtual bundle it defines.

        The virtual bundle is named ``"<left> + <right>"`` and uses the left
        bundle's schema.

        Raises:
            JoinError: If the join does not validate against its bundles.
        """
        with self._lock:
            left = self._bundles.get(left_bundle_id)
            right = self._bundles.get(right_bundle_id)
            join = JoinDefinition(
                id=generate_id(),
                name=name,
                description=description,
                left_bundle_id=left_bundle_id,
                right_bundle_id=right_bundle_id,
                join_type=join_type,
                conditions=tuple(conditions),
            )
            validate_join(left, right, join).raise_if_failed()

            vbundle = VirtualBundle(
                id=generate_id(),
                name=f"{left.name} + {right.name}",
                description=description,
                schema_id=left.schema_id,
                source_join_ids=(join.id,),
            )
            self._joins[join.id] = join
            self._virtual_bundles[vbundle.id] = vbundle
        return join, vbundle

    # === VIRTUAL BUNDLES ===

    def add_virtual_bundle(self, virtual_bundle: VirtualBundle) -> VirtualBundle:
        with self._lock:
            self._virtual_bundles[virtual_bundle.id] = virtual_bundle
        return virtual_bundle

    def get_virtual_bundle(self, virtual_bundle_id: str) -> VirtualBundle:
        with self._lock:
            try:
                return self._virtual_bundles[virtual_bundle_id]
            except KeyError:
                raise BundleNotFoundError("Virtual bundle", virtual_bundle_id) from None

    def list_virtual_bundles(self) -> List[VirtualBundle]:
        with self._lock:
            return list(self._virtual_bundles.values())

    def materialize(self, virtual_bundle_id: str) -> JoinResult:
        """Rows of a virtual bundle, computed from the current source bundles."""
        with self._lock:
            vbundle = self.get_virtual_bundle(virtual_bundle_id)
            bundles = dict(self._bundles)
            joins = dict(self._joins)
        return materialize_virtual_bundle(vbundle, bundles, joins, cache=self.join_cache)

    # === LINEAGE ===

    def build_lineage(self) -> LineageGraph:
        with self._lock:
            return LineageGraph.build(
                bundles=list(self._bundles.values()),
                joins=list(self._joins.values()),
                virtual_bundles=list(self._virtual_bundles.values()),
                schemas=list(self._schemas.values()),
            )

    # === IMPORT / EXPORT ===

    def export_config(self, indent: int = 2) -> str:
        """Schemas and bundles as JSON; bundle row data is left out."""
        with self._lock:
            payload = {
                "schemas": [s.to_dict() for s in self._schemas.values()],
                "bundles": [b.to_dict(include_data=False) for b in self._bundles.values()],
            }
        return json.dumps(payload, indent=indent)

    def import_config(self, text: str) -> List[SemanticSchema]:
        """
        Replace the stored schemas with those of an exported config.

        Bundles in the config carry no rows and are not imported; they must
        be uploaded again.

        Raises:
            SemexploreError: If the text is not valid JSON or a schema is malformed.
        """
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise SemexploreError(f"Failed to import config: {e}") from e
        if not isinstance(payload, dict):
            raise SemexploreError("Failed to import config: expected a JSON object")

        if "schemas" not in payload:
            return []
        try:
            schemas = [SemanticSchema.from_dict(s) for s in payload["schemas"]]
        except (KeyError, TypeError, ValueError) as e:
            raise SemexploreError(f"Failed to import config: invalid schema ({e})") from e

        with self._lock:
            self._schemas = {s.id: s for s in schemas}
        return schemas
