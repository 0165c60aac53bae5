# semexplore/storage/base.py
"""
Protocol definitions for semexplore repositories.

The core functions take bundles, joins and schemas as explicit arguments.
A repository is the state holder a UI layer injects on top of them; the
in-memory implementation is the reference one.

To add a new backend (browser storage bridge, SQLite, ...), implement
BundleRepository.
"""

from typing import Optional, Protocol, Sequence, runtime_checkable

from ..core import (
    DataBundle,
    DataSource,
    JoinCondition,
    JoinDefinition,
    JoinType,
    SemanticSchema,
    VirtualBundle,
)


@runtime_checkable
class BundleRepository(Protocol):
    """
    Protocol for entity storage.

    Implementations:
    - InMemoryRepository (default)
    """

    def add_schema(self, schema: SemanticSchema) -> SemanticSchema:
        """Store a schema, replacing any schema with the same id."""
        ...

    def get_schema(self, schema_id: str) -> SemanticSchema:
        """Raises BundleNotFoundError for unknown ids."""
        ...

    def list_schemas(self) -> list[SemanticSchema]:
        ...

    def add_bundle(self, bundle: DataBundle) -> DataBundle:
        ...

    def get_bundle(self, bundle_id: str) -> DataBundle:
        """Raises BundleNotFoundError for unknown ids."""
        ...

    def list_bundles(self) -> list[DataBundle]:
        ...

    def update_bundle(self, bundle_id: str, **changes) -> DataBundle:
        """Return the new bundle; the stored object is replaced, never mutated."""
        ...

    def delete_bundle(self, bundle_id: str, cascade: bool = False):
        """Remove a bundle. Returns the DeletionImpact on joins and virtual bundles."""
        ...

    def reload_bundle(self, bundle_id: str, source: DataSource):
        """Swap in a new source. Returns a ReloadResult."""
        ...

    def add_join(self, join: JoinDefinition) -> JoinDefinition:
        ...

    def get_join(self, join_id: str) -> JoinDefinition:
        ...

    def list_joins(self) -> list[JoinDefinition]:
        ...

    def delete_join(self, join_id: str, cascade: bool = False):
        ...

    def create_join(
        self,
        name: str,
        left_bundle_id: str,
        right_bundle_id: str,
        conditions: Sequence[JoinCondition],
        join_type: JoinType = JoinType.INNER,
        description: Optional[str] = None,
    ) -> tuple[JoinDefinition, VirtualBundle]:
        ...

    def add_virtual_bundle(self, virtual_bundle: VirtualBundle) -> VirtualBundle:
        ...

    def get_virtual_bundle(self, virtual_bundle_id: str) -> VirtualBundle:
        ...

    def list_virtual_bundles(self) -> list[VirtualBundle]:
        ...
