# semexplore/errors.py
"""
Exceptions and warnings raised by semexplore.

Transforms never raise for data or mapping problems; only configuration
errors in the join engine and lookups in the repository do.
"""
from __future__ import annotations


class SemexploreWarning(UserWarning):
    """Warning for non-fatal issues (dangling dependents, stale mappings)."""

    pass


class SemexploreError(Exception):
    """Base class for semexplore errors."""

    pass


class JoinError(SemexploreError):
    """Raised when a join cannot be executed as configured."""

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = list(errors or [])
        if self.errors:
            message = f"{message}: {'; '.join(self.errors)}"
        super().__init__(message)


class BundleNotFoundError(SemexploreError, KeyError):
    """Raised when a repository lookup references an unknown id."""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")

    def __str__(self) -> str:
        return self.args[0]


class SchemaValidationError(SemexploreError):
    """Raised by strict schema validation."""

    def __init__(self, schema_id: str, problems: list[str]):
        self.schema_id = schema_id
        self.problems = problems
        super().__init__(f"Schema '{schema_id}' is invalid: {'; '.join(problems)}")
