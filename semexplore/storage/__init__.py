"""Repositories for schemas, bundles, joins and virtual bundles."""

from .base import BundleRepository
from .memory import DeletionImpact, InMemoryRepository, ReloadResult

__all__ = [
    "BundleRepository",
    "InMemoryRepository",
    "DeletionImpact",
    "ReloadResult",
]
