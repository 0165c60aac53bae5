"""
Export modules for lineage data.
"""
from .json_export import (
    LineageExporter,
    export_to_cognee,
    export_to_json,
)

__all__ = ["export_to_json", "export_to_cognee", "LineageExporter"]
