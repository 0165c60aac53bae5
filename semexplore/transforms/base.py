# semexplore/transforms/base.py
"""
Shared helpers for the view transforms.

Every transform resolves roles to columns through ``resolve`` / ``resolve_all``
and reads cells through ``cell_text`` / ``cell_number``, so the coercion
rules and the mapping's text transform are applied the same way everywhere.
"""

import logging
import math
from typing import Optional, Sequence

from ..core import ColumnMapping, Row
from ..utils.value_capture import apply_transform, to_number, to_text

logger = logging.getLogger(__name__)


def resolve(mappings: Sequence[ColumnMapping], role_id: str) -> Optional[ColumnMapping]:
    """First mapping for a single-valued role."""
    for m in mappings:
        if m.role_id == role_id:
            return m
    return None


def resolve_all(mappings: Sequence[ColumnMapping], role_id: str) -> list[ColumnMapping]:
    """Every mapping for a multi-valued role, in mapping order."""
    return [m for m in mappings if m.role_id == role_id]


def has_roles(mappings: Sequence[ColumnMapping], *role_ids: str) -> bool:
    present = {m.role_id for m in mappings}
    missing = [r for r in role_ids if r not in present]
    if missing:
        logger.debug("Required roles not mapped: %s", ", ".join(missing))
        return False
    return True


def cell_text(row: Row, mapping: Optional[ColumnMapping], default: str = "") -> str:
    """
    String form of a mapped cell. A missing column or a null cell yields
    ``default``; the mapping's text transform is applied to real values.
    """
    if mapping is None:
        return default
    value = row.get(mapping.source_column)
    if value is None:
        return default
    return apply_transform(to_text(value), mapping.transform)


def cell_number(row: Row, mapping: Optional[ColumnMapping], default: float = 0.0) -> float:
    """Numeric form of a mapped cell; null or missing cells yield ``default``."""
    if mapping is None:
        return default
    return to_number(row.get(mapping.source_column), default=default)


def is_nan(value: float) -> bool:
    return isinstance(value, float) and math.isnan(value)


def link_forest(nodes: dict, parent_of: dict[str, Optional[str]], kind: str) -> tuple[list, dict]:
    """
    Link nodes into a forest following ``parent_of``.

    Nodes whose parent is empty or unknown become roots. A link that would
    close a cycle (the parent is already below the node, or is the node
    itself) is refused and the node is promoted to a root instead, so the
    second node visited on a cycle ends up as a root.

    Args:
        nodes: id -> node object exposing a ``children`` list, in row order
        parent_of: id -> declared parent id
        kind: Label used in log messages

    Returns:
        (roots, linked) where ``linked`` maps child id -> parent id for every
        link that was made.
    """
    roots = []
    linked: dict[str, str] = {}

    for node_id, node in nodes.items():
        parent_id = parent_of.get(node_id)
        if not parent_id or parent_id not in nodes:
            roots.append(node)
            continue

        ancestor: Optional[str] = parent_id
        closes_cycle = False
        while ancestor is not None:
            if ancestor == node_id:
                closes_cycle = True
                break
            ancestor = linked.get(ancestor)

        if closes_cycle:
            logger.warning(
                "%s cycle detected: '%s' -> '%s'; promoting '%s' to root",
                kind,
                node_id,
                parent_id,
                node_id,
            )
            roots.append(node)
            continue

        linked[node_id] = parent_id
        nodes[parent_id].children.append(node)

    return roots, linked
