# semexplore/transforms/timeline.py
"""
Timeline transform: event rows -> events sorted by start date.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from ..core import ColumnMapping, DataSource, ExplorerConfig
from ..utils.value_capture import parse_date
from .base import cell_text, has_roles, resolve

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 24 * 60 * 60


@dataclass
class TimelineEvent:
    id: str
    name: str
    start: datetime
    end: datetime
    category: str = "Uncategorized"
    status: str = "unknown"
    description: str = ""
    duration: int = 0  # whole days, rounded up

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "category": self.category,
            "status": self.status,
            "description": self.description,
            "duration": self.duration,
        }


@dataclass
class TimelineData:
    events: List[TimelineEvent] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.events

    def span(self) -> Optional[tuple[datetime, datetime]]:
        if not self.events:
            return None
        return min(e.start for e in self.events), max(e.end for e in self.events)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "events": [e.to_dict() for e in self.events],
            "categories": list(self.categories),
        }


def _epoch_ms(value: datetime) -> int:
    return int(round((value - datetime(1970, 1, 1)).total_seconds() * 1000))


def transform_to_timeline(
    source: DataSource,
    mappings: Sequence[ColumnMapping],
    config: Optional[ExplorerConfig] = None,
) -> TimelineData:
    """
    Build timeline events from ``event_name`` / ``start_date`` roles.

    Rows with an empty name or an unparsable start date are skipped. An
    unmapped or unparsable end date makes a point event (end == start).
    Events are sorted by start; ties keep row order.
    """
    if not has_roles(mappings, "event_name", "start_date"):
        return TimelineData()

    name_map = resolve(mappings, "event_name")
    start_map = resolve(mappings, "start_date")
    end_map = resolve(mappings, "end_date")
    id_map = resolve(mappings, "event_id")
    category_map = resolve(mappings, "category")
    status_map = resolve(mappings, "status")
    description_map = resolve(mappings, "description")

    events: List[TimelineEvent] = []
    categories: Dict[str, None] = {}
    skipped = 0

    for row in source.parsed_data:
        name = cell_text(row, name_map)
        start = parse_date(row.get(start_map.source_column))
        if not name or start is None:
            skipped += 1
            continue

        end = parse_date(row.get(end_map.source_column)) if end_map else None
        if end is None:
            end = start

        category = cell_text(row, category_map, default="Uncategorized") if category_map else "Uncategorized"
        duration = math.ceil((end - start).total_seconds() / _SECONDS_PER_DAY)
        event_id = cell_text(row, id_map) if id_map else ""

        events.append(
            TimelineEvent(
                id=event_id or f"{name}-{_epoch_ms(start)}",
                name=name,
                start=start,
                end=end,
                category=category,
                status=cell_text(row, status_map, default="unknown") if status_map else "unknown",
                description=cell_text(row, description_map),
                duration=duration,
            )
        )
        categories.setdefault(category, None)

    if skipped:
        logger.debug("Timeline: skipped %d rows without name or valid start date", skipped)

    events.sort(key=lambda e: e.start)
    return TimelineData(events=events, categories=list(categories))
