# semexplore/transforms/geographic.py
"""
Geographic transform: location rows -> lat/lon points.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..core import ColumnMapping, DataSource, ExplorerConfig
from .base import cell_number, cell_text, has_roles, resolve

logger = logging.getLogger(__name__)


@dataclass
class GeoPoint:
    id: str
    name: str
    lat: float
    lon: float
    region: str = "Unknown"
    category: str = "Standard"
    value: float = 0.0
    address: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "lat": self.lat,
            "lon": self.lon,
            "region": self.region,
            "category": self.category,
            "value": self.value,
            "address": self.address,
        }


@dataclass
class GeoBounds:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float


@dataclass
class GeoData:
    points: List[GeoPoint] = field(default_factory=list)
    regions: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.points

    def bounds(self, padding: float = 0.0) -> Optional[GeoBounds]:
        """Bounding box of all points, widened by ``padding`` x the span on each side."""
        if not self.points:
            return None
        lats = [p.lat for p in self.points]
        lons = [p.lon for p in self.points]
        lat_pad = (max(lats) - min(lats)) * padding
        lon_pad = (max(lons) - min(lons)) * padding
        return GeoBounds(
            min_lat=min(lats) - lat_pad,
            max_lat=max(lats) + lat_pad,
            min_lon=min(lons) - lon_pad,
            max_lon=max(lons) + lon_pad,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"points": [p.to_dict() for p in self.points], "regions": list(self.regions)}


def _valid_coordinate(lat: float, lon: float) -> bool:
    if math.isnan(lat) or math.isnan(lon):
        return False
    # 0 means "not provided" for both axes
    if lat == 0 or lon == 0:
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


def transform_to_geographic(
    source: DataSource,
    mappings: Sequence[ColumnMapping],
    config: Optional[ExplorerConfig] = None,
) -> GeoData:
    """
    Build points from ``location_name`` / ``latitude`` / ``longitude`` roles.

    Rows with an empty name, a zero or unparsable coordinate, or a coordinate
    outside the valid range are skipped.
    """
    if not has_roles(mappings, "location_name", "latitude", "longitude"):
        return GeoData()

    name_map = resolve(mappings, "location_name")
    lat_map = resolve(mappings, "latitude")
    lon_map = resolve(mappings, "longitude")
    id_map = resolve(mappings, "location_id")
    region_map = resolve(mappings, "region")
    category_map = resolve(mappings, "category")
    value_map = resolve(mappings, "metric_value")
    address_map = resolve(mappings, "address")

    points: List[GeoPoint] = []
    regions: Dict[str, None] = {}
    skipped = 0

    for row in source.parsed_data:
        name = cell_text(row, name_map)
        lat = cell_number(row, lat_map)
        lon = cell_number(row, lon_map)
        if not name or not _valid_coordinate(lat, lon):
            skipped += 1
            continue

        region = cell_text(row, region_map, default="Unknown") if region_map else "Unknown"
        value = cell_number(row, value_map) if value_map else 0.0
        location_id = cell_text(row, id_map) if id_map else ""

        points.append(
            GeoPoint(
                id=location_id or f"{name}-{lat:g}-{lon:g}",
                name=name,
                lat=lat,
                lon=lon,
                region=region,
                category=cell_text(row, category_map, default="Standard") if category_map else "Standard",
                value=0.0 if math.isnan(value) else value,
                address=cell_text(row, address_map),
            )
        )
        regions.setdefault(region, None)

    if skipped:
        logger.debug("Geographic: skipped %d rows without name or valid coordinates", skipped)

    return GeoData(points=points, regions=list(regions))
