"""
GeoJSON exporter for resolved request routes.

Writes one feature per route segment so web maps and GIS tools can style
and filter by request rank or district.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Tuple

import geopandas as gpd

from calmmap.models import Request
from calmmap.pipeline import RequestResult

logger = logging.getLogger(__name__)


class GeoJSONExporter:
    """Export resolved routes as a GeoJSON FeatureCollection."""

    def __init__(self, crs: str = "EPSG:4326"):
        """Initialize GeoJSON exporter.

        Args:
            crs: Coordinate reference system of the segment geometry
        """
        self.crs = crs

    def to_geodataframe(self, resolved: Iterable[Tuple[Request, RequestResult]]) -> gpd.GeoDataFrame:
        """Flatten resolved requests into one row per route segment."""
        rows = []
        for request, result in resolved:
            for position, seg in enumerate(result.route_segments):
                rows.append({
                    "rank": request.rank,
                    "request": str(request),
                    "district": request.district,
                    "position": position,
                    "segment_id": seg.id,
                    "route_id": seg.route_id,
                    "name": seg.name,
                    "from_street": seg.from_street,
                    "to_street": seg.to_street,
                    "direction": seg.direction.value,
                    "geometry": seg.line_string,
                })

        if not rows:
            return gpd.GeoDataFrame(geometry=[], crs=self.crs)
        return gpd.GeoDataFrame(rows, geometry="geometry", crs=self.crs)

    def to_feature_collection(self, resolved: Iterable[Tuple[Request, RequestResult]]) -> Dict[str, Any]:
        gdf = self.to_geodataframe(resolved)
        return json.loads(gdf.to_json())

    def export(self, resolved: Iterable[Tuple[Request, RequestResult]], output_path: Path) -> Path:
        """Write the FeatureCollection to output_path.

        Returns:
            Path to created GeoJSON file
        """
        collection = self.to_feature_collection(resolved)

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump(collection, f, indent=2)

        logger.info(f"Exported {len(collection['features'])} segment features to {output_path}")
        return output_path
