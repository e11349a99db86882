"""
Distance functions for endpoint proximity matching.
"""

from math import atan2, cos, radians, sin, sqrt
from typing import Callable, Dict, Tuple

from shapely.geometry import Point

# Matches the spherical Earth radius used by the source tooling (metres)
EARTH_RADIUS_M = 6378137.0

Coordinate = Tuple[float, float]


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in metres between two (lon, lat) points."""
    lon1, lat1, lon2, lat2 = map(radians, [a[0], a[1], b[0], b[1]])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return EARTH_RADIUS_M * 2 * atan2(sqrt(h), sqrt(1 - h))


def planar_distance(a: Coordinate, b: Coordinate) -> float:
    """Euclidean distance in the geometry's native units."""
    return Point(a).distance(Point(b))


DISTANCE_METRICS: Dict[str, Callable[[Coordinate, Coordinate], float]] = {
    "geodesic": haversine_distance,
    "planar": planar_distance,
}


def get_distance_metric(name: str) -> Callable[[Coordinate, Coordinate], float]:
    """Look up a distance function by name.

    Raises:
        ValueError: If the metric is unknown
    """
    try:
        return DISTANCE_METRICS[name]
    except KeyError:
        raise ValueError(
            f"Unknown distance metric: {name} (expected one of {sorted(DISTANCE_METRICS)})"
        ) from None
