"""
Street centreline KML reader.

Each Placemark carries its attributes as ExtendedData/SchemaData/SimpleData
fields and its geometry as a MultiGeometry LineString.
"""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import IO, Dict, List, Union

from pydantic import ValidationError

from calmmap.errors import MalformedGeometryError
from calmmap.models import Segment

logger = logging.getLogger(__name__)


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _find(elem: ET.Element, name: str):
    for child in elem.iter():
        if _local(child.tag) == name:
            return child
    return None


def placemark_data(placemark: ET.Element) -> Dict[str, str]:
    """Collect SimpleData name -> text for a placemark."""
    data = {}
    for elem in placemark.iter():
        if _local(elem.tag) == "SimpleData":
            data[elem.get("name")] = (elem.text or "").strip()
    return data


def parse_coordinates(text: str) -> List[tuple]:
    """Parse KML coordinate tuples "lon,lat[,alt] ..." into (lon, lat) pairs.

    Raises:
        MalformedGeometryError: If a tuple is not numeric
    """
    points = []
    for field in text.split():
        parts = field.split(",")
        try:
            points.append((float(parts[0]), float(parts[1])))
        except (IndexError, ValueError):
            raise MalformedGeometryError(f"invalid coordinate {field!r}") from None
    return points


def placemark_to_segment(placemark: ET.Element) -> Segment:
    """Build a Segment from a centreline placemark.

    Raises:
        MalformedGeometryError: If ids or geometry are missing or invalid
    """
    data = placemark_data(placemark)

    coords_elem = None
    line_string = _find(placemark, "LineString")
    if line_string is not None:
        coords_elem = _find(line_string, "coordinates")
    coordinates = parse_coordinates(coords_elem.text or "") if coords_elem is not None else []

    try:
        return Segment(
            id=int(data["FDMID"]),
            route_id=int(data["ROUTE_ID"]),
            name=data.get("FULL_NAME", ""),
            from_street=data.get("FROM_STR", ""),
            to_street=data.get("TO_STR", ""),
            direction=data.get("STR_DIR", ""),
            coordinates=coordinates,
            street_name=data.get("STR_NAME", ""),
            street_type=data.get("STR_TYPE", ""),
            street_class=data.get("ST_CLASS", ""),
        )
    except (KeyError, ValueError, ValidationError) as e:
        raise MalformedGeometryError(
            f"invalid centreline placemark {data.get('FDMID', '?')}: {e}"
        ) from e


def load_kml_segments(source: Union[str, Path, IO]) -> List[Segment]:
    """Read all centreline segments from a KML file.

    Args:
        source: Path or open file with KML content

    Returns:
        Segments in document order

    Raises:
        MalformedGeometryError: If any placemark is invalid
    """
    tree = ET.parse(source)
    placemarks = [elem for elem in tree.getroot().iter() if _local(elem.tag) == "Placemark"]

    segments = [placemark_to_segment(p) for p in placemarks]
    logger.info(f"Loaded {len(segments)} segments from centreline KML")
    return segments
