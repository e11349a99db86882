"""
KML map export for resolved requests.

Each resolved request becomes a Placemark holding its route segments as a
MultiGeometry. Requests are coloured by rank, from the first gradient stop
(highest priority) to the last.
"""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from calmmap.models import Request
from calmmap.pipeline import RequestResult

logger = logging.getLogger(__name__)

KML_NS = "http://www.opengis.net/kml/2.2"

DEFAULT_COLOR_STOPS = ("#aa0026", "#ff8c00", "#8d8d8d")
DEFAULT_COLOR_COUNT = 20
DEFAULT_LINE_WIDTH = 4


def q(tag: str) -> str:
    return f"{{{KML_NS}}}{tag}"


def _hex_to_rgb(color: str) -> Tuple[int, int, int]:
    color = color.lstrip("#")
    if len(color) != 6:
        raise ValueError(f"expected #rrggbb colour, got {color!r}")
    return int(color[0:2], 16), int(color[2:4], 16), int(color[4:6], 16)


def gradient(stops: Sequence[str], count: int) -> List[Tuple[int, int, int]]:
    """Evenly sample count RGB colours along a piecewise-linear gradient.

    Args:
        stops: At least two #rrggbb colours, evenly spaced
        count: Number of colours to return

    Returns:
        RGB tuples from the first stop to the last
    """
    if len(stops) < 2:
        raise ValueError("gradient needs at least two colour stops")
    if count < 1:
        raise ValueError("gradient needs a positive colour count")

    rgb = [_hex_to_rgb(s) for s in stops]
    segments = len(rgb) - 1
    colors = []
    for i in range(count):
        t = i / (count - 1) if count > 1 else 0.0
        pos = min(t * segments, segments - 1e-9)
        idx = int(pos)
        frac = pos - idx
        a, b = rgb[idx], rgb[idx + 1]
        colors.append(tuple(round(a[c] + (b[c] - a[c]) * frac) for c in range(3)))
    return colors


def kml_color(rgb: Tuple[int, int, int], alpha: int = 255) -> str:
    """KML colours are aabbggrr."""
    r, g, b = rgb
    return f"{alpha:02x}{b:02x}{g:02x}{r:02x}"


def color_group(rank: int, total_requests: int, color_count: int) -> int:
    """Map a request rank onto a colour index, capped at the last colour."""
    per_group = max(1, total_requests // color_count)
    return min(rank // per_group, color_count - 1)


class KMLExporter:
    """Export resolved request routes as a KML document."""

    def __init__(
        self,
        color_stops: Sequence[str] = DEFAULT_COLOR_STOPS,
        color_count: int = DEFAULT_COLOR_COUNT,
        line_width: int = DEFAULT_LINE_WIDTH,
        title: str = "Calming Requests, ranked and coloured by rank",
    ):
        self.colors = gradient(color_stops, color_count)
        self.line_width = line_width
        self.title = title

    def build(self, resolved: Iterable[Tuple[Request, RequestResult]], total_requests: int) -> ET.Element:
        """Build the KML element tree.

        Args:
            resolved: (request, result) pairs to draw
            total_requests: Size of the full request list, used for colour groups

        Returns:
            Root <kml> element
        """
        ET.register_namespace("", KML_NS)

        root = ET.Element(q("kml"))
        doc = ET.SubElement(root, q("Document"))

        for i, rgb in enumerate(self.colors):
            style = ET.SubElement(doc, q("Style"), id=f"line-group-{i}")
            line_style = ET.SubElement(style, q("LineStyle"))
            ET.SubElement(line_style, q("color")).text = kml_color(rgb)
            ET.SubElement(line_style, q("width")).text = str(self.line_width)

        folder = ET.SubElement(doc, q("Folder"))
        ET.SubElement(folder, q("name")).text = self.title

        count = 0
        for request, result in resolved:
            group = color_group(request.rank, total_requests, len(self.colors))

            placemark = ET.SubElement(folder, q("Placemark"))
            ET.SubElement(placemark, q("name")).text = str(request)
            ET.SubElement(placemark, q("styleUrl")).text = f"#line-group-{group}"
            multi = ET.SubElement(placemark, q("MultiGeometry"))
            for seg in result.route_segments:
                line = ET.SubElement(multi, q("LineString"))
                ET.SubElement(line, q("coordinates")).text = " ".join(
                    f"{x},{y}" for x, y in seg.coordinates
                )
            count += 1

        logger.info(f"Built KML with {count} request placemarks")
        return root

    def export(
        self,
        resolved: Iterable[Tuple[Request, RequestResult]],
        total_requests: int,
        output_path: Path,
    ) -> Path:
        """Write the KML document to output_path."""
        root = self.build(resolved, total_requests)
        tree = ET.ElementTree(root)
        ET.indent(tree, space="  ")

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        tree.write(output_path, encoding="utf-8", xml_declaration=True)
        return output_path
