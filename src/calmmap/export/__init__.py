"""
Export module for resolved requests and route graphs.

Provides exporters for:
- KML (Google Earth / My Maps, coloured by rank)
- GeoJSON (web maps, general GIS)
- Graphviz dot (route adjacency debugging)
"""

from .kml_exporter import KMLExporter
from .geojson_exporter import GeoJSONExporter
from .dot_exporter import route_to_dot

__all__ = [
    "KMLExporter",
    "GeoJSONExporter",
    "route_to_dot",
]
