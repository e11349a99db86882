"""
Readers for centreline geometry and request source files.
"""

from .kml_loader import load_kml_segments
from .request_loader import load_requests_tsv

__all__ = [
    "load_kml_segments",
    "load_requests_tsv",
]
