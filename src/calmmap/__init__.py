"""
calmmap - resolve street calming requests to road centreline segments.

Builds a directed segment graph from street centreline geometry and
resolves "street from X to Y" requests into the segments they cover.
"""

__version__ = "0.1.0"
