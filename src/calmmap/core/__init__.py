"""
Graph construction and search over road segments.
"""

from .adjacency import AdjacencyBuilder
from .path_finder import find_path
from .normalize import strip_quotes

__all__ = [
    "AdjacencyBuilder",
    "find_path",
    "strip_quotes",
]
