"""
Graphviz dot output of a route's segment graph.
"""

import json
from typing import List

from calmmap.models import SegmentFilter
from calmmap.store.base import SegmentStore


def _quote(text: str) -> str:
    return json.dumps(text)


def route_to_dot(store: SegmentStore, route_id: int) -> str:
    """Render one route's segments and links as a dot digraph.

    Nodes are labelled "<from> to <to>"; the graph is labelled with the
    street name.

    Raises:
        ValueError: If the route has no segments
    """
    segments = store.filter_segments(SegmentFilter(route_ids=[route_id]))
    if not segments:
        raise ValueError(f"no segments found for route {route_id}")

    links = store.route_links(route_id)

    lines: List[str] = ["digraph {", f"  label={_quote(segments[0].name)}"]
    for seg in segments:
        lines.append(f"  n{seg.id} [label={_quote(f'{seg.from_street} to {seg.to_street}')}];")
    for seg_id, next_ids in links.items():
        for next_id in next_ids:
            lines.append(f"  n{seg_id} -> n{next_id};")
    lines.append("}")
    return "\n".join(lines) + "\n"
