"""
Breadth-first path search over an id-keyed segment graph.
"""

from collections import deque
from typing import Collection, Dict, Iterable, List, Optional

from calmmap.errors import NoPathError


def find_path(
    links: Dict[int, List[int]],
    start_id: int,
    end_ids: Collection[int],
    nodes: Optional[Iterable[int]] = None,
) -> List[int]:
    """Find the path with the fewest hops from start_id to any of end_ids.

    Paths never revisit a segment already on them. The first path to reach
    an end id in breadth-first order wins, so ties are broken by link order.

    Args:
        links: Segment id -> ordered list of next segment ids
        start_id: Seed segment id
        end_ids: Acceptable final segment ids
        nodes: All segment ids in the graph; when given, every end id must
            be one of them

    Returns:
        Segment ids from start to end, inclusive

    Raises:
        NoPathError: If an end id is outside the graph or none is reachable
    """
    end_ids = set(end_ids)

    if nodes is not None:
        graph_nodes = set(nodes) | {start_id}
        missing = sorted(end_ids - graph_nodes)
        if missing:
            raise NoPathError(f"to segment {missing[0]} not found in route graph")

    queue = deque([[start_id]])
    while queue:
        path = queue.popleft()
        last = path[-1]

        if last in end_ids:
            return path

        for next_id in links.get(last, []):
            if next_id in path:
                continue
            queue.append(path + [next_id])

    raise NoPathError("could not find path")
