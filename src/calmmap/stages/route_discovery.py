"""
Route discovery: connect start and end candidates into an ordered path.
"""

from typing import List, Optional

from calmmap.models import Segment, SegmentFilter
from calmmap.overrides import OverrideSource
from calmmap.stages.base_stage import BaseStage, ProcessingRequest
from calmmap.store.base import SegmentStore


class RouteDiscoveryStage(BaseStage):
    """Find the sequence of segments a request covers."""

    def __init__(self, store: SegmentStore, override_source: Optional[OverrideSource] = None):
        super().__init__(stage_name="route", store=store, override_source=override_source)

    def discover(self, preq: ProcessingRequest) -> List[Segment]:
        """Resolve the route for a request.

        Whole-street requests return every segment on the route. Otherwise
        the path from the start candidates to the end candidates is found,
        trimmed to a single leading start segment, and, for "to the end" or
        "from X to X" requests, replaced by the longest path to any end
        candidate.

        Raises:
            NoPathError: If the start and end candidates are not connected
        """
        req = preq.request
        start = preq.start_segments
        end = preq.end_segments

        if req.whole_street:
            return self.store.filter_segments(SegmentFilter(route_ids=[start[0].route_id]))

        route = self.store.find_path(start, end)

        if req.from_street:
            route = trim_start(route, start)

        if not req.to_street or req.to_street == req.from_street:
            route = self.longest_path(route, end)

        return route

    def longest_path(self, route: List[Segment], end: List[Segment]) -> List[Segment]:
        """Return the longest path from route[0] to any end candidate.

        Only route[0] seeds the search even when there were several start
        candidates. The given route is kept unless a strictly longer one
        exists.

        Raises:
            NoPathError: If any end candidate cannot be reached from route[0]
        """
        longest = route
        for candidate in end:
            path = self.store.find_path([route[0]], [candidate])
            if len(path) > len(longest):
                longest = path
        return longest


def trim_start(route: List[Segment], start: List[Segment]) -> List[Segment]:
    """Drop leading segments while the next one is also a start candidate.

    Keeps at least two segments.
    """
    start_ids = {seg.id for seg in start}
    while len(route) > 2 and route[1].id in start_ids:
        route = route[1:]
    return route
