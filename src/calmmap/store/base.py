"""
Abstract segment store.

Discovery only needs four operations: requests, filter_segments,
route_links and find_path. find_path is implemented here on top of the
other two so every store searches routes the same way.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from calmmap.core.path_finder import find_path
from calmmap.models import Request, Segment, SegmentFilter


class SegmentStore(ABC):
    """Read access to segments, their adjacency, and requests."""

    @abstractmethod
    def requests(self) -> List[Request]:
        """Return all requests ordered by rank."""

    @abstractmethod
    def filter_segments(self, segment_filter: SegmentFilter) -> List[Segment]:
        """Return segments matching the filter, ordered by id."""

    @abstractmethod
    def route_links(self, route_id: int) -> Dict[int, List[int]]:
        """Return segment id -> ordered next segment ids for a route."""

    @abstractmethod
    def load_segments(
        self,
        segments: List[Segment],
        requests: Optional[List[Request]] = None,
        replace: bool = False,
    ) -> None:
        """Store segments and their adjacency (and optionally requests) atomically.

        With replace, existing contents are cleared as part of the same load.
        """

    @abstractmethod
    def load_requests(self, requests: List[Request]) -> None:
        """Store requests."""

    def find_path(self, from_segments: List[Segment], to_segments: List[Segment]) -> List[Segment]:
        """Find a path from the first of from_segments to any of to_segments.

        Only the route of the first from segment is searched, seeded from
        that segment alone.

        Args:
            from_segments: Start candidates; only the first seeds the search
            to_segments: End candidates; all must be on the same route

        Returns:
            Segments in path order

        Raises:
            ValueError: If either list is empty
            NoPathError: If an end candidate is off-route or unreachable
        """
        if not from_segments or not to_segments:
            raise ValueError("empty from_segments or empty to_segments")

        seed = from_segments[0]
        nodes = [seg.id for seg in self.filter_segments(SegmentFilter(route_ids=[seed.route_id]))]
        links = self.route_links(seed.route_id)

        path = find_path(links, seed.id, [seg.id for seg in to_segments], nodes=nodes)
        return self.segments_by_ids(path)

    def segments_by_ids(self, ids: List[int]) -> List[Segment]:
        """Look up segments by id, returned in the order of ids.

        Unknown ids are dropped.
        """
        if not ids:
            return []
        found = {seg.id: seg for seg in self.filter_segments(SegmentFilter(ids=list(ids)))}
        return [found[i] for i in ids if i in found]
