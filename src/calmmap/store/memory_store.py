"""
In-memory segment store.
"""

import logging
from typing import Dict, List, Optional

from calmmap.core.adjacency import AdjacencyBuilder, links_to_mapping
from calmmap.errors import DataInconsistencyError
from calmmap.models import Request, Segment, SegmentFilter, SegmentLink
from calmmap.store.base import SegmentStore

logger = logging.getLogger(__name__)


class InMemorySegmentStore(SegmentStore):
    """Segments held in a dict keyed by id, links held per route."""

    def __init__(self, builder: Optional[AdjacencyBuilder] = None):
        """Initialize store.

        Args:
            builder: Adjacency builder used on load (default settings if omitted)
        """
        self.builder = builder or AdjacencyBuilder()
        self._segments: Dict[int, Segment] = {}
        self._links: List[SegmentLink] = []
        self._requests: List[Request] = []

    def requests(self) -> List[Request]:
        return sorted(self._requests, key=lambda r: r.rank)

    def filter_segments(self, segment_filter: SegmentFilter) -> List[Segment]:
        return [
            seg for seg_id, seg in sorted(self._segments.items())
            if segment_filter.matches(seg)
        ]

    def route_links(self, route_id: int) -> Dict[int, List[int]]:
        return links_to_mapping(link for link in self._links if link.route_id == route_id)

    def load_segments(
        self,
        segments: List[Segment],
        requests: Optional[List[Request]] = None,
        replace: bool = False,
    ) -> None:
        """Add segments, building links for their routes.

        Nothing is stored if validation or link construction fails. Segments
        for a route already in the store are rejected unless replace is set,
        which swaps out all segments, links and requests at once.

        Raises:
            DataInconsistencyError: On duplicate ids, reloaded routes or
                unknown direction pairs
        """
        existing = {} if replace else self._segments

        by_id: Dict[int, Segment] = {}
        for seg in segments:
            if seg.id in by_id or seg.id in existing:
                raise DataInconsistencyError(f"duplicate segment id {seg.id}")
            by_id[seg.id] = seg

        known_routes = {seg.route_id for seg in existing.values()}
        reloaded = sorted({seg.route_id for seg in segments} & known_routes)
        if reloaded:
            raise DataInconsistencyError(f"routes already loaded: {reloaded}")

        links = self.builder.build(segments)

        if replace:
            self._segments, self._links, self._requests = {}, [], []
        self._segments.update(by_id)
        self._links.extend(links)
        if requests:
            self._requests.extend(requests)

        logger.info(f"Loaded {len(by_id)} segments and {len(links)} links")

    def load_requests(self, requests: List[Request]) -> None:
        self._requests.extend(requests)
