"""
Adjacency construction between segments of the same route.

Two segments are linked when their endpoints coincide within a small
distance threshold. Which endpoints are compared depends on the direction
classes of both segments, so one-way segments only chain in their
direction of travel.
"""

import logging
from typing import Callable, Dict, Iterable, List

from calmmap.core.geometry import Coordinate, get_distance_metric
from calmmap.errors import DataInconsistencyError, UnknownDirectionPairError
from calmmap.models import Direction, Segment, SegmentLink

logger = logging.getLogger(__name__)

BOTH = Direction.BOTH
FOTD = Direction.FOTD
FDTO = Direction.FDTO


class AdjacencyBuilder:
    """Builds directed links between segments sharing a route id."""

    def __init__(self, threshold: float = 1.0, metric: str = "geodesic"):
        """Initialize builder.

        Args:
            threshold: Endpoints closer than this are treated as one point
            metric: Distance metric name ("geodesic" metres or "planar")
        """
        self.threshold = threshold
        self.metric = metric
        self._distance: Callable[[Coordinate, Coordinate], float] = get_distance_metric(metric)

    def is_close(self, a: Coordinate, b: Coordinate) -> bool:
        return self._distance(a, b) < self.threshold

    def connects(self, cur: Segment, nxt: Segment) -> bool:
        """Decide whether a path may continue from cur into nxt.

        Raises:
            UnknownDirectionPairError: If the direction pair has no rule
        """
        close = self.is_close
        pair = (cur.direction, nxt.direction)

        if pair == (BOTH, BOTH):
            return (
                close(cur.first_point, nxt.first_point)
                or close(cur.first_point, nxt.last_point)
                or close(cur.last_point, nxt.first_point)
                or close(cur.last_point, nxt.last_point)
            )
        if pair == (BOTH, FOTD):
            return close(nxt.first_point, cur.first_point) or close(nxt.first_point, cur.last_point)
        if pair == (FOTD, FOTD):
            return close(nxt.first_point, cur.last_point)
        if pair == (FOTD, BOTH):
            return close(cur.last_point, nxt.first_point) or close(cur.last_point, nxt.last_point)
        if pair in ((BOTH, FDTO), (FDTO, BOTH)):
            return False

        raise UnknownDirectionPairError(
            f"unknown direction pair: {cur.direction.value} and {nxt.direction.value}, {cur} / {nxt}"
        )

    def build_route(self, segments: List[Segment]) -> List[SegmentLink]:
        """Compute links among the segments of a single route.

        Args:
            segments: All segments of one route

        Returns:
            Links ordered by source segment, then by target segment

        Raises:
            DataInconsistencyError: If segments span several routes or a
                direction pair has no rule
        """
        route_ids = {seg.route_id for seg in segments}
        if len(route_ids) > 1:
            raise DataInconsistencyError(
                f"build_route given segments from {len(route_ids)} routes: {sorted(route_ids)}"
            )

        links = []
        for cur in segments:
            for nxt in segments:
                if cur.id == nxt.id:
                    continue
                if self.connects(cur, nxt):
                    links.append(SegmentLink(cur.id, cur.route_id, nxt.id))
        return links

    def build(self, segments: Iterable[Segment]) -> List[SegmentLink]:
        """Compute links for every route present in segments.

        Routes are processed in the order their first segment appears.

        Args:
            segments: Segments from any number of routes

        Returns:
            All links, grouped by route
        """
        routes = group_by_route(segments)

        links: List[SegmentLink] = []
        for route_id, route_segments in routes.items():
            route_links = self.build_route(route_segments)
            logger.debug(
                f"Route {route_id}: {len(route_segments)} segments, {len(route_links)} links"
            )
            links.extend(route_links)

        logger.info(f"Built {len(links)} links across {len(routes)} routes")
        return links


def group_by_route(segments: Iterable[Segment]) -> Dict[int, List[Segment]]:
    """Group segments by route id, keeping first-seen route order."""
    routes: Dict[int, List[Segment]] = {}
    for seg in segments:
        routes.setdefault(seg.route_id, []).append(seg)
    return routes


def links_to_mapping(links: Iterable[SegmentLink]) -> Dict[int, List[int]]:
    """Convert links into segment id -> ordered list of next ids."""
    mapping: Dict[int, List[int]] = {}
    for link in links:
        mapping.setdefault(link.segment_id, []).append(link.next_id)
    return mapping
