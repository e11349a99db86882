"""
Start discovery: find the segments where a request begins.
"""

from typing import List, Optional

from calmmap.core.normalize import strip_quotes
from calmmap.errors import AmbiguousStreetError
from calmmap.models import Segment, SegmentFilter
from calmmap.overrides import OverrideSource
from calmmap.stages.base_stage import BaseStage, ProcessingRequest
from calmmap.store.base import SegmentStore


class StartDiscoveryStage(BaseStage):
    """Match the street name, and the from street when given."""

    def __init__(self, store: SegmentStore, override_source: Optional[OverrideSource] = None):
        super().__init__(stage_name="start", store=store, override_source=override_source)

    def discover(self, preq: ProcessingRequest) -> List[Segment]:
        """Find segments of the named street touching the from street.

        Several segments can match, e.g. where the street meets the same
        cross street more than once. Without a from street every segment
        of the street matches.

        Raises:
            AmbiguousStreetError: If matches span more than one route
        """
        req = preq.request
        segment_filter = SegmentFilter(full_names=[strip_quotes(req.street_name)])
        if req.from_street:
            segment_filter.end_streets = [strip_quotes(req.from_street)]

        segments = self.store.filter_segments(segment_filter)

        route_ids = {seg.route_id for seg in segments}
        if len(route_ids) > 1:
            raise AmbiguousStreetError(
                f"discovered segments with {len(route_ids)} different route IDs"
            )

        return segments
