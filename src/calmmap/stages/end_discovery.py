"""
End discovery: find the segments where a request ends.
"""

from typing import List, Optional

from calmmap.core.normalize import strip_quotes
from calmmap.models import Segment, SegmentFilter
from calmmap.overrides import OverrideSource
from calmmap.stages.base_stage import BaseStage, ProcessingRequest
from calmmap.store.base import SegmentStore


class EndDiscoveryStage(BaseStage):
    """Match the to street on the start segments' route."""

    def __init__(self, store: SegmentStore, override_source: Optional[OverrideSource] = None):
        super().__init__(stage_name="end", store=store, override_source=override_source)

    def discover(self, preq: ProcessingRequest) -> List[Segment]:
        """Find end candidates on the route of the first start segment.

        Without a to street every segment on the route is a candidate.
        An empty result is valid: the to street may not cross this route.
        """
        req = preq.request
        segment_filter = SegmentFilter(route_ids=[preq.start_segments[0].route_id])
        if req.to_street:
            segment_filter.end_streets = [strip_quotes(req.to_street)]

        return self.store.filter_segments(segment_filter)
