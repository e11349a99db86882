"""
Request handler and batch pipeline.

The RequestHandler runs one request through start, end and route
discovery in order, stopping at the first stage that fails or finds
nothing. The Pipeline runs a batch of requests, isolating failures so one
bad request never stops the others.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple

from calmmap.errors import SegmentsNotFoundError
from calmmap.models import Request, Segment
from calmmap.overrides import OverrideSource
from calmmap.stages import (
    EndDiscoveryStage,
    ProcessingRequest,
    RouteDiscoveryStage,
    StageStatistics,
    StartDiscoveryStage,
)
from calmmap.store.base import SegmentStore

logger = logging.getLogger(__name__)

NO_START = "no start segments found"
NO_END = "no end segments found"
NO_ROUTE = "no route segments found"


@dataclass
class RequestResult:
    """Resolved segments for a request."""
    start_segments: List[Segment]
    end_segments: List[Segment]
    route_segments: List[Segment]


@dataclass
class RequestAttempt:
    """Per-stage outcome of resolving a request, including failures."""
    request: Request
    start_segments: List[Segment] = field(default_factory=list)
    start_error: Optional[Exception] = None
    end_segments: List[Segment] = field(default_factory=list)
    end_error: Optional[Exception] = None
    route_segments: List[Segment] = field(default_factory=list)
    route_error: Optional[Exception] = None

    @property
    def first_error(self) -> Optional[Exception]:
        for error in (self.start_error, self.end_error, self.route_error):
            if error is not None:
                return error
        return None

    @property
    def succeeded(self) -> bool:
        return self.first_error is None

    def to_result(self) -> RequestResult:
        return RequestResult(
            start_segments=self.start_segments,
            end_segments=self.end_segments,
            route_segments=self.route_segments,
        )


class RequestHandler:
    """Runs a request through start, end and route discovery."""

    def __init__(
        self,
        store: SegmentStore,
        override_source: Optional[OverrideSource] = None,
    ):
        """Initialize handler with the default stages.

        Args:
            store: Segment store to query
            override_source: Manual override lookup shared by all stages
        """
        self.store = store
        self.start_stage = StartDiscoveryStage(store, override_source)
        self.end_stage = EndDiscoveryStage(store, override_source)
        self.route_stage = RouteDiscoveryStage(store, override_source)

    @property
    def stages(self):
        return [self.start_stage, self.end_stage, self.route_stage]

    def handle_attempt(self, request: Request) -> RequestAttempt:
        """Resolve a request, recording each stage's segments or error.

        Later stages are not run once a stage fails or finds nothing; they
        are marked failed with the reason instead.
        """
        att = RequestAttempt(request=request)
        preq = ProcessingRequest(request=request)

        start = self.start_stage.run_single(preq)
        att.start_segments = start.segments
        if not start.segments:
            att.start_error = start.error or SegmentsNotFoundError(NO_START)
            att.end_error = SegmentsNotFoundError(NO_START)
            att.route_error = SegmentsNotFoundError(NO_START)
            return att
        preq.start_segments = start.segments

        end = self.end_stage.run_single(preq)
        att.end_segments = end.segments
        if not end.segments:
            att.end_error = end.error or SegmentsNotFoundError(NO_END)
            att.route_error = SegmentsNotFoundError(NO_END)
            return att
        preq.end_segments = end.segments

        route = self.route_stage.run_single(preq)
        att.route_segments = route.segments
        if route.error is not None:
            att.route_error = route.error
        elif not route.segments:
            att.route_error = SegmentsNotFoundError(NO_ROUTE)
        return att

    def handle(self, request: Request) -> RequestResult:
        """Resolve a request.

        Raises:
            Exception: The first stage error, in stage order
        """
        att = self.handle_attempt(request)
        if att.first_error is not None:
            raise att.first_error
        return att.to_result()


@dataclass
class PipelineResult:
    """Result of resolving a batch of requests."""
    pipeline_id: str
    total_requests: int
    total_succeeded: int
    total_failed: int
    total_time_ms: int
    attempts: List[RequestAttempt] = field(default_factory=list)
    stage_statistics: List[StageStatistics] = field(default_factory=list)
    start_time: str = ""
    end_time: str = ""

    def resolved(self) -> Iterator[Tuple[Request, RequestResult]]:
        """Yield (request, result) for every request that resolved."""
        for att in self.attempts:
            if att.succeeded:
                yield att.request, att.to_result()

    def failures(self) -> List[RequestAttempt]:
        return [att for att in self.attempts if not att.succeeded]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "pipeline_id": self.pipeline_id,
            "total_requests": self.total_requests,
            "total_succeeded": self.total_succeeded,
            "total_failed": self.total_failed,
            "total_time_ms": self.total_time_ms,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "stages": [stage.to_dict() for stage in self.stage_statistics],
            "failures": [
                {"rank": att.request.rank, "request": str(att.request), "error": str(att.first_error)}
                for att in self.failures()
            ],
        }


class Pipeline:
    """Resolves a batch of requests with a RequestHandler."""

    def __init__(self, handler: RequestHandler, name: str = "calmmap"):
        self.handler = handler
        self.name = name

    def run(self, requests: List[Request], pipeline_id: Optional[str] = None) -> PipelineResult:
        """Resolve every request, logging failures and continuing.

        Args:
            requests: Requests to resolve
            pipeline_id: Optional run ID (generated if not provided)

        Returns:
            PipelineResult with per-request attempts and stage statistics
        """
        if pipeline_id is None:
            pipeline_id = f"pipeline_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

        for stage in self.handler.stages:
            stage.reset_statistics()

        start_time = time.time()
        start_time_str = datetime.now().isoformat()
        logger.info(f"Starting {self.name} run {pipeline_id} with {len(requests)} requests")

        attempts = []
        for request in requests:
            att = self.handler.handle_attempt(request)
            if not att.succeeded:
                logger.warning(f"{request} error: {att.first_error}")
            attempts.append(att)

        succeeded = sum(1 for att in attempts if att.succeeded)
        result = PipelineResult(
            pipeline_id=pipeline_id,
            total_requests=len(attempts),
            total_succeeded=succeeded,
            total_failed=len(attempts) - succeeded,
            total_time_ms=int((time.time() - start_time) * 1000),
            attempts=attempts,
            stage_statistics=[stage.get_statistics() for stage in self.handler.stages],
            start_time=start_time_str,
            end_time=datetime.now().isoformat(),
        )

        logger.info(
            f"Finished {pipeline_id}: {result.total_succeeded} resolved, {result.total_failed} failed"
        )
        return result
