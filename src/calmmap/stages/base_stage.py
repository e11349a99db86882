"""
Base class for discovery stages.

Provides the common interface for resolving one part of a request,
applying a manual override when one exists, and tracking statistics.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from calmmap.errors import OverrideError
from calmmap.models import Request, Segment
from calmmap.overrides import OverrideSource, no_overrides
from calmmap.store.base import SegmentStore

logger = logging.getLogger(__name__)


@dataclass
class ProcessingRequest:
    """A request plus the results of the stages run so far."""
    request: Request
    start_segments: List[Segment] = field(default_factory=list)
    end_segments: List[Segment] = field(default_factory=list)


@dataclass
class StageResult:
    """Result of running a single request through a stage."""
    stage_name: str
    rank: int
    segments: List[Segment] = field(default_factory=list)
    error: Optional[Exception] = None
    overridden: bool = False
    processing_time_ms: int = 0

    @property
    def success(self) -> bool:
        return self.error is None and bool(self.segments)


@dataclass
class StageStatistics:
    """Statistics for a stage run."""
    stage_name: str
    total_requests: int = 0
    succeeded: int = 0
    empty: int = 0
    failed: int = 0
    overridden: int = 0
    total_time_ms: int = 0

    def add_result(self, result: StageResult) -> None:
        """Add a result to statistics."""
        self.total_requests += 1
        self.total_time_ms += result.processing_time_ms

        if result.overridden:
            self.overridden += 1
        if result.error is not None:
            self.failed += 1
        elif result.segments:
            self.succeeded += 1
        else:
            self.empty += 1

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "stage_name": self.stage_name,
            "total_requests": self.total_requests,
            "succeeded": self.succeeded,
            "empty": self.empty,
            "failed": self.failed,
            "overridden": self.overridden,
            "avg_time_ms": self.total_time_ms / self.total_requests if self.total_requests > 0 else 0,
            "total_time_ms": self.total_time_ms,
        }


class BaseStage(ABC):
    """Abstract base class for discovery stages."""

    def __init__(
        self,
        stage_name: str,
        store: SegmentStore,
        override_source: Optional[OverrideSource] = None,
    ):
        """Initialize stage.

        Args:
            stage_name: Stage name, also the override key (start/end/route)
            store: Segment store to query
            override_source: Lookup for manual overrides (none if omitted)
        """
        self.stage_name = stage_name
        self.store = store
        self.override_source = override_source or no_overrides

        self.stats = StageStatistics(stage_name=stage_name)

    @abstractmethod
    def discover(self, preq: ProcessingRequest) -> List[Segment]:
        """Resolve this stage's segments for a request.

        Args:
            preq: Request with the segments found by earlier stages

        Returns:
            Discovered segments (may be empty)

        Raises:
            DiscoveryError: If the request cannot be resolved
        """

    def override(self, preq: ProcessingRequest) -> Optional[List[Segment]]:
        """Return overridden segments in override order, or None.

        Raises:
            OverrideError: If the override names unknown segment ids
        """
        ids = self.override_source(preq.request.rank, self.stage_name)
        if ids is None:
            return None

        segments = self.store.segments_by_ids(ids)
        if len(segments) != len(ids):
            known = {seg.id for seg in segments}
            missing = [i for i in ids if i not in known]
            raise OverrideError(
                f"{self.stage_name} override for rank {preq.request.rank} "
                f"references unknown segments: {missing}"
            )

        logger.info(f"Using {self.stage_name} override for request {preq.request}")
        return segments

    def run_single(self, preq: ProcessingRequest) -> StageResult:
        """Run stage on a single request, capturing any error.

        Args:
            preq: Processing request

        Returns:
            StageResult
        """
        start_time = time.time()
        result = StageResult(stage_name=self.stage_name, rank=preq.request.rank)

        try:
            segments = self.override(preq)
            if segments is not None:
                result.overridden = True
            else:
                segments = self.discover(preq)
            result.segments = segments
        except Exception as e:
            logger.debug(f"{self.stage_name} discovery failed for {preq.request}: {e}")
            result.error = e

        result.processing_time_ms = int((time.time() - start_time) * 1000)
        self.stats.add_result(result)
        return result

    def get_statistics(self) -> StageStatistics:
        return self.stats

    def reset_statistics(self) -> None:
        """Reset statistics."""
        self.stats = StageStatistics(stage_name=self.stage_name)
