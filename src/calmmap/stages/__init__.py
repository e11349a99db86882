"""
Discovery stages.

Each stage implements the BaseStage abstract class and resolves one part
of a request:

- StartDiscoveryStage: segments of the street touching the from street
- EndDiscoveryStage: segments of the same route touching the to street
- RouteDiscoveryStage: the ordered path between start and end
"""

from .base_stage import BaseStage, ProcessingRequest, StageResult, StageStatistics
from .start_discovery import StartDiscoveryStage
from .end_discovery import EndDiscoveryStage
from .route_discovery import RouteDiscoveryStage

__all__ = [
    "BaseStage",
    "ProcessingRequest",
    "StageResult",
    "StageStatistics",
    "StartDiscoveryStage",
    "EndDiscoveryStage",
    "RouteDiscoveryStage",
]
