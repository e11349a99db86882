"""
Exception hierarchy for loading and request resolution.

DataInconsistencyError and its subclasses abort a whole load.
DiscoveryError and its subclasses fail a single request only.
"""


class CalmmapError(Exception):
    """Base class for all calmmap errors."""


class DataInconsistencyError(CalmmapError):
    """Source data cannot be loaded as-is."""


class UnknownDirectionPairError(DataInconsistencyError):
    """Two segments on one route have a direction pairing with no rule."""


class MalformedGeometryError(DataInconsistencyError):
    """A segment has empty or unparseable geometry or attributes."""


class DiscoveryError(CalmmapError):
    """A request could not be resolved."""


class AmbiguousStreetError(DiscoveryError):
    """Start segments span more than one route."""


class SegmentsNotFoundError(DiscoveryError):
    """A stage found no segments."""


class NoPathError(DiscoveryError):
    """No path connects the start and end candidates."""


class OverrideError(DiscoveryError):
    """An override exists but cannot be used."""
