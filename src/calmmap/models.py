"""
Pydantic models for segments, requests and segment queries.
"""

import json
from enum import Enum
from typing import Any, List, NamedTuple, Tuple

from pydantic import BaseModel, Field, field_validator
from shapely.geometry import LineString, Point, mapping, shape


Coordinate = Tuple[float, float]


class Direction(str, Enum):
    """Directionality class of a segment."""
    BOTH = "BOTH"  # travel allowed both ways
    FOTD = "FOTD"  # first point to last point only
    FDTO = "FDTO"  # last point to first point only


class Segment(BaseModel):
    """A piece of a named street between two cross streets on one route."""

    # Identification
    id: int
    name: str = ""
    from_street: str = ""
    to_street: str = ""
    route_id: int
    direction: Direction = Direction.BOTH

    # Geometry as (x, y) pairs, in source order
    coordinates: List[Coordinate]

    # Classification, carried through from source data
    street_name: str = ""
    street_type: str = ""
    street_class: str = ""

    class Config:
        """Pydantic config."""
        frozen = True

    @field_validator("coordinates")
    @classmethod
    def _require_points(cls, value: List[Coordinate]) -> List[Coordinate]:
        if not value:
            raise ValueError("segment geometry needs at least one point")
        return value

    @property
    def first_point(self) -> Coordinate:
        return self.coordinates[0]

    @property
    def last_point(self) -> Coordinate:
        return self.coordinates[-1]

    @property
    def line_string(self) -> LineString:
        """Geometry as a shapely LineString (a single point is doubled)."""
        coords = self.coordinates if len(self.coordinates) > 1 else self.coordinates * 2
        return LineString(coords)

    def __str__(self) -> str:
        return f"{self.id} {self.name} from {self.from_street} to {self.to_street}"

    def to_db_params(self) -> Tuple[Any, ...]:
        """Column values in `segments` table order."""
        return (
            self.id,
            self.street_name,
            self.street_type,
            self.street_class,
            self.name,
            self.from_street,
            self.to_street,
            self.route_id,
            self.direction.value,
            json.dumps(mapping(self.line_string)),
            json.dumps(mapping(Point(self.first_point))),
            json.dumps(mapping(Point(self.last_point))),
        )

    @classmethod
    def from_db_row(cls, row: Any) -> "Segment":
        """Create Segment from database row.

        The stored line string is authoritative; first/last points are
        stored for inspection only and always derive from it.

        Args:
            row: sqlite3.Row object

        Returns:
            Segment instance
        """
        geometry = shape(json.loads(row["line_string"]))
        coordinates = [(x, y) for x, y, *_ in geometry.coords]
        if len(coordinates) == 2 and coordinates[0] == coordinates[1]:
            coordinates = coordinates[:1]

        return cls(
            id=row["id"],
            name=row["full_name"],
            from_street=row["from_str"],
            to_street=row["to_str"],
            route_id=row["route_id"],
            direction=Direction(row["direction"]),
            coordinates=coordinates,
            street_name=row["str_name"] or "",
            street_type=row["str_type"] or "",
            street_class=row["st_class"] or "",
        )


class Request(BaseModel):
    """A ranked street work request to resolve into segments."""

    street_name: str
    from_street: str = ""
    to_street: str = ""
    district: str = ""
    rank: int = 0

    @field_validator("from_street", "to_street", "district", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def whole_street(self) -> bool:
        return not self.from_street and not self.to_street

    def __str__(self) -> str:
        out = f"{self.rank} {self.street_name} "
        if self.whole_street:
            return out + "(all)"
        out += f"from {self.from_street}"
        if self.to_street:
            out += f" to {self.to_street}"
        return out


class SegmentFilter(BaseModel):
    """Query parameters for segment lookups.

    Dimensions are combined with AND; values within a dimension with OR.
    An empty dimension does not constrain the result.
    """

    ids: List[int] = Field(default_factory=list)
    full_names: List[str] = Field(default_factory=list)
    route_ids: List[int] = Field(default_factory=list)
    end_streets: List[str] = Field(default_factory=list)

    def matches(self, segment: Segment) -> bool:
        """Check a segment against the filter in memory."""
        if self.ids and segment.id not in self.ids:
            return False
        if self.full_names and segment.name.upper() not in {n.upper() for n in self.full_names}:
            return False
        if self.route_ids and segment.route_id not in self.route_ids:
            return False
        if self.end_streets:
            ends = {segment.from_street.upper(), segment.to_street.upper()}
            if not any(street.upper() in ends for street in self.end_streets):
                return False
        return True


class SegmentLink(NamedTuple):
    """Directed adjacency edge: a path may continue from segment_id to next_id."""
    segment_id: int
    route_id: int
    next_id: int
