"""
Shared fixtures for calmmap tests.

Test geometry lies on the prime meridian; point k is (0, k * 0.001), about
111 m from its neighbours, so consecutive segments share exact endpoints
and nothing else is within the default 1 m threshold.
"""

import pytest

from calmmap.models import Segment
from calmmap.store import InMemorySegmentStore, SqliteSegmentStore


def pt(k: float):
    return (0.0, k * 0.001)


def make_segment(
    seg_id,
    from_street,
    to_street,
    start,
    end,
    route_id=1,
    name="TEST LN",
    direction="BOTH",
):
    """Segment running from point `start` to point `end`."""
    return Segment(
        id=seg_id,
        name=name,
        from_street=from_street,
        to_street=to_street,
        route_id=route_id,
        direction=direction,
        coordinates=[pt(start), pt(end)],
    )


@pytest.fixture
def chain():
    """Five bidirectional segments A-B-C-D-E-F on route 1."""
    return {
        "s1": make_segment(1, "A ST", "B ST", 0, 1),
        "s2": make_segment(2, "B ST", "C ST", 1, 2),
        "s3": make_segment(3, "C ST", "D ST", 2, 3),
        "s4": make_segment(4, "D ST", "E ST", 3, 4),
        "s5": make_segment(5, "E ST", "F ST", 4, 5),
    }


@pytest.fixture
def irrelevant():
    """Segment on another route, far from the test chain."""
    return Segment(
        id=10,
        name="IRRELEVANT PL",
        from_street="A ST",
        to_street="B ST",
        route_id=2,
        coordinates=[(1.0, 0.0), (1.0, 0.001)],
    )


@pytest.fixture(params=["memory", "sqlite"])
def make_store(request, tmp_path):
    """Factory building a loaded store of each kind."""
    def _make(segments, requests=None):
        if request.param == "memory":
            store = InMemorySegmentStore()
        else:
            store = SqliteSegmentStore(tmp_path / "segments.db")
        store.load_segments(list(segments), requests=requests)
        return store
    return _make


@pytest.fixture
def seg():
    """Factory for segments on the test meridian."""
    return make_segment


KML_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<kml xmlns="http://www.opengis.net/kml/2.2">
<Document>
<Folder>
{placemarks}
</Folder>
</Document>
</kml>
"""

PLACEMARK_TEMPLATE = """<Placemark>
  <ExtendedData><SchemaData schemaUrl="#centreline">
    <SimpleData name="FDMID">{id}</SimpleData>
    <SimpleData name="ROUTE_ID">{route_id}</SimpleData>
    <SimpleData name="STR_NAME">TEST</SimpleData>
    <SimpleData name="STR_TYPE">LN</SimpleData>
    <SimpleData name="ST_CLASS">Local</SimpleData>
    <SimpleData name="FULL_NAME">{name}</SimpleData>
    <SimpleData name="FROM_STR">{from_street}</SimpleData>
    <SimpleData name="TO_STR">{to_street}</SimpleData>
    <SimpleData name="STR_DIR">{direction}</SimpleData>
  </SchemaData></ExtendedData>
  <MultiGeometry><LineString><coordinates>{coordinates}</coordinates></LineString></MultiGeometry>
</Placemark>"""


def placemark(seg_id, from_street, to_street, start, end, route_id=1, name="TEST LN", direction="BOTH"):
    coordinates = " ".join(f"{x},{y},0" for x, y in (pt(start), pt(end)))
    return PLACEMARK_TEMPLATE.format(
        id=seg_id,
        route_id=route_id,
        name=name,
        from_street=from_street,
        to_street=to_street,
        direction=direction,
        coordinates=coordinates,
    )


def kml_document(*placemarks):
    return KML_TEMPLATE.format(placemarks="\n".join(placemarks))


@pytest.fixture
def centerline_kml(tmp_path):
    """Centreline KML with the A-E test chain on route 1."""
    path = tmp_path / "street_centrelines.kml"
    path.write_text(kml_document(
        placemark(1, "A ST", "B ST", 0, 1),
        placemark(2, "B ST", "C ST", 1, 2),
        placemark(3, "C ST", "D ST", 2, 3),
        placemark(4, "D ST", "E ST", 3, 4),
    ))
    return path


@pytest.fixture
def requests_tsv(tmp_path):
    """Ranked requests covering a from/to, a whole street and an unknown street."""
    path = tmp_path / "requests.tsv"
    path.write_text(
        "Rank\tStreet Name\tLimit From\tLimit To\tDistrict\n"
        "1\tTest Ln\tA St\tD St\tWard 1\n"
        "2\tTest Ln\tAll\t\tWard 1\n"
        "3\tNowhere Rd\tA St\tEnd\tWard 2\n"
    )
    return path
