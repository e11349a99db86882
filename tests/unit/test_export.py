"""
Unit tests for KML, GeoJSON and dot export, and the review report.
"""

import json
import xml.etree.ElementTree as ET

import geopandas as gpd
import pytest

from calmmap.export import GeoJSONExporter, KMLExporter, route_to_dot
from calmmap.export.kml_exporter import color_group, gradient, kml_color, q
from calmmap.models import Request
from calmmap.pipeline import Pipeline, RequestHandler
from calmmap.review import render_attempt, render_report


@pytest.fixture
def pipeline_result(make_store, chain):
    store = make_store(chain.values())
    requests = [
        Request(street_name="Test Ln", from_street="A St", to_street="D St", district="Ward 1", rank=0),
        Request(street_name="Nowhere Rd", rank=1),
        Request(street_name="Test Ln", from_street="C St", district="Ward 2", rank=2),
    ]
    return Pipeline(RequestHandler(store)).run(requests)


class TestColors:

    def test_gradient_endpoints(self):
        colors = gradient(["#aa0026", "#ff8c00", "#8d8d8d"], 20)
        assert len(colors) == 20
        assert colors[0] == (0xaa, 0x00, 0x26)
        assert colors[-1] == (0x8d, 0x8d, 0x8d)

    def test_gradient_midpoint(self):
        assert gradient(["#000000", "#ffffff"], 3)[1] == (128, 128, 128)

    def test_gradient_single_colour(self):
        assert gradient(["#102030", "#ffffff"], 1) == [(0x10, 0x20, 0x30)]

    def test_gradient_rejects_bad_input(self):
        with pytest.raises(ValueError):
            gradient(["#aa0026"], 5)
        with pytest.raises(ValueError):
            gradient(["#aa0026", "#fff"], 5)

    def test_kml_color_is_abgr(self):
        assert kml_color((0xaa, 0x00, 0x26)) == "ff2600aa"

    def test_color_group(self):
        assert color_group(0, 100, 20) == 0
        assert color_group(7, 100, 20) == 1
        assert color_group(99, 100, 20) == 19
        assert color_group(150, 100, 20) == 19

    def test_color_group_few_requests(self):
        assert color_group(3, 5, 20) == 3


class TestKMLExporter:

    def test_build(self, pipeline_result):
        root = KMLExporter(color_count=4).build(pipeline_result.resolved(), total_requests=3)

        styles = root.findall(f".//{q('Style')}")
        assert [style.get("id") for style in styles] == [f"line-group-{i}" for i in range(4)]

        placemarks = root.findall(f".//{q('Placemark')}")
        assert [p.find(q("name")).text for p in placemarks] == [
            "0 Test Ln from A St to D St",
            "2 Test Ln from C St",
        ]
        assert placemarks[0].find(q("styleUrl")).text == "#line-group-0"
        assert placemarks[1].find(q("styleUrl")).text == "#line-group-2"

        lines = placemarks[0].findall(f".//{q('LineString')}")
        assert len(lines) == 3
        assert lines[0].find(q("coordinates")).text == "0.0,0.0 0.0,0.001"

    def test_export_writes_file(self, pipeline_result, tmp_path):
        output = KMLExporter().export(pipeline_result.resolved(), 3, tmp_path / "out" / "requests.kml")
        root = ET.parse(output).getroot()
        assert root.tag == q("kml")
        assert root.find(f".//{q('width')}").text == "4"


class TestGeoJSONExporter:

    def test_one_feature_per_segment(self, pipeline_result):
        collection = GeoJSONExporter().to_feature_collection(pipeline_result.resolved())

        assert collection["type"] == "FeatureCollection"
        features = collection["features"]
        assert len(features) == 3 + 4
        first = features[0]["properties"]
        assert first["rank"] == 0
        assert first["position"] == 0
        assert first["segment_id"] == 1
        assert first["district"] == "Ward 1"
        assert features[0]["geometry"]["type"] == "LineString"

    def test_empty(self):
        gdf = GeoJSONExporter().to_geodataframe([])
        assert isinstance(gdf, gpd.GeoDataFrame)
        assert len(gdf) == 0

    def test_export(self, pipeline_result, tmp_path):
        output = GeoJSONExporter().export(pipeline_result.resolved(), tmp_path / "requests.geojson")
        with open(output) as f:
            data = json.load(f)
        assert {feat["properties"]["rank"] for feat in data["features"]} == {0, 2}


class TestRouteToDot:

    def test_route_graph(self, make_store, chain):
        store = make_store([chain["s1"], chain["s2"]])
        dot = route_to_dot(store, 1)
        assert dot.startswith("digraph {\n")
        assert '  label="TEST LN"' in dot
        assert '  n1 [label="A ST to B ST"];' in dot
        assert "  n1 -> n2;" in dot
        assert "  n2 -> n1;" in dot
        assert dot.endswith("}\n")

    def test_unknown_route(self, make_store, chain):
        store = make_store([chain["s1"]])
        with pytest.raises(ValueError, match="no segments found for route 9"):
            route_to_dot(store, 9)


class TestReview:

    def test_resolved_attempt(self, pipeline_result):
        text = render_attempt(pipeline_result.attempts[0])
        assert text.splitlines() == [
            "0 Test Ln from A St to D St",
            "  start:",
            "    1 TEST LN from A ST to B ST",
            "  end:",
            "    3 TEST LN from C ST to D ST",
            "    4 TEST LN from D ST to E ST",
            "  route:",
            "    1 TEST LN from A ST to B ST",
            "    2 TEST LN from B ST to C ST",
            "    3 TEST LN from C ST to D ST",
        ]

    def test_failed_attempt_stops_at_first_error(self, pipeline_result):
        text = render_attempt(pipeline_result.attempts[1])
        assert text.splitlines() == [
            "1 Nowhere Rd (all)",
            "  start:",
            "    Error: no start segments found",
        ]

    def test_report_failures_only(self, pipeline_result):
        report = render_report(pipeline_result.attempts, failures_only=True)
        assert report == "1 Nowhere Rd (all)\n  start:\n    Error: no start segments found\n"

    def test_empty_report(self):
        assert render_report([]) == ""
