"""
Unit tests for the request handler and batch pipeline.
"""

import pytest

from calmmap.errors import AmbiguousStreetError, NoPathError, OverrideError, SegmentsNotFoundError
from calmmap.models import Request
from calmmap.overrides import MappingOverrideSource
from calmmap.pipeline import NO_END, NO_START, Pipeline, RequestHandler


def ids(segments):
    return [seg.id for seg in segments]


@pytest.fixture
def store(make_store, chain):
    return make_store(chain.values())


class TestRequestHandler:

    def test_from_to(self, store):
        result = RequestHandler(store).handle(
            Request(street_name="Test Ln", from_street="A St", to_street="E St", rank=1)
        )
        assert ids(result.start_segments) == [1]
        assert ids(result.end_segments) == [4]
        assert ids(result.route_segments) == [1, 2, 3, 4]

    def test_to_the_end(self, store):
        result = RequestHandler(store).handle(Request(street_name="Test Ln", from_street="A St"))
        assert ids(result.end_segments) == [1, 2, 3, 4, 5]
        assert ids(result.route_segments) == [1, 2, 3, 4, 5]

    def test_whole_street(self, store):
        result = RequestHandler(store).handle(Request(street_name="TEST LN"))
        assert ids(result.route_segments) == [1, 2, 3, 4, 5]

    def test_no_start_propagates(self, store):
        handler = RequestHandler(store)
        att = handler.handle_attempt(Request(street_name="Nowhere Rd", from_street="A St"))

        assert isinstance(att.start_error, SegmentsNotFoundError)
        assert str(att.start_error) == NO_START
        assert str(att.end_error) == NO_START
        assert str(att.route_error) == NO_START
        assert not att.succeeded

        with pytest.raises(SegmentsNotFoundError, match=NO_START):
            handler.handle(Request(street_name="Nowhere Rd", from_street="A St"))

    def test_start_error_kept(self, make_store, seg):
        store = make_store([
            seg(1, "A ST", "B ST", 0, 1, route_id=1),
            seg(2, "A ST", "B ST", 5, 6, route_id=2),
        ])
        att = RequestHandler(store).handle_attempt(Request(street_name="Test Ln", from_street="A St"))
        assert isinstance(att.start_error, AmbiguousStreetError)
        assert str(att.end_error) == NO_START
        assert str(att.route_error) == NO_START

    def test_no_end_propagates(self, store):
        att = RequestHandler(store).handle_attempt(
            Request(street_name="Test Ln", from_street="A St", to_street="Nowhere Cres")
        )
        assert att.start_error is None
        assert ids(att.start_segments) == [1]
        assert str(att.end_error) == NO_END
        assert str(att.route_error) == NO_END

    def test_no_path(self, make_store, seg):
        store = make_store([
            seg(1, "A ST", "B ST", 0, 1, direction="FOTD"),
            seg(2, "B ST", "C ST", 1, 2, direction="FOTD"),
        ])
        att = RequestHandler(store).handle_attempt(
            Request(street_name="Test Ln", from_street="C St", to_street="A St")
        )
        assert isinstance(att.route_error, NoPathError)
        assert att.first_error is att.route_error

    def test_to_the_end_fails_when_an_end_is_behind_a_one_way(self, make_store, seg):
        store = make_store([
            seg(1, "A ST", "B ST", 0, 1, direction="FOTD"),
            seg(2, "B ST", "C ST", 1, 2, direction="FOTD"),
            seg(3, "C ST", "D ST", 2, 3, direction="FOTD"),
        ])
        att = RequestHandler(store).handle_attempt(Request(street_name="Test Ln", from_street="C St"))
        assert ids(att.start_segments) == [2, 3]
        assert ids(att.end_segments) == [1, 2, 3]
        assert isinstance(att.route_error, NoPathError)
        assert att.route_segments == []


class TestOverrides:

    def test_route_override_order(self, store):
        overrides = MappingOverrideSource({3: {"route": [4, 3]}})
        result = RequestHandler(store, overrides).handle(
            Request(street_name="Test Ln", from_street="A St", to_street="E St", rank=3)
        )
        assert ids(result.start_segments) == [1]
        assert ids(result.route_segments) == [4, 3]

    def test_start_override_bypasses_matching(self, store):
        overrides = MappingOverrideSource({7: {"start": [2]}})
        handler = RequestHandler(store, overrides)
        result = handler.handle(Request(street_name="Unknown Way", from_street="Q St", to_street="D St", rank=7))
        assert ids(result.start_segments) == [2]
        assert ids(result.route_segments) == [2, 3]
        assert handler.start_stage.get_statistics().overridden == 1

    def test_override_for_other_rank_ignored(self, store):
        overrides = MappingOverrideSource({99: {"route": [5]}})
        result = RequestHandler(store, overrides).handle(
            Request(street_name="Test Ln", from_street="A St", to_street="C St", rank=1)
        )
        assert ids(result.route_segments) == [1, 2]

    def test_unknown_override_ids(self, store):
        overrides = MappingOverrideSource({2: {"end": [4, 404]}})
        att = RequestHandler(store, overrides).handle_attempt(
            Request(street_name="Test Ln", from_street="A St", to_street="E St", rank=2)
        )
        assert isinstance(att.end_error, OverrideError)
        assert "404" in str(att.end_error)


class TestPipeline:

    def test_batch_isolates_failures(self, store):
        requests = [
            Request(street_name="Test Ln", from_street="A St", to_street="E St", rank=1),
            Request(street_name="Nowhere Rd", from_street="A St", rank=2),
            Request(street_name="Test Ln", rank=3),
        ]
        result = Pipeline(RequestHandler(store)).run(requests, pipeline_id="test_run")

        assert result.pipeline_id == "test_run"
        assert result.total_requests == 3
        assert result.total_succeeded == 2
        assert result.total_failed == 1
        assert [req.rank for req, _ in result.resolved()] == [1, 3]
        assert [att.request.rank for att in result.failures()] == [2]

    def test_stage_statistics(self, store):
        requests = [
            Request(street_name="Test Ln", from_street="A St", to_street="E St", rank=1),
            Request(street_name="Nowhere Rd", rank=2),
        ]
        result = Pipeline(RequestHandler(store)).run(requests)
        start, end, route = result.stage_statistics

        assert start.total_requests == 2
        assert start.succeeded == 1
        assert start.empty == 1
        assert end.total_requests == 1
        assert route.succeeded == 1

    def test_statistics_reset_between_runs(self, store):
        pipeline = Pipeline(RequestHandler(store))
        request = Request(street_name="Test Ln", rank=1)
        pipeline.run([request])
        result = pipeline.run([request])
        assert result.stage_statistics[0].total_requests == 1

    def test_to_dict(self, store):
        result = Pipeline(RequestHandler(store)).run([Request(street_name="Nowhere Rd", rank=4)])
        data = result.to_dict()
        assert data["total_failed"] == 1
        assert data["failures"] == [
            {"rank": 4, "request": "4 Nowhere Rd (all)", "error": NO_START}
        ]
        assert [stage["stage_name"] for stage in data["stages"]] == ["start", "end", "route"]
