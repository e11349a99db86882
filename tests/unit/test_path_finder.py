"""
Unit tests for breadth-first route search.
"""

import pytest

from calmmap.core.path_finder import find_path
from calmmap.errors import NoPathError


@pytest.fixture
def line_graph():
    """1 - 2 - 3 - 4, linked both ways."""
    return {1: [2], 2: [1, 3], 3: [2, 4], 4: [3]}


class TestFindPath:

    def test_simple_path(self, line_graph):
        assert find_path(line_graph, 1, [4]) == [1, 2, 3, 4]

    def test_start_is_end(self, line_graph):
        assert find_path(line_graph, 2, [2, 4]) == [2]

    def test_nearest_end_wins(self, line_graph):
        assert find_path(line_graph, 1, [4, 3]) == [1, 2, 3]

    def test_fewest_hops(self):
        links = {1: [2, 5], 2: [3], 3: [4], 5: [4]}
        assert find_path(links, 1, [4]) == [1, 5, 4]

    def test_tie_broken_by_link_order(self):
        links = {1: [3, 2], 2: [4], 3: [4]}
        assert find_path(links, 1, [4]) == [1, 3, 4]

    def test_cycle_terminates(self):
        links = {1: [2], 2: [3], 3: [1]}
        with pytest.raises(NoPathError, match="could not find path"):
            find_path(links, 1, [9])

    def test_one_way_unreachable(self):
        links = {1: [2], 2: [3]}
        with pytest.raises(NoPathError):
            find_path(links, 3, [1])

    def test_end_outside_graph(self, line_graph):
        with pytest.raises(NoPathError, match="to segment 9 not found in route graph"):
            find_path(line_graph, 1, [4, 9], nodes=[1, 2, 3, 4])

    def test_isolated_end_is_a_node_but_unreachable(self, line_graph):
        with pytest.raises(NoPathError, match="could not find path"):
            find_path(line_graph, 1, [5], nodes=[1, 2, 3, 4, 5])

    def test_path_never_revisits(self):
        links = {1: [2], 2: [1, 3], 3: [2, 1]}
        path = find_path(links, 1, [3])
        assert len(path) == len(set(path))


class TestStoreFindPath:
    """find_path through a loaded store."""

    def test_resolves_segments_in_order(self, make_store, chain):
        store = make_store(chain.values())
        path = store.find_path([chain["s1"]], [chain["s4"]])
        assert [seg.id for seg in path] == [1, 2, 3, 4]

    def test_only_first_from_segment_seeds(self, make_store, chain):
        store = make_store(chain.values())
        path = store.find_path([chain["s3"], chain["s1"]], [chain["s1"]])
        assert [seg.id for seg in path] == [3, 2, 1]

    def test_empty_inputs(self, make_store, chain):
        store = make_store(chain.values())
        with pytest.raises(ValueError, match="empty"):
            store.find_path([], [chain["s1"]])
        with pytest.raises(ValueError, match="empty"):
            store.find_path([chain["s1"]], [])

    def test_end_on_other_route(self, make_store, chain, irrelevant):
        store = make_store(list(chain.values()) + [irrelevant])
        with pytest.raises(NoPathError, match="not found in route graph"):
            store.find_path([chain["s1"]], [irrelevant])
