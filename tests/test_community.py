"""Tests for community.py: local moving, refinement, renumbering, level two."""

from __future__ import annotations

import networkx as nx

from nicolas_layout.community import (
    IndexedGraph,
    _refine,
    aggregate,
    detect_communities,
    leiden_level,
    modularity_gain,
    renumber,
)
from nicolas_layout.graph import build_graph

# ─── Helpers ──────────────────────────────────────────────────────────────────


def make_graph(names: list[str], pairs: list[tuple[str, str]], kind: str = "N:1"):
    """Build an AdjacencyGraph from (from, to) pairs of one kind."""
    return build_graph(names, [(a, b, kind) for a, b in pairs])


def clique(names: list[str]) -> list[tuple[str, str]]:
    return [(a, b) for i, a in enumerate(names) for b in names[i + 1 :]]


def level_one(assignments) -> dict[str, int]:
    return {a.node_id: a.level_one for a in assignments}


def level_two(assignments) -> dict[str, int]:
    return {a.node_id: a.level_two for a in assignments}


TWO_TRIANGLES = clique(["a", "b", "c"]) + clique(["d", "e", "f"]) + [("c", "d")]


# ─── Modularity Gain ──────────────────────────────────────────────────────────


class TestModularityGain:
    def test_zero_total_weight(self):
        """No edges at all → gain 0 instead of a division by zero."""
        assert modularity_gain(0, 0, 0, 0) == 0.0

    def test_formula(self):
        """gain = in/W - tot*k/(2W^2)."""
        assert modularity_gain(1, 2, 2, 7) == 1 / 7 - 4 / 98

    def test_empty_community_gain_is_zero(self):
        """Staying alone with no links gains nothing."""
        assert modularity_gain(0, 0, 3, 10) == 0.0


# ─── Level One ────────────────────────────────────────────────────────────────


class TestDetectCommunities:
    def test_empty_graph(self):
        """Empty graph → no assignments."""
        assert detect_communities(build_graph([], []), 1) == []

    def test_single_node(self):
        """One node → one community with id 0."""
        result = detect_communities(make_graph(["account"], []), 1)
        assert len(result) == 1
        assert result[0].node_id == "account"
        assert result[0].level_one == 0
        assert result[0].level_two == 0

    def test_bridged_triangles_split(self):
        """Two triangles joined by one edge form two communities."""
        graph = make_graph(list("abcdef"), TWO_TRIANGLES)
        comm = level_one(detect_communities(graph, 1))
        assert comm["a"] == comm["b"] == comm["c"]
        assert comm["d"] == comm["e"] == comm["f"]
        assert comm["a"] != comm["d"]

    def test_disconnected_components_split(self):
        """Two chains with no link between them never share a community."""
        graph = make_graph(list("abcdef"), [("a", "b"), ("b", "c"), ("d", "e"), ("e", "f")])
        comm = level_one(detect_communities(graph, 1))
        assert comm["a"] == comm["b"] == comm["c"]
        assert comm["d"] == comm["e"] == comm["f"]
        assert comm["a"] != comm["d"]

    def test_no_edges_keeps_singletons(self):
        """Six isolated nodes → six communities."""
        result = detect_communities(make_graph(list("abcdef"), []), 1)
        assert len({a.level_one for a in result}) == 6

    def test_complete_graph_collapses(self):
        """K6 → one community."""
        result = detect_communities(make_graph(list("abcdef"), clique(list("abcdef"))), 1)
        assert {a.level_one for a in result} == {0}

    def test_max_level_zero_is_singletons(self):
        """max_level 0 skips detection: ids follow node order."""
        graph = make_graph(list("abc"), clique(list("abc")))
        result = detect_communities(graph, 0)
        assert [(a.node_id, a.level_one, a.level_two) for a in result] == [("a", 0, 0), ("b", 1, 0), ("c", 2, 0)]

    def test_ids_are_dense(self):
        """Level-one ids form exactly 0..k-1."""
        result = detect_communities(make_graph(list("abcdef"), TWO_TRIANGLES), 1)
        ids = {a.level_one for a in result}
        assert ids == set(range(len(ids)))

    def test_result_follows_sorted_node_order(self):
        """Assignments come back in the graph's sorted node order."""
        graph = make_graph(["f", "e", "d", "c", "b", "a"], TWO_TRIANGLES)
        assert [a.node_id for a in detect_communities(graph, 1)] == list("abcdef")

    def test_partition_beats_singletons(self):
        """The detected partition has higher modularity than all-singletons."""
        graph = make_graph(list("abcdef"), TWO_TRIANGLES)
        comm = level_one(detect_communities(graph, 1))
        groups: dict[int, set[str]] = {}
        for node_id, c in comm.items():
            groups.setdefault(c, set()).add(node_id)
        found = nx.community.modularity(graph.undirected, groups.values(), weight="weight")
        singletons = nx.community.modularity(graph.undirected, [{n} for n in graph.nodes], weight="weight")
        assert found > singletons

    def test_deterministic(self):
        """Two runs over the same graph agree exactly."""
        graph = make_graph(list("abcdef"), TWO_TRIANGLES)
        assert detect_communities(graph, 2) == detect_communities(graph, 2)


# ─── Refinement ───────────────────────────────────────────────────────────────


class TestRefinement:
    # x sits in {a, b, x} but is only linked to y.
    OUTLIER = IndexedGraph(
        labels=["a", "b", "x", "y"],
        adjacency=[{1: 1.0}, {0: 1.0}, {3: 1.0}, {2: 1.0}],
    )

    def test_member_without_internal_edges_split_out(self):
        """A node linked only outside its community becomes a fresh singleton."""
        community = [0, 0, 0, 3]
        degrees = self.OUTLIER.degrees()
        community_degree = {0: 3.0, 3: 1.0}
        _refine(self.OUTLIER, community, degrees, community_degree)
        assert community == [0, 0, 4, 3]
        assert community_degree == {0: 2.0, 3: 1.0, 4: 1.0}

    def test_small_communities_left_alone(self):
        """Communities of two members are never split."""
        community = [0, 2, 0, 3]
        _refine(self.OUTLIER, community, self.OUTLIER.degrees(), {0: 2.0, 2: 1.0, 3: 1.0})
        assert community == [0, 2, 0, 3]

    def test_zero_sweeps_keeps_singletons(self):
        """max_iterations 0 performs no moves."""
        assert leiden_level(self.OUTLIER, max_iterations=0) == [0, 1, 2, 3]

    def test_star_members_stay_together(self):
        """Leaves of a star all keep their single internal edge."""
        leaves = ["l1", "l2", "l3", "l4", "l5"]
        graph = make_graph(["hub", *leaves], [(leaf, "hub") for leaf in leaves])
        result = detect_communities(graph, 1)
        assert {a.level_one for a in result} == {0}


# ─── Renumber / Aggregate ─────────────────────────────────────────────────────


class TestRenumber:
    def test_dense_and_order_preserving(self):
        """Raw ids 7, 2, 7, 11 → 1, 0, 1, 2."""
        assert renumber([7, 2, 7, 11]) == [1, 0, 1, 2]

    def test_empty(self):
        assert renumber([]) == []


class TestAggregate:
    def test_sums_inter_weights_and_drops_internal(self):
        """Two communities joined by two edges → one super edge of weight 2."""
        graph = IndexedGraph(
            labels=list("abcd"),
            adjacency=[{1: 1.0, 2: 1.0}, {0: 1.0, 3: 1.0}, {0: 1.0, 3: 1.0}, {1: 1.0, 2: 1.0}],
        )
        contracted = aggregate(graph, [0, 0, 1, 1])
        assert len(contracted) == 2
        assert contracted.adjacency == [{1: 2.0}, {0: 2.0}]
        assert contracted.total_weight == 2.0

    def test_from_networkx_uses_order(self):
        """Indices follow the given order and neighbour keys are ascending."""
        g = nx.Graph()
        g.add_edge("b", "a", weight=3)
        g.add_edge("b", "c", weight=1)
        indexed = IndexedGraph.from_networkx(g, ["a", "b", "c"])
        assert indexed.labels == ["a", "b", "c"]
        assert indexed.adjacency[1] == {0: 3.0, 2: 1.0}
        assert list(indexed.adjacency[1]) == [0, 2]
        assert indexed.degrees() == [3.0, 4.0, 1.0]


# ─── Level Two ────────────────────────────────────────────────────────────────


FOUR_TRIANGLES = (
    clique(["a", "b", "c"])
    + clique(["d", "e", "f"])
    + clique(["g", "h", "i"])
    + clique(["j", "k", "l"])
    + [("c", "d"), ("i", "j")]
)


class TestLevelTwo:
    def test_coarsens_bridged_pairs(self):
        """Four triangles in two bridged pairs → four L1, two L2 groups."""
        graph = make_graph(list("abcdefghijkl"), FOUR_TRIANGLES)
        result = detect_communities(graph, 2)
        l1 = level_one(result)
        l2 = level_two(result)
        assert [l1[n] for n in "abcdefghijkl"] == [0, 0, 0, 1, 1, 1, 2, 2, 2, 3, 3, 3]
        assert [l2[n] for n in "adgj"] == [0, 0, 1, 1]

    def test_level_one_only_keeps_level_two_zero(self):
        """max_level 1 never coarsens."""
        graph = make_graph(list("abcdefghijkl"), FOUR_TRIANGLES)
        assert {a.level_two for a in detect_communities(graph, 1)} == {0}

    def test_two_communities_not_coarsened(self):
        """Level one with ≤2 communities maps everything to level two 0."""
        graph = make_graph(list("abcdef"), TWO_TRIANGLES)
        result = detect_communities(graph, 2)
        assert len({a.level_one for a in result}) == 2
        assert {a.level_two for a in result} == {0}

    def test_level_two_consistent_per_level_one(self):
        """All members of a level-one community share one level-two id."""
        graph = make_graph(list("abcdefghijkl"), FOUR_TRIANGLES)
        seen: dict[int, int] = {}
        for a in detect_communities(graph, 2):
            assert seen.setdefault(a.level_one, a.level_two) == a.level_two
