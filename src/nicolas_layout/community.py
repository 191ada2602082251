"""Community Detector: simplified Leiden-style modularity optimisation.

Phases per level:
  1. Local moving: greedy node moves to the neighbouring community with the
     best modularity gain, swept over the sorted node list until stable or the
     sweep cap is hit.
  2. Refinement: members of a community (>2 members) with no internal edge
     but some external edge are split out into singletons.
  3. Renumbering to a dense, sorted, zero-based id range.

Level two contracts each level-one community into a super-node and runs the
same phases again on the contracted graph.

Everything is deterministic: nodes are visited in sorted order, neighbours in
index order, and a move only happens on a strictly positive gain.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import networkx as nx

from nicolas_layout.config import LEIDEN_MAX_ITERATIONS, LEIDEN_RESOLUTION
from nicolas_layout.graph import WEIGHT, AdjacencyGraph
from nicolas_layout.types import CommunityAssignment

logger = logging.getLogger(__name__)


# ─── Indexed Graph ────────────────────────────────────────────────────────────


@dataclass
class IndexedGraph:
    """Weighted undirected adjacency over dense integer node ids.

    ``adjacency[i]`` maps neighbour index → accumulated weight, with keys in
    ascending order. ``labels[i]`` is the string identity of node ``i``.
    """

    labels: list[str]
    adjacency: list[dict[int, float]]

    @classmethod
    def from_networkx(cls, graph: nx.Graph, order: list[str]) -> IndexedGraph:
        index = {label: i for i, label in enumerate(order)}
        adjacency: list[dict[int, float]] = []
        for label in order:
            row = {index[nb]: float(attrs.get(WEIGHT, 1)) for nb, attrs in graph.adj[label].items() if nb in index}
            adjacency.append(dict(sorted(row.items())))
        return cls(labels=list(order), adjacency=adjacency)

    def __len__(self) -> int:
        return len(self.labels)

    def degrees(self) -> list[float]:
        return [sum(row.values()) for row in self.adjacency]

    @property
    def total_weight(self) -> float:
        return sum(self.degrees()) / 2


# ─── Local Moving ─────────────────────────────────────────────────────────────


def modularity_gain(
    weight_into: float,
    community_degree: float,
    node_degree: float,
    total_weight: float,
) -> float:
    """Modularity gain of moving a node into a community.

    gain = weight_into / W - community_degree * node_degree / (2 * W^2)

    where ``community_degree`` excludes the moving node. Zero when W == 0.
    """
    if total_weight == 0:
        return 0.0
    return weight_into / total_weight - (community_degree * node_degree) / (2 * total_weight * total_weight)


def _links_by_community(graph: IndexedGraph, node: int, community: list[int]) -> dict[int, float]:
    """Edge weight from ``node`` into each neighbouring community, in neighbour order."""
    links: dict[int, float] = {}
    for nb, w in graph.adjacency[node].items():
        c = community[nb]
        links[c] = links.get(c, 0.0) + w
    return links


def leiden_level(
    graph: IndexedGraph,
    resolution: float = LEIDEN_RESOLUTION,
    max_iterations: int = LEIDEN_MAX_ITERATIONS,
) -> list[int]:
    """Run local moving + refinement; return the raw community id per node.

    Ids are not dense; pass the result through ``renumber``.
    """
    n = len(graph)
    community = list(range(n))
    total_weight = graph.total_weight
    if total_weight == 0:
        return community

    degrees = graph.degrees()
    community_degree: dict[int, float] = {i: degrees[i] for i in range(n)}

    sweeps = 0
    for _sweep in range(max_iterations):
        sweeps += 1
        moved = False
        for node in range(n):
            current = community[node]
            k = degrees[node]
            community_degree[current] -= k

            links = _links_by_community(graph, node, community)
            candidates = list(links)
            if current not in links:
                candidates.append(current)

            best, best_gain = current, 0.0
            for target in candidates:
                gain = modularity_gain(links.get(target, 0.0), community_degree[target], k, total_weight) * resolution
                if gain > best_gain:
                    best, best_gain = target, gain

            community[node] = best
            community_degree[best] += k
            if best != current:
                moved = True

        if not moved:
            break

    logger.debug("local moving settled after %d sweep(s) over %d nodes", sweeps, n)

    _refine(graph, community, degrees, community_degree)
    return community


def _refine(
    graph: IndexedGraph,
    community: list[int],
    degrees: list[float],
    community_degree: dict[int, float],
) -> None:
    """Split out members with no internal edge but some external edge."""
    members: dict[int, list[int]] = {}
    for node, c in enumerate(community):
        members.setdefault(c, []).append(node)

    next_id = max(community) + 1
    for group in members.values():
        if len(group) <= 2:
            continue
        for node in group:
            internal = 0.0
            external = 0.0
            for nb, w in graph.adjacency[node].items():
                if community[nb] == community[node]:
                    internal += w
                else:
                    external += w
            if internal == 0 and external > 0:
                community_degree[community[node]] -= degrees[node]
                community[node] = next_id
                community_degree[next_id] = degrees[node]
                next_id += 1


def renumber(community: list[int]) -> list[int]:
    """Map raw ids onto 0..k-1 preserving their sorted order."""
    remap = {c: i for i, c in enumerate(sorted(set(community)))}
    return [remap[c] for c in community]


# ─── Aggregation ─────────────────────────────────────────────────────────────


def aggregate(graph: IndexedGraph, community: list[int]) -> IndexedGraph:
    """Contract each (dense-numbered) community into one super-node.

    Inter-community weights are summed; intra-community edges are dropped.
    Super-node ``i`` stands for community ``i``.
    """
    k = max(community) + 1 if community else 0
    rows: list[dict[int, float]] = [{} for _ in range(k)]
    for node, row in enumerate(graph.adjacency):
        src = community[node]
        for nb, w in row.items():
            tgt = community[nb]
            if src == tgt:
                continue
            rows[src][tgt] = rows[src].get(tgt, 0.0) + w
    return IndexedGraph(
        labels=[f"community_{i}" for i in range(k)],
        adjacency=[dict(sorted(row.items())) for row in rows],
    )


# ─── Public Entry Point ──────────────────────────────────────────────────────


def detect_communities(
    graph: AdjacencyGraph,
    max_level: int,
    resolution: float = LEIDEN_RESOLUTION,
    max_iterations: int = LEIDEN_MAX_ITERATIONS,
) -> list[CommunityAssignment]:
    """Partition ``graph`` into level-one and (optionally) level-two communities.

    Args:
        graph: Output of ``build_graph``.
        max_level: 0 → every node is its own community; 1 → level one only;
            2 → also coarsen level one into level two when it produced more
            than two communities.
        resolution: Multiplier applied to every modularity gain.
        max_iterations: Cap on local-moving sweeps per level.

    Returns:
        One ``CommunityAssignment`` per node, in ``graph.nodes`` order.
    """
    if not graph.nodes:
        return []

    if max_level <= 0:
        return [CommunityAssignment(node_id, i, 0) for i, node_id in enumerate(graph.nodes)]

    indexed = IndexedGraph.from_networkx(graph.undirected, graph.nodes)
    level_one = renumber(leiden_level(indexed, resolution, max_iterations))
    l1_count = max(level_one) + 1

    if max_level >= 2 and l1_count > 2:
        contracted = aggregate(indexed, level_one)
        level_two_of = renumber(leiden_level(contracted, resolution, max_iterations))
    else:
        level_two_of = [0] * l1_count

    logger.debug(
        "detected %d level-one and %d level-two communities over %d nodes",
        l1_count,
        max(level_two_of) + 1,
        len(graph.nodes),
    )

    return [
        CommunityAssignment(node_id, level_one[i], level_two_of[level_one[i]]) for i, node_id in enumerate(graph.nodes)
    ]
