"""Intra-community layout: Sugiyama-style layered drawing.

Phases:
  1. Layer assignment (longest path from roots, cycle-tolerant)
  2. Crossing minimisation (barycenter heuristic, fixed iteration count)
  3. Coordinate assignment (centred rows, snapped to a half-spacing grid)

Layer 0 is the top row. A parent always sits on a lower-numbered layer than
its children unless the two are on a directed cycle.
"""

from __future__ import annotations

import logging
import math
from enum import Enum

import networkx as nx

from nicolas_layout.config import INTRA_SPACING_X, INTRA_SPACING_Y, SUGIYAMA_ITERATIONS
from nicolas_layout.types import Point

logger = logging.getLogger(__name__)


# ─── Layer Assignment ─────────────────────────────────────────────────────────


class VisitState(Enum):
    Unvisited = 0
    InProgress = 1
    Done = 2


class LayerAssignment:
    """Result of layer assignment: each node is assigned a layer (rank).

    Attributes:
        layers: Maps node id → layer index.
        layer_groups: One list per layer, node ids sorted within each layer.
    """

    def __init__(self, layers: dict[str, int], layer_groups: list[list[str]]) -> None:
        self.layers = layers
        self.layer_groups = layer_groups

    @property
    def layer_count(self) -> int:
        return len(self.layer_groups)

    @classmethod
    def assign(cls, nodes: list[str], directed: nx.DiGraph) -> LayerAssignment:
        """Assign layer(v) = 1 + max(layer(parent)), roots at 0.

        Only edges between members of ``nodes`` count. Uses an explicit DFS
        stack over parents. A parent found still in progress (a directed
        cycle) contributes layer 0, so every node terminates with a
        non-negative layer even though cyclic members may not get the
        tightest one.
        """
        index = {node_id: i for i, node_id in enumerate(nodes)}
        parents: list[list[int]] = []
        for node_id in nodes:
            preds = directed.predecessors(node_id) if node_id in directed else ()
            parents.append([index[p] for p in sorted(preds) if p in index and p != node_id])

        n = len(nodes)
        state = [VisitState.Unvisited] * n
        layer = [0] * n

        for root in range(n):
            if state[root] is not VisitState.Unvisited:
                continue
            state[root] = VisitState.InProgress
            stack = [(root, iter(parents[root]))]
            while stack:
                node, pending = stack[-1]
                for p in pending:
                    if state[p] is VisitState.Unvisited:
                        state[p] = VisitState.InProgress
                        stack.append((p, iter(parents[p])))
                        break
                else:
                    stack.pop()
                    if parents[node]:
                        layer[node] = 1 + max(layer[p] if state[p] is VisitState.Done else 0 for p in parents[node])
                    state[node] = VisitState.Done

        layers = {node_id: layer[i] for i, node_id in enumerate(nodes)}
        layer_groups: list[list[str]] = [[] for _ in range(max(layer, default=-1) + 1)]
        for node_id in sorted(layers):
            layer_groups[layers[node_id]].append(node_id)

        return cls(layers=layers, layer_groups=layer_groups)


# ─── Crossing Minimization (Barycenter) ───────────────────────────────────────


def minimise_crossings(
    layer_groups: list[list[str]],
    directed: nx.DiGraph,
    iterations: int = SUGIYAMA_ITERATIONS,
) -> list[list[str]]:
    """Reorder each layer by the barycenter of its neighbours.

    Each iteration runs a top-down sweep (parents in the layer above) then a
    bottom-up sweep (children in the layer below). A node with no neighbour
    in the adjacent layer keeps its current index as its barycenter. The sort
    is stable, so equal barycenters keep their relative order.

    Returns new lists; ``layer_groups`` is not modified.
    """
    ordering = [list(group) for group in layer_groups]
    if len(ordering) <= 1:
        return ordering

    members = {node_id for group in ordering for node_id in group}
    sub = directed.subgraph(members)

    for _iteration in range(iterations):
        # Top-down sweep: use predecessor positions as barycenter weights.
        for layer_idx in range(1, len(ordering)):
            prev = {nid: float(i) for i, nid in enumerate(ordering[layer_idx - 1])}
            current = ordering[layer_idx]
            weights = {nid: _barycenter(_around(sub, nid, "in"), prev, float(i)) for i, nid in enumerate(current)}
            current.sort(key=weights.__getitem__)

        # Bottom-up sweep: use successor positions as barycenter weights.
        for layer_idx in range(len(ordering) - 2, -1, -1):
            nxt = {nid: float(i) for i, nid in enumerate(ordering[layer_idx + 1])}
            current = ordering[layer_idx]
            weights = {nid: _barycenter(_around(sub, nid, "out"), nxt, float(i)) for i, nid in enumerate(current)}
            current.sort(key=weights.__getitem__)

    return ordering


def _around(graph: nx.DiGraph, node_id: str, direction: str) -> list[str]:
    """Predecessors ("in") or successors ("out") of a node; empty if absent."""
    if node_id not in graph:
        return []
    return list(graph.predecessors(node_id)) if direction == "in" else list(graph.successors(node_id))


def _barycenter(neighbors: list[str], neighbor_pos: dict[str, float], fallback: float) -> float:
    """Average position of the neighbours found in ``neighbor_pos``, else ``fallback``."""
    positions = [neighbor_pos[nb] for nb in neighbors if nb in neighbor_pos]
    if not positions:
        return fallback
    return sum(positions) / len(positions)


def count_crossings(ordering: list[list[str]], graph: nx.DiGraph) -> int:
    """Count edge crossings between consecutive layers (inversion count heuristic)."""
    total = 0
    for l_idx in range(len(ordering) - 1):
        tgt_pos: dict[str, int] = {nid: i for i, nid in enumerate(ordering[l_idx + 1])}
        edges: list[tuple[int, int]] = []
        for sp, src_id in enumerate(ordering[l_idx]):
            if src_id in graph:
                for nb in graph.successors(src_id):
                    if nb in tgt_pos:
                        edges.append((sp, tgt_pos[nb]))
        for i in range(len(edges)):
            for j in range(i + 1, len(edges)):
                ei, ej = edges[i], edges[j]
                if (ei[0] < ej[0] and ei[1] > ej[1]) or (ei[0] > ej[0] and ei[1] < ej[1]):
                    total += 1
    return total


# ─── Coordinate Assignment ────────────────────────────────────────────────────


def snap(value: float, spacing: float) -> float:
    """Round ``value`` half-up to the nearest multiple of ``spacing / 2``."""
    half = spacing / 2
    return math.floor(value / half + 0.5) * half


def assign_coordinates(
    ordering: list[list[str]],
    spacing_x: float = INTRA_SPACING_X,
    spacing_y: float = INTRA_SPACING_Y,
) -> dict[str, Point]:
    """Assign local (x, y) to every node of ``ordering``.

    Rows are centred against the widest layer; ``x`` advances by
    ``spacing_x`` per node and ``y`` by ``spacing_y`` per layer, both snapped
    to a half-spacing grid.
    """
    widest = max((len(group) for group in ordering), default=1)
    max_row_width = max(1, widest) * spacing_x

    positions: dict[str, Point] = {}
    for layer_idx, group in enumerate(ordering):
        offset_x = (max_row_width - len(group) * spacing_x) / 2
        y = snap(layer_idx * spacing_y, spacing_y)
        for i, node_id in enumerate(group):
            positions[node_id] = Point(x=snap(offset_x + i * spacing_x, spacing_x), y=y)
    return positions


# ─── Full Pipeline ────────────────────────────────────────────────────────────


def sugiyama_layout(
    nodes: list[str],
    directed: nx.DiGraph,
    spacing_x: float = INTRA_SPACING_X,
    spacing_y: float = INTRA_SPACING_Y,
    iterations: int = SUGIYAMA_ITERATIONS,
) -> dict[str, Point]:
    """Lay out one community; ``directed`` may span more nodes than ``nodes``."""
    if not nodes:
        return {}
    if len(nodes) == 1:
        return {nodes[0]: Point(0.0, 0.0)}

    la = LayerAssignment.assign(nodes, directed)
    ordering = minimise_crossings(la.layer_groups, directed, iterations)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "community of %d nodes: %d layers, %d crossings",
            len(nodes),
            la.layer_count,
            count_crossings(ordering, directed.subgraph(nodes)),
        )
    return assign_coordinates(ordering, spacing_x, spacing_y)
