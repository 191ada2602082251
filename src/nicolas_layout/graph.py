"""Graph Builder: entities + relationships → adjacency structures.

Two views are built from the same filtered relationship set:

- ``undirected``: weighted ``nx.Graph`` used for community detection. Every
  relationship instance adds 1 to the ``weight`` of its endpoint pair.
- ``directed``: parent → child ``nx.DiGraph`` used for layering. The "one"
  side of a relationship is the parent of the "many" side; many-to-many
  relationships contribute no directed edge.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

import networkx as nx

from nicolas_layout.types import Relationship, RelationshipKind

logger = logging.getLogger(__name__)

WEIGHT = "weight"


@dataclass
class AdjacencyGraph:
    """Immutable-by-convention graph views for one layout run.

    Attributes:
        nodes: Selected node ids, sorted lexicographically.
        undirected: Weighted undirected graph (``weight`` edge attribute).
        directed: Parent → child graph for hierarchy.
    """

    nodes: list[str]
    undirected: nx.Graph
    directed: nx.DiGraph

    @property
    def total_weight(self) -> float:
        return float(self.undirected.size(weight=WEIGHT))

    def __len__(self) -> int:
        return len(self.nodes)


def parent_child(rel: Relationship) -> tuple[str, str] | None:
    """Return the (parent, child) pair a relationship implies, if any."""
    if rel.kind is RelationshipKind.ManyToOne:
        return rel.to_id, rel.from_id
    if rel.kind is RelationshipKind.OneToMany:
        return rel.from_id, rel.to_id
    return None


def build_graph(
    nodes: Iterable[str],
    relationships: Iterable[Relationship | tuple],
    selected: Iterable[str] | None = None,
) -> AdjacencyGraph:
    """Build the adjacency views over the selected subset of ``nodes``.

    Nodes outside ``selected`` are dropped along with any relationship that
    touches them. Self-references and relationships with unknown endpoints
    are dropped silently. ``selected=None`` selects every node.
    """
    node_set = set(nodes)
    if selected is not None:
        node_set &= set(selected)
    ordered = sorted(node_set)

    undirected: nx.Graph = nx.Graph()
    directed: nx.DiGraph = nx.DiGraph()
    undirected.add_nodes_from(ordered)
    directed.add_nodes_from(ordered)

    dropped = 0
    for raw in relationships:
        rel = Relationship.coerce(raw)
        if rel.from_id not in node_set or rel.to_id not in node_set or rel.is_self_reference:
            dropped += 1
            continue

        if undirected.has_edge(rel.from_id, rel.to_id):
            undirected[rel.from_id][rel.to_id][WEIGHT] += 1
        else:
            undirected.add_edge(rel.from_id, rel.to_id, **{WEIGHT: 1})

        pair = parent_child(rel)
        if pair is not None:
            directed.add_edge(*pair)

    if dropped:
        logger.debug("dropped %d relationships (unselected endpoint or self-reference)", dropped)

    return AdjacencyGraph(nodes=ordered, undirected=undirected, directed=directed)
