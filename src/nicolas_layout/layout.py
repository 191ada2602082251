"""Layout entry points.

``compute_layout`` runs the full NICOLAS pipeline:

  1. Build adjacency views over the selected nodes
  2. Detect communities (depth chosen from node count)
  3. Sugiyama layout inside each level-one community
  4. Wrap each community in a padded rectangle
  5. Strip-pack the rectangles (grouped by level two when it exists)
  6. Sum local position + rectangle offset + start offset

``grid_layout`` and ``hierarchy_layout`` are the simpler arrangements offered
next to it; ``arrange`` dispatches between all three.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from enum import Enum

from nicolas_layout.community import detect_communities
from nicolas_layout.config import DEFAULT_CONFIG, LayoutConfig
from nicolas_layout.graph import build_graph
from nicolas_layout.packing import compute_community_rect, pack_grouped, pack_rects
from nicolas_layout.sugiyama import LayerAssignment, sugiyama_layout
from nicolas_layout.types import Point, Relationship

logger = logging.getLogger(__name__)


class LayoutMode(str, Enum):
    Nicolas = "nicolas"
    Grid = "grid"
    Hierarchy = "hierarchy"


def choose_max_level(node_count: int, config: LayoutConfig = DEFAULT_CONFIG) -> int:
    """0 below the minimum community size, 1 below the large threshold, else 2."""
    if node_count < config.min_community_size:
        return 0
    if node_count < config.large_graph_threshold:
        return 1
    return 2


# ─── NICOLAS Pipeline ────────────────────────────────────────────────────────


def compute_layout(
    nodes: Iterable[str],
    relationships: Iterable[Relationship | tuple],
    selected: Iterable[str] | None = None,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> dict[str, Point]:
    """Compute an absolute position for every selected node.

    Args:
        nodes: Entity ids (logical names). Duplicates collapse.
        relationships: ``Relationship`` objects or ``(from, to, kind)`` tuples.
        selected: Ids to lay out; ``None`` means all of ``nodes``.
        config: Layout tunables, assumed already validated.

    Returns:
        Node id → position, keyed in sorted id order. Exactly one entry per
        selected node; no I/O, no state kept between calls.
    """
    graph = build_graph(nodes, relationships, selected)

    if not graph.nodes:
        return {}
    if len(graph.nodes) == 1:
        return {graph.nodes[0]: Point(float(config.start_x), float(config.start_y))}

    max_level = choose_max_level(len(graph.nodes), config)
    logger.debug("laying out %d nodes with max_level=%d", len(graph.nodes), max_level)

    assignments = detect_communities(
        graph,
        max_level,
        resolution=config.leiden_resolution,
        max_iterations=config.leiden_max_iterations,
    )

    members: dict[int, list[str]] = {}
    level_two_of: dict[int, int] = {}
    for a in assignments:
        members.setdefault(a.level_one, []).append(a.node_id)
        level_two_of[a.level_one] = a.level_two

    rects = []
    for community_id in sorted(members):
        local = sugiyama_layout(
            members[community_id],
            graph.directed,
            config.intra_spacing_x,
            config.intra_spacing_y,
            config.sugiyama_iterations,
        )
        rects.append(
            compute_community_rect(
                community_id,
                local,
                config.community_padding,
                config.card_width,
                config.estimated_card_height,
            )
        )

    if max_level >= 2 and len(set(level_two_of.values())) > 1:
        placed = pack_grouped(rects, level_two_of, config.inter_community_gap)
    else:
        placed = pack_rects(rects, config.inter_community_gap)

    result: dict[str, Point] = {}
    for rect in placed:
        for node_id, p in rect.positions.items():
            result[node_id] = Point(p.x + rect.x + config.start_x, p.y + rect.y + config.start_y)

    return dict(sorted(result.items()))


# ─── Alternate Arrangements ──────────────────────────────────────────────────


def grid_layout(
    nodes: Iterable[str],
    selected: Iterable[str] | None = None,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> dict[str, Point]:
    """Sorted selected nodes in a ``ceil(sqrt(n))``-column grid."""
    node_set = set(nodes)
    if selected is not None:
        node_set &= set(selected)
    ordered = sorted(node_set)
    if not ordered:
        return {}

    cols = math.ceil(math.sqrt(len(ordered)))
    return {
        node_id: Point(
            config.start_x + (i % cols) * config.grid_spacing_x,
            config.start_y + (i // cols) * config.grid_spacing_y,
        )
        for i, node_id in enumerate(ordered)
    }


def hierarchy_layout(
    nodes: Iterable[str],
    relationships: Iterable[Relationship | tuple],
    selected: Iterable[str] | None = None,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> dict[str, Point]:
    """One row per dependency level, referenced entities on top.

    Rows are centred in ``config.canvas_width`` but never start left of
    ``config.start_x``.
    """
    graph = build_graph(nodes, relationships, selected)
    if not graph.nodes:
        return {}

    la = LayerAssignment.assign(graph.nodes, graph.directed)
    result: dict[str, Point] = {}
    for level, group in enumerate(la.layer_groups):
        total_width = len(group) * config.grid_spacing_x
        start_x = max(config.start_x, (config.canvas_width - total_width) / 2)
        y = config.start_y + level * config.level_height
        for i, node_id in enumerate(group):
            result[node_id] = Point(start_x + i * config.grid_spacing_x, y)

    return dict(sorted(result.items()))


def arrange(
    mode: LayoutMode | str,
    nodes: Iterable[str],
    relationships: Iterable[Relationship | tuple],
    selected: Iterable[str] | None = None,
    config: LayoutConfig = DEFAULT_CONFIG,
) -> dict[str, Point]:
    """Run the layout named by ``mode``."""
    mode = LayoutMode(mode)
    if mode is LayoutMode.Grid:
        return grid_layout(nodes, selected, config)
    if mode is LayoutMode.Hierarchy:
        return hierarchy_layout(nodes, relationships, selected, config)
    return compute_layout(nodes, relationships, selected, config)
