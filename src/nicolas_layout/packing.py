"""Community rectangles and the meta-graph strip packer.

A community's local Sugiyama positions are wrapped in a padded bounding
rectangle; rectangles are then placed in rows (tallest first) so that no two
overlap. When level-two communities exist, the same packer runs twice: once
inside each level-two group, once over the resulting group rectangles.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace

from nicolas_layout.config import CARD_WIDTH, ESTIMATED_CARD_HEIGHT
from nicolas_layout.types import CommunityRect, Point

logger = logging.getLogger(__name__)


# ─── Community Rect Builder ───────────────────────────────────────────────────


def compute_community_rect(
    community_id: int,
    positions: dict[str, Point],
    padding: float,
    card_width: float = CARD_WIDTH,
    card_height: float = ESTIMATED_CARD_HEIGHT,
) -> CommunityRect:
    """Bounding rectangle of a community, with positions made local to it.

    Each member covers ``card_width × card_height`` from its position. The
    box is grown by ``padding`` on every side and every position is shifted
    so the box's top-left corner is the origin (all local coordinates end up
    >= ``padding``). No positions → one empty card's worth of space.
    """
    if not positions:
        return CommunityRect(
            community_id=community_id,
            width=card_width + padding * 2,
            height=card_height + padding * 2,
        )

    min_x = min(p.x for p in positions.values())
    min_y = min(p.y for p in positions.values())
    max_x = max(p.x + card_width for p in positions.values())
    max_y = max(p.y + card_height for p in positions.values())

    return CommunityRect(
        community_id=community_id,
        width=max_x - min_x + padding * 2,
        height=max_y - min_y + padding * 2,
        positions={
            node_id: Point(p.x - min_x + padding, p.y - min_y + padding) for node_id, p in positions.items()
        },
    )


# ─── Strip Packing ────────────────────────────────────────────────────────────


def pack_rects(rects: list[CommunityRect], gap: float) -> list[CommunityRect]:
    """Place rectangles in rows, tallest first, ``gap`` apart.

    The target row width is ``max(first.width + gap, avg_width * ceil(sqrt(n)))``.
    A row wraps when the next rectangle would cross that width, unless the
    row is still empty. Returns placed copies in placement order; the inputs
    are left untouched.
    """
    if not rects:
        return []
    if len(rects) == 1:
        return [replace(rects[0], x=0.0, y=0.0)]

    ordered = sorted(rects, key=lambda r: -r.height)
    avg_width = sum(r.width for r in ordered) / len(ordered)
    max_row_width = max(avg_width * math.ceil(math.sqrt(len(ordered))), ordered[0].width + gap)

    placed: list[CommunityRect] = []
    current_x = 0.0
    current_y = 0.0
    row_height = 0.0
    rows = 1

    for rect in ordered:
        if current_x > 0 and current_x + rect.width > max_row_width:
            current_x = 0.0
            current_y += row_height + gap
            row_height = 0.0
            rows += 1

        placed.append(replace(rect, x=current_x, y=current_y))
        current_x += rect.width + gap
        row_height = max(row_height, rect.height)

    logger.debug("packed %d rects into %d row(s), target width %.1f", len(placed), rows, max_row_width)
    return placed


# ─── Two-Level Grouping ───────────────────────────────────────────────────────


def flatten_group(group_id: int, placed: list[CommunityRect], margin: float) -> CommunityRect:
    """Merge placed rectangles into one super-rectangle.

    Member positions become absolute within the group; the group's size is
    its members' bounding box plus ``margin`` on the right and bottom.
    """
    max_x = max((r.right for r in placed), default=0.0)
    max_y = max((r.bottom for r in placed), default=0.0)

    positions: dict[str, Point] = {}
    for r in placed:
        for node_id, p in r.positions.items():
            positions[node_id] = Point(p.x + r.x, p.y + r.y)

    return CommunityRect(
        community_id=group_id,
        width=max_x + margin,
        height=max_y + margin,
        positions=positions,
    )


def pack_grouped(
    rects: list[CommunityRect],
    level_two_of: dict[int, int],
    gap: float,
) -> list[CommunityRect]:
    """Pack level-one rectangles inside their level-two groups, then the groups.

    ``level_two_of`` maps a level-one community id to its level-two id
    (missing ids fall in group 0). With a single group this is plain
    ``pack_rects(rects, gap)``. Otherwise each group is packed with
    ``gap / 2``, flattened into one super-rectangle and the super-rectangles
    are packed with ``gap``; the returned rectangles are those super-rectangles.
    """
    groups: dict[int, list[CommunityRect]] = {}
    for rect in rects:
        groups.setdefault(level_two_of.get(rect.community_id, 0), []).append(rect)

    if len(groups) <= 1:
        return pack_rects(rects, gap)

    half_gap = gap / 2
    super_rects = [
        flatten_group(group_id, pack_rects(groups[group_id], half_gap), half_gap) for group_id in sorted(groups)
    ]
    return pack_rects(super_rects, gap)
