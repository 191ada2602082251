"""Layout configuration: defaults and the one-time contract check.

The engine never re-validates configuration on each call. Callers build a
``LayoutConfig`` once (usually at startup), call ``validate()`` and reuse it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields, replace

# ─── Defaults ────────────────────────────────────────────────────────────────

CARD_WIDTH: float = 300
# Average rendered card height. The real height depends on how many fields a
# card shows, which is only known at render time.
ESTIMATED_CARD_HEIGHT: float = 200

COMMUNITY_PADDING: float = 60
INTER_COMMUNITY_GAP: float = 150
INTRA_SPACING_X: float = 380
INTRA_SPACING_Y: float = 320

MIN_COMMUNITY_SIZE: int = 6
LARGE_GRAPH_THRESHOLD: int = 15

LEIDEN_RESOLUTION: float = 1.0
LEIDEN_MAX_ITERATIONS: int = 10
SUGIYAMA_ITERATIONS: int = 4

START_X: float = 100
START_Y: float = 80

GRID_SPACING_X: float = 380
GRID_SPACING_Y: float = 320
LEVEL_HEIGHT: float = 320
CANVAS_WIDTH: float = 1200


class LayoutConfigError(ValueError):
    """A configuration value violates the layout contract."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field


@dataclass(frozen=True)
class LayoutConfig:
    """Every tunable of the layout engine."""

    card_width: float = CARD_WIDTH
    estimated_card_height: float = ESTIMATED_CARD_HEIGHT
    community_padding: float = COMMUNITY_PADDING
    inter_community_gap: float = INTER_COMMUNITY_GAP
    intra_spacing_x: float = INTRA_SPACING_X
    intra_spacing_y: float = INTRA_SPACING_Y
    min_community_size: int = MIN_COMMUNITY_SIZE
    large_graph_threshold: int = LARGE_GRAPH_THRESHOLD
    leiden_resolution: float = LEIDEN_RESOLUTION
    leiden_max_iterations: int = LEIDEN_MAX_ITERATIONS
    sugiyama_iterations: int = SUGIYAMA_ITERATIONS
    start_x: float = START_X
    start_y: float = START_Y
    grid_spacing_x: float = GRID_SPACING_X
    grid_spacing_y: float = GRID_SPACING_Y
    level_height: float = LEVEL_HEIGHT
    canvas_width: float = CANVAS_WIDTH

    def validate(self) -> LayoutConfig:
        """Raise ``LayoutConfigError`` on the first field breaking the contract.

        Returns ``self`` so a config can be validated inline.
        """
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise LayoutConfigError(f.name, f"expected a number, got {value!r}")
            if not math.isfinite(value):
                raise LayoutConfigError(f.name, "must be finite")

        positive = (
            "card_width",
            "estimated_card_height",
            "intra_spacing_x",
            "intra_spacing_y",
            "leiden_resolution",
            "grid_spacing_x",
            "grid_spacing_y",
            "level_height",
        )
        for name in positive:
            if getattr(self, name) <= 0:
                raise LayoutConfigError(name, "must be > 0")

        for name in ("community_padding", "inter_community_gap", "start_x", "start_y", "canvas_width"):
            if getattr(self, name) < 0:
                raise LayoutConfigError(name, "must be >= 0")

        for name in ("leiden_max_iterations", "sugiyama_iterations"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise LayoutConfigError(name, "must be a non-negative integer")

        for name in ("min_community_size", "large_graph_threshold"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise LayoutConfigError(name, "must be a positive integer")

        return self

    def replace(self, **changes: float) -> LayoutConfig:
        """Return a validated copy with ``changes`` applied."""
        return replace(self, **changes).validate()


DEFAULT_CONFIG = LayoutConfig()
