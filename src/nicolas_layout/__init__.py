"""NICOLAS: community-aware automatic layout for entity-relationship diagrams."""

from nicolas_layout.community import detect_communities
from nicolas_layout.config import DEFAULT_CONFIG, LayoutConfig, LayoutConfigError
from nicolas_layout.graph import AdjacencyGraph, build_graph
from nicolas_layout.layout import LayoutMode, arrange, compute_layout, grid_layout, hierarchy_layout
from nicolas_layout.types import CommunityAssignment, Point, Relationship, RelationshipKind

__all__ = [
    "DEFAULT_CONFIG",
    "AdjacencyGraph",
    "CommunityAssignment",
    "LayoutConfig",
    "LayoutConfigError",
    "LayoutMode",
    "Point",
    "Relationship",
    "RelationshipKind",
    "arrange",
    "build_graph",
    "compute_layout",
    "detect_communities",
    "grid_layout",
    "hierarchy_layout",
]
