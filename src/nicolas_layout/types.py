"""Value types shared across the layout phases."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class RelationshipKind(Enum):
    """Cardinality of a relationship between two entities."""

    ManyToOne = "N:1"
    OneToMany = "1:N"
    ManyToMany = "N:N"

    @classmethod
    def parse(cls, value: RelationshipKind | str) -> RelationshipKind:
        """Accept a member, its wire form ("N:1") or its name ("ManyToOne")."""
        if isinstance(value, cls):
            return value
        for kind in cls:
            if value == kind.value or value == kind.name:
                return kind
        raise ValueError(f"unknown relationship kind: {value!r}")


@dataclass(frozen=True)
class Relationship:
    """One relationship instance between two entities.

    ``from_id`` / ``to_id`` are entity logical names. Parallel relationships
    between the same pair are allowed and each counts once toward clustering
    weight.
    """

    from_id: str
    to_id: str
    kind: RelationshipKind = RelationshipKind.ManyToOne

    @classmethod
    def coerce(cls, value: Relationship | tuple) -> Relationship:
        """Build a Relationship from itself or a ``(from, to[, kind])`` tuple."""
        if isinstance(value, cls):
            return value
        if len(value) == 2:
            return cls(value[0], value[1])
        src, tgt, kind = value
        return cls(src, tgt, RelationshipKind.parse(kind))

    @property
    def is_self_reference(self) -> bool:
        return self.from_id == self.to_id


@dataclass(frozen=True)
class Point:
    """A 2D position in canvas units."""

    x: float
    y: float


@dataclass(frozen=True)
class CommunityAssignment:
    """Community membership of one node at both hierarchy levels."""

    node_id: str
    level_one: int
    level_two: int = 0


@dataclass
class CommunityRect:
    """A community's local layout wrapped in its bounding rectangle.

    ``positions`` are relative to the rectangle's top-left corner and already
    include padding. ``x`` / ``y`` are the offset assigned by packing
    (0, 0 until the rectangle has been placed).
    """

    community_id: int
    width: float
    height: float
    positions: dict[str, Point] = field(default_factory=dict)
    x: float = 0.0
    y: float = 0.0

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def overlaps(self, other: CommunityRect) -> bool:
        """True if the two placed rectangles share any interior area."""
        return self.x < other.right and other.x < self.right and self.y < other.bottom and other.y < self.bottom
