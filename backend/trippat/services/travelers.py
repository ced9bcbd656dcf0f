"""Traveler composition value object and room allocation."""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace

MAX_ADULTS_PER_ROOM = 2
MAX_CHILDREN_PER_ROOM = 2


class TravelerClass(str, enum.Enum):
    """Traveler price classes."""

    ADULT = "adult"
    CHILD = "child"
    INFANT = "infant"


_FIELDS = {
    TravelerClass.ADULT: "adults",
    TravelerClass.CHILD: "children",
    TravelerClass.INFANT: "infants",
}

_FLOORS = {
    TravelerClass.ADULT: 1,
    TravelerClass.CHILD: 0,
    TravelerClass.INFANT: 0,
}


@dataclass(frozen=True, slots=True)
class TravelerComposition:
    """Counts of adults, children and infants in a party."""

    adults: int = 1
    children: int = 0
    infants: int = 0

    def __post_init__(self) -> None:
        if self.adults < 0 or self.children < 0 or self.infants < 0:
            raise ValueError("Traveler counts cannot be negative")

    @property
    def total(self) -> int:
        return self.adults + self.children + self.infants

    def count_for(self, traveler_class: TravelerClass) -> int:
        return getattr(self, _FIELDS[traveler_class])

    def increment(self, traveler_class: TravelerClass) -> TravelerComposition:
        field = _FIELDS[traveler_class]
        return replace(self, **{field: self.count_for(traveler_class) + 1})

    def decrement(self, traveler_class: TravelerClass) -> TravelerComposition:
        """Return a copy with one fewer traveler, floored at the class minimum."""
        current = self.count_for(traveler_class)
        floor = _FLOORS[traveler_class]
        if current <= floor:
            return self
        return replace(self, **{_FIELDS[traveler_class]: current - 1})

    def require_quotable(self) -> None:
        if self.adults < 1:
            raise ValueError("At least one adult is required")

    def as_dict(self) -> dict[str, int]:
        return {
            "adults": self.adults,
            "children": self.children,
            "infants": self.infants,
        }


@dataclass(frozen=True, slots=True)
class RoomOccupancy:
    adults: int
    children: int


def rooms_needed(travelers: TravelerComposition) -> list[RoomOccupancy]:
    """Allocate adults and children into hotel rooms.

    Rooms hold at most two adults and two children and are filled in order.
    Infants share a room with their party and never require one.
    """
    count = max(
        1,
        -(-travelers.adults // MAX_ADULTS_PER_ROOM),
        -(-travelers.children // MAX_CHILDREN_PER_ROOM),
    )
    adults_left = travelers.adults
    children_left = travelers.children
    rooms: list[RoomOccupancy] = []
    for _ in range(count):
        adults = min(MAX_ADULTS_PER_ROOM, adults_left)
        children = min(MAX_CHILDREN_PER_ROOM, children_left)
        adults_left -= adults
        children_left -= children
        rooms.append(RoomOccupancy(adults=adults, children=children))
    return rooms
