"""Domain models for Godaigo."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class Element(str, Enum):
    EARTH = "earth"
    WATER = "water"
    FIRE = "fire"
    WIND = "wind"
    VOID = "void"


class ShrineType(str, Enum):
    EARTH = "earth"
    WATER = "water"
    FIRE = "fire"
    WIND = "wind"
    VOID = "void"
    CATACOMB = "catacomb"
    PLAYER = "player"


ELEMENTS: list[Element] = [
    Element.EARTH, Element.WATER, Element.FIRE, Element.WIND, Element.VOID,
]

# Scroll elements: the five stones plus catacomb
SCROLL_ELEMENTS: list[str] = [e.value for e in ELEMENTS] + ["catacomb"]

# Fixed rank, used for water mimicry priority and shrine output
STONE_RANK: dict[Element, int] = {
    Element.VOID: 1,
    Element.WIND: 2,
    Element.FIRE: 3,
    Element.WATER: 4,
    Element.EARTH: 5,
}


class ChainedAbility(str, Enum):
    WIND = "wind"
    EARTH = "earth"
    NONE = "none"


class Stone(BaseModel):
    stone_id: int
    q: int
    r: int
    element: Element
    placed_by: int | None = None  # player index

    @property
    def hex(self) -> tuple[int, int]:
        return self.q, self.r


class Tile(BaseModel):
    """A board tile: a radius-2 cluster of hex cells around ``(q, r)``."""
    tile_id: int
    q: int
    r: int
    rotation: int = 0  # 0-5
    revealed: bool = False
    shrine: ShrineType | None = None
    owner_index: int | None = None

    @property
    def origin(self) -> tuple[int, int]:
        return self.q, self.r


class PatternCell(BaseModel):
    q: int
    r: int
    element: Element


class ScrollDefinition(BaseModel):
    """Static definition of one scroll."""
    scroll_id: str            # e.g. "EARTH_SCROLL_1"
    name: str                 # display name, e.g. "Iron Stance"
    description: str
    level: int
    element: str              # one of SCROLL_ELEMENTS
    patterns: list[list[PatternCell]]
    can_counter_any: bool = False
    is_response: bool = False      # playable into an open response window
    is_response_only: bool = False

    @property
    def can_answer(self) -> bool:
        return self.can_counter_any or self.is_response

    @property
    def is_catacomb(self) -> bool:
        return self.element == "catacomb"

    def pattern_elements(self) -> list[Element]:
        """Distinct stone elements required by the base pattern."""
        seen: list[Element] = []
        for cell in self.patterns[0]:
            if cell.element not in seen:
                seen.append(cell.element)
        return seen

    def activation_elements(self) -> list[Element]:
        if self.is_catacomb:
            return self.pattern_elements()
        return [Element(self.element)]


class WindowStatus(str, Enum):
    IDLE = "idle"
    WINDOW_OPEN = "window_open"
    RESOLVING = "resolving"


class StackOutcome(str, Enum):
    RESOLVED = "resolved"
    COUNTERED = "countered"
    COUNTERED_TARGET = "countered-target"


class ResponseStackEntry(BaseModel):
    scroll_id: str
    caster_index: int
    is_counter: bool = False
    is_original: bool = False
    from_common_area: bool = False
    effect_args: dict = Field(default_factory=dict)


class StackResult(BaseModel):
    entry: ResponseStackEntry
    outcome: StackOutcome
    effect: dict = Field(default_factory=dict)


class PendingCascade(BaseModel):
    """A drawn scroll waiting for its owner to make room for it."""
    player_index: int
    scroll_id: str
    can_cascade_to_active: bool
