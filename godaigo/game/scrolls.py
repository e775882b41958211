"""Scroll catalogue: all 35 scroll definitions and the starting decks.

Elemental scrolls share five pattern templates (one per level); every
cell of an elemental pattern requires that scroll's element. Catacomb
scrolls are level 2 and mix two elements; each has 3 variants rotated
0, 120 and 240 degrees from a base pattern.
"""

from __future__ import annotations

from godaigo.game.hexgrid import rotate_hex
from godaigo.game.types import ELEMENTS, Element, PatternCell, ScrollDefinition

Template = list[tuple[int, int]]

LEVEL_PATTERNS: dict[int, list[Template]] = {
    1: [
        [(0, -1), (0, 1)],
        [(1, -1), (-1, 1)],
        [(1, 0), (-1, 0)],
    ],
    2: [
        [(-1, -1), (1, 1)],
        [(1, -2), (-1, 2)],
        [(2, -1), (-2, 1)],
    ],
    3: [
        [(1, -1), (-1, 0), (0, 1)],
        [(0, -1), (1, 0), (-1, 1)],
    ],
    4: [
        [(1, -2), (-2, 1), (1, 1)],
        [(-1, -1), (2, -1), (-1, 2)],
    ],
    5: [
        [(0, -1), (0, 1), (2, -1), (-2, 1)],
        [(1, -1), (-1, 1), (-1, -1), (1, 1)],
        [(1, 0), (-1, 0), (1, -2), (-1, 2)],
    ],
}

CATACOMB_LEVEL = 2

# (first element at (-1,-1)/(1,1), second element at (1,-2)/(-1,2))
CATACOMB_ELEMENTS: dict[int, tuple[Element, Element]] = {
    1: (Element.WATER, Element.EARTH),
    2: (Element.EARTH, Element.FIRE),
    3: (Element.WIND, Element.EARTH),
    4: (Element.VOID, Element.EARTH),
    5: (Element.WATER, Element.FIRE),
    6: (Element.WIND, Element.WATER),
    7: (Element.VOID, Element.WATER),
    8: (Element.FIRE, Element.WIND),
    9: (Element.VOID, Element.WIND),
    10: (Element.FIRE, Element.VOID),
}

# scroll_id -> (name, description)
SCROLL_TEXT: dict[str, tuple[str, str]] = {
    "EARTH_SCROLL_1": ("Iron Stance", "Counter the most recently cast scroll. That scroll is cancelled."),
    "EARTH_SCROLL_2": ("Shifting Sands", "Select two tiles to swap their positions. Tiles must have no stones or players on them."),
    "EARTH_SCROLL_3": ("Mason's Savvy", "Draw up to 5 earth stones. This turn, place earth stones within 5 hexes of player."),
    "EARTH_SCROLL_4": ("Heavy Stomp", "Select a tile to flip. Hidden tiles are revealed (draw scroll). Revealed tiles become hidden."),
    "EARTH_SCROLL_5": ("Avalanche", "This turn, place any stones anywhere on the board (not just adjacent)."),
    "WATER_SCROLL_1": ("Reflect", "Duplicate the effect of the scroll that was last cast this turn."),
    "WATER_SCROLL_2": ("Refreshing Thought", "Discard a scroll to the common area, then draw a scroll of that element type."),
    "WATER_SCROLL_3": ("Inspiring Draught", "Draw 2 scrolls from any decks, then put 1 back and shuffle that deck."),
    "WATER_SCROLL_4": ("Wandering River", "Select a tile. Until your next turn, that tile counts as any element type you choose."),
    "WATER_SCROLL_5": ("Control the Current", "Transform adjacent water stones into any other element."),
    "FIRE_SCROLL_1": ("Unbidden Lamplight", "Response: Send the triggering scroll to the common area (scroll still resolves)."),
    "FIRE_SCROLL_2": ("Burning Motivation", "Until end of turn, gain 2 AP for each stone you place. Stacks if activated multiple times."),
    "FIRE_SCROLL_3": ("Sacrificial Pyre", "Activate any scroll in your hand (ignoring pattern). The scroll goes to the common area."),
    "FIRE_SCROLL_4": ("Transmute", "Discard any number of stones or scrolls to regain 2 AP each."),
    "FIRE_SCROLL_5": ("Arson", "Destroy one elemental stone from an opponent's pool. Move Arson to the common area."),
    "WIND_SCROLL_1": ("Sigh of Recollection", "Draw a stone of the type that was just activated, if available. Draw one stone of each if it was a Catacomb scroll."),
    "WIND_SCROLL_2": ("Respirate", "Draw 2 wind stones. At end of turn, return all your wind stones to the source pools."),
    "WIND_SCROLL_3": ("Freedom", "Until your next turn, the centers of elemental shrines act as catacomb tiles."),
    "WIND_SCROLL_4": ("Take Flight", "Teleport target player to an unoccupied space of your choice. Move Take Flight to the common area."),
    "WIND_SCROLL_5": ("Breath of Power", "Until end of turn, you may move adjacent stones to another adjacent empty space."),
    "VOID_SCROLL_1": ("Psychic", "Counter the previous scroll. Move Psychic to the common area."),
    "VOID_SCROLL_2": ("Scholar's Insight", "Search through a Scroll Deck and add a scroll of your choice to your hand."),
    "VOID_SCROLL_3": ("Telekinesis", "Move a tile unoccupied by stones or players. It must be touching 2 other tiles."),
    "VOID_SCROLL_4": ("Simplify", "Scrolls cost 1 AP to activate until the end of your turn."),
    "VOID_SCROLL_5": ("Create", "Choose a stone type and draw stones equal to that stone's rank (Earth 5, Water 4, Fire 3, Wind 2, Void 1). Cannot exceed 5 of that type."),
    "CATACOMB_SCROLL_1": ("Mudslide", "Until end of turn, earth and water stones act as wind stones for movement (free movement)."),
    "CATACOMB_SCROLL_2": ("Mine", "If the center of this pattern is an elemental shrine, that shrine produces twice as many stones this turn (cannot exceed 5)."),
    "CATACOMB_SCROLL_3": ("Call to Adventure", "Until end of turn, when you reveal a tile, immediately draw Elemental Stones as if you had ended your turn on that tile's center."),
    "CATACOMB_SCROLL_4": ("Excavate", "End your turn. You cannot be the target of any scroll until your next turn."),
    "CATACOMB_SCROLL_5": ("Steam Vents", "Until end of turn, spending an AP to move allows you to move two spaces instead of one."),
    "CATACOMB_SCROLL_6": ("Seed the Skies", "Gather up to 5 water stones. This turn, you may place water and wind stones on any valid hex (not just adjacent)."),
    "CATACOMB_SCROLL_7": ("Reflecting Pool", "Regain 2 AP for each different stone type within 5 spaces of you. This can be used once per turn."),
    "CATACOMB_SCROLL_8": ("Plunder", "Choose a target player. Select one of their active scrolls and discard it to the common area."),
    "CATACOMB_SCROLL_9": ("Quick Reflexes", "Until your next turn, level 1 scrolls cost 0 AP to activate. Each time you use a react scroll during this time, draw 1 void and 1 wind stone."),
    "CATACOMB_SCROLL_10": ("Combust", "Select a tile and destroy all stones on it. Cannot target player tiles."),
}

COUNTER_ANY = frozenset({"EARTH_SCROLL_1", "VOID_SCROLL_1"})
RESPONSE = frozenset({"WATER_SCROLL_1", "FIRE_SCROLL_1", "WIND_SCROLL_1"})
RESPONSE_ONLY = frozenset({"FIRE_SCROLL_1"})


def elemental_scroll_id(element: Element, level: int) -> str:
    return f"{element.value.upper()}_SCROLL_{level}"


def _build_elemental(element: Element, level: int) -> ScrollDefinition:
    scroll_id = elemental_scroll_id(element, level)
    name, description = SCROLL_TEXT[scroll_id]
    return ScrollDefinition(
        scroll_id=scroll_id,
        name=name,
        description=description,
        level=level,
        element=element.value,
        patterns=[
            [PatternCell(q=q, r=r, element=element) for q, r in template]
            for template in LEVEL_PATTERNS[level]
        ],
        can_counter_any=scroll_id in COUNTER_ANY,
        is_response=scroll_id in RESPONSE,
        is_response_only=scroll_id in RESPONSE_ONLY,
    )


def catacomb_base_pattern(first: Element, second: Element) -> list[PatternCell]:
    return [
        PatternCell(q=-1, r=-1, element=first),
        PatternCell(q=1, r=1, element=first),
        PatternCell(q=1, r=-2, element=second),
        PatternCell(q=-1, r=2, element=second),
    ]


def rotate_pattern(pattern: list[PatternCell], steps: int) -> list[PatternCell]:
    rotated: list[PatternCell] = []
    for cell in pattern:
        q, r = rotate_hex(cell.q, cell.r, steps)
        rotated.append(PatternCell(q=q, r=r, element=cell.element))
    return rotated


def _build_catacomb(number: int) -> ScrollDefinition:
    scroll_id = f"CATACOMB_SCROLL_{number}"
    name, description = SCROLL_TEXT[scroll_id]
    base = catacomb_base_pattern(*CATACOMB_ELEMENTS[number])
    return ScrollDefinition(
        scroll_id=scroll_id,
        name=name,
        description=description,
        level=CATACOMB_LEVEL,
        element="catacomb",
        patterns=[base, rotate_pattern(base, 2), rotate_pattern(base, 4)],
    )


def _build_catalogue() -> dict[str, ScrollDefinition]:
    catalogue: dict[str, ScrollDefinition] = {}
    for element in ELEMENTS:
        for level in LEVEL_PATTERNS:
            definition = _build_elemental(element, level)
            catalogue[definition.scroll_id] = definition
    for number in CATACOMB_ELEMENTS:
        definition = _build_catacomb(number)
        catalogue[definition.scroll_id] = definition
    return catalogue


SCROLL_DEFINITIONS: dict[str, ScrollDefinition] = _build_catalogue()

# Unshuffled deck contents, keyed by scroll element
SCROLL_DECKS: dict[str, list[str]] = {
    element.value: [elemental_scroll_id(element, level) for level in LEVEL_PATTERNS]
    for element in ELEMENTS
}
SCROLL_DECKS["catacomb"] = [f"CATACOMB_SCROLL_{n}" for n in CATACOMB_ELEMENTS]


def get_scroll(scroll_id: str) -> ScrollDefinition:
    if scroll_id not in SCROLL_DEFINITIONS:
        raise KeyError(f"Unknown scroll: {scroll_id}")
    return SCROLL_DEFINITIONS[scroll_id]
