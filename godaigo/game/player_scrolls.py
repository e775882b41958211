"""Per-player scroll collections, the common area and the scroll decks.

A scroll id lives in exactly one place at a time: a deck, a player's
hand, a player's active area, or the common area.
"""

from __future__ import annotations

import logging
import random

from pydantic import BaseModel, Field

from godaigo.game.scrolls import SCROLL_DECKS, get_scroll
from godaigo.game.types import ELEMENTS, SCROLL_ELEMENTS, Element, PendingCascade

logger = logging.getLogger(__name__)


class ScrollLocation(BaseModel):
    area: str  # "hand" | "active" | "common" | "deck"
    player_index: int | None = None


class PlayerScrollState(BaseModel):
    hand: list[str] = Field(default_factory=list)
    active: list[str] = Field(default_factory=list)
    activated: list[Element] = Field(default_factory=list)

    def record_activation(self, elements: list[Element]) -> list[Element]:
        """Add elements to the activated set; returns the newly added ones."""
        added: list[Element] = []
        for element in elements:
            if element not in self.activated:
                self.activated.append(element)
                added.append(element)
        return added

    def has_all_elements(self) -> bool:
        return all(e in self.activated for e in ELEMENTS)

    def remove(self, scroll_id: str) -> bool:
        if scroll_id in self.hand:
            self.hand.remove(scroll_id)
            return True
        if scroll_id in self.active:
            self.active.remove(scroll_id)
            return True
        return False


def _empty_slots() -> dict[str, str | None]:
    return {element: None for element in SCROLL_ELEMENTS}


class ScrollDecks(BaseModel):
    """Draw piles per scroll element; index 0 is the top."""
    piles: dict[str, list[str]] = Field(default_factory=dict)

    def draw(self, element: str) -> str | None:
        pile = self.piles.get(element, [])
        if not pile:
            return None
        return pile.pop(0)

    def put_bottom(self, element: str, scroll_id: str) -> None:
        self.piles.setdefault(element, []).append(scroll_id)

    def size(self, element: str) -> int:
        return len(self.piles.get(element, []))


def create_decks(rng: random.Random) -> ScrollDecks:
    piles: dict[str, list[str]] = {}
    for element in SCROLL_ELEMENTS:
        pile = list(SCROLL_DECKS[element])
        rng.shuffle(pile)
        piles[element] = pile
    return ScrollDecks(piles=piles)


class CommonArea(BaseModel):
    """One slot per scroll element, shared by all players."""
    slots: dict[str, str | None] = Field(default_factory=_empty_slots)

    def scrolls(self) -> list[str]:
        return [s for s in self.slots.values() if s is not None]

    def contains(self, scroll_id: str) -> bool:
        return scroll_id in self.slots.values()

    def place(self, scroll_id: str, decks: ScrollDecks) -> str | None:
        """Put a scroll in its element's slot.

        A scroll already in the slot goes to the bottom of its deck; its
        id is returned.
        """
        element = get_scroll(scroll_id).element
        bumped = self.slots.get(element)
        if bumped is not None:
            decks.put_bottom(element, bumped)
            logger.debug(f"Common area: {bumped} bumped to bottom of {element} deck")
        self.slots[element] = scroll_id
        return bumped

    def remove(self, scroll_id: str) -> bool:
        for element, held in self.slots.items():
            if held == scroll_id:
                self.slots[element] = None
                return True
        return False


# ── Cascade ──

CASCADE_NEW = "new"


def cascade_options(player: PlayerScrollState) -> list[str]:
    """Scrolls the player may route out: the new one or any they hold."""
    return [CASCADE_NEW] + list(player.hand) + list(player.active)


def resolve_cascade(
    pending: PendingCascade,
    choice: str,
    player: PlayerScrollState,
    common: CommonArea,
    decks: ScrollDecks,
    active_capacity: int,
) -> str | None:
    """Apply a cascade choice. Returns an error reason, or None on success.

    - ``new``: the drawn scroll goes to the active area if it has room,
      else to the common area.
    - a hand scroll: it moves to the active area if it has room, else to
      the common area; the drawn scroll takes its place in the hand.
    - an active scroll: it moves to the common area and the drawn scroll
      takes its active slot.
    """
    new_id = pending.scroll_id
    has_room = len(player.active) < active_capacity

    if choice == CASCADE_NEW:
        if has_room:
            player.active.append(new_id)
        else:
            common.place(new_id, decks)
        return None

    if choice in player.hand:
        player.hand.remove(choice)
        if has_room:
            player.active.append(choice)
        else:
            common.place(choice, decks)
        player.hand.append(new_id)
        return None

    if choice in player.active:
        index = player.active.index(choice)
        common.place(choice, decks)
        player.active[index] = new_id
        return None

    return f"{choice} is not a valid cascade choice"


def overflow(player: PlayerScrollState, hand_capacity: int, active_capacity: int) -> bool:
    return len(player.hand) > hand_capacity or len(player.active) > active_capacity


def locate_scroll(
    scroll_id: str,
    players: list[PlayerScrollState],
    common: CommonArea,
    decks: ScrollDecks,
) -> list[ScrollLocation]:
    """Every place the scroll currently sits. More than one is a bug."""
    found: list[ScrollLocation] = []
    for index, player in enumerate(players):
        if scroll_id in player.hand:
            found.append(ScrollLocation(area="hand", player_index=index))
        if scroll_id in player.active:
            found.append(ScrollLocation(area="active", player_index=index))
    if common.contains(scroll_id):
        found.append(ScrollLocation(area="common"))
    for pile in decks.piles.values():
        if scroll_id in pile:
            found.append(ScrollLocation(area="deck"))
    return found
