"""Elemental interaction engine.

Rules, in the order they are evaluated:

- Nullification: fire, wind and earth lose their ability while any
  neighbour is a void stone. Nullified stones behave as plain stones.
- Mimicry: a water stone takes the effective type of its highest-ranked
  non-water neighbour. Advisory only; it does not change movement cost.
- Chaining: a water stone carries the ability of a wind or earth stone
  reachable through contiguous water stones that touch no void. Wind
  outranks earth anywhere in the reachable set.
- Destruction: every active fire destroys its non-void, non-fire
  neighbours. Re-evaluated after every placement and removal.
"""

from __future__ import annotations

import logging
from collections import deque

from godaigo.engine.models import Event
from godaigo.game.board import BoardState, neighbor_stones, stone_at, stones_of, take_stone
from godaigo.game.hexgrid import Hex, hex_neighbors, hex_to_key
from godaigo.game.pools import ElementPools, return_to_source
from godaigo.game.types import STONE_RANK, ChainedAbility, Element, Stone

logger = logging.getLogger(__name__)

NULLIFIABLE = frozenset({Element.FIRE, Element.WIND, Element.EARTH})
FIRE_IMMUNE = frozenset({Element.FIRE, Element.VOID})


def has_void_neighbor(board: BoardState, hex_: Hex) -> bool:
    return any(s.element == Element.VOID for s in neighbor_stones(board, hex_))


def is_nullified(board: BoardState, stone: Stone) -> bool:
    if stone.element not in NULLIFIABLE:
        return False
    return has_void_neighbor(board, stone.hex)


def effective_type(board: BoardState, stone: Stone) -> Element:
    """Mimicry: the highest-ranked non-water neighbour type, else water."""
    if stone.element != Element.WATER:
        return stone.element
    best: Element | None = None
    for n in neighbor_stones(board, stone.hex):
        if n.element == Element.WATER:
            continue
        if best is None or STONE_RANK[n.element] > STONE_RANK[best]:
            best = n.element
    return best if best is not None else Element.WATER


def chained_ability(board: BoardState, stone: Stone) -> ChainedAbility:
    """Flood-fill through linked water to find an active wind or earth."""
    if stone.element != Element.WATER:
        return ChainedAbility.NONE
    if has_void_neighbor(board, stone.hex):
        return ChainedAbility.NONE

    found_earth = False
    visited: set[str] = {hex_to_key(*stone.hex)}
    queue: deque[Hex] = deque([stone.hex])

    while queue:
        current = queue.popleft()
        for n_hex in hex_neighbors(*current):
            neighbor = stone_at(board, n_hex)
            if neighbor is None:
                continue
            if neighbor.element == Element.WIND and not is_nullified(board, neighbor):
                return ChainedAbility.WIND
            if neighbor.element == Element.EARTH and not is_nullified(board, neighbor):
                found_earth = True
            elif neighbor.element == Element.WATER:
                key = hex_to_key(*n_hex)
                if key in visited:
                    continue
                visited.add(key)
                if has_void_neighbor(board, n_hex):
                    continue
                queue.append(n_hex)

    return ChainedAbility.EARTH if found_earth else ChainedAbility.NONE


def destroy_stone(
    board: BoardState,
    pools: ElementPools,
    hex_: Hex,
    cause: str,
) -> Event | None:
    """Remove a stone from the board and return it to the source pool."""
    stone = take_stone(board, hex_)
    if stone is None:
        return None
    return_to_source(pools, stone.element)
    logger.debug(f"Destroyed {stone.element.value} stone at {hex_to_key(*hex_)} ({cause})")
    return Event(
        event_type="stone_destroyed",
        payload={
            "stone_id": stone.stone_id,
            "q": stone.q,
            "r": stone.r,
            "element": stone.element.value,
            "cause": cause,
        },
    )


def recheck_all_stone_interactions(board: BoardState, pools: ElementPools) -> list[Event]:
    """Let every active fire burn its neighbours until nothing changes."""
    events: list[Event] = []
    changed = True
    while changed:
        changed = False
        for fire in stones_of(board, Element.FIRE):
            if stone_at(board, fire.hex) is None or is_nullified(board, fire):
                continue
            for victim in neighbor_stones(board, fire.hex):
                if victim.element in FIRE_IMMUNE:
                    continue
                event = destroy_stone(board, pools, victim.hex, cause="fire")
                if event is not None:
                    events.append(event)
                    changed = True
    return events
