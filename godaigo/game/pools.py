"""Element pools: the shared source pool and each player's pool.

Stones move source -> player pool (draws), player pool -> board
(placement) and board/player pool -> source (breaks, destruction,
discards). Total stones per element never change.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from godaigo.game.types import ELEMENTS, Element

logger = logging.getLogger(__name__)


def _empty_counts() -> dict[Element, int]:
    return {e: 0 for e in ELEMENTS}


class ElementPools(BaseModel):
    source: dict[Element, int] = Field(default_factory=_empty_counts)
    players: list[dict[Element, int]] = Field(default_factory=list)
    source_capacity: int = 25
    player_capacity: int = 5


def create_pools(
    num_players: int,
    source_initial: int,
    source_capacity: int,
    player_capacity: int,
) -> ElementPools:
    return ElementPools(
        source={e: source_initial for e in ELEMENTS},
        players=[_empty_counts() for _ in range(num_players)],
        source_capacity=source_capacity,
        player_capacity=player_capacity,
    )


def player_count(pools: ElementPools, player_index: int, element: Element) -> int:
    return pools.players[player_index][element]


def room_in_player_pool(pools: ElementPools, player_index: int, element: Element) -> int:
    return max(0, pools.player_capacity - pools.players[player_index][element])


def draw_to_player(
    pools: ElementPools,
    player_index: int,
    element: Element,
    count: int,
) -> int:
    """Move up to ``count`` stones from source to a player pool.

    Clamped by source stock and the room left in the player pool.
    Returns the number actually moved.
    """
    moved = min(count, pools.source[element], room_in_player_pool(pools, player_index, element))
    if moved <= 0:
        return 0
    pools.source[element] -= moved
    pools.players[player_index][element] += moved
    return moved


def withdraw_for_placement(pools: ElementPools, player_index: int, element: Element) -> bool:
    """Take one stone out of a player pool so it can go on the board."""
    if pools.players[player_index][element] <= 0:
        return False
    pools.players[player_index][element] -= 1
    return True


def return_to_source(pools: ElementPools, element: Element, count: int = 1) -> int:
    """Return stones to the source pool, clamped at capacity.

    Overflow means stones were created somewhere; it is logged and the
    excess is dropped.
    """
    room = pools.source_capacity - pools.source[element]
    returned = min(count, max(0, room))
    if returned < count:
        logger.warning(
            f"Source pool overflow for {element.value}: "
            f"dropped {count - returned} stone(s)"
        )
    pools.source[element] += returned
    return returned


def discard_from_player(
    pools: ElementPools,
    player_index: int,
    element: Element,
    count: int,
) -> int:
    """Send stones from a player pool back to the source pool."""
    moved = min(count, pools.players[player_index][element])
    if moved <= 0:
        return 0
    pools.players[player_index][element] -= moved
    return_to_source(pools, element, moved)
    return moved


def element_total(pools: ElementPools, element: Element, on_board: int) -> int:
    return pools.source[element] + sum(p[element] for p in pools.players) + on_board
