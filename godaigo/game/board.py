"""Board state: placed tiles and stones, plus adjacency queries.

A tile covers the 19 cells within two steps of its origin once revealed.
An unrevealed tile only exposes its 6 corner cells, which are the cells
it shares with neighbouring tiles.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from godaigo.game.hexgrid import (
    HEX_DIRECTIONS,
    Hex,
    hex_neighbors,
    hex_to_key,
    hex_to_pixel,
    hexes_within,
    same_hex,
)
from godaigo.game.types import Element, ShrineType, Stone, Tile

logger = logging.getLogger(__name__)

TILE_RADIUS = 2


class BoardState(BaseModel):
    tiles: list[Tile] = Field(default_factory=list)
    stones: dict[str, Stone] = Field(default_factory=dict)  # "q,r" -> Stone
    next_tile_id: int = 0
    next_stone_id: int = 0


def create_empty_board() -> BoardState:
    return BoardState()


# ── Tiles ──

def tile_cells(tile: Tile) -> list[Hex]:
    if tile.revealed:
        return hexes_within(tile.origin, TILE_RADIUS)
    return [
        (tile.q + TILE_RADIUS * dq, tile.r + TILE_RADIUS * dr)
        for dq, dr in HEX_DIRECTIONS
    ]


def add_tile(
    board: BoardState,
    q: int,
    r: int,
    rotation: int = 0,
    owner_index: int | None = None,
    shrine: ShrineType | None = None,
    revealed: bool = False,
) -> Tile:
    """Place a tile. Player tiles are always revealed with a PLAYER shrine."""
    if owner_index is not None:
        shrine = ShrineType.PLAYER
        revealed = True
    tile = Tile(
        tile_id=board.next_tile_id,
        q=q,
        r=r,
        rotation=rotation % 6,
        revealed=revealed,
        shrine=shrine,
        owner_index=owner_index,
    )
    board.next_tile_id += 1
    board.tiles.append(tile)
    return tile


def get_tile(board: BoardState, tile_id: int) -> Tile | None:
    for tile in board.tiles:
        if tile.tile_id == tile_id:
            return tile
    return None


def tiles_at(board: BoardState, hex_: Hex) -> list[Tile]:
    return [t for t in board.tiles if hex_ in tile_cells(t)]


def board_cells(board: BoardState) -> set[Hex]:
    cells: set[Hex] = set()
    for tile in board.tiles:
        cells.update(tile_cells(tile))
    return cells


def is_on_board(board: BoardState, hex_: Hex) -> bool:
    return any(hex_ in tile_cells(t) for t in board.tiles)


def shrine_at(board: BoardState, hex_: Hex) -> Tile | None:
    """The revealed non-player tile whose centre is ``hex_``, if any."""
    for tile in board.tiles:
        if tile.origin == hex_ and tile.revealed and tile.shrine not in (None, ShrineType.PLAYER):
            return tile
    return None


# ── Stones ──

def stone_at(board: BoardState, hex_: Hex) -> Stone | None:
    return board.stones.get(hex_to_key(*hex_))


def stone_near_pixel(
    board: BoardState,
    x: float,
    y: float,
    size: float,
    epsilon: float,
) -> Stone | None:
    """Find a stone whose pixel centre lies within epsilon of (x, y)."""
    for stone in board.stones.values():
        if same_hex(hex_to_pixel(stone.q, stone.r, size), (x, y), epsilon):
            return stone
    return None


def neighbor_stones(board: BoardState, hex_: Hex) -> list[Stone]:
    found: list[Stone] = []
    for n in hex_neighbors(*hex_):
        stone = board.stones.get(hex_to_key(*n))
        if stone is not None:
            found.append(stone)
    return found


def stones_of(board: BoardState, element: Element) -> list[Stone]:
    return [s for s in board.stones.values() if s.element == element]


def put_stone(
    board: BoardState,
    hex_: Hex,
    element: Element,
    placed_by: int | None = None,
) -> Stone | None:
    """Add a stone to the board. Returns None if the cell is taken."""
    key = hex_to_key(*hex_)
    if key in board.stones:
        logger.warning(f"Refusing duplicate stone at {key}")
        return None
    stone = Stone(
        stone_id=board.next_stone_id,
        q=hex_[0],
        r=hex_[1],
        element=element,
        placed_by=placed_by,
    )
    board.next_stone_id += 1
    board.stones[key] = stone
    return stone


def take_stone(board: BoardState, hex_: Hex) -> Stone | None:
    return board.stones.pop(hex_to_key(*hex_), None)


def stone_counts(board: BoardState) -> dict[Element, int]:
    counts = {e: 0 for e in Element}
    for stone in board.stones.values():
        counts[stone.element] += 1
    return counts
