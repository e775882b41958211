"""Default board layout and the shrine deck.

Tiles sit on a lattice whose neighbouring centres are four hexes apart,
so adjacent tiles share exactly one corner cell. Player tiles take
evenly spaced slots on the outer lattice ring; every other slot holds a
hidden tile whose shrine is drawn from the shrine deck on reveal.
"""

from __future__ import annotations

import random

from godaigo.game.board import BoardState, add_tile, create_empty_board
from godaigo.game.hexgrid import HEX_DIRECTIONS, Hex, hex_add
from godaigo.game.types import ELEMENTS, ShrineType

LATTICE_STEP = 4

SHRINE_CYCLE: list[ShrineType] = [ShrineType(e.value) for e in ELEMENTS] + [ShrineType.CATACOMB]


def lattice_ring(radius: int) -> list[Hex]:
    """Lattice slots exactly ``radius`` tiles from the centre, in ring order."""
    if radius == 0:
        return [(0, 0)]
    step = LATTICE_STEP
    q, r = HEX_DIRECTIONS[4][0] * step * radius, HEX_DIRECTIONS[4][1] * step * radius
    ring: list[Hex] = []
    for dq, dr in HEX_DIRECTIONS:
        for _ in range(radius):
            ring.append((q, r))
            q, r = hex_add((q, r), (dq * step, dr * step))
    return ring


def lattice_slots(radius: int) -> list[Hex]:
    slots: list[Hex] = []
    for ring_radius in range(radius + 1):
        slots.extend(lattice_ring(ring_radius))
    return slots


def create_shrine_deck(count: int, rng: random.Random) -> list[ShrineType]:
    """One shrine per hidden tile, cycling through every shrine type."""
    deck = [SHRINE_CYCLE[i % len(SHRINE_CYCLE)] for i in range(count)]
    rng.shuffle(deck)
    return deck


def generate_board(num_players: int, radius: int) -> tuple[BoardState, list[Hex]]:
    """Build the starting board. Returns (board, player start hexes)."""
    if radius < 1:
        raise ValueError("Board radius must be at least 1")
    board = create_empty_board()
    outer = lattice_ring(radius)
    player_slots = [outer[i * len(outer) // num_players] for i in range(num_players)]

    starts: list[Hex] = []
    for index, (q, r) in enumerate(player_slots):
        add_tile(board, q, r, owner_index=index)
        starts.append((q, r))
    for q, r in lattice_slots(radius):
        if (q, r) not in player_slots:
            add_tile(board, q, r)
    return board, starts
