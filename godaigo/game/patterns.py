"""Scroll pattern matcher.

A pattern is satisfied when every required cell holds a stone of the
required element. Cells are located through pixel proximity so a stone
whose stored coordinates drifted by rounding still counts.
"""

from __future__ import annotations

from godaigo.game.board import BoardState, stone_near_pixel
from godaigo.game.hexgrid import Hex, hex_to_pixel
from godaigo.game.types import PatternCell, ScrollDefinition


def variant_satisfied(
    variant: list[PatternCell],
    player_hex: Hex,
    board: BoardState,
    size: float,
    epsilon: float,
) -> bool:
    pq, pr = player_hex
    for cell in variant:
        x, y = hex_to_pixel(pq + cell.q, pr + cell.r, size)
        stone = stone_near_pixel(board, x, y, size, epsilon)
        if stone is None or stone.element != cell.element:
            return False
    return True


def matching_variant(
    definition: ScrollDefinition,
    player_hex: Hex,
    board: BoardState,
    size: float,
    epsilon: float,
) -> int | None:
    """Index of the first satisfied variant, or None."""
    for index, variant in enumerate(definition.patterns):
        if variant_satisfied(variant, player_hex, board, size, epsilon):
            return index
    return None


def matches(
    definition: ScrollDefinition,
    player_hex: Hex,
    board: BoardState,
    size: float,
    epsilon: float,
) -> bool:
    return matching_variant(definition, player_hex, board, size, epsilon) is not None
