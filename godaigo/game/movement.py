"""Movement costing and path finding."""

from __future__ import annotations

import heapq
from dataclasses import dataclass

from godaigo.game.board import BoardState, is_on_board, stone_at
from godaigo.game.hexgrid import Hex, hex_distance, hex_neighbors
from godaigo.game.interactions import chained_ability, is_nullified
from godaigo.game.types import ChainedAbility, Element

BLOCKED = -1

SearchNode = tuple[Hex, bool]  # hex and Steam Vents bank


@dataclass(frozen=True)
class MoveCheck:
    can_move: bool
    cost: int
    reason: str | None = None


@dataclass(frozen=True)
class PathCost:
    can_move: bool
    total: int
    banked_after: bool
    reason: str | None = None


def step_cost(
    board: BoardState,
    target: Hex,
    occupied: set[Hex],
    mudslide: bool = False,
) -> MoveCheck:
    """Cost of stepping onto ``target``, ignoring where the step comes from.

    ``occupied`` holds the hexes of every other player. ``mudslide`` makes
    earth and water behave as wind for this mover.
    """
    if target in occupied:
        return MoveCheck(False, BLOCKED, "Hex is occupied by another player")
    if not is_on_board(board, target):
        return MoveCheck(False, BLOCKED, "Hex is not on the board")

    stone = stone_at(board, target)
    if stone is None:
        return MoveCheck(True, 1)

    if mudslide and stone.element in (Element.EARTH, Element.WATER):
        return MoveCheck(True, 0)

    if stone.element == Element.EARTH:
        if is_nullified(board, stone):
            return MoveCheck(True, 1)
        return MoveCheck(False, BLOCKED, "Earth stone blocks movement")

    if stone.element == Element.WIND:
        return MoveCheck(True, 1 if is_nullified(board, stone) else 0)

    if stone.element == Element.WATER:
        chain = chained_ability(board, stone)
        if chain == ChainedAbility.WIND:
            return MoveCheck(True, 0)
        if chain == ChainedAbility.EARTH:
            return MoveCheck(False, BLOCKED, "Water linked to earth blocks movement")
        return MoveCheck(True, 2)

    return MoveCheck(True, 1)


def apply_free_step(cost: int, banked: bool) -> tuple[int, bool]:
    """Steam Vents: every other paid step is free.

    Zero-cost steps leave the bank alone. A paid step is free if a free
    step is banked (clearing it); otherwise it is charged and banks one.
    """
    if cost == 0:
        return 0, banked
    if banked:
        return 0, False
    return cost, True


def path_cost(
    board: BoardState,
    path: list[Hex],
    occupied: set[Hex],
    mudslide: bool = False,
    free_steps: bool = False,
    banked: bool = False,
) -> PathCost:
    """Total cost of a path; ``path[0]`` is the mover's current hex."""
    total = 0
    for prev, nxt in zip(path, path[1:]):
        if hex_distance(prev, nxt) != 1:
            return PathCost(False, total, banked, "Path steps must be adjacent hexes")
        check = step_cost(board, nxt, occupied, mudslide)
        if not check.can_move:
            return PathCost(False, total, banked, check.reason)
        cost = check.cost
        if free_steps:
            cost, banked = apply_free_step(cost, banked)
        total += cost
    return PathCost(True, total, banked)


def landing_error(board: BoardState, hex_: Hex) -> str | None:
    """Movement may only end on an empty hex or on a void stone."""
    stone = stone_at(board, hex_)
    if stone is not None and stone.element != Element.VOID:
        return f"Cannot end movement on a {stone.element.value} stone"
    return None


def extend_path(
    board: BoardState,
    path: list[Hex],
    target: Hex,
    occupied: set[Hex],
    available_ap: int,
    mudslide: bool = False,
    free_steps: bool = False,
    banked: bool = False,
) -> tuple[list[Hex] | None, str | None]:
    """Add one neighbouring hex to a path under construction.

    Stepping back onto the previous hex retracts the last step instead.
    Returns (new_path, None) or (None, reason).
    """
    if len(path) >= 2 and target == path[-2]:
        return path[:-1], None
    if hex_distance(path[-1], target) != 1:
        return None, "Next hex must be adjacent"
    candidate = path + [target]
    cost = path_cost(board, candidate, occupied, mudslide, free_steps, banked)
    if not cost.can_move:
        return None, cost.reason
    if cost.total > available_ap:
        return None, f"Not enough AP (need {cost.total}, have {available_ap})"
    return candidate, None


def shortest_path(
    board: BoardState,
    start: Hex,
    goal: Hex,
    occupied: set[Hex],
    mudslide: bool = False,
    free_steps: bool = False,
    banked: bool = False,
) -> list[Hex] | None:
    """Cheapest path from start to goal using ``step_cost`` weights.

    With ``free_steps`` the Steam Vents bank is part of the search state,
    so the same hex reached with and without a banked step are distinct
    nodes. Ties break toward fewer steps. Returns None when the goal is
    unreachable.
    """
    if start == goal:
        return [start]

    origin: SearchNode = (start, banked and free_steps)
    counter = 0
    frontier: list[tuple[int, int, int, SearchNode]] = [(0, 0, counter, origin)]
    best: dict[SearchNode, tuple[int, int]] = {origin: (0, 0)}
    came_from: dict[SearchNode, SearchNode] = {}
    reached: SearchNode | None = None

    while frontier:
        cost, steps, _, node = heapq.heappop(frontier)
        current, bank = node
        if current == goal:
            reached = node
            break
        if best.get(node, (cost, steps)) < (cost, steps):
            continue
        for nxt in hex_neighbors(*current):
            check = step_cost(board, nxt, occupied, mudslide)
            if not check.can_move:
                continue
            step, next_bank = check.cost, bank
            if free_steps:
                step, next_bank = apply_free_step(step, bank)
            child = (nxt, next_bank)
            candidate = (cost + step, steps + 1)
            if child not in best or candidate < best[child]:
                best[child] = candidate
                came_from[child] = node
                counter += 1
                heapq.heappush(frontier, (candidate[0], candidate[1], counter, child))

    if reached is None:
        return None

    nodes = [reached]
    while nodes[-1] != origin:
        nodes.append(came_from[nodes[-1]])
    nodes.reverse()
    return [hex_ for hex_, _ in nodes]
