from __future__ import annotations

import random

import pytest

from godaigo.engine.models import Player
from godaigo.game.board import add_tile, create_empty_board, put_stone
from godaigo.game.player_scrolls import create_decks
from godaigo.game.pools import create_pools
from godaigo.game.scrolls import get_scroll
from godaigo.game.state import GodaigoState, PlayerState, RulesConfig, refresh_ap
from godaigo.game.types import Element


class FakeRedis:
    """In-memory fake Redis for tests (avoids requiring real Redis)."""

    def __init__(self):
        self._store: dict[str, bytes] = {}

    async def set(self, key: str, value: str | bytes, **kwargs) -> None:
        if isinstance(value, str):
            value = value.encode("utf-8")
        self._store[key] = value

    async def get(self, key: str) -> bytes | None:
        return self._store.get(key)

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self._store.pop(key, None)

    async def scan_iter(self, match: str = "*"):
        import fnmatch
        for key in list(self._store.keys()):
            if fnmatch.fnmatch(key, match):
                yield key

    async def close(self) -> None:
        pass


@pytest.fixture
def fake_redis():
    return FakeRedis()


# ── Rules-state builders ──

def make_players(count: int = 2) -> list[Player]:
    names = ["Alice", "Bob", "Carol", "Dave", "Erin"]
    return [
        Player(player_id=f"p{i + 1}", display_name=names[i], seat_index=i)
        for i in range(count)
    ]


def build_state(
    positions: list[tuple[int, int]] | None = None,
    tiles: list[tuple[int, int]] | None = None,
    **options,
) -> GodaigoState:
    """A small fully revealed board with plain tiles and empty pools.

    The first player is active with freshly refreshed AP.
    """
    positions = positions or [(0, 0), (4, 0)]
    rules = RulesConfig(**options)
    board = create_empty_board()
    for q, r in tiles or [(0, 0), (4, 0)]:
        add_tile(board, q, r, revealed=True)
    state = GodaigoState(
        rules=rules,
        board=board,
        pools=create_pools(
            len(positions),
            rules.source_pool_initial,
            rules.source_pool_capacity,
            rules.player_pool_capacity,
        ),
        players=[PlayerState(position=p) for p in positions],
        decks=create_decks(random.Random(1)),
    )
    refresh_ap(state, 0)
    return state


def put(state: GodaigoState, hex_: tuple[int, int], element: Element) -> None:
    """Put a stone straight from the source pool onto the board."""
    state.pools.source[element] -= 1
    put_stone(state.board, hex_, element)


def give(state: GodaigoState, player_index: int, element: Element, count: int) -> None:
    state.pools.source[element] -= count
    state.pools.players[player_index][element] += count


def hold(state: GodaigoState, player_index: int, scroll_id: str, area: str = "active") -> None:
    """Take a scroll out of its deck and put it in a player's hand or active area."""
    state.decks.piles[get_scroll(scroll_id).element].remove(scroll_id)
    getattr(state.players[player_index].scrolls, area).append(scroll_id)


def to_common(state: GodaigoState, scroll_id: str) -> None:
    state.decks.piles[get_scroll(scroll_id).element].remove(scroll_id)
    state.common.slots[get_scroll(scroll_id).element] = scroll_id


def duel_state(players: int = 2, responders: bool = True, **options) -> GodaigoState:
    """Player 0 can cast Shifting Sands; the others can answer with counters."""
    positions = [(0, 0), (4, 0), (-4, 0)][:players]
    state = build_state(positions=positions, tiles=positions, **options)
    put(state, (-1, -1), Element.EARTH)
    put(state, (1, 1), Element.EARTH)
    hold(state, 0, "EARTH_SCROLL_2")
    if responders:
        put(state, (4, -1), Element.VOID)
        put(state, (4, 1), Element.VOID)
        hold(state, 1, "VOID_SCROLL_1")
        state.players[1].ap.current = 5
        if players > 2:
            put(state, (-4, -1), Element.EARTH)
            put(state, (-4, 1), Element.EARTH)
            hold(state, 2, "EARTH_SCROLL_1")
            state.players[2].ap.current = 5
    return state
