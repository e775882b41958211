from __future__ import annotations

import random

import pytest

from godaigo.engine.errors import InvariantViolationError
from godaigo.game.layout import create_shrine_deck, generate_board, lattice_slots
from godaigo.game.state import (
    GodaigoState,
    audit_state,
    check_invariants,
    create_godaigo_state,
    grant_stones,
)
from godaigo.game.types import Element, ShrineType
from tests.conftest import build_state, hold


class TestLayout:
    def test_two_player_board(self) -> None:
        board, starts = generate_board(2, 2)
        assert len(board.tiles) == len(lattice_slots(2)) == 19
        player_tiles = [t for t in board.tiles if t.owner_index is not None]
        assert [t.origin for t in player_tiles] == starts
        assert all(t.revealed and t.shrine == ShrineType.PLAYER for t in player_tiles)
        assert sum(1 for t in board.tiles if not t.revealed) == 17

    def test_players_start_opposite(self) -> None:
        _, starts = generate_board(2, 2)
        (q1, r1), (q2, r2) = starts
        assert (q1, r1) == (-q2, -r2)

    def test_radius_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            generate_board(2, 0)

    def test_shrine_deck_cycles_types(self) -> None:
        deck = create_shrine_deck(12, random.Random(3))
        assert len(deck) == 12
        assert deck.count(ShrineType.CATACOMB) == 2
        assert deck.count(ShrineType.FIRE) == 2


class TestCreateState:
    def test_seeded_setup_is_deterministic(self) -> None:
        first = create_godaigo_state(3, seed=11)
        second = create_godaigo_state(3, seed=11)
        assert first.model_dump() == second.model_dump()

    def test_initial_pools_and_ap(self) -> None:
        state = create_godaigo_state(2, seed=1)
        assert state.pools.source[Element.FIRE] == 20
        assert state.pools.players[0][Element.FIRE] == 0
        assert state.players[0].ap.current == 5
        assert state.players[1].ap.current == 0
        assert len(state.shrine_deck) == 17

    def test_options_override_rules(self) -> None:
        state = create_godaigo_state(2, options={"max_ap": 7, "board_radius": 1}, seed=1)
        assert state.rules.max_ap == 7
        assert state.players[0].ap.current == 7
        assert len(state.board.tiles) == 7

    def test_json_snapshot(self) -> None:
        state = create_godaigo_state(2, seed=4)
        restored = GodaigoState.model_validate_json(state.model_dump_json())
        assert restored.model_dump() == state.model_dump()
        assert restored.pools.source[Element.VOID] == 20


class TestAudit:
    def test_fresh_state_is_clean(self) -> None:
        assert audit_state(create_godaigo_state(4, seed=2)) == []

    def test_grant_keeps_conservation(self) -> None:
        state = build_state()
        event = grant_stones(state, 0, Element.WIND, 9, "test")
        assert event.payload["count"] == 5
        assert audit_state(state) == []

    def test_detects_duplicate_scroll(self) -> None:
        state = build_state()
        hold(state, 0, "EARTH_SCROLL_2")
        state.common.slots["earth"] = "EARTH_SCROLL_2"
        assert audit_state(state) == ["EARTH_SCROLL_2 is in 2 places"]

    def test_strict_mode_raises(self) -> None:
        state = build_state(strict_audit=True)
        state.pools.source[Element.EARTH] -= 1
        with pytest.raises(InvariantViolationError) as exc:
            check_invariants(state)
        assert exc.value.violations == ["earth stones total 19, expected 20"]
