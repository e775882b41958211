from __future__ import annotations

from godaigo.game.movement import (
    apply_free_step,
    extend_path,
    landing_error,
    path_cost,
    shortest_path,
    step_cost,
)
from godaigo.game.types import Element
from tests.conftest import build_state, put


class TestStepCost:
    def test_empty_hex_costs_one(self) -> None:
        state = build_state()
        check = step_cost(state.board, (1, 0), set())
        assert check.can_move and check.cost == 1

    def test_occupied_hex_is_blocked(self) -> None:
        state = build_state()
        assert not step_cost(state.board, (1, 0), {(1, 0)}).can_move

    def test_off_board_is_blocked(self) -> None:
        state = build_state()
        assert not step_cost(state.board, (9, 9), set()).can_move

    def test_earth_blocks(self) -> None:
        state = build_state()
        put(state, (1, 0), Element.EARTH)
        assert not step_cost(state.board, (1, 0), set()).can_move

    def test_wind_is_free(self) -> None:
        state = build_state()
        put(state, (1, 0), Element.WIND)
        assert step_cost(state.board, (1, 0), set()).cost == 0

    def test_nullified_wind_costs_one(self) -> None:
        state = build_state()
        put(state, (1, 0), Element.WIND)
        put(state, (2, 0), Element.VOID)
        assert step_cost(state.board, (1, 0), set()).cost == 1

    def test_plain_water_costs_two(self) -> None:
        state = build_state()
        put(state, (1, 0), Element.WATER)
        assert step_cost(state.board, (1, 0), set()).cost == 2

    def test_water_chained_to_wind_is_free(self) -> None:
        state = build_state()
        put(state, (1, 0), Element.WATER)
        put(state, (2, 0), Element.WIND)
        assert step_cost(state.board, (1, 0), set()).cost == 0

    def test_water_chained_to_earth_blocks(self) -> None:
        state = build_state()
        put(state, (1, 0), Element.WATER)
        put(state, (2, 0), Element.EARTH)
        assert not step_cost(state.board, (1, 0), set()).can_move

    def test_fire_and_void_cost_one(self) -> None:
        state = build_state()
        put(state, (1, 0), Element.FIRE)
        put(state, (-1, 0), Element.VOID)
        assert step_cost(state.board, (1, 0), set()).cost == 1
        assert step_cost(state.board, (-1, 0), set()).cost == 1

    def test_mudslide_makes_earth_free(self) -> None:
        state = build_state()
        put(state, (1, 0), Element.EARTH)
        put(state, (0, 1), Element.WATER)
        assert step_cost(state.board, (1, 0), set(), mudslide=True).cost == 0
        assert step_cost(state.board, (0, 1), set(), mudslide=True).cost == 0

    def test_pure_function_of_board(self) -> None:
        state = build_state()
        put(state, (1, 0), Element.WATER)
        put(state, (1, 1), Element.WIND)
        first = step_cost(state.board, (1, 0), set())
        second = step_cost(state.board, (1, 0), set())
        assert first == second


class TestPathCost:
    def test_sums_steps(self) -> None:
        state = build_state()
        put(state, (1, 0), Element.WIND)
        result = path_cost(state.board, [(0, 0), (1, 0), (2, 0)], set())
        assert result.can_move
        assert result.total == 1

    def test_rejects_non_adjacent_steps(self) -> None:
        state = build_state()
        assert not path_cost(state.board, [(0, 0), (2, 0)], set()).can_move

    def test_steam_vents_frees_every_other_paid_step(self) -> None:
        state = build_state()
        path = [(-2, 0), (-1, 0), (0, 0), (1, 0), (2, 0)]
        result = path_cost(state.board, path, set(), free_steps=True)
        assert result.total == 2
        assert not result.banked_after

    def test_zero_cost_steps_keep_the_bank(self) -> None:
        assert apply_free_step(0, True) == (0, True)
        assert apply_free_step(2, True) == (0, False)
        assert apply_free_step(2, False) == (2, True)

    def test_banked_step_carries_over(self) -> None:
        state = build_state()
        result = path_cost(state.board, [(0, 0), (1, 0)], set(), free_steps=True, banked=True)
        assert result.total == 0


class TestLanding:
    def test_cannot_end_on_stone(self) -> None:
        state = build_state()
        put(state, (1, 0), Element.WIND)
        assert landing_error(state.board, (1, 0)) is not None

    def test_can_end_on_void(self) -> None:
        state = build_state()
        put(state, (1, 0), Element.VOID)
        assert landing_error(state.board, (1, 0)) is None


class TestExtendPath:
    def test_adds_adjacent_step(self) -> None:
        state = build_state()
        path, reason = extend_path(state.board, [(0, 0)], (1, 0), set(), available_ap=5)
        assert reason is None
        assert path == [(0, 0), (1, 0)]

    def test_backstep_retracts(self) -> None:
        state = build_state()
        path, _ = extend_path(state.board, [(0, 0), (1, 0)], (0, 0), set(), available_ap=5)
        assert path == [(0, 0)]

    def test_unaffordable_step_rejected(self) -> None:
        state = build_state()
        put(state, (1, 0), Element.WATER)
        path, reason = extend_path(state.board, [(0, 0)], (1, 0), set(), available_ap=1)
        assert path is None
        assert "AP" in reason


class TestShortestPath:
    def test_routes_around_earth(self) -> None:
        state = build_state()
        put(state, (1, 0), Element.EARTH)
        path = shortest_path(state.board, (0, 0), (2, 0), set())
        assert path[0] == (0, 0) and path[-1] == (2, 0)
        assert (1, 0) not in path
        assert path_cost(state.board, path, set()).total == 3

    def test_prefers_wind(self) -> None:
        state = build_state()
        put(state, (0, -1), Element.WIND)
        put(state, (1, -2), Element.WIND)
        path = shortest_path(state.board, (0, 0), (2, -2), set())
        assert path_cost(state.board, path, set()).total == 1

    def test_steam_vents_bank_shapes_route(self) -> None:
        state = build_state()
        put(state, (1, 0), Element.WATER)

        direct = shortest_path(state.board, (0, 0), (1, 0), set())
        vented = shortest_path(state.board, (0, 0), (1, 0), set(), free_steps=True)
        banked = shortest_path(state.board, (0, 0), (1, 0), set(), free_steps=True, banked=True)

        assert direct == [(0, 0), (1, 0)]
        assert len(vented) == 3
        assert path_cost(state.board, vented, set(), free_steps=True).total == 1
        assert banked == [(0, 0), (1, 0)]

    def test_unreachable_goal(self) -> None:
        state = build_state()
        assert shortest_path(state.board, (0, 0), (9, 9), set()) is None
