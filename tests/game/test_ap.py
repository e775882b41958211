from __future__ import annotations

import pytest

from godaigo.game.ap import APState, cast_cost


class TestSpend:
    def test_void_is_spent_first(self) -> None:
        ap = APState(current=3, void=2)
        ap.spend(4)
        assert ap.void == 0
        assert ap.current == 1

    def test_small_cost_only_touches_void(self) -> None:
        ap = APState(current=3, void=2)
        ap.spend(1)
        assert (ap.current, ap.void) == (3, 1)

    def test_overspend_raises(self) -> None:
        ap = APState(current=1, void=1)
        assert not ap.can_afford(3)
        with pytest.raises(ValueError):
            ap.spend(3)


class TestRefreshAndGain:
    def test_refresh_resets_both(self) -> None:
        ap = APState(current=0, void=4)
        ap.refresh(5, 1)
        assert (ap.current, ap.void) == (5, 1)

    def test_gain_fills_current_first(self) -> None:
        ap = APState(current=3, void=0)
        ap.add(2, max_ap=5, void_stones=0)
        assert (ap.current, ap.void) == (5, 0)

    def test_overflow_goes_to_void_capped_by_stones(self) -> None:
        ap = APState(current=4, void=0)
        ap.add(4, max_ap=5, void_stones=2)
        assert (ap.current, ap.void) == (5, 2)

    def test_overflow_without_void_stones_is_lost(self) -> None:
        ap = APState(current=5, void=0)
        ap.add(2, max_ap=5, void_stones=0)
        assert ap.total == 5

    def test_clamp_only_lowers(self) -> None:
        ap = APState(current=2, void=3)
        ap.clamp_void(1)
        assert ap.void == 1
        ap.clamp_void(4)
        assert ap.void == 1


class TestCastCost:
    def test_base_cost(self) -> None:
        assert cast_cost(3, 2) == 2

    def test_reduction(self) -> None:
        assert cast_cost(3, 2, reduced=True) == 1

    def test_level_one_free_wins(self) -> None:
        assert cast_cost(1, 2, reduced=True, level_one_free=True) == 0
        assert cast_cost(2, 2, reduced=True, level_one_free=True) == 1
