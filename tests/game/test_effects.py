from __future__ import annotations

from godaigo.game.buffs import BuffExpiry, BuffKind
from godaigo.game.controller import GameController
from godaigo.game.effects import EffectContext, StandardEffects, apply_effect, default_effect
from godaigo.game.scrolls import get_scroll
from godaigo.game.types import Element, ResponseStackEntry, ShrineType
from tests.conftest import build_state, give, hold, put


def _ctx(state, scroll_id: str, caster: int = 0, args: dict | None = None,
         trigger: str | None = None, previous: str | None = None) -> EffectContext:
    return EffectContext(
        state=state,
        caster_index=caster,
        definition=get_scroll(scroll_id),
        entry=ResponseStackEntry(scroll_id=scroll_id, caster_index=caster, effect_args=args or {}),
        trigger=ResponseStackEntry(scroll_id=trigger, caster_index=1) if trigger else None,
        previous_scroll=previous,
    )


effects = StandardEffects()


class TestDefaultEffect:
    def test_grant_is_capped_by_player_pool(self) -> None:
        state = build_state()
        give(state, 0, Element.EARTH, 3)
        outcome = default_effect(_ctx(state, "EARTH_SCROLL_4"))
        assert outcome.summary == {"earth": 2}
        assert state.pools.players[0][Element.EARTH] == 5

    def test_unlisted_scroll_falls_back(self) -> None:
        state = build_state()
        outcome = apply_effect(effects, _ctx(state, "WATER_SCROLL_3"))
        assert outcome.summary == {"water": 3}


class TestReactions:
    def test_reflect_repeats_previous_scroll(self) -> None:
        state = build_state()
        outcome = effects.apply(_ctx(state, "WATER_SCROLL_1", previous="EARTH_SCROLL_3"))
        assert outcome.summary["reflected"] == "EARTH_SCROLL_3"
        assert state.pools.players[0][Element.EARTH] == 5
        assert state.buffs.has(BuffKind.MASONS_SAVVY, 0)

    def test_reflect_prefers_trigger(self) -> None:
        state = build_state()
        outcome = effects.apply(
            _ctx(state, "WATER_SCROLL_1", trigger="FIRE_SCROLL_4", previous="EARTH_SCROLL_3")
        )
        assert outcome.summary == {"reflected": "FIRE_SCROLL_4", "fire": 4}

    def test_reflect_cannot_reflect_itself(self) -> None:
        state = build_state()
        outcome = effects.apply(_ctx(state, "WATER_SCROLL_1", previous="WATER_SCROLL_1"))
        assert outcome.summary == {"reflected": None}

    def test_lamplight_without_trigger_does_nothing(self) -> None:
        outcome = effects.apply(_ctx(build_state(), "FIRE_SCROLL_1"))
        assert outcome.to_common_after == []

    def test_sigh_recalls_catacomb_elements(self) -> None:
        state = build_state()
        top = state.decks.piles["catacomb"][0]
        effects.apply(_ctx(state, "WIND_SCROLL_1", trigger="CATACOMB_SCROLL_1"))
        assert state.pools.players[0][Element.WATER] == 1
        assert state.pools.players[0][Element.EARTH] == 1
        assert state.players[0].scrolls.hand == [top]

    def test_sigh_draws_from_recalled_deck(self) -> None:
        state = build_state()
        top = state.decks.piles["earth"][0]
        outcome = effects.apply(_ctx(state, "WIND_SCROLL_1", caster=1, trigger="EARTH_SCROLL_2"))
        assert state.pools.players[1][Element.EARTH] == 1
        assert state.players[1].scrolls.hand == [top]
        assert top not in state.decks.piles["earth"]
        assert outcome.events[-1].event_type == "scroll_drawn"

    def test_sigh_draw_with_full_hand_cascades(self) -> None:
        state = build_state()
        hold(state, 0, "FIRE_SCROLL_3", area="hand")
        hold(state, 0, "FIRE_SCROLL_4", area="hand")
        effects.apply(_ctx(state, "WIND_SCROLL_1", previous="WATER_SCROLL_2"))
        assert len(state.players[0].scrolls.hand) == 2
        assert state.pending_cascades[0].player_index == 0
        assert state.pending_cascades[0].scroll_id.startswith("WATER_SCROLL_")


class TestBuffs:
    def test_burning_motivation_stacks(self) -> None:
        state = build_state()
        effects.apply(_ctx(state, "FIRE_SCROLL_2"))
        outcome = effects.apply(_ctx(state, "FIRE_SCROLL_2"))
        assert outcome.summary["stacks"] == 2

    def test_quick_reflexes_lasts_until_next_turn(self) -> None:
        state = build_state()
        effects.apply(_ctx(state, "CATACOMB_SCROLL_9"))
        assert state.buffs.get(BuffKind.QUICK_REFLEXES, 0).expiry == BuffExpiry.NEXT_TURN

    def test_seed_the_skies_draws_water(self) -> None:
        state = build_state()
        outcome = effects.apply(_ctx(state, "CATACOMB_SCROLL_6"))
        assert outcome.summary["water"] == 5
        assert state.buffs.has(BuffKind.SEED_THE_SKIES, 0)

    def test_respirate_draws_wind(self) -> None:
        state = build_state()
        effects.apply(_ctx(state, "WIND_SCROLL_2"))
        assert state.pools.players[0][Element.WIND] == 2
        assert state.buffs.has(BuffKind.RESPIRATE, 0)

    def test_mine_needs_elemental_shrine(self) -> None:
        state = build_state()
        outcome = effects.apply(_ctx(state, "CATACOMB_SCROLL_2"))
        assert outcome.summary["buff"] is None

        state.board.tiles[0].shrine = ShrineType.EARTH
        effects.apply(_ctx(state, "CATACOMB_SCROLL_2"))
        assert state.buffs.get(BuffKind.MINE, 0).data == {"shrine": "earth"}


class TestStonesAndAP:
    def test_create_draws_rank_of_chosen_element(self) -> None:
        state = build_state()
        effects.apply(_ctx(state, "VOID_SCROLL_5", args={"element": "fire"}))
        assert state.pools.players[0][Element.FIRE] == 3

    def test_create_needs_element(self) -> None:
        assert effects.check_args(build_state(), 0, "VOID_SCROLL_5", {}) is not None

    def test_reflecting_pool_once_per_turn(self) -> None:
        state = build_state()
        put(state, (1, 0), Element.FIRE)
        put(state, (0, 2), Element.WIND)
        put(state, (-3, 0), Element.WIND)
        put(state, (9, 0), Element.EARTH)

        first = effects.apply(_ctx(state, "CATACOMB_SCROLL_7"))
        second = effects.apply(_ctx(state, "CATACOMB_SCROLL_7"))

        assert first.summary == {"ap_gained": 4, "types": ["fire", "wind"]}
        assert second.summary["ap_gained"] == 0

    def test_arson_argument_checks(self) -> None:
        state = build_state()
        assert effects.check_args(state, 0, "FIRE_SCROLL_5", {"target_player": 0, "element": "fire"})
        assert effects.check_args(state, 0, "FIRE_SCROLL_5", {"target_player": 1, "element": "fire"})
        give(state, 1, Element.FIRE, 1)
        assert effects.check_args(state, 0, "FIRE_SCROLL_5", {"target_player": 1, "element": "fire"}) is None

    def test_arson_cast_burns_and_goes_to_common(self) -> None:
        state = build_state()
        for hex_ in [(0, -1), (0, 1), (2, -1), (-2, 1)]:
            put(state, hex_, Element.FIRE)
        hold(state, 0, "FIRE_SCROLL_5")
        give(state, 1, Element.FIRE, 2)
        controller = GameController(state, effects)

        refused = controller.cast_scroll(0, "FIRE_SCROLL_5", {"target_player": 1})
        result = controller.cast_scroll(0, "FIRE_SCROLL_5", {"target_player": 1, "element": "fire"})

        assert not refused.success
        assert result.success
        assert state.pools.players[1][Element.FIRE] == 1
        assert state.common.slots["fire"] == "FIRE_SCROLL_5"
        assert state.players[0].scrolls.active == []
        assert state.players[0].scrolls.activated == [Element.FIRE]


class TestTakeFlight:
    def test_destination_checks(self) -> None:
        state = build_state()
        put(state, (1, 0), Element.WIND)
        check = effects.check_args
        assert check(state, 0, "WIND_SCROLL_4", {"target_player": 0, "q": 4, "r": 0})
        assert check(state, 0, "WIND_SCROLL_4", {"target_player": 0, "q": 1, "r": 0})
        assert check(state, 0, "WIND_SCROLL_4", {"target_player": 0, "q": 9, "r": 9})
        assert check(state, 0, "WIND_SCROLL_4", {"target_player": 1})
        assert check(state, 0, "WIND_SCROLL_4", {"target_player": 1, "q": 3, "r": 0}) is None

    def test_teleport_reveals_destination(self) -> None:
        state = build_state(tiles=[(0, 0), (4, 0), (0, 4)])
        state.board.tiles[2].revealed = False
        state.shrine_deck = [ShrineType.WATER]

        outcome = effects.apply(
            _ctx(state, "WIND_SCROLL_4", args={"target_player": 1, "q": 0, "r": 2})
        )

        assert state.players[1].position == (0, 2)
        types = [e.event_type for e in outcome.events]
        assert types == ["player_teleported", "tile_revealed", "scroll_drawn"]
        assert len(state.players[1].scrolls.hand) == 1
