from __future__ import annotations

import pytest

from godaigo.engine.errors import InvalidActionError, PluginError
from godaigo.engine.models import Action, ConcurrentMode, GameConfig
from godaigo.engine.protocol import GamePlugin
from godaigo.game.plugin import GodaigoPlugin, dump_game_data, load_game_data
from godaigo.game.types import Element, PendingCascade
from tests.conftest import duel_state, make_players

IDS = ["p1", "p2"]


def _start(count: int = 2, seed: int = 7, **options):
    plugin = GodaigoPlugin()
    players = make_players(count)
    game_data, phase, events = plugin.create_initial_state(
        players, GameConfig(options=options, random_seed=seed)
    )
    return plugin, players, game_data, phase, events


def _from_state(state, ids=IDS):
    plugin = GodaigoPlugin(clock=lambda: 1000.0)
    return plugin, dump_game_data(state, ids), plugin.phase_for(state, ids)


class TestPluginSetup:
    def test_is_a_game_plugin(self) -> None:
        assert isinstance(GodaigoPlugin(), GamePlugin)

    def test_initial_state(self) -> None:
        _, _, game_data, phase, events = _start()
        assert game_data["player_ids"] == IDS
        assert phase.name == "turn"
        assert phase.expected_players() == ["p1"]
        assert phase.metadata["turn_number"] == 1
        assert events[0].event_type == "game_started"

    def test_seed_fixes_setup(self) -> None:
        assert _start(seed=3)[2] == _start(seed=3)[2]

    def test_validate_config(self) -> None:
        plugin = GodaigoPlugin()
        assert plugin.validate_config({}) == []
        assert plugin.validate_config({"max_ap": 6, "strict_audit": True}) == []
        assert plugin.validate_config({"colour": "red"}) == ["Unknown option: colour"]
        assert plugin.validate_config({"max_ap": "5"}) == ["max_ap must be a number"]
        assert plugin.validate_config({"max_ap": 2.5}) == ["max_ap must be an integer"]
        assert plugin.validate_config({"board_radius": 9}) == ["board_radius must be at most 4"]
        assert plugin.validate_config({"strict_audit": 1}) == ["strict_audit must be a boolean"]
        assert plugin.validate_config(
            {"source_pool_initial": 30, "source_pool_capacity": 25}
        ) == ["source_pool_initial cannot exceed source_pool_capacity"]

    def test_malformed_game_data(self) -> None:
        with pytest.raises(PluginError):
            load_game_data({"state": {}})
        with pytest.raises(PluginError):
            load_game_data({"player_ids": IDS, "state": {"players": "nope"}})


class TestTurnActions:
    def test_valid_actions_only_for_active_player(self) -> None:
        plugin, _, game_data, phase, _ = _start()
        kinds = [a["action_type"] for a in plugin.get_valid_actions(game_data, phase, "p1")]
        assert "end_turn" in kinds and "move" in kinds
        assert plugin.get_valid_actions(game_data, phase, "p2") == []
        assert plugin.get_valid_actions(game_data, phase, "stranger") == []

    def test_validate_action_is_a_dry_run(self) -> None:
        plugin, _, game_data, phase, _ = _start()
        before = load_game_data(game_data)[0]
        assert plugin.validate_action(game_data, phase, Action(action_type="end_turn", player_id="p1")) is None
        assert load_game_data(game_data)[0] == before

    def test_validate_action_reports_reason(self) -> None:
        plugin, _, game_data, phase, _ = _start()
        reason = plugin.validate_action(game_data, phase, Action(action_type="end_turn", player_id="p2"))
        assert reason == "Not your turn"
        reason = plugin.validate_action(game_data, phase, Action(action_type="dance", player_id="p1"))
        assert reason == "Unknown action type: dance"

    def test_end_turn_passes_to_next_seat(self) -> None:
        plugin, players, game_data, phase, _ = _start()
        result = plugin.apply_action(
            game_data, phase, Action(action_type="end_turn", player_id="p1"), players
        )
        assert result.next_phase.expected_players() == ["p2"]
        assert result.next_phase.metadata["turn_number"] == 2
        assert result.events[-1].event_type == "turn_started"
        assert result.events[-1].player_id == "p1"

    def test_invalid_action_raises(self) -> None:
        plugin, players, game_data, phase, _ = _start()
        with pytest.raises(InvalidActionError):
            plugin.apply_action(
                game_data, phase,
                Action(action_type="place_stone", player_id="p1", payload={"q": 0}),
                players,
            )

    def test_move_by_target(self) -> None:
        state = duel_state(responders=False)
        plugin, game_data, phase = _from_state(state)
        result = plugin.apply_action(
            game_data, phase,
            Action(action_type="move", player_id="p1", payload={"q": 2, "r": 0}),
            make_players(),
        )
        moved, _ = load_game_data(result.game_data)
        assert moved.players[0].position == (2, 0)


class TestResponseWindowPhase:
    def test_cast_opens_response_phase(self) -> None:
        plugin, game_data, phase = _from_state(duel_state())
        result = plugin.apply_action(
            game_data, phase,
            Action(action_type="cast_scroll", player_id="p1", payload={"scroll_id": "EARTH_SCROLL_2"}),
            make_players(),
        )
        next_phase = result.next_phase
        assert next_phase.name == "response_window"
        assert next_phase.concurrent_mode == ConcurrentMode.RESPONSE_WINDOW
        assert next_phase.expected_players() == ["p2"]
        assert next_phase.deadline() == 1015.0

        actions = plugin.get_valid_actions(result.game_data, next_phase, "p2")
        assert {"action_type": "pass"} in actions
        assert actions[0]["scroll_id"] == "VOID_SCROLL_1"

    def test_pass_returns_to_turn(self) -> None:
        plugin, game_data, phase = _from_state(duel_state())
        players = make_players()
        cast = plugin.apply_action(
            game_data, phase,
            Action(action_type="cast_scroll", player_id="p1", payload={"scroll_id": "EARTH_SCROLL_2"}),
            players,
        )
        passed = plugin.apply_action(
            cast.game_data, cast.next_phase, Action(action_type="pass", player_id="p2"), players
        )
        assert passed.next_phase.name == "turn"
        assert passed.scores == {"p1": 1.0, "p2": 0.0}

    def test_deadline_auto_passes(self) -> None:
        plugin, game_data, phase = _from_state(duel_state())
        players = make_players()
        cast = plugin.apply_action(
            game_data, phase,
            Action(action_type="cast_scroll", player_id="p1", payload={"scroll_id": "EARTH_SCROLL_2"}),
            players,
        )
        assert plugin.on_deadline_expired(cast.game_data, cast.next_phase, 1010.0, players) is None

        result = plugin.on_deadline_expired(cast.game_data, cast.next_phase, 1015.0, players)

        assert result.next_phase.name == "turn"
        state, _ = load_game_data(result.game_data)
        assert state.pools.players[0][Element.EARTH] == 2

    def test_deadline_ignored_outside_window(self) -> None:
        plugin, players, game_data, phase, _ = _start()
        assert plugin.on_deadline_expired(game_data, phase, 1e12, players) is None


class TestCascadeAndWin:
    def test_cascade_phase_expects_owner(self) -> None:
        state = duel_state(responders=False)
        state.players[1].scrolls.hand = []
        state.pending_cascades.append(
            PendingCascade(player_index=1, scroll_id="FIRE_SCROLL_2", can_cascade_to_active=True)
        )
        state.decks.piles["fire"].remove("FIRE_SCROLL_2")
        plugin, game_data, phase = _from_state(state)

        assert phase.name == "cascade"
        assert phase.expected_players() == ["p2"]
        actions = plugin.get_valid_actions(game_data, phase, "p2")
        assert actions == [{"action_type": "resolve_cascade", "choice": "new"}]

    def test_fifth_element_ends_game(self) -> None:
        state = duel_state(responders=False)
        state.players[0].scrolls.activated = [Element.WATER, Element.FIRE, Element.WIND, Element.VOID]
        plugin, game_data, phase = _from_state(state)

        result = plugin.apply_action(
            game_data, phase,
            Action(action_type="cast_scroll", player_id="p1", payload={"scroll_id": "EARTH_SCROLL_2"}),
            make_players(),
        )

        assert result.game_over is not None
        assert result.game_over.winners == ["p1"]
        assert result.next_phase.name == "game_over"
        assert result.events[-1].event_type == "game_ended"


class TestPlayerView:
    def test_opponent_hand_is_hidden(self) -> None:
        state = duel_state(responders=False)
        state.players[0].scrolls.hand = ["FIRE_SCROLL_2"]
        state.players[1].scrolls.hand = ["WIND_SCROLL_2"]
        state.decks.piles["fire"].remove("FIRE_SCROLL_2")
        state.decks.piles["wind"].remove("WIND_SCROLL_2")
        plugin, game_data, phase = _from_state(state)

        view = plugin.get_player_view(game_data, phase, "p1", make_players())

        players = view["state"]["players"]
        assert players[0]["scrolls"]["hand"] == ["FIRE_SCROLL_2"]
        assert players[1]["scrolls"]["hand"] == 1
        assert "decks" not in view["state"]
        assert "shrine_deck" not in view["state"]
        assert game_data["state"]["players"][1]["scrolls"]["hand"] == ["WIND_SCROLL_2"]
