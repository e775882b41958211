"""GodaigoPlugin: implements the GamePlugin protocol for Godaigo."""

from __future__ import annotations

import copy
import time
from typing import Callable, ClassVar

from pydantic import ValidationError

from godaigo.engine.errors import InvalidActionError, PluginError
from godaigo.engine.models import (
    Action,
    ConcurrentMode,
    Event,
    ExpectedAction,
    GameConfig,
    GameResult,
    Phase,
    Player,
    PlayerId,
    TransitionResult,
)
from godaigo.game.controller import GameController, OperationResult
from godaigo.game.effects import StandardEffects
from godaigo.game.player_scrolls import cascade_options
from godaigo.game.resolution import can_player_respond, find_castable_scrolls, players_due
from godaigo.game.state import (
    GodaigoState,
    create_godaigo_state,
    pending_cascade_for,
)
from godaigo.game.types import WindowStatus


def dump_game_data(state: GodaigoState, player_ids: list[str]) -> dict:
    return {"player_ids": list(player_ids), "state": state.model_dump(mode="json")}


def load_game_data(game_data: dict) -> tuple[GodaigoState, list[str]]:
    try:
        return GodaigoState.model_validate(game_data["state"]), list(game_data["player_ids"])
    except (KeyError, ValidationError) as e:
        raise PluginError("Malformed Godaigo game data", original=e) from e


class GodaigoPlugin:
    """Godaigo: move, place elemental stones and cast scrolls to activate all five elements."""

    game_id: ClassVar[str] = "godaigo"
    display_name: ClassVar[str] = "Godaigo"
    min_players: ClassVar[int] = 2
    max_players: ClassVar[int] = 5
    description: ClassVar[str] = (
        "Explore a hidden hex board, place elemental stones and cast scrolls "
        "from stone patterns. First to activate all five elements wins."
    )
    config_schema: ClassVar[dict] = {
        "type": "object",
        "properties": {
            "hand_capacity": {"type": "integer", "minimum": 1},
            "active_capacity": {"type": "integer", "minimum": 1},
            "max_ap": {"type": "integer", "minimum": 1},
            "base_cast_cost": {"type": "integer", "minimum": 0},
            "response_cost": {"type": "integer", "minimum": 0},
            "break_stone_cost": {"type": "integer", "minimum": 0},
            "source_pool_initial": {"type": "integer", "minimum": 0},
            "source_pool_capacity": {"type": "integer", "minimum": 1},
            "player_pool_capacity": {"type": "integer", "minimum": 1},
            "response_timeout_seconds": {"type": "number", "minimum": 0},
            "board_radius": {"type": "integer", "minimum": 1, "maximum": 4},
            "strict_audit": {"type": "boolean"},
        },
    }

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._effects = StandardEffects()

    # ── Lifecycle ──

    def create_initial_state(
        self,
        players: list[Player],
        config: GameConfig,
    ) -> tuple[dict, Phase, list[Event]]:
        seated = sorted(players, key=lambda p: p.seat_index)
        state = create_godaigo_state(len(seated), config.options, config.random_seed)
        player_ids = [p.player_id for p in seated]
        game_data = dump_game_data(state, player_ids)

        events = [
            Event(event_type="game_started", payload={
                "players": player_ids,
                "starts": [list(p.position) for p in state.players],
            }),
        ]
        return game_data, self.phase_for(state, player_ids), events

    def validate_config(self, options: dict) -> list[str]:
        errors: list[str] = []
        properties = self.config_schema["properties"]
        for key, value in options.items():
            prop = properties.get(key)
            if prop is None:
                errors.append(f"Unknown option: {key}")
                continue
            if prop["type"] == "boolean":
                if not isinstance(value, bool):
                    errors.append(f"{key} must be a boolean")
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                errors.append(f"{key} must be a number")
                continue
            if prop["type"] == "integer" and not isinstance(value, int):
                errors.append(f"{key} must be an integer")
                continue
            if value < prop.get("minimum", value):
                errors.append(f"{key} must be at least {prop['minimum']}")
            if value > prop.get("maximum", value):
                errors.append(f"{key} must be at most {prop['maximum']}")
        source_initial = options.get("source_pool_initial")
        source_capacity = options.get("source_pool_capacity")
        if isinstance(source_initial, int) and isinstance(source_capacity, int):
            if source_initial > source_capacity:
                errors.append("source_pool_initial cannot exceed source_pool_capacity")
        return errors

    # ── Core game loop ──

    def get_valid_actions(
        self,
        game_data: dict,
        phase: Phase,
        player_id: PlayerId,
    ) -> list[dict]:
        state, player_ids = load_game_data(game_data)
        if player_id not in player_ids:
            return []
        index = player_ids.index(player_id)

        if phase.name == "response_window":
            if index not in players_due(state):
                return []
            check = can_player_respond(state, index)
            actions = [
                {"action_type": "respond", "scroll_id": o.scroll_id,
                 "from_common_area": o.from_common_area}
                for o in check.options
            ]
            actions.append({"action_type": "pass"})
            return actions

        if phase.name == "cascade":
            pending = pending_cascade_for(state, index)
            if pending is None:
                return []
            return [
                {"action_type": "resolve_cascade", "choice": choice}
                for choice in cascade_options(state.players[index].scrolls)
            ]

        if phase.name != "turn" or index != state.active_player_index:
            return []
        actions = [{"action_type": t} for t in ("move", "place_stone", "break_stone", "end_turn")]
        for option in find_castable_scrolls(state, index):
            actions.append({"action_type": "cast_scroll", "scroll_id": option.scroll_id})
        for scroll_id in state.players[index].scrolls.hand:
            actions.append({"action_type": "prepare_scroll", "scroll_id": scroll_id})
        if state.last_move is not None and state.last_move.player_index == index:
            actions.append({"action_type": "undo_move"})
        return actions

    def validate_action(
        self,
        game_data: dict,
        phase: Phase,
        action: Action,
    ) -> str | None:
        # Dry run against a private copy
        state, player_ids = load_game_data(copy.deepcopy(game_data))
        if action.player_id not in player_ids:
            return f"{action.player_id} is not in this match"
        result = self._dispatch(GameController(state, self._effects, self._clock), player_ids, action)
        return None if result.success else result.reason

    def apply_action(
        self,
        game_data: dict,
        phase: Phase,
        action: Action,
        players: list[Player],
    ) -> TransitionResult:
        state, player_ids = load_game_data(game_data)
        controller = GameController(state, self._effects, self._clock)
        result = self._dispatch(controller, player_ids, action)
        if not result.success:
            raise InvalidActionError(result.reason or "Action failed", action)
        for event in result.events:
            event.player_id = event.player_id or action.player_id
        return self._transition(state, player_ids, result.events, players)

    def on_deadline_expired(
        self,
        game_data: dict,
        phase: Phase,
        now: float,
        players: list[Player],
    ) -> TransitionResult | None:
        if phase.name != "response_window":
            return None
        state, player_ids = load_game_data(game_data)
        result = GameController(state, self._effects, self._clock).expire_response_window(now)
        if not result.success:
            return None
        return self._transition(state, player_ids, result.events, players)

    # ── View filtering ──

    def get_player_view(
        self,
        game_data: dict,
        phase: Phase,
        player_id: PlayerId | None,
        players: list[Player],
    ) -> dict:
        view = copy.deepcopy(game_data)
        player_ids = view["player_ids"]
        for index, player in enumerate(view["state"]["players"]):
            if player_id is not None and index < len(player_ids) and player_ids[index] == player_id:
                continue
            # Hands are private; opponents see only the count
            player["scrolls"]["hand"] = len(player["scrolls"]["hand"])
        view["state"].pop("decks", None)
        view["state"].pop("shrine_deck", None)
        return view

    # ── Private handlers ──

    def _dispatch(
        self,
        controller: GameController,
        player_ids: list[str],
        action: Action,
    ) -> OperationResult:
        index = player_ids.index(action.player_id)
        payload = action.payload
        kind = action.action_type

        if kind == "move":
            if "path" in payload:
                return controller.move_player(index, [tuple(h) for h in payload["path"]])
            if "q" in payload and "r" in payload:
                return controller.move_player_to(index, (payload["q"], payload["r"]))
            return OperationResult.fail("move needs a path or a target q/r")
        if kind == "undo_move":
            return controller.undo_move(index)
        if kind == "place_stone":
            if not {"q", "r", "element"} <= payload.keys():
                return OperationResult.fail("place_stone needs q, r and element")
            return controller.place_stone(index, (payload["q"], payload["r"]), payload["element"])
        if kind == "break_stone":
            if not {"q", "r"} <= payload.keys():
                return OperationResult.fail("break_stone needs q and r")
            return controller.break_stone(index, (payload["q"], payload["r"]))
        if kind == "cast_scroll":
            return controller.cast_scroll(
                index, payload.get("scroll_id", ""), payload.get("effect_args") or {}
            )
        if kind == "prepare_scroll":
            return controller.prepare_scroll(index, payload.get("scroll_id", ""))
        if kind == "resolve_overflow":
            return controller.resolve_overflow(index, payload.get("scroll_id", ""))
        if kind == "end_turn":
            return controller.end_turn(index)
        if kind == "respond":
            return controller.respond(
                index, payload.get("scroll_id", ""), payload.get("effect_args") or {}
            )
        if kind == "pass":
            return controller.pass_response(index)
        if kind == "resolve_cascade":
            return controller.resolve_cascade(index, payload.get("choice", ""))
        return OperationResult.fail(f"Unknown action type: {kind}")

    def _scores(self, state: GodaigoState, player_ids: list[str]) -> dict[str, float]:
        return {
            pid: float(len(state.players[i].scrolls.activated))
            for i, pid in enumerate(player_ids)
        }

    def phase_for(self, state: GodaigoState, player_ids: list[str]) -> Phase:
        if state.winner is not None:
            return Phase(name="game_over", auto_resolve=False)

        if state.window.status == WindowStatus.WINDOW_OPEN:
            return Phase(
                name="response_window",
                concurrent_mode=ConcurrentMode.RESPONSE_WINDOW,
                expected_actions=[
                    ExpectedAction(
                        player_id=player_ids[i],
                        action_type="respond_or_pass",
                        deadline=state.window.deadline,
                    )
                    for i in players_due(state)
                ],
                metadata={
                    "stack": [e.scroll_id for e in state.window.stack],
                    "player_index": state.active_player_index,
                },
            )

        if state.pending_cascades:
            pending = state.pending_cascades[0]
            return Phase(
                name="cascade",
                expected_actions=[
                    ExpectedAction(
                        player_id=player_ids[pending.player_index],
                        action_type="resolve_cascade",
                        constraints={
                            "scroll_id": pending.scroll_id,
                            "can_cascade_to_active": pending.can_cascade_to_active,
                        },
                    ),
                ],
                metadata={"player_index": pending.player_index},
            )

        active = state.active_player_index
        return Phase(
            name="turn",
            concurrent_mode=ConcurrentMode.SEQUENTIAL,
            expected_actions=[
                ExpectedAction(player_id=player_ids[active], action_type="turn_action"),
            ],
            metadata={"player_index": active, "turn_number": state.turn_number},
        )

    def _transition(
        self,
        state: GodaigoState,
        player_ids: list[str],
        events: list[Event],
        players: list[Player],
    ) -> TransitionResult:
        scores = self._scores(state, player_ids)
        game_over = None
        if state.winner is not None:
            winner_id = player_ids[state.winner]
            events.append(Event(
                event_type="game_ended",
                payload={"winners": [winner_id], "final_scores": scores},
            ))
            game_over = GameResult(
                winners=[PlayerId(winner_id)],
                final_scores=scores,
                reason="normal",
                details={"activated": [e.value for e in state.players[state.winner].scrolls.activated]},
            )
        return TransitionResult(
            game_data=dump_game_data(state, player_ids),
            events=events,
            next_phase=self.phase_for(state, player_ids),
            scores=scores,
            game_over=game_over,
        )
