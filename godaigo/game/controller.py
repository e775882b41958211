"""GameController: the single owner of a match's rules state.

Every player-facing operation returns an ``OperationResult``. Failed
preconditions come back as ``success=False`` with a reason; nothing here
raises for a rule violation.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from pydantic import BaseModel, Field

from godaigo.engine.models import Event
from godaigo.game.ap import cast_cost
from godaigo.game.board import is_on_board, put_stone, shrine_at, stone_at, take_stone
from godaigo.game.buffs import BuffKind
from godaigo.game.effects import EffectCatalogue
from godaigo.game.hexgrid import Hex, hex_distance
from godaigo.game.interactions import effective_type, recheck_all_stone_interactions
from godaigo.game.movement import (
    extend_path,
    landing_error,
    path_cost,
    shortest_path,
    step_cost,
)
from godaigo.game.patterns import matches
from godaigo.game.player_scrolls import cascade_options, overflow, resolve_cascade
from godaigo.game.pools import discard_from_player, return_to_source, withdraw_for_placement
from godaigo.game.resolution import (
    can_any_player_respond,
    can_player_respond,
    expire_window,
    open_window,
    push_response,
    record_pass,
    resolve_stack,
    send_to_common,
    window_settled,
)
from godaigo.game.scrolls import SCROLL_DEFINITIONS, get_scroll
from godaigo.game.state import (
    GodaigoState,
    LastMove,
    check_invariants,
    clamp_void_ap,
    draw_scroll_for,
    gain_ap,
    grant_stones,
    occupied_hexes,
    pending_cascade_for,
    refresh_ap,
    reveal_tiles_at,
)
from godaigo.game.types import (
    SCROLL_ELEMENTS,
    STONE_RANK,
    Element,
    ResponseStackEntry,
    ShrineType,
    WindowStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_PLACE_RANGE = 1
MASONS_SAVVY_RANGE = 5
BREAK_RANGE = 1
BURNING_MOTIVATION_AP = 2


class OperationResult(BaseModel):
    success: bool
    reason: str | None = None
    events: list[Event] = Field(default_factory=list)
    data: dict = Field(default_factory=dict)

    @classmethod
    def fail(cls, reason: str) -> OperationResult:
        return cls(success=False, reason=reason)

    @classmethod
    def ok(cls, events: list[Event] | None = None, **data) -> OperationResult:
        return cls(success=True, events=events or [], data=data)


def _parse_element(value) -> Element | None:
    try:
        return Element(value)
    except ValueError:
        return None


class GameController:
    """Owns one ``GodaigoState`` and applies rule operations to it."""

    def __init__(
        self,
        state: GodaigoState,
        effects: EffectCatalogue | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.state = state
        self.effects = effects
        self._clock = clock

    # ------------------------------------------------------------------ #
    #  Gates
    # ------------------------------------------------------------------ #

    def _valid_player(self, player_index: int) -> bool:
        return 0 <= player_index < len(self.state.players)

    def _turn_error(self, player_index: int) -> str | None:
        state = self.state
        if not self._valid_player(player_index):
            return f"No player at index {player_index}"
        if state.winner is not None:
            return "The game is over"
        if state.window.status != WindowStatus.IDLE:
            return "A response window is open"
        if state.pending_cascades:
            pending = state.pending_cascades[0]
            if pending.player_index == player_index:
                return "You must resolve your pending cascade first"
            return f"Waiting for player {pending.player_index} to resolve a cascade"
        if player_index != state.active_player_index:
            return "Not your turn"
        return None

    def _finish(self, result: OperationResult) -> OperationResult:
        check_invariants(self.state)
        return result

    # ------------------------------------------------------------------ #
    #  Casting and the response window
    # ------------------------------------------------------------------ #

    def current_cast_cost(self, player_index: int, scroll_id: str) -> int:
        buffs = self.state.buffs
        return cast_cost(
            get_scroll(scroll_id).level,
            self.state.rules.base_cast_cost,
            reduced=buffs.has(BuffKind.SIMPLIFY, player_index),
            level_one_free=buffs.has(BuffKind.QUICK_REFLEXES, player_index),
        )

    def _args_error(self, player_index: int, scroll_id: str, effect_args: dict) -> str | None:
        if self.effects is None:
            return None
        return self.effects.check_args(self.state, player_index, scroll_id, effect_args)

    def can_player_respond(self, player_index: int) -> OperationResult:
        if not self._valid_player(player_index):
            return OperationResult.fail(f"No player at index {player_index}")
        check = can_player_respond(self.state, player_index)
        if not check.can_respond:
            return OperationResult.fail(check.reason or "Cannot respond")
        return OperationResult.ok(
            options=[
                {"scroll_id": o.scroll_id, "from_common_area": o.from_common_area}
                for o in check.options
            ]
        )

    def cast_scroll(
        self,
        player_index: int,
        scroll_id: str,
        effect_args: dict | None = None,
    ) -> OperationResult:
        error = self._turn_error(player_index)
        if error:
            return OperationResult.fail(error)
        if scroll_id not in SCROLL_DEFINITIONS:
            return OperationResult.fail(f"Unknown scroll: {scroll_id}")

        state = self.state
        player = state.players[player_index]
        definition = get_scroll(scroll_id)
        if scroll_id in player.scrolls.active:
            from_common = False
        elif state.common.contains(scroll_id):
            from_common = True
        else:
            return OperationResult.fail("Scroll is not in your active area or the common area")
        if definition.is_response_only:
            return OperationResult.fail(f"{definition.name} can only be used as a response")
        if not matches(
            definition, player.position, state.board,
            state.rules.hex_size, state.rules.same_hex_epsilon,
        ):
            return OperationResult.fail("Pattern not satisfied at your position")

        cost = self.current_cast_cost(player_index, scroll_id)
        if not player.ap.can_afford(cost):
            return OperationResult.fail(f"Not enough AP (need {cost}, have {player.ap.total})")
        args = effect_args or {}
        error = self._args_error(player_index, scroll_id, args)
        if error:
            return OperationResult.fail(error)

        player.ap.spend(cost)
        state.last_move = None
        entry = ResponseStackEntry(
            scroll_id=scroll_id,
            caster_index=player_index,
            is_counter=definition.can_counter_any,
            is_original=True,
            from_common_area=from_common,
            effect_args=args,
        )
        events = [Event(
            event_type="scroll_cast",
            payload={"scroll_id": scroll_id, "caster_index": player_index, "cost": cost},
        )]
        logger.debug(f"Player {player_index} casts {scroll_id} for {cost} AP")

        state.window.stack = [entry]
        if can_any_player_respond(state):
            events.append(open_window(state, entry, self._clock()))
            return self._finish(OperationResult.ok(events, window_open=True, cost=cost))

        results, resolved = resolve_stack(state, self.effects)
        events.extend(resolved)
        return self._finish(OperationResult.ok(
            events,
            window_open=False,
            skipped=True,
            cost=cost,
            results=[r.model_dump(mode="json") for r in results],
        ))

    def _window_error(self, player_index: int) -> str | None:
        if not self._valid_player(player_index):
            return f"No player at index {player_index}"
        if self.state.window.status != WindowStatus.WINDOW_OPEN:
            return "No response window is open"
        if player_index in self.state.window.acted:
            return "You have already acted on this scroll"
        return None

    def respond(
        self,
        player_index: int,
        scroll_id: str,
        effect_args: dict | None = None,
    ) -> OperationResult:
        error = self._window_error(player_index)
        if error:
            return OperationResult.fail(error)
        check = can_player_respond(self.state, player_index)
        if not check.can_respond:
            return OperationResult.fail(check.reason or "Cannot respond")
        option = next((o for o in check.options if o.scroll_id == scroll_id), None)
        if option is None:
            return OperationResult.fail(f"{scroll_id} is not a valid response for you")
        args = effect_args or {}
        error = self._args_error(player_index, scroll_id, args)
        if error:
            return OperationResult.fail(error)

        events = push_response(self.state, player_index, option, args, self._clock())
        logger.debug(f"Player {player_index} responds with {scroll_id}")
        return self._finish(self._advance_window(events))

    def pass_response(self, player_index: int) -> OperationResult:
        error = self._window_error(player_index)
        if error:
            return OperationResult.fail(error)
        events = [record_pass(self.state, player_index)]
        return self._finish(self._advance_window(events))

    def expire_response_window(self, now: float | None = None) -> OperationResult:
        """Auto-pass everyone still due if the window deadline has passed."""
        if self.state.window.status != WindowStatus.WINDOW_OPEN:
            return OperationResult.fail("No response window is open")
        events = expire_window(self.state, self._clock() if now is None else now)
        if not events:
            return OperationResult.fail("Response deadline has not passed")
        return self._finish(self._advance_window(events))

    def _advance_window(self, events: list[Event]) -> OperationResult:
        state = self.state
        if not window_settled(state):
            return OperationResult.ok(events, window_open=True, deadline=state.window.deadline)
        results, resolved = resolve_stack(state, self.effects)
        events.extend(resolved)
        return OperationResult.ok(
            events,
            window_open=False,
            results=[r.model_dump(mode="json") for r in results],
        )

    # ------------------------------------------------------------------ #
    #  Movement
    # ------------------------------------------------------------------ #

    def _movement_flags(self, player_index: int) -> tuple[bool, bool]:
        buffs = self.state.buffs
        return (
            buffs.has(BuffKind.MUDSLIDE, player_index),
            buffs.has(BuffKind.STEAM_VENTS, player_index),
        )

    def can_player_move_to_hex(self, player_index: int, target: Hex) -> OperationResult:
        """Check a single step from the player's hex to a neighbouring hex."""
        error = self._turn_error(player_index)
        if error:
            return OperationResult.fail(error)
        state = self.state
        player = state.players[player_index]
        target = tuple(target)
        if hex_distance(player.position, target) != 1:
            return OperationResult.fail("Target hex is not adjacent")
        mudslide, steam = self._movement_flags(player_index)
        check = step_cost(state.board, target, occupied_hexes(state, player_index), mudslide)
        if not check.can_move:
            return OperationResult.fail(check.reason or "Cannot move there")
        cost = path_cost(
            state.board, [player.position, target], occupied_hexes(state, player_index),
            mudslide, steam, state.steam_bank,
        ).total
        if not player.ap.can_afford(cost):
            return OperationResult.fail(f"Not enough AP (need {cost}, have {player.ap.total})")
        landing = landing_error(state.board, target)
        return OperationResult.ok(cost=cost, can_end_here=landing is None)

    def calculate_path_cost(self, player_index: int, path: list[Hex]) -> OperationResult:
        if not self._valid_player(player_index):
            return OperationResult.fail(f"No player at index {player_index}")
        state = self.state
        full = self._full_path(player_index, path)
        mudslide, steam = self._movement_flags(player_index)
        cost = path_cost(
            state.board, full, occupied_hexes(state, player_index),
            mudslide, steam, state.steam_bank,
        )
        if not cost.can_move:
            return OperationResult.fail(cost.reason or "Path is blocked")
        return OperationResult.ok(cost=cost.total, banked_after=cost.banked_after)

    def extend_move_path(self, player_index: int, path: list[Hex], target: Hex) -> OperationResult:
        """Grow a path under construction by one hex, checking affordability."""
        error = self._turn_error(player_index)
        if error:
            return OperationResult.fail(error)
        state = self.state
        mudslide, steam = self._movement_flags(player_index)
        new_path, reason = extend_path(
            state.board,
            self._full_path(player_index, path),
            tuple(target),
            occupied_hexes(state, player_index),
            state.players[player_index].ap.total,
            mudslide,
            steam,
            state.steam_bank,
        )
        if new_path is None:
            return OperationResult.fail(reason or "Cannot extend path")
        return OperationResult.ok(path=[list(h) for h in new_path])

    def _full_path(self, player_index: int, path: list[Hex]) -> list[Hex]:
        start = self.state.players[player_index].position
        hexes = [tuple(h) for h in path]
        if not hexes or hexes[0] != start:
            hexes.insert(0, start)
        return hexes

    def move_player(self, player_index: int, path: list[Hex]) -> OperationResult:
        error = self._turn_error(player_index)
        if error:
            return OperationResult.fail(error)
        state = self.state
        player = state.players[player_index]
        full = self._full_path(player_index, path)
        if len(full) < 2:
            return OperationResult.fail("Path has no steps")

        mudslide, steam = self._movement_flags(player_index)
        cost = path_cost(
            state.board, full, occupied_hexes(state, player_index),
            mudslide, steam, state.steam_bank,
        )
        if not cost.can_move:
            return OperationResult.fail(cost.reason or "Path is blocked")
        landing = landing_error(state.board, full[-1])
        if landing:
            return OperationResult.fail(landing)
        if not player.ap.can_afford(cost.total):
            return OperationResult.fail(f"Not enough AP (need {cost.total}, have {player.ap.total})")

        state.last_move = LastMove(
            player_index=player_index,
            from_hex=player.position,
            ap_before=player.ap.model_copy(),
            steam_bank_before=state.steam_bank,
        )
        player.ap.spend(cost.total)
        if steam:
            state.steam_bank = cost.banked_after
        player.position = full[-1]

        events = [Event(
            event_type="player_moved",
            payload={
                "player_index": player_index,
                "path": [list(h) for h in full],
                "cost": cost.total,
            },
        )]
        revealed = reveal_tiles_at(state, full[-1], player_index)
        if revealed:
            # A reveal draws a scroll, which cannot be taken back
            state.last_move = None
            events.extend(revealed)
        return self._finish(OperationResult.ok(events, cost=cost.total))

    def move_player_to(self, player_index: int, target: Hex) -> OperationResult:
        """Move along the cheapest path to ``target``."""
        error = self._turn_error(player_index)
        if error:
            return OperationResult.fail(error)
        state = self.state
        mudslide, steam = self._movement_flags(player_index)
        path = shortest_path(
            state.board,
            state.players[player_index].position,
            tuple(target),
            occupied_hexes(state, player_index),
            mudslide,
            steam,
            state.steam_bank,
        )
        if path is None:
            return OperationResult.fail("No path to that hex")
        return self.move_player(player_index, path)

    def undo_move(self, player_index: int) -> OperationResult:
        error = self._turn_error(player_index)
        if error:
            return OperationResult.fail(error)
        state = self.state
        last = state.last_move
        if last is None or last.player_index != player_index:
            return OperationResult.fail("No move to undo")
        player = state.players[player_index]
        player.position = last.from_hex
        player.ap = last.ap_before
        state.steam_bank = last.steam_bank_before
        state.last_move = None
        event = Event(
            event_type="move_undone",
            payload={"player_index": player_index, "q": last.from_hex[0], "r": last.from_hex[1]},
        )
        return self._finish(OperationResult.ok([event]))

    # ------------------------------------------------------------------ #
    #  Stones
    # ------------------------------------------------------------------ #

    def placement_range(self, player_index: int, element: Element) -> int | None:
        """Max distance for placing ``element``; None means anywhere."""
        buffs = self.state.buffs
        if buffs.has(BuffKind.AVALANCHE, player_index):
            return None
        if element in (Element.WATER, Element.WIND) and buffs.has(BuffKind.SEED_THE_SKIES, player_index):
            return None
        if element == Element.EARTH and buffs.has(BuffKind.MASONS_SAVVY, player_index):
            return MASONS_SAVVY_RANGE
        return DEFAULT_PLACE_RANGE

    def place_stone(self, player_index: int, target: Hex, element: str | Element) -> OperationResult:
        error = self._turn_error(player_index)
        if error:
            return OperationResult.fail(error)
        stone_type = _parse_element(element)
        if stone_type is None:
            return OperationResult.fail(f"Unknown element: {element}")

        state = self.state
        target = tuple(target)
        player = state.players[player_index]
        if state.pools.players[player_index][stone_type] <= 0:
            return OperationResult.fail(f"No {stone_type.value} stones in your pool")
        if not is_on_board(state.board, target):
            return OperationResult.fail("Hex is not on the board")
        if stone_at(state.board, target) is not None:
            return OperationResult.fail("Hex already holds a stone")
        if target in occupied_hexes(state):
            return OperationResult.fail("Hex is occupied by a player")
        limit = self.placement_range(player_index, stone_type)
        if limit is not None and hex_distance(player.position, target) > limit:
            return OperationResult.fail(f"Stone must be placed within {limit} hex(es) of you")

        withdraw_for_placement(state.pools, player_index, stone_type)
        stone = put_stone(state.board, target, stone_type, placed_by=player_index)
        state.last_move = None
        events = [Event(
            event_type="stone_placed",
            payload={
                "player_index": player_index,
                "stone_id": stone.stone_id,
                "q": target[0],
                "r": target[1],
                "element": stone_type.value,
                "effective_type": effective_type(state.board, stone).value,
            },
        )]
        events.extend(recheck_all_stone_interactions(state.board, state.pools))
        clamp_void_ap(state)

        stacks = state.buffs.stacks(BuffKind.BURNING_MOTIVATION, player_index)
        if stacks:
            gain_ap(state, player_index, BURNING_MOTIVATION_AP * stacks)
            events.append(Event(
                event_type="ap_gained",
                payload={"player_index": player_index, "amount": BURNING_MOTIVATION_AP * stacks},
            ))
        return self._finish(OperationResult.ok(events, survived=stone_at(state.board, target) is not None))

    def break_stone(self, player_index: int, target: Hex) -> OperationResult:
        error = self._turn_error(player_index)
        if error:
            return OperationResult.fail(error)
        state = self.state
        target = tuple(target)
        player = state.players[player_index]
        if stone_at(state.board, target) is None:
            return OperationResult.fail("No stone on that hex")
        if hex_distance(player.position, target) > BREAK_RANGE:
            return OperationResult.fail("Stone must be adjacent to you")
        cost = state.rules.break_stone_cost
        if not player.ap.can_afford(cost):
            return OperationResult.fail(f"Not enough AP (need {cost}, have {player.ap.total})")

        player.ap.spend(cost)
        stone = take_stone(state.board, target)
        return_to_source(state.pools, stone.element)
        state.last_move = None
        events = [Event(
            event_type="stone_broken",
            payload={
                "player_index": player_index,
                "stone_id": stone.stone_id,
                "q": target[0],
                "r": target[1],
                "element": stone.element.value,
            },
        )]
        events.extend(recheck_all_stone_interactions(state.board, state.pools))
        return self._finish(OperationResult.ok(events, cost=cost))

    # ------------------------------------------------------------------ #
    #  Scroll collections
    # ------------------------------------------------------------------ #

    def draw_scroll(self, player_index: int, deck: str) -> OperationResult:
        """Draw the top scroll of a deck for a player (tile reveal hook)."""
        if not self._valid_player(player_index):
            return OperationResult.fail(f"No player at index {player_index}")
        if self.state.winner is not None:
            return OperationResult.fail("The game is over")
        if deck not in SCROLL_ELEMENTS:
            return OperationResult.fail(f"Unknown deck: {deck}")
        events = draw_scroll_for(self.state, player_index, deck)
        return self._finish(OperationResult.ok(
            events,
            cascade=pending_cascade_for(self.state, player_index) is not None,
        ))

    def prepare_scroll(self, player_index: int, scroll_id: str) -> OperationResult:
        """Move a scroll from hand to the active area."""
        error = self._turn_error(player_index)
        if error:
            return OperationResult.fail(error)
        scrolls = self.state.players[player_index].scrolls
        if scroll_id not in scrolls.hand:
            return OperationResult.fail("Scroll is not in your hand")
        if len(scrolls.active) >= self.state.rules.active_capacity:
            return OperationResult.fail("Active area is full")
        scrolls.hand.remove(scroll_id)
        scrolls.active.append(scroll_id)
        event = Event(
            event_type="scroll_prepared",
            payload={"player_index": player_index, "scroll_id": scroll_id},
        )
        return self._finish(OperationResult.ok([event]))

    def resolve_cascade(self, player_index: int, choice: str) -> OperationResult:
        state = self.state
        if not self._valid_player(player_index):
            return OperationResult.fail(f"No player at index {player_index}")
        pending = pending_cascade_for(state, player_index)
        if pending is None:
            return OperationResult.fail("No cascade pending")
        scrolls = state.players[player_index].scrolls
        if choice not in cascade_options(scrolls):
            return OperationResult.fail(f"{choice} is not a valid cascade choice")
        reason = resolve_cascade(
            pending, choice, scrolls, state.common, state.decks, state.rules.active_capacity
        )
        if reason:
            return OperationResult.fail(reason)
        state.pending_cascades.remove(pending)
        event = Event(
            event_type="cascade_resolved",
            payload={"player_index": player_index, "scroll_id": pending.scroll_id, "choice": choice},
        )
        return self._finish(OperationResult.ok([event]))

    def resolve_overflow(self, player_index: int, scroll_id: str) -> OperationResult:
        """Send a held scroll to the common area while over capacity."""
        error = self._turn_error(player_index)
        if error:
            return OperationResult.fail(error)
        rules = self.state.rules
        scrolls = self.state.players[player_index].scrolls
        if not overflow(scrolls, rules.hand_capacity, rules.active_capacity):
            return OperationResult.fail("Your scrolls are within capacity")
        if scroll_id not in scrolls.hand and scroll_id not in scrolls.active:
            return OperationResult.fail("You do not hold that scroll")
        send_to_common(self.state, scroll_id)
        event = Event(
            event_type="scroll_discarded",
            payload={"player_index": player_index, "scroll_id": scroll_id},
        )
        return self._finish(OperationResult.ok([event]))

    # ------------------------------------------------------------------ #
    #  Turn
    # ------------------------------------------------------------------ #

    def _replenish_shrine(self, player_index: int) -> list[Event]:
        state = self.state
        shrine = shrine_at(state.board, state.players[player_index].position)
        if shrine is None or shrine.shrine == ShrineType.CATACOMB:
            return []
        element = Element(shrine.shrine.value)
        amount = STONE_RANK[element]
        mine = state.buffs.get(BuffKind.MINE, player_index)
        if mine is not None and mine.data.get("shrine") == element.value:
            amount *= 2
        event = grant_stones(state, player_index, element, amount, "shrine")
        return [event] if event is not None else []

    def end_turn(self, player_index: int) -> OperationResult:
        error = self._turn_error(player_index)
        if error:
            return OperationResult.fail(error)
        state = self.state
        rules = state.rules
        if overflow(state.players[player_index].scrolls, rules.hand_capacity, rules.active_capacity):
            return OperationResult.fail("Too many scrolls: send some to the common area first")

        events = self._replenish_shrine(player_index)
        if state.buffs.has(BuffKind.RESPIRATE, player_index):
            returned = discard_from_player(
                state.pools, player_index, Element.WIND,
                state.pools.players[player_index][Element.WIND],
            )
            if returned:
                events.append(Event(
                    event_type="stones_returned",
                    payload={"player_index": player_index, "element": "wind", "count": returned},
                ))
        state.buffs.clear_end_of_turn()
        state.steam_bank = False
        state.last_scroll_cast = None
        state.last_move = None

        next_index = (player_index + 1) % len(state.players)
        state.active_player_index = next_index
        state.turn_number += 1
        state.buffs.clear_next_turn(next_index)
        refresh_ap(state, next_index)
        events.append(Event(
            event_type="turn_started",
            payload={"player_index": next_index, "turn_number": state.turn_number},
        ))
        logger.debug(f"Turn {state.turn_number}: player {next_index}")
        return self._finish(OperationResult.ok(events, active_player_index=next_index))
