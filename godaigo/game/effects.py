"""Scroll effect catalogue.

The resolution engine decides *when* an effect runs; the catalogue
decides *what* it does. Scrolls without a catalogue entry fall back to
the default stone grant.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol

from godaigo.engine.models import Event
from godaigo.game.board import is_on_board, shrine_at, stone_at
from godaigo.game.buffs import BuffExpiry, BuffKind
from godaigo.game.hexgrid import hex_distance
from godaigo.game.pools import discard_from_player
from godaigo.game.scrolls import get_scroll
from godaigo.game.state import (
    GodaigoState,
    draw_scroll_for,
    gain_ap,
    grant_stones,
    occupied_hexes,
    reveal_tiles_at,
)
from godaigo.game.types import (
    STONE_RANK,
    Element,
    ResponseStackEntry,
    ScrollDefinition,
    ShrineType,
)

logger = logging.getLogger(__name__)

CATACOMB_GRANT = 2
REFLECTING_POOL_RADIUS = 5
BIG_DRAW = 5

# Scrolls that leave their owner for the common area once used
SPENT_TO_COMMON = frozenset({"VOID_SCROLL_1", "FIRE_SCROLL_5", "WIND_SCROLL_4"})


@dataclass
class EffectContext:
    state: GodaigoState
    caster_index: int
    definition: ScrollDefinition
    entry: ResponseStackEntry
    # For responses: the scroll that opened the window
    trigger: ResponseStackEntry | None = None
    previous_scroll: str | None = None

    @property
    def args(self) -> dict:
        return self.entry.effect_args


@dataclass
class EffectOutcome:
    summary: dict = field(default_factory=dict)
    events: list[Event] = field(default_factory=list)
    # Scrolls to send to the common area once they have resolved
    to_common_after: list[str] = field(default_factory=list)


class EffectCatalogue(Protocol):
    def check_args(
        self,
        state: GodaigoState,
        caster_index: int,
        scroll_id: str,
        args: dict,
    ) -> str | None:
        """Validate player choices for an effect before it is cast."""
        ...

    def apply(self, ctx: EffectContext) -> EffectOutcome | None:
        """Apply a scroll's effect. None means no entry for this scroll."""
        ...


def default_effect(ctx: EffectContext) -> EffectOutcome:
    """Grant stones: level x element, or +2 of each pattern element for catacombs."""
    outcome = EffectOutcome()
    definition = ctx.definition
    if definition.is_catacomb:
        grants = [(e, CATACOMB_GRANT) for e in definition.pattern_elements()]
    else:
        grants = [(Element(definition.element), definition.level)]
    for element, count in grants:
        event = grant_stones(ctx.state, ctx.caster_index, element, count, definition.scroll_id)
        if event is not None:
            outcome.events.append(event)
        outcome.summary[element.value] = event.payload["count"] if event else 0
    return outcome


def _parse_element(value) -> Element | None:
    try:
        return Element(value)
    except ValueError:
        return None


def _target_index(state: GodaigoState, args: dict) -> int | None:
    target = args.get("target_player")
    if not isinstance(target, int) or not 0 <= target < len(state.players):
        return None
    return target


class StandardEffects:
    """Built-in effects for the scrolls that do more than grant stones."""

    def __init__(self) -> None:
        self._handlers: dict[str, Callable[[EffectContext], EffectOutcome]] = {
            "EARTH_SCROLL_1": self._counter,
            "VOID_SCROLL_1": self._counter,
            "WATER_SCROLL_1": self._reflect,
            "FIRE_SCROLL_1": self._unbidden_lamplight,
            "FIRE_SCROLL_2": self._burning_motivation,
            "EARTH_SCROLL_3": self._masons_savvy,
            "EARTH_SCROLL_5": self._avalanche,
            "WIND_SCROLL_2": self._respirate,
            "WIND_SCROLL_1": self._sigh_of_recollection,
            "VOID_SCROLL_4": self._simplify,
            "VOID_SCROLL_5": self._create,
            "CATACOMB_SCROLL_1": self._mudslide,
            "CATACOMB_SCROLL_2": self._mine,
            "CATACOMB_SCROLL_5": self._steam_vents,
            "CATACOMB_SCROLL_6": self._seed_the_skies,
            "CATACOMB_SCROLL_7": self._reflecting_pool,
            "CATACOMB_SCROLL_9": self._quick_reflexes,
            "FIRE_SCROLL_5": self._arson,
            "WIND_SCROLL_4": self._take_flight,
        }

    def apply(self, ctx: EffectContext) -> EffectOutcome | None:
        handler = self._handlers.get(ctx.definition.scroll_id)
        if handler is None:
            return None
        return handler(ctx)

    def check_args(
        self,
        state: GodaigoState,
        caster_index: int,
        scroll_id: str,
        args: dict,
    ) -> str | None:
        if scroll_id == "VOID_SCROLL_5":
            if _parse_element(args.get("element")) is None:
                return "Create needs an element to draw"
        elif scroll_id == "FIRE_SCROLL_5":
            return self._arson_error(state, caster_index, args)
        elif scroll_id == "WIND_SCROLL_4":
            return self._take_flight_error(state, args)
        return None

    # ------------------------------------------------------------------ #
    #  Counters and reactions
    # ------------------------------------------------------------------ #

    def _counter(self, ctx: EffectContext) -> EffectOutcome:
        # Reaching here means there was nothing beneath it to counter
        return EffectOutcome(summary={"countered": None})

    def _reflect(self, ctx: EffectContext) -> EffectOutcome:
        target = ctx.trigger.scroll_id if ctx.trigger is not None else ctx.previous_scroll
        if target is None or target == ctx.definition.scroll_id:
            return EffectOutcome(summary={"reflected": None})
        inner_ctx = EffectContext(
            state=ctx.state,
            caster_index=ctx.caster_index,
            definition=get_scroll(target),
            entry=ctx.entry,
        )
        inner = self.apply(inner_ctx) or default_effect(inner_ctx)
        inner.summary = {"reflected": target, **inner.summary}
        return inner

    def _unbidden_lamplight(self, ctx: EffectContext) -> EffectOutcome:
        if ctx.trigger is None:
            return EffectOutcome(summary={"sent_to_common": None})
        return EffectOutcome(
            summary={"sent_to_common": ctx.trigger.scroll_id},
            to_common_after=[ctx.trigger.scroll_id],
        )

    def _sigh_of_recollection(self, ctx: EffectContext) -> EffectOutcome:
        target = ctx.trigger.scroll_id if ctx.trigger is not None else ctx.previous_scroll
        outcome = EffectOutcome(summary={"recalled": target})
        if target is None:
            return outcome
        recalled = get_scroll(target)
        for element in recalled.activation_elements():
            event = grant_stones(ctx.state, ctx.caster_index, element, 1, "WIND_SCROLL_1")
            if event is not None:
                outcome.events.append(event)
        # The recalled scroll's own deck, catacomb included
        outcome.events.extend(draw_scroll_for(ctx.state, ctx.caster_index, recalled.element))
        return outcome

    # ------------------------------------------------------------------ #
    #  Buffs
    # ------------------------------------------------------------------ #

    def _buff(
        self,
        ctx: EffectContext,
        kind: BuffKind,
        expiry: BuffExpiry = BuffExpiry.END_OF_TURN,
        stackable: bool = False,
        data: dict | None = None,
    ) -> EffectOutcome:
        buff = ctx.state.buffs.add(kind, ctx.caster_index, expiry, data, stackable)
        return EffectOutcome(summary={"buff": kind.value, "stacks": buff.stacks})

    def _burning_motivation(self, ctx: EffectContext) -> EffectOutcome:
        return self._buff(ctx, BuffKind.BURNING_MOTIVATION, stackable=True)

    def _avalanche(self, ctx: EffectContext) -> EffectOutcome:
        return self._buff(ctx, BuffKind.AVALANCHE)

    def _simplify(self, ctx: EffectContext) -> EffectOutcome:
        return self._buff(ctx, BuffKind.SIMPLIFY)

    def _mudslide(self, ctx: EffectContext) -> EffectOutcome:
        return self._buff(ctx, BuffKind.MUDSLIDE)

    def _steam_vents(self, ctx: EffectContext) -> EffectOutcome:
        return self._buff(ctx, BuffKind.STEAM_VENTS)

    def _quick_reflexes(self, ctx: EffectContext) -> EffectOutcome:
        return self._buff(ctx, BuffKind.QUICK_REFLEXES, expiry=BuffExpiry.NEXT_TURN)

    def _draw_with_buff(
        self,
        ctx: EffectContext,
        element: Element,
        count: int,
        kind: BuffKind,
    ) -> EffectOutcome:
        outcome = self._buff(ctx, kind)
        event = grant_stones(ctx.state, ctx.caster_index, element, count, ctx.definition.scroll_id)
        if event is not None:
            outcome.events.append(event)
        outcome.summary[element.value] = event.payload["count"] if event else 0
        return outcome

    def _masons_savvy(self, ctx: EffectContext) -> EffectOutcome:
        return self._draw_with_buff(ctx, Element.EARTH, BIG_DRAW, BuffKind.MASONS_SAVVY)

    def _seed_the_skies(self, ctx: EffectContext) -> EffectOutcome:
        return self._draw_with_buff(ctx, Element.WATER, BIG_DRAW, BuffKind.SEED_THE_SKIES)

    def _respirate(self, ctx: EffectContext) -> EffectOutcome:
        return self._draw_with_buff(ctx, Element.WIND, 2, BuffKind.RESPIRATE)

    def _mine(self, ctx: EffectContext) -> EffectOutcome:
        position = ctx.state.players[ctx.caster_index].position
        shrine = shrine_at(ctx.state.board, position)
        if shrine is None or shrine.shrine == ShrineType.CATACOMB:
            return EffectOutcome(summary={"buff": None, "reason": "not on an elemental shrine"})
        return self._buff(ctx, BuffKind.MINE, data={"shrine": shrine.shrine.value})

    # ------------------------------------------------------------------ #
    #  Stones and AP
    # ------------------------------------------------------------------ #

    def _create(self, ctx: EffectContext) -> EffectOutcome:
        element = _parse_element(ctx.args.get("element"))
        if element is None:
            return EffectOutcome(summary={"skipped": "no element chosen"})
        outcome = EffectOutcome()
        event = grant_stones(
            ctx.state, ctx.caster_index, element, STONE_RANK[element], "VOID_SCROLL_5"
        )
        if event is not None:
            outcome.events.append(event)
        outcome.summary[element.value] = event.payload["count"] if event else 0
        return outcome

    def _reflecting_pool(self, ctx: EffectContext) -> EffectOutcome:
        state = ctx.state
        if state.buffs.has(BuffKind.REFLECTING_POOL_USED, ctx.caster_index):
            return EffectOutcome(summary={"ap_gained": 0, "reason": "already used this turn"})
        position = state.players[ctx.caster_index].position
        nearby = {
            stone.element
            for stone in state.board.stones.values()
            if hex_distance(stone.hex, position) <= REFLECTING_POOL_RADIUS
        }
        gained = 2 * len(nearby)
        gain_ap(state, ctx.caster_index, gained)
        state.buffs.add(BuffKind.REFLECTING_POOL_USED, ctx.caster_index)
        return EffectOutcome(summary={"ap_gained": gained, "types": sorted(e.value for e in nearby)})

    def _arson_error(self, state: GodaigoState, caster_index: int, args: dict) -> str | None:
        target = _target_index(state, args)
        if target is None or target == caster_index:
            return "Arson needs an opponent to target"
        element = _parse_element(args.get("element"))
        if element is None:
            return "Arson needs an element to destroy"
        if state.pools.players[target][element] <= 0:
            return f"Target has no {element.value} stones"
        return None

    def _arson(self, ctx: EffectContext) -> EffectOutcome:
        reason = self._arson_error(ctx.state, ctx.caster_index, ctx.args)
        if reason is not None:
            return EffectOutcome(summary={"skipped": reason})
        target = ctx.args["target_player"]
        element = Element(ctx.args["element"])
        discard_from_player(ctx.state.pools, target, element, 1)
        event = Event(
            event_type="stone_burned",
            payload={"player_index": target, "element": element.value, "count": 1},
        )
        return EffectOutcome(
            summary={"target_player": target, "element": element.value},
            events=[event],
        )

    # ------------------------------------------------------------------ #
    #  Movement
    # ------------------------------------------------------------------ #

    def _take_flight_error(self, state: GodaigoState, args: dict) -> str | None:
        target = _target_index(state, args)
        if target is None:
            return "Take Flight needs a player to move"
        try:
            dest = (int(args["q"]), int(args["r"]))
        except (KeyError, TypeError, ValueError):
            return "Take Flight needs a destination hex"
        if not is_on_board(state.board, dest):
            return "Destination is not on the board"
        if dest in occupied_hexes(state, exclude_index=target):
            return "Destination is occupied by another player"
        if stone_at(state.board, dest) is not None:
            return "Destination holds a stone"
        return None

    def _take_flight(self, ctx: EffectContext) -> EffectOutcome:
        state = ctx.state
        reason = self._take_flight_error(state, ctx.args)
        if reason is not None:
            return EffectOutcome(summary={"skipped": reason})
        target = ctx.args["target_player"]
        dest = (int(ctx.args["q"]), int(ctx.args["r"]))
        state.players[target].position = dest
        events = [Event(
            event_type="player_teleported",
            payload={"player_index": target, "q": dest[0], "r": dest[1]},
        )]
        events.extend(reveal_tiles_at(state, dest, target))
        return EffectOutcome(
            summary={"target_player": target, "q": dest[0], "r": dest[1]},
            events=events,
        )


def apply_effect(catalogue: EffectCatalogue | None, ctx: EffectContext) -> EffectOutcome:
    outcome = catalogue.apply(ctx) if catalogue is not None else None
    if outcome is None:
        outcome = default_effect(ctx)
    logger.debug(f"Effect {ctx.definition.scroll_id} for player {ctx.caster_index}: {outcome.summary}")
    return outcome
