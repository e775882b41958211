"""Cast/response resolution engine.

A cast either resolves at once or opens a response window. While the
window is open each player may answer the current top of the stack
with a counter or response scroll, or pass. A response becomes the new
top and starts a new round. Once nobody who has not acted on the top can
respond, the stack resolves in LIFO order. A counter cancels the entry
directly beneath it, and a cancellation never reaches further than that
one entry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from godaigo.engine.models import Event
from godaigo.game.buffs import BuffKind
from godaigo.game.effects import (
    SPENT_TO_COMMON,
    EffectCatalogue,
    EffectContext,
    apply_effect,
)
from godaigo.game.patterns import matches
from godaigo.game.scrolls import get_scroll
from godaigo.game.state import GodaigoState, clamp_void_ap, grant_stones
from godaigo.game.types import (
    Element,
    ResponseStackEntry,
    StackOutcome,
    StackResult,
    WindowStatus,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CastOption:
    scroll_id: str
    from_common_area: bool


@dataclass(frozen=True)
class RespondCheck:
    can_respond: bool
    options: list[CastOption]
    reason: str | None = None


# ── Eligibility ──

def find_castable_scrolls(
    state: GodaigoState,
    player_index: int,
    exclude: set[str] | None = None,
) -> list[CastOption]:
    """Active-area and common-area scrolls whose pattern holds at the player's hex."""
    exclude = exclude or set()
    player = state.players[player_index]
    candidates = [CastOption(s, False) for s in player.scrolls.active]
    candidates += [CastOption(s, True) for s in state.common.scrolls()]
    rules = state.rules
    return [
        option
        for option in candidates
        if option.scroll_id not in exclude
        and matches(
            get_scroll(option.scroll_id),
            player.position,
            state.board,
            rules.hex_size,
            rules.same_hex_epsilon,
        )
    ]


def stack_scroll_ids(state: GodaigoState) -> set[str]:
    return {entry.scroll_id for entry in state.window.stack}


def can_player_respond(state: GodaigoState, player_index: int) -> RespondCheck:
    cost = state.rules.response_cost
    ap = state.players[player_index].ap
    if not ap.can_afford(cost):
        return RespondCheck(False, [], f"Not enough AP (need {cost}, have {ap.total})")
    options = [
        option
        for option in find_castable_scrolls(state, player_index, exclude=stack_scroll_ids(state))
        if get_scroll(option.scroll_id).can_answer
    ]
    if not options:
        return RespondCheck(False, [], "No counter or response scrolls castable at your position")
    return RespondCheck(True, options)


def can_any_player_respond(state: GodaigoState) -> bool:
    return any(
        can_player_respond(state, i).can_respond for i in range(len(state.players))
    )


def players_due(state: GodaigoState) -> list[int]:
    """Players who have not acted on the top of the stack and still could."""
    return [
        i
        for i in range(len(state.players))
        if i not in state.window.acted and can_player_respond(state, i).can_respond
    ]


# ── Window ──

def open_window(state: GodaigoState, entry: ResponseStackEntry, now: float) -> Event:
    window = state.window
    window.status = WindowStatus.WINDOW_OPEN
    window.stack = [entry]
    window.acted = []
    window.deadline = now + state.rules.response_timeout_seconds
    window.last_results = []
    logger.debug(f"Response window opened for {entry.scroll_id}")
    return Event(
        event_type="response_window_opened",
        payload={
            "scroll_id": entry.scroll_id,
            "caster_index": entry.caster_index,
            "deadline": window.deadline,
            "players_due": players_due(state),
        },
    )


def push_response(
    state: GodaigoState,
    player_index: int,
    option: CastOption,
    effect_args: dict,
    now: float,
) -> list[Event]:
    """Charge the flat response cost and put the response on top of the stack."""
    definition = get_scroll(option.scroll_id)
    state.players[player_index].ap.spend(state.rules.response_cost)
    entry = ResponseStackEntry(
        scroll_id=option.scroll_id,
        caster_index=player_index,
        is_counter=definition.can_counter_any,
        from_common_area=option.from_common_area,
        effect_args=effect_args,
    )
    window = state.window
    window.stack.append(entry)
    window.acted = [player_index]
    window.deadline = now + state.rules.response_timeout_seconds

    events = [Event(
        event_type="response_added",
        payload={
            "scroll_id": option.scroll_id,
            "caster_index": player_index,
            "is_counter": entry.is_counter,
            "stack_size": len(window.stack),
        },
    )]
    if state.buffs.has(BuffKind.QUICK_REFLEXES, player_index):
        for element in (Element.VOID, Element.WIND):
            event = grant_stones(state, player_index, element, 1, "CATACOMB_SCROLL_9")
            if event is not None:
                events.append(event)
    return events


def record_pass(state: GodaigoState, player_index: int) -> Event:
    if player_index not in state.window.acted:
        state.window.acted.append(player_index)
    return Event(event_type="response_passed", payload={"player_index": player_index})


def window_settled(state: GodaigoState) -> bool:
    return not players_due(state)


def expire_window(state: GodaigoState, now: float) -> list[Event]:
    """Auto-pass every player still due once the deadline has passed."""
    window = state.window
    if window.status != WindowStatus.WINDOW_OPEN:
        return []
    if window.deadline is None or now < window.deadline:
        return []
    events: list[Event] = []
    for index in players_due(state):
        event = record_pass(state, index)
        event.payload["timed_out"] = True
        events.append(event)
    return events


# ── Resolution ──

def send_to_common(state: GodaigoState, scroll_id: str) -> None:
    """Move a held scroll to the common area."""
    if state.common.contains(scroll_id):
        return
    for player in state.players:
        player.scrolls.remove(scroll_id)
    for pile in state.decks.piles.values():
        if scroll_id in pile:
            pile.remove(scroll_id)
    state.common.place(scroll_id, state.decks)


def retire_from_common(state: GodaigoState, scroll_id: str) -> None:
    """A scroll used from the common area goes to the bottom of its deck."""
    if state.common.remove(scroll_id):
        state.decks.put_bottom(get_scroll(scroll_id).element, scroll_id)


def _after_use(state: GodaigoState, entry: ResponseStackEntry) -> list[Event]:
    events: list[Event] = []
    definition = get_scroll(entry.scroll_id)
    scrolls = state.players[entry.caster_index].scrolls
    added = scrolls.record_activation(definition.activation_elements())
    if added:
        events.append(Event(
            event_type="elements_activated",
            payload={
                "player_index": entry.caster_index,
                "elements": [e.value for e in added],
                "activated": [e.value for e in scrolls.activated],
            },
        ))
    if entry.scroll_id in SPENT_TO_COMMON:
        send_to_common(state, entry.scroll_id)
    elif entry.from_common_area:
        retire_from_common(state, entry.scroll_id)

    if state.winner is None and scrolls.has_all_elements():
        state.winner = entry.caster_index
        logger.debug(f"Player {entry.caster_index} activated all five elements")
        events.append(Event(event_type="game_won", payload={"player_index": entry.caster_index}))
    return events


def resolve_stack(
    state: GodaigoState,
    effects: EffectCatalogue | None,
) -> tuple[list[StackResult], list[Event]]:
    """Pop the stack top to bottom, applying every effect that is not countered."""
    window = state.window
    window.status = WindowStatus.RESOLVING
    stack = list(window.stack)
    trigger = stack[0] if stack else None

    results: list[StackResult] = []
    events: list[Event] = []
    deferred_to_common: list[str] = []
    cancelled = False

    while stack:
        entry = stack.pop()
        if cancelled and not entry.is_counter:
            cancelled = False
            results.append(StackResult(entry=entry, outcome=StackOutcome.COUNTERED))
        elif entry.is_counter and stack:
            cancelled = True
            results.append(StackResult(
                entry=entry,
                outcome=StackOutcome.COUNTERED_TARGET,
                effect={"countered": stack[-1].scroll_id},
            ))
            events.extend(_after_use(state, entry))
        else:
            cancelled = False
            ctx = EffectContext(
                state=state,
                caster_index=entry.caster_index,
                definition=get_scroll(entry.scroll_id),
                entry=entry,
                trigger=trigger if entry is not trigger else None,
                previous_scroll=state.last_scroll_cast,
            )
            outcome = apply_effect(effects, ctx)
            events.extend(outcome.events)
            deferred_to_common.extend(outcome.to_common_after)
            results.append(StackResult(entry=entry, outcome=StackOutcome.RESOLVED, effect=outcome.summary))
            state.last_scroll_cast = entry.scroll_id
            events.extend(_after_use(state, entry))

        if entry.scroll_id in deferred_to_common:
            deferred_to_common.remove(entry.scroll_id)
            send_to_common(state, entry.scroll_id)

    clamp_void_ap(state)
    window.status = WindowStatus.IDLE
    window.stack = []
    window.acted = []
    window.deadline = None
    window.last_results = results
    logger.debug(
        "Stack resolved: "
        + ", ".join(f"{r.entry.scroll_id}={r.outcome.value}" for r in results)
    )
    events.append(Event(
        event_type="stack_resolved",
        payload={"results": [r.model_dump(mode="json") for r in results]},
    ))
    return results, events
