"""Aggregate Godaigo rules state and the helpers every rule module shares."""

from __future__ import annotations

import logging
import random

from pydantic import BaseModel, Field

from godaigo.config import settings
from godaigo.engine.errors import InvariantViolationError
from godaigo.engine.models import Event
from godaigo.game.ap import APState
from godaigo.game.board import BoardState, stone_counts, tiles_at
from godaigo.game.buffs import TurnBuffs
from godaigo.game.hexgrid import Hex, hex_to_key
from godaigo.game.layout import create_shrine_deck, generate_board
from godaigo.game.player_scrolls import (
    CommonArea,
    PlayerScrollState,
    ScrollDecks,
    create_decks,
    locate_scroll,
)
from godaigo.game.pools import ElementPools, create_pools, draw_to_player, element_total
from godaigo.game.scrolls import SCROLL_DEFINITIONS
from godaigo.game.types import (
    ELEMENTS,
    Element,
    PendingCascade,
    ResponseStackEntry,
    ShrineType,
    StackResult,
    Tile,
    WindowStatus,
)

logger = logging.getLogger(__name__)


class RulesConfig(BaseModel):
    """Rule constants for one match, defaulting to the global settings."""
    hand_capacity: int = Field(default_factory=lambda: settings.hand_capacity)
    active_capacity: int = Field(default_factory=lambda: settings.active_capacity)
    max_ap: int = Field(default_factory=lambda: settings.max_ap)
    base_cast_cost: int = Field(default_factory=lambda: settings.base_cast_cost)
    response_cost: int = Field(default_factory=lambda: settings.response_cost)
    break_stone_cost: int = Field(default_factory=lambda: settings.break_stone_cost)
    source_pool_capacity: int = Field(default_factory=lambda: settings.source_pool_capacity)
    source_pool_initial: int = Field(default_factory=lambda: settings.source_pool_initial)
    player_pool_capacity: int = Field(default_factory=lambda: settings.player_pool_capacity)
    hex_size: float = Field(default_factory=lambda: settings.hex_size)
    same_hex_epsilon: float = Field(default_factory=lambda: settings.same_hex_epsilon)
    response_timeout_seconds: float = Field(
        default_factory=lambda: settings.response_timeout_seconds
    )
    board_radius: int = 2
    strict_audit: bool = False


class PlayerState(BaseModel):
    position: tuple[int, int]
    ap: APState = Field(default_factory=APState)
    scrolls: PlayerScrollState = Field(default_factory=PlayerScrollState)


class ResponseWindow(BaseModel):
    status: WindowStatus = WindowStatus.IDLE
    stack: list[ResponseStackEntry] = Field(default_factory=list)
    # Players who have passed or responded on the current top of the stack
    acted: list[int] = Field(default_factory=list)
    deadline: float | None = None
    last_results: list[StackResult] = Field(default_factory=list)


class LastMove(BaseModel):
    player_index: int
    from_hex: tuple[int, int]
    ap_before: APState
    steam_bank_before: bool


class GodaigoState(BaseModel):
    rules: RulesConfig = Field(default_factory=RulesConfig)
    board: BoardState
    pools: ElementPools
    players: list[PlayerState]
    common: CommonArea = Field(default_factory=CommonArea)
    decks: ScrollDecks = Field(default_factory=ScrollDecks)
    shrine_deck: list[ShrineType] = Field(default_factory=list)
    buffs: TurnBuffs = Field(default_factory=TurnBuffs)
    window: ResponseWindow = Field(default_factory=ResponseWindow)
    pending_cascades: list[PendingCascade] = Field(default_factory=list)
    active_player_index: int = 0
    turn_number: int = 1
    last_scroll_cast: str | None = None  # this turn
    last_move: LastMove | None = None
    steam_bank: bool = False
    winner: int | None = None


def create_godaigo_state(
    num_players: int,
    options: dict | None = None,
    seed: int | None = None,
) -> GodaigoState:
    """Build a fresh match: board, pools, shuffled decks, first player's AP."""
    rules = RulesConfig(**(options or {}))
    rng = random.Random(seed)
    board, starts = generate_board(num_players, rules.board_radius)
    hidden = sum(1 for t in board.tiles if not t.revealed)
    state = GodaigoState(
        rules=rules,
        board=board,
        pools=create_pools(
            num_players,
            rules.source_pool_initial,
            rules.source_pool_capacity,
            rules.player_pool_capacity,
        ),
        players=[PlayerState(position=start) for start in starts],
        decks=create_decks(rng),
        shrine_deck=create_shrine_deck(hidden, rng),
    )
    state.players[0].ap.refresh(rules.max_ap, void_stone_count(state, 0))
    return state


# ── Queries ──

def occupied_hexes(state: GodaigoState, exclude_index: int | None = None) -> set[Hex]:
    return {
        tuple(p.position)
        for i, p in enumerate(state.players)
        if i != exclude_index
    }


def void_stone_count(state: GodaigoState, player_index: int) -> int:
    return state.pools.players[player_index][Element.VOID]


def pending_cascade_for(state: GodaigoState, player_index: int) -> PendingCascade | None:
    for pending in state.pending_cascades:
        if pending.player_index == player_index:
            return pending
    return None


def all_scroll_states(state: GodaigoState) -> list[PlayerScrollState]:
    return [p.scrolls for p in state.players]


# ── Shared mutations ──

def grant_stones(
    state: GodaigoState,
    player_index: int,
    element: Element,
    count: int,
    reason: str,
) -> Event | None:
    """Draw stones from the source pool into a player pool, clamped."""
    moved = draw_to_player(state.pools, player_index, element, count)
    if moved <= 0:
        return None
    return Event(
        event_type="stones_drawn",
        payload={
            "player_index": player_index,
            "element": element.value,
            "count": moved,
            "requested": count,
            "reason": reason,
        },
    )


def draw_scroll_for(state: GodaigoState, player_index: int, deck_element: str) -> list[Event]:
    """Draw the top scroll of a deck for a player.

    With a full hand the drawn scroll becomes a pending cascade that the
    player must resolve before doing anything else.
    """
    scroll_id = state.decks.draw(deck_element)
    if scroll_id is None:
        return [Event(
            event_type="deck_empty",
            payload={"player_index": player_index, "deck": deck_element},
        )]

    player = state.players[player_index].scrolls
    if len(player.hand) < state.rules.hand_capacity:
        player.hand.append(scroll_id)
        return [Event(
            event_type="scroll_drawn",
            payload={"player_index": player_index, "scroll_id": scroll_id},
        )]

    pending = PendingCascade(
        player_index=player_index,
        scroll_id=scroll_id,
        can_cascade_to_active=len(player.active) < state.rules.active_capacity,
    )
    state.pending_cascades.append(pending)
    return [Event(
        event_type="cascade_required",
        payload=pending.model_dump(mode="json"),
    )]


def reveal_tile(state: GodaigoState, tile: Tile, player_index: int) -> list[Event]:
    """Flip a hidden tile, assign its shrine, and draw the shrine's scroll."""
    if tile.revealed:
        return []
    if state.shrine_deck:
        shrine = state.shrine_deck.pop(0)
    else:
        logger.warning(f"Shrine deck exhausted revealing tile {tile.tile_id}")
        shrine = ShrineType.CATACOMB
    tile.revealed = True
    tile.shrine = shrine
    events = [Event(
        event_type="tile_revealed",
        payload={
            "tile_id": tile.tile_id,
            "q": tile.q,
            "r": tile.r,
            "shrine": shrine.value,
            "player_index": player_index,
        },
    )]
    events.extend(draw_scroll_for(state, player_index, shrine.value))
    return events


def reveal_tiles_at(state: GodaigoState, hex_: Hex, player_index: int) -> list[Event]:
    events: list[Event] = []
    for tile in tiles_at(state.board, hex_):
        if not tile.revealed and tile.owner_index is None:
            events.extend(reveal_tile(state, tile, player_index))
    return events


def refresh_ap(state: GodaigoState, player_index: int) -> None:
    state.players[player_index].ap.refresh(
        state.rules.max_ap, void_stone_count(state, player_index)
    )


def gain_ap(state: GodaigoState, player_index: int, amount: int) -> None:
    state.players[player_index].ap.add(
        amount, state.rules.max_ap, void_stone_count(state, player_index)
    )


def clamp_void_ap(state: GodaigoState) -> None:
    for index, player in enumerate(state.players):
        player.ap.clamp_void(void_stone_count(state, index))


# ── Audit ──

def audit_state(state: GodaigoState, initial_total: int | None = None) -> list[str]:
    """Check conservation, hex uniqueness and scroll-location exclusivity."""
    violations: list[str] = []
    expected = initial_total if initial_total is not None else state.rules.source_pool_initial
    on_board = stone_counts(state.board)
    for element in ELEMENTS:
        total = element_total(state.pools, element, on_board[element])
        if total != expected:
            violations.append(f"{element.value} stones total {total}, expected {expected}")
        if state.pools.source[element] < 0:
            violations.append(f"{element.value} source pool is negative")
        for index, pool in enumerate(state.pools.players):
            if pool[element] < 0 or pool[element] > state.pools.player_capacity:
                violations.append(f"player {index} {element.value} pool out of range")

    for key, stone in state.board.stones.items():
        if hex_to_key(stone.q, stone.r) != key:
            violations.append(f"stone {stone.stone_id} stored under {key}")

    for scroll_id in SCROLL_DEFINITIONS:
        places = locate_scroll(
            scroll_id, all_scroll_states(state), state.common, state.decks
        )
        pending = [p for p in state.pending_cascades if p.scroll_id == scroll_id]
        if len(places) + len(pending) > 1:
            violations.append(f"{scroll_id} is in {len(places) + len(pending)} places")
    return violations


def check_invariants(state: GodaigoState) -> list[str]:
    """Audit the state; raise in strict mode, otherwise log and continue."""
    violations = audit_state(state)
    if violations:
        if state.rules.strict_audit:
            raise InvariantViolationError(violations)
        for violation in violations:
            logger.warning(f"Invariant violation: {violation}")
    return violations
