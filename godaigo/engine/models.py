from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import NewType

from pydantic import BaseModel, Field

# --- Identifiers ---
PlayerId = NewType("PlayerId", str)
MatchId = NewType("MatchId", str)
GameId = NewType("GameId", str)

# --- Player ---
class Player(BaseModel):
    player_id: PlayerId
    display_name: str
    seat_index: int

class GameConfig(BaseModel):
    options: dict = Field(default_factory=dict)
    random_seed: int | None = None

# --- Phase & Action Queue ---
class ConcurrentMode(str, Enum):
    SEQUENTIAL = "sequential"
    RESPONSE_WINDOW = "response_window"  # any listed player may act, in any order

class ExpectedAction(BaseModel):
    player_id: PlayerId | None = None
    action_type: str
    constraints: dict = Field(default_factory=dict)
    deadline: float | None = None  # epoch seconds

class Phase(BaseModel):
    name: str
    concurrent_mode: ConcurrentMode = ConcurrentMode.SEQUENTIAL
    expected_actions: list[ExpectedAction] = Field(default_factory=list)
    auto_resolve: bool = False
    metadata: dict = Field(default_factory=dict)

    def expected_players(self) -> list[PlayerId]:
        return [ea.player_id for ea in self.expected_actions if ea.player_id is not None]

    def deadline(self) -> float | None:
        deadlines = [ea.deadline for ea in self.expected_actions if ea.deadline is not None]
        return min(deadlines) if deadlines else None

# --- Action ---
class Action(BaseModel):
    action_type: str
    player_id: PlayerId
    payload: dict = Field(default_factory=dict)
    timestamp: datetime | None = None

# --- Event ---
class Event(BaseModel):
    event_type: str
    player_id: PlayerId | None = None
    payload: dict = Field(default_factory=dict)

# --- Game State ---
class GameStatus(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    FINISHED = "finished"
    ABANDONED = "abandoned"

class GameState(BaseModel):
    match_id: MatchId
    game_id: GameId
    players: list[Player]
    current_phase: Phase
    status: GameStatus = GameStatus.ACTIVE
    turn_number: int = 0
    action_number: int = 0
    config: GameConfig = Field(default_factory=GameConfig)
    game_data: dict = Field(default_factory=dict)
    scores: dict[str, float] = Field(default_factory=dict)  # PlayerId -> score

# --- Transition Result ---
class GameResult(BaseModel):
    winners: list[PlayerId]
    final_scores: dict[str, float]  # PlayerId -> score
    reason: str = "normal"
    details: dict = Field(default_factory=dict)

class TransitionResult(BaseModel):
    game_data: dict
    events: list[Event]
    next_phase: Phase
    scores: dict[str, float] = Field(default_factory=dict)
    game_over: GameResult | None = None

# --- Player View ---
class PlayerView(BaseModel):
    match_id: MatchId
    game_id: GameId
    players: list[Player]
    current_phase: Phase
    status: GameStatus
    turn_number: int
    scores: dict[str, float]
    game_data: dict
    valid_actions: list[dict] = Field(default_factory=list)
    viewer_id: PlayerId | None = None
