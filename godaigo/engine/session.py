from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Callable, Protocol

if TYPE_CHECKING:
    from godaigo.engine.protocol import GamePlugin
    from godaigo.engine.state_store import StateStoreProtocol

from godaigo.engine.errors import GameNotActiveError, InvalidActionError, NotYourTurnError
from godaigo.engine.models import (
    Action,
    ConcurrentMode,
    GameConfig,
    GameId,
    GameResult,
    GameState,
    GameStatus,
    MatchId,
    Player,
    PlayerView,
    TransitionResult,
)

logger = logging.getLogger(__name__)


class SessionListener(Protocol):
    """Whatever delivers views to players (a websocket broadcaster, a test spy)."""

    async def send_state_update(self, match_id: MatchId, player_id: str, view: PlayerView) -> None:
        ...

    async def send_game_over(self, match_id: MatchId, result: GameResult) -> None:
        ...


class GameSession:
    """
    Orchestrates a single match.

    Responsibilities:
    - Validate action envelopes (game active, an expected player)
    - Delegate to the plugin for validation and state transitions
    - Save snapshots to the state store
    - Push filtered views to the listener
    - Auto-pass response windows when their deadline passes
    """

    def __init__(
        self,
        match_id: MatchId,
        plugin: GamePlugin,
        state: GameState,
        state_store: StateStoreProtocol,
        listener: SessionListener | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.match_id = match_id
        self.plugin = plugin
        self.state = state
        self._state_store = state_store
        self._listener = listener
        self._clock = clock
        self._lock = asyncio.Lock()
        self._deadline_task: asyncio.Task | None = None

    # ------------------------------------------------------------------ #
    #  Lifecycle
    # ------------------------------------------------------------------ #

    @classmethod
    async def start(
        cls,
        match_id: MatchId,
        plugin: GamePlugin,
        players: list[Player],
        config: GameConfig,
        state_store: StateStoreProtocol,
        listener: SessionListener | None = None,
        clock: Callable[[], float] = time.time,
    ) -> GameSession:
        errors = plugin.validate_config(config.options)
        if errors:
            raise InvalidActionError("; ".join(errors))
        if not plugin.min_players <= len(players) <= plugin.max_players:
            raise InvalidActionError(
                f"{plugin.display_name} needs {plugin.min_players}-{plugin.max_players} players"
            )

        game_data, phase, _events = plugin.create_initial_state(players, config)
        state = GameState(
            match_id=match_id,
            game_id=GameId(plugin.game_id),
            players=players,
            current_phase=phase,
            config=config,
            game_data=game_data,
            turn_number=phase.metadata.get("turn_number", 1),
        )
        session = cls(match_id, plugin, state, state_store, listener, clock)
        await state_store.save_state(state)
        await session._broadcast_views()
        session._arm_deadline()
        logger.info(f"Started {plugin.game_id} match {match_id} with {len(players)} players")
        return session

    @classmethod
    async def restore(
        cls,
        match_id: MatchId,
        plugin: GamePlugin,
        state_store: StateStoreProtocol,
        listener: SessionListener | None = None,
        clock: Callable[[], float] = time.time,
    ) -> GameSession | None:
        """Rebuild a session from its snapshot and re-arm any live deadline."""
        state = await state_store.load_state(match_id)
        if state is None:
            return None
        session = cls(match_id, plugin, state, state_store, listener, clock)
        if state.status == GameStatus.ACTIVE:
            session._arm_deadline()
        logger.info(f"Restored match {match_id} at action {state.action_number}")
        return session

    async def close(self) -> None:
        if self._deadline_task is not None:
            self._deadline_task.cancel()
            self._deadline_task = None

    # ------------------------------------------------------------------ #
    #  Action handling
    # ------------------------------------------------------------------ #

    async def handle_action(self, action: Action) -> None:
        """
        Main entry point. Called when a player submits an action.

        Raises the engine errors for envelope and validation failures.
        """
        async with self._lock:
            self._validate_envelope(action)

            error = self.plugin.validate_action(
                self.state.game_data, self.state.current_phase, action
            )
            if error:
                raise InvalidActionError(error, action)

            result = self.plugin.apply_action(
                self.state.game_data,
                self.state.current_phase,
                action,
                self.state.players,
            )
            await self._apply_result(result)

    def _validate_envelope(self, action: Action) -> None:
        if self.state.status != GameStatus.ACTIVE:
            raise GameNotActiveError(f"Game is {self.state.status.value}")

        phase = self.state.current_phase
        if not phase.expected_actions:
            return
        if phase.concurrent_mode == ConcurrentMode.RESPONSE_WINDOW:
            if action.player_id not in phase.expected_players():
                raise NotYourTurnError(
                    f"{action.player_id} is not due to respond"
                )
            return
        expected = phase.expected_actions[0]
        if expected.player_id and action.player_id != expected.player_id:
            raise NotYourTurnError(
                f"Expected {expected.player_id}, got {action.player_id}"
            )

    async def _apply_result(self, result: TransitionResult) -> None:
        """Update state, save to Redis, push views, re-arm the deadline."""
        self.state.game_data = result.game_data
        self.state.current_phase = result.next_phase
        self.state.scores = result.scores
        self.state.action_number += 1
        self.state.turn_number = result.next_phase.metadata.get(
            "turn_number", self.state.turn_number
        )

        for event in result.events:
            logger.debug(f"[{self.match_id}] {event.event_type} {event.payload}")

        await self._state_store.save_state(self.state)
        await self._broadcast_views()

        if result.game_over:
            await self._finish_game(result.game_over)
        else:
            self._arm_deadline()

    async def _broadcast_views(self) -> None:
        if self._listener is None:
            return
        for player in self.state.players:
            view_data = self.plugin.get_player_view(
                self.state.game_data,
                self.state.current_phase,
                player.player_id,
                self.state.players,
            )
            valid_actions = []
            if self.state.status == GameStatus.ACTIVE:
                valid_actions = self.plugin.get_valid_actions(
                    self.state.game_data,
                    self.state.current_phase,
                    player.player_id,
                )
            view = PlayerView(
                match_id=self.match_id,
                game_id=self.state.game_id,
                players=self.state.players,
                current_phase=self.state.current_phase,
                status=self.state.status,
                turn_number=self.state.turn_number,
                scores=self.state.scores,
                game_data=view_data,
                valid_actions=valid_actions,
                viewer_id=player.player_id,
            )
            await self._listener.send_state_update(self.match_id, player.player_id, view)

    async def _finish_game(self, result: GameResult) -> None:
        self.state.status = GameStatus.FINISHED
        await self._state_store.save_state(self.state)
        if self._listener is not None:
            await self._listener.send_game_over(self.match_id, result)
        await self.close()
        logger.info(f"Match {self.match_id} finished, winners={result.winners}")

    # ------------------------------------------------------------------ #
    #  Deadlines
    # ------------------------------------------------------------------ #

    def _arm_deadline(self) -> None:
        """Schedule the phase deadline, replacing any earlier timer."""
        if self._deadline_task is not None:
            self._deadline_task.cancel()
            self._deadline_task = None

        deadline = self.state.current_phase.deadline()
        if deadline is None:
            return
        delay = max(0.0, deadline - self._clock())
        self._deadline_task = asyncio.create_task(
            self._deadline_expired(deadline, delay)
        )

    async def _deadline_expired(self, deadline: float, delay_seconds: float) -> None:
        """Timer callback: let the plugin act for everyone still due."""
        try:
            await asyncio.sleep(delay_seconds)
        except asyncio.CancelledError:
            return

        async with self._lock:
            # The phase may have moved on while we slept
            if self.state.status != GameStatus.ACTIVE:
                return
            if self.state.current_phase.deadline() != deadline:
                return
            self._deadline_task = None
            result = self.plugin.on_deadline_expired(
                self.state.game_data,
                self.state.current_phase,
                max(self._clock(), deadline),
                self.state.players,
            )
            if result is None:
                logger.warning(f"Deadline passed in match {self.match_id} but nothing was due")
                return
            await self._apply_result(result)
