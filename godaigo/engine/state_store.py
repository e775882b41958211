from __future__ import annotations

from typing import Protocol

from redis.asyncio import Redis

from godaigo.config import settings
from godaigo.engine.models import GameState, MatchId


class StateStoreProtocol(Protocol):
    """Protocol for hot state persistence (Redis)."""

    async def save_state(self, state: GameState) -> None:
        ...

    async def load_state(self, match_id: MatchId) -> GameState | None:
        ...

    async def delete_state(self, match_id: MatchId) -> None:
        ...

    async def list_matches(self) -> list[str]:
        ...


class StateStore:
    """Redis-backed match snapshots, one JSON document per match."""

    KEY_PREFIX = "game_state:"

    def __init__(self, redis_client) -> None:
        self.redis = redis_client

    def _key(self, match_id: str) -> str:
        return f"{self.KEY_PREFIX}{match_id}"

    async def save_state(self, state: GameState) -> None:
        await self.redis.set(self._key(state.match_id), state.model_dump_json())

    async def load_state(self, match_id: MatchId) -> GameState | None:
        data = await self.redis.get(self._key(match_id))
        if data is None:
            return None
        return GameState.model_validate_json(data)

    async def delete_state(self, match_id: MatchId) -> None:
        await self.redis.delete(self._key(match_id))

    async def list_matches(self) -> list[str]:
        match_ids = []
        async for key in self.redis.scan_iter(match=f"{self.KEY_PREFIX}*"):
            if isinstance(key, bytes):
                key = key.decode("utf-8")
            match_ids.append(key[len(self.KEY_PREFIX):])
        return match_ids


def create_state_store(redis_url: str | None = None) -> StateStore:
    """StateStore on a real Redis connection (``settings.redis_url`` by default)."""
    return StateStore(Redis.from_url(redis_url or settings.redis_url, decode_responses=False))
