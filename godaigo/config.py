from __future__ import annotations

import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    redis_url: str = "redis://localhost:6379/0"
    debug: bool = False
    log_level: str = "INFO"

    # Board geometry
    hex_size: float = 20.0
    same_hex_epsilon: float = 5.0

    # Response window
    response_timeout_seconds: float = 15.0

    # Rule constants (per-match overrides live in GameConfig.options)
    hand_capacity: int = 2
    active_capacity: int = 2
    max_ap: int = 5
    base_cast_cost: int = 2
    response_cost: int = 2
    break_stone_cost: int = 1
    source_pool_capacity: int = 25
    source_pool_initial: int = 20
    player_pool_capacity: int = 5

    model_config = SettingsConfigDict(
        env_prefix="GODAIGO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Install a basic root handler and set the level of the ``godaigo`` loggers."""
    if level is None:
        level = "DEBUG" if settings.debug else settings.log_level
    logging.basicConfig(format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    logging.getLogger("godaigo").setLevel(level.upper())
