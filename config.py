"""
Centralized configuration for shishabot.

Values come from the environment (a `.env` file is loaded first). Required
values are parsed once by `BotConfig.init()`; parse failures are fatal.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("shishabot.config")


class ConfigError(Exception):
    """Missing or unparseable environment variable."""


def _parse_id_list(raw: str) -> list[int] | None:
    if not (raw.startswith("[") and raw.endswith("]")):
        return None
    inner = raw[1:-1]
    if not inner.strip():
        return []
    try:
        return [int(part.strip()) for part in inner.split(",")]
    except ValueError:
        return None


def _parse_int(raw: str) -> int | None:
    try:
        return int(raw)
    except ValueError:
        return None


def _parse_bool(raw: str) -> bool | None:
    lowered = raw.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return None


# kind name -> parser returning None on failure
ENV_KINDS: dict[str, Callable[[str], Any]] = {
    "int": _parse_int,
    "str": lambda raw: raw,
    "path": lambda raw: Path(raw) if raw else None,
    "bool": _parse_bool,
    "id_list": _parse_id_list,
}


def env_var(name: str, kind: str = "str", default: Any = ...) -> Any:
    """
    Read and parse an environment variable.

    Raises ConfigError when the variable is missing (and no default was
    given) or when it can't be parsed as `kind`.
    """
    raw = os.getenv(name)
    if raw is None:
        if default is not ...:
            return default
        raise ConfigError(f"missing env variable `{name}`")

    value = ENV_KINDS[kind](raw)
    if value is None:
        raise ConfigError(f"failed to parse env variable `{name}={raw}`; expected {kind}")
    return value


@dataclass(frozen=True)
class Tokens:
    discord: str
    osu_client_id: int
    osu_client_secret: str


@dataclass(frozen=True)
class Paths:
    folders: Path
    maps: Path
    server_settings: Path

    @property
    def skins(self) -> Path:
        return self.folders / "Skins"

    @property
    def replays(self) -> Path:
        return self.folders / "Replays"


@dataclass(frozen=True)
class BotConfig:
    tokens: Tokens
    paths: Paths
    owners: tuple[int, ...]
    dev_guild: int
    log_level: str = "INFO"
    db_path: str = "shishabot.db"
    sync_global_commands: bool = False

    _instance = None

    @classmethod
    def from_env(cls) -> BotConfig:
        return cls(
            tokens=Tokens(
                discord=env_var("DISCORD_TOKEN"),
                osu_client_id=env_var("OSU_CLIENT_ID", "int"),
                osu_client_secret=env_var("OSU_CLIENT_SECRET"),
            ),
            paths=Paths(
                folders=env_var("FOLDERS_PATH", "path"),
                maps=env_var("MAP_PATH", "path"),
                server_settings=env_var("SERVER_SETTINGS_PATH", "path"),
            ),
            owners=tuple(env_var("OWNERS_USER_ID", "id_list")),
            dev_guild=env_var("DEV_GUILD_ID", "int"),
            log_level=env_var("LOG_LEVEL", default="INFO").upper(),
            db_path=env_var("DB_PATH", default="shishabot.db"),
            sync_global_commands=env_var("SYNC_GLOBAL_COMMANDS", "bool", default=False),
        )

    @classmethod
    def init(cls) -> BotConfig:
        """Load the process-wide config. Idempotent; the first value wins."""
        config = cls.from_env()
        if BotConfig._instance is not None:
            logger.error("BotConfig was already initialized")
            return BotConfig._instance
        BotConfig._instance = config
        return config

    @classmethod
    def get(cls) -> BotConfig:
        if BotConfig._instance is None:
            raise RuntimeError("`BotConfig.init` must be called first")
        return BotConfig._instance

    def is_owner(self, user_id: int) -> bool:
        return user_id in self.owners
