"""
Cached guild configuration with write-through persistence.

Reads are served from an in-memory map; a guild seen for the first time gets
a default config that is persisted on the spot. Updates persist first and
only then replace the cached value.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable
from typing import TypeVar

from domain.models.guild_config import DEFAULT_PREFIX, GuildConfig, UserConfig
from repositories.interfaces import IConfigRepository
from utils.stream import Stream

logger = logging.getLogger("shishabot.services.config_store")

T = TypeVar("T")


class ConfigStore:
    def __init__(self, repo: IConfigRepository):
        self.repo = repo
        self._guilds: dict[int, GuildConfig] = {}
        # Serializes updates per guild; reads never take it
        self._update_locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._user_locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def preload(self) -> int:
        """Populate the cache with every stored guild. Returns the count."""
        configs = await asyncio.to_thread(self.repo.get_guild_configs)
        self._guilds.update(configs)
        return len(configs)

    async def get_user_config(self, user_id: int) -> UserConfig:
        async with self._user_locks[user_id]:
            config = await asyncio.to_thread(self.repo.get_user_config, user_id)
            if config is not None:
                return config

            config = UserConfig()
            await asyncio.to_thread(self.repo.insert_user_config, user_id, config)
            return config

    async def update_user_config(self, user_id: int, f: Callable[[UserConfig], None]) -> UserConfig:
        async with self._user_locks[user_id]:
            config = await asyncio.to_thread(self.repo.get_user_config, user_id) or UserConfig()
            f(config)
            await asyncio.to_thread(self.repo.upsert_user_config, user_id, config)
            return config

    async def read_guild_config(self, guild_id: int, f: Callable[[GuildConfig], T]) -> T:
        """
        Apply `f` to the guild's config.

        A failure to persist the default is logged and otherwise ignored;
        the default stays cached for the rest of the process.
        """
        config = self._guilds.get(guild_id)
        if config is not None:
            return f(config)

        config = GuildConfig()
        try:
            await asyncio.to_thread(self.repo.upsert_guild_config, guild_id, config)
        except Exception as exc:
            logger.warning(f"failed to insert guild {guild_id}: {exc}", exc_info=True)

        result = f(config)
        # Another reader may have raced us; keep whichever landed first
        self._guilds.setdefault(guild_id, config)
        return result

    async def update_guild_config(self, guild_id: int, f: Callable[[GuildConfig], None]) -> GuildConfig:
        """
        Apply `f` to a copy of the guild's config, persist it, then cache it.

        If persisting raises, the cache is left untouched and the error
        propagates.
        """
        async with self._update_locks[guild_id]:
            cached = self._guilds.get(guild_id)
            config = cached.copy() if cached is not None else GuildConfig()
            f(config)
            if not config.prefixes:
                raise ValueError("a guild needs at least one prefix")
            await asyncio.to_thread(self.repo.upsert_guild_config, guild_id, config)
            self._guilds[guild_id] = config
            return config.copy()

    async def guild_config(self, guild_id: int) -> GuildConfig:
        return await self.read_guild_config(guild_id, GuildConfig.copy)

    async def guild_prefixes(self, guild_id: int) -> list[str]:
        return await self.read_guild_config(guild_id, lambda config: list(config.prefixes))

    async def guild_prefixes_find(self, guild_id: int, stream: Stream) -> str | None:
        def find(config: GuildConfig) -> str | None:
            return next((p for p in config.prefixes if stream.starts_with(p)), None)

        return await self.read_guild_config(guild_id, find)

    async def guild_first_prefix(self, guild_id: int | None) -> str:
        if guild_id is None:
            return DEFAULT_PREFIX
        return await self.read_guild_config(guild_id, lambda config: config.prefixes[0])

    async def guild_authorities(self, guild_id: int) -> list[int]:
        return await self.read_guild_config(guild_id, lambda config: list(config.authorities))

    async def guild_with_lyrics(self, guild_id: int) -> bool:
        return await self.read_guild_config(guild_id, GuildConfig.get_with_lyrics)

    async def guild_show_retries(self, guild_id: int) -> bool:
        return await self.read_guild_config(guild_id, GuildConfig.get_show_retries)

    async def guild_track_limit(self, guild_id: int) -> int:
        return await self.read_guild_config(guild_id, GuildConfig.get_track_limit)
