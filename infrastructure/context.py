"""
Shared state handed to every command.

The context owns the HTTP client, config store, cooldown buckets,
paginations and the replay queue. Tests build one with their own
collaborators instead of going through the process-wide singletons.

Usage:
    ctx = Context(config, client)
    await ctx.initialize()
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from commands.registry import CommandRegistry, get_registry
from config import BotConfig
from infrastructure.http_client import HttpClient
from repositories.config_repository import ConfigRepository
from services.buckets import BucketRegistry
from services.config_store import ConfigStore
from services.pagination import PaginationManager
from services.replay_queue import Renderer, ReplayQueue, ReplayWorker

if TYPE_CHECKING:
    import discord

logger = logging.getLogger("shishabot.infrastructure.context")


class Context:
    def __init__(
        self,
        config: BotConfig,
        client: discord.Client,
        registry: CommandRegistry | None = None,
        http: HttpClient | None = None,
        configs: ConfigStore | None = None,
        buckets: BucketRegistry | None = None,
        paginations: PaginationManager | None = None,
        replay_queue: ReplayQueue | None = None,
        renderer: Renderer | None = None,
    ):
        self.config = config
        self.client = client
        self.registry = registry if registry is not None else get_registry()
        self.http = http or HttpClient()
        self.configs = configs or ConfigStore(ConfigRepository(config.db_path))
        self.buckets = buckets or BucketRegistry()
        self.paginations = paginations or PaginationManager(client)
        self.replay_queue = replay_queue or ReplayQueue()
        self.booted_up = datetime.now(timezone.utc)

        self._worker = ReplayWorker(self.replay_queue, renderer, self.post) if renderer else None
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """
        Preload guild configs, create working folders and start the
        replay worker. Idempotent.
        """
        if self._initialized:
            logger.debug("Context already initialized, skipping")
            return

        logger.info("Initializing context...")

        for folder in (self.config.paths.skins, self.config.paths.replays, self.config.paths.maps):
            await asyncio.to_thread(folder.mkdir, parents=True, exist_ok=True)

        count = await self.configs.preload()
        logger.info(f"Loaded {count} guild configs")

        if self._worker is not None:
            self._worker.start()
        else:
            logger.info("No renderer configured; replays will only be queued")

        self._initialized = True
        logger.info("Context initialization complete")

    async def post(self, channel_id: int, content: str) -> None:
        channel = self.client.get_partial_messageable(channel_id)
        await channel.send(content)

    async def shutdown(self) -> None:
        if self._worker is not None:
            await self._worker.stop()
        await self.paginations.shutdown()
        await self.http.close()
        logger.info("Context shut down")
