"""
Main Discord bot entry for shishabot.
"""

import logging
import sys

import discord

from config import BotConfig, ConfigError, env_var
from infrastructure.context import Context
from infrastructure.logging_config import configure_logging
from services.dispatcher import Dispatcher

logger = logging.getLogger("shishabot")


def build_intents() -> discord.Intents:
    intents = discord.Intents.default()
    intents.message_content = True
    intents.members = True
    return intents


class ShishaBot(discord.Client):
    """
    Gateway client. Events are handed to the `Dispatcher`; discord.py runs
    each handler as its own task after updating its cache.
    """

    def __init__(self, config: BotConfig, **kwargs):
        super().__init__(intents=build_intents(), **kwargs)
        self.config = config
        self.ctx: Context | None = None
        self.dispatcher: Dispatcher | None = None

    async def setup_hook(self) -> None:
        self.ctx = Context(self.config, self)
        await self.ctx.initialize()
        self.dispatcher = Dispatcher(self.ctx)
        await self.sync_commands()

    async def sync_commands(self) -> None:
        payload = self.ctx.registry.collect()
        try:
            if self.config.sync_global_commands:
                await self.http.bulk_upsert_global_commands(self.application_id, payload)
                logger.info(f"Synced {len(payload)} slash commands globally")
            else:
                await self.http.bulk_upsert_guild_commands(self.application_id, self.config.dev_guild, payload)
                logger.info(f"Synced {len(payload)} slash commands to guild {self.config.dev_guild}")
        except discord.HTTPException as exc:
            logger.error(f"failed to sync slash commands: {exc}", exc_info=True)

    async def close(self) -> None:
        if self.ctx is not None:
            await self.ctx.shutdown()
        await super().close()

    async def on_ready(self) -> None:
        logger.info(f"Logged in as {self.user} ({len(self.guilds)} guilds)")

    async def on_resumed(self) -> None:
        logger.info("Session resumed")

    async def on_shard_connect(self, shard_id: int) -> None:
        logger.info(f"Shard {shard_id} is connected")

    async def on_shard_disconnect(self, shard_id: int) -> None:
        logger.info(f"Shard {shard_id} is disconnected")

    async def on_shard_ready(self, shard_id: int) -> None:
        logger.info(f"Shard {shard_id} is ready")

    async def on_shard_resumed(self, shard_id: int) -> None:
        logger.info(f"Shard {shard_id} is resumed")

    async def on_guild_join(self, guild: discord.Guild) -> None:
        # Reading the config once persists the default
        await self.ctx.configs.guild_config(guild.id)
        logger.info(f"Joined guild {guild.name} ({guild.id})")

    async def on_message(self, message: discord.Message) -> None:
        await self.dispatcher.handle_message(message)

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        await self.dispatcher.handle_interaction(interaction)


def main():
    """Run the bot."""
    configure_logging(env_var("LOG_LEVEL", default="INFO"))

    try:
        config = BotConfig.init()
    except ConfigError as exc:
        logger.error(f"failed to load config: {exc}")
        sys.exit(1)

    bot = ShishaBot(config)

    try:
        # Logging is already configured; keep discord.py from adding its handler
        bot.run(config.tokens.discord, log_handler=None)
    except discord.LoginFailure as exc:
        logger.error(f"failed to log in: {exc}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Bot stopped by user (Ctrl+C)")


if __name__ == "__main__":
    main()
