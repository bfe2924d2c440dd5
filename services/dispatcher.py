"""
Routes gateway events to commands and paginations.

discord.py applies cache updates and `wait_for` bookkeeping before it runs
an event handler, and it runs every handler as its own task, so nothing in
here can block the gateway.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands

from commands.registry import CommandRegistry, PrefixCommand, SlashCommand
from domain.models.guild_config import DEFAULT_PREFIX
from services.checks import NO_SEND_PERMISSION, ProcessResult, ProcessResultKind, pre_process
from services.pagination import PAGE_MODAL_ID
from utils.cache import command_location, current_member
from utils.command_origin import CommandOrigin
from utils.interaction_data import InteractionCommand, component_custom_id
from utils.stream import Args, Stream

if TYPE_CHECKING:
    from infrastructure.context import Context

logger = logging.getLogger("shishabot.services.dispatcher")

# Numeric suffixes beyond this are kept as part of the command name
MAX_INVOKE_NUM = 2**64 - 1
MAX_AUTOCOMPLETE_CHOICES = 25


def parse_invoke(stream: Stream, registry: CommandRegistry) -> tuple[PrefixCommand, int | None] | None:
    """
    Parse `<name><num?>` at the stream head, e.g. `top5` => (`top`, 5).

    The name is matched case-insensitively. Leaves the stream at the
    first argument.
    """
    name = stream.take_until(lambda c: c.isspace() or c.isdigit()).lower()
    num_str = stream.take_while(str.isdigit)

    num = None
    if num_str:
        value = int(num_str)
        if value <= MAX_INVOKE_NUM:
            num = value
        else:
            name += num_str

    stream.skip_whitespace()

    command = registry.prefix(name)
    if command is None:
        return None
    return command, num


class Dispatcher:
    def __init__(self, ctx: Context):
        self.ctx = ctx

    def log_command(self, user, guild_id: int | None, channel_id: int, name: str) -> None:
        username = getattr(user, "name", None) or "<unknown user>"
        location = command_location(self.ctx.client, guild_id, channel_id)
        logger.info(f"[{location}] {username} invoked `{name}`")

    async def handle_message(self, msg: discord.Message) -> ProcessResult | None:
        if msg.author.bot or msg.webhook_id is not None:
            return None

        stream = Stream(msg.content)
        stream.skip_whitespace()

        guild_id = msg.guild.id if msg.guild is not None else None
        if guild_id is not None:
            prefix = await self.ctx.configs.guild_prefixes_find(guild_id, stream)
        else:
            prefix = DEFAULT_PREFIX if stream.starts_with(DEFAULT_PREFIX) else None

        if prefix is not None:
            stream.increment(len(prefix))
        elif guild_id is not None:
            return None

        invoke = parse_invoke(stream, self.ctx.registry)
        if invoke is None:
            return None

        command, num = invoke
        name = command.name
        self.log_command(msg.author, guild_id, msg.channel.id, name)

        try:
            result = await self.process_prefix(command, msg, stream, num)
        except Exception as exc:
            logger.error(f"failed to process prefix command `{name}`: {exc}", exc_info=True)
            return None

        if result.kind is ProcessResultKind.SUCCESS:
            logger.info(f"Processed command `{name}`")
        else:
            logger.info(f"Command `{name}` was not processed: {result}")
        return result

    def _can_send(self, msg: discord.Message) -> bool:
        me = current_member(msg.guild)
        return msg.channel.permissions_for(me).send_messages

    async def process_prefix(
        self,
        command: PrefixCommand,
        msg: discord.Message,
        stream: Stream,
        num: int | None,
    ) -> ProcessResult:
        if msg.guild is not None and not self._can_send(msg):
            return NO_SEND_PERMISSION

        origin = CommandOrigin.from_message(msg)
        denied = await pre_process(self.ctx, origin, command.flags, command.bucket, global_bucket=True)
        if denied is not None:
            return denied

        args = Args(msg.content, stream, num)

        if command.flags.defer:
            try:
                await msg.channel.typing()
            except discord.HTTPException as exc:
                logger.debug(f"failed to trigger typing: {exc}")

        await command.exec(self.ctx, msg, args)
        return ProcessResult.success()

    async def handle_interaction(self, interaction: discord.Interaction) -> ProcessResult | None:
        if interaction.type is discord.InteractionType.application_command:
            return await self.handle_command(interaction)
        if interaction.type is discord.InteractionType.autocomplete:
            await self.handle_autocomplete(interaction)
        elif interaction.type is discord.InteractionType.component:
            await self.handle_component(interaction)
        elif interaction.type is discord.InteractionType.modal_submit:
            await self.handle_modal(interaction)
        return None

    async def handle_command(self, interaction: discord.Interaction) -> ProcessResult | None:
        command = InteractionCommand.from_data(interaction.data or {})
        name = command.name
        self.log_command(interaction.user, interaction.guild_id, interaction.channel_id, name)

        slash = self.ctx.registry.slash(name)
        if slash is None:
            logger.error(f"unknown slash command `{name}`")
            return None

        try:
            result = await self.process_slash(slash, interaction, command)
        except Exception as exc:
            logger.error(f"failed to process slash command `{name}`: {exc}", exc_info=True)
            return None

        if result.kind is ProcessResultKind.SUCCESS:
            logger.info(f"Processed slash command `{name}`")
        else:
            logger.info(f"Command `/{name}` was not processed: {result}")
        return result

    async def process_slash(
        self,
        slash: SlashCommand,
        interaction: discord.Interaction,
        command: InteractionCommand,
    ) -> ProcessResult:
        origin = CommandOrigin.from_interaction(interaction, ephemeral=slash.flags.ephemeral)
        denied = await pre_process(self.ctx, origin, slash.flags, slash.bucket, global_bucket=False)
        if denied is not None:
            return denied

        if slash.flags.defer:
            await interaction.response.defer(ephemeral=slash.flags.ephemeral)

        await slash.exec(self.ctx, interaction, command)
        return ProcessResult.success()

    async def handle_autocomplete(self, interaction: discord.Interaction) -> None:
        command = InteractionCommand.from_data(interaction.data or {})
        slash = self.ctx.registry.slash(command.name)
        if slash is None or slash.autocomplete is None:
            logger.error(f"unknown autocomplete command `{command.name}`")
            return

        try:
            names = await slash.autocomplete(self.ctx, command)
            choices = [
                app_commands.Choice(name=name, value=name) for name in names[:MAX_AUTOCOMPLETE_CHOICES]
            ]
            await interaction.response.autocomplete(choices)
        except Exception as exc:
            logger.error(f"failed to process autocomplete `{command.name}`: {exc}", exc_info=True)

    async def handle_component(self, interaction: discord.Interaction) -> None:
        custom_id = component_custom_id(interaction.data)
        self.log_command(interaction.user, interaction.guild_id, interaction.channel_id, custom_id)

        try:
            handled = await self.ctx.paginations.handle_component(interaction)
        except Exception as exc:
            logger.error(f"failed to process component `{custom_id}`: {exc}", exc_info=True)
            return

        if not handled:
            logger.debug(f"component `{custom_id}` was not handled")

    async def handle_modal(self, interaction: discord.Interaction) -> None:
        custom_id = component_custom_id(interaction.data)
        self.log_command(interaction.user, interaction.guild_id, interaction.channel_id, custom_id)

        if custom_id != PAGE_MODAL_ID:
            logger.error(f"unknown modal `{custom_id}`")
            return

        try:
            await self.ctx.paginations.handle_modal(interaction)
        except Exception as exc:
            logger.error(f"failed to process modal `{custom_id}`: {exc}", exc_info=True)
