"""
Utility commands: ping, invite, commands, help.
"""

import logging
import time

from commands.registry import CommandFlags, PrefixCommand, SlashCommand
from services.pagination import CommandCountPagination
from utils.command_origin import CommandOrigin
from utils.embeds import (
    create_help_embed,
    create_invite_embed,
    create_prefix_command_help_embed,
    create_slash_command_help_embed,
)

logger = logging.getLogger("shishabot.commands.utility")

STRING = 3


async def ping(ctx, origin: CommandOrigin) -> None:
    start = time.perf_counter()
    message = await origin.callback_with_response(content="Pong")
    elapsed = (time.perf_counter() - start) * 1000
    content = f":ping_pong: Pong! ({elapsed:.0f}ms, gateway {ctx.client.latency * 1000:.0f}ms)"
    await message.edit(content=content)


async def slash_ping(ctx, interaction, command) -> None:
    await ping(ctx, CommandOrigin.from_interaction(interaction))


async def prefix_ping(ctx, msg, args) -> None:
    await ping(ctx, CommandOrigin.from_message(msg))


async def invite(ctx, origin: CommandOrigin) -> None:
    await origin.callback(embed=create_invite_embed(ctx.client.application_id))


async def slash_invite(ctx, interaction, command) -> None:
    await invite(ctx, CommandOrigin.from_interaction(interaction))


async def prefix_invite(ctx, msg, args) -> None:
    await invite(ctx, CommandOrigin.from_message(msg))


async def popular_commands(ctx, origin: CommandOrigin) -> None:
    # No usage counter is wired up yet, so the list is always empty
    cmds: list[tuple[str, int]] = []
    cmds.sort(key=lambda entry: entry[1], reverse=True)

    await CommandCountPagination.builder(ctx.booted_up, cmds).start(ctx.paginations, origin)


async def slash_commands(ctx, interaction, command) -> None:
    await popular_commands(ctx, CommandOrigin.from_interaction(interaction))


async def prefix_commands(ctx, msg, args) -> None:
    await popular_commands(ctx, CommandOrigin.from_message(msg))


async def slash_help(ctx, interaction, command) -> None:
    origin = CommandOrigin.from_interaction(interaction, ephemeral=True)
    name = command.get("command")

    if name is None:
        prefix = await ctx.configs.guild_first_prefix(interaction.guild_id)
        await origin.callback(embed=create_help_embed(prefix, ctx.registry.prefix_commands()))
        return

    slash = ctx.registry.slash(name.lower())
    if slash is None:
        await origin.error(f"There is no slash command `{name}`")
        return

    await origin.callback(embed=create_slash_command_help_embed(slash))


async def autocomplete_help(ctx, command) -> list[str]:
    value = command.get("command") or ""
    return ctx.registry.descendants(value.lower())


async def prefix_help(ctx, msg, args) -> None:
    origin = CommandOrigin.from_message(msg)
    guild_id = msg.guild.id if msg.guild is not None else None
    prefix = await ctx.configs.guild_first_prefix(guild_id)

    name = args.next()
    if name is None:
        await origin.callback(embed=create_help_embed(prefix, ctx.registry.prefix_commands()))
        return

    command = ctx.registry.prefix(name)
    if command is None:
        await origin.error(f"There is no command `{name}`, try `{prefix}help` for a list of commands")
        return

    await origin.callback(embed=create_prefix_command_help_embed(prefix, command))


SLASH_COMMANDS = [
    SlashCommand(
        name="ping",
        description="Check if I'm online",
        exec=slash_ping,
        flags=CommandFlags.SKIP_DEFER,
    ),
    SlashCommand(
        name="invite",
        description="Invite me to your server",
        exec=slash_invite,
        flags=CommandFlags.SKIP_DEFER,
    ),
    SlashCommand(
        name="commands",
        description="Display a list of popular commands",
        exec=slash_commands,
        flags=CommandFlags.SKIP_DEFER,
    ),
    SlashCommand(
        name="help",
        description="Display general help or help for a specific command",
        exec=slash_help,
        flags=CommandFlags.SKIP_DEFER | CommandFlags.EPHEMERAL,
        options=(
            {
                "name": "command",
                "description": "Specify a command to show its help",
                "type": STRING,
                "required": False,
                "autocomplete": True,
            },
        ),
        autocomplete=autocomplete_help,
    ),
]

PREFIX_COMMANDS = [
    PrefixCommand(
        names=("ping", "p"),
        description="Check if I'm online",
        exec=prefix_ping,
        flags=CommandFlags.SKIP_DEFER,
    ),
    PrefixCommand(
        names=("invite", "inv"),
        description="Invite me to your server",
        exec=prefix_invite,
        flags=CommandFlags.SKIP_DEFER,
    ),
    PrefixCommand(
        names=("commands",),
        description="List of popular commands",
        exec=prefix_commands,
        flags=CommandFlags.SKIP_DEFER,
    ),
    PrefixCommand(
        names=("help", "h"),
        description="Display general help or help for a specific command",
        exec=prefix_help,
        flags=CommandFlags.SKIP_DEFER,
        usage="[command]",
    ),
]
