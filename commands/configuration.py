"""
Configuration commands: prefix, authorities, serverconfig, settings.
"""

import asyncio
import logging
import re

from commands.registry import CommandFlags, PrefixCommand, SlashCommand
from domain.models.guild_config import MAX_PREFIXES
from utils.cache import CacheMiss, cached_guild
from utils.command_origin import CommandOrigin
from utils.embeds import create_server_config_embed

logger = logging.getLogger("shishabot.commands.configuration")

SUB_COMMAND = 1
STRING = 3
INTEGER = 4
BOOLEAN = 5
ROLE = 8

ROLE_MENTION = re.compile(r"^<@&(\d+)>$")


def format_prefixes(prefixes: list[str]) -> str:
    return ", ".join(f"`{prefix}`" for prefix in prefixes)


def parse_role_id(token: str) -> int | None:
    """Role id from a mention (`<@&123>`) or a bare id."""
    match = ROLE_MENTION.match(token)
    if match:
        return int(match.group(1))
    if token.isdigit():
        return int(token)
    return None


def role_display(guild, role_id: int) -> str:
    role = guild.get_role(role_id) if guild is not None else None
    return f"@{role.name}" if role is not None else f"<@&{role_id}>"


# prefix


class PrefixRejected(Exception):
    """A prefix update that would leave the guild in an invalid state."""


def apply_prefixes(config, action: str, values: list[str]) -> None:
    """Add or remove `values` on the stored prefixes, enforcing the limits."""
    if action == "add":
        updated = list(config.prefixes)
        for value in values:
            if value not in updated:
                updated.append(value)
        if len(updated) > MAX_PREFIXES:
            raise PrefixRejected(f"Servers can have at most {MAX_PREFIXES} prefixes")
    else:
        updated = [p for p in config.prefixes if p not in values]
        if not updated:
            raise PrefixRejected("There must be at least one prefix")
    config.prefixes = updated


async def prefix(ctx, origin: CommandOrigin, action: str | None, values: list[str]) -> None:
    guild_id = origin.guild_id

    if action is None or action == "list":
        prefixes = await ctx.configs.guild_prefixes(guild_id)
        await origin.callback(content=f"Prefixes for this server: {format_prefixes(prefixes)}")
        return

    if action not in ("add", "remove"):
        await origin.error("The first argument must be either `add`, `remove`, or `list`")
        return

    if not values:
        await origin.error("You need to specify at least one prefix")
        return

    # Applied to the config current at write time so concurrent updates compose
    try:
        config = await ctx.configs.update_guild_config(
            guild_id, lambda config: apply_prefixes(config, action, values)
        )
    except PrefixRejected as exc:
        await origin.error(str(exc))
        return

    await origin.callback(content=f"Prefixes updated to {format_prefixes(config.prefixes)}")


async def slash_prefix(ctx, interaction, command) -> None:
    value = command.get("prefix")
    values = [value] if value else []
    await prefix(ctx, CommandOrigin.from_interaction(interaction), command.subcommand, values)


async def prefix_prefix(ctx, msg, args) -> None:
    action = args.next()
    await prefix(ctx, CommandOrigin.from_message(msg), action and action.lower(), args.rest())


# authorities


async def authorities(ctx, origin: CommandOrigin, action: str | None, role_ids: list[int]) -> None:
    guild_id = origin.guild_id
    try:
        guild = cached_guild(ctx.client, guild_id)
    except CacheMiss:
        guild = None

    if action in ("add", "remove"):
        if not role_ids:
            await origin.error("You need to specify at least one role")
            return

        def apply(config):
            if action == "add":
                for role_id in role_ids:
                    if role_id not in config.authorities:
                        config.authorities.append(role_id)
            else:
                config.authorities = [r for r in config.authorities if r not in role_ids]

        await ctx.configs.update_guild_config(guild_id, apply)
    elif action not in (None, "list"):
        await origin.error("The first argument must be either `add`, `remove`, or `list`")
        return

    current = await ctx.configs.guild_authorities(guild_id)
    if current:
        roles = ", ".join(role_display(guild, role_id) for role_id in current)
        content = f"Current authority roles for this server: {roles}"
    else:
        content = "There are no authority roles for this server, only admins can use authority commands"
    await origin.callback(content=content)


async def slash_authorities(ctx, interaction, command) -> None:
    role = command.get("role")
    role_ids = [int(role)] if role is not None else []
    origin = CommandOrigin.from_interaction(interaction)
    await authorities(ctx, origin, command.subcommand, role_ids)


async def prefix_authorities(ctx, msg, args) -> None:
    origin = CommandOrigin.from_message(msg)
    action = args.next()

    role_ids = []
    for token in args.rest():
        role_id = parse_role_id(token)
        if role_id is None:
            await origin.error(f"Expected role mention or role id, got `{token}`")
            return
        role_ids.append(role_id)

    await authorities(ctx, origin, action and action.lower(), role_ids)


# serverconfig


async def slash_serverconfig(ctx, interaction, command) -> None:
    origin = CommandOrigin.from_interaction(interaction)
    guild_id = interaction.guild_id

    song_commands = command.get("song_commands")
    retries = command.get("retries")
    track_limit = command.get("track_limit")

    if song_commands is not None or retries is not None or track_limit is not None:

        def apply(config):
            if song_commands is not None:
                config.with_lyrics = song_commands
            if retries is not None:
                config.show_retries = retries
            if track_limit is not None:
                config.track_limit = track_limit

        config = await ctx.configs.update_guild_config(guild_id, apply)
    else:
        config = await ctx.configs.guild_config(guild_id)

    try:
        guild = cached_guild(ctx.client, guild_id)
    except CacheMiss:
        await origin.error("This server is not cached, try again later")
        return

    names = []
    for role_id in config.authorities:
        role = guild.get_role(role_id)
        names.append(role.name if role is not None else str(role_id))

    await origin.callback(embed=create_server_config_embed(guild, config, names))


# settings


def list_skins(skins_path) -> list[str]:
    """Installed skin folder names, sorted case-insensitively."""
    if not skins_path.exists():
        return []
    return sorted((entry.name for entry in skins_path.iterdir() if entry.is_dir()), key=str.lower)


async def slash_settings(ctx, interaction, command) -> None:
    origin = CommandOrigin.from_interaction(interaction, ephemeral=True)
    skin = command.get("skin")

    if skin is not None:
        if skin.lower() in ("default", "none"):
            skin = None
        else:
            skins = await asyncio.to_thread(list_skins, ctx.config.paths.skins)
            found = next((s for s in skins if s.lower() == skin.lower()), None)
            if found is None:
                await origin.error(f"There is no skin `{skin}`, check `/skinlist` for available skins")
                return
            skin = found

        def set_skin(config):
            config.skin = skin

        config = await ctx.configs.update_user_config(origin.user_id, set_skin)
    else:
        config = await ctx.configs.get_user_config(origin.user_id)

    skin_text = f"`{config.skin}`" if config.skin else "default"
    await origin.callback(content=f"Your skin: {skin_text}")


async def autocomplete_settings(ctx, command) -> list[str]:
    value = (command.get("skin") or "").lower()
    skins = await asyncio.to_thread(list_skins, ctx.config.paths.skins)
    return [skin for skin in skins if skin.lower().startswith(value)]


PREFIX_OPTION = {"name": "prefix", "description": "The prefix", "type": STRING, "required": True}
ROLE_OPTION = {"name": "role", "description": "The role", "type": ROLE, "required": True}

SLASH_COMMANDS = [
    SlashCommand(
        name="prefix",
        description="Manage the prefixes of this server",
        exec=slash_prefix,
        flags=CommandFlags.AUTHORITY | CommandFlags.ONLY_GUILDS,
        options=(
            {"name": "add", "description": "Add a prefix", "type": SUB_COMMAND, "options": [PREFIX_OPTION]},
            {"name": "remove", "description": "Remove a prefix", "type": SUB_COMMAND, "options": [PREFIX_OPTION]},
            {"name": "list", "description": "List the current prefixes", "type": SUB_COMMAND},
        ),
    ),
    SlashCommand(
        name="authorities",
        description="Manage the authority roles of this server",
        exec=slash_authorities,
        flags=CommandFlags.AUTHORITY | CommandFlags.ONLY_GUILDS,
        options=(
            {"name": "add", "description": "Add an authority role", "type": SUB_COMMAND, "options": [ROLE_OPTION]},
            {
                "name": "remove",
                "description": "Remove an authority role",
                "type": SUB_COMMAND,
                "options": [ROLE_OPTION],
            },
            {"name": "list", "description": "List the current authority roles", "type": SUB_COMMAND},
        ),
    ),
    SlashCommand(
        name="serverconfig",
        description="Adjust configurations for this server",
        exec=slash_serverconfig,
        flags=CommandFlags.AUTHORITY | CommandFlags.ONLY_GUILDS,
        options=(
            {"name": "song_commands", "description": "Enable or disable song commands", "type": BOOLEAN},
            {"name": "retries", "description": "Show or hide retries by default", "type": BOOLEAN},
            {
                "name": "track_limit",
                "description": "Default track limit",
                "type": INTEGER,
                "min_value": 1,
                "max_value": 255,
            },
        ),
    ),
    SlashCommand(
        name="settings",
        description="Adjust your personal render settings",
        exec=slash_settings,
        flags=CommandFlags.EPHEMERAL,
        options=(
            {
                "name": "skin",
                "description": "Skin to render with, `default` to reset",
                "type": STRING,
                "autocomplete": True,
            },
        ),
        autocomplete=autocomplete_settings,
    ),
]

PREFIX_COMMANDS = [
    PrefixCommand(
        names=("prefix",),
        description="Show, add, or remove prefixes of this server",
        exec=prefix_prefix,
        flags=CommandFlags.AUTHORITY | CommandFlags.ONLY_GUILDS | CommandFlags.SKIP_DEFER,
        group="Configuration",
        usage="[add / remove / list] [prefixes]",
    ),
    PrefixCommand(
        names=("authorities", "authority"),
        description="Show, add, or remove authority roles of this server",
        exec=prefix_authorities,
        flags=CommandFlags.AUTHORITY | CommandFlags.ONLY_GUILDS | CommandFlags.SKIP_DEFER,
        group="Configuration",
        usage="[add / remove / list] [role mentions or ids]",
    ),
]
