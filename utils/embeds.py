"""
Reusable Discord embed builders.
"""

from __future__ import annotations

from datetime import datetime

import discord

from domain.models.guild_config import DEFAULT_PREFIX

EMBED_COLOR = discord.Color.from_rgb(96, 44, 145)
DESCRIPTION_LIMIT = 4096
FIELD_LIMIT = 1024


def truncate(text: str, max_len: int = FIELD_LIMIT) -> str:
    """Cut `text` to fit a Discord embed limit."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def page_footer(pages) -> str:
    return f"Page {pages.curr_page()}/{pages.last_page()}"


def invite_link(application_id: int | None) -> str:
    client_id = application_id or 0
    return (
        f"https://discord.com/api/oauth2/authorize?client_id={client_id}"
        "&permissions=309238025216&scope=bot%20applications.commands"
    )


def create_invite_embed(application_id: int | None) -> discord.Embed:
    embed = discord.Embed(
        title="Invite me to your server!",
        description=invite_link(application_id),
        color=EMBED_COLOR,
    )
    embed.set_footer(text=f"The initial prefix will be {DEFAULT_PREFIX}")
    return embed


def _toggle(value: bool, on: str, off: str) -> str:
    """Render a boolean setting with the active choice highlighted."""
    if value:
        return f"> __**{on}**__\n> {off}"
    return f"> {on}\n> __**{off}**__"


def create_server_config_embed(guild, config, authorities: list[str]) -> discord.Embed:
    """
    Current settings of a guild.

    `authorities` are display names, already resolved by the caller.
    """
    auth_text = ", ".join(f"@{name}" for name in authorities) or "None"
    prefix_text = ", ".join(f"`{prefix}`" for prefix in config.prefixes)

    description = (
        "```\n"
        f"Authorities: {auth_text}\n"
        f"Prefixes: {prefix_text}\n"
        f"Default track limit: {config.get_track_limit()}\n"
        "```"
    )

    embed = discord.Embed(
        title="Current server configuration:",
        description=truncate(description, DESCRIPTION_LIMIT),
        color=EMBED_COLOR,
    )

    icon = getattr(guild, "icon", None)
    if icon is not None:
        embed.set_author(name=guild.name, icon_url=icon.url)
    else:
        embed.set_author(name=guild.name)

    embed.add_field(name="Song commands", value=_toggle(config.get_with_lyrics(), "enabled", "disabled"))
    embed.add_field(name="Retries*", value=_toggle(config.get_show_retries(), "show", "hide"))
    embed.set_footer(text="*: Only applies if not set in the member's user config")
    return embed


def create_command_count_embed(booted_up: datetime, cmds: list[tuple[str, int]], pages) -> discord.Embed:
    idx = pages.index
    entries = cmds[idx : idx + pages.per_page]

    if entries:
        name_len = max(len(name) for name, _ in entries)
        count_len = max(len(str(count)) for _, count in entries)
        lines = [
            f"`{i:>2} # {name:<{name_len}}` | `{count:>{count_len}}`"
            for i, (name, count) in enumerate(entries, start=idx + 1)
        ]
        description = "\n".join(lines)
    else:
        description = "No commands have been counted yet"

    embed = discord.Embed(
        title="Most popular commands:",
        description=truncate(description, DESCRIPTION_LIMIT),
        color=EMBED_COLOR,
        timestamp=booted_up,
    )
    embed.set_footer(text=f"{page_footer(pages)} • Started counting")
    return embed


def create_skin_list_embed(skins: list[str], pages) -> discord.Embed:
    idx = pages.index
    entries = skins[idx : idx + pages.per_page]

    if entries:
        description = "\n".join(f"`{i}` {skin}" for i, skin in enumerate(entries, start=idx + 1))
    else:
        description = "The skinlist is empty"

    embed = discord.Embed(
        title="Skinlist",
        description=truncate(description, DESCRIPTION_LIMIT),
        color=EMBED_COLOR,
    )
    embed.set_footer(text=page_footer(pages))
    return embed


def create_queue_embed(entries) -> discord.Embed:
    """
    `entries` is a queue snapshot of (ReplayData, status) pairs; only the
    head of the queue carries a status.
    """
    if not entries:
        return discord.Embed(title="Replay queue", description="The queue is empty", color=EMBED_COLOR)

    lines = []
    for i, (data, status) in enumerate(entries, start=1):
        line = f"`{i}` {data.replay_name()} • <@{data.user}>"
        if status is not None:
            line += f" • **{status}**"
        lines.append(line)

    return discord.Embed(
        title="Replay queue",
        description=truncate("\n".join(lines), DESCRIPTION_LIMIT),
        color=EMBED_COLOR,
    )


def create_help_embed(prefix: str, commands) -> discord.Embed:
    """Overview of the prefix commands, grouped."""
    groups: dict[str, list[str]] = {}
    for command in commands:
        names = "/".join(f"`{name}`" for name in command.names)
        groups.setdefault(command.group, []).append(f"{names}: {command.description}")

    embed = discord.Embed(
        title="Command help",
        description=(
            f"Prefix: `{prefix}` (none required in DMs)\n"
            f"Use `{prefix}help <command>` to see details about a command"
        ),
        color=EMBED_COLOR,
    )
    for group, lines in groups.items():
        embed.add_field(name=group, value=truncate("\n".join(lines)), inline=False)
    return embed


def create_prefix_command_help_embed(prefix: str, command) -> discord.Embed:
    embed = discord.Embed(title=command.name, description=command.description, color=EMBED_COLOR)
    if command.usage:
        embed.add_field(name="How to use", value=f"`{prefix}{command.name} {command.usage}`", inline=False)
    if len(command.names) > 1:
        aliases = ", ".join(f"`{name}`" for name in command.names[1:])
        embed.add_field(name="Aliases", value=aliases, inline=False)
    return embed


def create_slash_command_help_embed(command) -> discord.Embed:
    payload = command.create()
    embed = discord.Embed(title=f"/{command.name}", description=command.description, color=EMBED_COLOR)

    options = payload.get("options") or []
    if options:
        lines = []
        for option in options:
            required = " (required)" if option.get("required") else ""
            lines.append(f"`{option['name']}`{required}: {option.get('description', '')}")
        embed.add_field(name="Options", value=truncate("\n".join(lines)), inline=False)

    if payload.get("dm_permission") is False:
        embed.set_footer(text="Only available in servers")
    return embed
