"""
Lookups against discord.py's in-memory cache.

discord.py keeps the cache current before any event handler runs, so these
helpers only translate "not cached" into a `CacheMiss` the caller can
recover from.
"""

from __future__ import annotations

import discord


class CacheMiss(Exception):
    def __init__(self, kind: str, entity_id: int | None = None):
        if entity_id is None:
            super().__init__(f"{kind} not in cache")
        else:
            super().__init__(f"{kind} {entity_id} not in cache")
        self.kind = kind
        self.entity_id = entity_id


def cached_guild(client: discord.Client, guild_id: int) -> discord.Guild:
    guild = client.get_guild(guild_id)
    if guild is None:
        raise CacheMiss("guild", guild_id)
    return guild


def cached_channel(client: discord.Client, channel_id: int):
    channel = client.get_channel(channel_id)
    if channel is None:
        raise CacheMiss("channel", channel_id)
    return channel


def cached_member(guild: discord.Guild, user_id: int) -> discord.Member:
    member = guild.get_member(user_id)
    if member is None:
        raise CacheMiss("member", user_id)
    return member


def cached_role(guild: discord.Guild, role_id: int) -> discord.Role:
    role = guild.get_role(role_id)
    if role is None:
        raise CacheMiss("role", role_id)
    return role


def current_member(guild: discord.Guild) -> discord.Member:
    """The bot's own member object in `guild`."""
    me = guild.me
    if me is None:
        raise CacheMiss("current user")
    return me


def command_location(client: discord.Client, guild_id: int | None, channel_id: int) -> str:
    """`Guild:channel` for logs, with placeholders for anything uncached."""
    if guild_id is None:
        return "Private"
    try:
        guild = cached_guild(client, guild_id)
    except CacheMiss:
        return "<uncached guild>"
    try:
        channel = cached_channel(client, channel_id)
    except CacheMiss:
        return f"{guild.name}:<uncached channel>"
    return f"{guild.name}:{getattr(channel, 'name', None) or '<uncached channel>'}"
