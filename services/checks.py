"""
Pre-dispatch policy checks shared by prefix and slash commands.

`pre_process` returns None when the command may run, otherwise the
`ProcessResult` the dispatcher should log. User-visible denials are sent
from here so every command gets the same wording.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from commands.registry import CommandFlags
from services.buckets import BucketName
from utils.cache import CacheMiss, cached_guild

if TYPE_CHECKING:
    from infrastructure.context import Context
    from utils.command_origin import CommandOrigin

logger = logging.getLogger("shishabot.services.checks")

NO_DM_MESSAGE = "That command is only available in servers"
NO_OWNER_MESSAGE = "That command can only be used by the bot owner"


class ProcessResultKind(Enum):
    SUCCESS = "Success"
    NO_DM = "NoDM"
    NO_SEND_PERMISSION = "NoSendPermission"
    RATELIMITED = "Ratelimited"
    NO_OWNER = "NoOwner"
    NO_AUTHORITY = "NoAuthority"


@dataclass(frozen=True)
class ProcessResult:
    kind: ProcessResultKind
    bucket: BucketName | None = None

    @classmethod
    def success(cls) -> ProcessResult:
        return cls(ProcessResultKind.SUCCESS)

    @classmethod
    def ratelimited(cls, bucket: BucketName) -> ProcessResult:
        return cls(ProcessResultKind.RATELIMITED, bucket)

    def __str__(self) -> str:
        if self.bucket is not None:
            return f"{self.kind.value}({self.bucket.value})"
        return self.kind.value


NO_DM = ProcessResult(ProcessResultKind.NO_DM)
NO_SEND_PERMISSION = ProcessResult(ProcessResultKind.NO_SEND_PERMISSION)
NO_OWNER = ProcessResult(ProcessResultKind.NO_OWNER)
NO_AUTHORITY = ProcessResult(ProcessResultKind.NO_AUTHORITY)


def _role_mention(guild, role_id: int) -> str:
    role = guild.get_role(role_id) if guild is not None else None
    if role is None:
        return f"<@&{role_id}>"
    return f"@{role.name}"


async def check_authority(ctx: Context, user, guild_id: int | None) -> str | None:
    """
    None if `user` may run authority commands in the guild, otherwise the
    reason to show them.

    Guild owners and administrators always pass. Beyond that the member
    needs one of the guild's authority roles, or to be listed by id.
    """
    if guild_id is None:
        return None

    try:
        guild = cached_guild(ctx.client, guild_id)
    except CacheMiss:
        guild = getattr(user, "guild", None)

    if guild is not None and guild.owner_id == user.id:
        return None

    member = user
    if not hasattr(member, "roles") and guild is not None:
        member = guild.get_member(user.id) or user

    permissions = getattr(member, "guild_permissions", None)
    if permissions is not None and permissions.administrator:
        return None

    authorities = await ctx.configs.guild_authorities(guild_id)
    prefix = await ctx.configs.guild_first_prefix(guild_id)

    if not authorities:
        return (
            "You need admin permissions to use this command.\n"
            f"(`{prefix}authorities` to adjust authority status for this server)"
        )

    if user.id in authorities:
        return None

    role_ids = {role.id for role in getattr(member, "roles", [])}
    if role_ids.intersection(authorities):
        return None

    roles = ", ".join(_role_mention(guild, role_id) for role_id in authorities)
    return (
        "You need either admin permission or any of these roles to use this command:\n"
        f"{roles}\n"
        f"You can modify authority roles with `{prefix}authorities`"
    )


async def pre_process(
    ctx: Context,
    origin: CommandOrigin,
    flags: CommandFlags,
    bucket: BucketName | None,
    *,
    global_bucket: bool,
) -> ProcessResult | None:
    """
    Guild-only, owner, global bucket, command bucket, then authority.

    The global `All` bucket only applies to prefix invocations and denies
    silently.
    """
    user_id = origin.user_id
    guild_id = origin.guild_id

    guild_only = CommandFlags.ONLY_GUILDS in flags or CommandFlags.AUTHORITY in flags
    if guild_only and guild_id is None:
        await origin.error(NO_DM_MESSAGE)
        return NO_DM

    if CommandFlags.ONLY_OWNER in flags and not ctx.config.is_owner(user_id):
        await origin.error(NO_OWNER_MESSAGE)
        return NO_OWNER

    if global_bucket and ctx.buckets.take(BucketName.ALL, user_id) > 0:
        return ProcessResult.ratelimited(BucketName.ALL)

    if bucket is not None:
        cooldown = ctx.buckets.take(bucket, user_id)
        if cooldown > 0:
            await origin.error(f"Command on cooldown, try again in {cooldown} seconds")
            return ProcessResult.ratelimited(bucket)

    if CommandFlags.AUTHORITY in flags:
        reason = await check_authority(ctx, origin.user, guild_id)
        if reason is not None:
            await origin.error(reason)
            return NO_AUTHORITY

    return None
