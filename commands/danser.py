"""
Replay rendering commands: render, queue, skin, skinlist.
"""

import asyncio
import io
import logging
import shutil
import zipfile
from pathlib import Path

from commands.configuration import list_skins
from commands.registry import CommandFlags, SlashCommand
from domain.models.replay import ReplayData, TimePoints
from infrastructure.http_client import StatusError
from services.buckets import BucketName
from services.pagination import SkinListPagination
from utils.command_origin import CommandOrigin
from utils.embeds import create_queue_embed

logger = logging.getLogger("shishabot.commands.danser")

SUB_COMMAND = 1
INTEGER = 4
ATTACHMENT = 11

REPLAY_EXTENSION = ".osr"
SKIN_EXTENSION = ".osk"


# render


async def slash_render(ctx, interaction, command) -> None:
    origin = CommandOrigin.from_interaction(interaction)

    attachment = command.attachment("replay")
    if attachment is None or not attachment.filename.lower().endswith(REPLAY_EXTENSION):
        await origin.error(f"The attachment must be a `{REPLAY_EXTENSION}` file")
        return

    start = command.get("start")
    end = command.get("end")
    if start is not None and end is not None and start >= end:
        await origin.error("The start must come before the end")
        return

    try:
        data = await ctx.http.get_discord_attachment(attachment)
    except StatusError as exc:
        logger.warning(f"failed to download replay attachment: {exc}")
        await origin.error("Failed to download the replay, try again later")
        return

    # One folder per attachment keeps the original file name intact
    path = ctx.config.paths.replays / str(attachment.id) / attachment.filename
    await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
    await asyncio.to_thread(path.write_bytes, data)

    user_config = await ctx.configs.get_user_config(origin.user_id)

    job = ReplayData(
        input_channel=origin.channel_id,
        output_channel=origin.channel_id,
        path=path,
        replay=None,
        time_points=TimePoints(start=start, end=end),
        user=origin.user_id,
        skin=user_config.skin,
    )
    position = await ctx.replay_queue.push(job)

    logger.info(f"Queued replay `{job.replay_name()}` at position {position}")
    await origin.callback(content=f"Replay `{job.replay_name()}` queued at position {position}")


# queue


async def slash_queue(ctx, interaction, command) -> None:
    origin = CommandOrigin.from_interaction(interaction)
    await origin.callback(embed=create_queue_embed(ctx.replay_queue.peek_all()))


# skin


def install_skin(skins_path: Path, filename: str, data: bytes) -> str:
    """Extract an .osk archive into its own skin folder. Returns the skin name."""
    name = Path(filename).stem
    target = skins_path / name
    if target.exists():
        raise FileExistsError(name)

    target.mkdir(parents=True)
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            for member in archive.namelist():
                # Reject entries escaping the skin folder
                resolved = (target / member).resolve()
                if not resolved.is_relative_to(target.resolve()):
                    raise zipfile.BadZipFile(f"unsafe path `{member}`")
            archive.extractall(target)
    except zipfile.BadZipFile:
        shutil.rmtree(target, ignore_errors=True)
        raise
    return name


async def skin_add(ctx, origin: CommandOrigin, command) -> None:
    attachment = command.attachment("skin")
    if attachment is None or not attachment.filename.lower().endswith(SKIN_EXTENSION):
        await origin.error(f"The attachment must be a `{SKIN_EXTENSION}` file")
        return

    try:
        data = await ctx.http.get_discord_attachment(attachment)
    except StatusError as exc:
        logger.warning(f"failed to download skin attachment: {exc}")
        await origin.error("Failed to download the skin, try again later")
        return

    try:
        name = await asyncio.to_thread(install_skin, ctx.config.paths.skins, attachment.filename, data)
    except FileExistsError:
        await origin.error(f"There is already a skin named `{Path(attachment.filename).stem}`")
        return
    except zipfile.BadZipFile as exc:
        logger.warning(f"rejected skin `{attachment.filename}`: {exc}")
        await origin.error("The skin is not a valid `.osk` archive")
        return

    logger.info(f"Added skin `{name}`")
    await origin.callback(content=f"Added skin `{name}`")


async def skin_remove(ctx, origin: CommandOrigin, command) -> None:
    index = command.get("index")
    skins = await asyncio.to_thread(list_skins, ctx.config.paths.skins)

    if index is None or not 1 <= index <= len(skins):
        await origin.error(f"The index must be between 1 and {len(skins)}")
        return

    name = skins[index - 1]
    await asyncio.to_thread(shutil.rmtree, ctx.config.paths.skins / name)

    logger.info(f"Removed skin `{name}`")
    await origin.callback(content=f"Removed skin `{name}`")


async def slash_skin(ctx, interaction, command) -> None:
    origin = CommandOrigin.from_interaction(interaction)

    if command.subcommand == "add":
        # Downloading can exceed the initial response window
        await interaction.response.defer()
        await skin_add(ctx, origin, command)
    elif command.subcommand == "remove":
        await skin_remove(ctx, origin, command)
    else:
        logger.error(f"unknown skin subcommand `{command.subcommand}`")


# skinlist


async def slash_skinlist(ctx, interaction, command) -> None:
    origin = CommandOrigin.from_interaction(interaction)
    skins = await asyncio.to_thread(list_skins, ctx.config.paths.skins)
    await SkinListPagination.builder(skins).start_by_update().start(ctx.paginations, origin)


SLASH_COMMANDS = [
    SlashCommand(
        name="render",
        description="Render a replay",
        exec=slash_render,
        bucket=BucketName.RENDER,
        options=(
            {"name": "replay", "description": "The .osr file", "type": ATTACHMENT, "required": True},
            {"name": "start", "description": "Start time in seconds", "type": INTEGER, "min_value": 0},
            {"name": "end", "description": "End time in seconds", "type": INTEGER, "min_value": 1},
        ),
    ),
    SlashCommand(
        name="queue",
        description="Show the replay queue",
        exec=slash_queue,
    ),
    SlashCommand(
        name="skin",
        description="Skinlist configuration",
        exec=slash_skin,
        flags=CommandFlags.ONLY_OWNER | CommandFlags.SKIP_DEFER,
        options=(
            {
                "name": "add",
                "description": "Add a skin to the skinlist",
                "type": SUB_COMMAND,
                "options": [
                    {
                        "name": "skin",
                        "description": "Skin that you want to add",
                        "type": ATTACHMENT,
                        "required": True,
                    }
                ],
            },
            {
                "name": "remove",
                "description": "Remove a skin from the skinlist",
                "type": SUB_COMMAND,
                "options": [
                    {
                        "name": "index",
                        "description": "Index of the skin that you want to remove",
                        "type": INTEGER,
                        "required": True,
                        "min_value": 1,
                        "max_value": 65_535,
                    }
                ],
            },
        ),
    ),
    SlashCommand(
        name="skinlist",
        description="Show the list of available skins",
        exec=slash_skinlist,
    ),
]

PREFIX_COMMANDS = []
