"""
One reply surface for both invocation styles.

Commands that exist as prefix and slash variants share their body and
answer through a `CommandOrigin`, which knows whether to post into the
channel or to respond to (or edit the deferred response of) an interaction.
"""

from __future__ import annotations

import discord


def _message_kwargs(kwargs: dict) -> dict:
    return {key: value for key, value in kwargs.items() if value is not None}


class CommandOrigin:
    def __init__(
        self,
        message: discord.Message | None = None,
        interaction: discord.Interaction | None = None,
        ephemeral: bool = False,
    ):
        if (message is None) == (interaction is None):
            raise ValueError("exactly one of message or interaction is required")
        self.message = message
        self.interaction = interaction
        self.ephemeral = ephemeral

    @classmethod
    def from_message(cls, message: discord.Message) -> CommandOrigin:
        return cls(message=message)

    @classmethod
    def from_interaction(cls, interaction: discord.Interaction, ephemeral: bool = False) -> CommandOrigin:
        return cls(interaction=interaction, ephemeral=ephemeral)

    @property
    def is_interaction(self) -> bool:
        return self.interaction is not None

    @property
    def user(self) -> discord.abc.User:
        return self.message.author if self.message is not None else self.interaction.user

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def guild_id(self) -> int | None:
        if self.message is not None:
            return self.message.guild.id if self.message.guild is not None else None
        return self.interaction.guild_id

    @property
    def channel_id(self) -> int:
        if self.message is not None:
            return self.message.channel.id
        return self.interaction.channel_id

    async def callback(
        self,
        content: str | None = None,
        embed: discord.Embed | None = None,
        view: discord.ui.View | None = None,
        file: discord.File | None = None,
    ) -> discord.Message | None:
        """
        Respond to the invocation.

        Returns the posted message for prefix invocations, None for
        interactions (use `callback_with_response` to get it).
        """
        if self.message is not None:
            return await self.message.channel.send(
                **_message_kwargs({"content": content, "embed": embed, "view": view, "file": file})
            )

        if self.interaction.response.is_done():
            await self.create_message(content=content, embed=embed, view=view, file=file)
            return None

        await self.interaction.response.send_message(
            **_message_kwargs({"content": content, "embed": embed, "view": view, "file": file}),
            ephemeral=self.ephemeral,
        )
        return None

    async def callback_with_response(self, **kwargs) -> discord.Message:
        """Respond and return the resulting message."""
        message = await self.callback(**kwargs)
        if message is not None:
            return message
        return await self.interaction.original_response()

    async def create_message(
        self,
        content: str | None = None,
        embed: discord.Embed | None = None,
        view: discord.ui.View | None = None,
        file: discord.File | None = None,
    ) -> discord.Message:
        """Fill in the response of an already deferred interaction."""
        if self.message is not None:
            return await self.callback(content=content, embed=embed, view=view, file=file)

        kwargs = _message_kwargs({"content": content, "embed": embed, "view": view})
        if file is not None:
            kwargs["attachments"] = [file]
        return await self.interaction.edit_original_response(**kwargs)

    async def error(self, content: str) -> None:
        """
        User-facing failure notice; ephemeral for interactions.

        A deferred command response is filled with the notice instead.
        """
        if self.message is not None:
            await self.message.channel.send(content)
        elif self.interaction.response.type is discord.InteractionResponseType.deferred_channel_message:
            await self.interaction.edit_original_response(content=content)
        elif self.interaction.response.is_done():
            await self.interaction.followup.send(content, ephemeral=True)
        else:
            await self.interaction.response.send_message(content, ephemeral=True)
