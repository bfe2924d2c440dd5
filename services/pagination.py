"""
Paginated responses driven by message components.

A pagination is a message whose embed can be flipped through with buttons.
The first page is published by the command; if there is more than one page
a `PaginationSession` is registered under the message id. Button presses
and the page-number modal are routed here by the dispatcher.

Sessions expire after a minute without interaction. Expiry strips the
buttons from the message so it becomes inert.
"""

from __future__ import annotations

import asyncio
import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

import discord

from utils.command_origin import CommandOrigin
from utils.embeds import create_command_count_embed, create_skin_list_embed
from utils.interaction_data import component_custom_id, modal_text_value

logger = logging.getLogger("shishabot.services.pagination")

PAGINATION_TIMEOUT = 60.0
PAGE_MODAL_ID = "pagination_page"
NOT_AUTHOR_MESSAGE = "Only the invoker of the command can use these buttons"


def last_multiple(per_page: int, total: int) -> int:
    """Largest multiple of `per_page` that still indexes an entry of `total`."""
    if per_page <= total and total % per_page == 0:
        return total - per_page
    return total - total % per_page


@dataclass
class Pages:
    per_page: int
    last_index: int
    index: int = 0

    @classmethod
    def new(cls, per_page: int, amount: int) -> Pages:
        """`per_page` entries per page, `amount` entries in total."""
        return cls(per_page=per_page, last_index=last_multiple(per_page, amount))

    def curr_page(self) -> int:
        return self.index // self.per_page + 1

    def last_page(self) -> int:
        return self.last_index // self.per_page + 1

    def start(self) -> None:
        self.index = 0

    def back(self) -> None:
        self.index = max(0, self.index - self.per_page)

    def step(self) -> None:
        self.index = min(self.last_index, self.index + self.per_page)

    def end(self) -> None:
        self.index = self.last_index

    def set_page(self, page: int) -> None:
        """Jump to the 1-based `page`, clamped to the available pages."""
        index = (page - 1) * self.per_page
        self.index = max(0, min(self.last_index, index))


class ComponentKind(Enum):
    DEFAULT = "default"
    MAP_SEARCH = "map_search"
    PROFILE = "profile"


@dataclass(frozen=True)
class ButtonSpec:
    custom_id: str
    disabled: bool
    emoji: str | None = None
    label: str | None = None
    style: discord.ButtonStyle = discord.ButtonStyle.secondary


def components(pages: Pages, kind: ComponentKind) -> list[ButtonSpec]:
    """The button row for the current page; empty means no buttons."""
    if kind is ComponentKind.PROFILE:
        return [
            ButtonSpec("profile_compact", pages.index == 0, label="Compact", style=discord.ButtonStyle.success),
            ButtonSpec("profile_medium", pages.index == 1, label="Medium", style=discord.ButtonStyle.success),
            ButtonSpec("profile_full", pages.index == 2, label="Full", style=discord.ButtonStyle.success),
        ]

    if pages.last_index == 0:
        return []

    at_start = pages.index == 0
    at_end = pages.index == pages.last_index

    if kind is ComponentKind.MAP_SEARCH:
        return [
            ButtonSpec("pagination_start", at_start, emoji="⏮️"),
            ButtonSpec("pagination_back", at_start, emoji="⏪"),
            ButtonSpec("pagination_step", at_end, emoji="⏩"),
        ]

    return [
        ButtonSpec("pagination_start", at_start, emoji="⏮️"),
        ButtonSpec("pagination_back", at_start, emoji="⏪"),
        ButtonSpec("pagination_custom", False, emoji="*️⃣"),
        ButtonSpec("pagination_step", at_end, emoji="⏩"),
        ButtonSpec("pagination_end", at_end, emoji="⏭️"),
    ]


def to_view(specs: list[ButtonSpec]) -> discord.ui.View | None:
    """
    Wrap button specs in a view for sending.

    The view is stopped right away: presses are routed through
    `PaginationManager` by custom id, not through discord.py's view store.
    """
    if not specs:
        return None
    view = discord.ui.View(timeout=None)
    for spec in specs:
        view.add_item(
            discord.ui.Button(
                style=spec.style,
                label=spec.label,
                emoji=spec.emoji,
                custom_id=spec.custom_id,
                disabled=spec.disabled,
            )
        )
    view.stop()
    return view


class PageModal(discord.ui.Modal, title="Jump to a page"):
    """Asks for a 1-based page number. Submission is handled by custom id."""

    page = discord.ui.TextInput(
        label="Page number",
        placeholder="Number between 1 and the last page",
        min_length=1,
        max_length=5,
        custom_id="page_input",
    )

    def __init__(self):
        super().__init__(timeout=None, custom_id=PAGE_MODAL_ID)
        self.stop()


# Pagination kinds: each holds the data its pages are built from


@dataclass
class CommandCountPagination:
    booted_up: datetime
    cmds: list[tuple[str, int]]

    PER_PAGE = 10

    def build_page(self, pages: Pages) -> discord.Embed:
        return create_command_count_embed(self.booted_up, self.cmds, pages)

    @classmethod
    def builder(cls, booted_up: datetime, cmds: list[tuple[str, int]]) -> PaginationBuilder:
        pages = Pages.new(cls.PER_PAGE, len(cmds))
        return PaginationBuilder(cls(booted_up, cmds), pages)


@dataclass
class SkinListPagination:
    skins: list[str]

    PER_PAGE = 15

    def build_page(self, pages: Pages) -> discord.Embed:
        return create_skin_list_embed(self.skins, pages)

    @classmethod
    def builder(cls, skins: list[str]) -> PaginationBuilder:
        pages = Pages.new(cls.PER_PAGE, len(skins))
        return PaginationBuilder(cls(skins), pages)


class PaginationBuilder:
    """Options for publishing the first page of a pagination."""

    def __init__(self, kind, pages: Pages):
        self.kind = kind
        self.pages = pages
        self._attachment: tuple[str, bytes] | None = None
        self._content: str | None = None
        self._start_by_callback = True
        self._defer_components = False
        self._component_kind = ComponentKind.DEFAULT

    def attachment(self, name: str, data: bytes) -> PaginationBuilder:
        """File shown alongside every page."""
        self._attachment = (name, data)
        return self

    def content(self, content: str) -> PaginationBuilder:
        self._content = content
        return self

    def start_by_update(self) -> PaginationBuilder:
        """Publish by editing the response of an already deferred interaction."""
        self._start_by_callback = False
        return self

    def defer_components(self) -> PaginationBuilder:
        """Acknowledge presses before building pages that take a while."""
        self._defer_components = True
        return self

    def profile_components(self) -> PaginationBuilder:
        self._component_kind = ComponentKind.PROFILE
        return self

    def map_search_components(self) -> PaginationBuilder:
        self._component_kind = ComponentKind.MAP_SEARCH
        return self

    async def start(self, manager: PaginationManager, origin: CommandOrigin) -> PaginationSession | None:
        """Publish the first page; returns the session if one was registered."""
        embed = self.kind.build_page(self.pages)
        view = to_view(components(self.pages, self._component_kind))

        file = None
        if self._attachment is not None:
            name, data = self._attachment
            file = discord.File(fp=io.BytesIO(data), filename=name)

        kwargs = {"content": self._content, "embed": embed, "view": view, "file": file}
        if self._start_by_callback:
            message = await origin.callback_with_response(**kwargs)
        else:
            message = await origin.create_message(**kwargs)

        if self.pages.last_index == 0:
            return None

        session = PaginationSession(
            author_id=origin.user_id,
            pages=self.pages,
            kind=self.kind,
            component_kind=self._component_kind,
            defer_components=self._defer_components,
            channel_id=message.channel.id,
            message_id=message.id,
        )
        manager.register(session)
        return session


@dataclass(eq=False)
class PaginationSession:
    author_id: int
    pages: Pages
    kind: object
    component_kind: ComponentKind
    defer_components: bool
    channel_id: int
    message_id: int
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    # Set to push the timeout back; set with `closed` to end the timeout task
    reset: asyncio.Event = field(default_factory=asyncio.Event, repr=False)
    closed: bool = False
    task: asyncio.Task | None = field(default=None, repr=False)

    def is_author(self, user_id: int) -> bool:
        return self.author_id == user_id

    def reset_timeout(self) -> None:
        self.reset.set()

    def close(self) -> None:
        self.closed = True
        self.reset.set()

    def build_page(self) -> discord.Embed:
        return self.kind.build_page(self.pages)

    def view(self) -> discord.ui.View | None:
        return to_view(components(self.pages, self.component_kind))


class PaginationManager:
    """Active sessions keyed by message id."""

    def __init__(self, client: discord.Client, timeout: float = PAGINATION_TIMEOUT):
        self.client = client
        self.timeout = timeout
        self._sessions: dict[int, PaginationSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, message_id: int) -> bool:
        return message_id in self._sessions

    def get(self, message_id: int) -> PaginationSession | None:
        return self._sessions.get(message_id)

    def register(self, session: PaginationSession) -> None:
        previous = self._sessions.get(session.message_id)
        if previous is not None:
            previous.close()
        self._sessions[session.message_id] = session
        session.task = asyncio.create_task(self._timeout_loop(session))

    def remove(self, message_id: int) -> PaginationSession | None:
        session = self._sessions.pop(message_id, None)
        if session is not None:
            session.close()
        return session

    async def _timeout_loop(self, session: PaginationSession) -> None:
        while True:
            try:
                await asyncio.wait_for(session.reset.wait(), timeout=self.timeout)
            except asyncio.TimeoutError:
                break
            if session.closed:
                return
            session.reset.clear()

        # Only the remover strips the buttons
        if self._sessions.get(session.message_id) is not session:
            return
        del self._sessions[session.message_id]
        session.closed = True

        try:
            channel = self.client.get_partial_messageable(session.channel_id)
            await channel.get_partial_message(session.message_id).edit(view=None)
        except discord.HTTPException as exc:
            logger.warning(f"failed to remove components of message {session.message_id}: {exc}")

    async def shutdown(self) -> None:
        for message_id in list(self._sessions):
            self.remove(message_id)

    async def _reject_non_author(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_message(NOT_AUTHOR_MESSAGE, ephemeral=True)

    async def _render(self, interaction: discord.Interaction, session: PaginationSession) -> None:
        """Rebuild the current page and replace the message with it."""
        if session.defer_components:
            await interaction.response.defer()
            embed = session.build_page()
            await interaction.edit_original_response(embed=embed, view=session.view())
        else:
            embed = session.build_page()
            await interaction.response.edit_message(embed=embed, view=session.view())

    async def handle_component(self, interaction: discord.Interaction) -> bool:
        """
        Apply a button press to its session.

        Returns False if the message has no active session.
        """
        custom_id = component_custom_id(interaction.data)
        session = self._sessions.get(interaction.message.id) if interaction.message else None
        if session is None:
            logger.debug(f"component `{custom_id}` for message without active pagination")
            return False

        if not session.is_author(interaction.user.id):
            await self._reject_non_author(interaction)
            return True

        shown = {spec.custom_id for spec in components(session.pages, session.component_kind)}
        if custom_id not in shown:
            logger.warning(f"ignoring `{custom_id}` on {session.component_kind.name} pagination {session.message_id}")
            return True

        if custom_id == "pagination_custom":
            session.reset_timeout()
            await interaction.response.send_modal(PageModal())
            return True

        async with session.lock:
            if session.closed:
                return False
            session.reset_timeout()

            pages = session.pages
            if custom_id == "pagination_start":
                pages.start()
            elif custom_id == "pagination_back":
                pages.back()
            elif custom_id == "pagination_step":
                pages.step()
            elif custom_id == "pagination_end":
                pages.end()
            elif custom_id == "profile_compact":
                pages.index = 0
            elif custom_id == "profile_medium":
                pages.index = 1
            elif custom_id == "profile_full":
                pages.index = 2

            try:
                await self._render(interaction, session)
            except discord.HTTPException as exc:
                logger.error(f"failed to update pagination {session.message_id}: {exc}")
                self.remove(session.message_id)

        return True

    async def handle_modal(self, interaction: discord.Interaction) -> bool:
        """Jump to the page number submitted through `PageModal`."""
        session = self._sessions.get(interaction.message.id) if interaction.message else None
        if session is None:
            return False

        if not session.is_author(interaction.user.id):
            await self._reject_non_author(interaction)
            return True

        raw = modal_text_value(interaction.data)
        try:
            page = int((raw or "").strip())
        except ValueError:
            await interaction.response.send_message(
                f"Failed to parse `{raw}` as a page number", ephemeral=True
            )
            return True

        async with session.lock:
            if session.closed:
                return False
            session.reset_timeout()
            session.pages.set_page(page)

            try:
                await self._render(interaction, session)
            except discord.HTTPException as exc:
                logger.error(f"failed to update pagination {session.message_id}: {exc}")
                self.remove(session.message_id)

        return True
