"""
Pytest fixtures for tests.

Discord objects are replaced by small fakes recording what the bot sends;
they only implement the attributes the code under test touches.
"""

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock

import discord
import pytest

from commands.registry import CommandRegistry
from config import BotConfig, Paths, Tokens
from domain.models.guild_config import GuildConfig, UserConfig
from infrastructure.context import Context
from repositories.interfaces import IConfigRepository
from services.config_store import ConfigStore

TEST_GUILD_ID = 12345
TEST_CHANNEL_ID = 555
OWNER_ID = 1
USER_ID = 42
BOT_ID = 999


# =============================================================================
# CONFIG / PERSISTENCE
# =============================================================================


def make_config(tmp_path: Path, owners=(OWNER_ID,)) -> BotConfig:
    folders = tmp_path / "folders"
    return BotConfig(
        tokens=Tokens(discord="token", osu_client_id=1, osu_client_secret="secret"),
        paths=Paths(folders=folders, maps=tmp_path / "maps", server_settings=tmp_path / "settings"),
        owners=tuple(owners),
        dev_guild=TEST_GUILD_ID,
        db_path=str(tmp_path / "test.db"),
    )


class FakeConfigRepository(IConfigRepository):
    """In-memory config repository that can be told to fail writes."""

    def __init__(self):
        self.guilds: dict[int, GuildConfig] = {}
        self.users: dict[int, UserConfig] = {}
        self.guild_writes: list[tuple[int, GuildConfig]] = []
        self.fail_writes = False

    def get_user_config(self, user_id):
        config = self.users.get(user_id)
        return UserConfig(skin=config.skin, options=dict(config.options)) if config else None

    def insert_user_config(self, user_id, config):
        if user_id in self.users:
            raise ValueError(f"user {user_id} already exists")
        self.users[user_id] = config

    def upsert_user_config(self, user_id, config):
        self.users[user_id] = config

    def get_guild_config(self, guild_id):
        config = self.guilds.get(guild_id)
        return config.copy() if config else None

    def get_guild_configs(self):
        return {guild_id: config.copy() for guild_id, config in self.guilds.items()}

    def upsert_guild_config(self, guild_id, config):
        if self.fail_writes:
            raise RuntimeError("database is locked")
        self.guild_writes.append((guild_id, config.copy()))
        self.guilds[guild_id] = config.copy()


@pytest.fixture
def config(tmp_path):
    return make_config(tmp_path)


@pytest.fixture
def config_repo():
    return FakeConfigRepository()


# =============================================================================
# DISCORD FAKES
# =============================================================================


class FakeSentMessage:
    def __init__(self, message_id, channel_id, **kwargs):
        self.id = message_id
        self.channel = SimpleNamespace(id=channel_id)
        self.kwargs = kwargs
        self.edits = []

    async def edit(self, **kwargs):
        self.edits.append(kwargs)


class FakeChannel:
    def __init__(self, channel_id=TEST_CHANNEL_ID, name="general", can_send=True):
        self.id = channel_id
        self.name = name
        self.can_send = can_send
        self.sent = []
        self.typing = AsyncMock()
        self._next_id = 1000

    async def send(self, content=None, **kwargs):
        self._next_id += 1
        message = FakeSentMessage(self._next_id, self.id, content=content, **kwargs)
        self.sent.append(message)
        return message

    def permissions_for(self, member):
        return SimpleNamespace(send_messages=self.can_send)


class FakeRole:
    def __init__(self, role_id, name):
        self.id = role_id
        self.name = name


class FakeGuild:
    def __init__(self, guild_id=TEST_GUILD_ID, name="Test Guild", owner_id=OWNER_ID, roles=()):
        self.id = guild_id
        self.name = name
        self.owner_id = owner_id
        self.icon = None
        self.me = SimpleNamespace(id=BOT_ID)
        self._roles = {role.id: role for role in roles}
        self._members = {}

    def get_role(self, role_id):
        return self._roles.get(role_id)

    def get_member(self, user_id):
        return self._members.get(user_id)


def make_member(user_id=USER_ID, name="user", roles=(), administrator=False, bot=False):
    return SimpleNamespace(
        id=user_id,
        name=name,
        bot=bot,
        roles=[SimpleNamespace(id=role_id) for role_id in roles],
        guild_permissions=SimpleNamespace(administrator=administrator),
    )


class FakeMessage:
    def __init__(self, content, author=None, guild=None, channel=None, webhook_id=None):
        self.content = content
        self.author = author or make_member()
        self.guild = guild
        self.channel = channel or FakeChannel()
        self.webhook_id = webhook_id


class FakePartialMessage:
    def __init__(self, channel_id, message_id, edits):
        self.channel_id = channel_id
        self.id = message_id
        self._edits = edits

    async def edit(self, **kwargs):
        self._edits.append((self.channel_id, self.id, kwargs))


class FakePartialMessageable:
    def __init__(self, channel_id, client):
        self.id = channel_id
        self._client = client

    def get_partial_message(self, message_id):
        return FakePartialMessage(self.id, message_id, self._client.partial_edits)

    async def send(self, content=None, **kwargs):
        self._client.posted.append((self.id, content))


class FakeClient:
    def __init__(self, guilds=(), channels=()):
        self.guilds = {guild.id: guild for guild in guilds}
        self.channels = {channel.id: channel for channel in channels}
        self.partial_edits = []
        self.posted = []
        self.latency = 0.05
        self.application_id = BOT_ID

    def get_guild(self, guild_id):
        return self.guilds.get(guild_id)

    def get_channel(self, channel_id):
        return self.channels.get(channel_id)

    def get_partial_messageable(self, channel_id):
        return FakePartialMessageable(channel_id, self)


class FakeResponse:
    def __init__(self):
        self.done = False
        self.type = None
        self.sent = []
        self.deferred = []
        self.edits = []
        self.modals = []
        self.choices = None

    def is_done(self):
        return self.done

    async def send_message(self, content=None, **kwargs):
        self.done = True
        self.type = discord.InteractionResponseType.channel_message
        self.sent.append({"content": content, **kwargs})

    async def defer(self, **kwargs):
        self.done = True
        self.type = discord.InteractionResponseType.deferred_channel_message
        self.deferred.append(kwargs)

    async def edit_message(self, **kwargs):
        self.done = True
        self.type = discord.InteractionResponseType.message_update
        self.edits.append(kwargs)

    async def send_modal(self, modal):
        self.done = True
        self.modals.append(modal)

    async def autocomplete(self, choices):
        self.done = True
        self.choices = choices


class FakeInteraction:
    def __init__(
        self,
        interaction_type,
        data,
        user=None,
        guild_id=TEST_GUILD_ID,
        channel_id=TEST_CHANNEL_ID,
        message=None,
    ):
        self.type = interaction_type
        self.data = data
        self.user = user or make_member()
        self.guild_id = guild_id
        self.channel_id = channel_id
        self.message = message
        self.response = FakeResponse()
        self.followup = SimpleNamespace(send=AsyncMock())
        self.original_edits = []
        self._original = FakeSentMessage(2000, channel_id)

    async def edit_original_response(self, **kwargs):
        self.original_edits.append(kwargs)
        return self._original

    async def original_response(self):
        return self._original


# =============================================================================
# CONTEXT
# =============================================================================


@pytest.fixture
def guild():
    return FakeGuild()


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def client(guild, channel):
    return FakeClient(guilds=[guild], channels=[channel])


@pytest.fixture
def make_ctx(config, client, config_repo):
    """Build a Context over fakes; pass a registry to route commands."""

    def _make(registry=None, **kwargs):
        return Context(
            config,
            client,
            registry=registry if registry is not None else CommandRegistry(),
            configs=kwargs.pop("configs", ConfigStore(config_repo)),
            **kwargs,
        )

    return _make
