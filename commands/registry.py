"""
Command descriptors and the registry indexing them.

Slash commands live in a prefix trie so autocomplete can enumerate every
command starting with what the user typed. Prefix commands are a flat map
from each name and alias to its descriptor.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass, field
from enum import Flag, auto
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from services.buckets import BucketName

logger = logging.getLogger("shishabot.commands.registry")


class CommandFlags(Flag):
    NONE = 0
    AUTHORITY = auto()
    EPHEMERAL = auto()
    ONLY_GUILDS = auto()
    ONLY_OWNER = auto()
    SKIP_DEFER = auto()

    @property
    def defer(self) -> bool:
        """Commands are deferred unless they opt out."""
        return CommandFlags.SKIP_DEFER not in self

    @property
    def ephemeral(self) -> bool:
        return CommandFlags.EPHEMERAL in self


@dataclass(frozen=True)
class SlashCommand:
    name: str
    description: str
    exec: Callable[..., Awaitable[None]]
    flags: CommandFlags = CommandFlags.NONE
    bucket: BucketName | None = None
    options: tuple[dict, ...] = ()
    # async (ctx, command) -> choice names for the focused option
    autocomplete: Callable[..., Awaitable[list[str]]] | None = None

    def create(self) -> dict[str, Any]:
        """Application command payload used when syncing with Discord."""
        payload: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "type": 1,
            "options": list(self.options),
        }
        if CommandFlags.ONLY_GUILDS in self.flags or CommandFlags.AUTHORITY in self.flags:
            payload["dm_permission"] = False
        return payload


@dataclass(frozen=True)
class PrefixCommand:
    names: tuple[str, ...]
    description: str
    exec: Callable[..., Awaitable[None]]
    flags: CommandFlags = CommandFlags.NONE
    bucket: BucketName | None = None
    group: str = "Utility"
    usage: str | None = None

    @property
    def name(self) -> str:
        return self.names[0]


@dataclass
class _TrieNode:
    children: dict[str, _TrieNode] = field(default_factory=dict)
    value: SlashCommand | None = None


class CommandTrie:
    """Character trie keyed by command name."""

    def __init__(self):
        self._root = _TrieNode()
        self._len = 0

    def __len__(self) -> int:
        return self._len

    def insert(self, key: str, value: SlashCommand) -> None:
        node = self._root
        for char in key:
            node = node.children.setdefault(char, _TrieNode())
        if node.value is None:
            self._len += 1
        node.value = value

    def _find(self, key: str) -> _TrieNode | None:
        node = self._root
        for char in key:
            node = node.children.get(char)
            if node is None:
                return None
        return node

    def get(self, key: str) -> SlashCommand | None:
        node = self._find(key)
        return node.value if node is not None else None

    def _walk(self, node: _TrieNode, path: str) -> Iterator[tuple[str, SlashCommand]]:
        if node.value is not None:
            yield path, node.value
        for char in sorted(node.children):
            yield from self._walk(node.children[char], path + char)

    def items(self) -> Iterator[tuple[str, SlashCommand]]:
        return self._walk(self._root, "")

    def descendants(self, prefix: str) -> list[str] | None:
        """Every key starting with `prefix`, or None if no key does."""
        node = self._find(prefix)
        if node is None:
            return None
        return [key for key, _ in self._walk(node, prefix)]


class CommandRegistry:
    def __init__(
        self,
        slash: list[SlashCommand] | tuple[SlashCommand, ...] = (),
        prefix: list[PrefixCommand] | tuple[PrefixCommand, ...] = (),
    ):
        self._slash = CommandTrie()
        self._prefix: dict[str, PrefixCommand] = {}
        self._prefix_commands: list[PrefixCommand] = []

        for command in slash:
            self.add_slash(command)
        for command in prefix:
            self.add_prefix(command)

    def add_slash(self, command: SlashCommand) -> None:
        if self._slash.get(command.name) is not None:
            raise ValueError(f"slash command `{command.name}` registered twice")
        self._slash.insert(command.name, command)

    def add_prefix(self, command: PrefixCommand) -> None:
        for name in command.names:
            key = name.lower()
            if key in self._prefix:
                raise ValueError(f"prefix command name `{key}` registered twice")
            self._prefix[key] = command
        self._prefix_commands.append(command)

    def slash(self, name: str) -> SlashCommand | None:
        return self._slash.get(name)

    def names(self) -> list[str]:
        return [name for name, _ in self._slash.items()]

    def descendants(self, prefix: str) -> list[str]:
        return self._slash.descendants(prefix) or []

    def collect(self) -> list[dict[str, Any]]:
        return [command.create() for _, command in self._slash.items()]

    def prefix(self, name: str) -> PrefixCommand | None:
        return self._prefix.get(name.lower())

    def prefix_commands(self) -> list[PrefixCommand]:
        return list(self._prefix_commands)


_registry: CommandRegistry | None = None
_registry_lock = threading.Lock()


def build_registry() -> CommandRegistry:
    """Collect the command lists of every command module."""
    from commands import configuration, danser, utility

    slash: list[SlashCommand] = []
    prefix: list[PrefixCommand] = []
    for module in (utility, configuration, danser):
        slash.extend(module.SLASH_COMMANDS)
        prefix.extend(module.PREFIX_COMMANDS)

    registry = CommandRegistry(slash, prefix)
    logger.info(
        f"Registered {len(registry.names())} slash commands "
        f"and {len(registry.prefix_commands())} prefix commands"
    )
    return registry


def get_registry() -> CommandRegistry:
    """The process-wide registry, built on first use."""
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = build_registry()
    return _registry
