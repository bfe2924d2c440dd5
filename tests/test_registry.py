"""
Tests for command descriptors and the CommandRegistry.
"""

import pytest

from commands import registry as registry_module
from commands.registry import (
    CommandFlags,
    CommandRegistry,
    CommandTrie,
    PrefixCommand,
    SlashCommand,
    build_registry,
    get_registry,
)


async def noop(*args):
    return None


def slash(name, flags=CommandFlags.NONE):
    return SlashCommand(name=name, description=f"{name} command", exec=noop, flags=flags)


def prefix(*names):
    return PrefixCommand(names=names, description="prefix command", exec=noop)


class TestFlags:
    def test_defer_by_default(self):
        assert CommandFlags.NONE.defer
        assert (CommandFlags.AUTHORITY | CommandFlags.EPHEMERAL).defer

    def test_skip_defer_disables_defer(self):
        assert not CommandFlags.SKIP_DEFER.defer
        assert not (CommandFlags.EPHEMERAL | CommandFlags.SKIP_DEFER).defer

    def test_ephemeral(self):
        assert (CommandFlags.EPHEMERAL | CommandFlags.ONLY_OWNER).ephemeral
        assert not CommandFlags.ONLY_OWNER.ephemeral


class TestTrie:
    def test_insert_and_get(self):
        trie = CommandTrie()
        command = slash("render")
        trie.insert("render", command)

        assert trie.get("render") is command
        assert trie.get("rend") is None
        assert trie.get("renders") is None
        assert len(trie) == 1

    def test_descendants(self):
        trie = CommandTrie()
        for name in ("skin", "skinlist", "settings", "serverconfig", "queue"):
            trie.insert(name, slash(name))

        assert trie.descendants("s") == ["serverconfig", "settings", "skin", "skinlist"]
        assert trie.descendants("skin") == ["skin", "skinlist"]
        assert trie.descendants("") == ["queue", "serverconfig", "settings", "skin", "skinlist"]
        assert trie.descendants("x") is None


class TestRegistry:
    def test_every_name_is_found_and_is_its_own_descendant(self):
        names = ["help", "ping", "prefix", "render", "queue"]
        registry = CommandRegistry(slash=[slash(name) for name in names])

        for name in names:
            assert registry.slash(name) is not None
            assert name in registry.descendants(name)

        assert sorted(names) == registry.names()

    def test_unknown_prefix_has_no_descendants(self):
        registry = CommandRegistry(slash=[slash("ping")])
        assert registry.descendants("zzz") == []

    def test_duplicate_slash_name(self):
        with pytest.raises(ValueError):
            CommandRegistry(slash=[slash("ping"), slash("ping")])

    def test_prefix_aliases(self):
        invite = prefix("invite", "inv")
        registry = CommandRegistry(prefix=[invite])

        assert registry.prefix("invite") is invite
        assert registry.prefix("INV") is invite
        assert registry.prefix("invit") is None
        assert registry.prefix_commands() == [invite]

    def test_duplicate_alias(self):
        with pytest.raises(ValueError):
            CommandRegistry(prefix=[prefix("help", "h"), prefix("hello", "h")])

    def test_collect_payloads(self):
        registry = CommandRegistry(
            slash=[slash("ping"), slash("prefix", CommandFlags.AUTHORITY), slash("serverconfig", CommandFlags.ONLY_GUILDS)]
        )

        payloads = {payload["name"]: payload for payload in registry.collect()}

        assert payloads["ping"]["description"] == "ping command"
        assert "dm_permission" not in payloads["ping"]
        assert payloads["prefix"]["dm_permission"] is False
        assert payloads["serverconfig"]["dm_permission"] is False


class TestGlobalRegistry:
    def test_built_once(self, monkeypatch):
        calls = []

        def fake_build():
            calls.append(1)
            return CommandRegistry()

        monkeypatch.setattr(registry_module, "_registry", None)
        monkeypatch.setattr(registry_module, "build_registry", fake_build)

        first = get_registry()
        second = get_registry()

        assert first is second
        assert calls == [1]

    def test_bot_commands_register(self):
        registry = build_registry()

        for name in ("ping", "invite", "commands", "help", "prefix", "authorities"):
            assert registry.slash(name) is not None
            assert registry.prefix(name) is not None

        for name in ("serverconfig", "settings", "skin", "skinlist", "queue", "render"):
            assert registry.slash(name) is not None

        assert registry.prefix("inv") is registry.prefix("invite")
        assert CommandFlags.ONLY_OWNER in registry.slash("skin").flags
        assert registry.slash("render").bucket is not None
