"""
Abstract repository interfaces for data access.

These interfaces define the contracts implemented by concrete repositories.
"""

from abc import ABC, abstractmethod

from domain.models.guild_config import GuildConfig, UserConfig


class IConfigRepository(ABC):
    @abstractmethod
    def get_user_config(self, user_id: int) -> UserConfig | None: ...

    @abstractmethod
    def insert_user_config(self, user_id: int, config: UserConfig) -> None: ...

    @abstractmethod
    def upsert_user_config(self, user_id: int, config: UserConfig) -> None: ...

    @abstractmethod
    def get_guild_config(self, guild_id: int) -> GuildConfig | None: ...

    @abstractmethod
    def get_guild_configs(self) -> dict[int, GuildConfig]: ...

    @abstractmethod
    def upsert_guild_config(self, guild_id: int, config: GuildConfig) -> None: ...
