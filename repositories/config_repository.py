"""
Repository for guild and user configuration.
"""

from domain.models.guild_config import GuildConfig, UserConfig
from repositories.base_repository import BaseRepository
from repositories.interfaces import IConfigRepository

GUILD_COLUMNS = "prefixes, track_limit, with_lyrics, show_retries, authorities"


class ConfigRepository(BaseRepository, IConfigRepository):
    """
    Handles CRUD operations for guild and user configuration.

    List and dict fields are stored as JSON text; see the models' `to_row`.
    """

    def get_user_config(self, user_id: int) -> UserConfig | None:
        row = self.fetch_one("SELECT skin, options FROM user_configs WHERE user_id = ?", (user_id,))
        return UserConfig.from_row(row) if row else None

    def insert_user_config(self, user_id: int, config: UserConfig) -> None:
        """Insert a user config. Fails if the user already has one."""
        row = config.to_row()
        self.execute(
            "INSERT INTO user_configs (user_id, skin, options) VALUES (?, ?, ?)",
            (user_id, row["skin"], row["options"]),
        )

    def upsert_user_config(self, user_id: int, config: UserConfig) -> None:
        row = config.to_row()
        self.execute(
            """
            INSERT INTO user_configs (user_id, skin, options)
            VALUES (?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                skin = excluded.skin,
                options = excluded.options
            """,
            (user_id, row["skin"], row["options"]),
        )

    def get_guild_config(self, guild_id: int) -> GuildConfig | None:
        row = self.fetch_one(f"SELECT {GUILD_COLUMNS} FROM guild_configs WHERE guild_id = ?", (guild_id,))
        return GuildConfig.from_row(row) if row else None

    def get_guild_configs(self) -> dict[int, GuildConfig]:
        """Load every stored guild config, keyed by guild id."""
        rows = self.fetch_all(f"SELECT guild_id, {GUILD_COLUMNS} FROM guild_configs")
        return {row["guild_id"]: GuildConfig.from_row(row) for row in rows}

    def upsert_guild_config(self, guild_id: int, config: GuildConfig) -> None:
        row = config.to_row()
        self.execute(
            f"""
            INSERT INTO guild_configs (guild_id, {GUILD_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(guild_id) DO UPDATE SET
                prefixes = excluded.prefixes,
                track_limit = excluded.track_limit,
                with_lyrics = excluded.with_lyrics,
                show_retries = excluded.show_retries,
                authorities = excluded.authorities,
                updated_at = CURRENT_TIMESTAMP
            """,
            (
                guild_id,
                row["prefixes"],
                row["track_limit"],
                row["with_lyrics"],
                row["show_retries"],
                row["authorities"],
            ),
        )
