"""
Guild and user configuration models.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace

DEFAULT_PREFIX = "<"
MAX_PREFIXES = 5
DEFAULT_TRACK_LIMIT = 50


@dataclass
class GuildConfig:
    """
    Per-guild settings.

    Optional fields stay None until a guild explicitly sets them so the
    defaults can change without rewriting stored rows.
    """

    prefixes: list[str] = field(default_factory=lambda: [DEFAULT_PREFIX])
    track_limit: int | None = None
    with_lyrics: bool | None = None
    show_retries: bool | None = None
    # Role ids (or user ids) allowed to run authority commands
    authorities: list[int] = field(default_factory=list)

    def __post_init__(self):
        if not self.prefixes:
            raise ValueError("a guild needs at least one prefix")
        if self.track_limit is not None and not 0 <= self.track_limit <= 255:
            raise ValueError(f"track limit {self.track_limit} out of range")

    def get_track_limit(self) -> int:
        return self.track_limit if self.track_limit is not None else DEFAULT_TRACK_LIMIT

    def get_with_lyrics(self) -> bool:
        return self.with_lyrics if self.with_lyrics is not None else True

    def get_show_retries(self) -> bool:
        return self.show_retries if self.show_retries is not None else True

    def copy(self) -> GuildConfig:
        """Deep enough copy for mutation outside the cache."""
        return replace(self, prefixes=list(self.prefixes), authorities=list(self.authorities))

    def to_row(self) -> dict:
        return {
            "prefixes": json.dumps(self.prefixes),
            "track_limit": self.track_limit,
            "with_lyrics": None if self.with_lyrics is None else int(self.with_lyrics),
            "show_retries": None if self.show_retries is None else int(self.show_retries),
            "authorities": json.dumps(self.authorities),
        }

    @classmethod
    def from_row(cls, row) -> GuildConfig:
        with_lyrics = row["with_lyrics"]
        show_retries = row["show_retries"]
        return cls(
            prefixes=json.loads(row["prefixes"]) or [DEFAULT_PREFIX],
            track_limit=row["track_limit"],
            with_lyrics=None if with_lyrics is None else bool(with_lyrics),
            show_retries=None if show_retries is None else bool(show_retries),
            authorities=[int(a) for a in json.loads(row["authorities"] or "[]")],
        )


@dataclass
class UserConfig:
    """Per-user settings. `options` is an opaque bag for renderer flags."""

    skin: str | None = None
    options: dict = field(default_factory=dict)

    def to_row(self) -> dict:
        return {"skin": self.skin, "options": json.dumps(self.options)}

    @classmethod
    def from_row(cls, row) -> UserConfig:
        return cls(skin=row["skin"], options=json.loads(row["options"] or "{}"))
