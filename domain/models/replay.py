"""
Replay render job models.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


@dataclass(frozen=True)
class TimePoints:
    """Optional start/end of the rendered section, in seconds."""

    start: int | None = None
    end: int | None = None


@dataclass(frozen=True)
class ReplaySlim:
    """The few replay fields the bot displays."""

    beatmap_hash: str | None
    count_300: int
    count_100: int
    count_50: int
    count_geki: int
    count_katsu: int
    count_miss: int
    max_combo: int
    mods: int
    player_name: str | None

    def total_hits(self) -> int:
        return self.count_300 + self.count_100 + self.count_50 + self.count_miss

    def accuracy(self) -> float:
        total = self.total_hits()
        if total == 0:
            return 0.0
        numerator = self.count_50 * 50 + self.count_100 * 100 + self.count_300 * 300
        return round(10_000 * numerator / (total * 300)) / 100


@dataclass(frozen=True)
class ReplayData:
    """A queued render job."""

    input_channel: int
    output_channel: int
    path: Path
    replay: ReplaySlim | None
    time_points: TimePoints
    user: int
    skin: str | None = None

    def replay_name(self) -> str:
        """File name without the .osr extension or the trailing `_Osu...` part."""
        name = self.path.name
        extension = name.rfind(".osr")
        if extension == -1:
            extension = len(name)
        suffix = name.rfind("_Osu", 0, extension)
        if suffix == -1:
            suffix = extension
        return name[:suffix].replace("_", " ")


class ReplayStatusKind(Enum):
    WAITING = "Waiting"
    DOWNLOADING = "Downloading"
    RENDERING = "Rendering"
    ENCODING = "Encoding"
    UPLOADING = "Uploading"


@dataclass(frozen=True)
class ReplayStatus:
    """Pipeline progress; `progress` only matters while rendering or encoding."""

    kind: ReplayStatusKind
    progress: int = 0

    def __post_init__(self):
        if not 0 <= self.progress <= 100:
            raise ValueError(f"progress {self.progress} out of range")

    @classmethod
    def waiting(cls) -> ReplayStatus:
        return cls(ReplayStatusKind.WAITING)

    @classmethod
    def downloading(cls) -> ReplayStatus:
        return cls(ReplayStatusKind.DOWNLOADING)

    @classmethod
    def rendering(cls, progress: int) -> ReplayStatus:
        return cls(ReplayStatusKind.RENDERING, progress)

    @classmethod
    def encoding(cls, progress: int) -> ReplayStatus:
        return cls(ReplayStatusKind.ENCODING, progress)

    @classmethod
    def uploading(cls) -> ReplayStatus:
        return cls(ReplayStatusKind.UPLOADING)

    def __str__(self) -> str:
        if self.kind in (ReplayStatusKind.RENDERING, ReplayStatusKind.ENCODING):
            return f"{self.kind.value} ({self.progress}%)"
        return self.kind.value
