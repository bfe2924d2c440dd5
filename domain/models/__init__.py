"""
Domain models - pure data structures for configs and render jobs.
"""

from domain.models.guild_config import GuildConfig, UserConfig
from domain.models.replay import ReplayData, ReplaySlim, ReplayStatus, TimePoints

__all__ = ["GuildConfig", "UserConfig", "ReplayData", "ReplaySlim", "ReplayStatus", "TimePoints"]
