"""
Repository layer for data access abstraction.
"""

from repositories.base_repository import BaseRepository
from repositories.config_repository import ConfigRepository
from repositories.interfaces import IConfigRepository

__all__ = [
    "BaseRepository",
    "ConfigRepository",
    "IConfigRepository",
]
