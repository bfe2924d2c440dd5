"""
Application services layer.

Services hold the bot's runtime state and are owned by the `Context`.
"""

from services.buckets import Bucket, BucketName, BucketRegistry
from services.config_store import ConfigStore
from services.pagination import PaginationManager, Pages
from services.replay_queue import ReplayQueue, ReplayWorker

__all__ = [
    "Bucket",
    "BucketName",
    "BucketRegistry",
    "ConfigStore",
    "Pages",
    "PaginationManager",
    "ReplayQueue",
    "ReplayWorker",
]
