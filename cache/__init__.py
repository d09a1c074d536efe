"""
Chainstats caching module

Redis-backed storage for the recent block metrics snapshot served by the
explorer read path.
"""

from .redis_manager import RedisManager
from .metrics_cache import MetricsCache

__all__ = [
    'RedisManager',
    'MetricsCache'
]
