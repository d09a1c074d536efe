"""
Block throughput statistics for the chain explorer.

Recent block metrics are loaded from the primary store, cached in Redis
and pushed to live subscribers over a pub/sub channel.
"""
from .types import BlockMetric, WireMetric, Channel, MetricsSnapshot
from .errors import (
    ChainStatsError,
    ConnectionFailure,
    StoreUnavailable,
    CacheUnavailable,
    EncodeFailure,
    DecodeFailure,
    CacheMiss,
    PublishFailure
)

__all__ = [
    'BlockMetric',
    'WireMetric',
    'Channel',
    'MetricsSnapshot',
    'ChainStatsError',
    'ConnectionFailure',
    'StoreUnavailable',
    'CacheUnavailable',
    'EncodeFailure',
    'DecodeFailure',
    'CacheMiss',
    'PublishFailure'
]
