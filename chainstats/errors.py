"""Exceptions raised by the chainstats components."""


class ChainStatsError(Exception):
    """Base class for all chainstats errors."""
    pass


class ConnectionFailure(ChainStatsError):
    """The primary store could not be reached."""
    pass


class StoreUnavailable(ChainStatsError):
    """A query against the primary store failed."""
    pass


class CacheUnavailable(ChainStatsError):
    """The key-value cache could not be reached."""
    pass


class EncodeFailure(ChainStatsError):
    """A snapshot could not be serialized for the cache."""
    pass


class DecodeFailure(ChainStatsError):
    """The cached value is corrupt or has an unexpected shape."""
    pass


class CacheMiss(ChainStatsError):
    """The snapshot key has never been written."""
    pass


class PublishFailure(ChainStatsError):
    """The broadcast channel rejected or failed to deliver an update."""
    pass
