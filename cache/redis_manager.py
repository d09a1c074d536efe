from typing import Optional
import threading
import redis
import structlog

from chainstats.errors import CacheUnavailable, PublishFailure

logger = structlog.get_logger()

class RedisManager:
    def __init__(self, redis_url: str, default_ttl: Optional[int] = None, client: Optional[redis.Redis] = None):
        """Initialize Redis manager with connection URL and optional default TTL."""
        self.redis_url = redis_url
        self.default_ttl = default_ttl
        self.redis: Optional[redis.Redis] = client
        self._connect_lock = threading.Lock()

    def connect(self) -> None:
        """Establish connection to Redis."""
        try:
            self.redis = redis.Redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True
            )
            self.redis.ping()
            logger.info("redis_connection_established")
        except redis.RedisError as e:
            self.redis = None
            logger.error("redis_connection_failed", error=str(e))
            raise CacheUnavailable("cannot connect to redis") from e

    def disconnect(self) -> None:
        """Close Redis connection."""
        if self.redis:
            self.redis.close()
            self.redis = None
            logger.info("redis_connection_closed")

    def _client(self) -> redis.Redis:
        client = self.redis
        if client is None:
            # Only one thread builds the client on a cold manager
            with self._connect_lock:
                if self.redis is None:
                    self.connect()
                client = self.redis
        return client

    def get(self, key: str) -> Optional[str]:
        """Get the raw string stored under key, or None if absent."""
        try:
            return self._client().get(key)
        except redis.RedisError as e:
            logger.error("redis_get_failed", key=key, error=str(e))
            raise CacheUnavailable(f"cannot read {key}") from e

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """Replace the value stored under key in a single SET."""
        ttl = ttl or self.default_ttl
        try:
            self._client().set(key, value, ex=ttl)
        except redis.RedisError as e:
            logger.error("redis_set_failed", key=key, error=str(e))
            raise CacheUnavailable(f"cannot write {key}") from e

    def publish(self, channel: str, message: str) -> int:
        """Publish a message and return the number of receiving subscribers."""
        try:
            return self._client().publish(channel, message)
        except (redis.RedisError, CacheUnavailable) as e:
            logger.error("redis_publish_failed", channel=channel, error=str(e))
            raise PublishFailure(f"cannot publish to {channel}") from e
