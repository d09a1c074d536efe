"""Wires the chainstats components together from settings."""
from typing import Optional

from sqlalchemy.pool import StaticPool
import structlog

from cache.metrics_cache import MetricsCache
from cache.redis_manager import RedisManager
from config.settings import Settings, get_settings
from .broadcast import BroadcastPublisher
from .database import DatabaseManager
from .refresh import RefreshOrchestrator
from .scheduler import RefreshScheduler
from .source import BlockMetricsSource

logger = structlog.get_logger()


class ChainStatsService:
    """Owns the store, cache and broadcast handles for one process."""

    def __init__(
        self,
        db: DatabaseManager,
        redis_manager: RedisManager,
        settings: Optional[Settings] = None
    ):
        self.settings = settings or get_settings()
        self.db = db
        self.redis = redis_manager
        self.source = BlockMetricsSource(db)
        self.cache = MetricsCache(
            redis_manager,
            key=self.settings.CACHE_KEY,
            ttl=self.settings.CACHE_TTL
        )
        self.publisher = BroadcastPublisher(redis_manager)
        self.orchestrator = RefreshOrchestrator(
            self.source,
            self.cache,
            self.publisher,
            limit=self.settings.REFRESH_LIMIT
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ChainStatsService":
        settings = settings or get_settings()
        engine_kwargs = {}
        if settings.DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
            engine_kwargs.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
        else:
            engine_kwargs.update(pool_pre_ping=settings.DB_POOL_PRE_PING)
        db = DatabaseManager(settings.DATABASE_URL, **engine_kwargs)
        redis_manager = RedisManager(settings.REDIS_URL, default_ttl=settings.CACHE_TTL)
        return cls(db, redis_manager, settings)

    def scheduler(self) -> RefreshScheduler:
        return RefreshScheduler(self.orchestrator, self.settings.REFRESH_INTERVAL)

    def close(self) -> None:
        self.redis.disconnect()
        self.db.close()
        logger.info("chainstats_service_closed")
