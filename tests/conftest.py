import pytest
from unittest.mock import Mock

from sqlalchemy import insert
from sqlalchemy.pool import StaticPool

from cache.metrics_cache import MetricsCache
from cache.redis_manager import RedisManager
from chainstats.broadcast import BroadcastPublisher
from chainstats.database import DatabaseManager
from chainstats.models import BlockChain, LogTransaction
from chainstats.refresh import RefreshOrchestrator
from chainstats.service import ChainStatsService
from chainstats.source import BlockMetricsSource
from config.settings import Settings


def add_block(db, block_id, tx, length, time):
    """Insert a block whose payload is ``length`` bytes long."""
    with db.begin() as trans:
        trans.connection().execute(insert(BlockChain).values(
            id=block_id,
            hash=block_id.to_bytes(32, "big"),
            data=b"\x01" * length,
            time=time,
            tx=tx
        ))
        trans.commit()


def add_log_transaction(db, tx_hash, block_id):
    with db.begin() as trans:
        trans.connection().execute(insert(LogTransaction).values(
            hash=tx_hash,
            block=block_id,
            timestamp=0
        ))
        trans.commit()


@pytest.fixture
def db():
    """Create an in-memory block store with the schema in place."""
    manager = DatabaseManager(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    manager.init_schema()
    yield manager
    manager.close()


@pytest.fixture
def seeded_db(db):
    """Block store holding blocks 4 and 5."""
    add_block(db, 4, tx=1, length=80, time=1000)
    add_block(db, 5, tx=3, length=120, time=1010)
    return db


@pytest.fixture
def redis_client():
    """Mock Redis client backed by a dict."""
    store = {}
    client = Mock()
    client.get.side_effect = store.get
    client.set.side_effect = lambda key, value, ex=None: store.__setitem__(key, value)
    client.publish.return_value = 1
    client.store = store
    return client


@pytest.fixture
def redis_manager(redis_client):
    return RedisManager("redis://localhost:6379/15", client=redis_client)


@pytest.fixture
def metrics_cache(redis_manager):
    return MetricsCache(redis_manager)


@pytest.fixture
def publisher(redis_manager):
    return BroadcastPublisher(redis_manager)


@pytest.fixture
def source(seeded_db):
    return BlockMetricsSource(seeded_db)


@pytest.fixture
def orchestrator(source, metrics_cache, publisher):
    return RefreshOrchestrator(source, metrics_cache, publisher, limit=30)


@pytest.fixture
def settings():
    return Settings(DATABASE_URL="sqlite://", REDIS_URL="redis://localhost:6379/15")


@pytest.fixture
def service(seeded_db, redis_manager, settings):
    return ChainStatsService(seeded_db, redis_manager, settings)
