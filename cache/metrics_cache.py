"""
Snapshot cache for recent block metrics.

The whole snapshot lives under one fixed key as a JSON array of
``{"Id", "Tx", "Length"}`` objects, newest first. Every write replaces
the previous value with a single SET, so readers observe either the old
snapshot or the new one.
"""
import json
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
import structlog

from chainstats.constants import (
    CACHE_FIELD_ID,
    CACHE_FIELD_LENGTH,
    CACHE_FIELD_TX,
    CACHE_KEY,
    SNAPSHOT_WINDOW
)
from chainstats.errors import CacheMiss, DecodeFailure, EncodeFailure
from chainstats.types import BlockMetric, MetricsSnapshot, WireMetric, to_wire
from monitoring.refresh_metrics import CACHE_READS
from .redis_manager import RedisManager

logger = structlog.get_logger()


class _CachedBlock(BaseModel):
    """One entry of the persisted layout; unknown keys are rejected."""
    model_config = ConfigDict(extra="forbid")

    id: int = Field(alias=CACHE_FIELD_ID)
    tx: int = Field(ge=0, alias=CACHE_FIELD_TX)
    length: int = Field(ge=0, alias=CACHE_FIELD_LENGTH)


_snapshot_adapter = TypeAdapter(List[_CachedBlock])


class MetricsCache:
    """Stores and retrieves the current metrics snapshot."""

    def __init__(
        self,
        redis_manager: RedisManager,
        key: str = CACHE_KEY,
        max_size: int = SNAPSHOT_WINDOW,
        ttl: Optional[int] = None
    ):
        """
        Initialize the metrics cache.

        Args:
            redis_manager: Redis connection used for GET/SET
            key: Key holding the snapshot
            max_size: Largest snapshot accepted by ``write``
            ttl: Optional expiry in seconds applied on each write
        """
        self.redis = redis_manager
        self.key = key
        self.max_size = max_size
        self.ttl = ttl

    def encode(self, snapshot: MetricsSnapshot) -> str:
        """Serialize a snapshot to its persisted JSON form."""
        if len(snapshot) > self.max_size:
            raise EncodeFailure(
                f"snapshot holds {len(snapshot)} blocks, at most {self.max_size} allowed"
            )
        try:
            return json.dumps([metric.to_cache() for metric in snapshot])
        except (TypeError, ValueError, AttributeError) as e:
            raise EncodeFailure("snapshot is not serializable") from e

    def decode(self, raw: str) -> MetricsSnapshot:
        """Parse a persisted value back into a snapshot."""
        try:
            entries = _snapshot_adapter.validate_json(raw)
        except ValidationError as e:
            raise DecodeFailure(f"corrupt value under {self.key}") from e
        if len(entries) > self.max_size:
            raise DecodeFailure(
                f"{self.key} holds {len(entries)} blocks, at most {self.max_size} allowed"
            )
        return [BlockMetric(id=entry.id, tx=entry.tx, length=entry.length) for entry in entries]

    def write(self, snapshot: MetricsSnapshot) -> None:
        """
        Replace the cached snapshot.

        Raises:
            EncodeFailure: If the snapshot cannot be serialized
            CacheUnavailable: If Redis cannot be reached
        """
        value = self.encode(snapshot)
        self.redis.set(self.key, value, ttl=self.ttl)
        logger.debug("snapshot_cached", key=self.key, blocks=len(snapshot))

    def read(self) -> MetricsSnapshot:
        """
        Return the cached snapshot.

        Raises:
            CacheMiss: If the snapshot has never been written
            CacheUnavailable: If Redis cannot be reached
            DecodeFailure: If the stored value is corrupt
        """
        raw = self.redis.get(self.key)
        if raw is None:
            CACHE_READS.labels(result='miss').inc()
            logger.debug("snapshot_cache_miss", key=self.key)
            raise CacheMiss(f"{self.key} has not been populated")
        try:
            snapshot = self.decode(raw)
        except DecodeFailure:
            CACHE_READS.labels(result='corrupt').inc()
            logger.error("snapshot_decode_failed", key=self.key)
            raise
        CACHE_READS.labels(result='hit').inc()
        return snapshot

    def read_wire(self) -> List[WireMetric]:
        """Return the cached snapshot projected to its wire form."""
        return to_wire(self.read())
