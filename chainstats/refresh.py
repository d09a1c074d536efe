"""
Refresh cycle for the block throughput snapshot.

A cycle runs three stages in order: Load from the primary store, Store the
snapshot in the cache, Broadcast it to subscribers. Each stage waits for the
previous one. Failures are isolated per stage and reported in the returned
``RefreshResult`` instead of being raised.
"""
import time
from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from cache.metrics_cache import MetricsCache
from config.logging import log_error
from monitoring.refresh_metrics import (
    LATEST_BLOCK_ID,
    REFRESH_CYCLES,
    REFRESH_DURATION,
    REFRESH_STAGE_FAILURES,
    SNAPSHOT_BLOCKS
)
from .broadcast import BroadcastPublisher
from .constants import SNAPSHOT_WINDOW
from .errors import ChainStatsError
from .source import BlockMetricsSource
from .types import BlockMetric

logger = structlog.get_logger()


@dataclass
class RefreshResult:
    """Outcome of one refresh cycle."""
    snapshot: Optional[List[BlockMetric]] = None
    load_error: Optional[ChainStatsError] = None
    store_error: Optional[ChainStatsError] = None
    broadcast_error: Optional[ChainStatsError] = None
    duration: float = 0.0
    stages: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def errors(self) -> List[ChainStatsError]:
        return [
            error for error in (self.load_error, self.store_error, self.broadcast_error)
            if error is not None
        ]


class RefreshOrchestrator:
    """Runs Load, Store and Broadcast as one best-effort pipeline."""

    def __init__(
        self,
        source: BlockMetricsSource,
        cache: MetricsCache,
        publisher: BroadcastPublisher,
        limit: int = SNAPSHOT_WINDOW
    ):
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ValueError(f"limit must be a positive integer, got {limit!r}")
        self.source = source
        self.cache = cache
        self.publisher = publisher
        self.limit = limit

    def refresh(self) -> RefreshResult:
        """Run one refresh cycle. Infrastructure errors never escape."""
        result = RefreshResult()
        started = time.perf_counter()
        try:
            self._run(result)
        finally:
            result.duration = time.perf_counter() - started
            REFRESH_DURATION.observe(result.duration)
            REFRESH_CYCLES.labels(outcome='ok' if result.ok else 'degraded').inc()
        logger.info("refresh_cycle_finished",
                    stages=result.stages,
                    blocks=len(result.snapshot) if result.snapshot is not None else None,
                    errors=[type(error).__name__ for error in result.errors],
                    duration=round(result.duration, 4))
        return result

    def _run(self, result: RefreshResult) -> None:
        try:
            snapshot = self.source.load_recent(self.limit)
        except ChainStatsError as e:
            # The existing cache stays untouched so stale reads keep working
            result.load_error = e
            self._stage_failed("load", e)
            return
        result.snapshot = snapshot
        result.stages.append("load")
        SNAPSHOT_BLOCKS.set(len(snapshot))
        if snapshot:
            LATEST_BLOCK_ID.set(snapshot[0].id)

        try:
            self.cache.write(snapshot)
            result.stages.append("store")
        except ChainStatsError as e:
            result.store_error = e
            self._stage_failed("store", e)

        # Broadcast the loaded snapshot, never a re-read of the cache
        try:
            self.publisher.publish(snapshot)
            result.stages.append("broadcast")
        except ChainStatsError as e:
            result.broadcast_error = e
            self._stage_failed("broadcast", e)

    def _stage_failed(self, stage: str, error: ChainStatsError) -> None:
        REFRESH_STAGE_FAILURES.labels(stage=stage).inc()
        log_error(logger, error, {"stage": stage, "limit": self.limit})
