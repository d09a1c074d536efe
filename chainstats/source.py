"""Loads recent block metrics from the primary store."""
from typing import List

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
import structlog

from .database import DatabaseManager
from .errors import DecodeFailure, StoreUnavailable
from .models import BlockChain
from .types import BlockMetric

logger = structlog.get_logger()


class BlockMetricsSource:
    """Read-only access to per-block throughput figures."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def load_recent(self, limit: int) -> List[BlockMetric]:
        """
        Load the most recent blocks, newest first.

        Args:
            limit: Maximum number of blocks to return, must be positive

        Returns:
            At most ``limit`` metrics ordered by descending block id

        Raises:
            ValueError: If limit is not a positive integer
            StoreUnavailable: If the query fails
            DecodeFailure: If a row does not fit the block metric model
        """
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ValueError(f"limit must be a positive integer, got {limit!r}")

        query = (
            select(
                BlockChain.id,
                func.length(BlockChain.data).label("length"),
                BlockChain.tx,
                BlockChain.time
            )
            .order_by(BlockChain.id.desc())
            .limit(limit)
        )
        try:
            with self.db.connect() as conn:
                rows = conn.execute(query).all()
        except SQLAlchemyError as e:
            logger.error("load_recent_blocks_failed", limit=limit, error=str(e))
            raise StoreUnavailable("cannot load recent blocks") from e

        try:
            metrics = [
                BlockMetric(id=row.id, tx=row.tx or 0, length=row.length or 0, timestamp=row.time)
                for row in rows
            ]
        except ValidationError as e:
            logger.error("recent_block_row_invalid", limit=limit, error=str(e))
            raise DecodeFailure("block store returned an invalid row") from e
        logger.debug("recent_blocks_loaded", limit=limit, count=len(metrics))
        return metrics
