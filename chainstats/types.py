"""
Type definitions for chainstats.
These types don't import from other chainstats modules to prevent circular
dependencies.
"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from .constants import CACHE_FIELD_ID, CACHE_FIELD_TX, CACHE_FIELD_LENGTH


class Channel(str, Enum):
    """Broadcast topics that live subscribers can listen on."""
    BLOCK_TPS_LIST = "block_tps_list"


class BlockMetric(BaseModel):
    """Throughput figures for a single block."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int = Field(alias=CACHE_FIELD_ID)
    tx: int = Field(default=0, ge=0, alias=CACHE_FIELD_TX)
    length: int = Field(default=0, ge=0, alias=CACHE_FIELD_LENGTH)
    timestamp: Optional[int] = None  # Unix seconds, not part of the cached form

    def to_cache(self) -> dict:
        """Return the persisted cache representation."""
        return self.model_dump(by_alias=True, exclude={"timestamp"})


class WireMetric(BaseModel):
    """Broadcast projection of a block metric."""
    model_config = ConfigDict(frozen=True)

    block_id: int
    block_sizes: int
    block_transactions: int

    @classmethod
    def from_metric(cls, metric: BlockMetric) -> "WireMetric":
        return cls(
            block_id=metric.id,
            block_sizes=metric.length,
            block_transactions=metric.tx
        )


# Newest-first list of block metrics, replaced wholesale on each refresh
MetricsSnapshot = List[BlockMetric]


def to_wire(metrics: List[BlockMetric]) -> List[WireMetric]:
    """Project metrics to their wire form, preserving order."""
    return [WireMetric.from_metric(metric) for metric in metrics]
