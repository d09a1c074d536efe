"""Windowed aggregation over block metrics."""
from typing import Iterable

from .types import BlockMetric


def sum_in_window(metrics: Iterable[BlockMetric], start: int, end: int) -> int:
    """
    Sum the transaction counts of blocks strictly inside ``(start, end)``.

    Blocks stamped exactly at either bound, and blocks without a
    timestamp, are not counted.
    """
    return sum(
        metric.tx
        for metric in metrics
        if metric.timestamp is not None and start < metric.timestamp < end
    )
