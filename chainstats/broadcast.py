"""Pushes throughput updates to live subscribers."""
import json
from typing import List, Sequence

import structlog

from cache.redis_manager import RedisManager
from .types import BlockMetric, Channel, WireMetric, to_wire

logger = structlog.get_logger()


class BroadcastPublisher:
    """Publishes wire-form metrics on a fixed pub/sub channel."""

    def __init__(self, redis_manager: RedisManager, channel: Channel = Channel.BLOCK_TPS_LIST):
        self.redis = redis_manager
        self.channel = channel

    def publish(self, metrics: Sequence[BlockMetric]) -> List[WireMetric]:
        """
        Publish metrics to subscribers, preserving their order.

        An empty sequence still sends an empty update so subscribers can
        tell "no recent blocks" apart from "no update".

        Returns:
            The wire projection that was sent

        Raises:
            PublishFailure: If the channel rejects the update
        """
        wire = to_wire(list(metrics))
        payload = json.dumps([item.model_dump() for item in wire])
        receivers = self.redis.publish(self.channel.value, payload)
        logger.debug("tps_list_published", channel=self.channel.value,
                     blocks=len(wire), receivers=receivers)
        return wire
