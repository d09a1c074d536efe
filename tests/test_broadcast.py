import json
import pytest

import redis

from chainstats.broadcast import BroadcastPublisher
from chainstats.errors import PublishFailure
from chainstats.types import BlockMetric, Channel, WireMetric


def test_publish_empty_sends_empty_array(publisher, redis_client):
    assert publisher.publish([]) == []

    redis_client.publish.assert_called_once_with(Channel.BLOCK_TPS_LIST.value, "[]")


def test_publish_projects_in_order(publisher, redis_client):
    metrics = [
        BlockMetric(id=5, tx=3, length=120, timestamp=1010),
        BlockMetric(id=4, tx=1, length=80, timestamp=1000),
    ]

    wire = publisher.publish(metrics)

    assert wire == [
        WireMetric(block_id=5, block_sizes=120, block_transactions=3),
        WireMetric(block_id=4, block_sizes=80, block_transactions=1),
    ]
    channel, payload = redis_client.publish.call_args[0]
    assert channel == "block_tps_list"
    assert json.loads(payload) == [
        {"block_id": 5, "block_sizes": 120, "block_transactions": 3},
        {"block_id": 4, "block_sizes": 80, "block_transactions": 1},
    ]


def test_publish_without_subscribers_succeeds(publisher, redis_client):
    redis_client.publish.return_value = 0

    publisher.publish([BlockMetric(id=1, tx=1, length=1)])


def test_publish_failure(publisher, redis_client):
    redis_client.publish.side_effect = redis.ConnectionError("connection reset")

    with pytest.raises(PublishFailure):
        publisher.publish([BlockMetric(id=1, tx=1, length=1)])
    # No internal retry
    assert redis_client.publish.call_count == 1
