import json

import pytest

from application.ports.realtime import Envelope
from infrastructure.external.cache import RedisClient
from infrastructure.realtime.brokers import InMemoryRealtimeBroker, RedisRealtimeBroker


class FakePubSubRedis:
    def __init__(self):
        self.messages = []

    async def publish(self, channel, message):
        self.messages.append((channel, message))
        return 2


@pytest.mark.asyncio
async def test_redis_broker_publishes_to_room_channel():
    fake = FakePubSubRedis()
    broker = RedisRealtimeBroker(RedisClient(fake, namespace="pressing-checkout"))
    await broker.publish("pressing_p1", Envelope(type="new_order", room="pressing_p1", data={"order_id": "o1"}))

    channel, raw = fake.messages[0]
    assert channel == "pressing-checkout:rt:room:pressing_p1"
    payload = json.loads(raw)
    assert payload["type"] == "new_order"
    assert payload["data"] == {"order_id": "o1"}
    assert payload["ts"].endswith("Z")
    await broker.aclose()


@pytest.mark.asyncio
async def test_inmemory_broker_keeps_bounded_history():
    broker = InMemoryRealtimeBroker(history=2)
    for i in range(3):
        await broker.publish("pressing_p1", Envelope(type="new_order", data={"n": i}))
    assert [e.data["n"] for e in broker.published("pressing_p1")] == [1, 2]
    assert broker.published("pressing_p2") == []
    await broker.aclose()
    assert broker.published("pressing_p1") == []
