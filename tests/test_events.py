"""
Unit tests for Redis change notifications
"""

import json
import uuid
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.api.core.events import ChangeNotifier, row_to_dict
from src.api.models.iot import PumpAction


@pytest.fixture
def redis_mock():
    client = AsyncMock()
    client.publish.return_value = 1
    return client


class TestChangeNotifier:

    def test_channel_per_table(self, redis_mock):
        notifier = ChangeNotifier(client=redis_mock, prefix="test:changes")
        assert notifier.channel("pump_actions") == "test:changes:pump_actions"

    @pytest.mark.asyncio
    async def test_publish_sends_json_event(self, redis_mock):
        notifier = ChangeNotifier(client=redis_mock, prefix="test:changes")
        device_id = uuid.uuid4()

        assert await notifier.publish("INSERT", "pump_actions", {"device_id": device_id, "action": "start"})

        channel, message = redis_mock.publish.await_args.args
        assert channel == "test:changes:pump_actions"
        assert json.loads(message) == {
            "event": "INSERT",
            "table": "pump_actions",
            "record": {"device_id": str(device_id), "action": "start"}
        }

    @pytest.mark.asyncio
    async def test_redis_failure_is_reported_not_raised(self, redis_mock):
        """Test that an unreachable Redis does not fail the caller"""
        redis_mock.publish.side_effect = RedisConnectionError("Connection refused")
        notifier = ChangeNotifier(client=redis_mock)

        assert await notifier.publish("INSERT", "moisture_readings", {}) is False


def test_row_to_dict_uses_columns():
    action = PumpAction(device_id=uuid.uuid4(), action="stop", triggered_by="manual")
    record = row_to_dict(action)

    assert set(record) == {"id", "device_id", "action", "triggered_by", "duration_seconds", "created_at"}
    assert record["action"] == "stop"
