import redis.asyncio as redis
from redis.exceptions import RedisError
from typing import Any, Dict, Optional
import json

from src.api.config import settings
from src.utils.logger import get_logger

logger = get_logger(__name__)

# Create Redis client
redis_client = redis.from_url(
    settings.REDIS_URL,
    encoding="utf-8",
    decode_responses=True
)


class ChangeNotifier:
    """
    Publishes row change events for dashboards

    Each event goes to ``<prefix>:<table>`` as JSON
    ``{"event": "INSERT", "table": ..., "record": {...}}``. Subscribing and
    fan-out to browsers happen outside this service.
    """

    def __init__(self, client=None, prefix: Optional[str] = None):
        self.client = client or redis_client
        self.prefix = prefix or settings.CHANGES_CHANNEL_PREFIX

    def channel(self, table: str) -> str:
        return f"{self.prefix}:{table}"

    async def publish(self, event: str, table: str, record: Dict[str, Any]) -> bool:
        """
        Publish one change event

        Called after the change is committed, so a Redis failure is logged
        and reported as False instead of failing the request.

        Returns:
            True when the event reached Redis
        """
        message = json.dumps(
            {"event": event, "table": table, "record": record},
            default=str
        )
        try:
            await self.client.publish(self.channel(table), message)
        except (RedisError, OSError) as e:
            logger.warning(f"Change notification for {table} not published: {e}")
            return False
        return True


def get_notifier() -> ChangeNotifier:
    """Dependency returning the process-wide notifier"""
    return ChangeNotifier()


def row_to_dict(row) -> Dict[str, Any]:
    """Column values of an ORM row, for event payloads"""
    return {column.key: getattr(row, column.key) for column in row.__table__.columns}
