"""
Redis stream mirror for notifications.

Each delivered notification is appended to a stream so an external push worker
can forward it to devices.

Environment variables:
    - REDIS_URL: Redis connection URL
    - NOTIFICATION_STREAM: stream name (default stream:notifications)
"""

import json
import logging
import time
from typing import Any, Dict

import redis

from notifiers.base import Notifier, Recipients, as_recipient_list

logger = logging.getLogger("matchday.notifiers.redis")


class RedisStreamNotifier(Notifier):
    def __init__(self, redis_client, stream: str = "stream:notifications"):
        self.redis_client = redis_client
        self.stream = stream

    def notify(self, recipients: Recipients, payload: Dict[str, Any]) -> None:
        for email in as_recipient_list(recipients):
            event = {
                "recipient": email,
                "title": str(payload.get("title", "")),
                "match_id": str(payload.get("match_id") or ""),
                "payload": json.dumps(payload, default=str),
                "timestamp": str(int(time.time())),
            }
            try:
                message_id = self.redis_client.xadd(self.stream, event)
                logger.debug(f"Queued notification for {email} with ID {message_id}")
            except redis.RedisError as e:
                logger.warning(f"Failed to queue notification for {email}: {e}")


def connect_redis(redis_url: str):
    """Connect and ping; returns None when Redis is unreachable."""
    try:
        client = redis.from_url(redis_url, decode_responses=True)
        client.ping()
        logger.info(f"Connected to Redis at {redis_url}")
        return client
    except redis.RedisError as e:
        logger.error(f"Failed to connect to Redis: {e}")
        return None
