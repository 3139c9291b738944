"""
Notifiers Package

Notification sinks used by match lifecycle and settlement:
- Player inbox (notifications stored on the player document)
- Redis stream mirror (for an external push worker)
"""

from app.utils.config import Settings
from storage.base import Stores

from .base import FanoutNotifier, Notifier
from .inbox import PlayerInboxNotifier
from .redis_stream import RedisStreamNotifier, connect_redis


def build_notifier(settings: Settings, stores: Stores) -> Notifier:
    """Inbox delivery, plus the Redis mirror when REDIS_URL is set and reachable."""
    inbox = PlayerInboxNotifier(stores.players, retries=settings.SUBMIT_RETRY_LIMIT)
    if not settings.REDIS_URL:
        return inbox
    client = connect_redis(settings.REDIS_URL)
    if client is None:
        return inbox
    return FanoutNotifier([inbox, RedisStreamNotifier(client, settings.NOTIFICATION_STREAM)])


__all__ = [
    "FanoutNotifier",
    "Notifier",
    "PlayerInboxNotifier",
    "RedisStreamNotifier",
    "build_notifier",
]
