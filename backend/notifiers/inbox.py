"""
Player inbox notifier: notifications live on the player document.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from app.utils.timeutils import parse_timestamp, to_iso, utc_now
from notifiers.base import Notifier, Recipients, as_recipient_list
from storage.base import EntityStore, update_document

logger = logging.getLogger("matchday.notifiers.inbox")


class PlayerInboxNotifier(Notifier):
    def __init__(
        self,
        players: EntityStore,
        clock: Callable[[], datetime] = utc_now,
        retries: int = 3,
    ):
        self.players = players
        self.clock = clock
        self.retries = retries

    def notify(self, recipients: Recipients, payload: Dict[str, Any]) -> None:
        for email in as_recipient_list(recipients):
            entry = {"id": str(uuid.uuid4()), **payload, "date": to_iso(self.clock())}

            def append(data: Dict[str, Any]) -> Dict[str, Any]:
                data.setdefault("notifications", []).append(entry)
                return data

            try:
                stored = update_document(self.players, email, append, retries=self.retries)
                if stored is None:
                    logger.debug(f"Skipping notification for unknown player {email}")
            except Exception as e:
                logger.warning(f"Failed to notify {email} ({payload.get('title')}): {e}")

    def dismiss(self, recipient: str, *, match_id: str, type: str) -> None:
        def drop(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
            notifications = data.get("notifications") or []
            kept = [
                n for n in notifications
                if n.get("match_id") != match_id or n.get("type") != type
            ]
            if len(kept) == len(notifications):
                return None
            data["notifications"] = kept
            return data

        try:
            update_document(self.players, recipient, drop, retries=self.retries)
        except Exception as e:
            logger.warning(f"Failed to dismiss {type} for {recipient}: {e}")


def prune_inbox(notifications, now: datetime, retention_days: int):
    """Keep notifications younger than the retention window; undated ones are kept."""
    cutoff = now - timedelta(days=retention_days)
    kept = []
    for notification in notifications:
        sent_at = parse_timestamp(notification.get("date"))
        if sent_at is None or sent_at > cutoff:
            kept.append(notification)
    return kept
