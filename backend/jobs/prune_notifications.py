#!/usr/bin/env python
"""
Prune Notifications

Drops player notifications older than the retention window (7 days by
default). Normally run daily by schedulers.match_scheduler.

Usage:
    python -m jobs.prune_notifications

Environment variables:
    - NOTIFICATION_RETENTION_DAYS: days to keep (default 7)
    - STORE_BACKEND: memory or supabase
"""

import logging
import sys
from datetime import datetime
from typing import Any, Dict, Optional

from notifiers.inbox import prune_inbox
from storage.base import Stores, update_document

logger = logging.getLogger("matchday.jobs.prune_notifications")


def prune_old_notifications(
    stores: Stores, now: datetime, retention_days: int = 7, retries: int = 3
) -> Dict[str, int]:
    stats = {"players": 0, "removed": 0, "errors": 0}
    rows = stores.players.scan(lambda data: bool(data.get("notifications")))

    for row in rows:
        removed = []

        def prune(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
            notifications = data.get("notifications") or []
            kept = prune_inbox(notifications, now, retention_days)
            removed[:] = [len(notifications) - len(kept)]
            if len(kept) == len(notifications):
                return None
            data["notifications"] = kept
            return data

        try:
            update_document(stores.players, row.key, prune, retries=retries)
        except Exception as e:
            stats["errors"] += 1
            logger.error(f"Failed to clean notifications for player {row.key}: {e}", exc_info=True)
            continue

        if removed and removed[0]:
            stats["players"] += 1
            stats["removed"] += removed[0]
            logger.info(f"Old notifications removed for player {row.key} ({removed[0]} deleted)")

    return stats


def main():
    from app.utils.config import get_settings
    from app.utils.timeutils import utc_now
    from storage import build_stores

    settings = get_settings()
    stats = prune_old_notifications(
        build_stores(settings), utc_now(), settings.NOTIFICATION_RETENTION_DAYS
    )
    logger.info(f"Notification cleanup finished: {stats}")
    return stats


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    main()
