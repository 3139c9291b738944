#!/usr/bin/env python
"""
Sweep Matches

Advances scheduled matches purely from the clock:
- ``upcoming`` -> ``live`` once the start time is reached
- ``upcoming``/``live`` -> ``completed`` once the end time is reached, and asks
  both captains to submit their stats

Rows with missing or unparsable times are skipped and logged. A failure on one
row never stops the sweep. Normally run every minute by
schedulers.match_scheduler; can also be run once by hand.

Usage:
    python -m jobs.sweep_matches

Environment variables:
    - STORE_BACKEND: memory or supabase
    - SUPABASE_URL / SUPABASE_SERVICE_KEY: when STORE_BACKEND=supabase
"""

import logging
import sys
from datetime import datetime
from typing import Dict, Optional

from app.models.match import Match, MatchStatus
from app.models.player import Team
from app.utils.exceptions import VersionConflictException
from notifiers.base import Notifier
from processors.match_state import SWEEPABLE_STATES, scheduled_status, transition
from storage.base import Stores

logger = logging.getLogger("matchday.jobs.sweep_matches")

_SWEEPABLE_VALUES = frozenset(status.value for status in SWEEPABLE_STATES)


def _notify_captains(stores: Stores, notifier: Notifier, match: Match) -> None:
    home = stores.teams.get(match.home_team_id)
    away = stores.teams.get(match.away_team_id)
    if home is None or away is None:
        logger.warning(f"Cannot notify captains of match {match.id}: team missing")
        return
    home_team = Team.from_document(home.data)
    away_team = Team.from_document(away.data)
    notifier.notify([home_team.captain, away_team.captain], {
        "title": "Match Completed",
        "match_id": match.id,
        "message": (
            f"Match between {home_team.name} and {away_team.name} is completed. "
            "Please submit match stats."
        ),
    })


def sweep_match_statuses(stores: Stores, notifier: Notifier, now: datetime) -> Dict[str, int]:
    """
    Run one sweep at ``now``; returns counters for logging and health checks.
    """
    stats = {"scanned": 0, "live": 0, "completed": 0, "skipped": 0, "errors": 0}
    rows = stores.matches.scan(lambda data: data.get("status") in _SWEEPABLE_VALUES)

    for row in rows:
        stats["scanned"] += 1
        try:
            match = Match.from_document(row.data)
            try:
                target: Optional[MatchStatus] = scheduled_status(match, now)
            except ValueError as e:
                logger.warning(f"Skipping match {row.key}: {e}")
                stats["skipped"] += 1
                continue
            if target is None:
                continue

            updated = transition(match, target, now)
            try:
                stores.matches.replace(match.id, updated.to_document(), expected_version=row.version)
            except VersionConflictException:
                logger.info(f"Match {match.id} changed during sweep, leaving it for the next tick")
                stats["skipped"] += 1
                continue

            stats[target.value] += 1
            logger.info(
                f"Match {match.id} status updated to \"{target.value}\"",
                extra={"match_id": match.id, "job": "sweep"},
            )
            if target == MatchStatus.COMPLETED:
                _notify_captains(stores, notifier, updated)
        except Exception as e:
            stats["errors"] += 1
            logger.error(f"Error sweeping match {row.key}: {e}", exc_info=True)

    return stats


def main():
    """Run a single sweep against the configured store."""
    from app.utils.config import get_settings
    from app.utils.timeutils import utc_now
    from notifiers import build_notifier
    from storage import build_stores

    settings = get_settings()
    stores = build_stores(settings)
    notifier = build_notifier(settings, stores)
    stats = sweep_match_statuses(stores, notifier, utc_now())
    logger.info(f"Match status sweep finished: {stats}")
    return stats


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    main()
