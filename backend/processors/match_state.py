"""
Match State Machine

Owns the ``status`` field of a match document:

    pending   --accept-->            upcoming
    pending   --reject-->            cancelled
    upcoming  --now >= start-->      live          (sweeper)
    upcoming|live --now >= end-->    completed     (sweeper)
    upcoming|live|completed --both captains submitted--> final

``cancelled`` and ``final`` are terminal. Every function here is pure; callers
persist the returned match with a conditional replace.
"""

from datetime import datetime
from types import MappingProxyType
from typing import Optional

from app.models.match import Match, MatchStatus
from app.utils.exceptions import InvalidStateException
from app.utils.timeutils import parse_timestamp, to_iso

ALLOWED_TRANSITIONS = MappingProxyType({
    MatchStatus.PENDING: frozenset({MatchStatus.UPCOMING, MatchStatus.CANCELLED}),
    MatchStatus.UPCOMING: frozenset({MatchStatus.LIVE, MatchStatus.COMPLETED, MatchStatus.FINAL}),
    MatchStatus.LIVE: frozenset({MatchStatus.COMPLETED, MatchStatus.FINAL}),
    MatchStatus.COMPLETED: frozenset({MatchStatus.FINAL}),
    MatchStatus.CANCELLED: frozenset(),
    MatchStatus.FINAL: frozenset(),
})

TERMINAL_STATES = frozenset({MatchStatus.CANCELLED, MatchStatus.FINAL})
SUBMITTABLE_STATES = frozenset({MatchStatus.UPCOMING, MatchStatus.LIVE, MatchStatus.COMPLETED})
SWEEPABLE_STATES = frozenset({MatchStatus.UPCOMING, MatchStatus.LIVE})


def is_terminal(status: MatchStatus) -> bool:
    return status in TERMINAL_STATES


def can_transition(current: MatchStatus, target: MatchStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(match: Match, target: MatchStatus) -> None:
    if is_terminal(match.status):
        raise InvalidStateException(
            f"Match {match.id} is {match.status.value} and can no longer change"
        )
    if not can_transition(match.status, target):
        raise InvalidStateException(
            f"Match {match.id} cannot move from {match.status.value} to {target.value}"
        )


def transition(match: Match, target: MatchStatus, now: datetime, **changes) -> Match:
    """Return a copy of ``match`` in ``target`` status with ``changes`` applied."""
    ensure_transition(match, target)
    update = dict(changes)
    update["status"] = target
    update["updated_at"] = to_iso(now)
    return match.model_copy(update=update, deep=True)


def ensure_status(match: Match, allowed, action: str) -> None:
    """Reject ``action`` unless the match is in one of the ``allowed`` states."""
    if match.status not in allowed:
        raise InvalidStateException(
            f"Cannot {action}: match {match.id} is {match.status.value}"
        )


def scheduled_status(match: Match, now: datetime) -> Optional[MatchStatus]:
    """
    The status the sweeper should move ``match`` to at ``now``, or None.

    Raises ValueError when the match lacks parsable start/end timestamps.
    """
    if match.status not in SWEEPABLE_STATES:
        return None
    start = parse_timestamp(match.start_time)
    end = parse_timestamp(match.end_time)
    if start is None or end is None:
        raise ValueError(f"Match {match.id} has missing or invalid start/end time")

    if now >= end:
        return MatchStatus.COMPLETED
    if match.status == MatchStatus.UPCOMING and now >= start:
        return MatchStatus.LIVE
    return None
