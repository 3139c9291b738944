"""
Match Lifecycle

Captain-driven transitions before play: a home captain proposes a match
(``pending``), the invited captain accepts (``upcoming``, entry fee pre-deducted
from both rosters) or rejects (``cancelled``). An accept interrupted while
debiting fees is finished by accepting again. Also serves match lookups.
"""

import logging
import math
import uuid
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple

from app.models.match import (
    CreateMatchRequest,
    InviteAction,
    Match,
    MatchStatus,
)
from app.models.player import Team, Trophy, same_email
from app.utils.exceptions import (
    ForbiddenException,
    NotFoundException,
    ValidationException,
    VersionConflictException,
)
from app.utils.timeutils import parse_timestamp, to_iso, utc_now
from config.progression_config import ENTRY_FEE_RECEIPTS_LIMIT
from notifiers.base import Notifier
from processors.match_state import transition
from storage.base import Stores, update_document

logger = logging.getLogger("matchday.lifecycle")

MATCH_INVITE = "match_invite"
HIDDEN_FROM_LISTING = frozenset({MatchStatus.PENDING, MatchStatus.CANCELLED})


def entry_fee_share(fee: float, roster_size: int) -> int:
    """Each roster carries half the fee, split evenly and floored."""
    return math.floor(fee / 2 / max(roster_size, 1))


class MatchLifecycle:
    def __init__(
        self,
        stores: Stores,
        notifier: Notifier,
        clock: Callable[[], datetime] = utc_now,
        retries: int = 3,
    ):
        self.stores = stores
        self.notifier = notifier
        self.clock = clock
        self.retries = retries

    # Lookups

    def load_team(self, team_id: str) -> Team:
        stored = self.stores.teams.get(team_id)
        if stored is None:
            raise NotFoundException(f"Team {team_id} not found")
        return Team.from_document(stored.data)

    def load_match(self, match_id: str) -> Tuple[Match, int]:
        stored = self.stores.matches.get(match_id)
        if stored is None:
            raise NotFoundException(f"Match {match_id} not found")
        return Match.from_document(stored.data), stored.version

    def get_match(self, match_id: str) -> Match:
        return self.load_match(match_id)[0]

    def list_matches(self, status: Optional[MatchStatus] = None) -> List[Match]:
        """Matches past the invitation stage, optionally narrowed to one status."""
        stored = self.stores.matches.scan(
            lambda data: data.get("status") not in {s.value for s in HIDDEN_FROM_LISTING}
        )
        matches = [Match.from_document(doc.data) for doc in stored]
        if status is not None:
            matches = [m for m in matches if m.status == status]
        return sorted(matches, key=lambda m: m.start_time or "")

    def find_captained_team(self, email: str) -> Optional[Team]:
        stored = self.stores.teams.scan(lambda data: same_email(data.get("captain"), email))
        return Team.from_document(stored[0].data) if stored else None

    def team_members(self, *teams: Team) -> List[str]:
        members = []
        for team in teams:
            for email in team.team_players or [team.captain]:
                if email not in members:
                    members.append(email)
        return members

    # Create

    def create_match(self, captain_email: str, request: CreateMatchRequest) -> Match:
        home_team = self.find_captained_team(captain_email)
        if home_team is None:
            raise ForbiddenException("Only a captain can schedule a match")
        if request.opponent_team_id == home_team.id:
            raise ValidationException("A team cannot play against itself")

        start = parse_timestamp(request.start_time)
        end = parse_timestamp(request.end_time)
        if start is None or end is None:
            raise ValidationException("start_time and end_time must be ISO-8601 timestamps")
        if end <= start:
            raise ValidationException("end_time must be after start_time")

        away_team = self.load_team(request.opponent_team_id)
        if request.trophy_id and self.stores.trophies.get(request.trophy_id) is None:
            raise NotFoundException(f"Trophy {request.trophy_id} not found")

        now = to_iso(self.clock())
        match = Match(
            id=str(uuid.uuid4()),
            trophy_id=request.trophy_id,
            home_team_id=home_team.id,
            away_team_id=away_team.id,
            home_players=list(request.players_selected),
            away_players=[],
            location=request.location,
            start_time=to_iso(start),
            end_time=to_iso(end),
            status=MatchStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        self.stores.matches.insert(match.id, match.to_document())
        logger.info(
            f"Match {match.id} proposed by {home_team.name} against {away_team.name}",
            extra={"match_id": match.id, "team_id": home_team.id},
        )

        self.notifier.notify(away_team.captain, {
            "title": "Match Invitation",
            "message": f"Your team ({away_team.name}) has been invited to a match by {home_team.name}",
            "match_id": match.id,
            "type": MATCH_INVITE,
        })
        return match

    # Respond

    def respond_to_invite(
        self,
        match_id: str,
        captain_email: str,
        action: InviteAction,
        roster: Optional[Iterable[str]] = None,
    ) -> Match:
        roster = list(roster or [])
        attempt = 0
        while True:
            attempt += 1
            match, version = self.load_match(match_id)
            away_team = self.load_team(match.away_team_id)
            if not away_team.is_captain(captain_email):
                raise ForbiddenException("Only the invited team's captain can respond")

            if action == InviteAction.ACCEPT and match.entry_fees_settled is False:
                logger.warning(f"Resuming entry fee deduction for match {match.id}", extra={"match_id": match.id})
                updated = match
                break
            if action == InviteAction.ACCEPT:
                if not roster:
                    raise ValidationException("players_selected is required to accept a match")
                updated = transition(
                    match,
                    MatchStatus.UPCOMING,
                    self.clock(),
                    away_players=roster,
                    entry_fees_settled=False if match.trophy_id else None,
                )
            elif action == InviteAction.REJECT:
                updated = transition(match, MatchStatus.CANCELLED, self.clock())
            else:
                raise ValidationException(f"Invalid action: {action}")

            try:
                self.stores.matches.replace(match.id, updated.to_document(), expected_version=version)
                break
            except VersionConflictException:
                if attempt >= self.retries:
                    raise
                logger.info(f"Match {match_id} changed while responding, retrying")

        home_team = self.load_team(match.home_team_id)
        self.notifier.dismiss(away_team.captain, match_id=match.id, type=MATCH_INVITE)
        recipients = self.team_members(home_team, away_team)

        if action == InviteAction.REJECT:
            logger.info(f"Match {match.id} rejected by {away_team.name}")
            self.notifier.notify(recipients, {
                "title": "Match Cancelled",
                "match_id": match.id,
                "message": f"Match between {home_team.name} and {away_team.name} has been cancelled.",
            })
            return updated

        logger.info(f"Match {match.id} accepted by {away_team.name}")
        if updated.entry_fees_settled is False:
            self.deduct_entry_fees(updated)
            updated = self.mark_entry_fees_settled(updated.id)

        venue = f" at {updated.location.short_name}" if updated.location else ""
        self.notifier.notify(recipients, {
            "title": "Match Upcoming",
            "match_id": match.id,
            "message": (
                f"Match scheduled between {home_team.name} and {away_team.name}"
                f"{venue} on {updated.start_time}."
            ),
        })
        return updated

    def deduct_entry_fees(self, match: Match) -> None:
        """
        Pre-debit each rostered player's share of the trophy fee.

        Players record the match id with the debit, so running this again after
        an interruption only charges those not yet charged.
        """
        stored = self.stores.trophies.get(match.trophy_id)
        if stored is None:
            logger.warning(f"Trophy {match.trophy_id} for match {match.id} not found, no entry fee taken")
            return
        fee = Trophy.from_document(stored.data).fee

        for roster in (match.home_players, match.away_players):
            share = entry_fee_share(fee, len(roster))

            def debit(data, share=share):
                paid = data.get("entry_fees_paid") or []
                if match.id in paid:
                    return None
                data["points"] = (data.get("points") or 0) - share
                data["entry_fees_paid"] = (paid + [match.id])[-ENTRY_FEE_RECEIPTS_LIMIT:]
                return data

            for email in roster:
                if update_document(self.stores.players, email, debit, retries=self.retries) is None:
                    logger.warning(f"Player {email} not found, entry fee not taken")
        logger.info(f"Entry fee {fee} deducted for match {match.id}", extra={"match_id": match.id})

    def mark_entry_fees_settled(self, match_id: str) -> Match:
        def settle(data):
            data["entry_fees_settled"] = True
            return data

        stored = update_document(self.stores.matches, match_id, settle, retries=self.retries)
        if stored is None:
            raise NotFoundException(f"Match {match_id} not found")
        return Match.from_document(stored.data)
