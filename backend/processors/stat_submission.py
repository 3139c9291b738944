"""
Stat Submission Coordinator

Each captain submits their own side's stats once the match is under way
(``upcoming``, ``live`` or ``completed``). Submissions are written with a
conditional replace on the match document, so when both captains race the
loser re-reads and tries again. The write that turns the second flag true is
the one that runs settlement and moves the match to ``final``.

Both sheets are locked once the second one is on file. If settlement was
interrupted (both flags true but the match never reached ``final``), either
captain can resume it by resubmitting the sheet on file once the settlement
lease has expired; settlement skips players and teams it already processed.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import TypeAdapter, ValidationError

from app.models.match import Match, MatchStatus, PlayerStatLine
from app.models.player import Team
from app.utils.exceptions import (
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
    VersionConflictException,
)
from app.utils.timeutils import parse_timestamp, to_iso, utc_now
from notifiers.base import Notifier
from processors.match_state import SUBMITTABLE_STATES, ensure_status, transition
from processors.ratings import apply_team_rating, validate_team_rating
from processors.settlement import PointsSettler
from storage.base import Stores

logger = logging.getLogger("matchday.submission")

HOME = "home"
AWAY = "away"
WAITING = "waiting"
FINAL = "final"

_stat_lines = TypeAdapter(List[PlayerStatLine])


@dataclass
class SubmissionOutcome:
    state: str
    message: str
    match: Match


def parse_stat_lines(stats: Iterable[Any]) -> List[PlayerStatLine]:
    try:
        lines = _stat_lines.validate_python(list(stats))
    except (ValidationError, TypeError) as e:
        raise ValidationException(f"Malformed stat payload: {e}") from e
    if not lines:
        raise ValidationException("Stat payload must contain at least one player")
    players = [line.player_id for line in lines]
    if len(set(players)) != len(players):
        raise ValidationException("Each player may appear only once in a stat payload")
    return lines


def ensure_rostered(lines: List[PlayerStatLine], roster: List[str]) -> None:
    """Every line must name a player on the submitting side's roster, when there is one."""
    if not roster:
        return
    allowed = {email.strip().lower() for email in roster}
    outsiders = [line.player_id for line in lines if line.player_id.strip().lower() not in allowed]
    if outsiders:
        raise ValidationException(f"Malformed stat payload: {', '.join(outsiders)} not on this side's roster")


def stat_sheet(lines: List[PlayerStatLine]) -> Dict[str, Dict[str, Any]]:
    return {line.player_id.strip().lower(): line.model_dump() for line in lines}


class StatSubmissionCoordinator:
    def __init__(
        self,
        stores: Stores,
        notifier: Notifier,
        settler: Optional[PointsSettler] = None,
        clock: Callable[[], datetime] = utc_now,
        retries: int = 3,
        settlement_lease: timedelta = timedelta(seconds=60),
    ):
        self.stores = stores
        self.notifier = notifier
        self.clock = clock
        self.retries = retries
        self.settlement_lease = settlement_lease
        self.settler = settler or PointsSettler(stores, notifier, clock=clock, retries=retries)

    def _load_team(self, team_id: str) -> Team:
        stored = self.stores.teams.get(team_id)
        if stored is None:
            raise NotFoundException(f"Team {team_id} not found")
        return Team.from_document(stored.data)

    def submit_stats(
        self,
        match_id: str,
        captain_email: str,
        stats: Iterable[Any],
        team_rating: Optional[Any] = None,
    ) -> SubmissionOutcome:
        lines = parse_stat_lines(stats)
        rating = validate_team_rating(team_rating)

        attempt = 0
        while True:
            attempt += 1
            stored = self.stores.matches.get(match_id)
            if stored is None:
                raise NotFoundException(f"Match {match_id} not found")
            before = Match.from_document(stored.data)
            ensure_status(before, SUBMITTABLE_STATES, "submit stats")

            home_team = self._load_team(before.home_team_id)
            away_team = self._load_team(before.away_team_id)
            if home_team.is_captain(captain_email):
                side, opponent = HOME, away_team
            elif away_team.is_captain(captain_email):
                side, opponent = AWAY, home_team
            else:
                raise ForbiddenException("Only the captains of this match can submit stats")

            now = self.clock()
            after = before.model_copy(deep=True)
            if before.both_submitted:
                self._ensure_resumable(before, side, lines, now)
            else:
                ensure_rostered(lines, getattr(before, f"{side}_players"))
                setattr(after, f"{side}_stats", lines)
                setattr(after, f"{side}_stats_submitted", True)
            if after.both_submitted:
                after.settlement_started_at = to_iso(now)
            after.updated_at = to_iso(now)

            try:
                self.stores.matches.replace(match_id, after.to_document(), expected_version=stored.version)
                break
            except VersionConflictException:
                if attempt >= self.retries:
                    logger.warning(f"Gave up submitting stats for match {match_id} after {attempt} attempts")
                    raise
                logger.info(f"Match {match_id} changed during {side} submission, retrying ({attempt}/{self.retries})")

        resumes = before.both_submitted
        if resumes:
            logger.warning(f"Resuming interrupted settlement of match {match_id}", extra={"match_id": match_id})
        else:
            logger.info(f"{side.capitalize()} stats submitted for match {match_id} by {captain_email}")
            if rating is not None:
                apply_team_rating(self.stores.teams, opponent.id, rating, retries=self.retries)

        if not after.both_submitted:
            return SubmissionOutcome(
                state=WAITING,
                message="Stats saved. Waiting for the other captain to submit.",
                match=after,
            )

        result = self.settler.settle(after, home_team, away_team)
        final = self._finalize(match_id, result)
        return SubmissionOutcome(state=FINAL, message="Match finalized successfully", match=final)

    def _ensure_resumable(self, match: Match, side: str, lines: List[PlayerStatLine], now: datetime) -> None:
        """
        Both sheets are locked once the second one lands. A resubmission may
        only restart settlement, with the sheet already on file, and only after
        the previous attempt's lease has run out.
        """
        if stat_sheet(lines) != stat_sheet(getattr(match, f"{side}_stats")):
            raise InvalidStateException(
                f"Stats for match {match.id} are locked; resubmit the sheet on file to resume settlement"
            )
        started = parse_timestamp(match.settlement_started_at)
        if started is not None and now - started < self.settlement_lease:
            raise InvalidStateException(f"Settlement of match {match.id} is already in progress")

    def _finalize(self, match_id: str, result) -> Match:
        attempt = 0
        while True:
            attempt += 1
            stored = self.stores.matches.get(match_id)
            if stored is None:
                raise NotFoundException(f"Match {match_id} not found")
            match = Match.from_document(stored.data)
            if match.status == MatchStatus.FINAL:
                return match

            final = transition(match, MatchStatus.FINAL, self.clock(), result=result)
            try:
                self.stores.matches.replace(match_id, final.to_document(), expected_version=stored.version)
            except VersionConflictException:
                if attempt >= self.retries:
                    raise
                continue
            logger.info(
                f"Match {match_id} final: {result.home_goals}-{result.away_goals}, "
                f"winner={result.winner}, motm={result.man_of_the_match}",
                extra={"match_id": match_id},
            )
            return final
