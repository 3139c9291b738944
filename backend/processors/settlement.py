"""
Points Economy Settler

Runs once both captains have submitted stats:
- decides winner/loser or draw from summed goals
- splits the trophy fee pool by the trophy's win/lose percentages (50/50 on a draw)
- pays each player their floor share plus goal/assist/MOTM bonuses
- moves player counters and skills (via the progression calculator) and team records
- sends result notifications

Players and teams are separate documents, so settlement is not atomic across
them. Each document records the match id it was settled for and is skipped when
it already carries it, which makes a retried settlement safe.
"""

import logging
import math
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from app.models.match import Match, MatchResult, PlayerStatLine
from app.models.player import Player, Team, Trophy
from app.utils.exceptions import NotFoundException, ValidationException
from app.utils.timeutils import utc_now
from config.progression_config import MOTM_ACHIEVEMENT_PREFIX, TEAM_SETTLED_MATCHES_LIMIT
from notifiers.base import Notifier
from processors.skill_progression import (
    DRAW,
    LOSE,
    WIN,
    apply_match_progression,
    select_man_of_the_match,
)
from storage.base import Stores, update_document

logger = logging.getLogger("matchday.settlement")

DRAW_WINNER = "draw"


def total_goals(stats: List[PlayerStatLine]) -> int:
    return sum(stat.goals for stat in stats)


def split_pool(trophy: Optional[Trophy], draw: bool) -> Tuple[float, float]:
    """(win_share, lose_share) of the trophy fee pool; a draw halves it."""
    if trophy is None:
        return 0.0, 0.0
    pool = trophy.fee
    if draw:
        return pool / 2, pool / 2
    return pool * trophy.distribution.win / 100, pool * trophy.distribution.lose / 100


def per_player_share(share: float, roster_size: int) -> int:
    """Equal integer split; the remainder is absorbed."""
    return math.floor(share / max(roster_size, 1))


def side_outcome(goals_for: int, goals_against: int) -> str:
    if goals_for > goals_against:
        return WIN
    if goals_for < goals_against:
        return LOSE
    return DRAW


class PointsSettler:
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

    def load_trophy(self, match: Match) -> Optional[Trophy]:
        """The match's trophy, or None for a friendly. Fails before any mutation."""
        if not match.trophy_id:
            return None
        stored = self.stores.trophies.get(match.trophy_id)
        if stored is None:
            raise NotFoundException(f"Trophy {match.trophy_id} not found")
        try:
            return Trophy.from_document(stored.data)
        except ValidationError as e:
            raise ValidationException(f"Trophy {match.trophy_id} is malformed: {e}") from e

    def settle(self, match: Match, home_team: Team, away_team: Team) -> MatchResult:
        trophy = self.load_trophy(match)

        home_goals = total_goals(match.home_stats)
        away_goals = total_goals(match.away_stats)
        home_outcome = side_outcome(home_goals, away_goals)
        away_outcome = side_outcome(away_goals, home_goals)
        draw = home_outcome == DRAW

        win_share, lose_share = split_pool(trophy, draw)
        home_share = win_share if home_outcome != LOSE else lose_share
        away_share = win_share if away_outcome != LOSE else lose_share

        motm = select_man_of_the_match(match.home_stats + match.away_stats)
        motm_id = motm.player_id if motm else None
        now = self.clock()
        scoreline = f"{home_goals}-{away_goals}"

        logger.info(
            f"Settling match {match.id}: {home_team.name} {scoreline} {away_team.name}, "
            f"pool={trophy.fee if trophy else 0}, motm={motm_id}",
            extra={"match_id": match.id},
        )

        self._settle_side(
            match, home_team, away_team, match.home_stats,
            roster_size=len(match.home_players) or len(match.home_stats),
            share=home_share, outcome=home_outcome, goals_conceded=away_goals,
            trophy=trophy, motm_id=motm_id, now=now, scoreline=scoreline,
        )
        self._settle_side(
            match, away_team, home_team, match.away_stats,
            roster_size=len(match.away_players) or len(match.away_stats),
            share=away_share, outcome=away_outcome, goals_conceded=home_goals,
            trophy=trophy, motm_id=motm_id, now=now, scoreline=scoreline,
        )

        self._update_team(match, home_team.id, home_outcome, trophy)
        self._update_team(match, away_team.id, away_outcome, trophy)

        if motm_id:
            self.notifier.notify(motm_id, {
                "title": "Man of the Match",
                "match_id": match.id,
                "message": "Congratulations! You are the Man of the Match.",
            })

        return MatchResult(
            home_goals=home_goals,
            away_goals=away_goals,
            winner=DRAW_WINNER if draw else (home_team.id if home_outcome == WIN else away_team.id),
            man_of_the_match=motm_id,
        )

    def _settle_side(
        self,
        match: Match,
        team: Team,
        opponent: Team,
        stats: List[PlayerStatLine],
        *,
        roster_size: int,
        share: float,
        outcome: str,
        goals_conceded: int,
        trophy: Optional[Trophy],
        motm_id: Optional[str],
        now: datetime,
        scoreline: str,
    ) -> None:
        per_player = per_player_share(share, roster_size)
        for stat in stats:
            applied = self._settle_player(
                match, stat, per_player=per_player, outcome=outcome,
                goals_conceded=goals_conceded, trophy=trophy,
                is_motm=stat.player_id == motm_id, now=now,
            )
            if not applied:
                continue

            if outcome == DRAW:
                message = f"Match ended in a draw ({scoreline})."
            elif outcome == WIN:
                message = f"Congratulations! Your team {team.name} won the match ({scoreline})."
            else:
                message = f"Your team {team.name} lost the match ({scoreline})."
            self.notifier.notify(stat.player_id, {
                "title": "Match Results",
                "match_id": match.id,
                "message": message,
            })
            self.notifier.notify(stat.player_id, {
                "title": "Rate Opponent Team Players",
                "match_id": match.id,
                "opponent_team_id": opponent.id,
                "message": f"Please rate opponent team players of {opponent.name}.",
            })

    def _settle_player(
        self,
        match: Match,
        stat: PlayerStatLine,
        *,
        per_player: int,
        outcome: str,
        goals_conceded: int,
        trophy: Optional[Trophy],
        is_motm: bool,
        now: datetime,
    ) -> bool:
        applied = []

        def settle(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
            applied.clear()
            player = Player.from_document(data)
            if player.has_settled(match.id):
                logger.info(f"Player {stat.player_id} already settled for match {match.id}, skipping")
                return None

            player.matches += 1
            player.goals += stat.goals
            player.assists += stat.assists
            player.red_cards += stat.red_cards
            player.yellow_cards += stat.yellow_cards
            if outcome == WIN:
                player.wins += 1
            elif outcome == DRAW:
                player.draws += 1
            else:
                player.losses += 1

            apply_match_progression(
                player, stat, result=outcome, is_motm=is_motm,
                goals_conceded=goals_conceded, played_at=now, match_id=match.id,
            )

            player.points += per_player
            if trophy is not None:
                player.points += stat.goals * trophy.bonuses.goal
                player.points += stat.assists * trophy.bonuses.assist
                if is_motm:
                    player.points += trophy.bonuses.motm
                if outcome == WIN:
                    player.achievements.append(trophy.id)
            if is_motm:
                player.achievements.append(f"{MOTM_ACHIEVEMENT_PREFIX}{match.id}")

            applied.append(True)
            return player.to_document()

        stored = update_document(self.stores.players, stat.player_id, settle, retries=self.retries)
        if stored is None:
            logger.warning(f"Player {stat.player_id} not found, skipped in settlement of {match.id}")
            return False
        return bool(applied)

    def _update_team(self, match: Match, team_id: str, outcome: str, trophy: Optional[Trophy]) -> None:
        def record(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
            team = Team.from_document(data)
            if match.id in team.settled_match_ids:
                logger.info(f"Team {team_id} already settled for match {match.id}, skipping")
                return None
            team.matches_played += 1
            if outcome == WIN:
                team.wins += 1
                if trophy is not None:
                    team.achievements.append(trophy.id)
            elif outcome == LOSE:
                team.losses += 1
            else:
                team.draws += 1
            team.settled_match_ids = (team.settled_match_ids + [match.id])[-TEAM_SETTLED_MATCHES_LIMIT:]
            return team.to_document()

        if update_document(self.stores.teams, team_id, record, retries=self.retries) is None:
            logger.warning(f"Team {team_id} not found while settling match {match.id}")
