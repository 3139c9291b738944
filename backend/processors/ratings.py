"""
Running-average star ratings for teams and players.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from app.models.player import Player, PlayerRating, Team
from app.utils.exceptions import NotFoundException, ValidationException
from config.progression_config import RATING_MAX, RATING_MIN
from storage.base import EntityStore, update_document

logger = logging.getLogger("matchday.ratings")

PRIVATE_PLAYER_FIELDS = {"notifications", "password", "entry_fees_paid"}


def is_valid_rating(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and RATING_MIN <= value <= RATING_MAX
    )


def validate_team_rating(value: Optional[Any]) -> Optional[float]:
    if value is None:
        return None
    if not is_valid_rating(value):
        raise ValidationException(
            f"Team rating must be a number between {RATING_MIN} and {RATING_MAX}"
        )
    return float(value)


def running_average(avg: float, count: int, value: float) -> float:
    """(avg * count + value) / (count + 1), kept to two decimals."""
    return round((avg * count + value) / (count + 1), 2)


def apply_team_rating(teams: EntityStore, team_id: str, rating: float, retries: int = 3) -> Optional[Team]:
    """Fold one rating into a team's average; returns None for an unknown team."""

    def rate(data: Dict[str, Any]) -> Dict[str, Any]:
        team = Team.from_document(data)
        team.rating_avg = running_average(team.rating_avg, team.rating_count, rating)
        team.rating_count += 1
        return team.to_document()

    stored = update_document(teams, team_id, rate, retries=retries)
    if stored is None:
        logger.warning(f"Cannot rate unknown team {team_id}")
        return None
    return Team.from_document(stored.data)


def public_player(player: Player) -> Dict[str, Any]:
    data = player.to_document()
    for name in PRIVATE_PLAYER_FIELDS:
        data.pop(name, None)
    return data


def rate_players(players: EntityStore, ratings: Iterable[PlayerRating], retries: int = 3) -> List[Dict[str, Any]]:
    """
    Apply post-match ratings to players. Out-of-range values and unknown
    players are skipped; raises NotFoundException when nothing was rated.
    """
    updated = []
    for rating in ratings:
        if not is_valid_rating(rating.value):
            logger.info(f"Skipping out-of-range rating {rating.value} for {rating.email}")
            continue

        def rate(data: Dict[str, Any], value=float(rating.value)) -> Dict[str, Any]:
            player = Player.from_document(data)
            player.rating_avg = running_average(player.rating_avg, player.rating_count, value)
            player.rating_count += 1
            return player.to_document()

        stored = update_document(players, rating.email, rate, retries=retries)
        if stored is None:
            continue
        updated.append(public_player(Player.from_document(stored.data)))

    if not updated:
        raise NotFoundException("No valid players found for rating")
    return updated
