"""
Leaderboard built from the aggregates settlement maintains.
"""

from typing import Any, Callable, Dict, List

from app.models.player import Player, Team
from config.progression_config import (
    DEFENDER,
    FORWARD,
    GOALKEEPER,
    MIDFIELDER,
    MOTM_ACHIEVEMENT_PREFIX,
)
from processors.ratings import public_player
from storage.base import Stores

TOP_SCORERS_LIMIT = 3


def _leaders(items: List[Any], key: Callable[[Any], float], require_positive: bool = False) -> List[Any]:
    """Everything tied at the maximum of ``key``."""
    if not items:
        return []
    best = max(key(item) for item in items)
    if require_positive and best <= 0:
        return []
    return [item for item in items if key(item) == best]


def motm_count(player: Player) -> int:
    return sum(1 for a in player.achievements if a.startswith(MOTM_ACHIEVEMENT_PREFIX))


def win_rate(team: Team) -> float:
    total = team.wins + team.losses + team.draws
    return team.wins / total * 100 if total else 0.0


def build_leaderboard(stores: Stores) -> Dict[str, Dict[str, List[Dict[str, Any]]]]:
    players = [Player.from_document(doc.data) for doc in stores.players.scan()]
    teams = [Team.from_document(doc.data) for doc in stores.teams.scan()]

    top_scorers = sorted(players, key=lambda p: p.goals, reverse=True)[:TOP_SCORERS_LIMIT]
    rated_players = [p for p in players if p.rating_count > 0]

    def by_position(position: str) -> List[Player]:
        return _leaders([p for p in players if p.position == position], lambda p: p.overall_rating)

    def team_row(team: Team, **extra) -> Dict[str, Any]:
        data = team.to_document()
        data.update(extra)
        return data

    return {
        "players": {
            "top_scorers": [public_player(p) for p in top_scorers],
            "top_assist": [public_player(p) for p in _leaders(players, lambda p: p.assists)],
            "top_rated_player": [public_player(p) for p in _leaders(rated_players, lambda p: p.rating_avg)],
            "top_defender": [public_player(p) for p in by_position(DEFENDER)],
            "top_midfielder": [public_player(p) for p in by_position(MIDFIELDER)],
            "top_forward": [public_player(p) for p in by_position(FORWARD)],
            "top_goalkeeper": [public_player(p) for p in by_position(GOALKEEPER)],
            "top_motm_players": [
                dict(public_player(p), motm_count=motm_count(p))
                for p in _leaders(players, motm_count, require_positive=True)
            ],
        },
        "teams": {
            "top_team_by_win_rate": [team_row(t, win_rate=win_rate(t)) for t in _leaders(teams, win_rate)],
            "top_rated_team": [team_row(t) for t in _leaders(teams, lambda t: t.rating_avg)],
        },
    }
