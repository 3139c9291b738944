"""
Skill Progression Calculator

Turns one player's match stats into skill growth, an overall rating, a bounded
performance score, an aura change and a match history entry.

Growth slows as a skill approaches the cap: every gain is scaled by the
multiplier of the bracket the skill is in *before* the gain, and skills never
exceed 99.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from app.models.match import PlayerStatLine
from app.models.player import MatchHistoryEntry, Player
from app.utils.timeutils import to_iso
from config.progression_config import (
    ASSIST_SKILL_GAIN,
    AURA_MAX,
    AURA_MIN,
    AURA_MOTM_GAIN,
    AURA_PARTICIPANT_LOSS,
    CLEAN_SHEET_SKILL_GAIN,
    DEFAULT_OPPONENT_TEAM_RATING,
    DEFENDER,
    GOAL_SKILL_GAIN,
    GROWTH_BRACKETS,
    MATCH_HISTORY_LIMIT,
    MOTM_SKILL_GAIN,
    MOTM_STATS_BONUS,
    PERFORMANCE_MAX,
    PERFORMANCE_MIN,
    PERFORMANCE_OPPONENT_WEIGHT,
    PERFORMANCE_SKILL_WEIGHT,
    PERFORMANCE_STATS_WEIGHT,
    POSITION_SKILL_WEIGHTS,
    SKILL_CAP,
    SKILL_FLOOR,
    STATS_SCORE_WEIGHTS,
    skills_for_position,
)

WIN = "win"
LOSE = "lose"
DRAW = "draw"


def round1(value: float) -> float:
    """Round half-up to one decimal place."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def growth_multiplier(value: float) -> float:
    for upper, multiplier in GROWTH_BRACKETS:
        if value < upper:
            return multiplier
    return 0.0


def improve_skill(player: Player, skill: str, base_gain: float) -> float:
    """Apply ``base_gain`` to ``skill`` through the diminishing-returns multiplier."""
    current = player.skill(skill)
    raised = current + base_gain * growth_multiplier(current)
    new_value = round1(min(SKILL_CAP, max(SKILL_FLOOR, raised)))
    setattr(player, skill, new_value)
    return new_value


def mean_skill(player: Player) -> float:
    skills = skills_for_position(player.position)
    return sum(player.skill(s) for s in skills) / len(skills)


def update_overall_rating(player: Player) -> float:
    player.overall_rating = round1(mean_skill(player))
    return player.overall_rating


def stats_score(stat: PlayerStatLine, is_motm: bool) -> float:
    score = sum(getattr(stat, name) * weight for name, weight in STATS_SCORE_WEIGHTS.items())
    if is_motm:
        score += MOTM_STATS_BONUS
    return score


def overall_performance(player: Player, stat: PlayerStatLine, is_motm: bool) -> float:
    opponent_rating = stat.opponent_team_rating
    if opponent_rating is None:
        opponent_rating = DEFAULT_OPPONENT_TEAM_RATING
    raw = (
        PERFORMANCE_SKILL_WEIGHT * mean_skill(player)
        + PERFORMANCE_STATS_WEIGHT * stats_score(stat, is_motm)
        + PERFORMANCE_OPPONENT_WEIGHT * opponent_rating
    )
    return min(PERFORMANCE_MAX, max(PERFORMANCE_MIN, raw))


def update_aura(player: Player, is_motm: bool) -> int:
    if is_motm:
        player.aura_points = min(AURA_MAX, player.aura_points + AURA_MOTM_GAIN)
    else:
        player.aura_points = max(AURA_MIN, player.aura_points - AURA_PARTICIPANT_LOSS)
    return player.aura_points


def push_history(player: Player, entry: MatchHistoryEntry) -> None:
    player.match_history.append(entry)
    overflow = len(player.match_history) - MATCH_HISTORY_LIMIT
    if overflow > 0:
        del player.match_history[:overflow]


def apply_match_progression(
    player: Player,
    stat: PlayerStatLine,
    *,
    result: str,
    is_motm: bool,
    goals_conceded: int,
    played_at: datetime,
    match_id: Optional[str] = None,
) -> float:
    """
    Progress ``player`` in place for one settled match and return the
    performance score recorded in their history.
    """
    for skill, weight in POSITION_SKILL_WEIGHTS.get(player.position, {}).items():
        improve_skill(player, skill, weight)
    if stat.goals:
        improve_skill(player, "shooting", stat.goals * GOAL_SKILL_GAIN)
    if stat.assists:
        improve_skill(player, "passing", stat.assists * ASSIST_SKILL_GAIN)
    if result == WIN and player.position == DEFENDER and goals_conceded == 0:
        improve_skill(player, "defence", CLEAN_SHEET_SKILL_GAIN)
    if is_motm:
        improve_skill(player, "dribbling", MOTM_SKILL_GAIN)
    update_overall_rating(player)

    performance = overall_performance(player, stat, is_motm)
    player.overall_performance = performance
    push_history(
        player,
        MatchHistoryEntry(
            match_id=match_id,
            date=to_iso(played_at),
            result=result,
            overall_performance=performance,
        ),
    )
    update_aura(player, is_motm)
    return performance


def select_man_of_the_match(stats: Iterable[PlayerStatLine]) -> Optional[PlayerStatLine]:
    """
    Most goals wins, ties broken by most assists. The earliest record wins any
    remaining tie, so some record is picked whenever one exists.
    """
    best = None
    for stat in stats:
        if best is None:
            best = stat
            continue
        if stat.goals > best.goals or (stat.goals == best.goals and stat.assists > best.assists):
            best = stat
    return best
