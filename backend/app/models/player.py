"""
Data models for players, teams and trophies as seen by match settlement.

Profiles, rosters and trophies are owned elsewhere; settlement only moves the
counters, skills and balances declared here.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.models.common import DocumentModel
from config.progression_config import DEFAULT_SKILLS


def same_email(a: Optional[str], b: Optional[str]) -> bool:
    return (a or "").strip().lower() == (b or "").strip().lower()


class MatchHistoryEntry(BaseModel):
    match_id: Optional[str] = None
    date: str
    result: str = Field(..., description="win, lose or draw")
    overall_performance: float


class Notification(DocumentModel):
    id: str
    title: str
    message: str = ""
    date: str
    match_id: Optional[str] = None
    type: Optional[str] = None


class Player(DocumentModel):
    email: str
    name: Optional[str] = None
    position: Optional[str] = None

    # Economy and reputation
    points: float = 0
    aura_points: int = 0

    # Cumulative counters
    matches: int = 0
    goals: int = 0
    assists: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    red_cards: int = 0
    yellow_cards: int = 0

    # Goalkeeper skills
    diving: Optional[float] = None
    handling: Optional[float] = None
    kicking: Optional[float] = None
    reflexes: Optional[float] = None
    positioning: Optional[float] = None
    speed: Optional[float] = None

    # Outfield skills
    pace: Optional[float] = None
    shooting: Optional[float] = None
    passing: Optional[float] = None
    dribbling: Optional[float] = None
    defence: Optional[float] = None
    physical: Optional[float] = None

    overall_rating: float = 0
    overall_performance: Optional[float] = None
    rating_avg: float = 0
    rating_count: int = 0

    achievements: List[str] = Field(default_factory=list)
    entry_fees_paid: List[str] = Field(default_factory=list, description="Match ids whose entry fee was debited")
    match_history: List[MatchHistoryEntry] = Field(default_factory=list)
    notifications: List[Notification] = Field(default_factory=list)

    def skill(self, name: str) -> float:
        return getattr(self, name, None) or 0.0

    def has_settled(self, match_id: str) -> bool:
        return any(entry.match_id == match_id for entry in self.match_history)

    @classmethod
    def new(cls, email: str, position: str, **fields: Any) -> "Player":
        """A fresh player with the starting skills for their position."""
        skills = dict(DEFAULT_SKILLS.get(position, {}))
        skills.update(fields)
        return cls(email=email, position=position, **skills)


class Team(DocumentModel):
    id: str
    name: str = ""
    captain: str = Field(..., description="Captain email")
    team_players: List[str] = Field(default_factory=list)
    matches_played: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    rating_avg: float = 0
    rating_count: int = 0
    achievements: List[str] = Field(default_factory=list)
    settled_match_ids: List[str] = Field(default_factory=list)

    def is_captain(self, email: Optional[str]) -> bool:
        return bool(email) and same_email(self.captain, email)


class TrophyDistribution(BaseModel):
    win: float = Field(..., ge=0, le=100)
    lose: float = Field(..., ge=0, le=100)


class TrophyBonuses(BaseModel):
    goal: float = 0
    assist: float = 0
    motm: float = 0


class Trophy(DocumentModel):
    id: str
    name: Optional[str] = None
    fee: float = Field(..., ge=0)
    distribution: TrophyDistribution
    bonuses: TrophyBonuses = Field(default_factory=TrophyBonuses)


# Request / response models


class PlayerRating(BaseModel):
    email: str
    value: float


class RatePlayersRequest(BaseModel):
    ratings: List[PlayerRating] = Field(..., min_length=1)


class RatePlayersResponse(BaseModel):
    status: str = "success"
    message: str
    updated_players: List[Dict[str, Any]]


class LeaderboardResponse(BaseModel):
    status: str = "success"
    message: str = "Leaderboard fetched successfully"
    players: Dict[str, List[Dict[str, Any]]]
    teams: Dict[str, List[Dict[str, Any]]]
