"""
Data models for matches between two teams and the stats captains submit.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.common import DocumentModel


class MatchStatus(str, Enum):
    PENDING = "pending"
    UPCOMING = "upcoming"
    LIVE = "live"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FINAL = "final"


class Location(BaseModel):
    name: str
    address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None

    @property
    def short_name(self) -> str:
        return self.name.split(",")[0].strip()


class PlayerStatLine(BaseModel):
    """One player's line in a captain's stat submission."""

    player_id: str = Field(..., min_length=1, description="Player email")
    goals: int = Field(0, ge=0)
    assists: int = Field(0, ge=0)
    yellow_cards: int = Field(0, ge=0)
    red_cards: int = Field(0, ge=0)
    opponent_team_rating: Optional[float] = Field(
        None, ge=0, le=100, description="Submitter's rating of the opponent, defaults to 50"
    )


class MatchResult(BaseModel):
    home_goals: int
    away_goals: int
    winner: str = Field(..., description="Winning team id or 'draw'")
    man_of_the_match: Optional[str] = None


class Match(DocumentModel):
    """A fixture between a home (inviting) and an away (invited) team."""

    id: str
    trophy_id: Optional[str] = None
    home_team_id: str
    away_team_id: str
    home_players: List[str] = Field(default_factory=list)
    away_players: List[str] = Field(default_factory=list)
    location: Optional[Location] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    status: MatchStatus = MatchStatus.PENDING
    home_stats_submitted: bool = False
    away_stats_submitted: bool = False
    home_stats: List[PlayerStatLine] = Field(default_factory=list)
    away_stats: List[PlayerStatLine] = Field(default_factory=list)
    result: Optional[MatchResult] = None
    settlement_started_at: Optional[str] = Field(None, description="When the write completing both sheets was made")
    entry_fees_settled: Optional[bool] = Field(None, description="False while entry fees are still being debited")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def both_submitted(self) -> bool:
        return self.home_stats_submitted and self.away_stats_submitted


# Request / response models


class CreateMatchRequest(BaseModel):
    opponent_team_id: str = Field(..., min_length=1)
    players_selected: List[str] = Field(..., min_length=1, description="Home roster (emails)")
    trophy_id: Optional[str] = None
    location: Optional[Location] = None
    start_time: str
    end_time: str


class InviteAction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


class InviteResponseRequest(BaseModel):
    action: InviteAction
    players_selected: Optional[List[str]] = Field(None, description="Away roster, required to accept")


class SubmitStatsRequest(BaseModel):
    team_stats: List[PlayerStatLine] = Field(..., min_length=1)
    team_rate: Optional[int] = Field(None, description="Rating of the opponent team, 1..5")


class MatchResponse(BaseModel):
    status: str = "success"
    message: str
    match: Match


class MatchListResponse(BaseModel):
    status: str = "success"
    matches: List[Match]
    count: int


class SubmissionResponse(BaseModel):
    status: str = "success"
    state: str = Field(..., description="'waiting' until both captains submitted, then 'final'")
    message: str
    match: Match
