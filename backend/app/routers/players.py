"""
Players router: post-match ratings and the leaderboard.
"""

import asyncio

from fastapi import APIRouter, Depends

from app.dependencies import MatchServices, get_caller_email, get_services
from app.models.common import ErrorResponse
from app.models.player import LeaderboardResponse, RatePlayersRequest, RatePlayersResponse
from processors.leaderboard import build_leaderboard
from processors.ratings import rate_players

router = APIRouter()


@router.post(
    "/players/rate",
    response_model=RatePlayersResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Caller identity missing"},
        404: {"model": ErrorResponse, "description": "No valid players found for rating"},
    },
)
async def rate_opponent_players(
    body: RatePlayersRequest,
    caller: str = Depends(get_caller_email),
    services: MatchServices = Depends(get_services),
):
    """Rate players 1..5 after a match; invalid entries are skipped."""
    updated = await asyncio.to_thread(
        rate_players,
        services.stores.players,
        body.ratings,
        services.settings.SUBMIT_RETRY_LIMIT,
    )
    return RatePlayersResponse(message="Ratings updated successfully", updated_players=updated)


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(services: MatchServices = Depends(get_services)):
    """Top players and teams across all settled matches."""
    board = await asyncio.to_thread(build_leaderboard, services.stores)
    return LeaderboardResponse(players=board["players"], teams=board["teams"])
