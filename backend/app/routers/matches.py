"""
Matches router.
"""

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends

from app.dependencies import MatchServices, get_caller_email, get_services
from app.models.common import ErrorResponse
from app.models.match import (
    CreateMatchRequest,
    InviteAction,
    InviteResponseRequest,
    MatchListResponse,
    MatchResponse,
    MatchStatus,
    SubmissionResponse,
    SubmitStatsRequest,
)
from app.utils.logger import logger

router = APIRouter()

ERRORS = {
    400: {"model": ErrorResponse, "description": "Malformed request"},
    401: {"model": ErrorResponse, "description": "Caller identity missing"},
    403: {"model": ErrorResponse, "description": "Caller is not the captain allowed to act"},
    404: {"model": ErrorResponse, "description": "Match, team or trophy not found"},
    409: {"model": ErrorResponse, "description": "Match state does not allow this action"},
    503: {"model": ErrorResponse, "description": "Entity store unavailable, safe to retry"},
}


@router.get("", response_model=MatchListResponse)
async def list_matches(
    status: Optional[MatchStatus] = None,
    services: MatchServices = Depends(get_services),
):
    """
    List scheduled, live and finished matches.

    - **status**: only return matches in this status
    """
    matches = await asyncio.to_thread(services.lifecycle.list_matches, status)
    return MatchListResponse(matches=matches, count=len(matches))


@router.get("/{match_id}", response_model=MatchResponse, responses=ERRORS)
async def get_match(match_id: str, services: MatchServices = Depends(get_services)):
    """
    Get match by ID.

    - **match_id**: Unique identifier for the match
    """
    match = await asyncio.to_thread(services.lifecycle.get_match, match_id)
    return MatchResponse(message="Match found", match=match)


@router.post("", response_model=MatchResponse, responses=ERRORS)
async def create_match(
    body: CreateMatchRequest,
    caller: str = Depends(get_caller_email),
    services: MatchServices = Depends(get_services),
):
    """Propose a match to another team. Only a team captain may do this."""
    match = await asyncio.to_thread(services.lifecycle.create_match, caller, body)
    return MatchResponse(message="Match created and invitation sent", match=match)


@router.put("/{match_id}/response", response_model=MatchResponse, responses=ERRORS)
async def respond_to_invite(
    match_id: str,
    body: InviteResponseRequest,
    caller: str = Depends(get_caller_email),
    services: MatchServices = Depends(get_services),
):
    """Accept (with a roster) or reject a match invitation as the invited captain."""
    match = await asyncio.to_thread(
        services.lifecycle.respond_to_invite, match_id, caller, body.action, body.players_selected
    )
    message = (
        "Match accepted successfully"
        if body.action == InviteAction.ACCEPT
        else "Match rejected and cancelled"
    )
    return MatchResponse(message=message, match=match)


@router.put("/{match_id}/stats", response_model=SubmissionResponse, responses=ERRORS)
async def submit_stats(
    match_id: str,
    body: SubmitStatsRequest,
    caller: str = Depends(get_caller_email),
    services: MatchServices = Depends(get_services),
):
    """
    Submit your team's stats (and optionally rate the opponent, 1..5).

    The match is settled and finalized once both captains have submitted.
    """
    outcome = await asyncio.to_thread(
        services.coordinator.submit_stats, match_id, caller, body.team_stats, body.team_rate
    )
    logger.info(f"Stats submission for match {match_id}: {outcome.state}")
    return SubmissionResponse(state=outcome.state, message=outcome.message, match=outcome.match)
