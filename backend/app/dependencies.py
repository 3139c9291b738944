"""
Service wiring and FastAPI dependencies.

Stores and the notifier are built once per application and hung off
``app.state``; routers receive them through ``Depends``.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from fastapi import Header, Request

from app.utils.config import Settings
from app.utils.exceptions import UnauthorizedException
from app.utils.timeutils import utc_now
from notifiers.base import Notifier
from processors.match_lifecycle import MatchLifecycle
from processors.settlement import PointsSettler
from processors.stat_submission import StatSubmissionCoordinator
from storage.base import Stores


@dataclass
class MatchServices:
    settings: Settings
    stores: Stores
    notifier: Notifier
    lifecycle: MatchLifecycle
    coordinator: StatSubmissionCoordinator


def build_services(
    settings: Settings,
    stores: Stores,
    notifier: Notifier,
    clock: Callable[[], datetime] = utc_now,
) -> MatchServices:
    retries = settings.SUBMIT_RETRY_LIMIT
    settler = PointsSettler(stores, notifier, clock=clock, retries=retries)
    return MatchServices(
        settings=settings,
        stores=stores,
        notifier=notifier,
        lifecycle=MatchLifecycle(stores, notifier, clock=clock, retries=retries),
        coordinator=StatSubmissionCoordinator(
            stores,
            notifier,
            settler=settler,
            clock=clock,
            retries=retries,
            settlement_lease=timedelta(seconds=settings.SETTLEMENT_LEASE_SECONDS),
        ),
    )


def get_services(request: Request) -> MatchServices:
    return request.app.state.services


def get_caller_email(x_user_email: Optional[str] = Header(None)) -> str:
    """Identity of the authenticated caller, forwarded by the auth gateway."""
    if not x_user_email or not x_user_email.strip():
        raise UnauthorizedException("X-User-Email header is required")
    return x_user_email.strip().lower()
