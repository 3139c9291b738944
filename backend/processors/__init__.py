"""
Processors Package

This package contains the match engine:
- Match state machine (status transitions)
- Match lifecycle (create, accept/reject)
- Stat submission coordination (two-sided handshake)
- Skill progression
- Points settlement
- Ratings and leaderboard
"""

from .match_lifecycle import MatchLifecycle
from .settlement import PointsSettler
from .stat_submission import StatSubmissionCoordinator, SubmissionOutcome

__all__ = [
    "MatchLifecycle",
    "PointsSettler",
    "StatSubmissionCoordinator",
    "SubmissionOutcome",
]
