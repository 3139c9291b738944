"""
Shared fixtures: in-memory stores, a controllable clock and a seeded league.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app.models.match import Match, MatchStatus
from app.models.player import Player, Team, Trophy
from app.utils.exceptions import DependencyTimeoutException
from app.utils.timeutils import to_iso
from notifiers.base import Notifier, as_recipient_list
from storage.memory_store import MemoryEntityStore, build_memory_stores

KICKOFF = datetime(2026, 5, 1, 18, 0, tzinfo=timezone.utc)
FULL_TIME = KICKOFF + timedelta(hours=2)


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


class RecordingNotifier(Notifier):
    """Keeps every notification instead of delivering it."""

    def __init__(self):
        self.sent = []
        self.dismissed = []

    def notify(self, recipients, payload):
        self.sent.append((as_recipient_list(recipients), dict(payload)))

    def dismiss(self, recipient, *, match_id, type):
        self.dismissed.append((recipient, match_id, type))

    def titled(self, title):
        return [(recipients, payload) for recipients, payload in self.sent if payload["title"] == title]


class FlakyStore(MemoryEntityStore):
    """Fails the n-th replace once, as if the store timed out mid-write."""

    def __init__(self, name, fail_on):
        super().__init__(name)
        self.fail_on = fail_on
        self.replaces = 0

    def replace(self, key, data, expected_version=None):
        self.replaces += 1
        if self.replaces == self.fail_on:
            raise DependencyTimeoutException("entity store", "timed out")
        return super().replace(key, data, expected_version)


def seed_player(stores, email, position="Midfielder", **fields):
    fields.setdefault("points", 500)
    player = Player.new(email, position, **fields)
    stores.players.insert(email, player.to_document())
    return player


def seed_team(stores, team_id, name, captain, members):
    team = Team(id=team_id, name=name, captain=captain, team_players=list(members))
    stores.teams.insert(team_id, team.to_document())
    return team


def seed_trophy(stores, trophy_id="cup", fee=100, win=70, lose=30, goal=0, assist=0, motm=0):
    trophy = Trophy(
        id=trophy_id,
        name="City Cup",
        fee=fee,
        distribution={"win": win, "lose": lose},
        bonuses={"goal": goal, "assist": assist, "motm": motm},
    )
    stores.trophies.insert(trophy_id, trophy.to_document())
    return trophy


def seed_match(stores, league, status=MatchStatus.UPCOMING, trophy_id="cup", match_id="m1", **fields):
    document = {
        "id": match_id,
        "trophy_id": trophy_id,
        "home_team_id": league.home.id,
        "away_team_id": league.away.id,
        "home_players": list(league.home.team_players),
        "away_players": list(league.away.team_players),
        "start_time": to_iso(KICKOFF),
        "end_time": to_iso(FULL_TIME),
        "status": status,
    }
    document.update(fields)
    match = Match(**document)
    stores.matches.insert(match.id, match.to_document())
    return match


def load_player(stores, email):
    return Player.from_document(stores.players.get(email).data)


def load_team(stores, team_id):
    return Team.from_document(stores.teams.get(team_id).data)


def load_match(stores, match_id="m1"):
    return Match.from_document(stores.matches.get(match_id).data)


def seed_league(stores):
    """Two teams of two (captain included) and a 100-point cup split 70/30."""
    seed_player(stores, "hcap@example.com", "Forward")
    seed_player(stores, "hdef@example.com", "Defender")
    seed_player(stores, "acap@example.com", "Midfielder")
    seed_player(stores, "agk@example.com", "Goalkeeper")
    home = seed_team(stores, "lions", "Lions", "hcap@example.com", ["hcap@example.com", "hdef@example.com"])
    away = seed_team(stores, "tigers", "Tigers", "acap@example.com", ["acap@example.com", "agk@example.com"])
    trophy = seed_trophy(stores)
    return SimpleNamespace(home=home, away=away, trophy=trophy)


@pytest.fixture
def stores():
    return build_memory_stores()


@pytest.fixture
def clock():
    return FixedClock(FULL_TIME + timedelta(minutes=5))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def league(stores):
    return seed_league(stores)
