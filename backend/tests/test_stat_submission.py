import pytest

from app.models.match import MatchStatus
from app.utils.exceptions import (
    DependencyTimeoutException,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from processors.settlement import PointsSettler
from processors.stat_submission import FINAL, WAITING, StatSubmissionCoordinator
from storage.base import update_document
from storage.memory_store import MemoryEntityStore, build_memory_stores

from conftest import FlakyStore, RecordingNotifier, load_match, load_player, load_team, seed_league, seed_match

HOME_STATS = [
    {"player_id": "hcap@example.com", "goals": 2},
    {"player_id": "hdef@example.com", "assists": 1},
]
AWAY_STATS = [
    {"player_id": "acap@example.com", "goals": 1},
    {"player_id": "agk@example.com"},
]


class CountingSettler(PointsSettler):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = 0

    def settle(self, match, home_team, away_team):
        self.calls += 1
        return super().settle(match, home_team, away_team)


class InterruptedMatches(MemoryEntityStore):
    """Runs ``interloper`` just before the first replace goes through."""

    def __init__(self, name):
        super().__init__(name)
        self.interloper = None

    def replace(self, key, data, expected_version=None):
        interloper, self.interloper = self.interloper, None
        if interloper is not None:
            interloper()
        return super().replace(key, data, expected_version)


@pytest.fixture
def coordinator(stores, notifier, clock):
    return StatSubmissionCoordinator(stores, notifier, clock=clock)


def test_first_submission_waits_second_finalizes(stores, league, coordinator):
    seed_match(stores, league, status=MatchStatus.COMPLETED)

    first = coordinator.submit_stats("m1", "hcap@example.com", HOME_STATS)
    assert first.state == WAITING
    stored = load_match(stores)
    assert stored.status == MatchStatus.COMPLETED
    assert stored.home_stats_submitted and not stored.away_stats_submitted
    assert load_player(stores, "hcap@example.com").matches == 0

    second = coordinator.submit_stats("m1", "acap@example.com", AWAY_STATS)
    assert second.state == FINAL
    final = load_match(stores)
    assert final.status == MatchStatus.FINAL
    assert final.result.winner == "lions"
    assert final.result.man_of_the_match == "hcap@example.com"
    assert load_player(stores, "hcap@example.com").matches == 1

    with pytest.raises(InvalidStateException):
        coordinator.submit_stats("m1", "acap@example.com", AWAY_STATS)


def test_submission_allowed_while_upcoming_or_live(stores, league, coordinator):
    seed_match(stores, league, status=MatchStatus.UPCOMING, match_id="u1")
    seed_match(stores, league, status=MatchStatus.LIVE, match_id="l1")
    assert coordinator.submit_stats("u1", "hcap@example.com", HOME_STATS).state == WAITING
    assert coordinator.submit_stats("l1", "acap@example.com", AWAY_STATS).state == WAITING


@pytest.mark.parametrize("status", [MatchStatus.PENDING, MatchStatus.CANCELLED])
def test_submission_rejected_before_acceptance(stores, league, coordinator, status):
    seed_match(stores, league, status=status)
    with pytest.raises(InvalidStateException):
        coordinator.submit_stats("m1", "hcap@example.com", HOME_STATS)


def test_only_captains_submit(stores, league, coordinator):
    seed_match(stores, league)
    with pytest.raises(ForbiddenException):
        coordinator.submit_stats("m1", "hdef@example.com", HOME_STATS)
    assert not load_match(stores).home_stats_submitted


def test_unknown_match(league, coordinator):
    with pytest.raises(NotFoundException):
        coordinator.submit_stats("nope", "hcap@example.com", HOME_STATS)


@pytest.mark.parametrize("stats", [
    [],
    [{"goals": 1}],
    [{"player_id": "hcap@example.com", "goals": -1}],
    [{"player_id": "hcap@example.com"}, {"player_id": "hcap@example.com"}],
])
def test_malformed_stats_are_rejected(stores, league, coordinator, stats):
    seed_match(stores, league)
    with pytest.raises(ValidationException):
        coordinator.submit_stats("m1", "hcap@example.com", stats)
    assert not load_match(stores).home_stats_submitted


def test_team_rating_goes_to_the_opponent(stores, league, coordinator):
    seed_match(stores, league)
    coordinator.submit_stats("m1", "hcap@example.com", HOME_STATS, team_rating=4)

    tigers = load_team(stores, "tigers")
    assert tigers.rating_avg == 4.0
    assert tigers.rating_count == 1
    assert load_team(stores, "lions").rating_count == 0


@pytest.mark.parametrize("rating", [0, 6, "five", True])
def test_invalid_team_rating_rejects_the_submission(stores, league, coordinator, rating):
    seed_match(stores, league)
    with pytest.raises(ValidationException):
        coordinator.submit_stats("m1", "hcap@example.com", HOME_STATS, team_rating=rating)
    assert not load_match(stores).home_stats_submitted
    assert load_team(stores, "tigers").rating_count == 0


def test_resubmission_before_the_other_side_replaces_stats(stores, league, coordinator):
    seed_match(stores, league)
    coordinator.submit_stats("m1", "hcap@example.com", HOME_STATS)
    outcome = coordinator.submit_stats("m1", "hcap@example.com", [{"player_id": "hcap@example.com", "goals": 5}])

    assert outcome.state == WAITING
    assert [s.goals for s in load_match(stores).home_stats] == [5]


def test_racing_captains_settle_exactly_once(clock):
    notifier = RecordingNotifier()
    stores = build_memory_stores()
    stores.matches = InterruptedMatches("matches")
    league = seed_league(stores)
    seed_match(stores, league)

    settler = CountingSettler(stores, notifier, clock=clock)
    coordinator = StatSubmissionCoordinator(stores, notifier, settler=settler, clock=clock)
    away_outcomes = []
    stores.matches.interloper = lambda: away_outcomes.append(
        coordinator.submit_stats("m1", "acap@example.com", AWAY_STATS)
    )

    home_outcome = coordinator.submit_stats("m1", "hcap@example.com", HOME_STATS)

    assert [o.state for o in away_outcomes] == [WAITING]
    assert home_outcome.state == FINAL
    assert settler.calls == 1
    match = load_match(stores)
    assert match.status == MatchStatus.FINAL
    assert match.home_stats_submitted and match.away_stats_submitted
    for email in ("hcap@example.com", "hdef@example.com", "acap@example.com", "agk@example.com"):
        assert load_player(stores, email).matches == 1
    assert len(notifier.titled("Match Results")) == 4


def interrupted_settlement(clock):
    """Home has submitted; the away sheet lands but settlement dies after paying hcap and hdef."""
    notifier = RecordingNotifier()
    stores = build_memory_stores()
    stores.players = FlakyStore("players", fail_on=3)
    league = seed_league(stores)
    seed_match(stores, league)
    coordinator = StatSubmissionCoordinator(stores, notifier, clock=clock)

    coordinator.submit_stats("m1", "hcap@example.com", HOME_STATS)
    with pytest.raises(DependencyTimeoutException):
        coordinator.submit_stats("m1", "acap@example.com", AWAY_STATS)
    return stores, coordinator


def test_interrupted_settlement_resumes_without_double_counting(clock):
    stores, coordinator = interrupted_settlement(clock)

    stuck = load_match(stores)
    assert stuck.both_submitted
    assert stuck.status == MatchStatus.UPCOMING
    assert load_player(stores, "hcap@example.com").matches == 1
    assert load_player(stores, "acap@example.com").matches == 0

    clock.advance(minutes=2)
    outcome = coordinator.submit_stats("m1", "acap@example.com", AWAY_STATS)

    assert outcome.state == FINAL
    assert load_match(stores).status == MatchStatus.FINAL
    for email in ("hcap@example.com", "hdef@example.com", "acap@example.com", "agk@example.com"):
        assert load_player(stores, email).matches == 1
    assert load_player(stores, "hcap@example.com").points == 535
    assert load_player(stores, "acap@example.com").points == 515
    assert load_team(stores, "lions").matches_played == 1
    assert load_team(stores, "tigers").matches_played == 1


def test_resume_keeps_the_stats_on_file(clock):
    stores, coordinator = interrupted_settlement(clock)
    clock.advance(minutes=2)

    with pytest.raises(InvalidStateException):
        coordinator.submit_stats("m1", "acap@example.com", [{"player_id": "acap@example.com", "goals": 5}])
    assert [s.goals for s in load_match(stores).away_stats] == [1, 0]

    coordinator.submit_stats("m1", "hcap@example.com", HOME_STATS)

    final = load_match(stores)
    assert (final.result.home_goals, final.result.away_goals, final.result.winner) == (2, 1, "lions")
    hcap = load_player(stores, "hcap@example.com")
    acap = load_player(stores, "acap@example.com")
    assert (hcap.wins, hcap.losses) == (1, 0)
    assert (acap.wins, acap.losses) == (0, 1)


def test_resume_waits_for_the_settlement_lease(clock):
    stores, coordinator = interrupted_settlement(clock)

    with pytest.raises(InvalidStateException):
        coordinator.submit_stats("m1", "acap@example.com", AWAY_STATS)
    assert load_player(stores, "acap@example.com").matches == 0

    clock.advance(seconds=61)
    assert coordinator.submit_stats("m1", "acap@example.com", AWAY_STATS).state == FINAL


def test_resume_does_not_rate_the_opponent_again(clock):
    stores, coordinator = interrupted_settlement(clock)
    clock.advance(minutes=2)

    coordinator.submit_stats("m1", "acap@example.com", AWAY_STATS, team_rating=5)
    assert load_team(stores, "lions").rating_count == 0


def test_stats_for_players_off_the_roster_are_rejected(stores, league, coordinator):
    seed_match(stores, league)
    sheet = HOME_STATS + [{"player_id": "agk@example.com"}]

    with pytest.raises(ValidationException):
        coordinator.submit_stats("m1", "hcap@example.com", sheet)
    assert not load_match(stores).home_stats_submitted


def test_unrostered_side_accepts_any_player(stores, league, coordinator):
    seed_match(stores, league, home_players=[])
    assert coordinator.submit_stats("m1", "hcap@example.com", HOME_STATS).state == WAITING


def test_captain_email_matches_regardless_of_case(stores, league, coordinator):
    seed_match(stores, league)
    update_document(stores.teams, "lions", lambda data: {**data, "captain": "HCap@Example.com"})

    assert coordinator.submit_stats("m1", "hcap@example.com", HOME_STATS).state == WAITING
