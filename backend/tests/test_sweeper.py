from datetime import timedelta

from app.models.match import MatchStatus
from jobs.sweep_matches import sweep_match_statuses

from conftest import FULL_TIME, KICKOFF, load_match, seed_match


def test_nothing_moves_before_kickoff(stores, league, notifier):
    seed_match(stores, league)
    stats = sweep_match_statuses(stores, notifier, KICKOFF - timedelta(minutes=1))

    assert stats["scanned"] == 1
    assert stats["live"] == stats["completed"] == 0
    assert load_match(stores).status == MatchStatus.UPCOMING


def test_kickoff_then_full_time(stores, league, notifier):
    seed_match(stores, league)

    stats = sweep_match_statuses(stores, notifier, KICKOFF + timedelta(minutes=1))
    assert stats["live"] == 1
    assert load_match(stores).status == MatchStatus.LIVE
    assert notifier.titled("Match Completed") == []

    sweep_match_statuses(stores, notifier, FULL_TIME - timedelta(seconds=1))
    assert load_match(stores).status == MatchStatus.LIVE

    stats = sweep_match_statuses(stores, notifier, FULL_TIME)
    assert stats["completed"] == 1
    assert load_match(stores).status == MatchStatus.COMPLETED

    sweep_match_statuses(stores, notifier, FULL_TIME + timedelta(minutes=1))
    [(recipients, payload)] = notifier.titled("Match Completed")
    assert recipients == ["hcap@example.com", "acap@example.com"]
    assert payload["match_id"] == "m1"


def test_upcoming_past_end_goes_straight_to_completed(stores, league, notifier):
    seed_match(stores, league)
    stats = sweep_match_statuses(stores, notifier, FULL_TIME + timedelta(hours=1))

    assert stats["completed"] == 1
    assert stats["live"] == 0
    assert load_match(stores).status == MatchStatus.COMPLETED


def test_unsweepable_states_are_left_alone(stores, league, notifier):
    for status in (MatchStatus.PENDING, MatchStatus.CANCELLED, MatchStatus.FINAL):
        seed_match(stores, league, status=status, match_id=status.value)

    stats = sweep_match_statuses(stores, notifier, FULL_TIME + timedelta(hours=1))

    assert stats["scanned"] == 0
    for status in (MatchStatus.PENDING, MatchStatus.CANCELLED, MatchStatus.FINAL):
        assert load_match(stores, status.value).status == status


def test_invalid_times_are_skipped(stores, league, notifier):
    seed_match(stores, league, match_id="bad", start_time="soon", end_time=None)
    seed_match(stores, league, match_id="good")

    stats = sweep_match_statuses(stores, notifier, FULL_TIME)

    assert stats["skipped"] == 1
    assert stats["completed"] == 1
    assert load_match(stores, "bad").status == MatchStatus.UPCOMING
    assert load_match(stores, "good").status == MatchStatus.COMPLETED


def test_broken_row_does_not_stop_the_sweep(stores, league, notifier):
    stores.matches.insert("broken", {"id": "broken", "status": "upcoming"})
    seed_match(stores, league, match_id="good")

    stats = sweep_match_statuses(stores, notifier, FULL_TIME)

    assert stats["errors"] == 1
    assert stats["completed"] == 1
    assert load_match(stores, "good").status == MatchStatus.COMPLETED
