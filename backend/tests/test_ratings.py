import pytest

from app.models.player import Player, PlayerRating
from app.utils.exceptions import NotFoundException, ValidationException
from processors.leaderboard import build_leaderboard
from processors.ratings import public_player, rate_players, running_average, validate_team_rating

from conftest import load_player, seed_player, seed_team


def test_running_average():
    assert running_average(0, 0, 4) == 4.0
    assert running_average(4.0, 1, 5) == 4.5
    assert running_average(4.5, 2, 1) == 3.33


def test_validate_team_rating():
    assert validate_team_rating(None) is None
    assert validate_team_rating(3) == 3.0
    for bad in (0, 5.5, "4", True):
        with pytest.raises(ValidationException):
            validate_team_rating(bad)


def test_rate_players_skips_invalid_entries(stores):
    seed_player(stores, "a@example.com")
    seed_player(stores, "b@example.com", notifications=[
        {"id": "n1", "title": "Match Results", "date": "2026-05-01T20:00:00+00:00"},
    ])

    updated = rate_players(stores.players, [
        PlayerRating(email="a@example.com", value=4),
        PlayerRating(email="b@example.com", value=9),
        PlayerRating(email="ghost@example.com", value=3),
        PlayerRating(email="b@example.com", value=2),
    ])

    assert [p["email"] for p in updated] == ["a@example.com", "b@example.com"]
    assert all("notifications" not in p for p in updated)
    assert load_player(stores, "a@example.com").rating_avg == 4.0
    b = load_player(stores, "b@example.com")
    assert (b.rating_avg, b.rating_count) == (2.0, 1)
    assert len(b.notifications) == 1


def test_rate_players_with_nothing_valid(stores):
    seed_player(stores, "a@example.com")
    with pytest.raises(NotFoundException):
        rate_players(stores.players, [PlayerRating(email="a@example.com", value=0)])


def test_public_player_hides_private_fields():
    player = Player.new("a@example.com", "Forward", password="hunter2")
    data = public_player(player)
    assert "password" not in data
    assert "notifications" not in data
    assert data["email"] == "a@example.com"


def test_leaderboard(stores):
    seed_player(stores, "fw@example.com", "Forward", goals=9, achievements=["MOTM_m1", "MOTM_m2"])
    seed_player(stores, "mid@example.com", "Midfielder", goals=3, assists=7, rating_avg=4.5, rating_count=2)
    seed_player(stores, "def@example.com", "Defender", overall_rating=61.0, achievements=["MOTM_m3", "cup"])
    seed_player(stores, "gk@example.com", "Goalkeeper", overall_rating=48.3)
    seed_team(stores, "lions", "Lions", "fw@example.com", ["fw@example.com"])
    seed_team(stores, "tigers", "Tigers", "mid@example.com", ["mid@example.com"])
    stores.teams.replace("lions", dict(stores.teams.get("lions").data, wins=3, losses=1, rating_avg=3.5))
    stores.teams.replace("tigers", dict(stores.teams.get("tigers").data, wins=1, losses=3, rating_avg=4.0))

    board = build_leaderboard(stores)
    players, teams = board["players"], board["teams"]

    assert [p["email"] for p in players["top_scorers"]] == ["fw@example.com", "mid@example.com", "def@example.com"]
    assert [p["email"] for p in players["top_assist"]] == ["mid@example.com"]
    assert [p["email"] for p in players["top_rated_player"]] == ["mid@example.com"]
    assert [p["email"] for p in players["top_defender"]] == ["def@example.com"]
    assert [p["email"] for p in players["top_goalkeeper"]] == ["gk@example.com"]
    assert [(p["email"], p["motm_count"]) for p in players["top_motm_players"]] == [("fw@example.com", 2)]
    assert all("notifications" not in p for p in players["top_scorers"])

    assert [(t["id"], t["win_rate"]) for t in teams["top_team_by_win_rate"]] == [("lions", 75.0)]
    assert [t["id"] for t in teams["top_rated_team"]] == ["tigers"]


def test_leaderboard_on_empty_store(stores):
    board = build_leaderboard(stores)
    assert board["players"]["top_scorers"] == []
    assert board["players"]["top_motm_players"] == []
    assert board["teams"]["top_rated_team"] == []
