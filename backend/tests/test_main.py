from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))

from pubg_stats import main
from pubg_stats.cache_store import CacheStore
from pubg_stats.models import (
    MatchTelemetry,
    NormalizedMatch,
    PlayerMatchSummary,
    PlayerProfile,
    PlayerStatsAggregate,
)
from pubg_stats.pubg_client import PubgAPIError
from pubg_stats.service import MatchNotFoundError, PlayerNotFoundError


class FakeService:
    async def fetch_player(self, platform: str, player_name: str) -> PlayerProfile:
        if player_name == "ghost":
            raise PlayerNotFoundError(f"Player not found: {player_name}")
        if player_name == "flaky":
            raise PubgAPIError("PUBG API error: 429 - Too Many Requests", status=429)
        return PlayerProfile(
            id="account.alpha",
            name=player_name,
            platform=platform,
            stats=PlayerStatsAggregate(kills=10, kd="1.25", top10_rate="40.0%"),
            matches=["m1"],
        )

    async def fetch_player_matches(self, platform: str, player_name: str):
        return [PlayerMatchSummary(id="m1", map="Erangel_Main", placement=2, kills=3)]

    async def fetch_weapon_mastery(self, platform: str, player_name: str) -> dict:
        return {"data": {"type": "weaponMasterySummary"}}

    async def fetch_survival_mastery(self, platform: str, player_name: str) -> dict:
        raise RuntimeError("unexpected")

    async def fetch_match(self, platform: str, match_id: str) -> NormalizedMatch:
        if match_id == "missing":
            raise MatchNotFoundError(f"Match not found: {match_id}")
        return NormalizedMatch(id=match_id, map="Desert_Main", duration=1700, game_mode="solo")

    async def fetch_match_telemetry(self, platform: str, match_id: str) -> MatchTelemetry:
        return MatchTelemetry(map="Desert_Main", duration=1700)


@pytest.fixture
def client(tmp_path):
    cache = CacheStore(cache_dir=tmp_path)
    main.app.dependency_overrides[main.get_service] = FakeService
    main.app.dependency_overrides[main.get_cache_store] = lambda: cache
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()


def test_player_route_includes_favorite_flag(client) -> None:
    client.post("/api/favorites", json={"playerName": "Alpha", "favorite": True})

    response = client.get("/api/players/steam/Alpha")

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "account.alpha"
    assert body["isFavorite"] is True
    assert body["stats"]["kd"] == "1.25"
    assert body["stats"]["top10Rate"] == "40.0%"
    assert body["stats"]["totalMatches"] == 0


def test_player_stats_route_returns_flat_stats(client) -> None:
    response = client.get("/api/players/steam/Alpha/stats")

    assert response.status_code == 200
    assert response.json()["kills"] == 10
    assert response.json()["isFavorite"] is False


def test_player_route_maps_errors_to_status_codes(client) -> None:
    assert client.get("/api/players/steam/ghost").status_code == 404
    assert client.get("/api/players/steam/flaky").status_code == 502
    assert client.get("/api/players/steam/Alpha/survival_mastery").status_code == 500


def test_player_matches_and_mastery_routes(client) -> None:
    matches = client.get("/api/players/steam/Alpha/matches").json()
    assert matches[0]["placement"] == 2
    assert matches[0]["gameMode"] is None

    mastery = client.get("/api/players/steam/Alpha/weapon_mastery").json()
    assert mastery["data"]["type"] == "weaponMasterySummary"


def test_match_routes(client) -> None:
    response = client.get("/api/matches/m1", params={"platform": "steam"})
    assert response.status_code == 200
    assert response.json()["gameMode"] == "solo"

    assert client.get("/api/matches/missing").status_code == 404

    telemetry = client.get("/api/matches/m1/telemetry").json()
    assert telemetry["playerPositions"] == []
    assert telemetry["duration"] == 1700


def test_search_records_history_and_preferences(client) -> None:
    response = client.post(
        "/api/search",
        json={"playerName": "Alpha", "platform": "steam", "region": "pc-eu"},
    )
    assert response.json() == {"success": True}

    recent = client.get("/api/recent-searches").json()
    assert recent[0]["playerName"] == "Alpha"
    assert recent[0]["platform"] == "steam"


def test_search_rejects_blank_fields(client) -> None:
    response = client.post(
        "/api/search", json={"playerName": "", "platform": "steam", "region": "pc-eu"}
    )

    assert response.status_code == 422


def test_health(client) -> None:
    body = client.get("/api/health").json()

    assert body["status"] == "healthy"
