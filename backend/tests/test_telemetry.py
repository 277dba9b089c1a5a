from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from pubg_stats.telemetry import (
    DEFAULT_RED_ZONE_RADIUS,
    MatchClock,
    TelemetryFormatError,
    reconstruct_telemetry,
)


def _character(name: str, team_id: Optional[int], x: float, y: float) -> dict:
    return {
        "name": name,
        "teamId": team_id,
        "location": {"x": x, "y": y, "z": 120.0},
    }


def _position(name: str, x: float, y: float, elapsed: Optional[float] = None) -> dict:
    event = {"_T": "LogPlayerPosition", "character": _character(name, 1, x, y)}
    if elapsed is not None:
        event["elapsedTime"] = elapsed
    return event


def test_reconstruct_splits_events_into_buckets_in_stream_order() -> None:
    events = [
        {"_T": "LogMatchStart", "_D": "2024-01-01T12:00:00.000Z"},
        _position("Alpha", 100, 200, elapsed=5),
        {
            "_T": "LogPlayerAttack",
            "_D": "2024-01-01T12:00:10.000Z",
            "attacker": _character("Alpha", 1, 101, 201),
            "weapon": {"itemId": "Item_Weapon_M416_C"},
        },
        _position("Bravo", 300, 400, elapsed=7),
        {
            "_T": "LogPlayerKillV2",
            "_D": "2024-01-01T12:00:12.500Z",
            "killer": _character("Alpha", 1, 101, 201),
            "victim": _character("Bravo", 2, 300, 400),
            "damageCauserName": "WeapHK416_C",
            "distance": 4512.5,
        },
        {
            "_T": "LogGameStatePeriodic",
            "_D": "2024-01-01T12:01:00.000Z",
            "gameState": {
                "safetyZonePosition": {"x": 4000, "y": 4000, "z": 0},
                "safetyZoneRadius": 3500,
            },
        },
        {
            "_T": "LogRedZoneEnded",
            "_D": "2024-01-01T12:02:00.000Z",
            "zonePosition": {"x": 10, "y": 20},
        },
        {"_T": "LogItemPickup", "_D": "2024-01-01T12:02:01.000Z"},
    ]

    projection = reconstruct_telemetry(events)

    assert [p.player_name for p in projection.player_positions] == ["Alpha", "Bravo"]
    assert projection.player_positions[0].timestamp == 5
    assert projection.player_positions[0].position.x == 100

    attack = projection.player_attacks[0]
    assert attack.attacker_name == "Alpha"
    assert attack.weapon_name == "Item_Weapon_M416_C"
    assert attack.timestamp == 10

    kill = projection.player_kills[0]
    assert (kill.killer_name, kill.victim_name) == ("Alpha", "Bravo")
    assert kill.victim_team_id == 2
    assert kill.weapon == "WeapHK416_C"
    assert kill.distance == 4512.5
    assert kill.timestamp == 12.5

    assert projection.play_zones[0].radius == 3500
    assert projection.play_zones[0].timestamp == 60
    assert projection.red_zones[0].radius == DEFAULT_RED_ZONE_RADIUS
    assert projection.red_zones[0].position.y == 20


def test_reconstruct_rejects_non_list_payload() -> None:
    with pytest.raises(TelemetryFormatError):
        reconstruct_telemetry({"events": []})


def test_empty_stream_gives_empty_projection() -> None:
    projection = reconstruct_telemetry([])

    assert projection.is_empty()


def test_malformed_events_are_dropped_without_affecting_others() -> None:
    events = [
        {"_T": "LogPlayerPosition", "character": {"name": "Ghost"}},
        {"_T": "LogPlayerAttack", "attacker": _character("Alpha", None, 1, 1)},
        {"_T": "LogPlayerKillV2", "killer": _character("Alpha", 1, 1, 1)},
        {"_T": "LogRedZoneEnded", "zonePosition": {"x": "abc", "y": 1}},
        {"_T": ["not", "hashable"]},
        None,
        _position("Alpha", 1, 2, elapsed=3),
        {"_T": "LogPlayerAttack", "attacker": _character("Bravo", 2, 5, 5)},
        {
            "_T": "LogPlayerKillV2",
            "killer": _character("Bravo", 2, 5, 5),
            "victim": _character("Alpha", 1, 1, 2),
        },
        {"_T": "LogRedZoneEnded", "zonePosition": {"x": 7, "y": 8}, "zoneRadius": 120},
    ]

    projection = reconstruct_telemetry(events)

    assert [p.player_name for p in projection.player_positions] == ["Alpha"]
    assert [a.attacker_name for a in projection.player_attacks] == ["Bravo"]
    assert projection.player_attacks[0].weapon_name == "Unknown"
    assert [(k.killer_name, k.victim_name) for k in projection.player_kills] == [("Bravo", "Alpha")]
    assert projection.player_kills[0].distance == 0
    assert [(z.position.x, z.radius) for z in projection.red_zones] == [(7, 120)]


def test_kill_falls_back_to_killer_damage_info() -> None:
    events = [
        {
            "_T": "LogPlayerKillV2",
            "killer": _character("Alpha", 1, 0, 0),
            "victim": _character("Bravo", 2, 10, 10),
            "killerDamageInfo": {"damageCauserName": "WeapAK47_C", "distance": 2200},
        }
    ]

    kill = reconstruct_telemetry(events).player_kills[0]

    assert kill.weapon == "WeapAK47_C"
    assert kill.distance == 2200
    assert kill.timestamp is None


def test_phase_change_counts_as_play_zone_and_missing_radius_is_kept_empty() -> None:
    events = [
        {
            "_T": "LogPhaseChange",
            "elapsedTime": 300,
            "gameState": {"safetyZonePosition": {"x": 1, "y": 2}},
        },
        {"_T": "LogGameStatePeriodic", "gameState": {}},
    ]

    projection = reconstruct_telemetry(events)

    assert len(projection.play_zones) == 1
    assert projection.play_zones[0].radius is None
    assert projection.play_zones[0].timestamp == 300


def test_match_clock_falls_back_to_first_stamped_event() -> None:
    clock = MatchClock.from_events(
        [
            {"_T": "LogPlayerLogin", "_D": "2024-01-01T11:59:00Z"},
            {"_T": "LogPlayerPosition", "_D": "2024-01-01T11:59:30Z"},
        ]
    )

    assert clock.timestamp({"_D": "2024-01-01T11:59:30Z"}) == 30
    assert clock.timestamp({"_D": "not-a-date"}) is None
    assert MatchClock().timestamp({"_D": "2024-01-01T11:59:30Z"}) is None
