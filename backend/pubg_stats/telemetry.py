from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from pubg_stats.models import (
    AttackSample,
    KillSample,
    Position,
    PositionSample,
    TelemetryProjection,
    ZoneSample,
)
from pubg_stats.payload import as_dict, as_int, as_number, dig

logger = logging.getLogger(__name__)

POSITION_EVENT = "LogPlayerPosition"
ATTACK_EVENT = "LogPlayerAttack"
KILL_EVENT = "LogPlayerKillV2"
GAME_STATE_EVENTS = ("LogGameStatePeriodic", "LogPhaseChange")
RED_ZONE_EVENT = "LogRedZoneEnded"
MATCH_START_EVENT = "LogMatchStart"

DEFAULT_RED_ZONE_RADIUS = 50.0
UNKNOWN_WEAPON = "Unknown"


class TelemetryFormatError(ValueError):
    pass


def _parse_iso_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class MatchClock:
    """Resolves an event's timestamp on the shared seconds-since-start time base."""

    def __init__(self, started_at: Optional[datetime] = None) -> None:
        self.started_at = started_at

    @classmethod
    def from_events(cls, events: List[Any]) -> "MatchClock":
        fallback: Optional[datetime] = None
        for event in events:
            if not isinstance(event, dict):
                continue
            stamp = _parse_iso_timestamp(event.get("_D"))
            if stamp is None:
                continue
            if event.get("_T") == MATCH_START_EVENT:
                return cls(stamp)
            if fallback is None:
                fallback = stamp
        return cls(fallback)

    def timestamp(self, event: Dict) -> Optional[float]:
        elapsed = event.get("elapsedTime")
        if isinstance(elapsed, (int, float)) and not isinstance(elapsed, bool):
            return float(elapsed)
        if self.started_at is None:
            return None
        stamp = _parse_iso_timestamp(event.get("_D"))
        if stamp is None:
            return None
        try:
            return round((stamp - self.started_at).total_seconds(), 3)
        except TypeError:
            # Naive and aware stamps mixed in one stream.
            return None


def _location(value: Any) -> Optional[Position]:
    location = as_dict(value)
    x, y = location.get("x"), location.get("y")
    if x is None or y is None:
        return None
    return Position(x=x, y=y)


def _actor(value: Any) -> Optional[Tuple[str, int, Position]]:
    """Name, team id and 2D position of a character, or None if any is missing."""
    character = as_dict(value)
    name = character.get("name")
    team_id = as_int(character.get("teamId"))
    position = _location(character.get("location"))
    if not name or team_id is None or position is None:
        return None
    return str(name), team_id, position


def project_position(event: Dict, clock: MatchClock) -> Optional[PositionSample]:
    character = as_dict(event.get("character"))
    name = character.get("name")
    position = _location(character.get("location"))
    if not name or position is None:
        return None
    return PositionSample(
        player_name=str(name),
        team_id=as_int(character.get("teamId")),
        position=position,
        timestamp=clock.timestamp(event),
    )


def project_attack(event: Dict, clock: MatchClock) -> Optional[AttackSample]:
    attacker = _actor(event.get("attacker"))
    if attacker is None:
        return None
    name, team_id, position = attacker
    return AttackSample(
        attacker_name=name,
        attacker_team_id=team_id,
        attacker_position=position,
        weapon_name=str(dig(event, "weapon", "itemId") or UNKNOWN_WEAPON),
        timestamp=clock.timestamp(event),
    )


def project_kill(event: Dict, clock: MatchClock) -> Optional[KillSample]:
    killer = _actor(event.get("killer"))
    victim = _actor(event.get("victim"))
    if killer is None or victim is None:
        return None
    damage_info = as_dict(event.get("killerDamageInfo"))
    weapon = event.get("damageCauserName") or damage_info.get("damageCauserName")
    distance = event.get("distance") or damage_info.get("distance")
    return KillSample(
        killer_name=killer[0],
        killer_team_id=killer[1],
        killer_position=killer[2],
        victim_name=victim[0],
        victim_team_id=victim[1],
        victim_position=victim[2],
        weapon=str(weapon or UNKNOWN_WEAPON),
        distance=as_number(distance),
        timestamp=clock.timestamp(event),
    )


def project_play_zone(event: Dict, clock: MatchClock) -> Optional[ZoneSample]:
    game_state = as_dict(event.get("gameState"))
    position = _location(game_state.get("safetyZonePosition"))
    if position is None:
        return None
    radius = game_state.get("safetyZoneRadius")
    return ZoneSample(
        position=position,
        radius=None if radius is None else as_number(radius),
        timestamp=clock.timestamp(event),
    )


def project_red_zone(event: Dict, clock: MatchClock) -> Optional[ZoneSample]:
    position = _location(event.get("zonePosition"))
    if position is None:
        return None
    radius = as_number(event.get("zoneRadius")) or DEFAULT_RED_ZONE_RADIUS
    return ZoneSample(
        position=position,
        radius=radius,
        timestamp=clock.timestamp(event),
    )


Projector = Callable[[Dict, MatchClock], Optional[Any]]

_PROJECTORS: Dict[str, Tuple[str, Projector]] = {
    POSITION_EVENT: ("player_positions", project_position),
    ATTACK_EVENT: ("player_attacks", project_attack),
    KILL_EVENT: ("player_kills", project_kill),
    RED_ZONE_EVENT: ("red_zones", project_red_zone),
}
for _kind in GAME_STATE_EVENTS:
    _PROJECTORS[_kind] = ("play_zones", project_play_zone)


def reconstruct_telemetry(events: Any) -> TelemetryProjection:
    """Split a raw telemetry stream into time-indexed projections for the replay view.

    Each list keeps source-stream order. A malformed event is dropped from its bucket
    without affecting the rest of the pass. Raises TelemetryFormatError when the
    payload is not a list.
    """
    if not isinstance(events, list):
        raise TelemetryFormatError(
            f"Invalid telemetry format, expected array: {type(events).__name__}"
        )

    clock = MatchClock.from_events(events)
    buckets: Dict[str, List[Any]] = {
        "player_positions": [],
        "player_attacks": [],
        "player_kills": [],
        "play_zones": [],
        "red_zones": [],
    }
    dropped = 0
    for event in events:
        if not isinstance(event, dict):
            continue
        kind = event.get("_T")
        handler = _PROJECTORS.get(kind) if isinstance(kind, str) else None
        if handler is None:
            continue
        bucket_name, projector = handler
        try:
            sample = projector(event, clock)
        except (TypeError, ValueError):
            sample = None
        if sample is None:
            dropped += 1
            continue
        buckets[bucket_name].append(sample)

    if dropped:
        logger.debug(f"Dropped {dropped} malformed telemetry events")
    return TelemetryProjection(**buckets)
