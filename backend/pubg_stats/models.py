from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel, to_pascal


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Raw provider documents. Every counter is optional upstream; None collapses to 0.


class GameModeStats(CamelModel):
    kills: float = 0
    losses: float = 0
    wins: float = 0
    damage_dealt: float = 0
    headshot_kills: float = 0
    longest_kill: float = 0
    rounds_played: float = 0
    top10s: float = Field(0, alias="top10s")

    @field_validator("*", mode="before")
    @classmethod
    def _none_as_zero(cls, value: object) -> object:
        return 0 if value is None else value


class WeaponStatsBucket(BaseModel):
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)

    kills: float = 0
    damage_player: float = 0
    head_shots: float = 0
    groggies: float = 0
    most_defeats_in_a_game: float = 0

    @field_validator("*", mode="before")
    @classmethod
    def _none_as_zero(cls, value: object) -> object:
        return 0 if value is None else value


class WeaponSummary(BaseModel):
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)

    xp_total: Optional[float] = Field(None, alias="XPTotal")
    level_current: Optional[int] = None
    stats_total: Optional[WeaponStatsBucket] = None
    official_stats_total: Optional[WeaponStatsBucket] = None
    competitive_stats_total: Optional[WeaponStatsBucket] = None

    def buckets(self) -> List[WeaponStatsBucket]:
        return [
            bucket
            for bucket in (
                self.stats_total,
                self.official_stats_total,
                self.competitive_stats_total,
            )
            if bucket is not None
        ]


# Normalized match.


class Position(BaseModel):
    x: float
    y: float


class MatchAsset(CamelModel):
    id: Optional[str] = None
    type: str = "asset"
    url: str = ""


class NormalizedParticipant(CamelModel):
    id: Optional[str] = None
    name: Optional[str] = None
    kills: int = 0
    damage: int = 0
    assists: int = 0
    revives: int = 0
    rank: Optional[int] = None
    team_id: Optional[int] = None
    platform: Optional[str] = None
    player_id: Optional[str] = None


class NormalizedMatch(CamelModel):
    id: Optional[str] = None
    map: Optional[str] = None
    created_at: Optional[str] = None
    duration: float = 0
    game_mode: Optional[str] = None
    player_count: int = 0
    participants: List[NormalizedParticipant] = Field(default_factory=list)
    assets: List[MatchAsset] = Field(default_factory=list)
    telemetry_url: str = ""


class PlayerMatchSummary(CamelModel):
    id: Optional[str] = None
    map: Optional[str] = None
    game_mode: Optional[str] = None
    created_at: Optional[str] = None
    placement: Optional[int] = None
    kills: int = 0
    damage: int = 0
    duration: int = 0
    assists: int = 0
    revives: int = 0


# Telemetry projection.


class PositionSample(CamelModel):
    player_name: str
    team_id: Optional[int] = None
    position: Position
    timestamp: Optional[float] = None


class AttackSample(CamelModel):
    attacker_name: str
    attacker_team_id: int
    attacker_position: Position
    weapon_name: str = "Unknown"
    timestamp: Optional[float] = None


class KillSample(CamelModel):
    killer_name: str
    killer_team_id: int
    killer_position: Position
    victim_name: str
    victim_team_id: int
    victim_position: Position
    weapon: str = "Unknown"
    distance: float = 0
    timestamp: Optional[float] = None


class ZoneSample(CamelModel):
    position: Position
    radius: Optional[float] = None
    timestamp: Optional[float] = None


class TelemetryProjection(CamelModel):
    player_positions: List[PositionSample] = Field(default_factory=list)
    player_attacks: List[AttackSample] = Field(default_factory=list)
    player_kills: List[KillSample] = Field(default_factory=list)
    play_zones: List[ZoneSample] = Field(default_factory=list)
    red_zones: List[ZoneSample] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not any(
            (
                self.player_positions,
                self.player_attacks,
                self.player_kills,
                self.play_zones,
                self.red_zones,
            )
        )


class MatchTelemetry(TelemetryProjection):
    map: str = "Unknown"
    duration: float = 1800


# Player statistics.


class WeaponStat(CamelModel):
    id: str
    name: str
    xp: float = 0
    level_current: int = 0
    kills: int = 0
    most_defeats_in_a_game: int = 0
    damage_player: float = 0
    headshots: int = 0
    groggies: int = 0
    usage: int = 0


class MapStat(CamelModel):
    name: str
    count: int
    percentage: str
    matches: int
    kd: Union[int, str]
    wins: int
    avg_rank: Union[int, str]


class PlayerStatsAggregate(CamelModel):
    kills: int = 0
    wins: int = 0
    total_matches: int = 0
    damage_dealt: int = 0
    headshot_kills: int = 0
    longest_kill: str = "0m"
    top10s: int = Field(0, alias="top10s")
    kd: str = "0"
    win_rate: str = "0%"
    top10_rate: str = Field("0%", alias="top10Rate")
    avg_damage: int = 0
    headshot_rate: str = "0%"
    weapons: List[WeaponStat] = Field(default_factory=list)
    maps: List[MapStat] = Field(default_factory=list)
    level: str = ""
    last_active: str = ""
    season: str = "All Time"
    game_mode: str = "Squad FPP"
    most_played: str = ""


class PlayerProfile(CamelModel):
    id: str
    name: str
    platform: str
    stats: PlayerStatsAggregate
    matches: List[str] = Field(default_factory=list)


# HTTP payloads.


class SearchRequest(CamelModel):
    player_name: str = Field(..., min_length=1)
    platform: str = Field(..., min_length=1)
    region: str = Field(..., min_length=1)


class FavoriteRequest(CamelModel):
    player_name: str = Field(..., min_length=1)
    favorite: bool
    platform: str = "steam"


class SearchHistoryEntry(CamelModel):
    player_name: str
    platform: str
    timestamp: str

