from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from functools import reduce
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from pydantic import ValidationError

from pubg_stats.models import (
    GameModeStats,
    MapStat,
    PlayerStatsAggregate,
    WeaponStat,
    WeaponSummary,
)
from pubg_stats.payload import as_dict, as_int, as_str, dig, round_half_up

logger = logging.getLogger(__name__)

# Display names per https://github.com/pubg/api-assets
MAP_NAMES = {
    "Baltic_Main": "Erangel (Remastered)",
    "Chimera_Main": "Paramo",
    "Desert_Main": "Miramar",
    "DihorOtok_Main": "Vikendi",
    "Erangel_Main": "Erangel",
    "Heaven_Main": "Haven",
    "Kiki_Main": "Deston",
    "Range_Main": "Camp Jackal",
    "Savage_Main": "Sanhok",
    "Summerland_Main": "Karakin",
    "Tiger_Main": "Taego",
    "Neon_Main": "Rondo",
}

GAME_MODE_LABELS = (
    ("solo", "Solo"),
    ("duo", "Duo"),
    ("squad", "Squad"),
    ("-fpp", " FPP"),
    ("fpp", " FPP"),
)
DEFAULT_GAME_MODE = "Squad FPP"
WEAPON_ID_PREFIX = "Item_Weapon_"
TOP_WEAPON_COUNT = 5


@dataclass(frozen=True)
class LifetimeTotals:
    kills: float = 0
    losses: float = 0
    wins: float = 0
    damage_dealt: float = 0
    headshot_kills: float = 0
    longest_kill: float = 0
    total_games: float = 0
    top10s: float = 0
    most_played: str = ""
    most_played_rounds: float = 0

    def add(self, mode: str, stats: GameModeStats) -> "LifetimeTotals":
        totals = replace(
            self,
            kills=self.kills + stats.kills,
            losses=self.losses + stats.losses,
            wins=self.wins + stats.wins,
            damage_dealt=self.damage_dealt + stats.damage_dealt,
            headshot_kills=self.headshot_kills + stats.headshot_kills,
            longest_kill=max(self.longest_kill, stats.longest_kill),
            total_games=self.total_games + stats.rounds_played,
            top10s=self.top10s + stats.top10s,
        )
        if stats.rounds_played > self.most_played_rounds:
            totals = replace(
                totals, most_played=mode, most_played_rounds=stats.rounds_played
            )
        return totals


def fold_game_modes(game_mode_stats: Any) -> LifetimeTotals:
    entries: List[Tuple[str, GameModeStats]] = []
    for mode, raw in as_dict(game_mode_stats).items():
        try:
            entries.append((str(mode), GameModeStats.model_validate(raw or {})))
        except ValidationError as exc:
            logger.warning(f"Skipping unreadable stats for game mode {mode}: {exc}")
    return reduce(lambda totals, entry: totals.add(*entry), entries, LifetimeTotals())


def kd_ratio(kills: float, total_games: float, wins: float) -> str:
    if total_games <= 0:
        return "0"
    # A player with no recorded losses would divide by zero; count them as one loss.
    losses = max(total_games - wins, 1)
    return f"{kills / losses:.2f}"


def percent(numerator: float, denominator: float) -> str:
    if denominator <= 0:
        return "0%"
    return f"{numerator / denominator * 100:.1f}%"


def format_game_mode(mode: Optional[str]) -> str:
    if not mode:
        return DEFAULT_GAME_MODE
    label = mode
    for raw, pretty in GAME_MODE_LABELS:
        label = label.replace(raw, pretty, 1)
    return label


def display_map_name(map_code: Optional[str]) -> str:
    if not map_code:
        return "Unknown"
    return MAP_NAMES.get(map_code, map_code)


def display_weapon_name(weapon_id: str) -> str:
    return weapon_id.replace(WEAPON_ID_PREFIX, "", 1)


def format_locale_date(value: datetime) -> str:
    return f"{value.month}/{value.day}/{value.year}"


class PlayerStatsAggregator:
    """Build the player statistics view from lifetime stats plus optional enrichments.

    Map statistics come only from ``match_details``, the handful of recent matches the
    caller fetched, not from the player's full history.
    """

    def __init__(
        self,
        lifetime_stats: Any,
        weapon_mastery: Optional[Any] = None,
        survival_mastery: Optional[Any] = None,
        match_details: Optional[List[Dict]] = None,
        is_lifetime: bool = True,
    ) -> None:
        self.lifetime_stats = lifetime_stats
        self.weapon_mastery = weapon_mastery
        self.survival_mastery = survival_mastery
        self.match_details = match_details or []
        self.is_lifetime = is_lifetime
        self.totals = fold_game_modes(
            dig(lifetime_stats, "data", "attributes", "gameModeStats")
        )

    def get_weapon_stats(self) -> List[WeaponStat]:
        summaries = dig(self.weapon_mastery, "data", "attributes", "weaponSummaries")
        if not isinstance(summaries, dict):
            return []

        weapons: List[WeaponStat] = []
        for weapon_id, raw in summaries.items():
            if not isinstance(raw, dict):
                continue
            try:
                summary = WeaponSummary.model_validate(raw)
            except ValidationError as exc:
                logger.warning(f"Skipping unreadable weapon summary {weapon_id}: {exc}")
                continue

            buckets = summary.buckets()
            kills = sum(bucket.kills for bucket in buckets)
            usage = (
                round_half_up(kills / self.totals.kills * 100)
                if self.totals.kills > 0
                else 0
            )
            weapons.append(
                WeaponStat(
                    id=str(weapon_id),
                    name=display_weapon_name(str(weapon_id)),
                    xp=summary.xp_total or 0,
                    level_current=summary.level_current or 0,
                    kills=int(kills),
                    most_defeats_in_a_game=int(
                        max((b.most_defeats_in_a_game for b in buckets), default=0)
                    ),
                    damage_player=sum(bucket.damage_player for bucket in buckets),
                    headshots=int(sum(bucket.head_shots for bucket in buckets)),
                    groggies=int(sum(bucket.groggies for bucket in buckets)),
                    usage=usage,
                )
            )

        weapons.sort(key=lambda weapon: weapon.kills, reverse=True)
        return weapons[:TOP_WEAPON_COUNT]

    def get_survival_summary(self) -> Tuple[str, str]:
        attributes = as_dict(dig(self.survival_mastery, "data", "attributes"))
        level = attributes.get("level")
        player_level = str(level) if level else ""

        last_active = ""
        last_match_date = attributes.get("lastMatchDate")
        if last_match_date:
            try:
                parsed = datetime.fromisoformat(str(last_match_date).replace("Z", "+00:00"))
                last_active = format_locale_date(parsed)
            except ValueError as exc:
                logger.warning(f"Error parsing last active date {last_match_date!r}: {exc}")
        return player_level, last_active

    def get_map_stats(self) -> List[MapStat]:
        rows: List[Dict] = []
        for detail in self.match_details:
            stats = as_dict(as_dict(detail).get("stats"))
            win_place = as_int(stats.get("winPlace"))
            if win_place is None:
                continue
            rows.append(
                {
                    "map_name": display_map_name(as_str(as_dict(detail).get("map"))),
                    "kills": as_int(stats.get("kills")) or 0,
                    "won": win_place == 1,
                    "rank": win_place,
                }
            )
        if not rows:
            return []

        df = pd.DataFrame(rows)
        grouped = (
            df.groupby("map_name", sort=False)
            .agg(
                appearances=("kills", "size"),
                kills=("kills", "sum"),
                wins=("won", "sum"),
                total_rank=("rank", "sum"),
            )
            .reset_index()
            .sort_values("appearances", ascending=False, kind="stable")
        )

        sample_size = len(rows)
        maps: List[MapStat] = []
        for record in grouped.to_dict("records"):
            appearances = int(record["appearances"])
            kills = int(record["kills"])
            wins = int(record["wins"])
            deaths = appearances - wins
            maps.append(
                MapStat(
                    name=str(record["map_name"]),
                    count=appearances,
                    percentage=percent(appearances, sample_size),
                    matches=appearances,
                    kd=f"{kills / deaths:.2f}" if deaths > 0 else kills,
                    wins=wins,
                    avg_rank=f"{int(record['total_rank']) / appearances:.2f}",
                )
            )
        return maps

    def generate_summary(self) -> PlayerStatsAggregate:
        totals = self.totals
        level, last_active = self.get_survival_summary()
        return PlayerStatsAggregate(
            kills=int(totals.kills),
            wins=int(totals.wins),
            total_matches=int(totals.total_games),
            damage_dealt=round_half_up(totals.damage_dealt),
            headshot_kills=int(totals.headshot_kills),
            longest_kill=f"{round_half_up(totals.longest_kill)}m",
            top10s=int(totals.top10s),
            kd=kd_ratio(totals.kills, totals.total_games, totals.wins),
            win_rate=percent(totals.wins, totals.total_games),
            top10_rate=percent(totals.top10s, totals.total_games),
            avg_damage=(
                round_half_up(totals.damage_dealt / totals.total_games)
                if totals.total_games > 0
                else 0
            ),
            headshot_rate=percent(totals.headshot_kills, totals.kills),
            weapons=self.get_weapon_stats(),
            maps=self.get_map_stats(),
            level=level,
            last_active=last_active,
            season="All Time" if self.is_lifetime else "Current Season",
            game_mode=format_game_mode(totals.most_played),
            most_played=totals.most_played,
        )


def aggregate_player_stats(
    lifetime_stats: Any,
    weapon_mastery: Optional[Any] = None,
    survival_mastery: Optional[Any] = None,
    match_details: Optional[List[Dict]] = None,
) -> PlayerStatsAggregate:
    return PlayerStatsAggregator(
        lifetime_stats,
        weapon_mastery=weapon_mastery,
        survival_mastery=survival_mastery,
        match_details=match_details,
    ).generate_summary()
