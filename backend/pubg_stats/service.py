from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Dict, List, Optional

from pydantic import ValidationError

from pubg_stats.cache_store import CacheStore
from pubg_stats.match_normalizer import find_telemetry_url, normalize_match
from pubg_stats.models import (
    MatchTelemetry,
    NormalizedMatch,
    NormalizedParticipant,
    PlayerMatchSummary,
    PlayerProfile,
)
from pubg_stats.payload import as_dict, dig
from pubg_stats.player_stats import PlayerStatsAggregator
from pubg_stats.pubg_client import AsyncPubgClient, PubgAPIError, PubgNotFoundError
from pubg_stats.telemetry import TelemetryFormatError, reconstruct_telemetry

logger = logging.getLogger(__name__)

UNKNOWN_MAP = "Unknown"
DEFAULT_MATCH_DURATION = 1800


class PlayerNotFoundError(LookupError):
    pass


class MatchNotFoundError(LookupError):
    pass


def recent_match_ids(player: Dict, limit: int) -> List[str]:
    references = dig(player, "relationships", "matches", "data")
    if not isinstance(references, list):
        return []
    match_ids = [
        str(reference["id"])
        for reference in references
        if isinstance(reference, dict) and reference.get("id")
    ]
    return match_ids[:limit]


def find_participant(
    match: NormalizedMatch,
    player_id: Optional[str] = None,
    player_name: Optional[str] = None,
) -> Optional[NormalizedParticipant]:
    name_lower = player_name.strip().lower() if player_name else None
    for participant in match.participants:
        if player_id and participant.player_id == player_id:
            return participant
        if name_lower and (participant.name or "").lower() == name_lower:
            return participant
    return None


class StatsService:
    """Sequences cache lookups, provider calls and the transformation pipeline."""

    def __init__(
        self,
        client: AsyncPubgClient,
        cache: CacheStore,
        recent_match_limit: int = 10,
        player_matches_limit: int = 5,
        match_fetch_concurrency: int = 8,
    ) -> None:
        self.client = client
        self.cache = cache
        self.recent_match_limit = recent_match_limit
        self.player_matches_limit = player_matches_limit
        self.match_fetch_concurrency = max(1, match_fetch_concurrency)

    async def resolve_player(self, platform: str, player_name: str) -> Dict:
        try:
            payload = await self.client.get_player_by_name(platform, player_name)
        except PubgNotFoundError as exc:
            raise PlayerNotFoundError(f"Player not found: {player_name}") from exc

        players = as_dict(payload).get("data")
        if not isinstance(players, list) or not players:
            raise PlayerNotFoundError(f"Player not found: {player_name}")
        player = as_dict(players[0])
        if not player.get("id"):
            raise PlayerNotFoundError(f"Player not found: {player_name}")
        return player

    async def fetch_player(self, platform: str, player_name: str) -> PlayerProfile:
        total_start = time.perf_counter()

        t0 = time.perf_counter()
        player = await self.resolve_player(platform, player_name)
        player_id = str(player["id"])
        logger.info(f"[TIMING] resolve_player: {time.perf_counter() - t0:.2f}s")

        self.cache.add_search(player_name, platform)

        cached = self.cache.get_player(player_id)
        if cached is not None:
            try:
                profile = PlayerProfile.model_validate(cached)
                logger.info(f"[CACHE] player hit for {player_name} ({player_id})")
                return profile
            except ValidationError as exc:
                logger.warning(f"Discarding cached player {player_id}: {exc}")

        t0 = time.perf_counter()
        lifetime_stats = await self.client.get_lifetime_stats(platform, player_id)
        logger.info(f"[TIMING] fetch_lifetime_stats: {time.perf_counter() - t0:.2f}s")

        match_ids = recent_match_ids(player, self.recent_match_limit)

        t0 = time.perf_counter()
        weapon_mastery, survival_mastery, match_details = await asyncio.gather(
            self._optional(
                self.client.get_weapon_mastery(platform, player_id),
                f"weapon mastery for {player_name}",
            ),
            self._optional(
                self.client.get_survival_mastery(platform, player_id),
                f"survival mastery for {player_name}",
            ),
            self._fetch_match_details(platform, player_id, match_ids),
        )
        logger.info(
            f"[TIMING] fetch_enrichment: {time.perf_counter() - t0:.2f}s "
            f"({len(match_details)}/{len(match_ids)} matches)"
        )

        t0 = time.perf_counter()
        stats = PlayerStatsAggregator(
            lifetime_stats,
            weapon_mastery=weapon_mastery,
            survival_mastery=survival_mastery,
            match_details=match_details,
        ).generate_summary()
        logger.info(f"[TIMING] aggregate_stats: {time.perf_counter() - t0:.2f}s")

        profile = PlayerProfile(
            id=player_id,
            name=player_name,
            platform=platform,
            stats=stats,
            matches=match_ids,
        )
        self.cache.save_player(
            player_name, player_id, platform, profile.model_dump(by_alias=True)
        )
        logger.info(f"[TIMING] fetch_player TOTAL: {time.perf_counter() - total_start:.2f}s")
        return profile

    async def fetch_player_matches(
        self, platform: str, player_name: str
    ) -> List[PlayerMatchSummary]:
        profile = await self.fetch_player(platform, player_name)
        match_ids = profile.matches[: self.player_matches_limit]
        matches = await self._gather_matches(platform, match_ids)

        summaries: List[PlayerMatchSummary] = []
        for match in matches:
            if match is None:
                continue
            participant = find_participant(match, player_name=player_name)
            if participant is None:
                continue
            summaries.append(
                PlayerMatchSummary(
                    id=match.id,
                    map=match.map,
                    game_mode=match.game_mode,
                    created_at=match.created_at,
                    placement=participant.rank,
                    kills=participant.kills,
                    damage=participant.damage,
                    duration=int(match.duration),
                    assists=participant.assists,
                    revives=participant.revives,
                )
            )
        return summaries

    async def fetch_weapon_mastery(self, platform: str, player_name: str) -> Dict:
        player = await self.resolve_player(platform, player_name)
        return await self.client.get_weapon_mastery(platform, str(player["id"]))

    async def fetch_survival_mastery(self, platform: str, player_name: str) -> Dict:
        player = await self.resolve_player(platform, player_name)
        return await self.client.get_survival_mastery(platform, str(player["id"]))

    async def fetch_match(self, platform: str, match_id: str) -> NormalizedMatch:
        cached = self.cache.get_match(match_id)
        if cached is not None:
            try:
                return NormalizedMatch.model_validate(cached)
            except ValidationError as exc:
                logger.warning(f"Discarding cached match {match_id}: {exc}")

        try:
            payload = await self.client.get_match(platform, match_id)
        except PubgNotFoundError as exc:
            raise MatchNotFoundError(f"Match not found: {match_id}") from exc
        if not as_dict(as_dict(payload).get("data")):
            raise MatchNotFoundError(f"Match not found: {match_id}")

        match = normalize_match(payload)
        self.cache.save_match(match_id, match.model_dump(by_alias=True))
        return match

    async def fetch_match_telemetry(self, platform: str, match_id: str) -> MatchTelemetry:
        match = await self.fetch_match(platform, match_id)
        map_name = match.map or UNKNOWN_MAP
        duration = match.duration or DEFAULT_MATCH_DURATION

        telemetry_url = match.telemetry_url or find_telemetry_url(match.assets)
        if not telemetry_url:
            logger.warning(f"No telemetry URL found for match {match_id}")
            return MatchTelemetry(map=map_name, duration=duration)

        t0 = time.perf_counter()
        try:
            events = await self.client.get_telemetry(telemetry_url)
        except PubgAPIError as exc:
            logger.warning(f"Error fetching telemetry for match {match_id}: {exc}")
            return MatchTelemetry(map=map_name, duration=duration)
        logger.info(f"[TIMING] fetch_telemetry: {time.perf_counter() - t0:.2f}s")

        t0 = time.perf_counter()
        try:
            projection = reconstruct_telemetry(events)
        except TelemetryFormatError as exc:
            logger.warning(f"Match {match_id}: {exc}")
            return MatchTelemetry(map=map_name, duration=duration)
        except Exception:
            logger.exception(f"Error processing telemetry for match {match_id}")
            return MatchTelemetry(map=map_name, duration=duration)
        logger.info(f"[TIMING] reconstruct_telemetry: {time.perf_counter() - t0:.2f}s")

        return MatchTelemetry(**dict(projection), map=map_name, duration=duration)

    async def _fetch_match_details(
        self, platform: str, player_id: str, match_ids: List[str]
    ) -> List[Dict]:
        matches = await self._gather_matches(platform, match_ids)
        details: List[Dict] = []
        for match in matches:
            if match is None:
                continue
            participant = find_participant(match, player_id=player_id)
            details.append(
                {
                    "map": match.map,
                    "createdAt": match.created_at,
                    "stats": (
                        {
                            "kills": participant.kills,
                            "winPlace": participant.rank,
                            "damageDealt": participant.damage,
                        }
                        if participant is not None
                        else None
                    ),
                }
            )
        return details

    async def _gather_matches(
        self, platform: str, match_ids: List[str]
    ) -> List[Optional[NormalizedMatch]]:
        semaphore = asyncio.Semaphore(self.match_fetch_concurrency)

        async def _fetch_one(match_id: str) -> Optional[NormalizedMatch]:
            async with semaphore:
                try:
                    return await self.fetch_match(platform, match_id)
                except (PubgAPIError, MatchNotFoundError) as exc:
                    logger.warning(f"Error fetching match {match_id}: {exc}")
                    return None

        return list(await asyncio.gather(*(_fetch_one(match_id) for match_id in match_ids)))

    @staticmethod
    async def _optional(call: Awaitable[Any], label: str) -> Optional[Any]:
        try:
            return await call
        except PubgAPIError as exc:
            logger.warning(f"Error fetching {label}: {exc}")
            return None
