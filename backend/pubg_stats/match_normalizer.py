from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from pubg_stats.models import MatchAsset, NormalizedMatch, NormalizedParticipant
from pubg_stats.payload import as_dict, as_int, as_number, as_str, dig, round_half_up

logger = logging.getLogger(__name__)

TELEMETRY_MARKER = "telemetry"


def normalize_match(payload: Any) -> NormalizedMatch:
    """Flatten a provider match document into a match record with per-player rows.

    Never raises on a malformed inclusion list: missing pieces degrade to empty lists.
    """
    document = as_dict(payload)
    match = as_dict(document.get("data"))
    attributes = as_dict(match.get("attributes"))
    participants, rosters, assets = _partition_included(document.get("included"))

    team_index = build_roster_index(rosters)
    platform = as_str(attributes.get("shardId"))

    normalized_participants = [
        _normalize_participant(participant, team_index, platform)
        for participant in participants
    ]
    match_assets = [_normalize_asset(asset) for asset in assets]

    return NormalizedMatch(
        id=as_str(match.get("id")),
        map=as_str(attributes.get("mapName")),
        created_at=as_str(attributes.get("createdAt")),
        duration=as_number(attributes.get("duration")),
        game_mode=as_str(attributes.get("gameMode")),
        player_count=len(normalized_participants),
        participants=normalized_participants,
        assets=match_assets,
        telemetry_url=find_telemetry_url(match_assets),
    )


def build_roster_index(rosters: List[Dict]) -> Dict[str, Optional[int]]:
    """Map participant id -> owning roster's team id, built once per document."""
    index: Dict[str, Optional[int]] = {}
    for roster in rosters:
        team_id = as_int(dig(roster, "attributes", "stats", "teamId"))
        references = dig(roster, "relationships", "participants", "data")
        if not isinstance(references, list):
            continue
        for reference in references:
            participant_id = as_str(as_dict(reference).get("id"))
            if participant_id and participant_id not in index:
                index[participant_id] = team_id
    return index


def find_telemetry_url(assets: List[MatchAsset]) -> str:
    for asset in assets:
        if asset.url and TELEMETRY_MARKER in asset.url:
            return asset.url
    return ""


def _partition_included(included: Any) -> Tuple[List[Dict], List[Dict], List[Dict]]:
    participants: List[Dict] = []
    rosters: List[Dict] = []
    assets: List[Dict] = []
    if not isinstance(included, list):
        if included is not None:
            logger.warning("Match document has a non-list 'included' section; ignoring it")
        return participants, rosters, assets

    buckets = {"participant": participants, "roster": rosters, "asset": assets}
    for item in included:
        if not isinstance(item, dict):
            continue
        bucket = buckets.get(item.get("type"))
        if bucket is not None:
            bucket.append(item)
    return participants, rosters, assets


def _normalize_participant(
    participant: Dict,
    team_index: Dict[str, Optional[int]],
    platform: Optional[str],
) -> NormalizedParticipant:
    participant_id = as_str(participant.get("id"))
    stats = as_dict(dig(participant, "attributes", "stats"))
    return NormalizedParticipant(
        id=participant_id,
        name=as_str(stats.get("name")),
        kills=as_int(stats.get("kills")) or 0,
        damage=round_half_up(as_number(stats.get("damageDealt"))),
        assists=as_int(stats.get("assists")) or 0,
        revives=as_int(stats.get("revives")) or 0,
        rank=as_int(stats.get("winPlace")),
        team_id=team_index.get(participant_id) if participant_id else None,
        platform=platform,
        player_id=as_str(stats.get("playerId")),
    )


def _normalize_asset(asset: Dict) -> MatchAsset:
    attributes = as_dict(asset.get("attributes"))
    url = attributes.get("URL") or attributes.get("url") or ""
    return MatchAsset(
        id=as_str(asset.get("id")),
        type=str(asset.get("type") or "asset"),
        url=url if isinstance(url, str) else "",
    )
