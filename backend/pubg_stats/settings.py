from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional


def _bool_env(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() == "true"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _list_env(name: str, default: str = "") -> List[str]:
    raw = os.getenv(name, default)
    return [value.strip() for value in raw.split(",") if value.strip()]


def _path_env(name: str) -> Optional[Path]:
    value = os.getenv(name)
    if not value:
        return None
    return Path(value)


@dataclass(frozen=True)
class Settings:
    pubg_api_key: str
    pubg_base_url: str
    debug_mode: bool
    default_platform: str
    cache_dir: Optional[Path]
    cache_ttl_seconds: int
    recent_match_limit: int
    player_matches_limit: int
    match_fetch_concurrency: int
    request_timeout: int
    telemetry_timeout: int
    search_history_limit: int
    cors_origins: List[str]

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            pubg_api_key=os.getenv("PUBG_API_KEY", "").strip(),
            pubg_base_url=os.getenv(
                "PUBG_API_BASE_URL", "https://api.pubg.com/shards"
            ).strip(),
            debug_mode=_bool_env("DEBUG_MODE"),
            default_platform=os.getenv("PUBG_DEFAULT_PLATFORM", "steam").strip().lower(),
            cache_dir=_path_env("CACHE_DIR"),
            cache_ttl_seconds=_int_env("CACHE_TTL_SECONDS", 60 * 60),
            recent_match_limit=_int_env("RECENT_MATCH_LIMIT", 10),
            player_matches_limit=_int_env("PLAYER_MATCHES_LIMIT", 5),
            match_fetch_concurrency=_int_env("MATCH_FETCH_CONCURRENCY", 8),
            request_timeout=_int_env("PUBG_REQUEST_TIMEOUT", 30),
            telemetry_timeout=_int_env("PUBG_TELEMETRY_TIMEOUT", 60),
            search_history_limit=_int_env("SEARCH_HISTORY_LIMIT", 10),
            cors_origins=_list_env(
                "CORS_ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173"
            ),
        )
