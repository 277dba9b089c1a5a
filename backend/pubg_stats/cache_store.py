from __future__ import annotations

import json
import logging
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

PLAYER_KIND = "player"
MATCH_KIND = "match"
DEFAULT_REGION = "pc-na"
SEARCH_HISTORY_FILE = "search_history.json"
PREFERENCES_FILE = "preferences.json"


class CacheStore:
    """Read-through JSON file cache with a fixed absolute expiry per entry.

    Also keeps the small search history and favorites records the dashboard shows.
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        ttl_seconds: int = 60 * 60,
        clock: Callable[[], float] = time.time,
        history_size: int = 100,
    ) -> None:
        self.cache_dir = cache_dir or (
            Path(__file__).resolve().parents[1] / "data" / "cache"
        )
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.history_size = history_size

    # Player and match payloads

    def get_player(self, player_id: str) -> Optional[Dict]:
        return self._load_entry(PLAYER_KIND, player_id)

    def save_player(
        self, player_name: str, player_id: str, platform: str, data: Dict
    ) -> Dict:
        return self._save_entry(
            PLAYER_KIND,
            player_id,
            data,
            player_name=player_name,
            platform=platform,
        )

    def get_match(self, match_id: str) -> Optional[Dict]:
        return self._load_entry(MATCH_KIND, match_id)

    def save_match(self, match_id: str, data: Dict) -> Dict:
        return self._save_entry(MATCH_KIND, match_id, data)

    def _entry_path(self, kind: str, key: str) -> Path:
        return self.cache_dir / f"{kind}_{self._slugify(key)}.json"

    def _load_entry(self, kind: str, key: str) -> Optional[Dict]:
        cache_file = self._entry_path(kind, key)
        entry = self._read_json(cache_file)
        if not isinstance(entry, dict) or entry.get("key") != key:
            return None
        expires_at = entry.get("expires_at")
        if not isinstance(expires_at, (int, float)) or expires_at <= self.clock():
            return None
        return entry.get("data")

    def _save_entry(self, kind: str, key: str, data: Dict, **extra: Any) -> Dict:
        now = self.clock()
        entry = {
            "key": key,
            "kind": kind,
            "created_at": now,
            "expires_at": now + self.ttl_seconds,
            "data": data,
            **extra,
        }
        self._write_json(self._entry_path(kind, key), entry)
        return entry

    # Search history

    def add_search(self, player_name: str, platform: str) -> Dict:
        entry = {
            "playerName": player_name,
            "platform": platform,
            "timestamp": self._now_iso(),
        }
        history = self._read_list(SEARCH_HISTORY_FILE)
        history.append(entry)
        self._write_json(self.cache_dir / SEARCH_HISTORY_FILE, history[-self.history_size:])
        return entry

    def recent_searches(self, limit: int = 10) -> List[Dict]:
        history = self._read_list(SEARCH_HISTORY_FILE)
        return list(reversed(history))[:limit]

    # Favorites / preferences

    def get_preferences(self, player_name: str, platform: str) -> Optional[Dict]:
        preferences = self._read_dict(PREFERENCES_FILE)
        return preferences.get(self._preference_key(player_name, platform))

    def save_preferences(
        self,
        player_name: str,
        platform: str,
        region: str,
        favorite: Optional[bool] = None,
    ) -> Dict:
        preferences = self._read_dict(PREFERENCES_FILE)
        key = self._preference_key(player_name, platform)
        record = preferences.get(key) or {
            "playerName": player_name,
            "platform": platform,
            "favorites": False,
        }
        record["region"] = region
        if favorite is not None:
            record["favorites"] = favorite
        record["lastSearched"] = self._now_iso()
        preferences[key] = record
        self._write_json(self.cache_dir / PREFERENCES_FILE, preferences)
        return record

    def set_favorite(self, player_name: str, platform: str, favorite: bool) -> Dict:
        existing = self.get_preferences(player_name, platform) or {}
        return self.save_preferences(
            player_name,
            platform,
            existing.get("region") or DEFAULT_REGION,
            favorite=favorite,
        )

    def is_favorite(self, player_name: str, platform: str) -> bool:
        record = self.get_preferences(player_name, platform) or {}
        return bool(record.get("favorites"))

    # File helpers

    def _read_list(self, filename: str) -> List[Dict]:
        payload = self._read_json(self.cache_dir / filename)
        return payload if isinstance(payload, list) else []

    def _read_dict(self, filename: str) -> Dict[str, Dict]:
        payload = self._read_json(self.cache_dir / filename)
        return payload if isinstance(payload, dict) else {}

    @staticmethod
    def _read_json(path: Path) -> Any:
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning(f"Ignoring unreadable cache file {path.name}: {exc}")
            return None

    @staticmethod
    def _write_json(path: Path, payload: Any) -> None:
        tmp_path = path.with_suffix(f".{os.getpid()}.tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle)
        os.replace(tmp_path, path)

    def _now_iso(self) -> str:
        return datetime.fromtimestamp(self.clock(), tz=timezone.utc).isoformat()

    @staticmethod
    def _preference_key(player_name: str, platform: str) -> str:
        return f"{platform.strip().lower()}:{player_name.strip().lower()}"

    @staticmethod
    def _slugify(value: str) -> str:
        cleaned = "".join(ch.lower() if ch.isalnum() else "_" for ch in value.strip())
        return cleaned.strip("_")
