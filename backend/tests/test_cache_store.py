from __future__ import annotations

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from pubg_stats.cache_store import CacheStore


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_player_entry_is_served_until_expiry(tmp_path) -> None:
    clock = FakeClock()
    store = CacheStore(cache_dir=tmp_path, ttl_seconds=60, clock=clock)

    entry = store.save_player("Shroud", "account.abc", "steam", {"id": "account.abc"})

    assert entry["expires_at"] == clock.now + 60
    assert store.get_player("account.abc") == {"id": "account.abc"}

    clock.now += 59
    assert store.get_player("account.abc") == {"id": "account.abc"}

    clock.now += 1
    assert store.get_player("account.abc") is None


def test_expiry_is_fixed_at_write_time(tmp_path) -> None:
    clock = FakeClock()
    store = CacheStore(cache_dir=tmp_path, ttl_seconds=100, clock=clock)
    store.save_match("match-1", {"id": "match-1"})

    clock.now += 90
    assert store.get_match("match-1") == {"id": "match-1"}

    clock.now += 20
    assert store.get_match("match-1") is None


def test_player_and_match_keys_do_not_collide(tmp_path) -> None:
    store = CacheStore(cache_dir=tmp_path, clock=FakeClock())
    store.save_match("same-id", {"kind": "match"})

    assert store.get_player("same-id") is None
    assert store.get_match("same-id") == {"kind": "match"}


def test_corrupt_cache_file_is_a_miss(tmp_path) -> None:
    store = CacheStore(cache_dir=tmp_path, clock=FakeClock())
    store.save_match("match-2", {"id": "match-2"})
    cache_file = next(tmp_path.glob("match_*.json"))
    cache_file.write_text("{not json", encoding="utf-8")

    assert store.get_match("match-2") is None


def test_search_history_is_newest_first_and_limited(tmp_path) -> None:
    clock = FakeClock()
    store = CacheStore(cache_dir=tmp_path, clock=clock, history_size=3)
    for name in ["a", "b", "c", "d"]:
        store.add_search(name, "steam")
        clock.now += 1

    recent = store.recent_searches(limit=10)

    assert [entry["playerName"] for entry in recent] == ["d", "c", "b"]
    assert store.recent_searches(limit=1)[0]["playerName"] == "d"
    assert recent[0]["timestamp"].startswith("2023-11-14T")


def test_favorites_round_trip_and_keep_region(tmp_path) -> None:
    store = CacheStore(cache_dir=tmp_path, clock=FakeClock())

    assert store.is_favorite("Shroud", "steam") is False

    store.save_preferences("Shroud", "steam", "pc-eu")
    store.set_favorite("shroud", "STEAM", True)

    assert store.is_favorite("Shroud", "steam") is True
    assert store.get_preferences("Shroud", "steam")["region"] == "pc-eu"

    store.set_favorite("Shroud", "steam", False)
    assert store.is_favorite("Shroud", "steam") is False


def test_set_favorite_without_preferences_uses_default_region(tmp_path) -> None:
    store = CacheStore(cache_dir=tmp_path, clock=FakeClock())

    record = store.set_favorite("Chocotaco", "steam", True)

    assert record["region"] == "pc-na"
    assert record["favorites"] is True
