from __future__ import annotations

import argparse
import json
import os
import sys
import time
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from pubg_stats.env import load_env  # noqa: E402
from pubg_stats.match_normalizer import normalize_match  # noqa: E402
from pubg_stats.pubg_client import PubgAPIError, PubgRestClient  # noqa: E402
from pubg_stats.settings import Settings  # noqa: E402
from pubg_stats.telemetry import TelemetryFormatError, reconstruct_telemetry  # noqa: E402


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fetch a match and write its normalized record and telemetry projection."
    )
    parser.add_argument("match_id", help="PUBG match id.")
    parser.add_argument(
        "--platform",
        default=os.getenv("PUBG_DEFAULT_PLATFORM", "steam"),
        help="Platform shard (e.g., steam, kakao, psn).",
    )
    parser.add_argument(
        "--output-dir",
        default=str(Path(__file__).resolve().parents[1] / "data" / "telemetry"),
        help="Directory to write <match_id>_match.json and <match_id>_telemetry.json.",
    )
    parser.add_argument(
        "--raw",
        action="store_true",
        help="Also write the raw telemetry event stream.",
    )
    return parser.parse_args()


def _write_json(path: Path, payload: object) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)


def main() -> int:
    load_env()
    args = _parse_args()
    settings = Settings.from_env()

    client = PubgRestClient(
        api_key=settings.pubg_api_key,
        base_url=settings.pubg_base_url,
        timeout=settings.request_timeout,
        telemetry_timeout=settings.telemetry_timeout,
    )
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    start = time.perf_counter()
    try:
        match = normalize_match(client.get_match(args.platform, args.match_id))
    except PubgAPIError as exc:
        print(f"Failed to fetch match {args.match_id}: {exc}")
        return 1
    _write_json(output_dir / f"{args.match_id}_match.json", match.model_dump(by_alias=True))
    print(
        f"Match {args.match_id}: {match.map} / {match.game_mode}, "
        f"{match.player_count} participants"
    )

    if not match.telemetry_url:
        print("No telemetry asset on this match.")
        return 0

    try:
        events = client.get_telemetry(match.telemetry_url)
    except PubgAPIError as exc:
        print(f"Failed to fetch telemetry: {exc}")
        return 1
    if args.raw:
        _write_json(output_dir / f"{args.match_id}_events.json", events)

    try:
        projection = reconstruct_telemetry(events)
    except TelemetryFormatError as exc:
        print(f"Unusable telemetry: {exc}")
        return 1
    _write_json(
        output_dir / f"{args.match_id}_telemetry.json",
        projection.model_dump(by_alias=True),
    )
    print(
        f"Telemetry: {len(projection.player_positions)} positions, "
        f"{len(projection.player_attacks)} attacks, {len(projection.player_kills)} kills, "
        f"{len(projection.play_zones)} play zones, {len(projection.red_zones)} red zones "
        f"({time.perf_counter() - start:.2f}s)"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
