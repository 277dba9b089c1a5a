from __future__ import annotations

import asyncio
import gzip
import json
import logging
import zlib
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp
import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.pubg.com/shards"


class PubgAPIError(RuntimeError):
    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class PubgNotFoundError(PubgAPIError):
    pass


class PubgConfigError(ValueError):
    pass


def _build_auth_headers(api_key: str) -> Dict[str, str]:
    headers = {"Accept": "application/vnd.api+json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


def _error_detail(content: bytes) -> str:
    text = content.decode("utf-8", errors="replace").strip()
    try:
        payload = json.loads(text)
    except ValueError:
        return text or "No response body"

    if isinstance(payload, dict):
        errors = payload.get("errors")
        if isinstance(errors, list) and errors:
            first = errors[0] if isinstance(errors[0], dict) else {}
            detail = first.get("detail") or first.get("title")
            if detail:
                return str(detail)
            return json.dumps(errors)
        if "error" in payload:
            return str(payload["error"])
        if "message" in payload:
            return str(payload["message"])
        return json.dumps(payload)

    return text or "No response body"


def _raise_for_status(status: int, content: bytes) -> None:
    if status < 400:
        return
    detail = _error_detail(content)
    if status == 404:
        raise PubgNotFoundError(f"PUBG API error: 404 - {detail}", status=status)
    raise PubgAPIError(f"PUBG API error: {status} - {detail}", status=status)


def _decode_json(content: bytes) -> Any:
    # Telemetry blobs are sometimes served gzipped without a Content-Encoding header.
    if content[:2] == b"\x1f\x8b":
        try:
            content = gzip.decompress(content)
        except (OSError, EOFError, zlib.error) as exc:
            raise PubgAPIError(f"Corrupt gzip response from PUBG API: {exc}") from exc
    try:
        return json.loads(content.decode("utf-8"))
    except ValueError as exc:
        raise PubgAPIError(f"Non-JSON response from PUBG API: {exc}") from exc


@dataclass(frozen=True)
class PubgEndpoints:
    players_path: str = "/players"
    player_path: str = "/players/{player_id}"
    lifetime_path: str = "/players/{player_id}/seasons/lifetime"
    season_path: str = "/players/{player_id}/seasons/{season_id}"
    seasons_path: str = "/seasons"
    weapon_mastery_path: str = "/players/{player_id}/weapon_mastery"
    survival_mastery_path: str = "/players/{player_id}/survival_mastery"
    match_path: str = "/matches/{match_id}"

    def url(self, base_url: str, platform: str, path: str, **kwargs: str) -> str:
        return f"{base_url.rstrip('/')}/{platform}{path.format(**kwargs)}"


class PubgRestClient:
    """Blocking client for scripts and one-off tooling."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
        telemetry_timeout: int = 60,
        endpoints: Optional[PubgEndpoints] = None,
    ) -> None:
        if not api_key:
            raise PubgConfigError("PUBG_API_KEY is required.")
        self.api_key = api_key
        self.base_url = base_url
        self.session = session or requests.Session()
        self.timeout = timeout
        self.telemetry_timeout = telemetry_timeout
        self.endpoints = endpoints or PubgEndpoints()

    def get(self, platform: str, path: str, params: Optional[Dict[str, Any]] = None, **kwargs: str) -> Any:
        url = self.endpoints.url(self.base_url, platform, path, **kwargs)
        try:
            response = self.session.get(
                url,
                headers=_build_auth_headers(self.api_key),
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise PubgAPIError(f"PUBG API error: {exc}") from exc
        _raise_for_status(response.status_code, response.content)
        return _decode_json(response.content)

    def get_player_by_name(self, platform: str, player_name: str) -> Dict:
        return self.get(
            platform,
            self.endpoints.players_path,
            params={"filter[playerNames]": player_name},
        )

    def get_match(self, platform: str, match_id: str) -> Dict:
        return self.get(platform, self.endpoints.match_path, match_id=match_id)

    def get_telemetry(self, telemetry_url: str) -> Any:
        try:
            response = self.session.get(
                telemetry_url,
                headers={"Accept": "application/json"},
                timeout=self.telemetry_timeout,
            )
        except requests.RequestException as exc:
            raise PubgAPIError(f"PUBG API error: {exc}") from exc
        _raise_for_status(response.status_code, response.content)
        return _decode_json(response.content)


class AsyncPubgClient:
    """Non-blocking client for the PUBG shards API and the telemetry CDN."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        debug_mode: bool = False,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: int = 30,
        telemetry_timeout: int = 60,
        endpoints: Optional[PubgEndpoints] = None,
    ) -> None:
        if not api_key and not debug_mode:
            raise PubgConfigError("PUBG_API_KEY is required when debug_mode is False.")

        self.api_key = api_key
        self.base_url = base_url
        self.debug_mode = debug_mode
        self.session = session
        self._own_session = session is None
        self.timeout = timeout
        self.telemetry_timeout = telemetry_timeout
        self.endpoints = endpoints or PubgEndpoints()

    async def _request(
        self,
        url: str,
        headers: Dict[str, str],
        params: Optional[Dict[str, Any]],
        timeout: int,
    ) -> Any:
        if self.session is None:
            self.session = aiohttp.ClientSession()

        try:
            async with self.session.get(
                url,
                headers=headers,
                params=params,
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as response:
                status = response.status
                content = await response.read()
        except asyncio.TimeoutError as exc:
            raise PubgAPIError(f"PUBG API error: timeout after {timeout}s") from exc
        except aiohttp.ClientError as exc:
            raise PubgAPIError(f"PUBG API error: {exc}") from exc

        _raise_for_status(status, content)
        return _decode_json(content)

    async def get(
        self,
        platform: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        **kwargs: str,
    ) -> Any:
        url = self.endpoints.url(self.base_url, platform, path, **kwargs)
        return await self._request(
            url, _build_auth_headers(self.api_key), params, self.timeout
        )

    async def get_player_by_name(self, platform: str, player_name: str) -> Dict:
        return await self.get(
            platform,
            self.endpoints.players_path,
            params={"filter[playerNames]": player_name},
        )

    async def get_player_by_id(self, platform: str, player_id: str) -> Dict:
        return await self.get(platform, self.endpoints.player_path, player_id=player_id)

    async def get_lifetime_stats(self, platform: str, player_id: str) -> Dict:
        return await self.get(platform, self.endpoints.lifetime_path, player_id=player_id)

    async def get_season_stats(self, platform: str, player_id: str, season_id: str) -> Dict:
        return await self.get(
            platform,
            self.endpoints.season_path,
            player_id=player_id,
            season_id=season_id,
        )

    async def get_seasons(self, platform: str) -> Dict:
        return await self.get(platform, self.endpoints.seasons_path)

    async def get_weapon_mastery(self, platform: str, player_id: str) -> Dict:
        return await self.get(
            platform, self.endpoints.weapon_mastery_path, player_id=player_id
        )

    async def get_survival_mastery(self, platform: str, player_id: str) -> Dict:
        return await self.get(
            platform, self.endpoints.survival_mastery_path, player_id=player_id
        )

    async def get_match(self, platform: str, match_id: str) -> Dict:
        return await self.get(platform, self.endpoints.match_path, match_id=match_id)

    async def get_telemetry(self, telemetry_url: str) -> Any:
        # The telemetry CDN is public; sending the API key there is rejected.
        return await self._request(
            telemetry_url,
            {"Accept": "application/json"},
            None,
            self.telemetry_timeout,
        )

    async def close(self) -> None:
        if self._own_session and self.session:
            await self.session.close()
            self.session = None
