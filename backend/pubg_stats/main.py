from __future__ import annotations

from contextlib import asynccontextmanager, contextmanager
from functools import lru_cache
import logging
from typing import Iterator, List

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from pubg_stats.cache_store import CacheStore
from pubg_stats.env import load_env
from pubg_stats.models import FavoriteRequest, SearchHistoryEntry, SearchRequest
from pubg_stats.pubg_client import AsyncPubgClient, PubgAPIError
from pubg_stats.service import MatchNotFoundError, PlayerNotFoundError, StatsService
from pubg_stats.settings import Settings

load_env()

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

settings = Settings.from_env()


@lru_cache
def get_cache_store() -> CacheStore:
    return CacheStore(
        cache_dir=settings.cache_dir,
        ttl_seconds=settings.cache_ttl_seconds,
    )


@lru_cache
def get_service() -> StatsService:
    client = AsyncPubgClient(
        api_key=settings.pubg_api_key,
        base_url=settings.pubg_base_url,
        debug_mode=settings.debug_mode,
        timeout=settings.request_timeout,
        telemetry_timeout=settings.telemetry_timeout,
    )
    return StatsService(
        client,
        get_cache_store(),
        recent_match_limit=settings.recent_match_limit,
        player_matches_limit=settings.player_matches_limit,
        match_fetch_concurrency=settings.match_fetch_concurrency,
    )


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    if get_service.cache_info().currsize:
        await get_service().client.close()


app = FastAPI(title="PUBG Stats API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except (PlayerNotFoundError, MatchNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except PubgAPIError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Unhandled error while serving request")
        raise HTTPException(status_code=500, detail=str(exc))


@app.post("/api/search")
async def search_player(
    request: SearchRequest,
    cache: CacheStore = Depends(get_cache_store),
) -> dict:
    cache.save_preferences(request.player_name, request.platform, request.region)
    cache.add_search(request.player_name, request.platform)
    return {"success": True}


@app.get("/api/recent-searches", response_model=List[SearchHistoryEntry])
async def recent_searches(cache: CacheStore = Depends(get_cache_store)) -> List[dict]:
    return cache.recent_searches(settings.search_history_limit)


@app.post("/api/favorites")
async def toggle_favorite(
    request: FavoriteRequest,
    cache: CacheStore = Depends(get_cache_store),
) -> dict:
    cache.set_favorite(request.player_name, request.platform, request.favorite)
    return {"success": True, "favorite": request.favorite}


@app.get("/api/players/{platform}/{player_name}")
async def get_player(
    platform: str,
    player_name: str,
    service: StatsService = Depends(get_service),
    cache: CacheStore = Depends(get_cache_store),
) -> dict:
    with _translate_errors():
        profile = await service.fetch_player(platform, player_name)
    return {
        **profile.model_dump(by_alias=True),
        "isFavorite": cache.is_favorite(player_name, platform),
    }


@app.get("/api/players/{platform}/{player_name}/stats")
async def get_player_stats(
    platform: str,
    player_name: str,
    service: StatsService = Depends(get_service),
    cache: CacheStore = Depends(get_cache_store),
) -> dict:
    with _translate_errors():
        profile = await service.fetch_player(platform, player_name)
    return {
        **profile.stats.model_dump(by_alias=True),
        "isFavorite": cache.is_favorite(player_name, platform),
    }


@app.get("/api/players/{platform}/{player_name}/matches")
async def get_player_matches(
    platform: str,
    player_name: str,
    service: StatsService = Depends(get_service),
) -> List[dict]:
    with _translate_errors():
        matches = await service.fetch_player_matches(platform, player_name)
    return [match.model_dump(by_alias=True) for match in matches]


@app.get("/api/players/{platform}/{player_name}/weapon_mastery")
async def get_weapon_mastery(
    platform: str,
    player_name: str,
    service: StatsService = Depends(get_service),
) -> dict:
    with _translate_errors():
        return await service.fetch_weapon_mastery(platform, player_name)


@app.get("/api/players/{platform}/{player_name}/survival_mastery")
async def get_survival_mastery(
    platform: str,
    player_name: str,
    service: StatsService = Depends(get_service),
) -> dict:
    with _translate_errors():
        return await service.fetch_survival_mastery(platform, player_name)


@app.get("/api/matches/{match_id}")
async def get_match(
    match_id: str,
    platform: str = Query(settings.default_platform, min_length=1),
    service: StatsService = Depends(get_service),
) -> dict:
    with _translate_errors():
        match = await service.fetch_match(platform, match_id)
    return match.model_dump(by_alias=True)


@app.get("/api/matches/{match_id}/telemetry")
async def get_match_telemetry(
    match_id: str,
    platform: str = Query(settings.default_platform, min_length=1),
    service: StatsService = Depends(get_service),
) -> dict:
    with _translate_errors():
        telemetry = await service.fetch_match_telemetry(platform, match_id)
    return telemetry.model_dump(by_alias=True)


@app.get("/api/health")
async def health_check() -> dict:
    return {
        "status": "healthy",
        "debug_mode": settings.debug_mode,
        "api_key_configured": bool(settings.pubg_api_key),
        "default_platform": settings.default_platform,
        "cache_ttl_seconds": settings.cache_ttl_seconds,
    }
