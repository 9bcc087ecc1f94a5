"""
Per-sport read endpoints.

All reads go through the engine's cache; ``/snapshot`` never touches the
upstream provider.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from sportsfeed.cache import is_fresh
from sportsfeed.engine import FeedEngine

from ..dependencies import get_engine
from ..schemas import FeedResponse, SnapshotResponse

router = APIRouter(tags=["sports"])


def _timestamp(engine: FeedEngine, value: Optional[float] = None) -> datetime:
    return datetime.fromtimestamp(engine.clock() if value is None else value, tz=timezone.utc)


@router.get("/{sport}/matches", response_model=FeedResponse)
async def list_matches(
    sport: str,
    date: Optional[str] = None,
    leagueId: Optional[str] = None,
    leagueName: Optional[str] = None,
    season: Optional[str] = None,
    countryCode: Optional[str] = None,
    timezone_name: Optional[str] = Query(default=None, alias="timezone"),
    homeTeamId: Optional[str] = None,
    awayTeamId: Optional[str] = None,
    engine: FeedEngine = Depends(get_engine),
):
    """
    Matches of one sport.

    Filters are passed through to the provider and are part of the cache key,
    so each distinct filter set is cached on its own.
    """
    topic = engine.topic(sport)
    params = {
        "date": date,
        "leagueId": leagueId,
        "leagueName": leagueName,
        "season": season,
        "countryCode": countryCode,
        "timezone": timezone_name,
        "homeTeamId": homeTeamId,
        "awayTeamId": awayTeamId,
    }
    params = {k: v for k, v in params.items() if v is not None}
    records = await engine.resolve(topic, params)
    return {
        "meta": {
            "lastUpdated": _timestamp(engine),
            "totalResults": len(records),
            "sport": topic.domain,
            "parameters": params,
        },
        "data": records,
    }


@router.get("/{sport}/snapshot", response_model=SnapshotResponse)
def get_snapshot(sport: str, engine: FeedEngine = Depends(get_engine)):
    """Last cached dataset of a sport, fresh or not."""
    topic = engine.topic(sport)
    entry = engine.get_snapshot(topic)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No data cached for {topic.key} yet",
        )
    now = engine.clock()
    return {
        "meta": {
            "lastUpdated": _timestamp(engine, entry.fetched_at),
            "ageSeconds": round(entry.age(now), 3),
            "fresh": is_fresh(entry, engine.settings.cache_ttl_seconds, now),
            "topic": topic.key,
            "totalResults": len(entry.payload),
        },
        "data": entry.records,
    }


@router.get("/{sport}/matches/{match_id}", response_model=FeedResponse)
async def get_match(sport: str, match_id: str, engine: FeedEngine = Depends(get_engine)):
    topic = engine.topic(sport, match_id)
    records = await engine.resolve(topic)
    return {
        "meta": {
            "lastUpdated": _timestamp(engine),
            "totalResults": len(records),
            "sport": topic.domain,
        },
        "data": records,
    }


@router.get("/{sport}/highlights/{highlight_id}", response_model=FeedResponse)
async def get_highlight(sport: str, highlight_id: str, engine: FeedEngine = Depends(get_engine)):
    topic = engine.topic(sport)
    # Cricket highlight ids are numeric on the provider side
    if topic.domain == "cricket" and not highlight_id.isdigit():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cricket highlight id must be numeric",
        )
    records = await engine.coordinator.resolve_resource(f"{topic.domain}/highlights/{highlight_id}")
    return {
        "meta": {
            "lastUpdated": _timestamp(engine),
            "totalResults": len(records),
            "sport": topic.domain,
        },
        "data": records,
    }
