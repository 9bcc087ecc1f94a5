"""
Football-only endpoints: standings, head-to-head and the highlights window.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from sportsfeed.constants import HIGHLIGHTS_DEFAULT_LIMIT, HIGHLIGHTS_MAX_LIMIT
from sportsfeed.engine import FeedEngine

from ..dependencies import get_engine
from ..schemas import FeedResponse, HighlightsResponse

router = APIRouter(prefix="/football", tags=["football"])


def _now(engine: FeedEngine) -> datetime:
    return datetime.fromtimestamp(engine.clock(), tz=timezone.utc)


@router.get("/standings", response_model=FeedResponse)
async def get_standings(
    leagueId: Optional[str] = None,
    season: Optional[str] = None,
    engine: FeedEngine = Depends(get_engine),
):
    if not leagueId or not season:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="leagueId and season are required",
        )
    params = {"leagueId": leagueId, "season": season}
    records = await engine.coordinator.resolve_resource("football/standings", params)
    return {
        "meta": {
            "lastUpdated": _now(engine),
            "totalResults": len(records),
            "sport": "football",
            "parameters": params,
        },
        "data": records,
    }


@router.get("/h2h", response_model=FeedResponse)
async def get_head_to_head(
    team1: Optional[str] = None,
    team2: Optional[str] = None,
    engine: FeedEngine = Depends(get_engine),
):
    if not team1 or not team2:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="team1 and team2 are required",
        )
    params = {"h2h": f"{team1}-{team2}"}
    records = await engine.coordinator.resolve_resource("football/matches/head-to-head", params)
    return {
        "meta": {
            "lastUpdated": _now(engine),
            "totalResults": len(records),
            "sport": "football",
            "parameters": {"team1": team1, "team2": team2},
        },
        "data": records,
    }


@router.get("/highlights", response_model=HighlightsResponse)
async def list_highlights(
    limit: int = Query(default=HIGHLIGHTS_DEFAULT_LIMIT, ge=1),
    offset: int = Query(default=0, ge=0),
    timezone_name: str = Query(default="Etc/UTC", alias="timezone"),
    countryCode: Optional[str] = None,
    leagueId: Optional[str] = None,
    engine: FeedEngine = Depends(get_engine),
):
    """
    Highlights over the whole date window, one provider call per date.

    ``limit`` and ``offset`` apply to each per-date call; ``limit`` is clamped
    to the provider maximum.
    """
    limit = min(limit, HIGHLIGHTS_MAX_LIMIT)
    params = {
        "limit": limit,
        "offset": offset,
        "timezone": timezone_name,
        "countryCode": countryCode,
        "leagueId": leagueId,
    }
    params = {k: v for k, v in params.items() if v is not None}
    dates = engine.coordinator.date_range()
    records = await engine.coordinator.resolve_window("football/highlights", params)
    return {
        "meta": {
            "lastUpdated": _now(engine),
            "parameters": params,
            "totalResults": len(records),
            "dateRange": {
                "startDate": dates[0],
                "endDate": dates[-1],
                "days": len(dates),
            },
        },
        "data": records,
        "pagination": {
            "limit": limit,
            "offset": offset,
            "nextOffset": offset + limit,
        },
    }
