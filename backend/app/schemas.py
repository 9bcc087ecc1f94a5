"""
Pydantic schemas for request and response validation.

Field names follow the camelCase wire format clients already consume.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

Record = dict[str, Any]


class FeedMeta(BaseModel):
    lastUpdated: datetime
    totalResults: int | None = None
    sport: str | None = None
    parameters: dict[str, Any] | None = None


class FeedResponse(BaseModel):
    meta: FeedMeta
    data: list[Record]


class SnapshotMeta(BaseModel):
    lastUpdated: datetime
    ageSeconds: float
    fresh: bool
    topic: str
    totalResults: int


class SnapshotResponse(BaseModel):
    meta: SnapshotMeta
    data: list[Record]


class DateRange(BaseModel):
    startDate: str
    endDate: str
    days: int


class HighlightsMeta(BaseModel):
    lastUpdated: datetime
    parameters: dict[str, Any]
    totalResults: int
    dateRange: DateRange


class Pagination(BaseModel):
    limit: int
    offset: int
    nextOffset: int


class HighlightsResponse(BaseModel):
    meta: HighlightsMeta
    data: list[Record]
    pagination: Pagination


class StreamRequest(BaseModel):
    """Client message on the WebSocket stream."""
    action: Literal["subscribe", "unsubscribe"] = "subscribe"
    sport: str = Field(min_length=1, max_length=64)
    itemId: str | int | None = None
