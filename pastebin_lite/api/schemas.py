from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, StrictInt, StrictStr

from pastebin_lite.domain.expiry import MAX_COLUMN_INT


class PasteCreateRequest(BaseModel):
    content: StrictStr = Field(..., description="Paste content")
    ttl_seconds: Optional[StrictInt] = Field(
        default=None,
        ge=1,
        le=MAX_COLUMN_INT,
        description="Optional lifetime in seconds (>= 1)",
    )
    max_views: Optional[StrictInt] = Field(
        default=None,
        ge=1,
        le=MAX_COLUMN_INT,
        description="Optional maximum number of views (>= 1)",
    )


class PasteCreatedResponse(BaseModel):
    id: str
    url: str


class PasteResponse(BaseModel):
    content: str
    views: int
    max_views: Optional[int]
    remaining_views: Optional[int]
    expires_at: Optional[datetime]


class StatsResponse(BaseModel):
    total: int
    active: int


class HealthResponse(BaseModel):
    ok: bool = True
    error: Optional[str] = None
