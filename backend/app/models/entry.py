"""
Journal Entry Schemas
=====================
Pydantic models for the entries API. These are the contract between the
web client and the backend.

Key design decisions:
- moods and dominant_mood are derived server-side from the document and
  are never accepted from the client.
- date is accepted as either YYYY-MM-DD or a full ISO-8601 timestamp and
  truncated to its calendar date by the entry store.
- feedback, suggested_bullets, notable_suggestion and analyzed_at are
  stored and returned as-is; the backend never computes them.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from app.models.mood import Mood

# Hard ceiling on page size for list endpoints. Larger requests are
# rejected with a 422, not clamped.
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------

class NotableSuggestion(BaseModel):
    """Reviewer suggestion on whether an entry belongs in the brag document."""

    suggested: bool
    reasoning: str
    confidence: Literal["high", "medium", "low"]


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class EntryCreate(BaseModel):
    """Payload the editor sends when a new entry is saved."""

    date: str = Field(
        ...,
        description="Entry date. YYYY-MM-DD, or an ISO-8601 timestamp (time is dropped).",
    )
    title: Optional[str] = Field(default=None, max_length=255)
    content: dict[str, Any] = Field(
        ...,
        description=(
            "Editor document: {type: 'doc', content: [...]}. "
            "Mood markers are nodes of type 'moodBlock' with attrs.mood set."
        ),
    )
    is_notable: bool = False


class EntryUpdate(BaseModel):
    """Partial update. Only fields present in the request body are written."""

    title: Optional[str] = Field(default=None, max_length=255)
    date: Optional[str] = None
    content: Optional[dict[str, Any]] = None
    is_notable: Optional[bool] = None
    feedback: Optional[str] = None
    suggested_bullets: Optional[list[str]] = None
    notable_suggestion: Optional[NotableSuggestion] = None
    analyzed_at: Optional[datetime] = None


class NotableUpdate(BaseModel):
    """Body for PATCH /entries/{id}/notable."""

    is_notable: bool


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------

class EntryResponse(BaseModel):
    """A stored entry, including its derived mood fields."""

    id: str
    user_id: str
    date: date
    title: Optional[str] = None
    content: dict[str, Any]
    moods: list[Mood] = Field(default_factory=list)
    dominant_mood: Optional[Mood] = None
    is_notable: bool = False
    feedback: Optional[str] = None
    suggested_bullets: Optional[list[str]] = None
    notable_suggestion: Optional[NotableSuggestion] = None
    analyzed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class HeatmapDataPoint(BaseModel):
    """Aggregate of one calendar day's entries for the heatmap."""

    date: date
    moods: list[Mood] = Field(
        default_factory=list,
        description="Union of the day's moods, in order of first appearance.",
    )
    dominant_mood: Optional[Mood] = Field(
        default=None,
        description="Most common per-entry dominant mood for the day.",
    )
    entry_count: int = Field(..., ge=1)
    has_notable: bool


class DeleteResponse(BaseModel):
    success: bool
