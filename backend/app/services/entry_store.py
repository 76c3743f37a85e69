"""
Entry Store
===========
Owner-scoped data access for journal entries, backed by the Supabase
``entries`` table.

Every method takes the owner's user id and filters on it. An entry that
belongs to someone else is indistinguishable from one that does not
exist: reads return None, writes return None / False.

Moods are derived here, not by callers:
- create() extracts moods + dominant mood from the submitted content
- update() re-extracts them whenever content is part of the update, and
  leaves them alone otherwise
Content, moods and dominant mood always travel in the same write request,
so a reader never sees one without the others.

Each operation is a single PostgREST request and therefore a single
database transaction. There is no locking or retry here; concurrent
updates resolve as last-write-wins in Postgres.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Optional, Union

from supabase import Client

from app.models.entry import DEFAULT_PAGE_SIZE, HeatmapDataPoint
from app.services.mood_extractor import (
    MAX_DOCUMENT_DEPTH,
    DocumentTooDeepError,
    ExtractedMoods,
    dominant_mood,
    process_content,
    unique_in_order,
)

logger = logging.getLogger(__name__)

ENTRIES_TABLE = "entries"

UPDATABLE_FIELDS = frozenset({
    "title",
    "date",
    "content",
    "is_notable",
    "feedback",
    "suggested_bullets",
    "notable_suggestion",
    "analyzed_at",
})

# Columns declared NOT NULL. Content has its own error code.
_NOT_NULL_FIELDS = frozenset({"date", "is_notable"})

_HEATMAP_COLUMNS = "id, date, moods, dominant_mood, is_notable, created_at"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class EntryValidationError(Exception):
    """Caller supplied something the store cannot accept. Not retryable."""

    def __init__(self, message: str, code: str) -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class EntryStoreError(Exception):
    """Storage did not behave as expected (e.g. insert returned no row)."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@dataclass
class EntryFilters:
    """Conjunctive filters for EntryStore.list(). Dates are inclusive."""

    start_date: Optional[Union[str, date]] = None
    end_date: Optional[Union[str, date]] = None
    mood: Optional[str] = None
    dominant_mood: Optional[str] = None
    notable: Optional[bool] = None


def normalize_date(value: Any) -> date:
    """Truncate a date, datetime or ISO-8601 string to a calendar date.

    Timezone-aware datetimes are converted to UTC before truncating.
    Raises EntryValidationError for anything that cannot be parsed.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return normalize_date(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            pass
    raise EntryValidationError(f"Invalid date: {value!r}", code="invalid_date")


def _coerce_entry_id(entry_id: Any) -> Optional[str]:
    """Canonical UUID string, or None if *entry_id* cannot be a stored id."""
    try:
        return str(uuid.UUID(str(entry_id)))
    except ValueError:
        return None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class EntryStore:
    """Reads and writes journal entries for a single Supabase client."""

    def __init__(self, db: Client, *, max_document_depth: int = MAX_DOCUMENT_DEPTH) -> None:
        self._db = db
        self._max_document_depth = max_document_depth

    def _table(self):
        return self._db.table(ENTRIES_TABLE)

    def _extract(self, content: Any) -> ExtractedMoods:
        try:
            return process_content(content, self._max_document_depth)
        except DocumentTooDeepError as exc:
            raise EntryValidationError(str(exc), code="document_too_deep") from exc

    # ---- Writes ------------------------------------------------------------

    def create(
        self,
        owner_id: str,
        entry_date: Any,
        content: Any,
        title: Optional[str] = None,
        notable: bool = False,
    ) -> dict:
        """Insert a new entry for *owner_id* and return the stored row."""
        day = normalize_date(entry_date)
        if content is None:
            raise EntryValidationError("Entry content is required", code="invalid_content")
        extracted = self._extract(content)
        now = _now_iso()

        row = {
            "user_id": owner_id,
            "date": day.isoformat(),
            "title": title,
            "content": content,
            "moods": extracted.moods,
            "dominant_mood": extracted.dominant_mood,
            "is_notable": notable,
            "created_at": now,
            "updated_at": now,
        }

        result = self._table().insert(row).execute()

        if not result.data:
            logger.error("Failed to insert entry for user %s", owner_id)
            raise EntryStoreError("Insert returned no row")

        entry = result.data[0]
        logger.info(
            "Created entry %s for user %s on %s (moods=%s, dominant=%s)",
            entry.get("id"), owner_id, row["date"], extracted.moods, extracted.dominant_mood,
        )
        return entry

    def update(self, entry_id: Any, owner_id: str, fields: Mapping[str, Any]) -> Optional[dict]:
        """Apply a partial update. Returns the updated row, or None if not found.

        Only keys present in *fields* are written. If ``content`` is among
        them, moods and dominant mood are recomputed and overwritten.
        """
        entry_key = _coerce_entry_id(entry_id)
        if entry_key is None:
            return None

        if not fields:
            raise EntryValidationError("No fields provided for update", code="empty_update")

        unknown = sorted(set(fields) - UPDATABLE_FIELDS)
        if unknown:
            raise EntryValidationError(
                f"Unknown entry fields: {', '.join(unknown)}", code="unknown_field"
            )

        nulled = sorted(name for name in _NOT_NULL_FIELDS if name in fields and fields[name] is None)
        if nulled:
            raise EntryValidationError(
                f"Entry fields cannot be null: {', '.join(nulled)}", code="invalid_field"
            )

        changes: dict[str, Any] = dict(fields)

        if "date" in changes:
            changes["date"] = normalize_date(changes["date"]).isoformat()

        if "content" in changes:
            if changes["content"] is None:
                raise EntryValidationError("Entry content cannot be null", code="invalid_content")
            extracted = self._extract(changes["content"])
            changes["moods"] = extracted.moods
            changes["dominant_mood"] = extracted.dominant_mood

        if isinstance(changes.get("analyzed_at"), datetime):
            changes["analyzed_at"] = changes["analyzed_at"].isoformat()

        changes["updated_at"] = _now_iso()

        result = (
            self._table()
            .update(changes)
            .eq("id", entry_key)
            .eq("user_id", owner_id)
            .execute()
        )

        if not result.data:
            logger.debug("Update matched no entry %s for user %s", entry_key, owner_id)
            return None

        logger.info("Updated entry %s (%s)", entry_key, ", ".join(sorted(fields)))
        return result.data[0]

    def set_notable(self, entry_id: Any, owner_id: str, notable: bool) -> Optional[dict]:
        """Set the notable flag to exactly *notable*. None if not found."""
        entry_key = _coerce_entry_id(entry_id)
        if entry_key is None:
            return None

        result = (
            self._table()
            .update({"is_notable": bool(notable), "updated_at": _now_iso()})
            .eq("id", entry_key)
            .eq("user_id", owner_id)
            .execute()
        )

        if not result.data:
            return None

        logger.info("Entry %s notable=%s", entry_key, bool(notable))
        return result.data[0]

    def delete(self, entry_id: Any, owner_id: str) -> bool:
        """Permanently delete an entry. False if nothing matched."""
        entry_key = _coerce_entry_id(entry_id)
        if entry_key is None:
            return False

        result = (
            self._table()
            .delete()
            .eq("id", entry_key)
            .eq("user_id", owner_id)
            .execute()
        )

        deleted = bool(result.data)
        if deleted:
            logger.info("Deleted entry %s for user %s", entry_key, owner_id)
        return deleted

    # ---- Reads -------------------------------------------------------------

    def get_by_id(self, entry_id: Any, owner_id: str) -> Optional[dict]:
        entry_key = _coerce_entry_id(entry_id)
        if entry_key is None:
            return None

        result = (
            self._table()
            .select("*")
            .eq("id", entry_key)
            .eq("user_id", owner_id)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    def list(
        self,
        owner_id: str,
        filters: Optional[EntryFilters] = None,
        *,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> list[dict]:
        """Entries for *owner_id*, most recent date first.

        Same-date entries are ordered newest-created first, then by id, so
        pagination is stable across calls.
        """
        if limit < 0 or offset < 0:
            raise EntryValidationError(
                "limit and offset must be non-negative", code="invalid_pagination"
            )
        if limit == 0:
            return []

        filters = filters or EntryFilters()

        query = self._table().select("*").eq("user_id", owner_id)

        if filters.start_date is not None:
            query = query.gte("date", normalize_date(filters.start_date).isoformat())
        if filters.end_date is not None:
            query = query.lte("date", normalize_date(filters.end_date).isoformat())
        if filters.mood is not None:
            query = query.contains("moods", [filters.mood])
        if filters.dominant_mood is not None:
            query = query.eq("dominant_mood", filters.dominant_mood)
        if filters.notable is not None:
            query = query.eq("is_notable", filters.notable)

        result = (
            query
            .order("date", desc=True)
            .order("created_at", desc=True)
            .order("id", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )

        rows = result.data or []
        logger.debug("Listed %d entries for user %s (%s)", len(rows), owner_id, filters)
        return rows

    def heatmap(self, owner_id: str, start_date: Any, end_date: Any) -> list[HeatmapDataPoint]:
        """Per-day aggregates for the calendar between two inclusive dates.

        Days with no entries are omitted. The day's dominant mood is a vote
        over each entry's own dominant mood; entries without one abstain.
        """
        start = normalize_date(start_date).isoformat()
        end = normalize_date(end_date).isoformat()

        result = (
            self._table()
            .select(_HEATMAP_COLUMNS)
            .eq("user_id", owner_id)
            .gte("date", start)
            .lte("date", end)
            .order("date")
            .order("created_at")
            .order("id")
            .execute()
        )

        # Rows arrive in ascending date/creation order; keep it per day
        by_day: dict[str, list[dict]] = {}
        for row in (result.data or []):
            by_day.setdefault(row["date"], []).append(row)

        points = [
            HeatmapDataPoint(
                date=day,
                moods=unique_in_order(
                    mood for row in day_rows for mood in (row.get("moods") or [])
                ),
                dominant_mood=dominant_mood(
                    row["dominant_mood"] for row in day_rows if row.get("dominant_mood")
                ),
                entry_count=len(day_rows),
                has_notable=any(row.get("is_notable") for row in day_rows),
            )
            for day, day_rows in sorted(by_day.items())
        ]

        logger.debug(
            "Heatmap for user %s %s..%s: %d days", owner_id, start, end, len(points)
        )
        return points
