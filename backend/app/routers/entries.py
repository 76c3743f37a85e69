"""
Entries Router
==============
CRUD, filtering, heatmap and brag document for journal entries.

    POST   /api/v1/entries                 Create an entry (moods extracted)
    GET    /api/v1/entries                 List with filters + pagination
    GET    /api/v1/entries/heatmap         Per-day aggregates for the calendar
    GET    /api/v1/entries/brag            Notable entries (the brag document)
    GET    /api/v1/entries/{id}            Fetch one entry
    PATCH  /api/v1/entries/{id}            Partial update
    DELETE /api/v1/entries/{id}            Permanent delete
    PATCH  /api/v1/entries/{id}/notable    Set the notable flag

All data access goes through EntryStore, which scopes every query by the
authenticated user. The store reports "not yours" and "does not exist"
the same way, and so does this router: 404 either way.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Query, status

from app.config import get_settings
from app.db.supabase import get_supabase_client
from app.models.entry import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    DeleteResponse,
    EntryCreate,
    EntryResponse,
    EntryUpdate,
    HeatmapDataPoint,
    NotableUpdate,
)
from app.models.mood import Mood
from app.services.entry_store import (
    EntryFilters,
    EntryStore,
    EntryStoreError,
    EntryValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/entries", tags=["entries"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_authenticated_user_id(authorization: str) -> str:
    """Verify the Supabase JWT and return the user's id.

    Raises HTTPException 401 if the token is invalid or missing.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Missing or invalid authorization header", "code": "auth_required"},
        )

    token = authorization.removeprefix("Bearer ").strip()
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Empty bearer token", "code": "auth_required"},
        )

    db = get_supabase_client()

    try:
        auth_response = db.auth.get_user(token)
    except Exception as exc:
        logger.warning("Auth token verification failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Invalid or expired token", "code": "auth_invalid"},
        ) from exc

    if not auth_response or not auth_response.user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "User not found for token", "code": "auth_invalid"},
        )

    return str(auth_response.user.id)


def _get_entry_store() -> EntryStore:
    settings = get_settings()
    return EntryStore(
        get_supabase_client(),
        max_document_depth=settings.max_document_depth,
    )


def _validation_error(exc: EntryValidationError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"message": exc.message, "code": exc.code},
    )


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"message": "Entry not found", "code": "entry_not_found"},
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=EntryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a journal entry",
    description=(
        "Save a new entry. Moods are extracted from mood markers in the "
        "document; the dominant mood is the most frequent one."
    ),
    responses={
        201: {"description": "Entry created"},
        401: {"description": "Authentication required"},
        422: {"description": "Validation error (bad date, document too deep, etc.)"},
        500: {"description": "Entry could not be saved"},
    },
)
async def create_entry(
    body: EntryCreate,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> EntryResponse:
    user_id = _get_authenticated_user_id(authorization)
    store = _get_entry_store()

    try:
        entry = store.create(
            user_id,
            body.date,
            body.content,
            title=body.title,
            notable=body.is_notable,
        )
    except EntryValidationError as exc:
        raise _validation_error(exc) from exc
    except EntryStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Failed to save entry", "code": "db_error"},
        ) from exc

    return EntryResponse(**entry)


@router.get(
    "",
    response_model=list[EntryResponse],
    summary="List journal entries",
    description=(
        "Entries for the current user, most recent date first. Filters "
        "combine with AND; start_date and end_date are inclusive."
    ),
)
async def list_entries(
    start_date: Optional[str] = Query(default=None),
    end_date: Optional[str] = Query(default=None),
    mood: Optional[Mood] = Query(default=None, description="Entries containing this mood"),
    dominant_mood: Optional[Mood] = Query(default=None),
    notable: Optional[bool] = Query(default=None),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=0, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> list[EntryResponse]:
    user_id = _get_authenticated_user_id(authorization)
    store = _get_entry_store()

    filters = EntryFilters(
        start_date=start_date,
        end_date=end_date,
        mood=mood,
        dominant_mood=dominant_mood,
        notable=notable,
    )

    try:
        rows = store.list(user_id, filters, limit=limit, offset=offset)
    except EntryValidationError as exc:
        raise _validation_error(exc) from exc

    return [EntryResponse(**row) for row in rows]


@router.get(
    "/heatmap",
    response_model=list[HeatmapDataPoint],
    summary="Calendar heatmap data",
    description=(
        "One point per day that has entries between start_date and end_date "
        "(inclusive), in ascending date order."
    ),
)
async def get_heatmap(
    start_date: str = Query(...),
    end_date: str = Query(...),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> list[HeatmapDataPoint]:
    user_id = _get_authenticated_user_id(authorization)
    store = _get_entry_store()

    try:
        return store.heatmap(user_id, start_date, end_date)
    except EntryValidationError as exc:
        raise _validation_error(exc) from exc


@router.get(
    "/brag",
    response_model=list[EntryResponse],
    summary="Brag document",
    description="Entries flagged as notable, most recent first.",
)
async def get_brag_document(
    start_date: Optional[str] = Query(default=None),
    end_date: Optional[str] = Query(default=None),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=0, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> list[EntryResponse]:
    user_id = _get_authenticated_user_id(authorization)
    store = _get_entry_store()

    filters = EntryFilters(start_date=start_date, end_date=end_date, notable=True)

    try:
        rows = store.list(user_id, filters, limit=limit, offset=offset)
    except EntryValidationError as exc:
        raise _validation_error(exc) from exc

    return [EntryResponse(**row) for row in rows]


@router.get(
    "/{entry_id}",
    response_model=EntryResponse,
    summary="Get a journal entry",
    responses={404: {"description": "Entry not found"}},
)
async def get_entry(
    entry_id: str,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> EntryResponse:
    user_id = _get_authenticated_user_id(authorization)
    entry = _get_entry_store().get_by_id(entry_id, user_id)

    if entry is None:
        raise _not_found()

    return EntryResponse(**entry)


@router.patch(
    "/{entry_id}",
    response_model=EntryResponse,
    summary="Update a journal entry",
    description=(
        "Only fields present in the body are changed. Sending content "
        "re-extracts the entry's moods; other updates leave them untouched."
    ),
    responses={
        404: {"description": "Entry not found"},
        422: {"description": "Empty update or invalid field"},
    },
)
async def update_entry(
    entry_id: str,
    body: EntryUpdate,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> EntryResponse:
    user_id = _get_authenticated_user_id(authorization)
    store = _get_entry_store()

    fields = body.model_dump(exclude_unset=True, mode="json")

    try:
        entry = store.update(entry_id, user_id, fields)
    except EntryValidationError as exc:
        raise _validation_error(exc) from exc

    if entry is None:
        raise _not_found()

    return EntryResponse(**entry)


@router.delete(
    "/{entry_id}",
    response_model=DeleteResponse,
    summary="Delete a journal entry",
    responses={404: {"description": "Entry not found"}},
)
async def delete_entry(
    entry_id: str,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> DeleteResponse:
    user_id = _get_authenticated_user_id(authorization)

    if not _get_entry_store().delete(entry_id, user_id):
        raise _not_found()

    return DeleteResponse(success=True)


@router.patch(
    "/{entry_id}/notable",
    response_model=EntryResponse,
    summary="Flag or unflag an entry for the brag document",
    responses={404: {"description": "Entry not found"}},
)
async def set_entry_notable(
    entry_id: str,
    body: NotableUpdate,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> EntryResponse:
    user_id = _get_authenticated_user_id(authorization)
    entry = _get_entry_store().set_notable(entry_id, user_id, body.is_notable)

    if entry is None:
        raise _not_found()

    return EntryResponse(**entry)
