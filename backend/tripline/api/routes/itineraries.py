"""Itinerary endpoints - generation (single-shot and SSE), CRUD, and edits."""

import json
import logging
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import StreamingResponse
from pydantic import Field, field_validator

from backend.tripline.adapters.itinerary_server import ClientFactory, get_client_factory
from backend.tripline.api.auth import get_current_context
from backend.tripline.db.context import RequestContext
from backend.tripline.db.engine import get_itinerary_store
from backend.tripline.db.repositories import ItineraryStore, MetadataUpdate
from backend.tripline.errors import (
    EmptyGenerationResult,
    InvalidDateRange,
    InvalidSelection,
    StaleSelection,
    TriplineError,
    UpstreamServiceUnavailable,
)
from backend.tripline.middleware.ratelimit import enforce_rate_limit
from backend.tripline.models.common import CamelModel
from backend.tripline.models.edits import PatchOperation, Selection
from backend.tripline.models.itinerary import Itinerary
from backend.tripline.orchestration.editing import edit_itinerary
from backend.tripline.orchestration.generation import (
    GenerationOutcome,
    TripRequest,
    generate_itinerary,
    stream_itinerary,
)
from backend.tripline.transform.assembler import parse_interests

router = APIRouter(
    prefix="/itineraries", tags=["itineraries"], dependencies=[Depends(enforce_rate_limit)]
)
logger = logging.getLogger(__name__)


class GenerateItineraryRequest(CamelModel):
    """Request body for POST /itineraries/generate."""

    city: str = Field(..., min_length=1, description="Destination display name")
    interests: str | list[str] = Field("", description="Comma-separated string or list")
    start_date: str | None = None
    end_date: str | None = None


class GenerateItineraryResponse(CamelModel):
    """Response for POST /itineraries/generate."""

    success: bool = True
    trip_id: str
    itinerary: Itinerary
    meta: dict[str, Any] = Field(default_factory=dict)


class UpdateItineraryRequest(CamelModel):
    """Request body for PATCH /itineraries/{trip_id}."""

    destination: str | None = Field(None, min_length=1)
    start_date: str | None = None
    end_date: str | None = None
    interests: str | list[str] | None = None


class EditItineraryRequest(CamelModel):
    """Request body for POST /itineraries/{trip_id}/edit."""

    edit_request: str
    selection: Selection

    @field_validator("edit_request")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("editRequest must not be empty")
        return value


class EditItineraryResponse(CamelModel):
    """Response for POST /itineraries/{trip_id}/edit."""

    success: bool = True
    itinerary: Itinerary
    change_summary: str
    operation: PatchOperation


def to_http_error(error: TriplineError) -> HTTPException:
    """Map pipeline errors onto HTTP statuses."""
    if isinstance(error, (InvalidSelection, InvalidDateRange)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, StaleSelection):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{error}. Refetch the itinerary and re-select.",
        )
    if isinstance(error, EmptyGenerationResult):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=error.message)
    if isinstance(error, UpstreamServiceUnavailable):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "Itinerary server is currently unavailable",
                "details": error.message,
                "upstreamStatus": error.status_code,
            },
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="internal error"
    )


def _trip_request(body: GenerateItineraryRequest, ctx: RequestContext) -> TripRequest:
    return TripRequest(
        city=body.city,
        interests=body.interests,
        user_id=ctx.user_id,
        start_date=body.start_date,
        end_date=body.end_date,
    )


def _persist(
    store: ItineraryStore, outcome: GenerationOutcome, ctx: RequestContext
) -> tuple[str, Itinerary]:
    trip_id = store.create(outcome.itinerary, ctx)
    stored = store.get(trip_id, ctx)
    if stored is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="internal error"
        )
    return trip_id, stored


@router.post(
    "/generate", response_model=GenerateItineraryResponse, status_code=status.HTTP_201_CREATED
)
async def generate(
    body: GenerateItineraryRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    store: Annotated[ItineraryStore, Depends(get_itinerary_store)],
    client_factory: Annotated[ClientFactory, Depends(get_client_factory)],
) -> GenerateItineraryResponse:
    """Generate an itinerary in one blocking call and persist it.

    Raises:
        HTTPException: 422 if no activities, 503 if the itinerary server is unavailable
    """
    logger.info(f"[POST /itineraries/generate] user_id={ctx.user_id}, city={body.city}")

    try:
        async with client_factory() as client:
            outcome = await generate_itinerary(client, _trip_request(body, ctx))
    except TriplineError as e:
        logger.warning(f"[POST /itineraries/generate] failed: {e}")
        raise to_http_error(e) from e

    trip_id, stored = _persist(store, outcome, ctx)
    logger.info(f"[POST /itineraries/generate] trip_id={trip_id}, days={len(stored.days)}")

    return GenerateItineraryResponse(trip_id=trip_id, itinerary=stored, meta=outcome.meta)


def _sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


@router.post("/generate/stream")
async def generate_stream(
    body: GenerateItineraryRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    store: Annotated[ItineraryStore, Depends(get_itinerary_store)],
    client_factory: Annotated[ClientFactory, Depends(get_client_factory)],
) -> StreamingResponse:
    """Relay generation progress via SSE, then persist and emit the final itinerary.

    Frames are ``data: {json}``; ``type`` is ``progress``, ``complete`` or ``error``.
    """
    trip = _trip_request(body, ctx)
    logger.info(f"[POST /itineraries/generate/stream] user_id={ctx.user_id}, city={body.city}")

    async def event_generator() -> AsyncGenerator[str, None]:
        try:
            async with client_factory() as client:
                async for item in stream_itinerary(client, trip):
                    if isinstance(item, GenerationOutcome):
                        trip_id, stored = _persist(store, item, ctx)
                        yield _sse(
                            {
                                "type": "complete",
                                "tripId": trip_id,
                                "itinerary": stored.model_dump(mode="json", by_alias=True),
                                "meta": item.meta,
                            }
                        )
                    else:
                        yield _sse(item.model_dump(mode="json", exclude_none=True))
        except TriplineError as e:
            logger.warning(f"[POST /itineraries/generate/stream] failed: {e}")
            yield _sse({"type": "error", "message": getattr(e, "message", str(e))})
        except Exception as e:
            logger.error(f"[POST /itineraries/generate/stream] failed: {e}", exc_info=True)
            yield _sse({"type": "error", "message": "internal error"})

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("", response_model=list[Itinerary])
async def list_itineraries(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    store: Annotated[ItineraryStore, Depends(get_itinerary_store)],
) -> list[Itinerary]:
    """List the caller's itineraries, newest first."""
    itineraries = store.list_for_user(ctx)
    logger.info(f"[GET /itineraries] user_id={ctx.user_id}, count={len(itineraries)}")
    return itineraries


@router.get("/{trip_id}", response_model=Itinerary)
async def get_itinerary(
    trip_id: str,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    store: Annotated[ItineraryStore, Depends(get_itinerary_store)],
) -> Itinerary:
    """Get one itinerary with all days and activities.

    Raises:
        HTTPException: 404 if not found or owned by another user
    """
    itinerary = store.get(trip_id, ctx)
    if itinerary is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Itinerary not found")
    return itinerary


@router.patch("/{trip_id}", response_model=Itinerary)
async def update_itinerary(
    trip_id: str,
    body: UpdateItineraryRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    store: Annotated[ItineraryStore, Depends(get_itinerary_store)],
) -> Itinerary:
    """Update trip-level metadata (destination, dates, interests).

    Raises:
        HTTPException: 400 if nothing to update or the dates exclude planned days,
            404 if not found
    """
    update = MetadataUpdate(
        destination=body.destination,
        start_date=body.start_date,
        end_date=body.end_date,
        interests=parse_interests(body.interests) if body.interests is not None else None,
    )
    if update.is_empty():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nothing to update")

    try:
        updated = store.update_metadata(trip_id, update, ctx, datetime.now(timezone.utc))
    except InvalidDateRange as e:
        logger.warning(f"[PATCH /itineraries/{trip_id}] rejected: {e}")
        raise to_http_error(e) from e

    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Itinerary not found")

    logger.info(f"[PATCH /itineraries/{trip_id}] updated")
    return updated


@router.delete("/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_itinerary(
    trip_id: str,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    store: Annotated[ItineraryStore, Depends(get_itinerary_store)],
) -> Response:
    """Delete an itinerary.

    Raises:
        HTTPException: 404 if not found or owned by another user
    """
    if not store.delete(trip_id, ctx):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Itinerary not found")

    logger.info(f"[DELETE /itineraries/{trip_id}] deleted")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{trip_id}/edit", response_model=EditItineraryResponse)
async def edit(
    trip_id: str,
    body: EditItineraryRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    store: Annotated[ItineraryStore, Depends(get_itinerary_store)],
    client_factory: Annotated[ClientFactory, Depends(get_client_factory)],
) -> EditItineraryResponse:
    """Apply a free-text edit to the selected activity.

    Raises:
        HTTPException: 400 invalid selection, 404 not found, 409 stale selection,
            503 edit service unavailable
    """
    logger.info(
        f"[POST /itineraries/{trip_id}/edit] user_id={ctx.user_id}, "
        f"day={body.selection.day_index}, activity={body.selection.activity_index}"
    )

    try:
        async with client_factory() as client:
            result = await edit_itinerary(
                client, store, trip_id, ctx, body.edit_request, body.selection
            )
    except TriplineError as e:
        logger.warning(f"[POST /itineraries/{trip_id}/edit] failed: {e}")
        raise to_http_error(e) from e

    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Itinerary not found")

    return EditItineraryResponse(
        itinerary=result.itinerary,
        change_summary=result.change_summary,
        operation=result.operation,
    )
