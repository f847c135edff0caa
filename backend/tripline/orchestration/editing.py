"""Edit flow - selection, edit service round trip, patch, persist."""

import logging
from typing import Any

from backend.tripline.adapters.itinerary_server import EditClient
from backend.tripline.config import Settings, get_settings
from backend.tripline.db.context import RequestContext
from backend.tripline.db.repositories import ItineraryStore
from backend.tripline.edits.patch import apply_patch
from backend.tripline.edits.selection import validate_selection
from backend.tripline.errors import InvalidSelection, StaleSelection, UpstreamServiceUnavailable
from backend.tripline.models.edits import PatchResult, Selection
from backend.tripline.models.itinerary import Activity, Itinerary
from backend.tripline.models.upstream import EditServiceRequest
from backend.tripline.utils.metrics import record_edit

logger = logging.getLogger(__name__)


def current_activity_payload(activity: Activity) -> dict[str, Any]:
    """Activity in the edit service's ``current_activity`` shape."""
    return {
        "name": activity.name,
        "location": activity.location_name,
        "coordinates": {
            "lat": activity.location_geo.latitude,
            "lng": activity.location_geo.longitude,
        },
        "start_time": activity.time_start,
        "end_time": activity.time_end,
        "description": activity.description,
        "tags": list(activity.tags),
    }


def build_edit_request(
    itinerary: Itinerary, selection: Selection, edit_request: str
) -> EditServiceRequest:
    """Edit service request for the selected activity."""
    day = itinerary.days[selection.day_index]
    return EditServiceRequest(
        edit_request=edit_request,
        current_activity=current_activity_payload(day.activities[selection.activity_index]),
        city=itinerary.destination,
        day_date=day.date,
        interests=list(itinerary.interests),
    )


async def edit_itinerary(
    client: EditClient,
    store: ItineraryStore,
    trip_id: str,
    ctx: RequestContext,
    edit_request: str,
    selection: Selection,
    settings: Settings | None = None,
) -> PatchResult | None:
    """Apply a free-text edit to one activity of a stored itinerary.

    The patch is applied to the itinerary as stored after the edit service
    answers, so a concurrent change surfaces as StaleSelection.

    Returns:
        PatchResult, or None if the trip does not exist for this owner

    Raises:
        InvalidSelection: If the selection is out of bounds for the stored snapshot
        UpstreamServiceUnavailable: If the edit service is unreachable or misbehaves
        StaleSelection: If the selected activity changed during the round trip
    """
    settings = settings or get_settings()

    itinerary = store.get(trip_id, ctx)
    if itinerary is None:
        return None

    try:
        validated = validate_selection(
            itinerary, selection.day_index, selection.activity_index, selection.activity_id
        )
        # Stored activities always carry ids; pin the target so a shifted day is stale.
        selected = itinerary.days[validated.day_index].activities[validated.activity_index]
        validated = validated.model_copy(
            update={"activity_id": validated.activity_id or selected.id}
        )
        await client.check_health(settings.edit_health_check_timeout_s)
        response = await client.edit(build_edit_request(itinerary, validated, edit_request))

        current = store.get(trip_id, ctx)
        if current is None:
            raise StaleSelection(
                validated.day_index, validated.activity_index, "itinerary no longer exists"
            )

        result = apply_patch(current, validated, response)
    except InvalidSelection:
        record_edit("unknown", "invalid_selection")
        raise
    except UpstreamServiceUnavailable:
        record_edit("unknown", "upstream_error")
        raise
    except StaleSelection:
        record_edit(response.operation, "stale_selection")
        raise

    store.replace(trip_id, result.itinerary, ctx)
    persisted = store.get(trip_id, ctx)
    if persisted is not None:
        result = result.model_copy(update={"itinerary": persisted})

    record_edit(result.operation, "success")
    logger.info(f"Edited trip {trip_id}: {result.operation} - {result.change_summary}")
    return result
