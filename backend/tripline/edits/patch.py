"""Patch applicator - apply one edit-service operation to an itinerary.

The input itinerary is never mutated. After any operation the affected day's
``order`` values are renumbered in array order; activities are not re-sorted by
time, since an edit may place an activity deliberately.
"""

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from backend.tripline.errors import StaleSelection
from backend.tripline.models.common import DEFAULT_TAG, NOT_AVAILABLE, Geo
from backend.tripline.models.edits import DEFAULT_CHANGE_SUMMARY, PatchResult, Selection
from backend.tripline.models.itinerary import Activity, Itinerary
from backend.tripline.models.upstream import (
    EditResponse,
    LocationAbsent,
    location_display_name,
    parse_coordinates,
    parse_location,
)
from backend.tripline.transform.bucketer import renumber

logger = logging.getLogger(__name__)

NEW_ACTIVITY_NAME = "New activity"


def _text(payload: Mapping[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if isinstance(value, str) and value:
        return value
    return None


def _tags(payload: Mapping[str, Any]) -> list[str] | None:
    value = payload.get("tags")
    if not isinstance(value, list):
        return None
    tags = [tag for tag in value if isinstance(tag, str) and tag]
    return tags or None


def activity_updates(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Map an edit-service activity payload onto Activity fields that are present."""
    updates: dict[str, Any] = {}

    if name := _text(payload, "name"):
        updates["name"] = name

    location = parse_location(payload.get("location"))
    if not isinstance(location, LocationAbsent):
        updates["location_name"] = location_display_name(location)

    geo = parse_coordinates(payload.get("coordinates"))
    if geo is not None:
        updates["location_geo"] = geo

    if start := _text(payload, "start_time"):
        updates["time_start"] = start
    if end := _text(payload, "end_time"):
        updates["time_end"] = end

    if tags := _tags(payload):
        updates["tags"] = tags

    if description := _text(payload, "description"):
        updates["description"] = description
    if url := _text(payload, "url"):
        updates["url"] = url

    return updates


def build_inserted_activity(payload: Mapping[str, Any], anchor: Activity) -> Activity:
    """Build the activity for an ``add`` operation, placed after ``anchor``."""
    updates = activity_updates(payload)
    time_start = updates.get("time_start") or anchor.time_end
    return Activity(
        name=updates.get("name", NEW_ACTIVITY_NAME),
        location_name=updates.get("location_name", NOT_AVAILABLE),
        location_geo=updates.get("location_geo", Geo()),
        time_start=time_start,
        time_end=updates.get("time_end", time_start),
        tags=updates.get("tags", [DEFAULT_TAG]),
        description=updates.get("description", NOT_AVAILABLE),
        url=updates.get("url"),
    )


def _resolve_target(itinerary: Itinerary, selection: Selection) -> Activity:
    day_index = selection.day_index
    activity_index = selection.activity_index

    if not 0 <= day_index < len(itinerary.days):
        raise StaleSelection(day_index, activity_index, "day no longer exists")

    activities = itinerary.days[day_index].activities
    if not 0 <= activity_index < len(activities):
        raise StaleSelection(day_index, activity_index, "activity no longer exists")

    target = activities[activity_index]
    if selection.activity_id is not None and target.id != selection.activity_id:
        raise StaleSelection(day_index, activity_index, "activity at index has changed")

    return target


def apply_patch(
    itinerary: Itinerary,
    selection: Selection,
    response: EditResponse,
    now: datetime | None = None,
) -> PatchResult:
    """Apply one update/add/delete operation to a copy of the itinerary.

    Args:
        itinerary: Current snapshot (left untouched)
        selection: Validated selection against an earlier snapshot
        response: Edit-service response
        now: Patch instant (for testing)

    Returns:
        PatchResult with the new itinerary, change summary and operation

    Raises:
        StaleSelection: If the selected day/activity no longer exists
    """
    target = _resolve_target(itinerary, selection)

    patched = itinerary.model_copy(deep=True)
    day = patched.days[selection.day_index]
    activities = list(day.activities)
    activity_index: int | None = selection.activity_index

    if response.operation == "add":
        inserted = build_inserted_activity(response.new_activity or {}, target)
        activity_index = selection.activity_index + 1
        activities.insert(activity_index, inserted)
    elif response.operation == "delete":
        del activities[selection.activity_index]
        activity_index = None
    else:
        updates = activity_updates(response.updated_activity or {})
        activities[selection.activity_index] = target.model_copy(update=updates, deep=True)

    day.activities = renumber(activities)
    patched.updated_at = now or datetime.now(timezone.utc)

    logger.info(
        f"Applied {response.operation} at day={selection.day_index} "
        f"activity={selection.activity_index}; day now has {len(day.activities)} activities"
    )

    return PatchResult(
        itinerary=patched,
        change_summary=response.change_summary or DEFAULT_CHANGE_SUMMARY,
        operation=response.operation,
        activity_index=activity_index,
    )
