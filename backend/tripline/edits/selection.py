"""Selection validation - the gate before any patch is attempted."""

from backend.tripline.errors import InvalidSelection
from backend.tripline.models.edits import Selection
from backend.tripline.models.itinerary import Itinerary


def _is_index(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_selection(
    itinerary: Itinerary,
    day_index: object,
    activity_index: object,
    activity_id: str | None = None,
) -> Selection:
    """Confirm both indices are in-bounds integers for this snapshot.

    Args:
        itinerary: Snapshot the selection was taken against
        day_index: Candidate day index
        activity_index: Candidate activity index within that day
        activity_id: Optional stable id carried through to the patch step

    Returns:
        Validated Selection

    Raises:
        InvalidSelection: Naming the first invalid index
    """
    if not _is_index(day_index) or not 0 <= day_index < len(itinerary.days):
        raise InvalidSelection("dayIndex", day_index)

    activities = itinerary.days[day_index].activities
    if not _is_index(activity_index) or not 0 <= activity_index < len(activities):
        raise InvalidSelection("activityIndex", activity_index)

    return Selection(day_index=day_index, activity_index=activity_index, activity_id=activity_id)
