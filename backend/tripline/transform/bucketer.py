"""Day bucketer - group normalized activities into ordered calendar days."""

import logging
from datetime import datetime, timezone

from backend.tripline.models.common import calendar_date
from backend.tripline.models.itinerary import Activity, Day

logger = logging.getLogger(__name__)


def date_key(timestamp: str | None) -> str:
    """Calendar-date prefix of an ISO timestamp, used as the day bucket key."""
    return calendar_date(timestamp)


def parse_instant(timestamp: str) -> datetime | None:
    """Parse an ISO timestamp into an aware datetime (naive values read as UTC)."""
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _instant_sort_key(activity: Activity) -> tuple[int, datetime]:
    instant = parse_instant(activity.time_start)
    if instant is None:
        # Unparseable timestamps go last; sorted() keeps their relative order.
        return (1, datetime.min.replace(tzinfo=timezone.utc))
    return (0, instant)


def day_summary(day_number: int, activity_count: int) -> str:
    """Auto-generated notes line for a day."""
    return f"Day {day_number}: {activity_count} activities planned"


def renumber(activities: list[Activity]) -> list[Activity]:
    """Assign ``order = 0..N-1`` following current list order."""
    return [activity.model_copy(update={"order": index}) for index, activity in enumerate(activities)]


def bucket_activities(
    candidates: list[Activity],
    range_start: str | None = None,
    range_end: str | None = None,
    notes: dict[str, str] | None = None,
) -> list[Day]:
    """Bucket activity candidates into days.

    Args:
        candidates: Normalized activities in upstream order
        range_start: Optional inclusive lower bound (date or full timestamp)
        range_end: Optional inclusive upper bound (date or full timestamp)
        notes: Optional upstream-supplied notes keyed by ``YYYY-MM-DD``

    Returns:
        Days sorted by date, each with time-sorted, contiguously ordered activities.
        Empty when every candidate was filtered out.
    """
    start_key = date_key(range_start) or None
    end_key = date_key(range_end) or None

    buckets: dict[str, list[Activity]] = {}
    dropped = 0

    for candidate in candidates:
        key = date_key(candidate.time_start)
        if not key:
            logger.warning(f"Dropping activity without start time: {candidate.name}")
            dropped += 1
            continue
        if start_key and key < start_key:
            dropped += 1
            continue
        if end_key and key > end_key:
            dropped += 1
            continue
        buckets.setdefault(key, []).append(candidate)

    if dropped:
        logger.info(
            f"Bucketing kept {len(candidates) - dropped}/{len(candidates)} activities "
            f"(range {start_key or '-'}..{end_key or '-'})"
        )

    days: list[Day] = []
    for index, key in enumerate(sorted(buckets)):
        activities = renumber(sorted(buckets[key], key=_instant_sort_key))
        day_number = index + 1
        days.append(
            Day(
                date=f"{key}T00:00:00",
                day_number=day_number,
                notes=(notes or {}).get(key) or day_summary(day_number, len(activities)),
                activities=activities,
            )
        )

    return days


def flatten_days(days: list[Day]) -> list[Activity]:
    """Flatten days back into a single activity list in day/order sequence."""
    return [activity for day in days for activity in day.activities]
