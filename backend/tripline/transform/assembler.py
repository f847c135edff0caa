"""Itinerary assembler - bucketed days plus trip metadata into an Itinerary."""

import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from backend.tripline.models.itinerary import Day, Itinerary
from backend.tripline.models.upstream import GenerationPayload
from backend.tripline.transform.bucketer import bucket_activities, date_key
from backend.tripline.transform.normalizer import normalize_events
from backend.tripline.transform.timezones import SubstringTimezoneResolver, TimezoneResolver

logger = logging.getLogger(__name__)


def parse_interests(interests: str | Sequence[str] | None) -> list[str]:
    """Split comma-separated interests into a trimmed, non-empty, ordered list."""
    if interests is None:
        return []
    parts = interests.split(",") if isinstance(interests, str) else list(interests)
    return [part.strip() for part in parts if isinstance(part, str) and part.strip()]


def assemble_itinerary(
    days: list[Day],
    *,
    user_id: str,
    destination: str,
    interests: str | Sequence[str] | None,
    start_date: str | None = None,
    end_date: str | None = None,
    timezone_name: str | None = None,
    resolver: TimezoneResolver | None = None,
    now: datetime | None = None,
) -> Itinerary:
    """Combine days with trip-level metadata.

    Args:
        days: Bucketer output (may be empty; passed through unchanged)
        user_id: Owner of the trip
        destination: City/region display name
        interests: Comma-separated string or list of interests
        start_date: Explicit trip start, else derived from the first day
        end_date: Explicit trip end, else derived from the last day
        timezone_name: Explicit zone from the generator, else resolved from destination
        resolver: Timezone resolver (default substring table)
        now: Assembly instant (for testing)

    Returns:
        Itinerary with createdAt == updatedAt == assembly instant
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if resolver is None:
        resolver = SubstringTimezoneResolver()

    if not start_date:
        start_date = f"{date_key(days[0].date)}T00:00:00" if days else now.isoformat()
    if not end_date:
        end_date = f"{date_key(days[-1].date)}T23:59:59" if days else now.isoformat()

    return Itinerary(
        user_id=user_id,
        destination=destination,
        start_date=start_date,
        end_date=end_date,
        interests=parse_interests(interests),
        timezone=timezone_name or resolver.resolve(destination),
        created_at=now,
        updated_at=now,
        days=days,
    )


def build_itinerary(
    payload: GenerationPayload,
    *,
    user_id: str,
    destination: str,
    interests: str | Sequence[str] | None,
    start_date: str | None = None,
    end_date: str | None = None,
    resolver: TimezoneResolver | None = None,
    now: datetime | None = None,
) -> Itinerary:
    """Run the full pipeline (normalize -> bucket -> assemble) on a final payload."""
    candidates = normalize_events(payload.itinerary)
    days = bucket_activities(candidates, range_start=start_date, range_end=end_date)

    logger.info(
        f"Assembled {len(days)} days from {len(candidates)} events for {destination}"
    )

    return assemble_itinerary(
        days,
        user_id=user_id,
        destination=destination,
        interests=interests,
        start_date=start_date,
        end_date=end_date,
        timezone_name=payload.timezone,
        resolver=resolver,
        now=now,
    )
