"""Raw-event normalizer - one upstream event to one canonical Activity.

Normalization never raises: every missing or malformed field degrades to its
sentinel, because the upstream service is not under our control.
"""

from collections.abc import Mapping
from typing import Any

from backend.tripline.models.common import DEFAULT_TAG, NOT_AVAILABLE, Geo
from backend.tripline.models.itinerary import Activity
from backend.tripline.models.upstream import (
    RawEvent,
    location_display_name,
    parse_coordinates,
    parse_location,
)

# Checked in order; first match wins (a restaurant inside a resort is a restaurant).
CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("restaurant", ("restaurant", "cafe", "bakery", "dining", "food")),
    ("hotel", ("hotel", "resort", "accommodation")),
)


def classify_category(name: str | None, description: str | None) -> str:
    """Infer a category from free text.

    Args:
        name: Activity name (may be None)
        description: Activity description (may be None)

    Returns:
        "restaurant", "hotel" or "attraction"
    """
    haystacks = ((name or "").lower(), (description or "").lower())
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords for text in haystacks):
            return category
    return DEFAULT_TAG


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def extract_tags(event: RawEvent) -> list[str]:
    """Upstream tags verbatim, else ``[category]``, else the classifier's guess."""
    raw_tags = event.get("tags")
    if isinstance(raw_tags, list):
        tags = [tag for tag in raw_tags if isinstance(tag, str) and tag]
        if tags:
            return tags

    category = _text(event.get("category"))
    if category:
        return [category]

    return [classify_category(_text(event.get("name")), _text(event.get("description")))]


def extract_url(event: RawEvent) -> str | None:
    """Prefer nested ``source.url`` over a top-level ``url``."""
    source = event.get("source")
    if isinstance(source, Mapping):
        url = _text(source.get("url"))
        if url:
            return url
    return _text(event.get("url"))


def normalize_event(event: RawEvent) -> Activity:
    """Convert one raw upstream event into an Activity with ``order`` unset."""
    if not isinstance(event, Mapping):
        event = {}

    start = event.get("start_time")
    end = event.get("end_time")

    return Activity(
        name=_text(event.get("name")) or NOT_AVAILABLE,
        location_name=location_display_name(parse_location(event.get("location"))),
        location_geo=parse_coordinates(event.get("coordinates")) or Geo(),
        time_start=start if isinstance(start, str) else "",
        time_end=end if isinstance(end, str) else "",
        tags=extract_tags(event),
        description=_text(event.get("description")) or NOT_AVAILABLE,
        url=extract_url(event),
    )


def normalize_events(events: list[Any]) -> list[Activity]:
    """Normalize a full upstream event list, preserving input order."""
    return [normalize_event(event) for event in events]
