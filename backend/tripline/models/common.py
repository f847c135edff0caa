"""Common types and sentinels shared across all models."""

import re

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Placeholder for genuinely absent upstream text; consumers treat it as "absent".
NOT_AVAILABLE = "N/A"

# Tag used when neither the upstream nor the classifier says otherwise.
DEFAULT_TAG = "attraction"


def calendar_date(timestamp: str | None) -> str:
    """Calendar-date prefix of an ISO timestamp (``T`` or space separated).

    Plain string extraction, no timezone conversion: the raw date portion is the
    trip-local date regardless of where the code runs.
    """
    if not timestamp:
        return ""
    return re.split(r"[T ]", timestamp.strip(), maxsplit=1)[0]


class CamelModel(BaseModel):
    """Base model exposing camelCase field names at the JSON boundary."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Geo(CamelModel):
    """Geographic coordinates (WGS84).

    ``(0, 0)`` is the "no map pin" sentinel, not the equator/prime-meridian point.
    """

    latitude: float = Field(0.0, ge=-90, le=90)
    longitude: float = Field(0.0, ge=-180, le=180)

    @property
    def has_pin(self) -> bool:
        """Whether these coordinates denote a real location."""
        return not (self.latitude == 0 and self.longitude == 0)
