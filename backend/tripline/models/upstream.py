"""Upstream payload models - generation and edit service contracts.

Raw events stay untyped mappings; only the shapes the pipeline branches on
(locations, coordinates) are parsed into explicit variants here.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from backend.tripline.models.common import NOT_AVAILABLE, Geo

RawEvent = Mapping[str, Any]


@dataclass(frozen=True)
class LocationAsString:
    """Location given as a ready-made display string."""

    text: str


@dataclass(frozen=True)
class LocationAsAddressCity:
    """Location given as a street address plus city."""

    address: str
    city: str


@dataclass(frozen=True)
class LocationAsVenue:
    """Location given only as a venue name."""

    venue: str


@dataclass(frozen=True)
class LocationAbsent:
    """No usable location."""


LocationShape = LocationAsString | LocationAsAddressCity | LocationAsVenue | LocationAbsent


def parse_location(value: Any) -> LocationShape:
    """Classify an upstream ``location`` value into one of the known shapes."""
    if isinstance(value, str):
        return LocationAsString(value) if value else LocationAbsent()
    if isinstance(value, Mapping):
        address = value.get("address")
        city = value.get("city")
        if address and city:
            return LocationAsAddressCity(address=str(address), city=str(city))
        venue = value.get("venue")
        if venue:
            return LocationAsVenue(venue=str(venue))
    return LocationAbsent()


def location_display_name(shape: LocationShape) -> str:
    """Flatten a location shape into a display string."""
    if isinstance(shape, LocationAsString):
        return shape.text
    if isinstance(shape, LocationAsAddressCity):
        return f"{shape.address}, {shape.city}"
    if isinstance(shape, LocationAsVenue):
        return shape.venue
    if isinstance(shape, LocationAbsent):
        return NOT_AVAILABLE
    raise TypeError(f"Unknown location shape: {shape!r}")


def _coordinate(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def parse_coordinates(value: Any) -> Geo | None:
    """Parse ``{lat, lng}``; returns None when no coordinate pair is present."""
    if not isinstance(value, Mapping):
        return None
    latitude = _coordinate(value.get("lat"))
    longitude = _coordinate(value.get("lng"))
    if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
        return Geo()
    return Geo(latitude=latitude, longitude=longitude)


class GenerationRequest(BaseModel):
    """Request body sent to the generation service."""

    city: str
    interests: str
    max_results: int = 20
    start_date: str | None = None
    end_date: str | None = None


class GenerationPayload(BaseModel):
    """Final payload of the generation service (single-shot or stream ``complete``)."""

    model_config = ConfigDict(extra="allow")

    itinerary: list[dict[str, Any]]
    timezone: str | None = None
    total_items: int | None = None
    activities: int | None = None
    events: int | None = None
    generated_at: str | None = None

    def meta(self) -> dict[str, Any]:
        """Upstream bookkeeping passed through to callers."""
        return {
            "totalItems": self.total_items,
            "activities": self.activities,
            "events": self.events,
            "generatedAt": self.generated_at,
        }


class StreamEvent(BaseModel):
    """One server-sent event from the streaming generation endpoint."""

    model_config = ConfigDict(extra="allow")

    type: Literal["progress", "complete", "error"]
    phase: str | None = None
    message: str | None = None
    detail: str | None = None
    percent: float | None = None
    data: dict[str, Any] | None = None


class EditServiceRequest(BaseModel):
    """Request body sent to the edit service."""

    edit_request: str
    current_activity: dict[str, Any]
    city: str
    day_date: str
    interests: list[str]


class EditResponse(BaseModel):
    """Single-activity patch returned by the edit service."""

    model_config = ConfigDict(extra="ignore")

    operation: Literal["update", "add", "delete"] = "update"
    updated_activity: dict[str, Any] | None = None
    new_activity: dict[str, Any] | None = None
    change_summary: str | None = Field(
        None, validation_alias=AliasChoices("change_summary", "changeSummary")
    )

    @model_validator(mode="before")
    @classmethod
    def _default_operation(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("operation") is None:
            return {**data, "operation": "update"}
        return data

    @model_validator(mode="after")
    def _check_add_payload(self) -> "EditResponse":
        if self.operation == "add" and self.new_activity is None:
            raise ValueError("operation 'add' requires new_activity")
        return self
