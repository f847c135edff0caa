"""Models package - re-exports for convenience."""

from backend.tripline.models.common import DEFAULT_TAG, NOT_AVAILABLE, CamelModel, Geo
from backend.tripline.models.edits import PatchOperation, PatchResult, Selection
from backend.tripline.models.itinerary import Activity, Day, Itinerary
from backend.tripline.models.upstream import (
    EditResponse,
    EditServiceRequest,
    GenerationPayload,
    GenerationRequest,
    LocationAbsent,
    LocationAsAddressCity,
    LocationAsString,
    LocationAsVenue,
    LocationShape,
    RawEvent,
    StreamEvent,
)

__all__ = [
    # Common
    "NOT_AVAILABLE",
    "DEFAULT_TAG",
    "CamelModel",
    "Geo",
    # Itinerary
    "Itinerary",
    "Day",
    "Activity",
    # Edits
    "Selection",
    "PatchResult",
    "PatchOperation",
    # Upstream
    "RawEvent",
    "LocationShape",
    "LocationAsString",
    "LocationAsAddressCity",
    "LocationAsVenue",
    "LocationAbsent",
    "GenerationRequest",
    "GenerationPayload",
    "StreamEvent",
    "EditServiceRequest",
    "EditResponse",
]
