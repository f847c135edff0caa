"""Edit models - selections and patch results."""

from typing import Literal

from pydantic import Field, StrictInt

from backend.tripline.models.common import CamelModel
from backend.tripline.models.itinerary import Itinerary

PatchOperation = Literal["update", "add", "delete"]

DEFAULT_CHANGE_SUMMARY = "Itinerary updated."


class Selection(CamelModel):
    """Positional pointer into one itinerary snapshot.

    ``activity_id`` is optional; when present it pins the selection to a specific
    activity so that a since-mutated day is detected as stale.
    """

    day_index: StrictInt
    activity_index: StrictInt
    activity_id: str | None = None


class PatchResult(CamelModel):
    """Outcome of applying one edit-service patch."""

    itinerary: Itinerary
    change_summary: str = DEFAULT_CHANGE_SUMMARY
    operation: PatchOperation = "update"
    activity_index: int | None = Field(
        None, description="Index of the updated or inserted activity; None after delete"
    )
