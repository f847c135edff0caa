"""Canonical itinerary models - Itinerary / Day / Activity."""

from datetime import datetime

from pydantic import Field

from backend.tripline.models.common import NOT_AVAILABLE, CamelModel, Geo, calendar_date


class Activity(CamelModel):
    """Single scheduled stop within a day.

    ``order`` is unset on freshly normalized candidates and assigned by the bucketer.
    """

    id: str | None = None
    name: str = NOT_AVAILABLE
    location_name: str = NOT_AVAILABLE
    location_geo: Geo = Field(default_factory=Geo)
    time_start: str
    time_end: str = ""
    tags: list[str] = Field(..., min_length=1)
    description: str = NOT_AVAILABLE
    url: str | None = None
    order: int | None = Field(None, ge=0)

    @property
    def category(self) -> str:
        """Primary category, used for icon/color selection."""
        return self.tags[0]

    @property
    def has_description(self) -> bool:
        """Whether the description carries real text."""
        return self.description != NOT_AVAILABLE

    @property
    def date_key(self) -> str:
        """Calendar-date portion of ``time_start`` (``YYYY-MM-DD``)."""
        return calendar_date(self.time_start)


class Day(CamelModel):
    """One calendar day of a trip."""

    date: str
    day_number: int = Field(..., ge=1)
    notes: str | None = None
    activities: list[Activity] = Field(default_factory=list)


class Itinerary(CamelModel):
    """Complete trip owned by a single user."""

    id: str | None = None
    user_id: str
    destination: str
    start_date: str
    end_date: str
    interests: list[str] = Field(default_factory=list)
    timezone: str
    created_at: datetime
    updated_at: datetime
    days: list[Day] = Field(default_factory=list)

    def activity_count(self) -> int:
        """Total number of activities across all days."""
        return sum(len(day.activities) for day in self.days)
