"""Repository protocol interfaces for data access."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from backend.tripline.db.context import RequestContext
from backend.tripline.errors import InvalidDateRange
from backend.tripline.models.common import calendar_date
from backend.tripline.models.itinerary import Itinerary


def new_id() -> str:
    """Opaque identifier for trips and activities."""
    return uuid.uuid4().hex


def with_activity_ids(itinerary: Itinerary) -> Itinerary:
    """Copy of the itinerary where every activity carries an id."""
    if all(activity.id for day in itinerary.days for activity in day.activities):
        return itinerary

    stamped = itinerary.model_copy(deep=True)
    for day in stamped.days:
        day.activities = [
            activity if activity.id else activity.model_copy(update={"id": new_id()})
            for activity in day.activities
        ]
    return stamped


@dataclass
class MetadataUpdate:
    """Trip-level fields that may be edited directly."""

    destination: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    interests: list[str] | None = None

    def is_empty(self) -> bool:
        """Whether no field is set."""
        return all(
            value is None
            for value in (self.destination, self.start_date, self.end_date, self.interests)
        )

    def check_dates(self, itinerary: Itinerary) -> None:
        """Ensure new trip dates are ordered and still cover every planned activity.

        Raises:
            InvalidDateRange: If start is after end or an activity falls outside the range
        """
        if self.start_date is None and self.end_date is None:
            return

        start = calendar_date(self.start_date or itinerary.start_date)
        end = calendar_date(self.end_date or itinerary.end_date)
        if start > end:
            raise InvalidDateRange(f"startDate {start} is after endDate {end}")

        for day in itinerary.days:
            for activity in day.activities:
                if not start <= activity.date_key <= end:
                    raise InvalidDateRange(
                        f"Activity {activity.name!r} on {activity.date_key} falls outside "
                        f"{start}..{end}"
                    )

    def apply(self, itinerary: Itinerary, now: datetime) -> Itinerary:
        """Copy of the itinerary with the set fields applied and updatedAt refreshed.

        Raises:
            InvalidDateRange: If the new dates would exclude planned activities
        """
        self.check_dates(itinerary)
        changes: dict[str, object] = {"updated_at": now}
        if self.destination is not None:
            changes["destination"] = self.destination
        if self.start_date is not None:
            changes["start_date"] = self.start_date
        if self.end_date is not None:
            changes["end_date"] = self.end_date
        if self.interests is not None:
            changes["interests"] = list(self.interests)
        return itinerary.model_copy(update=changes)


class ItineraryStore(Protocol):
    """Document store for itineraries, scoped by owner."""

    def create(self, itinerary: Itinerary, ctx: RequestContext) -> str:
        """Persist a new itinerary.

        Args:
            itinerary: Itinerary to store (userId is taken from ctx)
            ctx: Request context

        Returns:
            Trip ID
        """
        ...

    def get(self, trip_id: str, ctx: RequestContext) -> Itinerary | None:
        """Get itinerary by trip ID.

        Args:
            trip_id: Trip ID
            ctx: Request context (enforces ownership)

        Returns:
            Itinerary or None if not found or not owned by the caller
        """
        ...

    def list_for_user(self, ctx: RequestContext) -> list[Itinerary]:
        """List the caller's itineraries, newest first."""
        ...

    def replace(self, trip_id: str, itinerary: Itinerary, ctx: RequestContext) -> bool:
        """Replace a stored itinerary wholesale.

        Returns:
            False if the trip does not exist for this owner
        """
        ...

    def update_metadata(
        self, trip_id: str, update: MetadataUpdate, ctx: RequestContext, now: datetime
    ) -> Itinerary | None:
        """Apply a metadata update and refresh updatedAt.

        Returns:
            Updated itinerary, or None if not found
        """
        ...

    def delete(self, trip_id: str, ctx: RequestContext) -> bool:
        """Delete an itinerary with all its days and activities.

        Returns:
            False if the trip does not exist for this owner
        """
        ...


@dataclass
class RetryAfter:
    """Rate limit retry-after information."""

    seconds: int


class RateLimiter(Protocol):
    """Rate limiter interface."""

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available.

        Args:
            key: Rate limit key
            now: Current timestamp

        Returns:
            RetryAfter if over quota, None if allowed
        """
        ...
