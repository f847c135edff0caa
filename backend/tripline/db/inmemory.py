"""In-memory implementations of repository interfaces."""

from datetime import datetime, timedelta

from backend.tripline.db.context import RequestContext
from backend.tripline.db.repositories import (
    MetadataUpdate,
    RetryAfter,
    new_id,
    with_activity_ids,
)
from backend.tripline.models.itinerary import Itinerary


class InMemoryItineraryStore:
    """In-memory implementation of ItineraryStore."""

    def __init__(self) -> None:
        self._itineraries: dict[str, Itinerary] = {}

    def _owned(self, trip_id: str, ctx: RequestContext) -> Itinerary | None:
        itinerary = self._itineraries.get(trip_id)

        # Enforce ownership
        if itinerary is None or itinerary.user_id != ctx.user_id:
            return None

        return itinerary

    def create(self, itinerary: Itinerary, ctx: RequestContext) -> str:
        """Persist a new itinerary."""
        trip_id = new_id()
        stored = with_activity_ids(itinerary).model_copy(
            update={"id": trip_id, "user_id": ctx.user_id}, deep=True
        )
        self._itineraries[trip_id] = stored
        return trip_id

    def get(self, trip_id: str, ctx: RequestContext) -> Itinerary | None:
        """Get itinerary by trip ID."""
        itinerary = self._owned(trip_id, ctx)
        return itinerary.model_copy(deep=True) if itinerary is not None else None

    def list_for_user(self, ctx: RequestContext) -> list[Itinerary]:
        """List the caller's itineraries, newest first."""
        results = [
            itinerary.model_copy(deep=True)
            for itinerary in self._itineraries.values()
            if itinerary.user_id == ctx.user_id
        ]
        results.sort(key=lambda x: x.created_at, reverse=True)
        return results

    def replace(self, trip_id: str, itinerary: Itinerary, ctx: RequestContext) -> bool:
        """Replace a stored itinerary wholesale."""
        if self._owned(trip_id, ctx) is None:
            return False

        self._itineraries[trip_id] = with_activity_ids(itinerary).model_copy(
            update={"id": trip_id, "user_id": ctx.user_id}, deep=True
        )
        return True

    def update_metadata(
        self, trip_id: str, update: MetadataUpdate, ctx: RequestContext, now: datetime
    ) -> Itinerary | None:
        """Apply a metadata update and refresh updatedAt."""
        itinerary = self._owned(trip_id, ctx)
        if itinerary is None:
            return None

        updated = update.apply(itinerary, now)
        self._itineraries[trip_id] = updated
        return updated.model_copy(deep=True)

    def delete(self, trip_id: str, ctx: RequestContext) -> bool:
        """Delete an itinerary."""
        if self._owned(trip_id, ctx) is None:
            return False

        del self._itineraries[trip_id]
        return True


class InMemoryRateLimiter:
    """In-memory implementation of RateLimiter using fixed window."""

    def __init__(self, max_requests: int, window_seconds: int = 60) -> None:
        """Initialize rate limiter.

        Args:
            max_requests: Maximum requests per window
            window_seconds: Window size in seconds (default 60)
        """
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._windows: dict[str, tuple[datetime, int]] = {}

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available."""
        window = self._windows.get(key)

        if window is None or now >= window[0] + timedelta(seconds=self._window_seconds):
            # First request or expired window
            self._windows[key] = (now, 1)
            return None

        window_start, count = window
        if count >= self._max_requests:
            seconds_remaining = int(
                (window_start + timedelta(seconds=self._window_seconds) - now).total_seconds()
            )
            return RetryAfter(seconds=max(1, seconds_remaining))

        self._windows[key] = (window_start, count + 1)
        return None
