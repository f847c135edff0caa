"""SQL implementations of repository interfaces."""

from datetime import datetime

from sqlalchemy.orm import Session

from backend.tripline.db.context import RequestContext
from backend.tripline.db.models import Trip
from backend.tripline.db.queries import query_trips
from backend.tripline.db.repositories import MetadataUpdate, new_id, with_activity_ids
from backend.tripline.models.itinerary import Itinerary


def _document(itinerary: Itinerary) -> dict:
    return itinerary.model_dump(mode="json", by_alias=True)


class SqlItineraryStore:
    """SQL implementation of ItineraryStore."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _row(self, trip_id: str, ctx: RequestContext) -> Trip | None:
        return query_trips(self._session, ctx).filter(Trip.trip_id == trip_id).first()

    def create(self, itinerary: Itinerary, ctx: RequestContext) -> str:
        """Persist a new itinerary."""
        trip_id = new_id()
        stored = with_activity_ids(itinerary).model_copy(
            update={"id": trip_id, "user_id": ctx.user_id}
        )

        trip = Trip(
            trip_id=trip_id,
            user_id=ctx.user_id,
            destination=stored.destination,
            data=_document(stored),
            created_at=stored.created_at,
            updated_at=stored.updated_at,
        )

        self._session.add(trip)
        self._session.commit()

        return trip_id

    def get(self, trip_id: str, ctx: RequestContext) -> Itinerary | None:
        """Get itinerary by trip ID."""
        trip = self._row(trip_id, ctx)

        if trip is None:
            return None

        return Itinerary.model_validate(trip.data)

    def list_for_user(self, ctx: RequestContext) -> list[Itinerary]:
        """List the caller's itineraries, newest first."""
        trips = query_trips(self._session, ctx).order_by(Trip.created_at.desc()).all()
        return [Itinerary.model_validate(trip.data) for trip in trips]

    def replace(self, trip_id: str, itinerary: Itinerary, ctx: RequestContext) -> bool:
        """Replace a stored itinerary wholesale."""
        trip = self._row(trip_id, ctx)

        if trip is None:
            return False

        stored = with_activity_ids(itinerary).model_copy(
            update={"id": trip_id, "user_id": ctx.user_id}
        )
        trip.destination = stored.destination
        trip.data = _document(stored)
        trip.updated_at = stored.updated_at

        self._session.commit()
        return True

    def update_metadata(
        self, trip_id: str, update: MetadataUpdate, ctx: RequestContext, now: datetime
    ) -> Itinerary | None:
        """Apply a metadata update and refresh updatedAt."""
        trip = self._row(trip_id, ctx)

        if trip is None:
            return None

        updated = update.apply(Itinerary.model_validate(trip.data), now)
        trip.destination = updated.destination
        trip.data = _document(updated)
        trip.updated_at = now

        self._session.commit()
        return updated

    def delete(self, trip_id: str, ctx: RequestContext) -> bool:
        """Delete an itinerary."""
        trip = self._row(trip_id, ctx)

        if trip is None:
            return False

        self._session.delete(trip)
        self._session.commit()
        return True
