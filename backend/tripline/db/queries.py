"""Ownership-safe query helpers."""

from sqlalchemy.orm import Query, Session

from backend.tripline.db.context import RequestContext
from backend.tripline.db.models import Trip


def query_trips(session: Session, ctx: RequestContext) -> Query:
    """Query trip table with owner scoping enforced.

    Args:
        session: SQLAlchemy session
        ctx: Request context with user_id

    Returns:
        Query filtered by user_id
    """
    return session.query(Trip).filter(Trip.user_id == ctx.user_id)
