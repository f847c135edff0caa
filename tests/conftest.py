"""Shared pytest fixtures for all test suites."""

from collections.abc import Callable, Generator
from datetime import datetime, timezone
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from backend.tripline.db.context import RequestContext
from backend.tripline.db.models import Base
from backend.tripline.models.itinerary import Activity, Day, Itinerary

FIXED_NOW = datetime(2025, 12, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now() -> datetime:
    """Deterministic assembly/patch instant."""
    return FIXED_NOW


@pytest.fixture
def ctx() -> RequestContext:
    """Request context for the primary test user."""
    return RequestContext(user_id="user-a")


@pytest.fixture
def other_ctx() -> RequestContext:
    """Request context for a second, unrelated user."""
    return RequestContext(user_id="user-b")


@pytest.fixture
def raw_events() -> list[dict[str, Any]]:
    """Upstream events covering each location shape, out of order across two days."""
    return [
        {
            "name": "Evening Jazz",
            "location": {"venue": "Blue Note"},
            "coordinates": {"lat": 40.7308, "lng": -74.0006},
            "start_time": "2025-12-02T20:00:00",
            "end_time": "2025-12-02T22:00:00",
            "category": "music",
            "description": "Live jazz set",
            "source": {"url": "https://example.com/jazz"},
        },
        {
            "name": "Morning Bakery Stop",
            "location": "Levain Bakery, New York",
            "coordinates": {"lat": 40.7799, "lng": -73.9805},
            "start_time": "2025-12-01T08:00:00",
            "end_time": "2025-12-01T09:00:00",
        },
        {
            "name": "Museum of Modern Art",
            "location": {"address": "11 W 53rd St", "city": "New York"},
            "coordinates": {"lat": 40.7614, "lng": -73.9776},
            "start_time": "2025-12-01T10:00:00",
            "end_time": "2025-12-01T12:30:00",
            "tags": ["museum", "art"],
            "description": "Modern art collection",
            "url": "https://example.com/moma",
        },
    ]


@pytest.fixture
def make_activity() -> Callable[..., Activity]:
    """Factory for activities with sensible defaults."""

    def _make(
        name: str = "Stop",
        time_start: str = "2025-12-01T10:00:00",
        time_end: str = "2025-12-01T11:00:00",
        **overrides: Any,
    ) -> Activity:
        fields: dict[str, Any] = {
            "name": name,
            "location_name": f"{name} Place",
            "time_start": time_start,
            "time_end": time_end,
            "tags": ["attraction"],
        }
        fields.update(overrides)
        return Activity(**fields)

    return _make


@pytest.fixture
def itinerary(make_activity: Callable[..., Activity]) -> Itinerary:
    """Two-day itinerary: three activities on day 0, one on day 1."""
    day_one = [
        make_activity("Breakfast", "2025-12-01T08:00:00", "2025-12-01T09:00:00", order=0, id="a1"),
        make_activity("Museum", "2025-12-01T10:00:00", "2025-12-01T12:00:00", order=1, id="a2"),
        make_activity("Park", "2025-12-01T13:00:00", "2025-12-01T15:00:00", order=2, id="a3"),
    ]
    day_two = [
        make_activity("Gallery", "2025-12-02T11:00:00", "2025-12-02T12:00:00", order=0, id="b1"),
    ]
    return Itinerary(
        user_id="user-a",
        destination="New York",
        start_date="2025-12-01T00:00:00",
        end_date="2025-12-02T23:59:59",
        interests=["art", "food"],
        timezone="America/New_York",
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
        days=[
            Day(date="2025-12-01T00:00:00", day_number=1, notes="Day 1", activities=day_one),
            Day(date="2025-12-02T00:00:00", day_number=2, notes="Day 2", activities=day_two),
        ],
    )


@pytest.fixture
def sqlite_session() -> Generator[Session, None, None]:
    """Session on a fresh in-memory SQLite database with tables created."""
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(engine)

    session = sessionmaker(bind=engine, expire_on_commit=False)()
    yield session

    session.close()
    Base.metadata.drop_all(engine)
    engine.dispose()
