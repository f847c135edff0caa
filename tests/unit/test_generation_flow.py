"""Tests for single-shot and streaming generation flows."""

from collections.abc import AsyncGenerator
from typing import Any

import pytest

from backend.tripline.config import Settings
from backend.tripline.errors import EmptyGenerationResult, UpstreamServiceUnavailable
from backend.tripline.models.upstream import GenerationPayload, GenerationRequest, StreamEvent
from backend.tripline.orchestration.generation import (
    GenerationOutcome,
    TripRequest,
    build_generation_request,
    generate_itinerary,
    stream_itinerary,
)
from backend.tripline.transform.timezones import SubstringTimezoneResolver


class FakeGenerationClient:
    """Stands in for ItineraryServerClient with canned answers."""

    def __init__(
        self,
        payload: dict[str, Any] | None = None,
        stream: list[StreamEvent] | None = None,
        healthy: bool = True,
    ) -> None:
        self.payload = payload
        self.stream = stream or []
        self.healthy = healthy
        self.requests: list[GenerationRequest] = []
        self.stream_closed = False

    async def check_health(self, timeout: float | None = None) -> None:
        if not self.healthy:
            raise UpstreamServiceUnavailable("Failed to connect to itinerary server")

    async def generate(self, request: GenerationRequest) -> GenerationPayload:
        self.requests.append(request)
        return GenerationPayload.model_validate(self.payload)

    async def stream_generation(
        self, request: GenerationRequest
    ) -> AsyncGenerator[StreamEvent, None]:
        self.requests.append(request)
        try:
            for event in self.stream:
                yield event
        finally:
            self.stream_closed = True


@pytest.fixture
def settings() -> Settings:
    """Settings with a small result cap."""
    return Settings(max_results=7)


@pytest.fixture
def trip() -> TripRequest:
    """Trip request for New York with a list of interests."""
    return TripRequest(city="New York", interests=["art", "food"], user_id="user-a")


def test_build_generation_request_joins_interests(trip: TripRequest, settings: Settings) -> None:
    """List interests are joined and the configured cap is applied."""
    request = build_generation_request(trip, settings)

    assert request.city == "New York"
    assert request.interests == "art, food"
    assert request.max_results == 7


@pytest.mark.asyncio
async def test_generate_itinerary_assembles(
    trip: TripRequest, settings: Settings, raw_events: list[dict[str, Any]]
) -> None:
    """A healthy server with events yields an assembled itinerary and meta."""
    client = FakeGenerationClient(payload={"itinerary": raw_events, "total_items": 3})

    outcome = await generate_itinerary(client, trip, settings)

    assert len(outcome.itinerary.days) == 2
    assert outcome.itinerary.user_id == "user-a"
    assert outcome.itinerary.destination == "New York"
    assert outcome.itinerary.interests == ["art", "food"]
    assert outcome.itinerary.timezone == "America/New_York"
    assert outcome.meta["totalItems"] == 3


@pytest.mark.asyncio
async def test_generate_itinerary_uses_resolver(
    trip: TripRequest, settings: Settings, raw_events: list[dict[str, Any]]
) -> None:
    """The injected resolver decides the zone when upstream gives none."""
    client = FakeGenerationClient(payload={"itinerary": raw_events})
    resolver = SubstringTimezoneResolver({"york": "Test/Zone"})

    outcome = await generate_itinerary(client, trip, settings, resolver)

    assert outcome.itinerary.timezone == "Test/Zone"


@pytest.mark.asyncio
async def test_generate_itinerary_empty_events(trip: TripRequest, settings: Settings) -> None:
    """Zero events is an empty generation result."""
    client = FakeGenerationClient(payload={"itinerary": []})

    with pytest.raises(EmptyGenerationResult):
        await generate_itinerary(client, trip, settings)


@pytest.mark.asyncio
async def test_generate_itinerary_all_filtered(
    settings: Settings, raw_events: list[dict[str, Any]]
) -> None:
    """Events outside the requested dates leave zero days, which is empty."""
    trip = TripRequest(
        city="New York",
        interests="art",
        user_id="user-a",
        start_date="2026-01-01",
        end_date="2026-01-02",
    )
    client = FakeGenerationClient(payload={"itinerary": raw_events})

    with pytest.raises(EmptyGenerationResult) as exc_info:
        await generate_itinerary(client, trip, settings)

    assert "selected dates" in exc_info.value.message


@pytest.mark.asyncio
async def test_generate_itinerary_unhealthy(trip: TripRequest, settings: Settings) -> None:
    """A failed health probe stops generation before any request."""
    client = FakeGenerationClient(payload={"itinerary": []}, healthy=False)

    with pytest.raises(UpstreamServiceUnavailable):
        await generate_itinerary(client, trip, settings)

    assert client.requests == []


@pytest.mark.asyncio
async def test_stream_itinerary_relays_progress_then_outcome(
    trip: TripRequest, settings: Settings, raw_events: list[dict[str, Any]]
) -> None:
    """Progress events pass through; the complete payload becomes one outcome."""
    client = FakeGenerationClient(
        stream=[
            StreamEvent(type="progress", message="Searching", percent=10),
            StreamEvent(type="progress", message="Planning", percent=60),
            StreamEvent(type="complete", data={"itinerary": raw_events, "events": 1}),
        ]
    )

    items = [item async for item in stream_itinerary(client, trip, settings)]

    assert [item.message for item in items[:2]] == ["Searching", "Planning"]  # type: ignore[union-attr]
    outcome = items[2]
    assert isinstance(outcome, GenerationOutcome)
    assert outcome.itinerary.activity_count() == 3
    assert outcome.meta["events"] == 1
    assert len(items) == 3


@pytest.mark.asyncio
async def test_stream_itinerary_stops_after_complete(
    trip: TripRequest, settings: Settings, raw_events: list[dict[str, Any]]
) -> None:
    """Anything after complete is ignored and the upstream stream is closed."""
    client = FakeGenerationClient(
        stream=[
            StreamEvent(type="complete", data={"itinerary": raw_events}),
            StreamEvent(type="progress", message="late"),
        ]
    )

    items = [item async for item in stream_itinerary(client, trip, settings)]

    assert len(items) == 1
    assert client.stream_closed is True


@pytest.mark.asyncio
async def test_stream_itinerary_error_event(trip: TripRequest, settings: Settings) -> None:
    """An upstream error event becomes UpstreamServiceUnavailable."""
    client = FakeGenerationClient(
        stream=[
            StreamEvent(type="progress", message="Searching"),
            StreamEvent(type="error", message="Search quota exhausted"),
        ]
    )

    received: list[Any] = []
    with pytest.raises(UpstreamServiceUnavailable) as exc_info:
        async for item in stream_itinerary(client, trip, settings):
            received.append(item)

    assert exc_info.value.message == "Search quota exhausted"
    assert len(received) == 1


@pytest.mark.asyncio
async def test_stream_itinerary_without_complete(trip: TripRequest, settings: Settings) -> None:
    """A stream that ends without complete is an upstream failure."""
    client = FakeGenerationClient(stream=[StreamEvent(type="progress", message="Searching")])

    with pytest.raises(UpstreamServiceUnavailable) as exc_info:
        async for _ in stream_itinerary(client, trip, settings):
            pass

    assert "without a complete event" in exc_info.value.message


@pytest.mark.asyncio
async def test_stream_itinerary_invalid_complete_payload(
    trip: TripRequest, settings: Settings
) -> None:
    """A complete event without an itinerary array is an upstream failure."""
    client = FakeGenerationClient(stream=[StreamEvent(type="complete", data={"events": 0})])

    with pytest.raises(UpstreamServiceUnavailable):
        async for _ in stream_itinerary(client, trip, settings):
            pass


@pytest.mark.asyncio
async def test_stream_itinerary_empty_complete(trip: TripRequest, settings: Settings) -> None:
    """A complete event with no events is an empty generation result."""
    client = FakeGenerationClient(stream=[StreamEvent(type="complete", data={"itinerary": []})])

    with pytest.raises(EmptyGenerationResult):
        async for _ in stream_itinerary(client, trip, settings):
            pass
