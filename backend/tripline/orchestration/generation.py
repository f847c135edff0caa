"""Generation flows - call the generation service, run the pipeline once."""

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from backend.tripline.adapters.itinerary_server import (
    GenerationClient,
    parse_generation_payload,
)
from backend.tripline.config import Settings, get_settings
from backend.tripline.errors import EmptyGenerationResult, UpstreamServiceUnavailable
from backend.tripline.models.itinerary import Itinerary
from backend.tripline.models.upstream import GenerationPayload, GenerationRequest, StreamEvent
from backend.tripline.transform.assembler import build_itinerary
from backend.tripline.transform.timezones import TimezoneResolver, resolver_from_settings
from backend.tripline.utils.metrics import record_generation

logger = logging.getLogger(__name__)


@dataclass
class TripRequest:
    """What the caller asked for."""

    city: str
    interests: str | Sequence[str]
    user_id: str
    start_date: str | None = None
    end_date: str | None = None


@dataclass
class GenerationOutcome:
    """Assembled itinerary plus upstream bookkeeping."""

    itinerary: Itinerary
    meta: dict[str, Any] = field(default_factory=dict)


def build_generation_request(trip: TripRequest, settings: Settings) -> GenerationRequest:
    """Translate a trip request into the generation service's body."""
    interests = trip.interests if isinstance(trip.interests, str) else ", ".join(trip.interests)
    return GenerationRequest(
        city=trip.city,
        interests=interests,
        max_results=settings.max_results,
        start_date=trip.start_date,
        end_date=trip.end_date,
    )


def assemble_outcome(
    payload: GenerationPayload,
    trip: TripRequest,
    resolver: TimezoneResolver,
    now: datetime | None = None,
) -> GenerationOutcome:
    """Run normalize -> bucket -> assemble on a final payload.

    Raises:
        EmptyGenerationResult: If there are no events or none survive the date range
    """
    if not payload.itinerary:
        raise EmptyGenerationResult(
            "Itinerary server returned empty itinerary. No events found for the specified criteria."
        )

    itinerary = build_itinerary(
        payload,
        user_id=trip.user_id,
        destination=trip.city,
        interests=trip.interests,
        start_date=trip.start_date,
        end_date=trip.end_date,
        resolver=resolver,
        now=now,
    )

    if not itinerary.days:
        raise EmptyGenerationResult("No activities found within the selected dates.")

    return GenerationOutcome(itinerary=itinerary, meta=payload.meta())


async def generate_itinerary(
    client: GenerationClient,
    trip: TripRequest,
    settings: Settings | None = None,
    resolver: TimezoneResolver | None = None,
) -> GenerationOutcome:
    """Single-shot generation: health probe, generate, assemble.

    Raises:
        UpstreamServiceUnavailable: If the itinerary server is unreachable or misbehaves
        EmptyGenerationResult: If no usable activities come back
    """
    settings = settings or get_settings()
    resolver = resolver or resolver_from_settings(settings)

    logger.info(f"Generating itinerary for {trip.interests!r} in {trip.city}")

    try:
        await client.check_health(settings.health_check_timeout_s)
        payload = await client.generate(build_generation_request(trip, settings))
        outcome = assemble_outcome(payload, trip, resolver)
    except UpstreamServiceUnavailable:
        record_generation("single", "upstream_error")
        raise
    except EmptyGenerationResult:
        record_generation("single", "empty")
        raise

    record_generation("single", "success")
    logger.info(
        f"Generated {len(outcome.itinerary.days)} days / "
        f"{outcome.itinerary.activity_count()} activities for {trip.city}"
    )
    return outcome


async def stream_itinerary(
    client: GenerationClient,
    trip: TripRequest,
    settings: Settings | None = None,
    resolver: TimezoneResolver | None = None,
) -> AsyncIterator[StreamEvent | GenerationOutcome]:
    """Streaming generation.

    Yields upstream ``progress`` events as they arrive, then exactly one
    GenerationOutcome built from the ``complete`` payload.

    Raises:
        UpstreamServiceUnavailable: On an upstream ``error`` event or a stream without ``complete``
        EmptyGenerationResult: If the final payload has no usable activities
    """
    settings = settings or get_settings()
    resolver = resolver or resolver_from_settings(settings)

    try:
        request = build_generation_request(trip, settings)
        async with aclosing(client.stream_generation(request)) as events:
            async for event in events:
                if event.type == "progress":
                    yield event
                    continue

                if event.type == "error":
                    raise UpstreamServiceUnavailable(event.message or "Server error occurred")

                outcome = assemble_outcome(parse_generation_payload(event.data), trip, resolver)
                record_generation("stream", "success")
                yield outcome
                return

        raise UpstreamServiceUnavailable("Itinerary stream ended without a complete event")
    except UpstreamServiceUnavailable:
        record_generation("stream", "upstream_error")
        raise
    except EmptyGenerationResult:
        record_generation("stream", "empty")
        raise
