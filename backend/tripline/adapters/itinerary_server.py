"""Itinerary server adapter - generation (single-shot and SSE) and edit services.

The adapter never retries; failures surface as UpstreamServiceUnavailable and
retry policy belongs to the caller.
"""

import json
import logging
import time
from collections.abc import AsyncGenerator, Callable
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from backend.tripline.config import Settings, get_settings
from backend.tripline.errors import UpstreamServiceUnavailable
from backend.tripline.models.upstream import (
    EditResponse,
    EditServiceRequest,
    GenerationPayload,
    GenerationRequest,
    StreamEvent,
)
from backend.tripline.utils.logging import StructuredUpstreamLogger
from backend.tripline.utils.metrics import PrometheusUpstreamMetrics

logger = logging.getLogger(__name__)

HEALTH_PATH = "/health"
GENERATE_PATH = "/api/generate-itinerary"
GENERATE_STREAM_PATH = "/api/generate-itinerary-stream"
EDIT_PATH = "/api/edit-itinerary"


def _stream_error_message(status_code: int, body: str) -> str:
    """Best-effort human message for a failed streaming request."""
    if "<!DOCTYPE" in body or "<html" in body:
        return "Itinerary server endpoint not found. Please restart the itinerary server."
    try:
        parsed = json.loads(body)
    except ValueError:
        return f"Itinerary server error: {status_code}"
    if isinstance(parsed, dict) and isinstance(parsed.get("error"), str):
        return parsed["error"]
    return f"Itinerary server error: {status_code}"


def parse_sse_line(line: str) -> StreamEvent | None:
    """Parse one ``data: {...}`` line; returns None for anything unusable."""
    if not line.startswith("data:"):
        return None
    try:
        raw = json.loads(line[5:].strip())
    except ValueError:
        return None
    try:
        return StreamEvent.model_validate(raw)
    except ValidationError:
        logger.debug(f"Ignoring unrecognized stream event: {line[:200]}")
        return None


def parse_generation_payload(data: Any) -> GenerationPayload:
    """Validate a final generation payload.

    Raises:
        UpstreamServiceUnavailable: If ``itinerary`` is missing or not a list
    """
    if not isinstance(data, dict) or not isinstance(data.get("itinerary"), list):
        keys = sorted(data) if isinstance(data, dict) else type(data).__name__
        raise UpstreamServiceUnavailable(
            f"Itinerary server returned invalid format. Expected 'itinerary' array but got: {keys}"
        )
    try:
        return GenerationPayload.model_validate(data)
    except ValidationError as e:
        raise UpstreamServiceUnavailable(
            f"Itinerary server returned invalid format: {e.error_count()} errors"
        ) from e


class GenerationClient(Protocol):
    """What the generation flows need from the itinerary server."""

    async def check_health(self, timeout: float | None = None) -> None: ...

    async def generate(self, request: GenerationRequest) -> GenerationPayload: ...

    def stream_generation(
        self, request: GenerationRequest
    ) -> AsyncGenerator[StreamEvent, None]: ...


class EditClient(Protocol):
    """What the edit flow needs from the itinerary server."""

    async def check_health(self, timeout: float | None = None) -> None: ...

    async def edit(self, request: EditServiceRequest) -> EditResponse: ...


class ItineraryServerClient:
    """HTTP client for the external itinerary server."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize client.

        Args:
            settings: Settings (defaults to cached settings)
            client: Optional httpx client (for testing with mocks)
        """
        self._settings = settings or get_settings()
        self._base_url = self._settings.itinerary_server_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()
        self._metrics = PrometheusUpstreamMetrics()
        self._call_logger = StructuredUpstreamLogger()

    async def aclose(self) -> None:
        """Close the underlying httpx client if we created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ItineraryServerClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _timeout(self, total: float) -> httpx.Timeout:
        return httpx.Timeout(total, connect=min(total, self._settings.connect_timeout_s))

    def _record(
        self,
        endpoint: str,
        started: float,
        outcome: str,
        status_code: int | None = None,
        reason: str | None = None,
    ) -> None:
        latency_ms = (time.perf_counter() - started) * 1000
        self._metrics.record_latency(endpoint, outcome, latency_ms)
        if outcome != "success":
            self._metrics.inc_error(endpoint, reason or outcome)
        self._call_logger.log_call(
            endpoint, outcome, latency_ms, status_code=status_code, error_reason=reason
        )

    async def _post_json(
        self, endpoint: str, path: str, body: dict[str, Any], timeout: float
    ) -> Any:
        started = time.perf_counter()
        try:
            response = await self._client.post(
                f"{self._base_url}{path}", json=body, timeout=self._timeout(timeout)
            )
        except httpx.HTTPError as e:
            self._record(endpoint, started, "error", reason=type(e).__name__)
            raise UpstreamServiceUnavailable(
                f"Itinerary server request failed: {e}"
            ) from e

        if not response.is_success:
            self._record(endpoint, started, "error", response.status_code, "http_status")
            raise UpstreamServiceUnavailable(
                response.text or response.reason_phrase, status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            self._record(endpoint, started, "error", response.status_code, "invalid_json")
            raise UpstreamServiceUnavailable(
                "Itinerary server returned invalid JSON", status_code=response.status_code
            ) from e

        self._record(endpoint, started, "success", response.status_code)
        return data

    async def check_health(self, timeout: float | None = None) -> None:
        """Probe ``GET /health``.

        Raises:
            UpstreamServiceUnavailable: If unreachable or not healthy
        """
        timeout = timeout if timeout is not None else self._settings.health_check_timeout_s
        started = time.perf_counter()
        try:
            response = await self._client.get(
                f"{self._base_url}{HEALTH_PATH}", timeout=self._timeout(timeout)
            )
        except httpx.HTTPError as e:
            self._record("health", started, "error", reason=type(e).__name__)
            raise UpstreamServiceUnavailable(
                f"Failed to connect to itinerary server: {e}"
            ) from e

        if not response.is_success:
            self._record("health", started, "error", response.status_code, "http_status")
            raise UpstreamServiceUnavailable(
                "Itinerary server health check failed", status_code=response.status_code
            )

        self._record("health", started, "success", response.status_code)

    async def generate(self, request: GenerationRequest) -> GenerationPayload:
        """Single-shot generation.

        Raises:
            UpstreamServiceUnavailable: On transport errors, non-2xx, or invalid format
        """
        data = await self._post_json(
            "generate",
            GENERATE_PATH,
            request.model_dump(),
            self._settings.generation_timeout_s,
        )
        return parse_generation_payload(data)

    async def stream_generation(
        self, request: GenerationRequest
    ) -> AsyncGenerator[StreamEvent, None]:
        """Streaming generation - yields progress/complete/error events as they arrive.

        Raises:
            UpstreamServiceUnavailable: On transport errors or non-2xx answers
        """
        started = time.perf_counter()
        recorded = False
        try:
            async with self._client.stream(
                "POST",
                f"{self._base_url}{GENERATE_STREAM_PATH}",
                json=request.model_dump(),
                timeout=self._timeout(self._settings.generation_timeout_s),
            ) as response:
                if not response.is_success:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    self._record(
                        "generate_stream", started, "error", response.status_code, "http_status"
                    )
                    raise UpstreamServiceUnavailable(
                        _stream_error_message(response.status_code, body),
                        status_code=response.status_code,
                    )

                async for line in response.aiter_lines():
                    event = parse_sse_line(line)
                    if event is None:
                        continue
                    if event.type == "complete" and not recorded:
                        self._record("generate_stream", started, "success", response.status_code)
                        recorded = True
                    elif event.type == "error" and not recorded:
                        self._record(
                            "generate_stream", started, "error", response.status_code, "stream_error"
                        )
                        recorded = True
                    yield event

        except httpx.HTTPError as e:
            self._record("generate_stream", started, "error", reason=type(e).__name__)
            raise UpstreamServiceUnavailable(f"Connection failed: {e}") from e

        if not recorded:
            self._record(
                "generate_stream", started, "error", response.status_code, "stream_incomplete"
            )

    async def edit(self, request: EditServiceRequest) -> EditResponse:
        """Ask the edit service for a single-activity patch.

        Raises:
            UpstreamServiceUnavailable: On transport errors, non-2xx, or invalid payload
        """
        data = await self._post_json(
            "edit", EDIT_PATH, request.model_dump(), self._settings.edit_timeout_s
        )
        try:
            return EditResponse.model_validate(data)
        except ValidationError as e:
            raise UpstreamServiceUnavailable(
                f"Edit service returned invalid payload: {e.errors()[0]['msg']}"
            ) from e


ClientFactory = Callable[[], ItineraryServerClient]


def default_client_factory() -> ItineraryServerClient:
    """Client bound to configured settings."""
    return ItineraryServerClient(get_settings())


def get_client_factory() -> ClientFactory:
    """FastAPI dependency returning the client factory (overridden in tests)."""
    return default_client_factory
