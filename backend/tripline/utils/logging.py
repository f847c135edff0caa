"""Structured logging for itinerary server calls."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


class StructuredUpstreamLogger:
    """Structured logger for generation/edit service calls."""

    def log_call(
        self,
        endpoint: str,
        outcome: str,
        latency_ms: float,
        status_code: int | None = None,
        error_reason: str | None = None,
    ) -> None:
        """Log an upstream call with structured data."""
        log_data: dict[str, Any] = {
            "endpoint": endpoint,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if status_code is not None:
            log_data["status_code"] = status_code
        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Itinerary server call: {endpoint} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
