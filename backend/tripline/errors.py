"""Error taxonomy for the itinerary pipeline.

Core components raise these synchronously; the API layer maps them to HTTP statuses.
"""


class TriplineError(Exception):
    """Base class for all itinerary pipeline errors."""


class MalformedUpstreamEvent(TriplineError):
    """Reserved name for a malformed upstream event.

    Never raised: malformed event fields degrade to sentinel values in the normalizer.
    """


class EmptyGenerationResult(TriplineError):
    """Generation produced no usable activities."""

    def __init__(self, message: str = "No activities found for the specified criteria.") -> None:
        super().__init__(message)
        self.message = message


class InvalidSelection(TriplineError):
    """Selection indices are out of bounds or not integers."""

    def __init__(self, field: str, value: object) -> None:
        super().__init__(f"Invalid selection.{field}: {value!r}")
        self.field = field
        self.value = value


class StaleSelection(TriplineError):
    """Selection no longer points at an existing activity in the current snapshot."""

    def __init__(self, day_index: int, activity_index: int, reason: str) -> None:
        super().__init__(
            f"Stale selection (day={day_index}, activity={activity_index}): {reason}"
        )
        self.day_index = day_index
        self.activity_index = activity_index
        self.reason = reason


class UpstreamServiceUnavailable(TriplineError):
    """Generation or edit service unreachable or returned an unusable answer."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message if status_code is None else f"{status_code}: {message}")
        self.message = message
        self.status_code = status_code


class InvalidDateRange(TriplineError):
    """Trip dates are reversed or exclude activities already planned."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
