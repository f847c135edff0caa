"""Destination -> IANA timezone resolution.

The default resolver is a substring table, not a geocoder. It is an approximation
and is meant to be swapped or configured, not silently extended.
"""

from collections.abc import Mapping
from typing import Protocol

from backend.tripline.config import Settings

DEFAULT_TIMEZONE = "America/New_York"

DEFAULT_TIMEZONE_TABLE: dict[str, str] = {
    "los angeles": "America/Los_Angeles",
    "chicago": "America/Chicago",
}


class TimezoneResolver(Protocol):
    """Protocol for destination timezone resolvers."""

    def resolve(self, destination: str) -> str:
        """Return an IANA zone name for a destination display name."""
        ...


class SubstringTimezoneResolver:
    """Match lower-cased destination substrings against an ordered table."""

    def __init__(
        self,
        table: Mapping[str, str] | None = None,
        default: str = DEFAULT_TIMEZONE,
    ) -> None:
        """Initialize resolver.

        Args:
            table: Substring -> zone mapping, checked in insertion order
            default: Zone returned when nothing matches
        """
        source = DEFAULT_TIMEZONE_TABLE if table is None else table
        self._table = [(needle.lower(), zone) for needle, zone in source.items()]
        self._default = default

    def resolve(self, destination: str) -> str:
        """Resolve destination to a zone, falling back to the default."""
        name = (destination or "").lower()
        for needle, zone in self._table:
            if needle and needle in name:
                return zone
        return self._default


def resolver_from_settings(settings: Settings) -> SubstringTimezoneResolver:
    """Build the configured resolver."""
    return SubstringTimezoneResolver(settings.timezone_table, default=settings.default_timezone)
