"""Tests for the day bucketer."""

from collections.abc import Callable
from typing import Any

from backend.tripline.models.itinerary import Activity, Day
from backend.tripline.transform.bucketer import (
    bucket_activities,
    date_key,
    day_summary,
    flatten_days,
    parse_instant,
)
from backend.tripline.transform.normalizer import normalize_events


def _orders(day: Day) -> list[int | None]:
    return [activity.order for activity in day.activities]


def test_date_key_is_plain_prefix() -> None:
    """The bucket key is the raw date prefix, with no timezone conversion."""
    assert date_key("2025-12-01T23:30:00-08:00") == "2025-12-01"
    assert date_key("2025-12-01") == "2025-12-01"
    assert date_key("") == ""
    assert date_key(None) == ""


def test_date_key_accepts_space_separator() -> None:
    """ISO timestamps written with a space separator share the same bucket key."""
    assert date_key("2025-07-04 09:00:00") == "2025-07-04"
    assert date_key("2025-07-04 13:00:00+02:00") == "2025-07-04"


def test_space_separated_events_share_a_day(make_activity: Callable[..., Activity]) -> None:
    """Same-day events land in one well-formed day whatever the separator."""
    candidates = [
        make_activity("Pier", "2025-07-04 09:00:00", "2025-07-04 10:00:00"),
        make_activity("Museum", "2025-07-04T13:00:00", "2025-07-04T15:00:00"),
        make_activity("Park", "2025-07-06 10:00:00", "2025-07-06 11:00:00"),
    ]

    days = bucket_activities(candidates, range_start="2025-07-04", range_end="2025-07-05")

    assert [day.date for day in days] == ["2025-07-04T00:00:00"]
    assert [a.name for a in days[0].activities] == ["Pier", "Museum"]
    assert days[0].activities[0].date_key == "2025-07-04"


def test_parse_instant_handles_zulu_and_naive() -> None:
    """Z suffix and naive timestamps both parse to aware datetimes."""
    zulu = parse_instant("2025-12-01T10:00:00Z")
    naive = parse_instant("2025-12-01T10:00:00")

    assert zulu is not None and naive is not None
    assert zulu == naive
    assert parse_instant("not a time") is None


def test_end_to_end_scenario() -> None:
    """Three raw events across two dates become two ordered days."""
    raw = [
        {"start_time": "2025-07-04T09:00:00", "name": "Pier"},
        {"start_time": "2025-07-04T13:00:00", "name": "Museum"},
        {"start_time": "2025-07-05T10:00:00", "name": "Park"},
    ]

    days = bucket_activities(normalize_events(raw))

    assert len(days) == 2
    assert days[0].date == "2025-07-04T00:00:00"
    assert days[0].day_number == 1
    assert [(a.name, a.order) for a in days[0].activities] == [("Pier", 0), ("Museum", 1)]
    assert days[1].date == "2025-07-05T00:00:00"
    assert days[1].day_number == 2
    assert [(a.name, a.order) for a in days[1].activities] == [("Park", 0)]


def test_activities_sorted_by_time_within_day(make_activity: Callable[..., Activity]) -> None:
    """Activities inside a day follow their start instant, not input order."""
    candidates = [
        make_activity("Late", "2025-12-01T18:00:00"),
        make_activity("Early", "2025-12-01T08:00:00"),
        make_activity("Noon", "2025-12-01T12:00:00"),
    ]

    days = bucket_activities(candidates)

    assert [a.name for a in days[0].activities] == ["Early", "Noon", "Late"]
    assert _orders(days[0]) == [0, 1, 2]


def test_sort_compares_offsets_as_instants(make_activity: Callable[..., Activity]) -> None:
    """Within a bucket, mixed offsets are compared as absolute instants."""
    candidates = [
        make_activity("A", "2025-12-01T10:00:00+00:00"),
        make_activity("B", "2025-12-01T09:00:00+02:00"),  # 07:00 UTC
    ]

    days = bucket_activities(candidates)

    assert [a.name for a in days[0].activities] == ["B", "A"]


def test_sort_is_stable_for_equal_times(make_activity: Callable[..., Activity]) -> None:
    """Equal start times keep their input order."""
    candidates = [
        make_activity("First", "2025-12-01T10:00:00"),
        make_activity("Second", "2025-12-01T10:00:00"),
    ]

    days = bucket_activities(candidates)

    assert [a.name for a in days[0].activities] == ["First", "Second"]


def test_unparseable_times_sort_last(make_activity: Callable[..., Activity]) -> None:
    """Timestamps that do not parse go after parseable ones in the same bucket."""
    candidates = [
        make_activity("Vague", "2025-12-01Tmorning"),
        make_activity("Exact", "2025-12-01T10:00:00"),
    ]

    days = bucket_activities(candidates)

    assert [a.name for a in days[0].activities] == ["Exact", "Vague"]


def test_candidates_without_start_time_are_dropped(make_activity: Callable[..., Activity]) -> None:
    """Candidates with no start time cannot be assigned a day."""
    candidates = [make_activity("Unknown", ""), make_activity("Known", "2025-12-01T10:00:00")]

    days = bucket_activities(candidates)

    assert len(days) == 1
    assert [a.name for a in days[0].activities] == ["Known"]


def test_range_filter_keeps_only_window(make_activity: Callable[..., Activity]) -> None:
    """A [06-02, 06-03] window keeps exactly two days and nothing outside them."""
    candidates = [
        make_activity(f"Stop {day}", f"2025-06-0{day}T10:00:00") for day in range(1, 6)
    ]

    days = bucket_activities(candidates, range_start="2025-06-02", range_end="2025-06-03")

    assert [day.date for day in days] == ["2025-06-02T00:00:00", "2025-06-03T00:00:00"]
    assert [day.day_number for day in days] == [1, 2]
    names = [a.name for a in flatten_days(days)]
    assert names == ["Stop 2", "Stop 3"]
    assert days[0].notes == "Day 1: 1 activities planned"


def test_range_bounds_accept_full_timestamps(make_activity: Callable[..., Activity]) -> None:
    """Bounds given as full timestamps are reduced to their date and stay inclusive."""
    candidates = [
        make_activity("Morning", "2025-06-02T08:00:00"),
        make_activity("Night", "2025-06-03T23:00:00"),
    ]

    days = bucket_activities(
        candidates, range_start="2025-06-02T12:00:00", range_end="2025-06-03T00:00:00"
    )

    assert [a.name for a in flatten_days(days)] == ["Morning", "Night"]


def test_single_bound_filters_one_side(make_activity: Callable[..., Activity]) -> None:
    """Either bound may be omitted."""
    candidates = [
        make_activity("Before", "2025-06-01T10:00:00"),
        make_activity("After", "2025-06-05T10:00:00"),
    ]

    assert [d.date for d in bucket_activities(candidates, range_start="2025-06-03")] == [
        "2025-06-05T00:00:00"
    ]
    assert [d.date for d in bucket_activities(candidates, range_end="2025-06-03")] == [
        "2025-06-01T00:00:00"
    ]


def test_everything_filtered_gives_no_days(make_activity: Callable[..., Activity]) -> None:
    """No empty days are produced; a fully filtered input yields an empty list."""
    candidates = [make_activity("Out", "2025-06-10T10:00:00")]

    assert bucket_activities(candidates, range_start="2025-06-01", range_end="2025-06-05") == []
    assert bucket_activities([]) == []


def test_days_are_chronological(raw_events: list[dict[str, Any]]) -> None:
    """Days are strictly increasing by date regardless of input order."""
    days = bucket_activities(normalize_events(list(reversed(raw_events)) + raw_events))

    dates = [day.date for day in days]
    assert all(dates[i] < dates[i + 1] for i in range(len(dates) - 1))
    assert [day.day_number for day in days] == list(range(1, len(days) + 1))


def test_orders_are_contiguous(raw_events: list[dict[str, Any]]) -> None:
    """Every day's order values are exactly 0..N-1."""
    days = bucket_activities(normalize_events(raw_events * 3))

    for day in days:
        assert sorted(_orders(day)) == list(range(len(day.activities)))


def test_rebucketing_flattened_days_is_idempotent(raw_events: list[dict[str, Any]]) -> None:
    """Flatten then re-bucket reproduces the same day structure."""
    days = bucket_activities(normalize_events(raw_events))

    rebucketed = bucket_activities(flatten_days(days))

    assert [d.day_number for d in rebucketed] == [d.day_number for d in days]
    assert [d.date for d in rebucketed] == [d.date for d in days]
    assert [_orders(d) for d in rebucketed] == [_orders(d) for d in days]
    assert [[a.name for a in d.activities] for d in rebucketed] == [
        [a.name for a in d.activities] for d in days
    ]


def test_supplied_notes_override_summary(make_activity: Callable[..., Activity]) -> None:
    """Upstream notes keyed by date replace the auto summary."""
    candidates = [
        make_activity("A", "2025-12-01T10:00:00"),
        make_activity("B", "2025-12-02T10:00:00"),
    ]

    days = bucket_activities(candidates, notes={"2025-12-01": "Arrival day"})

    assert days[0].notes == "Arrival day"
    assert days[1].notes == day_summary(2, 1)
