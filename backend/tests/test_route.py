from __future__ import annotations

import datetime as dt

import pytest

from fieldtrack.errors import ValidationError
from fieldtrack.geo import haversine_distance
from fieldtrack.models import TrackingSession
from fieldtrack.route import append_location, build_sample

NOW = dt.datetime(2024, 3, 1, 9, 30, 15, 250000, tzinfo=dt.timezone.utc)


def _session(lat: float = 28.6139, lng: float = 77.2090) -> TrackingSession:
    start = build_sample({"lat": lat, "lng": lng, "address": "Start"}, NOW)
    return TrackingSession(
        id="session_001",
        employee_id="e1",
        start_time=start.timestamp,
        start_location=start,
        route=[start],
    )


def test_build_sample_stamps_missing_timestamp() -> None:
    sample = build_sample({"lat": 1, "lng": 2}, NOW)
    assert sample.timestamp == "2024-03-01T09:30:15.250Z"
    assert sample.address == ""
    assert sample.accuracy is None


def test_build_sample_keeps_caller_timestamp_verbatim() -> None:
    sample = build_sample({"lat": 1, "lng": 2, "timestamp": "2020-01-01T00:00:00Z", "accuracy": 12.5}, NOW)
    assert sample.timestamp == "2020-01-01T00:00:00Z"
    assert sample.accuracy == 12.5


@pytest.mark.parametrize(
    "raw",
    [None, {}, {"lat": 1}, {"lng": 2}, {"lat": "north", "lng": 2}, {"lat": float("nan"), "lng": 2}],
)
def test_build_sample_rejects_malformed_locations(raw) -> None:
    with pytest.raises(ValidationError):
        build_sample(raw, NOW)


def test_distance_accumulates_per_segment() -> None:
    session = _session()
    p1 = {"lat": 19.0760, "lng": 72.8777, "address": "Mumbai"}
    p2 = {"lat": 12.9716, "lng": 77.5946, "address": "Bangalore"}

    append_location(session, p1, NOW)
    first_leg = haversine_distance(28.6139, 77.2090, 19.0760, 72.8777)
    assert session.total_distance == pytest.approx(first_leg)

    append_location(session, p2, NOW)
    second_leg = haversine_distance(19.0760, 72.8777, 12.9716, 77.5946)
    assert session.total_distance == pytest.approx(first_leg + second_leg)
    assert session.total_distance != pytest.approx(haversine_distance(28.6139, 77.2090, 12.9716, 77.5946))
    assert len(session.route) == 3


def test_out_of_order_timestamps_are_accepted() -> None:
    session = _session()
    append_location(session, {"lat": 28.7, "lng": 77.1, "timestamp": "1999-12-31T23:59:59.000Z"}, NOW)
    assert session.route[-1].timestamp == "1999-12-31T23:59:59.000Z"


def test_failed_append_leaves_session_untouched() -> None:
    session = _session()
    with pytest.raises(ValidationError):
        append_location(session, {"lat": 10}, NOW)
    assert len(session.route) == 1
    assert session.total_distance == 0


def test_build_sample_coerces_numeric_accuracy() -> None:
    assert build_sample({"lat": 1, "lng": 2, "accuracy": "5"}, NOW).accuracy == 5.0


@pytest.mark.parametrize("accuracy", ["abc", True, float("inf")])
def test_build_sample_rejects_bad_accuracy(accuracy) -> None:
    with pytest.raises(ValidationError):
        build_sample({"lat": 1, "lng": 2, "accuracy": accuracy}, NOW)
