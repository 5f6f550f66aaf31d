from __future__ import annotations

import datetime as dt
import math
from typing import Any, Mapping, Optional

from .errors import ValidationError
from .geo import haversine_distance
from .models import LocationSample, TrackingSession
from .utils import format_timestamp


def _number(raw: Mapping[str, Any], key: str) -> float:
    value = raw.get(key)
    if value is None:
        raise ValidationError("Location requires lat and lng")
    if isinstance(value, bool):
        raise ValidationError(f"Location {key} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Location {key} must be a number") from exc
    if not math.isfinite(number):
        raise ValidationError(f"Location {key} must be finite")
    return number


def build_sample(
    raw: Optional[Mapping[str, Any]],
    now: dt.datetime,
    *,
    keep_timestamp: bool = True,
) -> LocationSample:
    """Validate a raw location payload and stamp it with ``now`` when it carries no timestamp."""
    if not raw or not isinstance(raw, Mapping):
        raise ValidationError("Location is required")
    lat = _number(raw, "lat")
    lng = _number(raw, "lng")
    accuracy = _number(raw, "accuracy") if raw.get("accuracy") is not None else None
    timestamp = raw.get("timestamp") if keep_timestamp else None
    address = raw.get("address")
    return LocationSample(
        lat=lat,
        lng=lng,
        address=address if isinstance(address, str) else "",
        timestamp=str(timestamp) if timestamp else format_timestamp(now),
        accuracy=accuracy,
    )


def append_location(
    session: TrackingSession,
    raw_location: Optional[Mapping[str, Any]],
    now: dt.datetime,
) -> TrackingSession:
    """Extend ``session.route`` in place and grow its distance by the new segment.

    Out-of-order timestamps are accepted as given.
    """
    sample = build_sample(raw_location, now)
    session.route.append(sample)
    if len(session.route) > 1:
        previous = session.route[-2]
        session.total_distance += haversine_distance(previous.lat, previous.lng, sample.lat, sample.lng)
    return session
