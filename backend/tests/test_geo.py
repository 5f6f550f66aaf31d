from __future__ import annotations

import math

import pytest

from fieldtrack.geo import describe_coordinates, haversine_distance, nearest_city

DELHI = (28.6139, 77.2090)
MUMBAI = (19.0760, 72.8777)
BANGALORE = (12.9716, 77.5946)


def test_identical_points_have_zero_distance() -> None:
    assert haversine_distance(*DELHI, *DELHI) == 0
    assert haversine_distance(0.0, 0.0, 0.0, 0.0) == 0


@pytest.mark.parametrize("a,b", [(DELHI, MUMBAI), (MUMBAI, BANGALORE), ((51.5, -0.12), (40.71, -74.0))])
def test_distance_is_symmetric(a, b) -> None:
    assert haversine_distance(*a, *b) == pytest.approx(haversine_distance(*b, *a), rel=1e-12)


def test_delhi_to_mumbai_great_circle() -> None:
    distance = haversine_distance(*DELHI, *MUMBAI)
    assert 1_140_000 < distance < 1_170_000


def test_one_degree_of_latitude() -> None:
    expected = 6371000 * math.radians(1)
    assert haversine_distance(0.0, 10.0, 1.0, 10.0) == pytest.approx(expected)


def test_describe_coordinates_inside_india_names_nearest_city() -> None:
    assert describe_coordinates(19.08, 72.88) == "Mumbai, India (19.0800, 72.8800)"
    assert nearest_city(12.95, 77.6) == "Bangalore"


def test_describe_coordinates_outside_india_is_plain_pair() -> None:
    assert describe_coordinates(40.7128, -74.006) == "40.7128, -74.0060"
