"""
Geodesic helpers.
Uses the Haversine formula for route distances and a small reference table
of Indian cities for human readable location labels.
"""
from __future__ import annotations

import math
from typing import Dict, List, Tuple

EARTH_RADIUS_M = 6371000.0

INDIA_BOUNDS = {"lat_min": 6.0, "lat_max": 37.6, "lng_min": 68.0, "lng_max": 97.5}

REFERENCE_CITIES: List[Tuple[str, float, float]] = [
    ("New Delhi", 28.6139, 77.209),
    ("Mumbai", 19.076, 72.8777),
    ("Bangalore", 12.9716, 77.5946),
    ("Chennai", 13.0827, 80.2707),
    ("Kolkata", 22.5726, 88.3639),
    ("Hyderabad", 17.385, 78.4867),
    ("Ahmedabad", 23.0225, 72.5714),
    ("Pune", 18.5204, 73.8567),
    ("Jaipur", 26.9124, 75.7873),
    ("Chandigarh", 30.7333, 76.7794),
]

# Seed locations handed out to employees without a reported position.
SEED_LOCATIONS: List[Dict[str, object]] = [
    {"lat": 28.6139, "lng": 77.209, "address": "New Delhi, India"},
    {"lat": 19.076, "lng": 72.8777, "address": "Mumbai, Maharashtra, India"},
    {"lat": 12.9716, "lng": 77.5946, "address": "Bangalore, Karnataka, India"},
    {"lat": 13.0827, "lng": 80.2707, "address": "Chennai, Tamil Nadu, India"},
    {"lat": 22.5726, "lng": 88.3639, "address": "Kolkata, West Bengal, India"},
    {"lat": 17.385, "lng": 78.4867, "address": "Hyderabad, Telangana, India"},
    {"lat": 23.0225, "lng": 72.5714, "address": "Ahmedabad, Gujarat, India"},
    {"lat": 18.5204, "lng": 73.8567, "address": "Pune, Maharashtra, India"},
    {"lat": 26.9124, "lng": 75.7873, "address": "Jaipur, Rajasthan, India"},
    {"lat": 30.7333, "lng": 76.7794, "address": "Chandigarh, India"},
    {"lat": 21.1458, "lng": 79.0882, "address": "Nagpur, Maharashtra, India"},
    {"lat": 15.2993, "lng": 74.124, "address": "Goa, India"},
    {"lat": 25.5941, "lng": 85.1376, "address": "Patna, Bihar, India"},
    {"lat": 26.8467, "lng": 80.9462, "address": "Lucknow, Uttar Pradesh, India"},
    {"lat": 31.1048, "lng": 77.1734, "address": "Shimla, Himachal Pradesh, India"},
]


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Calculate the great circle distance between two points on Earth.

    Args:
        lat1: Latitude of first point
        lng1: Longitude of first point
        lat2: Latitude of second point
        lng2: Longitude of second point

    Returns:
        Distance in meters
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    # sign follows the dashboard client: lng1 - lng2
    delta_lambda = math.radians(lng1 - lng2)

    a = (
        math.sin(delta_phi / 2) * math.sin(delta_phi / 2)
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) * math.sin(delta_lambda / 2)
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def in_india(lat: float, lng: float) -> bool:
    return (
        INDIA_BOUNDS["lat_min"] <= lat <= INDIA_BOUNDS["lat_max"]
        and INDIA_BOUNDS["lng_min"] <= lng <= INDIA_BOUNDS["lng_max"]
    )


def nearest_city(lat: float, lng: float) -> str:
    """Closest reference city by planar degree distance."""
    closest = REFERENCE_CITIES[0]
    best = math.hypot(lat - closest[1], lng - closest[2])
    for city in REFERENCE_CITIES:
        distance = math.hypot(lat - city[1], lng - city[2])
        if distance < best:
            best = distance
            closest = city
    return closest[0]


def describe_coordinates(lat: float, lng: float) -> str:
    """Best-effort label for a coordinate pair. Not a geocoder."""
    if in_india(lat, lng):
        return f"{nearest_city(lat, lng)}, India ({lat:.4f}, {lng:.4f})"
    return f"{lat:.4f}, {lng:.4f}"
