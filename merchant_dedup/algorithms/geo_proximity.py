#!/usr/bin/env python3
"""
Bitcoin Merchant Map — Geospatial Proximity Matching

Computes distance-based similarity between merchant locations using the
Haversine formula, with a linear decay from 1.0 at zero distance to 0.0 at
the configured distance threshold.

No external geo-libraries required — pure math with stdlib.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EARTH_RADIUS_M = 6_371_000.0

# Length of one degree of latitude on the haversine sphere
METERS_PER_DEGREE = EARTH_RADIUS_M * math.pi / 180.0

DEFAULT_DISTANCE_THRESHOLD_M = 100.0


@dataclass(frozen=True)
class Coordinate:
    """A WGS84 coordinate pair."""
    latitude: float
    longitude: float

    def is_valid(self) -> bool:
        """Check whether the coordinate lies on the globe."""
        return (
            math.isfinite(self.latitude)
            and math.isfinite(self.longitude)
            and -90.0 <= self.latitude <= 90.0
            and -180.0 <= self.longitude <= 180.0
        )


# ---------------------------------------------------------------------------
# Core distance calculation
# ---------------------------------------------------------------------------


def haversine_m(coord_a: Coordinate, coord_b: Coordinate) -> float:
    """
    Compute the great-circle distance in metres between two WGS84 points
    using the Haversine formula.
    """
    lat1 = math.radians(coord_a.latitude)
    lat2 = math.radians(coord_b.latitude)
    dlat = math.radians(coord_b.latitude - coord_a.latitude)
    dlon = math.radians(coord_b.longitude - coord_a.longitude)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def distance_similarity(
    distance_m: float,
    threshold_m: float = DEFAULT_DISTANCE_THRESHOLD_M,
) -> float:
    """
    Map a distance onto a similarity score in [0.0, 1.0].

    Scoring curve:
        - distance == 0          → 1.0
        - distance <  threshold  → linear decay from 1.0 towards 0.0
        - distance >= threshold  → 0.0
    """
    if threshold_m <= 0:
        raise ValueError("threshold_m must be positive")
    return max(0.0, 1.0 - distance_m / threshold_m)


def compute_geo_proximity(
    coord_a: Coordinate,
    coord_b: Coordinate,
    *,
    threshold_m: float = DEFAULT_DISTANCE_THRESHOLD_M,
) -> dict[str, float]:
    """
    Distance and proximity score between two merchant locations.

    Returns
    -------
    dict with keys:
        - distance_m : float
        - score      : float [0–1]
    """
    dist = haversine_m(coord_a, coord_b)
    return {
        "distance_m": dist,
        "score": distance_similarity(dist, threshold_m),
    }


# ---------------------------------------------------------------------------
# Degree / metre conversions
# ---------------------------------------------------------------------------


def meters_to_lat_degrees(meters: float) -> float:
    """Degrees of latitude spanned by ``meters`` along a meridian."""
    return meters / METERS_PER_DEGREE


def meters_to_lon_degrees(meters: float, latitude: float) -> float:
    """
    Degrees of longitude spanned by ``meters`` along the parallel at
    ``latitude``.  Grows without bound towards the poles; capped at 360.
    """
    cos_lat = math.cos(math.radians(latitude))
    if cos_lat <= 1e-12:
        return 360.0
    return min(360.0, meters / (METERS_PER_DEGREE * cos_lat))


def bounding_box(
    target: Coordinate,
    radius_m: float,
) -> tuple[float, float, float, float]:
    """
    Return a lat/lon bounding box that encloses a circle of the given radius
    around the target coordinate.

    Returns (min_lat, max_lat, min_lon, max_lon) in degrees.
    """
    lat_delta = meters_to_lat_degrees(radius_m)
    lon_delta = meters_to_lon_degrees(radius_m, target.latitude)

    return (
        target.latitude - lat_delta,
        target.latitude + lat_delta,
        target.longitude - lon_delta,
        target.longitude + lon_delta,
    )
