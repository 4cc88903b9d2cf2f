"""Tests for haversine distance and distance similarity."""

import math

import pytest

from merchant_dedup.algorithms.geo_proximity import (
    METERS_PER_DEGREE,
    Coordinate,
    bounding_box,
    compute_geo_proximity,
    distance_similarity,
    haversine_m,
    meters_to_lat_degrees,
    meters_to_lon_degrees,
)


# ---- Coordinate -------------------------------------------------------------


class TestCoordinate:
    def test_valid(self):
        assert Coordinate(latitude=13.69, longitude=-89.22).is_valid()

    def test_poles_and_antimeridian_are_valid(self):
        assert Coordinate(90.0, 180.0).is_valid()
        assert Coordinate(-90.0, -180.0).is_valid()

    def test_out_of_range(self):
        assert not Coordinate(91.0, 0.0).is_valid()
        assert not Coordinate(0.0, -181.0).is_valid()

    def test_nan(self):
        assert not Coordinate(math.nan, 0.0).is_valid()

    def test_frozen(self):
        coord = Coordinate(latitude=6.0, longitude=3.0)
        with pytest.raises(AttributeError):
            coord.latitude = 7.0  # type: ignore[misc]


# ---- haversine_m ------------------------------------------------------------


class TestHaversineM:
    def test_same_point_is_zero(self):
        coord = Coordinate(40.0, -73.0)
        assert haversine_m(coord, coord) == 0.0

    def test_one_thousandth_degree_latitude(self):
        a = Coordinate(0.0, 0.0)
        b = Coordinate(0.001, 0.0)
        assert haversine_m(a, b) == pytest.approx(111.19, abs=0.05)

    def test_diagonal_offset_in_new_york(self):
        """0.0001° in each axis at 40°N is roughly 14 m."""
        a = Coordinate(40.0, -73.0)
        b = Coordinate(40.0001, -73.0001)
        assert haversine_m(a, b) == pytest.approx(14.0, abs=0.5)

    def test_long_distance(self):
        """San Salvador to New York is a little over 3 300 km."""
        san_salvador = Coordinate(13.69, -89.22)
        new_york = Coordinate(40.71, -74.01)
        assert 3_100_000 < haversine_m(san_salvador, new_york) < 3_600_000

    def test_symmetry(self):
        a = Coordinate(13.69, -89.22)
        b = Coordinate(13.70, -89.19)
        assert haversine_m(a, b) == haversine_m(b, a)


# ---- distance_similarity ----------------------------------------------------


class TestDistanceSimilarity:
    def test_zero_distance(self):
        assert distance_similarity(0.0, 100.0) == 1.0

    def test_linear_decay(self):
        assert distance_similarity(25.0, 100.0) == pytest.approx(0.75)
        assert distance_similarity(50.0, 100.0) == pytest.approx(0.5)

    def test_at_threshold(self):
        assert distance_similarity(100.0, 100.0) == 0.0

    def test_beyond_threshold_floors_at_zero(self):
        assert distance_similarity(5000.0, 100.0) == 0.0

    def test_non_increasing(self):
        scores = [distance_similarity(d, 100.0) for d in (0, 10, 40, 80, 99, 100, 150)]
        assert scores == sorted(scores, reverse=True)

    def test_invalid_threshold(self):
        with pytest.raises(ValueError):
            distance_similarity(10.0, 0.0)


class TestComputeGeoProximity:
    def test_returns_expected_keys(self):
        result = compute_geo_proximity(Coordinate(40.0, -73.0), Coordinate(40.0001, -73.0001))
        assert set(result.keys()) == {"distance_m", "score"}
        assert 0.8 < result["score"] < 0.9

    def test_custom_threshold(self):
        a = Coordinate(0.0, 0.0)
        b = Coordinate(0.001, 0.0)
        result = compute_geo_proximity(a, b, threshold_m=1000.0)
        assert result["score"] == pytest.approx(1 - 111.19 / 1000.0, abs=1e-3)


# ---- degree conversions -----------------------------------------------------


class TestDegreeConversions:
    def test_lat_degrees(self):
        assert meters_to_lat_degrees(METERS_PER_DEGREE) == pytest.approx(1.0)
        assert meters_to_lat_degrees(100.0) == pytest.approx(0.000899, abs=1e-6)

    def test_lon_degrees_equal_lat_at_equator(self):
        assert meters_to_lon_degrees(100.0, 0.0) == pytest.approx(meters_to_lat_degrees(100.0))

    def test_lon_degrees_double_at_sixty(self):
        assert meters_to_lon_degrees(100.0, 60.0) == pytest.approx(2 * meters_to_lat_degrees(100.0))

    def test_lon_degrees_capped_at_pole(self):
        assert meters_to_lon_degrees(100.0, 90.0) == 360.0


class TestBoundingBox:
    def test_box_encloses_radius(self):
        target = Coordinate(13.69, -89.22)
        min_lat, max_lat, min_lon, max_lon = bounding_box(target, 1000.0)
        assert min_lat < target.latitude < max_lat
        assert min_lon < target.longitude < max_lon

    def test_box_symmetric(self):
        target = Coordinate(13.69, -89.22)
        min_lat, max_lat, _, _ = bounding_box(target, 1000.0)
        assert target.latitude - min_lat == pytest.approx(max_lat - target.latitude)
