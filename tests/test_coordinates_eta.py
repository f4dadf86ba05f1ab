import math
from datetime import datetime, timedelta, timezone

import pytest

from core.exceptions import ValidationError
from drones.policy import DronePolicy, default_drone_policy
from routing.coordinates import Coordinate, parse_coordinate, validate_coordinates
from routing.eta_service import distance_km, estimate_eta, eta_from_location, remaining_minutes

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("lat, lng", [
    (91, 0),
    (-91, 0),
    (0, 181),
    (0, -181),
    (math.nan, 0),
    (0, math.nan),
    (math.inf, 0),
    (0, -math.inf),
    ("37.7", 0),
    (True, 0),
    (None, 0),
])
def test_validate_coordinates_rejects(lat, lng):
    with pytest.raises(ValidationError):
        validate_coordinates(lat, lng)


@pytest.mark.parametrize("lat, lng", [(90, 180), (-90, -180), (90.0, -180.0), (0, 0)])
def test_validate_coordinates_accepts_inclusive_bounds(lat, lng):
    validate_coordinates(lat, lng)


def test_validation_error_is_a_value_error():
    with pytest.raises(ValueError):
        validate_coordinates(100, 0)


def test_parse_coordinate_shapes():
    assert parse_coordinate((1, 2)) == Coordinate(1.0, 2.0)
    assert parse_coordinate([1.5, -2.5]) == Coordinate(1.5, -2.5)
    assert parse_coordinate({"lat": 10, "lng": 20}) == Coordinate(10.0, 20.0)
    assert parse_coordinate(Coordinate(3, 4)).lng == 4.0

    with pytest.raises(ValidationError):
        parse_coordinate({"lat": 10})
    with pytest.raises(ValidationError):
        parse_coordinate("10,20")
    with pytest.raises(ValidationError):
        parse_coordinate((10, 200))


def test_distance_km_haversine():
    assert distance_km((37.7749, -122.4194), (37.7749, -122.4194)) == 0

    # ~1.11 km north and ~0.88 km east of downtown SF
    d = distance_km((37.7749, -122.4194), (37.7849, -122.4094))
    assert 1.3 < d < 1.5

    # One degree of latitude on a 6371 km sphere
    assert distance_km((0, 0), (1, 0)) == pytest.approx(111.19, abs=0.01)


def test_estimate_eta_arithmetic():
    assert estimate_eta(50, 50, now=NOW) == NOW + timedelta(hours=1)
    assert estimate_eta(0, 50, now=NOW) == NOW
    assert estimate_eta(25, now=NOW) == NOW + timedelta(minutes=30)


@pytest.mark.parametrize("slow, fast", [(10, 20), (50, 50), (1, 300)])
def test_estimate_eta_is_monotonic_in_speed(slow, fast):
    assert estimate_eta(12.5, fast, now=NOW) <= estimate_eta(12.5, slow, now=NOW)


@pytest.mark.parametrize("distance, speed", [
    (-1, 50),
    (10, 0),
    (10, -5),
    (math.nan, 50),
    (math.inf, 50),
    (10, math.nan),
    (10, math.inf),
])
def test_estimate_eta_rejects_bad_input(distance, speed):
    with pytest.raises(ValidationError):
        estimate_eta(distance, speed, now=NOW)


def test_eta_from_location_defaults_to_utc_now():
    eta = eta_from_location((0, 0), (0, 0))
    assert eta.tzinfo is not None
    assert abs((eta - datetime.now(timezone.utc)).total_seconds()) < 5


def test_remaining_minutes_rounds_up_and_floors_at_zero():
    assert remaining_minutes(NOW + timedelta(seconds=61), now=NOW) == 2
    assert remaining_minutes(NOW + timedelta(minutes=5), now=NOW) == 5
    assert remaining_minutes(NOW - timedelta(minutes=5), now=NOW) == 0


def test_drone_policy(monkeypatch):
    monkeypatch.setenv("DRONE_AVERAGE_SPEED_KMH", "80")
    assert default_drone_policy().average_speed_kmh == 80.0

    with pytest.raises(ValueError):
        DronePolicy(average_speed_kmh=0).validate()
