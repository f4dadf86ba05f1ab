#Purpose: ETA estimation policy.
#Converts a straight-line (great circle) distance into the arrival estimates
#used by:
#customer-facing "arrives in X minutes"
#drone heartbeat responses
#Keeps ETA arithmetic separate from the state machine so it stays a pure function.

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from core.exceptions import ValidationError
from .coordinates import Coordinate, validate_coordinates

EARTH_RADIUS_KM = 6371.0
DEFAULT_SPEED_KMH = 50.0


def distance_km(origin: Coordinate, destination: Coordinate) -> float:
    """
    Great-circle distance between two coordinates using the haversine formula
    on a spherical earth of mean radius 6371 km.
    """
    lat1, lng1 = origin
    lat2, lng2 = destination
    validate_coordinates(lat1, lng1)
    validate_coordinates(lat2, lng2)

    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def estimate_eta(
        distance: float,
        speed_kmh: float = DEFAULT_SPEED_KMH,
        *,
        now: Optional[datetime] = None,
) -> datetime:
    """
    now + distance / speed hours.

    Args:
        distance: kilometres, must be >= 0
        speed_kmh: average speed, must be > 0
        now: reference time (defaults to the current UTC time)
    """
    if not math.isfinite(distance) or not math.isfinite(speed_kmh):
        raise ValidationError("Distance and speed must be finite numbers")

    if distance < 0:
        raise ValidationError("Distance cannot be negative")

    if speed_kmh <= 0:
        raise ValidationError("Speed must be greater than 0")

    now = now or datetime.now(timezone.utc)
    return now + timedelta(hours=distance / speed_kmh)


def eta_from_location(
        current: Coordinate,
        destination: Coordinate,
        speed_kmh: float = DEFAULT_SPEED_KMH,
        *,
        now: Optional[datetime] = None,
) -> datetime:
    """ETA from the current position straight to the destination."""
    return estimate_eta(distance_km(current, destination), speed_kmh, now=now)


def remaining_minutes(eta: datetime, *, now: Optional[datetime] = None) -> int:
    """
    Whole minutes until eta, rounded up. Never negative: an ETA in the past is 0.
    """
    now = now or datetime.now(timezone.utc)
    seconds = (eta - now).total_seconds()
    return max(0, math.ceil(seconds / 60))
