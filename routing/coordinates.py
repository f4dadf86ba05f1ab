#Purpose: Coordinate type + validation for everything that touches a location.
#Every coordinate that enters the system (order submission, admin route edits,
#drone heartbeats) passes through validate_coordinates before it is stored.
#Internal coordinate type: (lat, lng).

import math
from numbers import Real
from typing import Any, Mapping, NamedTuple

from core.exceptions import ValidationError


class Coordinate(NamedTuple):
    """
    A (lat, lng) pair in decimal degrees.
    Still a plain tuple, so `lat, lng = coordinate` keeps working.
    """
    lat: float
    lng: float


def _is_number(value: Any) -> bool:
    # bool is a subclass of int, but True is not a latitude
    return isinstance(value, Real) and not isinstance(value, bool)


def validate_coordinates(lat: Any, lng: Any) -> None:
    """
    Raises ValidationError unless lat is in [-90, 90] and lng in [-180, 180].
    Bounds are inclusive. NaN and +/-Infinity are rejected.
    """
    if not _is_number(lat) or not math.isfinite(lat):
        raise ValidationError("Latitude must be a valid number")

    if not _is_number(lng) or not math.isfinite(lng):
        raise ValidationError("Longitude must be a valid number")

    if lat < -90 or lat > 90:
        raise ValidationError("Latitude must be between -90 and 90 degrees")

    if lng < -180 or lng > 180:
        raise ValidationError("Longitude must be between -180 and 180 degrees")


def parse_coordinate(value: Any) -> Coordinate:
    """
    Accepts a Coordinate, a (lat, lng) pair or a {"lat": .., "lng": ..} mapping
    and returns a validated Coordinate.
    """
    if isinstance(value, Mapping):
        if "lat" not in value or "lng" not in value:
            raise ValidationError("Location must contain 'lat' and 'lng'")
        lat, lng = value["lat"], value["lng"]
    elif isinstance(value, (tuple, list)) and len(value) == 2:
        lat, lng = value
    else:
        raise ValidationError(f"Unsupported location value: {value!r}")

    validate_coordinates(lat, lng)
    return Coordinate(float(lat), float(lng))
