#Marks routing as a package.
#Re-exports the coordinate type and ETA helpers so other modules import from
#routing without knowing internal file names.
#No business logic, no Django.

from .coordinates import Coordinate, validate_coordinates, parse_coordinate
from .eta_service import (
    EARTH_RADIUS_KM,
    DEFAULT_SPEED_KMH,
    distance_km,
    estimate_eta,
    eta_from_location,
    remaining_minutes,
)

__all__ = [
    "Coordinate",
    "validate_coordinates",
    "parse_coordinate",
    "EARTH_RADIUS_KM",
    "DEFAULT_SPEED_KMH",
    "distance_km",
    "estimate_eta",
    "eta_from_location",
    "remaining_minutes",
]
