from datetime import datetime

from core.exceptions import ConflictError
from drones.models import Drone, DroneStatus


class DroneStateException(ConflictError):
    """Raised when an invalid drone transition is attempted."""
    default_code = "INVALID_TRANSITION"


def ensure_not_broken(drone: Drone, action: str = "act") -> None:
    if drone.is_broken:
        raise DroneStateException(f"Broken drones cannot {action}", code="DRONE_BROKEN")


def ensure_can_reserve(drone: Drone) -> None:
    """
    A drone reserves at most one job at a time, and never while broken.
    """
    ensure_not_broken(drone, "reserve jobs")

    if drone.status == DroneStatus.BUSY:
        raise DroneStateException("Drone is already busy with an order", code="DRONE_BUSY")


def mark_drone_busy(drone: Drone) -> Drone:
    ensure_not_broken(drone, "take orders")
    drone.status = DroneStatus.BUSY
    return drone


def mark_drone_available(drone: Drone) -> Drone:
    """
    Called when the order it carried reached a terminal state.
    A drone that broke in the meantime stays BROKEN.
    """
    if not drone.is_broken:
        drone.status = DroneStatus.AVAILABLE
    return drone


def mark_drone_broken(drone: Drone) -> Drone:
    drone.status = DroneStatus.BROKEN
    drone.is_broken = True
    return drone


def mark_drone_fixed(drone: Drone) -> Drone:
    """
    BROKEN -> AVAILABLE. Handoff jobs this drone caused stay open:
    the order is already someone else's to pick up.
    A drone that is not broken is left as it is (a BUSY drone keeps its order).
    """
    if not drone.is_broken:
        return drone

    drone.status = DroneStatus.AVAILABLE
    drone.is_broken = False
    return drone


def record_heartbeat(drone: Drone, lat: float, lng: float, now: datetime) -> Drone:
    drone.current_lat = lat
    drone.current_lng = lng
    drone.last_heartbeat = now
    return drone
