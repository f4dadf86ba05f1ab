"""
Purpose: Drone lifecycle operations (the fleet half of the state machine).
What it does:
- register a drone (out of band, idempotent)
- mark broken (with handoff), mark fixed
- location heartbeats: move the drone, keep the carried order's ETA fresh,
  answer with a health summary
- "what am I carrying" and the admin fleet listing

A drone's current order is never stored on the drone. It is always the query
Order(assigned_drone=drone, status in ASSIGNED/IN_TRANSIT).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from django.utils import timezone

from core.exceptions import ValidationError
from drones.models import Drone, DroneStatus
from drones.policy import DronePolicy, default_drone_policy
from orders.models import ACTIVE_ORDER_STATUSES, Job, JobStatus, Order, OrderStatus
from routing.coordinates import parse_coordinate
from routing.eta_service import eta_from_location
from .handoff import create_handoff_job
from .state_machines.drone_state import mark_drone_broken, mark_drone_fixed, record_heartbeat
from .store import Store, get_or_not_found, to_uuid

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"     # BUSY but nothing in transit
    ERROR = "error"         # broken


@dataclass(frozen=True)
class DroneStatusUpdate:
    """
    Heartbeat response.
    """
    status: HealthStatus
    drone_status: str
    assigned_order: Optional[Order]
    eta: Optional[datetime]
    available_jobs_count: int


@dataclass(frozen=True)
class DroneSummary:
    drone: Drone
    current_order_id: Optional[str]


class FleetService:
    """
    Enforces legal Drone transitions, including recovery when one breaks.
    """

    def __init__(self, store: Store, policy: Optional[DronePolicy] = None):
        self.store = store
        self.policy = policy or default_drone_policy()

    def register_drone(self, drone_id, location) -> Drone:
        """
        Returns the existing drone when the id is already registered.
        """
        location = parse_coordinate(location)
        pk = to_uuid(drone_id)
        if pk is None:
            raise ValidationError(f"Drone id {drone_id!r} is not a valid UUID")

        drone, created = self.store.drones.get_or_create(
            pk=pk,
            defaults={"current_lat": location.lat, "current_lng": location.lng},
        )
        if created:
            logger.info("Drone %s registered at %s", drone.id, location)
        return drone

    def mark_broken(self, drone_id) -> Optional[Job]:
        """
        Same path whether the drone reports itself or an admin does it.
        Returns the handoff job when the drone was carrying an order.
        """
        drone_id = self._get_drone(drone_id).pk

        with self.store.atomic():
            order = self._current_order_query(drone_id).select_for_update().first()
            drone = self._get_drone(drone_id, for_update=True)

            if drone.is_broken:
                return None  # Already broken

            handoff = None
            if order is not None:
                handoff = create_handoff_job(self.store, drone, order)

            mark_drone_broken(drone)
            drone.save(using=self.store.using, update_fields=["status", "is_broken", "updated_at"])

        logger.info("Drone %s marked broken", drone.id)
        return handoff

    def mark_fixed(self, drone_id) -> Drone:
        """
        Handoff jobs created when this drone broke stay PENDING and reservable.
        Fixing a drone that is not broken changes nothing.
        """
        with self.store.atomic():
            drone = self._get_drone(drone_id, for_update=True)
            if not drone.is_broken:
                return drone  # Nothing to fix

            mark_drone_fixed(drone)
            drone.save(using=self.store.using, update_fields=["status", "is_broken", "updated_at"])

        logger.info("Drone %s marked fixed", drone.id)
        return drone

    def update_location(self, drone_id, location) -> DroneStatusUpdate:
        """
        Heartbeat. Moves the drone and, if it is carrying an order in transit,
        the order's position and ETA with it.
        """
        location = parse_coordinate(location)
        now = timezone.now()
        eta = None

        drone_id = self._get_drone(drone_id).pk

        with self.store.atomic():
            order = (
                self.store.orders.select_for_update()
                .filter(assigned_drone_id=drone_id, status=OrderStatus.IN_TRANSIT)
                .first()
            )
            drone = self._get_drone(drone_id, for_update=True)

            if order is not None:
                eta = eta_from_location(location, order.destination, self.policy.average_speed_kmh, now=now)
                order.current_location = location
                order.eta = eta
                order.save(using=self.store.using, update_fields=["current_lat", "current_lng", "eta", "updated_at"])

            record_heartbeat(drone, location.lat, location.lng, now)
            drone.save(
                using=self.store.using,
                update_fields=["current_lat", "current_lng", "last_heartbeat", "updated_at"],
            )

        if drone.is_broken:
            status = HealthStatus.ERROR
        elif drone.status == DroneStatus.BUSY and order is None:
            status = HealthStatus.WARNING
            logger.warning("Drone %s is BUSY but carries no order in transit", drone.id)
        else:
            status = HealthStatus.OK

        return DroneStatusUpdate(
            status=status,
            drone_status=drone.status,
            assigned_order=order,
            eta=eta,
            available_jobs_count=self.store.jobs.filter(status=JobStatus.PENDING).count(),
        )

    def current_order(self, drone_id) -> Optional[Order]:
        drone_id = self._get_drone(drone_id).pk
        return self._current_order_query(drone_id).first()

    def list_drones(self, *, status: Optional[str] = None, is_broken: Optional[bool] = None) -> List[DroneSummary]:
        queryset = self.store.drones.all()

        if status:
            queryset = queryset.filter(status=status)
        if is_broken is not None:
            queryset = queryset.filter(is_broken=is_broken)

        drones = list(queryset.order_by("-created_at"))

        # drone id -> id of the order it holds, in one query
        held: Dict[str, str] = {
            str(drone_id): str(order_id)
            for drone_id, order_id in self.store.orders.filter(
                assigned_drone__in=[drone.pk for drone in drones],
                status__in=ACTIVE_ORDER_STATUSES,
            ).values_list("assigned_drone_id", "id")
        }
        return [DroneSummary(drone=drone, current_order_id=held.get(str(drone.pk))) for drone in drones]

    def _current_order_query(self, drone_id):
        return self.store.orders.filter(assigned_drone_id=drone_id, status__in=ACTIVE_ORDER_STATUSES)

    def _get_drone(self, drone_id, *, for_update: bool = False) -> Drone:
        queryset = self.store.drones.select_for_update() if for_update else self.store.drones
        return get_or_not_found(queryset, drone_id, "Drone")
