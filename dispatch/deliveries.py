"""
Purpose: Order lifecycle operations (the delivery half of the state machine).
What it does:
submit -> (reserve, see dispatcher.py) -> grab -> deliver | fail
plus withdraw for the owner, admin route edits and the read paths.

Every operation that touches more than one record runs in one
store.atomic() block with the rows it reads-then-writes locked, so a failure
half way rolls everything back and the caller sees exactly one typed error.

Rows are locked order before drone, the same order reserve() updates them in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from django.utils import timezone

from core.exceptions import NotFoundError, ValidationError
from drones.models import Drone
from drones.policy import DronePolicy, default_drone_policy
from orders.models import ACTIVE_ORDER_STATUSES, Job, JobStatus, JobType, Order, OrderStatus
from routing.coordinates import Coordinate, parse_coordinate
from routing.eta_service import eta_from_location, remaining_minutes
from .state_machines.drone_state import (
    ensure_not_broken,
    mark_drone_available,
    mark_drone_busy,
)
from .state_machines.order_state import (
    transition_order_to_delivered,
    transition_order_to_failed,
    transition_order_to_in_transit,
    transition_order_to_withdrawn,
)
from .store import Store, get_or_not_found, to_uuid

logger = logging.getLogger(__name__)

ORDER_PROGRESS = {
    OrderStatus.PENDING: "Waiting for drone assignment",
    OrderStatus.ASSIGNED: "Assigned to drone, waiting to be picked up",
    OrderStatus.IN_TRANSIT: "In transit to destination",
    OrderStatus.DELIVERED: "Delivered",
    OrderStatus.FAILED: "Delivery failed",
    OrderStatus.WITHDRAWN: "Order withdrawn",
}

_ORDER_FIELDS_AFTER_TRANSITION = [
    "status", "assigned_drone", "current_lat", "current_lng", "eta", "updated_at",
]


@dataclass(frozen=True)
class OrderDetails:
    order: Order
    current_location: Optional[Coordinate]
    progress: str
    estimated_minutes_remaining: Optional[int]


class DeliveryStateMachine:
    """
    Enforces legal Order transitions and keeps Job and Drone in step with them.
    """

    def __init__(self, store: Store, policy: Optional[DronePolicy] = None):
        self.store = store
        self.policy = policy or default_drone_policy()

    # --- Owner operations ---

    def submit(self, origin, destination, owner_id) -> Order:
        """
        Creates the order and its DELIVERY job together.
        """
        origin = parse_coordinate(origin)
        destination = parse_coordinate(destination)

        if origin == destination:
            raise ValidationError("Origin and destination cannot be the same")

        owner = get_or_not_found(self.store.users, owner_id, "User")

        with self.store.atomic():
            order = self.store.orders.create(
                owner=owner,
                origin_lat=origin.lat,
                origin_lng=origin.lng,
                destination_lat=destination.lat,
                destination_lng=destination.lng,
            )
            job = self.store.jobs.create(
                kind=JobType.DELIVERY,
                order=order,
                origin_lat=origin.lat,
                origin_lng=origin.lng,
                destination_lat=destination.lat,
                destination_lng=destination.lng,
            )

        logger.info("Order %s submitted by %s (delivery job %s)", order.id, owner_id, job.id)
        return order

    def withdraw(self, order_id, owner_id) -> Order:
        """
        Only the owner, only while PENDING and unassigned.
        A non-owner gets NotFound, never a hint that the order exists.
        """
        # NotFound for strangers and malformed ids before any lock is taken
        self._get_owned_order(order_id, owner_id)

        with self.store.atomic():
            pending_jobs = list(
                self.store.jobs.select_for_update().filter(order_id=order_id, status=JobStatus.PENDING)
            )
            order = self._get_owned_order(order_id, owner_id, for_update=True)

            transition_order_to_withdrawn(order)
            order.save(using=self.store.using, update_fields=["status", "updated_at"])

            deleted, _ = self.store.jobs.filter(
                pk__in=[job.pk for job in pending_jobs], status=JobStatus.PENDING
            ).delete()

        logger.info("Order %s withdrawn by %s (%d pending job(s) removed)", order.id, owner_id, deleted)
        return order

    def get_order(self, order_id, owner_id) -> Order:
        return self._get_owned_order(order_id, owner_id)

    def get_order_details(self, order_id, owner_id) -> OrderDetails:
        order = self._get_owned_order(order_id, owner_id)
        return OrderDetails(
            order=order,
            current_location=order.current_location,
            progress=ORDER_PROGRESS.get(order.status, "Unknown status"),
            estimated_minutes_remaining=remaining_minutes(order.eta) if order.eta else None,
        )

    def list_orders_for_owner(self, owner_id) -> List[Order]:
        owner_id = to_uuid(owner_id)
        if owner_id is None:
            return []
        return list(self.store.orders.filter(owner_id=owner_id).order_by("-created_at"))

    # --- Drone operations ---

    def grab(self, order_id, drone_id) -> Order:
        """
        The assigned drone picks the package up at the origin.
        """
        with self.store.atomic():
            order = self._get_order(order_id, for_update=True)
            drone = self._get_drone(drone_id, for_update=True)
            ensure_not_broken(drone, "grab orders")

            eta = eta_from_location(drone.location, order.destination, self.policy.average_speed_kmh)
            transition_order_to_in_transit(order, drone.pk, eta)
            order.save(using=self.store.using, update_fields=_ORDER_FIELDS_AFTER_TRANSITION)

            mark_drone_busy(drone)
            drone.save(using=self.store.using, update_fields=["status", "updated_at"])

        logger.info("Drone %s grabbed order %s, eta %s", drone.id, order.id, eta.isoformat())
        return order

    def deliver(self, order_id, drone_id) -> Order:
        with self.store.atomic():
            drone, order = self._get_drone_and_carried_order(order_id, drone_id)

            transition_order_to_delivered(order)
            order.save(using=self.store.using, update_fields=_ORDER_FIELDS_AFTER_TRANSITION)

            self._finish(order, drone)

        logger.info("Drone %s delivered order %s", drone.id, order.id)
        return order

    def fail(self, order_id, drone_id) -> Order:
        """
        Terminal like deliver: the job is completed too, the package stays
        wherever it was last reported.
        """
        with self.store.atomic():
            drone, order = self._get_drone_and_carried_order(order_id, drone_id)

            transition_order_to_failed(order)
            order.save(using=self.store.using, update_fields=_ORDER_FIELDS_AFTER_TRANSITION)

            self._finish(order, drone)

        logger.info("Drone %s failed order %s", drone.id, order.id)
        return order

    # --- Admin operations ---

    def list_orders(
            self,
            *,
            status: Optional[str] = None,
            assigned_drone_id=None,
            owner_id=None,
            limit: Optional[int] = None,
            offset: int = 0,
    ) -> List[Order]:
        if offset < 0 or (limit is not None and limit < 0):
            raise ValidationError("limit and offset must not be negative")

        queryset = self.store.orders.all()

        if status:
            queryset = queryset.filter(status=status)
        for field, value in (("assigned_drone_id", assigned_drone_id), ("owner_id", owner_id)):
            if not value:
                continue
            # filter(fk=None) would mean IS NULL, so a malformed id ends the search
            value = to_uuid(value)
            if value is None:
                return []
            queryset = queryset.filter(**{field: value})

        queryset = queryset.order_by("-created_at")
        end = offset + limit if limit is not None else None
        return list(queryset[offset:end])

    def update_origin(self, order_id, coordinate) -> Order:
        return self._update_route(order_id, origin=parse_coordinate(coordinate))

    def update_destination(self, order_id, coordinate) -> Order:
        return self._update_route(order_id, destination=parse_coordinate(coordinate))

    # --- Helpers ---

    def _update_route(
            self,
            order_id,
            *,
            origin: Optional[Coordinate] = None,
            destination: Optional[Coordinate] = None,
    ) -> Order:
        """
        Admin edits are always allowed. While a drone holds the order the ETA
        follows the (possibly new) destination.
        """
        self._get_order(order_id)

        with self.store.atomic():
            open_jobs = list(
                self.store.jobs.select_for_update().filter(order_id=order_id).exclude(status=JobStatus.COMPLETED)
            )
            order = self._get_order(order_id, for_update=True)

            update_fields = ["updated_at"]
            if origin is not None:
                order.origin = origin
                update_fields += ["origin_lat", "origin_lng"]
            if destination is not None:
                order.destination = destination
                update_fields += ["destination_lat", "destination_lng"]

            if order.status in ACTIVE_ORDER_STATUSES:
                start = order.current_location or order.origin
                order.eta = eta_from_location(start, order.destination, self.policy.average_speed_kmh)
                update_fields.append("eta")

            order.save(using=self.store.using, update_fields=update_fields)
            self._sync_open_jobs(open_jobs, order, origin_changed=origin is not None)

        logger.info("Order %s route updated (origin=%s, destination=%s)", order.id, order.origin, order.destination)
        return order

    def _sync_open_jobs(self, jobs: List[Job], order: Order, *, origin_changed: bool) -> None:
        # A HANDOFF job starts where the broken drone is, not at the order's origin
        for job in jobs:
            job.destination_lat, job.destination_lng = order.destination
            fields = ["destination_lat", "destination_lng", "updated_at"]
            if origin_changed and job.kind == JobType.DELIVERY:
                job.origin_lat, job.origin_lng = order.origin
                fields += ["origin_lat", "origin_lng"]
            job.save(using=self.store.using, update_fields=fields)

    def _finish(self, order: Order, drone: Drone) -> None:
        """
        Shared tail of every terminal outcome: close the job, free the drone.
        """
        self.store.jobs.filter(
            order=order, assigned_drone=drone, status=JobStatus.RESERVED
        ).update(status=JobStatus.COMPLETED, updated_at=timezone.now())

        mark_drone_available(drone)
        drone.save(using=self.store.using, update_fields=["status", "updated_at"])

    def _get_drone_and_carried_order(self, order_id, drone_id):
        """
        Deliver/fail preconditions. An order this drone does not carry is
        reported as missing.
        """
        order = self._get_order(order_id, for_update=True)
        drone = self._get_drone(drone_id, for_update=True)

        if order.assigned_drone_id != drone.pk:
            raise NotFoundError(f"Order with id {order_id} not found")

        return drone, order

    def _get_order(self, order_id, *, for_update: bool = False) -> Order:
        queryset = self.store.orders.select_for_update() if for_update else self.store.orders
        return get_or_not_found(queryset, order_id, "Order")

    def _get_owned_order(self, order_id, owner_id, *, for_update: bool = False) -> Order:
        order = self._get_order(order_id, for_update=for_update)
        # Don't reveal existence to someone else's caller
        if str(order.owner_id) != str(owner_id):
            raise NotFoundError(f"Order with id {order_id} not found")
        return order

    def _get_drone(self, drone_id, *, for_update: bool = False) -> Drone:
        queryset = self.store.drones.select_for_update() if for_update else self.store.drones
        return get_or_not_found(queryset, drone_id, "Drone")
