"""
Purpose: Domain models for the Orders capability.
What it does:
- Defines core data structures:
- Order (id, origin/destination coords, owner, status, assigned drone, live position, eta)
- Job (id, kind DELIVERY/HANDOFF, linked order, origin/destination coords, source drone, status)

Defines enums/constants:
- OrderStatus = PENDING | ASSIGNED | IN_TRANSIT | DELIVERED | FAILED | WITHDRAWN
- JobType = DELIVERY | HANDOFF
- JobStatus = PENDING | RESERVED | COMPLETED

Rule: No transitions, no reservation logic. Models only.
"""

from __future__ import annotations

import uuid
from typing import Optional

from django.db import models
from django.utils import timezone

from routing.coordinates import Coordinate


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    ASSIGNED = "ASSIGNED", "Assigned"
    IN_TRANSIT = "IN_TRANSIT", "In transit"
    DELIVERED = "DELIVERED", "Delivered"
    FAILED = "FAILED", "Failed"
    WITHDRAWN = "WITHDRAWN", "Withdrawn"


# A drone "holds" an order while it is in one of these
ACTIVE_ORDER_STATUSES = (OrderStatus.ASSIGNED, OrderStatus.IN_TRANSIT)


class JobType(models.TextChoices):
    DELIVERY = "DELIVERY", "Delivery"
    HANDOFF = "HANDOFF", "Handoff"


class JobStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    RESERVED = "RESERVED", "Reserved"
    COMPLETED = "COMPLETED", "Completed"


class Order(models.Model):
    """
    A delivery ask. Never deleted: withdrawal is the WITHDRAWN status.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey("users.User", on_delete=models.PROTECT, related_name="orders")

    origin_lat = models.FloatField()
    origin_lng = models.FloatField()
    destination_lat = models.FloatField()
    destination_lng = models.FloatField()

    status = models.CharField(
        max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING, db_index=True
    )
    # Non-null exactly while status is ASSIGNED or IN_TRANSIT
    assigned_drone = models.ForeignKey(
        "drones.Drone", on_delete=models.SET_NULL, null=True, blank=True, related_name="orders"
    )

    # Where the package physically is, once it has been picked up
    current_lat = models.FloatField(null=True, blank=True)
    current_lng = models.FloatField(null=True, blank=True)
    eta = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    @property
    def origin(self) -> Coordinate:
        return Coordinate(self.origin_lat, self.origin_lng)

    @origin.setter
    def origin(self, coordinate: Coordinate) -> None:
        self.origin_lat, self.origin_lng = coordinate

    @property
    def destination(self) -> Coordinate:
        return Coordinate(self.destination_lat, self.destination_lng)

    @destination.setter
    def destination(self, coordinate: Coordinate) -> None:
        self.destination_lat, self.destination_lng = coordinate

    @property
    def current_location(self) -> Optional[Coordinate]:
        if self.current_lat is None or self.current_lng is None:
            return None
        return Coordinate(self.current_lat, self.current_lng)

    @current_location.setter
    def current_location(self, coordinate: Optional[Coordinate]) -> None:
        if coordinate is None:
            self.current_lat = self.current_lng = None
        else:
            self.current_lat, self.current_lng = coordinate

    def __str__(self):
        return f"Order #{self.id} - {self.status}"


class Job(models.Model):
    """
    Assignable unit of work, reservable by exactly one drone.
    DELIVERY jobs are created with their order; HANDOFF jobs when the
    drone carrying an order breaks.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    kind = models.CharField(max_length=20, choices=JobType.choices, default=JobType.DELIVERY)
    order = models.ForeignKey(
        Order, on_delete=models.SET_NULL, null=True, blank=True, related_name="jobs"
    )

    origin_lat = models.FloatField()
    origin_lng = models.FloatField()
    destination_lat = models.FloatField()
    destination_lng = models.FloatField()

    # HANDOFF only: the drone whose breakage created this job
    source_drone = models.ForeignKey(
        "drones.Drone", on_delete=models.SET_NULL, null=True, blank=True, related_name="handoff_jobs"
    )

    status = models.CharField(max_length=20, choices=JobStatus.choices, default=JobStatus.PENDING)
    assigned_drone = models.ForeignKey(
        "drones.Drone", on_delete=models.SET_NULL, null=True, blank=True, related_name="jobs"
    )

    # Settable so FIFO ordering can be reproduced; never auto_now_add
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["status", "kind", "created_at"], name="orders_job_claim_idx"),
        ]

    @property
    def origin(self) -> Coordinate:
        return Coordinate(self.origin_lat, self.origin_lng)

    @property
    def destination(self) -> Coordinate:
        return Coordinate(self.destination_lat, self.destination_lng)

    def __str__(self):
        return f"Job #{self.id} ({self.kind}) - {self.status}"
