"""
Purpose: Persistence model for the drones domain.
What it does:
Defines the structure of a Drone and its status.
A drone never stores which order it carries: that is always a query on
Order.assigned_drone, so there is a single side to keep in sync.
"""

import uuid

from django.db import models

from routing.coordinates import Coordinate


class DroneStatus(models.TextChoices):
    """
    AVAILABLE <-> BUSY, {AVAILABLE, BUSY} -> BROKEN, BROKEN -> AVAILABLE (fix).
    """
    AVAILABLE = "AVAILABLE", "Available"
    BUSY = "BUSY", "Busy"
    BROKEN = "BROKEN", "Broken"


class Drone(models.Model):
    # Same UUID as the DRONE caller's subject id
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    current_lat = models.FloatField()
    current_lng = models.FloatField()

    status = models.CharField(
        max_length=20, choices=DroneStatus.choices, default=DroneStatus.AVAILABLE, db_index=True
    )
    # is_broken implies status == BROKEN
    is_broken = models.BooleanField(default=False)
    last_heartbeat = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    @property
    def location(self) -> Coordinate:
        return Coordinate(self.current_lat, self.current_lng)

    def __str__(self):
        return f"Drone {self.id} - {self.status}"
