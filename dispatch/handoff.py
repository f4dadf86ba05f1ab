"""
Purpose: Handoff generator.
What it does:
When a drone carrying an order becomes unavailable, the order must not be
stranded. A new HANDOFF job is created starting where the broken drone is,
ending at the order's destination, and the order goes back to PENDING so the
next reservation picks it up (HANDOFF jobs are reserved before DELIVERY jobs).

Rule: Never runs on its own. FleetService.mark_broken calls it inside the
breakage transaction, so either all of this happens or none of it does.
"""

import logging

from django.utils import timezone

from drones.models import Drone
from orders.models import Job, JobStatus, JobType, Order
from .state_machines.order_state import reset_order_for_handoff
from .store import Store

logger = logging.getLogger(__name__)


def create_handoff_job(store: Store, drone: Drone, order: Order) -> Job:
    """
    Must be called inside store.atomic() with `order` locked.

    Returns the new PENDING HANDOFF job.
    """
    last_known_location = drone.location

    # The broken drone's reservation is superseded by the handoff, which keeps
    # the order at one open job.
    superseded = store.jobs.filter(
        order=order, assigned_drone=drone, status=JobStatus.RESERVED
    ).update(status=JobStatus.COMPLETED, updated_at=timezone.now())

    handoff = store.jobs.create(
        kind=JobType.HANDOFF,
        order=order,
        origin_lat=last_known_location.lat,
        origin_lng=last_known_location.lng,
        destination_lat=order.destination_lat,
        destination_lng=order.destination_lng,
        source_drone=drone,
        status=JobStatus.PENDING,
    )

    reset_order_for_handoff(order, last_known_location)
    order.save(
        using=store.using,
        update_fields=["status", "assigned_drone", "current_lat", "current_lng", "eta", "updated_at"],
    )

    logger.info(
        "Handoff job %s created for order %s (drone %s broke at %s, %d reservation(s) superseded)",
        handoff.id, order.id, drone.id, last_known_location, superseded,
    )
    return handoff
